"""Operator console for the Job Runner service."""

__version__ = "0.1.0"
