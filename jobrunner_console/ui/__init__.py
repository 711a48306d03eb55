"""Public API for the NiceGUI console service."""

from __future__ import annotations

from jobrunner_console.ui.app import create_ui_app
from jobrunner_console.ui.settings import UISettings

__all__ = ["create_ui_app", "UISettings"]
