"""Configuration helpers for the Job Runner console."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://127.0.0.1:8080/jobrunner/api"
DEFAULT_UI_BIND_HOST = "0.0.0.0"
DEFAULT_UI_BIND_PORT = 8090
DEFAULT_API_TIMEOUT_SECONDS = 5.0
DEFAULT_LOG_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_LOG_LINES = 200
DEFAULT_LOG_LEVEL = "INFO"


def _parse_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s: %r; using %s", name, value, default)
        return default


def _parse_float(name: str, value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid number for %s: %r; using %s", name, value, default)
        return default


def _load_file_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        logger.debug("Console config %s missing; using environment only", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to load console config at %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Console config %s must contain a mapping; ignoring it", path)
        return {}
    return data


@dataclass(frozen=True)
class UISettings:
    api_base_url: str
    ui_bind_host: str
    ui_bind_port: int
    api_timeout_seconds: float
    log_poll_interval_seconds: float = DEFAULT_LOG_POLL_INTERVAL_SECONDS
    log_lines: int = DEFAULT_LOG_LINES
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def load(cls, environ: Mapping[str, str] | None = None) -> UISettings:
        """Build settings from an optional YAML file overlaid by ``JR_*`` env vars."""
        env = os.environ if environ is None else environ
        file_cfg: Dict[str, Any] = {}
        config_path = env.get("JR_UI_CONFIG_PATH")
        if config_path:
            file_cfg = _load_file_config(Path(config_path).expanduser())

        def pick(env_name: str, key: str, default: Any) -> Any:
            if env_name in env:
                return env[env_name]
            return file_cfg.get(key, default)

        base_url = str(
            pick("JR_API_BASE_URL", "api_base_url", DEFAULT_API_BASE_URL)
        ).rstrip("/")
        if not base_url:
            base_url = DEFAULT_API_BASE_URL
        poll_interval = _parse_float(
            "log_poll_interval_seconds",
            pick("JR_UI_LOG_POLL_SECONDS", "log_poll_interval_seconds", None),
            DEFAULT_LOG_POLL_INTERVAL_SECONDS,
        )
        if poll_interval <= 0:
            poll_interval = DEFAULT_LOG_POLL_INTERVAL_SECONDS
        log_lines = _parse_int(
            "log_lines",
            pick("JR_UI_LOG_LINES", "log_lines", None),
            DEFAULT_LOG_LINES,
        )
        if log_lines <= 0:
            log_lines = DEFAULT_LOG_LINES
        return cls(
            api_base_url=base_url,
            ui_bind_host=str(
                pick("JR_UI_BIND_HOST", "ui_bind_host", DEFAULT_UI_BIND_HOST)
            ),
            ui_bind_port=_parse_int(
                "ui_bind_port",
                pick("JR_UI_BIND_PORT", "ui_bind_port", None),
                DEFAULT_UI_BIND_PORT,
            ),
            api_timeout_seconds=_parse_float(
                "api_timeout_seconds",
                pick("JR_UI_API_TIMEOUT_SECONDS", "api_timeout_seconds", None),
                DEFAULT_API_TIMEOUT_SECONDS,
            ),
            log_poll_interval_seconds=poll_interval,
            log_lines=log_lines,
            log_level=str(
                pick("JR_UI_LOG_LEVEL", "log_level", DEFAULT_LOG_LEVEL)
            ).upper(),
        )
