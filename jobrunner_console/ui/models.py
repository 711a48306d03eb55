"""Cache-owned records for the Job Runner console."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

STATUS_RUNNING = "running"
STATUS_STOPPED = "stopped"
STATUS_ERROR = "error"

JOB_TYPES = ("continuous", "on-demand")
DEFAULT_JOB_TYPE = "on-demand"

_WHITESPACE_RUN = re.compile(r"\s+")


def derive_job_id(name: str) -> str:
    """Return the id a new job gets from its display name.

    Lowercases the name and collapses every whitespace run into a single
    hyphen: ``"Nightly ETL Job"`` becomes ``"nightly-etl-job"``.
    """
    return _WHITESPACE_RUN.sub("-", name.lower())


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or str(value) == "":
        raise ValueError(f"missing {key!r} in payload")
    return str(value)


def _normalize_app(payload: Mapping[str, Any]) -> Optional[str]:
    """Collapse the service's ``apps`` list into the single app a job runs in."""
    scalar = payload.get("app")
    if isinstance(scalar, str) and scalar:
        return scalar
    apps = payload.get("apps")
    if isinstance(apps, list) and apps:
        if len(apps) > 1:
            logger.debug(
                "Job %s lists %d apps; keeping %r",
                payload.get("id"),
                len(apps),
                apps[0],
            )
        return str(apps[0])
    return None


@dataclass(frozen=True)
class Job:
    id: str
    name: str
    app: Optional[str] = None
    main_class: str = ""
    type: str = DEFAULT_JOB_TYPE
    description: Optional[str] = None
    enabled: bool = True
    status: str = STATUS_STOPPED
    pid: Optional[int] = None
    start_time: Optional[int] = None
    java_opts: Optional[str] = None
    args_required: bool = False
    params: Tuple[str, ...] = ()

    @property
    def is_running(self) -> bool:
        return self.status.lower() == STATUS_RUNNING

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Job:
        job_id = _require_str(payload, "id")
        params = payload.get("params") or []
        status = _optional_str(payload.get("status")) or STATUS_STOPPED
        pid = None
        if status.lower() == STATUS_RUNNING:
            pid = _optional_int(payload.get("pid"))
        return cls(
            id=job_id,
            name=_optional_str(payload.get("name")) or job_id,
            app=_normalize_app(payload),
            main_class=_optional_str(payload.get("mainClass")) or "",
            type=_optional_str(payload.get("type")) or DEFAULT_JOB_TYPE,
            description=_optional_str(payload.get("description")),
            enabled=bool(payload.get("enabled", True)),
            status=status,
            pid=pid,
            start_time=_optional_int(payload.get("startTime")),
            java_opts=_optional_str(payload.get("javaOpts")),
            args_required=bool(payload.get("argsRequired", False)),
            params=tuple(str(item) for item in params),
        )


@dataclass(frozen=True)
class JobDraft:
    """Form input for Save job; ``job_id`` is ``None`` in Add mode."""

    name: str
    app: str
    main_class: str
    type: str = DEFAULT_JOB_TYPE
    description: str = ""
    enabled: bool = True
    java_opts: str = ""
    job_id: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return not self.job_id

    def resolved_id(self) -> str:
        if self.job_id:
            return self.job_id
        return derive_job_id(self.name.strip())

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.resolved_id(),
            "name": self.name.strip(),
            "app": self.app,
            "mainClass": self.main_class.strip(),
            "type": self.type,
            "description": self.description,
            "enabled": self.enabled,
        }
        payload["javaOpts"] = self.java_opts.strip() or None
        return payload


@dataclass(frozen=True)
class App:
    id: str
    name: str
    webapp_path: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> App:
        app_id = _require_str(payload, "id")
        return cls(
            id=app_id,
            name=_optional_str(payload.get("name")) or app_id,
            webapp_path=_optional_str(payload.get("webappPath")) or "",
        )

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "webappPath": self.webapp_path}


@dataclass(frozen=True)
class GlobalConfig:
    java_home: str = ""
    java_opts: str = ""
    config_dir: str = ""
    logs_dir: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> GlobalConfig:
        payload = payload or {}
        return cls(
            java_home=_optional_str(payload.get("javaHome")) or "",
            java_opts=_optional_str(payload.get("javaOpts")) or "",
            config_dir=_optional_str(payload.get("configDir")) or "",
            logs_dir=_optional_str(payload.get("logsDir")) or "",
        )

    def to_payload(self) -> Dict[str, str]:
        return {
            "javaHome": self.java_home,
            "javaOpts": self.java_opts,
            "configDir": self.config_dir,
            "logsDir": self.logs_dir,
        }


@dataclass(frozen=True)
class StatusSnapshot:
    config_file: str = ""
    running: int = 0
    total_jobs: Optional[int] = None
    stopped: Optional[int] = None
    error: Optional[int] = None
    total_apps: Optional[int] = None
    java_version: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> StatusSnapshot:
        return cls(
            config_file=_optional_str(payload.get("configFile")) or "",
            running=_optional_int(payload.get("running")) or 0,
            total_jobs=_optional_int(payload.get("totalJobs")),
            stopped=_optional_int(payload.get("stopped")),
            error=_optional_int(payload.get("error")),
            total_apps=_optional_int(payload.get("totalApps")),
            java_version=_optional_str(payload.get("javaVersion")),
        )


@dataclass(frozen=True)
class StartAllResult:
    started: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> StartAllResult:
        started: List[Any] = payload.get("started") or []
        failed: List[Any] = payload.get("failed") or []
        return cls(
            started=tuple(str(item) for item in started),
            failed=tuple(str(item) for item in failed),
        )


@dataclass(frozen=True)
class CommandResult:
    """``{success, message}`` acknowledgement returned by lifecycle endpoints."""

    success: bool
    message: str = ""
    pid: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> CommandResult:
        if not isinstance(payload, Mapping):
            return cls(success=True)
        return cls(
            success=bool(payload.get("success", True)),
            message=_optional_str(payload.get("message")) or "",
            pid=_optional_int(payload.get("pid")),
        )
