"""Pure projections from store state to view trees.

Nothing here touches NiceGUI; ``jobrunner_console.ui.app`` clears its
containers and rebuilds them from these trees on every store change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from jobrunner_console.ui.models import App, Job, StatusSnapshot

JOBS_PLACEHOLDER = 'No jobs configured. Click "Add Job" to create one.'
APPS_PLACEHOLDER = "No applications configured."
LOGS_PLACEHOLDER = "Select a job to view its logs..."
LOGS_EMPTY = "No logs available."
JOB_SELECT_PLACEHOLDER = "Select a job"

_STATUS_BADGE_STYLES: Dict[str, str] = {
    "running": "bg-emerald-100 text-emerald-700",
    "stopped": "bg-slate-100 text-slate-700",
    "error": "bg-rose-100 text-rose-700",
    "unknown": "bg-amber-100 text-amber-700",
}


@dataclass(frozen=True)
class ActionView:
    name: str
    label: str
    disabled: bool = False
    color: Optional[str] = None


@dataclass(frozen=True)
class JobRowView:
    job_id: str
    name: str
    description: Optional[str]
    app_badges: Tuple[str, ...]
    type_badge: str
    status: str
    status_text: str
    status_classes: str
    since: Optional[str]
    actions: Tuple[ActionView, ...]


@dataclass(frozen=True)
class JobsTableView:
    rows: Tuple[JobRowView, ...]
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class AppCardView:
    app_id: str
    name: str
    webapp_path: str
    actions: Tuple[ActionView, ...]


@dataclass(frozen=True)
class AppsListView:
    cards: Tuple[AppCardView, ...]
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class JobSelectView:
    options: Tuple[Tuple[str, str], ...]
    selected: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return dict(self.options)


def format_start_time(start_time_ms: Optional[int]) -> Optional[str]:
    if not start_time_ms:
        return None
    try:
        started = datetime.fromtimestamp(start_time_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return started.strftime("Since %Y-%m-%d %H:%M:%S UTC")


def format_status_badge(status: str) -> Tuple[str, str]:
    classes = _STATUS_BADGE_STYLES.get(status.lower(), _STATUS_BADGE_STYLES["unknown"])
    return status, f"px-2 py-0.5 text-xs font-semibold rounded-full {classes}"


def _app_badge(app_id: Optional[str], apps: Mapping[str, App]) -> Tuple[str, ...]:
    if not app_id:
        return ()
    app = apps.get(app_id)
    return (app.name if app else app_id,)


def _job_actions(job: Job) -> Tuple[ActionView, ...]:
    if job.is_running:
        toggle = ActionView("stop", "Stop", disabled=not job.enabled, color="warning")
    else:
        toggle = ActionView("start", "Start", disabled=not job.enabled, color="positive")
    actions = [toggle]
    if job.is_running:
        actions.append(ActionView("restart", "Restart", disabled=not job.enabled))
    actions.extend(
        [
            ActionView("logs", "Logs"),
            ActionView("edit", "Edit"),
            ActionView("delete", "Delete", color="negative"),
        ]
    )
    return tuple(actions)


def build_job_row(job: Job, apps: Mapping[str, App]) -> JobRowView:
    status_text, status_classes = format_status_badge(job.status)
    if job.pid:
        status_text = f"{status_text} (PID: {job.pid})"
    return JobRowView(
        job_id=job.id,
        name=job.name,
        description=job.description or None,
        app_badges=_app_badge(job.app, apps),
        type_badge=job.type,
        status=job.status,
        status_text=status_text,
        status_classes=status_classes,
        since=format_start_time(job.start_time) if job.is_running else None,
        actions=_job_actions(job),
    )


def build_jobs_table(jobs: Sequence[Job], apps: Mapping[str, App]) -> JobsTableView:
    if not jobs:
        return JobsTableView(rows=(), placeholder=JOBS_PLACEHOLDER)
    return JobsTableView(rows=tuple(build_job_row(job, apps) for job in jobs))


def build_apps_list(apps: Mapping[str, App]) -> AppsListView:
    if not apps:
        return AppsListView(cards=(), placeholder=APPS_PLACEHOLDER)
    cards = tuple(
        AppCardView(
            app_id=app.id,
            name=app.name,
            webapp_path=app.webapp_path,
            actions=(
                ActionView("edit", "Edit"),
                ActionView("delete", "Delete", color="negative"),
            ),
        )
        for app in apps.values()
    )
    return AppsListView(cards=cards)


def build_job_select(jobs: Iterable[Job], previous: Optional[str]) -> JobSelectView:
    """Options for the logs dropdown, keeping ``previous`` only if it still exists."""
    options = tuple((job.id, job.name) for job in jobs)
    known = {job_id for job_id, _ in options}
    return JobSelectView(options=options, selected=previous if previous in known else None)


def build_app_options(apps: Mapping[str, App]) -> Dict[str, str]:
    return {app.id: app.name for app in apps.values()}


def running_count(jobs: Iterable[Job], explicit: Optional[int] = None) -> int:
    if explicit is not None:
        return explicit
    return sum(1 for job in jobs if job.is_running)


def render_log_text(job_id: Optional[str], logs: Optional[str]) -> str:
    if not job_id:
        return LOGS_PLACEHOLDER
    return logs or LOGS_EMPTY


def format_config_file(status: Optional[StatusSnapshot]) -> str:
    if status is None or not status.config_file:
        return "Config: —"
    return f"Config: {status.config_file}"


def format_status_summary(status: Optional[StatusSnapshot]) -> str:
    if status is None:
        return ""
    pieces = []
    if status.total_jobs is not None:
        pieces.append(f"{status.total_jobs} job(s)")
    if status.stopped:
        pieces.append(f"{status.stopped} stopped")
    if status.error:
        pieces.append(f"{status.error} in error")
    if status.total_apps is not None:
        pieces.append(f"{status.total_apps} app(s)")
    if status.java_version:
        pieces.append(f"Java {status.java_version}")
    return " • ".join(pieces)
