"""Operator commands: call the service, then re-fetch what they changed."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Sequence

from jobrunner_console.ui.client import (
    ConsoleError,
    JobRunnerAPIClient,
    ValidationError,
)
from jobrunner_console.ui.models import App, GlobalConfig, JobDraft
from jobrunner_console.ui.store import EntityStore
from jobrunner_console.ui.views import render_log_text

logger = logging.getLogger(__name__)

KIND_SUCCESS = "success"
KIND_ERROR = "error"
KIND_INFO = "info"

Notifier = Callable[[str, str], None]
Confirmer = Callable[[str], Awaitable[bool]]
LogSink = Callable[[str], None]

STOP_ALL_PROMPT = "Are you sure you want to stop all running jobs?"
DELETE_JOB_PROMPT = "Are you sure you want to delete this job?"
DELETE_APP_PROMPT = "Are you sure you want to delete this application?"


def _validate_job(draft: JobDraft) -> None:
    if not draft.name.strip():
        raise ValidationError("Name is required")
    if not draft.main_class.strip():
        raise ValidationError("Main class is required")
    if not draft.is_new and not draft.job_id:
        raise ValidationError("Job id is required")


def _with_pid(message: str, pid: Optional[int]) -> str:
    if pid is None:
        return message
    return f"{message} (PID: {pid})"


def _validate_app(app: App) -> None:
    if not app.id.strip():
        raise ValidationError("Application id is required")


class CommandDispatcher:
    """Runs every operator action against the service and resynchronizes the store.

    Failures never escape: they are logged and turned into an ``error``
    notification, and the store keeps whatever it held before the command.
    Each command returns ``True`` when the service accepted it.
    """

    def __init__(
        self,
        client: JobRunnerAPIClient,
        store: EntityStore,
        notify: Notifier,
        confirm: Confirmer,
        log_lines: int = 200,
        on_logs: Optional[LogSink] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._notify = notify
        self._confirm = confirm
        self.log_lines = log_lines
        self.on_logs = on_logs

    def _fail(self, action: str, exc: Exception) -> None:
        logger.warning("Failed to %s: %s", action, exc)
        self._notify(f"Failed to {action}: {exc}", KIND_ERROR)

    # Loading ------------------------------------------------------------------------

    async def load_status(self) -> bool:
        try:
            status = await self._client.get_status()
        except ConsoleError as exc:
            logger.warning("Failed to load status: %s", exc)
            return False
        self._store.set_status(status)
        return True

    async def load_jobs(self) -> bool:
        try:
            jobs = await self._client.list_jobs()
        except ConsoleError as exc:
            self._fail("load jobs", exc)
            return False
        self._store.set_jobs(jobs)
        return True

    async def load_apps(self) -> bool:
        try:
            apps = await self._client.list_apps()
        except ConsoleError as exc:
            self._fail("load apps", exc)
            return False
        self._store.set_apps(apps)
        return True

    async def load_global_config(self) -> bool:
        try:
            config = await self._client.get_config()
        except ConsoleError as exc:
            self._fail("load config", exc)
            return False
        self._store.set_global_config(config)
        return True

    async def load_all(self) -> None:
        """Initial fetch sequence; each part degrades on its own."""
        await self.load_status()
        await self.load_jobs()
        await self.load_apps()
        await self.load_global_config()

    async def refresh(self) -> bool:
        loaded = await self.load_jobs()
        await self.load_status()
        return loaded

    # Job lifecycle ------------------------------------------------------------------

    async def start_job(self, job_id: str, args: Sequence[str] | None = None) -> bool:
        job = self._store.get_job(job_id)
        if job is None:
            self._notify(f"Unknown job: {job_id}", KIND_ERROR)
            return False
        if not job.enabled:
            self._notify(f"Job {job.name} is disabled", KIND_INFO)
            return False
        accepted = False
        try:
            result = await self._client.start_job(job_id, args)
        except ConsoleError as exc:
            self._fail("start job", exc)
        else:
            accepted = result.success
            message = _with_pid(result.message or f"Started {job.name}", result.pid)
            self._notify(message, KIND_SUCCESS if accepted else KIND_ERROR)
        await self.load_jobs()
        return accepted

    async def stop_job(self, job_id: str) -> bool:
        job = self._store.get_job(job_id)
        if job is None:
            self._notify(f"Unknown job: {job_id}", KIND_ERROR)
            return False
        accepted = False
        try:
            result = await self._client.stop_job(job_id)
        except ConsoleError as exc:
            self._fail("stop job", exc)
        else:
            accepted = result.success
            message = result.message or f"Stopped {job.name}"
            self._notify(message, KIND_SUCCESS if accepted else KIND_ERROR)
        await self.load_jobs()
        return accepted

    async def restart_job(self, job_id: str) -> bool:
        job = self._store.get_job(job_id)
        if job is None:
            self._notify(f"Unknown job: {job_id}", KIND_ERROR)
            return False
        if not job.enabled:
            self._notify(f"Job {job.name} is disabled", KIND_INFO)
            return False
        accepted = False
        try:
            result = await self._client.restart_job(job_id)
        except ConsoleError as exc:
            self._fail("restart job", exc)
        else:
            accepted = result.success
            message = _with_pid(result.message or f"Restarted {job.name}", result.pid)
            self._notify(message, KIND_SUCCESS if accepted else KIND_ERROR)
        await self.load_jobs()
        return accepted

    async def start_all(self) -> bool:
        try:
            result = await self._client.start_all()
        except ConsoleError as exc:
            self._fail("start jobs", exc)
            return False
        if result.started:
            self._notify(f"Started {len(result.started)} jobs", KIND_SUCCESS)
        if result.failed:
            self._notify("Failed to start: " + ", ".join(result.failed), KIND_ERROR)
        if not result.started and not result.failed:
            self._notify("No jobs to start", KIND_INFO)
        await self.load_jobs()
        return not result.failed

    async def stop_all(self) -> bool:
        if not await self._confirm(STOP_ALL_PROMPT):
            return False
        try:
            await self._client.stop_all()
        except ConsoleError as exc:
            self._fail("stop jobs", exc)
            return False
        self._notify("All jobs stopped", KIND_SUCCESS)
        await self.load_jobs()
        return True

    # Job definitions ----------------------------------------------------------------

    async def save_job(self, draft: JobDraft) -> bool:
        try:
            _validate_job(draft)
            payload = draft.to_payload()
            if draft.is_new:
                await self._client.create_job(payload)
                message = "Job created successfully"
            else:
                await self._client.update_job(draft.job_id or "", payload)
                message = "Job updated successfully"
        except ConsoleError as exc:
            self._fail("save job", exc)
            return False
        self._notify(message, KIND_SUCCESS)
        await self.load_jobs()
        return True

    async def delete_job(self, job_id: str) -> bool:
        if not await self._confirm(DELETE_JOB_PROMPT):
            return False
        try:
            await self._client.delete_job(job_id)
        except ConsoleError as exc:
            self._fail("delete job", exc)
            return False
        self._notify("Job deleted", KIND_SUCCESS)
        await self.load_jobs()
        return True

    # Logs ---------------------------------------------------------------------------

    async def load_logs(self, job_id: Optional[str]) -> str:
        """Fetch the tail of a job's log and hand the full text to ``on_logs``."""
        if not job_id:
            text = render_log_text(None, None)
        else:
            try:
                logs = await self._client.get_job_logs(job_id, self.log_lines)
            except ConsoleError as exc:
                logger.warning("Failed to load logs for %s: %s", job_id, exc)
                text = f"Failed to load logs: {exc}"
            else:
                text = render_log_text(job_id, logs)
        if self.on_logs is not None:
            self.on_logs(text)
        return text

    async def clear_logs(self, job_id: Optional[str]) -> bool:
        if not job_id:
            return False
        try:
            await self._client.clear_job_logs(job_id)
        except ConsoleError as exc:
            self._fail("clear logs", exc)
            return False
        self._notify("Logs cleared", KIND_SUCCESS)
        await self.load_logs(job_id)
        return True

    # Apps ---------------------------------------------------------------------------

    async def save_app(self, app: App, existing_id: Optional[str] = None) -> bool:
        if existing_id:
            app = replace(app, id=existing_id)
        try:
            _validate_app(app)
            if existing_id:
                await self._client.update_app(existing_id, app)
                message = "Application updated"
            else:
                await self._client.create_app(replace(app, id=app.id.strip()))
                message = "Application added"
        except ConsoleError as exc:
            self._fail("save application", exc)
            return False
        self._notify(message, KIND_SUCCESS)
        await self.load_apps()
        return True

    async def delete_app(self, app_id: str) -> bool:
        if not await self._confirm(DELETE_APP_PROMPT):
            return False
        try:
            await self._client.delete_app(app_id)
        except ConsoleError as exc:
            self._fail("delete application", exc)
            return False
        self._notify("Application deleted", KIND_SUCCESS)
        await self.load_apps()
        return True

    # Settings -----------------------------------------------------------------------

    async def save_global_config(self, config: GlobalConfig) -> bool:
        try:
            await self._client.update_global_config(config)
        except ConsoleError as exc:
            self._fail("save settings", exc)
            return False
        self._notify("Global settings saved", KIND_SUCCESS)
        await self.load_global_config()
        return True

    async def reload_config(self) -> bool:
        try:
            await self._client.reload_config()
        except ConsoleError as exc:
            self._fail("reload config", exc)
            return False
        self._notify("Configuration reloaded", KIND_SUCCESS)
        await self.load_jobs()
        await self.load_apps()
        await self.load_global_config()
        await self.load_status()
        return True
