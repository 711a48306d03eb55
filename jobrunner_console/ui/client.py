"""Async API client for the Job Runner REST service."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence
from urllib.parse import quote

import httpx

from jobrunner_console.ui.models import (
    App,
    CommandResult,
    GlobalConfig,
    Job,
    StartAllResult,
    StatusSnapshot,
)

logger = logging.getLogger(__name__)

GENERIC_API_ERROR = "API Error"
JSON_HEADERS = {"Content-Type": "application/json"}


class ConsoleError(Exception):
    """Base class for failures surfaced to the operator as a toast."""


class NetworkError(ConsoleError):
    """The request never reached the service or no response came back."""


class ApiError(ConsoleError):
    """The service answered with a non-success status."""

    def __init__(self, status_code: int, message: str = GENERIC_API_ERROR) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(ConsoleError):
    """A required form field is missing or malformed."""


def _segment(value: str) -> str:
    return quote(value, safe="")


def _decode_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class JobRunnerAPIClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        trimmed = base_url.rstrip("/")
        if not trimmed:
            raise ValueError("API base URL must not be empty")
        self.base_url = trimmed
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _httpx_client(self, timeout: httpx.Timeout) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"timeout": timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        """Send one JSON request and return the decoded response payload.

        Raises ``ApiError`` for non-2xx answers (carrying the service's
        ``message`` field when present) and ``NetworkError`` when no
        response was received at all.
        """
        url = f"{self.base_url}{endpoint}"
        timeout = httpx.Timeout(self.timeout_seconds)
        logger.debug("%s %s", method, url)
        try:
            async with self._httpx_client(timeout) as client:
                response = await client.request(
                    method,
                    url,
                    headers=JSON_HEADERS,
                    json=body,
                    params=params,
                )
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise NetworkError(str(exc) or type(exc).__name__) from exc

        payload = _decode_json(response)
        if not response.is_success:
            message = None
            if isinstance(payload, dict):
                message = payload.get("message")
            raise ApiError(response.status_code, str(message or GENERIC_API_ERROR))
        return payload

    # Status -------------------------------------------------------------------------

    async def get_status(self) -> StatusSnapshot:
        payload = await self.request("/status")
        if not isinstance(payload, dict):
            raise ApiError(200, "invalid status payload")
        return StatusSnapshot.from_payload(payload)

    # Jobs ---------------------------------------------------------------------------

    async def list_jobs(self) -> List[Job]:
        payload = await self.request("/jobs")
        if not isinstance(payload, list):
            raise ApiError(200, "invalid jobs payload")
        try:
            return [Job.from_payload(item) for item in payload]
        except (AttributeError, ValueError) as exc:
            raise ApiError(200, f"invalid jobs payload: {exc}") from exc

    async def get_job(self, job_id: str) -> Job:
        payload = await self.request(f"/jobs/{_segment(job_id)}")
        if not isinstance(payload, dict):
            raise ApiError(200, "invalid job payload")
        try:
            return Job.from_payload(payload)
        except ValueError as exc:
            raise ApiError(200, f"invalid job payload: {exc}") from exc

    async def create_job(self, body: Dict[str, Any]) -> Any:
        return await self.request("/jobs", "POST", body)

    async def update_job(self, job_id: str, body: Dict[str, Any]) -> Any:
        return await self.request(f"/jobs/{_segment(job_id)}", "PUT", body)

    async def delete_job(self, job_id: str) -> CommandResult:
        payload = await self.request(f"/jobs/{_segment(job_id)}", "DELETE")
        return CommandResult.from_payload(payload)

    async def start_job(
        self, job_id: str, args: Sequence[str] | None = None
    ) -> CommandResult:
        body = {"args": list(args)} if args else None
        payload = await self.request(f"/jobs/{_segment(job_id)}/start", "POST", body)
        return CommandResult.from_payload(payload)

    async def stop_job(self, job_id: str) -> CommandResult:
        payload = await self.request(f"/jobs/{_segment(job_id)}/stop", "POST")
        return CommandResult.from_payload(payload)

    async def restart_job(self, job_id: str) -> CommandResult:
        payload = await self.request(f"/jobs/{_segment(job_id)}/restart", "POST")
        return CommandResult.from_payload(payload)

    async def start_all(self) -> StartAllResult:
        payload = await self.request("/jobs/start-all", "POST")
        if not isinstance(payload, dict):
            raise ApiError(200, "invalid start-all payload")
        return StartAllResult.from_payload(payload)

    async def stop_all(self) -> CommandResult:
        payload = await self.request("/jobs/stop-all", "POST")
        return CommandResult.from_payload(payload)

    async def get_job_logs(self, job_id: str, lines: int = 200) -> str:
        payload = await self.request(
            f"/jobs/{_segment(job_id)}/logs", params={"lines": lines}
        )
        if not isinstance(payload, dict):
            raise ApiError(200, "invalid logs payload")
        return str(payload.get("logs") or "")

    async def clear_job_logs(self, job_id: str) -> CommandResult:
        payload = await self.request(f"/jobs/{_segment(job_id)}/logs/clear", "POST")
        return CommandResult.from_payload(payload)

    # Apps ---------------------------------------------------------------------------

    async def list_apps(self) -> List[App]:
        payload = await self.request("/apps")
        if not isinstance(payload, list):
            raise ApiError(200, "invalid apps payload")
        try:
            return [App.from_payload(item) for item in payload]
        except (AttributeError, ValueError) as exc:
            raise ApiError(200, f"invalid apps payload: {exc}") from exc

    async def create_app(self, app: App) -> Any:
        return await self.request("/apps", "POST", app.to_payload())

    async def update_app(self, app_id: str, app: App) -> Any:
        return await self.request(f"/apps/{_segment(app_id)}", "PUT", app.to_payload())

    async def delete_app(self, app_id: str) -> CommandResult:
        payload = await self.request(f"/apps/{_segment(app_id)}", "DELETE")
        return CommandResult.from_payload(payload)

    # Config -------------------------------------------------------------------------

    async def get_config(self) -> GlobalConfig:
        payload = await self.request("/config")
        if not isinstance(payload, dict):
            raise ApiError(200, "invalid config payload")
        return GlobalConfig.from_payload(payload.get("global"))

    async def update_global_config(self, config: GlobalConfig) -> Any:
        return await self.request("/config/global", "PUT", config.to_payload())

    async def reload_config(self) -> CommandResult:
        payload = await self.request("/config/reload", "POST")
        return CommandResult.from_payload(payload)
