"""Log tailing timer with a single live handle."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from nicegui import ui

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0

TimerFactory = Callable[[float, Callable[[], Awaitable[None]]], Any]


def _nicegui_timer(interval: float, callback: Callable[[], Awaitable[None]]) -> Any:
    return ui.timer(interval, callback, immediate=False)


class LogPoller:
    """Re-fetches one job's logs every ``interval`` seconds while enabled.

    Every entry point releases the current timer before doing anything else,
    so at most one timer is ever live. Handles returned by ``timer_factory``
    only need a ``cancel()`` method.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Any]],
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._fetch = fetch
        self.interval = interval
        self._timer_factory = timer_factory or _nicegui_timer
        self._timer: Any = None
        self._job_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._timer is not None

    @property
    def job_id(self) -> Optional[str]:
        return self._job_id

    def enable(self, job_id: str) -> None:
        self._release()
        if not job_id:
            return
        self._job_id = job_id
        self._timer = self._timer_factory(self.interval, self._tick)
        logger.debug("Log polling armed for %s every %.1fs", job_id, self.interval)

    def disable(self) -> None:
        self._release()

    def switch_job(self, job_id: Optional[str], *, rearm: bool) -> None:
        self._release()
        if rearm and job_id:
            self.enable(job_id)

    def close(self) -> None:
        self._release()

    async def _tick(self) -> None:
        job_id = self._job_id
        if self._timer is None or not job_id:
            return
        await self._fetch(job_id)

    def _release(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            logger.debug("Log polling cancelled for %s", self._job_id)
        self._timer = None
        self._job_id = None
