"""Active-tab and modal visibility state for the console."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from jobrunner_console.ui.polling import LogPoller

logger = logging.getLogger(__name__)

TAB_JOBS = "jobs"
TAB_LOGS = "logs"
TAB_SETTINGS = "settings"
TABS = (TAB_JOBS, TAB_LOGS, TAB_SETTINGS)


class TabController:
    """Exactly one tab is active; leaving the logs tab turns auto-refresh off."""

    def __init__(
        self,
        poller: LogPoller,
        on_change: Optional[Callable[[str], None]] = None,
        on_auto_refresh_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._poller = poller
        self._on_change = on_change
        self._on_auto_refresh_change = on_auto_refresh_change
        self.active = TAB_JOBS
        self._auto_refresh = False

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    def show(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"unknown tab: {tab!r}")
        previous = self.active
        if tab != TAB_LOGS:
            self._turn_auto_refresh_off()
        self.active = tab
        if previous != tab:
            logger.debug("Tab %s -> %s", previous, tab)
            if self._on_change is not None:
                self._on_change(tab)

    def set_auto_refresh(self, enabled: bool, job_id: Optional[str]) -> bool:
        """Apply the auto-refresh checkbox; returns the effective state."""
        if not enabled or self.active != TAB_LOGS:
            self._turn_auto_refresh_off()
            return False
        self._auto_refresh = True
        if job_id:
            self._poller.enable(job_id)
        else:
            self._poller.disable()
        return True

    def select_job(self, job_id: Optional[str]) -> None:
        rearm = self._auto_refresh and self.active == TAB_LOGS
        self._poller.switch_job(job_id, rearm=rearm)

    def _turn_auto_refresh_off(self) -> None:
        self._poller.disable()
        was_on = self._auto_refresh
        self._auto_refresh = False
        if was_on and self._on_auto_refresh_change is not None:
            self._on_auto_refresh_change(False)


class ModalController:
    """Tracks which named dialogs are visible.

    Dialog objects only need ``open()`` and ``close()``. Dismissal by an
    outside click or Escape happens inside the dialog itself and is reported
    back through ``mark_closed``.
    """

    def __init__(self) -> None:
        self._dialogs: Dict[str, Any] = {}
        self._visible: Dict[str, bool] = {}

    def register(self, name: str, dialog: Any = None) -> None:
        self._dialogs[name] = dialog
        self._visible[name] = False

    def open(self, name: str) -> None:
        self._require(name)
        dialog = self._dialogs[name]
        if dialog is not None:
            dialog.open()
        self._visible[name] = True

    def close(self, name: str) -> None:
        self._require(name)
        dialog = self._dialogs[name]
        if dialog is not None:
            dialog.close()
        self._visible[name] = False

    def mark_closed(self, name: str) -> None:
        self._require(name)
        self._visible[name] = False

    def dismiss_all(self) -> None:
        for name in self.open_modals():
            self.close(name)

    def is_open(self, name: str) -> bool:
        return self._visible.get(name, False)

    def open_modals(self) -> Tuple[str, ...]:
        return tuple(name for name, visible in self._visible.items() if visible)

    def _require(self, name: str) -> None:
        if name not in self._dialogs:
            raise KeyError(f"unknown modal: {name!r}")
