"""Per-session cache of jobs, apps and global config.

Every write replaces a whole entity set; there are no partial edits. Listeners
subscribed to a topic run after each replacement of that topic.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from jobrunner_console.ui.models import App, GlobalConfig, Job, StatusSnapshot

logger = logging.getLogger(__name__)

TOPIC_JOBS = "jobs"
TOPIC_APPS = "apps"
TOPIC_CONFIG = "config"
TOPIC_STATUS = "status"
TOPICS = (TOPIC_JOBS, TOPIC_APPS, TOPIC_CONFIG, TOPIC_STATUS)

Listener = Callable[[], None]


class EntityStore:
    def __init__(self) -> None:
        self._jobs: Tuple[Job, ...] = ()
        self._apps: Mapping[str, App] = MappingProxyType({})
        self._global_config = GlobalConfig()
        self._status: Optional[StatusSnapshot] = None
        self._jobs_loaded = False
        self._listeners: Dict[str, List[Listener]] = {topic: [] for topic in TOPICS}

    @property
    def jobs(self) -> Tuple[Job, ...]:
        return self._jobs

    @property
    def jobs_loaded(self) -> bool:
        return self._jobs_loaded

    @property
    def apps(self) -> Mapping[str, App]:
        return self._apps

    @property
    def global_config(self) -> GlobalConfig:
        return self._global_config

    @property
    def status(self) -> Optional[StatusSnapshot]:
        return self._status

    def get_job(self, job_id: str) -> Optional[Job]:
        for job in self._jobs:
            if job.id == job_id:
                return job
        return None

    def get_app(self, app_id: str) -> Optional[App]:
        return self._apps.get(app_id)

    def running_count(self) -> int:
        return sum(1 for job in self._jobs if job.is_running)

    def set_jobs(self, jobs: Iterable[Job]) -> None:
        self._jobs = tuple(jobs)
        self._jobs_loaded = True
        self._notify(TOPIC_JOBS)

    def set_apps(self, apps: Iterable[App]) -> None:
        self._apps = MappingProxyType({app.id: app for app in apps})
        self._notify(TOPIC_APPS)

    def set_global_config(self, config: GlobalConfig) -> None:
        self._global_config = config
        self._notify(TOPIC_CONFIG)

    def set_status(self, status: StatusSnapshot) -> None:
        self._status = status
        self._notify(TOPIC_STATUS)

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``topic``; the returned callable removes it."""
        if topic not in self._listeners:
            raise ValueError(f"unknown store topic: {topic!r}")
        listeners = self._listeners[topic]
        listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def _notify(self, topic: str) -> None:
        logger.debug("Store topic %s replaced", topic)
        for listener in list(self._listeners[topic]):
            listener()
