from __future__ import annotations

import pytest

from jobrunner_console.ui.models import App, Job
from jobrunner_console.ui.store import TOPIC_APPS, TOPIC_JOBS, EntityStore


def test_set_jobs_replaces_wholesale_and_notifies() -> None:
    store = EntityStore()
    calls: list[str] = []
    store.subscribe(TOPIC_JOBS, lambda: calls.append("jobs"))

    assert not store.jobs_loaded
    store.set_jobs([Job(id="a", name="A"), Job(id="b", name="B", status="running")])
    store.set_jobs([Job(id="c", name="C")])

    assert calls == ["jobs", "jobs"]
    assert [job.id for job in store.jobs] == ["c"]
    assert store.jobs_loaded
    assert store.get_job("a") is None
    assert store.running_count() == 0


def test_apps_are_keyed_by_id_and_read_only() -> None:
    store = EntityStore()
    store.set_apps([App(id="batch", name="Batch")])
    assert store.get_app("batch").name == "Batch"
    with pytest.raises(TypeError):
        store.apps["other"] = App(id="other", name="Other")  # type: ignore[index]


def test_unsubscribe_stops_notifications() -> None:
    store = EntityStore()
    calls: list[str] = []
    unsubscribe = store.subscribe(TOPIC_APPS, lambda: calls.append("apps"))
    store.set_apps([])
    unsubscribe()
    unsubscribe()
    store.set_apps([])
    assert calls == ["apps"]


def test_unknown_topic_is_rejected() -> None:
    with pytest.raises(ValueError):
        EntityStore().subscribe("nope", lambda: None)
