from __future__ import annotations

import asyncio
from typing import List, Tuple

import httpx

from jobrunner_console.ui.client import JobRunnerAPIClient
from jobrunner_console.ui.commands import (
    KIND_ERROR,
    KIND_INFO,
    KIND_SUCCESS,
    CommandDispatcher,
)
from jobrunner_console.ui.models import App, GlobalConfig, JobDraft
from jobrunner_console.ui.store import EntityStore
from jobrunner_console.ui import views
from tests.fixtures import stub_api


class Harness:
    def __init__(self, confirm_answer: bool = True) -> None:
        stub = stub_api.create_stub_app()
        self.state = stub.state.stub
        self.client = JobRunnerAPIClient(
            stub_api.STUB_BASE_URL, transport=httpx.ASGITransport(app=stub)
        )
        self.store = EntityStore()
        self.toasts: List[Tuple[str, str]] = []
        self.prompts: List[str] = []
        self.log_texts: List[str] = []
        self.confirm_answer = confirm_answer
        self.dispatcher = CommandDispatcher(
            self.client,
            self.store,
            notify=lambda message, kind: self.toasts.append((kind, message)),
            confirm=self._confirm,
            on_logs=self.log_texts.append,
        )

    async def _confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.confirm_answer

    def run(self, coro):
        return asyncio.run(coro)

    def paths(self, method: str) -> List[str]:
        return [path for seen_method, path in self.state.requests if seen_method == method]

    def loaded(self) -> "Harness":
        self.run(self.dispatcher.load_all())
        self.state.requests.clear()
        return self


def test_load_all_fills_every_part_of_the_store() -> None:
    harness = Harness().loaded()
    store = harness.store
    assert {job.id for job in store.jobs} == {"etl-01", "report-gen", "legacy-sync"}
    assert set(store.apps) == {"batch", "legacy"}
    assert store.global_config.java_home == "/usr/lib/jvm/java-17"
    assert store.status.config_file == stub_api.CONFIG_FILE
    assert harness.toasts == []


def test_stop_all_cancelled_sends_no_request() -> None:
    harness = Harness(confirm_answer=False).loaded()
    assert harness.run(harness.dispatcher.stop_all()) is False
    assert harness.prompts
    assert "/api/jobs/stop-all" not in harness.paths("POST")
    assert harness.store.running_count() == 1


def test_stop_all_confirmed_stops_and_refreshes() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.stop_all())
    assert (KIND_SUCCESS, "All jobs stopped") in harness.toasts
    assert harness.store.running_count() == 0


def test_start_disabled_job_is_never_dispatched() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.start_job(stub_api.DISABLED_JOB_ID)) is False
    assert harness.state.requests == []
    assert harness.toasts == [(KIND_INFO, "Job Legacy Sync is disabled")]


def test_start_job_with_args_refreshes_running_count() -> None:
    harness = Harness().loaded()
    assert harness.run(
        harness.dispatcher.start_job(stub_api.ARGS_JOB_ID, ["--day", "1"])
    )
    assert harness.state.start_args[stub_api.ARGS_JOB_ID] == ["--day", "1"]
    assert harness.store.running_count() == 2
    assert views.running_count(harness.store.jobs) == 2
    assert harness.toasts[-1] == (KIND_SUCCESS, "Job started: report-gen (PID: 5000)")


def test_failed_start_still_refetches_jobs() -> None:
    harness = Harness().loaded()
    harness.state.fail_on_start.add(stub_api.ARGS_JOB_ID)
    assert harness.run(harness.dispatcher.start_job(stub_api.ARGS_JOB_ID)) is False
    assert harness.toasts == [
        (KIND_ERROR, f"Failed to start job: Failed to launch {stub_api.ARGS_JOB_ID}")
    ]
    assert "/api/jobs" in harness.paths("GET")


def test_stop_and_restart_running_job() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.restart_job(stub_api.RUNNING_JOB_ID))
    assert harness.store.get_job(stub_api.RUNNING_JOB_ID).pid != 4242
    assert harness.run(harness.dispatcher.stop_job(stub_api.RUNNING_JOB_ID))
    assert not harness.store.get_job(stub_api.RUNNING_JOB_ID).is_running


def test_start_all_lists_failures() -> None:
    harness = Harness().loaded()
    harness.state.fail_on_start.add(stub_api.ARGS_JOB_ID)
    assert harness.run(harness.dispatcher.start_all()) is False
    assert (KIND_ERROR, f"Failed to start: {stub_api.ARGS_JOB_ID}") in harness.toasts


def test_start_all_with_nothing_to_start() -> None:
    harness = Harness().loaded()
    harness.run(harness.dispatcher.start_job(stub_api.ARGS_JOB_ID))
    harness.toasts.clear()
    harness.run(harness.dispatcher.start_all())
    assert harness.toasts == [(KIND_INFO, "No jobs to start")]


def test_save_job_requires_name_and_main_class() -> None:
    harness = Harness().loaded()
    draft = JobDraft(name=" ", app="batch", main_class="a.B")
    assert harness.run(harness.dispatcher.save_job(draft)) is False
    assert harness.state.requests == []
    assert harness.toasts == [(KIND_ERROR, "Failed to save job: Name is required")]


def test_create_job_with_blank_main_class_sends_nothing() -> None:
    harness = Harness().loaded()
    draft = JobDraft(name="Nightly ETL Job", app="batch", main_class="   ")
    assert harness.run(harness.dispatcher.save_job(draft)) is False
    assert harness.state.requests == []
    assert harness.toasts == [(KIND_ERROR, "Failed to save job: Main class is required")]
    assert harness.store.get_job("nightly-etl-job") is None


def test_restart_toast_reports_new_pid() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.restart_job(stub_api.RUNNING_JOB_ID))
    assert harness.toasts == [(KIND_SUCCESS, "Job restarted: etl-01 (PID: 5000)")]


def test_save_job_create_then_update() -> None:
    harness = Harness().loaded()
    draft = JobDraft(name="Nightly ETL Job", app="batch", main_class="com.example.Etl")
    assert harness.run(harness.dispatcher.save_job(draft))
    assert harness.store.get_job("nightly-etl-job") is not None

    edit = JobDraft(
        name="Nightly ETL Job",
        app="legacy",
        main_class="com.example.Etl",
        enabled=False,
        job_id="nightly-etl-job",
    )
    assert harness.run(harness.dispatcher.save_job(edit))
    job = harness.store.get_job("nightly-etl-job")
    assert job.app == "legacy"
    assert not job.enabled
    assert [kind for kind, _ in harness.toasts] == [KIND_SUCCESS, KIND_SUCCESS]


def test_delete_job_after_confirm() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.delete_job(stub_api.ARGS_JOB_ID))
    assert harness.store.get_job(stub_api.ARGS_JOB_ID) is None


def test_app_save_then_delete_restores_apps_view() -> None:
    harness = Harness().loaded()
    before = views.build_apps_list(harness.store.apps)

    app = App(id="reports", name="Reports", webapp_path="/opt/reports")
    assert harness.run(harness.dispatcher.save_app(app))
    assert "reports" in harness.store.apps
    assert harness.run(harness.dispatcher.delete_app("reports"))

    assert views.build_apps_list(harness.store.apps) == before


def test_edit_app_keeps_original_id() -> None:
    harness = Harness().loaded()
    edited = App(id="renamed", name="Batch Renamed", webapp_path="/opt/b2")
    assert harness.run(harness.dispatcher.save_app(edited, existing_id="batch"))
    assert "renamed" not in harness.store.apps
    assert harness.store.get_app("batch").name == "Batch Renamed"
    assert ("PUT", "/api/apps/batch") in harness.state.requests


def test_duplicate_app_reports_service_message() -> None:
    harness = Harness().loaded()
    assert harness.run(harness.dispatcher.save_app(App(id="batch", name="Again"))) is False
    assert harness.toasts == [
        (KIND_ERROR, "Failed to save application: Application already exists: batch")
    ]


def test_logs_load_and_clear() -> None:
    harness = Harness().loaded()
    text = harness.run(harness.dispatcher.load_logs(stub_api.RUNNING_JOB_ID))
    assert text == stub_api.ETL_LOG_TEXT
    assert harness.run(harness.dispatcher.clear_logs(stub_api.RUNNING_JOB_ID))
    assert harness.log_texts[-1] == views.LOGS_EMPTY


def test_log_failure_is_shown_inline_without_toast() -> None:
    harness = Harness().loaded()
    text = harness.run(harness.dispatcher.load_logs("missing"))
    assert text == "Failed to load logs: Job not found: missing"
    assert harness.toasts == []


def test_save_global_config_and_reload_refetch_everything() -> None:
    harness = Harness().loaded()
    config = GlobalConfig(java_home="/jdk21", java_opts="", config_dir="/etc/jr", logs_dir="/logs")
    assert harness.run(harness.dispatcher.save_global_config(config))
    assert harness.store.global_config == config

    harness.state.requests.clear()
    assert harness.run(harness.dispatcher.reload_config())
    gets = harness.paths("GET")
    for path in ("/api/jobs", "/api/apps", "/api/config", "/api/status"):
        assert path in gets
    assert (KIND_SUCCESS, "Configuration reloaded") in harness.toasts


def test_unreachable_service_degrades_to_toasts() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    store = EntityStore()
    toasts: List[Tuple[str, str]] = []

    async def confirm(_: str) -> bool:
        return True

    dispatcher = CommandDispatcher(
        JobRunnerAPIClient("http://down/api", transport=httpx.MockTransport(handler)),
        store,
        notify=lambda message, kind: toasts.append((kind, message)),
        confirm=confirm,
    )
    asyncio.run(dispatcher.load_all())

    assert store.jobs == ()
    assert not store.jobs_loaded
    assert store.status is None
    assert [kind for kind, _ in toasts] == [KIND_ERROR, KIND_ERROR, KIND_ERROR]
