from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Callable, Dict, List, Tuple

import httpx
from nicegui import ui
from nicegui.testing import User

from jobrunner_console.ui import views
from jobrunner_console.ui.app import MODAL_APP, _build_console
from jobrunner_console.ui.client import JobRunnerAPIClient
from jobrunner_console.ui.navigation import TAB_LOGS, TAB_SETTINGS
from jobrunner_console.ui.settings import UISettings
from tests.fixtures import stub_api

SETTINGS = UISettings(
    api_base_url=stub_api.STUB_BASE_URL,
    ui_bind_host="127.0.0.1",
    ui_bind_port=8090,
    api_timeout_seconds=1.0,
    log_poll_interval_seconds=0.05,
)
SLOW_POLL_SETTINGS = replace(SETTINGS, log_poll_interval_seconds=60.0)


async def _wait_for(condition: Callable[[], bool], attempts: int = 100) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0.02)
    raise AssertionError("condition was not reached in time")


def _log_gets(state: stub_api.StubState) -> List[str]:
    return [
        path
        for method, path in state.requests
        if method == "GET" and path.endswith("/logs")
    ]


async def _open_console(
    user: User, settings: UISettings = SETTINGS
) -> Tuple[Dict[str, Any], stub_api.StubState]:
    stub = stub_api.create_stub_app()
    test_context: Dict[str, Any] = {}

    @ui.page("/")
    def index() -> None:
        client = JobRunnerAPIClient(
            stub_api.STUB_BASE_URL, transport=httpx.ASGITransport(app=stub)
        )
        _build_console(settings, client, test_context)

    await user.open("/")
    hooks = test_context["console"]
    store = hooks["session"].store
    await _wait_for(lambda: store.jobs_loaded and bool(store.global_config.java_home))
    await user.should_see("Nightly ETL")
    state = stub.state.stub
    state.requests.clear()
    return hooks, state


async def test_logs_action_fetches_logs_exactly_once(user: User) -> None:
    hooks, state = await _open_console(user)
    session = hooks["session"]

    await hooks["on_job_action"]("logs", stub_api.RUNNING_JOB_ID)
    await asyncio.sleep(0.2)

    assert _log_gets(state) == [f"/api/jobs/{stub_api.RUNNING_JOB_ID}/logs"]
    assert session.tabs.active == TAB_LOGS
    assert hooks["log_select"].value == stub_api.RUNNING_JOB_ID
    assert hooks["log_output"].value == stub_api.ETL_LOG_TEXT
    assert not session.poller.active


async def test_choosing_a_job_in_the_select_fetches_once(user: User) -> None:
    hooks, state = await _open_console(user)
    await hooks["on_job_action"]("logs", stub_api.RUNNING_JOB_ID)
    state.requests.clear()

    with user:
        hooks["log_select"].set_value(stub_api.ARGS_JOB_ID)
    await _wait_for(lambda: bool(_log_gets(state)))
    await asyncio.sleep(0.2)

    assert _log_gets(state) == [f"/api/jobs/{stub_api.ARGS_JOB_ID}/logs"]
    assert hooks["session"].selected_log_job == stub_api.ARGS_JOB_ID
    assert hooks["log_output"].value == views.LOGS_EMPTY


async def test_deleting_selected_job_falls_back_to_placeholder(user: User) -> None:
    hooks, state = await _open_console(user, SLOW_POLL_SETTINGS)
    session = hooks["session"]
    await hooks["on_job_action"]("logs", stub_api.ARGS_JOB_ID)
    with user:
        hooks["auto_refresh_checkbox"].set_value(True)
    assert session.poller.active

    deletion = asyncio.create_task(session.dispatcher.delete_job(stub_api.ARGS_JOB_ID))
    await user.should_see("Confirm")
    user.find(kind=ui.button, content="Confirm").click()
    assert await deletion
    state.requests.clear()
    await asyncio.sleep(0.2)

    assert stub_api.ARGS_JOB_ID not in state.jobs
    assert hooks["log_select"].value is None
    assert session.selected_log_job is None
    assert not session.poller.active
    assert hooks["log_output"].value == views.LOGS_PLACEHOLDER
    assert _log_gets(state) == []


async def test_switching_to_settings_unchecks_auto_refresh(user: User) -> None:
    hooks, state = await _open_console(user)
    session = hooks["session"]
    checkbox = hooks["auto_refresh_checkbox"]
    await hooks["on_job_action"]("logs", stub_api.RUNNING_JOB_ID)

    with user:
        checkbox.set_value(True)
    assert session.tabs.auto_refresh
    await _wait_for(lambda: len(_log_gets(state)) >= 2)

    session.tabs.show(TAB_SETTINGS)
    await asyncio.sleep(0.1)
    state.requests.clear()
    await asyncio.sleep(0.2)

    assert checkbox.value is False
    assert not session.tabs.auto_refresh
    assert not session.poller.active
    assert _log_gets(state) == []


async def test_opening_a_dialog_dismisses_the_open_one(user: User) -> None:
    hooks, _ = await _open_console(user)
    modals = hooks["session"].modals

    await hooks["on_job_action"]("edit", stub_api.RUNNING_JOB_ID)
    await hooks["on_app_action"]("edit", "batch")

    assert modals.open_modals() == (MODAL_APP,)
