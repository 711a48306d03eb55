from __future__ import annotations

from jobrunner_console.ui import views
from jobrunner_console.ui.models import App, Job, StatusSnapshot

APPS = {"batch": App(id="batch", name="Batch Jobs", webapp_path="/opt/batch")}


def _jobs() -> list[Job]:
    return [
        Job(
            id="etl-01",
            name="Nightly ETL",
            app="batch",
            status="running",
            pid=4242,
            start_time=1700000000000,
        ),
        Job(id="legacy-sync", name="Legacy Sync", app="gone", enabled=False),
    ]


def test_rendering_twice_yields_equal_trees() -> None:
    assert views.build_jobs_table(_jobs(), APPS) == views.build_jobs_table(_jobs(), APPS)
    assert views.build_apps_list(APPS) == views.build_apps_list(APPS)


def test_empty_collections_render_placeholders() -> None:
    table = views.build_jobs_table([], APPS)
    assert table.rows == ()
    assert table.placeholder == views.JOBS_PLACEHOLDER
    assert views.build_apps_list({}).placeholder == views.APPS_PLACEHOLDER


def test_running_row_shows_pid_since_and_stop_action() -> None:
    row = views.build_jobs_table(_jobs(), APPS).rows[0]
    assert row.status_text == "running (PID: 4242)"
    assert row.since == "Since 2023-11-14 22:13:20 UTC"
    assert row.app_badges == ("Batch Jobs",)
    assert [action.name for action in row.actions] == [
        "stop",
        "restart",
        "logs",
        "edit",
        "delete",
    ]


def test_disabled_job_has_disabled_start() -> None:
    row = views.build_jobs_table(_jobs(), APPS).rows[1]
    start = row.actions[0]
    assert start.name == "start"
    assert start.disabled
    assert row.since is None
    assert row.app_badges == ("gone",)


def test_job_select_preserves_existing_selection() -> None:
    select = views.build_job_select(_jobs(), "etl-01")
    assert select.selected == "etl-01"
    assert select.as_dict() == {"etl-01": "Nightly ETL", "legacy-sync": "Legacy Sync"}


def test_job_select_falls_back_when_selection_disappears() -> None:
    select = views.build_job_select(_jobs()[1:], "etl-01")
    assert select.selected is None


def test_running_count_prefers_explicit_value_and_counts_otherwise() -> None:
    assert views.running_count(_jobs()) == 1
    assert views.running_count([], explicit=5) == 5


def test_log_text_placeholders() -> None:
    assert views.render_log_text(None, "ignored") == views.LOGS_PLACEHOLDER
    assert views.render_log_text("etl-01", "") == views.LOGS_EMPTY
    assert views.render_log_text("etl-01", "x\n") == "x\n"


def test_status_header_text() -> None:
    status = StatusSnapshot(config_file="/etc/jr.yaml", running=1, total_jobs=3, java_version="17")
    assert views.format_config_file(status) == "Config: /etc/jr.yaml"
    assert views.format_status_summary(status) == "3 job(s) • Java 17"
    assert views.format_status_summary(None) == ""


def test_status_summary_includes_stopped_count() -> None:
    status = StatusSnapshot(running=1, total_jobs=3, stopped=2, error=0)
    assert views.format_status_summary(status) == "3 job(s) • 2 stopped"
