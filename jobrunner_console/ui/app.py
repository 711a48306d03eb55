"""NiceGUI layout for the Job Runner console."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Optional

from nicegui import ui

from jobrunner_console.ui import views
from jobrunner_console.ui.client import JobRunnerAPIClient
from jobrunner_console.ui.commands import CommandDispatcher
from jobrunner_console.ui.models import (
    DEFAULT_JOB_TYPE,
    JOB_TYPES,
    App,
    GlobalConfig,
    JobDraft,
)
from jobrunner_console.ui.navigation import (
    TAB_JOBS,
    TAB_LOGS,
    TAB_SETTINGS,
    ModalController,
    TabController,
)
from jobrunner_console.ui.polling import LogPoller
from jobrunner_console.ui.settings import UISettings
from jobrunner_console.ui.store import (
    TOPIC_APPS,
    TOPIC_CONFIG,
    TOPIC_JOBS,
    TOPIC_STATUS,
    EntityStore,
)

logger = logging.getLogger(__name__)
_JR_UI_DEBUG_REFRESH = bool(os.getenv("JR_UI_DEBUG_REFRESH"))

_NOTIFY_TYPES: Dict[str, str] = {
    "success": "positive",
    "error": "negative",
    "info": "info",
}

_RUNNING_BADGE_ACTIVE = "bg-emerald-500 text-white"
_RUNNING_BADGE_IDLE = "bg-slate-400 text-white"

MODAL_JOB = "job"
MODAL_APP = "app"
MODAL_ARGS = "args"


def _schedule_async(factory: Callable[[], Coroutine[Any, Any, Any]]) -> None:
    """Enqueue a coroutine via a one-shot NiceGUI timer so the event loop is active."""
    ui.timer(0, lambda: asyncio.create_task(factory()), once=True)


def _set_text_if_changed(el: Any, value: str) -> None:
    """Set element text only when it changes to avoid flicker from refresh loops."""
    previous = getattr(el, "_jr_last_text", None)
    if previous == value:
        return
    if _JR_UI_DEBUG_REFRESH:
        logger.debug(
            "UI text update on %s: %r -> %r", type(el).__name__, previous, value
        )
    try:
        setattr(el, "_jr_last_text", value)
    except AttributeError:  # pragma: no cover - slotted test doubles
        pass
    if hasattr(el, "set_text"):
        el.set_text(value)
    elif hasattr(el, "text"):
        el.text = value


def _set_visibility_if_changed(el: Any, visible: bool) -> None:
    if getattr(el, "_jr_last_visible", None) == visible:
        return
    try:
        setattr(el, "_jr_last_visible", visible)
    except AttributeError:  # pragma: no cover - slotted test doubles
        pass
    if hasattr(el, "set_visibility"):
        el.set_visibility(visible)
    else:
        setattr(el, "visible", visible)


def _set_classes_if_changed(el: Any, classes: str) -> None:
    if getattr(el, "_jr_last_classes", None) == classes:
        return
    try:
        setattr(el, "_jr_last_classes", classes)
    except AttributeError:  # pragma: no cover - slotted test doubles
        pass
    el.classes(replace=classes)


def _button_props(action: views.ActionView) -> str:
    props = "flat dense no-caps"
    if action.color:
        props += f" color={action.color}"
    return props


def render_jobs_table(
    container: Any,
    table: views.JobsTableView,
    on_action: Callable[[str, str], Awaitable[None]],
) -> None:
    """Clear ``container`` and rebuild the jobs table from ``table``."""
    container.clear()
    with container:
        if table.placeholder:
            ui.label(table.placeholder).classes(
                "w-full text-center text-sm text-gray-500 py-10"
            )
            return
        with ui.grid(columns="2fr 1fr 1fr 1.5fr 2.5fr").classes(
            "w-full items-center gap-y-2"
        ):
            for heading in ("Name", "App", "Type", "Status", "Actions"):
                ui.label(heading).classes("text-xs font-semibold uppercase text-gray-500")
            for row in table.rows:
                with ui.column().classes("gap-0"):
                    ui.label(row.name).classes("font-semibold")
                    if row.description:
                        ui.label(row.description).classes("text-xs text-gray-500")
                with ui.row().classes("gap-1"):
                    for badge in row.app_badges:
                        ui.badge(badge).props("outline")
                ui.badge(row.type_badge).props("outline color=grey-8")
                with ui.column().classes("gap-0"):
                    ui.label(row.status_text).classes(row.status_classes)
                    if row.since:
                        ui.label(row.since).classes("text-xs text-gray-500")
                with ui.row().classes("gap-1"):
                    for action in row.actions:
                        button = ui.button(
                            action.label,
                            on_click=lambda _, a=action.name, j=row.job_id: on_action(a, j),
                        ).props(_button_props(action))
                        button.set_enabled(not action.disabled)


def render_apps_list(
    container: Any,
    apps_view: views.AppsListView,
    on_action: Callable[[str, str], Awaitable[None]],
) -> None:
    container.clear()
    with container:
        if apps_view.placeholder:
            ui.label(apps_view.placeholder).classes("text-sm text-gray-500")
            return
        for card in apps_view.cards:
            with ui.card().classes("w-full p-3"):
                with ui.row().classes("w-full items-center justify-between"):
                    with ui.column().classes("gap-0"):
                        with ui.row().classes("items-baseline gap-2"):
                            ui.label(card.name).classes("font-semibold")
                            ui.label(f"({card.app_id})").classes("text-xs text-gray-500")
                        ui.label(card.webapp_path).classes("text-xs font-mono text-gray-600")
                    with ui.row().classes("gap-1"):
                        for action in card.actions:
                            ui.button(
                                action.label,
                                on_click=lambda _, a=action.name, i=card.app_id: on_action(a, i),
                            ).props(_button_props(action))


@dataclass
class _ConsoleSession:
    settings: UISettings
    store: EntityStore
    dispatcher: CommandDispatcher
    poller: LogPoller
    tabs: TabController
    modals: ModalController
    unsubscribers: List[Callable[[], None]] = field(default_factory=list)
    selected_log_job: Optional[str] = None

    def close(self) -> None:
        self.poller.close()
        for unsubscribe in self.unsubscribers:
            unsubscribe()
        self.unsubscribers.clear()


def _build_console(
    settings: UISettings,
    client: JobRunnerAPIClient,
    test_context: Dict[str, Any] | None = None,
) -> _ConsoleSession:
    store = EntityStore()
    modals = ModalController()
    host = ui.element("div")

    def _notify(message: str, kind: str) -> None:
        with host:
            ui.notify(message, type=_NOTIFY_TYPES.get(kind, "info"))

    async def _confirm(message: str) -> bool:
        with host:
            with ui.dialog() as dialog, ui.card():
                ui.label(message).classes("font-semibold")
                with ui.row().classes("gap-2 mt-2"):
                    ui.button("Confirm", on_click=lambda: dialog.submit(True)).props(
                        "color=negative"
                    )
                    ui.button("Cancel", on_click=lambda: dialog.submit(False)).props(
                        "flat"
                    )
        try:
            result = await dialog
        finally:
            dialog.delete()
        return bool(result)

    def _make_timer(interval: float, callback: Callable[[], Awaitable[None]]) -> Any:
        with host:
            return ui.timer(interval, callback, immediate=False)

    dispatcher = CommandDispatcher(
        client,
        store,
        notify=_notify,
        confirm=_confirm,
        log_lines=settings.log_lines,
    )
    poller = LogPoller(
        dispatcher.load_logs,
        interval=settings.log_poll_interval_seconds,
        timer_factory=_make_timer,
    )

    auto_refresh_checkbox: Any = None
    tab_strip: Any = None

    def _on_tab_change(tab: str) -> None:
        if tab_strip is not None and tab_strip.value != tab:
            tab_strip.set_value(tab)

    def _on_auto_refresh_change(enabled: bool) -> None:
        if auto_refresh_checkbox is not None and auto_refresh_checkbox.value != enabled:
            auto_refresh_checkbox.set_value(enabled)

    tabs = TabController(
        poller,
        on_change=_on_tab_change,
        on_auto_refresh_change=_on_auto_refresh_change,
    )
    session = _ConsoleSession(
        settings=settings,
        store=store,
        dispatcher=dispatcher,
        poller=poller,
        tabs=tabs,
        modals=modals,
    )

    # Header ---------------------------------------------------------------------------

    with ui.header().classes("justify-between items-center px-6"):
        with ui.column().classes("gap-0"):
            ui.label("Job Runner").classes("text-lg font-semibold")
            config_file_label = ui.label(views.format_config_file(None)).classes(
                "text-xs opacity-80"
            )
        with ui.row().classes("items-center gap-3"):
            status_summary_label = ui.label("").classes("text-sm opacity-80")
            running_badge = ui.badge("0 running").props("color=transparent")
            ui.button(
                "Refresh", icon="refresh", on_click=lambda _: dispatcher.refresh()
            ).props("flat color=white")
            ui.button(
                icon="settings", on_click=lambda _: tabs.show(TAB_SETTINGS)
            ).props("flat round color=white")

    def _show_modal(name: str) -> None:
        # one dialog at a time
        modals.dismiss_all()
        modals.open(name)

    # Job dialog -----------------------------------------------------------------------

    editing_job_id: Dict[str, Optional[str]] = {"value": None}
    with ui.dialog() as job_dialog, ui.card().classes("w-full max-w-xl"):
        job_dialog_title = ui.label("Add Job").classes("text-lg font-semibold")
        job_name_input = ui.input("Name").classes("w-full")
        job_app_select = ui.select(options={}, label="Application").classes("w-full")
        job_main_class_input = ui.input("Main class").classes("w-full")
        job_type_select = ui.select(
            options=list(JOB_TYPES), value=DEFAULT_JOB_TYPE, label="Type"
        ).classes("w-full")
        job_description_input = ui.textarea("Description").classes("w-full")
        job_java_opts_input = ui.input("Job runtime options (optional)").classes("w-full")
        job_enabled_checkbox = ui.checkbox("Enabled", value=True)
        with ui.row().classes("justify-end w-full gap-2 mt-2"):
            ui.button("Cancel", on_click=lambda _: modals.close(MODAL_JOB)).props("flat")
            job_save_button = ui.button("Save").props("color=primary")
    job_dialog.on("hide", lambda _: modals.mark_closed(MODAL_JOB))
    modals.register(MODAL_JOB, job_dialog)

    def _open_job_dialog(job_id: Optional[str]) -> None:
        job = store.get_job(job_id) if job_id else None
        if job_id and job is None:
            return
        editing_job_id["value"] = job.id if job else None
        _set_text_if_changed(job_dialog_title, "Edit Job" if job else "Add Job")
        app_options = views.build_app_options(store.apps)
        if job and job.app and job.app not in app_options:
            app_options[job.app] = job.app
        job_app_select.set_options(app_options)
        job_name_input.set_value(job.name if job else "")
        job_main_class_input.set_value(job.main_class if job else "")
        job_type_select.set_value(job.type if job and job.type in JOB_TYPES else DEFAULT_JOB_TYPE)
        job_description_input.set_value((job.description or "") if job else "")
        job_java_opts_input.set_value((job.java_opts or "") if job else "")
        job_enabled_checkbox.set_value(job.enabled if job else True)
        app_value = job.app if job and job.app in app_options else None
        if app_value is None and not job and store.apps:
            app_value = next(iter(store.apps))
        job_app_select.set_value(app_value)
        _show_modal(MODAL_JOB)

    async def _save_job() -> None:
        draft = JobDraft(
            name=job_name_input.value or "",
            app=job_app_select.value or "",
            main_class=job_main_class_input.value or "",
            type=job_type_select.value or DEFAULT_JOB_TYPE,
            description=job_description_input.value or "",
            enabled=bool(job_enabled_checkbox.value),
            java_opts=job_java_opts_input.value or "",
            job_id=editing_job_id["value"],
        )
        if await dispatcher.save_job(draft):
            modals.close(MODAL_JOB)

    job_save_button.on_click(_save_job)

    # App dialog -----------------------------------------------------------------------

    editing_app_id: Dict[str, Optional[str]] = {"value": None}
    with ui.dialog() as app_dialog, ui.card().classes("w-full max-w-xl"):
        app_dialog_title = ui.label("Add Application").classes("text-lg font-semibold")
        app_id_input = ui.input("Id").classes("w-full")
        app_name_input = ui.input("Display name").classes("w-full")
        app_path_input = ui.input("Webapp path").classes("w-full")
        with ui.row().classes("justify-end w-full gap-2 mt-2"):
            ui.button("Cancel", on_click=lambda _: modals.close(MODAL_APP)).props("flat")
            app_save_button = ui.button("Save").props("color=primary")
    app_dialog.on("hide", lambda _: modals.mark_closed(MODAL_APP))
    modals.register(MODAL_APP, app_dialog)

    def _open_app_dialog(app_id: Optional[str]) -> None:
        app = store.get_app(app_id) if app_id else None
        if app_id and app is None:
            return
        editing_app_id["value"] = app.id if app else None
        _set_text_if_changed(app_dialog_title, "Edit Application" if app else "Add Application")
        app_id_input.set_value(app.id if app else "")
        app_id_input.set_enabled(app is None)
        app_name_input.set_value(app.name if app else "")
        app_path_input.set_value(app.webapp_path if app else "")
        _show_modal(MODAL_APP)

    async def _save_app() -> None:
        app = App(
            id=app_id_input.value or "",
            name=app_name_input.value or "",
            webapp_path=app_path_input.value or "",
        )
        if await dispatcher.save_app(app, existing_id=editing_app_id["value"]):
            modals.close(MODAL_APP)

    app_save_button.on_click(_save_app)

    # Runtime args dialog --------------------------------------------------------------

    args_job_id: Dict[str, Optional[str]] = {"value": None}
    with ui.dialog() as args_dialog, ui.card().classes("w-full max-w-lg"):
        args_dialog_title = ui.label("Start job").classes("text-lg font-semibold")
        ui.label("Runtime arguments, separated by spaces.").classes("text-sm text-gray-500")
        args_input = ui.input("Arguments").classes("w-full")
        with ui.row().classes("justify-end w-full gap-2 mt-2"):
            ui.button("Cancel", on_click=lambda _: modals.close(MODAL_ARGS)).props("flat")
            args_start_button = ui.button("Start").props("color=positive")
    args_dialog.on("hide", lambda _: modals.mark_closed(MODAL_ARGS))
    modals.register(MODAL_ARGS, args_dialog)

    async def _start_with_args() -> None:
        job_id = args_job_id["value"]
        if not job_id:
            return
        modals.close(MODAL_ARGS)
        await dispatcher.start_job(job_id, (args_input.value or "").split())

    args_start_button.on_click(_start_with_args)

    # Action routing -------------------------------------------------------------------

    async def _view_job_logs(job_id: str) -> None:
        tabs.show(TAB_LOGS)
        _select_log_job(job_id)
        await dispatcher.load_logs(job_id)

    async def _on_job_action(action: str, job_id: str) -> None:
        if action == "start":
            job = store.get_job(job_id)
            if job is not None and job.enabled and job.args_required:
                args_job_id["value"] = job_id
                _set_text_if_changed(args_dialog_title, f"Start {job.name}")
                args_input.set_value("")
                _show_modal(MODAL_ARGS)
                return
            await dispatcher.start_job(job_id)
        elif action == "stop":
            await dispatcher.stop_job(job_id)
        elif action == "restart":
            await dispatcher.restart_job(job_id)
        elif action == "logs":
            await _view_job_logs(job_id)
        elif action == "edit":
            _open_job_dialog(job_id)
        elif action == "delete":
            await dispatcher.delete_job(job_id)

    async def _on_app_action(action: str, app_id: str) -> None:
        if action == "edit":
            _open_app_dialog(app_id)
        elif action == "delete":
            await dispatcher.delete_app(app_id)

    # Tabs -----------------------------------------------------------------------------

    def _on_tab_strip_change(event: Any) -> None:
        if event.value in (TAB_JOBS, TAB_LOGS, TAB_SETTINGS):
            tabs.show(event.value)

    with ui.tabs(value=TAB_JOBS, on_change=_on_tab_strip_change).classes("w-full") as tab_strip:
        ui.tab(TAB_JOBS, label="Jobs")
        ui.tab(TAB_LOGS, label="Logs")
        ui.tab(TAB_SETTINGS, label="Settings")

    select_events_suppressed = {"value": False}

    with ui.tab_panels(tab_strip, value=TAB_JOBS).classes("w-full"):
        with ui.tab_panel(TAB_JOBS):
            with ui.card().classes("w-full"):
                with ui.row().classes("w-full items-center justify-between"):
                    ui.label("Jobs").classes("text-lg font-semibold")
                    with ui.row().classes("gap-2"):
                        ui.button(
                            "Add Job", icon="add", on_click=lambda _: _open_job_dialog(None)
                        ).props("color=primary")
                        ui.button(
                            "Start All", on_click=lambda _: dispatcher.start_all()
                        ).props("color=positive outline")
                        ui.button(
                            "Stop All", on_click=lambda _: dispatcher.stop_all()
                        ).props("color=negative outline")
                jobs_container = ui.column().classes("w-full overflow-x-auto")
            with ui.card().classes("w-full mt-4"):
                with ui.row().classes("w-full items-center justify-between"):
                    ui.label("Applications").classes("text-lg font-semibold")
                    ui.button(
                        "Add Application",
                        icon="add",
                        on_click=lambda _: _open_app_dialog(None),
                    ).props("outline")
                apps_container = ui.column().classes("w-full gap-2")

        with ui.tab_panel(TAB_LOGS):
            with ui.card().classes("w-full"):
                with ui.row().classes("w-full items-end gap-3"):
                    log_select = ui.select(
                        options={}, label=views.JOB_SELECT_PLACEHOLDER, clearable=True
                    ).classes("w-full sm:w-1/3")
                    ui.button(
                        "Refresh",
                        icon="refresh",
                        on_click=lambda _: dispatcher.load_logs(session.selected_log_job),
                    ).props("outline")
                    ui.button(
                        "Clear",
                        icon="delete_sweep",
                        on_click=lambda _: dispatcher.clear_logs(session.selected_log_job),
                    ).props("outline color=negative")
                    auto_refresh_checkbox = ui.checkbox(
                        f"Auto-refresh ({settings.log_poll_interval_seconds:g}s)",
                        value=False,
                    )
                log_output = (
                    ui.textarea(value=views.render_log_text(None, None))
                    .props("readonly outlined")
                    .classes("w-full font-mono text-xs mt-3")
                    .style("min-height: 420px")
                )

        with ui.tab_panel(TAB_SETTINGS):
            with ui.card().classes("w-full max-w-3xl"):
                ui.label("Global settings").classes("text-lg font-semibold")
                java_home_input = ui.input("Java home").classes("w-full")
                java_opts_input = ui.input("Java options").classes("w-full")
                config_dir_input = ui.input("Config directory").classes("w-full")
                logs_dir_input = ui.input("Logs directory").classes("w-full")
                with ui.row().classes("gap-2 mt-2"):
                    save_settings_button = ui.button("Save settings").props("color=primary")
                    ui.button(
                        "Reload config",
                        icon="sync",
                        on_click=lambda _: dispatcher.reload_config(),
                    ).props("outline")

    def _select_log_job(job_id: Optional[str]) -> None:
        session.selected_log_job = job_id
        select_events_suppressed["value"] = True
        try:
            log_select.set_value(job_id)
        finally:
            select_events_suppressed["value"] = False
        tabs.select_job(job_id)

    def _on_log_select_change(event: Any) -> None:
        if select_events_suppressed["value"]:
            return
        job_id = event.value or None
        if job_id == session.selected_log_job:
            return
        session.selected_log_job = job_id
        tabs.select_job(job_id)
        _schedule_async(lambda: dispatcher.load_logs(job_id))

    def _on_auto_refresh_toggle(event: Any) -> None:
        effective = tabs.set_auto_refresh(bool(event.value), session.selected_log_job)
        if effective != bool(event.value):
            auto_refresh_checkbox.set_value(effective)

    async def _save_settings() -> None:
        await dispatcher.save_global_config(
            GlobalConfig(
                java_home=java_home_input.value or "",
                java_opts=java_opts_input.value or "",
                config_dir=config_dir_input.value or "",
                logs_dir=logs_dir_input.value or "",
            )
        )

    log_select.on_value_change(_on_log_select_change)
    auto_refresh_checkbox.on_value_change(_on_auto_refresh_toggle)
    save_settings_button.on_click(_save_settings)
    dispatcher.on_logs = lambda text: log_output.set_value(text)

    # Store bindings -------------------------------------------------------------------

    def _render_jobs() -> None:
        render_jobs_table(
            jobs_container,
            views.build_jobs_table(store.jobs, store.apps),
            _on_job_action,
        )

    def _render_apps() -> None:
        render_apps_list(apps_container, views.build_apps_list(store.apps), _on_app_action)

    def _refresh_job_select() -> None:
        previous = session.selected_log_job
        select_view = views.build_job_select(store.jobs, previous)
        select_events_suppressed["value"] = True
        try:
            log_select.set_options(select_view.as_dict(), value=select_view.selected)
        finally:
            select_events_suppressed["value"] = False
        if select_view.selected != previous:
            session.selected_log_job = select_view.selected
            tabs.select_job(select_view.selected)
            log_output.set_value(views.render_log_text(None, None))

    def _update_running_badge() -> None:
        explicit = None
        if not store.jobs_loaded and store.status is not None:
            explicit = store.status.running
        count = views.running_count(store.jobs, explicit)
        _set_text_if_changed(running_badge, f"{count} running")
        _set_classes_if_changed(
            running_badge, _RUNNING_BADGE_ACTIVE if count else _RUNNING_BADGE_IDLE
        )

    def _on_jobs_replaced() -> None:
        _render_jobs()
        _refresh_job_select()
        _update_running_badge()

    def _on_apps_replaced() -> None:
        _render_apps()
        _render_jobs()

    def _on_config_replaced() -> None:
        config = store.global_config
        java_home_input.set_value(config.java_home)
        java_opts_input.set_value(config.java_opts)
        config_dir_input.set_value(config.config_dir)
        logs_dir_input.set_value(config.logs_dir)

    def _on_status_replaced() -> None:
        _set_text_if_changed(config_file_label, views.format_config_file(store.status))
        summary = views.format_status_summary(store.status)
        _set_text_if_changed(status_summary_label, summary)
        _set_visibility_if_changed(status_summary_label, bool(summary))
        _update_running_badge()

    session.unsubscribers.extend(
        [
            store.subscribe(TOPIC_JOBS, _on_jobs_replaced),
            store.subscribe(TOPIC_APPS, _on_apps_replaced),
            store.subscribe(TOPIC_CONFIG, _on_config_replaced),
            store.subscribe(TOPIC_STATUS, _on_status_replaced),
        ]
    )
    _render_jobs()
    _render_apps()

    if test_context is not None:
        console_hooks = test_context.setdefault("console", {})
        console_hooks["session"] = session
        console_hooks["on_job_action"] = _on_job_action
        console_hooks["on_app_action"] = _on_app_action
        console_hooks["log_select"] = log_select
        console_hooks["log_output"] = log_output
        console_hooks["auto_refresh_checkbox"] = auto_refresh_checkbox

    _schedule_async(dispatcher.load_all)
    return session


def create_ui_app(
    settings: UISettings | None = None,
    test_context: Dict[str, Any] | None = None,
) -> None:
    settings = settings or UISettings.load()

    @ui.page("/")
    def index() -> None:
        client = JobRunnerAPIClient(
            settings.api_base_url, timeout_seconds=settings.api_timeout_seconds
        )
        session = _build_console(settings, client, test_context)
        ui.context.client.on_disconnect(session.close)
