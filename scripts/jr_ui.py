#!/usr/bin/env python3
"""Entrypoint for the NiceGUI-based Job Runner console."""

from __future__ import annotations

import logging

from nicegui import ui

from jobrunner_console.ui import UISettings, create_ui_app


def main() -> None:
    settings = UISettings.load()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    create_ui_app(settings)
    ui.run(
        host=settings.ui_bind_host,
        port=settings.ui_bind_port,
        title="Job Runner",
        reload=False,
        workers=1,
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
