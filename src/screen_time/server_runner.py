"""Helpers to launch the local timeline dashboard."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from typing import Optional

import uvicorn

from .config import ScreenTimeSettings
from .webapp import create_app

logger = logging.getLogger(__name__)

BROWSER_DELAY_SECONDS = 1.0


def run_dashboard(
    settings: Optional[ScreenTimeSettings] = None,
    *,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Serve the dashboard on the settings' host and port until interrupted."""
    settings = settings or ScreenTimeSettings()
    app = create_app(settings=settings)

    if open_browser:
        threading.Thread(
            target=open_dashboard_in_browser,
            args=(settings.dashboard_url(),),
            daemon=True,
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    logger.info("Serving the Screen Time dashboard at %s", settings.dashboard_url())
    uvicorn.run(
        app,
        host=settings.dashboard_host,
        port=settings.dashboard_port,
        log_level=log_level,
    )


def open_dashboard_in_browser(url: str, delay: float = BROWSER_DELAY_SECONDS) -> bool:
    """Open ``url`` once uvicorn has had ``delay`` seconds to bind."""
    time.sleep(delay)
    try:
        return webbrowser.open(url)
    except webbrowser.Error:
        logger.exception("Failed to launch browser for %s", url)
        return False
