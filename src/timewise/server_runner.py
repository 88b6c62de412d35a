"""Run the TimeWise HTTP service under uvicorn."""

from __future__ import annotations

import logging
import threading
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import EngineSettings
from .webapp import create_app

logger = logging.getLogger(__name__)

DOCS_PATH = "/docs"
BROWSER_DELAY_SECONDS = 1.0


def run_service(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    db_path: Optional[Path] = None,
    settings: Optional[EngineSettings] = None,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Serve the timer API until interrupted, optionally opening its docs page."""
    app = create_app(db_path=db_path, settings=settings)
    docs_url = f"http://{host}:{port}{DOCS_PATH}"
    logger.info("Serving TimeWise on %s", docs_url)

    if open_browser:
        # uvicorn needs a moment to bind before the page can load.
        opener = threading.Timer(BROWSER_DELAY_SECONDS, _open_docs, args=(docs_url,))
        opener.daemon = True
        opener.start()

    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _open_docs(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error:
        opened = False
    if not opened:
        logger.warning("Could not open a browser; visit %s manually.", url)
