"""Entry point: configure logging and run the storefront."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from storefront.config import DEBUG_LOG_PATH
from storefront.storefront_app import StorefrontApp

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(path: str | Path = DEBUG_LOG_PATH, level: int | None = None) -> None:
    """Send logs to a file; the terminal is owned by the Textual UI."""
    if level is None:
        level = logging.DEBUG if os.environ.get("STOREFRONT_DEBUG") else logging.INFO
    log_path = Path(path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    configure_logging()
    StorefrontApp().run()


if __name__ == "__main__":
    main()
