"""Logging setup shared by the CLI, jobs and API."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from edgeviper.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(*, debug: bool = False, log_file: Path | None = None) -> None:
    """Install a stdout handler (and optional file handler) on the root logger.

    Level priority: explicit ``debug`` flag, then ``LOG_LEVEL``, then ``DEBUG``,
    then INFO.
    """

    settings = get_settings()
    level_name = (os.getenv("LOG_LEVEL") or settings.log_level).strip().upper()
    if debug or not level_name:
        level_name = "DEBUG" if (debug or settings.debug) else "INFO"
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)
    root.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
