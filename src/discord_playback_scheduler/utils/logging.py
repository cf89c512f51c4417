"""Logging setup: dictConfig loading and the colored console formatter."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import IO, Any

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "logging_config.json"


class ColoredFormatter(logging.Formatter):
    """Logging formatter that applies ANSI color codes to the levelname field.

    Colors are disabled when the ``NO_COLOR`` environment variable is set or
    when the output stream is not a TTY (e.g. redirected to a file).
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",     # cyan
        logging.INFO: "\033[32m",      # green
        logging.WARNING: "\033[33m",   # yellow
        logging.ERROR: "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",  # bold red
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = DEFAULT_FORMAT,
        datefmt: str | None = DEFAULT_DATEFMT,
        *,
        stream: IO[Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(fmt, datefmt, **kwargs)
        self._stream = stream

    def _use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        stream = self._stream or sys.stderr
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if self._use_color():
            color = self.COLORS.get(record.levelno, "")
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(log_level: str = "INFO", config_path: Path | None = None) -> None:
    """Configure logging from ``logging_config.json``, or basicConfig if it is unusable.

    ``log_level`` always wins for the root logger.
    """
    path = config_path or LOGGING_CONFIG_PATH
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(path) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(level=resolved_level, format=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
        logging.warning("Could not load %s, falling back to basic config", path)

    logging.getLogger().setLevel(resolved_level)
