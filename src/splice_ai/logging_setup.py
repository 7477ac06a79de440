# src/splice_ai/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - splice_ai logs pass, except HTTP backend chatter below WARNING
    - captured Python warnings and third-party logs only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("splice_ai."):
            if name.startswith("splice_ai.backend."):
                return record.levelno >= logging.WARNING
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # httpx/httpcore/openai log every request at INFO.
        return record.levelno >= logging.ERROR


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Level for a name like "debug" or "WARNING"; empty or unknown names give `default`."""
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/splice",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered, for the REPL) + file handler (everything).

    The console stays at WARNING or above because task progress is already
    printed by the console connector. Call this ONCE, very early. Returns the
    log file path.
    """
    log_file = Path(log_dir) / "splice.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(min(console_level, file_level))

    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d %(levelname)-7s %(threadName)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.set_name("splice-console")
    console.setLevel(max(console_level, logging.WARNING))
    console.addFilter(_ConsoleNoiseFilter())
    console.setFormatter(formatter)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.set_name("splice-file")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)

    for handler in (console, file_handler):
        root.addHandler(handler)

    logging.captureWarnings(True)
    logging.getLogger("httpcore").setLevel(logging.INFO)
    return log_file
