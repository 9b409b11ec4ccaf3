# src/taskline/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Components that run beside the console prompt. Their INFO chatter goes to the file only.
_BACKGROUND_PREFIXES = (
    "taskline.connectors.matrix_",
    "taskline.tasks.task_scheduler",
)

# Third-party loggers pinned regardless of the console level.
_LIBRARY_LEVELS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "nio": logging.INFO,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Decide what reaches the interactive console:
    - taskline logs pass, except background components below WARNING
    - captured Python warnings and other libraries only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("taskline."):
            return record.levelno >= logging.ERROR
        if name.startswith(_BACKGROUND_PREFIXES):
            return record.levelno >= logging.WARNING
        return True


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    # getLevelName maps known names to ints and unknown ones to "Level X".
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskline",
    console_level: int | str = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure the root logger once, before anything logs.

    The console gets a short, filtered format so chat replies stay readable;
    taskline.log under `log_dir` gets everything at `file_level`.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskline.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_level(console_level))
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)
    return log_file
