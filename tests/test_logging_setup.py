# tests/test_logging_setup.py

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from taskline.logging_setup import _ConsoleNoiseFilter, setup_logging


@pytest.fixture
def restore_root() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_keeps_app_logs_and_quiets_the_rest() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("taskline.core.dispatcher", logging.INFO))
    assert not f.filter(_record("taskline.connectors.matrix_connector", logging.INFO))
    assert f.filter(_record("taskline.connectors.matrix_connector", logging.WARNING))
    assert not f.filter(_record("taskline.tasks.task_scheduler", logging.INFO))
    assert not f.filter(_record("nio.rooms", logging.WARNING))
    assert f.filter(_record("nio.rooms", logging.ERROR))
    assert not f.filter(_record("py.warnings", logging.WARNING))


def test_setup_logging_writes_file(tmp_path: Path, restore_root: None) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level="warning")

    assert log_file == tmp_path / "logs" / "taskline.log"
    console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
    assert console[0].level == logging.WARNING

    logging.getLogger("taskline.test").debug("hello %s", "file")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "taskline.test: hello file" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_unknown_console_level_falls_back_to_info(tmp_path: Path, restore_root: None) -> None:
    setup_logging(log_dir=tmp_path, console_level="chatty")
    console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
    assert console[0].level == logging.INFO
