"""Tests for swiftstyle.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from swiftstyle.engine import Linter
from swiftstyle.logging import configure_logging, get_logger
from swiftstyle.models import SourceFile
from swiftstyle.rules import discover_rules


def test_log_file_records_the_worker_checking_each_file(tmp_path: Path) -> None:
    log_file = tmp_path / "swiftstyle.log"
    logger = configure_logging(verbose=True, log_file=log_file)
    try:
        linter = Linter(discover_rules(["naming-convention"]), workers=1)
        linter.lint_sources([SourceFile(path="Sources/App.swift", text="let x = 1\n")])
    finally:
        configure_logging()

    content = log_file.read_text(encoding="utf-8")
    assert "DEBUG swiftstyle.engine [swiftstyle_0]: Checking Sources/App.swift" in content
    assert logger.level == logging.WARNING


def test_configure_logging_replaces_previous_handlers(tmp_path: Path) -> None:
    configure_logging(log_file=tmp_path / "first.log")
    logger = configure_logging()

    assert len(logger.handlers) == 1
    assert logger is get_logger()
    assert get_logger("engine").name == "swiftstyle.engine"
