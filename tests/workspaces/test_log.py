"""Tests for loguru setup and the stdlib bridge."""

from __future__ import annotations

import io
import logging

from loguru import logger

from spacesync.workspaces.log import setup_logging


def test_engine_records_reach_the_sink() -> None:
    sink = io.StringIO()
    setup_logging("info", sink=sink)

    logger.info("Workspace {} ready", "ws_default")
    logger.debug("hidden")

    output = sink.getvalue()
    assert "Workspace ws_default ready" in output
    assert "hidden" not in output


def test_stdlib_records_are_bridged() -> None:
    sink = io.StringIO()
    setup_logging("INFO", sink=sink)

    logging.getLogger("spacesync.test").warning("from stdlib")

    assert "from stdlib" in sink.getvalue()


def test_libraries_are_quiet_unless_debugging() -> None:
    setup_logging("INFO", sink=io.StringIO())
    assert logging.getLogger("botocore").level == logging.WARNING

    setup_logging("DEBUG", sink=io.StringIO())
    assert logging.getLogger("botocore").level == logging.DEBUG
