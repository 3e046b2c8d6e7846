"""
Unit tests for logging configuration and run context.
"""

import io
import json
import logging

import pytest

from lyric_sync.core.logging import RunContext, configure_logging


@pytest.fixture
def restore_package_logger():
    package_logger = logging.getLogger("lyric_sync")
    handlers, level = list(package_logger.handlers), package_logger.level
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)


def test_human_readable_with_context(restore_package_logger):
    stream = io.StringIO()
    configure_logging(stream=stream, include_timestamp=False)

    with RunContext(run_id="r1", query_mode="full") as ctx:
        ctx.update(generation_id=42)
        logging.getLogger("lyric_sync.test").info("hello")

    line = stream.getvalue().strip()
    assert line.startswith("lyric_sync.test - INFO - hello")
    assert "run_id=r1" in line
    assert "generation_id=42" in line


def test_structured_output(restore_package_logger):
    stream = io.StringIO()
    configure_logging(stream=stream, structured=True)

    with RunContext(run_id="r2"):
        logging.getLogger("lyric_sync.test").warning("careful")

    entry = json.loads(stream.getvalue())
    assert entry["level"] == "WARNING"
    assert entry["message"] == "careful"
    assert entry["run_id"] == "r2"
    assert "timestamp" in entry


def test_context_restored_after_exit():
    with RunContext(run_id="outer"):
        with RunContext(run_id="inner"):
            assert RunContext.get_current()["run_id"] == "inner"
        assert RunContext.get_current()["run_id"] == "outer"
    assert RunContext.get_current() == {}


def test_configure_twice_keeps_one_handler(restore_package_logger):
    configure_logging(stream=io.StringIO())
    configure_logging(stream=io.StringIO())
    assert len(logging.getLogger("lyric_sync").handlers) == 1
