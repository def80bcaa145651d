"""Tests for jtimer/utils/logging_config.py."""

import json

import pytest
import structlog

from jtimer.utils.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_lines_on_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("INFO", json_output=True)

    structlog.get_logger("test").info("timer_started", issue_key="PROJ-1")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "timer_started"
    assert event["issue_key"] == "PROJ-1"
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filtering(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("warning", json_output=True)

    structlog.get_logger("test").info("hidden")
    structlog.get_logger("test").warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err
