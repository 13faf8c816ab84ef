"""Tests for buildgate/utils/logging_config.py."""

import json

import structlog

from buildgate.utils.logging_config import bind_run_context, configure_logging


def test_json_output_includes_run_context(capsys):
    configure_logging("DEBUG")
    bind_run_context(operation="build", build_type="Deploy_Dev")

    structlog.get_logger("test").info("build_enqueued", branch="fn-101")
    structlog.contextvars.clear_contextvars()

    event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert event["event"] == "build_enqueued"
    assert event["branch"] == "fn-101"
    assert event["operation"] == "build"
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filtering(capsys):
    configure_logging("WARNING")

    structlog.get_logger("test").info("hidden")

    assert "hidden" not in capsys.readouterr().out
