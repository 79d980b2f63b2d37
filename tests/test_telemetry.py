"""Tests for telemetry reporters."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from zipstreamer.errors import FetchError
from zipstreamer.telemetry import (
    NullReporter,
    SentryReporter,
    init_sentry,
    safe_report_exception,
    safe_report_message,
)


@pytest.fixture
def sentry(monkeypatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr("zipstreamer.telemetry.sentry_sdk", mock)
    return mock


class TestReporters:
    def test_null_reporter(self):
        reporter = NullReporter()
        reporter.report_exception(ValueError("x"))
        reporter.report_message("x")

    def test_sentry_reporter(self, sentry):
        reporter = SentryReporter()
        error = FetchError("https://h/a", "max retries exceeded")

        reporter.report_exception(error)
        reporter.report_message("empty file - all 1 files failed")

        sentry.capture_exception.assert_called_once_with(error)
        sentry.capture_message.assert_called_once_with("empty file - all 1 files failed", level="warning")

    def test_init_sentry(self, sentry):
        reporter = init_sentry("https://key@sentry.example.com/1", traces_sample_rate=0.5)

        assert isinstance(reporter, SentryReporter)
        sentry.init.assert_called_once_with(dsn="https://key@sentry.example.com/1", traces_sample_rate=0.5)

    def test_safe_report_swallows_failures(self, caplog):
        reporter = MagicMock()
        reporter.report_exception.side_effect = RuntimeError("down")
        reporter.report_message.side_effect = RuntimeError("down")

        safe_report_exception(reporter, ValueError("x"))
        safe_report_message(reporter, "x")

        assert caplog.text.count("Telemetry reporter failed") == 2
