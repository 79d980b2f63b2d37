"""Error telemetry reporters.

Reporters are fire-and-forget: a failing reporter is logged and never
changes the outcome of a transfer.
"""

from __future__ import annotations

import logging
from typing import Protocol

import sentry_sdk

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    """Sink for failure events."""

    def report_exception(self, exc: BaseException) -> None: ...

    def report_message(self, message: str) -> None: ...


class NullReporter:
    """Reporter that drops everything."""

    def report_exception(self, exc: BaseException) -> None:
        return None

    def report_message(self, message: str) -> None:
        return None


class SentryReporter:
    """Reporter backed by the process-wide Sentry client."""

    def report_exception(self, exc: BaseException) -> None:
        sentry_sdk.capture_exception(exc)

    def report_message(self, message: str) -> None:
        sentry_sdk.capture_message(message, level="warning")


def init_sentry(dsn: str, traces_sample_rate: float = 0.05) -> SentryReporter:
    """Initialize the Sentry SDK and return a reporter using it."""
    sentry_sdk.init(dsn=dsn, traces_sample_rate=traces_sample_rate)
    return SentryReporter()


def safe_report_exception(reporter: Reporter, exc: BaseException) -> None:
    try:
        reporter.report_exception(exc)
    except Exception as e:
        logger.warning(f"Telemetry reporter failed: {e}")


def safe_report_message(reporter: Reporter, message: str) -> None:
    try:
        reporter.report_message(message)
    except Exception as e:
        logger.warning(f"Telemetry reporter failed: {e}")
