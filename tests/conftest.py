"""
Pytest fixtures for the progress-curve test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` for asserting on emitted JSON log records
- Record builders for services and progress events
- A deterministic clock and the default engine settings
"""

import json
import logging
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from io import StringIO

import pytest

from progress_config import get_active_config
from progress_kernel.domain.clock import DeterministicClock
from progress_kernel.domain.records import ProgressEvent, ServiceRecord, utc_midnight
from progress_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

D0 = date(2024, 1, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture progress_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            build_curves(services)
            logs = captured_logs()
            assert any(r["message"] == "curve_build_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("progress_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Record builders
# =============================================================================


def day(offset: int) -> date:
    """Calendar day ``offset`` days after 2024-01-01."""
    return D0 + timedelta(days=offset)


def make_event(
    day_value: date,
    percent=None,
    *,
    event_id: str | None = None,
    created_at: datetime | None = None,
    author: str | None = None,
    mode: str | None = None,
    description: str | None = None,
    minutes: int = 0,
    items=(),
) -> ProgressEvent:
    return ProgressEvent(
        timestamp=utc_midnight(day_value) + timedelta(minutes=minutes),
        day=day_value,
        percent=None if percent is None else Decimal(str(percent)),
        items=tuple(items),
        author=author,
        mode=mode,
        event_id=event_id,
        created_at=created_at,
        description=description,
    )


def make_service(
    service_id: str = "svc",
    *,
    hours=None,
    start: date | None = None,
    end: date | None = None,
    daily=None,
    events=(),
    checklist=(),
    status: str | None = None,
) -> ServiceRecord:
    return ServiceRecord(
        service_id=service_id,
        total_hours=None if hours is None else Decimal(str(hours)),
        planned_start=start,
        planned_end=end,
        planned_daily=None if daily is None else tuple(Decimal(str(v)) for v in daily),
        checklist=tuple(checklist),
        events=tuple(events),
        status=status,
    )


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-05 15:00 UTC (12:00 in Sao Paulo)."""
    return DeterministicClock(datetime(2024, 1, 5, 15, 0, tzinfo=UTC))


@pytest.fixture
def default_settings():
    return get_active_config()
