"""
Tests for structured logging as the engine actually emits it.

Covers:
- Engine events (curve builds, dedupe) and their fields
- PROGRESS_ENGINE_TRACE records
- Report context (config/package/service) stamped on engine records
- LogContext binding rules
- Configuration exceptions surfaced as exc_* fields
- configure_logging / reset_logging handler ownership
"""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

import pytest
import yaml

from progress_config import get_active_config
from progress_engines.consolidated import build_curves
from progress_engines.dedupe import dedupe
from progress_kernel.exceptions import InvalidTimeZoneError
from progress_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from progress_services import CountingReporter, ProgressCurveService
from tests.conftest import day, make_event, make_service

T0 = datetime(2024, 1, 3, 9, 0, tzinfo=UTC)


def _by_message(records: list[dict], message: str) -> list[dict]:
    return [r for r in records if r["message"] == message]


@pytest.fixture
def fresh_logging():
    """Start from an unconfigured tree; restore the suite setup afterwards."""
    reset_logging()
    yield logging.getLogger("progress_kernel")
    reset_logging()
    configure_logging(level=logging.DEBUG)


# ---------------------------------------------------------------------------
# Engine events
# ---------------------------------------------------------------------------


class TestEngineEvents:
    """Records the engines emit while building curves and deduplicating."""

    def _services(self):
        return [
            make_service("a", hours=10, start=day(0), end=day(4)),
            make_service("b", start=day(2), end=day(6)),
        ]

    def test_curve_build_started(self, captured_logs):
        build_curves(self._services(), time_zone="UTC")
        started = _by_message(captured_logs(), "curve_build_started")[-1]
        assert started["logger"] == "progress_kernel.engines.consolidated"
        assert started["service_count"] == 2
        assert started["weighted_count"] == 1
        assert started["day_count"] == 7

    def test_curve_build_completed_days_are_iso(self, captured_logs):
        build_curves(self._services(), time_zone="UTC")
        completed = _by_message(captured_logs(), "curve_build_completed")[-1]
        assert completed["first_day"] == "2024-01-01"
        assert completed["last_day"] == "2024-01-07"

    def test_updates_deduplicated(self, captured_logs):
        events = [
            make_event(day(2), 30, event_id="u1", created_at=T0),
            make_event(day(2), 35, event_id="u1", created_at=T0),
            make_event(day(3), 50, event_id="u2", created_at=T0),
        ]
        dedupe(events)
        record = _by_message(captured_logs(), "updates_deduplicated")[-1]
        assert record["level"] == "INFO"
        assert record["duplicates"] == 1
        assert record["total"] == 2

    def test_no_duplicates_is_debug_only(self, captured_logs):
        dedupe([make_event(day(2), 30, event_id="u1", created_at=T0)])
        records = captured_logs()
        assert not _by_message(records, "updates_deduplicated")
        assert _by_message(records, "dedupe_completed")[-1]["output_count"] == 1


class TestEngineTrace:
    """PROGRESS_ENGINE_TRACE records."""

    def test_trace_fields(self, captured_logs):
        build_curves([make_service("a", hours=1, start=day(0), end=day(1))], time_zone="UTC")
        trace = [r for r in captured_logs() if r.get("engine_name") == "consolidated"][-1]
        assert trace["message"] == "PROGRESS_ENGINE_TRACE"
        assert trace["logger"] == "progress_kernel.engines.tracer"
        assert trace["engine_version"] == "1.0"
        assert trace["function"] == "build_curves"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0

    def test_unfingerprinted_engine(self, captured_logs):
        dedupe([])
        trace = [r for r in captured_logs() if r.get("engine_name") == "dedupe"][-1]
        assert trace["input_fingerprint"] == ""

    def test_report_context_on_engine_records(self, captured_logs, default_settings, deterministic_clock):
        service = ProgressCurveService(
            settings=default_settings, clock=deterministic_clock, reporter=CountingReporter()
        )
        raw = {
            "id": "svc-9",
            "horas": 4,
            "dataInicio": "2024-01-01",
            "dataFim": "2024-01-04",
            "updates": [{"date": "2024-01-02", "percent": 25}],
        }
        service.service_report(raw, reference="2024-01-03")
        records = captured_logs()
        traces = [r for r in records if r.get("engine_name") == "service_curves"]
        assert traces[-1]["service_id"] == "svc-9"
        assert traces[-1]["config_id"] == default_settings.config_id
        assert "package_id" not in traces[-1]
        # context does not leak past the report
        get_logger("test").info("after_report")
        assert "service_id" not in _by_message(captured_logs(), "after_report")[-1]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_nested_bind_restores(self):
        with LogContext.bind(package_id="PKG-1"):
            with LogContext.bind(service_id="svc-1"):
                assert LogContext.get_all() == {"package_id": "PKG-1", "service_id": "svc-1"}
            assert LogContext.get_all() == {"package_id": "PKG-1"}
        assert LogContext.get_all() == {}

    def test_empty_values_not_bound(self):
        with LogContext.bind(package_id="", service_id=None, config_id="default"):
            assert LogContext.get_all() == {"config_id": "default"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(actor_id="someone"):
                pass

    def test_restored_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(service_id="svc-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class TestFormatter:

    def test_decimal_percent_keeps_exact_text(self, captured_logs):
        get_logger("test").info("percent_logged", extra={"percent": Decimal("33.33"), "day": day(4)})
        record = _by_message(captured_logs(), "percent_logged")[-1]
        assert record["percent"] == "33.33"
        assert record["day"] == "2024-01-05"

    def test_configuration_error_fields(self, captured_logs, tmp_path):
        (tmp_path / "mars.yaml").write_text(
            yaml.safe_dump({"config_id": "mars", "version": 1, "time_zone": "Mars/Olympus_Mons"})
        )
        try:
            get_active_config("mars", config_dir=tmp_path)
        except InvalidTimeZoneError:
            get_logger("test").exception("config_rejected")
        record = _by_message(captured_logs(), "config_rejected")[-1]
        assert record["exc_type"] == "InvalidTimeZoneError"
        assert record["exc_code"] == "INVALID_TIME_ZONE"
        assert record["exc_time_zone"] == "Mars/Olympus_Mons"
        assert "traceback" in record

    def test_one_json_object_per_line(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        logger = logging.getLogger("progress_kernel.test.lines")
        logger.addHandler(handler)
        try:
            logger.warning("first", extra={"detail": "a\nb"})
            logger.warning("second")
        finally:
            logger.removeHandler(handler)
        lines = stream.getvalue().strip().split("\n")
        assert [json.loads(line)["message"] for line in lines] == ["first", "second"]


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_second_call_adds_no_handler(self, fresh_logging):
        foreign = logging.NullHandler()
        fresh_logging.addHandler(foreign)
        first, second = logging.NullHandler(), logging.NullHandler()
        try:
            configure_logging(handler=first)
            configure_logging(handler=second, level=logging.DEBUG)
            assert first in fresh_logging.handlers
            assert second not in fresh_logging.handlers
            assert fresh_logging.level == logging.DEBUG
        finally:
            fresh_logging.removeHandler(foreign)

    def test_reset_removes_only_owned_handler(self, fresh_logging):
        foreign = logging.NullHandler()
        fresh_logging.addHandler(foreign)
        owned = logging.NullHandler()
        try:
            configure_logging(handler=owned)
            reset_logging()
            assert owned not in fresh_logging.handlers
            assert foreign in fresh_logging.handlers
        finally:
            fresh_logging.removeHandler(foreign)

    def test_logger_namespace(self):
        assert get_logger("engines.dedupe").name == "progress_kernel.engines.dedupe"
