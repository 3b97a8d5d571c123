"""
Tests for ProgressCurveService orchestration.

Covers:
- Service and package reports from raw documents
- Reference day from explicit values or the injected clock
- Raw vs. display curves
- Displayed status follows realized progress
- Dedupe and reconciliation fronts with reporter events
- LogContext binding during report construction
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from progress_config import EngineSettings
from progress_engines.lifecycle import ServiceStatus
from progress_engines.reconciliation import ProgressSource, TimestampedPercent
from progress_services import (
    EVENT_CURVES_BUILT,
    EVENT_PROGRESS_RECONCILED,
    EVENT_UPDATES_DEDUPLICATED,
    CountingReporter,
    ProgressCurveService,
)
from tests.conftest import day, make_event


def _raw_package():
    return {
        "name": "PKG-7",
        "subpackages": [
            {
                "name": "Mechanical",
                "services": [
                    {
                        "id": "A",
                        "totalHours": 40,
                        "plannedStart": "2024-01-01",
                        "plannedEnd": "2024-01-11",
                        "updates": [{"date": "2024-01-06", "percent": 50}],
                    },
                    {
                        "id": "B",
                        "totalHours": 60,
                        "plannedStart": "2024-01-01",
                        "plannedEnd": "2024-01-11",
                    },
                ],
            }
        ],
    }


@pytest.fixture
def reporter():
    return CountingReporter()


@pytest.fixture
def service(default_settings, deterministic_clock, reporter):
    return ProgressCurveService(settings=default_settings, clock=deterministic_clock, reporter=reporter)


class TestPackageReport:
    """Package-level report end to end."""

    def test_indicators_at_explicit_day(self, service):
        report = service.package_report(_raw_package(), reference="2024-01-06")
        assert report.package_name == "PKG-7"
        assert report.reference_day == date(2024, 1, 6)
        assert report.indicators.planned_to_date == Decimal("50")
        assert report.indicators.realized == Decimal("20")
        assert report.indicators.delta == Decimal("-30")

    def test_subpackage_breakdown(self, service):
        report = service.package_report(_raw_package(), reference="2024-01-06")
        assert [sub.name for sub in report.subpackages] == ["Mechanical"]
        assert report.subpackages[0].total_hours == Decimal("100")
        assert report.subpackages[0].indicators.realized == Decimal("20")

    def test_service_rows(self, service):
        report = service.package_report(_raw_package(), reference="2024-01-06")
        rows = {row.service_id: row for row in report.services}
        assert rows["A"].realized == Decimal("50")
        assert rows["B"].realized == Decimal("0")

    def test_reference_defaults_to_clock(self, service):
        report = service.package_report(_raw_package())
        assert report.reference_day == date(2024, 1, 5)

    def test_reports_curves_built(self, service, reporter):
        service.package_report(_raw_package(), reference="2024-01-06")
        payload = reporter.payloads(EVENT_CURVES_BUILT)[-1]
        assert payload["level"] == "package"
        assert payload["subpackage_count"] == 1
        assert payload["day_count"] == 11

    def test_package_id_bound_in_logs(self, service, captured_logs):
        service.package_report(_raw_package(), reference="2024-01-06")
        records = [r for r in captured_logs() if r["message"] == "package_report_built"]
        assert records[-1]["package_id"] == "PKG-7"


class TestServiceReport:
    """Single-service report."""

    def _raw(self, **overrides):
        raw = {
            "id": "svc-1",
            "horas": 8,
            "dataInicio": "2024-01-01",
            "dataFim": "2024-01-05",
            "status": "aberto",
            "updates": [
                {"date": "2024-01-02", "percent": 60, "createdAt": "2024-01-02T12:00:00Z"},
                {"date": "2024-01-03", "percent": 40, "createdAt": "2024-01-03T12:00:00Z"},
            ],
        }
        raw.update(overrides)
        return raw

    def test_raw_and_display_curves(self, service):
        report = service.service_report(self._raw(), reference="2024-01-03")
        raw_values = [p.percent for p in report.curves.realized_series]
        display_values = [p.percent for p in report.display.realized_series]
        assert raw_values[2] == Decimal("40")
        assert display_values[2] == Decimal("60")

    def test_current_progress_and_status(self, service):
        report = service.service_report(self._raw())
        assert report.current.percent == Decimal("40.00")
        assert report.current.updated_at == datetime(2024, 1, 3, 12, 0, tzinfo=UTC)
        assert report.status is ServiceStatus.OPEN

    def test_full_progress_displays_completed(self, service):
        raw = self._raw(updates=[{"date": "2024-01-04", "percent": 100}])
        assert service.service_report(raw).status is ServiceStatus.COMPLETED

    def test_indicators(self, service):
        report = service.service_report(self._raw(), reference="2024-01-03")
        assert report.indicators.planned_to_date == Decimal("50")
        assert report.indicators.realized == Decimal("40")

    def test_reports_and_binds_service_id(self, service, reporter, captured_logs):
        service.service_report(self._raw(), reference="2024-01-03")
        assert reporter.counters()[EVENT_CURVES_BUILT] == 1
        records = [r for r in captured_logs() if r["message"] == "service_report_built"]
        assert records[-1]["service_id"] == "svc-1"


class TestDedupeUpdates:
    """Dedupe front for the persistence collaborator."""

    def test_raw_and_record_inputs(self, service, reporter):
        previous = [make_event(day(1), 20, event_id="u1", created_at=datetime(2024, 1, 2, tzinfo=UTC))]
        incoming = [{"id": "u1", "date": "2024-01-02", "percent": 25, "createdAt": "2024-01-02T10:00:00Z"}]
        events = service.dedupe_updates(previous, incoming)
        assert len(events) == 1
        assert events[0].percent == Decimal("25")
        assert reporter.payloads(EVENT_UPDATES_DEDUPLICATED) == [{"duplicates": 1, "total": 1}]

    def test_no_duplicates_not_reported(self, service, reporter):
        service.dedupe_updates([], [{"id": "u1", "date": "2024-01-02", "percent": 25}])
        assert EVENT_UPDATES_DEDUPLICATED not in reporter.counters()


class TestReconcileProgress:
    """Checklist vs. manual front."""

    CHECKLIST = [
        {"id": "a", "weight": 50, "progress": 100},
        {"id": "b", "weight": 50, "progress": 0},
    ]

    def test_newer_manual_mapping_wins(self, service, reporter):
        manual = {"date": "2024-01-05", "percent": 80, "createdAt": "2024-01-05T12:00:00Z"}
        result = service.reconcile_progress(self.CHECKLIST, "2024-01-05T10:00:00Z", manual)
        assert result.source is ProgressSource.MANUAL
        assert result.percent == Decimal("80")
        assert reporter.payloads(EVENT_PROGRESS_RECONCILED)[-1]["manual_override_active"] is True

    def test_newer_checklist_wins(self, service):
        manual = TimestampedPercent(Decimal(80), datetime(2024, 1, 5, 9, tzinfo=UTC))
        result = service.reconcile_progress(self.CHECKLIST, "2024-01-05T10:00:00Z", manual)
        assert result.source is ProgressSource.CHECKLIST
        assert result.percent == Decimal("50")

    def test_no_manual_entry(self, service, reporter):
        result = service.reconcile_progress(self.CHECKLIST, None)
        assert result.source is ProgressSource.CHECKLIST
        assert reporter.payloads(EVENT_PROGRESS_RECONCILED)[-1]["percent"] == "50"

    def test_event_manual_entry(self, service):
        manual = make_event(day(10), 90)
        result = service.reconcile_progress(self.CHECKLIST, "2024-01-05T10:00:00Z", manual)
        assert result.source is ProgressSource.MANUAL


class TestSettingsInjection:
    """The time zone comes from the injected settings."""

    def test_utc_settings_change_bucketing(self, deterministic_clock):
        settings = EngineSettings(config_id="utc", version=1, time_zone="UTC")
        utc_service = ProgressCurveService(settings=settings, clock=deterministic_clock, reporter=CountingReporter())
        raw = {
            "id": "s",
            "horas": 1,
            "dataInicio": "2024-01-01",
            "dataFim": "2024-01-05",
            "updates": [{"createdAt": "2024-01-04T01:00:00Z", "percent": 30}],
        }
        report = utc_service.service_report(raw, reference="2024-01-03")
        assert report.indicators.realized == Decimal("0")

    def test_default_zone_buckets_into_previous_day(self, service):
        raw = {
            "id": "s",
            "horas": 1,
            "dataInicio": "2024-01-01",
            "dataFim": "2024-01-05",
            "updates": [{"createdAt": "2024-01-04T01:00:00Z", "percent": 30}],
        }
        report = service.service_report(raw, reference="2024-01-03")
        assert report.indicators.realized == Decimal("30")
