"""
progress_services.curve_service -- Raw documents in, curve reports out.

Responsibility:
    The one orchestration surface callers need: normalize raw service or
    package documents with the active settings, resolve the reference
    day from an injected clock, build raw and display curves, sample
    indicators, and report observability events.  Also fronts the
    dedupe and reconciliation engines for the persistence collaborator.

Architecture position:
    Services -- orchestration over engines + kernel.
    Holds the settings, the clock and the reporter; passes the time zone
    and alias table to the engines as explicit parameters.

Invariants enforced:
    - Engines never see the clock: "today" is resolved here.
    - Raw and display curves are both returned; the display curve is a
      clamped copy, the raw one is never mutated.
    - Reporter events never influence results.

Failure modes:
    - Configuration errors from ``get_active_config`` when no settings are
      injected.
    - Everything data-related degrades inside the engines (zero / empty).

Usage:
    from progress_services import ProgressCurveService

    service = ProgressCurveService()
    report = service.package_report(raw_package, reference="2024-01-05")
    report.indicators.delta
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from progress_config import EngineSettings, get_active_config
from progress_engines.checklist import build_weight_map, checklist_percent
from progress_engines.consolidated import (
    ConsolidatedCurves,
    build_package_curves,
    service_curves,
)
from progress_engines.dedupe import merge_and_dedupe
from progress_engines.events import normalize_event
from progress_engines.indicators import ServiceProgressSummary, indicators, summarize_services
from progress_engines.lifecycle import ServiceStatus, resolve_displayed_status
from progress_engines.realized import CurrentProgress, current_progress
from progress_engines.reconciliation import ReconciliationResult, TimestampedPercent, reconcile
from progress_engines.records import package_from_raw, service_from_raw
from progress_engines.temporal import resolve_instant
from progress_kernel.domain.clock import Clock, SystemClock
from progress_kernel.domain.records import Indicators, ProgressEvent
from progress_kernel.logging_config import LogContext, get_logger
from progress_services.observability import (
    EVENT_CURVES_BUILT,
    EVENT_PROGRESS_RECONCILED,
    EVENT_UPDATES_DEDUPLICATED,
    LoggingReporter,
    ProgressReporter,
)
from progress_services.reference import resolve_reference_day

logger = get_logger("services.curves")


@dataclass(frozen=True)
class CurveReport:
    """Curves and indicators of a single service at a reference day."""

    service_id: str
    reference_day: date
    curves: ConsolidatedCurves
    display: ConsolidatedCurves
    indicators: Indicators
    current: CurrentProgress
    status: ServiceStatus


@dataclass(frozen=True)
class SubpackageReport:
    name: str
    total_hours: Decimal
    curves: ConsolidatedCurves
    display: ConsolidatedCurves
    indicators: Indicators


@dataclass(frozen=True)
class PackageReport:
    """Package curves, per-subpackage breakdown and per-service rows."""

    package_name: str
    reference_day: date
    curves: ConsolidatedCurves
    display: ConsolidatedCurves
    indicators: Indicators
    subpackages: tuple[SubpackageReport, ...] = ()
    services: tuple[ServiceProgressSummary, ...] = ()


class ProgressCurveService:
    """
    Build progress-curve reports from raw documents.

    Contract:
        Receives settings, clock and reporter via constructor injection.
        Missing collaborators default to ``get_active_config()``,
        ``SystemClock`` and ``LoggingReporter``.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        reporter: ProgressReporter | None = None,
    ):
        self._settings = settings or get_active_config()
        self._clock = clock or SystemClock()
        self._reporter = reporter or LoggingReporter()

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def _reference(self, reference: Any) -> date:
        return resolve_reference_day(
            reference,
            clock=self._clock,
            time_zone=self._settings.time_zone,
        )

    def service_report(self, raw_service: Any, reference: Any = None) -> CurveReport:
        """Curves, indicators and displayed status of one service."""
        tz = self._settings.time_zone
        aliases = self._settings.aliases
        service = service_from_raw(raw_service, time_zone=tz, aliases=aliases)

        with LogContext.bind(config_id=self._settings.config_id, service_id=service.service_id):
            reference_day = self._reference(reference)
            curves = service_curves(service, time_zone=tz, aliases=aliases)
            summary = indicators(curves.planned_series, curves.realized_series, reference_day)
            weights = build_weight_map(service.checklist, aliases)
            current = current_progress(service.events, None if weights.is_empty else weights)

            self._reporter.record(
                EVENT_CURVES_BUILT,
                level="service",
                service_id=service.service_id,
                day_count=len(curves.timeline),
            )
            logger.info("service_report_built", extra={
                "reference_day": reference_day,
                "day_count": len(curves.timeline),
                "delta": summary.delta,
            })
            return CurveReport(
                service_id=service.service_id,
                reference_day=reference_day,
                curves=curves,
                display=curves.for_display(),
                indicators=summary,
                current=current,
                status=resolve_displayed_status(service.status, current.percent),
            )

    def package_report(self, raw_package: Any, reference: Any = None) -> PackageReport:
        """Package-level and per-subpackage curves with indicators."""
        tz = self._settings.time_zone
        aliases = self._settings.aliases
        package = package_from_raw(raw_package, time_zone=tz, aliases=aliases)

        with LogContext.bind(config_id=self._settings.config_id, package_id=package.name):
            reference_day = self._reference(reference)
            package_curves = build_package_curves(package, time_zone=tz, aliases=aliases)
            curves = package_curves.curves

            subpackages = tuple(
                SubpackageReport(
                    name=sub.name,
                    total_hours=sub.total_hours,
                    curves=sub.curves,
                    display=sub.curves.for_display(),
                    indicators=indicators(
                        sub.curves.planned_series,
                        sub.curves.realized_series,
                        reference_day,
                    ),
                )
                for sub in package_curves.subpackages
            )
            summary = indicators(curves.planned_series, curves.realized_series, reference_day)
            rows = summarize_services(package.services, reference_day, time_zone=tz, aliases=aliases)

            self._reporter.record(
                EVENT_CURVES_BUILT,
                level="package",
                package_name=package.name,
                subpackage_count=len(subpackages),
                day_count=len(curves.timeline),
            )
            logger.info("package_report_built", extra={
                "reference_day": reference_day,
                "subpackage_count": len(subpackages),
                "service_count": len(rows),
                "delta": summary.delta,
            })
            return PackageReport(
                package_name=package.name,
                reference_day=reference_day,
                curves=curves,
                display=curves.for_display(),
                indicators=summary,
                subpackages=subpackages,
                services=rows,
            )

    def _events(self, items: Iterable[Any]) -> list[ProgressEvent]:
        events: list[ProgressEvent] = []
        for sequence, item in enumerate(items):
            if isinstance(item, ProgressEvent):
                events.append(item)
                continue
            event = normalize_event(
                item,
                time_zone=self._settings.time_zone,
                aliases=self._settings.aliases,
                sequence=sequence,
            )
            if event is not None:
                events.append(event)
        return events

    def dedupe_updates(
        self,
        previous: Iterable[Any],
        incoming: Iterable[Any],
    ) -> tuple[ProgressEvent, ...]:
        """
        Fold incoming updates into the known list and deduplicate.

        Accepts ``ProgressEvent`` instances or raw update documents.
        Reports ``updates.deduplicated`` when any copy was collapsed.
        """
        result = merge_and_dedupe(self._events(previous), self._events(incoming))
        if result.duplicates:
            self._reporter.record(
                EVENT_UPDATES_DEDUPLICATED,
                duplicates=result.duplicates,
                total=len(result.events),
            )
        return result.events

    def _manual_entry(self, last_manual: Any) -> TimestampedPercent | None:
        if last_manual is None or isinstance(last_manual, TimestampedPercent):
            return last_manual
        if isinstance(last_manual, ProgressEvent):
            event = last_manual
        elif isinstance(last_manual, Mapping):
            event = normalize_event(
                last_manual,
                time_zone=self._settings.time_zone,
                aliases=self._settings.aliases,
            )
        else:
            event = None
        if event is None or event.percent is None:
            return None
        return TimestampedPercent(percent=event.percent, timestamp=event.timestamp)

    def reconcile_progress(
        self,
        checklist_items: Iterable[Any],
        checklist_updated_at: Any,
        last_manual: Any = None,
    ) -> ReconciliationResult:
        """
        Decide between the checklist-derived value and the last manual entry.

        ``last_manual`` may be a ``TimestampedPercent``, a ``ProgressEvent``
        or a raw update document.
        """
        checklist = TimestampedPercent(
            percent=checklist_percent(checklist_items, self._settings.aliases),
            timestamp=resolve_instant(checklist_updated_at),
        )
        result = reconcile(checklist, self._manual_entry(last_manual))
        self._reporter.record(
            EVENT_PROGRESS_RECONCILED,
            source=result.source.value,
            percent=str(result.percent),
            manual_override_active=result.manual_override_active,
        )
        return result
