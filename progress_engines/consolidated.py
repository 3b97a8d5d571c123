"""
Module: progress_engines.consolidated
Responsibility:
    Build full planned and realized series for a group of services
    (subpackage), a package (hours-weighted over its subpackages) or a
    single service.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Orchestrates planned, realized, aggregation and records.

Invariants enforced:
    - PERCENT_BOUNDS on every point.
    - Raw curves are never smoothed here.  ``monotonic_clamp`` (and
      ``ConsolidatedCurves.for_display``) is a separate presentation step
      returning new tuples, so callers can hold both the raw and the
      display curve.
    - The package curve is the hours-weighted mean of its subpackages'
      values, subpackage hours being the sum of their services' hours.

Usage:
    from progress_engines.consolidated import build_curves

    curves = build_curves(services, time_zone="America/Sao_Paulo")
    display = curves.for_display()
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, tzinfo
from decimal import Decimal
from typing import Any

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable
from progress_kernel.domain.records import CurvePoint, Package, ServiceRecord
from progress_kernel.domain.values import ZERO, clamp_percent, round_percent
from progress_kernel.logging_config import get_logger
from progress_engines.aggregation import build_timeline, weighted_group_percent
from progress_engines.checklist import WeightMap, build_weight_map
from progress_engines.planned import planned_value, sanitize_daily_series
from progress_engines.realized import realized_points, series_over
from progress_engines.records import package_from_raw, service_from_raw
from progress_engines.temporal import DEFAULT_TIME_ZONE
from progress_engines.tracer import traced_engine

logger = get_logger("engines.consolidated")


def monotonic_clamp(series: Sequence[CurvePoint]) -> tuple[CurvePoint, ...]:
    """Raise every value to at least its predecessor (display smoothing)."""
    clamped: list[CurvePoint] = []
    running = ZERO
    for point in series:
        running = max(running, point.percent)
        clamped.append(CurvePoint(day=point.day, percent=running))
    return tuple(clamped)


@dataclass(frozen=True)
class ConsolidatedCurves:
    """
    Planned and realized series over a shared timeline.

    Contract:
        ``planned_series`` and ``realized_series`` each hold exactly one
        point per ``timeline`` day, ascending.
    """

    timeline: tuple[date, ...] = ()
    planned_series: tuple[CurvePoint, ...] = ()
    realized_series: tuple[CurvePoint, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.timeline

    def for_display(self) -> ConsolidatedCurves:
        """A monotonically clamped copy; ``self`` is left untouched."""
        return ConsolidatedCurves(
            timeline=self.timeline,
            planned_series=monotonic_clamp(self.planned_series),
            realized_series=monotonic_clamp(self.realized_series),
        )


@dataclass(frozen=True)
class SubpackageCurves:
    name: str
    total_hours: Decimal
    curves: ConsolidatedCurves


@dataclass(frozen=True)
class PackageCurves:
    """Package-level curves plus each subpackage's curves on the same axis."""

    name: str
    curves: ConsolidatedCurves
    subpackages: tuple[SubpackageCurves, ...] = ()

    @property
    def timeline(self) -> tuple[date, ...]:
        return self.curves.timeline


@dataclass(frozen=True)
class MergedCurve:
    """Union-of-days planned/realized pair, running-max accumulated."""

    labels: tuple[date, ...] = ()
    planned: tuple[Decimal, ...] = ()
    realized: tuple[Decimal, ...] = ()


def _weights_of(service: ServiceRecord) -> WeightMap | None:
    weights = build_weight_map(service.checklist)
    return None if weights.is_empty else weights


def _planned_over(service: ServiceRecord, timeline: Sequence[date]) -> list[Decimal]:
    series = None
    if service.planned_daily and len(service.planned_daily) == service.day_count:
        series = sanitize_daily_series(service.planned_daily)
    return [planned_value(service, day, series) for day in timeline]


def _realized_over(service: ServiceRecord, timeline: Sequence[date]) -> list[Decimal]:
    points = realized_points(service.events, _weights_of(service))
    return [point.percent for point in series_over(points, timeline)]


def _group_curves(
    services: Sequence[ServiceRecord],
    timeline: tuple[date, ...],
) -> ConsolidatedCurves:
    hours = [service.total_hours for service in services]
    planned_columns = [_planned_over(service, timeline) for service in services]
    realized_columns = [_realized_over(service, timeline) for service in services]

    planned: list[CurvePoint] = []
    realized: list[CurvePoint] = []
    for index, day in enumerate(timeline):
        planned.append(CurvePoint(
            day=day,
            percent=weighted_group_percent([column[index] for column in planned_columns], hours),
        ))
        realized.append(CurvePoint(
            day=day,
            percent=weighted_group_percent([column[index] for column in realized_columns], hours),
        ))
    return ConsolidatedCurves(
        timeline=timeline,
        planned_series=tuple(planned),
        realized_series=tuple(realized),
    )


@traced_engine("consolidated", "1.0", fingerprint_fields=("time_zone",))
def build_curves(
    services: Iterable[Any],
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
    timeline: Sequence[date] | None = None,
) -> ConsolidatedCurves:
    """
    Hours-weighted planned and realized series for a group of services.

    Args:
        services: ``ServiceRecord`` instances or raw service documents.
        time_zone: Zone used when normalizing raw documents.
        aliases: Field aliases used when normalizing raw documents.
        timeline: Explicit day axis (defaults to the services' own span).
    """
    records = tuple(
        service_from_raw(service, time_zone=time_zone, aliases=aliases)
        for service in services
    )
    axis = tuple(timeline) if timeline is not None else build_timeline(records)

    logger.info("curve_build_started", extra={
        "service_count": len(records),
        "weighted_count": sum(1 for s in records if s.is_weighted),
        "day_count": len(axis),
    })
    curves = _group_curves(records, axis)
    logger.info("curve_build_completed", extra={
        "day_count": len(axis),
        "first_day": axis[0] if axis else None,
        "last_day": axis[-1] if axis else None,
    })
    return curves


@traced_engine("service_curves", "1.0", fingerprint_fields=("time_zone",))
def service_curves(
    service: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> ConsolidatedCurves:
    """Planned and realized series of one service over its own range."""
    record = service_from_raw(service, time_zone=time_zone, aliases=aliases)
    axis = build_timeline((record,))
    planned = _planned_over(record, axis)
    realized = _realized_over(record, axis)
    return ConsolidatedCurves(
        timeline=axis,
        planned_series=tuple(CurvePoint(day=d, percent=p) for d, p in zip(axis, planned)),
        realized_series=tuple(CurvePoint(day=d, percent=r) for d, r in zip(axis, realized)),
    )


@traced_engine("package_curves", "1.0", fingerprint_fields=("time_zone",))
def build_package_curves(
    package: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> PackageCurves:
    """
    Package curve as the hours-weighted mean of its subpackages.

    Every subpackage is computed on the package-wide timeline so the
    per-day values line up.
    """
    record: Package = package_from_raw(package, time_zone=time_zone, aliases=aliases)
    axis = build_timeline(record.services)

    subpackages = tuple(
        SubpackageCurves(
            name=sub.name,
            total_hours=sub.total_hours,
            curves=_group_curves(sub.services, axis),
        )
        for sub in record.subpackages
    )
    hours = [sub.total_hours for sub in subpackages]

    planned: list[CurvePoint] = []
    realized: list[CurvePoint] = []
    for index, day in enumerate(axis):
        planned.append(CurvePoint(day=day, percent=weighted_group_percent(
            [sub.curves.planned_series[index].percent for sub in subpackages], hours,
        )))
        realized.append(CurvePoint(day=day, percent=weighted_group_percent(
            [sub.curves.realized_series[index].percent for sub in subpackages], hours,
        )))

    logger.info("package_curves_built", extra={
        "package_name": record.name,
        "subpackage_count": len(subpackages),
        "day_count": len(axis),
        "total_hours": record.total_hours,
    })
    return PackageCurves(
        name=record.name,
        curves=ConsolidatedCurves(
            timeline=axis,
            planned_series=tuple(planned),
            realized_series=tuple(realized),
        ),
        subpackages=subpackages,
    )


def merge_series(
    planned: Sequence[CurvePoint],
    realized: Sequence[CurvePoint],
) -> MergedCurve:
    """
    Merge two curves over the union of their days for charting.

    Each side keeps a running maximum and is carried across days where it
    has no point.  Values are rounded to two places.
    """
    planned_by_day = {point.day: clamp_percent(point.percent) for point in planned}
    realized_by_day = {point.day: clamp_percent(point.percent) for point in realized}
    labels = tuple(sorted(set(planned_by_day) | set(realized_by_day)))

    planned_acc = ZERO
    realized_acc = ZERO
    planned_values: list[Decimal] = []
    realized_values: list[Decimal] = []
    for day in labels:
        if day in planned_by_day:
            planned_acc = max(planned_acc, planned_by_day[day])
        if day in realized_by_day:
            realized_acc = max(realized_acc, realized_by_day[day])
        planned_values.append(round_percent(planned_acc))
        realized_values.append(round_percent(realized_acc))

    return MergedCurve(
        labels=labels,
        planned=tuple(planned_values),
        realized=tuple(realized_values),
    )
