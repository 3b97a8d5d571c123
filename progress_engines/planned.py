"""
Module: progress_engines.planned
Responsibility:
    Planned completion percentage of a single service at any calendar
    day, from its schedule range or an explicit per-day plan.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The reference day is always a parameter; the clock is never read.

Rules:
    - Explicit daily series whose length equals the inclusive day count
      of [start, end]: sanitized (clamped, raised to be non-decreasing,
      last value forced to 100) and looked up by day offset.  0 before
      start, 100 after end.
    - Otherwise linear: 0 on or before start, 100 on or after end, else
      elapsed / max(1, end - start) * 100.
    - Missing or reversed range, or no positive hours: 0 for every day.

Invariants enforced:
    - PERCENT_BOUNDS on every returned value.
    - A sanitized series is non-decreasing and ends at exactly 100.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from progress_kernel.domain.records import CurvePoint, ServiceRecord
from progress_kernel.domain.values import HUNDRED, ZERO, clamp_percent, to_decimal
from progress_kernel.logging_config import get_logger
from progress_engines.temporal import day_range, days_between
from progress_engines.tracer import traced_engine

logger = get_logger("engines.planned")


def sanitize_daily_series(values: Iterable[Any]) -> tuple[Decimal, ...]:
    """
    Clamp each value, raise any value below its predecessor, and force
    the final value to 100.

    ``[10, 30, 30, 20, 90]`` becomes ``[10, 30, 30, 30, 100]``.
    """
    sanitized: list[Decimal] = []
    running = ZERO
    for value in values:
        current = clamp_percent(to_decimal(value))
        running = max(running, current)
        sanitized.append(running)
    if sanitized:
        sanitized[-1] = HUNDRED
    return tuple(sanitized)


def _usable_series(service: ServiceRecord) -> tuple[Decimal, ...] | None:
    series = service.planned_daily
    if not series or len(series) != service.day_count:
        return None
    return sanitize_daily_series(series)


def _linear(service: ServiceRecord, reference_day: date) -> Decimal:
    start, end = service.planned_start, service.planned_end
    if reference_day <= start:
        return ZERO
    if reference_day >= end:
        return HUNDRED
    total_days = max(1, days_between(start, end))
    elapsed = days_between(start, reference_day)
    return clamp_percent(Decimal(elapsed) / Decimal(total_days) * HUNDRED)


def _from_series(service: ServiceRecord, series: tuple[Decimal, ...], reference_day: date) -> Decimal:
    if reference_day < service.planned_start:
        return ZERO
    if reference_day > service.planned_end:
        return HUNDRED
    return series[days_between(service.planned_start, reference_day)]


def planned_value(
    service: ServiceRecord,
    reference_day: date,
    series: tuple[Decimal, ...] | None = None,
) -> Decimal:
    """Untraced planned lookup used inside curve builders."""
    if not service.has_valid_range or not service.is_weighted:
        return ZERO
    if series is None:
        series = _usable_series(service)
    if series is not None:
        return _from_series(service, series, reference_day)
    return _linear(service, reference_day)


@traced_engine("planned", "1.0", fingerprint_fields=("service", "reference_day"))
def planned_percent(service: ServiceRecord, reference_day: date) -> Decimal:
    """Planned completion of ``service`` on ``reference_day``."""
    return planned_value(service, reference_day)


@traced_engine("planned_series", "1.0", fingerprint_fields=("service",))
def planned_series(service: ServiceRecord) -> tuple[CurvePoint, ...]:
    """Per-day planned curve over the service's own range (empty if invalid)."""
    if not service.has_valid_range:
        logger.debug("planned_series_skipped", extra={
            "service_id": service.service_id,
            "reason": "invalid_range",
        })
        return ()

    series = _usable_series(service)
    points = tuple(
        CurvePoint(day=day, percent=planned_value(service, day, series))
        for day in day_range(service.planned_start, service.planned_end)
    )
    logger.debug("planned_series_built", extra={
        "service_id": service.service_id,
        "point_count": len(points),
        "explicit_series": series is not None,
    })
    return points
