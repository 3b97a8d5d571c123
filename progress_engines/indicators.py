"""
Module: progress_engines.indicators
Responsibility:
    Sample curves at a reference day into summary indicators, and build
    per-service planned/realized rows for a group.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Sampling is "last point on or before"; a day before the first
      point takes the first point's value; an empty series is 0.
    - ``delta`` may be negative (behind schedule).
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, tzinfo
from decimal import Decimal
from typing import Any

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable
from progress_kernel.domain.records import CurvePoint, Indicators
from progress_kernel.domain.values import ZERO, clamp_percent
from progress_kernel.logging_config import get_logger
from progress_engines.checklist import build_weight_map
from progress_engines.planned import planned_value
from progress_engines.realized import forward_fill, realized_points
from progress_engines.records import service_from_raw
from progress_engines.temporal import DEFAULT_TIME_ZONE
from progress_engines.tracer import traced_engine

logger = get_logger("engines.indicators")


def sample_series(series: Sequence[CurvePoint], reference_day: date) -> Decimal:
    """Value of ``series`` at ``reference_day``."""
    if not series:
        return ZERO
    index = bisect_right([point.day for point in series], reference_day) - 1
    if index < 0:
        return clamp_percent(series[0].percent)
    return clamp_percent(series[index].percent)


@traced_engine("indicators", "1.0", fingerprint_fields=("reference_day",))
def indicators(
    planned_series: Sequence[CurvePoint],
    realized_series: Sequence[CurvePoint],
    reference_day: date,
) -> Indicators:
    """Planned-to-date, realized and delta at ``reference_day``."""
    result = Indicators(
        planned_to_date=sample_series(planned_series, reference_day),
        realized=sample_series(realized_series, reference_day),
    )
    logger.info("indicators_computed", extra={
        "reference_day": reference_day,
        "planned_to_date": result.planned_to_date,
        "realized": result.realized,
        "delta": result.delta,
    })
    return result


@dataclass(frozen=True)
class ServiceProgressSummary:
    """One service's planned and realized completion at a reference day."""

    service_id: str
    description: str | None
    total_hours: Decimal | None
    planned: Decimal
    realized: Decimal

    @property
    def delta(self) -> Decimal:
        return self.realized - self.planned


@traced_engine("service_summaries", "1.0", fingerprint_fields=("reference_day", "time_zone"))
def summarize_services(
    services: Iterable[Any],
    reference_day: date,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> tuple[ServiceProgressSummary, ...]:
    """Per-service planned/realized rows, in input order."""
    rows: list[ServiceProgressSummary] = []
    for raw in services:
        service = service_from_raw(raw, time_zone=time_zone, aliases=aliases)
        weights = build_weight_map(service.checklist)
        points = realized_points(service.events, None if weights.is_empty else weights)
        rows.append(ServiceProgressSummary(
            service_id=service.service_id,
            description=service.description,
            total_hours=service.total_hours,
            planned=planned_value(service, reference_day),
            realized=forward_fill(points, reference_day),
        ))
    return tuple(rows)
