"""
Module: progress_engines.aggregation
Responsibility:
    Hours-weighted aggregation of per-service (or per-subpackage) values
    at a single day, and the shared day axis for a group of services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ZERO_HOURS_EXCLUSION: entries with hours <= 0 or missing hours
      contribute nothing, numerator and denominator alike.
    - PERCENT_BOUNDS on the aggregate.
    - Timeline bounds are collected independently: the earliest known
      start or end, to the latest known start or end.  Services without
      either bound do not move the bounds.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from progress_kernel.domain.records import ServiceRecord
from progress_kernel.domain.values import ZERO, clamp_percent
from progress_kernel.logging_config import get_logger
from progress_engines.temporal import day_range
from progress_engines.tracer import traced_engine

logger = get_logger("engines.aggregation")


def weighted_group_percent(
    values: Sequence[Decimal | None],
    hours: Sequence[Decimal | None],
) -> Decimal:
    """
    Sum(value * hours) / Sum(hours) over entries with positive hours.

    Returns 0 when no entry has positive hours.

    Raises:
        ValueError: When ``values`` and ``hours`` differ in length.
    """
    if len(values) != len(hours):
        raise ValueError(
            f"values and hours must align: {len(values)} != {len(hours)}"
        )

    numerator = ZERO
    denominator = ZERO
    for value, weight in zip(values, hours):
        if weight is None or weight <= ZERO:
            continue
        numerator += clamp_percent(value) * weight
        denominator += weight

    if denominator <= ZERO:
        return ZERO
    return clamp_percent(numerator / denominator)


@traced_engine("timeline", "1.0")
def build_timeline(services: Iterable[ServiceRecord]) -> tuple[date, ...]:
    """Every day from the earliest known bound to the latest, inclusive."""
    bounds: list[date] = []
    for service in services:
        if service.planned_start is not None:
            bounds.append(service.planned_start)
        if service.planned_end is not None:
            bounds.append(service.planned_end)

    if not bounds:
        logger.debug("timeline_empty", extra={"reason": "no_bounds"})
        return ()
    return day_range(min(bounds), max(bounds))
