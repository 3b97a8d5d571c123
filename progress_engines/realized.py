"""
Module: progress_engines.realized
Responsibility:
    Realized completion of a single service from its progress events,
    forward-filled between report days.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Rules:
    - Events are folded in timestamp order.  Per day, the latest event by
      timestamp sets the value.
    - With checklist weights, per-item values carry forward across events
      and every item-bearing event is re-valued from the accumulated item
      state.  Events with neither percent nor items are ignored.
    - The value on a day is the last point on or before it; 0 before the
      first point.

Invariants enforced:
    - PERCENT_BOUNDS on every point.
    - The curve is NOT forced monotonic.  A correction may lower it;
      smoothing is a display step (see ``consolidated.monotonic_clamp``).
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from progress_kernel.domain.records import CurvePoint, ProgressEvent
from progress_kernel.domain.values import ZERO, clamp_percent, round_percent
from progress_kernel.logging_config import get_logger
from progress_engines.checklist import WeightMap, weighted_progress
from progress_engines.tracer import traced_engine

logger = get_logger("engines.realized")


@dataclass(frozen=True)
class CurrentProgress:
    """Latest realized value and when it was last reported."""

    percent: Decimal
    updated_at: datetime | None = None


def _fold(
    events: Iterable[ProgressEvent],
    weights: WeightMap | None,
) -> list[tuple[ProgressEvent, Decimal]]:
    """Timestamp-ordered (event, value) pairs for events that carry a value."""
    use_items = weights is not None and not weights.is_empty
    item_state: dict[str, Decimal] = {}
    valued: list[tuple[ProgressEvent, Decimal]] = []

    for event in sorted(events, key=lambda e: e.timestamp):
        if use_items and event.items:
            for item in event.items:
                item_state[item.item_id] = clamp_percent(item.percent)
            valued.append((event, weighted_progress(item_state, weights)))
        elif event.percent is not None:
            valued.append((event, clamp_percent(event.percent)))
        elif event.items:
            mean = sum((clamp_percent(i.percent) for i in event.items), start=ZERO) / len(event.items)
            valued.append((event, clamp_percent(mean)))
    return valued


def realized_points(
    events: Iterable[ProgressEvent],
    weights: WeightMap | None = None,
) -> tuple[CurvePoint, ...]:
    """One point per reported day, ascending."""
    per_day: dict[date, Decimal] = {}
    for event, value in _fold(events, weights):
        per_day[event.day] = value
    return tuple(CurvePoint(day=day, percent=per_day[day]) for day in sorted(per_day))


def forward_fill(points: Sequence[CurvePoint], reference_day: date) -> Decimal:
    """Value of the last point on or before ``reference_day``; 0 if none."""
    days = [point.day for point in points]
    index = bisect_right(days, reference_day) - 1
    if index < 0:
        return ZERO
    return points[index].percent


@traced_engine("realized", "1.0", fingerprint_fields=("events", "reference_day"))
def realized_percent(
    events: Iterable[ProgressEvent],
    reference_day: date,
    weights: WeightMap | None = None,
) -> Decimal:
    """Realized completion on ``reference_day``."""
    return forward_fill(realized_points(events, weights), reference_day)


def series_over(points: Sequence[CurvePoint], timeline: Iterable[date]) -> tuple[CurvePoint, ...]:
    """Forward-fill ``points`` across an ascending timeline in one pass."""
    result: list[CurvePoint] = []
    index = 0
    current = ZERO
    for day in timeline:
        while index < len(points) and points[index].day <= day:
            current = points[index].percent
            index += 1
        result.append(CurvePoint(day=day, percent=current))
    return tuple(result)


@traced_engine("realized_series", "1.0", fingerprint_fields=("timeline",))
def realized_series(
    events: Iterable[ProgressEvent],
    timeline: Iterable[date],
    weights: WeightMap | None = None,
) -> tuple[CurvePoint, ...]:
    """Forward-filled realized values over a whole timeline."""
    return series_over(realized_points(events, weights), timeline)


@traced_engine("current_progress", "1.0")
def current_progress(
    events: Iterable[ProgressEvent],
    weights: WeightMap | None = None,
) -> CurrentProgress:
    """Latest folded value (rounded to 2 places) and the last event timestamp."""
    event_list = list(events)
    if not event_list:
        return CurrentProgress(percent=ZERO)

    valued = _fold(event_list, weights)
    last_timestamp = max(event.timestamp for event in event_list)
    percent = round_percent(valued[-1][1]) if valued else ZERO

    logger.debug("current_progress_resolved", extra={
        "event_count": len(event_list),
        "valued_count": len(valued),
        "percent": str(percent),
    })
    return CurrentProgress(percent=percent, updated_at=last_timestamp)
