"""
Module: progress_engines.lifecycle
Responsibility:
    Helpers for the service lifecycle around completion: which progress
    value to remember when a service is concluded, which to restore when
    it is reopened, and how raw status labels map onto a closed set.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - PERCENT_BOUNDS: every returned percentage is a whole number in
      [0, 100].
    - A displayed status is COMPLETED whenever realized progress has
      reached 100, whatever the stored label says.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from progress_kernel.domain.values import HUNDRED, clamp_percent, to_decimal


class ServiceStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    COMPLETED = "completed"
    CLOSED = "closed"


_STATUS_SPELLINGS: dict[str, ServiceStatus] = {
    "aberto": ServiceStatus.OPEN,
    "open": ServiceStatus.OPEN,
    "pendente": ServiceStatus.PENDING,
    "pending": ServiceStatus.PENDING,
    "concluido": ServiceStatus.COMPLETED,
    "concluído": ServiceStatus.COMPLETED,
    "completed": ServiceStatus.COMPLETED,
    "encerrado": ServiceStatus.CLOSED,
    "closed": ServiceStatus.CLOSED,
}


def clamp_progress(value: Any) -> int:
    """Round half-up and clamp to [0, 100]; non-numeric input is 0."""
    parsed = to_decimal(value)
    if parsed is None:
        return 0
    return int(clamp_percent(parsed).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _first_below_complete(candidates: Iterable[Any]) -> int:
    for candidate in candidates:
        if to_decimal(candidate) is None:
            continue
        clamped = clamp_progress(candidate)
        if clamped < HUNDRED:
            return clamped
    return 0


def snapshot_before_conclusion(current: Any, previous: Any = None) -> int:
    """Progress to remember when a service is concluded (first value below 100)."""
    return _first_below_complete((current, previous))


def resolve_reopened_progress(
    requested: Any = None,
    previous_stored: Any = None,
    history: Iterable[Any] = (),
    current: Any = None,
) -> int:
    """
    Progress to restore when a concluded service is reopened.

    Candidates in order: the requested value, the stored pre-conclusion
    snapshot, the history (most relevant first), then the current value.
    The first one below 100 wins; 0 when all are complete or missing.
    """
    return _first_below_complete((requested, previous_stored, *history, current))


def normalize_status(raw: Any) -> ServiceStatus:
    """Map a stored status label onto ``ServiceStatus`` (unknown means OPEN)."""
    key = str(raw if raw is not None else "").strip().lower()
    return _STATUS_SPELLINGS.get(key, ServiceStatus.OPEN)


def resolve_displayed_status(status: Any, realized_percent: Any = None) -> ServiceStatus:
    """The status to show: COMPLETED once realized progress reaches 100."""
    realized = to_decimal(realized_percent)
    if realized is not None and realized >= HUNDRED:
        return ServiceStatus.COMPLETED
    return normalize_status(status)
