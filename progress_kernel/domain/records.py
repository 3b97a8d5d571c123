"""
Records -- Immutable domain records consumed and produced by the engines.

Responsibility:
    Canonical shapes for services, checklist items, progress events,
    curve points, groupings and indicators.  Raw upstream documents are
    translated into these records once (see ``progress_engines.records``
    and ``progress_engines.events``); calculators only ever see them.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - Calendar days are ``datetime.date``; instants are UTC-aware
      ``datetime``.
    - Percentages and hours are ``Decimal``.
    - Every record is frozen; "updating" one means building a new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from progress_kernel.domain.values import HUNDRED, ZERO

LOCAL_ID_PREFIX = "local-"


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    """A checklist line: its share of the service and its completion."""

    item_id: str
    weight: Decimal = ZERO
    progress: Decimal = ZERO
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ItemProgress:
    """A per-item completion value reported by a progress event."""

    item_id: str
    percent: Decimal


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """
    A single, normalized report of completion.

    ``timestamp`` is the exact instant used for same-day tie-breaks;
    ``day`` is the calendar-day bucket in the configured time zone.
    ``event_id`` is the persisted identity, when the upstream store
    minted one.  Ids prefixed with ``local-`` were minted client-side
    before persistence and do not count as persisted identity.
    """

    timestamp: datetime
    day: date
    percent: Decimal | None = None
    items: tuple[ItemProgress, ...] = ()
    author: str | None = None
    mode: str | None = None
    event_id: str | None = None
    created_at: datetime | None = None
    description: str | None = None

    @property
    def has_persisted_id(self) -> bool:
        return bool(self.event_id) and not str(self.event_id).startswith(LOCAL_ID_PREFIX)


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    """
    A maintenance service as seen by the engines.

    Contract:
        ``total_hours`` is the weight in every aggregation; None or a
        non-positive value means the service is left out of weighted
        aggregates.  ``planned_start``/``planned_end`` are inclusive
        calendar days.  ``planned_daily`` overrides linear interpolation
        only when its length equals ``day_count``.
    """

    service_id: str
    total_hours: Decimal | None = None
    planned_start: date | None = None
    planned_end: date | None = None
    planned_daily: tuple[Decimal, ...] | None = None
    checklist: tuple[ChecklistItem, ...] = ()
    events: tuple[ProgressEvent, ...] = ()
    description: str | None = None
    status: str | None = None

    @property
    def is_weighted(self) -> bool:
        return self.total_hours is not None and self.total_hours > ZERO

    @property
    def has_valid_range(self) -> bool:
        return (
            self.planned_start is not None
            and self.planned_end is not None
            and self.planned_end >= self.planned_start
        )

    @property
    def day_count(self) -> int:
        """Inclusive number of calendar days in the planned range (0 if invalid)."""
        if not self.has_valid_range:
            return 0
        return (self.planned_end - self.planned_start).days + 1

    @property
    def has_checklist(self) -> bool:
        return len(self.checklist) > 0


@dataclass(frozen=True, slots=True)
class Subpackage:
    """A named grouping of services. Its curves are always derived."""

    name: str
    services: tuple[ServiceRecord, ...] = ()

    @property
    def total_hours(self) -> Decimal:
        return sum(
            (s.total_hours for s in self.services if s.is_weighted),
            start=ZERO,
        )


@dataclass(frozen=True, slots=True)
class Package:
    """A named grouping of subpackages."""

    name: str
    subpackages: tuple[Subpackage, ...] = ()

    @property
    def services(self) -> tuple[ServiceRecord, ...]:
        return tuple(s for sub in self.subpackages for s in sub.services)

    @property
    def total_hours(self) -> Decimal:
        return sum((sub.total_hours for sub in self.subpackages), start=ZERO)


@dataclass(frozen=True, slots=True)
class CurvePoint:
    """One day of a curve."""

    day: date
    percent: Decimal


@dataclass(frozen=True, slots=True)
class Indicators:
    """Curve summary sampled at a reference day. Never persisted."""

    planned_to_date: Decimal
    realized: Decimal
    planned_total: Decimal = HUNDRED

    @property
    def delta(self) -> Decimal:
        """Realized minus planned-to-date; negative when behind schedule."""
        return self.realized - self.planned_to_date

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "planned_total": self.planned_total,
            "planned_to_date": self.planned_to_date,
            "realized": self.realized,
            "delta": self.delta,
        }


def utc_midnight(day: date) -> datetime:
    """The UTC-midnight instant representing a calendar day."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
