"""
Module: progress_engines.temporal
Responsibility:
    Turn every date-like shape the upstream stores produce into either an
    exact UTC instant or a calendar day bucketed in a target time zone.

    The accepted shapes form a closed set of tagged variants, resolved
    once by ``classify_timestamp``:

        EpochMillis      numeric milliseconds since the epoch
        IsoString        ISO-8601 date or date-time text
        DayFirstString   ``dd/mm/yyyy`` / ``dd-mm-yy`` locale text
        SecondsNanos     ``{seconds, nanoseconds}`` records (leading
                         underscore spellings too, keys or attributes)
        Accessor         objects exposing ``toMillis``/``to_millis`` or
                         ``toDate``/``to_datetime``
        Instant          ``datetime``
        CalendarDate     ``date``

    Downstream calculators only ever see ``datetime.date``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - NULL_IS_NOT_EPOCH: anything unparseable resolves to None, never to
      1970-01-01.
    - Day truncation happens in the target zone, not UTC.  Inputs that
      already denote a calendar day (a ``date``, a date-only ISO string, a
      day-first string) are returned as-is and never shifted.
    - Naive date-times are read as UTC.

Failure modes:
    - InvalidTimeZoneError from ``zone_for`` when the zone name is
      unknown.  That is a configuration fault, not input leniency.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Any, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from progress_kernel.exceptions import InvalidTimeZoneError
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.temporal")

DEFAULT_TIME_ZONE = "America/Sao_Paulo"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_DAY_FIRST = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})$")
_ISO_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Tagged variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EpochMillis:
    millis: Decimal


@dataclass(frozen=True)
class IsoString:
    text: str

    @property
    def date_only(self) -> bool:
        return _ISO_DATE_ONLY.match(self.text) is not None


@dataclass(frozen=True)
class DayFirstString:
    text: str


@dataclass(frozen=True)
class SecondsNanos:
    seconds: Decimal
    nanoseconds: Decimal


@dataclass(frozen=True)
class Accessor:
    """An object that converts itself; ``kind`` is "millis" or "datetime"."""

    source: Any
    method: str
    kind: str


@dataclass(frozen=True)
class Instant:
    value: datetime


@dataclass(frozen=True)
class CalendarDate:
    value: date


TimestampValue = Union[
    EpochMillis,
    IsoString,
    DayFirstString,
    SecondsNanos,
    Accessor,
    Instant,
    CalendarDate,
]

_MILLIS_ACCESSORS = ("toMillis", "to_millis")
_DATETIME_ACCESSORS = ("toDate", "to_datetime")


def _finite(value: Any) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    return result if result.is_finite() else None


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _seconds_nanos(raw: Any) -> SecondsNanos | None:
    for seconds_key, nanos_key in (("seconds", "nanoseconds"), ("_seconds", "_nanoseconds")):
        seconds = _finite(_field(raw, seconds_key))
        if seconds is not None:
            nanos = _finite(_field(raw, nanos_key)) or Decimal(0)
            return SecondsNanos(seconds, nanos)
    return None


def classify_timestamp(value: Any) -> TimestampValue | None:
    """Resolve a raw value to its tagged variant, or None if no shape fits."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return Instant(value)
    if isinstance(value, date):
        return CalendarDate(value)
    if isinstance(value, (int, float, Decimal)):
        millis = _finite(value)
        return EpochMillis(millis) if millis is not None else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _DAY_FIRST.match(text):
            return DayFirstString(text)
        return IsoString(text)

    record = _seconds_nanos(value)
    if record is not None:
        return record

    for method in _MILLIS_ACCESSORS:
        if callable(getattr(value, method, None)):
            return Accessor(value, method, "millis")
    for method in _DATETIME_ACCESSORS:
        if callable(getattr(value, method, None)):
            return Accessor(value, method, "datetime")
    return None


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def zone_for(time_zone: str | tzinfo) -> tzinfo:
    """Resolve an IANA zone name (or pass through a tzinfo)."""
    if isinstance(time_zone, tzinfo):
        return time_zone
    try:
        return ZoneInfo(str(time_zone))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimeZoneError(str(time_zone)) from exc


def parse_day_first(text: str) -> date | None:
    """
    Parse ``dd/mm/yyyy`` style text.

    Two-digit years below 50 land in the 2000s, the rest in the 1900s.
    Impossible dates (31/02) yield None.
    """
    match = _DAY_FIRST.match(text.strip())
    if match is None:
        return None
    day, month, year_text = match.groups()
    year = int(year_text)
    if len(year_text) == 2:
        year += 2000 if year < 50 else 1900
    try:
        return date(year, int(month), int(day))
    except ValueError:
        return None


def _parse_iso(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _from_millis(millis: Decimal) -> datetime | None:
    try:
        return _EPOCH + timedelta(milliseconds=float(millis))
    except OverflowError:
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def _is_calendar(variant: TimestampValue) -> bool:
    if isinstance(variant, (CalendarDate, DayFirstString)):
        return True
    return isinstance(variant, IsoString) and variant.date_only


def _calendar_day_of(variant: TimestampValue) -> date | None:
    """The day a date-only variant denotes, or None for instant variants."""
    if isinstance(variant, CalendarDate):
        return variant.value
    if isinstance(variant, DayFirstString):
        return parse_day_first(variant.text)
    if isinstance(variant, IsoString) and variant.date_only:
        try:
            return date.fromisoformat(variant.text)
        except ValueError:
            return None
    return None


def _instant_of(variant: TimestampValue) -> datetime | None:
    if isinstance(variant, Instant):
        return _as_utc(variant.value)
    if isinstance(variant, EpochMillis):
        return _from_millis(variant.millis)
    if isinstance(variant, SecondsNanos):
        millis = variant.seconds * 1000 + variant.nanoseconds / Decimal(1_000_000)
        return _from_millis(millis)
    if isinstance(variant, IsoString):
        parsed = _parse_iso(variant.text)
        return _as_utc(parsed) if parsed is not None else None
    if isinstance(variant, Accessor):
        produced = getattr(variant.source, variant.method)()
        if variant.kind == "millis":
            millis = _finite(produced)
            return _from_millis(millis) if millis is not None else None
        if isinstance(produced, datetime):
            return _as_utc(produced)
        return None
    return None


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def resolve_instant(value: Any) -> datetime | None:
    """
    Exact UTC instant of a date-like value, or None.

    Date-only inputs resolve to UTC midnight of the day they denote.
    """
    variant = classify_timestamp(value)
    if variant is None:
        return None
    if _is_calendar(variant):
        day = _calendar_day_of(variant)
        return _midnight(day) if day is not None else None
    return _instant_of(variant)


def normalize_day(value: Any, time_zone: str | tzinfo = DEFAULT_TIME_ZONE) -> date | None:
    """
    Calendar day of a date-like value in ``time_zone``, or None.

    Args:
        value: Any of the shapes listed in the module docstring.
        time_zone: IANA zone name or tzinfo used to truncate instants.
    """
    variant = classify_timestamp(value)
    if variant is None:
        logger.debug("timestamp_unclassified", extra={"value_type": type(value).__name__})
        return None

    if _is_calendar(variant):
        day = _calendar_day_of(variant)
        if day is None:
            logger.debug("calendar_day_unparseable", extra={"value": str(value)})
        return day

    instant = _instant_of(variant)
    if instant is None:
        logger.debug("instant_unparseable", extra={"variant": type(variant).__name__})
        return None
    return instant.astimezone(zone_for(time_zone)).date()


def days_between(start: date, end: date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if reversed)."""
    return (end - start).days


def day_range(start: date, end: date) -> tuple[date, ...]:
    """Every day from ``start`` to ``end`` inclusive, ascending. Empty if reversed."""
    count = days_between(start, end)
    if count < 0:
        return ()
    return tuple(start + timedelta(days=offset) for offset in range(count + 1))
