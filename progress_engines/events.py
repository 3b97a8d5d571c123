"""
Module: progress_engines.events
Responsibility:
    Translate heterogeneous raw progress-event documents into
    ``ProgressEvent`` records.  This is the only place that knows how the
    upstream stores spell "percent", "worked day", "author" and so on;
    every spelling comes from an ``AliasTable``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - NULL_IS_NOT_EPOCH: an event whose day cannot be resolved is dropped
      (None), never placed on 1970-01-01.
    - PERCENT_BOUNDS: percent and per-item values are clamped.
    - DETERMINISM: an event with no usable timestamp is ordered by its
      position in the input (``sequence`` milliseconds past the day's UTC
      midnight), so input order is the tie-break.

Failure modes:
    - None.  Non-mapping entries and undated events are logged at DEBUG
      and skipped.

Percent resolution order:
    1. A non-empty per-item breakdown with checklist weights available is
       recomputed through ``weighted_progress``.
    2. Otherwise the first parseable direct percent alias.
    3. Otherwise the mean of the per-item breakdown, if any.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Any

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable, first_text, iter_present
from progress_kernel.domain.records import ItemProgress, ProgressEvent, utc_midnight
from progress_kernel.domain.values import parse_percent
from progress_kernel.logging_config import get_logger
from progress_engines.checklist import WeightMap, weighted_progress
from progress_engines.temporal import DEFAULT_TIME_ZONE, normalize_day, resolve_instant
from progress_engines.tracer import traced_engine

logger = get_logger("engines.events")


def _first_percent(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Decimal | None:
    for _, value in iter_present(raw, keys):
        parsed = parse_percent(value)
        if parsed is not None:
            return parsed
    return None


def _first_day(raw: Mapping[str, Any], keys: tuple[str, ...], time_zone: str | tzinfo) -> date | None:
    for _, value in iter_present(raw, keys):
        day = normalize_day(value, time_zone)
        if day is not None:
            return day
    return None


def _first_instant(raw: Mapping[str, Any], keys: tuple[str, ...]) -> datetime | None:
    for _, value in iter_present(raw, keys):
        instant = resolve_instant(value)
        if instant is not None:
            return instant
    return None


def extract_items(raw: Mapping[str, Any], aliases: AliasTable = DEFAULT_ALIASES) -> tuple[ItemProgress, ...]:
    """Per-item breakdown from the first non-empty item-list alias."""
    for _, entries in iter_present(raw, aliases.item_list_keys):
        if not isinstance(entries, (list, tuple)) or not entries:
            continue
        items: list[ItemProgress] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            item_id = first_text(entry, aliases.item_id_keys)
            percent = _first_percent(entry, aliases.item_percent_keys)
            if item_id is None or percent is None:
                continue
            items.append(ItemProgress(item_id=item_id, percent=percent))
        if items:
            return tuple(items)
    return ()


def _resolve_percent(
    direct: Decimal | None,
    items: tuple[ItemProgress, ...],
    weights: WeightMap | None,
) -> Decimal | None:
    if items and weights is not None and not weights.is_empty:
        return weighted_progress({item.item_id: item.percent for item in items}, weights)
    if direct is not None:
        return direct
    if items:
        return sum((item.percent for item in items), start=Decimal(0)) / len(items)
    return None


def normalize_event(
    raw: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
    weights: WeightMap | None = None,
    sequence: int = 0,
) -> ProgressEvent | None:
    """
    Normalize one raw progress-event document.

    Args:
        raw: The upstream document (a mapping).
        time_zone: Zone used to bucket instants into calendar days.
        aliases: Field-name aliases to consult.
        weights: Checklist weights of the owning service, if known.
        sequence: Position in the input list; orders undated events.

    Returns:
        The event, or None when it has no resolvable day.
    """
    if not isinstance(raw, Mapping):
        logger.debug("event_skipped_not_mapping", extra={"value_type": type(raw).__name__})
        return None

    day_keys = aliases.worked_day_keys + aliases.audit_submitted_keys + aliases.fallback_date_keys
    day = _first_day(raw, day_keys, time_zone)
    if day is None:
        logger.debug("event_dropped_no_day", extra={"sequence": sequence})
        return None

    timestamp = _first_instant(raw, aliases.timestamp_keys)
    if timestamp is None:
        timestamp = utc_midnight(day) + timedelta(milliseconds=sequence)

    items = extract_items(raw, aliases)
    percent = _resolve_percent(_first_percent(raw, aliases.percent_keys), items, weights)

    author = first_text(raw, aliases.author_keys)
    return ProgressEvent(
        timestamp=timestamp,
        day=day,
        percent=percent,
        items=items,
        author=author.lower() if author else None,
        mode=first_text(raw, aliases.mode_keys),
        event_id=first_text(raw, aliases.event_id_keys),
        created_at=_first_instant(raw, aliases.created_at_keys),
        description=first_text(raw, aliases.description_keys),
    )


def collect_raw_events(
    raw_service: Mapping[str, Any],
    aliases: AliasTable = DEFAULT_ALIASES,
) -> tuple[Mapping[str, Any], ...]:
    """Gather raw event documents from every update-list alias of a service."""
    collected: list[Mapping[str, Any]] = []
    for _, entries in iter_present(raw_service, aliases.update_list_keys):
        if isinstance(entries, (list, tuple)):
            collected.extend(entry for entry in entries if isinstance(entry, Mapping))
    return tuple(collected)


@traced_engine("events", "1.0", fingerprint_fields=("time_zone",))
def normalize_events(
    raw_events: Iterable[Any],
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
    weights: WeightMap | None = None,
) -> tuple[ProgressEvent, ...]:
    """Normalize a list of raw events, dropping the undated ones."""
    raw_list = list(raw_events)
    logger.info("event_normalization_started", extra={"raw_count": len(raw_list)})

    events: list[ProgressEvent] = []
    for sequence, raw in enumerate(raw_list):
        event = normalize_event(
            raw,
            time_zone=time_zone,
            aliases=aliases,
            weights=weights,
            sequence=sequence,
        )
        if event is not None:
            events.append(event)

    logger.info("event_normalization_completed", extra={
        "raw_count": len(raw_list),
        "event_count": len(events),
        "dropped_count": len(raw_list) - len(events),
    })
    return tuple(events)
