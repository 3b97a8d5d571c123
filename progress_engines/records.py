"""
Module: progress_engines.records
Responsibility:
    Translate raw service and package documents into the kernel's
    ``ServiceRecord`` / ``Subpackage`` / ``Package`` records, resolving
    every field through an ``AliasTable``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - NULL_IS_NOT_EPOCH: unparseable schedule dates become None.
    - ZERO_HOURS_EXCLUSION: only strictly positive hours are kept.
    - A package with subpackages ignores any direct service list; a
      package without subpackages but with services becomes one unnamed
      subpackage.

Failure modes:
    - None.  Already-built records pass through unchanged; non-mapping
      entries are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, tzinfo
from decimal import Decimal
from typing import Any

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable, first_text, iter_present
from progress_kernel.domain.records import Package, ServiceRecord, Subpackage
from progress_kernel.domain.values import ZERO, parse_percent, positive_hours
from progress_kernel.logging_config import get_logger
from progress_engines.checklist import build_weight_map, checklist_items_from_raw
from progress_engines.events import collect_raw_events, normalize_events
from progress_engines.temporal import DEFAULT_TIME_ZONE, normalize_day
from progress_engines.tracer import traced_engine

logger = get_logger("engines.records")


def _first_list(raw: Mapping[str, Any], keys: tuple[str, ...]) -> list[Any] | None:
    for _, value in iter_present(raw, keys):
        if isinstance(value, (list, tuple)) and value:
            return list(value)
    return None


def _first_hours(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Decimal | None:
    for _, value in iter_present(raw, keys):
        hours = positive_hours(value)
        if hours is not None:
            return hours
    return None


def _first_day(raw: Mapping[str, Any], keys: tuple[str, ...], time_zone: str | tzinfo) -> date | None:
    for _, value in iter_present(raw, keys):
        day = normalize_day(value, time_zone)
        if day is not None:
            return day
    return None


def _daily_value(entry: Any, aliases: AliasTable) -> Decimal:
    if isinstance(entry, Mapping):
        for _, value in iter_present(entry, aliases.percent_keys):
            parsed = parse_percent(value)
            if parsed is not None:
                return parsed
        return ZERO
    return parse_percent(entry) or ZERO


def service_from_raw(
    raw: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> ServiceRecord:
    """Build a ``ServiceRecord`` (with normalized events) from a raw document."""
    if isinstance(raw, ServiceRecord):
        return raw

    service_id = first_text(raw, aliases.service_id_keys) or ""
    checklist = checklist_items_from_raw(_first_list(raw, aliases.checklist_keys) or (), aliases)
    weights = build_weight_map(checklist, aliases)

    daily = _first_list(raw, aliases.planned_daily_keys)
    events = normalize_events(
        collect_raw_events(raw, aliases),
        time_zone=time_zone,
        aliases=aliases,
        weights=None if weights.is_empty else weights,
    )

    service = ServiceRecord(
        service_id=service_id,
        total_hours=_first_hours(raw, aliases.hours_keys),
        planned_start=_first_day(raw, aliases.start_keys, time_zone),
        planned_end=_first_day(raw, aliases.end_keys, time_zone),
        planned_daily=tuple(_daily_value(v, aliases) for v in daily) if daily else None,
        checklist=checklist,
        events=events,
        description=first_text(raw, aliases.service_description_keys),
        status=first_text(raw, aliases.status_keys),
    )
    logger.debug("service_normalized", extra={
        "service_id": service.service_id,
        "has_valid_range": service.has_valid_range,
        "is_weighted": service.is_weighted,
        "event_count": len(events),
        "checklist_count": len(checklist),
    })
    return service


def _services_from(raw: Mapping[str, Any], time_zone: str | tzinfo, aliases: AliasTable) -> tuple[ServiceRecord, ...]:
    entries = _first_list(raw, aliases.service_list_keys) or ()
    return tuple(
        service_from_raw(entry, time_zone=time_zone, aliases=aliases)
        for entry in entries
        if isinstance(entry, (Mapping, ServiceRecord))
    )


def subpackage_from_raw(
    raw: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> Subpackage:
    if isinstance(raw, Subpackage):
        return raw
    return Subpackage(
        name=first_text(raw, aliases.name_keys) or "",
        services=_services_from(raw, time_zone, aliases),
    )


@traced_engine("package_records", "1.0", fingerprint_fields=("time_zone",))
def package_from_raw(
    raw: Any,
    *,
    time_zone: str | tzinfo = DEFAULT_TIME_ZONE,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> Package:
    """
    Build a ``Package`` from a raw document.

    Subpackages come from the first non-empty subpackage-list alias.
    Without any, a direct service list becomes a single unnamed
    subpackage.
    """
    if isinstance(raw, Package):
        return raw

    name = first_text(raw, aliases.name_keys) or ""
    raw_subpackages = [
        entry
        for entry in (_first_list(raw, aliases.subpackage_list_keys) or ())
        if isinstance(entry, (Mapping, Subpackage))
    ]

    if raw_subpackages:
        subpackages = tuple(
            subpackage_from_raw(entry, time_zone=time_zone, aliases=aliases)
            for entry in raw_subpackages
        )
    else:
        direct = _services_from(raw, time_zone, aliases)
        subpackages = (Subpackage(name="", services=direct),) if direct else ()

    logger.info("package_normalized", extra={
        "package_name": name,
        "subpackage_count": len(subpackages),
        "service_count": sum(len(sub.services) for sub in subpackages),
    })
    return Package(name=name, subpackages=subpackages)
