"""
Module: progress_engines.dedupe
Responsibility:
    Collapse logically duplicate progress events.  The same user action
    can be recorded more than once (client retry, submission through two
    channels) and not every copy carries a persisted identity.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Keying:
    - Persisted id (not ``local-`` prefixed): ``id:<event_id>``.
    - Otherwise a synthetic fingerprint::

          fallback:<mode>:<author>:<minute bucket>:<percent 1dp>:<description[:24]>

      Missing mode is ``manual``, missing author ``anonymous``, missing
      description ``no-description``.  The bucket comes from
      ``created_at``, else ``timestamp``.
    - A persisted-id event also claims its own fingerprint, so a
      synthetic copy of the same action folds into it whichever arrives
      first.  When two persisted ids share a fingerprint, the first one
      keeps it.

Merge rule on collision:
    Persisted id beats none.  Otherwise the later ``created_at`` wins.
    On a tie the first-merged event is kept and the second overwrites
    only the fields it actually carries.

Invariants enforced:
    - DEDUPE_IDEMPOTENCE: ``dedupe(dedupe(x)) == dedupe(x)``.
    - PERCENT_BOUNDS: a reported percent is clamped before keying.  A
      missing percent stays missing in the output and keys as 0.
    - Output sorted by ``created_at`` descending (missing sorts oldest),
      stable for ties.

Accepted limitation:
    The fingerprint is a heuristic.  Two genuinely distinct reports by the
    same author, with the same percent and description, inside the same
    minute collapse into one.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from progress_kernel.domain.records import ProgressEvent
from progress_kernel.domain.values import clamp_percent
from progress_kernel.logging_config import get_logger
from progress_engines.tracer import traced_engine

logger = get_logger("engines.dedupe")

DEFAULT_MODE = "manual"
DEFAULT_AUTHOR = "anonymous"
DEFAULT_DESCRIPTION = "no-description"
DESCRIPTION_PREFIX_LENGTH = 24

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_-]", re.IGNORECASE)
_OLDEST = datetime.min.replace(tzinfo=UTC)
_ONE_DECIMAL = Decimal("0.1")
_MERGE_FIELDS = tuple(f.name for f in dataclasses.fields(ProgressEvent))


@dataclass(frozen=True)
class DedupeResult:
    """Deduplicated events plus the number of collapsed duplicates."""

    events: tuple[ProgressEvent, ...]
    duplicates: int = 0


def _sanitize(part: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", part)


def _minute_bucket(event: ProgressEvent) -> int:
    source = event.created_at or event.timestamp
    if source is None:
        return 0
    millis = int(source.timestamp() * 1000)
    return millis // 60_000


def _with_normalized_percent(event: ProgressEvent) -> ProgressEvent:
    if event.percent is None:
        return event
    percent = clamp_percent(event.percent)
    if percent == event.percent:
        return event
    return dataclasses.replace(event, percent=percent)


def stable_event_key(event: ProgressEvent) -> str:
    """Dedupe key: the persisted id, or the synthetic fingerprint."""
    if event.has_persisted_id:
        return f"id:{event.event_id}"
    return fingerprint(event)


def fingerprint(event: ProgressEvent) -> str:
    """The synthetic key, regardless of identity."""
    mode = (event.mode or DEFAULT_MODE).lower()
    author = (event.author or DEFAULT_AUTHOR).lower()
    description = (event.description or DEFAULT_DESCRIPTION).lower()
    percent = clamp_percent(event.percent).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    parts = (
        "fallback",
        _sanitize(mode),
        _sanitize(author),
        str(_minute_bucket(event)),
        f"{percent:.1f}",
        _sanitize(description[:DESCRIPTION_PREFIX_LENGTH]),
    )
    return ":".join(parts)


def _overlay(base: ProgressEvent, winner: ProgressEvent) -> ProgressEvent:
    """``base`` with every field ``winner`` actually carries copied over."""
    changes = {}
    for name in _MERGE_FIELDS:
        value = getattr(winner, name)
        if value is None or value == ():
            continue
        changes[name] = value
    return dataclasses.replace(base, **changes)


def _created(event: ProgressEvent) -> datetime:
    return event.created_at or _OLDEST


def merge_events(current: ProgressEvent, incoming: ProgressEvent) -> ProgressEvent:
    """Merge two events that share a key."""
    if incoming.has_persisted_id and not current.has_persisted_id:
        return _overlay(current, incoming)
    if current.has_persisted_id and not incoming.has_persisted_id:
        return _overlay(incoming, current)
    if _created(current) > _created(incoming):
        return _overlay(incoming, current)
    return _overlay(current, incoming)


@traced_engine("dedupe", "1.0")
def dedupe_detailed(events: Iterable[ProgressEvent]) -> DedupeResult:
    """Deduplicate ``events`` and report how many copies were collapsed."""
    groups: dict[str, ProgressEvent] = {}
    claimed: dict[str, str] = {}
    duplicates = 0
    total = 0

    for raw_event in events:
        total += 1
        event = _with_normalized_percent(raw_event)
        fp = fingerprint(event)

        if event.has_persisted_id:
            key = f"id:{event.event_id}"
            if key in groups:
                groups[key] = merge_events(groups[key], event)
                duplicates += 1
                continue
            owner = claimed.get(fp)
            if owner is not None and not owner.startswith("id:"):
                groups[key] = merge_events(groups.pop(owner), event)
                claimed[fp] = key
                duplicates += 1
                continue
            groups[key] = event
            claimed.setdefault(fp, key)
            continue

        key = claimed.get(fp, fp)
        if key in groups:
            groups[key] = merge_events(groups[key], event)
            duplicates += 1
        else:
            groups[key] = event
            claimed[fp] = key

    ordered = tuple(sorted(groups.values(), key=_created, reverse=True))
    if duplicates:
        logger.info("updates_deduplicated", extra={
            "duplicates": duplicates,
            "total": len(ordered),
        })
    logger.debug("dedupe_completed", extra={"input_count": total, "output_count": len(ordered)})
    return DedupeResult(events=ordered, duplicates=duplicates)


def dedupe(events: Iterable[ProgressEvent]) -> tuple[ProgressEvent, ...]:
    """Deduplicated events, newest ``created_at`` first."""
    return dedupe_detailed(events).events


def merge_and_dedupe(
    previous: Iterable[ProgressEvent],
    incoming: Iterable[ProgressEvent],
) -> DedupeResult:
    """Fold freshly received events into a known list (incoming first)."""
    return dedupe_detailed((*incoming, *previous))
