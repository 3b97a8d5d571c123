"""
Module: progress_engines.checklist
Responsibility:
    Build an id -> weight map from a service's checklist and compute the
    checklist-derived completion percentage from per-item progress.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - PERCENT_BOUNDS: item weights, item progress and the result are all
      clamped to [0, 100].
    - A zero total weight falls back to the arithmetic mean of whatever
      progress values are available (0 when there are none).

Failure modes:
    - None.  Items without an id are skipped; unparseable numbers count
      as 0.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable, first_text, iter_present
from progress_kernel.domain.records import ChecklistItem
from progress_kernel.domain.values import ZERO, clamp_percent, parse_percent
from progress_kernel.logging_config import get_logger
from progress_engines.tracer import traced_engine

logger = get_logger("engines.checklist")


@dataclass(frozen=True)
class WeightMap:
    """
    Checklist weights keyed by item id.

    Contract:
        ``total_weight`` is the sum of ``weights``.  Weights need not add
        up to 100; enforcing that is the checklist editor's job.
    """

    weights: dict[str, Decimal] = field(default_factory=dict)
    total_weight: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return not self.weights


def _first_percent(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Decimal | None:
    for _, value in iter_present(raw, keys):
        parsed = parse_percent(value)
        if parsed is not None:
            return parsed
    return None


def checklist_item_from_raw(
    raw: Any,
    aliases: AliasTable = DEFAULT_ALIASES,
) -> ChecklistItem | None:
    """Translate a raw checklist entry; None when it carries no id."""
    if isinstance(raw, ChecklistItem):
        return raw
    if not isinstance(raw, Mapping):
        return None
    item_id = first_text(raw, aliases.item_id_keys)
    if item_id is None:
        return None
    return ChecklistItem(
        item_id=item_id,
        weight=_first_percent(raw, aliases.weight_keys) or ZERO,
        progress=_first_percent(raw, aliases.checklist_progress_keys) or ZERO,
        description=first_text(raw, aliases.service_description_keys),
    )


def checklist_items_from_raw(
    raw_items: Iterable[Any],
    aliases: AliasTable = DEFAULT_ALIASES,
) -> tuple[ChecklistItem, ...]:
    items = (checklist_item_from_raw(raw, aliases) for raw in raw_items)
    return tuple(item for item in items if item is not None)


def build_weight_map(
    items: Iterable[Any],
    aliases: AliasTable = DEFAULT_ALIASES,
) -> WeightMap:
    """
    Map item id -> clamped weight.

    Accepts ``ChecklistItem`` instances or raw mappings.  A repeated id
    keeps its last weight.
    """
    weights: dict[str, Decimal] = {}
    for item in checklist_items_from_raw(items, aliases):
        weights[item.item_id] = clamp_percent(item.weight)
    total = sum(weights.values(), start=ZERO)
    return WeightMap(weights=weights, total_weight=total)


def weighted_progress(
    progress_by_item: Mapping[str, Decimal],
    weights: WeightMap,
) -> Decimal:
    """
    Weighted completion of a checklist.

    With a positive total weight this is the weighted mean of each item's
    latest progress, items without a value counting as 0.  With a zero
    total weight it is the plain mean of the available values.
    """
    if weights.total_weight > ZERO:
        accumulated = sum(
            (
                weight * clamp_percent(progress_by_item.get(item_id))
                for item_id, weight in weights.weights.items()
            ),
            start=ZERO,
        )
        return clamp_percent(accumulated / weights.total_weight)

    values = [clamp_percent(v) for v in progress_by_item.values() if v is not None]
    if not values:
        return ZERO
    return clamp_percent(sum(values, start=ZERO) / len(values))


@traced_engine("checklist", "1.0", fingerprint_fields=("items",))
def checklist_percent(
    items: Iterable[Any],
    aliases: AliasTable = DEFAULT_ALIASES,
) -> Decimal:
    """Checklist-derived percentage of a service's current checklist."""
    resolved = checklist_items_from_raw(items, aliases)
    weights = build_weight_map(resolved, aliases)
    progress = {item.item_id: item.progress for item in resolved}
    result = weighted_progress(progress, weights)

    logger.debug("checklist_percent_computed", extra={
        "item_count": len(resolved),
        "total_weight": str(weights.total_weight),
        "percent": str(result),
    })
    return result
