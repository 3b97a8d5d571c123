"""
Module: progress_engines.reconciliation
Responsibility:
    Decide which of two competing progress values is authoritative: the
    checklist-derived percentage or the most recent manual entry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Invoked by the persistence collaborator; the tie-break lives here
    because it is part of the computation contract.

Rule:
    The manual entry wins only when its timestamp is greater than or
    equal to the checklist's latest mutation time.  A missing manual
    entry means the checklist wins; a checklist value without a
    timestamp loses to any manual entry.  When manual wins, the result
    flags ``manual_override_active`` so the caller stores the value as an
    overlay instead of rewriting checklist item states.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from progress_kernel.domain.values import clamp_percent
from progress_kernel.logging_config import get_logger
from progress_engines.tracer import traced_engine

logger = get_logger("engines.reconciliation")


class ProgressSource(str, Enum):
    CHECKLIST = "checklist"
    MANUAL = "manual"


@dataclass(frozen=True)
class TimestampedPercent:
    percent: Decimal
    timestamp: datetime | None = None


@dataclass(frozen=True)
class ReconciliationResult:
    percent: Decimal
    source: ProgressSource
    manual_override_active: bool = False


def _manual_wins(checklist: TimestampedPercent, manual: TimestampedPercent) -> bool:
    if checklist.timestamp is None:
        return True
    if manual.timestamp is None:
        return False
    return manual.timestamp >= checklist.timestamp


@traced_engine("reconciliation", "1.0", fingerprint_fields=("checklist_derived", "last_manual"))
def reconcile(
    checklist_derived: TimestampedPercent,
    last_manual: TimestampedPercent | None,
) -> ReconciliationResult:
    """Pick the authoritative percentage by recency."""
    if last_manual is not None and _manual_wins(checklist_derived, last_manual):
        result = ReconciliationResult(
            percent=clamp_percent(last_manual.percent),
            source=ProgressSource.MANUAL,
            manual_override_active=True,
        )
    else:
        result = ReconciliationResult(
            percent=clamp_percent(checklist_derived.percent),
            source=ProgressSource.CHECKLIST,
        )

    logger.info("progress_reconciled", extra={
        "source": result.source.value,
        "percent": result.percent,
        "manual_override_active": result.manual_override_active,
    })
    return result
