"""
Pure domain layer.

Records, value helpers, alias tables and the clock abstraction, with NO
dependencies on:
- Storage
- HTTP
- Time/clock (except the injectable Clock itself)
- I/O

All domain objects are immutable and deterministic.
"""

from progress_kernel.domain.aliases import (
    ALIAS_TABLE_VERSION,
    DEFAULT_ALIASES,
    MISSING,
    AliasTable,
)
from progress_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from progress_kernel.domain.records import (
    ChecklistItem,
    CurvePoint,
    Indicators,
    ItemProgress,
    Package,
    ProgressEvent,
    ServiceRecord,
    Subpackage,
)
from progress_kernel.domain.values import (
    HUNDRED,
    ZERO,
    clamp_percent,
    parse_percent,
    positive_hours,
    round_percent,
    to_decimal,
)

__all__ = [
    # Aliases
    "ALIAS_TABLE_VERSION",
    "AliasTable",
    "DEFAULT_ALIASES",
    "MISSING",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Records
    "ChecklistItem",
    "CurvePoint",
    "Indicators",
    "ItemProgress",
    "Package",
    "ProgressEvent",
    "ServiceRecord",
    "Subpackage",
    # Values
    "HUNDRED",
    "ZERO",
    "clamp_percent",
    "parse_percent",
    "positive_hours",
    "round_percent",
    "to_decimal",
]
