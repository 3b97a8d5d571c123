"""
Engine Invariants Contract.

These invariants hold for every calculator in ``progress_engines``
regardless of configuration. Configuration may change *which* field
aliases are read or *which* time zone buckets days, never *whether*
these rules apply.

This module exists solely to declare them explicitly. Enforcement is
distributed across the engines and is exercised by the property tests
under ``tests/fuzzing``.
"""

from enum import Enum, unique


@unique
class EngineInvariant(str, Enum):
    """Non-configurable invariants enforced by the engines."""

    PERCENT_BOUNDS = "percent_bounds"
    """Every percentage leaving an engine lies in [0, 100]. Enforced by
    clamp_percent at inputs, intermediate sums and outputs."""

    PURITY = "purity"
    """Engines perform no I/O and never read the wall clock. The
    reference day is always an explicit parameter."""

    DETERMINISM = "determinism"
    """Results depend only on the content of the inputs, never on call
    order or time of call."""

    DEDUPE_IDEMPOTENCE = "dedupe_idempotence"
    """Deduplicating an already deduplicated event list is a no-op."""

    ZERO_HOURS_EXCLUSION = "zero_hours_exclusion"
    """A service with zero or missing hours never changes a weighted
    group result."""

    NULL_IS_NOT_EPOCH = "null_is_not_epoch"
    """An unparseable date is None ("no date information"), never the
    epoch."""


ALL_ENGINE_INVARIANTS: frozenset[EngineInvariant] = frozenset(EngineInvariant)

# The kernel and engines may not import from these packages.
# This is enforced by tests/architecture/test_layer_boundaries.py.
FORBIDDEN_CORE_IMPORTS: tuple[str, ...] = (
    "progress_config",
    "progress_services",
)
