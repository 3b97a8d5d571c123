"""
Module: progress_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    progress-curve calculators.  This is the canonical import surface for
    progress_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import progress_kernel (and sibling engine modules).
    MUST NOT import progress_config or progress_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      The reference day is always an explicit parameter; callers
      (services) resolve "today" from an injected clock.
    - Decimal-only arithmetic for percentages and hours.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - InvalidTimeZoneError when a zone name is unknown.
    - ValueError when aggregation inputs are misaligned (a caller bug).
    Everything else (bad dates, bad numbers, empty input) degrades to
    None / zero / empty results.

Usage:
    from progress_engines import build_curves, indicators
    from progress_engines.planned import planned_percent
    from progress_engines.dedupe import dedupe
"""

from progress_kernel.logging_config import get_logger

logger = get_logger("engines")

from progress_engines.aggregation import build_timeline, weighted_group_percent
from progress_engines.checklist import (
    WeightMap,
    build_weight_map,
    checklist_item_from_raw,
    checklist_items_from_raw,
    checklist_percent,
    weighted_progress,
)
from progress_engines.consolidated import (
    ConsolidatedCurves,
    MergedCurve,
    PackageCurves,
    SubpackageCurves,
    build_curves,
    build_package_curves,
    merge_series,
    monotonic_clamp,
    service_curves,
)
from progress_engines.dedupe import (
    DedupeResult,
    dedupe,
    dedupe_detailed,
    fingerprint,
    merge_and_dedupe,
    merge_events,
    stable_event_key,
)
from progress_engines.events import (
    collect_raw_events,
    extract_items,
    normalize_event,
    normalize_events,
)
from progress_engines.indicators import (
    ServiceProgressSummary,
    indicators,
    sample_series,
    summarize_services,
)
from progress_engines.lifecycle import (
    ServiceStatus,
    clamp_progress,
    normalize_status,
    resolve_displayed_status,
    resolve_reopened_progress,
    snapshot_before_conclusion,
)
from progress_engines.planned import (
    planned_percent,
    planned_series,
    planned_value,
    sanitize_daily_series,
)
from progress_engines.realized import (
    CurrentProgress,
    current_progress,
    forward_fill,
    realized_percent,
    realized_points,
    realized_series,
    series_over,
)
from progress_engines.reconciliation import (
    ProgressSource,
    ReconciliationResult,
    TimestampedPercent,
    reconcile,
)
from progress_engines.records import (
    package_from_raw,
    service_from_raw,
    subpackage_from_raw,
)
from progress_engines.temporal import (
    DEFAULT_TIME_ZONE,
    Accessor,
    CalendarDate,
    DayFirstString,
    EpochMillis,
    Instant,
    IsoString,
    SecondsNanos,
    TimestampValue,
    classify_timestamp,
    day_range,
    days_between,
    normalize_day,
    parse_day_first,
    resolve_instant,
    zone_for,
)
from progress_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Temporal
    "DEFAULT_TIME_ZONE",
    "Accessor",
    "CalendarDate",
    "DayFirstString",
    "EpochMillis",
    "Instant",
    "IsoString",
    "SecondsNanos",
    "TimestampValue",
    "classify_timestamp",
    "day_range",
    "days_between",
    "normalize_day",
    "parse_day_first",
    "resolve_instant",
    "zone_for",
    # Events
    "collect_raw_events",
    "extract_items",
    "normalize_event",
    "normalize_events",
    # Checklist
    "WeightMap",
    "build_weight_map",
    "checklist_item_from_raw",
    "checklist_items_from_raw",
    "checklist_percent",
    "weighted_progress",
    # Dedupe
    "DedupeResult",
    "dedupe",
    "dedupe_detailed",
    "fingerprint",
    "merge_and_dedupe",
    "merge_events",
    "stable_event_key",
    # Planned
    "planned_percent",
    "planned_series",
    "planned_value",
    "sanitize_daily_series",
    # Realized
    "CurrentProgress",
    "current_progress",
    "forward_fill",
    "realized_percent",
    "realized_points",
    "realized_series",
    "series_over",
    # Aggregation
    "build_timeline",
    "weighted_group_percent",
    # Consolidated
    "ConsolidatedCurves",
    "MergedCurve",
    "PackageCurves",
    "SubpackageCurves",
    "build_curves",
    "build_package_curves",
    "merge_series",
    "monotonic_clamp",
    "service_curves",
    # Indicators
    "ServiceProgressSummary",
    "indicators",
    "sample_series",
    "summarize_services",
    # Reconciliation
    "ProgressSource",
    "ReconciliationResult",
    "TimestampedPercent",
    "reconcile",
    # Records
    "package_from_raw",
    "service_from_raw",
    "subpackage_from_raw",
    # Lifecycle
    "ServiceStatus",
    "clamp_progress",
    "normalize_status",
    "resolve_displayed_status",
    "resolve_reopened_progress",
    "snapshot_before_conclusion",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 13,
    "modules": [
        "temporal", "events", "checklist", "dedupe", "planned",
        "realized", "aggregation", "consolidated", "indicators",
        "reconciliation", "records", "lifecycle", "tracer",
    ],
})
