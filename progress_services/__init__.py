"""
progress_services -- Package init and public API.

Responsibility:
    Orchestration that composes the pure progress engines with the
    runtime collaborators they must not see: active settings, the clock
    and an observability reporter.  This is the **only** layer that
    reads the wall clock.

Architecture position:
    Services -- orchestration over engines + kernel + config.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        progress_services/ -> progress_engines/  (allowed)
        progress_services/ -> progress_config/   (allowed)
        progress_engines/  -> progress_services/ (FORBIDDEN)
        progress_kernel/   -> progress_services/ (FORBIDDEN)

Failure modes:
    - Configuration errors surface when no settings are injected and the
      default settings file is invalid.
"""

from progress_kernel.logging_config import get_logger

logger = get_logger("services")

from progress_services.curve_service import (
    CurveReport,
    PackageReport,
    ProgressCurveService,
    SubpackageReport,
)
from progress_services.observability import (
    EVENT_CURVES_BUILT,
    EVENT_PROGRESS_RECONCILED,
    EVENT_UPDATES_DEDUPLICATED,
    CountingReporter,
    LoggingReporter,
    NullReporter,
    ProgressReporter,
)
from progress_services.reference import resolve_reference_day, today

__all__ = [
    "CountingReporter",
    "CurveReport",
    "EVENT_CURVES_BUILT",
    "EVENT_PROGRESS_RECONCILED",
    "EVENT_UPDATES_DEDUPLICATED",
    "LoggingReporter",
    "NullReporter",
    "PackageReport",
    "ProgressCurveService",
    "ProgressReporter",
    "SubpackageReport",
    "resolve_reference_day",
    "today",
]
