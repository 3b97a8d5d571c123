"""
Observability reporters for progress computations.

Services report named events (``updates.deduplicated``, ``curves.built``
...) to an injected ``ProgressReporter`` instead of bumping process-wide
counters.  The pure engines take no reporter at all; only services do.

Reporters:
- LoggingReporter: structured log line per event with a consistent
  ``observability_event`` field, so log aggregators can build metrics.
- CountingReporter: explicitly scoped in-memory counters (one instance
  per caller, never shared implicitly).
- NullReporter: discards everything.

Usage:
    from progress_services.observability import LoggingReporter

    reporter = LoggingReporter()
    reporter.record(EVENT_UPDATES_DEDUPLICATED, duplicates=2, total=7)
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import Any, Protocol, runtime_checkable

from progress_kernel.logging_config import get_logger

logger = get_logger("services.observability")

# Standard event names for filtering in log pipelines
EVENT_UPDATES_DEDUPLICATED = "updates.deduplicated"
EVENT_CURVES_BUILT = "curves.built"
EVENT_PROGRESS_RECONCILED = "progress.reconciled"


@runtime_checkable
class ProgressReporter(Protocol):
    """Anything that can receive a named observability event."""

    def record(self, event: str, **payload: Any) -> None: ...


class LoggingReporter:
    """Emit each event as a structured INFO log line."""

    def record(self, event: str, **payload: Any) -> None:
        logger.info("progress_observability", extra={
            "observability_event": event,
            **payload,
        })


class CountingReporter:
    """
    Count events per name.

    Contract:
        State lives on the instance; two reporters never share counts.
        Safe to use from several threads.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._payloads: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def record(self, event: str, **payload: Any) -> None:
        with self._lock:
            self._counts[event] += 1
            self._payloads.append((event, dict(payload)))

    def counters(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def payloads(self, event: str | None = None) -> list[dict[str, Any]]:
        """Recorded payloads, optionally filtered to one event name."""
        with self._lock:
            return [dict(p) for name, p in self._payloads if event is None or name == event]

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._payloads.clear()


class NullReporter:
    """Discard every event."""

    def record(self, event: str, **payload: Any) -> None:
        return None
