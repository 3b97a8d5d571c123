"""
Reference-day resolution.

Indicators are always sampled at an explicit calendar day.  Callers may
pass a ``YYYY-MM-DD`` string, a ``date``/``datetime`` or any other
date-like value the temporal normalizer understands; anything missing or
unparseable falls back to "today" read from the injected ``Clock`` and
bucketed in the configured time zone.

This is the only place outside ``SystemClock`` where the current time is
consulted.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from progress_kernel.domain.clock import Clock
from progress_kernel.logging_config import get_logger
from progress_engines.temporal import DEFAULT_TIME_ZONE, normalize_day, zone_for

logger = get_logger("services.reference")

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today(clock: Clock, time_zone: str = DEFAULT_TIME_ZONE) -> date:
    """The current calendar day in ``time_zone``."""
    return clock.today(zone_for(time_zone))


def resolve_reference_day(
    value: Any = None,
    *,
    clock: Clock,
    time_zone: str = DEFAULT_TIME_ZONE,
) -> date:
    """Resolve ``value`` to a calendar day, defaulting to today."""
    if isinstance(value, str) and _ISO_DAY.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    elif value is not None:
        resolved = normalize_day(value, time_zone)
        if resolved is not None:
            return resolved

    fallback = today(clock, time_zone)
    logger.debug("reference_day_defaulted", extra={
        "requested": None if value is None else str(value),
        "reference_day": fallback,
    })
    return fallback
