"""
Where "now" comes from.

Engines never look at the wall clock: they are handed a reference day.
The service layer holds a ``Clock`` and asks it for today's calendar day
only when a caller requests indicators without naming a day.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, tzinfo


class Clock(ABC):
    """Source of the current instant (always timezone-aware, UTC)."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self, zone: tzinfo) -> date:
        """Calendar day of the current instant as seen in ``zone``."""
        return self.now().astimezone(zone).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock pinned to one instant.

    Used by tests and when replaying a report "as of" a past moment.
    A naive instant is read as UTC, matching how progress timestamps are
    normalized.
    """

    def __init__(self, instant: datetime):
        self.move_to(instant)

    def now(self) -> datetime:
        return self._instant

    def move_to(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self._instant = instant.astimezone(UTC)
