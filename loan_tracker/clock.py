"""
Clock Module

Current-date providers injected into the builder, ledger and manager so
status derivation can be tested against a fixed calendar.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Optional


class Clock(ABC):
    """Abstract source of the current time"""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware timestamp"""
        pass

    def today(self) -> date:
        """Current calendar date"""
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock pinned to a given date, for tests and replays"""

    def __init__(self, current: date, at: Optional[datetime] = None):
        self.current = current
        self._at = at

    def now(self) -> datetime:
        if self._at is not None:
            return self._at
        return datetime(self.current.year, self.current.month, self.current.day,
                        tzinfo=timezone.utc)

    def today(self) -> date:
        return self.current

    def advance_to(self, current: date) -> None:
        """Move the pinned date (and drop any pinned timestamp)"""
        self.current = current
        self._at = None
