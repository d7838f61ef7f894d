"""Sources of "now" for every time-relative decision."""

from abc import ABC, abstractmethod
import datetime


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime.datetime:
        """Current instant as an aware UTC datetime."""


class SystemClock(Clock):
    def now(self) -> datetime.datetime:
        return datetime.datetime.now(datetime.timezone.utc)


class FixedClock(Clock):
    """A clock that only moves when told to. Used by tests."""

    def __init__(self, instant: datetime.datetime):
        self.instant = instant

    def now(self) -> datetime.datetime:
        return self.instant

    def advance(self, delta: datetime.timedelta) -> None:
        self.instant = self.instant + delta


def get_clock() -> Clock:
    return SystemClock()
