"""Injectable time source. All timestamps are naive UTC, matching the DateTime columns."""

from datetime import UTC, datetime, timedelta
from typing import Protocol


def utcnow() -> datetime:
    """Get current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return utcnow()


class FixedClock:
    """A clock frozen at a given instant until explicitly moved. Used in tests."""

    def __init__(self, moment: datetime | None = None):
        moment = moment or utcnow()
        self._moment = moment.replace(tzinfo=None) if moment.tzinfo else moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, delta: timedelta) -> None:
        self._moment += delta

    def set(self, moment: datetime) -> None:
        self._moment = moment.replace(tzinfo=None) if moment.tzinfo else moment
