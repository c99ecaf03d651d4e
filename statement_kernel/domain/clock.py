"""
Clock -- injectable source of "now".

Responsibility:
    Services never call ``datetime.now()`` directly.  Snapshot
    ``generated_at`` / ``updated_at`` and audit ``performed_at`` all come
    from the Clock handed to the service, so tests can pin them.

Architecture position:
    Kernel > Domain -- pure, zero I/O (except SystemClock).
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """Every implementation returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now_utc(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Test clock frozen at a fixed instant.

    The instant only moves through ``advance()`` or ``set_time()``.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or self.DEFAULT_TIME
        if self._current.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware time")

    def now_utc(self) -> datetime:
        return self._current.astimezone(UTC)

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self.now_utc()
