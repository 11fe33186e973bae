"""Half-open time windows used by every scheduling conflict check."""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class TimeWindow:
    """The interval ``[start, start + duration)`` occupied by an event."""

    start: datetime
    duration: timedelta

    @classmethod
    def from_minutes(cls, start: datetime, minutes: int) -> "TimeWindow":
        return cls(start=start, duration=timedelta(minutes=minutes))

    @property
    def end(self) -> datetime:
        return self.start + self.duration

    def overlaps(self, other: "TimeWindow") -> bool:
        """Two windows conflict iff each one starts before the other ends."""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end
