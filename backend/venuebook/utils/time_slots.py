"""
Interval helpers for field time slots.

Slots are half-open minute ranges ``[start, end)`` measured from midnight
of the booking date, so a slot ending at 12:00 does not touch one that
starts at 12:00.
"""

from dataclasses import dataclass
from datetime import time

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


def time_to_minutes(value: time) -> int:
    return value.hour * MINUTES_PER_HOUR + value.minute


def closing_time_to_minutes(value: time) -> int:
    """Closing times of 00:00 mean the end of the day."""
    minutes = time_to_minutes(value)
    return MINUTES_PER_DAY if minutes == 0 else minutes


def minutes_to_label(minutes: int) -> str:
    """Render minutes since midnight as HH:MM (24:00 allowed)."""
    hours, mins = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{mins:02d}"


@dataclass(frozen=True)
class SlotInterval:
    start: int
    end: int

    @classmethod
    def from_start(cls, start_time: time, duration_hours: int) -> "SlotInterval":
        start = time_to_minutes(start_time)
        return cls(start=start, end=start + duration_hours * MINUTES_PER_HOUR)

    @classmethod
    def operating_window(cls, open_time: time, close_time: time) -> "SlotInterval":
        return cls(start=time_to_minutes(open_time), end=closing_time_to_minutes(close_time))

    def overlaps(self, other: "SlotInterval") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "SlotInterval") -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def start_label(self) -> str:
        return minutes_to_label(self.start)

    @property
    def end_label(self) -> str:
        return minutes_to_label(self.end)

    def __str__(self) -> str:
        return f"{self.start_label}-{self.end_label}"
