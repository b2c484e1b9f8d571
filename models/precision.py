"""Time units used for point timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NANOS = {
    "NANOSECONDS": 1,
    "MICROSECONDS": 1_000,
    "MILLISECONDS": 1_000_000,
    "SECONDS": 1_000_000_000,
    "MINUTES": 60_000_000_000,
    "HOURS": 3_600_000_000_000,
}


def _truncating_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


class TimeUnit(Enum):
    """Timestamp precision with its line protocol and InfluxQL spellings."""

    NANOSECONDS = ("n", "ns")
    MICROSECONDS = ("u", "u")
    MILLISECONDS = ("ms", "ms")
    SECONDS = ("s", "s")
    MINUTES = ("m", "m")
    HOURS = ("h", "h")

    def __init__(self, precision: str, literal_suffix: str) -> None:
        self.precision = precision
        self.literal_suffix = literal_suffix

    @property
    def nanos(self) -> int:
        return _NANOS[self.name]

    def convert(self, value: int, unit: "TimeUnit") -> int:
        """Convert ``value`` expressed in ``unit`` into this unit, truncating."""
        if unit.nanos >= self.nanos:
            return value * (unit.nanos // self.nanos)
        return _truncating_div(value, self.nanos // unit.nanos)

    def from_millis(self, millis: int) -> int:
        return self.convert(millis, TimeUnit.MILLISECONDS)

    def to_datetime(self, value: int) -> datetime:
        micros = TimeUnit.MICROSECONDS.convert(int(value), self)
        return EPOCH + timedelta(microseconds=micros)


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)
