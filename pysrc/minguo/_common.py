from __future__ import annotations

from datetime import (
    datetime as _datetime,
    timedelta as _timedelta,
    timezone as _timezone,
)

UTC = _timezone.utc
ROC_YEAR_OFFSET = 1911
"""Gregorian year of ROC year 0. ROC 1 is 1912."""

# .NET tick units: 100 nanoseconds since 0001-01-01T00:00:00
TICKS_PER_MICROSECOND = 10
TICKS_PER_MILLISECOND = 10_000
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MINUTE = 60 * TICKS_PER_SECOND
TICKS_PER_HOUR = 60 * TICKS_PER_MINUTE
TICKS_PER_DAY = 24 * TICKS_PER_HOUR
MAX_TICKS = 3_155_378_975_999_999_999
UNIX_EPOCH_TICKS = 621_355_968_000_000_000
FILE_TIME_OFFSET = 504_911_232_000_000_000  # 1601-01-01
Ticks = int


class RangeError(ValueError):
    """A date or time component is out of the representable range"""


class FormatError(ValueError):
    """A string doesn't match any accepted date or time pattern"""

    text: str | None
    pattern: str | None

    def __init__(self, text: str | None, pattern: str | None = None) -> None:
        msg = f"Invalid format: {text!r}"
        if pattern is not None:
            msg += f" (expected {pattern!r})"
        super().__init__(msg)
        self.text = text
        self.pattern = pattern


class ConversionError(TypeError):
    """A value can't be converted to or from a ROC date type"""


# Local time lookups through the system clock fail near the ends of
# the datetime range, so we look up the offset of the nearest safe moment.
_SAFE_MIN = _datetime(1, 1, 2)
_SAFE_MAX = _datetime(9999, 12, 30)


def _clamp(dt: _datetime) -> _datetime:
    return min(max(dt, _SAFE_MIN), _SAFE_MAX)


def local_offset_at_utc(dt: _datetime, /) -> _timedelta:
    """The system UTC offset at the given naive UTC moment"""
    offset = _clamp(dt).replace(tzinfo=UTC).astimezone().utcoffset()
    assert offset is not None
    return offset


def local_offset_at_wall(dt: _datetime, /) -> _timedelta:
    """The system UTC offset for the given naive local wall time"""
    offset = _clamp(dt).astimezone().utcoffset()
    assert offset is not None
    return offset
