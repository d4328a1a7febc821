"""Calendar rules, month arithmetic, and tick conversions."""

from __future__ import annotations

from datetime import (
    date as _date,
    datetime as _datetime,
    timedelta as _timedelta,
)
from math import modf
from typing import TypeVar

from ._common import (
    MAX_TICKS,
    TICKS_PER_DAY,
    TICKS_PER_MILLISECOND,
    TICKS_PER_SECOND,
    Ticks,
)

_D = TypeVar("_D", bound=_date)


def add_months(d: _D, months: int) -> _D:
    """Shift by whole months, clamping the day to the end of the month.
    Works for both dates and datetimes."""
    if not months:
        return d
    year_delta, month0_new = divmod(d.month - 1 + months, 12)
    year_new = d.year + year_delta
    month_new = month0_new + 1
    try:
        return d.replace(year=year_new, month=month_new)
    except ValueError:
        if year_new < 1 or year_new > 9999:
            raise
        # only happens when we move to a month with fewer days
        return d.replace(
            year=year_new,
            month=month_new,
            day=days_in_month(year_new, month_new),
        )


def is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


# 1-indexed days per month
_MONTHDAYS = [0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


def days_in_month(year: int, month: int) -> int:
    return _MONTHDAYS[month] + (month == 2 and is_leap(year))


def trunc_rem(a: int, b: int) -> int:
    """Remainder with the sign of the dividend, like C's ``%``"""
    r = abs(a) % b
    return -r if a < 0 else r


def trunc_div(a: int, b: int) -> int:
    q = abs(a) // b
    return -q if a < 0 else q


def scale_to_ticks(value: float, ticks_per_unit: int) -> Ticks:
    """Convert a possibly fractional amount of some unit to ticks.
    The fractional part is truncated to whole ticks."""
    if isinstance(value, int):
        return value * ticks_per_unit
    frac, whole = modf(value)
    return int(whole) * ticks_per_unit + int(frac * ticks_per_unit)


def ticks_from_datetime(dt: _datetime, nanos: int) -> Ticks:
    return (
        (dt.toordinal() - 1) * TICKS_PER_DAY
        + (dt.hour * 3600 + dt.minute * 60 + dt.second) * TICKS_PER_SECOND
        + nanos // 100
    )


def datetime_from_ticks(ticks: Ticks) -> tuple[_datetime, int]:
    """Split ticks into a whole-second datetime and the nanoseconds left.
    The caller is responsible for checking the range."""
    days, rem = divmod(ticks, TICKS_PER_DAY)
    secs, frac = divmod(rem, TICKS_PER_SECOND)
    return (
        _datetime.fromordinal(days + 1) + _timedelta(seconds=secs),
        frac * 100,
    )


# OLE automation dates count days since 1899-12-30,
# with the time of day as the fraction of a day.
_MILLIS_PER_DAY = 86_400_000
_OA_EPOCH_TICKS = 693_593 * TICKS_PER_DAY
_OA_MIN_TICKS = 36_159 * TICKS_PER_DAY  # 0100-01-01
_OA_MIN = -657_435.0
_OA_MAX = 2_958_466.0
_MAX_MILLIS = 3_652_059 * _MILLIS_PER_DAY


def ticks_to_oa_date(ticks: Ticks) -> float:
    if ticks == 0:
        return 0.0
    if ticks < TICKS_PER_DAY:
        # A bare time of day is placed on the automation epoch date
        ticks += _OA_EPOCH_TICKS
    if ticks < _OA_MIN_TICKS:
        raise OverflowError("Not a legal OLE automation date")
    millis = trunc_div(ticks - _OA_EPOCH_TICKS, TICKS_PER_MILLISECOND)
    if millis < 0:
        # Before the epoch, the integral part counts backwards
        # but the fraction still runs forward through the day.
        frac = trunc_rem(millis, _MILLIS_PER_DAY)
        if frac:
            millis -= (_MILLIS_PER_DAY + frac) * 2
    return millis / _MILLIS_PER_DAY


def oa_date_to_ticks(value: float) -> Ticks:
    if not _OA_MIN < value < _OA_MAX:
        raise ValueError(f"Not a legal OLE automation date: {value!r}")
    millis = int(value * _MILLIS_PER_DAY + (0.5 if value >= 0 else -0.5))
    if millis < 0:
        millis -= trunc_rem(millis, _MILLIS_PER_DAY) * 2
    millis += _OA_EPOCH_TICKS // TICKS_PER_MILLISECOND
    if millis < 0 or millis >= _MAX_MILLIS:
        raise ValueError(f"Not a legal OLE automation date: {value!r}")
    ticks = millis * TICKS_PER_MILLISECOND
    assert 0 <= ticks <= MAX_TICKS
    return ticks
