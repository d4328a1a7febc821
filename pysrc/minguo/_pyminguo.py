# The MIT License (MIT)
#
# Copyright (c) Arie Bovenberg
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

# Maintainer's notes:
#
# - Both classes wrap a standard library object and delegate all calendar
#   math to it. The ROC year is only ever derived, never stored.
# - RocDateTime keeps whole seconds in its datetime and the rest as
#   nanoseconds, restricted to 100ns ticks.
# - Parsing and formatting live in _parse and _format, since they are
#   shared by both classes and have no state of their own.
from __future__ import annotations

__version__ = "0.1.0"

import enum
from datetime import (
    date as _date,
    datetime as _datetime,
    time as _time,
    timedelta as _timedelta,
)
from struct import pack, unpack
from time import time_ns
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    MutableSequence,
    no_type_check,
    overload,
)

from ._common import (
    FILE_TIME_OFFSET,
    MAX_TICKS,
    ROC_YEAR_OFFSET,
    TICKS_PER_DAY,
    TICKS_PER_HOUR,
    TICKS_PER_MICROSECOND,
    TICKS_PER_MILLISECOND,
    TICKS_PER_MINUTE,
    TICKS_PER_SECOND,
    UNIX_EPOCH_TICKS,
    UTC,
    ConversionError,
    FormatError,
    RangeError,
    local_offset_at_utc,
    local_offset_at_wall,
)
from ._format import (
    DEFAULT_DATE_PATTERN,
    DEFAULT_DATETIME_PATTERN,
    Fields,
    has_token,
    render,
    write_chars,
    write_utf8,
)
from ._math import (
    add_months,
    datetime_from_ticks,
    days_in_month as _days_in_month,
    is_leap,
    oa_date_to_ticks,
    scale_to_ticks,
    ticks_from_datetime,
    ticks_to_oa_date,
)
from ._parse import CANDIDATES, Parsed, compile_pattern, digit_stream

__all__ = [
    # Date and time
    "RocDate",
    "RocDateTime",
    "Kind",
    "Weekday",
    # Calendar rules
    "is_leap_year",
    "days_in_month",
    "to_ce_year",
    "to_roc_year",
    "ROC_YEAR_OFFSET",
    # Exceptions
    "RangeError",
    "FormatError",
    "ConversionError",
]


class Weekday(enum.Enum):
    """The days of the week; ``.value`` corresponds with ISO numbering."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class Kind(enum.Enum):
    """Whether a :class:`RocDateTime` is local time, UTC, or neither.

    The values match the ``DateTimeKind`` numbering used in the binary
    encoding of :meth:`RocDateTime.to_binary`.
    """

    UNSPECIFIED = 0
    UTC = 1
    LOCAL = 2


# Helpers that pre-compute/lookup as much as possible
_object_new = object.__new__
_MAX_NANOS = 999_999_900
_TICKS_MASK = 0x3FFF_FFFF_FFFF_FFFF
_TICKS_CEILING = 0x4000_0000_0000_0000
_LOCAL_MASK = 0x8000_0000_0000_0000
_KIND_SHIFT = 62
_UINT64_MASK = 0xFFFF_FFFF_FFFF_FFFF


def is_leap_year(year: int, /) -> bool:
    """Whether the given ROC year is a leap year

    Example
    -------
    >>> is_leap_year(113)  # 2024
    True
    """
    return is_leap(_checked_ce_year(year))


def days_in_month(year: int, month: int, /) -> int:
    """The number of days in the given month of the ROC year

    Example
    -------
    >>> days_in_month(113, 2)
    29
    """
    ce_year = _checked_ce_year(year)
    if not 1 <= month <= 12:
        raise RangeError(f"Month must be in 1..12, got {month}")
    return _days_in_month(ce_year, month)


def to_ce_year(year: int, /) -> int:
    """Convert a ROC year to a Gregorian (common era) year"""
    return year + ROC_YEAR_OFFSET


def to_roc_year(year: int, /) -> int:
    """Convert a Gregorian (common era) year to a ROC year"""
    return year - ROC_YEAR_OFFSET


def _checked_ce_year(year: int) -> int:
    ce_year = year + ROC_YEAR_OFFSET
    if not 1 <= ce_year <= 9999:
        raise RangeError(f"ROC year out of range: {year}")
    return ce_year


class _ImmutableBase:
    __slots__ = ()

    # Immutable classes don't need to be copied
    @no_type_check
    def __copy__(self):
        return self

    @no_type_check
    def __deepcopy__(self, _):
        return self


if TYPE_CHECKING:
    from typing import final
else:

    def final(cls):

        def init_subclass_not_allowed(cls, **kwargs):  # pragma: no cover
            raise TypeError("Subclassing not allowed")

        cls.__init_subclass__ = init_subclass_not_allowed
        return cls


@final
class RocDate(_ImmutableBase):
    """A date in the Republic of China (Minguo) calendar.

    The ROC year is the Gregorian year minus 1911. Month and day
    are the same as in the Gregorian calendar.

    Example
    -------
    >>> d = RocDate(113, 5, 10)
    RocDate(113/05/10)
    >>> d.to_gregorian()
    datetime.date(2024, 5, 10)
    """

    __slots__ = ("_py_date",)

    MIN: ClassVar[RocDate]
    """The first day of ROC year 1 (1912-01-01)"""
    MAX: ClassVar[RocDate]
    """The maximum possible date"""

    def __init__(self, year: int, month: int, day: int) -> None:
        if year < 1:
            raise RangeError(f"ROC year must be at least 1, got {year}")
        try:
            self._py_date = _date(year + ROC_YEAR_OFFSET, month, day)
        except (ValueError, OverflowError) as e:
            raise RangeError(str(e)) from None

    @classmethod
    def today(cls) -> RocDate:
        """The current date in the system's local timezone"""
        return RocDateTime.now().date()

    @property
    def year(self) -> int:
        """The ROC year. Zero or negative for dates before 1912."""
        return self._py_date.year - ROC_YEAR_OFFSET

    @property
    def ce_year(self) -> int:
        """The Gregorian year"""
        return self._py_date.year

    @property
    def month(self) -> int:
        return self._py_date.month

    @property
    def day(self) -> int:
        return self._py_date.day

    def day_of_week(self) -> Weekday:
        """The day of the week

        Example
        -------
        >>> RocDate(113, 5, 10).day_of_week()
        Weekday.FRIDAY
        """
        return Weekday(self._py_date.isoweekday())

    def day_of_year(self) -> int:
        """The day of the year, starting at 1"""
        return self._py_date.timetuple().tm_yday

    def day_number(self) -> int:
        """The number of days since 0001-01-01, which is day 0"""
        return self._py_date.toordinal() - 1

    @classmethod
    def from_day_number(cls, n: int, /) -> RocDate:
        """Inverse of :meth:`day_number`"""
        try:
            return cls._from_py_unchecked(_date.fromordinal(n + 1))
        except (ValueError, OverflowError):
            raise RangeError(f"Day number out of range: {n}") from None

    is_leap_year = staticmethod(is_leap_year)
    days_in_month = staticmethod(days_in_month)

    def at(self, t: _time, /, kind: Kind = Kind.UNSPECIFIED) -> RocDateTime:
        """Combine a date with a time to create a datetime

        Example
        -------
        >>> d = RocDate(113, 1, 2)
        >>> d.at(time(12, 30))
        RocDateTime(113/01/02 12:30:00)
        """
        return RocDateTime._from_py_unchecked(
            _datetime.combine(
                self._py_date, t.replace(microsecond=0, tzinfo=None)
            ),
            t.microsecond * 1_000,
            kind,
        )

    def to_gregorian(self) -> _date:
        """Convert to a standard library :class:`~datetime.date`"""
        return self._py_date

    @classmethod
    def from_gregorian(cls, d: _date, /) -> RocDate:
        """Create from a :class:`~datetime.date`. The time part of a
        :class:`~datetime.datetime` is discarded.

        Unlike the constructor, this accepts dates before ROC year 1.

        Example
        -------
        >>> RocDate.from_gregorian(date(2024, 6, 20))
        RocDate(113/06/20)
        """
        self = _object_new(cls)
        if type(d) is _date:
            pass
        elif isinstance(d, _datetime):
            d = _date(d.year, d.month, d.day)
        elif isinstance(d, _date):
            # the only subclass-safe way to get exactly a datetime.date
            d = _date(d.year, d.month, d.day)
        else:
            raise TypeError(f"Expected date, got {type(d)!r}")
        self._py_date = d
        return self

    def replace(self, **kwargs: Any) -> RocDate:
        """Create a new instance with the given fields replaced.
        ``year`` is a ROC year.

        Example
        -------
        >>> d = RocDate(113, 1, 2)
        >>> d.replace(day=4)
        RocDate(113/01/04)
        """
        fields = {"year": self.year, "month": self.month, "day": self.day}
        fields.update(kwargs)
        return RocDate(**fields)

    def add(
        self, *, years: int = 0, months: int = 0, weeks: int = 0, days: int = 0
    ) -> RocDate:
        """Add components to a date.

        Years and months are added first, with the day clamped to the
        end of the month if needed.

        Example
        -------
        >>> d = RocDate(110, 1, 2)
        >>> d.add(years=1, months=2, days=3)
        RocDate(111/03/05)
        >>> RocDate(109, 2, 29).add(years=1)
        RocDate(110/02/28)
        """
        return RocDate._from_py_unchecked(
            add_months(self._py_date, 12 * years + months)
            + _timedelta(days, weeks=weeks)
        )

    def subtract(
        self, *, years: int = 0, months: int = 0, weeks: int = 0, days: int = 0
    ) -> RocDate:
        """Subtract components from a date.

        Example
        -------
        >>> d = RocDate(110, 1, 2)
        >>> d.subtract(years=1, months=2, days=3)
        RocDate(108/10/30)
        """
        return self.add(years=-years, months=-months, weeks=-weeks, days=-days)

    def days_until(self, other: RocDate, /) -> int:
        """Calculate the number of days from this date to another date.
        If the other date is before this date, the result is negative.

        Example
        -------
        >>> RocDate(110, 1, 2).days_until(RocDate(110, 1, 5))
        3
        """
        return (other._py_date - self._py_date).days

    def days_since(self, other: RocDate, /) -> int:
        """Calculate the number of days this day is after another date.
        If the other date is after this date, the result is negative.
        """
        return (self._py_date - other._py_date).days

    def __add__(self, delta: _timedelta) -> RocDate:
        """Add whole days. Any time part of the timedelta is ignored,
        as it is with :class:`~datetime.date`."""
        if not isinstance(delta, _timedelta):
            return NotImplemented
        return RocDate._from_py_unchecked(self._py_date + delta)

    __radd__ = __add__

    @overload
    def __sub__(self, other: _timedelta) -> RocDate: ...

    @overload
    def __sub__(self, other: RocDate) -> _timedelta: ...

    def __sub__(self, other: _timedelta | RocDate) -> RocDate | _timedelta:
        """Subtract a timedelta, or get the difference between two dates

        Example
        -------
        >>> RocDate(113, 1, 2) - RocDate(112, 12, 31)
        datetime.timedelta(days=2)
        """
        if isinstance(other, _timedelta):
            return RocDate._from_py_unchecked(self._py_date - other)
        elif isinstance(other, RocDate):
            return self._py_date - other._py_date
        return NotImplemented

    def format(self, pattern: str | None = None, /) -> str:
        """Format using a custom pattern such as ``yyy年MM月dd日``.
        Defaults to ``yyy/MM/dd``.

        The year tokens ``yyyy``, ``yyy``, ``yy`` and ``y`` all refer to
        the ROC year. Month and weekday names come from the
        :mod:`calendar` module. Any other character is copied as is.

        Example
        -------
        >>> d = RocDate(113, 5, 10)
        >>> d.format("yyy年M月d日")
        '113年5月10日'
        >>> d.format("yyyy-MM-dd dddd")
        '0113-05-10 Friday'
        """
        return render(pattern or DEFAULT_DATE_PATTERN, self._fields(), True)

    def __format__(self, spec: str) -> str:
        return self.format(spec)

    def format_long_date(self) -> str:
        """Format as ``民國{year}年{month}月{day}日`` without padding

        Example
        -------
        >>> RocDate(113, 5, 10).format_long_date()
        '民國113年5月10日'
        """
        return f"民國{self.year}年{self.month}月{self.day}日"

    def format_short_date(self) -> str:
        """Format as ``yyy/MM/dd``"""
        return self.format(DEFAULT_DATE_PATTERN)

    def try_format_into(
        self, buffer: MutableSequence[str], pattern: str | None = None, /
    ) -> tuple[bool, int]:
        """Write the formatted date into a fixed-size sequence of
        characters, such as a list. Returns whether it fit, and how many
        characters were written. The buffer is untouched if it doesn't fit.

        Example
        -------
        >>> buf = [""] * 5
        >>> RocDate(113, 5, 10).try_format_into(buf)
        (False, 0)
        """
        return write_chars(buffer, self.format(pattern))

    def try_format_utf8(
        self, buffer: bytearray | memoryview, pattern: str | None = None, /
    ) -> tuple[bool, int]:
        """Like :meth:`try_format_into`, but writes UTF-8 encoded bytes"""
        return write_utf8(buffer, self.format(pattern))

    @classmethod
    def parse(cls, s: str, /) -> RocDate:
        """Parse a ROC date from exactly seven digits ``yyyMMdd``.
        Any separators between the digits are ignored.

        Example
        -------
        >>> RocDate.parse("113/05/10")
        RocDate(113/05/10)
        >>> RocDate.parse("1130510")
        RocDate(113/05/10)
        """
        if (d := cls.try_parse(s)) is None:
            raise FormatError(s)
        return d

    @classmethod
    def try_parse(cls, s: str | None, /) -> RocDate | None:
        """Like :meth:`parse`, but returns ``None`` on failure"""
        if (ymd := digit_stream(s)) is None:
            return None
        try:
            return cls(*ymd)
        except RangeError:
            return None

    @classmethod
    def parse_exact(cls, s: str, pattern: str, /) -> RocDate:
        """Parse using a custom pattern.

        A pattern containing ``yyy`` describes a ROC date, which is then
        read as a digit stream like :meth:`parse`. Any other pattern
        describes a Gregorian date.

        Example
        -------
        >>> RocDate.parse_exact("113.05.10", "yyy.MM.dd")
        RocDate(113/05/10)
        >>> RocDate.parse_exact("2024-05-10", "yyyy-MM-dd")
        RocDate(113/05/10)
        """
        if (d := cls.try_parse_exact(s, pattern)) is None:
            raise FormatError(s, pattern)
        return d

    @classmethod
    def try_parse_exact(
        cls, s: str | None, pattern: str, /
    ) -> RocDate | None:
        """Like :meth:`parse_exact`, but returns ``None`` on failure.

        Raises
        ------
        ValueError
            If the pattern contains tokens that can't be parsed.
        """
        if has_token(pattern, "yyy"):
            return cls.try_parse(s)
        compiled = compile_pattern(pattern)
        if compiled.has_time:
            raise ValueError(f"Date pattern {pattern!r} has time fields")
        if s is None or not (s := s.strip()):
            return None
        if (p := compiled.parse(s)) is None:
            return None
        try:
            return cls._from_py_unchecked(_date(p.year, p.month, p.day))
        except ValueError:
            return None

    @staticmethod
    def compare(a: RocDate, b: RocDate, /) -> int:
        """Compare two dates, returning -1, 0 or 1"""
        if not (isinstance(a, RocDate) and isinstance(b, RocDate)):
            raise TypeError("Can only compare RocDate with RocDate")
        return (a._py_date > b._py_date) - (a._py_date < b._py_date)

    def __str__(self) -> str:
        return self.format(DEFAULT_DATE_PATTERN)

    def __repr__(self) -> str:
        return f"RocDate({self})"

    def __eq__(self, other: object) -> bool:
        """Compare for equality

        Example
        -------
        >>> d = RocDate(113, 1, 2)
        >>> d == RocDate(113, 1, 2)
        True
        >>> d == RocDate(113, 1, 3)
        False
        """
        if not isinstance(other, RocDate):
            return NotImplemented
        return self._py_date == other._py_date

    def __hash__(self) -> int:
        return hash(self._py_date)

    def __lt__(self, other: RocDate) -> bool:
        if not isinstance(other, RocDate):
            return NotImplemented
        return self._py_date < other._py_date

    def __le__(self, other: RocDate) -> bool:
        if not isinstance(other, RocDate):
            return NotImplemented
        return self._py_date <= other._py_date

    def __gt__(self, other: RocDate) -> bool:
        if not isinstance(other, RocDate):
            return NotImplemented
        return self._py_date > other._py_date

    def __ge__(self, other: RocDate) -> bool:
        if not isinstance(other, RocDate):
            return NotImplemented
        return self._py_date >= other._py_date

    def _fields(self) -> Fields:
        d = self._py_date
        return Fields(
            d.year - ROC_YEAR_OFFSET, d.month, d.day, d.weekday()
        )

    @classmethod
    def _from_py_unchecked(cls, d: _date, /) -> RocDate:
        self = _object_new(cls)
        self._py_date = d
        return self

    @no_type_check
    def __reduce__(self):
        return _unpkl_date, (pack("<HBB", self.ce_year, self.month, self.day),)


# A separate unpickling function allows us to make backwards-compatible changes
# to the pickling format in the future
@no_type_check
def _unpkl_date(data: bytes) -> RocDate:
    return RocDate._from_py_unchecked(_date(*unpack("<HBB", data)))


RocDate.MIN = RocDate(1, 1, 1)
RocDate.MAX = RocDate._from_py_unchecked(_date.max)


@final
class RocDateTime(_ImmutableBase):
    """A date and time in the Republic of China (Minguo) calendar,
    with 100-nanosecond precision.

    Like .NET's ``DateTime``, it carries a :class:`Kind` tag which says
    whether it is local time, UTC, or unspecified. The kind is kept
    through arithmetic, but ignored when comparing.

    Example
    -------
    >>> RocDateTime(113, 5, 10, 14, 30)
    RocDateTime(113/05/10 14:30:00)
    >>> RocDateTime(113, 5, 10, kind=Kind.UTC)
    RocDateTime(113/05/10 00:00:00 UTC)
    """

    __slots__ = ("_py_dt", "_nanos", "_kind")

    MIN: ClassVar[RocDateTime]
    """The minimum possible value (0001-01-01, ROC year -1910)"""
    MAX: ClassVar[RocDateTime]
    """The maximum possible value"""
    UNIX_EPOCH: ClassVar[RocDateTime]
    """1970-01-01 00:00:00 UTC"""

    def __init__(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        *,
        millisecond: int = 0,
        microsecond: int = 0,
        kind: Kind = Kind.UNSPECIFIED,
    ) -> None:
        if not isinstance(kind, Kind):
            raise TypeError(f"Expected Kind, got {type(kind)!r}")
        if not (0 <= millisecond < 1_000 and 0 <= microsecond < 1_000):
            raise RangeError("Sub-second component out of range")
        try:
            self._py_dt = _datetime(
                year + ROC_YEAR_OFFSET, month, day, hour, minute, second
            )
        except (ValueError, OverflowError) as e:
            raise RangeError(str(e)) from None
        self._nanos = millisecond * 1_000_000 + microsecond * 1_000
        self._kind = kind

    @classmethod
    def now(cls) -> RocDateTime:
        """The current local time, with kind :attr:`Kind.LOCAL`"""
        return cls.utc_now().to_local_time()

    @classmethod
    def utc_now(cls) -> RocDateTime:
        """The current time in UTC, with kind :attr:`Kind.UTC`"""
        return cls._from_ticks_unchecked(
            UNIX_EPOCH_TICKS + time_ns() // 100, Kind.UTC
        )

    @classmethod
    def today(cls) -> RocDateTime:
        """Midnight of the current local date"""
        now = cls.now()
        return cls._from_py_unchecked(
            now._py_dt.replace(hour=0, minute=0, second=0), 0, Kind.LOCAL
        )

    @classmethod
    def from_ticks(
        cls, ticks: int, /, kind: Kind = Kind.UNSPECIFIED
    ) -> RocDateTime:
        """Create from the number of 100-nanosecond ticks
        since 0001-01-01 00:00:00

        Example
        -------
        >>> RocDateTime.from_ticks(638_508_960_000_000_000)
        RocDateTime(113/05/10 00:00:00)
        """
        if not 0 <= ticks <= MAX_TICKS:
            raise RangeError(f"Ticks out of range: {ticks}")
        return cls._from_ticks_unchecked(ticks, kind)

    @property
    def year(self) -> int:
        """The ROC year. Zero or negative before 1912."""
        return self._py_dt.year - ROC_YEAR_OFFSET

    @property
    def ce_year(self) -> int:
        return self._py_dt.year

    @property
    def month(self) -> int:
        return self._py_dt.month

    @property
    def day(self) -> int:
        return self._py_dt.day

    @property
    def hour(self) -> int:
        return self._py_dt.hour

    @property
    def minute(self) -> int:
        return self._py_dt.minute

    @property
    def second(self) -> int:
        return self._py_dt.second

    @property
    def millisecond(self) -> int:
        return self._nanos // 1_000_000

    @property
    def microsecond(self) -> int:
        """The microseconds within the millisecond (0-999)"""
        return self._nanos // 1_000 % 1_000

    @property
    def nanosecond(self) -> int:
        """The nanoseconds within the microsecond, in steps of 100"""
        return self._nanos % 1_000

    @property
    def ticks(self) -> int:
        """The number of 100-nanosecond ticks since 0001-01-01 00:00:00"""
        return ticks_from_datetime(self._py_dt, self._nanos)

    @property
    def kind(self) -> Kind:
        return self._kind

    def date(self) -> RocDate:
        """The date part of the datetime"""
        return RocDate._from_py_unchecked(self._py_dt.date())

    def time(self) -> _time:
        """The time part, truncated to microseconds"""
        return self._py_dt.time().replace(microsecond=self._nanos // 1_000)

    def time_of_day(self) -> _timedelta:
        """The time elapsed since midnight, truncated to microseconds"""
        return _timedelta(
            hours=self._py_dt.hour,
            minutes=self._py_dt.minute,
            seconds=self._py_dt.second,
            microseconds=self._nanos // 1_000,
        )

    def day_of_week(self) -> Weekday:
        return Weekday(self._py_dt.isoweekday())

    def day_of_year(self) -> int:
        return self._py_dt.timetuple().tm_yday

    is_leap_year = staticmethod(is_leap_year)
    days_in_month = staticmethod(days_in_month)

    def to_gregorian(self) -> _datetime:
        """Convert to a standard library :class:`~datetime.datetime`.

        The result is aware (with UTC timezone) if the kind is UTC,
        and naive otherwise. Sub-microsecond precision is truncated.
        """
        return self._py_dt.replace(
            microsecond=self._nanos // 1_000,
            tzinfo=UTC if self._kind is Kind.UTC else None,
        )

    @classmethod
    def from_gregorian(
        cls, d: _date, /, kind: Kind = Kind.UNSPECIFIED
    ) -> RocDateTime:
        """Create from a standard library :class:`~datetime.datetime`,
        or a :class:`~datetime.date` at midnight.

        An aware datetime is converted to UTC and gets kind UTC,
        regardless of the ``kind`` argument.

        Example
        -------
        >>> RocDateTime.from_gregorian(datetime(2024, 5, 10, 8))
        RocDateTime(113/05/10 08:00:00)
        """
        if isinstance(d, _datetime):
            if d.tzinfo is not None and d.utcoffset() is not None:
                d = d.astimezone(UTC)
                kind = Kind.UTC
            py_dt = _datetime(
                d.year, d.month, d.day, d.hour, d.minute, d.second
            )
            nanos = d.microsecond * 1_000
        elif isinstance(d, _date):
            py_dt = _datetime(d.year, d.month, d.day)
            nanos = 0
        else:
            raise TypeError(f"Expected date or datetime, got {type(d)!r}")
        return cls._from_py_unchecked(py_dt, nanos, kind)

    def replace(self, **kwargs: Any) -> RocDateTime:
        """Create a new instance with the given fields replaced.
        ``year`` is a ROC year.

        Example
        -------
        >>> d = RocDateTime(113, 5, 10, 14, 30)
        >>> d.replace(hour=9, kind=Kind.UTC)
        RocDateTime(113/05/10 09:30:00 UTC)
        """
        keep_nanos = not ("millisecond" in kwargs or "microsecond" in kwargs)
        fields: dict[str, Any] = {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "second": self.second,
            "millisecond": self.millisecond,
            "microsecond": self.microsecond,
            "kind": self._kind,
        }
        fields.update(kwargs)
        result = RocDateTime(**fields)
        if keep_nanos:
            result._nanos = self._nanos
        return result

    def specify_kind(self, kind: Kind, /) -> RocDateTime:
        """Same date and time, with a different kind. No conversion
        takes place."""
        if not isinstance(kind, Kind):
            raise TypeError(f"Expected Kind, got {type(kind)!r}")
        return self._from_py_unchecked(self._py_dt, self._nanos, kind)

    def add(
        self,
        *,
        years: int = 0,
        months: int = 0,
        weeks: float = 0,
        days: float = 0,
        hours: float = 0,
        minutes: float = 0,
        seconds: float = 0,
        milliseconds: float = 0,
        microseconds: float = 0,
        ticks: int = 0,
    ) -> RocDateTime:
        """Add components to a datetime.

        Years and months are added first, with the day clamped to the
        end of the month if needed. The other units may be fractional,
        in which case the fraction is truncated to whole ticks.

        Raises
        ------
        OverflowError
            If the result is out of range.

        Example
        -------
        >>> d = RocDateTime(113, 1, 31, 12)
        >>> d.add(months=1, hours=1.5)
        RocDateTime(113/02/29 13:30:00)
        """
        py_dt = add_months(self._py_dt, 12 * years + months)
        delta = (
            scale_to_ticks(weeks, 7 * TICKS_PER_DAY)
            + scale_to_ticks(days, TICKS_PER_DAY)
            + scale_to_ticks(hours, TICKS_PER_HOUR)
            + scale_to_ticks(minutes, TICKS_PER_MINUTE)
            + scale_to_ticks(seconds, TICKS_PER_SECOND)
            + scale_to_ticks(milliseconds, TICKS_PER_MILLISECOND)
            + scale_to_ticks(microseconds, TICKS_PER_MICROSECOND)
            + ticks
        )
        start = ticks_from_datetime(py_dt, self._nanos)
        return self._shift_ticks(start, delta)

    def subtract(
        self,
        *,
        years: int = 0,
        months: int = 0,
        weeks: float = 0,
        days: float = 0,
        hours: float = 0,
        minutes: float = 0,
        seconds: float = 0,
        milliseconds: float = 0,
        microseconds: float = 0,
        ticks: int = 0,
    ) -> RocDateTime:
        """Subtract components from a datetime. See :meth:`add`."""
        return self.add(
            years=-years,
            months=-months,
            weeks=-weeks,
            days=-days,
            hours=-hours,
            minutes=-minutes,
            seconds=-seconds,
            milliseconds=-milliseconds,
            microseconds=-microseconds,
            ticks=-ticks,
        )

    def __add__(self, delta: _timedelta) -> RocDateTime:
        if not isinstance(delta, _timedelta):
            return NotImplemented
        return self._shift_ticks(self.ticks, _timedelta_ticks(delta))

    __radd__ = __add__

    @overload
    def __sub__(self, other: _timedelta) -> RocDateTime: ...

    @overload
    def __sub__(self, other: RocDateTime) -> _timedelta: ...

    def __sub__(
        self, other: _timedelta | RocDateTime
    ) -> RocDateTime | _timedelta:
        """Subtract a timedelta, or get the difference between two
        datetimes. The difference ignores the kind, and is floored to
        whole microseconds.

        Example
        -------
        >>> RocDateTime(113, 1, 2, 12) - RocDateTime(113, 1, 1)
        datetime.timedelta(days=1, seconds=43200)
        """
        if isinstance(other, _timedelta):
            return self._shift_ticks(self.ticks, -_timedelta_ticks(other))
        elif isinstance(other, RocDateTime):
            return _timedelta(
                microseconds=(self.ticks - other.ticks)
                // TICKS_PER_MICROSECOND
            )
        return NotImplemented

    def to_local_time(self) -> RocDateTime:
        """Convert to the system's local time.
        An unspecified kind is assumed to be UTC."""
        if self._kind is Kind.LOCAL:
            return self
        offset = local_offset_at_utc(self._py_dt)
        return self._from_ticks_unchecked(
            _clamp_ticks(self.ticks + _timedelta_ticks(offset)), Kind.LOCAL
        )

    def to_universal_time(self) -> RocDateTime:
        """Convert to UTC.
        An unspecified kind is assumed to be local time."""
        if self._kind is Kind.UTC:
            return self
        offset = local_offset_at_wall(self._py_dt)
        return self._from_ticks_unchecked(
            _clamp_ticks(self.ticks - _timedelta_ticks(offset)), Kind.UTC
        )

    def to_oa_date(self) -> float:
        """Convert to an OLE automation date: days since 1899-12-30,
        with the time of day as fraction. Millisecond precision.

        Example
        -------
        >>> RocDateTime(-12, 12, 29, 6).to_oa_date()
        -1.25
        """
        return ticks_to_oa_date(self.ticks)

    @classmethod
    def from_oa_date(cls, value: float, /) -> RocDateTime:
        """Inverse of :meth:`to_oa_date`, with an unspecified kind"""
        return cls._from_ticks_unchecked(
            oa_date_to_ticks(value), Kind.UNSPECIFIED
        )

    def to_binary(self) -> int:
        """Serialize the ticks and kind into a signed 64-bit integer,
        compatible with .NET's ``DateTime.ToBinary()``.

        Local times are stored as UTC, and converted back to the
        system's local time by :meth:`from_binary`.
        """
        if self._kind is Kind.LOCAL:
            offset = _timedelta_ticks(local_offset_at_wall(self._py_dt))
            ticks = self.ticks - offset
            if ticks < 0:
                ticks += _TICKS_CEILING
            raw = ticks | _LOCAL_MASK
        else:
            raw = self.ticks | (self._kind.value << _KIND_SHIFT)
        return raw - (1 << 64) if raw & _LOCAL_MASK else raw

    @classmethod
    def from_binary(cls, data: int, /) -> RocDateTime:
        """Inverse of :meth:`to_binary`"""
        if not -(1 << 63) <= data < (1 << 63):
            raise RangeError(f"Not a 64-bit integer: {data}")
        raw = data & _UINT64_MASK
        ticks = raw & _TICKS_MASK
        if raw & _LOCAL_MASK:
            if ticks > _TICKS_CEILING - TICKS_PER_DAY:
                ticks -= _TICKS_CEILING
            utc_dt, _ = datetime_from_ticks(_clamp_ticks(ticks))
            ticks += _timedelta_ticks(local_offset_at_utc(utc_dt))
            if ticks < 0:
                ticks += TICKS_PER_DAY
            kind = Kind.LOCAL
        else:
            kind = Kind(raw >> _KIND_SHIFT)
        if not 0 <= ticks <= MAX_TICKS:
            raise RangeError(f"Binary data out of range: {data}")
        return cls._from_ticks_unchecked(ticks, kind)

    def to_file_time(self) -> int:
        """Convert to a Windows file time: 100-nanosecond intervals
        since 1601-01-01 UTC. An unspecified kind is assumed to be
        local time."""
        return self.to_universal_time().to_file_time_utc()

    def to_file_time_utc(self) -> int:
        """Like :meth:`to_file_time`, but an unspecified kind is
        assumed to be UTC already."""
        utc = self.to_universal_time() if self._kind is Kind.LOCAL else self
        ticks = utc.ticks - FILE_TIME_OFFSET
        if ticks < 0:
            raise RangeError("Not a valid Windows file time")
        return ticks

    @classmethod
    def from_file_time(cls, file_time: int, /) -> RocDateTime:
        """Create a local time from a Windows file time"""
        return cls.from_file_time_utc(file_time).to_local_time()

    @classmethod
    def from_file_time_utc(cls, file_time: int, /) -> RocDateTime:
        """Create a UTC time from a Windows file time"""
        if not 0 <= file_time <= MAX_TICKS - FILE_TIME_OFFSET:
            raise RangeError(f"File time out of range: {file_time}")
        return cls._from_ticks_unchecked(
            file_time + FILE_TIME_OFFSET, Kind.UTC
        )

    def format(self, pattern: str | None = None, /) -> str:
        """Format using a custom pattern. Defaults to ``yyy/MM/dd HH:mm:ss``.

        Besides the date tokens of :meth:`RocDate.format`, supports
        ``HH``/``H`` (24-hour), ``hh``/``h`` (12-hour), ``mm``/``m``,
        ``ss``/``s``, ``f`` to ``fffffff`` (fraction of a second) and
        ``tt``/``t`` (AM/PM).

        Example
        -------
        >>> d = RocDateTime(113, 5, 10, 14, 30, 45)
        >>> d.format("yyy年MM月dd日 HH時mm分ss秒")
        '113年05月10日 14時30分45秒'
        >>> d.format("hh:mm tt")
        '02:30 PM'
        """
        return render(pattern or DEFAULT_DATETIME_PATTERN, self._fields())

    def __format__(self, spec: str) -> str:
        return self.format(spec)

    def format_long_date(self) -> str:
        return self.date().format_long_date()

    def format_short_date(self) -> str:
        return self.date().format_short_date()

    def format_long_time(self) -> str:
        """Format as ``HH:mm:ss``"""
        return self.format("HH:mm:ss")

    def format_short_time(self) -> str:
        """Format as ``HH:mm``"""
        return self.format("HH:mm")

    def try_format_into(
        self, buffer: MutableSequence[str], pattern: str | None = None, /
    ) -> tuple[bool, int]:
        """Write the formatted datetime into a fixed-size sequence of
        characters. See :meth:`RocDate.try_format_into`."""
        return write_chars(buffer, self.format(pattern))

    def try_format_utf8(
        self, buffer: bytearray | memoryview, pattern: str | None = None, /
    ) -> tuple[bool, int]:
        """Like :meth:`try_format_into`, but writes UTF-8 encoded bytes"""
        return write_utf8(buffer, self.format(pattern))

    @classmethod
    def parse(cls, s: str, /) -> RocDateTime:
        """Parse one of the common ROC formats, trying them in order:

        - ``yyy年MM月dd日 HH時mm分ss秒``
        - ``yyy年MM月dd日``
        - ``yyy/MM/dd HH:mm:ss.fffffff`` (one to seven decimals)
        - ``yyy/MM/dd HH:mm:ss``
        - ``yyy/MM/dd HH:mm``
        - ``yyy/MM/dd``
        - ``yyy-MM-dd HH:mm:ss``
        - ``yyy-MM-dd``
        - ``yyyMMdd``
        - ``yyyMMddHHmmss``

        The year is always three digits. Gregorian dates are never
        accepted, and there is no trimming of whitespace.

        Example
        -------
        >>> RocDateTime.parse("113年05月10日")
        RocDateTime(113/05/10 00:00:00)
        >>> RocDateTime.parse("2026-01-01")
        Traceback (most recent call last):
          ...
        minguo.FormatError: Invalid format: '2026-01-01'
        """
        if (d := cls.try_parse(s)) is None:
            raise FormatError(s)
        return d

    @classmethod
    def try_parse(cls, s: str | None, /) -> RocDateTime | None:
        """Like :meth:`parse`, but returns ``None`` on failure"""
        if s is None or not s.strip():
            return None
        for candidate in CANDIDATES:
            if (p := candidate.parse(s)) is not None and (
                d := cls._from_parsed(p, True)
            ) is not None:
                return d
        return None

    @classmethod
    def parse_exact(cls, s: str, pattern: str, /) -> RocDateTime:
        """Parse using a custom pattern. The year is a ROC year if the
        pattern has a ``yyy`` token, and a Gregorian year otherwise.

        Example
        -------
        >>> RocDateTime.parse_exact("113.05.10 8:05", "yyy.MM.dd H:mm")
        RocDateTime(113/05/10 08:05:00)
        >>> RocDateTime.parse_exact("2024-05-10", "yyyy-MM-dd")
        RocDateTime(113/05/10 00:00:00)
        """
        if (d := cls.try_parse_exact(s, pattern)) is None:
            raise FormatError(s, pattern)
        return d

    @classmethod
    def try_parse_exact(
        cls, s: str | None, pattern: str, /
    ) -> RocDateTime | None:
        """Like :meth:`parse_exact`, but returns ``None`` on failure.

        Raises
        ------
        ValueError
            If the pattern contains tokens that can't be parsed.
        """
        compiled = compile_pattern(pattern)
        if s is None or not s.strip() or (p := compiled.parse(s)) is None:
            return None
        return cls._from_parsed(p, compiled.roc_year)

    @staticmethod
    def compare(a: RocDateTime, b: RocDateTime, /) -> int:
        """Compare two datetimes, returning -1, 0 or 1. The kind is ignored."""
        if not (isinstance(a, RocDateTime) and isinstance(b, RocDateTime)):
            raise TypeError("Can only compare RocDateTime with RocDateTime")
        x, y = a._as_tuple(), b._as_tuple()
        return (x > y) - (x < y)

    def __str__(self) -> str:
        return self.format(DEFAULT_DATETIME_PATTERN)

    def __repr__(self) -> str:
        fraction = (
            f".{self._nanos // 100:07d}".rstrip("0") if self._nanos else ""
        )
        suffix = _KIND_SUFFIX[self._kind]
        return f"RocDateTime({self}{fraction}{suffix})"

    def __eq__(self, other: object) -> bool:
        """Compare for equality. The kind is ignored.

        Example
        -------
        >>> d = RocDateTime(113, 1, 2, 3)
        >>> d == RocDateTime(113, 1, 2, 3, kind=Kind.UTC)
        True
        """
        if not isinstance(other, RocDateTime):
            return NotImplemented
        return self._as_tuple() == other._as_tuple()

    def __hash__(self) -> int:
        return hash(self._as_tuple())

    def __lt__(self, other: RocDateTime) -> bool:
        if not isinstance(other, RocDateTime):
            return NotImplemented
        return self._as_tuple() < other._as_tuple()

    def __le__(self, other: RocDateTime) -> bool:
        if not isinstance(other, RocDateTime):
            return NotImplemented
        return self._as_tuple() <= other._as_tuple()

    def __gt__(self, other: RocDateTime) -> bool:
        if not isinstance(other, RocDateTime):
            return NotImplemented
        return self._as_tuple() > other._as_tuple()

    def __ge__(self, other: RocDateTime) -> bool:
        if not isinstance(other, RocDateTime):
            return NotImplemented
        return self._as_tuple() >= other._as_tuple()

    def _as_tuple(self) -> tuple[_datetime, int]:
        return (self._py_dt, self._nanos)

    def _fields(self) -> Fields:
        dt = self._py_dt
        return Fields(
            dt.year - ROC_YEAR_OFFSET,
            dt.month,
            dt.day,
            dt.weekday(),
            dt.hour,
            dt.minute,
            dt.second,
            self._nanos // 100,
        )

    def _shift_ticks(self, ticks: int, delta: int) -> RocDateTime:
        result = ticks + delta
        if not 0 <= result <= MAX_TICKS:
            raise OverflowError("date value out of range")
        return self._from_ticks_unchecked(result, self._kind)

    @classmethod
    def _from_parsed(cls, p: Parsed, roc_year: bool) -> RocDateTime | None:
        # Parsed text must be a valid year on its own, so ROC 000 is not
        if p.year < 1:
            return None
        try:
            py_dt = _datetime(
                p.year + ROC_YEAR_OFFSET if roc_year else p.year,
                p.month,
                p.day,
                p.hour,
                p.minute,
                p.second,
            )
        except ValueError:
            return None
        return cls._from_py_unchecked(
            py_dt, p.fraction * 100, Kind.UNSPECIFIED
        )

    @classmethod
    def _from_ticks_unchecked(cls, ticks: int, kind: Kind) -> RocDateTime:
        py_dt, nanos = datetime_from_ticks(ticks)
        return cls._from_py_unchecked(py_dt, nanos, kind)

    @classmethod
    def _from_py_unchecked(
        cls, d: _datetime, nanos: int, kind: Kind, /
    ) -> RocDateTime:
        assert not d.microsecond
        assert 0 <= nanos <= _MAX_NANOS
        self = _object_new(cls)
        self._py_dt = d
        self._nanos = nanos
        self._kind = kind
        return self

    @no_type_check
    def __reduce__(self):
        return (
            _unpkl_dt,
            (
                pack(
                    "<HBBBBBIB",
                    *self._py_dt.timetuple()[:6],
                    self._nanos,
                    self._kind.value,
                ),
            ),
        )


@no_type_check
def _unpkl_dt(data: bytes) -> RocDateTime:
    *args, nanos, kind = unpack("<HBBBBBIB", data)
    return RocDateTime._from_py_unchecked(_datetime(*args), nanos, Kind(kind))


_KIND_SUFFIX = {Kind.UNSPECIFIED: "", Kind.UTC: " UTC", Kind.LOCAL: " Local"}


def _timedelta_ticks(td: _timedelta) -> int:
    return (
        (td.days * 86_400 + td.seconds) * TICKS_PER_SECOND
        + td.microseconds * TICKS_PER_MICROSECOND
    )


def _clamp_ticks(ticks: int) -> int:
    return min(max(ticks, 0), MAX_TICKS)


RocDateTime.MIN = RocDateTime._from_py_unchecked(
    _datetime.min, 0, Kind.UNSPECIFIED
)
RocDateTime.MAX = RocDateTime._from_py_unchecked(
    _datetime.max.replace(microsecond=0), _MAX_NANOS, Kind.UNSPECIFIED
)
RocDateTime.UNIX_EPOCH = RocDateTime._from_ticks_unchecked(
    UNIX_EPOCH_TICKS, Kind.UTC
)


# We expose the public members in the root of the module.
# For clarity, we remove the "_pyminguo" part from the names,
# since this is an implementation detail.
for name in __all__:
    member = locals()[name]
    if getattr(member, "__module__", "").startswith("minguo."):
        member.__module__ = "minguo"

# clear up loop variables so they don't leak into the namespace
del name
del member

_unpkl_date.__module__ = "minguo"
_unpkl_dt.__module__ = "minguo"

# disable further subclassing
final(_ImmutableBase)
