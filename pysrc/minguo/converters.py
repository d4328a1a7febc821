"""Conversions between ROC dates and the representations used at the
edges of an application: database columns, JSON documents, HTML forms,
and plain Python values.

Nothing here knows about the calendar itself. Everything goes through
the public API of :class:`~minguo.RocDate` and :class:`~minguo.RocDateTime`.
"""

from __future__ import annotations

import enum
import json
import re
import sqlite3
from datetime import date as _date, datetime as _datetime, time as _time
from typing import Any, Union

from ._pyminguo import ConversionError, FormatError, RocDate, RocDateTime

__all__ = [
    "DateStorage",
    "DateTimeStorage",
    "RocDateHandler",
    "RocDateTimeHandler",
    "RocJSONEncoder",
    "load_date",
    "load_datetime",
    "to_roc_date",
    "to_roc_datetime",
    "convert",
    "format_optional",
    "to_input_date_value",
    "try_parse_input_date_value",
]

RocValue = Union[RocDate, RocDateTime]

_INPUT_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII).fullmatch


class DateStorage(enum.Enum):
    """How a :class:`~minguo.RocDate` is stored in a database column"""

    GREGORIAN = "gregorian"
    """A :class:`~datetime.date` (ISO text in SQLite)"""
    ROC_STRING = "roc_string"
    """Text in the ``yyy/MM/dd`` format"""
    INTEGER = "integer"
    """An integer of the form ``YYYMMDD``, e.g. ``1130510``"""


class DateTimeStorage(enum.Enum):
    """How a :class:`~minguo.RocDateTime` is stored in a database column"""

    GREGORIAN = "gregorian"
    ROC_STRING = "roc_string"


class RocDateHandler:
    """Translate :class:`~minguo.RocDate` values to and from a database.

    Example
    -------
    >>> handler = RocDateHandler(DateStorage.INTEGER)
    >>> handler.to_db(RocDate(113, 5, 10))
    1130510
    >>> handler.from_db(1130510)
    RocDate(113/05/10)
    """

    __slots__ = ("storage",)

    def __init__(self, storage: DateStorage = DateStorage.GREGORIAN) -> None:
        self.storage = storage

    def __repr__(self) -> str:
        return f"RocDateHandler({self.storage})"

    def to_db(self, value: RocDate) -> _date | str | int:
        if not isinstance(value, RocDate):
            raise ConversionError(f"Expected RocDate, got {type(value)!r}")
        if self.storage is DateStorage.GREGORIAN:
            return value.to_gregorian()
        elif self.storage is DateStorage.ROC_STRING:
            return str(value)
        else:
            return value.year * 10_000 + value.month * 100 + value.day

    def from_db(self, raw: object) -> RocDate:
        """Read a column value. Accepts whatever a driver may return:
        a date, text, bytes or an integer.

        Raises
        ------
        ConversionError
            If the value has an unsupported type.
        FormatError
            If text can't be parsed.
        RangeError
            If an integer doesn't describe a valid date.
        """
        if isinstance(raw, RocDate):
            return raw
        elif isinstance(raw, _date):
            return RocDate.from_gregorian(raw)
        elif isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            if self.storage is DateStorage.GREGORIAN:
                return RocDate.from_gregorian(_gregorian_date(raw))
            elif self.storage is DateStorage.INTEGER and raw.isdigit():
                return _from_integer(int(raw))
            return RocDate.parse(raw)
        elif isinstance(raw, int) and not isinstance(raw, bool):
            return _from_integer(raw)
        raise ConversionError(f"Can't convert {type(raw)!r} to RocDate")

    def register_sqlite(self, typename: str = "ROCDATE") -> None:
        """Register with :mod:`sqlite3`, so that :class:`~minguo.RocDate`
        can be used as a query parameter, and columns declared with the
        given type name are read back as :class:`~minguo.RocDate`.

        The connection needs ``detect_types=sqlite3.PARSE_DECLTYPES``.
        """
        sqlite3.register_adapter(
            RocDate, lambda d: _sqlite_value(self.to_db(d))
        )
        sqlite3.register_converter(typename, self.from_db)


class RocDateTimeHandler:
    """Translate :class:`~minguo.RocDateTime` values to and from a database.

    With :attr:`DateTimeStorage.ROC_STRING`, values are written with the
    given pattern (or ``yyy/MM/dd HH:mm:ss``), and read back with
    :meth:`~minguo.RocDateTime.parse_exact` if a pattern is set.
    """

    __slots__ = ("storage", "pattern")

    def __init__(
        self,
        storage: DateTimeStorage = DateTimeStorage.GREGORIAN,
        pattern: str | None = None,
    ) -> None:
        self.storage = storage
        self.pattern = pattern

    def __repr__(self) -> str:
        return f"RocDateTimeHandler({self.storage}, pattern={self.pattern!r})"

    def to_db(self, value: RocDateTime) -> _datetime | str:
        if not isinstance(value, RocDateTime):
            raise ConversionError(
                f"Expected RocDateTime, got {type(value)!r}"
            )
        if self.storage is DateTimeStorage.GREGORIAN:
            return value.to_gregorian()
        return value.format(self.pattern)

    def from_db(self, raw: object) -> RocDateTime:
        if isinstance(raw, RocDateTime):
            return raw
        elif isinstance(raw, _date):
            return RocDateTime.from_gregorian(raw)
        elif isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            if self.storage is DateTimeStorage.GREGORIAN:
                try:
                    return RocDateTime.from_gregorian(
                        _datetime.fromisoformat(raw)
                    )
                except ValueError:
                    raise FormatError(raw) from None
            elif self.pattern:
                return RocDateTime.parse_exact(raw, self.pattern)
            return RocDateTime.parse(raw)
        raise ConversionError(f"Can't convert {type(raw)!r} to RocDateTime")

    def register_sqlite(self, typename: str = "ROCDATETIME") -> None:
        """Like :meth:`RocDateHandler.register_sqlite`"""
        sqlite3.register_adapter(
            RocDateTime, lambda d: _sqlite_value(self.to_db(d))
        )
        sqlite3.register_converter(typename, self.from_db)


def _sqlite_value(value: object) -> object:
    # sqlite3 doesn't adapt the result of an adapter any further
    if isinstance(value, _datetime):
        return value.isoformat(" ")
    elif isinstance(value, _date):
        return value.isoformat()
    return value


def _gregorian_date(s: str) -> _date:
    try:
        return _date.fromisoformat(s)
    except ValueError:
        raise FormatError(s) from None


def _from_integer(n: int) -> RocDate:
    year, rest = divmod(n, 10_000)
    month, day = divmod(rest, 100)
    return RocDate(year, month, day)


class RocJSONEncoder(json.JSONEncoder):
    """JSON encoder that writes ROC dates as strings.

    Example
    -------
    >>> json.dumps({"d": RocDate(113, 5, 10)}, cls=RocJSONEncoder)
    '{"d": "113/05/10"}'
    >>> json.dumps(
    ...     RocDate(113, 5, 10), cls=RocJSONEncoder, date_pattern="yyyMMdd"
    ... )
    '"1130510"'
    """

    def __init__(
        self,
        *args: Any,
        date_pattern: str | None = None,
        datetime_pattern: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.date_pattern = date_pattern
        self.datetime_pattern = datetime_pattern

    def default(self, o: Any) -> Any:
        if isinstance(o, RocDateTime):
            return o.format(self.datetime_pattern)
        if isinstance(o, RocDate):
            return o.format(self.date_pattern)
        return super().default(o)


def load_date(
    text: str | None,
    default: RocDate | None = None,
    pattern: str | None = None,
) -> RocDate | None:
    """Read a date from a JSON string value. A missing or empty value
    gives the default. Anything else must parse."""
    if not text:
        return default
    if pattern:
        return RocDate.parse_exact(text, pattern)
    return RocDate.parse(text)


def load_datetime(
    text: str | None,
    default: RocDateTime | None = None,
    pattern: str | None = None,
) -> RocDateTime | None:
    """Read a datetime from a JSON string value. A missing or empty value
    gives the default. Anything else must parse."""
    if not text:
        return default
    if pattern:
        return RocDateTime.parse_exact(text, pattern)
    return RocDateTime.parse(text)


def to_roc_date(value: object) -> RocDate:
    """Convert text, a standard library date, or a ROC value to a
    :class:`~minguo.RocDate`"""
    if isinstance(value, RocDate):
        return value
    elif isinstance(value, RocDateTime):
        return value.date()
    elif isinstance(value, _date):
        return RocDate.from_gregorian(value)
    elif isinstance(value, str):
        return RocDate.parse(value)
    raise ConversionError(f"Can't convert {type(value)!r} to RocDate")


def to_roc_datetime(value: object) -> RocDateTime:
    """Convert text, a standard library date or datetime, or a ROC value
    to a :class:`~minguo.RocDateTime`"""
    if isinstance(value, RocDateTime):
        return value
    elif isinstance(value, RocDate):
        return value.at(_time())
    elif isinstance(value, _date):
        return RocDateTime.from_gregorian(value)
    elif isinstance(value, str):
        return RocDateTime.parse(value)
    raise ConversionError(f"Can't convert {type(value)!r} to RocDateTime")


def convert(value: RocValue, target: type) -> Any:
    """Convert a ROC value to ``str``, :class:`~datetime.date`,
    :class:`~datetime.datetime`, or the other ROC type

    Example
    -------
    >>> convert(RocDate(113, 5, 10), date)
    datetime.date(2024, 5, 10)
    """
    if not isinstance(value, (RocDate, RocDateTime)):
        raise ConversionError(f"Expected a ROC value, got {type(value)!r}")
    if target is str:
        return str(value)
    elif target is _datetime:
        return to_roc_datetime(value).to_gregorian()
    elif target is _date:
        return to_roc_date(value).to_gregorian()
    elif target is RocDate:
        return to_roc_date(value)
    elif target is RocDateTime:
        return to_roc_datetime(value)
    raise ConversionError(
        f"Can't convert {type(value).__name__} to {target!r}"
    )


def format_optional(value: RocValue | None, pattern: str | None = None) -> str:
    """Format a value that may be missing. ``None`` gives an empty string."""
    if value is None:
        return ""
    return value.format(pattern)


def to_input_date_value(value: RocValue | None) -> str:
    """The ``value`` of an HTML ``<input type="date">``: the Gregorian
    ``YYYY-MM-DD``, or an empty string if there is no date.

    Example
    -------
    >>> to_input_date_value(RocDate(113, 5, 10))
    '2024-05-10'
    """
    if value is None:
        return ""
    return to_roc_date(value).to_gregorian().isoformat()


def try_parse_input_date_value(
    text: str | None,
) -> tuple[bool, RocDateTime | None]:
    """Read the value of an HTML ``<input type="date">``.

    An empty input is valid and means "no date". Returns whether the
    input was valid, and the date at midnight if there was one.
    """
    if text is None or not (text := text.strip()):
        return True, None
    if not _INPUT_DATE(text):
        return False, None
    try:
        d = _date.fromisoformat(text)
    except ValueError:
        return False, None
    return True, RocDateTime.from_gregorian(d)
