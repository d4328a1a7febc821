"""Parsing of ROC date strings by candidate patterns or digit streams."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable, NamedTuple, Optional

from ._format import tokenize

# Tried in order, the first one to match wins.
CANDIDATE_PATTERNS = (
    "yyy年MM月dd日 HH時mm分ss秒",
    "yyy年MM月dd日",
    *(f"yyy/MM/dd HH:mm:ss.{'f' * n}" for n in range(7, 0, -1)),
    "yyy/MM/dd HH:mm:ss",
    "yyy/MM/dd HH:mm",
    "yyy/MM/dd",
    "yyy-MM-dd HH:mm:ss",
    "yyy-MM-dd",
    "yyyMMdd",
    "yyyMMddHHmmss",
)

# field name and regex for each token that can be parsed
_PARSE_TOKENS = {
    "yyyy": ("year", r"(\d{4})"),
    "yyy": ("year", r"(\d{3})"),
    "MM": ("month", r"(\d{2})"),
    "M": ("month", r"(\d{1,2})"),
    "dd": ("day", r"(\d{2})"),
    "d": ("day", r"(\d{1,2})"),
    "HH": ("hour", r"(\d{2})"),
    "H": ("hour", r"(\d{1,2})"),
    "hh": ("hour12", r"(\d{2})"),
    "h": ("hour12", r"(\d{1,2})"),
    "mm": ("minute", r"(\d{2})"),
    "m": ("minute", r"(\d{1,2})"),
    "ss": ("second", r"(\d{2})"),
    "s": ("second", r"(\d{1,2})"),
    **{"f" * n: ("fraction", rf"(\d{{{n}}})") for n in range(1, 8)},
    "tt": ("meridiem", "(AM|PM)"),
    "t": ("meridiem", "(A|P)"),
}

_TIME_FIELDS = frozenset(
    ["hour", "hour12", "minute", "second", "fraction", "meridiem"]
)


class Parsed(NamedTuple):
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    fraction: int  # ticks within the second


class Pattern(NamedTuple):
    text: str
    match: Callable[[str], Optional[re.Match[str]]]
    fields: tuple[str, ...]
    roc_year: bool

    @property
    def has_time(self) -> bool:
        return not _TIME_FIELDS.isdisjoint(self.fields)

    def parse(self, s: str) -> Parsed | None:
        if (m := self.match(s)) is None:
            return None
        values = dict(zip(self.fields, m.groups()))
        hour = int(values.get("hour", 0))
        pm = "meridiem" in values and values["meridiem"][0] == "P"
        if "hour12" in values:
            hour = int(values["hour12"])
            if hour > 12:
                return None
            hour = hour % 12 + 12 * pm
        elif "hour" in values and "meridiem" in values and pm != (hour >= 12):
            # a 24-hour value must agree with the AM/PM designator
            return None
        elif pm and hour < 12:
            hour += 12
        return Parsed(
            int(values.get("year", 1)),
            int(values.get("month", 1)),
            int(values.get("day", 1)),
            hour,
            int(values.get("minute", 0)),
            int(values.get("second", 0)),
            int(values.get("fraction", "").ljust(7, "0")),
        )


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern:
    """Compile a custom date pattern into a strict matcher.

    Every numeric token has a fixed width, except the single-letter
    ones which take one or two digits. The whole string must match.
    """
    regex: list[str] = []
    fields: list[str] = []
    roc_year = False
    for segment in tokenize(pattern, False):
        if isinstance(segment, str):
            regex.append(re.escape(segment))
            continue
        token = segment[0]
        try:
            field, group = _PARSE_TOKENS[token]
        except KeyError:
            raise ValueError(
                f"Token {token!r} is not supported for parsing"
            ) from None
        if field in fields:
            raise ValueError(f"Pattern {pattern!r} repeats the {field}")
        roc_year |= token == "yyy"
        fields.append(field)
        regex.append(group)
    return Pattern(
        pattern,
        re.compile("".join(regex), re.ASCII).fullmatch,
        tuple(fields),
        roc_year,
    )


CANDIDATES = tuple(map(compile_pattern, CANDIDATE_PATTERNS))


def digit_stream(s: str | None) -> tuple[int, int, int] | None:
    """Read ``yyyMMdd`` from the digits in a string, ignoring
    everything else. There must be exactly seven digits."""
    if s is None or not (s := s.strip()):
        return None
    digits = "".join(filter(str.isdecimal, s))
    if len(digits) != 7:
        return None
    year, month, day = int(digits[:3]), int(digits[3:5]), int(digits[5:])
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return year, month, day
