"""Rendering of .NET-style custom date and time patterns.

Patterns are split into tokens in a single pass. At each position the
longest known token wins, anything else is copied verbatim. There is no
escaping: a letter that forms a token is always substituted.
"""

from __future__ import annotations

from calendar import day_abbr, day_name, month_abbr, month_name
from functools import lru_cache
from typing import Callable, MutableSequence, NamedTuple, Union

DEFAULT_DATE_PATTERN = "yyy/MM/dd"
DEFAULT_DATETIME_PATTERN = "yyy/MM/dd HH:mm:ss"


class Fields(NamedTuple):
    year: int  # ROC
    month: int
    day: int
    weekday: int  # 0 is Monday
    hour: int = 0
    minute: int = 0
    second: int = 0
    fraction: int = 0  # ticks within the second, 0-9_999_999


def _pad(n: int, width: int) -> str:
    # The sign doesn't count towards the width
    return f"-{-n:0{width}d}" if n < 0 else f"{n:0{width}d}"


def _last_digits(n: int, modulus: int) -> int:
    r = abs(n) % modulus
    return -r if n < 0 else r


def _fraction(digits: int) -> Callable[[Fields], str]:
    return lambda f: f"{f.fraction:07d}"[:digits]


Producer = Callable[[Fields], str]

# Grouped by category, longest token first within each category.
DATE_TOKENS: tuple[tuple[str, Producer], ...] = (
    ("yyyy", lambda f: _pad(f.year, 4)),
    ("yyy", lambda f: _pad(f.year, 3)),
    ("yy", lambda f: _pad(_last_digits(f.year, 100), 2)),
    ("y", lambda f: str(_last_digits(f.year, 10))),
    ("MMMM", lambda f: month_name[f.month]),
    ("MMM", lambda f: month_abbr[f.month]),
    ("MM", lambda f: f"{f.month:02d}"),
    ("M", lambda f: str(f.month)),
    ("dddd", lambda f: day_name[f.weekday]),
    ("ddd", lambda f: day_abbr[f.weekday]),
    ("dd", lambda f: f"{f.day:02d}"),
    ("d", lambda f: str(f.day)),
)

DATETIME_TOKENS: tuple[tuple[str, Producer], ...] = DATE_TOKENS + (
    ("HH", lambda f: f"{f.hour:02d}"),
    ("H", lambda f: str(f.hour)),
    ("hh", lambda f: f"{f.hour % 12 or 12:02d}"),
    ("h", lambda f: str(f.hour % 12 or 12)),
    ("mm", lambda f: f"{f.minute:02d}"),
    ("m", lambda f: str(f.minute)),
    ("ss", lambda f: f"{f.second:02d}"),
    ("s", lambda f: str(f.second)),
    *((("f" * n), _fraction(n)) for n in range(7, 0, -1)),
    ("tt", lambda f: "AM" if f.hour < 12 else "PM"),
    ("t", lambda f: "A" if f.hour < 12 else "P"),
)


def _index(
    table: tuple[tuple[str, Producer], ...],
) -> dict[str, list[tuple[str, Producer]]]:
    by_first_char: dict[str, list[tuple[str, Producer]]] = {}
    for token, producer in table:
        by_first_char.setdefault(token[0], []).append((token, producer))
    for candidates in by_first_char.values():
        candidates.sort(key=lambda c: -len(c[0]))
    return by_first_char


_DATE_INDEX = _index(DATE_TOKENS)
_DATETIME_INDEX = _index(DATETIME_TOKENS)

# A literal string, or a token with its producer
Segment = Union[str, tuple[str, Producer]]


@lru_cache(maxsize=256)
def tokenize(pattern: str, date_only: bool = False) -> tuple[Segment, ...]:
    """Split a pattern into literal text and tokens.

    Example
    -------
    >>> [s if isinstance(s, str) else s[0] for s in tokenize("yyy年MM月")]
    ['yyy', '年', 'MM', '月']
    """
    index = _DATE_INDEX if date_only else _DATETIME_INDEX
    segments: list[Segment] = []
    literal: list[str] = []
    pos = 0
    end = len(pattern)
    while pos < end:
        for token, producer in index.get(pattern[pos], ()):
            if pattern.startswith(token, pos):
                if literal:
                    segments.append("".join(literal))
                    literal.clear()
                segments.append((token, producer))
                pos += len(token)
                break
        else:
            literal.append(pattern[pos])
            pos += 1
    if literal:
        segments.append("".join(literal))
    return tuple(segments)


def has_token(pattern: str, token: str) -> bool:
    return any(
        not isinstance(s, str) and s[0] == token
        for s in tokenize(pattern, False)
    )


def render(pattern: str, fields: Fields, date_only: bool = False) -> str:
    return "".join(
        s if isinstance(s, str) else s[1](fields)
        for s in tokenize(pattern, date_only)
    )


def write_chars(dest: MutableSequence[str], text: str) -> tuple[bool, int]:
    """Copy text into a fixed-size character buffer.
    Nothing is written if it doesn't fit."""
    if len(text) > len(dest):
        return False, 0
    for i, char in enumerate(text):
        dest[i] = char
    return True, len(text)


def write_utf8(dest: bytearray | memoryview, text: str) -> tuple[bool, int]:
    """Copy the UTF-8 encoding of text into a byte buffer.
    Nothing is written if it doesn't fit."""
    data = text.encode("utf-8")
    if len(data) > len(dest):
        return False, 0
    dest[: len(data)] = data
    return True, len(data)
