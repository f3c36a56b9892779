"""
Stock symbol matcher.

Symbol grammar
--------------
AAPL     – 1 to 5 uppercase ASCII letters
BRK.A    – optionally followed by "." and a 1–2 letter exchange/class suffix

A candidate must sit on a word boundary: the characters on either side may not
be letters or digits.  Matching is case-sensitive, left-to-right and
non-overlapping.  Candidates rejected by the exclusion policy are never
surfaced.

The pattern is compiled once at import time; the functions here are pure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from .exclusions import is_excluded


# (?<![^\W_]) – not preceded by a letter or digit
# (?![^\W_])  – not followed by a letter or digit
SYMBOL_PATTERN: re.Pattern[str] = re.compile(
    r"(?<![^\W_])([A-Z]{1,5}(?:\.[A-Z]{1,2})?)(?![^\W_])"
)


@dataclass(frozen=True, slots=True)
class SymbolMatch:
    symbol: str  # raw matched token, suffix included
    start: int   # offset of the first character within the text
    end: int     # offset one past the last character


def iter_symbols(text: str) -> Iterator[SymbolMatch]:
    """Lazily yield every surviving symbol candidate in *text*, in order."""
    for m in SYMBOL_PATTERN.finditer(text):
        symbol = m.group(1)
        if is_excluded(symbol):
            continue
        yield SymbolMatch(symbol=symbol, start=m.start(1), end=m.end(1))


def find_symbols(text: str) -> list[SymbolMatch]:
    """Return every surviving symbol candidate in *text*, ordered by position."""
    return list(iter_symbols(text))


def any_symbol(text: str) -> bool:
    """Return True as soon as the first candidate survives – short-circuits."""
    return next(iter_symbols(text), None) is not None
