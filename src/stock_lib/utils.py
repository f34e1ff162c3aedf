"""
Utility functions for string normalization and value coercion.

This module handles the low-level text logic, including:
- Canonical matching keys ("Resistor 10kΩ" -> "res10k").
- Id generation from display names ("Big Muff" -> "big_muff").
- Display names from slugs ("op_amp_4558" -> "Op Amp 4558").
- Lenient quantity parsing ("5 pcs" -> 5).
"""

import math
import re
from typing import Any

from src.stock_lib import constants as C

# "4.7k" -> "4k7" (BS 1852) so the decimal point survives punctuation stripping
_DECIMAL_UNIT = re.compile(r"(\d+)\.(\d+)\s*([pnumkgr])", re.IGNORECASE)
_MEG_RUN_RAW = re.compile(r"(\d)\s*mega?", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Post-strip rewrites. Each one removes characters.
_MEG_RUN = re.compile(r"(\d)mega?")
_UNIT_SUFFIX = re.compile(r"(\d[pnum]\d*)[fh]")
_TRAILING_UNIT = re.compile(r"(\d[pnumk]?)[ur]$")


def _contract(key: str) -> str:
    """Single pass of the domain contractions over a stripped key."""
    for word in C.DROPPED_WORDS:
        key = key.replace(word, "")

    for long_form, short_form in C.WORD_CONTRACTIONS:
        key = key.replace(long_form, short_form)

    key = _MEG_RUN.sub(r"\1m", key)
    key = _UNIT_SUFFIX.sub(r"\1", key)
    key = _TRAILING_UNIT.sub(r"\1", key)
    return key


def normalize(text: Any) -> str:
    """
    Reduces a part name or id to a comparable key.

    Lowercases, drops punctuation and whitespace, and folds the usual ways of
    writing the same component into one form:
    'Resistor 10kΩ', 'res_10k' and '10K ohm resistor' all collapse onto keys
    built from 'res' and '10k'.

    Contractions are applied repeatedly until nothing changes. Every rewrite
    shortens the key, so the loop ends, and the result is a fixed point:
    normalize(normalize(x)) == normalize(x).

    Args:
        text: Raw name or id. None and empty strings are allowed.

    Returns:
        The normalized key, or "" for empty input.
    """
    if text is None:
        return ""

    raw = str(text)
    if not raw:
        return ""

    raw = raw.replace("µ", "u").replace("μ", "u").replace("Μ", "u")
    raw = _MEG_RUN_RAW.sub(r"\1m", raw)
    raw = _DECIMAL_UNIT.sub(r"\1\3\2", raw)

    key = _NON_ALNUM.sub("", raw.lower())

    while True:
        contracted = _contract(key)
        if contracted == key:
            return key
        key = contracted


def make_id(name: str) -> str:
    """
    Derives a storage id from a display name.

    Args:
        name: The display name (e.g., "Big Muff Pi").

    Returns:
        Lowercase id with every non-alphanumeric character replaced by '_'
        (e.g., "big_muff_pi").
    """
    return _NON_ALNUM.sub("_", name.strip().lower())


def humanize_key(key: str) -> str:
    """
    Builds a readable name from a slug-style key.

    e.g. 'op_amp_4558' -> 'Op Amp 4558'
    """
    cleaned = re.sub(r"[_\-]+", " ", str(key)).strip()
    if not cleaned:
        return str(key)
    return cleaned.title()


def coerce_quantity(value: Any) -> int:
    """
    Interprets a stored or imported quantity as a non-negative integer.

    Strings are read up to their first non-digit ('12 pcs' -> 12), floats are
    truncated, and anything unusable becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0

    if isinstance(value, int):
        return max(0, value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(0, int(value))

    if isinstance(value, str):
        match = re.match(r"\s*(-?\d+)", value)
        if match:
            return max(0, int(match.group(1)))

    return 0
