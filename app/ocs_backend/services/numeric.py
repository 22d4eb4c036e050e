"""
Coercion helpers for untyped upstream values.

The OCS API returns numbers as JSON numbers, numeric strings, empty strings or
``null`` depending on the column.  Everything numeric goes through
``to_number`` before any arithmetic so a malformed cell contributes zero
instead of poisoning a sum.  String parsing follows the dashboard's
``Number()`` rules: ``0x`` / ``0o`` / ``0b`` literals are read, digit
separators (``1_000``) and non-ASCII digits are not.
"""

from __future__ import annotations

import math
from typing import Any

_RADIX_PREFIXES = ("0x", "0o", "0b")


def _parse_number(text: str) -> float:
    text = text.strip()
    if not text:
        return 0.0
    if "_" in text or not text.isascii():
        raise ValueError(f"not a number: {text!r}")
    if text[:2].lower() in _RADIX_PREFIXES:
        return float(int(text, 0))
    return float(text)


def to_number(value: Any) -> float:
    """Return *value* as a finite float, or ``0.0`` if it is not numeric."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if not isinstance(value, (int, float, str)):
        return 0.0
    try:
        num = _parse_number(value) if isinstance(value, str) else float(value)
    except (ValueError, OverflowError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def to_text(value: Any) -> str:
    """Return *value* as a string, with ``None`` mapped to ``""``."""
    return "" if value is None else str(value)
