"""
Shared count parser for abbreviated audience numbers ("1.5K", "2M", "12,345").
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

COUNT_REGEX = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*(?:([KMB])\b)?", flags=re.IGNORECASE)
COUNT_TOKEN = r"([0-9][0-9.,]*\s*[KMB]?)"
SUFFIX_MULTIPLIERS = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


def parse_count(text: str | None, default: int = 0) -> int:
    """
    Parse the first number in ``text`` honoring K/M/B suffixes.

    Thousands separators are stripped and fractional results are truncated.
    Returns ``default`` when no number is present.
    """

    if not text:
        return default
    cleaned = str(text).replace(",", "").strip()
    match = COUNT_REGEX.search(cleaned)
    if match is None:
        return default

    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return default
    suffix = (match.group(2) or "").upper()
    return int(value * SUFFIX_MULTIPLIERS.get(suffix, 1))


def average(values: list[int]) -> int:
    """Truncated integer mean; 0 for an empty list."""

    if not values:
        return 0
    return sum(values) // len(values)
