"""Lenient parsing of string-valued money, limit and date fields.

Extracted fields arrive as free text (``"$25,000"``, ``"25,000/50,000"``,
``"01/15/2025"``). Unparseable values resolve to ``0`` or ``None`` and never
raise.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, NamedTuple

_LEADING_NUMBER = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")
_SPLIT_PART = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*(k)?", re.I)

# Split limits written in thousands ("100/300/50") have every part below this
SHORTHAND_CEILING = 1000

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%Y/%m/%d",
)


def parse_money(value: Any, default: float = 0.0) -> float:
    """Parse a monetary amount, stripping ``,`` and ``$``.

    Only the leading number is read, so ``"25,000/50,000"`` yields ``25000``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = str(value).replace(",", "").replace("$", "")
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return default
    try:
        return float(match.group(1))
    except ValueError:
        return default


class SplitLimits(NamedTuple):
    """Auto-style split liability limits; missing parts are ``0``."""

    per_person: float = 0.0
    per_accident: float = 0.0
    property_damage: float = 0.0


def parse_limits(value: Any) -> SplitLimits:
    """Parse ``"100/300/50"``, ``"$25,000/$50,000"`` or a single limit.

    When every part of a split limit is below 1,000 (or marked ``k``) the
    parts are read as thousands. A single amount fills ``per_person`` only.
    """
    if value is None or isinstance(value, bool):
        return SplitLimits()
    if isinstance(value, (int, float)):
        return SplitLimits(per_person=float(value))

    amounts: list[float] = []
    for part in str(value).split("/")[:3]:
        match = _SPLIT_PART.search(part)
        if not match:
            amounts.append(0.0)
            continue
        amount = float(match.group(1).replace(",", ""))
        amounts.append(amount * 1000 if match.group(2) else amount)

    if len(amounts) > 1 and all(a < SHORTHAND_CEILING for a in amounts):
        amounts = [a * 1000 for a in amounts]
    return SplitLimits(*amounts)


def parse_date(value: Any) -> date | None:
    """Parse a date in one of the common policy-document formats."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return math.floor(value + 0.5)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def slugify(name: str) -> str:
    """``"Bodily Injury Liability"`` -> ``"bodily-injury-liability"``."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def normalize_name(name: str) -> str:
    """Lowercase and drop everything but letters, for tolerant name matching."""
    return re.sub(r"[^a-z]", "", name.lower())


def format_money(amount: float) -> str:
    return f"${amount:,.0f}"
