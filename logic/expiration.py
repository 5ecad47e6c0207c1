"""Promotion expiration parsing.

Absolute dates (``expires on 12/31/2025``, ``valid until Dec 31``,
``ends 12/31``) resolve to midnight UTC on that day. Relative phrases
(``3 days left``, ``12 hours left``) resolve against the time the message is
processed, not the time it was received.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from logic.rules import RuleSet

logger = logging.getLogger(__name__)

_NUMERIC_DATE = r"(\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?)"
_MONTH_DATE = r"((?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?)"

EXPIRATION_RULES = RuleSet(
    "expiration",
    [
        (rf"(?<![a-z])expires?\s+(?:on\s+)?{_NUMERIC_DATE}", "absolute"),
        (rf"(?<![a-z])valid\s+(?:until|through|thru)\s+{_NUMERIC_DATE}", "absolute"),
        (rf"(?<![a-z])ends?\s+(?:on\s+)?{_NUMERIC_DATE}", "absolute"),
        (rf"(?<![a-z])expires?\s+(?:on\s+)?{_MONTH_DATE}", "absolute_month"),
        (rf"(?<![a-z])valid\s+(?:until|through|thru)\s+{_MONTH_DATE}", "absolute_month"),
        (rf"(?<![a-z])ends?\s+(?:on\s+)?{_MONTH_DATE}", "absolute_month"),
        (r"(\d{1,3})\s+days?\s+left", "days_left"),
        (r"(\d{1,3})\s+hours?\s+left", "hours_left"),
    ],
)


def _parse_numeric_date(raw: str, now: datetime) -> Optional[datetime]:
    parts = re.split(r"[/-]", raw)
    try:
        month, day = int(parts[0]), int(parts[1])
        if len(parts) > 2:
            year = int(parts[2])
            if year < 100:
                year += 2000
        else:
            year = now.year
        return datetime(year, month, day, tzinfo=timezone.utc)
    except (ValueError, IndexError):
        logger.debug("Failed to parse date", extra={"raw_date": raw})
        return None


def _parse_month_date(raw: str, now: datetime) -> Optional[datetime]:
    cleaned = re.sub(r"(\d)(st|nd|rd|th)", r"\1", raw.replace(",", " ").replace(".", " "))
    tokens = cleaned.split()
    month_token = tokens[0][:3]
    has_year = len(tokens) > 2
    text = f"{month_token} {tokens[1]} {tokens[2] if has_year else now.year}"
    try:
        parsed = datetime.strptime(text, "%b %d %Y")
    except ValueError:
        logger.debug("Failed to parse date", extra={"raw_date": raw})
        return None
    return parsed.replace(tzinfo=timezone.utc)


def extract_expiration(subject: str, snippet: str, now: datetime | None = None) -> Optional[datetime]:
    """Return the promotion expiry found in ``subject`` and ``snippet``, if any."""

    now = now or datetime.now(timezone.utc)
    text = f"{subject or ''} {snippet or ''}".lower()
    matched = EXPIRATION_RULES.first_match(text)
    if not matched:
        return None

    value = matched.group(1) or ""
    if matched.label == "days_left":
        return now + timedelta(days=int(value))
    if matched.label == "hours_left":
        return now + timedelta(hours=int(value))
    if matched.label == "absolute_month":
        return _parse_month_date(value, now)
    return _parse_numeric_date(value, now)


__all__ = ["EXPIRATION_RULES", "extract_expiration"]
