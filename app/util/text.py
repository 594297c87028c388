"""
Text helpers shared by the section parsers.

- normalize_text: fix encoding junk, collapse whitespace runs, unify line endings.
- parse_date / parse_date_strict: "7 Dec 2025" or "14/12/25" -> datetime.date.
- money_to_decimal: "£1,234.50" / "- 40.00" -> Decimal.
- first_match: walk an ordered fallback chain of patterns, first hit wins.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Pattern

from extraction.patterns import ENCODING_FIXES, MONTHS, SLASH_DATE_PAT, TEXT_DATE_PAT


def normalize_text(text: str) -> str:
    if not text:
        return ""
    for bad, good in ENCODING_FIXES.items():
        text = text.replace(bad, good)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n", "\n", text)
    return text.strip()


def _year(raw: str) -> int:
    return 2000 + int(raw) if len(raw) == 2 else int(raw)


def parse_date_strict(raw: Optional[str]) -> Optional[date]:
    """Parse "D Mon YY[YY]" or "D/M/YY[YY]"; None when the shape or the calendar date is wrong."""
    if not raw:
        return None
    s = raw.strip()
    m = TEXT_DATE_PAT.match(s)
    if m:
        day, mon, yr = m.groups()
        mon = mon.lower()
        if mon not in MONTHS:
            return None
        try:
            return date(_year(yr), MONTHS.index(mon) + 1, int(day))
        except ValueError:
            return None
    m = SLASH_DATE_PAT.match(s)
    if m:
        day, mon, yr = m.groups()
        if len(yr) == 3:
            return None
        try:
            return date(_year(yr), int(mon), int(day))
        except ValueError:
            return None
    return None


def parse_date(raw: Optional[str], today: Optional[date] = None) -> date:
    """
    Lenient variant for advisory header dates: anything unparseable falls back
    to the processing date instead of failing the document.
    """
    parsed = parse_date_strict(raw)
    if parsed is not None:
        return parsed
    return today or date.today()


def money_to_decimal(raw: Optional[str]) -> Decimal:
    """'£1,234.50' -> Decimal('1234.50'); '- 40.00' -> Decimal('-40.00'); junk -> 0."""
    if not raw:
        return Decimal("0")
    cleaned = re.sub(r"[£€$,\s]", "", raw)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


def first_match(text: str, patterns: Iterable[Pattern[str]]) -> Optional[re.Match]:
    for pat in patterns:
        m = pat.search(text)
        if m:
            return m
    return None
