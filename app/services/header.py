"""
Invoice header fields.

Each field walks its pattern chain from extraction.patterns.HEADER_PATTERNS
(primary first, then fallbacks). Only the invoice number is required; every
other field has a default:
- invoice date -> processing date
- period bounds -> invoice date
- provider -> YODEL
- money totals -> 0
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from app.models.schemas import InvoiceHeader
from app.services.errors import MissingRequiredField
from app.util.logger import get_logger
from app.util.text import first_match, money_to_decimal, parse_date
from extraction.patterns import DEFAULT_PROVIDER, HEADER_PATTERNS


def _search(scopes: Sequence[str], field: str):
    """Try the whole chain on each scope in turn (header block first, then the full document)."""
    for text in scopes:
        m = first_match(text, HEADER_PATTERNS[field])
        if m:
            return m
    return None


def _money(scopes: Sequence[str], field: str) -> Decimal:
    m = _search(scopes, field)
    return money_to_decimal(m.group(1)) if m else Decimal("0")


def extract_header(text: str, today: Optional[date] = None, fallback_text: Optional[str] = None) -> InvoiceHeader:
    logger = get_logger(__name__)
    scopes = [text] if not fallback_text else [text, fallback_text]

    m = _search(scopes, "invoice_number")
    invoice_number = m.group(1).strip() if m else ""
    if not invoice_number:
        raise MissingRequiredField("invoice_number", stage="header")

    today = today or date.today()
    m = _search(scopes, "invoice_date")
    invoice_date = parse_date(m.group(1), today) if m else today

    m = _search(scopes, "period")
    period_start = parse_date(m.group(1), today) if m else invoice_date
    period_end = parse_date(m.group(2), today) if m else invoice_date

    m = _search(scopes, "supplier_id")
    supplier_id = m.group(1).strip().upper() if m else None

    m = _search(scopes, "provider")
    provider = " ".join(m.group(1).upper().split()) if m else DEFAULT_PROVIDER

    header = InvoiceHeader(
        invoice_number=invoice_number,
        invoice_date=invoice_date,
        period_start=period_start,
        period_end=period_end,
        supplier_id=supplier_id,
        provider=provider,
        net_total=_money(scopes, "net_total"),
        vat=_money(scopes, "vat"),
        gross_total=_money(scopes, "gross_total"),
    )
    logger.info(
        f"Header: invoice={header.invoice_number} date={header.invoice_date} "
        f"period={header.period_start}..{header.period_end} gross={header.gross_total}"
    )
    return header
