"""
Shared fixtures: a two-page sample invoice, as text lines and as positioned tokens.

Tokens are laid out one word at a time with a 10-unit gap after each word's
estimated end (len * 3), so row reconstruction gives the lines back verbatim.
"""

from datetime import date
from typing import List

import pytest

from app.models.schemas import InvoiceHeader, PositionedToken

PAGE_ONE = [
    "YODEL DELIVERY NETWORK LTD",
    "Invoice No: 100234 Date: 21 Dec 2025",
    "Supplier ID: SUP778",
    "Payment Period: 14 Dec 2025 - 20 Dec 2025",
    "Week Summary",
    "Operator Tour Delivered Collected Sacks Packets Amount",
    "DB6249 WB68 57 0 0 17 129.50",
    "DB6261 WB80 0 1 0 22 40.25",
    "Total 57 1 0 39 169.75",
    "Manual Adjustments - £ 40.00",
    "Manual Adjustments £ 62.50",
    "Total £ 192.25",
    "Daily Breakdown",
    "Date Tour Operator Service Group Total Qty Rate Amount",
    "Sunday WB6 DB6249 Packet 17 017 @ 1.75 29.75",
    "14/12/2025 8 Regular Delivery 57 057 @ 1.75 99.75",
    "74 129.50",
    "WB8 DB6261 AdHoc/Scheduled Collections 1 001 @ 1.75 1.75",
    "0 Packet 22 022 @ 1.75 38.50",
    "23 40.25",
    "Monday",
    "15/12/2025 WB68 DB6249 Yodel Store Collection 4 3 @ 0.00 1 @ 1.50 1.50",
    "Regular Delivery 112 2 @ 0.00 110 @ 1.75 192.50",
]

PAGE_TWO = [
    "Manual Adjustments",
    "Date Tour Operator Parcel Id Type Amount",
    "16/12/2025 WB68 DB6249 JD0002226001 Lost Parcel - 40.00",
    "Customer complaint upheld",
    "17/12/2025 WB68 DB6249 Route Review 0.00",
    "18/12/2025 WB80 DB6261 PREMIUM Operating Payment x1.25 50.00",
    "20/12/2025 WB80 Fuel Support 12.50",
    "Total Deductions - £ 40.00",
    "Total Additional Payment £ 62.50",
    "Net Total £1,204.50",
    "VAT @ 20% £240.90",
    "Gross Total £1,445.40",
]

TODAY = date(2026, 1, 5)


def tokens_for(lines: List[str], page: int = 1, top: float = 20.0, step: float = 12.0) -> List[PositionedToken]:
    tokens: List[PositionedToken] = []
    for row, line in enumerate(lines):
        x = 10.0
        for word in line.split(" "):
            tokens.append(PositionedToken(text=word, x=x, y=top + row * step, page=page))
            x += len(word) * 3 + 10
    return tokens


def pages_for(*pages: List[str]) -> List[List[PositionedToken]]:
    return [tokens_for(lines, page=i) for i, lines in enumerate(pages, start=1)]


def make_header(invoice_number: str = "100234") -> InvoiceHeader:
    return InvoiceHeader(
        invoice_number=invoice_number,
        invoice_date=date(2025, 12, 21),
        period_start=date(2025, 12, 14),
        period_end=date(2025, 12, 20),
        supplier_id="SUP778",
        provider="YODEL",
    )


@pytest.fixture
def sample_lines() -> List[str]:
    return PAGE_ONE + PAGE_TWO


@pytest.fixture
def sample_pages() -> List[List[PositionedToken]]:
    return pages_for(PAGE_ONE, PAGE_TWO)


@pytest.fixture
def header() -> InvoiceHeader:
    return make_header()
