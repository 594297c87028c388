"""
Unit tests for header extraction and the week summary block.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.services.errors import InvariantViolation, MissingRequiredField
from app.services.header import extract_header
from app.services.sections import DAILY_BREAKDOWN, HEADER, MANUAL_ADJUSTMENTS, WEEK_SUMMARY, split_sections
from app.services.weekly import parse_adjustment_summary, parse_week_summary

from conftest import TODAY

HEADER_TEXT = "\n".join([
    "YODEL DELIVERY NETWORK LTD",
    "Invoice No: 100234 Date: 21 Dec 2025",
    "Supplier ID: SUP778",
    "Payment Period: 14 Dec 2025 - 20 Dec 2025",
    "Net Total £1,204.50",
    "VAT @ 20% £240.90",
    "Gross Total £1,445.40",
])


class TestExtractHeader:
    """Test extract_header field chains and defaults."""

    def test_all_fields(self):
        h = extract_header(HEADER_TEXT, today=TODAY)
        assert h.invoice_number == "100234"
        assert h.invoice_date == date(2025, 12, 21)
        assert h.period_start == date(2025, 12, 14)
        assert h.period_end == date(2025, 12, 20)
        assert h.supplier_id == "SUP778"
        assert h.provider == "YODEL"
        assert h.net_total == Decimal("1204.50")
        assert h.vat == Decimal("240.90")
        assert h.gross_total == Decimal("1445.40")

    def test_missing_invoice_number_is_fatal(self):
        with pytest.raises(MissingRequiredField) as exc:
            extract_header("Date: 21 Dec 2025\nGross Total £10.00", today=TODAY)
        assert exc.value.field == "invoice_number"
        assert exc.value.stage == "header"

    def test_fallback_invoice_number_pattern(self):
        h = extract_header("Invoice Number 55-9001\nDate: 3/1/2026", today=TODAY)
        assert h.invoice_number == "55-9001"
        assert h.invoice_date == date(2026, 1, 3)

    def test_defaults(self):
        h = extract_header("Invoice No: 77", today=TODAY)
        assert h.invoice_date == TODAY
        assert h.period_start == TODAY and h.period_end == TODAY
        assert h.provider == "YODEL"
        assert h.supplier_id is None
        assert h.gross_total == Decimal("0")

    def test_period_defaults_to_invoice_date(self):
        h = extract_header("Invoice No: 77 Date: 21 Dec 2025", today=TODAY)
        assert h.period_start == date(2025, 12, 21)
        assert h.period_end == date(2025, 12, 21)

    def test_unparseable_date_falls_back_to_processing_date(self):
        h = extract_header("Invoice No: 77 Date: 31 Feb 2025", today=TODAY)
        assert h.invoice_date == TODAY

    def test_provider_from_closed_list(self):
        h = extract_header("ROYAL  MAIL GROUP\nInvoice No: 77", today=TODAY)
        assert h.provider == "ROYAL MAIL"

    def test_totals_found_in_fallback_text(self):
        h = extract_header("Invoice No: 77", today=TODAY, fallback_text="...\nGross Total £ 99.10")
        assert h.gross_total == Decimal("99.10")


class TestSplitSections:
    """Test section boundaries."""

    def test_sample_sections(self, sample_lines):
        sections = split_sections(sample_lines)
        assert sections[WEEK_SUMMARY][0] == "Week Summary"
        assert sections[DAILY_BREAKDOWN][0] == "Daily Breakdown"
        assert sections[MANUAL_ADJUSTMENTS][0] == "Manual Adjustments"
        # the week summary's "Manual Adjustments - £" lines do not open a section
        assert "Manual Adjustments - £ 40.00" in sections[WEEK_SUMMARY]
        # totals footer after the adjustment block goes back to the header
        assert sections[MANUAL_ADJUSTMENTS][-1] == "20/12/2025 WB80 Fuel Support 12.50"
        assert "Gross Total £1,445.40" in sections[HEADER]

    def test_repeated_title_appends(self):
        lines = ["Week Summary", "DB1111 WB11 1 0 0 0 1.00", "Daily Breakdown", "Week Summary", "DB2222 WB22 2 0 0 0 2.00"]
        sections = split_sections(lines)
        assert len(sections[WEEK_SUMMARY]) == 4
        assert sections[DAILY_BREAKDOWN] == ["Daily Breakdown"]


class TestWeekSummary:
    """Test parse_week_summary and parse_adjustment_summary."""

    def test_rows(self, sample_lines, header):
        rows = parse_week_summary(split_sections(sample_lines)[WEEK_SUMMARY], header)
        assert [(r.operator_id, r.tour) for r in rows] == [("DB6249", "WB68"), ("DB6261", "WB80")]
        first = rows[0]
        assert (first.delivered_qty, first.collected_qty, first.sacks_qty, first.packets_qty) == (57, 0, 0, 17)
        assert first.total_qty == 74
        assert first.weekly_amount == Decimal("129.50")
        assert first.invoice_number == "100234"
        assert first.period_start == date(2025, 12, 14)

    def test_partial_rows_ignored(self, header):
        lines = [
            "Operator Tour Delivered Collected Sacks Packets Amount",
            "DB6249 WB68 57 0 0 17",
            "Total 57 1 0 39 169.75",
            "DB6249 WB68 57 0 0",
        ]
        assert parse_week_summary(lines, header) == []

    def test_exact_repeat_collapses(self, header):
        lines = ["DB6249 WB68 57 0 0 17 129.50", "DB6249 WB68 57 0 0 17 129.50"]
        assert len(parse_week_summary(lines, header)) == 1

    def test_conflicting_repeat_rejected(self, header):
        lines = ["DB6249 WB68 57 0 0 17 129.50", "DB6249 WB68 50 0 0 17 119.50"]
        with pytest.raises(InvariantViolation) as exc:
            parse_week_summary(lines, header)
        assert exc.value.tour == "WB68"
        assert exc.value.stage == WEEK_SUMMARY

    def test_adjustment_summary(self, sample_lines, header):
        s = parse_adjustment_summary(split_sections(sample_lines)[WEEK_SUMMARY], header)
        assert s.pre_adj_total == Decimal("169.75")
        assert s.manual_adj_minus == Decimal("40.00")
        assert s.manual_adj_plus == Decimal("62.50")
        assert s.post_adj_total == Decimal("192.25")

    def test_adjustment_summary_defaults_to_zero(self, header):
        s = parse_adjustment_summary(["Total 57 1 0 39 169.75"], header)
        assert s.pre_adj_total == Decimal("169.75")
        assert s.manual_adj_minus == Decimal("0")
        assert s.manual_adj_plus == Decimal("0")
        assert s.post_adj_total == Decimal("0")
