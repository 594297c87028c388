"""
Unit tests for manual adjustment parsing and the drift cross-check.
"""

from datetime import date
from decimal import Decimal

from app.services.adjustments import parse_adjustment_details, split_type_and_description
from app.services.sections import MANUAL_ADJUSTMENTS, WEEK_SUMMARY, split_sections
from app.services.validate import adjustment_drift
from app.services.weekly import parse_adjustment_summary


class TestSplitTypeAndDescription:
    """Test the compound label special cases."""

    def test_premium_operating_payment(self):
        assert split_type_and_description("Premium Operating Payment x1.25") == ("Premium Operating Payment", "x1.25")

    def test_failed_kpi_deduction(self):
        label, desc = split_type_and_description("Failed KPI / Obligations Deduction week 50 scans")
        assert label == "Failed KPI / Obligations Deduction"
        assert desc == "week 50 scans"

    def test_plain_label_has_no_description(self):
        assert split_type_and_description("Lost Parcel") == ("Lost Parcel", "")


class TestParseAdjustmentDetails:
    """Test parse_adjustment_details."""

    def test_sample_block(self, sample_lines, header):
        details = parse_adjustment_details(split_sections(sample_lines)[MANUAL_ADJUSTMENTS], header)
        assert len(details) == 3

        lost, premium, fuel = details
        assert lost.adjustment_date == date(2025, 12, 16)
        assert (lost.tour, lost.operator_id, lost.parcel_id) == ("WB68", "DB6249", "JD0002226001")
        assert lost.adjustment_type == "Lost Parcel"
        assert lost.adjustment_amount == Decimal("-40.00")
        assert lost.description == "Customer complaint upheld"

        assert premium.parcel_id is None
        assert premium.adjustment_type == "Premium Operating Payment"
        assert premium.description == "x1.25"
        assert premium.adjustment_amount == Decimal("50.00")

        assert fuel.operator_id is None
        assert fuel.adjustment_type == "Fuel Support"
        assert fuel.description == ""
        assert fuel.period_end == date(2025, 12, 20)

    def test_zero_amount_dropped(self, header):
        details = parse_adjustment_details(["17/12/2025 WB68 DB6249 Route Review 0.00"], header)
        assert details == []

    def test_next_row_not_taken_as_description(self, header):
        details = parse_adjustment_details([
            "16/12/2025 WB68 DB6249 Late Start - 5.00",
            "17/12/2025 WB68 DB6249 Late Start - 5.00",
            "Total Deductions - £ 10.00",
        ], header)
        assert [d.description for d in details] == ["", ""]

    def test_failed_modifier_reattached(self, header):
        details = parse_adjustment_details([
            "19/12/2025 WB80 DB6261 FAILED KPI / Obligations Deduction - 15.00",
            "Scanner compliance below target",
        ], header)
        assert len(details) == 1
        d = details[0]
        assert d.parcel_id is None
        assert d.adjustment_type == "Failed KPI / Obligations Deduction"
        assert d.description == "Scanner compliance below target"
        assert d.adjustment_amount == Decimal("-15.00")

    def test_invalid_date_skipped(self, header):
        details = parse_adjustment_details(["31/02/2025 WB68 DB6249 Lost Parcel - 40.00"], header)
        assert details == []

    def test_title_and_column_header_ignored(self, header):
        details = parse_adjustment_details([
            "Manual Adjustments",
            "Date Tour Operator Parcel Id Type Amount",
            "20/12/2025 WB80 Fuel Support 12.50",
        ], header)
        assert [d.adjustment_type for d in details] == ["Fuel Support"]


class TestAdjustmentDrift:
    """Test the detail vs. summary cross-check."""

    def test_sample_reconciles(self, sample_lines, header):
        sections = split_sections(sample_lines)
        details = parse_adjustment_details(sections[MANUAL_ADJUSTMENTS], header)
        summary = parse_adjustment_summary(sections[WEEK_SUMMARY], header)
        assert adjustment_drift(details, summary) == Decimal("0")

    def test_drift_reported(self, header):
        details = parse_adjustment_details(["20/12/2025 WB80 Fuel Support 12.50"], header)
        summary = parse_adjustment_summary(["Manual Adjustments £ 10.00"], header)
        assert adjustment_drift(details, summary) == Decimal("2.50")
