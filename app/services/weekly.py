"""
Week summary block.

- parse_week_summary: fixed-shape rows "<operator> <tour> <4 quantities> <amount>",
  one WeeklySummaryRecord each. Anything short of the full shape (column
  header, subtotal, footer) contributes nothing.
- parse_adjustment_summary: the four totals lines under the table
  ("Total <4 ints> <amount>", "Manual Adjustments - £", "Manual Adjustments £",
  "Total £"). Read as printed, not derived from the detail rows.
"""

from typing import List

from app.models.schemas import AdjustmentSummaryRecord, InvoiceHeader, WeeklySummaryRecord
from app.services.sections import WEEK_SUMMARY
from app.services.validate import check_weekly_unique
from app.util.logger import get_logger
from app.util.text import money_to_decimal
from extraction.patterns import ADJUSTMENT_SUMMARY_PATTERNS, WEEKLY_ROW_PAT


def parse_week_summary(lines: List[str], header: InvoiceHeader) -> List[WeeklySummaryRecord]:
    logger = get_logger(__name__)
    rows: List[WeeklySummaryRecord] = []
    for line in lines:
        for m in WEEKLY_ROW_PAT.finditer(line):
            delivered, collected, sacks, packets = (int(g) for g in m.group(3, 4, 5, 6))
            rows.append(WeeklySummaryRecord(
                invoice_number=header.invoice_number,
                invoice_date=header.invoice_date,
                period_start=header.period_start,
                period_end=header.period_end,
                operator_id=m.group(1).upper(),
                tour=m.group(2).upper(),
                delivered_qty=delivered,
                collected_qty=collected,
                sacks_qty=sacks,
                packets_qty=packets,
                total_qty=delivered + collected + sacks + packets,
                weekly_amount=money_to_decimal(m.group(7)),
            ))

    rows = check_weekly_unique(rows, invoice_number=header.invoice_number, stage=WEEK_SUMMARY)
    logger.info(f"Week summary: {len(rows)} operator/tour rows")
    return rows


def parse_adjustment_summary(lines: List[str], header: InvoiceHeader) -> AdjustmentSummaryRecord:
    values = {}
    for field, patterns in ADJUSTMENT_SUMMARY_PATTERNS.items():
        for line in lines:
            m = next((p.match(line) for p in patterns if p.match(line)), None)
            if m:
                values[field] = money_to_decimal(m.group(1))
                break

    return AdjustmentSummaryRecord(
        invoice_number=header.invoice_number,
        invoice_date=header.invoice_date,
        period_start=header.period_start,
        period_end=header.period_end,
        **values,
    )
