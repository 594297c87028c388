# app/services/extract.py
"""
Extraction rules for the supplier's weekly self-billing invoice.

- Input is the normalized line stream (one string per visual row, reading order).
- Sections are found by their title lines (see app.services.sections):
    * header          -> InvoiceHeader (invoice no, date, period, supplier, totals)
    * Week Summary    -> WeeklySummaryRecord per operator/tour + AdjustmentSummaryRecord
    * Daily Breakdown -> DailyServiceRecord per day/operator/tour/service group
                         + DailyQuantityRecord roll-up per day/operator/tour
    * Manual Adjustments -> AdjustmentDetailRecord per adjustment line
- Header fields are looked up in the header block first and then, only when
  missing there, in the full document (the totals can sit on the last page).
- Sections are parsed in order, each over its own lines. Fatal errors propagate
  tagged with the invoice number; nothing is returned partially.
- Output: InvoiceBatch with provenance (parser, rules version, per-section line counts).
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from app.models.schemas import InvoiceBatch
from app.services.adjustments import parse_adjustment_details
from app.services.daily import parse_daily_breakdown
from app.services.errors import IngestionError
from app.services.header import extract_header
from app.services.sections import DAILY_BREAKDOWN, HEADER, MANUAL_ADJUSTMENTS, WEEK_SUMMARY, split_sections
from app.services.validate import adjustment_drift
from app.services.weekly import parse_adjustment_summary, parse_week_summary
from app.util.logger import get_logger

RULES_VERSION = "2025-12-daily-split-tours"


def extract(
    doc_id: str,
    lines: List[str],
    today: Optional[date] = None,
    parser_name: str = "pdfplumber",
) -> InvoiceBatch:
    logger = get_logger(__name__)
    logger.info(f"Starting extraction for document: {doc_id} with {len(lines)} lines")

    sections = split_sections(lines)
    header = extract_header("\n".join(sections[HEADER]), today=today, fallback_text="\n".join(lines))

    try:
        weekly = parse_week_summary(sections[WEEK_SUMMARY], header)
        summary = parse_adjustment_summary(sections[WEEK_SUMMARY], header)
        services, quantities = parse_daily_breakdown(sections[DAILY_BREAKDOWN], header)
        details = parse_adjustment_details(sections[MANUAL_ADJUSTMENTS], header)
    except IngestionError as e:
        if not e.invoice_number:
            e.invoice_number = header.invoice_number
        raise

    drift = adjustment_drift(details, summary)
    if drift != 0:
        logger.warning(
            f"Adjustment details for {header.invoice_number} differ from the week summary "
            f"(+{summary.manual_adj_plus} / -{summary.manual_adj_minus}) by {drift}"
        )

    batch = InvoiceBatch(
        doc_id=doc_id,
        header=header,
        weekly=weekly,
        daily_services=services,
        daily_quantities=quantities,
        adjustment_details=details,
        adjustment_summary=summary,
        provenance={
            "parser": parser_name,
            "rules_version": RULES_VERSION,
            "section_lines": {name: len(sec) for name, sec in sections.items()},
            "adjustment_drift": str(drift),
        },
    )
    logger.info(f"Extracted {batch.counts()} for invoice {header.invoice_number} (document {doc_id})")
    return batch
