"""
Manual adjustments block -> AdjustmentDetailRecord list.

Row shape (operator and parcel optional, amount signed, "- 40.00" is a deduction):
    16/12/2025 WB68 DB6249 JD0002226001 Lost Parcel - 40.00
    Customer complaint upheld            <- description on the following line

Rules:
- Parcel-slot words from ADJUSTMENT_TYPE_MODIFIERS (PREMIUM, FAILED, ...) are
  really the first word of the type label and go back onto it.
- Compound labels in COMPOUND_ADJUSTMENT_TYPES are cut out of the type span;
  whatever is left is the description.
- With no description on the row, the next line is taken as the description
  unless it is another row, a totals line or a section title.
- Zero amounts and empty types are dropped.
"""

from typing import List, Optional, Tuple

from pydantic import ValidationError

from app.models.schemas import AdjustmentDetailRecord, InvoiceHeader
from app.services.errors import InvariantViolation, UnrecognizedRowShape
from app.services.sections import MANUAL_ADJUSTMENTS
from app.util.logger import get_logger
from app.util.text import money_to_decimal, parse_date_strict
from extraction.patterns import (
    ADJUSTMENT_COLUMN_HEADER_PAT,
    ADJUSTMENT_ROW_PAT,
    ADJUSTMENT_TERMINATOR_PAT,
    ADJUSTMENT_TYPE_MODIFIERS,
    COMPOUND_ADJUSTMENT_TYPES,
    MANUAL_ADJUSTMENTS_ANCHOR,
    SECTION_ANCHORS,
)


def split_type_and_description(type_text: str) -> Tuple[str, str]:
    """'Premium Operating Payment x1.25' -> ('Premium Operating Payment', 'x1.25')."""
    for label, pat in COMPOUND_ADJUSTMENT_TYPES.items():
        m = pat.search(type_text)
        if m:
            description = (type_text[:m.start()] + " " + type_text[m.end():]).strip()
            return label, " ".join(description.split())
    return type_text.strip(), ""


def _is_stop_line(line: str) -> bool:
    if ADJUSTMENT_ROW_PAT.match(line) or ADJUSTMENT_TERMINATOR_PAT.search(line):
        return True
    return any(pat.match(line) for pat in SECTION_ANCHORS.values())


def _parse_row(line: str) -> Tuple[dict, bool]:
    """Fields of one adjustment row; the flag says whether the row carried its own description."""
    m = ADJUSTMENT_ROW_PAT.match(line)
    if not m:
        raise UnrecognizedRowShape("Not an adjustment row", line=line)
    adjustment_date = parse_date_strict(m.group("date"))
    if adjustment_date is None:
        raise UnrecognizedRowShape(f"Invalid adjustment date {m.group('date')!r}", line=line)

    parcel: Optional[str] = m.group("parcel").upper() if m.group("parcel") else None
    type_text = m.group("type_desc").strip()
    if parcel and parcel in ADJUSTMENT_TYPE_MODIFIERS:
        type_text = f"{parcel} {type_text}".strip()
        parcel = None

    adjustment_type, description = split_type_and_description(type_text)
    fields = dict(
        adjustment_date=adjustment_date,
        tour=m.group("tour").upper(),
        operator_id=m.group("operator").upper() if m.group("operator") else None,
        parcel_id=parcel,
        adjustment_type=adjustment_type,
        adjustment_amount=money_to_decimal(m.group("amount")),
        description=description,
    )
    return fields, bool(description)


def parse_adjustment_details(lines: List[str], header: InvoiceHeader) -> List[AdjustmentDetailRecord]:
    logger = get_logger(__name__)
    body = [
        ln for ln in lines
        if not MANUAL_ADJUSTMENTS_ANCHOR.match(ln) and not ADJUSTMENT_COLUMN_HEADER_PAT.match(ln)
    ]

    details: List[AdjustmentDetailRecord] = []
    skipped = 0
    i = 0
    while i < len(body):
        line = body[i]
        i += 1
        try:
            fields, has_description = _parse_row(line)
        except UnrecognizedRowShape as e:
            skipped += 1
            logger.debug(f"Skipping adjustment line: {e}")
            continue

        if not has_description and i < len(body) and not _is_stop_line(body[i]):
            fields["description"] = body[i].strip()
            i += 1

        if not fields["adjustment_type"] or fields["adjustment_amount"] == 0:
            logger.debug(f"Dropping empty/zero adjustment: {line!r}")
            continue

        try:
            details.append(AdjustmentDetailRecord(
                invoice_number=header.invoice_number,
                invoice_date=header.invoice_date,
                period_start=header.period_start,
                period_end=header.period_end,
                **fields,
            ))
        except ValidationError as e:
            raise InvariantViolation(
                f"Invalid adjustment row: {e}",
                invoice_number=header.invoice_number,
                stage=MANUAL_ADJUSTMENTS,
                line=line,
                operator_id=fields["operator_id"],
                tour=fields["tour"],
            ) from e

    logger.info(f"Manual adjustments: {len(details)} detail rows, {skipped} lines skipped")
    return details
