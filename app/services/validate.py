"""
Arithmetic gates for extracted rows.

- check_service_totals: paid + unpaid must equal the row total (and the total the row prints, if any).
- check_category_totals: a daily roll-up's grand total must equal its six buckets.
- check_weekly_unique: one week-summary row per (operator, tour).
- adjustment_drift: detail amounts vs. the summary's +/- totals (reported, never fatal).

Parsers call these inline, at the point where the offending line is still in
hand, so the raised InvariantViolation can name it.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from app.models.schemas import (
    AdjustmentDetailRecord,
    AdjustmentSummaryRecord,
    WeeklySummaryRecord,
)
from app.services.errors import InvariantViolation


def check_service_totals(
    qty_total: int,
    qty_paid: int,
    qty_unpaid: int,
    stated_total: Optional[int] = None,
    **context,
) -> None:
    if qty_total != qty_paid + qty_unpaid:
        raise InvariantViolation(
            f"Daily service mismatch: total={qty_total} paid={qty_paid} unpaid={qty_unpaid}",
            **context,
        )
    if stated_total is not None and stated_total != qty_total:
        raise InvariantViolation(
            f"Daily service mismatch: row states total={stated_total} but paid={qty_paid} + unpaid={qty_unpaid}",
            **context,
        )


def check_category_totals(totals: Dict[str, int], category_fields: Iterable[str], **context) -> None:
    expected = sum(totals.get(f, 0) for f in category_fields)
    if totals.get("total_qty", 0) != expected:
        raise InvariantViolation(
            f"Daily quantity mismatch: total_qty={totals.get('total_qty', 0)} sum={expected}",
            **context,
        )


def check_weekly_unique(records: List[WeeklySummaryRecord], **context) -> List[WeeklySummaryRecord]:
    """
    Collapse exact repeats (a table re-printed across a page break) and reject
    conflicting rows for the same operator/tour.
    """
    seen: Dict[Tuple, WeeklySummaryRecord] = {}
    out: List[WeeklySummaryRecord] = []
    for rec in records:
        key = rec.natural_key()
        prior = seen.get(key)
        if prior is None:
            seen[key] = rec
            out.append(rec)
            continue
        if prior != rec:
            raise InvariantViolation(
                f"Week summary has conflicting rows for operator={rec.operator_id} tour={rec.tour}",
                operator_id=rec.operator_id,
                tour=rec.tour,
                **context,
            )
    return out


def adjustment_drift(details: List[AdjustmentDetailRecord], summary: AdjustmentSummaryRecord) -> Decimal:
    """Detail sum minus (plus - minus); zero when the two views of the document agree."""
    detail_sum = sum((d.adjustment_amount for d in details), Decimal("0"))
    return detail_sum - (summary.manual_adj_plus - summary.manual_adj_minus)
