"""
Data shapes for the invoice ingester.

- PositionedToken: one text fragment from the PDF with its page coordinates.
- DocumentLine: tokens re-assembled into one visual row, plus the joined text.
- InvoiceHeader ... AdjustmentSummaryRecord: one model per persisted record kind.
  Each carries a `kind` tag, the names of its natural key (KEY_FIELDS) and
  validates its own arithmetic at construction.
- InvoiceBatch: per-PDF wrapper with every record set and provenance.
- LayoutConfig: thresholds for row reconstruction.

If a table needs a new column, I add it to the record here first and then
populate it in the matching parser under app/services/.
"""

from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from extraction.patterns import CATEGORY_FIELDS


class LayoutConfig(BaseModel):
    """
    Row reconstruction thresholds, in PDF document units.

    - y_tolerance: vertical bucket size; tokens whose y rounds to the same bucket share a row
    - gap_threshold: horizontal gap above which a space is re-inserted between tokens
    - char_width: rough glyph width used to estimate where a token ends
    - min_text_length: below this many characters the PDF is treated as image-only
    """

    y_tolerance: float = Field(default=2.0, gt=0)
    gap_threshold: float = Field(default=6.0, ge=0)
    char_width: float = Field(default=3.0, gt=0)
    min_text_length: int = Field(default=50, ge=0)


class PositionedToken(BaseModel):
    """
    Text fragment with layout metadata.

    - x: left edge in page coords
    - y: top edge in page coords, growing downward (top of page = 0)
    - page: 1-based page number
    """

    model_config = ConfigDict(frozen=True)

    text: str
    x: float
    y: float
    page: int = 1


class DocumentLine(BaseModel):
    page: int
    y: float
    tokens: List[PositionedToken] = Field(default_factory=list)
    text: str


class _Record(BaseModel):
    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def natural_key(self) -> Tuple:
        return tuple(getattr(self, f) for f in self.KEY_FIELDS)

    def to_row(self) -> Dict[str, Any]:
        """Flat JSON-safe dict (dates as ISO strings, money as strings), without the kind tag."""
        return self.model_dump(mode="json", exclude={"kind"})


class InvoiceHeader(_Record):
    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number",)

    kind: Literal["invoice_header"] = "invoice_header"
    invoice_number: str = Field(min_length=1)
    invoice_date: date
    period_start: date
    period_end: date
    supplier_id: Optional[str] = None
    provider: str
    net_total: Decimal = Decimal("0")
    vat: Decimal = Decimal("0")
    gross_total: Decimal = Decimal("0")


class WeeklySummaryRecord(_Record):
    """One operator/tour line of the week summary table."""

    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number", "operator_id", "tour")

    kind: Literal["weekly_summary"] = "weekly_summary"
    invoice_number: str
    invoice_date: date
    period_start: date
    period_end: date
    operator_id: str
    tour: str
    delivered_qty: int = Field(ge=0)
    collected_qty: int = Field(ge=0)
    sacks_qty: int = Field(ge=0)
    packets_qty: int = Field(ge=0)
    total_qty: int = Field(ge=0)
    weekly_amount: Decimal

    @model_validator(mode="after")
    def _total_matches_columns(self):
        expected = self.delivered_qty + self.collected_qty + self.sacks_qty + self.packets_qty
        if self.total_qty != expected:
            raise ValueError(f"total_qty={self.total_qty} but quantity columns sum to {expected}")
        return self


class DailyServiceRecord(_Record):
    """One service-group row of one day/operator/tour block."""

    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number", "working_day", "operator_id", "tour", "service_group")

    kind: Literal["daily_service"] = "daily_service"
    invoice_number: str
    invoice_date: date
    working_day: date
    operator_id: str
    tour: str
    service_group: str
    qty_paid: int = Field(ge=0)
    qty_unpaid: int = Field(ge=0)
    qty_total: int = Field(ge=0)
    amount_total: Decimal

    @model_validator(mode="after")
    def _paid_plus_unpaid(self):
        if self.qty_total != self.qty_paid + self.qty_unpaid:
            raise ValueError(
                f"qty_total={self.qty_total} != qty_paid={self.qty_paid} + qty_unpaid={self.qty_unpaid}"
            )
        return self


class DailyQuantityRecord(_Record):
    """Per day/operator/tour roll-up of the service rows into six buckets."""

    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number", "working_day", "operator_id", "tour")

    kind: Literal["daily_quantity"] = "daily_quantity"
    invoice_number: str
    invoice_date: date
    working_day: date
    operator_id: str
    tour: str
    adhoc_scheduled_collections_qty: int = 0
    packet_qty: int = 0
    regular_delivery_qty: int = 0
    locker_parcel_delivery_qty: int = 0
    yodel_store_collection_qty: int = 0
    yodel_store_delivery_qty: int = 0
    total_qty: int = 0

    def category_sum(self) -> int:
        return sum(getattr(self, f) for f in CATEGORY_FIELDS)

    @model_validator(mode="after")
    def _total_matches_categories(self):
        if self.total_qty != self.category_sum():
            raise ValueError(f"total_qty={self.total_qty} but categories sum to {self.category_sum()}")
        return self


class AdjustmentDetailRecord(_Record):
    """
    One manual adjustment line. No natural key beyond the invoice: the whole
    set is replaced on re-ingestion.
    """

    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number",)

    kind: Literal["adjustment_detail"] = "adjustment_detail"
    invoice_number: str
    invoice_date: date
    period_start: date
    period_end: date
    adjustment_date: date
    tour: str
    operator_id: Optional[str] = None
    parcel_id: Optional[str] = None
    adjustment_type: str = Field(min_length=1)
    adjustment_amount: Decimal
    description: str = ""

    @model_validator(mode="after")
    def _non_zero_amount(self):
        if self.adjustment_amount == 0:
            raise ValueError("adjustment_amount must be non-zero")
        return self


class AdjustmentSummaryRecord(_Record):
    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_number",)

    kind: Literal["adjustment_summary"] = "adjustment_summary"
    invoice_number: str
    invoice_date: date
    period_start: date
    period_end: date
    pre_adj_total: Decimal = Decimal("0")
    manual_adj_minus: Decimal = Decimal("0")
    manual_adj_plus: Decimal = Decimal("0")
    post_adj_total: Decimal = Decimal("0")


class InvoiceBatch(BaseModel):
    """
    Final output for one PDF.

    - doc_id: filename or filename-hash
    - header + the five record sets, all sharing header.invoice_number
    - provenance: misc info (parser name, rules version, line counts)
    """

    doc_id: str
    header: InvoiceHeader
    weekly: List[WeeklySummaryRecord] = Field(default_factory=list)
    daily_services: List[DailyServiceRecord] = Field(default_factory=list)
    daily_quantities: List[DailyQuantityRecord] = Field(default_factory=list)
    adjustment_details: List[AdjustmentDetailRecord] = Field(default_factory=list)
    adjustment_summary: AdjustmentSummaryRecord
    provenance: Dict[str, Any] = Field(default_factory=dict)

    @property
    def invoice_number(self) -> str:
        return self.header.invoice_number

    def counts(self) -> Dict[str, int]:
        return {
            "weekly": len(self.weekly),
            "daily_services": len(self.daily_services),
            "daily_quantities": len(self.daily_quantities),
            "adjustment_details": len(self.adjustment_details),
        }
