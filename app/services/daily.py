"""
Daily breakdown block -> DailyServiceRecord + DailyQuantityRecord.

The table prints one block per day/operator/tour, but the tour code is often
split over two lines:

    Sunday WB6 DB6249 Packet 17 017 @ 1.75 29.75
    14/12/2025 8 Regular Delivery 57 057 @ 1.75 99.75

"WB6" + the lone "8" on the date line = tour WB68, and both lines are service
rows of that tour. The same split shows up mid-day without a date restatement:

    WB8 DB6261 AdHoc/Scheduled Collections 1 001 @ 1.75 1.75
    0 Packet 22 022 @ 1.75 38.50

The parser is a small state machine over lines:
- state is Idle or AwaitingSuffix(prefix, operator, buffered row)
- BlockContext holds the current day/operator/tour that plain rows inherit

Service rows ("<group> [total] <qty @ rate>... <amount>") are summed into
paid (rate > 0) and unpaid (rate == 0) quantities. paid + unpaid must equal
the row total, and every roll-up's grand total must equal its six buckets;
either failure rejects the whole document.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from app.models.schemas import DailyQuantityRecord, DailyServiceRecord, InvoiceHeader
from app.services.errors import InvariantViolation, UnrecognizedRowShape
from app.services.sections import DAILY_BREAKDOWN
from app.services.validate import check_category_totals, check_service_totals
from app.util.logger import get_logger
from app.util.text import money_to_decimal, parse_date_strict
from extraction.patterns import (
    CATEGORY_FIELDS,
    CATEGORY_RULES,
    CONCATENATED_QTY_DIGITS,
    DAILY_BREAKDOWN_ANCHOR,
    DAILY_COLUMN_HEADER_PAT,
    DATE_LINE_PAT,
    LEADING_TOUR_PREFIX_PAT,
    MAX_SPLIT_OFFSET,
    MONEY_AT_END_PAT,
    OPERATOR_TOKEN_PAT,
    RATE_MARKER,
    RATE_PAIR_PAT,
    SERVICE_GROUP_PAT,
    SERVICE_GROUPS,
    SMALL_QTY_LIMIT,
    STATED_TOTAL_PAT,
    SUFFIX_DIGIT_PAT,
    TOUR_FULL_PAT,
    TOUR_PREFIX_PAT,
    WEEKDAY_PAT,
    WEEKDAY_PREFIX_PAT,
    ZERO_RATE_EPS,
)

logger = get_logger(__name__)

_CANONICAL_GROUPS = {g.lower(): g for g in SERVICE_GROUPS}


# ---------- service rows ----------

@dataclass(frozen=True)
class ServiceRow:
    service_group: str
    qty_paid: int
    qty_unpaid: int
    qty_total: int
    amount: Decimal
    stated_total: Optional[int] = None


def resegment_quantity(token: str) -> Tuple[Optional[int], int]:
    """
    Undo two numbers that the text layer glued together ("4003" = "4" + "003").

    Only tokens of CONCATENATED_QTY_DIGITS or more digits are considered. Split
    offsets 1..MAX_SPLIT_OFFSET are tried in order and the first whose right part
    has a leading zero or is below SMALL_QTY_LIMIT wins. This is a heuristic,
    not a decoder.

    Returns (left part or None, quantity).
    """
    if len(token) >= CONCATENATED_QTY_DIGITS:
        for split in range(1, min(MAX_SPLIT_OFFSET, len(token) - 1) + 1):
            right = token[split:]
            if right.startswith("0") or int(right) < SMALL_QTY_LIMIT:
                return int(token[:split]), int(right)
    return None, int(token)


def canonical_service_group(label: str) -> str:
    label = " ".join(label.split())
    return _CANONICAL_GROUPS.get(label.lower(), label)


def category_for(service_group: str) -> Optional[str]:
    sg = service_group.lower()
    for predicate, bucket in CATEGORY_RULES:
        if predicate(sg):
            return bucket
    return None


def parse_service_row(line: str) -> ServiceRow:
    """
    "Regular Delivery 112 2 @ 0.00 110 @ 1.75 192.50"
        -> group=Regular Delivery, unpaid=2, paid=110, total=112, amount=192.50, stated=112

    Raises UnrecognizedRowShape for anything that is not a priced service row
    (subtotals, footers, labels).
    """
    if RATE_MARKER not in line:
        raise UnrecognizedRowShape("No rate marker", line=line)
    sg = SERVICE_GROUP_PAT.search(line)
    if not sg:
        raise UnrecognizedRowShape("No known service group", line=line)

    tail = line[sg.end():]
    pairs = list(RATE_PAIR_PAT.finditer(tail))
    if not pairs:
        raise UnrecognizedRowShape("No 'qty @ rate' pairs", line=line)
    money = MONEY_AT_END_PAT.search(tail)
    if not money or money.start() < pairs[-1].end():
        raise UnrecognizedRowShape("Row does not end in an amount", line=line)

    stated: Optional[int] = None
    lead = STATED_TOTAL_PAT.match(tail[:pairs[0].start()])
    if lead:
        stated = int(lead.group(1))

    qty_paid = qty_unpaid = qty_total = 0
    for idx, pair in enumerate(pairs):
        head, qty = resegment_quantity(pair.group(1))
        if idx == 0 and stated is None and head is not None:
            stated = head
        try:
            rate = float(pair.group(2))
        except ValueError:
            raise UnrecognizedRowShape(f"Bad rate {pair.group(2)!r}", line=line)
        qty_total += qty
        if abs(rate) < ZERO_RATE_EPS:
            qty_unpaid += qty
        else:
            qty_paid += qty

    return ServiceRow(
        service_group=canonical_service_group(sg.group(1)),
        qty_paid=qty_paid,
        qty_unpaid=qty_unpaid,
        qty_total=qty_total,
        amount=money_to_decimal(money.group(1)),
        stated_total=stated,
    )


# ---------- state ----------

@dataclass(frozen=True)
class Idle:
    """No tour code waiting for its last digit."""


@dataclass(frozen=True)
class AwaitingSuffix:
    """A line opened a block with a partial tour code; the next line supplies the final digit."""

    prefix: str
    operator: str
    row: Optional[str] = None


PendingState = Union[Idle, AwaitingSuffix]


@dataclass(frozen=True)
class BlockContext:
    day: Optional[date] = None
    operator: Optional[str] = None
    tour: Optional[str] = None

    def complete(self) -> bool:
        return bool(self.day and self.operator and self.tour)


class DailyBreakdownParser:
    """Feed lines in order with feed(), then collect records with finish()."""

    def __init__(self, header: InvoiceHeader):
        self.header = header
        self.state: PendingState = Idle()
        self.ctx = BlockContext()
        self.skipped = 0
        self._services: Dict[Tuple, DailyServiceRecord] = {}
        self._quantities: Dict[Tuple, Dict[str, int]] = {}

    # ----- transitions -----

    def feed(self, line: str) -> None:
        if WEEKDAY_PAT.match(line):
            self._on_weekday(line)
            return
        dm = DATE_LINE_PAT.match(line)
        if dm:
            self._on_date(line, dm)
            return
        if self._on_block_start(line):
            return
        if self._on_suffix(line):
            return
        if self.ctx.complete():
            self._emit_row(line)

    def _on_weekday(self, line: str) -> None:
        # A bare weekday is just the label for the date line below it.
        prefix = TOUR_PREFIX_PAT.search(line)
        op = OPERATOR_TOKEN_PAT.search(line)
        if prefix and op and RATE_MARKER in line:
            self._buffer(prefix.group(1), op.group(1), WEEKDAY_PREFIX_PAT.sub("", line, count=1))

    def _on_date(self, line: str, dm) -> None:
        day = parse_date_strict(dm.group(1))
        rest = line[dm.end():].strip()
        if day is None:
            # keep following rows off the previous day
            self.ctx = replace(self.ctx, day=None)
            self._skip(UnrecognizedRowShape(f"Invalid working day {dm.group(1)!r}", line=line))
            return
        self.ctx = replace(self.ctx, day=day)

        sd = SUFFIX_DIGIT_PAT.match(rest)
        if sd:
            rest = rest[sd.end():].strip()
            if isinstance(self.state, AwaitingSuffix):
                self._complete(self.state, sd.group(1), rest)
                return

        tour = TOUR_FULL_PAT.search(rest)
        op = OPERATOR_TOKEN_PAT.search(rest)
        if tour:
            self.ctx = replace(self.ctx, tour=tour.group(1).upper())
        if op:
            self.ctx = replace(self.ctx, operator=op.group(1).upper())
        if rest and self.ctx.complete():
            self._emit_row(rest)

    def _on_block_start(self, line: str) -> bool:
        prefix = LEADING_TOUR_PREFIX_PAT.match(line)
        if not prefix:
            return False
        op = OPERATOR_TOKEN_PAT.search(line)
        if not op:
            return False
        # day carries over from the last date line
        self._buffer(prefix.group(1), op.group(1), line if RATE_MARKER in line else None)
        return True

    def _on_suffix(self, line: str) -> bool:
        sd = SUFFIX_DIGIT_PAT.match(line)
        pending = self.state
        if not (sd and isinstance(pending, AwaitingSuffix) and self.ctx.day):
            return False
        self._complete(pending, sd.group(1), line[sd.end():].strip())
        return True

    def _buffer(self, prefix: str, operator: str, row: Optional[str]) -> None:
        if isinstance(self.state, AwaitingSuffix):
            logger.warning(f"Tour prefix {self.state.prefix} never completed; dropping buffered row {self.state.row!r}")
        self.state = AwaitingSuffix(prefix=prefix.upper(), operator=operator.upper(), row=row)

    def _complete(self, pending: AwaitingSuffix, suffix: str, rest: str) -> None:
        self.state = Idle()
        self.ctx = replace(self.ctx, tour=f"{pending.prefix}{suffix}".upper(), operator=pending.operator)
        if pending.row:
            self._emit_row(pending.row)
        if rest:
            self._emit_row(rest)

    # ----- records -----

    def _skip(self, err: UnrecognizedRowShape) -> None:
        self.skipped += 1
        logger.debug(f"Skipping daily line: {err}")

    def _emit_row(self, text: str) -> None:
        try:
            row = parse_service_row(text)
        except UnrecognizedRowShape as e:
            self._skip(e)
            return

        day, operator, tour = self.ctx.day, self.ctx.operator, self.ctx.tour
        context = dict(
            invoice_number=self.header.invoice_number,
            stage=DAILY_BREAKDOWN,
            line=text,
            working_day=day,
            operator_id=operator,
            tour=tour,
            service_group=row.service_group,
        )
        check_service_totals(row.qty_total, row.qty_paid, row.qty_unpaid, row.stated_total, **context)

        key = (self.header.invoice_number, day, operator, tour, row.service_group)
        prior = self._services.get(key)
        if prior is not None:
            logger.debug(f"Merging repeated {row.service_group} row for {day} {operator} {tour}")
        try:
            self._services[key] = DailyServiceRecord(
                invoice_number=self.header.invoice_number,
                invoice_date=self.header.invoice_date,
                working_day=day,
                operator_id=operator,
                tour=tour,
                service_group=row.service_group,
                qty_paid=row.qty_paid + (prior.qty_paid if prior else 0),
                qty_unpaid=row.qty_unpaid + (prior.qty_unpaid if prior else 0),
                qty_total=row.qty_total + (prior.qty_total if prior else 0),
                amount_total=row.amount + (prior.amount_total if prior else Decimal("0")),
            )
        except ValidationError as e:
            raise InvariantViolation(f"Invalid daily service row: {e}", **context) from e

        counts = self._quantities.setdefault((day, operator, tour), {f: 0 for f in CATEGORY_FIELDS + ["total_qty"]})
        bucket = category_for(row.service_group)
        if bucket:
            counts[bucket] += row.qty_total
        counts["total_qty"] += row.qty_total

    def finish(self) -> Tuple[List[DailyServiceRecord], List[DailyQuantityRecord]]:
        if isinstance(self.state, AwaitingSuffix):
            logger.warning(
                f"Daily breakdown ended with tour prefix {self.state.prefix} unresolved; "
                f"dropping buffered row {self.state.row!r}"
            )
            self.state = Idle()

        quantities: List[DailyQuantityRecord] = []
        for (day, operator, tour), counts in self._quantities.items():
            check_category_totals(
                counts,
                CATEGORY_FIELDS,
                invoice_number=self.header.invoice_number,
                stage=DAILY_BREAKDOWN,
                working_day=day,
                operator_id=operator,
                tour=tour,
            )
            quantities.append(DailyQuantityRecord(
                invoice_number=self.header.invoice_number,
                invoice_date=self.header.invoice_date,
                working_day=day,
                operator_id=operator,
                tour=tour,
                **counts,
            ))
        return list(self._services.values()), quantities


def parse_daily_breakdown(
    lines: List[str], header: InvoiceHeader
) -> Tuple[List[DailyServiceRecord], List[DailyQuantityRecord]]:
    parser = DailyBreakdownParser(header)
    for line in lines:
        if DAILY_BREAKDOWN_ANCHOR.match(line) or DAILY_COLUMN_HEADER_PAT.match(line):
            continue
        parser.feed(line)
    services, quantities = parser.finish()
    logger.info(
        f"Daily breakdown: {len(services)} service rows, {len(quantities)} day/tour roll-ups, "
        f"{parser.skipped} lines skipped"
    )
    return services, quantities
