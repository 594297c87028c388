"""
Record sinks (the persistence collaborator).

- RecordSink: what the emitter needs; one method per table plus transaction().
- InMemorySink: dict tables keyed by natural key. Handy for tests and dry runs.
- CsvDirectorySink: one CSV per table under a directory, upserts done with pandas.

Both stage writes inside transaction() and only make them visible when the
block exits cleanly; an exception discards everything staged.

Table names follow the downstream payroll schema (WEEKLY_PAY, DAILY_PAY_SUMMARY, ...).
"""

import os
from contextlib import contextmanager
from copy import deepcopy
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

import pandas as pd

from app.models.schemas import (
    AdjustmentDetailRecord,
    AdjustmentSummaryRecord,
    DailyQuantityRecord,
    DailyServiceRecord,
    InvoiceHeader,
    WeeklySummaryRecord,
)
from app.util.logger import get_logger

INVOICES = "invoices"
WEEKLY_PAY = "WEEKLY_PAY"
DAILY_PAY_SUMMARY = "DAILY_PAY_SUMMARY"
DAILY_PAY_QTY = "DAILY_PAY_QTY"
ADJUSTMENT_DETAIL = "ADJUSTMENT_DETAIL"
ADJUSTMENT_SUMMARY = "ADJUSTMENT_SUMMARY"

TABLE_KEYS: Dict[str, Tuple[str, ...]] = {
    INVOICES: InvoiceHeader.KEY_FIELDS,
    WEEKLY_PAY: WeeklySummaryRecord.KEY_FIELDS,
    DAILY_PAY_SUMMARY: DailyServiceRecord.KEY_FIELDS,
    DAILY_PAY_QTY: DailyQuantityRecord.KEY_FIELDS,
    ADJUSTMENT_DETAIL: AdjustmentDetailRecord.KEY_FIELDS,
    ADJUSTMENT_SUMMARY: AdjustmentSummaryRecord.KEY_FIELDS,
}


class RecordSink(Protocol):
    def transaction(self):
        ...

    def upsert_header(self, header: InvoiceHeader) -> None:
        ...

    def upsert_weekly(self, records: Sequence[WeeklySummaryRecord]) -> None:
        ...

    def upsert_daily_services(self, records: Sequence[DailyServiceRecord]) -> None:
        ...

    def upsert_daily_quantities(self, records: Sequence[DailyQuantityRecord]) -> None:
        ...

    def replace_adjustment_details(self, invoice_number: str, records: Sequence[AdjustmentDetailRecord]) -> None:
        ...

    def upsert_adjustment_summary(self, summary: AdjustmentSummaryRecord) -> None:
        ...


class InMemorySink:
    """
    Tables are {natural key: row dict}; ADJUSTMENT_DETAIL is {invoice_number: [row dicts]}.
    Outside a transaction each write applies immediately.
    """

    def __init__(self):
        self.tables: Dict[str, Dict] = {name: {} for name in TABLE_KEYS}
        self._staged: Optional[Dict[str, Dict]] = None

    def _target(self) -> Dict[str, Dict]:
        return self._staged if self._staged is not None else self.tables

    @contextmanager
    def transaction(self) -> Iterator["InMemorySink"]:
        self._staged = deepcopy(self.tables)
        try:
            yield self
        except BaseException:
            self._staged = None
            raise
        self.tables, self._staged = self._staged, None

    def _upsert(self, table: str, records) -> None:
        target = self._target()[table]
        for rec in records:
            target[rec.natural_key()] = rec.to_row()

    def upsert_header(self, header: InvoiceHeader) -> None:
        self._upsert(INVOICES, [header])

    def upsert_weekly(self, records: Sequence[WeeklySummaryRecord]) -> None:
        self._upsert(WEEKLY_PAY, records)

    def upsert_daily_services(self, records: Sequence[DailyServiceRecord]) -> None:
        self._upsert(DAILY_PAY_SUMMARY, records)

    def upsert_daily_quantities(self, records: Sequence[DailyQuantityRecord]) -> None:
        self._upsert(DAILY_PAY_QTY, records)

    def replace_adjustment_details(self, invoice_number: str, records: Sequence[AdjustmentDetailRecord]) -> None:
        self._target()[ADJUSTMENT_DETAIL][invoice_number] = [r.to_row() for r in records]

    def upsert_adjustment_summary(self, summary: AdjustmentSummaryRecord) -> None:
        self._upsert(ADJUSTMENT_SUMMARY, [summary])

    def row_count(self, table: str) -> int:
        if table == ADJUSTMENT_DETAIL:
            return sum(len(rows) for rows in self.tables[table].values())
        return len(self.tables[table])


def _rows_to_frame(rows: List[Dict]) -> pd.DataFrame:
    # all columns as text, same as read_table
    return pd.DataFrame(rows).fillna("").astype(str)


def _empty_frame(model) -> pd.DataFrame:
    return pd.DataFrame(columns=[name for name in model.model_fields if name != "kind"])


class CsvDirectorySink:
    """
    <directory>/<TABLE>.csv per table. Frames are loaded lazily, edited in
    memory and written back when the transaction commits.
    """

    def __init__(self, directory):
        self.directory = Path(directory)
        self._frames: Dict[str, pd.DataFrame] = {}
        self._dirty: set = set()
        self._in_tx = False

    def path_for(self, table: str) -> Path:
        return self.directory / f"{table}.csv"

    def read_table(self, table: str) -> pd.DataFrame:
        path = self.path_for(table)
        if not path.exists():
            return pd.DataFrame()
        try:
            return pd.read_csv(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()

    def _frame(self, table: str) -> pd.DataFrame:
        if table not in self._frames:
            self._frames[table] = self.read_table(table)
        return self._frames[table]

    def _store(self, table: str, df: pd.DataFrame) -> None:
        self._frames[table] = df.reset_index(drop=True)
        self._dirty.add(table)
        if not self._in_tx:
            self._flush()

    def _flush(self) -> None:
        """Write every dirty table to a temp file, then move them all into place."""
        logger = get_logger(__name__)
        written: List[Tuple[Path, Path]] = []
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            for table in sorted(self._dirty):
                path = self.path_for(table)
                tmp = path.with_name(f".{path.name}.tmp")
                written.append((tmp, path))
                self._frames[table].to_csv(tmp, index=False)
            for tmp, path in written:
                os.replace(tmp, path)
        except BaseException:
            for tmp, _ in written:
                if tmp.exists():
                    tmp.unlink()
            # staged frames no longer match disk
            self._frames.clear()
            raise
        finally:
            self._dirty.clear()
        logger.info(f"Wrote {len(written)} tables to {self.directory}")

    @contextmanager
    def transaction(self) -> Iterator["CsvDirectorySink"]:
        self._in_tx = True
        try:
            yield self
        except BaseException:
            # drop staged frames; next access re-reads what is on disk
            self._frames.clear()
            self._dirty.clear()
            raise
        finally:
            self._in_tx = False
        self._flush()

    def _upsert(self, table: str, records) -> None:
        rows = [r.to_row() for r in records]
        if not rows:
            return
        new = _rows_to_frame(rows)
        existing = self._frame(table)
        combined = new if existing.empty else pd.concat([existing, new], ignore_index=True)
        combined = combined.drop_duplicates(subset=list(TABLE_KEYS[table]), keep="last")
        self._store(table, combined)

    def upsert_header(self, header: InvoiceHeader) -> None:
        self._upsert(INVOICES, [header])

    def upsert_weekly(self, records: Sequence[WeeklySummaryRecord]) -> None:
        self._upsert(WEEKLY_PAY, records)

    def upsert_daily_services(self, records: Sequence[DailyServiceRecord]) -> None:
        self._upsert(DAILY_PAY_SUMMARY, records)

    def upsert_daily_quantities(self, records: Sequence[DailyQuantityRecord]) -> None:
        self._upsert(DAILY_PAY_QTY, records)

    def replace_adjustment_details(self, invoice_number: str, records: Sequence[AdjustmentDetailRecord]) -> None:
        existing = self._frame(ADJUSTMENT_DETAIL)
        if "invoice_number" in existing.columns:
            existing = existing[existing["invoice_number"] != invoice_number]
        rows = [r.to_row() for r in records]
        if rows:
            new = _rows_to_frame(rows)
            existing = new if existing.empty else pd.concat([existing, new], ignore_index=True)
        elif existing.columns.empty:
            # header-only file for a document without adjustments
            existing = _empty_frame(AdjustmentDetailRecord)
        self._store(ADJUSTMENT_DETAIL, existing)

    def upsert_adjustment_summary(self, summary: AdjustmentSummaryRecord) -> None:
        self._upsert(ADJUSTMENT_SUMMARY, [summary])
