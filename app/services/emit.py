"""
Hand one InvoiceBatch to a RecordSink as a single unit.

Write order: header -> weekly -> daily services -> daily quantities ->
adjustment details (replace) -> adjustment summary, all in one sink
transaction. The first failing write aborts the transaction and surfaces as
PersistenceFailure naming the stage, so the caller knows exactly what broke.
"""

from app.models.schemas import InvoiceBatch
from app.services.errors import PersistenceFailure
from app.services.sinks import RecordSink
from app.util.logger import get_logger

STAGES = (
    "header",
    "weekly",
    "daily_services",
    "daily_quantities",
    "adjustment_details",
    "adjustment_summary",
)


def persist(batch: InvoiceBatch, sink: RecordSink) -> None:
    logger = get_logger(__name__)
    invoice_number = batch.invoice_number
    writes = {
        "header": lambda: sink.upsert_header(batch.header),
        "weekly": lambda: sink.upsert_weekly(batch.weekly),
        "daily_services": lambda: sink.upsert_daily_services(batch.daily_services),
        "daily_quantities": lambda: sink.upsert_daily_quantities(batch.daily_quantities),
        "adjustment_details": lambda: sink.replace_adjustment_details(invoice_number, batch.adjustment_details),
        "adjustment_summary": lambda: sink.upsert_adjustment_summary(batch.adjustment_summary),
    }

    stage = "begin"
    try:
        with sink.transaction():
            for stage in STAGES:
                writes[stage]()
            stage = "commit"
    except PersistenceFailure:
        raise
    except Exception as e:
        logger.error(f"Persistence failed for invoice {invoice_number} at stage {stage}: {e}")
        raise PersistenceFailure(
            f"Record sink rejected write: {e}", invoice_number=invoice_number, stage=stage
        ) from e

    logger.info(f"Persisted invoice {invoice_number}: {batch.counts()}")
