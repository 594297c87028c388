"""
Ingestion error taxonomy.

Fatal (abort the whole document, nothing is persisted):
- UnreadableDocument: the PDF yields too little text (image-only/corrupt).
- MissingRequiredField: no invoice number in the header.
- InvariantViolation: a daily row or roll-up fails its arithmetic check.
- PersistenceFailure: the record sink rejected a write.

Non-fatal:
- UnrecognizedRowShape: a line inside a section is not a record; callers skip it.

Every error carries enough context (invoice number, stage, offending line)
to act on without re-running extraction.
"""

from typing import Optional


class IngestionError(Exception):
    """Base class; `stage` is the pipeline step or document section that failed."""

    def __init__(
        self,
        message: str,
        *,
        invoice_number: Optional[str] = None,
        stage: Optional[str] = None,
        line: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.invoice_number = invoice_number
        self.stage = stage
        self.line = line

    def __str__(self) -> str:
        parts = [self.message]
        if self.invoice_number:
            parts.append(f"invoice={self.invoice_number}")
        if self.stage:
            parts.append(f"stage={self.stage}")
        if self.line:
            parts.append(f"line={self.line!r}")
        return " | ".join(parts)


class UnreadableDocument(IngestionError):
    pass


class MissingRequiredField(IngestionError):
    def __init__(self, field: str, **kwargs):
        super().__init__(f"Could not extract required field '{field}'", **kwargs)
        self.field = field


class InvariantViolation(IngestionError):
    def __init__(
        self,
        message: str,
        *,
        working_day=None,
        operator_id: Optional[str] = None,
        tour: Optional[str] = None,
        service_group: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.working_day = working_day
        self.operator_id = operator_id
        self.tour = tour
        self.service_group = service_group

    def __str__(self) -> str:
        where = " ".join(str(p) for p in (self.working_day, self.operator_id, self.tour, self.service_group) if p)
        base = super().__str__()
        return f"{base} | at={where}" if where else base


class UnrecognizedRowShape(IngestionError):
    pass


class PersistenceFailure(IngestionError):
    pass
