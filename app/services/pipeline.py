"""
End-to-end ingestion for one invoice PDF.

    bytes -> extract_tokens (injected) -> reconstruct_lines -> normalize_text
          -> extract() -> InvoiceBatch -> persist() into the sink

The token extraction primitive and the sink are passed in; nothing is read
from module globals. parse() is pure (no sink calls); ingest() persists only
after the whole document parsed cleanly.
"""

import hashlib
from datetime import date
from typing import Callable, List, Optional, Sequence

from app.models.schemas import InvoiceBatch, LayoutConfig, PositionedToken
from app.services.emit import persist
from app.services.errors import IngestionError, UnreadableDocument
from app.services.extract import extract
from app.services.parse_pdf import extract_page_tokens
from app.services.sinks import RecordSink
from app.util.layout import lines_to_text, reconstruct_lines
from app.util.logger import get_logger
from app.util.text import normalize_text

TokenExtractor = Callable[[bytes], Sequence[Sequence[PositionedToken]]]


def document_id(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:16]


class InvoiceIngestor:
    """
    extract_tokens: bytes -> per-page positioned tokens (pdfplumber adapter by default)
    sink: where ingest() writes; parse() never touches it
    config: row reconstruction thresholds
    today: fallback for unparseable header dates
    """

    def __init__(
        self,
        extract_tokens: TokenExtractor = extract_page_tokens,
        sink: Optional[RecordSink] = None,
        config: Optional[LayoutConfig] = None,
        today: Optional[date] = None,
    ):
        self.extract_tokens = extract_tokens
        self.sink = sink
        self.config = config or LayoutConfig()
        self.today = today
        if extract_tokens is extract_page_tokens:
            self.parser_name = "pdfplumber"
        else:
            self.parser_name = getattr(extract_tokens, "__name__", type(extract_tokens).__name__)

    def read_lines(self, data: bytes, doc_id: str) -> List[str]:
        """Token extraction + row reconstruction; fails fast on image-only documents."""
        logger = get_logger(__name__)
        try:
            pages = self.extract_tokens(data)
        except Exception as e:
            raise UnreadableDocument(f"Could not extract text from {doc_id}: {e}", stage="extract") from e

        lines = reconstruct_lines(pages, self.config)
        text = normalize_text(lines_to_text(lines))
        logger.info(f"{doc_id}: {sum(len(p) for p in pages)} tokens on {len(pages)} pages -> {len(lines)} lines")
        if len(text) < self.config.min_text_length:
            raise UnreadableDocument(
                f"Only {len(text)} characters of text in {doc_id}; image-only or corrupt PDF?",
                stage="reconstruct",
            )
        return [ln for ln in text.split("\n") if ln.strip()]

    def parse(self, data: bytes, doc_id: Optional[str] = None) -> InvoiceBatch:
        logger = get_logger(__name__)
        doc_id = doc_id or document_id(data)
        try:
            lines = self.read_lines(data, doc_id)
            return extract(doc_id, lines, today=self.today, parser_name=self.parser_name)
        except IngestionError as e:
            logger.error(f"Ingestion of {doc_id} failed: {e}")
            raise

    def ingest(self, data: bytes, doc_id: Optional[str] = None) -> InvoiceBatch:
        if self.sink is None:
            raise ValueError("InvoiceIngestor.ingest() needs a sink; use parse() for a dry run")
        batch = self.parse(data, doc_id)
        persist(batch, self.sink)
        return batch
