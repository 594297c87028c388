"""
Command line entry point.

    python -m app.cli invoice.pdf                 # parse, print record counts
    python -m app.cli invoice.pdf --json          # parse, print the whole batch as JSON
    python -m app.cli invoice.pdf --out ledger/   # parse and upsert into CSV tables

Exit code 0 on success, 1 with the categorized error on stderr otherwise.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from app.services.errors import IngestionError
from app.services.pipeline import InvoiceIngestor, document_id
from app.services.sinks import CsvDirectorySink


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="invoice-ingest",
        description="Turn a supplier self-billing invoice PDF into validated ledger records.",
    )
    p.add_argument("pdf", help="Path to the invoice PDF")
    p.add_argument("--out", default=None, help="Directory of CSV tables to upsert into (created if missing)")
    p.add_argument("--json", action="store_true", help="Print the full record batch as JSON")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    path = Path(args.pdf)
    try:
        data = path.read_bytes()
    except OSError as e:
        print(f"Cannot read {path}: {e}", file=sys.stderr)
        return 1

    doc_id = f"{path.name}-{document_id(data)}"
    sink = CsvDirectorySink(args.out) if args.out else None
    ingestor = InvoiceIngestor(sink=sink)
    try:
        batch = ingestor.ingest(data, doc_id) if sink else ingestor.parse(data, doc_id)
    except IngestionError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(batch.model_dump(mode="json"), indent=2))
    else:
        print(f"Invoice {batch.invoice_number} ({batch.header.invoice_date}) from {path.name}")
        for name, n in batch.counts().items():
            print(f"  {name}: {n}")
        if sink:
            print(f"Upserted into {sink.directory}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
