"""
End-to-end tests: tokens -> InvoiceIngestor -> sink, plus the CLI.
"""

from decimal import Decimal

import pytest

from app import cli
from app.models.schemas import LayoutConfig
from app.services.emit import persist
from app.services.errors import (
    InvariantViolation,
    MissingRequiredField,
    PersistenceFailure,
    UnreadableDocument,
)
from app.services.pipeline import InvoiceIngestor, document_id
from app.services.sinks import ADJUSTMENT_DETAIL, DAILY_PAY_QTY, DAILY_PAY_SUMMARY, INVOICES, WEEKLY_PAY, InMemorySink

from conftest import PAGE_ONE, PAGE_TWO, TODAY, pages_for, tokens_for

DATA = b"%PDF-sample"


def ingestor_for(pages, sink=None, **kwargs):
    return InvoiceIngestor(extract_tokens=lambda data: pages, sink=sink, today=TODAY, **kwargs)


class FailingSink(InMemorySink):
    def upsert_daily_quantities(self, records):
        raise RuntimeError("table locked")


class TestParse:
    """Test InvoiceIngestor.parse on the sample invoice."""

    def test_sample_counts(self, sample_pages):
        batch = ingestor_for(sample_pages).parse(DATA, doc_id="sample.pdf")
        assert batch.doc_id == "sample.pdf"
        assert batch.invoice_number == "100234"
        assert batch.counts() == {
            "weekly": 2,
            "daily_services": 6,
            "daily_quantities": 3,
            "adjustment_details": 3,
        }
        assert batch.header.gross_total == Decimal("1445.40")
        assert batch.adjustment_summary.post_adj_total == Decimal("192.25")
        assert batch.provenance["adjustment_drift"] == "0.00"

    def test_default_doc_id_is_content_hash(self, sample_pages):
        batch = ingestor_for(sample_pages).parse(DATA)
        assert batch.doc_id == document_id(DATA)
        assert len(batch.doc_id) == 16

    def test_all_records_share_invoice_number(self, sample_pages):
        batch = ingestor_for(sample_pages).parse(DATA)
        records = batch.weekly + batch.daily_services + batch.daily_quantities + batch.adjustment_details
        assert {r.invoice_number for r in records} == {"100234"}
        for s in batch.daily_services:
            assert s.qty_total == s.qty_paid + s.qty_unpaid

    def test_unreadable_document_never_reaches_parsers(self, monkeypatch):
        calls = []
        monkeypatch.setattr("app.services.pipeline.extract", lambda *a, **kw: calls.append(a))
        pages = [tokens_for(["Scan0001"])]
        with pytest.raises(UnreadableDocument) as exc:
            ingestor_for(pages).parse(DATA)
        assert exc.value.stage == "reconstruct"
        assert calls == []

    def test_min_text_length_is_configurable(self):
        pages = [tokens_for(["Nothing useful here"])]
        with pytest.raises(MissingRequiredField):
            ingestor_for(pages, config=LayoutConfig(min_text_length=5)).parse(DATA)

    def test_extractor_failure_is_unreadable(self):
        def broken(data):
            raise ValueError("no trailer")

        with pytest.raises(UnreadableDocument) as exc:
            InvoiceIngestor(extract_tokens=broken).parse(DATA)
        assert exc.value.stage == "extract"

    def test_missing_invoice_number(self):
        pages = pages_for([line for line in PAGE_ONE if not line.startswith("Invoice No")], PAGE_TWO)
        with pytest.raises(MissingRequiredField):
            ingestor_for(pages).parse(DATA)

    def test_mojibake_currency_is_cleaned(self):
        page_two = [line.replace("£", "Â£") for line in PAGE_TWO]
        batch = ingestor_for(pages_for(PAGE_ONE, page_two)).parse(DATA)
        assert batch.header.net_total == Decimal("1204.50")


class TestIngest:
    """Test InvoiceIngestor.ingest persistence behavior."""

    def test_writes_every_table(self, sample_pages):
        sink = InMemorySink()
        ingestor_for(sample_pages, sink).ingest(DATA)
        assert sink.row_count(INVOICES) == 1
        assert sink.row_count(WEEKLY_PAY) == 2
        assert sink.row_count(DAILY_PAY_SUMMARY) == 6
        assert sink.row_count(DAILY_PAY_QTY) == 3
        assert sink.row_count(ADJUSTMENT_DETAIL) == 3

    def test_reingest_is_idempotent(self, sample_pages):
        sink = InMemorySink()
        ingestor = ingestor_for(sample_pages, sink)
        first = ingestor.ingest(DATA)
        snapshot = {name: dict(rows) for name, rows in sink.tables.items()}
        second = ingestor.ingest(DATA)
        assert first == second
        assert sink.tables == snapshot

    def test_adjustments_replaced_not_merged(self, sample_pages):
        sink = InMemorySink()
        ingestor_for(sample_pages, sink).ingest(DATA)
        trimmed = [line for line in PAGE_TWO if "Fuel Support" not in line]
        ingestor_for(pages_for(PAGE_ONE, trimmed), sink).ingest(DATA)
        assert sink.row_count(ADJUSTMENT_DETAIL) == 2
        types = [row["adjustment_type"] for row in sink.tables[ADJUSTMENT_DETAIL]["100234"]]
        assert types == ["Lost Parcel", "Premium Operating Payment"]

    def test_stated_total_mismatch_persists_nothing(self):
        bad = [
            line.replace("Regular Delivery 112 2 @", "Regular Delivery 113 2 @") for line in PAGE_ONE
        ]
        sink = InMemorySink()
        with pytest.raises(InvariantViolation) as exc:
            ingestor_for(pages_for(bad, PAGE_TWO), sink).ingest(DATA)
        assert exc.value.invoice_number == "100234"
        assert exc.value.tour == "WB68"
        assert all(sink.row_count(name) == 0 for name in sink.tables)

    def test_sink_failure_names_stage_and_rolls_back(self, sample_pages):
        sink = FailingSink()
        with pytest.raises(PersistenceFailure) as exc:
            ingestor_for(sample_pages, sink).ingest(DATA)
        assert exc.value.stage == "daily_quantities"
        assert exc.value.invoice_number == "100234"
        assert all(sink.row_count(name) == 0 for name in sink.tables)

    def test_persist_directly(self, sample_pages):
        batch = ingestor_for(sample_pages).parse(DATA)
        sink = InMemorySink()
        persist(batch, sink)
        assert sink.tables[INVOICES][("100234",)]["gross_total"] == "1445.40"

    def test_ingest_requires_sink(self, sample_pages):
        with pytest.raises(ValueError):
            ingestor_for(sample_pages).ingest(DATA)


def write_sample_pdf(path):
    canvas_mod = pytest.importorskip("reportlab.pdfgen.canvas")
    c = canvas_mod.Canvas(str(path))
    for lines in (PAGE_ONE, PAGE_TWO):
        y = 800
        for line in lines:
            x = 40
            for word in line.split(" "):
                c.setFont("Helvetica", 9)
                c.drawString(x, y, word)
                x += c.stringWidth(word, "Helvetica", 9) + 8
            y -= 14
        c.showPage()
    c.save()


class TestCli:
    """Test the command line entry point."""

    def test_counts_from_real_pdf(self, tmp_path, capsys):
        pdf = tmp_path / "invoice.pdf"
        write_sample_pdf(pdf)
        assert cli.main([str(pdf)]) == 0
        out = capsys.readouterr().out
        assert "Invoice 100234" in out
        assert "daily_services: 6" in out

    def test_csv_output(self, tmp_path):
        pdf = tmp_path / "invoice.pdf"
        write_sample_pdf(pdf)
        out_dir = tmp_path / "ledger"
        assert cli.main([str(pdf), "--out", str(out_dir)]) == 0
        assert (out_dir / "DAILY_PAY_SUMMARY.csv").exists()
        assert (out_dir / "invoices.csv").exists()

    def test_not_a_pdf(self, tmp_path, capsys):
        bogus = tmp_path / "bogus.pdf"
        bogus.write_bytes(b"definitely not a pdf")
        assert cli.main([str(bogus)]) == 1
        assert "UnreadableDocument" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert cli.main([str(tmp_path / "nope.pdf")]) == 1
