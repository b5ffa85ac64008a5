"""Tests for replaying visual and regex patterns against real PDFs."""

from __future__ import annotations

import fitz
import pytest

from conftest import INVOICE_PAGE, build_pdf
from pdf_pattern_renamer.exceptions import (
    BufferDetachedError,
    DecodeFailure,
    PageOutOfRangeError,
)
from pdf_pattern_renamer.models import (
    CanvasGeometry,
    NamedFile,
    PageViewport,
    RegexPattern,
    VisualPattern,
    VisualPosition,
)
from pdf_pattern_renamer.pattern_replay import PatternReplayer
from pdf_pattern_renamer.pattern_store import PatternStore
from pdf_pattern_renamer.pdf_adapter import PdfDecoder
from pdf_pattern_renamer.selection_tracker import PageContext, SelectionTracker
from pdf_pattern_renamer.text_extractor import TextIntersectionEngine


def _visual(page: int = 1, y: float = 80, height: float = 30, name: str = "Invoice") -> VisualPattern:
    return VisualPattern(
        name=name,
        position=VisualPosition(page=page, x=60, y=y, width=300, height=height, zoom=1.0),
        sample_text="INVOICE 2024-001",
    )


class CountingReader:
    def __init__(self):
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        return path.read_bytes()


class FlakyDecoder(PdfDecoder):
    """Reports a detached buffer on the first decode only."""

    def __init__(self):
        self.calls = 0

    def decode(self, buffer):
        self.calls += 1
        if self.calls == 1:
            raise BufferDetachedError("detached")
        return super().decode(buffer)


class TestVisualReplay:
    def test_extracts_text_at_stored_position(self, invoice_pdf):
        target = NamedFile.from_path(invoice_pdf, buffer=invoice_pdf.read_bytes())
        assert PatternReplayer().replay(_visual(), target) == "INVOICE 2024-001"
        assert target.page_count == 2

    def test_other_document_with_same_layout(self, tmp_path):
        other = tmp_path / "other.pdf"
        other.write_bytes(build_pdf([[((72, 100), "INVOICE 2024-777"), ((72, 400), "Beta")]]))
        target = NamedFile.from_path(other)
        assert PatternReplayer().replay(_visual(), target) == "INVOICE 2024-777"

    def test_text_elsewhere_yields_empty(self, invoice_pdf):
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(_visual(y=200), target) == ""

    def test_uses_stored_page(self, invoice_pdf):
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(_visual(page=2), target) == "Page two"

    def test_missing_page_raises(self, invoice_pdf):
        target = NamedFile.from_path(invoice_pdf)
        with pytest.raises(PageOutOfRangeError):
            PatternReplayer().replay(_visual(page=5), target)

    def test_capture_zoom_does_not_affect_replay(self, invoice_pdf):
        pattern = _visual()
        zoomed = VisualPattern(
            name=pattern.name,
            position=VisualPosition(page=1, x=60, y=80, width=300, height=30, zoom=2.5),
            sample_text=pattern.sample_text,
        )
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(zoomed, target) == "INVOICE 2024-001"

    def test_tracked_selection_replays_to_same_text(self, invoice_pdf):
        class MemoryStore:
            def __init__(self):
                self.data = {}

            def get(self, key):
                return self.data.get(key, [])

            def set(self, key, value):
                self.data[key] = value

        zoom = 1.5
        with PdfDecoder().decode(invoice_pdf.read_bytes()) as doc:
            page = doc.get_page(1)
            width, height = page.width * zoom, page.height * zoom
            context = PageContext(
                page_number=1,
                viewport=PageViewport(page_number=1, width=width, height=height, zoom=zoom),
                canvas=CanvasGeometry(width, height, width, height),
                runs=page.get_text_runs(1.0),
                page_height=page.height,
            )
        tracker = SelectionTracker(TextIntersectionEngine())
        tracker.set_page(context)
        tracker.set_selection_mode(True)
        tracker.pointer_down(90, 570)
        tracker.pointer_move(540, 615)
        selection = tracker.pointer_up(540, 615)

        assert selection.extracted_text == "Client ACME Corp"
        store = PatternStore(MemoryStore())
        store.save(selection, "Client")
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(store.find("Client"), target) == selection.extracted_text


class TestRegexReplay:
    def test_first_capture_group(self, invoice_pdf):
        pattern = RegexPattern(name="Invoice", regex=r"invoice\s+([0-9-]+)")
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(pattern, target) == "2024-001"

    def test_regex_without_groups_yields_empty(self, invoice_pdf):
        pattern = RegexPattern(name="Amount", regex=r"\$[0-9,.]+")
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(pattern, target) == ""

    def test_unmatched_optional_group_yields_empty(self, invoice_pdf):
        pattern = RegexPattern(name="Order", regex=r"invoice(?:\s+order\s+(\d+))?")
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay(pattern, target) == ""

    def test_no_match_is_empty(self, invoice_pdf):
        pattern = RegexPattern(name="Order", regex=r"order\s+(\d+)")
        assert PatternReplayer().replay(pattern, NamedFile.from_path(invoice_pdf)) == ""

    def test_only_first_pages_searched(self, tmp_path):
        path = tmp_path / "long.pdf"
        pages = [[((72, 100), f"Page {n}")] for n in range(1, 5)]
        pages[3] = [((72, 100), "Order 9999")]
        path.write_bytes(build_pdf(pages))
        pattern = RegexPattern(name="Order", regex=r"order\s+(\d+)")
        target = NamedFile.from_path(path)
        assert PatternReplayer(full_text_pages=3).replay(pattern, target) == ""
        target.text = None
        assert PatternReplayer(full_text_pages=4).replay(pattern, target) == "9999"

    def test_full_text_is_cached(self, invoice_pdf):
        reader = CountingReader()
        replayer = PatternReplayer(reader=reader)
        target = NamedFile.from_path(invoice_pdf)
        replayer.replay(RegexPattern(name="a", regex=r"(client)"), target)
        replayer.replay(RegexPattern(name="b", regex=r"(total)"), target)
        assert reader.calls == 1

    def test_find_matches(self):
        pattern = RegexPattern(name="Date", regex=r"(\d{4})-(\d{2})")
        matches = PatternReplayer.find_matches(pattern, "from 2024-01 to 2025-12")
        assert matches == [
            {"match": "2024-01", "groups": ["2024", "01"], "index": 5},
            {"match": "2025-12", "groups": ["2025", "12"], "index": 16},
        ]


class TestDocumentAccess:
    def test_released_buffer_is_refetched(self, invoice_pdf):
        reader = CountingReader()
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer(reader=reader).replay(_visual(), target) == "INVOICE 2024-001"
        assert reader.calls == 1
        assert target.buffer is not None

    def test_detached_decode_retried_once(self, invoice_pdf):
        reader = CountingReader()
        decoder = FlakyDecoder()
        target = NamedFile.from_path(invoice_pdf, buffer=invoice_pdf.read_bytes())
        replayer = PatternReplayer(decoder=decoder, reader=reader)
        assert replayer.replay(_visual(), target) == "INVOICE 2024-001"
        assert decoder.calls == 2
        assert reader.calls == 1

    def test_source_buffer_left_intact(self, invoice_pdf):
        data = invoice_pdf.read_bytes()
        target = NamedFile.from_path(invoice_pdf, buffer=data)
        replayer = PatternReplayer()
        replayer.replay(_visual(), target)
        replayer.replay(_visual(page=2), target)
        assert target.buffer == data

    def test_corrupt_file_fails_to_decode(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf at all")
        with pytest.raises(DecodeFailure):
            PatternReplayer().replay(_visual(), NamedFile.from_path(path))


class TestReplaySafe:
    def test_failure_recorded_and_empty_returned(self, invoice_pdf):
        errors = []
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay_safe(_visual(page=9), target, errors) == ""
        (failure,) = errors
        assert failure.stage == "extract"
        assert failure.path == str(invoice_pdf)
        assert "page 9" in failure.message

    def test_missing_file_recorded(self, tmp_path):
        errors = []
        target = NamedFile.from_path(tmp_path / "gone.pdf")
        pattern = RegexPattern(name="a", regex=r"(x)")
        assert PatternReplayer().replay_safe(pattern, target, errors) == ""
        assert len(errors) == 1

    def test_unparseable_page_recorded(self, invoice_pdf, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("broken content stream")

        monkeypatch.setattr(fitz.Page, "get_text", broken)
        errors = []
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay_safe(_visual(), target, errors) == ""
        (failure,) = errors
        assert failure.stage == "extract"
        assert "broken content stream" in failure.message

    def test_success_records_nothing(self, invoice_pdf):
        errors = []
        target = NamedFile.from_path(invoice_pdf)
        assert PatternReplayer().replay_safe(_visual(), target, errors) == "INVOICE 2024-001"
        assert errors == []


def test_single_page_fixture_builder():
    assert build_pdf([INVOICE_PAGE])[:5] == b"%PDF-"
