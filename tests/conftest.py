"""Shared fixtures: small PDFs built with PyMuPDF."""

from __future__ import annotations

from pathlib import Path

import fitz
import pytest

PAGE_WIDTH = 612
PAGE_HEIGHT = 792


def build_pdf(pages: list[list[tuple[tuple[float, float], str]]]) -> bytes:
    """Return PDF bytes; each page lists ((x, baseline_y), text) insertions.

    Coordinates are PyMuPDF's top-down page coordinates.
    """
    doc = fitz.open()
    for items in pages:
        page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        for point, text in items:
            page.insert_text(point, text, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


INVOICE_PAGE = [
    ((72, 100), "INVOICE 2024-001"),
    ((72, 400), "Client: ACME Corp"),
    ((72, 700), "Total due: $1,250.00"),
]


@pytest.fixture
def invoice_pdf(tmp_path: Path) -> Path:
    """A two-page invoice PDF written to disk."""
    path = tmp_path / "invoice.pdf"
    path.write_bytes(build_pdf([INVOICE_PAGE, [((72, 100), "Page two")]]))
    return path


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDF_RENAMER_LOG_DIR", str(tmp_path / "logs"))
