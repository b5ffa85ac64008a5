"""PyMuPDF-backed decoder/renderer adapter.

Exposes just what the extraction core needs: page count, positioned text
runs at a requested scale, and a rasterized page. Text-run origins are
reported in PDF user space (bottom-left origin, Y up); PyMuPDF itself works
top-down, so the flip happens here once per run.
"""

from __future__ import annotations

import logging

import fitz  # PyMuPDF
from PIL import Image

from pdf_pattern_renamer.exceptions import (
    BufferDetachedError,
    DecodeFailure,
    PageOutOfRangeError,
)
from pdf_pattern_renamer.models import RasterSurface, TextRun

logger = logging.getLogger(__name__)


class PdfPage:
    """A single decoded page."""

    def __init__(self, page: fitz.Page, page_number: int) -> None:
        self._page = page
        self.page_number = page_number

    @property
    def width(self) -> float:
        return float(self._page.rect.width)

    @property
    def height(self) -> float:
        return float(self._page.rect.height)

    def get_text_runs(self, scale: float = 1.0) -> list[TextRun]:
        """Return positioned text runs, one per PyMuPDF span.

        Coordinates are multiplied by *scale*; the Y origin is flipped into
        PDF user space against the page height at that scale.

        Raises:
            DecodeFailure: If the page content cannot be parsed.
        """
        page_height = self.height
        try:
            text_dict = self._page.get_text("dict", flags=fitz.TEXTFLAGS_TEXT)
        except RuntimeError as exc:
            raise DecodeFailure(
                f"Cannot read text of page {self.page_number}: {exc}"
            ) from exc

        runs: list[TextRun] = []
        for block in text_dict.get("blocks", []):
            if block.get("type") != 0:  # only text blocks
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    x0, y0, x1, y1 = span["bbox"]
                    ox, oy = span.get("origin", (x0, y1))
                    runs.append(
                        TextRun(
                            text=text,
                            origin_x=ox * scale,
                            origin_y=(page_height - oy) * scale,
                            width=(x1 - x0) * scale,
                            height=(y1 - y0) * scale,
                        )
                    )
        return runs

    def render(self, scale: float = 1.0) -> RasterSurface:
        """Render the page to a PIL image via a PyMuPDF pixmap."""
        try:
            pixmap = self._page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        except RuntimeError as exc:
            raise DecodeFailure(f"Cannot render page {self.page_number}: {exc}") from exc
        image = Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
        return RasterSurface(width=pixmap.width, height=pixmap.height, image=image)


class PdfDocument:
    """A decoded PDF; usable as a context manager."""

    def __init__(self, doc: fitz.Document) -> None:
        self._doc = doc

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def get_page(self, page_number: int) -> PdfPage:
        """Return the 1-based *page_number*.

        Raises:
            PageOutOfRangeError: If the document has no such page.
            DecodeFailure: If the page object cannot be loaded.
        """
        if page_number < 1 or page_number > self.page_count:
            raise PageOutOfRangeError(page_number, self.page_count)
        try:
            page = self._doc[page_number - 1]
        except RuntimeError as exc:
            raise DecodeFailure(f"Cannot load page {page_number}: {exc}") from exc
        return PdfPage(page, page_number)

    def close(self) -> None:
        self._doc.close()


class PdfDecoder:
    """Decode owned PDF byte buffers into documents."""

    def decode(self, buffer: bytes | None) -> PdfDocument:
        """Decode *buffer*, which the caller hands over as an owned copy.

        Raises:
            BufferDetachedError: If the buffer was released or is empty.
            DecodeFailure: If the bytes are not a readable PDF.
        """
        if not buffer:
            raise BufferDetachedError("Buffer is empty or was released")

        try:
            doc = fitz.open(stream=buffer, filetype="pdf")
        except Exception as exc:
            raise DecodeFailure(f"Not a valid PDF: {exc}") from exc

        if doc.needs_pass:
            doc.close()
            raise DecodeFailure("PDF is encrypted and needs a password")

        logger.debug("Decoded PDF with %d page(s)", len(doc))
        return PdfDocument(doc)


def get_page_count(buffer: bytes) -> int:
    """Decode *buffer* just long enough to read its page count."""
    with PdfDecoder().decode(buffer) as doc:
        return doc.page_count
