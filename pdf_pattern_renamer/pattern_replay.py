"""Replay stored patterns against documents other than the one they came from."""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import singledispatchmethod
from pathlib import Path

from pdf_pattern_renamer.exceptions import BufferDetachedError, RenamerError
from pdf_pattern_renamer.file_io import read_file
from pdf_pattern_renamer.models import (
    BatchFailure,
    NamedFile,
    Pattern,
    RegexPattern,
    VisualPattern,
)
from pdf_pattern_renamer.pattern_store import compile_pattern_regex
from pdf_pattern_renamer.pdf_adapter import PdfDecoder, PdfDocument
from pdf_pattern_renamer.text_extractor import TextIntersectionEngine, collapse_whitespace

logger = logging.getLogger(__name__)

# Replay always reads runs at scale 1.0, independent of any on-screen zoom.
REPLAY_SCALE = 1.0


class PatternReplayer:
    """Run visual and regex patterns against target files."""

    def __init__(
        self,
        decoder: PdfDecoder | None = None,
        engine: TextIntersectionEngine | None = None,
        reader: Callable[[Path], bytes] = read_file,
        full_text_pages: int = 3,
    ) -> None:
        self.decoder = decoder or PdfDecoder()
        self.engine = engine or TextIntersectionEngine()
        self.reader = reader
        self.full_text_pages = full_text_pages

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    @singledispatchmethod
    def replay(self, pattern: Pattern, target: NamedFile) -> str:
        """Return the text *pattern* extracts from *target*.

        Raises:
            PageOutOfRangeError: If a visual pattern's page is missing.
            DecodeFailure: If the target cannot be decoded.
        """
        raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")

    @replay.register(VisualPattern)
    def _replay_visual(self, pattern: VisualPattern, target: NamedFile) -> str:
        position = pattern.position
        with self.open_document(target) as doc:
            page = doc.get_page(position.page)
            runs = page.get_text_runs(REPLAY_SCALE)
            return self.engine.extract(position.rect, runs, page_height=page.height)

    @replay.register(RegexPattern)
    def _replay_regex(self, pattern: RegexPattern, target: NamedFile) -> str:
        regex = compile_pattern_regex(pattern.regex)
        match = regex.search(self.full_text(target))
        # Only the first capture group names a file; no group means no value.
        if match is None or not regex.groups:
            return ""
        return collapse_whitespace(match.group(1) or "")

    def replay_safe(
        self, pattern: Pattern, target: NamedFile, errors: list[BatchFailure]
    ) -> str:
        """Like :meth:`replay` but a failure yields ``""`` and is recorded."""
        try:
            return self.replay(pattern, target)
        except (RenamerError, OSError) as exc:
            page = getattr(getattr(pattern, "position", None), "page", None)
            where = f" page {page}" if page is not None else ""
            message = f"Pattern {pattern.name!r} on{where}: {exc}"
            logger.warning("%s: %s", target.name, message)
            errors.append(BatchFailure(path=str(target.path), stage="extract", message=message))
            return ""

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    def open_document(self, target: NamedFile) -> PdfDocument:
        """Decode an owned copy of *target*'s buffer.

        A missing or released buffer is re-read from disk, and a decode that
        reports a detached buffer is retried once with a fresh read.
        """
        buffer = target.owned_buffer()
        if buffer is None:
            buffer = self._refetch(target)
        try:
            doc = self.decoder.decode(buffer)
        except BufferDetachedError:
            logger.info("Buffer for %s was detached, re-reading from disk", target.name)
            doc = self.decoder.decode(self._refetch(target))
        target.page_count = doc.page_count
        return doc

    def _refetch(self, target: NamedFile) -> bytes | None:
        target.buffer = self.reader(target.path)
        return target.owned_buffer()

    def full_text(self, target: NamedFile) -> str:
        """Return (and cache) the text of the target's first pages.

        Each page is read in reading order, one line per row; pages are
        separated by a newline.
        """
        if target.text is None:
            with self.open_document(target) as doc:
                pages = []
                for n in range(1, min(self.full_text_pages, doc.page_count) + 1):
                    page = doc.get_page(n)
                    runs = page.get_text_runs(REPLAY_SCALE)
                    pages.append(self.engine.page_text(runs, page_height=page.height))
            target.text = "\n".join(pages)
        return target.text

    @staticmethod
    def find_matches(pattern: RegexPattern, text: str) -> list[dict]:
        """Return every match of a regex pattern with its groups and offset."""
        regex = compile_pattern_regex(pattern.regex)
        return [
            {"match": m.group(0), "groups": list(m.groups()), "index": m.start()}
            for m in regex.finditer(text or "")
        ]
