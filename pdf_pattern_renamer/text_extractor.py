"""Text intersection engine.

Finds the decoder text runs lying under a query rectangle and rebuilds the
text in reading order (top-to-bottom, left-to-right) with whitespace and
punctuation normalized for use in file names.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Sequence

import numpy as np

from pdf_pattern_renamer.coordinate_mapper import run_box
from pdf_pattern_renamer.exceptions import CoordinateSpaceError
from pdf_pattern_renamer.models import CoordinateSpace, Rectangle, TextRun

logger = logging.getLogger(__name__)

# Slack added around the query rectangle, in PDF units.
DEFAULT_TOLERANCE = 5.0

# Two runs whose baselines differ by less than this sit on the same line.
LINE_TOLERANCE = 5.0

_WHITESPACE_RE = re.compile(r"\s+")
# Punctuation, quotes and brackets that corrupt file names.
_CLEANUP_RE = re.compile(r"[,.;:!?\"'‘’“”«»()\[\]{}]")


def collapse_whitespace(text: str) -> str:
    """Strip and collapse internal whitespace runs to one space."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_extracted_text(text: str) -> str:
    """Remove file-name-hostile punctuation, then re-collapse whitespace."""
    if not text:
        return ""
    return collapse_whitespace(_CLEANUP_RE.sub("", text))


class TextIntersectionEngine:
    """Extract the text under a rectangle from a page's positioned runs."""

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        line_tolerance: float = LINE_TOLERANCE,
    ) -> None:
        self.tolerance = tolerance
        self.line_tolerance = line_tolerance

    def extract(
        self,
        rect: Rectangle,
        runs: Sequence[TextRun],
        tolerance: float | None = None,
        page_height: float | None = None,
    ) -> str:
        """Return the cleaned text of every run overlapping *rect*.

        1. Expands *rect* by *tolerance* on all four sides.
        2. Builds each run's box in the same top-down frame (flipping Y-up
           origins against *page_height* when given).
        3. Keeps runs whose boxes overlap, edges included.
        4. Orders them into lines, then left-to-right.
        5. Joins with single spaces and strips punctuation.

        An empty string means nothing was found; it is not an error.

        Raises:
            CoordinateSpaceError: If *rect* is not in PDF space.
        """
        if rect.space is not CoordinateSpace.PDF:
            raise CoordinateSpaceError(
                f"Extraction needs a pdf rectangle, got {rect.space.value}"
            )
        if not runs:
            return ""

        slack = self.tolerance if tolerance is None else tolerance
        query = rect.expanded(slack)
        boxes = [run_box(run, page_height) for run in runs]

        kept = self._overlapping(query, boxes)
        if not kept:
            logger.debug("No runs intersect %s", query)
            return ""

        ordered = self._reading_order([(runs[i], boxes[i]) for i in kept])
        raw = collapse_whitespace(" ".join(run.text for run, _ in ordered))
        return clean_extracted_text(raw)

    def page_text(
        self, runs: Sequence[TextRun], page_height: float | None = None
    ) -> str:
        """Return a page's full text in reading order, one line per row."""
        if not runs:
            return ""
        ordered = self._reading_order(
            [(run, run_box(run, page_height)) for run in runs]
        )

        lines: list[list[str]] = []
        last_y: float | None = None
        for run, box in ordered:
            if last_y is None or abs(box.bottom - last_y) >= self.line_tolerance:
                lines.append([])
                last_y = box.bottom
            lines[-1].append(run.text)
        return "\n".join(collapse_whitespace(" ".join(parts)) for parts in lines)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _overlapping(query: Rectangle, boxes: list[Rectangle]) -> list[int]:
        """Indices of *boxes* overlapping *query*, in input order."""
        coords = np.array(
            [(b.left, b.top, b.right, b.bottom) for b in boxes], dtype=float
        )
        left, top, right, bottom = coords.T
        mask = ~(
            (query.right < left)
            | (query.left > right)
            | (query.bottom < top)
            | (query.top > bottom)
        )
        return [int(i) for i in np.flatnonzero(mask)]

    def _reading_order(
        self, items: list[tuple[TextRun, Rectangle]]
    ) -> list[tuple[TextRun, Rectangle]]:
        tol = self.line_tolerance

        def compare(a: tuple[TextRun, Rectangle], b: tuple[TextRun, Rectangle]) -> int:
            ay, by = a[1].bottom, b[1].bottom
            if abs(ay - by) < tol:  # same line
                return _sign(a[1].left - b[1].left)
            return _sign(ay - by)

        return sorted(items, key=functools.cmp_to_key(compare))


def _sign(value: float) -> int:
    if value < 0:
        return -1
    if value > 0:
        return 1
    return 0
