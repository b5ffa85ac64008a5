"""Pointer-drag selection state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from pdf_pattern_renamer.coordinate_mapper import to_pdf_space
from pdf_pattern_renamer.models import (
    CanvasGeometry,
    CoordinateSpace,
    PageViewport,
    Rectangle,
    Selection,
    SelectionState,
    TextRun,
)
from pdf_pattern_renamer.text_extractor import TextIntersectionEngine

logger = logging.getLogger(__name__)

MIN_SELECTION_SIZE = 10.0


@dataclass
class PageContext:
    """The page currently shown: its viewport, canvas and scale-1.0 runs."""

    page_number: int
    viewport: PageViewport
    canvas: CanvasGeometry
    runs: Sequence[TextRun]
    page_height: float


class SelectionTracker:
    """Turn pointer gestures into PDF-space selections.

    ``IDLE -> DRAGGING -> FINALIZED -> (IDLE | SAVED)``. A pointer-down
    always restarts the gesture; gestures smaller than ``min_size`` in
    either dimension are treated as clicks and discarded.
    """

    def __init__(
        self,
        engine: TextIntersectionEngine,
        min_size: float = MIN_SELECTION_SIZE,
        on_selection: Callable[[Selection], None] | None = None,
        on_clear: Callable[[], None] | None = None,
    ) -> None:
        self.engine = engine
        self.min_size = min_size
        self.on_selection = on_selection
        self.on_clear = on_clear

        self.state = SelectionState.IDLE
        self.selection_mode = False
        self.page: PageContext | None = None
        self.selection: Selection | None = None
        self._start: tuple[float, float] | None = None
        self._end: tuple[float, float] | None = None

    @property
    def live_rect(self) -> Rectangle | None:
        """The rectangle being dragged, in display pixels, for preview."""
        if self._start is None or self._end is None:
            return None
        (x0, y0), (x1, y1) = self._start, self._end
        return Rectangle(x0, y0, x1, y1, CoordinateSpace.PIXEL)

    def set_selection_mode(self, enabled: bool) -> None:
        self.selection_mode = enabled
        if not enabled:
            self.cancel()

    def set_page(self, page: PageContext | None) -> None:
        """Switch the displayed page; any selection in progress is dropped."""
        if self.page is not None and self.state is not SelectionState.IDLE:
            self.cancel()
        self.page = page

    def pointer_down(self, x: float, y: float) -> None:
        if not self.selection_mode:
            return
        if self.state is not SelectionState.IDLE:
            self.cancel()
        self._start = (x, y)
        self._end = (x, y)
        self.state = SelectionState.DRAGGING

    def pointer_move(self, x: float, y: float) -> None:
        if self.state is SelectionState.DRAGGING:
            self._end = (x, y)

    def pointer_up(self, x: float, y: float) -> Selection | None:
        """Finish the gesture and return the new selection, if any."""
        if self.state is not SelectionState.DRAGGING:
            return None
        self._end = (x, y)
        rect = self.live_rect

        if rect.width < self.min_size or rect.height < self.min_size:
            logger.debug(
                "Discarding %.1fx%.1f px gesture as a click", rect.width, rect.height
            )
            self.cancel()
            return None

        if self.page is None:
            logger.warning("Selection finished with no page loaded")
            self.cancel()
            return None

        page = self.page
        pdf_rect = to_pdf_space(rect, page.canvas, page.viewport, page.page_number)
        text = self.engine.extract(pdf_rect, page.runs, page_height=page.page_height)

        self.selection = Selection(
            page=page.page_number,
            rect=pdf_rect,
            capture_zoom=page.viewport.zoom,
            extracted_text=text,
        )
        self.state = SelectionState.FINALIZED
        logger.info(
            "Selection on page %d at (%.1f, %.1f) %.1fx%.1f: %r",
            page.page_number,
            pdf_rect.left,
            pdf_rect.top,
            pdf_rect.width,
            pdf_rect.height,
            text,
        )

        if self.on_selection is not None:
            self.on_selection(self.selection)
        return self.selection

    def mark_saved(self) -> None:
        if self.state is SelectionState.FINALIZED:
            self.state = SelectionState.SAVED

    def cancel(self) -> None:
        """Return to ``IDLE`` from any state and clear the overlay."""
        self._start = None
        self._end = None
        self.selection = None
        self.state = SelectionState.IDLE
        if self.on_clear is not None:
            self.on_clear()
