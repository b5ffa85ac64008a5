"""Conversions between display pixels, viewport pixels and PDF space.

Three frames are involved:

* pixel space: where pointer events land, i.e. the canvas as displayed;
* viewport space: the canvas backing store, scaled by the zoom level;
* PDF space: unscaled page points with a top-left origin.

Display pixels map to backing pixels by the canvas's pixel/display ratio,
and backing pixels map to PDF space by dividing out the zoom. Decoder text
runs additionally sit in PDF user space (Y up), which is flipped against the
page height before any comparison.
"""

from __future__ import annotations

from pdf_pattern_renamer.exceptions import (
    CoordinateSpaceError,
    RenderNotReadyError,
    ViewportMismatchError,
)
from pdf_pattern_renamer.models import (
    CanvasGeometry,
    CoordinateSpace,
    PageViewport,
    Rectangle,
    TextRun,
)


def _check_ready(canvas: CanvasGeometry, viewport: PageViewport) -> None:
    if (
        canvas.pixel_width <= 0
        or canvas.pixel_height <= 0
        or canvas.display_width <= 0
        or canvas.display_height <= 0
    ):
        raise RenderNotReadyError(
            f"Canvas not rendered yet ({canvas.pixel_width}x{canvas.pixel_height} px, "
            f"displayed {canvas.display_width}x{canvas.display_height})"
        )
    if viewport.zoom <= 0 or viewport.width <= 0 or viewport.height <= 0:
        raise RenderNotReadyError(
            f"Viewport for page {viewport.page_number} has no size "
            f"(zoom={viewport.zoom})"
        )


def _check_page(viewport: PageViewport, page_number: int) -> None:
    if viewport.page_number != page_number:
        raise ViewportMismatchError(
            f"Rectangle belongs to page {page_number} but viewport "
            f"describes page {viewport.page_number}"
        )


def _require_space(rect: Rectangle, space: CoordinateSpace) -> None:
    if rect.space is not space:
        raise CoordinateSpaceError(
            f"Expected a {space.value} rectangle, got {rect.space.value}"
        )


def to_pdf_space(
    rect: Rectangle,
    canvas: CanvasGeometry,
    viewport: PageViewport,
    page_number: int,
) -> Rectangle:
    """Map a display-pixel rectangle on *page_number* into PDF space.

    Raises:
        RenderNotReadyError: If the canvas or viewport has zero size.
        ViewportMismatchError: If *viewport* belongs to another page.
        CoordinateSpaceError: If *rect* is not in pixel space.
    """
    _require_space(rect, CoordinateSpace.PIXEL)
    _check_ready(canvas, viewport)
    _check_page(viewport, page_number)

    scale_x = canvas.pixel_width / canvas.display_width
    scale_y = canvas.pixel_height / canvas.display_height
    zoom = viewport.zoom

    return Rectangle(
        left=rect.left * scale_x / zoom,
        top=rect.top * scale_y / zoom,
        right=rect.right * scale_x / zoom,
        bottom=rect.bottom * scale_y / zoom,
        space=CoordinateSpace.PDF,
    )


def to_pixel_space(
    rect: Rectangle,
    canvas: CanvasGeometry,
    viewport: PageViewport,
    page_number: int,
) -> Rectangle:
    """Inverse of :func:`to_pdf_space`, used to redraw a stored selection."""
    _require_space(rect, CoordinateSpace.PDF)
    _check_ready(canvas, viewport)
    _check_page(viewport, page_number)

    scale_x = canvas.pixel_width / canvas.display_width
    scale_y = canvas.pixel_height / canvas.display_height
    zoom = viewport.zoom

    return Rectangle(
        left=rect.left * zoom / scale_x,
        top=rect.top * zoom / scale_y,
        right=rect.right * zoom / scale_x,
        bottom=rect.bottom * zoom / scale_y,
        space=CoordinateSpace.PIXEL,
    )


def viewport_to_pdf_space(rect: Rectangle, viewport: PageViewport) -> Rectangle:
    """Map a viewport (backing-pixel) rectangle into PDF space."""
    _require_space(rect, CoordinateSpace.VIEWPORT)
    if viewport.zoom <= 0:
        raise RenderNotReadyError(f"Viewport zoom must be positive, got {viewport.zoom}")
    zoom = viewport.zoom
    return Rectangle(
        left=rect.left / zoom,
        top=rect.top / zoom,
        right=rect.right / zoom,
        bottom=rect.bottom / zoom,
        space=CoordinateSpace.PDF,
    )


def viewport_y(origin_y: float, viewport_height: float, zoom: float) -> float:
    """Flip an unscaled PDF user-space Y into viewport space at *zoom*."""
    return viewport_height - origin_y * zoom


def run_box(run: TextRun, page_height: float | None = None) -> Rectangle:
    """Return a run's bounding box in the same top-down frame as a query.

    With *page_height* the run's Y-up baseline is flipped first; without it
    the origin is taken to be top-down already. The box spans from the
    baseline up by the run height.
    """
    y = run.origin_y if page_height is None else page_height - run.origin_y
    return Rectangle(
        left=run.origin_x,
        top=y - run.height,
        right=run.origin_x + run.width,
        bottom=y,
        space=CoordinateSpace.PDF,
    )


def to_user_space(rect: Rectangle, page_height: float) -> tuple[float, float, float, float]:
    """Flip all four edges of a PDF-space rectangle into a Y-up bbox.

    Returns ``(x0, y0, x1, y1)`` with ``y0 <= y1``, the convention of PDF
    rectangle arrays.
    """
    _require_space(rect, CoordinateSpace.PDF)
    return (rect.left, page_height - rect.bottom, rect.right, page_height - rect.top)


def from_user_space(
    bbox: tuple[float, float, float, float], page_height: float
) -> Rectangle:
    """Inverse of :func:`to_user_space`."""
    x0, y0, x1, y1 = bbox
    return Rectangle(
        left=x0,
        top=page_height - y1,
        right=x1,
        bottom=page_height - y0,
        space=CoordinateSpace.PDF,
    )
