"""Core data models for the PDF pattern renamer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pdf_pattern_renamer.exceptions import CoordinateSpaceError


class CoordinateSpace(Enum):
    """Coordinate frame a rectangle is expressed in.

    All three frames have a top-left origin with Y growing downward. PDF
    user space proper (bottom-left origin, Y up) only appears in
    ``TextRun`` origins.
    """

    PIXEL = "pixel"  # on-screen display pixels
    VIEWPORT = "viewport"  # rendered canvas pixels at a zoom level
    PDF = "pdf"  # unscaled page points


class SelectionState(Enum):
    """States of the pointer-drag selection gesture."""

    IDLE = "idle"
    DRAGGING = "dragging"
    FINALIZED = "finalized"
    SAVED = "saved"


@dataclass(frozen=True)
class TextRun:
    """One positioned glyph run as reported by the decoder.

    ``origin_x``/``origin_y`` are the baseline origin in PDF user space
    (Y up), multiplied by the scale the runs were requested at.
    """

    text: str
    origin_x: float
    origin_y: float
    width: float
    height: float


@dataclass(frozen=True)
class Rectangle:
    """An axis-aligned rectangle in an explicitly tracked coordinate space.

    Edges are normalized on construction so that ``left <= right`` and
    ``top <= bottom``; drag gestures may start at any corner.
    """

    left: float
    top: float
    right: float
    bottom: float
    space: CoordinateSpace

    def __post_init__(self) -> None:
        if self.left > self.right:
            left, right = self.right, self.left
            object.__setattr__(self, "left", left)
            object.__setattr__(self, "right", right)
        if self.top > self.bottom:
            top, bottom = self.bottom, self.top
            object.__setattr__(self, "top", top)
            object.__setattr__(self, "bottom", bottom)

    @classmethod
    def from_xywh(
        cls, x: float, y: float, width: float, height: float, space: CoordinateSpace
    ) -> Rectangle:
        return cls(left=x, top=y, right=x + width, bottom=y + height, space=space)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def expanded(self, margin: float) -> Rectangle:
        """Return a copy grown by *margin* on all four sides."""
        return Rectangle(
            left=self.left - margin,
            top=self.top - margin,
            right=self.right + margin,
            bottom=self.bottom + margin,
            space=self.space,
        )

    def intersects(self, other: Rectangle) -> bool:
        """Non-strict overlap test: a shared edge counts as intersecting."""
        if other.space is not self.space:
            raise CoordinateSpaceError(
                f"Cannot compare {self.space.value} rectangle with "
                f"{other.space.value} rectangle"
            )
        return not (
            self.right < other.left
            or self.left > other.right
            or self.bottom < other.top
            or self.top > other.bottom
        )


@dataclass(frozen=True)
class CanvasGeometry:
    """Rendered canvas size in backing pixels and in display pixels."""

    pixel_width: float
    pixel_height: float
    display_width: float
    display_height: float


@dataclass(frozen=True)
class PageViewport:
    """Viewport dimensions of one page rendered at one zoom level."""

    page_number: int  # 1-based
    width: float
    height: float
    zoom: float


@dataclass(frozen=True)
class RasterSurface:
    """A rendered page image."""

    width: int
    height: int
    image: Any  # PIL.Image.Image


@dataclass
class Selection:
    """A finalized drag selection, not yet saved as a pattern."""

    page: int
    rect: Rectangle  # PDF space
    capture_zoom: float
    extracted_text: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class VisualPosition:
    """Stored PDF-space rectangle plus the zoom it was captured at."""

    page: int
    x: float
    y: float
    width: float
    height: float
    zoom: float = 1.0

    @property
    def rect(self) -> Rectangle:
        return Rectangle.from_xywh(
            self.x, self.y, self.width, self.height, CoordinateSpace.PDF
        )

    @classmethod
    def from_selection(cls, selection: Selection) -> VisualPosition:
        r = selection.rect
        return cls(
            page=selection.page,
            x=r.left,
            y=r.top,
            width=r.width,
            height=r.height,
            zoom=selection.capture_zoom,
        )


@dataclass
class VisualPattern:
    """Extracts the text found under a stored page rectangle."""

    name: str
    position: VisualPosition
    sample_text: str = ""
    description: str = ""
    created: str = field(default_factory=_now_iso)

    type_tag = "visual_position"

    def to_dict(self) -> dict:
        p = self.position
        return {
            "name": self.name,
            "type": self.type_tag,
            "position": {
                "page": p.page,
                "x": p.x,
                "y": p.y,
                "width": p.width,
                "height": p.height,
                "zoom": p.zoom,
            },
            "sampleText": self.sample_text,
            "description": self.description,
            "created": self.created,
        }


@dataclass
class RegexPattern:
    """Extracts the first capture group of a regex over a document's text."""

    name: str
    regex: str
    description: str = ""
    created: str = field(default_factory=_now_iso)

    type_tag = "text"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type_tag,
            "regex": self.regex,
            "description": self.description,
            "created": self.created,
        }


Pattern = Union[VisualPattern, RegexPattern]


def pattern_from_dict(data: dict) -> Pattern:
    """Build a pattern from its persisted form, ignoring unknown fields.

    Raises:
        ValueError: If the record is neither a visual nor a regex pattern.
    """
    name = str(data.get("name") or "")
    kind = data.get("type")
    created = str(data.get("created") or _now_iso())
    description = str(data.get("description") or "")

    if kind == VisualPattern.type_tag:
        pos = data.get("position") or {}
        try:
            position = VisualPosition(
                page=int(pos["page"]),
                x=float(pos["x"]),
                y=float(pos["y"]),
                width=float(pos["width"]),
                height=float(pos["height"]),
                zoom=float(pos.get("zoom") or 1.0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed position in pattern {name!r}") from exc
        return VisualPattern(
            name=name,
            position=position,
            sample_text=str(data.get("sampleText") or ""),
            description=description,
            created=created,
        )

    # Older collections stored regex patterns without a type tag.
    if kind in (RegexPattern.type_tag, None) and data.get("regex"):
        return RegexPattern(
            name=name,
            regex=str(data["regex"]),
            description=description,
            created=created,
        )

    raise ValueError(f"Unrecognised pattern record: {name!r} (type={kind!r})")


@dataclass
class NamedFile:
    """An open document handle plus its cached byte buffer.

    ``buffer`` set to ``None`` stands for a buffer that was released and
    must be re-read from ``path`` before decoding.
    """

    path: Path
    name: str
    basename: str
    buffer: bytes | None = None
    page_count: int = 0
    selected: bool = False
    text: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, buffer: bytes | None = None) -> NamedFile:
        p = Path(path)
        return cls(path=p, name=p.name, basename=p.stem, buffer=buffer)

    def owned_buffer(self) -> bytes | None:
        """Return an independent copy of the buffer for the decoder."""
        if self.buffer is None:
            return None
        return bytes(bytearray(self.buffer))


@dataclass
class RenamePlan:
    """The proposed new name for one file in a batch."""

    file: NamedFile
    new_name: str | None
    parts: list[str]
    skipped_reason: str | None = None
    errors: list[BatchFailure] = field(default_factory=list)

    @property
    def target_path(self) -> Path | None:
        if self.new_name is None:
            return None
        suffix = self.file.path.suffix or ".pdf"
        return self.file.path.with_name(f"{self.new_name}{suffix}")


@dataclass
class ItemRange:
    """A range of batch items for chunked processing."""

    start: int  # inclusive
    end: int  # exclusive


@dataclass
class BatchFailure:
    """One itemized failure from a batch run."""

    path: str
    stage: str  # "extract" or "rename"
    message: str


@dataclass
class BatchSummary:
    """Summary of a completed batch rename run."""

    total: int
    succeeded: int
    failed: int
    skipped: int
    aborted: int
    failures: list[BatchFailure]
    warnings: list[str]
    processing_time_seconds: float
