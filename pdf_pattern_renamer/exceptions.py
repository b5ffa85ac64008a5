"""Exception classes for the PDF pattern renamer."""

from __future__ import annotations


class RenamerError(Exception):
    """Base exception for renamer errors."""
    pass


class RenderNotReadyError(RenamerError):
    """Raised when a canvas or viewport has no size yet; retry after render."""
    pass


class ViewportMismatchError(RenamerError):
    """Raised when a rectangle's page does not match the viewport's page."""
    pass


class CoordinateSpaceError(RenamerError):
    """Raised when rectangles from different coordinate spaces are mixed."""
    pass


class PageOutOfRangeError(RenamerError):
    """Raised when a pattern references a page the document does not have."""

    def __init__(self, page: int, page_count: int) -> None:
        super().__init__(
            f"Page {page} requested but document has {page_count} page(s)"
        )
        self.page = page
        self.page_count = page_count


class EmptySelectionError(RenamerError):
    """Raised when saving a selection that extracted no text."""
    pass


class EmptyNameError(RenamerError):
    """Raised when a pattern name is blank."""
    pass


class InvalidPatternError(RenamerError):
    """Raised when a regex pattern does not compile or a record is malformed."""
    pass


class DecodeFailure(RenamerError):
    """Raised when a PDF buffer cannot be decoded."""
    pass


class BufferDetachedError(RenamerError):
    """Raised when the decoder is handed a released or empty buffer."""
    pass


class PatternStoreError(RenamerError):
    """Raised when the persistent pattern collection cannot be read or written."""
    pass


class FileOperationError(RenamerError):
    """Base class for file rename failures."""
    pass


class DestinationExistsError(FileOperationError):
    """Raised when the rename target already exists."""
    pass


class RenamePermissionError(FileOperationError):
    """Raised when the OS denies the rename, copy or delete."""
    pass
