"""Tab-scoped collections of open PDF files."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from pdf_pattern_renamer.file_io import read_file
from pdf_pattern_renamer.models import NamedFile
from pdf_pattern_renamer.pdf_adapter import PdfDecoder

logger = logging.getLogger(__name__)


class FileCollection:
    """An ordered set of open files belonging to one tab (files, bulk, split).

    Every tab uses its own instance; the tab identifier only labels log
    output.
    """

    def __init__(
        self,
        tab_id: str,
        decoder: PdfDecoder | None = None,
        reader: Callable[[Path], bytes] = read_file,
    ) -> None:
        self.tab_id = tab_id
        self.decoder = decoder or PdfDecoder()
        self.reader = reader
        self._files: list[NamedFile] = []

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[NamedFile]:
        return iter(list(self._files))

    @property
    def files(self) -> list[NamedFile]:
        return list(self._files)

    def get(self, path: str | Path) -> NamedFile | None:
        key = Path(path)
        return next((f for f in self._files if f.path == key), None)

    def add(self, path: str | Path) -> NamedFile:
        """Open *path*, cache its bytes and page count, and add it.

        Adding a path already in the collection returns the existing entry.

        Raises:
            FileNotFoundError: If the file does not exist.
            DecodeFailure: If the file is not a readable PDF.
        """
        existing = self.get(path)
        if existing is not None:
            return existing

        named = NamedFile.from_path(path, buffer=self.reader(Path(path)))
        with self.decoder.decode(named.owned_buffer()) as doc:
            named.page_count = doc.page_count
        self._files.append(named)
        logger.info(
            "[%s] Added %s (%d page(s))", self.tab_id, named.name, named.page_count
        )
        return named

    def add_many(self, paths: Iterable[str | Path]) -> tuple[list[NamedFile], list[str]]:
        """Add several files; return the added files and per-file errors."""
        added: list[NamedFile] = []
        errors: list[str] = []
        for path in paths:
            try:
                added.append(self.add(path))
            except Exception as exc:
                logger.warning("[%s] Could not open %s: %s", self.tab_id, path, exc)
                errors.append(f"{path}: {exc}")
        return added, errors

    def remove(self, path: str | Path) -> bool:
        named = self.get(path)
        if named is None:
            return False
        self._files.remove(named)
        return True

    def select(self, path: str | Path, selected: bool = True) -> None:
        named = self.get(path)
        if named is None:
            raise KeyError(f"{path} is not in the {self.tab_id} collection")
        named.selected = selected

    def select_all(self, selected: bool = True) -> None:
        for named in self._files:
            named.selected = selected

    def selected_files(self) -> list[NamedFile]:
        return [f for f in self._files if f.selected]

    def clear(self) -> None:
        self._files.clear()

    def replace_path(self, named: NamedFile, new_path: Path) -> None:
        """Point an entry at its new location after a rename."""
        named.path = new_path
        named.name = new_path.name
        named.basename = new_path.stem
