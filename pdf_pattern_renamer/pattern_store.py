"""Durable storage for named extraction patterns.

Patterns live in a single collection of a key-value store, written back as a
whole on every change. Names are not unique; lookups by name resolve to the
most recently created match.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Protocol

from pdf_pattern_renamer.exceptions import (
    EmptyNameError,
    EmptySelectionError,
    InvalidPatternError,
    PatternStoreError,
)
from pdf_pattern_renamer.models import (
    Pattern,
    RegexPattern,
    Selection,
    VisualPattern,
    VisualPosition,
    pattern_from_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_KEY = "pdf-renamer-patterns"


class KeyValueStore(Protocol):
    def get(self, key: str) -> list: ...

    def set(self, key: str, value: list) -> None: ...


class JsonFileStore:
    """Key-value store kept as one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise PatternStoreError(f"Cannot read store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PatternStoreError(f"Store {self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> list:
        value = self._read_all().get(key, [])
        return value if isinstance(value, list) else []

    def set(self, key: str, value: list) -> None:
        data = self._read_all()
        data[key] = value
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise PatternStoreError(f"Cannot write store {self.path}: {exc}") from exc


def compile_pattern_regex(regex: str) -> re.Pattern[str]:
    """Compile a stored regex the way replay uses it (case-insensitive)."""
    try:
        return re.compile(regex, re.IGNORECASE)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid regular expression {regex!r}: {exc}") from exc


class PatternStore:
    """Create, look up, delete, import and export patterns."""

    def __init__(
        self, store: KeyValueStore, collection_key: str = DEFAULT_COLLECTION_KEY
    ) -> None:
        self.store = store
        self.collection_key = collection_key

    def list(self) -> list[Pattern]:
        """Return every readable pattern, skipping malformed records."""
        patterns: list[Pattern] = []
        for i, record in enumerate(self.store.get(self.collection_key)):
            if not isinstance(record, dict):
                logger.warning("Skipping pattern record %d: not an object", i)
                continue
            try:
                patterns.append(pattern_from_dict(record))
            except ValueError as exc:
                logger.warning("Skipping pattern record %d: %s", i, exc)
        return patterns

    def _write(self, patterns: list[Pattern]) -> None:
        self.store.set(self.collection_key, [p.to_dict() for p in patterns])

    def save(
        self, selection: Selection, name: str, description: str | None = None
    ) -> VisualPattern:
        """Promote a selection into a persisted visual pattern.

        Raises:
            EmptyNameError: If *name* is blank.
            EmptySelectionError: If the selection extracted no text.
        """
        name = (name or "").strip()
        if not name:
            raise EmptyNameError("Please enter a pattern name before saving")
        text = (selection.extracted_text or "").strip()
        if not text:
            raise EmptySelectionError(
                "No text could be extracted. Try selecting a different area."
            )

        position = VisualPosition.from_selection(selection)
        if description is None:
            description = (
                f"Extracts text from page {position.page} at position "
                f"({position.x:.0f}, {position.y:.0f})"
            )
        pattern = VisualPattern(
            name=name, position=position, sample_text=text, description=description
        )
        self.append(pattern)
        logger.info("Saved visual pattern %r (page %d)", name, position.page)
        return pattern

    def add_regex(self, name: str, regex: str, description: str = "") -> RegexPattern:
        """Persist a regex pattern after validating it compiles."""
        name = (name or "").strip()
        if not name:
            raise EmptyNameError("Please enter a pattern name before saving")
        regex = (regex or "").strip()
        if not regex:
            raise InvalidPatternError("Please enter a regular expression")
        compile_pattern_regex(regex)

        pattern = RegexPattern(name=name, regex=regex, description=description.strip())
        self.append(pattern)
        logger.info("Saved regex pattern %r", name)
        return pattern

    def append(self, pattern: Pattern) -> None:
        patterns = self.list()
        patterns.append(pattern)
        self._write(patterns)

    def find(self, name: str) -> Pattern | None:
        """Return the most recently created pattern called *name*."""
        for pattern in reversed(self.list()):
            if pattern.name == name:
                return pattern
        return None

    def delete(self, index: int) -> Pattern:
        patterns = self.list()
        if index < 0 or index >= len(patterns):
            raise IndexError(f"No pattern at index {index}")
        removed = patterns.pop(index)
        self._write(patterns)
        logger.info("Deleted pattern %r", removed.name)
        return removed

    def delete_named(self, name: str) -> Pattern | None:
        """Delete the most recently created pattern called *name*."""
        patterns = self.list()
        for i in range(len(patterns) - 1, -1, -1):
            if patterns[i].name == name:
                return self.delete(i)
        return None

    def export_to(self, path: str | Path) -> int:
        """Write all patterns to *path* as a JSON array; return the count."""
        patterns = self.list()
        with open(path, "w", encoding="utf-8") as f:
            json.dump([p.to_dict() for p in patterns], f, indent=2, ensure_ascii=False)
        return len(patterns)

    def import_from(self, path: str | Path, replace: bool = False) -> int:
        """Load patterns from a JSON array file.

        With *replace* the collection is overwritten; otherwise imported
        patterns replace same-named ones and the rest are appended.

        Raises:
            InvalidPatternError: If the file is not a valid pattern array.
        """
        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, ValueError) as exc:
            raise InvalidPatternError(f"Cannot read pattern file {path}: {exc}") from exc
        if not isinstance(records, list):
            raise InvalidPatternError("Invalid pattern file format")

        imported: list[Pattern] = []
        for i, record in enumerate(records, 1):
            if not isinstance(record, dict):
                raise InvalidPatternError(f"Pattern {i} is not an object")
            try:
                pattern = pattern_from_dict(record)
            except ValueError as exc:
                raise InvalidPatternError(f"Pattern {i}: {exc}") from exc
            if not pattern.name:
                raise InvalidPatternError(f"Pattern {i} is missing a name")
            if isinstance(pattern, RegexPattern):
                compile_pattern_regex(pattern.regex)
            imported.append(pattern)

        if replace:
            merged = imported
        else:
            merged = self.list()
            for pattern in imported:
                # Replace the entry lookups resolve to: the last one with this name.
                idx = next(
                    (
                        j
                        for j in range(len(merged) - 1, -1, -1)
                        if merged[j].name == pattern.name
                    ),
                    None,
                )
                if idx is None:
                    merged.append(pattern)
                else:
                    merged[idx] = pattern

        self._write(merged)
        logger.info(
            "Imported %d pattern(s) from %s (%s)",
            len(imported),
            path,
            "replace" if replace else "merge",
        )
        return len(imported)


# Common regexes offered as suggestions when they match a document.
SUGGESTED_PATTERNS: list[tuple[str, str, str]] = [
    ("Invoice Number", r"invoice\s*#?\s*:?\s*([A-Z0-9-]+)", "Extracts invoice numbers"),
    ("Date (YYYY-MM-DD)", r"(\d{4}-\d{2}-\d{2})", "Extracts dates in YYYY-MM-DD format"),
    ("Date (MM/DD/YYYY)", r"(\d{1,2}/\d{1,2}/\d{4})", "Extracts dates in MM/DD/YYYY format"),
    ("Reference Number", r"ref(?:erence)?\s*#?\s*:?\s*([A-Z0-9-]+)", "Extracts reference numbers"),
    (
        "Document ID",
        r"(?:doc|document)\s*(?:id|number)?\s*#?\s*:?\s*([A-Z0-9-]+)",
        "Extracts document IDs",
    ),
    ("Order Number", r"order\s*#?\s*:?\s*([A-Z0-9-]+)", "Extracts order numbers"),
    ("Account Number", r"account\s*#?\s*:?\s*([A-Z0-9-]+)", "Extracts account numbers"),
    (
        "Email Address",
        r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
        "Extracts email addresses",
    ),
    (
        "Phone Number",
        r"(\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4})",
        "Extracts phone numbers",
    ),
    ("Currency Amount", r"\$([0-9,]+\.?[0-9]*)", "Extracts dollar amounts"),
]


def suggest_patterns(text: str, max_examples: int = 3) -> list[dict]:
    """Return the suggested patterns that match *text*.

    Each suggestion carries ``name``, ``regex``, ``description``, up to
    *max_examples* ``matches`` and ``total_matches``.
    """
    suggestions: list[dict] = []
    if not text:
        return suggestions
    for name, regex, description in SUGGESTED_PATTERNS:
        found = [m.group(0) for m in re.finditer(regex, text, re.IGNORECASE)]
        if found:
            suggestions.append(
                {
                    "name": name,
                    "regex": regex,
                    "description": description,
                    "matches": found[:max_examples],
                    "total_matches": len(found),
                }
            )
    return suggestions
