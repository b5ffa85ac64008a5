"""Name synthesizer: combine extracted parts into a safe file name."""

from __future__ import annotations

import re
from collections.abc import Sequence

DEFAULT_SEPARATOR = "_"
PLACEHOLDER_NAME = "unnamed"
MAX_NAME_LENGTH = 100

# Characters illegal in file names on at least one major platform.
_ILLEGAL_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE_RE = re.compile(r"\s+")


def _clean_separator(separator: str | None) -> str:
    sep = _ILLEGAL_RE.sub("", separator or "")
    sep = _WHITESPACE_RE.sub(" ", sep)
    return sep or DEFAULT_SEPARATOR


def _trim(name: str, sep: str) -> str:
    previous = None
    while name != previous:
        previous = name
        name = name.strip()
        while sep and name.startswith(sep):
            name = name[len(sep):]
        while sep and name.endswith(sep):
            name = name[: -len(sep)]
    return name


def sanitize(
    name: str,
    separator: str = DEFAULT_SEPARATOR,
    max_length: int = MAX_NAME_LENGTH,
) -> str:
    """Make *name* safe to use as a file name.

    Strips illegal characters, collapses whitespace and repeated separators,
    truncates to *max_length*, trims separators from both ends and falls
    back to ``"unnamed"``. Applying it to its own output changes nothing.
    """
    sep = _clean_separator(separator)
    cleaned = _ILLEGAL_RE.sub("", name or "")
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    if sep.strip():
        cleaned = re.sub(f"(?:{re.escape(sep)}){{2,}}", sep, cleaned)
    cleaned = _trim(cleaned[:max_length], sep)
    return cleaned or PLACEHOLDER_NAME


def synthesize(
    parts: Sequence[str],
    separator: str = DEFAULT_SEPARATOR,
    literal_suffix: str | None = None,
    max_length: int = MAX_NAME_LENGTH,
) -> str:
    """Join non-empty *parts* (plus an optional literal suffix) into a name.

    >>> synthesize(["Client A", "", "2024-01-01"], "_", "")
    'Client A_2024-01-01'
    >>> synthesize(["Bad/Name:Here"], "_")
    'BadNameHere'
    """
    sep = _clean_separator(separator)
    kept = [p for p in parts if p and p.strip()]
    if literal_suffix and literal_suffix.strip():
        kept.append(literal_suffix)
    return sanitize(sep.join(kept), sep, max_length)


def with_counter(
    base: str,
    counter: int,
    separator: str = DEFAULT_SEPARATOR,
    max_length: int = MAX_NAME_LENGTH,
) -> str:
    """Append ``<separator><counter>`` to *base*, still within *max_length*.

    >>> with_counter("ACME-2024", 2, "-")
    'ACME-2024-2'
    >>> len(with_counter("x" * 100, 12))
    100
    """
    sep = _clean_separator(separator)
    suffix = f"{sep}{counter}"
    room = max(max_length - len(suffix), 1)
    return sanitize(base[:room], sep, room) + suffix
