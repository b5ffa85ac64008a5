"""Configuration for the PDF pattern renamer."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "PDF_RENAMER_"


def default_store_path() -> Path:
    """Location of the pattern store, ``~/.pdf-renamer/patterns.json``."""
    return Path.home() / ".pdf-renamer" / "patterns.json"


@dataclass
class RenamerConfig:
    """Configuration for extraction, naming and batch processing."""

    tolerance: float = 5.0
    separator: str = "_"
    chunk_size: int = 25
    min_selection_size: float = 10.0
    full_text_pages: int = 3
    max_name_length: int = 100
    store_path: Path = field(default_factory=default_store_path)
    collection_key: str = "pdf-renamer-patterns"
    verbose: bool = False


_ENV_FIELDS = {
    "STORE": ("store_path", Path),
    "TOLERANCE": ("tolerance", float),
    "SEPARATOR": ("separator", str),
    "CHUNK_SIZE": ("chunk_size", int),
}


def load_config(**overrides) -> RenamerConfig:
    """Build a config from defaults, ``PDF_RENAMER_*`` variables and overrides.

    Overrides whose value is ``None`` are ignored so CLI options that were
    not given fall through to the environment.

    Raises:
        ValueError: If an environment value or override is invalid.
    """
    values: dict = {}
    for suffix, (name, cast) in _ENV_FIELDS.items():
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw:
            try:
                values[name] = cast(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid {ENV_PREFIX}{suffix}={raw!r}") from exc

    known = {f.name for f in fields(RenamerConfig)}
    for name, value in overrides.items():
        if name not in known:
            raise ValueError(f"Unknown config option: {name}")
        if value is not None:
            values[name] = value

    config = replace(RenamerConfig(), **values)
    if config.chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {config.chunk_size}")
    if config.tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {config.tolerance}")
    config.store_path = Path(config.store_path).expanduser()
    logger.debug("Loaded config: %s", config)
    return config
