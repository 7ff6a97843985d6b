"""YAML loading for static heuristic tables."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from dua_search.core.exceptions import CorpusLoadError


def load_yaml_table(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed top-level mapping

    Raises:
        CorpusLoadError: If the file is missing, invalid YAML, or not a mapping
    """
    if not path.exists():
        raise CorpusLoadError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CorpusLoadError(f"Invalid YAML in config {path}: {e}") from e

    if not isinstance(data, dict):
        raise CorpusLoadError(f"Config {path} must contain a mapping at top level")
    return data


def load_phrase_list(data: dict[str, Any], key: str) -> tuple[str, ...]:
    """Read a list of phrases as lowercase strings.

    YAML parses bare words like "yes" as booleans, so every entry is coerced
    through str() before lowercasing.
    """
    raw = data.get(key) or []
    if not isinstance(raw, list):
        raise CorpusLoadError(f"'{key}' must be a list")
    return tuple(str(item).lower() for item in raw)
