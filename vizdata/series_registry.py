"""
Series type registry for vizdata.

Loads series type YAML files from vizdata/series_types/ and provides
structured access via Pydantic models. Each series type defines:
- name: unique identifier (e.g., "ohlc")
- point_array_map: field names for positionally-encoded points
  (e.g., ``[open, high, low, close]``); empty for plain ``[x, y]`` series
- description: free text

New built-in types are added by dropping entries into a YAML file.
Rendering layers that define their own series types call
``register_series_type()`` at their initialization time.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Directory containing series type YAML files (sibling package)
_SERIES_TYPES_DIR = Path(__file__).parent / "series_types"

_REGISTRY: dict[str, SeriesType] = {}
_REGISTRY_LOCK = threading.Lock()


class SeriesType(BaseModel):
    """A series type definition loaded from YAML."""
    name: str
    point_array_map: list[str] = Field(default_factory=list)
    description: str = ""


def load_series_types_file(path: Path) -> list[SeriesType]:
    """Load all series types declared in a single YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return [SeriesType(**entry) for entry in raw.get("series_types", [])]


def load_all_series_types(series_types_dir: Path | None = None) -> list[SeriesType]:
    """Load every series type YAML file in a directory.

    Args:
        series_types_dir: Directory to scan for .yaml files. Defaults to
            the built-in series_types/ directory.

    Returns:
        Series types in file-name order, then declaration order.
    """
    series_types_dir = series_types_dir or _SERIES_TYPES_DIR
    series_types: list[SeriesType] = []
    for yaml_path in sorted(series_types_dir.glob("*.yaml")):
        try:
            loaded = load_series_types_file(yaml_path)
        except Exception as e:
            logger.warning("Failed to load series types from %s: %s", yaml_path, e)
            continue
        series_types.extend(loaded)
        logger.debug("Loaded %d series type(s) from %s", len(loaded), yaml_path)
    logger.info("Loaded %d series types", len(series_types))
    return series_types


def _get_registry() -> dict[str, SeriesType]:
    """Lazily populate the registry with the built-in series types."""
    with _REGISTRY_LOCK:
        if not _REGISTRY:
            for series_type in load_all_series_types():
                _REGISTRY.setdefault(series_type.name, series_type)
        return _REGISTRY


def register_series_type(name: str, point_array_map: list[str], description: str = "") -> bool:
    """Register a series type. The first registration of a name wins.

    Returns:
        ``True`` if registered, ``False`` if the name was already taken.
    """
    registry = _get_registry()
    with _REGISTRY_LOCK:
        if name in registry:
            logger.warning("Series type '%s' is already registered", name)
            return False
        registry[name] = SeriesType(
            name=name, point_array_map=list(point_array_map), description=description
        )
    return True


def get_series_type(name: str) -> SeriesType | None:
    series_type = _get_registry().get(name)
    return series_type.model_copy(deep=True) if series_type else None


def get_point_array_map(name: str | None) -> list[str]:
    """Point-array-map of a series type; empty when unknown or unmapped."""
    if not name:
        return []
    series_type = _get_registry().get(name)
    return list(series_type.point_array_map) if series_type else []
