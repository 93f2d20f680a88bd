"""
Configuration models and YAML I/O for vizdata.

This module defines the Pydantic models that map 1:1 to a vizdata YAML
config file, plus helpers for loading and saving it.

Key models:
- ConverterOptions: date format and decimal separator for DataConverter.
- ParserOptions: row/column window and orientation flags for parsers.
- DataLayerConfig: Top-level config (converter + parser sections).

Example ``vizdata.yaml``::

    converter:
      date_format: dd/mm/YYYY
      decimal_point: ","
    parser:
      start_row: 1
      first_row_as_names: true
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, TypeVar

import yaml
from pydantic import BaseModel, Field, model_validator

from vizdata.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class ConverterOptions(BaseModel):
    """Options for ``DataConverter``."""

    date_format: str = Field(
        "",
        description=(
            "One of the registered date-format names (e.g. 'dd/mm/YYYY'), "
            "or empty to auto-detect from the first matching value"
        ),
    )
    decimal_point: Literal[".", ","] | None = Field(
        None, description="Decimal separator rewritten to '.' before parsing"
    )


class ParserOptions(BaseModel):
    """Shared options for all ``DataParser`` implementations.

    End bounds are inclusive; ``None`` means unbounded.
    """

    start_row: int = Field(0, ge=0)
    end_row: int | None = Field(None, ge=0)
    start_column: int = Field(0, ge=0)
    end_column: int | None = Field(None, ge=0)
    first_row_as_names: bool = True
    switch_rows_and_columns: bool = False

    @model_validator(mode="after")
    def _check_window(self) -> ParserOptions:
        """Validate that each end bound is not before its start bound."""
        if self.end_row is not None and self.end_row < self.start_row:
            raise ValueError(
                f"end_row ({self.end_row}) is before start_row ({self.start_row})"
            )
        if self.end_column is not None and self.end_column < self.start_column:
            raise ValueError(
                f"end_column ({self.end_column}) is before "
                f"start_column ({self.start_column})"
            )
        return self


class DataLayerConfig(BaseModel):
    """Top-level configuration for vizdata."""

    converter: ConverterOptions = Field(default_factory=ConverterOptions)
    parser: ParserOptions = Field(default_factory=ParserOptions)


def coerce_options(
    options: _ModelT | Mapping[str, Any] | None,
    model: type[_ModelT],
) -> _ModelT:
    """Accept a model instance, a plain mapping, or ``None`` (defaults)."""
    if options is None:
        return model()
    if isinstance(options, model):
        return options.model_copy(deep=True)
    return model.model_validate(dict(options))


def load_config(path: str | Path) -> DataLayerConfig:
    """Read converter and parser options from a vizdata YAML file.

    Sections and keys left out of the file keep their defaults, so a
    file holding only ``converter: {decimal_point: ","}`` is valid.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ConfigValidationError: If the file is not YAML, is empty, or its
            top level is not a mapping.
        pydantic.ValidationError: If an option value is out of range.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Config file is not valid YAML: {path}: {exc}") from exc
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    if not isinstance(raw, Mapping):
        raise ConfigValidationError(
            f"Config file must hold converter/parser sections, got {type(raw).__name__}: {path}"
        )
    config = DataLayerConfig.model_validate(dict(raw))
    logger.info(
        "Loaded config from %s (date_format=%r, decimal_point=%r)",
        path, config.converter.date_format, config.converter.decimal_point,
    )
    return config


def save_config(config: DataLayerConfig, path: str | Path) -> None:
    """Write the options that differ from their defaults to *path*.

    Both sections are always present, possibly empty, so the file shows
    where options go when edited by hand.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    sections = {
        "converter": config.converter.model_dump(mode="json", exclude_defaults=True),
        "parser": config.parser.model_dump(mode="json", exclude_defaults=True),
    }
    path.write_text(
        "# vizdata configuration\n\n"
        + yaml.safe_dump(sections, allow_unicode=True, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    logger.info("Saved config to %s", path)
