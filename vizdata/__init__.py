"""
vizdata: tabular data layer for charting libraries.

Public API surface:

- ``load_table(data, config=None)`` -- **recommended entry point**.
  Polymorphic: accepts a ``pandas.DataFrame`` or a 2-D list of raw
  values and returns a ``DataTable``.

- ``from_class_json(json)`` -- rebuilds a ``DataTable`` or a registered
  ``DataStore`` from its class-JSON.

- ``DataConverter`` / ``DataTable`` / ``DataTableRow`` / ``DataParser`` /
  ``DataStore`` -- the building blocks, for callers that need events,
  metadata or a custom parser or store.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from vizdata.config import (
    ConverterOptions,
    DataLayerConfig,
    ParserOptions,
    load_config,
    save_config,
)
from vizdata.converter import DataConverter, GuessedType
from vizdata.events import EventType, ParserEvent, StoreEvent
from vizdata.exceptions import ParsingError
from vizdata.parsers.array import ArrayParser
from vizdata.parsers.base import ColumnExport, DataParser
from vizdata.parsers.dataframe import PandasParser, table_to_dataframe
from vizdata.stores import DataStore, PandasDataStore, from_class_json
from vizdata.table import DataTable, DataTableRow, PresentationState

__all__ = [
    "load_table",
    "from_class_json",
    "ArrayParser",
    "ColumnExport",
    "ConverterOptions",
    "DataConverter",
    "DataLayerConfig",
    "DataParser",
    "DataStore",
    "DataTable",
    "DataTableRow",
    "EventType",
    "GuessedType",
    "PandasDataStore",
    "PandasParser",
    "ParserEvent",
    "ParserOptions",
    "PresentationState",
    "StoreEvent",
    "load_config",
    "save_config",
    "table_to_dataframe",
]

logger = logging.getLogger(__name__)


def load_table(
    data: pd.DataFrame | Sequence[Sequence[Any]],
    config: DataLayerConfig | str | Path | None = None,
) -> DataTable:
    """Single entry point: build a ``DataTable`` from in-memory data.

    Polymorphic behaviour based on the type of *data*:

    - **DataFrame**: loaded through a ``PandasDataStore``; column labels
      become headers and the parser window applies.

    - **2-D list of raw values**: parsed by ``ArrayParser``; string cells
      are typed by the converter (numbers, dates, strings).

    Args:
        data: A ``pandas.DataFrame`` or a list of rows.
        config: A ``DataLayerConfig``, a path to a vizdata YAML config,
            or ``None`` for defaults.

    Returns:
        The parsed table.

    Raises:
        ParsingError: If the parser rejected *data*.

    Examples::

        table = vizdata.load_table([["x", "y"], ["1", "2"], ["3", "4"]])
        table.get_column("y")   # [2.0, 4.0]

        table = vizdata.load_table(df, config="vizdata.yaml")
    """
    if config is None:
        config = DataLayerConfig()
    elif not isinstance(config, DataLayerConfig):
        config = load_config(config)

    converter = DataConverter(config.converter)

    if isinstance(data, pd.DataFrame):
        logger.info("load_table() -- DataFrame with shape %s", data.shape)
        store = PandasDataStore(
            dataframe=data, converter=converter, parser_options=config.parser
        )
        errors: list[str] = []
        store.on(EventType.LOAD_ERROR, lambda event: errors.append(event.error))
        store.load()
        if errors:
            raise ParsingError(errors[0])
        return store.table

    logger.info("load_table() -- %s", type(data).__name__)
    parser = ArrayParser(options=config.parser, converter=converter)
    parse_errors: list[str] = []
    parser.on(EventType.PARSE_ERROR, lambda event: parse_errors.append(event.error))
    parser.parse(data)
    if parse_errors:
        raise ParsingError(parse_errors[0])
    return parser.get_table()
