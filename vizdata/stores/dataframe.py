"""
DataFrame-backed store.

``PandasDataStore`` wraps a ``pandas.DataFrame`` source. ``load()``
parses it with ``PandasParser``, swaps in the resulting table and
records the column order in the store metadata.

Event order for one ``load()`` call:
    load -> afterLoad    (table fully built)
    load -> loadError    (no source, or the parser rejected it)

Registered under the name ``"Pandas"`` when this module is imported.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import pandas as pd

from vizdata.config import ParserOptions, coerce_options
from vizdata.converter import DataConverter
from vizdata.events import EventType, ParserEvent, StoreEvent
from vizdata.exceptions import TableStructureError
from vizdata.parsers.dataframe import PandasParser
from vizdata.stores.base import DataStore, StoreMetadata
from vizdata.table import DataTable

logger = logging.getLogger(__name__)


class PandasDataStore(DataStore):
    """Store loading its table from a ``pandas.DataFrame``.

    Args:
        dataframe: Source data; ``load()`` fails without one.
        table: Initial table, replaced by a successful ``load()``.
        metadata: Initial column metadata.
        converter: Converter handed to the parser.
        parser_options: Window options handed to the parser.
        convert_strings: Run string cells through type guessing.
    """

    def __init__(
        self,
        dataframe: pd.DataFrame | None = None,
        table: DataTable | None = None,
        metadata: StoreMetadata | Mapping[str, Any] | None = None,
        converter: DataConverter | None = None,
        parser_options: ParserOptions | Mapping[str, Any] | None = None,
        convert_strings: bool = False,
    ) -> None:
        super().__init__(table=table, metadata=metadata)
        self.dataframe = dataframe
        self.converter = converter or DataConverter()
        self.parser_options = coerce_options(parser_options, ParserOptions)
        self.convert_strings = convert_strings

    def load(self) -> None:
        self.emit(StoreEvent(type=EventType.LOAD, table=self.table))

        if self.dataframe is None:
            self._fail("No DataFrame to load")
            return

        parser = PandasParser(
            options=self.parser_options,
            converter=self.converter,
            convert_strings=self.convert_strings,
        )
        errors: list[str] = []

        def on_parse_error(event: ParserEvent) -> None:
            errors.append(event.error or "parse error")

        parser.on(EventType.PARSE_ERROR, on_parse_error)
        parser.parse(self.dataframe)
        if errors:
            self._fail(errors[0])
            return

        try:
            table = parser.get_table()
        except TableStructureError as exc:
            self._fail(str(exc))
            return

        self.table = table
        self.set_column_order(parser.headers)
        logger.info(
            "Loaded %d row(s) x %d column(s) from DataFrame",
            table.get_row_count(), len(parser.headers),
        )
        self.emit(StoreEvent(type=EventType.AFTER_LOAD, table=self.table))

    def _fail(self, error: str) -> None:
        logger.warning("Load failed: %s", error)
        self.emit(StoreEvent(type=EventType.LOAD_ERROR, table=self.table, error=error))

    def to_dataframe(self, include_id_column: bool = False) -> pd.DataFrame:
        """Export the current table, columns in the store's metadata order."""
        export = self.get_columns_for_export(include_id_column=include_id_column)
        return pd.DataFrame(
            {name: pd.Series(values, dtype=object) for name, values in
             zip(export.column_names, export.column_values)},
            columns=export.column_names,
        ).infer_objects()


DataStore.add_store(PandasDataStore)
