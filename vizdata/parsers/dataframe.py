"""
DataFrame bridge for vizdata.

``PandasParser`` turns a ``pandas.DataFrame`` into table columns and
``table_to_dataframe`` goes the other way.

Cell normalization (DataFrame -> table):
- ``NaN``/``NaT``/``None``/``pd.NA`` become absent cells (``None``).
- numpy scalars become the equivalent Python scalars.
- ``datetime64`` values become ``pandas.Timestamp`` objects.
- with ``convert_strings=True``, string cells go through the
  converter's type guessing, as raw text from a reader would.

The DataFrame index is not carried over; pass a column named ``id`` to
supply row identifiers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd

from vizdata.config import ParserOptions, coerce_options
from vizdata.converter import DataConverter
from vizdata.events import EventType, ParserEvent
from vizdata.exceptions import ParsingError
from vizdata.parsers.base import DataParser
from vizdata.table import CellType, DataTable

logger = logging.getLogger(__name__)


def _normalize_cell(value: Any) -> CellType:
    if isinstance(value, DataTable):
        return value
    if value is None or (np.ndim(value) == 0 and pd.isna(value)):
        return None
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value)
    if isinstance(value, np.generic):
        return value.item()
    return value


class PandasParser(DataParser):
    """Parser for ``pandas.DataFrame`` input.

    Only the row/column window of ``ParserOptions`` applies; headers
    always come from the DataFrame's column labels.
    """

    def __init__(
        self,
        options: ParserOptions | Mapping[str, Any] | None = None,
        converter: DataConverter | None = None,
        convert_strings: bool = False,
    ) -> None:
        super().__init__()
        self.options = coerce_options(options, ParserOptions)
        self.converter = converter or DataConverter()
        self.convert_strings = convert_strings
        self.columns: list[list[CellType]] = []
        self.headers: list[str] = []

    def parse(self, dataframe: pd.DataFrame) -> None:
        """Parse *dataframe*; emits ``parse`` then ``afterParse`` or ``parseError``."""
        self.emit(ParserEvent(type=EventType.PARSE))
        try:
            columns, headers = self._parse(dataframe)
        except ParsingError as exc:
            logger.warning("DataFrame parse failed: %s", exc)
            self.emit(ParserEvent(type=EventType.PARSE_ERROR, error=str(exc)))
            return

        self.columns, self.headers = columns, headers
        logger.info("Parsed DataFrame: %d column(s)", len(columns))
        self.emit(ParserEvent(
            type=EventType.AFTER_PARSE,
            columns=[list(c) for c in columns],
            headers=list(headers),
        ))

    def _parse(self, dataframe: pd.DataFrame) -> tuple[list[list[CellType]], list[str]]:
        if not isinstance(dataframe, pd.DataFrame):
            raise ParsingError(f"Expected a DataFrame, got {type(dataframe).__name__}")
        if not dataframe.columns.is_unique:
            duplicated = sorted({str(c) for c in dataframe.columns[dataframe.columns.duplicated()]})
            raise ParsingError(f"Duplicate column labels: {duplicated}")

        opts = self.options
        row_stop = None if opts.end_row is None else opts.end_row + 1
        col_stop = None if opts.end_column is None else opts.end_column + 1
        window = dataframe.iloc[opts.start_row:row_stop, opts.start_column:col_stop]

        headers = [str(label) for label in window.columns]
        columns: list[list[CellType]] = []
        for label in window.columns:
            column = [_normalize_cell(v) for v in window[label].tolist()]
            if self.convert_strings:
                column = [
                    self.converter.as_guessed_type(v) if isinstance(v, str) and v.strip()
                    else (None if isinstance(v, str) else v)
                    for v in column
                ]
            columns.append(column)
        return columns, headers

    def get_table(self) -> DataTable:
        return DataParser.get_table_from_columns(self.columns, self.headers)

    def to_json(self) -> dict[str, Any]:
        return {
            "classTag": "PandasParser",
            "options": self.options.model_dump(mode="json"),
            "convert_strings": self.convert_strings,
        }


def table_to_dataframe(table: DataTable, include_id_column: bool = False) -> pd.DataFrame:
    """Export a table to a DataFrame with columns in presentation order.

    Absent cells become ``None`` (shown as ``NaN``/``NaT`` by pandas for
    numeric and datetime columns).
    """
    export = DataParser.get_columns_for_export(table, include_id_column=include_id_column)
    return pd.DataFrame(
        {name: pd.Series(values, dtype=object) for name, values in
         zip(export.column_names, export.column_values)},
        columns=export.column_names,
    ).infer_objects()
