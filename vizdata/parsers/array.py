"""
Parser for two-dimensional in-memory arrays of raw values.

Input is a list of rows (or, with ``switch_rows_and_columns``, a list of
columns), typically strings produced by a text reader. Splitting text
into cells is the caller's job; this parser only windows, orients and
types the values.

Steps:
1. Apply the ``ParserOptions`` window (start/end row and column,
   inclusive bounds).
2. Orient the data into columns.
3. Take the first row as headers when ``first_row_as_names`` is set.
4. Convert every string cell with ``DataConverter.as_guessed_type``.
   Empty strings become absent cells. Cells of an ``id`` column are kept
   as text since they become row identifiers.
5. Reject duplicate non-empty headers with ``parseError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vizdata.config import ParserOptions, coerce_options
from vizdata.converter import DataConverter
from vizdata.events import EventType, ParserEvent
from vizdata.exceptions import ParsingError
from vizdata.parsers.base import DataParser
from vizdata.table import ID_COLUMN, CellType, DataTable, unique_key

logger = logging.getLogger(__name__)


def _window(items: Sequence[Any], start: int, end: int | None) -> list[Any]:
    stop = None if end is None else end + 1
    return list(items[start:stop])


class ArrayParser(DataParser):
    """Parser for lists of rows of raw values."""

    def __init__(
        self,
        options: ParserOptions | Mapping[str, Any] | None = None,
        converter: DataConverter | None = None,
    ) -> None:
        super().__init__()
        self.options = coerce_options(options, ParserOptions)
        self.converter = converter or DataConverter()
        self.columns: list[list[CellType]] = []
        self.headers: list[str] = []

    def parse(self, data: Sequence[Sequence[Any]]) -> None:
        """Parse *data* into typed columns.

        Emits ``parse`` first, then ``afterParse`` with the columns and
        headers, or ``parseError`` when *data* is not two-dimensional.
        """
        self.emit(ParserEvent(type=EventType.PARSE))
        try:
            columns, headers = self._parse(data)
        except ParsingError as exc:
            logger.warning("Array parse failed: %s", exc)
            self.emit(ParserEvent(type=EventType.PARSE_ERROR, error=str(exc)))
            return

        self.columns, self.headers = columns, headers
        logger.info(
            "Parsed %d column(s) x %d row(s)",
            len(columns), len(columns[0]) if columns else 0,
        )
        self.emit(ParserEvent(
            type=EventType.AFTER_PARSE,
            columns=[list(c) for c in columns],
            headers=list(headers),
        ))

    def _parse(self, data: Sequence[Sequence[Any]]) -> tuple[list[list[CellType]], list[str]]:
        opts = self.options
        if isinstance(data, (str, bytes)) or not isinstance(data, Sequence):
            raise ParsingError(f"Expected a list of rows, got {type(data).__name__}")
        for i, line in enumerate(data):
            if isinstance(line, (str, bytes)) or not isinstance(line, Sequence):
                raise ParsingError(
                    f"Item {i} is {type(line).__name__}, expected a list of cells"
                )

        if opts.switch_rows_and_columns:
            # Input holds columns: the row window selects cells, the column window lines.
            lines = _window(data, opts.start_column, opts.end_column)
            raw_columns = [_window(line, opts.start_row, opts.end_row) for line in lines]
        else:
            rows = [
                _window(line, opts.start_column, opts.end_column)
                for line in _window(data, opts.start_row, opts.end_row)
            ]
            width = max((len(row) for row in rows), default=0)
            raw_columns = [
                [row[j] if j < len(row) else None for row in rows]
                for j in range(width)
            ]

        height = max((len(column) for column in raw_columns), default=0)
        raw_columns = [column + [None] * (height - len(column)) for column in raw_columns]

        headers: list[str] = []
        if opts.first_row_as_names:
            headers = [
                self.converter.as_string(column[0]) if column else ""
                for column in raw_columns
            ]
            raw_columns = [column[1:] for column in raw_columns]

        named = [h for h in headers if h]
        if len(named) != len(set(named)):
            duplicated = sorted({h for h in named if named.count(h) > 1})
            raise ParsingError(f"Duplicate column headers: {duplicated}")

        columns = [
            [self._convert(cell, keep_text=(j < len(headers) and headers[j] == ID_COLUMN))
             for cell in column]
            for j, column in enumerate(raw_columns)
        ]
        return columns, headers

    def _convert(self, cell: Any, keep_text: bool = False) -> CellType:
        if isinstance(cell, str):
            if not cell.strip():
                return None
            # id cells become row ids verbatim
            return cell if keep_text else self.converter.as_guessed_type(cell)
        return cell

    def get_table(self) -> DataTable:
        """Table of the last successful ``parse()``."""
        headers = [h or unique_key() for h in self.headers]
        return DataParser.get_table_from_columns(self.columns, headers)

    def to_json(self) -> dict[str, Any]:
        return {
            "classTag": "ArrayParser",
            "options": self.options.model_dump(mode="json"),
        }
