"""
Row-oriented tabular model for vizdata.

A ``DataTable`` is an ordered sequence of ``DataTableRow`` objects plus
a ``PresentationState`` holding the display order of columns.

Cell values are one of: ``str``, ``int``/``float``, ``bool``,
``datetime`` (``pandas.Timestamp`` included), a nested ``DataTable``,
or ``None``. ``None`` marks an *absent* cell and is preserved through
every conversion, so sparse columns keep their gaps at the same row
positions.

Rows are identified by a string id that is unique within a table; an
id is generated when the caller does not supply one. Inserting a row
whose id is already present raises ``DuplicateRowError``.

Class-JSON wire shape::

    {
        "classTag": "Table",
        "rows": [{"classTag": "TableRow", "id": "r1", "cells": {"a": 1}}],
        "presentationState": {"classTag": "PresentationState",
                              "columnOrder": ["a"]}
    }
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Union

import pandas as pd

from vizdata.exceptions import (
    ColumnLengthError,
    DuplicateRowError,
    SerializationError,
    TableStructureError,
)

logger = logging.getLogger(__name__)

CellType = Union[str, int, float, bool, datetime, "DataTable", None]

ID_COLUMN = "id"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def unique_key() -> str:
    """Generate an identifier for rows and unnamed columns."""
    return f"vizdata-{uuid.uuid4().hex}"


# ---------------------------------------------------------------------------
# Cell (de)serialization
# ---------------------------------------------------------------------------

def _cell_to_json(value: CellType) -> Any:
    if isinstance(value, DataTable):
        return value.to_json()
    if value is pd.NaT:
        return {"classTag": "Date", "timestamp": None}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        timestamp = (value - _EPOCH) / timedelta(milliseconds=1)
        return {"classTag": "Date", "timestamp": timestamp}
    return value


def _cell_from_json(value: Any) -> CellType:
    if isinstance(value, dict):
        tag = value.get("classTag")
        if tag == "Table":
            return DataTable.from_json(value)
        if tag == "Date":
            if value.get("timestamp") is None:
                return pd.NaT
            try:
                return _EPOCH + timedelta(milliseconds=float(value["timestamp"]))
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                raise SerializationError(f"Malformed Date cell: {value!r}") from exc
        raise SerializationError(f"Unsupported cell object: {value!r}")
    return value


# ---------------------------------------------------------------------------
# DataTableRow
# ---------------------------------------------------------------------------

class DataTableRow:
    """One row: an identifier plus a mapping of column name to cell value."""

    def __init__(
        self,
        cells: Mapping[str, CellType] | None = None,
        id: str | None = None,
    ) -> None:
        cells = dict(cells or {})
        if id is None:
            cell_id = cells.pop(ID_COLUMN, None)
            id = str(cell_id) if cell_id is not None else None
        else:
            cells.pop(ID_COLUMN, None)
        self.id: str = id if id is not None else unique_key()
        self._cells: dict[str, CellType] = cells
        self._owner: DataTable | None = None

    def __repr__(self) -> str:
        return f"DataTableRow(id={self.id!r}, cells={self._cells!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataTableRow):
            return NotImplemented
        return self.id == other.id and self._cells == other._cells

    __hash__ = None  # type: ignore[assignment]

    def get_cell(self, name: str) -> CellType:
        """Return the cell value, or ``None`` when the cell is absent."""
        return self._cells.get(name)

    def has_cell(self, name: str) -> bool:
        return name in self._cells

    def get_cell_names(self) -> list[str]:
        return list(self._cells)

    def get_cell_count(self) -> int:
        return len(self._cells)

    def get_all_cells(self) -> dict[str, CellType]:
        """Return a shallow copy of the cell mapping."""
        return dict(self._cells)

    def insert_cell(self, name: str, value: CellType) -> bool:
        """Add a new cell. Returns ``False`` if it already exists or is ``id``."""
        if name == ID_COLUMN or name in self._cells:
            return False
        self._cells[name] = value
        return True

    def update_cell(self, name: str, value: CellType) -> bool:
        """Replace an existing cell. Returns ``False`` if it does not exist."""
        if name not in self._cells:
            return False
        self._cells[name] = value
        return True

    def delete_cell(self, name: str) -> bool:
        if name not in self._cells:
            return False
        del self._cells[name]
        return True

    def clone(self) -> DataTableRow:
        """Deep copy with the same id, not owned by any table."""
        return DataTableRow(copy.deepcopy(self._cells), id=self.id)

    def to_json(self) -> dict[str, Any]:
        return {
            "classTag": "TableRow",
            "id": self.id,
            "cells": {name: _cell_to_json(v) for name, v in self._cells.items()},
        }

    @classmethod
    def from_json(cls, json: Mapping[str, Any]) -> DataTableRow:
        if not isinstance(json, Mapping) or json.get("classTag") != "TableRow":
            raise SerializationError(f"Expected TableRow class-JSON, got {json!r}")
        cells = json.get("cells", {})
        if not isinstance(cells, Mapping):
            raise SerializationError(f"Row cells must be an object, got {cells!r}")
        row_id = json.get("id")
        return cls(
            {name: _cell_from_json(v) for name, v in cells.items()},
            id=str(row_id) if row_id is not None else None,
        )


# ---------------------------------------------------------------------------
# PresentationState
# ---------------------------------------------------------------------------

class PresentationState:
    """Display metadata per column; currently the export ``index``."""

    def __init__(self) -> None:
        self._columns: dict[str, dict[str, Any]] = {}

    def set_column_order(self, names: Sequence[str]) -> None:
        """Assign sequential indices ``0..n-1`` following *names*.

        Columns not named keep no index and sort after indexed ones.
        """
        self._columns = {name: {"index": i} for i, name in enumerate(names)}

    def get_column_index(self, name: str) -> int | None:
        return self._columns.get(name, {}).get("index")

    def get_column_order(self) -> list[str]:
        return sorted(self._columns, key=lambda n: self._columns[n]["index"])

    def get_column_sorter(self) -> Callable[[str, str], int]:
        """Return a ``cmp``-style comparator for column names.

        Indexed columns come first in index order; unindexed columns
        follow. Ties are broken by name so the order is total. Use with
        ``functools.cmp_to_key``.
        """
        def sort_key(name: str) -> tuple[int, int, str]:
            index = self.get_column_index(name)
            if index is None:
                return (1, 0, name)
            return (0, index, name)

        def sorter(a: str, b: str) -> int:
            key_a, key_b = sort_key(a), sort_key(b)
            return (key_a > key_b) - (key_a < key_b)

        return sorter

    def to_json(self) -> dict[str, Any]:
        return {"classTag": "PresentationState", "columnOrder": self.get_column_order()}

    @classmethod
    def from_json(cls, json: Mapping[str, Any] | None) -> PresentationState:
        state = cls()
        if json is None:
            return state
        if not isinstance(json, Mapping):
            raise SerializationError(f"Expected PresentationState class-JSON, got {json!r}")
        if json:
            order = json.get("columnOrder", [])
            if not isinstance(order, list):
                raise SerializationError(f"columnOrder must be a list, got {order!r}")
            state.set_column_order([str(name) for name in order])
        return state


# ---------------------------------------------------------------------------
# DataTable
# ---------------------------------------------------------------------------

class DataTable:
    """Ordered rows keyed by id, plus a presentation state."""

    def __init__(self, rows: Iterable[DataTableRow | Mapping[str, CellType]] = ()) -> None:
        self._rows: list[DataTableRow] = []
        self._rows_by_id: dict[str, DataTableRow] = {}
        self.presentation_state = PresentationState()
        for row in rows:
            self.insert_row(row)

    def __repr__(self) -> str:
        return f"DataTable(rows={len(self._rows)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataTable):
            return NotImplemented
        return self._rows == other._rows

    __hash__ = None  # type: ignore[assignment]

    # -- Rows ----------------------------------------------------------------

    def insert_row(self, row: DataTableRow | Mapping[str, CellType]) -> DataTableRow:
        """Append a row and return it.

        A mapping is wrapped in a new ``DataTableRow``.

        Raises:
            DuplicateRowError: If the row id is already present.
            TableStructureError: If the row belongs to another table.
        """
        if not isinstance(row, DataTableRow):
            row = DataTableRow(row)
        if row._owner is not None and row._owner is not self:
            raise TableStructureError(
                f"Row '{row.id}' belongs to another table; insert row.clone() instead"
            )
        if row.id in self._rows_by_id:
            raise DuplicateRowError(f"Row id '{row.id}' already exists in table")
        row._owner = self
        self._rows.append(row)
        self._rows_by_id[row.id] = row
        return row

    def get_row(self, row_id: str) -> DataTableRow | None:
        return self._rows_by_id.get(row_id)

    def has_row(self, row_id: str) -> bool:
        return row_id in self._rows_by_id

    def get_row_by_index(self, index: int) -> DataTableRow | None:
        if 0 <= index < len(self._rows):
            return self._rows[index]
        return None

    def delete_row(self, row_id: str) -> DataTableRow | None:
        """Remove a row by id and return it, or ``None`` if unknown."""
        row = self._rows_by_id.pop(row_id, None)
        if row is not None:
            self._rows.remove(row)
            row._owner = None
        return row

    def get_all_rows(self) -> list[DataTableRow]:
        return list(self._rows)

    def get_row_count(self) -> int:
        return len(self._rows)

    # -- Columns -------------------------------------------------------------

    def get_column(self, name: str) -> list[CellType]:
        """Values of one column, ``None`` where a row lacks the cell."""
        if name == ID_COLUMN:
            return [row.id for row in self._rows]
        return [row.get_cell(name) for row in self._rows]

    def to_columns(self) -> dict[str, list[CellType]]:
        """Convert to ``{column name: values}`` with the ``id`` column first.

        Columns appear in the order they are first seen while scanning
        rows. Every column has exactly ``get_row_count()`` entries;
        rows lacking a cell contribute ``None`` at their position.
        """
        columns: dict[str, list[CellType]] = {ID_COLUMN: []}
        for row_index, row in enumerate(self._rows):
            columns[ID_COLUMN].append(row.id)
            for name in row.get_cell_names():
                if name not in columns:
                    columns[name] = [None] * row_index
                columns[name].append(row.get_cell(name))
            for values in columns.values():
                if len(values) <= row_index:
                    values.append(None)
        return columns

    @classmethod
    def from_columns(
        cls,
        columns: Mapping[str, Sequence[CellType]],
    ) -> DataTable:
        """Build a table from ``{name: values}``; see ``DataParser.get_table_from_columns``."""
        return build_table_from_columns(list(columns.values()), list(columns))

    # -- Copy / JSON ---------------------------------------------------------

    def clone(self) -> DataTable:
        """Deep copy including the presentation state."""
        table = DataTable(row.clone() for row in self._rows)
        table.presentation_state.set_column_order(
            self.presentation_state.get_column_order()
        )
        return table

    def to_json(self) -> dict[str, Any]:
        return {
            "classTag": "Table",
            "rows": [row.to_json() for row in self._rows],
            "presentationState": self.presentation_state.to_json(),
        }

    @classmethod
    def from_json(cls, json: Mapping[str, Any]) -> DataTable:
        """Rebuild a table from its class-JSON.

        Raises:
            SerializationError: If the JSON is not a ``Table`` object.
            DuplicateRowError: If two rows share an id.
        """
        if not isinstance(json, Mapping) or json.get("classTag") != "Table":
            raise SerializationError(f"Expected Table class-JSON, got {json!r}")
        rows = json.get("rows", [])
        if not isinstance(rows, list):
            raise SerializationError(f"Table rows must be a list, got {rows!r}")
        table = cls(DataTableRow.from_json(row) for row in rows)
        table.presentation_state = PresentationState.from_json(
            json.get("presentationState")
        )
        return table


def build_table_from_columns(
    columns: Sequence[Sequence[CellType]] | None = None,
    headers: Sequence[str] | None = None,
) -> DataTable:
    """Build one row per index position across equal-length column arrays.

    Headers missing for trailing columns are generated. A column named
    ``id`` supplies row identifiers instead of a cell. The header order
    becomes the table's presentation order.

    Raises:
        TableStructureError: If two columns share a header.
        ColumnLengthError: If the column arrays differ in length.
        DuplicateRowError: If the ``id`` column repeats a value.
    """
    columns = list(columns or [])
    headers = list(headers or [])
    while len(headers) < len(columns):
        headers.append(unique_key())

    duplicated = sorted({h for h in headers if headers.count(h) > 1})
    if duplicated:
        raise TableStructureError(f"Duplicate column headers: {duplicated}")

    lengths = {len(column) for column in columns}
    if len(lengths) > 1:
        raise ColumnLengthError(
            "All columns must have the same length, got "
            + ", ".join(f"{h}={len(c)}" for h, c in zip(headers, columns))
        )

    table = DataTable()
    table.presentation_state.set_column_order(headers)

    row_count = lengths.pop() if lengths else 0
    for i in range(row_count):
        cells: dict[str, CellType] = {}
        row_id: str | None = None
        for header, column in zip(headers, columns):
            if header == ID_COLUMN:
                row_id = str(column[i]) if column[i] is not None else None
            else:
                cells[header] = column[i]
        table.insert_row(DataTableRow(cells, id=row_id))

    logger.info(
        "Built table from %d column(s) x %d row(s)", len(columns), row_count
    )
    return table
