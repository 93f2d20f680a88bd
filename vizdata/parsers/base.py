"""
Base parser protocol / ABC for vizdata.

All parsers implement this interface. The contract is:
1. parse() consumes the parser's input and emits ``parse`` followed by
   either ``afterParse`` (with columns and headers) or ``parseError``.
2. get_table() returns the parsed data as a ``DataTable``.
3. to_json() returns the parser's class-JSON.

The static methods implement the conversion protocol between a
``DataTable`` and its two external representations:

- column arrays: ``get_columns_from_table`` / ``get_table_from_columns``
- series options (``{"data": [...points]}``):
  ``get_series_options_from_table`` / ``get_table_from_series_options``

plus ``get_columns_for_export`` which returns index-aligned column
names and values ordered by the table's presentation state.
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from vizdata.config import ParserOptions
from vizdata.converter import DataConverter
from vizdata.events import EventEmitter
from vizdata.series_registry import get_point_array_map
from vizdata.table import (
    ID_COLUMN,
    CellType,
    DataTable,
    DataTableRow,
    build_table_from_columns,
)

logger = logging.getLogger(__name__)

_DEFAULT_POINT_ARRAY_MAP = ["x", "y"]


@dataclass
class ColumnExport:
    """Column names and values, index-aligned.

    Attributes:
        column_names: Names in export order.
        column_values: ``column_values[i]`` holds the cells of ``column_names[i]``.
    """
    column_names: list[str] = field(default_factory=list)
    column_values: list[list[CellType]] = field(default_factory=list)


def sort_column_names(names: Sequence[str], order: Sequence[str]) -> list[str]:
    """Sort *names* by their position in *order*; unlisted names go last.

    Unlisted names keep their relative order.
    """
    position = {name: i for i, name in enumerate(order)}
    return sorted(
        names,
        key=lambda name: (0, position[name]) if name in position else (1, 0),
    )


class DataParser(EventEmitter, ABC):
    """Abstract base class for vizdata parsers.

    Subclasses set ``self.options`` and ``self.converter`` and implement
    ``parse()``, ``get_table()`` and ``to_json()``.
    """

    default_options = ParserOptions()

    options: ParserOptions
    converter: DataConverter

    # -- Table -> columns ---------------------------------------------------

    @staticmethod
    def get_columns_from_table(
        table: DataTable,
        use_presentation_order: bool = False,
    ) -> list[list[CellType]]:
        """Convert a table to column arrays, the ``id`` column first.

        Args:
            table: Table to convert.
            use_presentation_order: Sort the columns with the table's
                presentation comparator first.
        """
        columns = table.to_columns()
        names = list(columns)
        if use_presentation_order:
            sorter = table.presentation_state.get_column_sorter()
            names.sort(key=functools.cmp_to_key(sorter))
        return [columns[name] for name in names]

    @staticmethod
    def get_columns_for_export(
        table: DataTable,
        include_id_column: bool = False,
    ) -> ColumnExport:
        """Column names and values ordered by the table's presentation state."""
        columns = table.to_columns()
        names = list(columns)
        if not include_id_column:
            names.remove(ID_COLUMN)
        sorter = table.presentation_state.get_column_sorter()
        names.sort(key=functools.cmp_to_key(sorter))
        return ColumnExport(
            column_names=names,
            column_values=[columns[name] for name in names],
        )

    # -- Columns -> table ---------------------------------------------------

    @staticmethod
    def get_table_from_columns(
        columns: Sequence[Sequence[CellType]] | None = None,
        headers: Sequence[str] | None = None,
    ) -> DataTable:
        """Build a table from equal-length column arrays.

        Missing headers are generated. The header order becomes the
        table's presentation order. A column named ``id`` supplies the
        row identifiers.

        Raises:
            TableStructureError: If two columns share a header.
            ColumnLengthError: If the column arrays differ in length.
        """
        return build_table_from_columns(columns, headers)

    # -- Table <-> series options ------------------------------------------

    @staticmethod
    def get_series_options_from_table(
        table: DataTable,
        point_array_map: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Convert a table to series options, one point per row.

        Without *point_array_map* each point is a mapping of ``id`` plus
        every cell of its row. With it, each point is the list of the
        row's cells in map order.
        """
        data: list[Any] = []
        for row in table.get_all_rows():
            if point_array_map:
                data.append([row.get_cell(name) for name in point_array_map])
            else:
                point = {ID_COLUMN: row.id}
                point.update(row.get_all_cells())
                data.append(point)
        return {"data": data}

    @staticmethod
    def get_table_from_series_options(
        series_options: Mapping[str, Any],
        point_array_map: Sequence[str] | None = None,
    ) -> DataTable:
        """Convert series options to a table, one row per point.

        The point-array-map names the fields of positional points. When
        not given it is taken from the series ``type``, falling back to
        ``["x", "y"]``.

        Point handling:
        - list/tuple: values mapped to fields by position
        - mapping: inserted as-is (an ``id`` key becomes the row id)
        - primitive: ``{map[0]: index, map[1]: value}``
        """
        table = DataTable()
        data = series_options.get("data") or []

        point_array_map = list(point_array_map or [])
        if not point_array_map:
            point_array_map = get_point_array_map(series_options.get("type"))
        if not point_array_map:
            point_array_map = list(_DEFAULT_POINT_ARRAY_MAP)

        def field_name(j: int) -> str:
            return point_array_map[j] if j < len(point_array_map) else str(j)

        for i, point in enumerate(data):
            if isinstance(point, (list, tuple)):
                table.insert_row(
                    DataTableRow({field_name(j): value for j, value in enumerate(point)})
                )
            elif isinstance(point, Mapping):
                table.insert_row(DataTableRow(point))
            else:
                table.insert_row(
                    DataTableRow({field_name(0): i, field_name(1): point})
                )

        logger.debug(
            "Built table from %d point(s) with map %s", len(data), point_array_map
        )
        return table

    # -- Abstract interface -------------------------------------------------

    @abstractmethod
    def parse(self, *args: Any, **kwargs: Any) -> None:
        """Parse the input. Emits ``parseError`` on failure instead of raising."""

    @abstractmethod
    def get_table(self) -> DataTable:
        """Return the parsed data as a ``DataTable``."""

    @abstractmethod
    def to_json(self) -> dict[str, Any]:
        """Return the parser's class-JSON."""
