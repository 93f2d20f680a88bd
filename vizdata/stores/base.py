"""
Base store contract for vizdata.

A ``DataStore`` owns one ``DataTable`` plus column metadata and exposes:

- a process-wide registry of store classes (``add_store`` / ``get_store``),
  populated once per type by the modules defining concrete stores;
- column metadata helpers (``describe_column``, ``get_column_order``,
  ``set_column_order``, ``what_is``);
- ``get_columns_for_export``, ordered by the store's own metadata;
- a minimal load lifecycle: ``load()`` builds or refreshes the table and
  then emits exactly one terminal event, ``afterLoad`` on success or
  ``loadError`` on failure. The base implementation has nothing to
  acquire and emits ``afterLoad`` right away;
- class-JSON serialization tagged with the registered store name, and
  ``from_json`` dispatching that tag back through the registry.

The registry is guarded by a lock. Tables and metadata are not: a
store must have at most one writer at a time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vizdata.events import EventEmitter, EventType, StoreEvent
from vizdata.exceptions import SerializationError, TableStructureError
from vizdata.parsers.base import ColumnExport, sort_column_names
from vizdata.table import ID_COLUMN, DataTable

logger = logging.getLogger(__name__)

_STORE_SUFFIX = "DataStore"


class MetaColumn(BaseModel):
    """Descriptive metadata for one column. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    index: int | None = None
    title: str | None = None
    data_type: str | None = None
    default_value: Any = None


class StoreMetadata(BaseModel):
    """Column metadata owned by a store."""

    columns: dict[str, MetaColumn] = Field(default_factory=dict)


class DataStore(EventEmitter):
    """Store base class: one table, its column metadata, and a load lifecycle.

    Args:
        table: Table to manage; a new empty table by default.
        metadata: ``StoreMetadata``, a mapping of its fields, or ``None``.
    """

    registry: ClassVar[dict[str, type[DataStore]]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        table: DataTable | None = None,
        metadata: StoreMetadata | Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.table = table if table is not None else DataTable()
        if metadata is None:
            self.metadata = StoreMetadata()
        elif isinstance(metadata, StoreMetadata):
            self.metadata = metadata.model_copy(deep=True)
        else:
            self.metadata = StoreMetadata.model_validate(dict(metadata))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(rows={self.table.get_row_count()}, "
            f"columns={list(self.metadata.columns)})"
        )

    # -- Registry -----------------------------------------------------------

    @staticmethod
    def get_name(store_class: type) -> str:
        """Registry name of a store class.

        The class name without a trailing ``DataStore`` (``CSVDataStore``
        -> ``CSV``); the bare class name when nothing would remain.
        """
        name = getattr(store_class, "__name__", "")
        if name.endswith(_STORE_SUFFIX) and name != _STORE_SUFFIX:
            name = name[: -len(_STORE_SUFFIX)]
        return name

    @staticmethod
    def add_store(store_class: type[DataStore]) -> bool:
        """Register a store class under its derived name.

        Returns:
            ``True`` on success, ``False`` when the name is empty or
            already registered (the first registration is kept).
        """
        name = DataStore.get_name(store_class)
        with DataStore._registry_lock:
            if not name or name in DataStore.registry:
                logger.warning("Store '%s' not registered (empty or duplicate name)", name)
                return False
            DataStore.registry[name] = store_class
        logger.debug("Registered store '%s' -> %s", name, store_class.__qualname__)
        return True

    @staticmethod
    def get_store(name: str) -> type[DataStore] | None:
        with DataStore._registry_lock:
            return DataStore.registry.get(name)

    @staticmethod
    def get_all_store_names() -> list[str]:
        with DataStore._registry_lock:
            return list(DataStore.registry)

    @staticmethod
    def get_all_stores() -> dict[str, type[DataStore]]:
        """Copy of the registry; mutating it does not affect registration."""
        with DataStore._registry_lock:
            return dict(DataStore.registry)

    # -- Column metadata ----------------------------------------------------

    def describe_column(self, name: str, column_meta: MetaColumn | Mapping[str, Any]) -> None:
        """Merge *column_meta* into the metadata of column *name*.

        Fields not given, or given as ``None``, keep their current value.
        """
        if not isinstance(column_meta, MetaColumn):
            column_meta = MetaColumn.model_validate(dict(column_meta))
        columns = self.metadata.columns
        merged = columns[name].model_dump(exclude_none=True) if name in columns else {}
        merged.update(column_meta.model_dump(exclude_none=True))
        columns[name] = MetaColumn.model_validate(merged)

    def describe_columns(self, columns: Mapping[str, MetaColumn | Mapping[str, Any]]) -> None:
        for name, column_meta in columns.items():
            self.describe_column(name, column_meta)

    def what_is(self, name: str) -> MetaColumn | None:
        """Metadata of column *name*, or ``None`` when undescribed."""
        return self.metadata.columns.get(name)

    def get_column_order(self) -> list[str]:
        """Column names ordered by their ``index`` metadata.

        Columns without an index take their position among the described
        columns; ties keep description order.
        """
        described = list(self.metadata.columns.items())
        ranked = sorted(
            (meta.index if meta.index is not None else i, i, name)
            for i, (name, meta) in enumerate(described)
        )
        return [name for _, _, name in ranked]

    def set_column_order(self, names: Sequence[str]) -> None:
        """Give *names* the indices ``0..n-1`` in order."""
        for i, name in enumerate(names):
            self.describe_column(name, {"index": i})

    def get_columns_for_export(self, include_id_column: bool = False) -> ColumnExport:
        """Table columns ordered by ``get_column_order()``.

        Columns unknown to the metadata follow in discovery order.
        """
        columns = self.table.to_columns()
        names = list(columns)
        if not include_id_column:
            names.remove(ID_COLUMN)
        order = self.get_column_order()
        if order:
            names = sort_column_names(names, order)
        return ColumnExport(
            column_names=names,
            column_values=[columns[name] for name in names],
        )

    # -- Lifecycle ----------------------------------------------------------

    def load(self) -> None:
        """Emit ``afterLoad`` with the current table."""
        self.emit(StoreEvent(type=EventType.AFTER_LOAD, table=self.table))

    # -- Serialization ------------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        return {
            "classTag": DataStore.get_name(type(self)),
            "metadata": self.metadata.model_dump(mode="json", exclude_none=True),
            "table": self.table.to_json(),
        }

    @staticmethod
    def from_json(json: Mapping[str, Any]) -> DataStore:
        """Rebuild a store from class-JSON via the store registry.

        Raises:
            SerializationError: If the tag is unregistered or the JSON malformed.
        """
        if not isinstance(json, Mapping):
            raise SerializationError(f"Expected store class-JSON, got {json!r}")
        tag = json.get("classTag")
        store_class = DataStore.get_store(tag) if isinstance(tag, str) else None
        if store_class is None:
            raise SerializationError(f"No store registered for classTag {tag!r}")
        try:
            metadata = StoreMetadata.model_validate(json.get("metadata") or {})
            table = DataTable.from_json(json.get("table") or {"classTag": "Table"})
        except (ValidationError, TableStructureError) as exc:
            raise SerializationError(f"Malformed '{tag}' store JSON: {exc}") from exc
        return store_class(table=table, metadata=metadata)


def from_class_json(json: Mapping[str, Any]) -> DataTable | DataStore:
    """Rebuild a table or a registered store from its class-JSON."""
    if isinstance(json, Mapping) and json.get("classTag") == "Table":
        return DataTable.from_json(json)
    return DataStore.from_json(json)
