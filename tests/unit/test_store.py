"""
Unit tests for stores (vizdata.stores).

Covers the store registry, column metadata helpers, metadata-ordered
column export, the load event lifecycle of PandasDataStore, and
class-JSON dispatch through the registry.
"""

from __future__ import annotations

import pandas as pd
import pytest

from vizdata.events import EventType
from vizdata.exceptions import SerializationError
from vizdata.stores.base import DataStore, MetaColumn, from_class_json
from vizdata.stores.dataframe import PandasDataStore
from vizdata.table import DataTable, DataTableRow


def _record_events(store: DataStore) -> list:
    """Helper: subscribe to every store event and collect them in order."""
    events: list = []
    for event_type in (EventType.LOAD, EventType.AFTER_LOAD, EventType.LOAD_ERROR):
        store.on(event_type, events.append)
    return events


class TestRegistry:
    """Tests for the process-wide store registry."""

    def test_pandas_store_registered_on_import(self):
        assert DataStore.get_store("Pandas") is PandasDataStore
        assert "Pandas" in DataStore.get_all_store_names()

    def test_get_name_strips_suffix(self):
        class CSVDataStore(DataStore):
            pass

        class Plain(DataStore):
            pass

        assert DataStore.get_name(CSVDataStore) == "CSV"
        assert DataStore.get_name(Plain) == "Plain"
        assert DataStore.get_name(DataStore) == "DataStore"

    def test_first_registration_wins(self, isolated_store_registry):
        class InMemoryDataStore(DataStore):
            pass

        first = InMemoryDataStore

        class InMemoryDataStore(DataStore):  # noqa: F811
            pass

        assert DataStore.add_store(first) is True
        assert DataStore.add_store(InMemoryDataStore) is False
        assert DataStore.get_store("InMemory") is first

    def test_registry_isolation_restores(self, isolated_store_registry):
        class ScratchDataStore(DataStore):
            pass

        DataStore.add_store(ScratchDataStore)
        assert "Scratch" in isolated_store_registry

    def test_registry_restored_after_isolated_test(self):
        assert DataStore.get_store("Scratch") is None

    def test_get_all_stores_is_a_copy(self):
        stores = DataStore.get_all_stores()
        stores.clear()
        assert DataStore.get_store("Pandas") is PandasDataStore

    def test_unknown_store(self):
        assert DataStore.get_store("Nope") is None


class TestColumnMetadata:
    """Tests for describe_column(), what_is() and column order."""

    def test_describe_and_what_is(self):
        store = DataStore()
        store.describe_column("price", {"title": "Price", "data_type": "number"})
        meta = store.what_is("price")
        assert isinstance(meta, MetaColumn)
        assert meta.title == "Price"
        assert store.what_is("missing") is None

    def test_describe_merges(self):
        store = DataStore()
        store.describe_column("price", {"title": "Price"})
        store.describe_column("price", {"index": 2})
        meta = store.what_is("price")
        assert meta.title == "Price"
        assert meta.index == 2

    def test_extra_fields_kept(self):
        store = DataStore()
        store.describe_column("weight", {"unit": "kg"})
        assert store.what_is("weight").model_dump()["unit"] == "kg"

    def test_describe_columns(self):
        store = DataStore()
        store.describe_columns({"a": {"index": 1}, "b": MetaColumn(index=0)})
        assert store.get_column_order() == ["b", "a"]

    def test_column_order_unindexed_by_position(self):
        store = DataStore()
        store.describe_columns({"b": {"index": 1}, "a": {"index": 0}, "c": {}})
        assert store.get_column_order() == ["a", "b", "c"]

    def test_set_column_order(self):
        store = DataStore()
        store.set_column_order(["z", "y"])
        assert store.get_column_order() == ["z", "y"]
        assert store.what_is("y").index == 1

    def test_metadata_from_mapping(self):
        store = DataStore(metadata={"columns": {"a": {"index": 0}}})
        assert store.what_is("a").index == 0


class TestColumnsForExport:
    """Tests for DataStore.get_columns_for_export()."""

    def test_follows_metadata_order(self):
        table = DataTable([DataTableRow({"c": 3, "a": 1, "b": 2}, id="r1")])
        store = DataStore(table=table)
        store.set_column_order(["a", "b", "c"])
        export = store.get_columns_for_export()
        assert export.column_names == ["a", "b", "c"]
        assert export.column_values == [[1], [2], [3]]

    def test_undescribed_columns_last(self):
        table = DataTable([DataTableRow({"c": 3, "a": 1, "b": 2}, id="r1")])
        store = DataStore(table=table)
        store.set_column_order(["b"])
        export = store.get_columns_for_export(include_id_column=True)
        assert export.column_names == ["b", "id", "c", "a"]

    def test_no_metadata_keeps_discovery_order(self, sample_table):
        export = DataStore(table=sample_table).get_columns_for_export()
        assert export.column_names == ["x", "y", "note"]


class TestBaseLoad:
    """Tests for DataStore.load()."""

    def test_emits_after_load(self, sample_table):
        store = DataStore(table=sample_table)
        events = _record_events(store)
        store.load()
        assert [e.type for e in events] == [EventType.AFTER_LOAD]
        assert events[0].table is sample_table


class TestPandasDataStore:
    """Tests for PandasDataStore.load()."""

    def test_load_success(self, sample_frame):
        store = PandasDataStore(dataframe=sample_frame)
        events = _record_events(store)
        store.load()
        assert [e.type for e in events] == [EventType.LOAD, EventType.AFTER_LOAD]
        assert events[1].table is store.table
        assert store.table.get_row_count() == 3
        assert store.get_column_order() == ["city", "population", "updated"]

    def test_table_complete_when_after_load_fires(self, sample_frame):
        store = PandasDataStore(dataframe=sample_frame)
        seen: list[int] = []
        store.on(EventType.AFTER_LOAD, lambda e: seen.append(e.table.get_row_count()))
        store.load()
        assert seen == [3]

    def test_load_without_dataframe(self):
        store = PandasDataStore()
        events = _record_events(store)
        store.load()
        assert [e.type for e in events] == [EventType.LOAD, EventType.LOAD_ERROR]
        assert events[1].error

    def test_load_parse_failure(self):
        frame = pd.DataFrame([[1, 2]], columns=["a", "a"])
        store = PandasDataStore(dataframe=frame)
        events = _record_events(store)
        store.load()
        assert [e.type for e in events] == [EventType.LOAD, EventType.LOAD_ERROR]
        assert "Duplicate" in events[1].error

    def test_load_duplicate_row_ids(self):
        frame = pd.DataFrame({"id": ["r1", "r1"], "v": [1, 2]})
        store = PandasDataStore(dataframe=frame)
        events = _record_events(store)
        store.load()
        assert [e.type for e in events] == [EventType.LOAD, EventType.LOAD_ERROR]
        assert store.table.get_row_count() == 0

    def test_parser_options_applied(self, sample_frame):
        store = PandasDataStore(dataframe=sample_frame, parser_options={"end_row": 0})
        store.load()
        assert store.table.get_column("city") == ["Oslo"]

    def test_to_dataframe_uses_metadata_order(self, sample_frame):
        store = PandasDataStore(dataframe=sample_frame)
        store.load()
        store.set_column_order(["updated", "city", "population"])
        frame = store.to_dataframe()
        assert list(frame.columns) == ["updated", "city", "population"]
        assert frame["city"].iloc[0] == "Oslo"


class TestStoreJson:
    """Tests for store class-JSON and registry dispatch."""

    def test_to_json_tag(self, sample_table):
        data = PandasDataStore(table=sample_table).to_json()
        assert data["classTag"] == "Pandas"
        assert data["table"]["classTag"] == "Table"

    def test_from_json_dispatch(self, sample_table):
        store = PandasDataStore(table=sample_table)
        store.describe_column("x", {"title": "X", "index": 0})
        restored = DataStore.from_json(store.to_json())
        assert isinstance(restored, PandasDataStore)
        assert restored.table == sample_table
        assert restored.what_is("x").title == "X"

    def test_from_class_json_table(self, sample_table):
        restored = from_class_json(sample_table.to_json())
        assert isinstance(restored, DataTable)
        assert restored == sample_table

    def test_from_class_json_store(self, sample_table):
        restored = from_class_json(PandasDataStore(table=sample_table).to_json())
        assert isinstance(restored, PandasDataStore)

    @pytest.mark.parametrize("data", [
        {"classTag": "Unknown", "table": {"classTag": "Table"}},
        {"table": {"classTag": "Table"}},
        "not a mapping",
    ])
    def test_unknown_tag(self, data):
        with pytest.raises(SerializationError):
            from_class_json(data)

    def test_malformed_metadata(self):
        data = {"classTag": "Pandas", "metadata": {"columns": "bad"}}
        with pytest.raises(SerializationError):
            DataStore.from_json(data)
