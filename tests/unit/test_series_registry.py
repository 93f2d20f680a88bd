"""
Unit tests for the series type registry (vizdata.series_registry).
"""

from __future__ import annotations

import pytest

from vizdata import series_registry
from vizdata.series_registry import (
    get_point_array_map,
    get_series_type,
    load_all_series_types,
    register_series_type,
)


@pytest.fixture
def custom_type_name():
    """Name of a series type registered by a test; removed afterwards."""
    name = "test-custom-series"
    yield name
    series_registry._get_registry().pop(name, None)


class TestBuiltinSeriesTypes:
    """Tests for the YAML-backed built-in series types."""

    def test_ohlc(self):
        assert get_point_array_map("ohlc") == ["open", "high", "low", "close"]

    def test_range_types(self):
        assert get_point_array_map("arearange") == ["low", "high"]
        assert get_point_array_map("boxplot") == ["low", "q1", "median", "q3", "high"]

    def test_cartesian_types_have_no_map(self):
        assert get_point_array_map("line") == []
        assert get_series_type("line") is not None

    def test_unknown_type(self):
        assert get_point_array_map("not-a-type") == []
        assert get_point_array_map(None) == []
        assert get_series_type("not-a-type") is None

    def test_returned_map_is_a_copy(self):
        get_point_array_map("ohlc").append("volume")
        assert get_point_array_map("ohlc") == ["open", "high", "low", "close"]


class TestRegisterSeriesType:
    """Tests for register_series_type()."""

    def test_register(self, custom_type_name):
        assert register_series_type(custom_type_name, ["a", "b"]) is True
        assert get_point_array_map(custom_type_name) == ["a", "b"]

    def test_first_registration_wins(self, custom_type_name):
        register_series_type(custom_type_name, ["a", "b"])
        assert register_series_type(custom_type_name, ["c"]) is False
        assert get_point_array_map(custom_type_name) == ["a", "b"]

    def test_builtin_cannot_be_replaced(self):
        assert register_series_type("ohlc", ["x"]) is False


class TestLoadSeriesTypes:
    """Tests for load_all_series_types() on a custom directory."""

    def test_load_directory(self, tmp_path):
        (tmp_path / "a.yaml").write_text(
            "series_types:\n"
            "  - name: first\n"
            "    point_array_map: [p, q]\n",
            encoding="utf-8",
        )
        (tmp_path / "b.yaml").write_text(
            "series_types:\n  - name: second\n", encoding="utf-8",
        )
        loaded = load_all_series_types(tmp_path)
        assert [s.name for s in loaded] == ["first", "second"]
        assert loaded[0].point_array_map == ["p", "q"]
        assert loaded[1].point_array_map == []

    def test_broken_file_skipped(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("series_types:\n  - [unclosed\n", encoding="utf-8")
        (tmp_path / "good.yaml").write_text("series_types:\n  - name: ok\n", encoding="utf-8")
        assert [s.name for s in load_all_series_types(tmp_path)] == ["ok"]
