"""
Shared test fixtures for vizdata tests.

Sample tables and DataFrames are built here so unit and integration
tests agree on the same small data sets. Store registration is
process-wide; tests that register stores use ``isolated_store_registry``.
"""

from __future__ import annotations

import pandas as pd
import pytest

from vizdata.converter import DataConverter
from vizdata.stores.base import DataStore
from vizdata.table import DataTable, DataTableRow


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: end-to-end store and serialization round trips",
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def converter() -> DataConverter:
    """Converter with default options (auto-detected date format, '.' decimals)."""
    return DataConverter()


@pytest.fixture
def sample_table() -> DataTable:
    """Three rows with a sparse ``note`` column (absent in row r2)."""
    return DataTable([
        DataTableRow({"x": 1, "y": 10.5, "note": "first"}, id="r1"),
        DataTableRow({"x": 2, "y": 20.0}, id="r2"),
        DataTableRow({"x": 3, "y": 30.25, "note": "third"}, id="r3"),
    ])


@pytest.fixture
def sample_frame() -> pd.DataFrame:
    """Small mixed-dtype DataFrame with one missing value per column."""
    return pd.DataFrame({
        "city": ["Oslo", "Lima", None],
        "population": [709_000.0, None, 3_100_000.0],
        "updated": pd.to_datetime(["2024-01-01", None, "2024-05-02"]),
    })


@pytest.fixture
def isolated_store_registry():
    """Snapshot the store registry and restore it after the test."""
    saved = dict(DataStore.registry)
    yield DataStore.registry
    DataStore.registry.clear()
    DataStore.registry.update(saved)
