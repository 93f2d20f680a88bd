"""
Stores sub-package for vizdata.

- base.py defines the DataStore base class, its store registry and
  ``from_class_json`` for rebuilding tables and stores from class-JSON.
- dataframe.py implements PandasDataStore, registered as ``"Pandas"``.

Importing this package registers the built-in stores.
"""

from vizdata.stores.base import DataStore, MetaColumn, StoreMetadata, from_class_json
from vizdata.stores.dataframe import PandasDataStore

__all__ = ["DataStore", "MetaColumn", "StoreMetadata", "PandasDataStore", "from_class_json"]
