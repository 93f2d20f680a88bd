"""
Demo script: build tables from raw rows and a DataFrame via the public API.

Usage:
    uv run python scripts/run_demo.py                    # built-in sample data
    uv run python scripts/run_demo.py vizdata.yaml       # with a config file

Walks through the data layer end to end:
1. Raw text rows -> ArrayParser -> DataTable (types guessed per cell).
2. DataFrame -> PandasDataStore -> DataTable, with load events logged.
3. Table -> series options (OHLC point-array-map) -> table.
4. Store -> class-JSON -> store.
"""

from __future__ import annotations

import json
import logging
import sys

import pandas as pd

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

RAW_ROWS = [
    ["date", "open", "high", "low", "close"],
    ["31/12/2020", "10,5", "12", "9", "11"],
    ["04/01/2021", "11", "13,25", "10", "12,5"],
    ["05/01/2021", "12,5", "14", "11,75", "13"],
]

SAMPLE_FRAME = pd.DataFrame({
    "city": ["Oslo", "Lima", "Pune"],
    "population": [709_000, 10_720_000, None],
    "updated": pd.to_datetime(["2024-01-01", "2024-03-18", "2024-05-02"]),
})

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_demo")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    import vizdata
    from vizdata.config import DataLayerConfig, load_config

    if len(sys.argv) > 1:
        config = load_config(sys.argv[1])
    else:
        config = DataLayerConfig.model_validate({"converter": {"decimal_point": ","}})

    converter = vizdata.DataConverter(config.converter)
    dates = [row[0] for row in RAW_ROWS[1:]]
    date_format = converter.deduce_date_format(dates)
    log.info("Deduced date format: %s", date_format)
    config.converter.date_format = date_format

    log.info("=" * 70)
    log.info("Raw rows -> table")
    log.info("=" * 70)
    table = vizdata.load_table(RAW_ROWS, config=config)
    for row in table.get_all_rows():
        log.info("  %s", row.get_all_cells())

    log.info("=" * 70)
    log.info("Table -> OHLC series options -> table")
    log.info("=" * 70)
    ohlc_map = ["open", "high", "low", "close"]
    options = vizdata.DataParser.get_series_options_from_table(table, ohlc_map)
    log.info("  data: %s", options["data"])
    rebuilt = vizdata.DataParser.get_table_from_series_options({"type": "ohlc", **options})
    log.info("  rebuilt %d row(s), columns %s", rebuilt.get_row_count(),
             list(rebuilt.to_columns())[1:])

    log.info("=" * 70)
    log.info("DataFrame -> PandasDataStore")
    log.info("=" * 70)
    store = vizdata.PandasDataStore(dataframe=SAMPLE_FRAME)
    store.on(vizdata.EventType.AFTER_LOAD,
             lambda event: log.info("  afterLoad: %d row(s)", event.table.get_row_count()))
    store.on(vizdata.EventType.LOAD_ERROR,
             lambda event: log.warning("  loadError: %s", event.error))
    store.load()
    store.describe_column("population", {"title": "Population", "data_type": "number"})
    log.info("  column order: %s", store.get_column_order())
    log.info("  population: %s", store.what_is("population"))

    payload = json.dumps(store.to_json())
    restored = vizdata.from_class_json(json.loads(payload))
    log.info("  class-JSON round trip: %s (%d bytes)", type(restored).__name__, len(payload))
    log.info("\n%s", restored.to_dataframe())

    log.info("Done.")


if __name__ == "__main__":
    main()
