"""
Unit tests for configuration models and YAML I/O (vizdata.config).
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vizdata.config import (
    ConverterOptions,
    DataLayerConfig,
    ParserOptions,
    coerce_options,
    load_config,
    save_config,
)
from vizdata.exceptions import ConfigValidationError


class TestOptionModels:
    """Tests for ConverterOptions and ParserOptions validation."""

    def test_converter_defaults(self):
        options = ConverterOptions()
        assert options.date_format == ""
        assert options.decimal_point is None

    def test_invalid_decimal_point(self):
        with pytest.raises(ValidationError):
            ConverterOptions(decimal_point="x")

    def test_parser_defaults(self):
        options = ParserOptions()
        assert options.start_row == 0
        assert options.end_row is None
        assert options.first_row_as_names is True
        assert options.switch_rows_and_columns is False

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="end_row"):
            ParserOptions(start_row=3, end_row=1)
        with pytest.raises(ValidationError, match="end_column"):
            ParserOptions(start_column=2, end_column=0)

    def test_negative_bounds_rejected(self):
        with pytest.raises(ValidationError):
            ParserOptions(start_row=-1)


class TestCoerceOptions:
    """Tests for coerce_options()."""

    def test_none_gives_defaults(self):
        assert coerce_options(None, ParserOptions) == ParserOptions()

    def test_mapping(self):
        assert coerce_options({"start_row": 2}, ParserOptions).start_row == 2

    def test_model_is_copied(self):
        original = ParserOptions(start_row=1)
        copied = coerce_options(original, ParserOptions)
        copied.start_row = 5
        assert original.start_row == 1


class TestConfigFile:
    """Tests for load_config() / save_config()."""

    def test_round_trip(self, tmp_path):
        config = DataLayerConfig.model_validate({
            "converter": {"date_format": "dd/mm/YYYY", "decimal_point": ","},
            "parser": {"start_row": 1, "end_column": 4},
        })
        path = tmp_path / "sub" / "vizdata.yaml"
        save_config(config, path)
        assert path.read_text(encoding="utf-8").startswith("# vizdata configuration")
        assert load_config(path) == config

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        path.write_text("converter:\n  decimal_point: ','\n", encoding="utf-8")
        config = load_config(path)
        assert config.converter.decimal_point == ","
        assert config.parser == ParserOptions()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        path.write_text("parser:\n  start_row: -2\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        path.write_text("converter: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="not valid YAML"):
            load_config(path)

    def test_defaults_saved_as_empty_sections(self, tmp_path):
        """Only options that differ from the defaults are written out."""
        path = tmp_path / "vizdata.yaml"
        save_config(DataLayerConfig(), path)
        text = path.read_text(encoding="utf-8")
        assert "converter: {}" in text
        assert "decimal_point" not in text
        assert load_config(path) == DataLayerConfig()

    def test_saved_file_lists_changed_options_only(self, tmp_path):
        path = tmp_path / "vizdata.yaml"
        save_config(
            DataLayerConfig.model_validate({"parser": {"first_row_as_names": False}}),
            path,
        )
        text = path.read_text(encoding="utf-8")
        assert "first_row_as_names: false" in text
        assert "start_row" not in text
