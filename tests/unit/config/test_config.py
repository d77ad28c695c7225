# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from menu_extraction.config import ConfigurationReader, deep_merge, get_config


@pytest.mark.unit
class TestDefaults:
    def test_packaged_defaults(self, config):
        assert config["planning"]["max_items_per_task"] == 75
        assert config["planning"]["hard_token_cap"] == 15000
        assert config["extraction"]["concurrency"] == 4
        assert config["models"]["fast"]
        assert config["models"]["expert"]
        for name in ("scoping_text", "scoping_image", "workload", "core_extraction",
                     "segment_instruction", "full_instruction", "global_modifiers",
                     "item_modifiers", "size_standardization"):
            assert config["prompts"][name].strip()

    def test_prompt_placeholders(self, config):
        prompts = config["prompts"]
        assert "{SAMPLE}" in prompts["scoping_text"]
        assert "{CONTENT}" in prompts["core_extraction"]
        assert "{SEGMENT_LABEL}" in prompts["segment_instruction"]
        assert "{SIZE_TERMS}" in prompts["size_standardization"]


@pytest.mark.unit
def test_deep_merge_does_not_mutate_inputs():
    default = {"a": {"b": 1, "c": 2}, "d": [1]}
    custom = {"a": {"c": 3}, "e": 4}
    merged = deep_merge(default, custom)
    assert merged == {"a": {"b": 1, "c": 3}, "d": [1], "e": 4}
    assert default["a"]["c"] == 2


@pytest.mark.unit
class TestLayering:
    def test_file_and_overrides(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("extraction:\n  concurrency: 2\nmodels:\n  fast: custom-fast\n")
        monkeypatch.setenv("MENU_EXTRACTION_CONFIG_PATH", str(config_file))

        config = get_config(overrides={"extraction": {"concurrency": 8}})

        assert config["models"]["fast"] == "custom-fast"
        assert config["extraction"]["concurrency"] == 8
        assert config["extraction"]["text_chars"] == 30000

    def test_invalid_file(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n")
        monkeypatch.setenv("MENU_EXTRACTION_CONFIG_PATH", str(config_file))

        with pytest.raises(ValueError, match="mapping"):
            get_config()

    @patch("menu_extraction.config.boto3.resource")
    def test_dynamodb_custom_record(self, mock_resource, monkeypatch):
        table = MagicMock()
        table.get_item.return_value = {
            "Item": {
                "Configuration": "Custom",
                "extraction": {"concurrency": Decimal("6"), "low_yield_ratio": Decimal("0.25")},
            }
        }
        mock_resource.return_value.Table.return_value = table
        monkeypatch.setenv("CONFIGURATION_TABLE_NAME", "config-table")

        config = get_config()

        table.get_item.assert_called_once_with(Key={"Configuration": "Custom"})
        assert config["extraction"]["concurrency"] == 6
        assert config["extraction"]["low_yield_ratio"] == 0.25
        assert "Configuration" not in config

    def test_reader_requires_table_name(self):
        with pytest.raises(ValueError, match="Configuration table name"):
            ConfigurationReader()
