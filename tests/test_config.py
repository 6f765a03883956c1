"""
Configuration loading tests.

Run with: pytest tests/test_config.py -v
"""

import json
from pathlib import Path

import pytest

from transformation_core.config.settings import (
    DestinationRoutingConfig,
    RouteConfig,
    StoreMode,
    TransformationConfig,
    TransformationFunction,
    TransformationType,
    apply_env_overrides,
    load_config,
    save_config,
)

SAMPLE_YAML = """
save_packets: true
store_mode: persistent
routes:
  orders:
    type: conversion
    source_topic: orders.in
    destination_topic: orders.out
    destination_type: application/xml
    type_converter_options:
      json_to_xml:
        use_root_wrapping: false
        root_wrapper_name: Orders
  dispatch:
    type: Routing
    source_topic: dispatch.in
    destination_routing:
      xslt_path: xslt/route.xslt
      destination_xpath: /Route/Topic
    functions:
      - name: AddDateTimeStamp
        parameters: {Format: "%Y"}
        target_node: /ROOT/Year
"""


class TestLoadConfig:
    """Tests for reading configuration files."""

    def test_load_yaml(self, tmp_path):
        """Routes, enums and nested options are read from YAML."""
        path = tmp_path / "transformation.yaml"
        path.write_text(SAMPLE_YAML, encoding="utf-8")

        config = load_config(path)

        assert config.save_packets is True
        assert config.store_mode == StoreMode.PERSISTENT
        orders = config.routes["orders"]
        assert orders.type == TransformationType.CONVERSION
        assert orders.destination_type == "application/xml"
        assert orders.type_converter_options.json_to_xml.use_root_wrapping is False
        assert orders.type_converter_options.json_to_xml.root_wrapper_name == "Orders"
        assert orders.type_converter_options.csv_to_xml.row_wrapper_name == "ROW"

        dispatch = config.routes["dispatch"]
        assert dispatch.type == TransformationType.ROUTING
        assert dispatch.destination_routing.destination_xpath == "/Route/Topic"
        assert dispatch.functions[0].name == "AddDateTimeStamp"
        assert dispatch.functions[0].parameters == {"Format": "%Y"}

    def test_save_and_reload_json(self, tmp_path):
        """A saved JSON config loads back to the same routes."""
        config = TransformationConfig(save_packets=True)
        config.routes["orders"] = RouteConfig(
            type=TransformationType.FUNCTIONS,
            source_topic="orders.in",
            destination_topic="orders.out",
            functions=[TransformationFunction("AddMaxDateTime", {"XPath": "//date"}, "/ROOT/Max")],
            store_mode=StoreMode.PERSISTENT,
        )
        path = tmp_path / "nested" / "config.json"

        save_config(config, path)
        assert json.loads(path.read_text())["routes"]["orders"]["type"] == "Functions"

        reloaded = load_config(path)
        assert reloaded.routes["orders"] == config.routes["orders"]
        assert reloaded.save_packets is True

    def test_missing_file(self, tmp_path):
        """A missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        """Only YAML and JSON files are accepted."""
        path = tmp_path / "config.ini"
        path.write_text("[routes]")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_invalid_enum_value(self):
        """Unknown enum values name the enum in the error."""
        with pytest.raises(ValueError, match="Invalid TransformationType"):
            RouteConfig.from_dict({"type": "teleport"})


class TestEnvOverrides:
    """Tests for apply_env_overrides."""

    def test_overrides(self):
        """Environment variables replace file values."""
        config = apply_env_overrides(TransformationConfig(), {
            "TRANSFORM_SAVE_PACKETS": "yes",
            "TRANSFORM_STORE_MODE": "Persistent",
            "TRANSFORM_STORAGE_BACKEND": "mongodb",
            "MONGODB_URI": "mongodb://db:27017",
            "TRANSFORM_MESSAGING_BASE_URL": "http://bus/topics",
        })
        assert config.save_packets is True
        assert config.store_mode == StoreMode.PERSISTENT
        assert config.storage.backend == "mongodb"
        assert config.storage.mongodb_uri == "mongodb://db:27017"
        assert config.messaging.base_url == "http://bus/topics"

    def test_no_overrides_keeps_defaults(self):
        """An empty environment leaves defaults alone."""
        config = apply_env_overrides(TransformationConfig(), {})
        assert config.save_packets is False
        assert config.storage.backend == "memory"


class TestValidate:
    """Tests for TransformationConfig.validate."""

    def test_valid_config(self, identity_xslt):
        """A complete route reports no problems."""
        config = TransformationConfig()
        config.routes["orders"] = RouteConfig(
            source_topic="orders.in", destination_topic="orders.out", xslt_path=identity_xslt,
        )
        assert config.validate() == []

    def test_problems_reported(self):
        """Missing topics, stylesheets and XPaths are all reported."""
        config = TransformationConfig()
        config.routes["broken"] = RouteConfig(xslt_path="missing.xslt")
        config.routes["router"] = RouteConfig(
            type=TransformationType.ROUTING,
            source_topic="in",
            destination_routing=DestinationRoutingConfig(xslt_path="route.xslt"),
        )
        problems = config.validate()
        assert "Route 'broken': source topic missing" in problems
        assert "Route 'broken': destination topic missing" in problems
        assert "Route 'broken': stylesheet not found: missing.xslt" in problems
        assert "Route 'router': destination XPath missing" in problems
        assert not any("router': destination topic" in p for p in problems)
