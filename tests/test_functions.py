"""
Function engine tests: registry, built-in date functions and node writes.

Run with: pytest tests/test_functions.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from lxml import etree

from transformation_core.config.settings import TransformationFunction
from transformation_core.errors import FunctionApplicationError, MalformedInputError, UnknownFunctionError
from transformation_core.functions import (
    FunctionEngine,
    FunctionRegistry,
    default_registry,
    parse_duration,
    register_builtins,
    update_or_add_node,
)
from transformation_core.functions.builtins import add_max_date_time, add_min_date_time
from transformation_core.xml.utils import parse_xml

DATES_XML = b"""<ROOT>
  <Events>
    <Event><At>2024-03-01T10:00:00</At></Event>
    <Event><At>2024-05-20T08:30:00</At></Event>
    <Event><At>not a date</At></Event>
    <Event><At>2023-12-31T23:59:00</At></Event>
  </Events>
</ROOT>"""


def _function(name, target, **parameters):
    return TransformationFunction(name=name, parameters=parameters, target_node=target)


class TestFunctionRegistry:
    """Tests for FunctionRegistry."""

    def test_register_decorator(self):
        """Functions can be registered with the decorator form."""
        registry = FunctionRegistry()

        @registry.register("Constant")
        def constant(document, parameters):
            return "x"

        assert "Constant" in registry
        assert registry.get("Constant") is constant

    def test_register_direct(self):
        """Functions can be registered by passing the handler."""
        registry = FunctionRegistry()
        registry.register("Echo", lambda document, parameters: parameters["Value"])
        assert registry.names == ["Echo"]

    def test_unknown_function_raises(self):
        """Looking up an unregistered name raises UnknownFunctionError."""
        registry = FunctionRegistry()
        with pytest.raises(UnknownFunctionError, match="Unknown function 'Nope'"):
            registry.get("Nope")

    def test_default_registry_has_builtins(self):
        """The default registry holds the three date functions."""
        names = default_registry().names
        assert names == ["AddDateTimeStamp", "AddMaxDateTime", "AddMinDateTime"]

    def test_register_builtins_returns_registry(self):
        """register_builtins returns the registry it filled."""
        registry = register_builtins(FunctionRegistry())
        assert "AddMaxDateTime" in registry


class TestParseDuration:
    """Tests for Delay duration parsing."""

    def test_clock_format(self):
        """Clock durations read hours, minutes and seconds."""
        assert parse_duration("01:30") == timedelta(hours=1, minutes=30)
        assert parse_duration("00:00:45") == timedelta(seconds=45)

    def test_days_prefix(self):
        """A days prefix before the clock is read."""
        assert parse_duration("2.03:00:00") == timedelta(days=2, hours=3)

    def test_negative(self):
        """A leading minus makes the duration negative."""
        assert parse_duration("-01:00:00") == timedelta(hours=-1)
        assert parse_duration("-2h") == timedelta(hours=-2)

    def test_human_units(self):
        """Unit words and abbreviations add up."""
        assert parse_duration("1d 2h 30m 15s") == timedelta(days=1, hours=2, minutes=30, seconds=15)
        assert parse_duration("90 minutes") == timedelta(minutes=90)
        assert parse_duration("1 week and 2 days") == timedelta(days=9)

    def test_empty_is_none(self):
        """Missing or blank delays give None."""
        assert parse_duration(None) is None
        assert parse_duration("  ") is None

    def test_invalid_raises(self):
        """Unreadable durations raise ValueError."""
        with pytest.raises(ValueError):
            parse_duration("soon")
        with pytest.raises(ValueError):
            parse_duration("3 fortnights")


class TestDateFunctions:
    """Tests for the built-in date functions."""

    def test_max_date(self):
        """The latest parsable date is returned in ISO format."""
        document = parse_xml(DATES_XML)
        assert add_max_date_time(document, {"XPath": "//At"}) == "2024-05-20T08:30:00"

    def test_min_date_with_format(self):
        """The earliest date is formatted with Format."""
        document = parse_xml(DATES_XML)
        assert add_min_date_time(document, {"XPath": "//At", "Format": "%Y-%m-%d"}) == "2023-12-31"

    def test_delay_is_added(self):
        """Both functions shift the result by Delay."""
        document = parse_xml(DATES_XML)
        assert add_max_date_time(document, {"XPath": "//At", "Delay": "1d"}) == "2024-05-21T08:30:00"
        assert add_min_date_time(document, {"XPath": "//At", "Delay": "00:01"}) == "2024-01-01T00:00:00"

    def test_no_matching_nodes_gives_empty_string(self):
        """No selected nodes gives an empty result."""
        document = parse_xml(DATES_XML)
        assert add_max_date_time(document, {"XPath": "//Missing"}) == ""

    def test_xpath_is_required(self):
        """The date functions need an XPath parameter."""
        document = parse_xml(DATES_XML)
        with pytest.raises(FunctionApplicationError, match="XPath parameter is required."):
            add_max_date_time(document, {})

    def test_attribute_values(self):
        """Attribute nodes are read by value."""
        document = parse_xml(b'<ROOT><e at="2020-01-02"/><e at="2021-06-07"/></ROOT>')
        assert add_max_date_time(document, {"XPath": "//e/@at", "Format": "%d.%m.%Y"}) == "07.06.2021"

    def test_mixed_offsets_compare(self):
        """Values with and without an offset are compared in local time."""
        document = parse_xml(b"<r><d>2024-01-01T00:00:00Z</d><d>2024-06-01</d></r>")
        assert add_max_date_time(document, {"XPath": "//d", "Format": "%Y-%m-%d"}) == "2024-06-01"

    def test_offset_value_converted_to_local_time(self):
        """A single value with an offset is returned as naive local time."""
        document = parse_xml(b"<r><d>2024-03-10T12:00:00+00:00</d></r>")
        expected = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert add_min_date_time(document, {"XPath": "//d"}) == expected.isoformat()

    def test_bare_numbers_are_not_dates(self):
        """Plain numeric values are skipped."""
        document = parse_xml(b"<r><d>2024-01-05</d><d>31</d><d>7.5</d></r>")
        assert add_max_date_time(document, {"XPath": "//d", "Format": "%Y-%m-%d"}) == "2024-01-05"
        assert add_min_date_time(document, {"XPath": "//d", "Format": "%Y-%m-%d"}) == "2024-01-05"

    def test_only_numbers_gives_empty_string(self):
        """Nodes holding only numbers give an empty result."""
        document = parse_xml(b"<r><d>12</d><d>2024</d></r>")
        assert add_max_date_time(document, {"XPath": "//d"}) == ""


class TestUpdateOrAddNode:
    """Tests for writing function results into documents."""

    def test_existing_node_is_overwritten(self):
        """An existing target node is replaced by the value."""
        document = parse_xml(b"<ROOT><Stamp><old/>x</Stamp></ROOT>")
        update_or_add_node(document, "/ROOT/Stamp", "new")
        stamp = document.getroot().find("Stamp")
        assert stamp.text == "new"
        assert len(stamp) == 0

    def test_missing_path_is_created(self):
        """Missing segments are created under the closest existing ancestor."""
        document = parse_xml(b"<ROOT><Header><Id>1</Id></Header></ROOT>")
        update_or_add_node(document, "/ROOT/Header/Meta/ProcessedAt", "2024")
        header = document.getroot().find("Header")
        assert [child.tag for child in header] == ["Id", "Meta"]
        assert header.findtext("Meta/ProcessedAt") == "2024"

    def test_path_without_root_segment(self):
        """A leading segment equal to the root name is optional."""
        document = parse_xml(b"<ROOT/>")
        update_or_add_node(document, "Stamp", "v")
        assert document.getroot().findtext("Stamp") == "v"

    def test_attribute_target(self):
        """Attribute targets are set on their element."""
        document = parse_xml(b'<ROOT><Order id="1"/></ROOT>')
        update_or_add_node(document, "/ROOT/Order/@id", "2")
        assert document.getroot().find("Order").get("id") == "2"

    def test_invalid_path_leaves_document_unchanged(self):
        """Nothing is inserted when a segment can not become an element."""
        document = parse_xml(b"<ROOT/>")
        before = etree.tostring(document)
        with pytest.raises(FunctionApplicationError):
            update_or_add_node(document, "/ROOT/Good/item[2]", "v")
        assert etree.tostring(document) == before

    def test_invalid_xpath_raises(self):
        """A broken target path is malformed input."""
        document = parse_xml(b"<ROOT/>")
        with pytest.raises(MalformedInputError):
            update_or_add_node(document, "/ROOT/[", "v")


class TestFunctionEngine:
    """Tests for FunctionEngine.apply_functions."""

    def test_functions_applied_in_order(self):
        """Functions run in order, later writes win."""
        registry = FunctionRegistry()
        registry.register("Constant", lambda document, parameters: parameters["Value"])
        engine = FunctionEngine(registry)

        output = engine.apply_functions(b"<ROOT/>", [
            _function("Constant", "/ROOT/A", Value="1"),
            _function("Constant", "/ROOT/A", Value="2"),
            _function("Constant", "/ROOT/B", Value="3"),
        ])

        root = etree.fromstring(output)
        assert root.findtext("A") == "2"
        assert len(root.findall("A")) == 1
        assert root.findtext("B") == "3"

    def test_later_function_sees_earlier_result(self):
        """Functions read the document as left by the previous function."""
        registry = FunctionRegistry()
        registry.register("Constant", lambda document, parameters: parameters["Value"])
        registry.register("Count", lambda document, parameters: str(len(document.xpath("/ROOT/*"))))
        engine = FunctionEngine(registry)

        output = engine.apply_functions(b"<ROOT/>", [
            _function("Constant", "/ROOT/A", Value="x"),
            _function("Count", "/ROOT/Total"),
        ])
        assert etree.fromstring(output).findtext("Total") == "1"

    def test_failing_function_is_skipped(self):
        """An unknown or failing function does not stop the others."""
        registry = FunctionRegistry()
        registry.register("Constant", lambda document, parameters: parameters["Value"])
        registry.register("Broken", lambda document, parameters: 1 / 0)
        engine = FunctionEngine(registry)

        output = engine.apply_functions(b"<ROOT/>", [
            _function("Missing", "/ROOT/X"),
            _function("Broken", "/ROOT/Y"),
            _function("Constant", "/ROOT/Z", Value="ok"),
        ])

        root = etree.fromstring(output)
        assert root.find("X") is None
        assert root.find("Y") is None
        assert root.findtext("Z") == "ok"

    def test_date_stamp_builtin(self):
        """AddDateTimeStamp writes the current time."""
        engine = FunctionEngine()
        before = datetime.now().replace(microsecond=0)
        output = engine.apply_functions(b"<ROOT/>", [
            _function("AddDateTimeStamp", "/ROOT/ProcessedAt", Format="%Y-%m-%dT%H:%M:%S"),
        ])
        stamp = datetime.strptime(etree.fromstring(output).findtext("ProcessedAt"), "%Y-%m-%dT%H:%M:%S")
        assert before <= stamp <= datetime.now()

    def test_max_date_builtin_through_engine(self):
        """AddMaxDateTime writes the latest date into the document."""
        engine = FunctionEngine()
        output = engine.apply_functions(DATES_XML, [
            _function("AddMaxDateTime", "/ROOT/Latest", XPath="//At", Format="%Y-%m-%d"),
        ])
        assert etree.fromstring(output).findtext("Latest") == "2024-05-20"

    def test_max_date_with_mixed_offsets_through_engine(self):
        """The result node is written when some dates carry an offset."""
        engine = FunctionEngine()
        output = engine.apply_functions(b"<r><d>2024-01-01T00:00:00Z</d><d>2024-06-01</d></r>", [
            _function("AddMaxDateTime", "/r/Latest", XPath="//d", Format="%Y-%m-%d"),
        ])
        assert etree.fromstring(output).findtext("Latest") == "2024-06-01"

    def test_malformed_input_raises(self):
        """Payloads that are not XML are rejected."""
        with pytest.raises(MalformedInputError):
            FunctionEngine().apply_functions(b"not xml", [])
