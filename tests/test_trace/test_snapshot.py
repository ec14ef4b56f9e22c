"""Tests for object snapshots."""

import pytest

from trace_testgen.trace.snapshot import (
    ObjectSnapshot,
    is_marker,
    is_snapshot,
    parse_snapshot,
    to_snapshot,
)


class TestToSnapshot:
    def test_converts_nested_objects(self):
        """Nested $class dictionaries become nested snapshots."""
        snapshot = to_snapshot(
            {
                "$class": "shop.model.User",
                "name": "Ann",
                "address": {"$class": "shop.model.Address", "city": "Oslo"},
            }
        )

        assert snapshot.module == "shop.model"
        assert snapshot.simple_class_name == "User"
        assert snapshot.fields["name"] == "Ann"
        assert isinstance(snapshot.fields["address"], ObjectSnapshot)
        assert snapshot.fields["address"].fields == {"city": "Oslo"}

    def test_string_form(self):
        snapshot = to_snapshot({"$class": "decimal.Decimal", "$value": "1.50"})

        assert snapshot.string_value == "1.50"
        assert snapshot.fields == {}
        assert str(snapshot) == "Decimal(1.50)"

    def test_rejects_plain_dictionaries(self):
        with pytest.raises(ValueError):
            to_snapshot({"name": "Ann"})


class TestCompleteness:
    """Tests for cycle and depth markers."""

    def test_plain_snapshot_is_complete(self):
        assert to_snapshot({"$class": "m.Point", "x": 1, "y": [1, 2]}).is_complete

    def test_cycle_marker_makes_snapshot_incomplete(self):
        snapshot = to_snapshot({"$class": "m.Node", "next": "$cycle"})

        assert not snapshot.is_complete

    def test_marker_in_nested_object_makes_snapshot_incomplete(self):
        """Markers are found at any depth."""
        snapshot = to_snapshot(
            {"$class": "m.Tree", "root": {"$class": "m.Node", "children": ["$ref:m.Node"]}}
        )

        assert not snapshot.is_complete

    @pytest.mark.parametrize(
        "value, expected",
        [("$cycle", True), ("$ref:m.Node", True), ("cycle", False), (3, False)],
    )
    def test_is_marker(self, value, expected):
        assert is_marker(value) is expected


class TestParseSnapshot:
    def test_parses_collector_json(self):
        snapshot = parse_snapshot('{"$class": "m.Point", "x": 1}')

        assert snapshot.fields == {"x": 1}
        assert is_snapshot({"$class": "m.Point"})

    def test_invalid_json_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_snapshot("{not json")
