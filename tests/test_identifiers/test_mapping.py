"""Tests for the identifier mapping artifact."""

import json

import pytest

from trace_testgen.errors import CaptureError, TraceIntegrityError
from trace_testgen.identifiers.allocator import IdAllocator
from trace_testgen.identifiers.mapping import (
    IdentifierMapping,
    load_identifier_mapping,
    save_identifier_mapping,
)
from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    ValueKind,
    argument,
    field,
    local_variable,
    parse_method_reference,
    return_value,
)


@pytest.fixture
def identifiers():
    allocator = IdAllocator()
    method = parse_method_reference("shop.cart:Cart.add(int) -> bool", is_static=False)
    return [
        argument(allocator, 0, "int", "quantity"),
        field(allocator, method.owner, "total", "int", True),
        local_variable(allocator, 1, "float", "price"),
        return_value(allocator, method),
    ]


class TestIdentifierMapping:
    """Tests for mapping lookups."""

    def test_resolves_known_ids(self, identifiers):
        """Each identifier is found by its internal id."""
        mapping = IdentifierMapping(identifiers)

        assert len(mapping) == 4
        assert mapping.resolve(1).name == "quantity"
        assert 4 in mapping
        assert 99 not in mapping

    def test_unknown_id_is_an_integrity_error(self, identifiers):
        """Resolving an id outside the mapping fails with the id attached."""
        mapping = IdentifierMapping(identifiers)

        with pytest.raises(TraceIntegrityError) as exc_info:
            mapping.resolve(42)

        assert exc_info.value.internal_id == 42

    def test_duplicate_ids_are_rejected(self):
        """Two identifiers with one id cannot share a mapping."""
        duplicate = [
            ArgumentIdentifier(1, 0, "int", "a"),
            ArgumentIdentifier(1, 1, "int", "b"),
        ]

        with pytest.raises(TraceIntegrityError):
            IdentifierMapping(duplicate)

    def test_of_kind_keeps_mapping_order(self, identifiers):
        mapping = IdentifierMapping(identifiers)

        assert [i.name for i in mapping.of_kind(ValueKind.FIELD)] == ["total"]
        assert [i.name for i in mapping.of_kind(ValueKind.RETURN_VALUE)] == ["return_add"]


class TestMappingPersistence:
    """Tests for saving and loading mappings."""

    def given_saved_mapping(self, tmp_path, identifiers):
        self.path = save_identifier_mapping(
            IdentifierMapping(identifiers), tmp_path / "out" / "identifiers.json"
        )

    def when_mapping_is_loaded(self):
        self.loaded = load_identifier_mapping(self.path)

    def then_identifiers_are_preserved(self, identifiers):
        assert list(self.loaded) == identifiers

    def test_saved_mapping_loads_back(self, tmp_path, identifiers):
        """Every identifier variant survives a save and load."""
        self.given_saved_mapping(tmp_path, identifiers)
        self.when_mapping_is_loaded()
        self.then_identifiers_are_preserved(identifiers)

    def test_document_declares_format_and_version(self, tmp_path, identifiers):
        """The written document is tagged with its format."""
        self.given_saved_mapping(tmp_path, identifiers)

        data = json.loads(self.path.read_text())

        assert data["format"] == "trace-testgen/identifiers"
        assert data["version"] == 1

    def test_missing_file_is_a_capture_error(self, tmp_path):
        """A missing mapping file is reported as a loading failure."""
        with pytest.raises(CaptureError) as exc_info:
            load_identifier_mapping(tmp_path / "missing.json")

        assert exc_info.value.phase == "loading"

    def test_wrong_format_is_an_integrity_error(self, tmp_path):
        path = tmp_path / "identifiers.json"
        path.write_text(json.dumps({"format": "something-else", "version": 1}))

        with pytest.raises(TraceIntegrityError):
            load_identifier_mapping(path)

    def test_malformed_entry_is_an_integrity_error(self, tmp_path):
        """Entries with an unknown value type are rejected."""
        path = tmp_path / "identifiers.json"
        path.write_text(
            json.dumps(
                {
                    "format": "trace-testgen/identifiers",
                    "version": 1,
                    "identifiers": [{"internal_id": 1, "value_type": "bogus", "name": "x"}],
                }
            )
        )

        with pytest.raises(TraceIntegrityError):
            load_identifier_mapping(path)
