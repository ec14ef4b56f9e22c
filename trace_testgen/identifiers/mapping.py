"""Serialize and load the identifier mapping artifact.

Probes report values only by numeric internal id. The mapping written at
planning time is what lets analysis recover each value's role and type.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from trace_testgen.errors import CaptureError, ConfigurationError, TraceIntegrityError
from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    ClassIdentifier,
    FieldIdentifier,
    LocalVariableIdentifier,
    ReturnValueIdentifier,
    ValueIdentifier,
    ValueKind,
    parse_method_reference,
)

logger = logging.getLogger(__name__)

MAPPING_FORMAT = "trace-testgen/identifiers"
MAPPING_VERSION = 1


class IdentifierMapping:
    """Read-only lookup from internal id to identifier."""

    def __init__(self, identifiers: Iterable[ValueIdentifier] = ()):
        self._by_id: dict[int, ValueIdentifier] = {}
        for identifier in identifiers:
            if identifier.internal_id in self._by_id:
                raise TraceIntegrityError(
                    f"Duplicate internal id {identifier.internal_id} in identifier mapping",
                    internal_id=identifier.internal_id,
                )
            self._by_id[identifier.internal_id] = identifier

    def __contains__(self, internal_id: object) -> bool:
        return internal_id in self._by_id

    def __iter__(self) -> Iterator[ValueIdentifier]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, internal_id: int) -> ValueIdentifier | None:
        return self._by_id.get(internal_id)

    def resolve(self, internal_id: int) -> ValueIdentifier:
        """Look up an identifier, failing if the id is unknown.

        Raises:
            TraceIntegrityError: If the id was not part of the mapping
        """
        identifier = self._by_id.get(internal_id)
        if identifier is None:
            raise TraceIntegrityError(
                f"Capture record references unknown internal id {internal_id}; "
                "the identifier mapping does not match the instrumented run",
                internal_id=internal_id,
            )
        return identifier

    def of_kind(self, kind: ValueKind) -> list[ValueIdentifier]:
        """Identifiers of one variant, in mapping order."""
        return [i for i in self._by_id.values() if i.value_type is kind]

    def to_dict(self) -> dict:
        return {
            "format": MAPPING_FORMAT,
            "version": MAPPING_VERSION,
            "identifiers": [identifier_to_dict(i) for i in self._by_id.values()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IdentifierMapping":
        if not isinstance(data, dict) or data.get("format") != MAPPING_FORMAT:
            raise TraceIntegrityError("Not an identifier mapping document")
        if data.get("version") != MAPPING_VERSION:
            raise TraceIntegrityError(
                f"Unsupported identifier mapping version: {data.get('version')!r}"
            )
        entries = data.get("identifiers")
        if not isinstance(entries, list):
            raise TraceIntegrityError("Identifier mapping has no identifier list")
        return cls(identifier_from_dict(entry) for entry in entries)


def identifier_to_dict(identifier: ValueIdentifier) -> dict:
    """Convert an identifier to a JSON-ready dictionary."""
    result = {
        "internal_id": identifier.internal_id,
        "value_type": identifier.value_type.value,
        "type": identifier.type,
        "name": identifier.name,
    }
    if isinstance(identifier, ArgumentIdentifier | LocalVariableIdentifier):
        result["slot"] = identifier.slot
    elif isinstance(identifier, FieldIdentifier):
        result["owner_module"] = identifier.owner.module
        result["owner_class"] = identifier.owner.class_name
        result["is_static"] = identifier.is_static
    elif isinstance(identifier, ReturnValueIdentifier):
        result["method"] = identifier.method.reference
        result["method_is_static"] = identifier.method.is_static
    else:
        raise TypeError(f"Unknown identifier variant: {type(identifier).__name__}")
    return result


def identifier_from_dict(data: dict) -> ValueIdentifier:
    """Rebuild an identifier from :func:`identifier_to_dict` output.

    Raises:
        TraceIntegrityError: If the entry is malformed
    """
    try:
        internal_id = int(data["internal_id"])
        kind = ValueKind(data["value_type"])
        type_name = data.get("type")
        name = data["name"]

        if kind is ValueKind.ARGUMENT:
            return ArgumentIdentifier(
                internal_id=internal_id, slot=int(data["slot"]), type=type_name, name=name
            )
        if kind is ValueKind.LOCAL_VARIABLE:
            return LocalVariableIdentifier(
                internal_id=internal_id, slot=int(data["slot"]), type=type_name, name=name
            )
        if kind is ValueKind.FIELD:
            return FieldIdentifier(
                internal_id=internal_id,
                owner=ClassIdentifier(
                    module=data["owner_module"], class_name=data["owner_class"]
                ),
                name=name,
                type=type_name,
                is_static=bool(data["is_static"]),
            )
        return ReturnValueIdentifier(
            internal_id=internal_id,
            method=parse_method_reference(
                data["method"], is_static=bool(data.get("method_is_static", False))
            ),
            type=type_name,
            name=name,
        )
    except (KeyError, TypeError, ValueError, ConfigurationError) as e:
        raise TraceIntegrityError(f"Malformed identifier mapping entry {data!r}: {e}") from e


def save_identifier_mapping(mapping: IdentifierMapping, path: Path) -> Path:
    """Write the mapping as JSON and return the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mapping.to_dict(), indent=2))
    logger.info(f"Wrote identifier mapping with {len(mapping)} entries to {path}")
    return path


def load_identifier_mapping(path: Path) -> IdentifierMapping:
    """Load a mapping written by :func:`save_identifier_mapping`.

    Raises:
        CaptureError: If the file is missing or not valid JSON
        TraceIntegrityError: If the document is not a usable mapping
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError as e:
        raise CaptureError(f"Identifier mapping not found: {path}", phase="loading") from e
    except (OSError, json.JSONDecodeError) as e:
        raise CaptureError(f"Unreadable identifier mapping {path}: {e}", phase="loading") from e

    mapping = IdentifierMapping.from_dict(data)
    logger.info(f"Loaded identifier mapping with {len(mapping)} entries from {path}")
    return mapping
