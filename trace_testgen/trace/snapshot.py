"""Object snapshots: captured composite values in their JSON form.

The collector serializes objects as ``{"$class": "pkg.mod.User", "name": "Ann"}``.
Nested objects use the same form. Field values may carry markers:

- ``"$cycle"``: the object was already visited (circular reference)
- ``"$ref:pkg.mod.Type"``: serialization stopped at the depth limit
- ``{"$class": ..., "$value": "..."}``: the object was captured by its string form
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

CLASS_MARKER = "$class"
VALUE_MARKER = "$value"
CYCLE_MARKER = "$cycle"
REF_PREFIX = "$ref:"


@dataclass(frozen=True)
class ObjectSnapshot:
    """The state of one captured object."""

    class_name: str
    fields: dict[str, Any] = field(default_factory=dict)
    string_value: str | None = None

    @property
    def module(self) -> str:
        return self.class_name.rpartition(".")[0]

    @property
    def simple_class_name(self) -> str:
        return self.class_name.rpartition(".")[2]

    @property
    def is_complete(self) -> bool:
        """False if any nested value was cut off by a cycle or depth marker."""
        return not has_markers(self.fields)

    def __str__(self) -> str:
        if self.string_value is not None:
            return f"{self.simple_class_name}({self.string_value})"
        inner = ", ".join(f"{k}={v}" for k, v in self.fields.items())
        return f"{self.simple_class_name}{{{inner}}}"


def is_snapshot(value: Any) -> bool:
    """Return True if a raw captured value is a serialized object."""
    return isinstance(value, dict) and isinstance(value.get(CLASS_MARKER), str)


def is_marker(value: Any) -> bool:
    return isinstance(value, str) and (value == CYCLE_MARKER or value.startswith(REF_PREFIX))


def has_markers(value: Any) -> bool:
    if is_marker(value):
        return True
    if isinstance(value, ObjectSnapshot):
        return has_markers(value.fields)
    if isinstance(value, dict):
        return any(has_markers(v) for v in value.values())
    if isinstance(value, list):
        return any(has_markers(v) for v in value)
    return False


def to_snapshot(value: dict) -> ObjectSnapshot:
    """Convert a raw ``$class`` dictionary into an ObjectSnapshot.

    Nested objects are converted recursively.

    Raises:
        ValueError: If the value is not a serialized object
    """
    if not is_snapshot(value):
        raise ValueError("Value must be an object with a $class field")

    fields = {}
    for key, item in value.items():
        if key in (CLASS_MARKER, VALUE_MARKER):
            continue
        fields[key] = to_snapshot(item) if is_snapshot(item) else item

    return ObjectSnapshot(
        class_name=value[CLASS_MARKER],
        fields=fields,
        string_value=value.get(VALUE_MARKER),
    )


def parse_snapshot(text: str) -> ObjectSnapshot:
    """Parse the collector's JSON text for an object.

    Raises:
        ValueError: If the text is not JSON for an object with ``$class``
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid object JSON: {e}") from e
    return to_snapshot(data)
