"""Render captured values as Python source: literals and assertions."""

import builtins
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from trace_testgen.config import EqualityStrategy, TestFramework
from trace_testgen.errors import GenerationWarning
from trace_testgen.trace.snapshot import (
    ObjectSnapshot,
    has_markers,
    is_marker,
    is_snapshot,
    to_snapshot,
)

logger = logging.getLogger(__name__)

RESTORE_HELPER = "_restore"

RESTORE_HELPER_SOURCE = f'''def {RESTORE_HELPER}(cls, /, **attributes):
    """Rebuild a captured object without running its constructor."""
    obj = cls.__new__(cls)
    for name, value in attributes.items():
        object.__setattr__(obj, name, value)
    return obj'''


@dataclass
class RenderState:
    """What rendering one test module needs besides the test bodies."""

    imports: set[str] = field(default_factory=set)
    uses_restore: bool = False
    warnings: list[GenerationWarning] = field(default_factory=list)

    def warn(self, message: str, invocation_index: int | None = None) -> None:
        logger.warning(message)
        self.warnings.append(
            GenerationWarning(message, invocation_index=invocation_index, phase="emission")
        )


def _float_literal(value: float) -> str:
    if math.isnan(value):
        return 'float("nan")'
    if math.isinf(value):
        return 'float("inf")' if value > 0 else 'float("-inf")'
    return repr(value)


def _contains(value: Any, predicate) -> bool:
    if predicate(value):
        return True
    if isinstance(value, dict):
        return any(_contains(v, predicate) for v in value.values())
    if isinstance(value, list):
        return any(_contains(v, predicate) for v in value)
    return False


def _is_float(value: Any) -> bool:
    return isinstance(value, float)


def class_expression(class_name: str, state: RenderState) -> str | None:
    """Source expression for a captured class, importing its module.

    Returns None for classes that cannot be imported by name.
    """
    module, _, simple = class_name.rpartition(".")
    if not module:
        return None
    if module == "builtins":
        return simple
    state.imports.add(module)
    return class_name


def render_literal(value: Any, state: RenderState, invocation_index: int | None = None) -> str:
    """Python source that evaluates to a captured value.

    Serialized objects are rebuilt with the ``_restore`` helper; objects
    captured only by their string form are rebuilt by calling the class on
    that string.
    """
    if value is None or isinstance(value, bool | int):
        return repr(value)
    if isinstance(value, float):
        return _float_literal(value)
    if isinstance(value, str):
        if is_marker(value):
            state.warn(f"Value {value!r} was not captured in full", invocation_index)
            return "None"
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(render_literal(v, state, invocation_index) for v in value) + "]"
    if is_snapshot(value):
        return render_snapshot(to_snapshot(value), state, invocation_index)
    if isinstance(value, dict):
        items = ", ".join(
            f"{k!r}: {render_literal(v, state, invocation_index)}" for k, v in value.items()
        )
        return "{" + items + "}"
    if isinstance(value, ObjectSnapshot):
        return render_snapshot(value, state, invocation_index)
    return repr(value)


def render_snapshot(
    snapshot: ObjectSnapshot, state: RenderState, invocation_index: int | None = None
) -> str:
    cls = class_expression(snapshot.class_name, state)
    if cls is None:
        state.warn(f"Cannot import class {snapshot.class_name!r}; using None", invocation_index)
        return "None"
    if snapshot.string_value is not None and not snapshot.fields:
        state.warn(
            f"{snapshot.class_name} was captured by its string form; rebuilding with {cls}(...)",
            invocation_index,
        )
        return f"{cls}({snapshot.string_value!r})"

    state.uses_restore = True
    parts = [cls]
    for name, item in snapshot.fields.items():
        if has_markers(item):
            state.warn(
                f"Field {name} of {snapshot.class_name} was not captured in full; omitted",
                invocation_index,
            )
            continue
        if isinstance(item, ObjectSnapshot):
            parts.append(f"{name}={render_snapshot(item, state, invocation_index)}")
        else:
            parts.append(f"{name}={render_literal(item, state, invocation_index)}")
    return f"{RESTORE_HELPER}({', '.join(parts)})"


def exception_expression(exception: str, state: RenderState) -> str:
    """Source expression for an observed exception type.

    Unknown or unimportable types fall back to ``Exception``.
    """
    module, _, simple = exception.rpartition(".")
    if module and module != "builtins":
        state.imports.add(module)
        return exception
    candidate = getattr(builtins, simple, None)
    if isinstance(candidate, type) and issubclass(candidate, BaseException):
        return simple
    return "Exception"


class Assertions:
    """Assertion statements in the idiom of one test framework."""

    def __init__(self, framework: TestFramework):
        self.framework = framework

    @property
    def is_pytest(self) -> bool:
        return self.framework is TestFramework.PYTEST

    def equal(self, actual: str, expected: str) -> str:
        if self.is_pytest:
            return f"assert {actual} == {expected}"
        return f"self.assertEqual({actual}, {expected})"

    def approx(self, actual: str, expected: str) -> str:
        if self.is_pytest:
            return f"assert {actual} == pytest.approx({expected})"
        return f"self.assertAlmostEqual({actual}, {expected})"

    def is_value(self, actual: str, expected: str) -> str:
        if self.is_pytest:
            return f"assert {actual} is {expected}"
        return f"self.assertIs({actual}, {expected})"

    def is_none(self, actual: str) -> str:
        if self.is_pytest:
            return f"assert {actual} is None"
        return f"self.assertIsNone({actual})"

    def is_not_none(self, actual: str) -> str:
        if self.is_pytest:
            return f"assert {actual} is not None"
        return f"self.assertIsNotNone({actual})"

    def is_nan(self, actual: str) -> str:
        if self.is_pytest:
            return f"assert math.isnan({actual})"
        return f"self.assertTrue(math.isnan({actual}))"


def value_assertions(
    actual: str,
    value: Any,
    assertions: Assertions,
    equality: EqualityStrategy,
    state: RenderState,
    invocation_index: int | None = None,
) -> list[str]:
    """Assertion lines checking that ``actual`` matches a captured value."""
    if value is None:
        return [assertions.is_none(actual)]
    if isinstance(value, bool):
        return [assertions.is_value(actual, repr(value))]
    if isinstance(value, float):
        if math.isnan(value):
            state.imports.add("math")
            return [assertions.is_nan(actual)]
        return [assertions.approx(actual, _float_literal(value))]
    if isinstance(value, int):
        return [assertions.equal(actual, repr(value))]
    if isinstance(value, str):
        if is_marker(value):
            state.warn(f"Expected value of {actual} was not captured in full", invocation_index)
            return [assertions.is_not_none(actual)]
        return [assertions.equal(actual, repr(value))]

    if is_snapshot(value):
        return _snapshot_assertions(
            actual, to_snapshot(value), assertions, equality, state, invocation_index
        )
    if isinstance(value, ObjectSnapshot):
        return _snapshot_assertions(actual, value, assertions, equality, state, invocation_index)

    nested = _contains(value, lambda v: is_snapshot(v) or _is_float(v) or is_marker(v))
    if isinstance(value, list):
        if not nested:
            return [assertions.equal(f"list({actual})", render_literal(value, state))]
        lines = [assertions.equal(f"len({actual})", str(len(value)))]
        for position, item in enumerate(value):
            lines.extend(
                value_assertions(
                    f"{actual}[{position}]", item, assertions, equality, state, invocation_index
                )
            )
        return lines
    if isinstance(value, dict):
        if not nested:
            return [assertions.equal(actual, render_literal(value, state))]
        lines = [assertions.equal(f"len({actual})", str(len(value)))]
        for key, item in value.items():
            lines.extend(
                value_assertions(
                    f"{actual}[{key!r}]", item, assertions, equality, state, invocation_index
                )
            )
        return lines
    return [assertions.equal(actual, repr(value))]


def _snapshot_assertions(
    actual: str,
    snapshot: ObjectSnapshot,
    assertions: Assertions,
    equality: EqualityStrategy,
    state: RenderState,
    invocation_index: int | None,
) -> list[str]:
    type_check = assertions.equal(f"type({actual}).__name__", repr(snapshot.simple_class_name))
    known_class = bool(snapshot.module)

    if not snapshot.is_complete or not known_class:
        reason = "was not captured in full" if known_class else "has no importable class"
        state.warn(
            f"Expected {snapshot.class_name} {reason}; asserting its type only", invocation_index
        )
        return [assertions.is_not_none(actual), type_check]

    if snapshot.string_value is not None and not snapshot.fields:
        return [type_check, assertions.equal(f"str({actual})", repr(snapshot.string_value))]

    if equality is EqualityStrategy.EQUALITY:
        return [assertions.equal(actual, render_snapshot(snapshot, state, invocation_index))]
    if equality is EqualityStrategy.REPR:
        rebuilt = render_snapshot(snapshot, state, invocation_index)
        return [assertions.equal(f"repr({actual})", f"repr({rebuilt})")]

    lines = [type_check]
    for name, item in snapshot.fields.items():
        lines.extend(
            value_assertions(
                f"{actual}.{name}", item, assertions, equality, state, invocation_index
            )
        )
    return lines
