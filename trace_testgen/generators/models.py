"""Data models for synthesized test scenarios and suites."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from trace_testgen.config import NamingStrategy, TestFramework
from trace_testgen.errors import GenerationWarning
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    FieldIdentifier,
    MethodIdentifier,
    ReturnValueIdentifier,
    ValueIdentifier,
    is_void_return,
)
from trace_testgen.trace.models import Invocation

logger = logging.getLogger(__name__)

# Exception category used when the capture did not name an exception type
ERROR_CATEGORY = "error"


class ResultKind(str, Enum):
    """Expected outcome of a scenario."""

    NORMAL = "normal"
    VOID = "void"
    EXCEPTION = "exception"


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


@dataclass(frozen=True)
class Binding:
    """A captured value bound to the identifier it was read through."""

    identifier: ValueIdentifier
    value: Any

    @property
    def name(self) -> str:
        return self.identifier.name


@dataclass(frozen=True)
class FieldChange:
    """How one field differs from the previous scenario of the same object."""

    name: str
    kind: ChangeKind
    old: Any = None
    new: Any = None


@dataclass(frozen=True)
class TestScenario:
    """One synthesized test case."""

    __test__ = False

    target_method: MethodIdentifier
    arguments: tuple[Binding, ...]
    fields: tuple[Binding, ...]
    result_kind: ResultKind
    invocation_index: int
    expected: Any = None
    identity: str | None = None
    field_changes: tuple[FieldChange, ...] = ()
    fields_after: tuple[Binding, ...] | None = None
    expected_unknown: bool = False
    return_type: str | None = None

    def key(self) -> str:
        """Canonical text of (inputs, result kind, expected value)."""
        return canonical(
            [
                [b.identifier.internal_id for b in self.arguments],
                [b.value for b in self.arguments],
                [b.identifier.internal_id for b in self.fields],
                [b.value for b in self.fields],
                self.result_kind.value,
                self.expected,
            ]
        )


@dataclass(frozen=True)
class TestSuite:
    """Scenarios produced by one generator run. Immutable once returned."""

    __test__ = False

    target_method: MethodIdentifier
    scenarios: tuple[TestScenario, ...]
    framework: TestFramework
    naming_strategy: NamingStrategy
    warnings: tuple[GenerationWarning, ...] = ()
    strategy: str = ""

    def __len__(self) -> int:
        return len(self.scenarios)

    def with_warnings(self, extra: list[GenerationWarning]) -> "TestSuite":
        """Return a copy with more warnings attached."""
        return TestSuite(
            target_method=self.target_method,
            scenarios=self.scenarios,
            framework=self.framework,
            naming_strategy=self.naming_strategy,
            warnings=self.warnings + tuple(extra),
            strategy=self.strategy,
        )


def canonical(value: Any) -> str:
    """Stable text form of a captured value, usable as a dictionary key."""
    return json.dumps(value, sort_keys=True, default=repr)


@dataclass
class ScenarioInputs:
    """Identifiers of one mapping split by role."""

    arguments: list[ArgumentIdentifier] = field(default_factory=list)
    fields: list[FieldIdentifier] = field(default_factory=list)
    returns: list[ReturnValueIdentifier] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping: IdentifierMapping) -> "ScenarioInputs":
        inputs = cls()
        for identifier in mapping:
            if isinstance(identifier, ArgumentIdentifier):
                inputs.arguments.append(identifier)
            elif isinstance(identifier, FieldIdentifier):
                inputs.fields.append(identifier)
            elif isinstance(identifier, ReturnValueIdentifier):
                inputs.returns.append(identifier)
        inputs.arguments.sort(key=lambda a: a.slot)
        return inputs

    @property
    def value_returns(self) -> list[ReturnValueIdentifier]:
        return [r for r in self.returns if not is_void_return(r)]

    @property
    def return_type(self) -> str | None:
        for identifier in self.returns:
            return identifier.type
        return None

    def bind_arguments(self, invocation: Invocation) -> tuple[Binding, ...]:
        """Bind the argument slots captured at entry. Uncaptured slots are left out."""
        return tuple(
            Binding(a, invocation.entry[a.internal_id])
            for a in self.arguments
            if a.internal_id in invocation.entry
        )

    def bind_fields(self, invocation: Invocation) -> tuple[Binding, ...]:
        return tuple(
            Binding(f, invocation.entry[f.internal_id])
            for f in self.fields
            if f.internal_id in invocation.entry
        )

    def classify(self, invocation: Invocation) -> tuple[ResultKind, Any]:
        """Decide the expected outcome of an invocation.

        Returns:
            (result kind, expected value or exception category)
        """
        if invocation.exception:
            return ResultKind.EXCEPTION, invocation.exception

        value_returns = self.value_returns
        if not value_returns:
            return ResultKind.VOID, None

        exit_bindings = invocation.exit or {}
        if all(r.internal_id in exit_bindings for r in value_returns):
            return ResultKind.NORMAL, exit_bindings[value_returns[0].internal_id]
        return ResultKind.EXCEPTION, ERROR_CATEGORY

    def build(self, invocation: Invocation, method: MethodIdentifier) -> TestScenario:
        kind, expected = self.classify(invocation)
        return TestScenario(
            target_method=method,
            arguments=self.bind_arguments(invocation),
            fields=self.bind_fields(invocation),
            result_kind=kind,
            expected=expected,
            invocation_index=invocation.index,
            identity=invocation.identity,
            return_type=self.return_type,
        )


def is_edge_value(value: Any) -> bool:
    """True for boundary values: None, False, zero, and empty strings or collections."""
    if value is None or value is False:
        return True
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, str | list | dict):
        return len(value) == 0
    return False


def filter_scenario(
    scenario: TestScenario,
    generate_edge_cases: bool,
    generate_negative_tests: bool,
) -> str | None:
    """Return why a scenario is excluded by the options, or None to keep it."""
    if not generate_negative_tests and scenario.result_kind is ResultKind.EXCEPTION:
        return "negative tests are disabled"
    if not generate_edge_cases and any(
        is_edge_value(b.value) for b in scenario.arguments + scenario.fields
    ):
        return "edge cases are disabled"
    return None
