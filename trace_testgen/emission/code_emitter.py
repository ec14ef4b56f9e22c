"""Render a TestSuite as a pytest or unittest source module."""

import logging
from pathlib import Path

from trace_testgen.config import EqualityStrategy, TestFramework
from trace_testgen.emission.naming import assign_names, class_name_for, module_file_name
from trace_testgen.emission.values import (
    RESTORE_HELPER,
    RESTORE_HELPER_SOURCE,
    Assertions,
    RenderState,
    exception_expression,
    render_literal,
    value_assertions,
)
from trace_testgen.errors import GenerationWarning
from trace_testgen.generators.models import (
    ERROR_CATEGORY,
    Binding,
    ChangeKind,
    ResultKind,
    TestScenario,
    TestSuite,
)
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.models import FieldIdentifier, MethodIdentifier
from trace_testgen.trace.summary import format_value

logger = logging.getLogger(__name__)

INDENT = "    "
RECEIVER = "instance"
RESULT = "result"

_STDLIB_IMPORTS = ("math",)


def _indent(lines: list[str], depth: int = 1) -> list[str]:
    return [f"{INDENT * depth}{line}" if line else "" for line in lines]


def _owner_expression(field_identifier: FieldIdentifier, state: RenderState) -> str:
    state.imports.add(field_identifier.owner.module)
    return field_identifier.owner.qualified_name


def _change_comment(scenario: TestScenario) -> list[str]:
    if not scenario.field_changes:
        return []
    lines = ["# State changes since the previous scenario of this object:"]
    for change in scenario.field_changes:
        if change.kind is ChangeKind.ADDED:
            lines.append(f"#   {change.name}: {format_value(change.new)}")
        elif change.kind is ChangeKind.REMOVED:
            lines.append(f"#   {change.name}: no longer captured")
        else:
            lines.append(
                f"#   {change.name}: {format_value(change.old)} -> {format_value(change.new)}"
            )
    return lines


class TestModuleEmitter:
    """Renders one suite into a test module.

    Warnings raised while rendering values are collected in ``warnings``.
    """

    __test__ = False

    def __init__(
        self,
        suite: TestSuite,
        mapping: IdentifierMapping,
        equality_strategy: EqualityStrategy = EqualityStrategy.FIELDS,
    ):
        self.suite = suite
        self.mapping = mapping
        self.equality_strategy = equality_strategy
        self.assertions = Assertions(suite.framework)
        self.state = RenderState()

    @property
    def warnings(self) -> list[GenerationWarning]:
        return self.state.warnings

    @property
    def is_pytest(self) -> bool:
        return self.suite.framework is TestFramework.PYTEST

    def render(self) -> str:
        """Render the module source.

        Returns:
            Complete Python source for the test module
        """
        self.state = RenderState()
        method = self.suite.target_method
        self.state.imports.add(method.module)

        scenarios = list(self.suite.scenarios)
        names = assign_names(scenarios, self.suite.naming_strategy)
        tests = [self._render_test(name, s) for name, s in zip(names, scenarios)]

        lines = self._header()
        if self.is_pytest:
            for test in tests:
                lines.extend(["", ""])
                lines.extend(test)
            if not tests:
                lines.extend(["", "", "# No scenarios were generated from the recorded trace."])
        else:
            lines.extend(["", "", f"class {class_name_for(method)}(unittest.TestCase):"])
            for position, test in enumerate(tests):
                if position:
                    lines.append("")
                lines.extend(_indent(test))
            if not tests:
                lines.append(f"{INDENT}pass")
            lines.extend(["", "", 'if __name__ == "__main__":', f"{INDENT}unittest.main()"])

        output = "\n".join(lines) + "\n"
        logger.info(
            f"Rendered {len(tests)} {self.suite.framework.value} tests for {method.signature}"
        )
        return output

    def write(self, directory: Path) -> Path:
        """Render the module and write it into ``directory``.

        Returns:
            Path of the written module
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / module_file_name(self.suite.target_method)
        path.write_text(self.render())
        logger.info(f"Wrote generated tests to {path}")
        return path

    def _header(self) -> list[str]:
        method = self.suite.target_method
        captured = ", ".join(f"{i.name} ({i.type or 'None'})" for i in self.mapping)
        lines = [
            f'"""Tests for {method.signature} generated from recorded executions.',
            "",
            f"Strategy: {self.suite.strategy or 'unknown'}.",
        ]
        if captured:
            lines.append(f"Captured values: {captured}.")
        lines.extend(['"""', ""])

        stdlib = sorted(m for m in self.state.imports if m in _STDLIB_IMPORTS)
        if not self.is_pytest:
            stdlib = sorted(set(stdlib) | {"unittest"})
        lines.extend(f"import {module}" for module in stdlib)
        if not self.is_pytest:
            lines.append("from unittest import mock")
        if self.is_pytest:
            if stdlib:
                lines.append("")
            lines.append("import pytest")
        lines.append("")
        project = sorted(m for m in self.state.imports if m not in _STDLIB_IMPORTS)
        lines.extend(f"import {module}" for module in project)

        if self.state.uses_restore:
            lines.extend(["", ""])
            lines.extend(RESTORE_HELPER_SOURCE.splitlines())
        return lines

    def _render_test(self, name: str, scenario: TestScenario) -> list[str]:
        method = scenario.target_method
        index = scenario.invocation_index
        body: list[str] = []

        origin = f"# Recorded invocation {index}"
        if scenario.identity:
            origin += f" on {scenario.identity}"
        body.append(origin)
        if scenario.expected_unknown:
            body.append("# Argument combination never observed together; checks the call runs.")
        body.extend(_change_comment(scenario))

        static_fields = [b for b in scenario.fields if b.identifier.is_static]
        instance_fields = [b for b in scenario.fields if not b.identifier.is_static]
        has_receiver = bool(method.class_name) and not method.is_static

        for binding in static_fields:
            owner = _owner_expression(binding.identifier, self.state)
            value = render_literal(binding.value, self.state, index)
            if self.is_pytest:
                body.append(f'monkeypatch.setattr({owner}, "{binding.name}", {value})')
            else:
                body.append(
                    f'self.enterContext(mock.patch.object({owner}, "{binding.name}", {value}))'
                )

        if has_receiver:
            body.append(self._receiver_line(method, instance_fields, index))
        elif instance_fields:
            self.state.warn(
                f"{method.display_name} has no receiver; ignoring instance fields "
                f"{', '.join(b.name for b in instance_fields)}",
                index,
            )

        call = self._call_expression(scenario, has_receiver)
        body.extend(self._outcome_lines(scenario, call))

        if scenario.fields_after:
            body.extend(self._after_state_lines(scenario.fields_after, has_receiver, index))

        if self.is_pytest:
            params = "monkeypatch" if static_fields else ""
            signature = f"def {name}({params}):"
        else:
            signature = f"def {name}(self):"
        return [signature] + _indent(body)

    def _receiver_line(
        self, method: MethodIdentifier, instance_fields: list[Binding], index: int
    ) -> str:
        self.state.uses_restore = True
        parts = [f"{method.module}.{method.class_name}"]
        for binding in instance_fields:
            parts.append(f"{binding.name}={render_literal(binding.value, self.state, index)}")
        return f"{RECEIVER} = {RESTORE_HELPER}({', '.join(parts)})"

    def _call_expression(self, scenario: TestScenario, has_receiver: bool) -> str:
        method = scenario.target_method
        index = scenario.invocation_index
        by_slot = {b.identifier.slot: b for b in scenario.arguments}
        count = max([len(method.parameter_types)] + [slot + 1 for slot in by_slot])

        missing = [slot for slot in range(count) if slot not in by_slot]
        if missing:
            self.state.warn(
                f"No captured value for argument slots {missing} of {method.display_name}; "
                "passing None",
                index,
            )
        args = ", ".join(
            render_literal(by_slot[slot].value, self.state, index) if slot in by_slot else "None"
            for slot in range(count)
        )

        if has_receiver:
            return f"{RECEIVER}.{method.method_name}({args})"
        if method.class_name:
            return f"{method.module}.{method.class_name}.{method.method_name}({args})"
        return f"{method.module}.{method.method_name}({args})"

    def _outcome_lines(self, scenario: TestScenario, call: str) -> list[str]:
        if scenario.expected_unknown or scenario.result_kind is ResultKind.VOID:
            return [call]

        if scenario.result_kind is ResultKind.EXCEPTION:
            lines = []
            if scenario.expected == ERROR_CATEGORY:
                lines.append("# The recorded call did not return normally.")
                exception = "Exception"
            else:
                exception = exception_expression(str(scenario.expected), self.state)
            if self.is_pytest:
                lines.append(f"with pytest.raises({exception}):")
            else:
                lines.append(f"with self.assertRaises({exception}):")
            lines.append(f"{INDENT}{call}")
            return lines

        lines = [f"{RESULT} = {call}"]
        lines.extend(
            value_assertions(
                RESULT,
                scenario.expected,
                self.assertions,
                self.equality_strategy,
                self.state,
                scenario.invocation_index,
            )
        )
        return lines

    def _after_state_lines(
        self, fields_after: tuple[Binding, ...], has_receiver: bool, index: int
    ) -> list[str]:
        lines = []
        for binding in fields_after:
            if binding.identifier.is_static:
                target = f"{_owner_expression(binding.identifier, self.state)}.{binding.name}"
            elif has_receiver:
                target = f"{RECEIVER}.{binding.name}"
            else:
                continue
            lines.extend(
                value_assertions(
                    target, binding.value, self.assertions, self.equality_strategy, self.state, index
                )
            )
        if lines:
            lines.insert(0, "# State observed at the next call on the same object")
        return lines


def render_test_module(
    suite: TestSuite,
    mapping: IdentifierMapping,
    equality_strategy: EqualityStrategy = EqualityStrategy.FIELDS,
) -> str:
    """Render a suite as test module source.

    Args:
        suite: Scenarios to render
        mapping: Identifier mapping the scenarios were built from
        equality_strategy: How composite return values are compared

    Returns:
        Python source text
    """
    return TestModuleEmitter(suite, mapping, equality_strategy).render()


def write_test_module(
    suite: TestSuite,
    mapping: IdentifierMapping,
    directory: Path,
    equality_strategy: EqualityStrategy = EqualityStrategy.FIELDS,
) -> Path:
    """Render a suite and write it under ``directory``.

    Returns:
        Path of the written test module
    """
    return TestModuleEmitter(suite, mapping, equality_strategy).write(directory)
