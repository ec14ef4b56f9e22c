"""Temporal generator: follow each object's state across successive calls."""

import logging
from typing import Any

from trace_testgen.config import TestGenerationContext
from trace_testgen.errors import GenerationWarning
from trace_testgen.generators.models import (
    Binding,
    ChangeKind,
    FieldChange,
    ScenarioInputs,
    TestScenario,
    TestSuite,
    canonical,
    filter_scenario,
)
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.trace.models import Trace

logger = logging.getLogger(__name__)


def sample_positions(count: int, budget: int) -> list[int]:
    """Choose which of ``count`` transitions to keep under a budget.

    The first and last transitions are always kept when the budget allows
    two or more; the rest are spread evenly between them. A budget of one
    keeps the first transition.

    >>> sample_positions(5, 3)
    [0, 2, 4]
    """
    if count <= 0 or budget <= 0:
        return []
    if budget >= count:
        return list(range(count))
    if budget == 1:
        return [0]

    interior = budget - 2
    positions = [0]
    for j in range(1, interior + 1):
        # round(j * (count - 1) / (interior + 1)) in integer arithmetic
        positions.append((2 * j * (count - 1) + interior + 1) // (2 * (interior + 1)))
    positions.append(count - 1)
    return positions


def field_changes(previous: dict[str, Any], current: dict[str, Any]) -> tuple[FieldChange, ...]:
    """Differences between two field states, in field order."""
    changes = []
    for name, value in current.items():
        if name not in previous:
            changes.append(FieldChange(name, ChangeKind.ADDED, None, value))
        elif canonical(previous[name]) != canonical(value):
            changes.append(FieldChange(name, ChangeKind.CHANGED, previous[name], value))
    for name, value in previous.items():
        if name not in current:
            changes.append(FieldChange(name, ChangeKind.REMOVED, value, None))
    return tuple(changes)


def _field_state(bindings: tuple[Binding, ...]) -> dict[str, Any]:
    return {b.name: b.value for b in bindings}


class TemporalTraceGenerator:
    """Builds scenarios from state transitions of each observed object.

    Invocations are grouped by identity token (all invocations without one
    share a single group). Inside a group each invocation is a transition
    from the state observed at its entry; the state after it is the one
    observed at the next invocation of the same object.
    """

    strategy_id = "trace-based-advanced"

    def generate(
        self, trace: Trace, mapping: IdentifierMapping, context: TestGenerationContext
    ) -> TestSuite:
        """Generate state-transition scenarios from a trace.

        Args:
            trace: The analyzed trace
            mapping: Identifier mapping the trace refers to
            context: Generation options

        Returns:
            TestSuite with scenarios grouped by identity, groups ordered by
            first appearance
        """
        inputs = ScenarioInputs.from_mapping(mapping)
        groups = trace.by_identity()
        logger.info(f"Temporal generation over {len(trace)} invocations in {len(groups)} groups")

        warnings: list[GenerationWarning] = []
        filtered: dict[str, int] = {}
        scenarios: list[TestScenario] = []
        sampled_groups = 0
        dropped_groups = 0

        for identity, invocations in groups.items():
            transitions = []
            for position, invocation in enumerate(invocations):
                scenario = inputs.build(invocation, context.target_method)
                reason = filter_scenario(
                    scenario, context.generate_edge_cases, context.generate_negative_tests
                )
                if reason is not None:
                    filtered[reason] = filtered.get(reason, 0) + 1
                    continue
                after = None
                if position + 1 < len(invocations):
                    after = inputs.bind_fields(invocations[position + 1])
                transitions.append((scenario, after))

            remaining = context.max_test_count - len(scenarios)
            if remaining <= 0:
                dropped_groups += 1
                continue

            budget = min(context.max_state_change_samples, remaining)
            positions = sample_positions(len(transitions), budget)
            if len(positions) < len(transitions):
                sampled_groups += 1
                logger.debug(
                    f"Identity {identity}: kept transitions {positions} of {len(transitions)}"
                )

            previous: dict[str, Any] = {}
            for position in positions:
                scenario, after = transitions[position]
                state = _field_state(scenario.fields)
                scenarios.append(
                    TestScenario(
                        target_method=scenario.target_method,
                        arguments=scenario.arguments,
                        fields=scenario.fields,
                        result_kind=scenario.result_kind,
                        invocation_index=scenario.invocation_index,
                        expected=scenario.expected,
                        identity=scenario.identity,
                        field_changes=field_changes(previous, state),
                        fields_after=after,
                        return_type=scenario.return_type,
                    )
                )
                previous = state

        for reason, count in filtered.items():
            warnings.append(GenerationWarning(f"Dropped {count} transitions: {reason}"))
        if sampled_groups:
            warnings.append(
                GenerationWarning(f"Sampled transitions of {sampled_groups} identities")
            )
        if dropped_groups:
            warnings.append(
                GenerationWarning(
                    f"Omitted {dropped_groups} identities beyond "
                    f"max_test_count={context.max_test_count}"
                )
            )

        for warning in warnings:
            logger.warning(warning.message)
        logger.info(f"Temporal generation produced {len(scenarios)} scenarios")

        return TestSuite(
            target_method=context.target_method,
            scenarios=tuple(scenarios),
            framework=context.test_framework,
            naming_strategy=context.naming_strategy,
            warnings=tuple(warnings),
            strategy=self.strategy_id,
        )
