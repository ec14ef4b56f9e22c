"""Naive combinatorial generator: one scenario per distinct observed execution."""

import itertools
import logging

from trace_testgen.config import TestGenerationContext
from trace_testgen.errors import GenerationWarning
from trace_testgen.generators.models import (
    Binding,
    ResultKind,
    ScenarioInputs,
    TestScenario,
    TestSuite,
    canonical,
    filter_scenario,
)
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.trace.models import Trace

logger = logging.getLogger(__name__)


class NaiveTraceGenerator:
    """Replays each distinct observed (inputs, outcome) tuple as a test.

    Invocations are processed in index order. A scenario is emitted only
    for tuples that were actually observed, so every expected value comes
    from a real execution. Duplicates keep their first occurrence.
    """

    strategy_id = "trace-based-basic"

    def generate(
        self, trace: Trace, mapping: IdentifierMapping, context: TestGenerationContext
    ) -> TestSuite:
        """Generate scenarios from a trace.

        Args:
            trace: The analyzed trace
            mapping: Identifier mapping the trace refers to
            context: Generation options

        Returns:
            TestSuite with scenarios in first-occurrence order
        """
        logger.info(f"Naive generation over {len(trace)} invocations")
        inputs = ScenarioInputs.from_mapping(mapping)
        warnings: list[GenerationWarning] = []
        filtered: dict[str, int] = {}

        seen_arguments: set[str] = set()
        seen_fields: set[str] = set()
        seen_scenarios: set[str] = set()
        skipped_arguments = 0
        skipped_fields = 0
        scenarios: list[TestScenario] = []

        for invocation in trace:
            scenario = inputs.build(invocation, context.target_method)

            reason = filter_scenario(
                scenario, context.generate_edge_cases, context.generate_negative_tests
            )
            if reason is not None:
                filtered[reason] = filtered.get(reason, 0) + 1
                continue

            arguments_key = _arguments_key(scenario.arguments)
            fields_key = canonical([[b.name, b.value] for b in scenario.fields])
            if (
                arguments_key not in seen_arguments
                and len(seen_arguments) >= context.max_argument_combinations
            ):
                skipped_arguments += 1
                continue
            if fields_key not in seen_fields and len(seen_fields) >= context.max_field_combinations:
                skipped_fields += 1
                continue

            key = scenario.key()
            if key in seen_scenarios:
                logger.debug(f"Invocation {invocation.index} duplicates an earlier scenario")
                continue

            seen_arguments.add(arguments_key)
            seen_fields.add(fields_key)
            seen_scenarios.add(key)
            scenarios.append(scenario)

        for reason, count in filtered.items():
            warnings.append(GenerationWarning(f"Dropped {count} scenarios: {reason}"))
        if skipped_arguments:
            warnings.append(
                GenerationWarning(
                    f"Skipped {skipped_arguments} invocations beyond "
                    f"{context.max_argument_combinations} argument combinations"
                )
            )
        if skipped_fields:
            warnings.append(
                GenerationWarning(
                    f"Skipped {skipped_fields} invocations beyond "
                    f"{context.max_field_combinations} field combinations"
                )
            )

        if context.cross_product:
            scenarios.extend(self._unobserved_combinations(scenarios, context))

        if len(scenarios) > context.max_test_count:
            warnings.append(
                GenerationWarning(
                    f"Truncated {len(scenarios)} scenarios to "
                    f"max_test_count={context.max_test_count}"
                )
            )
            scenarios = scenarios[: context.max_test_count]

        for warning in warnings:
            logger.warning(warning.message)
        logger.info(f"Naive generation produced {len(scenarios)} scenarios")

        return TestSuite(
            target_method=context.target_method,
            scenarios=tuple(scenarios),
            framework=context.test_framework,
            naming_strategy=context.naming_strategy,
            warnings=tuple(warnings),
            strategy=self.strategy_id,
        )

    def _unobserved_combinations(
        self, observed: list[TestScenario], context: TestGenerationContext
    ) -> list[TestScenario]:
        """Smoke scenarios for argument combinations never observed together.

        Their outcome is unknown, so they carry no expected value.
        """
        values: dict[int, dict[str, Binding]] = {}
        observed_keys = set()
        for scenario in observed:
            observed_keys.add(_arguments_key(scenario.arguments))
            for binding in scenario.arguments:
                slot_values = values.setdefault(binding.identifier.slot, {})
                slot_values.setdefault(canonical(binding.value), binding)
        if not values:
            return []

        budget = context.max_argument_combinations - len(observed_keys)
        extra = []
        slots = sorted(values)
        for combination in itertools.product(*(list(values[s].values()) for s in slots)):
            if len(extra) >= budget:
                break
            if _arguments_key(combination) in observed_keys:
                continue
            extra.append(
                TestScenario(
                    target_method=context.target_method,
                    arguments=tuple(combination),
                    fields=observed[0].fields,
                    result_kind=ResultKind.VOID,
                    invocation_index=observed[0].invocation_index,
                    identity=observed[0].identity,
                    expected_unknown=True,
                    return_type=observed[0].return_type,
                )
            )

        logger.info(f"Cross product added {len(extra)} unobserved argument combinations")
        return extra


def _arguments_key(arguments: tuple[Binding, ...]) -> str:
    return canonical([[b.identifier.slot, b.value] for b in arguments])
