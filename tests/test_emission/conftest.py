"""Shared fixtures for emission tests."""

import pytest

from trace_testgen.config import create_generation_context
from trace_testgen.generators.naive import NaiveTraceGenerator
from trace_testgen.generators.temporal import TemporalTraceGenerator
from trace_testgen.identifiers.run_configuration import plan_run_configuration
from trace_testgen.trace.models import Invocation, Trace


@pytest.fixture
def build_suite(tmp_path):
    """Plan a target, generate a suite from raw invocations, return (suite, mapping).

    Invocations are given as (entry, exit, identity, exception) tuples keyed
    by the internal ids planning assigns: arguments first, then fields,
    then the return value.
    """

    def _build(reference, records, fields=(), temporal=False, is_static=False, **options):
        configuration = plan_run_configuration(
            reference, tmp_path / "trace", fields=list(fields), is_static=is_static
        )
        mapping = configuration.identifier_mapping()
        trace = Trace(
            tuple(
                Invocation(index=i, entry=entry, exit=exit_, identity=identity, exception=exc)
                for i, (entry, exit_, identity, exc) in enumerate(records)
            )
        )
        context = create_generation_context(
            configuration.target_method, tmp_path / "generated", **options
        )
        generator = TemporalTraceGenerator() if temporal else NaiveTraceGenerator()
        return generator.generate(trace, mapping, context), mapping

    return _build
