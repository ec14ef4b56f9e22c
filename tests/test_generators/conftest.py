"""Shared fixtures for generator tests."""

import pytest

from trace_testgen.config import create_generation_context
from trace_testgen.identifiers.run_configuration import plan_run_configuration
from trace_testgen.trace.models import Invocation, Trace

COUNTER_ADD = "shop.counter:Counter.add(int) -> int"

# Internal ids assigned by planning COUNTER_ADD with one field
ARG, COUNT, RESULT = 1, 2, 3


@pytest.fixture
def counter_mapping(tmp_path):
    configuration = plan_run_configuration(COUNTER_ADD, tmp_path, fields=["int:count"])
    return configuration.identifier_mapping()


@pytest.fixture
def make_context(tmp_path):
    def _make(reference=COUNTER_ADD, **options):
        return create_generation_context(reference, tmp_path / "generated", **options)

    return _make


@pytest.fixture
def call():
    """Build an invocation of Counter.add as the capture layer would."""

    def _call(index, argument, count=0, result=None, identity=None, exception=None, returned=True):
        return Invocation(
            index=index,
            entry={ARG: argument, COUNT: count},
            exit={RESULT: result} if returned else None,
            identity=identity,
            exception=exception,
        )

    return _call


@pytest.fixture
def trace_of():
    def _trace_of(*invocations):
        return Trace(tuple(invocations))

    return _trace_of
