"""Test scenario synthesis from traces."""

from trace_testgen.generators.models import (
    Binding,
    ChangeKind,
    FieldChange,
    ResultKind,
    TestScenario,
    TestSuite,
)
from trace_testgen.generators.naive import NaiveTraceGenerator
from trace_testgen.generators.strategies import (
    DEFAULT_STRATEGY,
    STRATEGIES,
    get_strategy,
    strategy_for_mode,
)
from trace_testgen.generators.temporal import TemporalTraceGenerator, sample_positions

__all__ = [
    "Binding",
    "ChangeKind",
    "FieldChange",
    "ResultKind",
    "TestScenario",
    "TestSuite",
    "NaiveTraceGenerator",
    "TemporalTraceGenerator",
    "sample_positions",
    "DEFAULT_STRATEGY",
    "STRATEGIES",
    "get_strategy",
    "strategy_for_mode",
]
