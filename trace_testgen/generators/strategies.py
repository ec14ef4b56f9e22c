"""Registry of generation strategies, looked up by id."""

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from trace_testgen.config import TestGenerationContext
from trace_testgen.errors import ConfigurationError
from trace_testgen.generators.models import TestSuite
from trace_testgen.generators.naive import NaiveTraceGenerator
from trace_testgen.generators.temporal import TemporalTraceGenerator
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.run_configuration import TraceMode
from trace_testgen.trace.models import Trace

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = NaiveTraceGenerator.strategy_id
AI_ASSISTED_STRATEGY = "ai-assisted"


class TraceGenerator(Protocol):
    strategy_id: str

    def generate(
        self, trace: Trace, mapping: IdentifierMapping, context: TestGenerationContext
    ) -> TestSuite: ...


@dataclass(frozen=True)
class StrategyInfo:
    strategy_id: str
    description: str
    factory: Callable[[], TraceGenerator] | None


STRATEGIES = {
    info.strategy_id: info
    for info in (
        StrategyInfo(
            NaiveTraceGenerator.strategy_id,
            "Replay every distinct observed execution",
            NaiveTraceGenerator,
        ),
        StrategyInfo(
            TemporalTraceGenerator.strategy_id,
            "Follow object state across successive calls",
            TemporalTraceGenerator,
        ),
        StrategyInfo(
            AI_ASSISTED_STRATEGY,
            "Delegate to an external model using the trace summary",
            None,
        ),
    )
}


def strategy_for_mode(trace_mode: TraceMode) -> str:
    """Default strategy id for traces recorded in the given mode."""
    if trace_mode is TraceMode.TEMPORAL:
        return TemporalTraceGenerator.strategy_id
    return DEFAULT_STRATEGY


def get_strategy(strategy_id: str | None = None) -> TraceGenerator:
    """Create the generator registered under an id.

    Args:
        strategy_id: Registered id; None selects the default strategy

    Returns:
        A new generator instance

    Raises:
        ConfigurationError: If the id is unknown or the strategy is not
            available locally
    """
    strategy_id = strategy_id or DEFAULT_STRATEGY
    info = STRATEGIES.get(strategy_id)
    if info is None:
        available = ", ".join(STRATEGIES)
        raise ConfigurationError(f"Unknown strategy {strategy_id!r}. Available: {available}")
    if info.factory is None:
        raise ConfigurationError(
            f"Strategy {strategy_id!r} runs in an external service; "
            "use 'trace-testgen inspect' to produce its input"
        )
    logger.debug(f"Selected strategy {strategy_id}")
    return info.factory()
