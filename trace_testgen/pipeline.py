"""Orchestrates analysis and generation over the on-disk artifacts."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from trace_testgen.config import TestGenerationContext
from trace_testgen.emission.code_emitter import TestModuleEmitter
from trace_testgen.errors import GenerationWarning
from trace_testgen.generators.models import TestSuite
from trace_testgen.generators.strategies import get_strategy, strategy_for_mode
from trace_testgen.identifiers.mapping import load_identifier_mapping
from trace_testgen.identifiers.run_configuration import RunConfiguration
from trace_testgen.trace.analyzer import (
    ANALYSIS_FILE_NAME,
    DEFAULT_TIMEOUT_SECONDS,
    Analyzer,
)
from trace_testgen.trace.models import AnalysisResult, InstrumentationResult, load_trace

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Outcome of one generation run."""

    test_module: Path
    suite: TestSuite
    warnings: list[GenerationWarning] = field(default_factory=list)

    @property
    def test_count(self) -> int:
        return len(self.suite)

    def to_dict(self) -> dict:
        return {
            "test_module": str(self.test_module),
            "strategy": self.suite.strategy,
            "test_count": self.test_count,
            "warnings": [
                {
                    "message": w.message,
                    "invocation_index": w.invocation_index,
                    "phase": w.phase,
                }
                for w in self.warnings
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


async def run_analysis(
    run_configuration: RunConfiguration,
    instrumentation: InstrumentationResult,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> tuple[AnalysisResult, Path]:
    """Run the instrumented program and record where its artifacts went.

    Returns:
        The analysis result and the path of the ``analysis.json`` written
        next to the trace
    """
    analyzer = Analyzer(run_configuration, timeout_seconds=timeout_seconds)
    result = await analyzer.execute_analysis(instrumentation)

    path = result.output_directory / ANALYSIS_FILE_NAME
    path.write_text(result.to_json())
    logger.info(f"Analysis result written to {path}")
    return result, path


def generate_tests(
    analysis: AnalysisResult,
    context: TestGenerationContext,
    strategy_id: str | None = None,
) -> GenerationResult:
    """Generate a test module from analysis artifacts.

    Args:
        analysis: Paths produced by analysis
        context: Generation options
        strategy_id: Registered strategy id; None selects the default for
            the trace mode the analysis was planned with

    Returns:
        GenerationResult with the written module and all warnings

    Raises:
        ConfigurationError: If the strategy is unknown or unavailable
        CaptureError: If an artifact cannot be read
        TraceIntegrityError: If the trace and mapping disagree
    """
    if strategy_id is None:
        strategy_id = strategy_for_mode(analysis.trace_mode)
    generator = get_strategy(strategy_id)
    mapping = load_identifier_mapping(analysis.identifiers_mapping_path)
    trace = load_trace(analysis.trace_path)
    logger.info(
        f"Generating tests for {context.target_method.signature} "
        f"with {generator.strategy_id} from {len(trace)} invocations"
    )

    for invocation in trace:
        for internal_id in list(invocation.entry) + list(invocation.exit or {}):
            mapping.resolve(internal_id)

    suite = generator.generate(trace, mapping, context)

    emitter = TestModuleEmitter(suite, mapping, context.equality_strategy)
    test_module = emitter.write(context.output_directory)
    suite = suite.with_warnings(emitter.warnings)

    return GenerationResult(test_module=test_module, suite=suite, warnings=list(suite.warnings))
