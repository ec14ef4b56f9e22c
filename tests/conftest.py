"""Fixtures shared across test packages."""

import pytest

from trace_testgen.identifiers.mapping import save_identifier_mapping
from trace_testgen.identifiers.run_configuration import plan_run_configuration
from trace_testgen.trace.models import AnalysisResult, Invocation, Trace, save_trace

COUNTER_REFERENCE = "shop.counter:Counter.add(int) -> int"


@pytest.fixture
def saved_analysis(tmp_path):
    """Analysis artifacts for Counter.add on disk, as the analyze command leaves them.

    Ids: 1 = arg0, 2 = count, 3 = return value.
    """
    output_directory = tmp_path / "trace-output"
    configuration = plan_run_configuration(
        COUNTER_REFERENCE, output_directory, fields=["int:count"]
    )
    mapping_path = save_identifier_mapping(
        configuration.identifier_mapping(), output_directory / "identifiers.json"
    )
    trace_path = save_trace(
        Trace(
            (
                Invocation(index=0, entry={1: 1, 2: 0}, exit={3: 1}, identity="Counter@1"),
                Invocation(index=1, entry={1: 2, 2: 1}, exit={3: 3}, identity="Counter@1"),
                Invocation(index=2, entry={1: 1, 2: 0}, exit={3: 1}, identity="Counter@2"),
                Invocation(
                    index=3, entry={1: -1, 2: 3}, identity="Counter@1", exception="ValueError"
                ),
            )
        ),
        output_directory / "trace.json",
    )
    analysis = AnalysisResult(
        trace_path=trace_path,
        identifiers_mapping_path=mapping_path,
        output_directory=output_directory,
    )
    (output_directory / "analysis.json").write_text(analysis.to_json())
    return analysis
