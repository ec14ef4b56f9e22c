"""Trace capture: run instrumented code and assemble typed traces."""

from trace_testgen.trace.analyzer import DEFAULT_TIMEOUT_SECONDS, Analyzer
from trace_testgen.trace.capture import (
    assemble_trace,
    discard_partial_captures,
    load_trace_from_results,
    parse_capture_record,
)
from trace_testgen.trace.models import (
    AnalysisResult,
    InstrumentationResult,
    Invocation,
    Trace,
    load_instrumentation_result,
    load_trace,
    save_trace,
)
from trace_testgen.trace.snapshot import ObjectSnapshot, is_snapshot, to_snapshot
from trace_testgen.trace.summary import summarize_trace

__all__ = [
    # Analysis
    "Analyzer",
    "DEFAULT_TIMEOUT_SECONDS",
    # Capture records
    "parse_capture_record",
    "assemble_trace",
    "load_trace_from_results",
    "discard_partial_captures",
    # Models
    "InstrumentationResult",
    "Invocation",
    "Trace",
    "AnalysisResult",
    "load_instrumentation_result",
    "load_trace",
    "save_trace",
    # Snapshots
    "ObjectSnapshot",
    "is_snapshot",
    "to_snapshot",
    "summarize_trace",
]
