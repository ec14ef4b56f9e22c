"""Tests for generation from on-disk analysis artifacts."""

import dataclasses
import json

import pytest

from trace_testgen.config import create_generation_context
from trace_testgen.errors import CaptureError, ConfigurationError, TraceIntegrityError
from trace_testgen.identifiers.run_configuration import TraceMode
from trace_testgen.pipeline import generate_tests
from trace_testgen.trace.models import AnalysisResult, Invocation, Trace, save_trace

COUNTER_REFERENCE = "shop.counter:Counter.add(int) -> int"


class TestGenerateTests:
    """Test the analysis-to-module pipeline."""

    def given_context(self, tmp_path, **options):
        self.context = create_generation_context(
            COUNTER_REFERENCE, tmp_path / "generated", **options
        )

    def when_generated(self, analysis, strategy_id=None):
        self.result = generate_tests(analysis, self.context, strategy_id)

    def test_writes_module_for_distinct_executions(self, saved_analysis, tmp_path):
        """The duplicate call on Counter@2 collapses into the first scenario."""
        self.given_context(tmp_path)
        self.when_generated(saved_analysis)

        assert self.result.test_count == 3
        assert self.result.test_module == tmp_path / "generated" / "test_counter_add.py"
        source = self.result.test_module.read_text()
        assert "def test_add_1_returns_1():" in source
        assert "with pytest.raises(ValueError):" in source

    def test_temporal_strategy(self, saved_analysis, tmp_path):
        self.given_context(tmp_path)
        self.when_generated(saved_analysis, "trace-based-advanced")

        assert self.result.suite.strategy == "trace-based-advanced"
        assert self.result.test_count == 4
        assert "assert instance.count == 1" in self.result.test_module.read_text()

    def test_temporal_analysis_defaults_to_temporal_strategy(self, saved_analysis, tmp_path):
        """An analysis planned in temporal mode generates state-transition tests."""
        analysis = dataclasses.replace(saved_analysis, trace_mode=TraceMode.TEMPORAL)
        self.given_context(tmp_path)
        self.when_generated(analysis)

        assert self.result.suite.strategy == "trace-based-advanced"

    def test_explicit_strategy_overrides_trace_mode(self, saved_analysis, tmp_path):
        analysis = dataclasses.replace(saved_analysis, trace_mode=TraceMode.TEMPORAL)
        self.given_context(tmp_path)
        self.when_generated(analysis, "trace-based-basic")

        assert self.result.suite.strategy == "trace-based-basic"

    def test_result_json(self, saved_analysis, tmp_path):
        self.given_context(tmp_path, max_test_count=1)
        self.when_generated(saved_analysis)

        data = json.loads(self.result.to_json())
        assert data["test_count"] == 1
        assert data["strategy"] == "trace-based-basic"
        assert any("max_test_count" in w["message"] for w in data["warnings"])

    def test_unknown_internal_id_is_an_integrity_error(self, saved_analysis, tmp_path):
        """A trace value with no identifier in the mapping stops generation."""
        save_trace(
            Trace((Invocation(index=0, entry={99: 1}, exit={3: 1}),)), saved_analysis.trace_path
        )
        self.given_context(tmp_path)

        with pytest.raises(TraceIntegrityError):
            self.when_generated(saved_analysis)

    def test_missing_trace_is_a_capture_error(self, saved_analysis, tmp_path):
        analysis = AnalysisResult(
            trace_path=tmp_path / "missing.json",
            identifiers_mapping_path=saved_analysis.identifiers_mapping_path,
            output_directory=saved_analysis.output_directory,
        )
        self.given_context(tmp_path)

        with pytest.raises(CaptureError):
            self.when_generated(analysis)

    def test_unavailable_strategy(self, saved_analysis, tmp_path):
        self.given_context(tmp_path)

        with pytest.raises(ConfigurationError):
            self.when_generated(saved_analysis, "ai-assisted")
