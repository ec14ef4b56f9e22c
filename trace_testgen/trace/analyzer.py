"""Run an instrumented program and turn its captures into a trace artifact."""

import asyncio
import contextlib
import logging
import os
import sys
from pathlib import Path

from trace_testgen.errors import CaptureError, ConfigurationError
from trace_testgen.identifiers.mapping import (
    IdentifierMapping,
    load_identifier_mapping,
    save_identifier_mapping,
)
from trace_testgen.identifiers.run_configuration import RunConfiguration
from trace_testgen.trace.capture import discard_partial_captures, load_trace_from_results
from trace_testgen.trace.models import (
    AnalysisResult,
    InstrumentationResult,
    Trace,
    save_trace,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300

# Environment variables telling the instrumented program where to write
RESULTS_LIST_ENV = "TRACE_TESTGEN_RESULTS_LIST"
IDENTIFIERS_ENV = "TRACE_TESTGEN_IDENTIFIERS"

TRACE_FILE_NAME = "trace.json"
MAPPING_FILE_NAME = "identifiers.json"
ANALYSIS_FILE_NAME = "analysis.json"


class Analyzer:
    """Executes an instrumented program and collects its runtime trace."""

    def __init__(
        self,
        run_configuration: RunConfiguration,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        python_executable: str | None = None,
    ):
        """Initialize the analyzer.

        Args:
            run_configuration: The configuration the instrumentation was built from
            timeout_seconds: Upper bound for the instrumented run
            python_executable: Interpreter used to launch the primary artifact
        """
        if timeout_seconds <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {timeout_seconds}")
        self.run_configuration = run_configuration
        self.timeout_seconds = timeout_seconds
        self.python_executable = python_executable or sys.executable

    def validate_instrumentation(self, instrumentation: InstrumentationResult) -> None:
        """Check that the instrumentation can be analyzed, before running anything.

        Raises:
            ConfigurationError: If the primary artifact is not set, or values
                were requested but no identifier mapping was produced
            CaptureError: If the primary artifact does not exist on disk
        """
        if instrumentation is None or instrumentation.primary_artifact is None:
            raise ConfigurationError("Instrumentation primary artifact cannot be empty")
        if self.run_configuration.requires_mapping and instrumentation.identifiers_mapping_path is None:
            raise ConfigurationError(
                f"{len(self.run_configuration.identifiers)} values were requested "
                "but the instrumentation has no identifier mapping"
            )
        if not Path(instrumentation.primary_artifact).is_file():
            raise CaptureError(
                f"Instrumentation file does not exist: {instrumentation.primary_artifact}",
                phase="loading",
            )
        logger.debug(f"Instrumentation validation passed for {instrumentation.primary_artifact}")

    def build_execution_command(self, instrumentation: InstrumentationResult) -> list[str]:
        """Build the command line that launches the instrumented program."""
        command = [self.python_executable, str(Path(instrumentation.primary_artifact).absolute())]
        command.extend(self.run_configuration.runtime_arguments)
        return command

    def build_environment(self, instrumentation: InstrumentationResult) -> dict[str, str]:
        """Environment for the instrumented run.

        Additional artifacts go on PYTHONPATH first so instrumented modules shadow
        the originals, then the application and source locations, then any
        inherited entries.
        """
        env = dict(os.environ)
        locations = list(instrumentation.additional_artifacts)
        locations += [
            p
            for p in (self.run_configuration.application_path, self.run_configuration.source_path)
            if p is not None
        ]
        search_path = [str(Path(p).absolute()) for p in locations]
        if env.get("PYTHONPATH"):
            search_path.append(env["PYTHONPATH"])
        if search_path:
            env["PYTHONPATH"] = os.pathsep.join(search_path)
        if instrumentation.results_list_path is not None:
            env[RESULTS_LIST_ENV] = str(Path(instrumentation.results_list_path).absolute())
        if instrumentation.identifiers_mapping_path is not None:
            env[IDENTIFIERS_ENV] = str(Path(instrumentation.identifiers_mapping_path).absolute())
        return env

    async def execute_analysis(self, instrumentation: InstrumentationResult) -> AnalysisResult:
        """Run the instrumented program and write the trace artifact.

        Args:
            instrumentation: Artifacts produced by the instrumentor

        Returns:
            AnalysisResult with paths to the trace and identifier mapping

        Raises:
            ConfigurationError: If the instrumentation is incomplete
            CaptureError: If the run fails or times out
            TraceIntegrityError: If captures do not match the mapping
        """
        logger.info(f"Starting analysis of {instrumentation.primary_artifact}")
        self.validate_instrumentation(instrumentation)

        output_directory = self.run_configuration.output_directory
        output_directory.mkdir(parents=True, exist_ok=True)

        await self._run_instrumented(instrumentation)

        mapping = self._load_mapping(instrumentation)
        trace = self.analyze_captures(instrumentation, mapping)

        trace_path = save_trace(trace, output_directory / TRACE_FILE_NAME)
        mapping_path = instrumentation.identifiers_mapping_path
        if mapping_path is None:
            mapping_path = save_identifier_mapping(mapping, output_directory / MAPPING_FILE_NAME)

        result = AnalysisResult(
            trace_path=trace_path,
            identifiers_mapping_path=Path(mapping_path),
            output_directory=output_directory,
            trace_mode=self.run_configuration.trace_mode,
        )
        logger.info(f"Analysis complete: {len(trace)} invocations, trace at {trace_path}")
        return result

    def analyze_captures(
        self, instrumentation: InstrumentationResult, mapping: IdentifierMapping
    ) -> Trace:
        """Assemble the trace from capture files without running anything."""
        return load_trace_from_results(instrumentation.results_list_path, mapping)

    def _load_mapping(self, instrumentation: InstrumentationResult) -> IdentifierMapping:
        if instrumentation.identifiers_mapping_path is None:
            return IdentifierMapping()
        return load_identifier_mapping(instrumentation.identifiers_mapping_path)

    async def _run_instrumented(self, instrumentation: InstrumentationResult) -> None:
        """Run the primary artifact.

        Captures left by an earlier run are removed first; captures of a run that
        times out or fails are removed afterwards.
        """
        stale = discard_partial_captures(instrumentation.results_list_path)
        if stale:
            logger.info(f"Removed {stale} files left by an earlier run")
        command = self.build_execution_command(instrumentation)
        logger.info(f"Executing command: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.run_configuration.output_directory),
                env=self.build_environment(instrumentation),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to launch instrumented program: {e}")
            raise CaptureError(f"Failed to launch instrumented program: {e}", phase="execution") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except TimeoutError as e:
            logger.warning(
                f"Instrumented run timed out after {self.timeout_seconds} seconds, terminating"
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            discard_partial_captures(instrumentation.results_list_path)
            raise CaptureError(
                f"Instrumented run timed out after {self.timeout_seconds} seconds",
                phase="timeout",
            ) from e

        logger.debug(f"Instrumented stdout: {stdout.decode(errors='replace')}")
        logger.debug(f"Instrumented stderr: {stderr.decode(errors='replace')}")

        if process.returncode != 0:
            logger.error(f"Instrumented run failed with exit code {process.returncode}")
            discard_partial_captures(instrumentation.results_list_path)
            raise CaptureError(
                f"Instrumented run failed with exit code {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()[-500:]}",
                phase="execution",
            )
        logger.info("Instrumented run completed")
