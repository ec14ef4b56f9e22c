"""Command-line interface for trace-testgen."""

import argparse
import asyncio
import logging
import sys

from trace_testgen.config import (
    DEFAULT_CONFIG_FILE,
    NamingStrategy,
    TestFramework,
    load_generation_context,
)
from trace_testgen.errors import ConfigurationError, TraceTestgenError
from trace_testgen.generators.strategies import DEFAULT_STRATEGY, STRATEGIES
from trace_testgen.identifiers.mapping import IdentifierMapping, load_identifier_mapping
from trace_testgen.identifiers.models import (
    MethodIdentifier,
    ValueKind,
    parse_method_reference,
)
from trace_testgen.identifiers.run_configuration import TraceMode, plan_run_configuration
from trace_testgen.pipeline import generate_tests, run_analysis
from trace_testgen.trace.analyzer import DEFAULT_TIMEOUT_SECONDS
from trace_testgen.trace.models import AnalysisResult, load_instrumentation_result, load_trace
from trace_testgen.trace.summary import summarize_trace

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="trace-testgen",
        description="Generate unit tests from recorded executions of a method",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # analyze subcommand
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Run an instrumented program and record its trace",
    )
    analyze_parser.add_argument(
        "--manifest",
        required=True,
        help="Instrumentation manifest (JSON) written by the instrumentor",
    )
    analyze_parser.add_argument(
        "--method",
        required=True,
        help="Target method, e.g. 'shop.cart:Cart.add(int, str) -> bool'",
    )
    analyze_parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="Argument to capture as slot:type (repeatable; default: all parameters)",
    )
    analyze_parser.add_argument(
        "--field",
        action="append",
        default=[],
        help="Field to capture as type:name or static:type:name (repeatable)",
    )
    analyze_parser.add_argument(
        "--static",
        action="store_true",
        help="The target is called on its class rather than an instance",
    )
    analyze_parser.add_argument(
        "--no-return",
        action="store_true",
        help="Do not capture the return value",
    )
    analyze_parser.add_argument(
        "--mode",
        choices=[m.value for m in TraceMode],
        default=TraceMode.NAIVE.value,
        help="How captured values are organized (default: naive)",
    )
    analyze_parser.add_argument(
        "--application-path",
        help="Directory holding the application's modules, added to PYTHONPATH",
    )
    analyze_parser.add_argument(
        "--source-path",
        help="Directory holding the original sources, added to PYTHONPATH after the application",
    )
    analyze_parser.add_argument(
        "--arg",
        action="append",
        default=[],
        dest="runtime_args",
        help="Argument passed to the instrumented program (repeatable)",
    )
    analyze_parser.add_argument(
        "--timeout",
        "-t",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"Run timeout in seconds (default: {DEFAULT_TIMEOUT_SECONDS})",
    )
    analyze_parser.add_argument(
        "--output-dir",
        "-o",
        default="./trace-output",
        help="Directory for trace artifacts (default: ./trace-output)",
    )

    # generate subcommand
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a test module from analysis artifacts",
    )
    generate_parser.add_argument(
        "--analysis",
        required=True,
        help="analysis.json written by the analyze command",
    )
    generate_parser.add_argument(
        "--method",
        help="Target method reference (default: taken from the identifier mapping)",
    )
    generate_parser.add_argument(
        "--static",
        action="store_true",
        help="With --method: the target is called on its class",
    )
    generate_parser.add_argument(
        "--strategy",
        choices=list(STRATEGIES),
        help=(
            f"Generation strategy (default: {DEFAULT_STRATEGY}, or "
            "trace-based-advanced for analyses run with --mode temporal)"
        ),
    )
    generate_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"TOML file with a [generation] table (default: {DEFAULT_CONFIG_FILE})",
    )
    generate_parser.add_argument(
        "--framework",
        choices=[f.value for f in TestFramework],
        help="Test framework for emitted tests (default: pytest)",
    )
    generate_parser.add_argument(
        "--naming",
        choices=[n.value for n in NamingStrategy],
        help="Test naming strategy (default: descriptive)",
    )
    generate_parser.add_argument(
        "--max-tests",
        type=int,
        help="Maximum number of generated tests (default: 50)",
    )
    generate_parser.add_argument(
        "--output-dir",
        "-o",
        default="./generated-tests",
        help="Directory for the generated module (default: ./generated-tests)",
    )

    # inspect subcommand
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Print a summary of a recorded trace",
    )
    inspect_parser.add_argument("--trace", required=True, help="Trace file (trace.json)")
    inspect_parser.add_argument("--mapping", required=True, help="Identifier mapping file")
    inspect_parser.add_argument(
        "--method",
        help="Target method reference (default: taken from the identifier mapping)",
    )
    inspect_parser.add_argument(
        "--static",
        action="store_true",
        help="With --method: the target is called on its class",
    )
    inspect_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"TOML file with a [generation] table (default: {DEFAULT_CONFIG_FILE})",
    )

    return parser


def resolve_target_method(
    reference: str | None, mapping: IdentifierMapping, is_static: bool = False
) -> MethodIdentifier:
    """Pick the target method from the command line or the mapping's return value."""
    if reference:
        return parse_method_reference(reference, is_static=is_static)
    for identifier in mapping.of_kind(ValueKind.RETURN_VALUE):
        return identifier.method
    raise ConfigurationError(
        "Cannot determine the target method: pass --method or capture the return value"
    )


async def run_analyze(parsed: argparse.Namespace) -> int:
    """Run the analyze command."""
    run_configuration = plan_run_configuration(
        parsed.method,
        parsed.output_dir,
        parameters=parsed.param,
        fields=parsed.field,
        capture_return=not parsed.no_return,
        is_static=parsed.static,
        source_path=parsed.source_path,
        application_path=parsed.application_path,
        runtime_arguments=parsed.runtime_args,
        trace_mode=parsed.mode,
    )
    instrumentation = load_instrumentation_result(parsed.manifest)
    logger.info(f"Analyzing {run_configuration.target_method.signature}")

    result, path = await run_analysis(run_configuration, instrumentation, parsed.timeout)
    print(result.to_json())
    print(f"Analysis written to: {path}", file=sys.stderr)
    return 0


def run_generate(parsed: argparse.Namespace) -> int:
    """Run the generate command."""
    analysis = AnalysisResult.from_file(parsed.analysis)
    mapping = load_identifier_mapping(analysis.identifiers_mapping_path)
    context = load_generation_context(
        parsed.config,
        resolve_target_method(parsed.method, mapping, parsed.static),
        parsed.output_dir,
        test_framework=parsed.framework,
        naming_strategy=parsed.naming,
        max_test_count=parsed.max_tests,
    )

    result = generate_tests(analysis, context, parsed.strategy)
    print(result.to_json())
    print(
        f"Generated {result.test_count} tests with {len(result.warnings)} warnings: "
        f"{result.test_module}",
        file=sys.stderr,
    )
    return 0


def run_inspect(parsed: argparse.Namespace) -> int:
    """Run the inspect command."""
    mapping = load_identifier_mapping(parsed.mapping)
    trace = load_trace(parsed.trace)
    context = load_generation_context(
        parsed.config, resolve_target_method(parsed.method, mapping, parsed.static), "."
    )
    print(summarize_trace(trace, mapping, context), end="")
    return 0


async def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for success, non-zero for fatal errors)
    """
    try:
        parsed = create_parser().parse_args(args)
    except SystemExit as e:
        return e.code if e.code else 1

    setup_logging(parsed.verbose)

    if parsed.command is None:
        create_parser().print_help(sys.stderr)
        return 1

    try:
        if parsed.command == "analyze":
            return await run_analyze(parsed)
        elif parsed.command == "generate":
            return run_generate(parsed)
        elif parsed.command == "inspect":
            return run_inspect(parsed)
    except TraceTestgenError as e:
        logger.error(f"{parsed.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1


def main():
    """Entry point for the CLI."""
    exit_code = asyncio.run(run_cli(sys.argv[1:]))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
