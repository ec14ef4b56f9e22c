"""Compact text summary of a trace.

This is what ``trace-testgen inspect`` prints and what an external
AI-assisted strategy receives as its prompt material.
"""

import json
import logging
from typing import Any

from trace_testgen.config import UNBOUNDED, TestGenerationContext
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.models import ValueKind, is_void_return
from trace_testgen.trace.models import Invocation, Trace
from trace_testgen.trace.snapshot import is_snapshot, to_snapshot

logger = logging.getLogger(__name__)


def format_value(value: Any) -> str:
    """Short display form of a captured value."""
    if is_snapshot(value):
        return str(to_snapshot(value))
    if isinstance(value, str):
        return repr(value)
    return json.dumps(value, default=repr)


def distinct_values(trace: Trace, internal_id: int, limit: int = UNBOUNDED) -> list[Any]:
    """Distinct values bound to an id, in first-seen order, at most ``limit``."""
    seen: dict[str, Any] = {}
    for invocation in trace:
        for bindings in (invocation.entry, invocation.exit or {}):
            if internal_id not in bindings:
                continue
            key = json.dumps(bindings[internal_id], sort_keys=True, default=repr)
            if key not in seen:
                if len(seen) >= limit:
                    return list(seen.values())
                seen[key] = bindings[internal_id]
    return list(seen.values())


def _outcome(invocation: Invocation, mapping: IdentifierMapping) -> str:
    if invocation.exception:
        return f"raises {invocation.exception}"
    returns = [
        r
        for r in mapping.of_kind(ValueKind.RETURN_VALUE)
        if not is_void_return(r)
    ]
    if not returns:
        return "returns" if invocation.exit is not None else "raises"
    exit_bindings = invocation.exit or {}
    if returns[0].internal_id not in exit_bindings:
        return "raises"
    return format_value(exit_bindings[returns[0].internal_id])


def format_invocation(invocation: Invocation, mapping: IdentifierMapping) -> str:
    """Render one invocation as ``#index [identity] inputs -> outcome``."""
    inputs = ", ".join(
        f"{mapping.resolve(internal_id).name}={format_value(value)}"
        for internal_id, value in sorted(invocation.entry.items())
    )
    identity = f" [{invocation.identity}]" if invocation.identity else ""
    return f"#{invocation.index}{identity} {inputs} -> {_outcome(invocation, mapping)}"


def summarize_trace(
    trace: Trace, mapping: IdentifierMapping, context: TestGenerationContext
) -> str:
    """Summarize observed values and executions of a trace.

    Args:
        trace: The analyzed trace
        mapping: Identifier mapping the trace refers to
        context: Supplies ``max_values_per_variable`` and
            ``max_execution_scenarios``

    Returns:
        Multi-line text with a values section and an executions section
    """
    lines = [f"Method: {context.target_method.signature}", f"Invocations: {len(trace)}", ""]

    lines.append("Observed values:")
    for identifier in mapping:
        values = distinct_values(trace, identifier.internal_id, context.max_values_per_variable)
        rendered = ", ".join(format_value(v) for v in values) or "(none)"
        lines.append(f"  {identifier.name} ({identifier.type}): {rendered}")

    lines.append("")
    lines.append("Executions:")
    shown = 0
    for invocation in trace:
        if shown >= context.max_execution_scenarios:
            lines.append(f"  ... {len(trace) - shown} more")
            break
        lines.append(f"  {format_invocation(invocation, mapping)}")
        shown += 1

    logger.debug(f"Summarized {shown} of {len(trace)} invocations")
    return "\n".join(lines) + "\n"
