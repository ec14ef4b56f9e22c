"""Render the probe statements that read captured values at runtime.

The external instrumentor pastes these statements into its entry and exit
hooks. Each statement binds the value to a local whose name ends with the
identifier's internal id, so names never clash inside one hook body.
"""

import logging
import re
from dataclasses import dataclass

from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    FieldIdentifier,
    LocalVariableIdentifier,
    ReturnValueIdentifier,
    ValueIdentifier,
    is_void_return,
    requires_after_capture,
)

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")


def _type_prefix(type_name: str | None) -> str:
    """Reduce a type name to a lowercase identifier fragment."""
    if not type_name:
        return "value"
    head, bracket, tail = type_name.partition("[")
    text = head.rsplit(".", 1)[-1] + bracket + tail
    prefix = _NON_WORD.sub("_", text).strip("_").lower()
    return prefix or "value"


def local_name(identifier: ValueIdentifier) -> str:
    """Return the generated local name for a captured value."""
    if isinstance(identifier, ArgumentIdentifier):
        role = f"arg{identifier.slot}"
    elif isinstance(identifier, LocalVariableIdentifier):
        role = f"local{identifier.slot}"
    elif isinstance(identifier, FieldIdentifier):
        role = identifier.name
    elif isinstance(identifier, ReturnValueIdentifier):
        role = "return"
    else:
        raise TypeError(f"Unknown identifier variant: {type(identifier).__name__}")
    return f"{_type_prefix(identifier.type)}_{role}_{identifier.internal_id}"


def emit_code(identifier: ValueIdentifier) -> str:
    """Render the entry-hook statement that reads the value.

    Return values have no entry-hook statement and render as an empty string.
    """
    name = local_name(identifier)

    if isinstance(identifier, ArgumentIdentifier):
        return f"{name} = probe.argument({identifier.slot}, {identifier.type})"
    elif isinstance(identifier, LocalVariableIdentifier):
        return (
            f"{name} = probe.local_variable("
            f"{identifier.slot}, {identifier.name!r}, {identifier.type})"
        )
    elif isinstance(identifier, FieldIdentifier):
        owner = identifier.owner.qualified_name
        if identifier.is_static:
            return f"{name} = probe.static_field({owner}, {identifier.name!r}, {identifier.type})"
        return (
            f"{name} = probe.instance_field("
            f"probe.this(), {owner}, {identifier.name!r}, {identifier.type})"
        )
    elif isinstance(identifier, ReturnValueIdentifier):
        return ""
    raise TypeError(f"Unknown identifier variant: {type(identifier).__name__}")


def emit_exit_code(identifier: ValueIdentifier) -> str:
    """Render the exit-hook statement that reads a return value.

    Only non-void return values produce a statement.
    """
    if not requires_after_capture(identifier) or is_void_return(identifier):
        return ""
    return f"{local_name(identifier)} = probe.return_value({identifier.type})"


def emit_collector_code(identifier: ValueIdentifier) -> str:
    """Render the statement that hands a read value to the collector."""
    if isinstance(identifier, ReturnValueIdentifier) and is_void_return(identifier):
        return ""
    return f"collector.collect({identifier.internal_id}, {local_name(identifier)})"


@dataclass(frozen=True)
class ProbePlan:
    """Statements for the entry and exit hooks of one target method."""

    entry: tuple[str, ...]
    exit: tuple[str, ...]

    def render(self) -> str:
        """Render both hook bodies as a commented text block."""
        lines = ["# entry"]
        lines.extend(self.entry or ("pass",))
        lines.append("# exit")
        lines.extend(self.exit or ("pass",))
        return "\n".join(lines) + "\n"


def build_probe_plan(identifiers: list[ValueIdentifier] | tuple[ValueIdentifier, ...]) -> ProbePlan:
    """Split identifiers between the entry and exit hooks.

    Args:
        identifiers: Identifiers requested for the run, in order

    Returns:
        ProbePlan with read and collect statements for each hook
    """
    entry: list[str] = []
    exit_: list[str] = []

    for identifier in identifiers:
        if requires_after_capture(identifier):
            read = emit_exit_code(identifier)
            target = exit_
        else:
            read = emit_code(identifier)
            target = entry
        if not read:
            logger.debug(f"No probe needed for identifier {identifier.internal_id}")
            continue
        target.append(read)
        target.append(emit_collector_code(identifier))

    logger.info(f"Probe plan: {len(entry) // 2} entry reads, {len(exit_) // 2} exit reads")
    return ProbePlan(entry=tuple(entry), exit=tuple(exit_))
