"""Read raw per-invocation capture records and assemble a Trace.

The instrumented program writes one JSON capture file per invocation and
appends its path to a results list, one path per line, in invocation order.
A capture file looks like::

    {"invocation": 3, "identity": "Counter@1",
     "entry": [{"id": 1, "value": 5}, {"id": 2, "value": 0}],
     "exit": [{"id": 3, "value": 6}],
     "exception": null}

Values are referenced only by internal id; the identifier mapping gives
them meaning.
"""

import json
import logging
from pathlib import Path
from typing import Any

from trace_testgen.errors import CaptureError, TraceIntegrityError
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.models import (
    ReturnValueIdentifier,
    is_void_return,
    requires_after_capture,
)
from trace_testgen.trace.models import Invocation, Trace

logger = logging.getLogger(__name__)


def read_results_list(path: Path) -> list[Path]:
    """Read capture file paths from a results list.

    Blank lines are skipped; relative paths resolve against the list's
    directory.

    Raises:
        CaptureError: If the list exists but cannot be read
    """
    path = Path(path)
    try:
        lines = path.read_text().splitlines()
    except OSError as e:
        raise CaptureError(f"Unreadable results list {path}: {e}") from e

    paths = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        capture_path = Path(line)
        paths.append(capture_path if capture_path.is_absolute() else path.parent / capture_path)

    logger.debug(f"Results list {path} names {len(paths)} capture files")
    return paths


def read_capture_file(path: Path) -> dict:
    """Load one raw capture record.

    Raises:
        CaptureError: If the file is missing, unreadable or not a JSON object
    """
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise CaptureError(f"Unreadable capture record {path}: {e}") from e
    if not isinstance(data, dict):
        raise CaptureError(f"Capture record {path} is not a JSON object")
    return data


def _read_bindings(entries: Any, source: str) -> dict[int, Any]:
    """Turn ``[{"id": .., "value": ..}]`` into ``{id: value}``."""
    if not isinstance(entries, list):
        raise CaptureError(f"Capture record {source}: bindings must be a list")

    bindings: dict[int, Any] = {}
    for entry in entries:
        try:
            internal_id = int(entry["id"])
            value = entry.get("value")
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CaptureError(f"Capture record {source}: malformed binding {entry!r}") from e
        bindings[internal_id] = value
    return bindings


def parse_capture_record(
    data: dict, mapping: IdentifierMapping, default_index: int, source: str = "<record>"
) -> Invocation:
    """Resolve a raw record against the mapping and build an Invocation.

    Args:
        data: The raw record
        mapping: Identifier mapping written at planning time
        default_index: Invocation index to use when the record has none
        source: Where the record came from, for error messages

    Returns:
        The resolved Invocation

    Raises:
        CaptureError: If the record is structurally malformed
        TraceIntegrityError: If an id is unknown or bound in the wrong phase
    """
    entry = _read_bindings(data.get("entry", []), source)
    raw_exit = data.get("exit")
    exit_bindings = None if raw_exit is None else _read_bindings(raw_exit, source)

    for internal_id in entry:
        identifier = mapping.resolve(internal_id)
        if requires_after_capture(identifier):
            raise TraceIntegrityError(
                f"Capture record {source}: return value {internal_id} bound at method entry",
                internal_id=internal_id,
            )

    for internal_id in exit_bindings or {}:
        identifier = mapping.resolve(internal_id)
        if not requires_after_capture(identifier):
            raise TraceIntegrityError(
                f"Capture record {source}: {identifier.value_type.value} {internal_id} "
                "bound at method exit",
                internal_id=internal_id,
            )
        if is_void_return(identifier):
            raise TraceIntegrityError(
                f"Capture record {source}: void return value {internal_id} carries a value",
                internal_id=internal_id,
            )

    exception = data.get("exception")
    index = data.get("invocation", default_index)
    try:
        index = int(index)
    except (TypeError, ValueError) as e:
        raise CaptureError(f"Capture record {source}: invalid invocation index {index!r}") from e

    invocation = Invocation(
        index=index,
        entry=entry,
        exit=exit_bindings,
        identity=None if data.get("identity") is None else str(data["identity"]),
        exception=str(exception) if exception else None,
    )
    _log_missing_exit(invocation, mapping)
    return invocation


def _log_missing_exit(invocation: Invocation, mapping: IdentifierMapping) -> None:
    """Note invocations that did not return a declared non-void value."""
    for identifier in mapping:
        if not isinstance(identifier, ReturnValueIdentifier) or is_void_return(identifier):
            continue
        if invocation.exit is None or identifier.internal_id not in invocation.exit:
            logger.debug(
                f"Invocation {invocation.index} has no exit value for "
                f"{identifier.name}; recording it as an exceptional call"
            )


def assemble_trace(capture_paths: list[Path], mapping: IdentifierMapping) -> Trace:
    """Build a Trace from capture files listed in invocation order."""
    invocations = []
    for position, capture_path in enumerate(capture_paths):
        data = read_capture_file(capture_path)
        invocations.append(
            parse_capture_record(data, mapping, default_index=position, source=str(capture_path))
        )

    trace = Trace(tuple(invocations))
    logger.info(f"Assembled trace with {len(trace)} invocations")
    return trace


def load_trace_from_results(results_list_path: Path | None, mapping: IdentifierMapping) -> Trace:
    """Assemble the trace named by a results list.

    A missing results list means nothing was captured and yields an empty
    trace.
    """
    if results_list_path is None:
        logger.info("No results list provided; trace is empty")
        return Trace()
    results_list_path = Path(results_list_path)
    if not results_list_path.exists():
        logger.warning(f"Results list {results_list_path} was not written; trace is empty")
        return Trace()
    return assemble_trace(read_results_list(results_list_path), mapping)


def discard_partial_captures(results_list_path: Path | None) -> int:
    """Delete capture files and the results list left by an earlier or aborted run.

    Returns:
        Number of files removed
    """
    if results_list_path is None or not Path(results_list_path).exists():
        return 0

    removed = 0
    try:
        capture_paths = read_results_list(results_list_path)
    except CaptureError as e:
        logger.warning(f"Could not read partial results list: {e}")
        capture_paths = []

    for capture_path in capture_paths + [Path(results_list_path)]:
        try:
            capture_path.unlink()
            removed += 1
        except FileNotFoundError:
            continue

    logger.info(f"Discarded {removed} capture files named by {results_list_path}")
    return removed
