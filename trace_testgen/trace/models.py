"""Data models for capture artifacts, traces and analysis output."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trace_testgen.errors import CaptureError, TraceIntegrityError
from trace_testgen.identifiers.run_configuration import TraceMode

logger = logging.getLogger(__name__)

TRACE_FORMAT = "trace-testgen/trace"
TRACE_VERSION = 1


@dataclass(frozen=True)
class InstrumentationResult:
    """Artifacts handed over by the external instrumentor."""

    primary_artifact: Path | None
    additional_artifacts: tuple[Path, ...] = ()
    identifiers_mapping_path: Path | None = None
    results_list_path: Path | None = None


def load_instrumentation_result(manifest_path: Path) -> InstrumentationResult:
    """Load an instrumentation manifest written by the instrumentor.

    The manifest is a JSON object with ``primary_artifact``,
    ``additional_artifacts``, ``identifiers_mapping_path`` and
    ``results_list_path``. Relative paths resolve against the manifest's
    directory.

    Raises:
        CaptureError: If the manifest is missing or unreadable
    """
    manifest_path = Path(manifest_path)
    try:
        data = json.loads(manifest_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise CaptureError(f"Unreadable instrumentation manifest {manifest_path}: {e}") from e

    base = manifest_path.parent

    def _path(value: str | None) -> Path | None:
        if not value:
            return None
        path = Path(value)
        return path if path.is_absolute() else base / path

    result = InstrumentationResult(
        primary_artifact=_path(data.get("primary_artifact")),
        additional_artifacts=tuple(
            _path(p) for p in data.get("additional_artifacts", []) if p
        ),
        identifiers_mapping_path=_path(data.get("identifiers_mapping_path")),
        results_list_path=_path(data.get("results_list_path")),
    )
    logger.info(f"Loaded instrumentation manifest {manifest_path}")
    return result


@dataclass(frozen=True)
class Invocation:
    """One captured execution of the target method.

    ``entry`` maps internal ids to values read at method entry. ``exit`` maps
    return-value ids to values read at normal exit; it is None when the call
    did not return normally.
    """

    index: int
    entry: dict[int, Any] = field(default_factory=dict)
    exit: dict[int, Any] | None = None
    identity: str | None = None
    exception: str | None = None

    @property
    def returned_normally(self) -> bool:
        return self.exit is not None and self.exception is None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "identity": self.identity,
            "entry": {str(k): v for k, v in self.entry.items()},
            "exit": None if self.exit is None else {str(k): v for k, v in self.exit.items()},
            "exception": self.exception,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Invocation":
        exit_data = data.get("exit")
        return cls(
            index=int(data["index"]),
            identity=data.get("identity"),
            entry={int(k): v for k, v in data.get("entry", {}).items()},
            exit=None if exit_data is None else {int(k): v for k, v in exit_data.items()},
            exception=data.get("exception"),
        )


@dataclass(frozen=True)
class Trace:
    """Captured invocations, ordered by invocation index. Read-only."""

    invocations: tuple[Invocation, ...] = ()

    def __post_init__(self):
        ordered = tuple(sorted(self.invocations, key=lambda i: i.index))
        indices = [i.index for i in ordered]
        if len(set(indices)) != len(indices):
            raise TraceIntegrityError("Trace contains duplicate invocation indices")
        object.__setattr__(self, "invocations", ordered)

    def __len__(self) -> int:
        return len(self.invocations)

    def __iter__(self):
        return iter(self.invocations)

    @property
    def is_empty(self) -> bool:
        return not self.invocations

    def identities(self) -> list[str | None]:
        """Distinct identity tokens, ordered by first appearance."""
        seen: dict[str | None, None] = {}
        for invocation in self.invocations:
            seen.setdefault(invocation.identity, None)
        return list(seen)

    def by_identity(self) -> dict[str | None, list[Invocation]]:
        """Group invocations by identity token.

        Groups are ordered by each identity's first invocation index, and
        invocations inside a group by index. Invocations without an identity
        share the ``None`` group.
        """
        groups: dict[str | None, list[Invocation]] = {}
        for invocation in self.invocations:
            groups.setdefault(invocation.identity, []).append(invocation)
        return groups

    def to_dict(self) -> dict:
        return {
            "format": TRACE_FORMAT,
            "version": TRACE_VERSION,
            "invocations": [i.to_dict() for i in self.invocations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Trace":
        if not isinstance(data, dict) or data.get("format") != TRACE_FORMAT:
            raise TraceIntegrityError("Not a trace document")
        if data.get("version") != TRACE_VERSION:
            raise TraceIntegrityError(f"Unsupported trace version: {data.get('version')!r}")
        try:
            return cls(tuple(Invocation.from_dict(i) for i in data.get("invocations", [])))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TraceIntegrityError(f"Malformed trace document: {e}") from e


def save_trace(trace: Trace, path: Path) -> Path:
    """Write a trace as JSON and return the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(trace.to_dict(), indent=2))
    logger.info(f"Wrote trace with {len(trace)} invocations to {path}")
    return path


def load_trace(path: Path) -> Trace:
    """Load a trace written by :func:`save_trace`.

    Raises:
        CaptureError: If the file is missing or not valid JSON
        TraceIntegrityError: If the document is not a usable trace
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError as e:
        raise CaptureError(f"Trace file not found: {path}", phase="loading") from e
    except (OSError, json.JSONDecodeError) as e:
        raise CaptureError(f"Unreadable trace file {path}: {e}", phase="loading") from e

    trace = Trace.from_dict(data)
    logger.info(f"Loaded trace with {len(trace)} invocations from {path}")
    return trace


@dataclass(frozen=True)
class AnalysisResult:
    """Paths to the artifacts produced by analysis.

    Generation reads these files, so analysis and generation can run at
    different times or on different machines. ``trace_mode`` records how the
    run was planned and selects the default generation strategy.
    """

    trace_path: Path
    identifiers_mapping_path: Path
    output_directory: Path
    trace_mode: TraceMode = TraceMode.NAIVE

    def to_dict(self) -> dict:
        return {
            "trace_path": str(self.trace_path),
            "identifiers_mapping_path": str(self.identifiers_mapping_path),
            "output_directory": str(self.output_directory),
            "trace_mode": self.trace_mode.value,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_file(cls, path: Path) -> "AnalysisResult":
        """Load an analysis result saved with :meth:`to_json`.

        Raises:
            CaptureError: If the file is missing or incomplete
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
            return cls(
                trace_path=Path(data["trace_path"]),
                identifiers_mapping_path=Path(data["identifiers_mapping_path"]),
                output_directory=Path(data["output_directory"]),
                trace_mode=TraceMode(data.get("trace_mode", TraceMode.NAIVE.value)),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CaptureError(f"Unreadable analysis result {path}: {e}", phase="loading") from e
