"""Errors raised while planning, capturing, analyzing and generating."""

from dataclasses import dataclass


class TraceTestgenError(Exception):
    """Base class for all errors raised by trace_testgen."""


class ConfigurationError(TraceTestgenError):
    """Invalid run configuration or generation context.

    Raised before any capture or generation work starts.
    """


class CaptureError(TraceTestgenError):
    """Capture artifacts are missing, unreadable, or execution timed out.

    Recoverable: the caller may re-run instrumentation and analysis.
    """

    def __init__(self, message: str, phase: str = "capture"):
        super().__init__(message)
        self.phase = phase


class TraceIntegrityError(TraceTestgenError):
    """A capture record does not agree with the identifier mapping."""

    def __init__(self, message: str, internal_id: int | None = None):
        super().__init__(message)
        self.internal_id = internal_id


@dataclass(frozen=True)
class GenerationWarning:
    """A non-fatal problem encountered while generating a scenario."""

    message: str
    invocation_index: int | None = None
    phase: str = "generation"  # "generation", "emission"
