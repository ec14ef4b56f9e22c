"""Identifier model: what to capture and how to read it at a probe point."""

from trace_testgen.identifiers.allocator import IdAllocator
from trace_testgen.identifiers.mapping import (
    IdentifierMapping,
    load_identifier_mapping,
    save_identifier_mapping,
)
from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    ClassIdentifier,
    FieldIdentifier,
    LocalVariableIdentifier,
    MethodIdentifier,
    ReturnValueIdentifier,
    ValueIdentifier,
    ValueKind,
    argument,
    field,
    is_void_return,
    local_variable,
    parse_method_reference,
    requires_after_capture,
    return_value,
)
from trace_testgen.identifiers.probe_code import (
    ProbePlan,
    build_probe_plan,
    emit_code,
    emit_collector_code,
    emit_exit_code,
)
from trace_testgen.identifiers.run_configuration import (
    RunConfiguration,
    TraceMode,
    create_run_configuration,
    plan_run_configuration,
)

__all__ = [
    # Models
    "ValueKind",
    "ClassIdentifier",
    "MethodIdentifier",
    "ArgumentIdentifier",
    "FieldIdentifier",
    "ReturnValueIdentifier",
    "LocalVariableIdentifier",
    "ValueIdentifier",
    "IdAllocator",
    # Factories
    "argument",
    "field",
    "return_value",
    "local_variable",
    "parse_method_reference",
    "requires_after_capture",
    "is_void_return",
    # Probe code
    "emit_code",
    "emit_exit_code",
    "emit_collector_code",
    "build_probe_plan",
    "ProbePlan",
    # Mapping
    "IdentifierMapping",
    "save_identifier_mapping",
    "load_identifier_mapping",
    # Run configuration
    "RunConfiguration",
    "TraceMode",
    "create_run_configuration",
    "plan_run_configuration",
]
