"""Build and validate the immutable configuration for one instrumented run."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from trace_testgen.errors import ConfigurationError
from trace_testgen.identifiers import models
from trace_testgen.identifiers.allocator import IdAllocator
from trace_testgen.identifiers.mapping import IdentifierMapping
from trace_testgen.identifiers.models import (
    ArgumentIdentifier,
    ClassIdentifier,
    FieldIdentifier,
    MethodIdentifier,
    ReturnValueIdentifier,
    ValueIdentifier,
    parse_method_reference,
)

logger = logging.getLogger(__name__)


class TraceMode(str, Enum):
    """How captured values are organized for generation."""

    NAIVE = "naive"
    TEMPORAL = "temporal"


@dataclass(frozen=True)
class RunConfiguration:
    """What to capture from which method. Immutable once created."""

    target_method: MethodIdentifier
    identifiers: tuple[ValueIdentifier, ...]
    output_directory: Path
    source_path: Path | None = None
    application_path: Path | None = None
    runtime_arguments: tuple[str, ...] = ()
    trace_mode: TraceMode = TraceMode.NAIVE

    @property
    def requires_mapping(self) -> bool:
        """True if any value was requested, so a mapping artifact is mandatory."""
        return bool(self.identifiers)

    def identifier_mapping(self) -> IdentifierMapping:
        return IdentifierMapping(self.identifiers)


def create_run_configuration(
    target_method: MethodIdentifier,
    identifiers: list[ValueIdentifier] | tuple[ValueIdentifier, ...],
    output_directory: Path | str,
    source_path: Path | str | None = None,
    application_path: Path | str | None = None,
    runtime_arguments: list[str] | tuple[str, ...] = (),
    trace_mode: TraceMode | str = TraceMode.NAIVE,
) -> RunConfiguration:
    """Validate inputs and build a RunConfiguration.

    Identifiers form an ordered set: repeated internal ids keep their first
    position.

    Raises:
        ConfigurationError: If any input is invalid
    """
    if target_method is None:
        raise ConfigurationError("Run configuration needs a target method")
    if output_directory is None or str(output_directory) == "":
        raise ConfigurationError("Run configuration needs an output directory")

    try:
        mode = TraceMode(trace_mode)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid trace mode: {trace_mode!r}. Supported modes: naive, temporal"
        ) from e

    ordered: dict[int, ValueIdentifier] = {}
    for identifier in identifiers:
        existing = ordered.get(identifier.internal_id)
        if existing is not None and existing != identifier:
            raise ConfigurationError(
                f"Two different identifiers share internal id {identifier.internal_id}"
            )
        ordered.setdefault(identifier.internal_id, identifier)

    _validate_against_method(target_method, list(ordered.values()))

    configuration = RunConfiguration(
        target_method=target_method,
        identifiers=tuple(ordered.values()),
        output_directory=Path(output_directory),
        source_path=Path(source_path) if source_path else None,
        application_path=Path(application_path) if application_path else None,
        runtime_arguments=tuple(runtime_arguments),
        trace_mode=mode,
    )
    logger.info(
        f"Run configuration for {target_method.signature}: "
        f"{len(configuration.identifiers)} identifiers, mode={mode.value}"
    )
    return configuration


def _validate_against_method(method: MethodIdentifier, identifiers: list[ValueIdentifier]) -> None:
    """Check slots and return values against the declared signature."""
    declared = len(method.parameter_types)
    slots_seen: set[int] = set()

    for identifier in identifiers:
        if isinstance(identifier, ArgumentIdentifier):
            if declared and identifier.slot >= declared:
                raise ConfigurationError(
                    f"Argument slot {identifier.slot} is out of range for "
                    f"{method.signature} ({declared} parameters)"
                )
            if identifier.slot in slots_seen:
                raise ConfigurationError(f"Argument slot {identifier.slot} requested twice")
            slots_seen.add(identifier.slot)
        elif isinstance(identifier, ReturnValueIdentifier):
            if identifier.method != method:
                raise ConfigurationError(
                    f"Return value {identifier.name} belongs to {identifier.method.signature}, "
                    f"not {method.signature}"
                )


def parse_parameter_spec(
    spec: str, allocator: IdAllocator, method: MethodIdentifier | None = None
) -> ArgumentIdentifier:
    """Parse ``slot:type`` or ``slot:type:name`` into an argument identifier.

    When the type is omitted (``slot:``) it is taken from the method signature.
    """
    parts = [p.strip() for p in spec.split(":")]
    if len(parts) not in (2, 3):
        raise ConfigurationError(
            f"Invalid parameter format: {spec!r}. Expected format: slot:type (e.g., 0:int)"
        )
    try:
        slot = int(parts[0])
    except ValueError as e:
        raise ConfigurationError(f"Invalid parameter slot in {spec!r}") from e

    type_name = parts[1]
    if not type_name and method is not None and 0 <= slot < len(method.parameter_types):
        type_name = method.parameter_types[slot]
    name = parts[2] if len(parts) == 3 else None
    return models.argument(allocator, slot, type_name, name)


def parse_field_spec(spec: str, allocator: IdAllocator, owner: ClassIdentifier | None) -> FieldIdentifier:
    """Parse ``type:name`` or ``static:type:name`` into a field identifier."""
    parts = [p.strip() for p in spec.split(":")]
    is_static = False
    if len(parts) == 3 and parts[0] == "static":
        is_static = True
        parts = parts[1:]
    if len(parts) != 2:
        raise ConfigurationError(
            f"Invalid field format: {spec!r}. Expected format: type:name or static:type:name"
        )
    return models.field(allocator, owner, parts[1], parts[0], is_static)


def plan_run_configuration(
    method_reference: str,
    output_directory: Path | str,
    parameters: list[str] | tuple[str, ...] = (),
    fields: list[str] | tuple[str, ...] = (),
    capture_return: bool = True,
    is_static: bool = False,
    allocator: IdAllocator | None = None,
    **options,
) -> RunConfiguration:
    """Plan a run from CLI-style strings.

    Args:
        method_reference: Target reference, e.g. ``shop.cart:Cart.total() -> float``
        output_directory: Where analysis artifacts go
        parameters: Argument specs (``slot:type``); all declared parameters if empty
        fields: Field specs (``type:name`` or ``static:type:name``)
        capture_return: Whether to capture the return value
        is_static: Whether the target is called on the class
        allocator: Id allocator for this planning session; a fresh one by default
        **options: Passed through to :func:`create_run_configuration`

    Returns:
        The validated RunConfiguration
    """
    allocator = allocator or IdAllocator()
    method = parse_method_reference(method_reference, is_static=is_static)

    identifiers: list[ValueIdentifier] = []
    if parameters:
        identifiers.extend(parse_parameter_spec(p, allocator, method) for p in parameters)
    else:
        identifiers.extend(
            models.argument(allocator, slot, type_name)
            for slot, type_name in enumerate(method.parameter_types)
        )

    if fields:
        owner = method.owner
        identifiers.extend(parse_field_spec(f, allocator, owner) for f in fields)

    if capture_return:
        identifiers.append(models.return_value(allocator, method))

    return create_run_configuration(method, identifiers, output_directory, **options)
