"""Typed descriptions of capturable values and of the method under analysis."""

import keyword
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from trace_testgen.errors import ConfigurationError
from trace_testgen.identifiers.allocator import IdAllocator

logger = logging.getLogger(__name__)

# Declared return types that mean "returns nothing"
VOID_TYPE_NAMES = frozenset({"", "void", "None", "NoneType"})

# pkg.module:Class.method(int, str) -> int
METHOD_REFERENCE_PATTERN = re.compile(
    r"^\s*(?P<module>[A-Za-z_][\w.]*)"  # module path
    r"\s*:\s*(?P<path>[A-Za-z_][\w.]*)"  # Class.method or function
    r"\s*\((?P<params>.*)\)"  # parameter types
    r"(?:\s*->\s*(?P<returns>.+?))?\s*$"  # optional return type
)


class ValueKind(str, Enum):
    """The closed set of capturable value roles."""

    ARGUMENT = "argument"
    FIELD = "field"
    RETURN_VALUE = "return_value"
    LOCAL_VARIABLE = "local_variable"


@dataclass(frozen=True)
class ClassIdentifier:
    """A class, addressed by its defining module."""

    module: str
    class_name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.class_name}"


@dataclass(frozen=True)
class MethodIdentifier:
    """A target method or function and its parameter-type signature."""

    module: str
    method_name: str
    class_name: str | None = None
    parameter_types: tuple[str, ...] = ()
    return_type: str | None = None
    is_static: bool = False

    @property
    def owner(self) -> ClassIdentifier | None:
        if self.class_name is None:
            return None
        return ClassIdentifier(module=self.module, class_name=self.class_name)

    @property
    def display_name(self) -> str:
        """Name as written at a call site, e.g. ``Counter.increment``."""
        if self.class_name:
            return f"{self.class_name}.{self.method_name}"
        return self.method_name

    @property
    def signature(self) -> str:
        """Fully qualified signature, e.g. ``pkg.mod.Counter.increment(int)``."""
        params = ", ".join(self.parameter_types)
        return f"{self.module}.{self.display_name}({params})"

    @property
    def reference(self) -> str:
        """Reference string accepted by :func:`parse_method_reference`."""
        params = ", ".join(self.parameter_types)
        text = f"{self.module}:{self.display_name}({params})"
        if self.return_type is not None:
            text += f" -> {self.return_type}"
        return text


@dataclass(frozen=True)
class ArgumentIdentifier:
    """An argument of the target method, addressed by positional slot."""

    value_type: ClassVar[ValueKind] = ValueKind.ARGUMENT

    internal_id: int
    slot: int
    type: str
    name: str


@dataclass(frozen=True)
class FieldIdentifier:
    """An instance or class attribute read at method entry."""

    value_type: ClassVar[ValueKind] = ValueKind.FIELD

    internal_id: int
    owner: ClassIdentifier
    name: str
    type: str
    is_static: bool = False


@dataclass(frozen=True)
class ReturnValueIdentifier:
    """The value returned by the target method, read at method exit."""

    value_type: ClassVar[ValueKind] = ValueKind.RETURN_VALUE

    internal_id: int
    method: MethodIdentifier
    type: str | None
    name: str


@dataclass(frozen=True)
class LocalVariableIdentifier:
    """A local variable of the target method, addressed by slot."""

    value_type: ClassVar[ValueKind] = ValueKind.LOCAL_VARIABLE

    internal_id: int
    slot: int
    type: str
    name: str


ValueIdentifier = (
    ArgumentIdentifier | FieldIdentifier | ReturnValueIdentifier | LocalVariableIdentifier
)


def requires_after_capture(identifier: ValueIdentifier) -> bool:
    """Return True if the value can only be read at method exit.

    Only return values need an exit hook; everything else is read on entry.
    """
    if isinstance(identifier, ReturnValueIdentifier):
        return True
    if isinstance(identifier, ArgumentIdentifier | FieldIdentifier | LocalVariableIdentifier):
        return False
    raise TypeError(f"Unknown identifier variant: {type(identifier).__name__}")


def is_void_type(type_name: str | None) -> bool:
    return type_name is None or type_name.strip() in VOID_TYPE_NAMES


def is_void_return(identifier: ReturnValueIdentifier) -> bool:
    """Return True if the identified method returns nothing."""
    return is_void_type(identifier.type)


def argument(
    allocator: IdAllocator, slot: int, type_name: str, name: str | None = None
) -> ArgumentIdentifier:
    """Create an argument identifier.

    Args:
        allocator: Allocator owned by the planning session
        slot: Zero-based positional slot of the argument
        type_name: Declared type of the argument
        name: Parameter name; defaults to ``arg<slot>``

    Returns:
        A new ArgumentIdentifier with a fresh internal id

    Raises:
        ConfigurationError: If the slot is negative or the type is empty
    """
    if not isinstance(slot, int) or isinstance(slot, bool) or slot < 0:
        raise ConfigurationError(f"Argument slot must be a non-negative integer, got {slot!r}")
    if not type_name or not type_name.strip():
        raise ConfigurationError(f"Argument at slot {slot} needs a type name")
    return ArgumentIdentifier(
        internal_id=allocator.next_id(),
        slot=slot,
        type=type_name.strip(),
        name=name or f"arg{slot}",
    )


def field(
    allocator: IdAllocator,
    owner: ClassIdentifier | None,
    name: str,
    type_name: str,
    is_static: bool,
) -> FieldIdentifier:
    """Create a field identifier.

    Raises:
        ConfigurationError: If the owner, name, type or static flag is missing
    """
    if owner is None or not owner.class_name:
        raise ConfigurationError(f"Field '{name}' needs an owner class")
    if not name or not name.isidentifier():
        raise ConfigurationError(f"Invalid field name: {name!r}")
    if not type_name or not type_name.strip():
        raise ConfigurationError(f"Field '{name}' needs a type name")
    if not isinstance(is_static, bool):
        raise ConfigurationError(f"Field '{name}' needs an explicit static flag")
    return FieldIdentifier(
        internal_id=allocator.next_id(),
        owner=owner,
        name=name,
        type=type_name.strip(),
        is_static=is_static,
    )


def return_value(
    allocator: IdAllocator, method: MethodIdentifier | None, type_name: str | None = None
) -> ReturnValueIdentifier:
    """Create a return value identifier.

    The type defaults to the method's declared return type and may be void.

    Raises:
        ConfigurationError: If no owning method is given
    """
    if method is None:
        raise ConfigurationError("Return value needs an owning method")
    resolved_type = type_name if type_name is not None else method.return_type
    return ReturnValueIdentifier(
        internal_id=allocator.next_id(),
        method=method,
        type=resolved_type.strip() if resolved_type is not None else None,
        name=f"return_{method.method_name}",
    )


def local_variable(
    allocator: IdAllocator, slot: int, type_name: str, name: str
) -> LocalVariableIdentifier:
    """Create a local variable identifier."""
    if not isinstance(slot, int) or isinstance(slot, bool) or slot < 0:
        raise ConfigurationError(f"Local variable slot must be a non-negative integer, got {slot!r}")
    if not type_name or not type_name.strip():
        raise ConfigurationError(f"Local variable '{name}' needs a type name")
    if not name or not name.isidentifier():
        raise ConfigurationError(f"Invalid local variable name: {name!r}")
    return LocalVariableIdentifier(
        internal_id=allocator.next_id(),
        slot=slot,
        type=type_name.strip(),
        name=name,
    )


def split_type_list(text: str) -> list[str]:
    """Split a comma-separated type list, respecting brackets.

    ``"dict[str, int], str"`` splits into ``["dict[str, int]", "str"]``.
    """
    if not text.strip():
        return []

    types = []
    current = ""
    depth = 0

    for char in text:
        if char in "[(":
            depth += 1
            current += char
        elif char in "])":
            depth -= 1
            current += char
        elif char == "," and depth == 0:
            types.append(current.strip())
            current = ""
        else:
            current += char

    types.append(current.strip())
    return types


def parse_method_reference(reference: str, is_static: bool = False) -> MethodIdentifier:
    """Parse a method reference such as ``pkg.mod:Counter.add(int) -> int``.

    Args:
        reference: Reference string; the part before ``:`` is the module
        is_static: Whether the method is called on the class, not an instance

    Returns:
        The parsed MethodIdentifier

    Raises:
        ConfigurationError: If the reference is malformed
    """
    match = METHOD_REFERENCE_PATTERN.match(reference or "")
    if match is None:
        raise ConfigurationError(
            f"Invalid method reference: {reference!r}. "
            "Expected format: package.module:Class.method(types) or package.module:function(types)"
        )

    module = match.group("module")
    path = match.group("path").split(".")
    for part in module.split(".") + path:
        if not part or not part.isidentifier() or keyword.iskeyword(part):
            raise ConfigurationError(f"Invalid name segment {part!r} in method reference {reference!r}")

    parameter_types = tuple(split_type_list(match.group("params")))
    if any(not p for p in parameter_types):
        raise ConfigurationError(f"Empty parameter type in method reference {reference!r}")

    returns = match.group("returns")
    method = MethodIdentifier(
        module=module,
        method_name=path[-1],
        class_name=".".join(path[:-1]) or None,
        parameter_types=parameter_types,
        return_type=returns.strip() if returns else None,
        is_static=is_static,
    )
    logger.debug(f"Parsed method reference {reference!r} as {method.signature}")
    return method
