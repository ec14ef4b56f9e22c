"""Test generation options: defaults, validation and TOML loading."""

import logging
import sys
import tomllib
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

from trace_testgen.errors import ConfigurationError
from trace_testgen.identifiers.models import MethodIdentifier, parse_method_reference

logger = logging.getLogger(__name__)

# Distinguished "no limit" value; an explicit 0 means "generate nothing"
UNBOUNDED = sys.maxsize

DEFAULT_CONFIG_FILE = "testgen.toml"


class TestFramework(str, Enum):
    """Test framework idiom used for emitted tests."""

    __test__ = False

    PYTEST = "pytest"
    UNITTEST = "unittest"


class NamingStrategy(str, Enum):
    """How generated test functions are named."""

    DESCRIPTIVE = "descriptive"
    SEQUENTIAL = "sequential"
    BDD = "bdd"


class EqualityStrategy(str, Enum):
    """How composite return values are compared."""

    FIELDS = "fields"  # one assertion per captured attribute
    EQUALITY = "equality"  # == against a reconstructed object
    REPR = "repr"  # compare repr() text


LIMIT_OPTIONS = (
    "max_test_count",
    "max_argument_combinations",
    "max_field_combinations",
    "max_state_change_samples",
    "max_values_per_variable",
    "max_execution_scenarios",
)


@dataclass(frozen=True)
class TestGenerationContext:
    """Options shared by all generation strategies. Immutable once created."""

    __test__ = False

    target_method: MethodIdentifier
    output_directory: Path
    test_framework: TestFramework = TestFramework.PYTEST
    max_test_count: int = 50
    generate_edge_cases: bool = True
    generate_negative_tests: bool = True
    naming_strategy: NamingStrategy = NamingStrategy.DESCRIPTIVE
    equality_strategy: EqualityStrategy = EqualityStrategy.FIELDS
    max_argument_combinations: int = UNBOUNDED
    max_field_combinations: int = UNBOUNDED
    max_state_change_samples: int = UNBOUNDED
    max_values_per_variable: int = UNBOUNDED
    max_execution_scenarios: int = UNBOUNDED
    cross_product: bool = False

    @property
    def target_class_name(self) -> str | None:
        return self.target_method.class_name

    @property
    def module_name(self) -> str:
        return self.target_method.module


def _coerce_enum(enum_type: type[Enum], value: Any, option: str) -> Enum:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_type)
        raise ConfigurationError(f"Invalid {option}: {value!r}. Choose one of: {choices}") from e


def _coerce_limit(value: Any, option: str) -> int:
    if value is None or (isinstance(value, str) and value.lower() in ("unbounded", "none", "")):
        return UNBOUNDED
    if isinstance(value, bool):
        raise ConfigurationError(f"{option} must be an integer, got {value!r}")
    try:
        limit = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{option} must be an integer, got {value!r}") from e
    if limit < 0:
        raise ConfigurationError(f"{option} must not be negative, got {limit}")
    return limit


def create_generation_context(
    target_method: MethodIdentifier | str, output_directory: Path | str, **options: Any
) -> TestGenerationContext:
    """Validate options and build a TestGenerationContext.

    Args:
        target_method: Method identifier or reference string
        output_directory: Where generated tests are written
        **options: Any other TestGenerationContext field; limits accept
            ``"unbounded"`` or None for no limit

    Returns:
        The validated context

    Raises:
        ConfigurationError: If an option is unknown or invalid
    """
    known = {f.name for f in fields(TestGenerationContext)} - {"target_method", "output_directory"}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(f"Unknown generation options: {', '.join(unknown)}")

    if isinstance(target_method, str):
        target_method = parse_method_reference(target_method)
    if target_method is None:
        raise ConfigurationError("Generation context needs a target method")
    if output_directory is None or str(output_directory) == "":
        raise ConfigurationError("Generation context needs an output directory")

    values: dict[str, Any] = {}
    for option, value in options.items():
        if option in LIMIT_OPTIONS:
            values[option] = _coerce_limit(value, option)
        elif option == "test_framework":
            values[option] = _coerce_enum(TestFramework, value, option)
        elif option == "naming_strategy":
            values[option] = _coerce_enum(NamingStrategy, value, option)
        elif option == "equality_strategy":
            values[option] = _coerce_enum(EqualityStrategy, value, option)
        else:
            if not isinstance(value, bool):
                raise ConfigurationError(f"{option} must be true or false, got {value!r}")
            values[option] = value

    context = TestGenerationContext(
        target_method=target_method, output_directory=Path(output_directory), **values
    )
    logger.debug(f"Generation context for {target_method.signature}: {values}")
    return context


def load_generation_options(path: Path | str) -> dict[str, Any]:
    """Read the ``[generation]`` table of a TOML file.

    A missing file yields no options.

    Raises:
        ConfigurationError: If the file is not valid TOML
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No configuration file at {path}; using defaults")
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    options = raw.get("generation", {})
    if not isinstance(options, dict):
        raise ConfigurationError(f"[generation] in {path} must be a table")
    logger.info(f"Loaded {len(options)} generation options from {path}")
    return dict(options)


def load_generation_context(
    path: Path | str,
    target_method: MethodIdentifier | str,
    output_directory: Path | str,
    **overrides: Any,
) -> TestGenerationContext:
    """Build a context from a TOML file, with keyword overrides winning."""
    options = load_generation_options(path)
    options.update({k: v for k, v in overrides.items() if v is not None})
    return create_generation_context(target_method, output_directory, **options)


def with_options(context: TestGenerationContext, **options: Any) -> TestGenerationContext:
    """Return a validated copy of a context with some options changed."""
    current = {
        f.name: getattr(context, f.name)
        for f in fields(TestGenerationContext)
        if f.name not in ("target_method", "output_directory")
    }
    current.update(options)
    return create_generation_context(context.target_method, context.output_directory, **current)
