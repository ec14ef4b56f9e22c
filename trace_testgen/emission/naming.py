"""Test function names for generated scenarios."""

import logging
import re
from typing import Any

from trace_testgen.config import NamingStrategy
from trace_testgen.generators.models import ERROR_CATEGORY, ResultKind, TestScenario
from trace_testgen.identifiers.models import MethodIdentifier
from trace_testgen.trace.snapshot import is_marker, is_snapshot

logger = logging.getLogger(__name__)

MAX_VALUE_SLUG = 20
MAX_NAME_LENGTH = 100

_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def slugify(text: str) -> str:
    """Lowercase identifier fragment made of words joined by underscores."""
    text = _CAMEL_BOUNDARY.sub("_", text)
    return _NON_WORD.sub("_", text).strip("_").lower()


def value_slug(value: Any) -> str:
    """Short name fragment describing a captured value."""
    if value is None:
        slug = "none"
    elif isinstance(value, bool):
        slug = str(value).lower()
    elif isinstance(value, int | float):
        slug = slugify(str(value).replace(".", "_"))
        if value < 0:
            slug = f"neg_{slug}"
    elif isinstance(value, str):
        if is_marker(value):
            slug = "partial"
        else:
            slug = slugify(value) or ("empty_str" if not value else "str")
    elif isinstance(value, list):
        slug = f"list_of_{len(value)}" if value else "empty_list"
    elif is_snapshot(value):
        slug = slugify(value["$class"].rpartition(".")[2])
    elif isinstance(value, dict):
        slug = f"dict_of_{len(value)}" if value else "empty_dict"
    else:
        slug = slugify(type(value).__name__)
    return slug[:MAX_VALUE_SLUG].strip("_") or "value"


def method_slug(method: MethodIdentifier) -> str:
    return slugify(method.method_name) or "call"


def _inputs_slug(scenario: TestScenario) -> str:
    if not scenario.arguments:
        return "no_args"
    return "_".join(value_slug(b.value) for b in scenario.arguments)


def _outcome_slug(scenario: TestScenario) -> str:
    if scenario.expected_unknown:
        return "runs"
    if scenario.result_kind is ResultKind.EXCEPTION:
        if scenario.expected == ERROR_CATEGORY:
            return "raises"
        return f"raises_{slugify(str(scenario.expected).rpartition('.')[2])}"
    if scenario.result_kind is ResultKind.VOID:
        return "succeeds"
    return f"returns_{value_slug(scenario.expected)}"


def base_name(scenario: TestScenario, strategy: NamingStrategy, position: int) -> str:
    """Name for one scenario before de-duplication.

    Args:
        scenario: The scenario to name
        strategy: Naming strategy
        position: One-based position of the scenario in its suite
    """
    method = method_slug(scenario.target_method)
    if strategy is NamingStrategy.SEQUENTIAL:
        return f"test_{method}_{position}"
    if strategy is NamingStrategy.BDD:
        name = (
            f"test_given_{_inputs_slug(scenario)}_when_{method}_then_{_outcome_slug(scenario)}"
        )
    else:
        name = f"test_{method}_{_inputs_slug(scenario)}_{_outcome_slug(scenario)}"
    return name[:MAX_NAME_LENGTH].rstrip("_")


def assign_names(scenarios: list[TestScenario], strategy: NamingStrategy) -> list[str]:
    """Unique test function names, one per scenario, in scenario order.

    Repeated names get ``_2``, ``_3``, ... suffixes.
    """
    names = []
    used: set[str] = set()
    for position, scenario in enumerate(scenarios, start=1):
        name = base_name(scenario, strategy, position)
        candidate = name
        counter = 2
        while candidate in used:
            candidate = f"{name}_{counter}"
            counter += 1
        used.add(candidate)
        names.append(candidate)
    logger.debug(f"Assigned {len(names)} test names using {strategy.value} naming")
    return names


def class_name_for(method: MethodIdentifier) -> str:
    """unittest case class name, e.g. ``TestCounterIncrement``."""
    words = []
    if method.class_name:
        words.append(method.class_name.rpartition(".")[2])
    words.extend(method_slug(method).split("_"))
    return "Test" + "".join(w[:1].upper() + w[1:] for w in words if w)


def module_file_name(method: MethodIdentifier) -> str:
    """File name for the generated module, e.g. ``test_counter_increment.py``."""
    parts = []
    if method.class_name:
        parts.append(slugify(method.class_name.rpartition(".")[2]))
    parts.append(method_slug(method))
    return f"test_{'_'.join(parts)}.py"
