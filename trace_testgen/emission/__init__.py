"""Render generated scenarios as test source."""

from trace_testgen.emission.code_emitter import (
    TestModuleEmitter,
    render_test_module,
    write_test_module,
)
from trace_testgen.emission.naming import assign_names, module_file_name

__all__ = [
    "TestModuleEmitter",
    "render_test_module",
    "write_test_module",
    "assign_names",
    "module_file_name",
]
