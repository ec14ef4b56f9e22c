"""Tests for rendering captured values as literals and assertions."""

import pytest

from trace_testgen.config import EqualityStrategy, TestFramework
from trace_testgen.emission.values import (
    RESTORE_HELPER_SOURCE,
    Assertions,
    RenderState,
    exception_expression,
    render_literal,
    value_assertions,
)


@pytest.fixture
def state():
    return RenderState()


class TestRenderLiteral:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "None"),
            (True, "True"),
            (42, "42"),
            ("it's", '"it\'s"'),
            ([1, "a"], "[1, 'a']"),
            ({"k": 2.5}, "{'k': 2.5}"),
            (float("inf"), 'float("inf")'),
        ],
    )
    def test_plain_values(self, state, value, expected):
        assert render_literal(value, state) == expected
        assert state.warnings == []

    def test_snapshot_uses_restore_helper(self, state):
        value = {"$class": "shop.model.User", "name": "Ann", "tags": ["a"]}

        assert render_literal(value, state) == "_restore(shop.model.User, name='Ann', tags=['a'])"
        assert state.uses_restore
        assert state.imports == {"shop.model"}

    def test_string_form_snapshot_calls_class(self, state):
        value = {"$class": "decimal.Decimal", "$value": "1.10"}

        assert render_literal(value, state) == "decimal.Decimal('1.10')"
        assert len(state.warnings) == 1

    def test_marker_renders_none_with_warning(self, state):
        assert render_literal("$ref:3", state, invocation_index=7) == "None"

        (warning,) = state.warnings
        assert warning.invocation_index == 7
        assert warning.phase == "emission"

    def test_marker_fields_are_omitted(self, state):
        value = {"$class": "shop.graph.Node", "label": "a", "next": "$cycle"}

        assert render_literal(value, state) == "_restore(shop.graph.Node, label='a')"
        assert "next" in state.warnings[0].message


class TestRestoreHelper:
    def test_field_named_cls_is_restored(self):
        """Captured attributes may share a name with the helper's own parameter."""

        class Token:
            def __init__(self):
                raise AssertionError("constructor must not run")

        namespace = {}
        exec(RESTORE_HELPER_SOURCE, namespace)

        token = namespace["_restore"](Token, cls="admin", value=3)

        assert isinstance(token, Token)
        assert token.cls == "admin"
        assert token.value == 3


class TestExceptionExpression:
    def test_builtin(self, state):
        assert exception_expression("KeyError", state) == "KeyError"
        assert state.imports == set()

    def test_qualified_type_is_imported(self, state):
        assert exception_expression("shop.errors.OutOfStock", state) == "shop.errors.OutOfStock"
        assert state.imports == {"shop.errors"}

    def test_unknown_bare_name_falls_back(self, state):
        assert exception_expression("OutOfStock", state) == "Exception"


class TestValueAssertions:
    """Test assertion lines for both frameworks."""

    def assertions_for(
        self, value, framework=TestFramework.PYTEST, equality=EqualityStrategy.FIELDS
    ):
        self.state = RenderState()
        return value_assertions("result", value, Assertions(framework), equality, self.state)

    def test_scalars_pytest(self):
        assert self.assertions_for(None) == ["assert result is None"]
        assert self.assertions_for(False) == ["assert result is False"]
        assert self.assertions_for(3) == ["assert result == 3"]
        assert self.assertions_for(0.1) == ["assert result == pytest.approx(0.1)"]

    def test_scalars_unittest(self):
        framework = TestFramework.UNITTEST

        assert self.assertions_for(None, framework) == ["self.assertIsNone(result)"]
        assert self.assertions_for("x", framework) == ["self.assertEqual(result, 'x')"]
        assert self.assertions_for(0.1, framework) == ["self.assertAlmostEqual(result, 0.1)"]

    def test_plain_list_compares_as_list(self):
        """Tuples and other sequences compare equal after conversion."""
        assert self.assertions_for([1, 2]) == ["assert list(result) == [1, 2]"]

    def test_list_with_floats_checks_each_element(self):
        assert self.assertions_for([1, 0.5]) == [
            "assert len(result) == 2",
            "assert result[0] == 1",
            "assert result[1] == pytest.approx(0.5)",
        ]

    def test_nested_snapshot_fields(self):
        value = {
            "$class": "shop.model.Order",
            "total": 2.5,
            "owner": {"$class": "shop.model.User", "id": 1},
        }

        assert self.assertions_for(value) == [
            "assert type(result).__name__ == 'Order'",
            "assert result.total == pytest.approx(2.5)",
            "assert type(result.owner).__name__ == 'User'",
            "assert result.owner.id == 1",
        ]

    def test_string_form_snapshot(self):
        value = {"$class": "uuid.UUID", "$value": "1234"}

        assert self.assertions_for(value) == [
            "assert type(result).__name__ == 'UUID'",
            "assert str(result) == '1234'",
        ]

    def test_snapshot_without_module_checks_type_only(self):
        value = {"$class": "Local", "x": 1}

        assert self.assertions_for(value) == [
            "assert result is not None",
            "assert type(result).__name__ == 'Local'",
        ]
        assert "no importable class" in self.state.warnings[0].message
