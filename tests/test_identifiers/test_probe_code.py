"""Tests for probe statement rendering."""

from trace_testgen.identifiers.allocator import IdAllocator
from trace_testgen.identifiers.models import (
    ClassIdentifier,
    argument,
    field,
    local_variable,
    parse_method_reference,
    return_value,
)
from trace_testgen.identifiers.probe_code import (
    build_probe_plan,
    emit_code,
    emit_collector_code,
    emit_exit_code,
    local_name,
)


class TestEmitCode:
    """Tests for entry-hook statements."""

    def setup_method(self):
        self.allocator = IdAllocator(start=7)
        self.owner = ClassIdentifier("shop.cart", "Cart")

    def test_argument_reads_by_slot(self):
        """Arguments are read by slot and bound to a name ending in the id."""
        identifier = argument(self.allocator, 0, "int")

        assert emit_code(identifier) == "int_arg0_7 = probe.argument(0, int)"

    def test_qualified_type_uses_last_segment(self):
        """Dotted type names keep only the class name in the local."""
        identifier = argument(self.allocator, 2, "decimal.Decimal")

        assert local_name(identifier) == "decimal_arg2_7"

    def test_static_field_reads_from_owner(self):
        identifier = field(self.allocator, self.owner, "total", "int", True)

        assert emit_code(identifier) == (
            "int_total_7 = probe.static_field(shop.cart.Cart, 'total', int)"
        )

    def test_instance_field_reads_from_receiver(self):
        identifier = field(self.allocator, self.owner, "items", "list", False)

        assert emit_code(identifier) == (
            "list_items_7 = probe.instance_field(probe.this(), shop.cart.Cart, 'items', list)"
        )

    def test_local_variable_reads_by_slot_and_name(self):
        identifier = local_variable(self.allocator, 3, "float", "subtotal")

        assert emit_code(identifier) == "float_local3_7 = probe.local_variable(3, 'subtotal', float)"

    def test_return_value_has_no_entry_code(self):
        """Return values cannot be read at entry."""
        identifier = return_value(self.allocator, parse_method_reference("m:f() -> int"))

        assert emit_code(identifier) == ""


class TestExitAndCollectorCode:
    """Tests for exit-hook and collector statements."""

    def setup_method(self):
        self.allocator = IdAllocator()

    def test_non_void_return_is_read_at_exit(self):
        identifier = return_value(self.allocator, parse_method_reference("m:f() -> int"))

        assert emit_exit_code(identifier) == "int_return_1 = probe.return_value(int)"
        assert emit_collector_code(identifier) == "collector.collect(1, int_return_1)"

    def test_void_return_emits_nothing(self):
        """A void return has neither a read nor a collect statement."""
        identifier = return_value(self.allocator, parse_method_reference("m:f()"))

        assert emit_exit_code(identifier) == ""
        assert emit_collector_code(identifier) == ""

    def test_entry_values_have_no_exit_code(self):
        assert emit_exit_code(argument(self.allocator, 0, "int")) == ""


class TestBuildProbePlan:
    """Tests for build_probe_plan."""

    def test_splits_identifiers_between_hooks(self):
        """Entry values go to the entry hook, return values to the exit hook."""
        allocator = IdAllocator()
        method = parse_method_reference("shop.cart:Cart.add(int) -> bool")
        identifiers = [
            argument(allocator, 0, "int"),
            field(allocator, method.owner, "count", "int", False),
            return_value(allocator, method),
        ]

        plan = build_probe_plan(identifiers)

        assert plan.entry == (
            "int_arg0_1 = probe.argument(0, int)",
            "collector.collect(1, int_arg0_1)",
            "int_count_2 = probe.instance_field(probe.this(), shop.cart.Cart, 'count', int)",
            "collector.collect(2, int_count_2)",
        )
        assert plan.exit == (
            "bool_return_3 = probe.return_value(bool)",
            "collector.collect(3, bool_return_3)",
        )

    def test_empty_exit_hook_renders_pass(self):
        """A plan without exit reads renders a pass statement there."""
        plan = build_probe_plan([argument(IdAllocator(), 0, "str")])

        rendered = plan.render()

        assert rendered.endswith("# exit\npass\n")
        assert "probe.argument(0, str)" in rendered
