"""Tests for the temporal state-change generator."""

import pytest

from trace_testgen.generators.models import ChangeKind, ResultKind
from trace_testgen.generators.temporal import (
    TemporalTraceGenerator,
    field_changes,
    sample_positions,
)


class TestSamplePositions:
    """Tests for transition sampling."""

    @pytest.mark.parametrize(
        "count, budget, expected",
        [
            (5, 3, [0, 2, 4]),
            (10, 4, [0, 3, 6, 9]),
            (5, 2, [0, 4]),
            (5, 1, [0]),
            (5, 0, []),
            (3, 5, [0, 1, 2]),
            (0, 3, []),
        ],
    )
    def test_positions(self, count, budget, expected):
        assert sample_positions(count, budget) == expected

    def test_first_and_last_always_kept(self):
        """With a budget of two or more, both ends of the lifecycle survive."""
        for count in range(2, 30):
            for budget in range(2, count):
                positions = sample_positions(count, budget)
                assert positions[0] == 0
                assert positions[-1] == count - 1
                assert len(positions) == budget
                assert positions == sorted(set(positions))


class TestFieldChanges:
    def test_classifies_changes(self):
        changes = field_changes({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4})

        assert [(c.name, c.kind) for c in changes] == [
            ("b", ChangeKind.CHANGED),
            ("c", ChangeKind.ADDED),
        ]

    def test_removed_field(self):
        (change,) = field_changes({"a": 1}, {})

        assert change.kind is ChangeKind.REMOVED
        assert change.old == 1


class TestTemporalTraceGenerator:
    """Test that object lifecycles are sampled into state-transition scenarios."""

    @pytest.fixture(autouse=True)
    def _builders(self, call, trace_of):
        self.call = call
        self.trace_of = trace_of

    def given_counter_lifecycle(self, identity="Counter@1", counts=(0, 1, 1, 2, 5), start=0):
        return [
            self.call(start + i, 1, count=count, result=count + 1, identity=identity)
            for i, count in enumerate(counts)
        ]

    def when_generated(self, invocations, mapping, context):
        self.suite = TemporalTraceGenerator().generate(
            self.trace_of(*invocations), mapping, context
        )

    def test_samples_first_middle_and_last(self, counter_mapping, make_context):
        """Five transitions with a budget of three keep positions 0, 2 and 4."""
        self.when_generated(
            self.given_counter_lifecycle(),
            counter_mapping,
            make_context(max_state_change_samples=3),
        )

        assert [s.invocation_index for s in self.suite.scenarios] == [0, 2, 4]
        assert any("Sampled" in w.message for w in self.suite.warnings)

    def test_field_delta_against_previous_scenario(self, counter_mapping, make_context):
        """Deltas compare each scenario with the previous retained one."""
        self.when_generated(
            self.given_counter_lifecycle(),
            counter_mapping,
            make_context(max_state_change_samples=3),
        )

        first, second, third = self.suite.scenarios
        assert [(c.kind, c.new) for c in first.field_changes] == [(ChangeKind.ADDED, 0)]
        assert [(c.kind, c.old, c.new) for c in second.field_changes] == [
            (ChangeKind.CHANGED, 0, 1)
        ]
        assert [(c.kind, c.old, c.new) for c in third.field_changes] == [
            (ChangeKind.CHANGED, 1, 5)
        ]

    def test_state_after_comes_from_next_invocation(self, counter_mapping, make_context):
        """The state after a call is the one observed at the object's next call."""
        self.when_generated(self.given_counter_lifecycle(), counter_mapping, make_context())

        afters = [s.fields_after for s in self.suite.scenarios]
        assert [a[0].value for a in afters[:-1]] == [1, 1, 2, 5]
        assert afters[-1] is None

    def test_groups_follow_first_appearance(self, counter_mapping, make_context):
        """Identities are ordered by first invocation; calls without one share a group."""
        invocations = [
            self.call(0, 1, identity="B@2", result=1),
            self.call(1, 2, identity="A@1", result=2),
            self.call(2, 3, identity=None, result=3),
            self.call(3, 4, identity="B@2", result=4),
            self.call(4, 5, identity=None, result=5),
        ]
        self.when_generated(invocations, counter_mapping, make_context())

        assert [s.invocation_index for s in self.suite.scenarios] == [0, 3, 1, 2, 4]
        assert [s.identity for s in self.suite.scenarios] == ["B@2", "B@2", "A@1", None, None]

    def test_test_count_resamples_the_crossing_group(self, counter_mapping, make_context):
        """The group that crosses max_test_count is sampled to the remaining budget."""
        invocations = self.given_counter_lifecycle("A@1", (0, 1, 2)) + (
            self.given_counter_lifecycle("B@2", (0, 1, 2), start=3)
        )
        self.when_generated(invocations, counter_mapping, make_context(max_test_count=5))

        assert [s.invocation_index for s in self.suite.scenarios] == [0, 1, 2, 3, 5]

    def test_test_count_omits_later_groups(self, counter_mapping, make_context):
        invocations = self.given_counter_lifecycle("A@1", (0, 1, 2)) + (
            self.given_counter_lifecycle("B@2", (0, 1, 2), start=3)
        )
        self.when_generated(invocations, counter_mapping, make_context(max_test_count=3))

        assert [s.identity for s in self.suite.scenarios] == ["A@1"] * 3
        assert any("Omitted 1 identities" in w.message for w in self.suite.warnings)

    def test_exceptions_are_kept_as_transitions(self, counter_mapping, make_context):
        invocations = [
            self.call(0, 1, count=1, result=2, identity="C@1"),
            self.call(1, -1, count=2, returned=False, exception="ValueError", identity="C@1"),
        ]
        self.when_generated(invocations, counter_mapping, make_context())

        assert [s.result_kind for s in self.suite.scenarios] == [
            ResultKind.NORMAL,
            ResultKind.EXCEPTION,
        ]
