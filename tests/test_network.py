"""
Tests for the PERT network calculation.

Covers:
- Forward and backward passes on chains, diamonds and unsorted input
- Criticality, slack and tolerance
- Dangling references, duplicate names and strict mode
- Cycle detection
- Output graph for the renderer
"""

import logging

import pytest

from planning.exceptions import (
    CyclicDependencyError, DuplicateActivityNameError, InvalidDurationError,
    ScheduleConsistencyError, ScheduleError, UnknownPredecessorError
)
from planning import network
from planning.models import Activity, DiagnosticKind, END_NODE_ID, START_NODE_ID
from planning.network import (
    build_dependency_graph, calculate_network_parameters, find_cycle, topological_sort
)


def times(schedule, activity_id):
    node = schedule.node(activity_id)
    return (node.earliest_start, node.earliest_finish, node.latest_start, node.latest_finish)


@pytest.fixture
def diamond(activity_factory):
    return [
        activity_factory("a", "A", duration=1),
        activity_factory("b", "B", ["A"], duration=2),
        activity_factory("c", "C", ["A"], duration=3),
        activity_factory("d", "D", ["B", "C"], duration=1),
    ]


class TestForwardAndBackwardPass:

    def test_three_activity_chain(self, activity_factory):
        schedule = calculate_network_parameters([
            activity_factory(1, "A"),
            activity_factory(2, "B", ["A"]),
            activity_factory(3, "C", ["B"]),
        ])

        assert times(schedule, 1) == pytest.approx((0, 1, 0, 1))
        assert times(schedule, 2) == pytest.approx((1, 2, 1, 2))
        assert times(schedule, 3) == pytest.approx((2, 3, 2, 3))
        assert all(node.is_critical for node in schedule.nodes)
        assert schedule.project_duration == pytest.approx(3)

    def test_diamond(self, diamond):
        schedule = calculate_network_parameters(diamond)

        assert times(schedule, "a")[:2] == pytest.approx((0, 1))
        assert times(schedule, "b")[:2] == pytest.approx((1, 3))
        assert times(schedule, "c")[:2] == pytest.approx((1, 4))
        assert times(schedule, "d")[:2] == pytest.approx((4, 5))
        assert schedule.project_duration == pytest.approx(5)

        assert [node.name for node in schedule.nodes if node.is_critical] == ["A", "C", "D"]
        assert schedule.node("b").slack == pytest.approx(1)
        assert times(schedule, "b")[2:] == pytest.approx((2, 4))

    def test_unsorted_input_gives_same_result(self, diamond):
        """Successors listed before their predecessors are still scheduled correctly."""
        shuffled = [diamond[3], diamond[1], diamond[2], diamond[0]]

        sorted_schedule = calculate_network_parameters(diamond)
        shuffled_schedule = calculate_network_parameters(shuffled)

        for activity in diamond:
            assert times(shuffled_schedule, activity.id) == pytest.approx(times(sorted_schedule, activity.id))
        assert [node.id for node in shuffled_schedule.nodes] == ["d", "b", "c", "a"]

    def test_single_isolated_activity(self):
        schedule = calculate_network_parameters([
            Activity(id="x", name="Solo", optimistic=1, most_likely=2, pessimistic=9)
        ])

        node = schedule.node("x")
        assert node.earliest_start == node.latest_start == 0
        assert node.earliest_finish == pytest.approx(3)
        assert node.latest_finish == pytest.approx(3)
        assert node.is_critical

    def test_empty_project(self):
        schedule = calculate_network_parameters([])

        assert schedule.nodes == ()
        assert schedule.project_duration == 0
        assert [node.id for node in schedule.graph.nodes] == [START_NODE_ID, END_NODE_ID]
        assert schedule.graph.edges == ()

    def test_disconnected_chains(self, activity_factory):
        schedule = calculate_network_parameters([
            activity_factory("a", "A"),
            activity_factory("b", "B", ["A"]),
            activity_factory("c", "C", duration=5),
        ])

        assert schedule.project_duration == pytest.approx(5)
        assert schedule.node("c").is_critical
        assert schedule.node("a").slack == pytest.approx(3)
        assert schedule.node("b").latest_finish == pytest.approx(5)

    def test_stale_mean_is_never_used(self):
        """The snapshot has no stored mean, so the engine always recomputes from estimates."""
        activity = Activity(id=1, name="A", optimistic=0, most_likely=3, pessimistic=6)

        schedule = calculate_network_parameters([activity])

        assert schedule.node(1).mean == pytest.approx(3)
        assert schedule.node(1).variance == pytest.approx(1)

    def test_unnamed_activity_is_scheduled(self, activity_factory):
        schedule = calculate_network_parameters([
            activity_factory(1, "", duration=2),
            activity_factory(2, "B", duration=1),
        ])

        assert schedule.node(1).is_critical
        assert schedule.project_duration == pytest.approx(2)


class TestCriticality:

    def test_critical_path_sorted_by_earliest_start(self, diamond):
        schedule = calculate_network_parameters(list(reversed(diamond)))

        assert [node.name for node in schedule.critical_path] == ["A", "C", "D"]

    def test_tolerance_absorbs_tiny_slack(self, activity_factory):
        activities = [
            activity_factory(1, "A", duration=1),
            activity_factory(2, "B", duration=1.0005),
        ]

        loose = calculate_network_parameters(activities)
        tight = calculate_network_parameters(activities, tolerance=0.0001)

        assert loose.node(1).is_critical
        assert loose.node(1).slack == 0.0
        assert not tight.node(1).is_critical
        assert tight.node(1).slack == pytest.approx(0.0005, abs=1e-9)

    def test_large_durations_pass_consistency_check(self):
        schedule = calculate_network_parameters([
            Activity(id=1, name="A", optimistic=1e15, most_likely=1e15 + 0.3, pessimistic=1e15 + 0.7),
            Activity(id=2, name="B", predecessors=["A"],
                     optimistic=3e15 + 0.1, most_likely=3e15 + 0.2, pessimistic=3e15 + 0.9),
            Activity(id=3, name="C", predecessors=["A"], optimistic=1, most_likely=2, pessimistic=3),
        ])

        assert [node.name for node in schedule.critical_path] == ["A", "B"]
        assert not schedule.node(3).is_critical
        assert schedule.project_duration == pytest.approx(4e15)

    def test_idempotent(self, diamond):
        assert calculate_network_parameters(diamond) == calculate_network_parameters(diamond)

    def test_input_list_untouched(self, diamond):
        snapshot = list(diamond)

        calculate_network_parameters(diamond)

        assert diamond == snapshot


class TestMalformedInput:

    def test_dangling_predecessor_is_root(self, activity_factory, caplog):
        with caplog.at_level(logging.WARNING):
            schedule = calculate_network_parameters([
                activity_factory(1, "A", duration=2),
                activity_factory(2, "B", ["Ghost"], duration=1),
            ])

        assert schedule.node(2).earliest_start == 0
        assert [(d.kind, d.activity_id, d.name) for d in schedule.diagnostics] == [
            (DiagnosticKind.DANGLING_PREDECESSOR, 2, "Ghost")
        ]
        assert "Ghost" in caplog.text

    def test_duplicate_name_resolves_to_first(self, activity_factory):
        schedule = calculate_network_parameters([
            activity_factory(1, "A", duration=1),
            activity_factory(2, "A", duration=5),
            activity_factory(3, "B", ["A"], duration=1),
        ])

        assert schedule.node(3).earliest_start == pytest.approx(1)
        assert schedule.node(2).is_critical
        assert not schedule.node(3).is_critical

        duplicates = [d for d in schedule.diagnostics if d.kind == DiagnosticKind.DUPLICATE_ACTIVITY_NAME]
        assert len(duplicates) == 1
        assert duplicates[0].activity_id == 1
        assert duplicates[0].name == "A"

    def test_strict_mode_rejects_dangling(self, activity_factory):
        with pytest.raises(UnknownPredecessorError) as exc_info:
            calculate_network_parameters([activity_factory(1, "B", ["Ghost"])], strict=True)

        assert exc_info.value.missing == {"B": ["Ghost"]}

    def test_strict_mode_rejects_duplicates(self, activity_factory):
        with pytest.raises(DuplicateActivityNameError) as exc_info:
            calculate_network_parameters([activity_factory(1, "A"), activity_factory(2, "A")], strict=True)

        assert exc_info.value.activity_ids == [1, 2]

    def test_negative_duration_rejected(self):
        with pytest.raises(InvalidDurationError) as exc_info:
            calculate_network_parameters([Activity(id=1, name="A", optimistic=-1, most_likely=1, pessimistic=2)])

        assert exc_info.value.field == "optimistic"

    def test_duplicate_ids_rejected(self, activity_factory):
        with pytest.raises(ScheduleError):
            calculate_network_parameters([activity_factory(1, "A"), activity_factory(1, "B")])

    @pytest.mark.parametrize("reserved_id", [START_NODE_ID, END_NODE_ID])
    def test_graph_node_ids_are_reserved(self, activity_factory, reserved_id):
        with pytest.raises(ScheduleError):
            calculate_network_parameters([activity_factory(reserved_id, "A")])

    def test_calculation_errors_are_logged(self, activity_factory, monkeypatch, caplog):
        def inconsistent(graph, times, tolerance):
            raise ScheduleConsistencyError("LS-ES != LF-EF")

        monkeypatch.setattr(network, "identify_critical_path", inconsistent)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ScheduleConsistencyError):
                calculate_network_parameters([activity_factory(1, "A")])

        assert any(record.levelno == logging.ERROR and "LS-ES" in record.getMessage()
                   for record in caplog.records)


class TestCycleDetection:

    def test_two_node_cycle(self, activity_factory):
        with pytest.raises(CyclicDependencyError) as exc_info:
            calculate_network_parameters([
                activity_factory(1, "A", ["B"]),
                activity_factory(2, "B", ["A"]),
            ])

        error = exc_info.value
        assert error.cycle == ["A", "B", "A"]
        assert set(error.activity_ids) == {1, 2}

    def test_self_reference_is_a_cycle(self, activity_factory):
        with pytest.raises(CyclicDependencyError) as exc_info:
            calculate_network_parameters([activity_factory(1, "A", ["A"])])

        assert exc_info.value.cycle == ["A", "A"]

    def test_cycle_reports_only_participants(self, activity_factory):
        with pytest.raises(CyclicDependencyError) as exc_info:
            calculate_network_parameters([
                activity_factory(1, "Start"),
                activity_factory(2, "X", ["Start", "Z"]),
                activity_factory(3, "Y", ["X"]),
                activity_factory(4, "Z", ["Y"]),
                activity_factory(5, "After", ["Z"]),
            ])

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"X", "Y", "Z"}

    def test_find_cycle_on_dag(self, diamond):
        assert find_cycle(build_dependency_graph(diamond)) is None

    def test_topological_order_respects_edges(self, diamond):
        graph = build_dependency_graph(list(reversed(diamond)))
        order = topological_sort(graph)

        position = {activity_id: index for index, activity_id in enumerate(order)}
        for activity_id, predecessor_ids in graph.predecessors.items():
            for predecessor_id in predecessor_ids:
                assert position[predecessor_id] < position[activity_id]

    def test_long_chain_does_not_hit_recursion_limit(self, activity_factory):
        activities = [activity_factory(0, "N0")]
        activities += [activity_factory(i, f"N{i}", [f"N{i - 1}"]) for i in range(1, 3000)]

        schedule = calculate_network_parameters(activities)

        assert schedule.project_duration == pytest.approx(3000)


class TestScheduleGraph:

    def test_diamond_edges_and_flags(self, diamond):
        graph = calculate_network_parameters(diamond).graph

        edges = {(edge.source, edge.target): edge.is_critical for edge in graph.edges}
        assert edges == {
            (START_NODE_ID, "a"): True,
            ("a", "b"): False,
            ("a", "c"): True,
            ("b", "d"): False,
            ("c", "d"): True,
            ("d", END_NODE_ID): True,
        }
        assert graph.node(START_NODE_ID).is_critical
        assert graph.node(END_NODE_ID).is_critical
        assert not graph.node("b").is_critical

    def test_node_label_carries_estimates(self, diamond):
        graph = calculate_network_parameters(diamond).graph

        label = graph.node("c").label
        assert label.startswith("C\n")
        assert "Mean: 3.00" in label
        assert "Variance: 0.00" in label

    def test_disconnected_activity_links_to_start_and_end(self, activity_factory):
        graph = calculate_network_parameters([
            activity_factory("a", "A"),
            activity_factory("b", "B", ["A"]),
            activity_factory("c", "C", duration=5),
        ]).graph

        edges = {(edge.source, edge.target): edge.is_critical for edge in graph.edges}
        assert edges[(START_NODE_ID, "c")] is True
        assert edges[("c", END_NODE_ID)] is True
        assert edges[(START_NODE_ID, "a")] is False
        assert edges[("b", END_NODE_ID)] is False
        assert ("a", END_NODE_ID) not in edges
