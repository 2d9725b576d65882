"""
Tests for the network diagram layout and Pillow rendering.
"""

from planning.models import Activity, END_NODE_ID, START_NODE_ID
from planning.network import calculate_network_parameters
from planning.visualization import (
    MAX_CHART_HEIGHT, MAX_CHART_WIDTH, generate_gantt_chart, generate_network_diagram,
    layout_schedule_graph
)


def diamond_schedule():
    return calculate_network_parameters([
        Activity(id="a", name="A", optimistic=1, most_likely=1, pessimistic=1),
        Activity(id="b", name="B", predecessors=["A"], optimistic=2, most_likely=2, pessimistic=2),
        Activity(id="c", name="C", predecessors=["A"], optimistic=3, most_likely=3, pessimistic=3),
        Activity(id="d", name="D", predecessors=["B", "C"], optimistic=1, most_likely=1, pessimistic=1),
    ])


class TestLayout:

    def test_columns_follow_longest_path(self):
        positions = layout_schedule_graph(diamond_schedule().graph)

        assert positions[START_NODE_ID] == (0, 0)
        assert positions["a"] == (1, 0)
        assert positions["b"] == (2, 0)
        assert positions["c"] == (2, 1)
        assert positions["d"] == (3, 0)
        assert positions[END_NODE_ID] == (4, 0)

    def test_empty_project_layout(self):
        positions = layout_schedule_graph(calculate_network_parameters([]).graph)

        assert positions == {START_NODE_ID: (0, 0), END_NODE_ID: (1, 0)}


class TestRendering:

    def test_network_diagram_size(self):
        image = generate_network_diagram(diamond_schedule().graph)

        assert image.mode == "RGB"
        assert image.size[0] > image.size[1]

    def test_gantt_chart_renders(self):
        image = generate_gantt_chart(diamond_schedule())

        assert image.size[1] > 100

    def test_gantt_chart_empty_project(self):
        image = generate_gantt_chart(calculate_network_parameters([]))

        assert image.size == (400, 200)

    def test_long_project_fits_chart_width(self):
        schedule = calculate_network_parameters([
            Activity(id=1, name="A", optimistic=100000, most_likely=100000, pessimistic=100000),
        ])

        image = generate_gantt_chart(schedule)

        assert image.size[0] <= MAX_CHART_WIDTH

    def test_many_activities_fit_chart_height(self):
        schedule = calculate_network_parameters([
            Activity(id=index, name="", optimistic=1, most_likely=1, pessimistic=1) for index in range(500)
        ])

        image = generate_gantt_chart(schedule)

        assert image.size[1] <= MAX_CHART_HEIGHT
