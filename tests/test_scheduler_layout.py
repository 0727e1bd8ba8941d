"""Tests for execution ordering and automatic layout."""
from __future__ import annotations

import itertools

import pytest

from flowgraph.domain.graph import Position
from flowgraph.domain.layout import (
    BASE_X,
    BASE_Y,
    COLUMN_WIDTH,
    MERGE_GAP,
    ROW_HEIGHT,
    assign_grid,
    layout,
    offset_past,
    place_below,
)
from flowgraph.domain.scheduler import execution_order, has_cycle
from flowgraph.domain.validator import validate


class TestExecutionOrder:
    """Test the Kahn-style scheduler."""

    def test_linear_order(self, linear_graph):
        """Test a chain runs in edge order."""
        assert execution_order(linear_graph.nodes, linear_graph.edges) == ["t", "a", "n"]

    def test_siblings_keep_input_order(self, graph_factory):
        """Test parallel branches are released in edge order."""
        graph = graph_factory(
            [("t", "webhook-trigger"), ("b", "send-email"), ("a", "send-email"), ("z", "delay")],
            [("t", "a", None), ("t", "b", None), ("a", "z", None), ("b", "z", None)],
        )

        order = execution_order(graph.nodes, graph.edges)

        assert order == ["t", "a", "b", "z"]

    def test_if_else_branches_follow_the_condition(self, graph_factory):
        """Test a trigger, action and if/else run before either branch."""
        graph = graph_factory(
            [("t", "webhook-trigger"), ("a", "http-request"), ("c", "if-else"),
             ("e1", "send-email"), ("e2", "send-notification")],
            [("t", "a", None), ("a", "c", None), ("c", "e1", "yes"), ("c", "e2", "no")],
        )

        order = execution_order(graph.nodes, graph.edges)

        assert order in (["t", "a", "c", "e1", "e2"], ["t", "a", "c", "e2", "e1"])
        assert order == ["t", "a", "c", "e1", "e2"]

    @pytest.mark.parametrize("fixture_name", ["linear_graph", "branching_graph"])
    def test_any_edge_order_gives_a_topological_order(self, request, fixture_name):
        """Test every edge permutation of a valid graph still respects every edge."""
        graph = request.getfixturevalue(fixture_name)
        assert validate(graph).valid is True

        for edges in itertools.permutations(graph.edges):
            order = execution_order(graph.nodes, list(edges))
            assert sorted(order) == sorted(node.id for node in graph.nodes)
            position = {node_id: index for index, node_id in enumerate(order)}
            assert all(position[edge.source] < position[edge.target] for edge in edges)
            assert order[0] == "t"

    def test_every_node_appears_once_with_cycles(self, graph_factory):
        """Test cyclic leftovers are appended in input order."""
        graph = graph_factory(
            [("t", "webhook-trigger"), ("a", "send-email"), ("b", "send-email")],
            [("t", "a", None), ("a", "b", None), ("b", "a", None)],
        )

        order = execution_order(graph.nodes, graph.edges)

        assert order == ["t", "a", "b"]
        assert has_cycle(graph.nodes, graph.edges) is True

    def test_empty_graph(self):
        """Test an empty graph yields an empty order."""
        assert execution_order([], []) == []
        assert has_cycle([], []) is False


class TestLayout:
    """Test BFS grid layout."""

    def test_chain_moves_one_column_per_level(self, linear_graph):
        """Test each level of a chain is one column to the right on row 0."""
        positions = layout(linear_graph.nodes, linear_graph.edges)

        assert positions["t"] == Position(x=BASE_X, y=BASE_Y)
        assert positions["a"] == Position(x=BASE_X + COLUMN_WIDTH, y=BASE_Y)
        assert positions["n"] == Position(x=BASE_X + 2 * COLUMN_WIDTH, y=BASE_Y)

    def test_children_spread_around_parent_row(self, branching_graph):
        """Test two children sit half a row above and below their parent."""
        cells = assign_grid(branching_graph.nodes, branching_graph.edges)

        assert cells["c"] == (1, 0.0)
        assert cells["y"] == (2, -0.5)
        assert cells["n"] == (2, 0.5)

    def test_collisions_are_pushed_down(self, graph_factory):
        """Test nodes sharing a column never overlap."""
        graph = graph_factory(
            [("t", "webhook-trigger"), ("a", "send-email"), ("b", "send-email"),
             ("a1", "delay"), ("b1", "delay")],
            [("t", "a", None), ("t", "b", None), ("a", "a1", None), ("b", "b1", None)],
        )

        cells = assign_grid(graph.nodes, graph.edges)

        column_two = sorted(row for column, row in cells.values() if column == 2)
        assert len(column_two) == 2
        assert column_two[1] - column_two[0] >= 1

    def test_unreachable_nodes_appended(self, graph_factory):
        """Test nodes BFS never visits are placed after the rightmost column."""
        graph = graph_factory(
            [("t", "webhook-trigger"), ("a", "send-email"), ("x", "delay")],
            [("t", "a", None), ("x", "a", None)],
        )

        cells = assign_grid(graph.nodes, graph.edges)

        assert cells["x"] == (2, 0.0)

    def test_layout_is_deterministic(self, branching_graph):
        """Test identical input gives identical positions."""
        first = layout(branching_graph.nodes, branching_graph.edges)
        second = layout(branching_graph.nodes, branching_graph.edges)

        assert first == second

    def test_origin_offsets_everything(self, linear_graph):
        """Test an origin shifts the whole layout."""
        positions = layout(linear_graph.nodes, linear_graph.edges, origin=Position(x=1000, y=50))

        assert positions["t"] == Position(x=1000 + BASE_X, y=50 + BASE_Y)
        assert positions["n"].y == 50 + BASE_Y + 0 * ROW_HEIGHT


class TestPlacementHelpers:
    """Test placement of manually added and merged nodes."""

    def test_place_below_empty_canvas(self):
        """Test the first node lands on the base position."""
        assert place_below([]) == Position(x=BASE_X, y=BASE_Y)

    def test_place_below_lowest_node(self, linear_graph):
        """Test a new node stacks under the lowest existing node."""
        linear_graph.nodes[1].position = Position(x=400, y=700)

        position = place_below(linear_graph.nodes)

        assert position == Position(x=400, y=700 + 120 + 60)

    def test_offset_past_existing_canvas(self, linear_graph):
        """Test merges start past the rightmost node."""
        max_x = max(node.position.x for node in linear_graph.nodes)

        assert offset_past(linear_graph.nodes) == max_x + MERGE_GAP

    def test_offset_past_empty_canvas(self):
        """Test merging into an empty canvas keeps the candidate in place."""
        assert offset_past([]) == 0

    def test_offset_past_canvas_at_origin(self, graph_factory):
        """Test a canvas ending at x=0 still pushes merges a full gap right."""
        graph = graph_factory([("t", "webhook-trigger")])
        graph.nodes[0].position = Position(x=0, y=300)

        assert offset_past(graph.nodes) == MERGE_GAP
