"""Breadth-first column/row layout for workflow graphs."""
from __future__ import annotations

from collections import deque
from typing import Dict, List, Tuple

from flowgraph.domain.catalog import NODE_HEIGHT
from flowgraph.domain.graph import Edge, Node, Position, in_degrees, successors

BASE_X = 100
BASE_Y = 300
COLUMN_WIDTH = 300
ROW_HEIGHT = 160

# Vertical gap between a manually added node and the lowest existing one
STACK_GAP = 60
# Horizontal gap between an existing canvas and a merged subgraph
MERGE_GAP = 400


def _find_root(nodes: List[Node], edges: List[Edge]) -> str:
    degrees = in_degrees(nodes, edges)
    for node in nodes:
        if degrees[node.id] == 0:
            return node.id
    return nodes[0].id


def _free_row(column_rows: List[float], row: float) -> float:
    """Push ``row`` down until it is at least one row away from every occupant."""
    while any(abs(row - taken) < 1 for taken in column_rows):
        row += 1
    return row


def assign_grid(nodes: List[Node], edges: List[Edge]) -> Dict[str, Tuple[int, float]]:
    """
    Map node ids to ``(column, row)`` cells.

    BFS starts at the trigger (first zero in-degree node). The ``k`` children
    discovered from a node are spread around the parent's row using
    ``row = parent_row + (i - (k - 1) / 2)`` one column to the right. Nodes
    BFS never reaches are appended after the rightmost column on row 0.
    """
    if not nodes:
        return {}

    adjacency = successors(nodes, edges)
    root = _find_root(nodes, edges)
    cells: Dict[str, Tuple[int, float]] = {root: (0, 0.0)}
    occupied: Dict[int, List[float]] = {0: [0.0]}
    queue = deque([root])

    while queue:
        current = queue.popleft()
        column, row = cells[current]
        children: List[str] = []
        for target in adjacency[current]:
            if target not in cells and target not in children:
                children.append(target)
        k = len(children)
        for i, child in enumerate(children):
            child_column = column + 1
            column_rows = occupied.setdefault(child_column, [])
            child_row = _free_row(column_rows, row + (i - (k - 1) / 2))
            cells[child] = (child_column, child_row)
            column_rows.append(child_row)
            queue.append(child)

    next_column = max(column for column, _ in cells.values()) + 1
    for node in nodes:
        if node.id not in cells:
            cells[node.id] = (next_column, 0.0)
            next_column += 1
    return cells


def layout(nodes: List[Node], edges: List[Edge], origin: Position | None = None) -> Dict[str, Position]:
    """Positions for every node; identical input always yields identical output."""
    offset_x = origin.x if origin else 0
    offset_y = origin.y if origin else 0
    return {
        node_id: Position(
            x=offset_x + BASE_X + column * COLUMN_WIDTH,
            y=offset_y + BASE_Y + row * ROW_HEIGHT,
        )
        for node_id, (column, row) in assign_grid(nodes, edges).items()
    }


def apply_layout(nodes: List[Node], edges: List[Edge], origin: Position | None = None) -> List[Node]:
    positions = layout(nodes, edges, origin)
    return [node.model_copy(update={"position": positions[node.id]}) for node in nodes]


def place_below(nodes: List[Node]) -> Position:
    """Slot for a manually added node, just under the lowest existing node."""
    if not nodes:
        return Position(x=BASE_X, y=BASE_Y)
    lowest = max(nodes, key=lambda node: node.position.y)
    return Position(x=lowest.position.x, y=lowest.position.y + NODE_HEIGHT + STACK_GAP)


def offset_past(nodes: List[Node]) -> float:
    """X offset that places a merged subgraph clear of the existing canvas."""
    if not nodes:
        return 0
    return max(node.position.x for node in nodes) + MERGE_GAP
