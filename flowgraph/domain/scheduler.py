"""Deterministic execution order for a workflow graph."""
from __future__ import annotations

from collections import deque
from typing import List

from flowgraph.domain.graph import Edge, Node, in_degrees, successors


def execution_order(nodes: List[Node], edges: List[Edge]) -> List[str]:
    """
    Linearize the graph with Kahn's algorithm.

    The queue is seeded with zero in-degree nodes in input order and
    neighbours are released in edge order, so siblings keep their relative
    input order. Nodes never released (cycles, malformed input) are appended
    in input order, which keeps the function total.
    """
    degrees = in_degrees(nodes, edges)
    adjacency = successors(nodes, edges)

    queue = deque(node.id for node in nodes if degrees[node.id] == 0)
    order: List[str] = []
    emitted = set()

    while queue:
        current = queue.popleft()
        if current in emitted:
            continue
        order.append(current)
        emitted.add(current)
        for target in adjacency[current]:
            degrees[target] -= 1
            if degrees[target] == 0:
                queue.append(target)

    for node in nodes:
        if node.id not in emitted:
            order.append(node.id)
            emitted.add(node.id)
    return order


def has_cycle(nodes: List[Node], edges: List[Edge]) -> bool:
    """True when Kahn's algorithm cannot release every node."""
    degrees = in_degrees(nodes, edges)
    adjacency = successors(nodes, edges)
    queue = deque(node_id for node_id, degree in degrees.items() if degree == 0)
    released = 0
    while queue:
        current = queue.popleft()
        released += 1
        for target in adjacency[current]:
            degrees[target] -= 1
            if degrees[target] == 0:
                queue.append(target)
    return released < len(degrees)
