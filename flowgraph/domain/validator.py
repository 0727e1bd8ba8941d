"""Structural rules for workflow graphs.

Validation is advisory: failures come back as a ``ValidationResult`` with a
user-facing reason and are never raised. The graph model itself allows
transiently invalid graphs while a user is editing.
"""
from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from flowgraph.domain.catalog import (
    BRANCHING_KINDS,
    CATALOG,
    CONDITION_KINDS,
    is_trigger_kind,
    looks_like_trigger,
    missing_required_fields,
)
from flowgraph.domain.graph import Edge, Graph, Node, in_degrees, reachable_from, successors
from flowgraph.domain.scheduler import has_cycle


class ValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, warnings: Optional[List[str]] = None) -> ValidationResult:
        return cls(valid=True, warnings=warnings or [])

    @classmethod
    def fail(cls, reason: str, warnings: Optional[List[str]] = None) -> ValidationResult:
        return cls(valid=False, reason=reason, warnings=warnings or [])


def _duplicate_handle(nodes_by_id: Dict[str, Node], edges: List[Edge]) -> Optional[str]:
    """Return the first labelled handle used twice by a condition node."""
    counts = Counter(
        (edge.source, edge.source_handle)
        for edge in edges
        if edge.source_handle and edge.source in nodes_by_id
        and nodes_by_id[edge.source].kind in CONDITION_KINDS
    )
    for edge in edges:
        if counts.get((edge.source, edge.source_handle), 0) > 1:
            return edge.source_handle
    return None


def validate(graph: Graph, block_unreachable: bool = False) -> ValidationResult:
    """
    Check ``graph`` against the structural rules, first failure wins.

    Order: dangling edges, single trigger, self-loops, duplicate edges,
    condition handle uniqueness, cycles. Unreachable nodes and incomplete
    if/else branches are reported as warnings; ``block_unreachable`` turns
    the unreachable warning into a failure.
    """
    nodes_by_id = {node.id: node for node in graph.nodes}
    warnings: List[str] = []

    for edge in graph.edges:
        if edge.source not in nodes_by_id or edge.target not in nodes_by_id:
            return ValidationResult.fail(f"Edge {edge.id} references an unknown node")

    degrees = in_degrees(graph.nodes, graph.edges)
    roots = [node for node in graph.nodes if degrees[node.id] == 0]
    if not roots:
        return ValidationResult.fail("missing trigger")
    if len(roots) > 1:
        return ValidationResult.fail("multiple triggers")
    trigger = roots[0]
    if not looks_like_trigger(trigger.kind):
        warnings.append(f"Starting node '{trigger.label or trigger.id}' is not a trigger")

    for edge in graph.edges:
        if edge.source == edge.target:
            return ValidationResult.fail(f"Node {edge.source} cannot connect to itself")

    triples = Counter(edge.triple for edge in graph.edges)
    for edge in graph.edges:
        if triples[edge.triple] > 1:
            return ValidationResult.fail(f"Duplicate connection from {edge.source} to {edge.target}")

    handle = _duplicate_handle(nodes_by_id, graph.edges)
    if handle is not None:
        return ValidationResult.fail(f"multiple {handle} branches")

    if has_cycle(graph.nodes, graph.edges):
        return ValidationResult.fail("Workflow contains a cycle")

    reachable = reachable_from(trigger.id, successors(graph.nodes, graph.edges))
    unreachable = [node for node in graph.nodes if node.id not in reachable]
    if unreachable:
        names = ", ".join(node.label or node.id for node in unreachable)
        if block_unreachable:
            return ValidationResult.fail(f"Unreachable nodes: {names}", warnings)
        warnings.append(f"Unreachable nodes: {names}")

    for node in graph.nodes:
        template = CATALOG.get(node.kind)
        if node.kind not in BRANCHING_KINDS or template is None:
            continue
        used = {edge.source_handle for edge in graph.outgoing(node.id)}
        for branch in template.branches:
            if branch not in used:
                warnings.append(f"Condition '{node.label or node.id}' has no '{branch}' branch")

    return ValidationResult.ok(warnings)


def is_valid_connection(
    source_id: str,
    target_id: str,
    source_handle: Optional[str],
    nodes: List[Node],
    edges: List[Edge],
) -> ValidationResult:
    """Live check for a proposed edge, used while the user drags a connection."""
    nodes_by_id = {node.id: node for node in nodes}
    source = nodes_by_id.get(source_id)
    target = nodes_by_id.get(target_id)
    if source is None or target is None:
        return ValidationResult.fail("Unknown node")

    if source_id == target_id:
        return ValidationResult.fail("A node cannot connect to itself")

    for edge in edges:
        if edge.triple == (source_id, target_id, source_handle):
            return ValidationResult.fail("This connection already exists")

    if source.kind in CONDITION_KINDS and source_handle:
        for edge in edges:
            if edge.source == source_id and edge.source_handle == source_handle:
                return ValidationResult.fail(f"multiple {source_handle} branches")

    if is_trigger_kind(target.kind):
        return ValidationResult.fail("Triggers cannot have incoming connections")

    # The new edge closes a cycle iff the source is already downstream of the target
    if source_id in reachable_from(target_id, successors(nodes, edges)):
        return ValidationResult.fail("This connection would create a cycle")

    return ValidationResult.ok()


def check_config(graph: Graph) -> List[str]:
    """Messages for nodes whose required configuration is incomplete."""
    problems: List[str] = []
    for node in graph.nodes:
        missing = missing_required_fields(node)
        if missing:
            problems.append(f"'{node.label or node.id}' is missing {', '.join(missing)}")
    return problems
