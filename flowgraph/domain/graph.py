"""Canonical in-memory workflow graph model."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShapeKind(str, Enum):
    """Visual shape a node is rendered with."""
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    GENERIC = "generic"


class ActiveState(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class Position(BaseModel):
    x: float = 0
    y: float = 0


class Node(BaseModel):
    """A single workflow step.

    ``kind`` is a node catalog key (``"send-email"``, ``"if-else"``...). It is
    kept as a plain string so graphs persisted with kinds that have since left
    the catalog still load; the catalog decides what is known.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: str = Field(..., alias="type")
    position: Position = Field(default_factory=Position)
    config: Dict[str, Any] = Field(default_factory=dict)
    label: str = ""
    description: Optional[str] = None
    shape: Optional[ShapeKind] = None


class Edge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(None, alias="sourceHandle")

    @property
    def triple(self) -> tuple:
        return (self.source, self.target, self.source_handle)


class Graph(BaseModel):
    """Workflow definition: nodes, edges and lifecycle metadata.

    The model permits transiently invalid graphs; structural rules are
    enforced by the validator, never at construction.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = "Untitled workflow"
    description: Optional[str] = None
    version: int = 1
    active_state: ActiveState = Field(ActiveState.DRAFT, alias="activeState")
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def outgoing(self, node_id: str) -> List[Edge]:
        return [edge for edge in self.edges if edge.source == node_id]


def successors(nodes: List[Node], edges: List[Edge]) -> Dict[str, List[str]]:
    """Adjacency list in edge order; edges naming unknown nodes are ignored."""
    known = {node.id for node in nodes}
    adjacency: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        if edge.source in known and edge.target in known:
            adjacency[edge.source].append(edge.target)
    return adjacency


def in_degrees(nodes: List[Node], edges: List[Edge]) -> Dict[str, int]:
    known = {node.id for node in nodes}
    degrees = {node.id: 0 for node in nodes}
    for edge in edges:
        if edge.source in known and edge.target in known:
            degrees[edge.target] += 1
    return degrees


def reachable_from(start: str, adjacency: Dict[str, List[str]]) -> set:
    """Ids reachable from ``start`` by forward traversal, ``start`` included."""
    seen = {start}
    stack = [start]
    while stack:
        current = stack.pop()
        for target in adjacency.get(current, []):
            if target not in seen:
                seen.add(target)
                stack.append(target)
    return seen
