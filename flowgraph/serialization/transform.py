"""
Translation between the engine's node shape and the graph model.

Engine nodes look like::

    {"id": "n1", "type": "entityTrigger", "position": {"x": 0, "y": 0},
     "data": {"type": "offer-status-trigger", "label": "...", "config": {...},
              "shapeKind": "trigger", "fromStatus": null, "toStatus": "sent"}}

``data.type`` carries the node kind; the outer ``type`` is only a render
hint. Nodes written by this package always carry ``shapeKind``; older graphs
do not and have their shape inferred from which flat fields are present.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from flowgraph.domain.catalog import ENTITY_ACTION_KINDS, looks_like_trigger
from flowgraph.domain.graph import Edge, Graph, Node, Position, ShapeKind
from flowgraph.domain.layout import layout
from flowgraph.serialization.flatten import FLAT_FIELDS, flatten

logger = logging.getLogger(__name__)

STATUS_FIELDS = ("fromStatus", "toStatus", "status")
ACTION_MARKERS = ("autoCreate", "newStatus", "createPerService")
CONDITION_TYPES = ("if-else", "switch", "condition")

# Keys of the engine data bag that are not configuration
_RESERVED_DATA_KEYS = {"type", "label", "config", "description", "shapeKind", "icon", "category"}


def _has_any(bag: Dict[str, Any], keys: Tuple[str, ...]) -> bool:
    return any(bag.get(key) is not None for key in keys)


def _explicit_shape(kind: str, bag: Dict[str, Any]) -> Optional[ShapeKind]:
    try:
        return ShapeKind(bag.get("shapeKind"))
    except ValueError:
        return None


def _trigger_shape(kind: str, bag: Dict[str, Any]) -> Optional[ShapeKind]:
    if looks_like_trigger(kind) and _has_any(bag, STATUS_FIELDS):
        return ShapeKind.TRIGGER
    return None


def _condition_shape(kind: str, bag: Dict[str, Any]) -> Optional[ShapeKind]:
    return ShapeKind.CONDITION if kind in CONDITION_TYPES else None


def _action_shape(kind: str, bag: Dict[str, Any]) -> Optional[ShapeKind]:
    if kind in ENTITY_ACTION_KINDS or _has_any(bag, ACTION_MARKERS):
        return ShapeKind.ACTION
    return None


# Ordered; the first rule that matches decides the shape
SHAPE_RULES: List[Callable[[str, Dict[str, Any]], Optional[ShapeKind]]] = [
    _explicit_shape,
    _trigger_shape,
    _condition_shape,
    _action_shape,
]


def infer_shape(kind: str, bag: Dict[str, Any]) -> ShapeKind:
    for rule in SHAPE_RULES:
        shape = rule(kind, bag)
        if shape is not None:
            return shape
    return ShapeKind.GENERIC


def _decode_list(raw: Any, what: str) -> List[Dict[str, Any]]:
    """Engine payloads store nodes/edges either as arrays or JSON-encoded text."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list of {what}")
    return [item for item in raw if isinstance(item, dict)]


def node_from_backend(raw: Dict[str, Any]) -> Tuple[Node, bool]:
    """Decode one engine node; the flag tells whether it carried a position."""
    data = raw.get("data") or {}
    kind = data.get("type") or raw.get("type") or "unknown"
    has_config = isinstance(data.get("config"), dict)
    config = dict(data["config"]) if has_config else {}

    # Legacy nodes kept settings only in the flat bag; flat mirrors of an
    # existing config are regenerated on write and skipped here
    for key, value in data.items():
        if key in _RESERVED_DATA_KEYS or key in config:
            continue
        if has_config and key in FLAT_FIELDS:
            continue
        config[key] = value

    bag = {**data, **config}
    raw_position = raw.get("position")
    position = Position(**raw_position) if isinstance(raw_position, dict) else Position()
    node = Node(
        id=str(raw["id"]),
        kind=kind,
        position=position,
        config=config,
        label=data.get("label") or raw.get("label") or "",
        description=data.get("description"),
        shape=infer_shape(kind, bag),
    )
    return node, isinstance(raw_position, dict)


def edge_from_backend(raw: Dict[str, Any], index: int) -> Edge:
    source = str(raw["source"])
    target = str(raw["target"])
    return Edge(
        id=str(raw.get("id") or f"e-{source}-{target}-{index}"),
        source=source,
        target=target,
        source_handle=raw.get("sourceHandle"),
    )


def transform_workflow_from_backend(raw_nodes: Any, raw_edges: Any) -> Tuple[List[Node], List[Edge]]:
    """
    Decode engine nodes and edges into the graph model.

    Nodes without a stored position are laid out with the default BFS layout.
    """
    nodes: List[Node] = []
    unplaced = False
    for raw in _decode_list(raw_nodes, "nodes"):
        node, placed = node_from_backend(raw)
        nodes.append(node)
        unplaced = unplaced or not placed
    edges = [edge_from_backend(raw, index) for index, raw in enumerate(_decode_list(raw_edges, "edges"))]

    if unplaced:
        logger.debug("Laying out workflow with unplaced nodes")
        positions = layout(nodes, edges)
        nodes = [node.model_copy(update={"position": positions[node.id]}) for node in nodes]
    return nodes, edges


def node_to_backend(node: Node) -> Dict[str, Any]:
    shape = node.shape or infer_shape(node.kind, node.config)
    data: Dict[str, Any] = {
        "label": node.label,
        "type": node.kind,
        "shapeKind": shape.value,
        "config": node.config,
    }
    if node.description:
        data["description"] = node.description
    data.update(flatten(node.config))
    return {
        "id": node.id,
        "type": shape.value,
        "position": {"x": node.position.x, "y": node.position.y},
        "data": data,
    }


def edge_to_backend(edge: Edge) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": edge.id, "source": edge.source, "target": edge.target}
    if edge.source_handle is not None:
        payload["sourceHandle"] = edge.source_handle
    return payload


def transform_workflow_to_backend(graph: Graph) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Engine node/edge payloads for ``graph``; icons are never included."""
    return (
        [node_to_backend(node) for node in graph.nodes],
        [edge_to_backend(edge) for edge in graph.edges],
    )
