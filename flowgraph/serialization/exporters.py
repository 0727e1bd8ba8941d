"""
Read-only export projections of a workflow graph.

All exports share one document shape with top-level keys
``name/version/created/nodes/edges/metadata`` so that JSON and YAML files
can be imported back. SQL output is a plain string template.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import yaml

from flowgraph.domain.catalog import entity_for_trigger, is_trigger_kind
from flowgraph.domain.graph import Graph
from flowgraph.serialization.transform import transform_workflow_to_backend

EXPORTED_BY = "flowgraph"


def _created(created: Optional[datetime]) -> str:
    return (created or datetime.now(timezone.utc)).isoformat()


def build_document(graph: Graph, created: Optional[datetime] = None) -> Dict[str, Any]:
    nodes, edges = transform_workflow_to_backend(graph)
    return {
        "name": graph.name,
        "version": graph.version,
        "created": _created(created),
        "nodes": nodes,
        "edges": edges,
        "metadata": {
            "description": graph.description or "",
            "activeState": graph.active_state.value,
            "nodeCount": len(graph.nodes),
            "edgeCount": len(graph.edges),
            "exportedBy": EXPORTED_BY,
        },
    }


def export_json(graph: Graph, created: Optional[datetime] = None) -> str:
    return json.dumps(build_document(graph, created), indent=2, ensure_ascii=False)


def export_yaml(graph: Graph, created: Optional[datetime] = None) -> str:
    header = f"Workflow: {graph.name}\nExported by {EXPORTED_BY}"
    body = yaml.safe_dump(build_document(graph, created), sort_keys=False, allow_unicode=True)
    comments = "".join(f"# {line}\n" for line in header.splitlines())
    return comments + body


def _sql_literal(value: Any) -> str:
    """Single-quoted SQL literal with embedded quotes doubled."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def export_sql(graph: Graph, created: Optional[datetime] = None) -> str:
    """Upsert into ``WorkflowDefinitions`` plus one ``WorkflowTriggers`` row per trigger."""
    nodes, edges = transform_workflow_to_backend(graph)
    name = _sql_literal(graph.name)
    is_active = _sql_literal(graph.active_state.value == "active")

    lines: List[str] = [
        f"-- Workflow: {graph.name}",
        f"-- Exported: {_created(created)}",
        "",
        'INSERT INTO "WorkflowDefinitions" ("Name", "Description", "Nodes", "Edges", "IsActive", "Version", "CreatedAt", "UpdatedAt")',
        f"VALUES ({name}, {_sql_literal(graph.description or '')}, "
        f"{_sql_literal(json.dumps(nodes, ensure_ascii=False))}, "
        f"{_sql_literal(json.dumps(edges, ensure_ascii=False))}, "
        f"{is_active}, {graph.version}, NOW(), NOW())",
        'ON CONFLICT ("Name") DO UPDATE SET',
        '    "Description" = EXCLUDED."Description",',
        '    "Nodes" = EXCLUDED."Nodes",',
        '    "Edges" = EXCLUDED."Edges",',
        '    "Version" = EXCLUDED."Version",',
        '    "UpdatedAt" = NOW();',
    ]

    for node in graph.nodes:
        if not is_trigger_kind(node.kind):
            continue
        lines.extend([
            "",
            'INSERT INTO "WorkflowTriggers" ("WorkflowId", "NodeId", "EntityType", "FromStatus", "ToStatus", "IsActive", "CreatedAt")',
            f'SELECT "Id", {_sql_literal(node.id)}, {_sql_literal(entity_for_trigger(node.kind))}, '
            f"{_sql_literal(node.config.get('fromStatus'))}, {_sql_literal(node.config.get('toStatus'))}, "
            f"{is_active}, NOW()",
            f'FROM "WorkflowDefinitions" WHERE "Name" = {name};',
        ])
    return "\n".join(lines) + "\n"


def export_config(graph: Graph) -> Dict[str, Any]:
    """Compact configuration summary: every node's flat fields plus trigger list."""
    nodes, edges = transform_workflow_to_backend(graph)
    triggers = [
        {
            "nodeId": node.id,
            "type": node.kind,
            "entityType": entity_for_trigger(node.kind),
            "fromStatus": node.config.get("fromStatus"),
            "toStatus": node.config.get("toStatus"),
        }
        for node in graph.nodes
        if is_trigger_kind(node.kind)
    ]
    return {
        "_info": {
            "name": graph.name,
            "version": graph.version,
            "activeState": graph.active_state.value,
            "nodeCount": len(nodes),
            "edgeCount": len(edges),
        },
        "nodes": [
            {"id": node["id"], **{key: value for key, value in node["data"].items() if key != "config"}}
            for node in nodes
        ],
        "edges": edges,
        "triggers": triggers,
    }
