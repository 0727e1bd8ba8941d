"""Import of exported workflow files (JSON or YAML text)."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import pydantic
import yaml
from pydantic import BaseModel, Field

from flowgraph.domain.graph import Graph
from flowgraph.serialization.transform import transform_workflow_from_backend

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "yaml", "yml")


class _ImportPosition(BaseModel):
    x: float
    y: float


class _ImportNode(BaseModel):
    id: str
    type: str
    position: _ImportPosition
    data: Dict[str, Any]


class _ImportEdge(BaseModel):
    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None


class _ImportDocument(BaseModel):
    nodes: List[_ImportNode]
    edges: List[_ImportEdge]
    name: Optional[str] = None
    version: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ImportResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    graph: Optional[Graph] = None


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "document"
    if first["type"] == "missing":
        return f"Invalid workflow file: '{location}' is required"
    return f"Invalid workflow file: '{location}' {first['msg'].lower()}"


def _parse_text(content: str, fmt: str) -> Any:
    if fmt == "json":
        return json.loads(content)
    return yaml.safe_load(content)


def import_workflow(content: str, fmt: str = "json") -> ImportResult:
    """
    Parse and shape-check a workflow file.

    Never raises: every failure is returned as ``ImportResult(is_valid=False)``
    so the caller can leave its canvas untouched.
    """
    fmt = (fmt or "json").lower()
    if fmt not in SUPPORTED_FORMATS:
        return ImportResult(is_valid=False, error=f"Unsupported import format: {fmt}")
    if not content or not content.strip():
        return ImportResult(is_valid=False, error="Import file is empty")

    try:
        raw = _parse_text(content, fmt)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        return ImportResult(is_valid=False, error=f"Could not parse {fmt.upper()}: {exc}")

    if not isinstance(raw, dict):
        return ImportResult(is_valid=False, error="Invalid workflow file: expected an object with 'nodes' and 'edges'")

    try:
        document = _ImportDocument.model_validate(raw)
    except pydantic.ValidationError as exc:
        return ImportResult(is_valid=False, error=_describe(exc))

    ids = [node.id for node in document.nodes]
    if len(ids) != len(set(ids)):
        return ImportResult(is_valid=False, error="Invalid workflow file: duplicate node ids")

    try:
        nodes, edges = transform_workflow_from_backend(raw["nodes"], raw["edges"])
    except (ValueError, KeyError, pydantic.ValidationError) as exc:
        return ImportResult(is_valid=False, error=f"Invalid workflow file: {exc}")

    metadata = document.metadata
    graph = Graph(
        name=document.name or "Imported workflow",
        description=metadata.get("description") or None,
        version=document.version or 1,
        nodes=nodes,
        edges=edges,
    )
    logger.info(f"Imported workflow '{graph.name}' with {len(nodes)} nodes and {len(edges)} edges")
    return ImportResult(is_valid=True, graph=graph)
