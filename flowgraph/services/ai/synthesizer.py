"""Natural-language workflow synthesis and merge-on-accept."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from flowgraph.domain.catalog import new_node
from flowgraph.domain.errors import LLMUnavailableError, NotFoundError
from flowgraph.domain.graph import Edge, Graph, Node, Position
from flowgraph.domain.layout import apply_layout, offset_past
from flowgraph.domain.ports import CompletionPort
from flowgraph.services.ai.parser import GeneratedWorkflow, ParseFailure, parse_workflow_response
from flowgraph.services.ai.templates import build_system_prompt, get_workflow_template

logger = logging.getLogger(__name__)


@dataclass
class SynthesisResult:
    """Outcome of one synthesis turn.

    Exactly one of ``graph`` and ``failure`` is set. ``reply`` is the
    assistant message to append to the conversation either way.
    """
    reply: str
    graph: Optional[Graph] = None
    failure: Optional[ParseFailure] = None

    @property
    def ok(self) -> bool:
        return self.graph is not None


def expand(workflow: GeneratedWorkflow) -> Graph:
    """Turn the model's compact node/edge shape into a laid-out graph."""
    nodes: List[Node] = []
    for raw in workflow.nodes:
        node = new_node(raw.type, raw.id, label=raw.label or None, config=raw.config)
        node.description = raw.label or node.description
        nodes.append(node)

    known = {node.id for node in nodes}
    edges = [
        Edge(
            id=f"ai-edge-{index}",
            source=raw.source,
            target=raw.target,
            source_handle=raw.sourceHandle,
        )
        for index, raw in enumerate(workflow.edges)
        if raw.source in known and raw.target in known
    ]
    return Graph(
        name=workflow.name,
        description=workflow.description,
        nodes=apply_layout(nodes, edges),
        edges=edges,
    )


def describe(workflow: GeneratedWorkflow) -> str:
    lines = [
        f'Generated workflow **"{workflow.name}"** with {len(workflow.nodes)} nodes '
        f"and {len(workflow.edges)} connections."
    ]
    if workflow.description:
        lines.extend(["", workflow.description])
    lines.extend(["", "**Nodes:**"])
    lines.extend(f"{i}. **{node.label}** (`{node.type}`)" for i, node in enumerate(workflow.nodes, start=1))
    return "\n".join(lines)


class GraphSynthesizer:
    """Conversation-driven workflow generation.

    The synthesizer never touches the canvas; it only produces candidates.
    """

    def __init__(self, completion: CompletionPort) -> None:
        self._completion = completion

    def build_messages(self, history: List[Dict[str, str]]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": build_system_prompt()}]
        messages.extend({"role": turn["role"], "content": turn["content"]} for turn in history)
        return messages

    async def synthesize(self, history: List[Dict[str, str]]) -> SynthesisResult:
        """
        Ask the model for a workflow given the conversation so far.

        Parse problems come back as ``SynthesisResult.failure``; only a
        complete absence of usable model endpoints raises.
        """
        text = await self._completion.complete(self.build_messages(history))
        parsed = parse_workflow_response(text)
        if isinstance(parsed, ParseFailure):
            logger.info(f"Model reply was not a workflow: {parsed.error}")
            return SynthesisResult(reply=text, failure=parsed)
        return SynthesisResult(reply=describe(parsed), graph=expand(parsed))

    async def safe_synthesize(self, history: List[Dict[str, str]]) -> SynthesisResult:
        try:
            return await self.synthesize(history)
        except LLMUnavailableError as exc:
            return SynthesisResult(reply=f"Error: {exc}", failure=ParseFailure(raw="", error=str(exc)))

    def from_template(self, key: str) -> SynthesisResult:
        workflow = get_workflow_template(key)
        if workflow is None:
            raise NotFoundError(f"Workflow template not found: {key}")
        return SynthesisResult(reply=describe(workflow), graph=expand(workflow))


def merge_graphs(canvas: Graph, candidate: Graph, prefix: str = "ai") -> Graph:
    """
    Union ``candidate`` into ``canvas`` as an independent subgraph.

    Candidate nodes are shifted right past the existing canvas and any ids
    that already exist are rewritten with ``prefix`` so both graphs stay
    disjoint. The canvas keeps its name, id and lifecycle state.
    """
    offset = offset_past(canvas.nodes)
    taken = {node.id for node in canvas.nodes} | {edge.id for edge in canvas.edges}

    def fresh(identifier: str) -> str:
        if identifier not in taken:
            taken.add(identifier)
            return identifier
        counter = 1
        candidate_id = f"{prefix}-{identifier}"
        while candidate_id in taken:
            counter += 1
            candidate_id = f"{prefix}{counter}-{identifier}"
        taken.add(candidate_id)
        return candidate_id

    renamed: Dict[str, str] = {}
    merged_nodes = list(canvas.nodes)
    for node in candidate.nodes:
        renamed[node.id] = fresh(node.id)
        merged_nodes.append(node.model_copy(update={
            "id": renamed[node.id],
            "position": Position(x=node.position.x + offset, y=node.position.y),
        }))

    merged_edges = list(canvas.edges)
    for edge in candidate.edges:
        merged_edges.append(edge.model_copy(update={
            "id": fresh(edge.id),
            "source": renamed.get(edge.source, edge.source),
            "target": renamed.get(edge.target, edge.target),
        }))

    return canvas.model_copy(update={"nodes": merged_nodes, "edges": merged_edges})
