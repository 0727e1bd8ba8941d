"""
API Request/Response Schemas using Pydantic.

Structure of HTTP requests and responses for the FlowGraph API.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Any

from flowgraph.domain.catalog import category_for, icon_for
from flowgraph.domain.graph import Edge, Graph, Node, Position


# Node schemas
class NodeView(BaseModel):
    id: str = Field(..., description="Unique identifier for the node")
    type: str = Field(..., description="Node catalog kind, e.g. send-email or if-else")
    label: str = Field("", description="Display label of the node")
    description: Optional[str] = Field(None, description="Optional longer description")
    position: Position = Field(default_factory=Position, description="Canvas position")
    config: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific configuration")
    shape: Optional[str] = Field(None, description="Visual shape: trigger, action, condition or generic")
    icon: Optional[str] = Field(None, description="Icon name resolved from the node catalog")
    category: Optional[str] = Field(None, description="Palette category resolved from the node catalog")

    @classmethod
    def from_node(cls, node: Node) -> "NodeView":
        return cls(
            id=node.id,
            type=node.kind,
            label=node.label,
            description=node.description,
            position=node.position,
            config=node.config,
            shape=node.shape.value if node.shape else None,
            icon=icon_for(node.kind),
            category=category_for(node.kind),
        )

    def to_node(self) -> Node:
        return Node(
            id=self.id,
            kind=self.type,
            label=self.label,
            description=self.description,
            position=self.position,
            config=self.config,
            shape=self.shape,
        )


class NodeCreate(BaseModel):
    type: str = Field(..., description="Node catalog kind to add")
    label: Optional[str] = Field(None, description="Display label; defaults to the catalog label")
    config: Dict[str, Any] = Field(default_factory=dict, description="Configuration merged over the kind's defaults")
    position: Optional[Position] = Field(None, description="Canvas position; defaults to below the lowest node")


class NodeConfigUpdate(BaseModel):
    config: Dict[str, Any] = Field(..., description="Replacement configuration for the node")
    label: Optional[str] = Field(None, description="New display label")


class NodeMove(BaseModel):
    x: float = Field(..., description="New x coordinate")
    y: float = Field(..., description="New y coordinate")


class CatalogEntry(BaseModel):
    type: str = Field(..., description="Node catalog kind")
    label: str = Field(..., description="Palette label")
    description: str = Field("", description="Palette description")
    icon: str = Field(..., description="Icon name")
    required_fields: List[str] = Field(default_factory=list, description="Config fields that must be filled before running")
    default_config: Dict[str, Any] = Field(default_factory=dict, description="Configuration applied to new nodes")


# Edge schemas
class EdgeView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique identifier for the edge")
    source: str = Field(..., description="ID of the source node")
    target: str = Field(..., description="ID of the target node")
    source_handle: Optional[str] = Field(None, alias="sourceHandle", description="Labelled output port, e.g. yes/no")

    @classmethod
    def from_edge(cls, edge: Edge) -> "EdgeView":
        return cls(id=edge.id, source=edge.source, target=edge.target, source_handle=edge.source_handle)

    def to_edge(self) -> Edge:
        return Edge(id=self.id, source=self.source, target=self.target, source_handle=self.source_handle)


class EdgeCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., description="ID of the source node")
    target: str = Field(..., description="ID of the target node")
    source_handle: Optional[str] = Field(None, alias="sourceHandle", description="Labelled output port")


# Workflow schemas
class WorkflowState(BaseModel):
    id: Optional[str] = Field(None, description="Engine identifier; empty until the workflow exists server-side")
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    version: int = Field(1, description="Engine version number")
    active_state: str = Field(..., description="draft, active or archived")
    edit_mode: bool = Field(False, description="Whether structural edits are currently allowed")
    nodes: List[NodeView] = Field(default_factory=list, description="Nodes on the canvas")
    edges: List[EdgeView] = Field(default_factory=list, description="Edges on the canvas")

    @classmethod
    def from_graph(cls, graph: Graph, edit_mode: bool = False) -> "WorkflowState":
        return cls(
            id=graph.id,
            name=graph.name,
            description=graph.description,
            version=graph.version,
            active_state=graph.active_state.value,
            edit_mode=edit_mode,
            nodes=[NodeView.from_node(node) for node in graph.nodes],
            edges=[EdgeView.from_edge(edge) for edge in graph.edges],
        )


class WorkflowRename(BaseModel):
    name: str = Field(..., description="Name of the workflow", min_length=1, max_length=255)
    description: str = Field("", description="Optional description of the workflow", max_length=1000)


class ActivationRequest(BaseModel):
    active: bool = Field(..., description="True to activate, False to deactivate")


class ValidationResponse(BaseModel):
    valid: bool = Field(..., description="Whether the graph passes every structural rule")
    reason: Optional[str] = Field(None, description="First failing rule, if any")
    warnings: List[str] = Field(default_factory=list, description="Non-blocking findings")


class TriggerRegistration(BaseModel):
    node_id: str = Field(..., description="Status trigger node to register with the engine")


class ActionResponse(BaseModel):
    success: bool = Field(..., description="Whether the action succeeded")
    message: str = Field(..., description="User-facing outcome message")
    validation: Optional[ValidationResponse] = Field(None, description="Validation performed before the action")
    workflow_id: Optional[str] = Field(None, description="Workflow created or affected by the action")

    @classmethod
    def from_result(cls, result: BaseModel) -> "ActionResponse":
        return cls.model_validate(result.model_dump())


# Import / export schemas
class ImportRequest(BaseModel):
    content: str = Field(..., description="Raw file contents")
    format: str = Field("json", description="json or yaml")


class ImportResponse(BaseModel):
    is_valid: bool = Field(..., description="Whether the file was imported")
    error: Optional[str] = Field(None, description="Why the file was rejected")
    node_count: int = Field(0, description="Number of imported nodes")
    edge_count: int = Field(0, description="Number of imported edges")


# AI schemas
class ChatTurn(BaseModel):
    role: str = Field(..., description="user or assistant")
    content: str = Field(..., description="Message text")


class SynthesisRequest(BaseModel):
    messages: List[ChatTurn] = Field(..., description="Conversation so far, oldest first", min_length=1)


class CandidateGraph(BaseModel):
    name: str = Field(..., description="Name proposed for the generated workflow")
    description: Optional[str] = Field(None, description="Generated description")
    nodes: List[NodeView] = Field(default_factory=list, description="Candidate nodes, already laid out")
    edges: List[EdgeView] = Field(default_factory=list, description="Candidate edges")

    @classmethod
    def from_graph(cls, graph: Graph) -> "CandidateGraph":
        return cls(
            name=graph.name,
            description=graph.description,
            nodes=[NodeView.from_node(node) for node in graph.nodes],
            edges=[EdgeView.from_edge(edge) for edge in graph.edges],
        )

    def to_graph(self) -> Graph:
        return Graph(
            name=self.name,
            description=self.description,
            nodes=[node.to_node() for node in self.nodes],
            edges=[edge.to_edge() for edge in self.edges],
        )


class SynthesisResponse(BaseModel):
    reply: str = Field(..., description="Assistant message to append to the conversation")
    ok: bool = Field(..., description="Whether a candidate workflow was produced")
    error: Optional[str] = Field(None, description="Parse or model failure, if any")
    candidate: Optional[CandidateGraph] = Field(None, description="Candidate workflow to preview")


class TemplateSummary(BaseModel):
    key: str = Field(..., description="Template key")
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    node_count: int = Field(..., description="Number of nodes in the template")


# Execution schemas
class ExecutionState(BaseModel):
    running: bool = Field(..., description="Whether a run is in progress")
    simulated: bool = Field(..., description="Whether the current or last run was a local simulation")
    progress: int = Field(..., description="Progress percentage")
    current_node_id: Optional[str] = Field(None, description="Node currently executing")
    last_error: Optional[str] = Field(None, description="Error reported by the last failed run")
    states: Dict[str, str] = Field(default_factory=dict, description="Visual state for every node")


class TriggerManualRequest(BaseModel):
    entity_type: str = Field(..., description="Entity type the workflow runs for, e.g. offer")
    entity_id: int = Field(..., description="ID of the entity")


class ReconciliationStatus(BaseModel):
    reconciling: bool = Field(..., description="Whether a reconciliation pass is running")
    eligible: bool = Field(..., description="Whether a scheduled pass would fire now")
    seconds_remaining: Optional[float] = Field(None, description="Time until the next scheduled pass")


# Approval schemas
class ApprovalDecision(BaseModel):
    approved: bool = Field(..., description="True to approve, False to reject")
    response_note: Optional[str] = Field(None, description="Note stored with the decision", max_length=1000)
