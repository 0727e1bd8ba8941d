from fastapi import APIRouter, Depends
from typing import Any, Dict, List

from flowgraph.application.builder import WorkflowBuilder
from flowgraph.dependencies import get_builder
from flowgraph.domain.catalog import templates_by_category
from flowgraph.domain.errors import ValidationError
from flowgraph.domain.graph import Position
from flowgraph.schemas.api_schemas import (
    ActionResponse,
    ActivationRequest,
    CatalogEntry,
    EdgeCreate,
    EdgeView,
    NodeConfigUpdate,
    NodeCreate,
    NodeMove,
    NodeView,
    TriggerRegistration,
    ValidationResponse,
    WorkflowRename,
    WorkflowState,
)

router = APIRouter()


def _state(builder: WorkflowBuilder) -> WorkflowState:
    return WorkflowState.from_graph(builder.graph, edit_mode=builder.edit_mode)


@router.get("/catalog")
def get_catalog() -> Dict[str, List[CatalogEntry]]:
    """
    Node palette grouped by category.
    """
    return {
        category: [
            CatalogEntry(
                type=template.kind,
                label=template.label,
                description=template.description,
                icon=template.icon,
                required_fields=list(template.required_fields),
                default_config=template.default_config,
            )
            for template in templates
        ]
        for category, templates in templates_by_category().items()
    }


@router.get("/workflow", response_model=WorkflowState)
def get_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Current canvas graph.
    """
    return _state(builder)


@router.get("/workflows")
async def list_workflows(builder: WorkflowBuilder = Depends(get_builder)) -> List[Dict[str, Any]]:
    """
    Every workflow definition stored on the engine.
    """
    return await builder.list_workflows()


@router.delete("/workflows/{workflow_id}", response_model=ActionResponse)
async def delete_workflow(workflow_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.delete_workflow(workflow_id))


@router.post("/workflows/{workflow_id}/duplicate", response_model=ActionResponse)
async def duplicate_workflow(workflow_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Copy a stored workflow into a new inactive one.
    """
    return ActionResponse.from_result(await builder.duplicate(workflow_id))


@router.post("/workflow/load", response_model=ActionResponse)
async def load_default_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Load the engine's default workflow, falling back to the local copy.
    """
    return ActionResponse.from_result(await builder.load_default())


@router.post("/workflow/load/{workflow_id}", response_model=ActionResponse)
async def load_workflow(workflow_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.load(workflow_id))


# Edit mode
@router.post("/workflow/edit", response_model=WorkflowState)
def enter_edit_mode(builder: WorkflowBuilder = Depends(get_builder)):
    builder.enter_edit()
    return _state(builder)


@router.delete("/workflow/edit", response_model=WorkflowState)
def cancel_edit_mode(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Leave edit mode and discard unsaved structural changes.
    """
    builder.cancel_edit()
    return _state(builder)


@router.put("/workflow/name", response_model=WorkflowState)
def rename_workflow(data: WorkflowRename, builder: WorkflowBuilder = Depends(get_builder)):
    builder.rename(data.name, data.description)
    return _state(builder)


# Nodes
@router.post("/workflow/nodes", response_model=NodeView, status_code=201)
def add_node(data: NodeCreate, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Add a node of a catalog kind.
    """
    node = builder.add_node(data.type, label=data.label, config=data.config, position=data.position)
    return NodeView.from_node(node)


@router.put("/workflow/nodes/{node_id}/config", response_model=NodeView)
def update_node_config(node_id: str, data: NodeConfigUpdate, builder: WorkflowBuilder = Depends(get_builder)):
    node = builder.update_node(node_id, data.config, label=data.label)
    return NodeView.from_node(node)


@router.put("/workflow/nodes/{node_id}/position", response_model=NodeView)
def move_node(node_id: str, data: NodeMove, builder: WorkflowBuilder = Depends(get_builder)):
    node = builder.move_node(node_id, Position(x=data.x, y=data.y))
    return NodeView.from_node(node)


@router.delete("/workflow/nodes/{node_id}")
def delete_node(node_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Remove a node together with every edge touching it.
    """
    builder.remove_node(node_id)
    return {"success": True}


# Edges
@router.post("/workflow/edges", response_model=EdgeView, status_code=201)
def connect_nodes(data: EdgeCreate, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Connect two nodes; rejected connections answer 400 with the reason.
    """
    result, edge = builder.connect(data.source, data.target, data.source_handle)
    if edge is None:
        raise ValidationError(result.reason or "Connection is not allowed")
    return EdgeView.from_edge(edge)


@router.delete("/workflow/edges/{edge_id}")
def delete_edge(edge_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    builder.disconnect(edge_id)
    return {"success": True}


@router.post("/workflow/layout", response_model=WorkflowState)
def auto_layout(builder: WorkflowBuilder = Depends(get_builder)):
    builder.auto_layout()
    return _state(builder)


# Validation and persistence
@router.get("/workflow/validate", response_model=ValidationResponse)
def validate_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    return ValidationResponse.model_validate(builder.validate().model_dump())


@router.get("/workflow/order")
def get_execution_order(builder: WorkflowBuilder = Depends(get_builder)) -> List[str]:
    """
    Node ids in the order a run visits them.
    """
    return builder.execution_order()


@router.post("/workflow/save", response_model=ActionResponse)
async def save_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Validate and persist the canvas to the workflow engine.
    """
    return ActionResponse.from_result(await builder.save())


@router.post("/workflow/activation", response_model=ActionResponse)
async def set_activation(data: ActivationRequest, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.set_active(data.active))


@router.post("/workflow/archive", response_model=ActionResponse)
async def archive_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.archive())


@router.post("/workflow/draft", response_model=ActionResponse)
async def create_draft(builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.create_draft())


@router.post("/workflow/promote", response_model=ActionResponse)
async def promote_draft(builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.promote())


@router.get("/workflow/triggers")
async def get_registered_triggers(builder: WorkflowBuilder = Depends(get_builder)) -> List[Dict[str, Any]]:
    """
    Trigger registrations the engine holds for this workflow.
    """
    return await builder.triggers()


@router.post("/workflow/triggers", response_model=ActionResponse)
async def register_trigger(data: TriggerRegistration, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.register_trigger(data.node_id))


@router.delete("/workflow/triggers/{trigger_id}", response_model=ActionResponse)
async def remove_trigger(trigger_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.remove_trigger(trigger_id))
