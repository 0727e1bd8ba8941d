from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List

import pydantic

from flowgraph.application.builder import WorkflowBuilder
from flowgraph.application.execution_events import ExecutionRecord, parse_event
from flowgraph.dependencies import get_builder
from flowgraph.domain.errors import ValidationError
from flowgraph.schemas.api_schemas import (
    ActionResponse,
    ExecutionState,
    ReconciliationStatus,
    TriggerManualRequest,
)

router = APIRouter()


@router.post("/executions/run", response_model=ActionResponse)
async def run_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Start a local simulated run of the canvas in execution order.
    """
    return ActionResponse.from_result(builder.run())


@router.post("/executions/stop", response_model=ExecutionState)
async def stop_workflow(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Stop the current run and reset every node to idle.
    """
    builder.stop()
    return ExecutionState(**builder.monitor.snapshot())


@router.get("/executions/state", response_model=ExecutionState)
def get_execution_state(builder: WorkflowBuilder = Depends(get_builder)):
    return ExecutionState(**builder.monitor.snapshot())


@router.post("/executions/events", status_code=202)
async def push_execution_event(event: Dict[str, Any], builder: WorkflowBuilder = Depends(get_builder)):
    """
    Receive one live execution event from the engine.

    Events go through the live channel when it is connected, otherwise they
    are applied to the monitor directly.
    """
    try:
        parse_event(event)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid execution event: {exc.errors()[0]['msg']}") from exc
    if builder.channel.connected:
        builder.channel.publish(event)
    else:
        builder.monitor.apply_event(event)
    return {"accepted": True}


@router.post("/executions/trigger", response_model=ActionResponse)
async def trigger_manual(data: TriggerManualRequest, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Ask the engine to run the workflow for a single entity.
    """
    return ActionResponse.from_result(await builder.trigger_manual(data.entity_type, data.entity_id))


@router.get("/executions/history", response_model=List[ExecutionRecord])
async def get_execution_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    builder: WorkflowBuilder = Depends(get_builder),
):
    """
    Execution records of the current workflow, newest first.
    """
    return await builder.history(page=page, page_size=page_size)


@router.post("/executions/cleanup", response_model=ActionResponse)
async def cleanup_stuck_executions(
    older_than_minutes: int = Query(5, ge=1),
    builder: WorkflowBuilder = Depends(get_builder),
):
    return ActionResponse.from_result(await builder.cleanup_stuck(older_than_minutes))


@router.post("/executions/{execution_id}/cancel", response_model=ActionResponse)
async def cancel_execution(execution_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.cancel_execution(execution_id))


@router.post("/executions/{execution_id}/retry", response_model=ActionResponse)
async def retry_execution(execution_id: str, builder: WorkflowBuilder = Depends(get_builder)):
    return ActionResponse.from_result(await builder.retry_execution(execution_id))


# Reconciliation
@router.post("/reconciliation/run", response_model=ActionResponse)
async def run_reconciliation(builder: WorkflowBuilder = Depends(get_builder)):
    """
    Visualize the graph, then ask the engine to re-evaluate pending work.
    """
    return ActionResponse.from_result(await builder.reconcile())


@router.get("/reconciliation/status", response_model=ReconciliationStatus)
async def get_reconciliation_status(builder: WorkflowBuilder = Depends(get_builder)):
    return ReconciliationStatus(
        reconciling=builder.reconciling,
        eligible=builder.can_reconcile(),
        seconds_remaining=builder.reconciler.seconds_remaining,
    )
