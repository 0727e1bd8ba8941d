"""Execution records and live execution events published by the engine."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class NodeState(str, Enum):
    """Per-node visual execution state, independent of the graph itself."""
    IDLE = "idle"
    WAITING = "waiting"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    WAITING_APPROVAL = "waiting_approval"


class LogStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


LOG_STATE = {
    LogStatus.STARTED: NodeState.EXECUTING,
    LogStatus.COMPLETED: NodeState.COMPLETED,
    LogStatus.FAILED: NodeState.FAILED,
    LogStatus.SKIPPED: NodeState.SKIPPED,
}


class _EngineModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class ExecutionLogEntry(_EngineModel):
    node_id: str = Field(..., alias="nodeId")
    node_type: Optional[str] = Field(None, alias="nodeType")
    status: LogStatus
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    duration: Optional[float] = None
    timestamp: datetime


class ExecutionRecord(_EngineModel):
    """Read-only view of one backend run."""
    id: str
    status: ExecutionStatus
    current_node_id: Optional[str] = Field(None, alias="currentNodeId")
    logs: List[ExecutionLogEntry] = Field(default_factory=list)
    started_at: Optional[datetime] = Field(None, alias="startedAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")
    error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.status in (ExecutionStatus.RUNNING, ExecutionStatus.WAITING_APPROVAL)


class _Event(_EngineModel):
    execution_id: Optional[str] = Field(None, alias="executionId")
    workflow_id: Optional[str] = Field(None, alias="workflowId")


class ExecutionStarted(_Event):
    type: Literal["execution-started"]


class NodeExecuting(_Event):
    type: Literal["node-executing"]
    node_id: Optional[str] = Field(None, alias="nodeId")
    node_type: Optional[str] = Field(None, alias="nodeType")


class NodeCompleted(_Event):
    type: Literal["node-completed"]
    node_id: Optional[str] = Field(None, alias="nodeId")
    node_type: Optional[str] = Field(None, alias="nodeType")
    success: bool = True
    error: Optional[str] = None


class ExecutionCompleted(_Event):
    type: Literal["execution-completed"]


class ExecutionErrorEvent(_Event):
    type: Literal["execution-error"]
    error: Optional[str] = None


ExecutionEvent = Annotated[
    Union[ExecutionStarted, NodeExecuting, NodeCompleted, ExecutionCompleted, ExecutionErrorEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(ExecutionEvent)


def parse_event(raw: Dict[str, Any]) -> ExecutionEvent:
    """Validate a raw channel message; raises ``pydantic.ValidationError``."""
    return _event_adapter.validate_python(raw)
