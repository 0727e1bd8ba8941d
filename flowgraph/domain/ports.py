"""Ports (interfaces) for the collaborators the builder talks to."""
from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from flowgraph.domain.graph import Graph


class WorkflowApiPort(Protocol):
    """Workflow definitions held by the execution engine."""

    async def get_default(self) -> Optional[Dict[str, Any]]:
        ...

    async def list_all(self) -> List[Dict[str, Any]]:
        ...

    async def get_by_id(self, workflow_id: str) -> Dict[str, Any]:
        ...

    async def create(
        self,
        name: str,
        description: Optional[str],
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        is_active: bool = False,
    ) -> Dict[str, Any]:
        ...

    async def update(
        self,
        workflow_id: str,
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        ...

    async def delete(self, workflow_id: str) -> bool:
        ...

    async def activate(self, workflow_id: str) -> bool:
        ...

    async def deactivate(self, workflow_id: str) -> bool:
        ...

    async def archive(self, workflow_id: str) -> bool:
        ...

    async def create_draft(self, workflow_id: str) -> Dict[str, Any]:
        ...

    async def promote(self, workflow_id: str) -> Dict[str, Any]:
        ...

    async def get_triggers(self, workflow_id: str) -> List[Dict[str, Any]]:
        ...

    async def register_trigger(
        self,
        workflow_id: str,
        node_id: str,
        entity_type: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        ...

    async def remove_trigger(self, workflow_id: str, trigger_id: str) -> bool:
        ...


class ApprovalApiPort(Protocol):
    """Pending human approvals raised by running workflows."""

    async def get_pending(self, user_id: Optional[int] = None, role: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    async def get_by_id(self, approval_id: str) -> Dict[str, Any]:
        ...

    async def respond(self, approval_id: str, approved: bool, response_note: Optional[str] = None) -> bool:
        ...


class ExecutionApiPort(Protocol):
    """Execution records produced by the engine."""

    async def get_by_workflow(self, workflow_id: str, page: int = 1, page_size: int = 50) -> List[Dict[str, Any]]:
        ...

    async def get_by_id(self, execution_id: str) -> Dict[str, Any]:
        ...

    async def cancel(self, execution_id: str) -> bool:
        ...

    async def retry(self, execution_id: str) -> bool:
        ...

    async def cleanup_stuck(self, older_than_minutes: int = 5) -> Dict[str, Any]:
        ...

    async def trigger_manual(self, workflow_id: str, entity_type: str, entity_id: int) -> Dict[str, Any]:
        ...


class ReconciliationApiPort(Protocol):
    async def run(self) -> Dict[str, Any]:
        ...

    async def status(self) -> Dict[str, Any]:
        ...


class CompletionPort(Protocol):
    """Chat completion endpoint returning the assistant's text."""

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        ...


class WorkflowStorePort(Protocol):
    """Local last-known-good copy of the graph."""

    def load(self) -> Optional[Graph]:
        ...

    def save(self, graph: Graph) -> None:
        ...


class EventChannelPort(Protocol):
    """Push channel of live execution events."""

    connected: bool

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        ...
