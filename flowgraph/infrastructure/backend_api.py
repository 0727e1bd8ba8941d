"""HTTP clients for the workflow engine's REST API."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from flowgraph.domain.errors import BackendUnavailableError, NotFoundError

logger = logging.getLogger(__name__)


class _EngineClient:
    """Shared request plumbing; one ``httpx.AsyncClient`` per call."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Perform a request; transport failures become ``BackendUnavailableError``."""
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                return await client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                logger.warning(f"Workflow engine unreachable ({method} {path}): {exc}")
                raise BackendUnavailableError("Backend unreachable") from exc

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Request expecting a 2xx JSON body; 404 maps to ``NotFoundError``."""
        response = await self._send(method, path, **kwargs)
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {path}")
        if not response.is_success:
            raise BackendUnavailableError(f"{method} {path} failed with status {response.status_code}")
        return self._decode(response, method, path)

    async def _object(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        """Like ``_json`` but the body must be a JSON object."""
        data = await self._json(method, path, **kwargs)
        if not isinstance(data, dict):
            raise BackendUnavailableError(f"{method} {path} did not return an object")
        return data

    @staticmethod
    def _decode(response: httpx.Response, method: str, path: str) -> Any:
        """Parse a body; proxies answering 200 with HTML count as an unavailable engine."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(f"{method} {path} returned a non-JSON body: {exc}")
            raise BackendUnavailableError(f"{method} {path} returned an invalid response") from exc

    async def _command(self, method: str, path: str, **kwargs: Any) -> bool:
        """Fire-and-check request; non-2xx answers are reported as ``False``."""
        response = await self._send(method, path, **kwargs)
        if not response.is_success:
            logger.warning(f"{method} {path} answered {response.status_code}")
        return response.is_success


class WorkflowApiClient(_EngineClient):
    """Workflow definitions: ``/api/workflows``."""

    async def get_default(self) -> Optional[Dict[str, Any]]:
        """
        Fetch the default workflow.

        Raises ``BackendUnavailableError`` when the engine cannot be
        reached or answers 2xx with something other than a workflow
        object; any error status means "no default" and returns ``None``.
        """
        response = await self._send("GET", "/api/workflows/default")
        if not response.is_success:
            logger.info(f"No default workflow (status {response.status_code})")
            return None
        payload = self._decode(response, "GET", "/api/workflows/default")
        if payload is not None and not isinstance(payload, dict):
            raise BackendUnavailableError("GET /api/workflows/default did not return an object")
        return payload

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/api/workflows") or []

    async def get_by_id(self, workflow_id: str) -> Dict[str, Any]:
        return await self._object("GET", f"/api/workflows/{workflow_id}")

    async def create(
        self,
        name: str,
        description: Optional[str],
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        is_active: bool = False,
    ) -> Dict[str, Any]:
        body = {
            "name": name,
            "description": description,
            "nodes": nodes,
            "edges": edges,
            "isActive": is_active,
        }
        return await self._object("POST", "/api/workflows", json=body)

    async def update(
        self,
        workflow_id: str,
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"nodes": nodes, "edges": edges}
        if name is not None:
            body["name"] = name
        if description is not None:
            body["description"] = description
        return await self._json("PUT", f"/api/workflows/{workflow_id}", json=body)

    async def delete(self, workflow_id: str) -> bool:
        return await self._command("DELETE", f"/api/workflows/{workflow_id}")

    async def activate(self, workflow_id: str) -> bool:
        return await self._command("POST", f"/api/workflows/{workflow_id}/activate")

    async def deactivate(self, workflow_id: str) -> bool:
        return await self._command("POST", f"/api/workflows/{workflow_id}/deactivate")

    async def create_draft(self, workflow_id: str) -> Dict[str, Any]:
        return await self._object("POST", f"/api/workflows/{workflow_id}/create-draft")

    async def promote(self, workflow_id: str) -> Dict[str, Any]:
        return await self._object("POST", f"/api/workflows/{workflow_id}/promote")

    async def archive(self, workflow_id: str) -> bool:
        return await self._command("POST", f"/api/workflows/{workflow_id}/archive")

    async def get_triggers(self, workflow_id: str) -> List[Dict[str, Any]]:
        return await self._json("GET", f"/api/workflows/{workflow_id}/triggers") or []

    async def register_trigger(
        self,
        workflow_id: str,
        node_id: str,
        entity_type: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "workflowId": workflow_id,
            "nodeId": node_id,
            "entityType": entity_type,
            "fromStatus": from_status,
            "toStatus": to_status,
        }
        return await self._object("POST", f"/api/workflows/{workflow_id}/triggers", json=body)

    async def remove_trigger(self, workflow_id: str, trigger_id: str) -> bool:
        return await self._command("DELETE", f"/api/workflows/{workflow_id}/triggers/{trigger_id}")


class ExecutionApiClient(_EngineClient):
    """Execution records: ``/api/workflow-executions``."""

    async def get_by_workflow(self, workflow_id: str, page: int = 1, page_size: int = 50) -> List[Dict[str, Any]]:
        params = {
            "page": page,
            "pageSize": page_size,
            # Defeats intermediate caches while polling
            "_t": int(time.time() * 1000),
        }
        return await self._json("GET", f"/api/workflows/{workflow_id}/executions", params=params) or []

    async def get_by_id(self, execution_id: str) -> Dict[str, Any]:
        return await self._object("GET", f"/api/workflow-executions/{execution_id}")

    async def cancel(self, execution_id: str) -> bool:
        return await self._command("POST", f"/api/workflow-executions/{execution_id}/cancel")

    async def retry(self, execution_id: str) -> bool:
        return await self._command("POST", f"/api/workflow-executions/{execution_id}/retry")

    async def cleanup_stuck(self, older_than_minutes: int = 5) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/api/workflow-executions/cleanup-stuck",
            params={"olderThanMinutes": older_than_minutes},
        ) or {}

    async def trigger_manual(self, workflow_id: str, entity_type: str, entity_id: int) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/api/workflow-executions/trigger-manual",
            json={"workflowId": workflow_id, "entityType": entity_type, "entityId": entity_id},
        )


class ReconciliationApiClient(_EngineClient):
    """Periodic re-evaluation of pending work: ``/api/workflow-reconciliation``."""

    async def run(self) -> Dict[str, Any]:
        return await self._json("POST", "/api/workflow-reconciliation/run") or {}

    async def status(self) -> Dict[str, Any]:
        return await self._json("GET", "/api/workflow-reconciliation/status") or {}


class ApprovalApiClient(_EngineClient):
    """Human approval steps raised by running workflows: ``/api/workflow-approvals``."""

    async def get_pending(self, user_id: Optional[int] = None, role: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if user_id is not None:
            params["userId"] = user_id
        if role:
            params["role"] = role
        return await self._json("GET", "/api/workflow-approvals", params=params) or []

    async def get_by_id(self, approval_id: str) -> Dict[str, Any]:
        return await self._object("GET", f"/api/workflow-approvals/{approval_id}")

    async def respond(self, approval_id: str, approved: bool, response_note: Optional[str] = None) -> bool:
        return await self._command(
            "POST",
            f"/api/workflow-approvals/{approval_id}/respond",
            json={"approved": approved, "responseNote": response_note},
        )
