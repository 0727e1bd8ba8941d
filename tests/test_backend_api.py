"""Tests for the workflow engine HTTP clients."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from flowgraph.domain.errors import BackendUnavailableError, NotFoundError
from flowgraph.infrastructure.backend_api import (
    ApprovalApiClient,
    ExecutionApiClient,
    ReconciliationApiClient,
    WorkflowApiClient,
)

BASE_URL = "http://engine.test"


def _recording_transport(routes, calls):
    """MockTransport answering from ``routes`` keyed by (method, path)."""
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        key = (request.method, request.url.path)
        if key not in routes:
            return httpx.Response(404)
        status, body = routes[key]
        return httpx.Response(status, json=body) if body is not None else httpx.Response(status)
    return httpx.MockTransport(handler)


class TestWorkflowApiClient:
    """Test workflow definition endpoints."""

    def test_get_default(self):
        """Test the default workflow payload is returned as-is."""
        calls = []
        routes = {("GET", "/api/workflows/default"): (200, {"id": 7, "name": "Default"})}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        payload = asyncio.run(client.get_default())

        assert payload == {"id": 7, "name": "Default"}

    def test_get_default_missing_returns_none(self):
        """Test an error status means there is no default workflow."""
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport({}, []))

        assert asyncio.run(client.get_default()) is None

    def test_unreachable_engine(self):
        """Test transport failures become BackendUnavailableError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = WorkflowApiClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.get_default())

    def test_update_sends_nodes_and_edges(self):
        """Test saving PUTs the node and edge arrays."""
        calls = []
        routes = {("PUT", "/api/workflows/7"): (200, {"id": 7, "version": 3})}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        result = asyncio.run(client.update("7", [{"id": "a"}], [{"id": "e", "source": "a", "target": "b"}]))

        assert result["version"] == 3
        body = json.loads(calls[0].content)
        assert body["nodes"] == [{"id": "a"}]
        assert body["edges"][0]["source"] == "a"

    def test_update_sends_name_and_description(self):
        """Test renames travel with the update."""
        calls = []
        routes = {("PUT", "/api/workflows/7"): (200, {"id": 7, "version": 3})}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        asyncio.run(client.update("7", [], [], name="Renamed", description="Notes"))

        body = json.loads(calls[0].content)
        assert body["name"] == "Renamed"
        assert body["description"] == "Notes"

    def test_create_posts_definition(self):
        """Test new workflows are POSTed with name, graph and activity flag."""
        calls = []
        routes = {("POST", "/api/workflows"): (201, {"id": 42, "version": 1})}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        created = asyncio.run(client.create("Flow", None, [{"id": "a"}], [], is_active=False))

        assert created == {"id": 42, "version": 1}
        assert json.loads(calls[0].content) == {
            "name": "Flow",
            "description": None,
            "nodes": [{"id": "a"}],
            "edges": [],
            "isActive": False,
        }

    def test_html_body_on_default(self):
        """Test a 200 maintenance page is treated as an unavailable engine."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        client = WorkflowApiClient(BASE_URL, transport=transport)

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.get_default())

    def test_non_object_default(self):
        """Test a default that is not a JSON object is rejected."""
        routes = {("GET", "/api/workflows/default"): (200, [1, 2])}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.get_default())

    def test_html_body_on_data_call(self):
        """Test data calls reject bodies that are not JSON."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        client = WorkflowApiClient(BASE_URL, transport=transport)

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.list_all())

    def test_get_by_id_requires_object(self):
        """Test a list where a workflow was expected is rejected."""
        routes = {("GET", "/api/workflows/7"): (200, [{"id": 7}])}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.get_by_id("7"))

    def test_get_by_id_not_found(self):
        """Test a 404 maps to NotFoundError."""
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport({}, []))

        with pytest.raises(NotFoundError):
            asyncio.run(client.get_by_id("42"))

    def test_commands_report_success(self):
        """Test lifecycle commands return whether the engine accepted them."""
        routes = {
            ("POST", "/api/workflows/7/activate"): (200, None),
            ("POST", "/api/workflows/7/deactivate"): (500, None),
        }
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        assert asyncio.run(client.activate("7")) is True
        assert asyncio.run(client.deactivate("7")) is False

    def test_get_triggers(self):
        """Test trigger registrations are listed."""
        routes = {("GET", "/api/workflows/7/triggers"): (200, [{"nodeId": "t", "entityType": "offer"}])}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        assert asyncio.run(client.get_triggers("7")) == [{"nodeId": "t", "entityType": "offer"}]

    def test_list_and_delete(self):
        """Test listing returns every workflow and delete is a command."""
        routes = {
            ("GET", "/api/workflows"): (200, [{"id": 1}, {"id": 2}]),
            ("DELETE", "/api/workflows/2"): (204, None),
        }
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        assert asyncio.run(client.list_all()) == [{"id": 1}, {"id": 2}]
        assert asyncio.run(client.delete("2")) is True
        assert asyncio.run(client.delete("3")) is False

    def test_register_and_remove_trigger(self):
        """Test trigger registration sends the entity and status transition."""
        calls = []
        routes = {
            ("POST", "/api/workflows/7/triggers"): (200, {"id": 5}),
            ("DELETE", "/api/workflows/7/triggers/5"): (200, None),
        }
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        registration = asyncio.run(client.register_trigger("7", "t", "offer", to_status="accepted"))

        assert registration == {"id": 5}
        assert json.loads(calls[0].content) == {
            "workflowId": "7",
            "nodeId": "t",
            "entityType": "offer",
            "fromStatus": None,
            "toStatus": "accepted",
        }
        assert asyncio.run(client.remove_trigger("7", "5")) is True

    def test_server_error_on_json_call(self):
        """Test non-404 errors on data calls surface as BackendUnavailableError."""
        routes = {("POST", "/api/workflows/7/promote"): (500, {"error": "boom"})}
        client = WorkflowApiClient(BASE_URL, transport=_recording_transport(routes, []))

        with pytest.raises(BackendUnavailableError):
            asyncio.run(client.promote("7"))


class TestExecutionApiClient:
    """Test execution history endpoints."""

    def test_history_paging_params(self):
        """Test paging and cache-busting parameters are sent."""
        calls = []
        routes = {("GET", "/api/workflows/7/executions"): (200, [{"id": 1, "status": "running"}])}
        client = ExecutionApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        history = asyncio.run(client.get_by_workflow("7", page=2, page_size=10))

        assert history == [{"id": 1, "status": "running"}]
        params = calls[0].url.params
        assert params["page"] == "2"
        assert params["pageSize"] == "10"
        assert "_t" in params

    def test_cleanup_stuck(self):
        """Test cleanup passes the age threshold."""
        calls = []
        routes = {("POST", "/api/workflow-executions/cleanup-stuck"): (200, {"count": 4})}
        client = ExecutionApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        result = asyncio.run(client.cleanup_stuck(older_than_minutes=15))

        assert result == {"count": 4}
        assert calls[0].url.params["olderThanMinutes"] == "15"

    def test_cancel_and_retry(self):
        """Test cancel and retry are boolean commands."""
        routes = {
            ("POST", "/api/workflow-executions/9/cancel"): (200, None),
            ("POST", "/api/workflow-executions/9/retry"): (409, None),
        }
        client = ExecutionApiClient(BASE_URL, transport=_recording_transport(routes, []))

        assert asyncio.run(client.cancel("9")) is True
        assert asyncio.run(client.retry("9")) is False

    def test_trigger_manual(self):
        """Test manual triggers name the workflow and entity."""
        calls = []
        routes = {("POST", "/api/workflow-executions/trigger-manual"): (200, {"id": 11})}
        client = ExecutionApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        asyncio.run(client.trigger_manual("7", "offer", 3))

        assert json.loads(calls[0].content) == {"workflowId": "7", "entityType": "offer", "entityId": 3}


class TestReconciliationApiClient:
    """Test reconciliation endpoints."""

    def test_run_and_status(self):
        """Test run POSTs and status GETs."""
        routes = {
            ("POST", "/api/workflow-reconciliation/run"): (200, {"processed": 3}),
            ("GET", "/api/workflow-reconciliation/status"): (200, {"running": False}),
        }
        client = ReconciliationApiClient(BASE_URL, transport=_recording_transport(routes, []))

        assert asyncio.run(client.run()) == {"processed": 3}
        assert asyncio.run(client.status()) == {"running": False}


class TestApprovalApiClient:
    """Test approval endpoints."""

    def test_pending_filters(self):
        """Test user and role filters are sent as query parameters."""
        calls = []
        routes = {("GET", "/api/workflow-approvals"): (200, [{"id": 3}])}
        client = ApprovalApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        pending = asyncio.run(client.get_pending(user_id=12, role="manager"))

        assert pending == [{"id": 3}]
        assert calls[0].url.params["userId"] == "12"
        assert calls[0].url.params["role"] == "manager"

    def test_pending_without_filters(self):
        """Test no filters means no query string."""
        calls = []
        routes = {("GET", "/api/workflow-approvals"): (200, [])}
        client = ApprovalApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        assert asyncio.run(client.get_pending()) == []
        assert not calls[0].url.params

    def test_respond(self):
        """Test a decision is POSTed with its note."""
        calls = []
        routes = {("POST", "/api/workflow-approvals/3/respond"): (200, None)}
        client = ApprovalApiClient(BASE_URL, transport=_recording_transport(routes, calls))

        assert asyncio.run(client.respond("3", False, "Budget exceeded")) is True
        assert json.loads(calls[0].content) == {"approved": False, "responseNote": "Budget exceeded"}

    def test_get_missing_approval(self):
        """Test an unknown approval maps to NotFoundError."""
        client = ApprovalApiClient(BASE_URL, transport=_recording_transport({}, []))

        with pytest.raises(NotFoundError):
            asyncio.run(client.get_by_id("404"))
