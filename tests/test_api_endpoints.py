"""
Tests for API endpoints.
"""
import json

import pytest
import yaml

from flowgraph.dependencies import get_approval_api, get_reconciliation_api
from flowgraph.domain.errors import BackendUnavailableError, NotFoundError
from flowgraph.main import app


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_check(self, client):
        """Test basic health check."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_backend_health_unreachable(self, client, reconciliation_api):
        """Test engine failures report an unhealthy backend."""
        reconciliation_api.status.side_effect = BackendUnavailableError("Backend unreachable")
        app.dependency_overrides[get_reconciliation_api] = lambda: reconciliation_api

        response = client.get("/health/backend")

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"
        assert "Backend unreachable" in response.json()["error"]


class TestWorkflowEndpoints:
    """Test canvas editing endpoints."""

    def test_catalog(self, client):
        """Test the palette lists every kind with its icon."""
        response = client.get("/catalog")

        assert response.status_code == 200
        kinds = {entry["type"] for entries in response.json().values() for entry in entries}
        assert {"send-email", "if-else", "offer-status-trigger"} <= kinds

    def test_get_workflow(self, client, loaded_builder):
        """Test the current graph is returned with resolved icons."""
        response = client.get("/workflow")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "wf-1"
        assert data["active_state"] == "draft"
        assert data["edit_mode"] is False
        assert [node["id"] for node in data["nodes"]] == ["t", "a", "n"]
        assert all(node["icon"] for node in data["nodes"])

    def test_add_node_requires_edit_mode(self, client, loaded_builder):
        """Test structural edits outside edit mode conflict."""
        response = client.post("/workflow/nodes", json={"type": "send-email"})

        assert response.status_code == 409
        assert "edit mode" in response.json()["detail"]

    def test_add_node_in_edit_mode(self, client, loaded_builder):
        """Test adding a node once edit mode is enabled."""
        assert client.post("/workflow/edit").json()["edit_mode"] is True

        response = client.post(
            "/workflow/nodes",
            json={"type": "send-email", "config": {"to": "ops@example.com"}},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"].startswith("send-email-")
        assert data["config"]["to"] == "ops@example.com"
        assert len(loaded_builder.graph.nodes) == 4

    def test_unknown_node_kind(self, client, loaded_builder):
        """Test unknown kinds are rejected as invalid."""
        client.post("/workflow/edit")

        response = client.post("/workflow/nodes", json={"type": "teleport"})

        assert response.status_code == 400

    def test_cancel_edit_restores_graph(self, client, loaded_builder):
        """Test cancelling edit mode discards structural changes."""
        client.post("/workflow/edit")
        client.delete("/workflow/nodes/n")
        assert len(loaded_builder.graph.nodes) == 2

        response = client.delete("/workflow/edit")

        assert response.status_code == 200
        assert [node["id"] for node in response.json()["nodes"]] == ["t", "a", "n"]

    def test_connect_into_trigger_rejected(self, client, loaded_builder):
        """Test invalid connections answer 400 with the reason."""
        client.post("/workflow/edit")

        response = client.post("/workflow/edges", json={"source": "n", "target": "t"})

        assert response.status_code == 400
        assert len(loaded_builder.graph.edges) == 2

    def test_connect_with_handle(self, client, branching_graph, builder):
        """Test a new edge keeps its source handle."""
        builder._set_graph(branching_graph.model_copy(update={
            "edges": [edge for edge in branching_graph.edges if edge.target != "n"],
        }))
        client.post("/workflow/edit")

        response = client.post("/workflow/edges", json={"source": "c", "target": "n", "sourceHandle": "no"})

        assert response.status_code == 201
        assert response.json()["sourceHandle"] == "no"

    def test_move_node_missing(self, client, loaded_builder):
        """Test moving an unknown node is not found."""
        response = client.put("/workflow/nodes/ghost/position", json={"x": 1, "y": 2})

        assert response.status_code == 404

    def test_validate_and_order(self, client, loaded_builder):
        """Test validation and execution order of a valid graph."""
        assert client.get("/workflow/validate").json()["valid"] is True
        assert client.get("/workflow/order").json() == ["t", "a", "n"]

    def test_save(self, client, loaded_builder, workflow_api):
        """Test saving sends the graph to the engine and leaves edit mode."""
        client.post("/workflow/edit")

        response = client.post("/workflow/save")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert loaded_builder.edit_mode is False
        assert loaded_builder.graph.version == 2
        workflow_api.update.assert_awaited_once()

    def test_save_unreachable_backend(self, client, loaded_builder, workflow_api):
        """Test engine failures are reported without raising."""
        workflow_api.update.side_effect = BackendUnavailableError("Backend unreachable")

        response = client.post("/workflow/save")

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert "Could not save workflow" in response.json()["message"]


class TestTransferEndpoints:
    """Test import and export endpoints."""

    def test_export_json(self, client, loaded_builder):
        """Test JSON export is downloadable."""
        response = client.get("/workflow/export/json")

        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        document = json.loads(response.text)
        assert len(document["nodes"]) == 3

    def test_export_yaml(self, client, loaded_builder):
        """Test YAML export parses back to the same node count."""
        response = client.get("/workflow/export/yaml")

        assert response.status_code == 200
        assert len(yaml.safe_load(response.text)["nodes"]) == 3

    def test_export_sql(self, client, loaded_builder):
        """Test SQL export contains insert statements."""
        response = client.get("/workflow/export/sql")

        assert response.status_code == 200
        assert "INSERT" in response.text

    def test_export_unsupported(self, client, loaded_builder):
        """Test unknown formats are rejected."""
        assert client.get("/workflow/export/xml").status_code == 400

    def test_export_config(self, client, loaded_builder):
        """Test the engine configuration document."""
        response = client.get("/workflow/export/config")

        assert response.status_code == 200
        assert len(response.json()["nodes"]) == 3

    def test_import_exported_file(self, client, loaded_builder):
        """Test an exported file imports and switches to edit mode."""
        exported = client.get("/workflow/export/json").text

        response = client.post("/workflow/import", json={"content": exported, "format": "json"})

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["node_count"] == 3
        assert loaded_builder.edit_mode is True
        assert loaded_builder.graph.id == "wf-1"

    def test_import_invalid_leaves_canvas(self, client, loaded_builder):
        """Test a broken file is reported and nothing changes."""
        response = client.post("/workflow/import", json={"content": "{not json", "format": "json"})

        assert response.status_code == 200
        assert response.json()["is_valid"] is False
        assert response.json()["error"]
        assert loaded_builder.edit_mode is False
        assert [node.id for node in loaded_builder.graph.nodes] == ["t", "a", "n"]


class TestAIEndpoints:
    """Test synthesis, template and merge endpoints."""

    def test_list_templates(self, client):
        """Test every template is listed."""
        response = client.get("/ai/templates")

        assert response.status_code == 200
        keys = {template["key"] for template in response.json()}
        assert "crm-integration" in keys

    def test_template_candidate(self, client):
        """Test a template yields a laid-out candidate."""
        response = client.post("/ai/templates/crm-integration")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["candidate"]["nodes"]

    def test_unknown_template(self, client):
        """Test unknown template keys are not found."""
        assert client.post("/ai/templates/nope").status_code == 404

    def test_apply_candidate(self, client, loaded_builder):
        """Test applying a candidate merges it beside the canvas."""
        candidate = client.post("/ai/templates/crm-integration").json()["candidate"]

        response = client.post("/ai/apply", json=candidate)

        assert response.status_code == 200
        data = response.json()
        assert data["edit_mode"] is True
        assert data["id"] == "wf-1"
        assert len(data["nodes"]) == 3 + len(candidate["nodes"])
        canvas_right = max(node.position.x for node in loaded_builder.graph.nodes[:3])
        assert min(node["position"]["x"] for node in data["nodes"][3:]) > canvas_right

    def test_synthesize_requires_messages(self, client):
        """Test an empty conversation is rejected by request validation."""
        assert client.post("/ai/synthesize", json={"messages": []}).status_code == 422


class TestExecutionEndpoints:
    """Test execution state and event endpoints."""

    def test_state_starts_idle(self, client, loaded_builder):
        """Test every node reports idle before any run."""
        response = client.get("/executions/state")

        assert response.status_code == 200
        data = response.json()
        assert data["running"] is False
        assert set(data["states"].values()) == {"idle"}

    def test_push_event_applied(self, client, loaded_builder):
        """Test a live event updates node state."""
        response = client.post("/executions/events", json={"type": "node-executing", "nodeId": "a"})

        assert response.status_code == 202
        assert client.get("/executions/state").json()["states"]["a"] == "executing"

    def test_push_invalid_event(self, client, loaded_builder):
        """Test unknown event types are rejected."""
        response = client.post("/executions/events", json={"type": "node-exploded"})

        assert response.status_code == 400

    def test_run_invalid_workflow(self, client, builder, graph_factory):
        """Test a run refuses a graph with two starting nodes."""
        builder._set_graph(graph_factory([("t", "webhook-trigger"), ("a", "send-email")]))

        response = client.post("/executions/run")

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["message"] == "multiple triggers"

    def test_cancel_execution(self, client, loaded_builder, execution_api):
        """Test cancellation is forwarded to the engine."""
        response = client.post("/executions/exec-1/cancel")

        assert response.json()["success"] is True
        execution_api.cancel.assert_awaited_once_with("exec-1")

    def test_history_paging_validated(self, client, loaded_builder):
        """Test page numbers must be positive."""
        assert client.get("/executions/history", params={"page": 0}).status_code == 422

    def test_reconciliation_status(self, client, loaded_builder):
        """Test status reports ineligible while the live channel is down."""
        response = client.get("/reconciliation/status")

        assert response.status_code == 200
        assert response.json()["reconciling"] is False
        assert response.json()["eligible"] is False

    def test_registered_triggers(self, client, loaded_builder, workflow_api):
        """Test trigger registrations are read for the current workflow."""
        workflow_api.get_triggers.return_value = [{"nodeId": "t", "entityType": "offer"}]

        response = client.get("/workflow/triggers")

        assert response.status_code == 200
        assert response.json() == [{"nodeId": "t", "entityType": "offer"}]
        workflow_api.get_triggers.assert_awaited_once_with("wf-1")

    def test_register_trigger(self, client, loaded_builder, workflow_api):
        """Test a status trigger node is registered with the engine."""
        response = client.post("/workflow/triggers", json={"node_id": "t"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        workflow_api.register_trigger.assert_awaited_once()

    def test_register_unknown_node(self, client, loaded_builder):
        """Test registering a missing node is not found."""
        assert client.post("/workflow/triggers", json={"node_id": "ghost"}).status_code == 404

    def test_remove_trigger(self, client, loaded_builder, workflow_api):
        """Test trigger removal is forwarded to the engine."""
        response = client.delete("/workflow/triggers/5")

        assert response.json()["success"] is True
        workflow_api.remove_trigger.assert_awaited_once_with("wf-1", "5")


class TestWorkflowManagementEndpoints:
    """Test stored workflow listing, deletion and duplication."""

    def test_list_workflows(self, client, workflow_api):
        """Test stored workflows are listed."""
        workflow_api.list_all.return_value = [{"id": 1, "name": "Offer flow"}]

        response = client.get("/workflows")

        assert response.status_code == 200
        assert response.json() == [{"id": 1, "name": "Offer flow"}]

    def test_list_workflows_unreachable(self, client, workflow_api):
        """Test an unreachable engine answers 502."""
        workflow_api.list_all.side_effect = BackendUnavailableError("Backend unreachable")

        assert client.get("/workflows").status_code == 502

    def test_delete_workflow(self, client, loaded_builder, workflow_api):
        """Test deleting the open workflow detaches the canvas."""
        response = client.delete("/workflows/wf-1")

        assert response.json()["success"] is True
        assert client.get("/workflow").json()["id"] is None

    def test_duplicate_workflow(self, client, loaded_builder, workflow_api):
        """Test a duplicate reports the new workflow id."""
        workflow_api.get_by_id.return_value = {"id": 7, "name": "Offer flow", "nodes": [], "edges": []}

        response = client.post("/workflows/7/duplicate")

        assert response.json()["success"] is True
        assert response.json()["workflow_id"] == "42"
        assert workflow_api.create.call_args.args[0] == "Offer flow (Copy)"

    def test_save_new_workflow(self, client, builder, workflow_api, linear_graph):
        """Test saving a canvas without an id creates the workflow."""
        builder._set_graph(linear_graph.model_copy(update={"id": None}))

        response = client.post("/workflow/save")

        assert response.json()["success"] is True
        assert response.json()["workflow_id"] == "42"
        workflow_api.create.assert_awaited_once()


class TestApprovalEndpoints:
    """Test approval passthrough endpoints."""

    @pytest.fixture(autouse=True)
    def override_approvals(self, approval_api):
        app.dependency_overrides[get_approval_api] = lambda: approval_api
        yield
        app.dependency_overrides.pop(get_approval_api, None)

    def test_list_pending(self, client, approval_api):
        """Test filters are forwarded."""
        approval_api.get_pending.return_value = [{"id": 3}]

        response = client.get("/approvals", params={"user_id": 12, "role": "manager"})

        assert response.status_code == 200
        assert response.json() == [{"id": 3}]
        approval_api.get_pending.assert_awaited_once_with(user_id=12, role="manager")

    def test_get_approval(self, client):
        """Test a single approval is returned."""
        assert client.get("/approvals/3").json()["status"] == "pending"

    def test_get_missing_approval(self, client, approval_api):
        """Test unknown approvals answer 404."""
        approval_api.get_by_id.side_effect = NotFoundError("Not found: /api/workflow-approvals/9")

        assert client.get("/approvals/9").status_code == 404

    def test_respond(self, client, approval_api):
        """Test a rejection is forwarded with its note."""
        response = client.post("/approvals/3/respond", json={"approved": False, "response_note": "Too expensive"})

        assert response.status_code == 200
        assert response.json()["message"] == "Rejected"
        approval_api.respond.assert_awaited_once_with("3", False, "Too expensive")

    def test_respond_refused(self, client, approval_api):
        """Test a refused response is reported."""
        approval_api.respond.return_value = False

        response = client.post("/approvals/3/respond", json={"approved": True})

        assert response.json()["success"] is False
