"""
Test configuration and fixtures for flowgraph tests.
"""
import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock, patch

from flowgraph.main import app
from flowgraph.config import Settings
from flowgraph.dependencies import get_builder
from flowgraph.application.builder import WorkflowBuilder
from flowgraph.application.execution_monitor import ExecutionMonitor
from flowgraph.domain.catalog import new_node
from flowgraph.domain.events import event_publisher
from flowgraph.domain.graph import ActiveState, Edge, Graph, Position
from flowgraph.services.ai.synthesizer import GraphSynthesizer
from flowgraph.storage.workflow_store import WorkflowStore

NodeSpec = Tuple[str, str]  # (id, kind)
EdgeSpec = Tuple[str, str, Optional[str]]  # (source, target, handle)


@pytest.fixture(autouse=True)
def test_settings(tmp_path):
    """Override settings for testing."""
    with patch("flowgraph.config.settings") as mock_settings:
        test_settings = Settings(
            WORKFLOW_STORAGE_DIR=str(tmp_path / "workflows"),
            LLM_API_KEYS=[],
            BACKEND_BASE_URL="http://engine.test",
        )

        for key, value in test_settings.model_dump().items():
            setattr(mock_settings, key, value)

        Path(test_settings.WORKFLOW_STORAGE_DIR).mkdir(parents=True, exist_ok=True)
        yield test_settings


@pytest.fixture(autouse=True)
def clean_event_publisher():
    """Every test starts without subscribers."""
    event_publisher.clear_subscribers()
    yield
    event_publisher.clear_subscribers()


@pytest.fixture
def graph_factory():
    """Build a graph from (id, kind) node specs and (source, target, handle) edge specs."""
    def build(
        node_specs: List[NodeSpec],
        edge_specs: List[EdgeSpec] = (),
        graph_id: Optional[str] = "wf-1",
        config: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> Graph:
        config = config or {}
        nodes = []
        for index, (node_id, kind) in enumerate(node_specs):
            node = new_node(kind, node_id, config=config.get(node_id))
            node.position = Position(x=100 + index * 300, y=300)
            nodes.append(node)
        edges = [
            Edge(id=f"e{index}", source=source, target=target, source_handle=handle)
            for index, (source, target, handle) in enumerate(edge_specs)
        ]
        return Graph(id=graph_id, name="Test Workflow", nodes=nodes, edges=edges)
    return build


@pytest.fixture
def linear_graph(graph_factory):
    """Offer trigger -> create sale -> notification, fully configured."""
    return graph_factory(
        [("t", "offer-status-trigger"), ("a", "create-sale"), ("n", "send-notification")],
        [("t", "a", None), ("a", "n", None)],
        config={"t": {"toStatus": "accepted"}, "n": {"title": "Sale", "message": "Created"}},
    )


@pytest.fixture
def branching_graph(graph_factory):
    """Trigger -> if/else with yes and no branches."""
    return graph_factory(
        [("t", "sale-status-trigger"), ("c", "if-else"), ("y", "send-email"), ("n", "send-notification")],
        [("t", "c", None), ("c", "y", "yes"), ("c", "n", "no")],
        config={
            "c": {"field": "amount", "operator": "greater_than", "value": 1000},
            "y": {"to": "sales@example.com", "subject": "Big sale"},
            "n": {"title": "Sale", "message": "Small sale"},
        },
    )


@pytest.fixture
def workflow_api():
    """Mocked workflow engine API."""
    api = Mock()
    api.get_default = AsyncMock(return_value=None)
    api.get_by_id = AsyncMock()
    api.update = AsyncMock(return_value={"version": 2})
    api.activate = AsyncMock(return_value=True)
    api.deactivate = AsyncMock(return_value=True)
    api.archive = AsyncMock(return_value=True)
    api.create_draft = AsyncMock()
    api.promote = AsyncMock()
    api.get_triggers = AsyncMock(return_value=[])
    api.list_all = AsyncMock(return_value=[])
    api.create = AsyncMock(return_value={"id": 42, "version": 1})
    api.delete = AsyncMock(return_value=True)
    api.register_trigger = AsyncMock(return_value={"id": 5})
    api.remove_trigger = AsyncMock(return_value=True)
    return api


@pytest.fixture
def approval_api():
    """Mocked approvals API."""
    api = Mock()
    api.get_pending = AsyncMock(return_value=[])
    api.get_by_id = AsyncMock(return_value={"id": 3, "status": "pending"})
    api.respond = AsyncMock(return_value=True)
    return api


@pytest.fixture
def execution_api():
    """Mocked execution history API."""
    api = Mock()
    api.get_by_workflow = AsyncMock(return_value=[])
    api.get_by_id = AsyncMock()
    api.cancel = AsyncMock(return_value=True)
    api.retry = AsyncMock(return_value=True)
    api.cleanup_stuck = AsyncMock(return_value={"count": 2})
    api.trigger_manual = AsyncMock(return_value={"id": "exec-1"})
    return api


@pytest.fixture
def reconciliation_api():
    api = Mock()
    api.run = AsyncMock(return_value={"message": "Reconciled 3 entities"})
    api.status = AsyncMock(return_value={"lastRun": None})
    return api


@pytest.fixture
def completion():
    """Mocked chat completion port."""
    port = Mock()
    port.complete = AsyncMock()
    return port


@pytest.fixture
def workflow_store(tmp_path):
    return WorkflowStore(tmp_path / "store" / "last_known_good.json")


@pytest.fixture
def builder(workflow_api, execution_api, reconciliation_api, completion, workflow_store):
    """Builder session wired to mocks, with instant timers."""
    return WorkflowBuilder(
        workflows=workflow_api,
        executions=execution_api,
        reconciliation=reconciliation_api,
        store=workflow_store,
        synthesizer=GraphSynthesizer(completion=completion),
        monitor=ExecutionMonitor(step_seconds=0, complete_delay=0, reset_delay=0),
        reconciliation_step_seconds=0,
    )


@pytest.fixture
def loaded_builder(builder, linear_graph):
    """Builder holding the linear graph as an engine-backed draft."""
    builder._set_graph(linear_graph.model_copy(update={"active_state": ActiveState.DRAFT}))
    return builder


@pytest.fixture
def client(builder):
    """Create test client bound to the mocked builder session."""
    app.dependency_overrides[get_builder] = lambda: builder
    yield TestClient(app)
    app.dependency_overrides.clear()
