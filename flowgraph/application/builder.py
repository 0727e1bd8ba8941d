"""Builder session: the single owner of the canvas graph."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from flowgraph.application.background import ExecutionPoller, QueueEventChannel, ReconciliationScheduler
from flowgraph.application.execution_events import ExecutionRecord
from flowgraph.application.execution_monitor import ExecutionMonitor
from flowgraph.domain.catalog import entity_for_trigger, get_template, looks_like_trigger, new_node
from flowgraph.domain.defaults import default_graph
from flowgraph.domain.errors import (
    BackendUnavailableError,
    DomainError,
    EditModeError,
    NotFoundError,
    ValidationError,
)
from flowgraph.domain.events import (
    AIGraphMerged,
    ExecutionFinished,
    WorkflowActivationChanged,
    WorkflowDeleted,
    WorkflowImported,
    WorkflowLoaded,
    WorkflowSaved,
    event_publisher,
)
from flowgraph.domain.graph import ActiveState, Edge, Graph, Node, Position
from flowgraph.domain.layout import apply_layout, offset_past, place_below
from flowgraph.domain.ports import ExecutionApiPort, ReconciliationApiPort, WorkflowApiPort, WorkflowStorePort
from flowgraph.domain.scheduler import execution_order
from flowgraph.domain.validator import ValidationResult, check_config, is_valid_connection, validate
from flowgraph.serialization import (
    ImportResult,
    export_config,
    export_json,
    export_sql,
    export_yaml,
    import_workflow,
    transform_workflow_from_backend,
    transform_workflow_to_backend,
)
from flowgraph.services.ai.synthesizer import GraphSynthesizer, SynthesisResult, merge_graphs

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "yaml", "sql")


class ActionResult(BaseModel):
    """Outcome of an explicit user action; failures always carry a message."""
    success: bool
    message: str
    validation: Optional[ValidationResult] = None
    workflow_id: Optional[str] = None


def graph_from_workflow(payload: Dict[str, Any]) -> Graph:
    """Build a graph from an engine workflow definition."""
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a workflow object, got {type(payload).__name__}")
    nodes, edges = transform_workflow_from_backend(payload.get("nodes"), payload.get("edges"))
    if payload.get("isArchived") or payload.get("status") == "archived":
        state = ActiveState.ARCHIVED
    elif payload.get("isActive"):
        state = ActiveState.ACTIVE
    else:
        state = ActiveState.DRAFT
    return Graph(
        id=str(payload["id"]) if payload.get("id") is not None else None,
        name=payload.get("name") or "Untitled workflow",
        description=payload.get("description"),
        version=payload.get("version") or 1,
        active_state=state,
        nodes=nodes,
        edges=edges,
    )


class WorkflowBuilder:
    """
    Owns the canvas graph and every operation on it.

    Every replacement of the graph (manual edit, AI merge, import, load)
    goes through ``_set_graph``. Structural mutations are only accepted
    while edit mode is on.
    """

    def __init__(
        self,
        workflows: WorkflowApiPort,
        executions: ExecutionApiPort,
        reconciliation: ReconciliationApiPort,
        store: WorkflowStorePort,
        synthesizer: GraphSynthesizer,
        monitor: Optional[ExecutionMonitor] = None,
        channel: Optional[QueueEventChannel] = None,
        block_unreachable: bool = False,
        polling_interval: float = 3.0,
        reconciliation_interval: float = 300.0,
        reconciliation_step_seconds: float = 0.5,
    ) -> None:
        self._workflows = workflows
        self._executions = executions
        self._reconciliation = reconciliation
        self._store = store
        self._synthesizer = synthesizer
        self.block_unreachable = block_unreachable
        self.reconciliation_step_seconds = reconciliation_step_seconds
        self.monitor = monitor or ExecutionMonitor()
        self.monitor.on_finished = self._on_run_finished
        self.channel = channel or QueueEventChannel()
        self.poller = ExecutionPoller(executions, self.monitor, interval=polling_interval)
        self.reconciler = ReconciliationScheduler(
            reconciliation_interval, guard=self.can_reconcile, action=self.reconcile
        )
        self.edit_mode = False
        self.reconciling = False
        self._snapshot: Optional[Graph] = None
        self._consumer = None
        self._graph = Graph()
        self._set_graph(default_graph())

    # -- graph ownership -------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph

    def _set_graph(self, graph: Graph) -> None:
        self._graph = graph
        self.monitor.track(graph.nodes)

    def _require_edit(self) -> None:
        if not self.edit_mode:
            raise EditModeError("Enable edit mode to change the workflow structure")

    def _require_node(self, node_id: str) -> Node:
        node = self._graph.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node

    def _publish_loaded(self, source: str) -> None:
        event_publisher.publish(WorkflowLoaded(
            aggregate_id=self._graph.id or self._graph.name,
            source=source,
            node_count=len(self._graph.nodes),
        ))

    # -- loading ---------------------------------------------------------

    def _fallback(self) -> Tuple[Graph, str]:
        cached = self._store.load()
        if cached is not None:
            return cached, "local"
        return default_graph(), "builtin"

    async def load_default(self) -> ActionResult:
        """
        Load the engine's default workflow.

        An unreachable engine or a missing default falls back to the
        last-known-good local copy, then to the built-in workflow, so the
        canvas is never left empty.
        """
        try:
            payload = await self._workflows.get_default()
        except BackendUnavailableError:
            graph, source = self._fallback()
            self._set_graph(graph)
            self._publish_loaded(source)
            return ActionResult(success=False, message="Backend unreachable; showing the last saved workflow")

        if payload is None:
            graph, source = self._fallback()
            self._set_graph(graph)
            self._publish_loaded(source)
            return ActionResult(success=True, message="No default workflow on the server; using local copy")

        try:
            graph = graph_from_workflow(payload)
        except ValueError as exc:
            logger.warning(f"Default workflow could not be decoded: {exc}")
            graph, source = self._fallback()
            self._set_graph(graph)
            self._publish_loaded(source)
            return ActionResult(success=False, message="Stored workflow is corrupt; showing the last saved workflow")

        self._set_graph(graph)
        self._store.save(graph)
        self._publish_loaded("backend")
        return ActionResult(success=True, message=f"Loaded '{graph.name}'")

    async def load(self, workflow_id: str) -> ActionResult:
        try:
            payload = await self._workflows.get_by_id(workflow_id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        try:
            graph = graph_from_workflow(payload)
        except ValueError as exc:
            logger.warning(f"Workflow {workflow_id} could not be decoded: {exc}")
            return ActionResult(success=False, message=f"Workflow {workflow_id} could not be read")
        self._set_graph(graph)
        self._store.save(graph)
        self._snapshot = None
        self.edit_mode = False
        self._publish_loaded("backend")
        return ActionResult(success=True, message=f"Loaded '{graph.name}'")

    # -- edit mode -------------------------------------------------------

    def enter_edit(self) -> None:
        if not self.edit_mode:
            self._snapshot = self._graph.model_copy(deep=True)
            self.edit_mode = True

    def cancel_edit(self) -> None:
        """Leave edit mode, discarding unsaved changes."""
        if self._snapshot is not None:
            self._set_graph(self._snapshot)
        self._snapshot = None
        self.edit_mode = False

    def add_node(
        self,
        kind: str,
        label: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        position: Optional[Position] = None,
    ) -> Node:
        self._require_edit()
        if get_template(kind) is None:
            raise ValidationError(f"Unknown node type: {kind}")
        node = new_node(kind, f"{kind}-{uuid4().hex[:8]}", label=label, config=config)
        node.position = position or place_below(self._graph.nodes)
        self._set_graph(self._graph.model_copy(update={"nodes": self._graph.nodes + [node]}))
        return node

    def remove_node(self, node_id: str) -> None:
        self._require_edit()
        self._require_node(node_id)
        self._set_graph(self._graph.model_copy(update={
            "nodes": [node for node in self._graph.nodes if node.id != node_id],
            "edges": [edge for edge in self._graph.edges if node_id not in (edge.source, edge.target)],
        }))

    def connect(self, source: str, target: str, source_handle: Optional[str] = None) -> Tuple[ValidationResult, Optional[Edge]]:
        """Add an edge if the live connection rules allow it."""
        self._require_edit()
        result = is_valid_connection(source, target, source_handle, self._graph.nodes, self._graph.edges)
        if not result.valid:
            return result, None
        edge = Edge(
            id=f"e-{source}-{target}-{uuid4().hex[:6]}",
            source=source,
            target=target,
            source_handle=source_handle,
        )
        self._set_graph(self._graph.model_copy(update={"edges": self._graph.edges + [edge]}))
        return result, edge

    def disconnect(self, edge_id: str) -> None:
        self._require_edit()
        if not any(edge.id == edge_id for edge in self._graph.edges):
            raise NotFoundError(f"Edge not found: {edge_id}")
        self._set_graph(self._graph.model_copy(update={
            "edges": [edge for edge in self._graph.edges if edge.id != edge_id],
        }))

    def move_node(self, node_id: str, position: Position) -> Node:
        """Positions belong to the user's drags and are not gated by edit mode."""
        node = self._require_node(node_id).model_copy(update={"position": position})
        self._replace_node(node)
        return node

    def update_node(self, node_id: str, config: Dict[str, Any], label: Optional[str] = None) -> Node:
        self._require_edit()
        current = self._require_node(node_id)
        update: Dict[str, Any] = {"config": dict(config)}
        if label is not None:
            update["label"] = label
        node = current.model_copy(update=update)
        self._replace_node(node)
        return node

    def _replace_node(self, node: Node) -> None:
        self._set_graph(self._graph.model_copy(update={
            "nodes": [node if existing.id == node.id else existing for existing in self._graph.nodes],
        }))

    def auto_layout(self) -> None:
        self._require_edit()
        self._set_graph(self._graph.model_copy(update={
            "nodes": apply_layout(self._graph.nodes, self._graph.edges),
        }))

    def rename(self, name: str, description: Optional[str] = None) -> None:
        self._require_edit()
        if not name or not name.strip():
            raise ValidationError("Workflow name is required and cannot be empty")
        self._set_graph(self._graph.model_copy(update={
            "name": name.strip(),
            "description": description.strip() if description else self._graph.description,
        }))

    # -- validation and persistence --------------------------------------

    def validate(self) -> ValidationResult:
        return validate(self._graph, block_unreachable=self.block_unreachable)

    async def save(self) -> ActionResult:
        """
        Validate and persist the canvas.

        A graph without an engine id is created on the server and adopts
        the id it is given; later saves update it in place.
        """
        result = self.validate()
        if not result.valid:
            return ActionResult(success=False, message=result.reason or "Workflow is invalid", validation=result)

        nodes, edges = transform_workflow_to_backend(self._graph)
        creating = not self._graph.id
        try:
            if creating:
                saved = await self._workflows.create(
                    self._graph.name,
                    self._graph.description,
                    nodes,
                    edges,
                    is_active=self._graph.active_state == ActiveState.ACTIVE,
                )
            else:
                saved = await self._workflows.update(
                    self._graph.id,
                    nodes,
                    edges,
                    name=self._graph.name,
                    description=self._graph.description,
                )
        except (BackendUnavailableError, NotFoundError) as exc:
            return ActionResult(success=False, message=f"Could not save workflow: {exc}", validation=result)

        update: Dict[str, Any] = {}
        if isinstance(saved, dict):
            if creating and saved.get("id") is not None:
                update["id"] = str(saved["id"])
            if saved.get("version"):
                update["version"] = saved["version"]
        if creating and "id" not in update:
            return ActionResult(success=False, message="The server did not assign a workflow id", validation=result)
        if update:
            self._set_graph(self._graph.model_copy(update=update))
        self._store.save(self._graph)
        self._snapshot = None
        self.edit_mode = False
        event_publisher.publish(WorkflowSaved(
            aggregate_id=self._graph.id,
            name=self._graph.name,
            node_count=len(nodes),
            edge_count=len(edges),
        ))
        return ActionResult(
            success=True,
            message="Workflow created" if creating else "Workflow saved",
            validation=result,
            workflow_id=self._graph.id,
        )

    async def set_active(self, active: bool) -> ActionResult:
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        if self._graph.active_state == ActiveState.ARCHIVED:
            return ActionResult(success=False, message="Archived workflows cannot be activated")
        call = self._workflows.activate if active else self._workflows.deactivate
        try:
            ok = await call(self._graph.id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        if not ok:
            return ActionResult(success=False, message="The server refused the change")
        state = ActiveState.ACTIVE if active else ActiveState.DRAFT
        self._set_graph(self._graph.model_copy(update={"active_state": state}))
        event_publisher.publish(WorkflowActivationChanged(aggregate_id=self._graph.id, active_state=state.value))
        return ActionResult(success=True, message="Workflow activated" if active else "Workflow deactivated")

    async def archive(self) -> ActionResult:
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        try:
            ok = await self._workflows.archive(self._graph.id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        if not ok:
            return ActionResult(success=False, message="The server refused to archive the workflow")
        self._set_graph(self._graph.model_copy(update={"active_state": ActiveState.ARCHIVED}))
        event_publisher.publish(WorkflowActivationChanged(aggregate_id=self._graph.id, active_state="archived"))
        return ActionResult(success=True, message="Workflow archived")

    async def create_draft(self) -> ActionResult:
        """Fork the current workflow into a new draft version and switch to it."""
        return await self._replace_from_server(self._workflows.create_draft, "Draft created")

    async def promote(self) -> ActionResult:
        """Promote the current draft to be the live version."""
        return await self._replace_from_server(self._workflows.promote, "Draft promoted")

    async def _replace_from_server(self, call, message: str) -> ActionResult:
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        try:
            payload = await call(self._graph.id)
        except (BackendUnavailableError, NotFoundError) as exc:
            return ActionResult(success=False, message=str(exc))
        try:
            graph = graph_from_workflow(payload)
        except ValueError as exc:
            logger.warning(f"Server answer could not be decoded: {exc}")
            return ActionResult(success=False, message="The server returned an unreadable workflow")
        self._set_graph(graph)
        self._store.save(graph)
        self._publish_loaded("backend")
        return ActionResult(success=True, message=message)

    # -- running ---------------------------------------------------------

    def run(self) -> ActionResult:
        """Start a local simulated run in scheduler order."""
        if self.monitor.running:
            return ActionResult(success=False, message="A run is already in progress")
        result = self.validate()
        if not result.valid:
            return ActionResult(success=False, message=result.reason or "Workflow is invalid", validation=result)
        problems = check_config(self._graph)
        if problems:
            return ActionResult(success=False, message="; ".join(problems), validation=result)
        order = execution_order(self._graph.nodes, self._graph.edges)
        self.monitor.simulate(order)
        return ActionResult(success=True, message=f"Running {len(order)} nodes", validation=result)

    def stop(self) -> None:
        self.monitor.stop()

    def execution_order(self) -> List[str]:
        return execution_order(self._graph.nodes, self._graph.edges)

    def _on_run_finished(self, success: bool, simulated: bool) -> None:
        event_publisher.publish(ExecutionFinished(
            aggregate_id=self._graph.id or self._graph.name,
            success=success,
            simulated=simulated,
        ))

    async def trigger_manual(self, entity_type: str, entity_id: int) -> ActionResult:
        """Ask the engine to run the workflow for one entity and watch it."""
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        try:
            execution = await self._executions.trigger_manual(self._graph.id, entity_type, entity_id)
        except (BackendUnavailableError, NotFoundError) as exc:
            return ActionResult(success=False, message=str(exc))
        self.poller.arm(self._graph.id)
        execution_id = (execution or {}).get("id")
        return ActionResult(success=True, message=f"Execution {execution_id} started" if execution_id else "Execution started")

    async def triggers(self) -> List[Dict[str, Any]]:
        """Trigger registrations the engine holds for the current workflow."""
        if not self._graph.id:
            return []
        return await self._workflows.get_triggers(self._graph.id)

    async def register_trigger(self, node_id: str) -> ActionResult:
        """
        Register an entity status trigger node with the engine.

        The entity type comes from the node kind; ``fromStatus`` and
        ``toStatus`` come from the node's configuration.
        """
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        node = self._require_node(node_id)
        if not looks_like_trigger(node.kind):
            raise ValidationError(f"Node '{node.label or node.id}' is not a trigger")
        entity_type = entity_for_trigger(node.kind)
        if entity_type is None:
            return ActionResult(success=False, message=f"'{node.kind}' triggers are not registered with the engine")
        try:
            registration = await self._workflows.register_trigger(
                self._graph.id,
                node.id,
                entity_type,
                from_status=node.config.get("fromStatus") or None,
                to_status=node.config.get("toStatus") or None,
            )
        except (BackendUnavailableError, NotFoundError) as exc:
            return ActionResult(success=False, message=str(exc))
        trigger_id = registration.get("id")
        return ActionResult(
            success=True,
            message=f"Trigger {trigger_id} registered" if trigger_id is not None else "Trigger registered",
            workflow_id=self._graph.id,
        )

    async def remove_trigger(self, trigger_id: str) -> ActionResult:
        if not self._graph.id:
            return ActionResult(success=False, message="Workflow has not been created on the server")
        try:
            ok = await self._workflows.remove_trigger(self._graph.id, trigger_id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        return ActionResult(success=ok, message="Trigger removed" if ok else "Could not remove trigger")

    # -- workflow management ---------------------------------------------

    async def list_workflows(self) -> List[Dict[str, Any]]:
        return await self._workflows.list_all()

    async def delete_workflow(self, workflow_id: str) -> ActionResult:
        """
        Delete a workflow on the engine.

        Deleting the workflow on the canvas keeps the canvas but detaches
        it, so the next save creates a new workflow.
        """
        try:
            ok = await self._workflows.delete(workflow_id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        if not ok:
            return ActionResult(success=False, message="The server refused to delete the workflow")
        current = workflow_id == self._graph.id
        if current:
            self._set_graph(self._graph.model_copy(update={
                "id": None,
                "version": 1,
                "active_state": ActiveState.DRAFT,
            }))
        event_publisher.publish(WorkflowDeleted(aggregate_id=workflow_id, was_current=current))
        return ActionResult(success=True, message="Workflow deleted", workflow_id=workflow_id)

    async def duplicate(self, workflow_id: str) -> ActionResult:
        """Copy a stored workflow into a new, inactive one named "<name> (Copy)"."""
        try:
            source = await self._workflows.get_by_id(workflow_id)
            name = f"{source.get('name') or 'Untitled workflow'} (Copy)"
            created = await self._workflows.create(
                name,
                source.get("description"),
                source.get("nodes") or [],
                source.get("edges") or [],
                is_active=False,
            )
        except (BackendUnavailableError, NotFoundError) as exc:
            return ActionResult(success=False, message=str(exc))
        new_id = created.get("id")
        return ActionResult(
            success=True,
            message=f"Created '{name}'",
            workflow_id=str(new_id) if new_id is not None else None,
        )

    # -- execution history -----------------------------------------------

    async def history(self, page: int = 1, page_size: int = 50) -> List[ExecutionRecord]:
        if not self._graph.id:
            return []
        raw = await self._executions.get_by_workflow(self._graph.id, page=page, page_size=page_size)
        records = [ExecutionRecord.model_validate(item) for item in raw]
        if records and records[0].in_flight:
            self.poller.arm(self._graph.id)
        return records

    async def cancel_execution(self, execution_id: str) -> ActionResult:
        try:
            ok = await self._executions.cancel(execution_id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        return ActionResult(success=ok, message="Execution cancelled" if ok else "Could not cancel execution")

    async def retry_execution(self, execution_id: str) -> ActionResult:
        try:
            ok = await self._executions.retry(execution_id)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        if ok and self._graph.id:
            self.poller.arm(self._graph.id)
        return ActionResult(success=ok, message="Execution retried" if ok else "Could not retry execution")

    async def cleanup_stuck(self, older_than_minutes: int = 5) -> ActionResult:
        try:
            outcome = await self._executions.cleanup_stuck(older_than_minutes)
        except BackendUnavailableError as exc:
            return ActionResult(success=False, message=str(exc))
        return ActionResult(success=True, message=outcome.get("message") or f"Cleaned up {outcome.get('count', 0)} executions")

    # -- reconciliation --------------------------------------------------

    def can_reconcile(self) -> bool:
        return (
            self.channel.connected
            and not self.reconciling
            and not self.monitor.running
            and len(self._graph.nodes) > 0
        )

    async def reconcile(self) -> ActionResult:
        """Visualize the graph in order, then run the engine's reconciliation job."""
        if self.reconciling:
            return ActionResult(success=False, message="Reconciliation already in progress")
        self.reconciling = True
        self.monitor.begin_run(simulated=True)
        try:
            await self.monitor.walk(self.execution_order(), step_seconds=self.reconciliation_step_seconds)
            outcome = await self._reconciliation.run()
            self.monitor.finish(True)
        except DomainError as exc:
            self.monitor.fail_all(str(exc))
            return ActionResult(success=False, message=f"Reconciliation failed: {exc}")
        finally:
            self.reconciling = False
            if self.monitor.running:
                # Interrupted by an unexpected error or cancellation
                self.monitor.stop()
        message = outcome.get("message") if isinstance(outcome, dict) else None
        return ActionResult(success=True, message=message or "Reconciliation completed")

    # -- import / export -------------------------------------------------

    def export(self, fmt: str) -> str:
        fmt = fmt.lower()
        if fmt == "json":
            return export_json(self._graph)
        if fmt in ("yaml", "yml"):
            return export_yaml(self._graph)
        if fmt == "sql":
            return export_sql(self._graph)
        raise ValidationError(f"Unsupported export format: {fmt}")

    def export_config(self) -> Dict[str, Any]:
        return export_config(self._graph)

    def import_text(self, content: str, fmt: str = "json") -> ImportResult:
        """Replace the canvas with an imported file; invalid files change nothing."""
        result = import_workflow(content, fmt)
        if not result.is_valid or result.graph is None:
            return result
        self.enter_edit()
        imported = result.graph.model_copy(update={
            "id": self._graph.id,
            "active_state": self._graph.active_state,
        })
        self._set_graph(imported)
        event_publisher.publish(WorkflowImported(
            aggregate_id=imported.id or imported.name,
            name=imported.name,
            format=fmt,
            node_count=len(imported.nodes),
        ))
        return result

    # -- AI synthesis ----------------------------------------------------

    async def synthesize(self, history: List[Dict[str, str]]) -> SynthesisResult:
        """Produce a candidate graph; the canvas is not modified."""
        return await self._synthesizer.safe_synthesize(history)

    def from_template(self, key: str) -> SynthesisResult:
        return self._synthesizer.from_template(key)

    def apply_candidate(self, candidate: Graph) -> Graph:
        """Merge an accepted candidate into the canvas and switch to edit mode."""
        self.enter_edit()
        offset = offset_past(self._graph.nodes)
        merged = merge_graphs(self._graph, candidate)
        self._set_graph(merged)
        event_publisher.publish(AIGraphMerged(
            aggregate_id=merged.id or merged.name,
            name=candidate.name,
            node_count=len(candidate.nodes),
            offset_x=offset,
        ))
        return merged

    # -- lifecycle -------------------------------------------------------

    def start_background(self) -> None:
        """Start the live-event consumer and reconciliation countdown (needs a running loop)."""
        self.channel.connect()
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(self.monitor.consume(self.channel))
        self.reconciler.start()

    def close(self) -> None:
        self.poller.disarm()
        self.reconciler.stop()
        self.channel.disconnect()
        if self._consumer is not None:
            self._consumer.cancel()
            self._consumer = None
        self.monitor.stop()
