"""Event handlers for domain events."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowgraph.domain.events import (
        AIGraphMerged,
        ExecutionFinished,
        WorkflowActivationChanged,
        WorkflowDeleted,
        WorkflowImported,
        WorkflowLoaded,
        WorkflowSaved,
    )

logger = logging.getLogger(__name__)


class AuditLogHandler:
    """Logs all domain events for audit trail."""

    def handle_workflow_loaded(self, event: WorkflowLoaded) -> None:
        logger.info(f"[AUDIT] Workflow loaded: {event.aggregate_id} from {event.source} ({event.node_count} nodes)")

    def handle_workflow_saved(self, event: WorkflowSaved) -> None:
        logger.info(
            f"[AUDIT] Workflow saved: {event.aggregate_id} - {event.name} "
            f"({event.node_count} nodes, {event.edge_count} edges)"
        )

    def handle_activation_changed(self, event: WorkflowActivationChanged) -> None:
        logger.info(f"[AUDIT] Workflow {event.aggregate_id} is now {event.active_state}")

    def handle_workflow_deleted(self, event: WorkflowDeleted) -> None:
        suffix = " (was on the canvas)" if event.was_current else ""
        logger.info(f"[AUDIT] Workflow deleted: {event.aggregate_id}{suffix}")

    def handle_workflow_imported(self, event: WorkflowImported) -> None:
        logger.info(f"[AUDIT] Workflow imported from {event.format}: {event.name} ({event.node_count} nodes)")

    def handle_ai_graph_merged(self, event: AIGraphMerged) -> None:
        logger.info(f"[AUDIT] AI workflow merged into {event.aggregate_id}: {event.name} at x+{event.offset_x:g}")


class RunNotificationHandler:
    """Reports the outcome of finished runs."""

    def handle_execution_finished(self, event: ExecutionFinished) -> None:
        mode = "simulated" if event.simulated else "live"
        if event.success:
            logger.info(f"[NOTIFICATION] {mode.capitalize()} run of {event.aggregate_id} completed")
        else:
            logger.warning(f"[NOTIFICATION] {mode.capitalize()} run of {event.aggregate_id} failed")


def register_event_handlers():
    """Register all event handlers with the publisher."""
    from flowgraph.domain.events import (
        event_publisher,
        AIGraphMerged,
        ExecutionFinished,
        WorkflowActivationChanged,
        WorkflowDeleted,
        WorkflowImported,
        WorkflowLoaded,
        WorkflowSaved,
    )

    audit = AuditLogHandler()
    notification = RunNotificationHandler()

    # Audit handlers
    event_publisher.subscribe(WorkflowLoaded, audit.handle_workflow_loaded)
    event_publisher.subscribe(WorkflowSaved, audit.handle_workflow_saved)
    event_publisher.subscribe(WorkflowActivationChanged, audit.handle_activation_changed)
    event_publisher.subscribe(WorkflowDeleted, audit.handle_workflow_deleted)
    event_publisher.subscribe(WorkflowImported, audit.handle_workflow_imported)
    event_publisher.subscribe(AIGraphMerged, audit.handle_ai_graph_merged)

    # Notifications
    event_publisher.subscribe(ExecutionFinished, notification.handle_execution_finished)
