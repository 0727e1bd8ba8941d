"""Domain events for decoupled side effects and integrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for all domain events."""
    aggregate_id: str
    event_id: str = field(default="", kw_only=True)
    timestamp: datetime | None = field(default=None, kw_only=True)

    def __post_init__(self):
        if not self.event_id:
            self.event_id = str(uuid4())
        if not self.timestamp:
            self.timestamp = datetime.now()


@dataclass
class WorkflowLoaded(DomainEvent):
    """Raised when the builder replaces its graph from a load source."""
    source: str
    node_count: int


@dataclass
class WorkflowSaved(DomainEvent):
    """Raised when the graph was persisted to the workflow engine."""
    name: str
    node_count: int
    edge_count: int


@dataclass
class WorkflowActivationChanged(DomainEvent):
    """Raised when a workflow is activated, deactivated or archived."""
    active_state: str


@dataclass
class WorkflowDeleted(DomainEvent):
    """Raised when a workflow definition is removed from the engine."""
    was_current: bool


@dataclass
class WorkflowImported(DomainEvent):
    """Raised when an imported file replaced the canvas."""
    name: str
    format: str
    node_count: int


@dataclass
class AIGraphMerged(DomainEvent):
    """Raised when a synthesized graph is merged into the canvas."""
    name: str
    node_count: int
    offset_x: float


@dataclass
class ExecutionFinished(DomainEvent):
    """Raised when a simulated or live run ends."""
    success: bool
    simulated: bool


class DomainEventPublisher:
    """Singleton publisher for domain events."""

    _instance: DomainEventPublisher | None = None
    _subscribers: Dict[type, List[Callable[[DomainEvent], None]]]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._subscribers = {}
        return cls._instance

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> None:
        """Subscribe a handler to an event type."""
        self._subscribers.setdefault(event_type, []).append(handler)

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        for handler in self._subscribers.get(type(event), []):
            try:
                handler(event)
            except Exception:
                # Handler failures never break the main operation
                logger.exception(f"Event handler error for {type(event).__name__}")

    def clear_subscribers(self) -> None:
        """Clear all subscribers (useful for testing)."""
        self._subscribers = {}


# Singleton instance
event_publisher = DomainEventPublisher()
