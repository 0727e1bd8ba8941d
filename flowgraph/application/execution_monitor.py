"""Projection of execution progress onto per-node visual state.

Two drivers feed the monitor: a local timer-based simulation that walks the
scheduler's order, and live events pushed by the engine. Both only change
node states held here; the graph itself is never touched.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Coroutine, Dict, Iterable, List, Optional, Set, Union

import pydantic

from flowgraph.application.execution_events import (
    LOG_STATE,
    ExecutionCompleted,
    ExecutionErrorEvent,
    ExecutionEvent,
    ExecutionLogEntry,
    ExecutionStarted,
    NodeCompleted,
    NodeExecuting,
    NodeState,
    parse_event,
)
from flowgraph.domain.graph import Node

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[bool, bool], None]


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class ExecutionMonitor:
    """
    Holds per-node execution state for the canvas.

    All timers are asyncio tasks owned by the monitor; ``stop()`` cancels
    every one of them and forces all nodes back to idle.
    """

    def __init__(
        self,
        step_seconds: float = 1.0,
        complete_delay: float = 0.6,
        reset_delay: float = 3.0,
        on_finished: Optional[FinishedCallback] = None,
    ) -> None:
        self.step_seconds = step_seconds
        self.complete_delay = complete_delay
        self.reset_delay = reset_delay
        self.on_finished = on_finished
        self._kinds: Dict[str, str] = {}
        self.states: Dict[str, NodeState] = {}
        self.running = False
        self.simulated = False
        self.progress = 0
        self.current_node_id: Optional[str] = None
        self.last_error: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()

    # -- node tracking -------------------------------------------------

    def track(self, nodes: Iterable[Node]) -> None:
        """Follow the canvas nodes, keeping state for ids that survive."""
        self._kinds = {node.id: node.kind for node in nodes}
        self.states = {node_id: self.states.get(node_id, NodeState.IDLE) for node_id in self._kinds}

    def state_of(self, node_id: str) -> NodeState:
        return self.states.get(node_id, NodeState.IDLE)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "simulated": self.simulated,
            "progress": self.progress,
            "current_node_id": self.current_node_id,
            "last_error": self.last_error,
            "states": {node_id: state.value for node_id, state in self.states.items()},
        }

    def match(self, node_id: Optional[str], node_type: Optional[str]) -> List[str]:
        """Canvas ids an event refers to: exact id first, otherwise every node of that kind."""
        if node_id and node_id in self.states:
            return [node_id]
        if not node_type:
            return []
        base_type = node_type.replace("-trigger", "")
        return [
            candidate for candidate, kind in self._kinds.items()
            if kind == node_type or kind == base_type
        ]

    def _set_all(self, state: NodeState) -> None:
        self.states = {node_id: state for node_id in self.states}

    # -- timers ----------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous caller; timers are not available
            coro.close()
            logger.debug("No running event loop; timer not scheduled")
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_timers(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    async def _reset_later(self) -> None:
        await asyncio.sleep(self.reset_delay)
        if not self.running:
            self._set_all(NodeState.IDLE)
            self.progress = 0
            self.current_node_id = None

    def finish(self, success: bool) -> None:
        self.running = False
        self.progress = 100
        self.current_node_id = None
        self._spawn(self._reset_later())
        if self.on_finished:
            self.on_finished(success, self.simulated)

    # -- run primitives --------------------------------------------------

    def begin_run(self, simulated: bool) -> None:
        self._cancel_timers()
        self.running = True
        self.simulated = simulated
        self.progress = 0
        self.last_error = None
        self.current_node_id = None
        self._set_all(NodeState.WAITING)

    def mark_executing(self, node_id: str, index: int, total: int) -> None:
        # The node that was executing is considered done once the next one starts
        for other, state in self.states.items():
            if state == NodeState.EXECUTING and other != node_id:
                self.states[other] = NodeState.COMPLETED
        if node_id in self.states:
            self.states[node_id] = NodeState.EXECUTING
        self.current_node_id = node_id
        self.progress = round((index + 0.5) / total * 100) if total else 0

    def mark_completed(self, node_id: str, index: int, total: int) -> None:
        if node_id in self.states:
            self.states[node_id] = NodeState.COMPLETED
        self.progress = round((index + 1) / total * 100) if total else 100

    def fail_all(self, error: str) -> None:
        self.last_error = error
        self._set_all(NodeState.FAILED)
        self.finish(False)

    # -- local simulation ------------------------------------------------

    async def _simulate_step(self, node_id: str, index: int, total: int) -> None:
        await asyncio.sleep(index * self.step_seconds)
        self.mark_executing(node_id, index, total)
        await asyncio.sleep(self.complete_delay)
        self.mark_completed(node_id, index, total)
        if index == total - 1:
            await asyncio.sleep(self.complete_delay)
            self.finish(True)

    def simulate(self, order: List[str]) -> None:
        """
        Animate ``order`` on timers: node ``i`` starts executing at
        ``i * step_seconds`` and completes ``complete_delay`` later.

        Without a running event loop the order is walked immediately and
        the run finishes before this returns.
        """
        self.begin_run(simulated=True)
        total = len(order)
        if not order:
            self.finish(True)
            return
        if not _loop_running():
            for index, node_id in enumerate(order):
                self.mark_executing(node_id, index, total)
                self.mark_completed(node_id, index, total)
            self.finish(True)
            return
        for index, node_id in enumerate(order):
            self._spawn(self._simulate_step(node_id, index, total))

    async def walk(self, order: List[str], step_seconds: float) -> None:
        """Sequential walk used to visualize a background job before it runs."""
        total = len(order)
        for index, node_id in enumerate(order):
            self.mark_executing(node_id, index, total)
            await asyncio.sleep(step_seconds)
            self.mark_completed(node_id, index, total)

    def stop(self) -> None:
        """Cancel every pending timer and force all nodes back to idle."""
        self._cancel_timers()
        self.running = False
        self.progress = 0
        self.current_node_id = None
        self._set_all(NodeState.IDLE)

    # -- live events -----------------------------------------------------

    def apply_event(self, event: Union[ExecutionEvent, Dict[str, Any]]) -> None:
        """Apply one live event in arrival order; later events win."""
        if isinstance(event, dict):
            event = parse_event(event)

        if isinstance(event, ExecutionStarted):
            self.begin_run(simulated=False)
        elif isinstance(event, NodeExecuting):
            targets = self.match(event.node_id, event.node_type)
            for node_id in targets:
                self.states[node_id] = NodeState.EXECUTING
            if targets:
                self.current_node_id = targets[0]
        elif isinstance(event, NodeCompleted):
            state = NodeState.COMPLETED if event.success else NodeState.FAILED
            for node_id in self.match(event.node_id, event.node_type):
                self.states[node_id] = state
            if not event.success and event.error:
                self.last_error = event.error
            self._update_progress()
        elif isinstance(event, ExecutionCompleted):
            self.finish(True)
        elif isinstance(event, ExecutionErrorEvent):
            # Only the run ends; per-node detail arrives with the next log fetch
            self.running = False
            self.current_node_id = None
            self.last_error = event.error
            if self.on_finished:
                self.on_finished(False, self.simulated)

    def _update_progress(self) -> None:
        if not self.states:
            return
        done = sum(1 for state in self.states.values() if state in (NodeState.COMPLETED, NodeState.FAILED))
        self.progress = round(done / len(self.states) * 100)

    async def consume(self, events: AsyncIterator[Dict[str, Any]]) -> None:
        """Drain a live channel; malformed messages are logged and skipped."""
        async for raw in events:
            try:
                self.apply_event(raw)
            except pydantic.ValidationError as exc:
                logger.warning(f"Ignoring malformed execution event: {exc.errors()[0]['msg']}")

    # -- execution logs --------------------------------------------------

    @staticmethod
    def fold_logs(logs: Iterable[Union[ExecutionLogEntry, Dict[str, Any]]]) -> Dict[str, NodeState]:
        """Latest log entry per node, by timestamp, mapped to a node state."""
        latest: Dict[str, ExecutionLogEntry] = {}
        for raw in logs:
            entry = raw if isinstance(raw, ExecutionLogEntry) else ExecutionLogEntry.model_validate(raw)
            current = latest.get(entry.node_id)
            if current is None or entry.timestamp >= current.timestamp:
                latest[entry.node_id] = entry
        return {node_id: LOG_STATE[entry.status] for node_id, entry in latest.items()}

    def apply_logs(self, logs: Iterable[Union[ExecutionLogEntry, Dict[str, Any]]]) -> None:
        entries = [
            raw if isinstance(raw, ExecutionLogEntry) else ExecutionLogEntry.model_validate(raw)
            for raw in logs
        ]
        node_types = {entry.node_id: entry.node_type for entry in entries}
        for node_id, state in self.fold_logs(entries).items():
            for target in self.match(node_id, node_types.get(node_id)):
                self.states[target] = state
