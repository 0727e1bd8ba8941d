"""Background tasks around a builder session: live channel, polling, reconciliation."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import pydantic

from flowgraph.application.execution_events import ExecutionRecord
from flowgraph.application.execution_monitor import ExecutionMonitor
from flowgraph.domain.errors import DomainError
from flowgraph.domain.ports import ExecutionApiPort

logger = logging.getLogger(__name__)

_CLOSED = object()


class QueueEventChannel:
    """In-process live event channel fed by whoever receives engine pushes."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self.connected = False

    def connect(self) -> None:
        self.connected = True
        logger.info("Live execution channel connected")

    def disconnect(self) -> None:
        if self.connected:
            self.connected = False
            self._queue.put_nowait(_CLOSED)
            logger.info("Live execution channel disconnected")

    def publish(self, event: Dict[str, Any]) -> None:
        self._queue.put_nowait(event)

    async def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class ExecutionPoller:
    """
    Fixed-interval refresh of execution history.

    Only armed while a run is believed in flight; each tick folds the newest
    execution's logs into the monitor and disarms once that run has ended.
    Failures are best-effort and never surface.
    """

    def __init__(
        self,
        executions: ExecutionApiPort,
        monitor: ExecutionMonitor,
        interval: float = 3.0,
        page_size: int = 10,
    ) -> None:
        self._executions = executions
        self._monitor = monitor
        self.interval = interval
        self.page_size = page_size
        self.history: List[ExecutionRecord] = []
        self._workflow_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self, workflow_id: str) -> None:
        self._workflow_id = workflow_id
        if not self.armed:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def disarm(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def refresh(self) -> List[ExecutionRecord]:
        """One polling tick; returns the (possibly stale) history."""
        if not self._workflow_id:
            return self.history
        try:
            raw = await self._executions.get_by_workflow(self._workflow_id, page=1, page_size=self.page_size)
            self.history = [ExecutionRecord.model_validate(item) for item in raw]
        except (DomainError, pydantic.ValidationError) as exc:
            logger.debug(f"Execution polling failed: {exc}")
            return self.history
        if self.history:
            self._monitor.apply_logs(self.history[0].logs)
        return self.history

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            history = await self.refresh()
            if history and not history[0].in_flight:
                logger.debug("Latest execution finished; polling disarmed")
                self._task = None
                return


class ReconciliationScheduler:
    """
    Countdown that periodically runs a guarded side effect.

    The guard predicate is evaluated at the moment the countdown expires,
    never cached; ``should_fire`` exposes it for tests.
    """

    def __init__(
        self,
        interval: float,
        guard: Callable[[], bool],
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        self.interval = interval
        self._guard = guard
        self._action = action
        self._task: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None

    @property
    def seconds_remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def should_fire(self) -> bool:
        return bool(self._guard())

    async def tick(self) -> bool:
        """Run the action if the guard allows it; returns whether it ran."""
        if not self.should_fire():
            logger.debug("Reconciliation skipped by guard")
            return False
        try:
            await self._action()
        except DomainError as exc:
            logger.warning(f"Scheduled reconciliation failed: {exc}")
        return True

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._deadline = None

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            self._deadline = loop.time() + self.interval
            await asyncio.sleep(self.interval)
            await self.tick()
