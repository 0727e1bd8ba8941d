from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from flowgraph.config import settings
from flowgraph.application.builder import WorkflowBuilder
from flowgraph.application.execution_monitor import ExecutionMonitor
from flowgraph.infrastructure.backend_api import (
    ApprovalApiClient,
    ExecutionApiClient,
    ReconciliationApiClient,
    WorkflowApiClient,
)
from flowgraph.services.ai.llm_client import ChatCompletionClient
from flowgraph.services.ai.synthesizer import GraphSynthesizer
from flowgraph.storage.workflow_store import WorkflowStore


def get_workflow_api() -> WorkflowApiClient:
    return WorkflowApiClient(settings.BACKEND_BASE_URL, timeout=settings.BACKEND_TIMEOUT)


def get_execution_api() -> ExecutionApiClient:
    return ExecutionApiClient(settings.BACKEND_BASE_URL, timeout=settings.BACKEND_TIMEOUT)


def get_reconciliation_api() -> ReconciliationApiClient:
    return ReconciliationApiClient(settings.BACKEND_BASE_URL, timeout=settings.BACKEND_TIMEOUT)


def get_approval_api() -> ApprovalApiClient:
    return ApprovalApiClient(settings.BACKEND_BASE_URL, timeout=settings.BACKEND_TIMEOUT)


def get_workflow_store() -> WorkflowStore:
    return WorkflowStore(Path(settings.WORKFLOW_STORAGE_DIR) / "last_known_good.json")


def get_completion_client() -> ChatCompletionClient:
    return ChatCompletionClient(
        api_url=settings.LLM_API_URL,
        api_keys=settings.LLM_API_KEYS,
        models=settings.LLM_MODELS,
        max_tokens=settings.LLM_MAX_TOKENS,
        temperature=settings.LLM_TEMPERATURE,
        referer=settings.LLM_REFERER,
        app_title=settings.LLM_APP_TITLE,
    )


def get_synthesizer() -> GraphSynthesizer:
    return GraphSynthesizer(completion=get_completion_client())


@lru_cache()
def get_builder() -> WorkflowBuilder:
    """The builder session is process-wide: one canvas per running service."""
    monitor = ExecutionMonitor(
        step_seconds=settings.SIMULATION_STEP_SECONDS,
        complete_delay=settings.SIMULATION_COMPLETE_DELAY,
        reset_delay=settings.RESET_DELAY_SECONDS,
    )
    return WorkflowBuilder(
        workflows=get_workflow_api(),
        executions=get_execution_api(),
        reconciliation=get_reconciliation_api(),
        store=get_workflow_store(),
        synthesizer=get_synthesizer(),
        monitor=monitor,
        block_unreachable=settings.BLOCK_SAVE_ON_UNREACHABLE,
        polling_interval=settings.POLLING_INTERVAL_SECONDS,
        reconciliation_interval=settings.RECONCILIATION_INTERVAL_SECONDS,
        reconciliation_step_seconds=settings.RECONCILIATION_STEP_SECONDS,
    )
