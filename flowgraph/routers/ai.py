from fastapi import APIRouter, Depends
from typing import List

from flowgraph.application.builder import WorkflowBuilder
from flowgraph.dependencies import get_builder
from flowgraph.schemas.api_schemas import (
    CandidateGraph,
    SynthesisRequest,
    SynthesisResponse,
    TemplateSummary,
    WorkflowState,
)
from flowgraph.services.ai.synthesizer import SynthesisResult
from flowgraph.services.ai.templates import WORKFLOW_TEMPLATES

router = APIRouter(prefix="/ai")


def _response(result: SynthesisResult) -> SynthesisResponse:
    return SynthesisResponse(
        reply=result.reply,
        ok=result.ok,
        error=result.failure.error if result.failure else None,
        candidate=CandidateGraph.from_graph(result.graph) if result.graph else None,
    )


@router.post("/synthesize", response_model=SynthesisResponse)
async def synthesize_workflow(data: SynthesisRequest, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Generate a candidate workflow from the conversation.

    The canvas is not modified; post the candidate to /ai/apply to merge it.
    """
    history = [turn.model_dump() for turn in data.messages]
    return _response(await builder.synthesize(history))


@router.get("/templates")
def list_templates() -> List[TemplateSummary]:
    return [
        TemplateSummary(
            key=key,
            name=workflow.name,
            description=workflow.description,
            node_count=len(workflow.nodes),
        )
        for key, workflow in WORKFLOW_TEMPLATES.items()
    ]


@router.post("/templates/{key}", response_model=SynthesisResponse)
def load_template(key: str, builder: WorkflowBuilder = Depends(get_builder)):
    return _response(builder.from_template(key))


@router.post("/apply", response_model=WorkflowState)
def apply_candidate(candidate: CandidateGraph, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Merge an accepted candidate into the canvas and enter edit mode.
    """
    builder.apply_candidate(candidate.to_graph())
    return WorkflowState.from_graph(builder.graph, edit_mode=builder.edit_mode)
