from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from typing import Any, Dict

from flowgraph.application.builder import WorkflowBuilder
from flowgraph.dependencies import get_builder
from flowgraph.schemas.api_schemas import ImportRequest, ImportResponse

router = APIRouter()

MEDIA_TYPES = {
    "json": "application/json",
    "yaml": "application/x-yaml",
    "yml": "application/x-yaml",
    "sql": "application/sql",
}


@router.get("/workflow/export/config")
def export_engine_config(builder: WorkflowBuilder = Depends(get_builder)) -> Dict[str, Any]:
    """
    Engine configuration document: nodes, edges and the trigger table.
    """
    return builder.export_config()


@router.get("/workflow/export/{fmt}", response_class=PlainTextResponse)
def export_workflow(fmt: str, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Export the canvas as json, yaml or sql.
    """
    content = builder.export(fmt)
    filename = builder.graph.name.replace(" ", "_").lower() or "workflow"
    return PlainTextResponse(
        content,
        media_type=MEDIA_TYPES[fmt.lower()],
        headers={"Content-Disposition": f'attachment; filename="{filename}.{fmt.lower()}"'},
    )


@router.post("/workflow/import", response_model=ImportResponse)
def import_workflow(data: ImportRequest, builder: WorkflowBuilder = Depends(get_builder)):
    """
    Replace the canvas with an exported file. Invalid files leave it untouched.
    """
    result = builder.import_text(data.content, data.format)
    if not result.is_valid or result.graph is None:
        return ImportResponse(is_valid=False, error=result.error)
    return ImportResponse(
        is_valid=True,
        node_count=len(result.graph.nodes),
        edge_count=len(result.graph.edges),
    )
