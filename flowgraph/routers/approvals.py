"""
Human approval steps raised by running workflows.
"""
from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List, Optional

from flowgraph.dependencies import get_approval_api
from flowgraph.domain.ports import ApprovalApiPort
from flowgraph.schemas.api_schemas import ActionResponse, ApprovalDecision

router = APIRouter(prefix="/approvals")


@router.get("")
async def list_pending_approvals(
    user_id: Optional[int] = Query(None, description="Only approvals assigned to this user"),
    role: Optional[str] = Query(None, description="Only approvals assigned to this role"),
    approvals: ApprovalApiPort = Depends(get_approval_api),
) -> List[Dict[str, Any]]:
    return await approvals.get_pending(user_id=user_id, role=role)


@router.get("/{approval_id}")
async def get_approval(approval_id: str, approvals: ApprovalApiPort = Depends(get_approval_api)) -> Dict[str, Any]:
    return await approvals.get_by_id(approval_id)


@router.post("/{approval_id}/respond", response_model=ActionResponse)
async def respond_to_approval(
    approval_id: str,
    data: ApprovalDecision,
    approvals: ApprovalApiPort = Depends(get_approval_api),
):
    """
    Approve or reject a pending step; the waiting execution resumes on the engine.
    """
    ok = await approvals.respond(approval_id, data.approved, data.response_note)
    if not ok:
        return ActionResponse(success=False, message="The server refused the response")
    return ActionResponse(success=True, message="Approved" if data.approved else "Rejected")
