"""
Health check endpoints for the API.
"""
from fastapi import APIRouter, Depends
from typing import Dict, Any
from datetime import datetime

from flowgraph.config import settings
from flowgraph.dependencies import get_reconciliation_api
from flowgraph.domain.errors import DomainError
from flowgraph.domain.ports import ReconciliationApiPort

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.
    Returns API status and version information.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }


@router.get("/health/backend")
async def backend_health(
    reconciliation: ReconciliationApiPort = Depends(get_reconciliation_api)
) -> Dict[str, Any]:
    """
    Check that the workflow engine answers.
    """
    try:
        status = await reconciliation.status()
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "backend_url": settings.BACKEND_BASE_URL,
            "reconciliation": status,
        }
    except DomainError as e:
        return {
            "status": "unhealthy",
            "timestamp": datetime.now().isoformat(),
            "backend_url": settings.BACKEND_BASE_URL,
            "error": str(e)
        }
