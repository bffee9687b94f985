"""
Health check endpoint for system monitoring.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ....config.database import Database
from ..dependencies import get_database

logger = structlog.get_logger(module=__name__)

router = APIRouter()

SERVICE_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    services: Dict[str, Any]
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(database: Database = Depends(get_database)) -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        HealthResponse: System health status

    Raises:
        HTTPException: If the database is unavailable
    """
    db_healthy = await database.check_connection()

    logger.info("Health check completed", database_healthy=db_healthy)

    if not db_healthy:
        raise HTTPException(
            status_code=503,
            detail="Database connection unavailable"
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=SERVICE_VERSION,
        services={
            "database": {
                "status": "healthy",
                "type": database.engine.dialect.name,
                "description": "Product store and scan ledger"
            },
            "api": {
                "status": "healthy",
                "type": "FastAPI",
                "description": "REST API service"
            }
        }
    )


@router.get("/health/liveness")
async def liveness_probe() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Dict[str, str]: Simple alive status
    """
    return {"status": "alive"}
