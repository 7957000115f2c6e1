"""Health Probes — liveness and MongoDB-backed readiness.

Invariants:
    - GET /health/ answers 200 whenever the process serves requests
    - GET /health/ready answers 503 until MongoDB answers a ping
    - The readiness body lists each dependency check by name
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from backstage.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness(request: Request):
    return {
        "status": "healthy",
        "service": "backstage-api",
        "version": request.app.version,
    }


@router.get("/ready")
async def readiness():
    manager = database.db_manager
    checks = {
        "database": "healthy" if manager and await manager.health_check() else "unavailable",
    }
    if checks["database"] != "healthy":
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
