"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taskshare.config import settings
from taskshare.database import engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """Lightweight liveness check (no DB round-trip)."""
    hub = getattr(request.app.state, "hub", None)
    return {
        "status": "ok",
        "service": "TaskShare",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "connections": hub.connection_count if hub else 0,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check including the database. 503 when it is unreachable."""
    checks = {"service": "ok", "database": "unknown"}
    healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "TaskShare",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
