"""Health and readiness probes."""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from app.api.deps import DatabaseDep
from app.core.config import settings
from app.schemas.common import CamelModel

router = APIRouter()


class HealthResponse(CamelModel):
    """Database status plus which external integrations are configured.

    Integrations are reported, not probed: an audit still runs (with
    reduced output) when PageSpeed or Notion are not configured.
    """

    status: str
    database: str
    integrations: Dict[str, bool]
    timestamp: str


def configured_integrations() -> Dict[str, bool]:
    return {
        "anthropic": bool(settings.ANTHROPIC_API_KEY),
        "pagespeed": bool(settings.GOOGLE_PAGESPEED_API_KEY),
        "stripe": bool(settings.STRIPE_SECRET_KEY),
        "notion": bool(settings.NOTION_API_KEY),
    }


async def _ping(db) -> None:
    await db.execute(text("SELECT 1"))


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DatabaseDep) -> HealthResponse:
    """Report database connectivity and integration configuration.

    Raises:
        HTTPException: 503 if the database is unreachable.
    """
    try:
        await _ping(db)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {e}",
        )

    return HealthResponse(
        status="healthy",
        database="connected",
        integrations=configured_integrations(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DatabaseDep) -> dict:
    """503 until the database accepts queries."""
    try:
        await _ping(db)
    except Exception:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Not ready")
    return {"status": "ready"}
