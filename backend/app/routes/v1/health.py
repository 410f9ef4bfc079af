# backend/app/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer checks.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import os

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import get_db
from app.core.config import settings
from app.core.constants import API_VERSION
from app.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _resolve_git_sha() -> str:
    candidates = [
        os.getenv("GIT_SHA"),
        os.getenv("COMMIT_SHA"),
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return "unknown"


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return False


@router.get("", response_model=HealthResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Reports service info and whether the database answers a trivial query.
    Used by load balancers and monitoring systems.
    """
    database_ok = _database_reachable(db)
    response.headers["X-Commit-Sha"] = _resolve_git_sha()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        service=f"{settings.brand_name.lower().replace(' ', '-')}-api",
        version=API_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        database="ok" if database_ok else "unreachable",
    )
