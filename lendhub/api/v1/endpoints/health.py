"""
Health checks - for load balancers, Kubernetes, and monitoring.
Challenge: Fast liveness; readiness checks the database.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lendhub.config import get_settings
from lendhub.db.session import DbSession

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/ready")
async def ready(session: DbSession):
    """Readiness: can the database answer?"""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("readiness check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="database unavailable")
    return {"status": "ready"}
