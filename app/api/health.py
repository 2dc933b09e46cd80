import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.db import session as db_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health():
    """Liveness probe; never touches dependencies."""
    return {"status": "ok", "service": settings.SERVICE_NAME}


@router.get("/ready")
def ready():
    """Readiness probe; checks the database with ``SELECT 1``."""
    try:
        db_session.check_db_connection()
    except SQLAlchemyError:
        logger.exception("Readiness check failed")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "service not ready"},
        )
    return {"status": "ready"}
