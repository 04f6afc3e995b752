import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from timetracker.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health")
async def health_check():
    """
    Basic liveness check - verifies the application is running.
    """
    return {
        "status": "healthy",
        "service": "timetracker-api"
    }

@router.get("/health/ready")
def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness check - verifies the database is reachable.
    """
    checks = {"database": "unknown"}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError:
        logger.exception("Readiness check failed")
        checks["database"] = "unhealthy"
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks}
        )

    return {
        "status": "ready",
        "checks": checks
    }
