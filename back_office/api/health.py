"""
Health check endpoint for load balancers and monitoring.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from back_office.config import get_settings
from back_office.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

SERVICE_NAME = "branch-back-office"


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Report service and database status.

    A failed check query marks the instance degraded so it can
    be taken out of rotation; the request itself still succeeds.
    """
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = "unhealthy"

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "service": SERVICE_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }
