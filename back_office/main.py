"""
Branch Back Office: FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from back_office.config import get_settings
from back_office.logging_config import configure_logging
from back_office.api.accounts import router as accounts_router
from back_office.api.audit import router as audit_router
from back_office.api.cash import router as cash_router
from back_office.api.cheques import router as cheques_router
from back_office.api.health import router as health_router
from back_office.api.inventory import router as inventory_router
from back_office.api.invoices import router as invoices_router
from back_office.api.ledger import router as ledger_router
from back_office.api.orders import router as orders_router
from back_office.api.returns import router as returns_router
from back_office.api.sequences import router as sequences_router
from back_office.api.work_orders import router as work_orders_router

settings = get_settings()

configure_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Transactional ledger and FIFO inventory engine for branch back offices",
)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    """
    Storage failures are retry-safe: the unit of work has already
    rolled back. The client gets a generic message; the details
    go to the log.
    """
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage unavailable, please retry"},
    )


# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(ledger_router)
app.include_router(sequences_router)
app.include_router(inventory_router)
app.include_router(work_orders_router)
app.include_router(cheques_router)
app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(returns_router)
app.include_router(cash_router)
app.include_router(audit_router)
