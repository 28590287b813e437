"""
Cash register endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction
from back_office.schemas.cash import (
    CashMovementCreate,
    CashMovementResponse,
    RegisterClose,
    RegisterCreate,
    RegisterOpen,
    RegisterResponse,
    ZReport,
)
from back_office.services.cash_service import CashService

router = APIRouter(prefix="/cash/registers", tags=["Cash"])


@router.post("", response_model=RegisterResponse, status_code=201)
def create_register(
    request: RegisterCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = CashService(db)
    try:
        with unit_of_work(db):
            register = service.create_register(request, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Created cash register {request.code}", "CASH_REGISTER",
        register.id, action=AuditAction.CREATE,
    )
    return register


@router.get("", response_model=list[RegisterResponse])
def list_registers(
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CashService(db).list_registers(ctx.branch_id)


@router.get("/{register_id}", response_model=RegisterResponse)
def get_register(
    register_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return CashService(db).get_register(register_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{register_id}/open", response_model=RegisterResponse)
def open_register(
    register_id: int,
    request: RegisterOpen,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = CashService(db)
    try:
        with unit_of_work(db):
            register = service.open_register(
                register_id, request, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Opened register {register.code}", "CASH_REGISTER", register.id,
        action=AuditAction.STATUS_CHANGE,
        new_data={"opening_balance": str(request.opening_balance)},
    )
    return register


@router.post("/{register_id}/close", response_model=ZReport)
def close_register(
    register_id: int,
    request: RegisterClose,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Close the register with the counted cash and return its Z report."""
    service = CashService(db)
    try:
        with unit_of_work(db):
            report = service.close_register(
                register_id, request, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Closed register {register_id}", "CASH_REGISTER", register_id,
        action=AuditAction.STATUS_CHANGE,
        new_data={
            "expected_cash": str(report.expected_cash),
            "actual_cash": str(report.actual_cash),
            "variance": str(report.variance),
        },
    )
    return report


@router.post(
    "/{register_id}/movements",
    response_model=CashMovementResponse,
    status_code=201,
)
def record_movement(
    register_id: int,
    request: CashMovementCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Put cash in or take cash out.

    Replaying a request with the same idempotency_key returns
    the original movement without moving any cash.
    """
    service = CashService(db)
    try:
        with unit_of_work(db):
            movement = service.record_movement(
                register_id, request, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cash {request.movement_type.value} {request.amount}: {request.reason}",
        "CASH_MOVEMENT", movement.id, action=AuditAction.CREATE,
    )
    return movement


@router.get("/{register_id}/movements", response_model=list[CashMovementResponse])
def list_movements(
    register_id: int,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return CashService(db).list_movements(register_id, ctx.branch_id, limit)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
