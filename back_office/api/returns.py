"""
Sales return endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, ReturnStatus
from back_office.schemas.sales_return import ReturnCreate, ReturnFilter, ReturnResponse
from back_office.services.return_service import ReturnService

router = APIRouter(prefix="/returns", tags=["Returns"])


@router.post("", response_model=ReturnResponse, status_code=201)
def create_return(
    request: ReturnCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = ReturnService(db)
    try:
        with unit_of_work(db):
            sales_return = service.create_return(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Created return {sales_return.return_no}", "RETURN",
        sales_return.id, action=AuditAction.CREATE,
        new_data={"total_amount": str(sales_return.total_amount)},
    )
    return sales_return


@router.get("", response_model=list[ReturnResponse])
def list_returns(
    status: ReturnStatus | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = ReturnFilter(status=status, limit=limit)
    return ReturnService(db).list_returns(ctx.branch_id, filters)


@router.get("/{return_id}", response_model=ReturnResponse)
def get_return(
    return_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return ReturnService(db).get_return(return_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{return_id}/approve", response_model=ReturnResponse)
def approve_return(
    return_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = ReturnService(db)
    try:
        with unit_of_work(db):
            sales_return = service.approve_return(return_id, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Approved return {sales_return.return_no}", "RETURN",
        sales_return.id, action=AuditAction.STATUS_CHANGE,
        new_data={"status": ReturnStatus.APPROVED.value},
    )
    return sales_return


@router.post("/{return_id}/complete", response_model=ReturnResponse)
def complete_return(
    return_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Put the goods back into stock and credit the customer."""
    service = ReturnService(db)
    try:
        with unit_of_work(db):
            sales_return = service.complete_return(return_id, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Completed return {sales_return.return_no}", "RETURN",
        sales_return.id, action=AuditAction.STATUS_CHANGE,
        new_data={"status": ReturnStatus.COMPLETED.value},
    )
    return sales_return


@router.post("/{return_id}/cancel", response_model=ReturnResponse)
def cancel_return(
    return_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = ReturnService(db)
    try:
        with unit_of_work(db):
            sales_return = service.cancel_return(return_id, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cancelled return {sales_return.return_no}", "RETURN",
        sales_return.id, action=AuditAction.CANCEL,
    )
    return sales_return
