"""
Work order endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, WorkOrderStatus
from back_office.schemas.work_order import (
    CompleteRequest,
    ConsumeRequest,
    WorkOrderCancel,
    WorkOrderCreate,
    WorkOrderFilter,
    WorkOrderResponse,
)
from back_office.services.work_order_service import WorkOrderService

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])


@router.post("", response_model=WorkOrderResponse, status_code=201)
def create_work_order(
    request: WorkOrderCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.create(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Created work order {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.CREATE,
        new_data={"planned_quantity": str(work_order.planned_quantity)},
    )
    return work_order


@router.get("", response_model=list[WorkOrderResponse])
def list_work_orders(
    status: WorkOrderStatus | None = None,
    include_cancelled: bool = False,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = WorkOrderFilter(
        status=status, include_cancelled=include_cancelled, limit=limit
    )
    return WorkOrderService(db).list_work_orders(ctx.branch_id, filters)


@router.get("/{work_order_id}", response_model=WorkOrderResponse)
def get_work_order(
    work_order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return WorkOrderService(db).get(work_order_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{work_order_id}/release", response_model=WorkOrderResponse)
def release_work_order(
    work_order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.release(work_order_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Released work order {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.STATUS_CHANGE,
        new_data={"status": WorkOrderStatus.RELEASED.value},
    )
    return work_order


@router.post("/{work_order_id}/start", response_model=WorkOrderResponse)
def start_work_order(
    work_order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.start(work_order_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Started work order {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.STATUS_CHANGE,
        new_data={"status": WorkOrderStatus.IN_PROGRESS.value},
    )
    return work_order


@router.post("/{work_order_id}/consume", response_model=WorkOrderResponse)
def consume_materials(
    work_order_id: int,
    request: ConsumeRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Draw every material line from the warehouse at FIFO cost.

    If any line is short the whole request fails with 409 and
    no stock moves.
    """
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.consume(work_order_id, request, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Consumed materials for {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.UPDATE,
        new_data={"material_cost": str(work_order.material_cost)},
    )
    return work_order


@router.post("/{work_order_id}/complete", response_model=WorkOrderResponse)
def complete_work_order(
    work_order_id: int,
    request: CompleteRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Receive the finished goods as a lot costed at material, labour and overhead."""
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.complete(work_order_id, request, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Completed work order {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.STATUS_CHANGE,
        new_data={
            "status": WorkOrderStatus.COMPLETED.value,
            "unit_cost": str(work_order.unit_cost),
        },
    )
    return work_order


@router.post("/{work_order_id}/cancel", response_model=WorkOrderResponse)
def cancel_work_order(
    work_order_id: int,
    request: WorkOrderCancel,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = WorkOrderService(db)
    try:
        with unit_of_work(db):
            work_order = service.cancel(work_order_id, request.reason, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cancelled work order {work_order.work_order_no}", "WORK_ORDER",
        work_order.id, action=AuditAction.CANCEL,
        new_data={"reason": request.reason},
    )
    return work_order
