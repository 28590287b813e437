"""
Sales order endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, OrderStatus
from back_office.schemas.order import (
    CancelRequest,
    OrderCreate,
    OrderFilter,
    OrderResponse,
    ShipRequest,
)
from back_office.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    request: OrderCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Create a DRAFT order. Nothing is reserved until it is confirmed."""
    service = OrderService(db)
    try:
        with unit_of_work(db):
            order = service.create_order(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Created order {order.order_no}", "ORDER", order.id,
        action=AuditAction.CREATE,
        new_data={"grand_total": str(order.grand_total)},
    )
    return order


@router.get("", response_model=list[OrderResponse])
def list_orders(
    status: OrderStatus | None = None,
    account_id: int | None = None,
    include_cancelled: bool = False,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = OrderFilter(
        status=status,
        account_id=account_id,
        include_cancelled=include_cancelled,
        limit=limit,
    )
    return OrderService(db).list_orders(ctx.branch_id, filters)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).get_order(order_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/confirm", response_model=OrderResponse)
def confirm_order(
    order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Confirm the order and reserve its stock."""
    service = OrderService(db)
    try:
        with unit_of_work(db):
            order = service.confirm_order(order_id, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Confirmed order {order.order_no}", "ORDER", order.id,
        action=AuditAction.STATUS_CHANGE,
        new_data={"status": OrderStatus.CONFIRMED.value},
    )
    return order


@router.post("/{order_id}/ship", response_model=OrderResponse)
def ship_order(
    order_id: int,
    request: ShipRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Consume the reserved stock FIFO and issue a waybill."""
    service = OrderService(db)
    try:
        with unit_of_work(db):
            order = service.ship_order(order_id, request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Shipped order {order.order_no} with {order.waybill_no}",
        "ORDER", order.id, action=AuditAction.STATUS_CHANGE,
        new_data={
            "status": OrderStatus.SHIPPED.value,
            "cost_of_goods": str(order.cost_of_goods),
        },
    )
    return order


@router.post("/{order_id}/deliver", response_model=OrderResponse)
def deliver_order(
    order_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    try:
        with unit_of_work(db):
            order = service.deliver_order(order_id, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Delivered order {order.order_no}", "ORDER", order.id,
        action=AuditAction.STATUS_CHANGE,
        new_data={
            "status": OrderStatus.DELIVERED.value,
            "commission_amount": str(order.commission_amount),
        },
    )
    return order


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    request: CancelRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Cancel an unshipped order, releasing stock and cancelling its invoices."""
    service = OrderService(db)
    try:
        with unit_of_work(db):
            order = service.cancel_order(
                order_id, request.reason, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cancelled order {order.order_no}: {request.reason}",
        "ORDER", order.id, action=AuditAction.CANCEL,
    )
    return order
