"""
Inventory API endpoints.

Receiving creates a lot; allocate and release move the reserved
quantity; fulfil consumes lots oldest first and reports the
cost of goods.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction
from back_office.schemas.inventory import (
    AllocationResult,
    FulfillmentResult,
    InventoryTransactionResponse,
    LotReceive,
    LotResponse,
    StockCheck,
    StockRequest,
    StockResponse,
)
from back_office.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.post("/lots", response_model=LotResponse, status_code=201)
def receive_lot(
    request: LotReceive,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Receive goods into a warehouse as a new FIFO lot."""
    service = InventoryService(db)
    try:
        with unit_of_work(db):
            lot = service.receive(request, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Received lot {lot.batch_no}", "INVENTORY_LOT", lot.id,
        action=AuditAction.CREATE,
        new_data={
            "variant_id": request.variant_id,
            "warehouse_id": request.warehouse_id,
            "quantity": str(request.quantity),
            "unit_cost": str(request.unit_cost),
        },
    )
    return lot


@router.get("/lots", response_model=list[LotResponse])
def list_lots(
    variant_id: str,
    warehouse_id: str | None = None,
    include_empty: bool = False,
    db: Session = Depends(get_db),
):
    """Lots of a variant in the order they will be consumed."""
    return InventoryService(db).list_lots(variant_id, warehouse_id, include_empty)


@router.post("/allocate", response_model=AllocationResult)
def allocate_stock(
    request: StockRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Reserve available stock. Fails with 409 if not enough is free."""
    service = InventoryService(db)
    try:
        with unit_of_work(db):
            result = service.allocate(request)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Reserved {request.quantity} of {request.variant_id}",
        "STOCK", request.variant_id,
        new_data={"warehouse_id": request.warehouse_id},
    )
    return result


@router.post("/release", response_model=AllocationResult)
def release_stock(
    request: StockRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = InventoryService(db)
    try:
        with unit_of_work(db):
            result = service.release(request)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Released {request.quantity} of {request.variant_id}",
        "STOCK", request.variant_id,
        new_data={"warehouse_id": request.warehouse_id},
    )
    return result


@router.post("/fulfill", response_model=FulfillmentResult)
def fulfill_stock(
    request: StockRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Consume stock oldest lot first.

    Either the whole quantity is consumed or nothing is; the
    response lists every lot drawn from and its cost.
    """
    service = InventoryService(db)
    try:
        with unit_of_work(db):
            result = service.fulfill_fifo(request)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx,
        f"Fulfilled {request.quantity} of {request.variant_id} at cost {result.total_cost}",
        "STOCK", request.variant_id,
        new_data={
            "warehouse_id": request.warehouse_id,
            "total_cost": str(result.total_cost),
        },
    )
    return result


@router.get("/stock/{variant_id}/{warehouse_id}", response_model=StockResponse)
def get_stock(
    variant_id: str,
    warehouse_id: str,
    db: Session = Depends(get_db),
):
    try:
        return InventoryService(db).get_stock(variant_id, warehouse_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/stock/{variant_id}/{warehouse_id}/verify", response_model=StockCheck)
def verify_stock(
    variant_id: str,
    warehouse_id: str,
    db: Session = Depends(get_db),
):
    """Compare the stock row with the sum of its lots."""
    try:
        return InventoryService(db).verify_stock(variant_id, warehouse_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/transactions", response_model=list[InventoryTransactionResponse])
def list_transactions(
    variant_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return InventoryService(db).list_transactions(variant_id, limit)
