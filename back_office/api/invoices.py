"""
Invoice endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, InvoiceStatus
from back_office.schemas.invoice import InvoiceCreate, InvoiceFilter, InvoiceResponse
from back_office.schemas.order import CancelRequest
from back_office.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    request: InvoiceCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Invoice an order and debit the customer's account."""
    service = InvoiceService(db)
    try:
        with unit_of_work(db):
            invoice = service.create_from_order(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Raised invoice {invoice.invoice_no}", "INVOICE", invoice.id,
        action=AuditAction.CREATE,
        new_data={"order_id": request.order_id, "grand_total": str(invoice.grand_total)},
    )
    return invoice


@router.get("", response_model=list[InvoiceResponse])
def list_invoices(
    status: InvoiceStatus | None = None,
    order_id: int | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = InvoiceFilter(status=status, order_id=order_id, limit=limit)
    return InvoiceService(db).list_invoices(ctx.branch_id, filters)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return InvoiceService(db).get_invoice(invoice_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
def cancel_invoice(
    invoice_id: int,
    request: CancelRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Cancel an invoice. Its ledger entries are reversed."""
    service = InvoiceService(db)
    try:
        with unit_of_work(db):
            invoice = service.cancel_invoice(
                invoice_id, request.reason, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cancelled invoice {invoice.invoice_no}: {request.reason}",
        "INVOICE", invoice.id, action=AuditAction.CANCEL,
    )
    return invoice
