"""
Cheque and promissory note endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import (
    AuditAction,
    ChequeDirection,
    ChequeStatus,
    ChequeType,
)
from back_office.schemas.cheque import (
    ChequeCreate,
    ChequeFilter,
    ChequeHistoryResponse,
    ChequeResponse,
    ChequeTransition,
    ChequeTransitionResponse,
)
from back_office.schemas.ledger import LedgerEntryResponse
from back_office.services.cheque_service import ChequeService

router = APIRouter(prefix="/cheques", tags=["Cheques"])


@router.post("", response_model=ChequeResponse, status_code=201)
def register_cheque(
    request: ChequeCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Register a cheque. It starts in the portfolio."""
    service = ChequeService(db)
    try:
        with unit_of_work(db):
            cheque = service.create(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Registered cheque {request.cheque_no}", "CHEQUE", cheque.id,
        action=AuditAction.CREATE,
        new_data={"amount": str(request.amount), "direction": request.direction.value},
    )
    return cheque


@router.get("", response_model=list[ChequeResponse])
def list_cheques(
    status: ChequeStatus | None = None,
    direction: ChequeDirection | None = None,
    cheque_type: ChequeType | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = ChequeFilter(
        status=status,
        direction=direction,
        cheque_type=cheque_type,
        due_from=due_from,
        due_to=due_to,
        limit=limit,
    )
    return ChequeService(db).list_cheques(ctx.branch_id, filters)


@router.get("/{cheque_id}", response_model=ChequeResponse)
def get_cheque(
    cheque_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return ChequeService(db).get(cheque_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{cheque_id}/transition", response_model=ChequeTransitionResponse)
def transition_cheque(
    cheque_id: int,
    request: ChequeTransition,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Move a cheque to a new status.

    Collecting, bouncing and endorsing post a ledger entry
    against the drawer's account, returned alongside the cheque.
    A move the state machine does not allow is rejected with 409.
    """
    service = ChequeService(db)
    try:
        with unit_of_work(db):
            cheque, entry = service.transition(
                cheque_id, request, ctx.branch_id, ctx.actor
            )
            response = ChequeTransitionResponse(
                cheque=ChequeResponse.model_validate(cheque),
                ledger_entry=(
                    LedgerEntryResponse.model_validate(entry) if entry else None
                ),
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Cheque {response.cheque.cheque_no} moved to {request.to_status.value}",
        "CHEQUE", cheque_id, action=AuditAction.STATUS_CHANGE,
        new_data={"status": request.to_status.value},
    )
    return response


@router.get("/{cheque_id}/history", response_model=list[ChequeHistoryResponse])
def cheque_history(
    cheque_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return ChequeService(db).history(cheque_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
