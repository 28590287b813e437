"""
Ledger API endpoints.

These endpoints expose the ledger operations to HTTP clients.
The API layer is thin: it handles HTTP concerns (status codes,
response formatting) and delegates all business logic to the
LedgerService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, LedgerEntryType
from back_office.schemas.ledger import (
    CollectionRequest,
    FxRevaluationRequest,
    FxRevaluationResult,
    FxRevaluationSummary,
    IntegrityReport,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerFilter,
    ManualEntryRequest,
    PaymentRequest,
    PeriodLockCreate,
    PeriodLockResponse,
    ReverseRequest,
    StatementResponse,
)
from back_office.services.fx_revaluation_service import FxRevaluationService
from back_office.services.ledger_service import LedgerService
from back_office.services.period_service import PeriodService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


def _entry_data(entry) -> dict:
    return {
        "entry_no": entry.entry_no,
        "account_id": entry.account_id,
        "debit": str(entry.debit),
        "credit": str(entry.credit),
    }


@router.post("/entries", response_model=LedgerEntryResponse, status_code=201)
def record_entry(
    request: LedgerEntryCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Append one entry to the ledger.

    The account balance moves by debit - credit in the same
    transaction. Entries are never edited afterwards; a mistake
    is corrected by reversing the entry.
    """
    service = LedgerService(db)
    try:
        with unit_of_work(db):
            entry = service.record(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Recorded {request.entry_type.value} entry {entry.entry_no}",
        "LEDGER_ENTRY", entry.id, action=AuditAction.CREATE,
        new_data=_entry_data(entry),
    )
    return entry


@router.get("/entries", response_model=list[LedgerEntryResponse])
def list_entries(
    account_id: int | None = None,
    entry_type: LedgerEntryType | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    invoice_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    include_cancelled: bool = False,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Entries of the caller's branch, newest first."""
    filters = LedgerFilter(
        account_id=account_id,
        entry_type=entry_type,
        reference_type=reference_type,
        reference_id=reference_id,
        invoice_id=invoice_id,
        date_from=date_from,
        date_to=date_to,
        include_cancelled=include_cancelled,
        limit=limit,
    )
    return LedgerService(db).list_entries(ctx.branch_id, filters)


@router.get("/entries/{entry_id}", response_model=LedgerEntryResponse)
def get_entry(
    entry_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return LedgerService(db).get_entry(entry_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/entries/{entry_id}/reverse",
    response_model=LedgerEntryResponse,
    status_code=201,
)
def reverse_entry(
    entry_id: int,
    request: ReverseRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Reverse an entry.

    Returns the new REVERSAL entry. Reversing the same entry
    twice is rejected with 409.
    """
    service = LedgerService(db)
    try:
        with unit_of_work(db):
            reversal = service.reverse(
                entry_id, request.reason, ctx.branch_id, ctx.actor
            )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Reversed ledger entry {entry_id}: {request.reason}",
        "LEDGER_ENTRY", entry_id, action=AuditAction.REVERSAL,
        new_data=_entry_data(reversal),
    )
    return reversal


@router.get(
    "/accounts/{account_id}/statement",
    response_model=StatementResponse,
)
def account_statement(
    account_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Entries in the range with a running balance after each line."""
    try:
        return LedgerService(db).statement(
            account_id, ctx.branch_id, date_from, date_to
        )
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/collections", response_model=LedgerEntryResponse, status_code=201)
def record_collection(
    request: CollectionRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Money received from the account holder."""
    service = LedgerService(db)
    try:
        with unit_of_work(db):
            entry = service.collect(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Collected {request.amount} under {entry.entry_no}",
        "LEDGER_ENTRY", entry.id, action=AuditAction.CREATE,
        new_data=_entry_data(entry),
    )
    return entry


@router.post("/payments", response_model=LedgerEntryResponse, status_code=201)
def record_payment(
    request: PaymentRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Money paid out to the account holder."""
    service = LedgerService(db)
    try:
        with unit_of_work(db):
            entry = service.pay(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Paid {request.amount} under {entry.entry_no}",
        "LEDGER_ENTRY", entry.id, action=AuditAction.CREATE,
        new_data=_entry_data(entry),
    )
    return entry


@router.post("/manual", response_model=LedgerEntryResponse, status_code=201)
def record_manual_entry(
    request: ManualEntryRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Post an ADJUSTMENT or FX_GAIN_LOSS entry by hand."""
    service = LedgerService(db)
    try:
        with unit_of_work(db):
            entry = service.post_manual(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Manual {request.entry_type.value} entry {entry.entry_no}",
        "LEDGER_ENTRY", entry.id, action=AuditAction.CREATE,
        new_data=_entry_data(entry),
    )
    return entry


@router.post("/fx-revaluation/calculate", response_model=FxRevaluationSummary)
def calculate_fx_revaluation(
    request: FxRevaluationRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Unrealised FX gain or loss per open invoice. Nothing is posted."""
    return FxRevaluationService(db).calculate_fx_revaluation(
        request.rates, ctx.branch_id
    )


@router.post("/fx-revaluation", response_model=FxRevaluationResult, status_code=201)
def post_fx_revaluation(
    request: FxRevaluationRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Post the revaluation as one FX_GAIN_LOSS entry per invoice, all or nothing."""
    service = FxRevaluationService(db)
    try:
        with unit_of_work(db):
            result = service.post_fx_revaluation(request, ctx.branch_id, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"FX revaluation: {len(result.entries)} entries posted",
        "FX_REVALUATION", "batch", action=AuditAction.CREATE,
        new_data={
            "count": len(result.entries),
            "net_gain_loss": str(result.summary.net_gain_loss),
        },
    )
    return result


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Replay every account of the branch against its cached balance."""
    return LedgerService(db).check_integrity(ctx.branch_id)


@router.post("/period-locks", response_model=PeriodLockResponse, status_code=201)
def lock_period(
    request: PeriodLockCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Close the books up to and including closing_date."""
    service = PeriodService(db)
    try:
        with unit_of_work(db):
            lock = service.lock_period(request, ctx.actor)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Locked period through {request.closing_date}",
        "PERIOD_LOCK", lock.id, action=AuditAction.CREATE,
        new_data={"closing_date": request.closing_date.isoformat()},
    )
    return lock


@router.get("/period-locks", response_model=list[PeriodLockResponse])
def list_period_locks(
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return PeriodService(db).list_locks()
