"""
Account API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AccountType, AuditAction
from back_office.schemas.account import (
    AccountCreate,
    AccountFilter,
    AccountResponse,
    AccountTreeNode,
    BalanceCheck,
)
from back_office.services.account_service import AccountService

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Open a new account in the caller's branch."""
    service = AccountService(db)
    try:
        with unit_of_work(db):
            account = service.create_account(request, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Opened account {request.code}", "ACCOUNT", account.id,
        action=AuditAction.CREATE,
        new_data={"code": request.code, "account_type": request.account_type.value},
    )
    return account


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    account_type: AccountType | None = None,
    is_active: bool | None = None,
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = AccountFilter(
        account_type=account_type, is_active=is_active, search=search, limit=limit
    )
    return AccountService(db).list_accounts(ctx.branch_id, filters)


@router.get("/tree", response_model=list[AccountTreeNode])
def account_tree(
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Account hierarchy with balances rolled up from children."""
    return AccountService(db).account_tree(ctx.branch_id)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        return AccountService(db).get_account(account_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{account_id}/deactivate", response_model=AccountResponse)
def deactivate_account(
    account_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = AccountService(db)
    try:
        with unit_of_work(db):
            account = service.deactivate_account(account_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Deactivated account {account.code}", "ACCOUNT", account.id,
        action=AuditAction.STATUS_CHANGE,
    )
    return account


@router.get("/{account_id}/verify", response_model=BalanceCheck)
def verify_balance(
    account_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Compare the cached balance with a replay of the ledger.

    A mismatch means something wrote to the balance outside
    the ledger and needs investigating.
    """
    try:
        return AccountService(db).verify_balance(account_id, ctx.branch_id)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
