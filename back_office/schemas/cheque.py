"""
Pydantic schemas for cheques and promissory notes.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import ChequeStatus, ChequeType, ChequeDirection
from back_office.schemas.ledger import LedgerEntryResponse


# --- Request Schemas ---

class ChequeCreate(BaseModel):
    cheque_no: str = Field(min_length=1, max_length=50)
    cheque_type: ChequeType = ChequeType.CHEQUE
    direction: ChequeDirection
    drawer_id: int
    payee_id: int | None = None
    bank_name: str | None = Field(default=None, max_length=100)
    bank_branch: str | None = Field(default=None, max_length=100)
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    issue_date: date
    due_date: date
    notes: str | None = Field(default=None, max_length=500)


class ChequeTransition(BaseModel):
    """Request to move a cheque to a new status."""
    to_status: ChequeStatus
    endorsed_to: str | None = Field(default=None, max_length=150)
    payee_id: int | None = None
    notes: str | None = Field(default=None, max_length=500)


class ChequeFilter(BaseModel):
    status: ChequeStatus | None = None
    direction: ChequeDirection | None = None
    cheque_type: ChequeType | None = None
    due_from: date | None = None
    due_to: date | None = None
    limit: int = Field(default=100, ge=1, le=500)


# --- Response Schemas ---

class ChequeResponse(BaseModel):
    id: int
    cheque_no: str
    cheque_type: ChequeType
    direction: ChequeDirection
    status: ChequeStatus
    branch_id: str
    drawer_id: int
    payee_id: int | None
    endorsed_to: str | None
    bank_name: str | None
    bank_branch: str | None
    amount: Decimal
    currency: str
    issue_date: date
    due_date: date
    collected_at: datetime | None
    bounced_at: datetime | None
    is_cancelled: bool
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ChequeHistoryResponse(BaseModel):
    id: int
    cheque_id: int
    from_status: ChequeStatus
    to_status: ChequeStatus
    performed_by: str
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ChequeTransitionResponse(BaseModel):
    """The cheque after the move, plus the ledger entry it caused, if any."""
    cheque: ChequeResponse
    ledger_entry: LedgerEntryResponse | None
