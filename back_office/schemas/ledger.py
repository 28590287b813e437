"""
Pydantic schemas for ledger operations.

Request bodies, filters and read models for the ledger,
statements, integrity checks and period locks.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from back_office.models.enums import LedgerEntryType


MANUAL_ENTRY_TYPES = (LedgerEntryType.ADJUSTMENT, LedgerEntryType.FX_GAIN_LOSS)


# --- Request Schemas ---

class LedgerEntryCreate(BaseModel):
    """
    A single debit or credit against one account.

    Exactly one of debit/credit must be non-zero. Currency
    defaults to the account's currency.
    """
    account_id: int
    entry_type: LedgerEntryType
    debit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    credit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=4)
    cost_center: str | None = Field(default=None, max_length=50)
    description: str = Field(min_length=1, max_length=255)
    entry_date: date | None = None
    reference_id: str | None = Field(default=None, max_length=36)
    reference_type: str | None = Field(default=None, max_length=30)
    invoice_id: int | None = None


class ReverseRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=200)


class CollectionRequest(BaseModel):
    """Money received from an account (credits it)."""
    account_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    description: str = Field(default="Collection", min_length=1, max_length=255)
    entry_date: date | None = None
    reference_id: str | None = Field(default=None, max_length=36)
    reference_type: str | None = Field(default=None, max_length=30)


class PaymentRequest(CollectionRequest):
    """Money paid out to an account (debits it)."""
    description: str = Field(default="Payment", min_length=1, max_length=255)


class ManualEntryRequest(BaseModel):
    account_id: int
    entry_type: LedgerEntryType = LedgerEntryType.ADJUSTMENT
    debit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    credit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    cost_center: str | None = Field(default=None, max_length=50)
    description: str = Field(min_length=1, max_length=255)
    entry_date: date | None = None

    @field_validator("entry_type")
    @classmethod
    def must_be_manual_type(cls, v: LedgerEntryType) -> LedgerEntryType:
        if v not in MANUAL_ENTRY_TYPES:
            raise ValueError("manual entries must be ADJUSTMENT or FX_GAIN_LOSS")
        return v


class FxRevaluationRequest(BaseModel):
    """Current exchange rates to the base currency, e.g. {"EUR": "1.0850"}."""
    rates: dict[str, Decimal] = Field(min_length=1)
    entry_date: date | None = None

    @field_validator("rates")
    @classmethod
    def rates_must_be_positive(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        for code, value in v.items():
            if len(code) != 3:
                raise ValueError(f"{code!r} is not a currency code")
            if value <= 0:
                raise ValueError(f"rate for {code} must be positive")
        return {code.upper(): value for code, value in v.items()}


class LedgerFilter(BaseModel):
    account_id: int | None = None
    entry_type: LedgerEntryType | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    invoice_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    include_cancelled: bool = False
    limit: int = Field(default=100, ge=1, le=500)


class PeriodLockCreate(BaseModel):
    closing_date: date
    notes: str | None = Field(default=None, max_length=500)


# --- Response Schemas ---

class LedgerEntryResponse(BaseModel):
    """Single entry in API responses."""
    id: int
    entry_no: str
    account_id: int
    branch_id: str
    entry_type: LedgerEntryType
    debit: Decimal
    credit: Decimal
    currency: str
    exchange_rate: Decimal
    cost_center: str | None
    description: str
    entry_date: date
    reference_id: str | None
    reference_type: str | None
    invoice_id: int | None
    reversal_of_id: int | None
    is_cancelled: bool
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class StatementLine(BaseModel):
    entry_no: str
    entry_date: date
    entry_type: LedgerEntryType
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


class StatementResponse(BaseModel):
    """Account statement with a running balance per line."""
    account_id: int
    account_code: str
    currency: str
    date_from: date | None
    date_to: date | None
    opening_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal
    lines: list[StatementLine]


class IntegrityMismatch(BaseModel):
    account_id: int
    code: str
    cached_balance: Decimal
    replayed_balance: Decimal
    difference: Decimal


class IntegrityReport(BaseModel):
    accounts_checked: int
    mismatches: list[IntegrityMismatch]
    is_consistent: bool


class PeriodLockResponse(BaseModel):
    id: int
    closing_date: date
    locked_by: str
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class FxRevaluationItem(BaseModel):
    """
    Unrealised gain or loss on one open foreign-currency invoice.

    Values in the base currency are grand_total times a rate.
    previously_revalued is what earlier runs already posted, so
    unrealized_gain_loss is only the movement since then.
    """
    invoice_id: int
    invoice_no: str
    account_id: int
    currency: str
    original_amount: Decimal
    booking_rate: Decimal
    current_rate: Decimal
    original_value_local: Decimal
    current_value_local: Decimal
    previously_revalued: Decimal
    unrealized_gain_loss: Decimal
    is_gain: bool


class FxRevaluationSummary(BaseModel):
    items: list[FxRevaluationItem]
    total_gain: Decimal
    total_loss: Decimal
    net_gain_loss: Decimal


class FxRevaluationResult(BaseModel):
    summary: FxRevaluationSummary
    entries: list[LedgerEntryResponse]
