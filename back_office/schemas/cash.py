"""
Pydantic schemas for cash registers.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import CashMovementType


class RegisterCreate(BaseModel):
    code: str = Field(min_length=1, max_length=30)
    name: str = Field(min_length=1, max_length=100)
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class RegisterOpen(BaseModel):
    opening_balance: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class RegisterClose(BaseModel):
    """The cash actually counted in the drawer at close."""
    actual_cash: Decimal = Field(ge=0, decimal_places=2)


class CashMovementCreate(BaseModel):
    movement_type: CashMovementType
    amount: Decimal = Field(gt=0, decimal_places=2)
    reason: str = Field(min_length=1, max_length=255)
    reference_type: str | None = Field(default=None, max_length=30)
    reference_id: str | None = Field(default=None, max_length=36)
    idempotency_key: str = Field(min_length=1, max_length=100)


class RegisterResponse(BaseModel):
    id: int
    branch_id: str
    code: str
    name: str
    currency: str
    is_open: bool
    opening_balance: Decimal
    current_balance: Decimal
    last_opened_at: datetime | None
    last_closed_at: datetime | None

    model_config = {"from_attributes": True}


class CashMovementResponse(BaseModel):
    id: int
    register_id: int
    movement_type: CashMovementType
    amount: Decimal
    reason: str
    reference_type: str | None
    reference_id: str | None
    idempotency_key: str
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ZReport(BaseModel):
    """End-of-session summary produced when a register closes."""
    register_id: int
    opened_at: datetime | None
    closed_at: datetime
    opening_balance: Decimal
    total_in: Decimal
    total_out: Decimal
    expected_cash: Decimal
    actual_cash: Decimal
    variance: Decimal
    movement_count: int
