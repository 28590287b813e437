"""
Pydantic schemas for account operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import AccountType


# --- Request Schemas ---

class AccountCreate(BaseModel):
    """Request to open a customer, supplier or internal account."""
    code: str = Field(min_length=1, max_length=30)
    name: str = Field(min_length=1, max_length=150)
    account_type: AccountType
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    payment_term_days: int = Field(default=30, ge=0, le=365)
    parent_account_id: int | None = None


class AccountFilter(BaseModel):
    account_type: AccountType | None = None
    is_active: bool | None = None
    search: str | None = Field(default=None, max_length=100)
    limit: int = Field(default=100, ge=1, le=500)


# --- Response Schemas ---

class AccountResponse(BaseModel):
    id: int
    branch_id: str
    code: str
    name: str
    account_type: AccountType
    currency: str
    current_balance: Decimal
    payment_term_days: int
    parent_account_id: int | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceCheck(BaseModel):
    """Cached balance compared against a replay of the live entries."""
    account_id: int
    code: str
    cached_balance: Decimal
    replayed_balance: Decimal
    difference: Decimal
    matches: bool


class AccountTreeNode(BaseModel):
    """
    One account in the hierarchy.

    subtree_balance is the account's own balance plus the
    subtree balances of all its children.
    """
    id: int
    code: str
    name: str
    account_type: AccountType
    balance: Decimal
    subtree_balance: Decimal
    children: list["AccountTreeNode"] = Field(default_factory=list)
