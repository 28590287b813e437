"""
Pydantic schemas for invoices.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import InvoiceStatus


class InvoiceCreate(BaseModel):
    order_id: int
    # Defaults to the account's payment terms
    due_date: date | None = None
    notes: str | None = Field(default=None, max_length=1000)


class InvoiceFilter(BaseModel):
    status: InvoiceStatus | None = None
    order_id: int | None = None
    limit: int = Field(default=100, ge=1, le=500)


class InvoiceResponse(BaseModel):
    id: int
    invoice_no: str
    order_id: int
    branch_id: str
    invoice_date: date
    due_date: date | None
    subtotal: Decimal
    tax_total: Decimal
    grand_total: Decimal
    currency: str
    status: InvoiceStatus
    is_cancelled: bool
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
