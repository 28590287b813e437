"""
Pydantic schemas for sales orders.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import OrderStatus


# --- Request Schemas ---

class OrderItemCreate(BaseModel):
    product_name: str = Field(min_length=1, max_length=150)
    sku: str | None = Field(default=None, max_length=60)
    # Both set means the line is stock tracked
    variant_id: str | None = Field(default=None, max_length=36)
    warehouse_id: str | None = Field(default=None, max_length=36)
    quantity: Decimal = Field(gt=0, decimal_places=4)
    unit: str = Field(default="pcs", max_length=20)
    unit_price: Decimal = Field(ge=0, decimal_places=4)


class OrderCreate(BaseModel):
    account_id: int
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=4)
    vat_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=4)
    agency_account_id: int | None = None
    agency_commission_rate: Decimal = Field(
        default=Decimal("0"), ge=0, le=100, decimal_places=4
    )
    notes: str | None = Field(default=None, max_length=1000)
    items: list[OrderItemCreate] = Field(min_length=1)


class ShipRequest(BaseModel):
    """Optional account to book the shipment's cost of goods against."""
    cogs_account_id: int | None = None


class CancelRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=200)


class OrderFilter(BaseModel):
    status: OrderStatus | None = None
    account_id: int | None = None
    include_cancelled: bool = False
    limit: int = Field(default=100, ge=1, le=500)


# --- Response Schemas ---

class OrderItemResponse(BaseModel):
    id: int
    product_name: str
    sku: str | None
    variant_id: str | None
    warehouse_id: str | None
    quantity: Decimal
    unit: str
    unit_price: Decimal
    line_total: Decimal
    cost_of_goods: Decimal

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    order_no: str
    branch_id: str
    account_id: int
    status: OrderStatus
    currency: str
    exchange_rate: Decimal
    vat_rate: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    grand_total: Decimal
    cost_of_goods: Decimal
    agency_account_id: int | None
    agency_commission_rate: Decimal
    commission_amount: Decimal
    waybill_no: str | None
    is_cancelled: bool
    notes: str | None
    created_by: str
    created_at: datetime
    items: list[OrderItemResponse]

    model_config = {"from_attributes": True}
