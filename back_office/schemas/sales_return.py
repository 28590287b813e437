"""
Pydantic schemas for sales returns.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import ReturnStatus


class ReturnItemCreate(BaseModel):
    variant_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: Decimal = Field(gt=0, decimal_places=4)
    unit_price: Decimal = Field(ge=0, decimal_places=4)
    unit_cost: Decimal = Field(ge=0, decimal_places=4)


class ReturnCreate(BaseModel):
    order_id: int
    reason: str = Field(min_length=1, max_length=500)
    items: list[ReturnItemCreate] = Field(min_length=1)


class ReturnFilter(BaseModel):
    status: ReturnStatus | None = None
    limit: int = Field(default=100, ge=1, le=500)


class ReturnItemResponse(BaseModel):
    id: int
    variant_id: str
    warehouse_id: str
    quantity: Decimal
    unit_price: Decimal
    unit_cost: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class ReturnResponse(BaseModel):
    id: int
    return_no: str
    order_id: int
    account_id: int
    branch_id: str
    reason: str
    total_amount: Decimal
    currency: str
    status: ReturnStatus
    is_cancelled: bool
    created_by: str
    created_at: datetime
    items: list[ReturnItemResponse]

    model_config = {"from_attributes": True}
