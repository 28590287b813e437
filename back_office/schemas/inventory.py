"""
Pydantic schemas for inventory operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import InventoryTransactionType


# --- Request Schemas ---

class LotReceive(BaseModel):
    """Goods coming into a warehouse at a known unit cost."""
    product_id: str | None = Field(default=None, max_length=36)
    variant_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    batch_no: str | None = Field(default=None, max_length=40)
    quantity: Decimal = Field(gt=0, decimal_places=4)
    unit_cost: Decimal = Field(ge=0, decimal_places=4)
    received_at: datetime | None = None
    reference_id: str | None = Field(default=None, max_length=36)
    reference_type: str | None = Field(default=None, max_length=30)
    description: str = Field(default="Goods received", max_length=255)


class StockRequest(BaseModel):
    """A quantity of one variant in one warehouse, tied to a source document."""
    variant_id: str = Field(min_length=1, max_length=36)
    warehouse_id: str = Field(min_length=1, max_length=36)
    quantity: Decimal = Field(gt=0, decimal_places=4)
    reference_id: str | None = Field(default=None, max_length=36)
    reference_type: str | None = Field(default=None, max_length=30)


# --- Response Schemas ---

class LotResponse(BaseModel):
    id: int
    product_id: str | None
    variant_id: str
    warehouse_id: str
    branch_id: str
    batch_no: str
    quantity: Decimal
    remaining_quantity: Decimal
    unit_cost: Decimal
    received_at: datetime

    model_config = {"from_attributes": True}


class StockResponse(BaseModel):
    variant_id: str
    warehouse_id: str
    quantity: Decimal
    reserved_quantity: Decimal
    available_quantity: Decimal

    model_config = {"from_attributes": True}


class AllocationResult(BaseModel):
    variant_id: str
    warehouse_id: str
    reserved: Decimal


class LotConsumption(BaseModel):
    lot_id: int
    batch_no: str
    quantity: Decimal
    unit_cost: Decimal
    line_cost: Decimal


class FulfillmentResult(BaseModel):
    variant_id: str
    warehouse_id: str
    quantity: Decimal
    total_cost: Decimal
    lots_consumed: list[LotConsumption]


class InventoryTransactionResponse(BaseModel):
    id: int
    transaction_type: InventoryTransactionType
    variant_id: str
    warehouse_id: str
    lot_id: int | None
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    reference_id: str | None
    reference_type: str | None
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class StockCheck(BaseModel):
    """Stock aggregate compared against the sum of its lots."""
    variant_id: str
    warehouse_id: str
    stock_quantity: Decimal
    lot_remaining: Decimal
    reserved_quantity: Decimal
    matches: bool
