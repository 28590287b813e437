"""
Pydantic schemas for work orders.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from back_office.models.enums import WorkOrderStatus


# --- Request Schemas ---

class MaterialLine(BaseModel):
    """Input needed per unit of output, plus a waste allowance."""
    variant_id: str = Field(min_length=1, max_length=36)
    quantity_per_unit: Decimal = Field(gt=0, decimal_places=4)
    waste_pct: Decimal = Field(default=Decimal("0"), ge=0, lt=100, decimal_places=2)


class WorkOrderCreate(BaseModel):
    output_variant_id: str = Field(min_length=1, max_length=36)
    planned_quantity: Decimal = Field(gt=0, decimal_places=4)
    labor_cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    overhead_cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    notes: str | None = Field(default=None, max_length=500)
    materials: list[MaterialLine] = Field(default_factory=list)


class ConsumeRequest(BaseModel):
    """Draw every material line from one warehouse."""
    warehouse_id: str = Field(min_length=1, max_length=36)


class CompleteRequest(BaseModel):
    warehouse_id: str = Field(min_length=1, max_length=36)
    produced_quantity: Decimal = Field(gt=0, decimal_places=4)
    waste_quantity: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)


class WorkOrderCancel(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class WorkOrderFilter(BaseModel):
    status: WorkOrderStatus | None = None
    include_cancelled: bool = False
    limit: int = Field(default=100, ge=1, le=500)


# --- Response Schemas ---

class MaterialResponse(BaseModel):
    id: int
    variant_id: str
    quantity_per_unit: Decimal
    waste_pct: Decimal
    required_quantity: Decimal

    model_config = {"from_attributes": True}


class ConsumptionResponse(BaseModel):
    id: int
    variant_id: str
    warehouse_id: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal

    model_config = {"from_attributes": True}


class WorkOrderResponse(BaseModel):
    id: int
    work_order_no: str
    branch_id: str
    output_variant_id: str
    planned_quantity: Decimal
    labor_cost_per_unit: Decimal
    overhead_cost_per_unit: Decimal
    status: WorkOrderStatus
    materials_consumed: bool
    material_cost: Decimal
    labor_cost: Decimal
    overhead_cost: Decimal
    total_cost: Decimal
    unit_cost: Decimal | None
    produced_quantity: Decimal | None
    waste_quantity: Decimal
    output_lot_id: int | None
    started_at: datetime | None
    completed_at: datetime | None
    is_cancelled: bool
    notes: str | None
    created_by: str
    created_at: datetime
    materials: list[MaterialResponse]
    consumptions: list[ConsumptionResponse]

    model_config = {"from_attributes": True}
