"""
Work order models.

DRAFT -> RELEASED -> IN_PROGRESS -> COMPLETED, or CANCELLED
before completion. Materials are drawn from stock at FIFO cost
while the order is in progress; completion receives the output
as a new lot at the cost of goods manufactured.

Variant and warehouse ids are opaque catalog references, the
same as everywhere else in inventory.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import WorkOrderStatus


VALID_TRANSITIONS: dict[WorkOrderStatus, set[WorkOrderStatus]] = {
    WorkOrderStatus.DRAFT: {WorkOrderStatus.RELEASED, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.RELEASED: {
        WorkOrderStatus.IN_PROGRESS,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.IN_PROGRESS: {
        WorkOrderStatus.COMPLETED,
        WorkOrderStatus.CANCELLED,
    },
    WorkOrderStatus.COMPLETED: set(),
    WorkOrderStatus.CANCELLED: set(),
}


class WorkOrder(Base):
    __tablename__ = "work_orders"
    __table_args__ = (
        UniqueConstraint("work_order_no", name="uq_work_orders_work_order_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    work_order_no: Mapped[str] = mapped_column(String(30), nullable=False)
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    output_variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    planned_quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    labor_cost_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    overhead_cost_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    status: Mapped[WorkOrderStatus] = mapped_column(
        SAEnum(WorkOrderStatus, name="work_order_status_enum", create_constraint=True),
        nullable=False,
        default=WorkOrderStatus.DRAFT,
    )
    materials_consumed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    material_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    labor_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    overhead_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    unit_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    produced_quantity: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    waste_quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    output_lot_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory_lots.id"), nullable=True
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_cancelled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    materials: Mapped[list["WorkOrderMaterial"]] = relationship(
        back_populates="work_order", order_by="WorkOrderMaterial.id"
    )
    consumptions: Mapped[list["WorkOrderConsumption"]] = relationship(
        back_populates="work_order", order_by="WorkOrderConsumption.id"
    )

    def can_transition_to(self, new_status: WorkOrderStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return f"<WorkOrder {self.work_order_no} ({self.status.value})>"


class WorkOrderMaterial(Base):
    """One bill-of-materials line, sized for the planned quantity."""

    __tablename__ = "work_order_materials"

    id: Mapped[int] = mapped_column(primary_key=True)
    work_order_id: Mapped[int] = mapped_column(
        ForeignKey("work_orders.id"), nullable=False, index=True
    )
    variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quantity_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    waste_pct: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    # planned_quantity * quantity_per_unit, plus waste
    required_quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )

    work_order: Mapped["WorkOrder"] = relationship(back_populates="materials")


class WorkOrderConsumption(Base):
    """What a material line actually cost when it was drawn."""

    __tablename__ = "work_order_consumptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    work_order_id: Mapped[int] = mapped_column(
        ForeignKey("work_orders.id"), nullable=False, index=True
    )
    variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    work_order: Mapped["WorkOrder"] = relationship(back_populates="consumptions")
