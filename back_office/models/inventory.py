"""
Inventory models: lots, stock aggregates and the transaction trail.

Product, variant and warehouse identifiers are opaque references
into the external catalog; the core never interprets them.

Invariants kept by the InventoryService:
    0 <= lot.remaining_quantity <= lot.quantity
    stock.reserved_quantity <= stock.quantity
    stock.quantity == sum(remaining_quantity of the variant/warehouse lots)
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey, UniqueConstraint, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import InventoryTransactionType


class InventoryLot(Base):
    """
    One receipt of quantity at one unit cost.

    Lots are consumed oldest first (received_at, then id) and are
    never deleted; a spent lot just reaches remaining_quantity = 0.
    """

    __tablename__ = "inventory_lots"
    __table_args__ = (
        Index(
            "ix_inventory_lots_fifo",
            "variant_id", "warehouse_id", "received_at", "id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(36), nullable=False)
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    batch_no: Mapped[str] = mapped_column(String(40), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    remaining_quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryLot {self.batch_no} "
            f"{self.remaining_quantity}/{self.quantity} @ {self.unit_cost}>"
        )


class Stock(Base):
    """On-hand and reserved quantity for one variant in one warehouse."""

    __tablename__ = "stock"
    __table_args__ = (
        UniqueConstraint(
            "variant_id", "warehouse_id", name="uq_stock_variant_warehouse"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    reserved_quantity: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def available_quantity(self) -> Decimal:
        return self.quantity - self.reserved_quantity

    def __repr__(self) -> str:
        return (
            f"<Stock {self.variant_id}@{self.warehouse_id} "
            f"{self.quantity} ({self.reserved_quantity} reserved)>"
        )


class InventoryTransaction(Base):
    """Append-only trail of every quantity movement."""

    __tablename__ = "inventory_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_type: Mapped[InventoryTransactionType] = mapped_column(
        SAEnum(InventoryTransactionType, name="inventory_transaction_type_enum"),
        nullable=False,
    )
    variant_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    warehouse_id: Mapped[str] = mapped_column(String(36), nullable=False)
    lot_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory_lots.id"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    reference_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reference_type: Mapped[str | None] = mapped_column(
        String(30), nullable=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lot: Mapped["InventoryLot | None"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.transaction_type.value} "
            f"{self.quantity} of {self.variant_id}>"
        )
