"""
Cash register models.

A register holds physical cash for a branch. Movements are
idempotent on their idempotency_key, the same way a retried
request must never take money out of the drawer twice.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import CashMovementType


class CashRegister(Base):
    __tablename__ = "cash_registers"
    __table_args__ = (
        UniqueConstraint("branch_id", "code", name="uq_cash_registers_branch_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    last_opened_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    last_closed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<CashRegister {self.code} {self.current_balance} ({state})>"


class CashMovement(Base):
    __tablename__ = "cash_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    register_id: Mapped[int] = mapped_column(
        ForeignKey("cash_registers.id"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    movement_type: Mapped[CashMovementType] = mapped_column(
        SAEnum(CashMovementType, name="cash_movement_type_enum"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    reference_type: Mapped[str | None] = mapped_column(
        String(30), nullable=True
    )
    reference_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    register: Mapped["CashRegister"] = relationship()

    def __repr__(self) -> str:
        return f"<CashMovement {self.movement_type.value} {self.amount}>"
