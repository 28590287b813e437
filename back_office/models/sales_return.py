"""
Sales return model.

PENDING -> APPROVED -> COMPLETED, or CANCELLED before completion.
Completing a return restocks the goods as new lots and credits
the customer's account.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import ReturnStatus


VALID_TRANSITIONS: dict[ReturnStatus, set[ReturnStatus]] = {
    ReturnStatus.PENDING: {ReturnStatus.APPROVED, ReturnStatus.CANCELLED},
    ReturnStatus.APPROVED: {ReturnStatus.COMPLETED, ReturnStatus.CANCELLED},
    ReturnStatus.COMPLETED: set(),
    ReturnStatus.CANCELLED: set(),
}


class SalesReturn(Base):
    __tablename__ = "sales_returns"
    __table_args__ = (
        UniqueConstraint("return_no", name="uq_sales_returns_return_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    return_no: Mapped[str] = mapped_column(String(30), nullable=False)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[ReturnStatus] = mapped_column(
        SAEnum(ReturnStatus, name="return_status_enum", create_constraint=True),
        nullable=False,
        default=ReturnStatus.PENDING,
    )
    is_cancelled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    order: Mapped["Order"] = relationship()
    items: Mapped[list["SalesReturnItem"]] = relationship(
        back_populates="sales_return", order_by="SalesReturnItem.id"
    )

    def can_transition_to(self, new_status: ReturnStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return f"<SalesReturn {self.return_no} ({self.status.value})>"


class SalesReturnItem(Base):
    __tablename__ = "sales_return_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    return_id: Mapped[int] = mapped_column(
        ForeignKey("sales_returns.id"), nullable=False, index=True
    )
    variant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    # Cost the goods re-enter stock at
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)

    sales_return: Mapped["SalesReturn"] = relationship(back_populates="items")
