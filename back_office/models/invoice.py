"""
Invoice model.

Raising an invoice is where accounting happens: the grand total
is debited to the order's account. Cancelling never deletes
anything; it reverses the entries and flags the invoice.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Numeric, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import InvoiceStatus


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("invoice_no", name="uq_invoices_invoice_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_no: Mapped[str] = mapped_column(String(30), nullable=False)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    invoice_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    tax_total: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(InvoiceStatus, name="invoice_status_enum", create_constraint=True),
        nullable=False,
        default=InvoiceStatus.FINALIZED,
    )
    is_cancelled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    order: Mapped["Order"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Invoice {self.invoice_no} {self.grand_total} {self.currency} "
            f"({self.status.value})>"
        )
