"""
Ledger entry model.

One immutable debit-or-credit record against an account.
Entries are never edited or deleted. The only field that
changes after commit is is_cancelled, and only a reversal sets
it: on the original and on the REVERSAL entry that offsets it,
so a reversal pair leaves the live ledger together and nets to
zero either way you sum it.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import LedgerEntryType


class LedgerEntry(Base):
    """
    Exactly one of debit/credit is non-zero and both are
    non-negative. This invariant is enforced by the LedgerService,
    not by the model.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_no: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        SAEnum(LedgerEntryType, name="ledger_entry_type_enum"),
        nullable=False,
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("1")
    )
    cost_center: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    entry_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    reference_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True, index=True
    )
    reference_type: Mapped[str | None] = mapped_column(
        String(30), nullable=True
    )
    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True, index=True
    )
    reversal_of_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id"), nullable=True
    )
    is_cancelled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[str] = mapped_column(
        String(100), nullable=False, default="system"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="entries")
    reversal_of: Mapped["LedgerEntry | None"] = relationship(
        remote_side=[id]
    )

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this entry on the account balance."""
        return self.debit - self.credit

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.entry_no} {self.entry_type.value} "
            f"D{self.debit} C{self.credit} {self.currency}>"
        )
