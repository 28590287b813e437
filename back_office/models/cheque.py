"""
Cheque and cheque history models.

A cheque moves through a fixed lifecycle. The transition table
below is the source of truth for the state machine; anything
not listed is rejected without side effects.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Numeric, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from back_office.models.base import Base
from back_office.models.enums import ChequeStatus, ChequeType, ChequeDirection


VALID_TRANSITIONS: dict[ChequeStatus, set[ChequeStatus]] = {
    ChequeStatus.PORTFOLIO: {
        ChequeStatus.DEPOSITED,
        ChequeStatus.ENDORSED,
        ChequeStatus.COLLATERAL,
        ChequeStatus.BOUNCED,
        ChequeStatus.CANCELLED,
    },
    ChequeStatus.DEPOSITED: {
        ChequeStatus.COLLECTED,
        ChequeStatus.BOUNCED,
        ChequeStatus.CANCELLED,
    },
    ChequeStatus.ENDORSED: {ChequeStatus.BOUNCED, ChequeStatus.CANCELLED},
    ChequeStatus.COLLATERAL: {
        ChequeStatus.PORTFOLIO,
        ChequeStatus.BOUNCED,
        ChequeStatus.CANCELLED,
    },
    # A bounced cheque can re-enter the portfolio once resolved
    ChequeStatus.BOUNCED: {ChequeStatus.PORTFOLIO},
    ChequeStatus.COLLECTED: set(),  # Terminal
    ChequeStatus.PAID: set(),  # Terminal
    ChequeStatus.CANCELLED: set(),  # Terminal
}


class Cheque(Base):
    __tablename__ = "cheques"
    __table_args__ = (
        UniqueConstraint("branch_id", "cheque_no", name="uq_cheques_branch_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    cheque_no: Mapped[str] = mapped_column(String(50), nullable=False)
    cheque_type: Mapped[ChequeType] = mapped_column(
        SAEnum(ChequeType, name="cheque_type_enum"),
        nullable=False,
        default=ChequeType.CHEQUE,
    )
    direction: Mapped[ChequeDirection] = mapped_column(
        SAEnum(ChequeDirection, name="cheque_direction_enum"),
        nullable=False,
    )
    status: Mapped[ChequeStatus] = mapped_column(
        SAEnum(ChequeStatus, name="cheque_status_enum", create_constraint=True),
        nullable=False,
        default=ChequeStatus.PORTFOLIO,
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    drawer_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    payee_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    endorsed_to: Mapped[str | None] = mapped_column(String(150), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_branch: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    collected_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    bounced_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    is_cancelled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    drawer: Mapped["Account"] = relationship(foreign_keys=[drawer_id])
    payee: Mapped["Account | None"] = relationship(foreign_keys=[payee_id])
    history: Mapped[list["ChequeHistory"]] = relationship(
        back_populates="cheque", order_by="ChequeHistory.id"
    )

    def can_transition_to(self, new_status: ChequeStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<Cheque {self.cheque_no} {self.amount} {self.currency} "
            f"({self.status.value})>"
        )


class ChequeHistory(Base):
    """One row per transition. Rows are never edited."""

    __tablename__ = "cheque_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    cheque_id: Mapped[int] = mapped_column(
        ForeignKey("cheques.id"), nullable=False, index=True
    )
    from_status: Mapped[ChequeStatus] = mapped_column(
        SAEnum(ChequeStatus, name="cheque_status_enum"),
        nullable=False,
    )
    to_status: Mapped[ChequeStatus] = mapped_column(
        SAEnum(ChequeStatus, name="cheque_status_enum"),
        nullable=False,
    )
    performed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    cheque: Mapped["Cheque"] = relationship(back_populates="history")

    def __repr__(self) -> str:
        return (
            f"<ChequeHistory {self.from_status.value} -> "
            f"{self.to_status.value}>"
        )
