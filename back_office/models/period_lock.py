"""Period lock model: no posting may be dated on or before closing_date."""

from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from back_office.models.base import Base


class PeriodLock(Base):
    __tablename__ = "period_locks"

    id: Mapped[int] = mapped_column(primary_key=True)
    closing_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )
    locked_by: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<PeriodLock {self.closing_date}>"
