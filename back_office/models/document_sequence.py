"""
Document sequence model.

One counter row per (branch, document type, year). The row is
only ever touched through a single atomic upsert-and-increment,
so the counter is the sole source of truth for the next
document number. A new year simply creates a new row.
"""

from sqlalchemy import String, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from back_office.models.base import Base


class DocumentSequence(Base):
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint(
            "branch_id", "doc_type", "year",
            name="uq_document_sequences_branch_type_year",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # Plain string so custom-prefix sequences can share the table
    doc_type: Mapped[str] = mapped_column(String(40), nullable=False)
    prefix: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    current_value: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentSequence {self.branch_id}/{self.doc_type}/"
            f"{self.year} = {self.current_value}>"
        )
