"""
Document sequencer.

Hands out gap-tolerant, duplicate-free document numbers per
branch, document type and year:

    ORD-2025-0001, INV-2025-00001, LED-2025-00042 ...

The counter moves through one INSERT ... ON CONFLICT DO UPDATE
... RETURNING statement, so two concurrent callers can never
read the same value. The statement runs in the caller's
transaction: if the caller rolls back, the increment goes with
it.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import InvalidInputError
from back_office.models.base import upsert
from back_office.models.document_sequence import DocumentSequence
from back_office.models.enums import DocType

logger = logging.getLogger(__name__)


def format_number(prefix: str, year: int, value: int, pad: int) -> str:
    return f"{prefix}-{year}-{value:0{pad}d}"


class SequenceService:

    def __init__(self, db: Session):
        self.db = db

    def next_number(
        self, branch_id: str, doc_type: DocType, year: int | None = None
    ) -> str:
        """Allocate the next number for a standard document type."""
        year = year or datetime.utcnow().year
        value = self._increment(branch_id, doc_type.value, doc_type.prefix, year)
        number = format_number(doc_type.prefix, year, value, doc_type.pad)
        logger.debug("Allocated %s for branch %s", number, branch_id)
        return number

    def next_custom_number(
        self,
        branch_id: str,
        doc_type: DocType,
        prefix: str,
        year: int | None = None,
    ) -> str:
        """
        Allocate a number printed with a caller-chosen prefix.

        Each custom prefix keeps its own counter, separate from
        the standard one for the same document type.
        """
        prefix = prefix.strip().upper()
        if not prefix or len(prefix) > 10 or not prefix.isalnum():
            raise InvalidInputError(f"Invalid document prefix: {prefix!r}")

        year = year or datetime.utcnow().year
        key = f"{doc_type.value}_{prefix}"
        value = self._increment(branch_id, key, prefix, year)
        number = format_number(prefix, year, value, doc_type.pad)
        logger.debug("Allocated %s for branch %s", number, branch_id)
        return number

    def current_value(
        self, branch_id: str, doc_type: DocType, year: int | None = None
    ) -> int:
        """Last value handed out, or 0 if the counter has not started."""
        year = year or datetime.utcnow().year
        value = self.db.execute(
            select(DocumentSequence.current_value).where(
                DocumentSequence.branch_id == branch_id,
                DocumentSequence.doc_type == doc_type.value,
                DocumentSequence.year == year,
            )
        ).scalar_one_or_none()
        return value or 0

    def _increment(self, branch_id: str, key: str, prefix: str, year: int) -> int:
        stmt = upsert(self.db, DocumentSequence).values(
            branch_id=branch_id,
            doc_type=key,
            prefix=prefix,
            year=year,
            current_value=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["branch_id", "doc_type", "year"],
            set_={"current_value": DocumentSequence.current_value + 1},
        ).returning(DocumentSequence.current_value)
        return self.db.execute(stmt).scalar_one()
