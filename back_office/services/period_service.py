"""
Period closing.

Once a period is locked, nothing may be posted on or before its
closing date. Corrections to a closed period are made with
reversals and adjustments dated in the open period.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    InvalidInputError,
    PeriodLockedError,
    StateConflictError,
)
from back_office.models.period_lock import PeriodLock
from back_office.schemas.ledger import PeriodLockCreate

logger = logging.getLogger(__name__)


class PeriodService:

    def __init__(self, db: Session):
        self.db = db

    def lock_period(self, request: PeriodLockCreate, actor: str) -> PeriodLock:
        """
        Close every day up to and including closing_date.

        Locks only ever move forward, and never into the future.
        """
        if request.closing_date > date.today():
            raise InvalidInputError("Cannot lock a period that has not ended")

        latest = self.latest_lock()
        if latest and request.closing_date <= latest.closing_date:
            raise StateConflictError(
                f"Period is already locked up to {latest.closing_date}"
            )

        lock = PeriodLock(
            closing_date=request.closing_date,
            locked_by=actor,
            notes=request.notes,
        )
        self.db.add(lock)
        self.db.flush()
        logger.info("Period locked up to %s by %s", lock.closing_date, actor)
        return lock

    def latest_lock(self) -> PeriodLock | None:
        return self.db.execute(
            select(PeriodLock)
            .order_by(PeriodLock.closing_date.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_locks(self) -> list[PeriodLock]:
        locks = self.db.execute(
            select(PeriodLock).order_by(PeriodLock.closing_date.desc())
        ).scalars().all()
        return list(locks)

    def is_date_locked(self, on: date) -> bool:
        latest = self.latest_lock()
        return latest is not None and on <= latest.closing_date

    def ensure_open(self, on: date) -> None:
        latest = self.latest_lock()
        if latest is not None and on <= latest.closing_date:
            raise PeriodLockedError(
                f"Period is locked up to {latest.closing_date}; "
                f"cannot post on {on}"
            )
