"""
Cheque service: registration and the cheque lifecycle.

Transitions follow VALID_TRANSITIONS in the cheque model. Three
of them carry accounting and post one ledger entry against the
drawer's account:

    COLLECTED  debit   CHEQUE_COLLECT
    BOUNCED    debit   CHEQUE_BOUNCE
    ENDORSED   credit  CHEQUE_ENDORSE

Every transition, including the initial registration, appends
a ChequeHistory row.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.cheque import Cheque, ChequeHistory
from back_office.models.enums import ChequeStatus, LedgerEntryType
from back_office.models.ledger_entry import LedgerEntry
from back_office.money import money
from back_office.schemas.cheque import ChequeCreate, ChequeFilter, ChequeTransition
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.services.account_service import AccountService
from back_office.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

CHEQUE_REFERENCE = "CHEQUE"

# to_status -> (entry type, side of the drawer's account)
LEDGER_EFFECTS = {
    ChequeStatus.COLLECTED: (LedgerEntryType.CHEQUE_COLLECT, "debit"),
    ChequeStatus.BOUNCED: (LedgerEntryType.CHEQUE_BOUNCE, "debit"),
    ChequeStatus.ENDORSED: (LedgerEntryType.CHEQUE_ENDORSE, "credit"),
}


class ChequeService:

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountService(db)
        self.ledger = LedgerService(db)

    def create(
        self, request: ChequeCreate, branch_id: str, actor: str = "system"
    ) -> Cheque:
        """Register a cheque in the PORTFOLIO status."""
        existing = self.db.execute(
            select(Cheque).where(
                Cheque.branch_id == branch_id,
                Cheque.cheque_no == request.cheque_no,
            )
        ).scalar_one_or_none()
        if existing:
            raise StateConflictError(
                f"Cheque {request.cheque_no} is already registered"
            )

        drawer = self.accounts.get_account(request.drawer_id, branch_id)
        if request.payee_id is not None:
            self.accounts.get_account(request.payee_id, branch_id)

        currency = request.currency or drawer.currency
        if currency != drawer.currency:
            raise InvalidInputError(
                f"Cheque currency {currency} does not match "
                f"account currency {drawer.currency}"
            )
        if request.due_date < request.issue_date:
            raise InvalidInputError("Due date cannot be before the issue date")

        cheque = Cheque(
            cheque_no=request.cheque_no,
            cheque_type=request.cheque_type,
            direction=request.direction,
            status=ChequeStatus.PORTFOLIO,
            branch_id=branch_id,
            drawer_id=drawer.id,
            payee_id=request.payee_id,
            bank_name=request.bank_name,
            bank_branch=request.bank_branch,
            amount=money(request.amount),
            currency=currency,
            issue_date=request.issue_date,
            due_date=request.due_date,
            notes=request.notes,
        )
        self.db.add(cheque)
        self.db.flush()

        self.db.add(ChequeHistory(
            cheque_id=cheque.id,
            from_status=ChequeStatus.PORTFOLIO,
            to_status=ChequeStatus.PORTFOLIO,
            performed_by=actor,
            notes="Registered",
        ))
        self.db.flush()
        logger.info("Registered cheque %s for %s", cheque.cheque_no, cheque.amount)
        return cheque

    def transition(
        self,
        cheque_id: int,
        request: ChequeTransition,
        branch_id: str,
        actor: str = "system",
    ) -> tuple[Cheque, LedgerEntry | None]:
        """
        Move a cheque to a new status.

        The cheque row is locked first so two concurrent
        transitions cannot both start from the same status. Any
        rejected move leaves the cheque, its history and the
        ledger untouched.

        Postings go to the drawer even if that account has been
        deactivated since the cheque was registered. An endorsement
        may name the new holder in endorsed_to, a payee account, or
        neither.
        """
        cheque = self.db.execute(
            select(Cheque)
            .where(Cheque.id == cheque_id, Cheque.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not cheque:
            raise NotFoundError(f"Cheque {cheque_id} not found")

        to_status = request.to_status
        if not cheque.can_transition_to(to_status):
            raise InvalidTransitionError(cheque.status, to_status)
        if to_status == ChequeStatus.ENDORSED and request.payee_id is not None:
            self.accounts.get_account(request.payee_id, branch_id)

        entry = None
        if to_status in LEDGER_EFFECTS:
            entry_type, side = LEDGER_EFFECTS[to_status]
            entry = self.ledger.record(LedgerEntryCreate(
                account_id=cheque.drawer_id,
                entry_type=entry_type,
                currency=cheque.currency,
                description=f"Cheque {cheque.cheque_no} {to_status.value.lower()}",
                reference_id=str(cheque.id),
                reference_type=CHEQUE_REFERENCE,
                **{side: cheque.amount},
            ), branch_id, actor, require_active=False)

        from_status = cheque.status
        now = datetime.utcnow()
        cheque.status = to_status
        if to_status == ChequeStatus.COLLECTED:
            cheque.collected_at = now
        elif to_status == ChequeStatus.BOUNCED:
            cheque.bounced_at = now
        elif to_status == ChequeStatus.ENDORSED:
            cheque.endorsed_to = request.endorsed_to
            if request.payee_id is not None:
                cheque.payee_id = request.payee_id
        elif to_status == ChequeStatus.CANCELLED:
            cheque.is_cancelled = True

        self.db.add(ChequeHistory(
            cheque_id=cheque.id,
            from_status=from_status,
            to_status=to_status,
            performed_by=actor,
            notes=request.notes,
        ))
        self.db.flush()

        logger.info(
            "Cheque %s: %s -> %s", cheque.cheque_no, from_status.value, to_status.value
        )
        return cheque, entry

    def get(self, cheque_id: int, branch_id: str) -> Cheque:
        cheque = self.db.get(Cheque, cheque_id)
        if not cheque or cheque.branch_id != branch_id:
            raise NotFoundError(f"Cheque {cheque_id} not found")
        return cheque

    def list_cheques(
        self, branch_id: str, filters: ChequeFilter | None = None
    ) -> list[Cheque]:
        """Live cheques matching the filter, soonest due first."""
        filters = filters or ChequeFilter()
        query = select(Cheque).where(
            Cheque.branch_id == branch_id,
            Cheque.is_cancelled.is_(False),
        )
        if filters.status is not None:
            query = query.where(Cheque.status == filters.status)
        if filters.direction is not None:
            query = query.where(Cheque.direction == filters.direction)
        if filters.cheque_type is not None:
            query = query.where(Cheque.cheque_type == filters.cheque_type)
        if filters.due_from is not None:
            query = query.where(Cheque.due_date >= filters.due_from)
        if filters.due_to is not None:
            query = query.where(Cheque.due_date <= filters.due_to)

        cheques = self.db.execute(
            query.order_by(Cheque.due_date, Cheque.id).limit(filters.limit)
        ).scalars().all()
        return list(cheques)

    def history(self, cheque_id: int, branch_id: str) -> list[ChequeHistory]:
        cheque = self.get(cheque_id, branch_id)
        rows = self.db.execute(
            select(ChequeHistory)
            .where(ChequeHistory.cheque_id == cheque.id)
            .order_by(ChequeHistory.created_at, ChequeHistory.id)
        ).scalars().all()
        return list(rows)
