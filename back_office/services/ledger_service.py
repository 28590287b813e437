"""
Ledger service: the only writer of ledger entries.

This service enforces the rules of the account ledger:
1. Every entry is one-sided (debit xor credit) and non-negative
2. Entries are immutable (append-only); mistakes are reversed
3. Accounts must exist in the branch and be active
4. Entry currency must match the account currency
5. Nothing is posted into a locked period
6. The cached account balance moves in the same transaction

No other service writes to the ledger directly. Invoices,
cheques, returns and shipments all post through record().
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    AlreadyCancelledError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.account import Account
from back_office.models.enums import DocType, LedgerEntryType
from back_office.models.ledger_entry import LedgerEntry
from back_office.money import ZERO, money
from back_office.schemas.ledger import (
    CollectionRequest,
    IntegrityMismatch,
    IntegrityReport,
    LedgerEntryCreate,
    LedgerFilter,
    ManualEntryRequest,
    PaymentRequest,
    StatementLine,
    StatementResponse,
)
from back_office.services.account_service import AccountService
from back_office.services.period_service import PeriodService
from back_office.services.sequence_service import SequenceService

logger = logging.getLogger(__name__)

# Cash movements and manual adjustments get their own number series
ENTRY_DOC_TYPES = {
    LedgerEntryType.COLLECTION: DocType.PAYMENT,
    LedgerEntryType.PAYMENT: DocType.PAYMENT,
    LedgerEntryType.ADJUSTMENT: DocType.ADJUSTMENT,
    LedgerEntryType.FX_GAIN_LOSS: DocType.ADJUSTMENT,
    LedgerEntryType.COMMISSION: DocType.COMMISSION,
}

REVERSAL_REFERENCE = "LEDGER_ENTRY"


class LedgerService:
    """
    All ledger operations pass through this service.

    The service takes a database session as a constructor
    argument and only ever flushes. The caller controls the
    transaction boundary, normally through unit_of_work().
    """

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountService(db)
        self.periods = PeriodService(db)
        self.sequences = SequenceService(db)

    def validate(
        self,
        request: LedgerEntryCreate,
        branch_id: str,
        require_active: bool = True,
    ) -> Account:
        """
        Run every check record() makes, without writing anything.

        Callers that write their own rows before posting use this
        to fail early. require_active=False lets an instrument that
        already exists settle against an account closed since.
        """
        if request.entry_type == LedgerEntryType.REVERSAL:
            raise InvalidInputError("Reversal entries can only be created by reverse()")

        debit = money(request.debit)
        credit = money(request.credit)
        if debit < 0 or credit < 0:
            raise InvalidInputError("Debit and credit must not be negative")
        if (debit > 0) == (credit > 0):
            raise InvalidInputError(
                "Exactly one of debit or credit must be non-zero"
            )

        account = self.accounts.get_account(request.account_id, branch_id)
        if require_active and not account.is_active:
            raise StateConflictError(f"Account {account.code} is not active")

        currency = request.currency or account.currency
        if currency != account.currency:
            raise InvalidInputError(
                f"Account {account.code} currency is {account.currency}, "
                f"entry currency is {currency}"
            )

        self.periods.ensure_open(request.entry_date or date.today())
        return account

    def record(
        self,
        request: LedgerEntryCreate,
        branch_id: str,
        actor: str = "system",
        require_active: bool = True,
    ) -> LedgerEntry:
        """
        Append one entry and move the account balance by debit - credit.

        If any check fails, nothing is written.
        """
        account = self.validate(request, branch_id, require_active)

        doc_type = ENTRY_DOC_TYPES.get(request.entry_type, DocType.LEDGER)
        entry = LedgerEntry(
            entry_no=self.sequences.next_number(branch_id, doc_type),
            account_id=account.id,
            branch_id=branch_id,
            entry_type=request.entry_type,
            debit=money(request.debit),
            credit=money(request.credit),
            currency=account.currency,
            exchange_rate=request.exchange_rate,
            cost_center=request.cost_center,
            description=request.description,
            entry_date=request.entry_date or date.today(),
            reference_id=request.reference_id,
            reference_type=request.reference_type,
            invoice_id=request.invoice_id,
            created_by=actor,
        )
        self.db.add(entry)
        self.db.flush()

        self.accounts.apply_balance_delta(account.id, entry.signed_amount)
        logger.info(
            "Recorded %s %s on account %s: debit=%s credit=%s",
            entry.entry_type.value, entry.entry_no, account.code,
            entry.debit, entry.credit,
        )
        return entry

    def reverse(
        self,
        entry_id: int,
        reason: str,
        branch_id: str,
        actor: str = "system",
    ) -> LedgerEntry:
        """
        Offset an entry with a REVERSAL entry of the opposite side.

        The original is not deleted. Both the original and its
        reversal are flagged cancelled, so they drop out of the
        live ledger together and the balance returns to where it
        was before the original was posted. The reversal is dated
        today, which lets a closed period be corrected from the
        open one.
        """
        entry = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.id == entry_id, LedgerEntry.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if not entry:
            raise NotFoundError(f"Ledger entry {entry_id} not found")
        if entry.entry_type == LedgerEntryType.REVERSAL:
            raise StateConflictError("A reversal entry cannot be reversed")
        if entry.is_cancelled:
            raise AlreadyCancelledError(
                f"Ledger entry {entry.entry_no} is already cancelled"
            )

        today = date.today()
        self.periods.ensure_open(today)

        reversal = LedgerEntry(
            entry_no=self.sequences.next_number(branch_id, DocType.LEDGER),
            account_id=entry.account_id,
            branch_id=branch_id,
            entry_type=LedgerEntryType.REVERSAL,
            debit=entry.credit,
            credit=entry.debit,
            currency=entry.currency,
            exchange_rate=entry.exchange_rate,
            cost_center=entry.cost_center,
            description=f"Reversal of {entry.entry_no}: {reason}"[:255],
            entry_date=today,
            reference_id=str(entry.id),
            reference_type=REVERSAL_REFERENCE,
            invoice_id=entry.invoice_id,
            reversal_of_id=entry.id,
            is_cancelled=True,
            created_by=actor,
        )
        entry.is_cancelled = True
        self.db.add(reversal)
        self.db.flush()

        self.accounts.apply_balance_delta(entry.account_id, reversal.signed_amount)
        logger.info("Reversed %s with %s (%s)", entry.entry_no, reversal.entry_no, reason)
        return reversal

    def reverse_by_reference(
        self,
        branch_id: str,
        reason: str,
        actor: str = "system",
        reference_type: str | None = None,
        reference_id: str | None = None,
        invoice_id: int | None = None,
    ) -> list[LedgerEntry]:
        """Reverse every live entry that belongs to one source document."""
        if invoice_id is None and (reference_type is None or reference_id is None):
            raise InvalidInputError(
                "Either invoice_id or reference_type and reference_id are required"
            )

        query = select(LedgerEntry.id).where(
            LedgerEntry.branch_id == branch_id,
            LedgerEntry.is_cancelled.is_(False),
            LedgerEntry.entry_type != LedgerEntryType.REVERSAL,
        )
        if invoice_id is not None:
            query = query.where(LedgerEntry.invoice_id == invoice_id)
        else:
            query = query.where(
                LedgerEntry.reference_type == reference_type,
                LedgerEntry.reference_id == reference_id,
            )

        entry_ids = self.db.execute(query.order_by(LedgerEntry.id)).scalars().all()
        return [
            self.reverse(entry_id, reason, branch_id, actor)
            for entry_id in entry_ids
        ]

    def get_entry(self, entry_id: int, branch_id: str) -> LedgerEntry:
        entry = self.db.get(LedgerEntry, entry_id)
        if not entry or entry.branch_id != branch_id:
            raise NotFoundError(f"Ledger entry {entry_id} not found")
        return entry

    def list_entries(
        self, branch_id: str, filters: LedgerFilter | None = None
    ) -> list[LedgerEntry]:
        """Return entries matching the filter, newest first."""
        filters = filters or LedgerFilter()
        query = select(LedgerEntry).where(LedgerEntry.branch_id == branch_id)

        if filters.account_id is not None:
            query = query.where(LedgerEntry.account_id == filters.account_id)
        if filters.entry_type is not None:
            query = query.where(LedgerEntry.entry_type == filters.entry_type)
        if filters.reference_type is not None:
            query = query.where(LedgerEntry.reference_type == filters.reference_type)
        if filters.reference_id is not None:
            query = query.where(LedgerEntry.reference_id == filters.reference_id)
        if filters.invoice_id is not None:
            query = query.where(LedgerEntry.invoice_id == filters.invoice_id)
        if filters.date_from is not None:
            query = query.where(LedgerEntry.entry_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(LedgerEntry.entry_date <= filters.date_to)
        if not filters.include_cancelled:
            query = query.where(LedgerEntry.is_cancelled.is_(False))

        entries = self.db.execute(
            query.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(entries)

    def statement(
        self,
        account_id: int,
        branch_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> StatementResponse:
        """
        Account statement over a date range.

        The opening balance is the sum of live entries dated before
        date_from. Each line carries the running balance after it.
        """
        account = self.accounts.get_account(account_id, branch_id)
        live = select(LedgerEntry).where(
            LedgerEntry.account_id == account.id,
            LedgerEntry.is_cancelled.is_(False),
        )

        opening = ZERO
        if date_from is not None:
            earlier = self.db.execute(
                live.where(LedgerEntry.entry_date < date_from)
            ).scalars().all()
            opening = money(sum((e.signed_amount for e in earlier), ZERO))

        query = live
        if date_from is not None:
            query = query.where(LedgerEntry.entry_date >= date_from)
        if date_to is not None:
            query = query.where(LedgerEntry.entry_date <= date_to)
        entries = self.db.execute(
            query.order_by(LedgerEntry.entry_date, LedgerEntry.id)
        ).scalars().all()

        running = opening
        total_debit = ZERO
        total_credit = ZERO
        lines = []
        for entry in entries:
            running = money(running + entry.signed_amount)
            total_debit += entry.debit
            total_credit += entry.credit
            lines.append(StatementLine(
                entry_no=entry.entry_no,
                entry_date=entry.entry_date,
                entry_type=entry.entry_type,
                description=entry.description,
                debit=entry.debit,
                credit=entry.credit,
                balance=running,
            ))

        return StatementResponse(
            account_id=account.id,
            account_code=account.code,
            currency=account.currency,
            date_from=date_from,
            date_to=date_to,
            opening_balance=opening,
            total_debit=money(total_debit),
            total_credit=money(total_credit),
            closing_balance=running,
            lines=lines,
        )

    def collect(
        self, request: CollectionRequest, branch_id: str, actor: str = "system"
    ) -> LedgerEntry:
        """Money received from the account holder: a COLLECTION credit."""
        return self.record(LedgerEntryCreate(
            account_id=request.account_id,
            entry_type=LedgerEntryType.COLLECTION,
            credit=request.amount,
            currency=request.currency,
            description=request.description,
            entry_date=request.entry_date,
            reference_id=request.reference_id,
            reference_type=request.reference_type,
        ), branch_id, actor)

    def pay(
        self, request: PaymentRequest, branch_id: str, actor: str = "system"
    ) -> LedgerEntry:
        """Money paid to the account holder: a PAYMENT debit."""
        return self.record(LedgerEntryCreate(
            account_id=request.account_id,
            entry_type=LedgerEntryType.PAYMENT,
            debit=request.amount,
            currency=request.currency,
            description=request.description,
            entry_date=request.entry_date,
            reference_id=request.reference_id,
            reference_type=request.reference_type,
        ), branch_id, actor)

    def post_manual(
        self, request: ManualEntryRequest, branch_id: str, actor: str = "system"
    ) -> LedgerEntry:
        return self.record(LedgerEntryCreate(
            account_id=request.account_id,
            entry_type=request.entry_type,
            debit=request.debit,
            credit=request.credit,
            cost_center=request.cost_center,
            description=request.description,
            entry_date=request.entry_date,
        ), branch_id, actor)

    def check_integrity(self, branch_id: str) -> IntegrityReport:
        """Compare every account's cached balance with a replay of its entries."""
        account_ids = self.db.execute(
            select(Account.id)
            .where(Account.branch_id == branch_id)
            .order_by(Account.id)
        ).scalars().all()

        mismatches = []
        for account_id in account_ids:
            check = self.accounts.verify_balance(account_id, branch_id)
            if not check.matches:
                logger.warning(
                    "Balance mismatch on account %s: cached=%s replayed=%s",
                    check.code, check.cached_balance, check.replayed_balance,
                )
                mismatches.append(IntegrityMismatch(
                    account_id=check.account_id,
                    code=check.code,
                    cached_balance=check.cached_balance,
                    replayed_balance=check.replayed_balance,
                    difference=check.difference,
                ))

        return IntegrityReport(
            accounts_checked=len(account_ids),
            mismatches=mismatches,
            is_consistent=not mismatches,
        )

    def get_account_balance(self, account_id: int, branch_id: str) -> Decimal:
        """Current cached balance of an account."""
        account = self.accounts.get_account(account_id, branch_id)
        self.db.refresh(account)
        return money(str(account.current_balance))
