"""
Tests for the ChequeService.

Tests cover:
- Registration and its validation
- Allowed and rejected status transitions
- Ledger entries posted by collection, bounce and endorsement
- Transition history
"""

from datetime import date
from decimal import Decimal

import pytest

from back_office.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import (
    AccountType,
    ChequeDirection,
    ChequeStatus,
    LedgerEntryType,
)
from back_office.schemas.account import AccountCreate
from back_office.schemas.cheque import ChequeCreate, ChequeFilter, ChequeTransition
from back_office.schemas.ledger import LedgerEntryCreate, LedgerFilter
from back_office.services.account_service import AccountService
from back_office.services.cheque_service import ChequeService
from back_office.services.ledger_service import LedgerService

BRANCH = "branch-1"


def make_drawer(db):
    account = AccountService(db).create_account(AccountCreate(
        code="C100",
        name="Drawer Ltd",
        account_type=AccountType.CUSTOMER,
        currency="USD",
    ), BRANCH)
    db.commit()
    return account


def register_cheque(db, drawer, cheque_no="CHQ-1", amount="250.00", **kwargs):
    cheque = ChequeService(db).create(ChequeCreate(
        cheque_no=cheque_no,
        direction=ChequeDirection.RECEIVED,
        drawer_id=drawer.id,
        amount=Decimal(amount),
        issue_date=kwargs.pop("issue_date", date(2025, 1, 10)),
        due_date=kwargs.pop("due_date", date(2025, 3, 10)),
        **kwargs,
    ), BRANCH, "clerk")
    db.commit()
    return cheque


def move(db, cheque, to_status, **kwargs):
    result = ChequeService(db).transition(
        cheque.id, ChequeTransition(to_status=to_status, **kwargs), BRANCH, "clerk"
    )
    db.commit()
    return result


def balance(db, account):
    return LedgerService(db).get_account_balance(account.id, BRANCH)


class TestRegister:

    def test_registered_in_portfolio(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)

        assert cheque.status == ChequeStatus.PORTFOLIO
        assert cheque.currency == "USD"
        history = ChequeService(db_session).history(cheque.id, BRANCH)
        assert len(history) == 1
        assert history[0].performed_by == "clerk"

    def test_duplicate_number_rejected(self, db_session):
        drawer = make_drawer(db_session)
        register_cheque(db_session, drawer)

        with pytest.raises(StateConflictError):
            register_cheque(db_session, drawer)

    def test_due_before_issue_rejected(self, db_session):
        drawer = make_drawer(db_session)

        with pytest.raises(InvalidInputError, match="Due date"):
            register_cheque(
                db_session, drawer,
                issue_date=date(2025, 5, 1), due_date=date(2025, 4, 1),
            )

    def test_currency_must_match_drawer(self, db_session):
        drawer = make_drawer(db_session)

        with pytest.raises(InvalidInputError):
            register_cheque(db_session, drawer, currency="EUR")


class TestTransition:

    def test_collect_straight_from_portfolio_rejected(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)

        with pytest.raises(InvalidTransitionError):
            move(db_session, cheque, ChequeStatus.COLLECTED)
        db_session.rollback()

        assert ChequeService(db_session).get(cheque.id, BRANCH).status == ChequeStatus.PORTFOLIO
        assert LedgerService(db_session).list_entries(BRANCH, LedgerFilter()) == []
        assert len(ChequeService(db_session).history(cheque.id, BRANCH)) == 1

    def test_deposit_then_collect_posts_one_debit(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)

        _, deposit_entry = move(db_session, cheque, ChequeStatus.DEPOSITED)
        collected, entry = move(db_session, cheque, ChequeStatus.COLLECTED)

        assert deposit_entry is None
        assert collected.status == ChequeStatus.COLLECTED
        assert collected.collected_at is not None
        assert entry.entry_type == LedgerEntryType.CHEQUE_COLLECT
        assert entry.debit == Decimal("250.00")
        assert entry.credit == Decimal("0")
        assert balance(db_session, drawer) == Decimal("250.00")

    def test_bounce_posts_debit(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer, amount="80.00")

        bounced, entry = move(db_session, cheque, ChequeStatus.BOUNCED)

        assert bounced.bounced_at is not None
        assert entry.entry_type == LedgerEntryType.CHEQUE_BOUNCE
        assert entry.debit == Decimal("80.00")

    def test_endorse_without_endorsee(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer, amount="40.00")

        endorsed, entry = move(db_session, cheque, ChequeStatus.ENDORSED)

        assert endorsed.status == ChequeStatus.ENDORSED
        assert endorsed.endorsed_to is None
        assert entry.credit == Decimal("40.00")

    def test_endorse_carries_payee(self, db_session):
        drawer = make_drawer(db_session)
        supplier = AccountService(db_session).create_account(AccountCreate(
            code="S200",
            name="Supplier Co",
            account_type=AccountType.SUPPLIER,
            currency="USD",
        ), BRANCH)
        db_session.commit()
        cheque = register_cheque(db_session, drawer)

        endorsed, _ = move(
            db_session, cheque, ChequeStatus.ENDORSED,
            endorsed_to="Supplier Co", payee_id=supplier.id,
        )

        assert endorsed.payee_id == supplier.id

    def test_endorse_to_unknown_payee_rejected(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)

        with pytest.raises(NotFoundError):
            move(db_session, cheque, ChequeStatus.ENDORSED, payee_id=9999)
        db_session.rollback()

        assert ChequeService(db_session).get(cheque.id, BRANCH).status == ChequeStatus.PORTFOLIO

    def test_endorse_posts_credit(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer, amount="40.00")

        endorsed, entry = move(
            db_session, cheque, ChequeStatus.ENDORSED, endorsed_to="Supplier Co"
        )

        assert endorsed.endorsed_to == "Supplier Co"
        assert entry.entry_type == LedgerEntryType.CHEQUE_ENDORSE
        assert entry.credit == Decimal("40.00")
        assert balance(db_session, drawer) == Decimal("-40.00")

    def test_bounce_after_drawer_deactivated(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer, amount="90.00")
        move(db_session, cheque, ChequeStatus.DEPOSITED)
        AccountService(db_session).deactivate_account(drawer.id, BRANCH)
        db_session.commit()

        bounced, entry = move(db_session, cheque, ChequeStatus.BOUNCED)

        assert bounced.status == ChequeStatus.BOUNCED
        assert entry.entry_type == LedgerEntryType.CHEQUE_BOUNCE
        assert entry.debit == Decimal("90.00")
        assert balance(db_session, drawer) == Decimal("90.00")

    def test_manual_entry_on_inactive_account_still_rejected(self, db_session):
        drawer = make_drawer(db_session)
        AccountService(db_session).deactivate_account(drawer.id, BRANCH)
        db_session.commit()

        with pytest.raises(StateConflictError, match="not active"):
            LedgerService(db_session).record(LedgerEntryCreate(
                account_id=drawer.id,
                entry_type=LedgerEntryType.ADJUSTMENT,
                debit=Decimal("5.00"),
                description="Manual fix",
            ), BRANCH)

    def test_cancelled_is_terminal(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)
        cancelled, entry = move(db_session, cheque, ChequeStatus.CANCELLED)

        assert entry is None
        assert cancelled.is_cancelled is True
        with pytest.raises(InvalidTransitionError):
            move(db_session, cheque, ChequeStatus.DEPOSITED)

    def test_history_records_every_move(self, db_session):
        drawer = make_drawer(db_session)
        cheque = register_cheque(db_session, drawer)
        move(db_session, cheque, ChequeStatus.DEPOSITED, notes="Bank A")
        move(db_session, cheque, ChequeStatus.COLLECTED)

        history = ChequeService(db_session).history(cheque.id, BRANCH)

        assert [(h.from_status, h.to_status) for h in history[1:]] == [
            (ChequeStatus.PORTFOLIO, ChequeStatus.DEPOSITED),
            (ChequeStatus.DEPOSITED, ChequeStatus.COLLECTED),
        ]
        assert history[1].notes == "Bank A"


class TestListCheques:

    def test_filter_by_status_and_due_date(self, db_session):
        drawer = make_drawer(db_session)
        early = register_cheque(db_session, drawer, "CHQ-1", due_date=date(2025, 2, 1))
        late = register_cheque(db_session, drawer, "CHQ-2", due_date=date(2025, 6, 1))
        move(db_session, late, ChequeStatus.DEPOSITED)
        service = ChequeService(db_session)

        in_portfolio = service.list_cheques(
            BRANCH, ChequeFilter(status=ChequeStatus.PORTFOLIO)
        )
        due_soon = service.list_cheques(BRANCH, ChequeFilter(due_to=date(2025, 3, 1)))

        assert [c.id for c in in_portfolio] == [early.id]
        assert [c.id for c in due_soon] == [early.id]
