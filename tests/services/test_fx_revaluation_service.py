"""
Tests for the FxRevaluationService.

Tests cover:
- Gain and loss measured against the order's booking rate
- Base-currency invoices and currencies without a rate are skipped
- Posting, netting of earlier runs, and all-or-nothing failure
- Invoice cancellation taking its revaluation with it
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from back_office.exceptions import PeriodLockedError
from back_office.models.enums import AccountType, LedgerEntryType
from back_office.schemas.account import AccountCreate
from back_office.schemas.invoice import InvoiceCreate
from back_office.schemas.ledger import FxRevaluationRequest, LedgerFilter, PeriodLockCreate
from back_office.schemas.order import OrderCreate, OrderItemCreate
from back_office.services.account_service import AccountService
from back_office.services.fx_revaluation_service import FxRevaluationService
from back_office.services.invoice_service import InvoiceService
from back_office.services.ledger_service import LedgerService
from back_office.services.order_service import OrderService
from back_office.services.period_service import PeriodService

BRANCH = "branch-1"


# --- Helpers ---

def invoiced_customer(db, code="E100", currency="EUR", booking_rate="1.1000", price="100.00"):
    account = AccountService(db).create_account(AccountCreate(
        code=code,
        name=f"Customer {code}",
        account_type=AccountType.CUSTOMER,
        currency=currency,
    ), BRANCH)
    order = OrderService(db).create_order(OrderCreate(
        account_id=account.id,
        exchange_rate=Decimal(booking_rate),
        items=[OrderItemCreate(
            product_name="Service",
            quantity=Decimal("1"),
            unit_price=Decimal(price),
        )],
    ), BRANCH, "clerk")
    invoice = InvoiceService(db).create_from_order(
        InvoiceCreate(order_id=order.id), BRANCH, "clerk"
    )
    db.commit()
    return account, invoice


def post(db, rates, **kwargs):
    result = FxRevaluationService(db).post_fx_revaluation(
        FxRevaluationRequest(rates=rates, **kwargs), BRANCH, "accountant"
    )
    db.commit()
    return result


def balance(db, account):
    return LedgerService(db).get_account_balance(account.id, BRANCH)


class TestCalculate:

    def test_gain_when_rate_rises(self, db_session):
        _, invoice = invoiced_customer(db_session)

        summary = FxRevaluationService(db_session).calculate_fx_revaluation(
            {"EUR": Decimal("1.2000")}, BRANCH
        )

        [item] = summary.items
        assert item.invoice_id == invoice.id
        assert item.original_value_local == Decimal("110.00")
        assert item.current_value_local == Decimal("120.00")
        assert item.unrealized_gain_loss == Decimal("10.00")
        assert item.is_gain is True
        assert summary.total_gain == Decimal("10.00")
        assert summary.net_gain_loss == Decimal("10.00")

    def test_loss_when_rate_falls(self, db_session):
        invoiced_customer(db_session)

        summary = FxRevaluationService(db_session).calculate_fx_revaluation(
            {"EUR": Decimal("1.0500")}, BRANCH
        )

        assert summary.items[0].unrealized_gain_loss == Decimal("-5.00")
        assert summary.items[0].is_gain is False
        assert summary.total_loss == Decimal("5.00")
        assert summary.net_gain_loss == Decimal("-5.00")

    def test_base_currency_and_unrated_invoices_skipped(self, db_session):
        invoiced_customer(db_session, code="U100", currency="USD")
        invoiced_customer(db_session, code="G100", currency="GBP")

        summary = FxRevaluationService(db_session).calculate_fx_revaluation(
            {"EUR": Decimal("1.2"), "USD": Decimal("2")}, BRANCH
        )

        assert summary.items == []

    def test_calculation_posts_nothing(self, db_session):
        account, _ = invoiced_customer(db_session)

        FxRevaluationService(db_session).calculate_fx_revaluation(
            {"EUR": Decimal("1.2")}, BRANCH
        )

        assert balance(db_session, account) == Decimal("100.00")


class TestPost:

    def test_posts_one_entry_per_invoice(self, db_session):
        account, invoice = invoiced_customer(db_session)
        other, _ = invoiced_customer(db_session, code="E200", price="50.00")

        result = post(db_session, {"EUR": Decimal("1.2000")})

        assert len(result.entries) == 2
        entry = result.entries[0]
        assert entry.entry_type == LedgerEntryType.FX_GAIN_LOSS
        assert entry.cost_center == "FX_REVALUATION"
        assert entry.invoice_id == invoice.id
        assert entry.debit == Decimal("10.00")
        assert entry.exchange_rate == Decimal("1.2000")
        assert balance(db_session, account) == Decimal("110.00")
        assert balance(db_session, other) == Decimal("55.00")
        assert AccountService(db_session).verify_balance(account.id, BRANCH).matches

    def test_second_run_at_same_rate_posts_nothing(self, db_session):
        account, _ = invoiced_customer(db_session)
        post(db_session, {"EUR": Decimal("1.2")})

        result = post(db_session, {"EUR": Decimal("1.2")})

        assert result.entries == []
        assert balance(db_session, account) == Decimal("110.00")

    def test_later_run_posts_only_the_movement(self, db_session):
        account, _ = invoiced_customer(db_session)
        post(db_session, {"EUR": Decimal("1.2")})

        result = post(db_session, {"EUR": Decimal("1.05")})

        # 105.00 now, 110.00 booked, 10.00 already posted
        [entry] = result.entries
        assert entry.credit == Decimal("15.00")
        assert balance(db_session, account) == Decimal("95.00")

    def test_locked_period_rejects_whole_run(self, db_session):
        account, _ = invoiced_customer(db_session)
        invoiced_customer(db_session, code="E200")
        yesterday = date.today() - timedelta(days=1)
        PeriodService(db_session).lock_period(
            PeriodLockCreate(closing_date=yesterday), "controller"
        )
        db_session.commit()

        with pytest.raises(PeriodLockedError):
            post(db_session, {"EUR": Decimal("1.2")}, entry_date=yesterday)
        db_session.rollback()

        fx_entries = LedgerService(db_session).list_entries(
            BRANCH, LedgerFilter(entry_type=LedgerEntryType.FX_GAIN_LOSS)
        )
        assert fx_entries == []
        assert balance(db_session, account) == Decimal("100.00")

    def test_cancelling_invoice_reverses_revaluation(self, db_session):
        account, invoice = invoiced_customer(db_session)
        post(db_session, {"EUR": Decimal("1.2")})

        InvoiceService(db_session).cancel_invoice(invoice.id, "Issued in error", BRANCH)
        db_session.commit()

        assert balance(db_session, account) == Decimal("0.00")
        summary = FxRevaluationService(db_session).calculate_fx_revaluation(
            {"EUR": Decimal("1.2")}, BRANCH
        )
        assert summary.items == []


class TestRequest:

    def test_non_positive_rate_rejected(self):
        with pytest.raises(ValueError):
            FxRevaluationRequest(rates={"EUR": Decimal("0")})

    def test_codes_are_upper_cased(self):
        request = FxRevaluationRequest(rates={"eur": Decimal("1.1")})
        assert request.rates == {"EUR": Decimal("1.1")}
