"""
Tests for the CashService.

Tests cover:
- Opening and closing a register with its Z report
- Cash in and out, and withdrawals beyond the balance
- Idempotent movements
"""

from decimal import Decimal

import pytest

from back_office.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import CashMovementType
from back_office.schemas.cash import (
    CashMovementCreate,
    RegisterClose,
    RegisterCreate,
    RegisterOpen,
)
from back_office.services.cash_service import CashService

BRANCH = "branch-1"


def open_register(db, opening="100.00"):
    service = CashService(db)
    register = service.create_register(
        RegisterCreate(code="TILL-1", name="Front till"), BRANCH
    )
    service.open_register(
        register.id, RegisterOpen(opening_balance=Decimal(opening)), BRANCH, "clerk"
    )
    db.commit()
    return register


def movement(db, register, kind, amount, key):
    result = CashService(db).record_movement(register.id, CashMovementCreate(
        movement_type=kind,
        amount=Decimal(amount),
        reason="Till movement",
        idempotency_key=key,
    ), BRANCH, "clerk")
    db.commit()
    return result


class TestRegister:

    def test_create_defaults(self, db_session):
        register = CashService(db_session).create_register(
            RegisterCreate(code="TILL-1", name="Front till"), BRANCH
        )
        db_session.commit()

        assert register.is_open is False
        assert register.currency == "USD"
        assert register.current_balance == Decimal("0")

    def test_duplicate_code_rejected(self, db_session):
        open_register(db_session)

        with pytest.raises(StateConflictError):
            CashService(db_session).create_register(
                RegisterCreate(code="TILL-1", name="Again"), BRANCH
            )

    def test_open_twice_rejected(self, db_session):
        register = open_register(db_session)

        with pytest.raises(StateConflictError, match="already open"):
            CashService(db_session).open_register(register.id, RegisterOpen(), BRANCH)

    def test_other_branch_not_found(self, db_session):
        register = open_register(db_session)

        with pytest.raises(NotFoundError):
            CashService(db_session).get_register(register.id, "branch-2")


class TestMovements:

    def test_in_and_out_move_balance(self, db_session):
        register = open_register(db_session)
        movement(db_session, register, CashMovementType.IN, "40.00", "k1")
        movement(db_session, register, CashMovementType.OUT, "25.50", "k2")

        refreshed = CashService(db_session).get_register(register.id, BRANCH)
        assert refreshed.current_balance == Decimal("114.50")

    def test_withdrawal_beyond_balance_rejected(self, db_session):
        register = open_register(db_session, opening="10.00")

        with pytest.raises(InsufficientFundsError, match="available=10.00"):
            movement(db_session, register, CashMovementType.OUT, "10.01", "k1")
        db_session.rollback()

        service = CashService(db_session)
        assert service.get_register(register.id, BRANCH).current_balance == Decimal("10.00")
        assert service.list_movements(register.id, BRANCH) == []

    def test_same_key_recorded_once(self, db_session):
        register = open_register(db_session)
        first = movement(db_session, register, CashMovementType.IN, "5.00", "dup")
        second = movement(db_session, register, CashMovementType.IN, "5.00", "dup")

        assert first.id == second.id
        service = CashService(db_session)
        assert len(service.list_movements(register.id, BRANCH)) == 1
        assert service.get_register(register.id, BRANCH).current_balance == Decimal("105.00")

    def test_closed_register_rejects_movements(self, db_session):
        register = CashService(db_session).create_register(
            RegisterCreate(code="TILL-2", name="Back till"), BRANCH
        )
        db_session.commit()

        with pytest.raises(StateConflictError, match="not open"):
            movement(db_session, register, CashMovementType.IN, "5.00", "k1")


class TestClose:

    def test_z_report_with_variance(self, db_session):
        register = open_register(db_session, opening="100.00")
        movement(db_session, register, CashMovementType.IN, "50.00", "k1")
        movement(db_session, register, CashMovementType.OUT, "20.00", "k2")

        report = CashService(db_session).close_register(
            register.id, RegisterClose(actual_cash=Decimal("128.00")), BRANCH, "clerk"
        )
        db_session.commit()

        assert report.opening_balance == Decimal("100.00")
        assert report.total_in == Decimal("50.00")
        assert report.total_out == Decimal("20.00")
        assert report.expected_cash == Decimal("130.00")
        assert report.variance == Decimal("-2.00")
        assert report.movement_count == 2

        closed = CashService(db_session).get_register(register.id, BRANCH)
        assert closed.is_open is False
        assert closed.current_balance == Decimal("128.00")

    def test_close_when_not_open_rejected(self, db_session):
        register = open_register(db_session)
        service = CashService(db_session)
        service.close_register(register.id, RegisterClose(actual_cash=Decimal("100")), BRANCH)
        db_session.commit()

        with pytest.raises(StateConflictError):
            service.close_register(register.id, RegisterClose(actual_cash=Decimal("100")), BRANCH)
