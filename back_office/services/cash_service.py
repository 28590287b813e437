"""
Cash register service: opening, closing and cash movements.

Each movement:
1. Checks idempotency (has this key been used before?)
2. Checks the register is open
3. Moves the register balance in one conditional UPDATE
4. Writes the movement record

A withdrawal only succeeds if the register holds at least the
amount at the moment of the UPDATE. The caller controls the
commit.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from back_office.config import get_settings
from back_office.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.cash_register import CashMovement, CashRegister
from back_office.models.enums import CashMovementType
from back_office.money import ZERO, money, subtract, total
from back_office.schemas.cash import (
    CashMovementCreate,
    RegisterClose,
    RegisterCreate,
    RegisterOpen,
    ZReport,
)

logger = logging.getLogger(__name__)


class CashService:

    def __init__(self, db: Session):
        self.db = db

    def create_register(self, request: RegisterCreate, branch_id: str) -> CashRegister:
        existing = self.db.execute(
            select(CashRegister).where(
                CashRegister.branch_id == branch_id,
                CashRegister.code == request.code,
            )
        ).scalar_one_or_none()
        if existing:
            raise StateConflictError(
                f"Cash register '{request.code}' already exists"
            )

        register = CashRegister(
            branch_id=branch_id,
            code=request.code,
            name=request.name,
            currency=request.currency or get_settings().DEFAULT_CURRENCY,
            is_open=False,
            opening_balance=ZERO,
            current_balance=ZERO,
        )
        self.db.add(register)
        self.db.flush()
        return register

    def open_register(
        self,
        register_id: int,
        request: RegisterOpen,
        branch_id: str,
        actor: str = "system",
    ) -> CashRegister:
        register = self._lock_register(register_id, branch_id)
        if register.is_open:
            raise StateConflictError(f"Register {register.code} is already open")

        opening = money(request.opening_balance)
        register.is_open = True
        register.opening_balance = opening
        register.current_balance = opening
        register.last_opened_at = datetime.utcnow()
        self.db.flush()
        logger.info("Opened register %s with %s by %s", register.code, opening, actor)
        return register

    def close_register(
        self,
        register_id: int,
        request: RegisterClose,
        branch_id: str,
        actor: str = "system",
    ) -> ZReport:
        """
        Close the register and produce its Z report.

        Expected cash is the opening balance plus inflows minus
        outflows since the register was opened. The counted cash
        becomes the register balance; the difference is reported
        as the variance.
        """
        register = self._lock_register(register_id, branch_id)
        if not register.is_open:
            raise StateConflictError(f"Register {register.code} is not open")

        query = select(CashMovement).where(CashMovement.register_id == register.id)
        if register.last_opened_at is not None:
            query = query.where(CashMovement.created_at >= register.last_opened_at)
        movements = self.db.execute(query).scalars().all()

        total_in = total(
            m.amount for m in movements if m.movement_type == CashMovementType.IN
        )
        total_out = total(
            m.amount for m in movements if m.movement_type == CashMovementType.OUT
        )
        opening = money(register.opening_balance)
        expected = subtract(opening + total_in, total_out)
        actual = money(request.actual_cash)
        closed_at = datetime.utcnow()

        register.is_open = False
        register.current_balance = actual
        register.last_closed_at = closed_at
        self.db.flush()

        variance = subtract(actual, expected)
        if variance != 0:
            logger.warning(
                "Register %s closed with variance %s", register.code, variance
            )
        logger.info("Closed register %s by %s", register.code, actor)

        return ZReport(
            register_id=register.id,
            opened_at=register.last_opened_at,
            closed_at=closed_at,
            opening_balance=opening,
            total_in=total_in,
            total_out=total_out,
            expected_cash=expected,
            actual_cash=actual,
            variance=variance,
            movement_count=len(movements),
        )

    def record_movement(
        self,
        register_id: int,
        request: CashMovementCreate,
        branch_id: str,
        actor: str = "system",
    ) -> CashMovement:
        """Put cash into or take cash out of an open register."""
        existing = self.db.execute(
            select(CashMovement).where(
                CashMovement.idempotency_key == request.idempotency_key
            )
        ).scalar_one_or_none()
        if existing:
            return existing

        register = self.get_register(register_id, branch_id)
        if not register.is_open:
            raise StateConflictError(f"Register {register.code} is not open")

        amount = money(request.amount)
        if request.movement_type == CashMovementType.IN:
            self.db.execute(
                update(CashRegister)
                .where(CashRegister.id == register.id)
                .values(current_balance=CashRegister.current_balance + amount)
                .execution_options(synchronize_session=False)
            )
        else:
            result = self.db.execute(
                update(CashRegister)
                .where(
                    CashRegister.id == register.id,
                    CashRegister.current_balance >= amount,
                )
                .values(current_balance=CashRegister.current_balance - amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.refresh(register)
                raise InsufficientFundsError(
                    f"Insufficient cash in register {register.code}: "
                    f"available={money(register.current_balance)}, requested={amount}"
                )

        movement = CashMovement(
            register_id=register.id,
            branch_id=branch_id,
            movement_type=request.movement_type,
            amount=amount,
            reason=request.reason,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            idempotency_key=request.idempotency_key,
            created_by=actor,
        )
        self.db.add(movement)
        self.db.flush()
        self.db.refresh(register)

        logger.info(
            "Cash %s %s on register %s (%s)",
            request.movement_type.value, amount, register.code, request.reason,
        )
        return movement

    def get_register(self, register_id: int, branch_id: str) -> CashRegister:
        register = self.db.get(CashRegister, register_id)
        if not register or register.branch_id != branch_id:
            raise NotFoundError(f"Cash register {register_id} not found")
        return register

    def list_registers(self, branch_id: str) -> list[CashRegister]:
        registers = self.db.execute(
            select(CashRegister)
            .where(CashRegister.branch_id == branch_id)
            .order_by(CashRegister.code)
        ).scalars().all()
        return list(registers)

    def list_movements(
        self, register_id: int, branch_id: str, limit: int = 100
    ) -> list[CashMovement]:
        """Movements of a register, newest first."""
        register = self.get_register(register_id, branch_id)
        movements = self.db.execute(
            select(CashMovement)
            .where(CashMovement.register_id == register.id)
            .order_by(CashMovement.created_at.desc(), CashMovement.id.desc())
            .limit(limit)
        ).scalars().all()
        return list(movements)

    def _lock_register(self, register_id: int, branch_id: str) -> CashRegister:
        register = self.db.execute(
            select(CashRegister)
            .where(
                CashRegister.id == register_id,
                CashRegister.branch_id == branch_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not register:
            raise NotFoundError(f"Cash register {register_id} not found")
        return register
