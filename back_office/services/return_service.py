"""
Sales return service.

Create -> approve -> complete. Completion is the only step with
side effects: the goods go back into stock as new lots at their
recorded unit cost, and the customer's account is credited with
the return total.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    AlreadyCancelledError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import (
    DocType,
    InventoryTransactionType,
    LedgerEntryType,
    ReturnStatus,
)
from back_office.models.order import Order
from back_office.models.sales_return import SalesReturn, SalesReturnItem
from back_office.money import money, multiply, quantity, total, unit_cost
from back_office.schemas.inventory import LotReceive
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.schemas.sales_return import ReturnCreate, ReturnFilter
from back_office.services.commission_service import CommissionService
from back_office.services.inventory_service import InventoryService
from back_office.services.ledger_service import LedgerService
from back_office.services.sequence_service import SequenceService

logger = logging.getLogger(__name__)

RETURN_REFERENCE = "RETURN"
RETURN_COST_CENTER = "RETURN"


class ReturnService:

    def __init__(self, db: Session):
        self.db = db
        self.commissions = CommissionService(db)
        self.inventory = InventoryService(db)
        self.ledger = LedgerService(db)
        self.sequences = SequenceService(db)

    def create_return(
        self, request: ReturnCreate, branch_id: str, actor: str = "system"
    ) -> SalesReturn:
        order = self.db.execute(
            select(Order).where(
                Order.id == request.order_id,
                Order.branch_id == branch_id,
            )
        ).scalar_one_or_none()
        if not order:
            raise NotFoundError(f"Order {request.order_id} not found")
        if order.is_cancelled:
            raise StateConflictError(
                f"Cannot return goods on cancelled order {order.order_no}"
            )

        items = [
            SalesReturnItem(
                variant_id=line.variant_id,
                warehouse_id=line.warehouse_id,
                quantity=quantity(line.quantity),
                unit_price=line.unit_price,
                unit_cost=unit_cost(line.unit_cost),
                line_total=multiply(line.quantity, line.unit_price),
            )
            for line in request.items
        ]

        sales_return = SalesReturn(
            return_no=self.sequences.next_number(branch_id, DocType.RETURN),
            order_id=order.id,
            account_id=order.account_id,
            branch_id=branch_id,
            reason=request.reason,
            total_amount=total(item.line_total for item in items),
            currency=order.currency,
            status=ReturnStatus.PENDING,
            created_by=actor,
            items=items,
        )
        self.db.add(sales_return)
        self.db.flush()

        logger.info(
            "Created return %s for order %s: %s",
            sales_return.return_no, order.order_no, sales_return.total_amount,
        )
        return sales_return

    def approve_return(
        self, return_id: int, branch_id: str, actor: str = "system"
    ) -> SalesReturn:
        sales_return = self._lock_return(return_id, branch_id)
        self._check_transition(sales_return, ReturnStatus.APPROVED)
        sales_return.status = ReturnStatus.APPROVED
        self.db.flush()
        logger.info("Approved return %s", sales_return.return_no)
        return sales_return

    def complete_return(
        self, return_id: int, branch_id: str, actor: str = "system"
    ) -> SalesReturn:
        """
        Restock the returned goods and credit the customer.

        An agency commission already earned on the order is
        reversed and earned again on what the customer kept.
        """
        sales_return = self._lock_return(return_id, branch_id)
        self._check_transition(sales_return, ReturnStatus.COMPLETED)

        entry_request = None
        if sales_return.total_amount > 0:
            entry_request = LedgerEntryCreate(
                account_id=sales_return.account_id,
                entry_type=LedgerEntryType.ADJUSTMENT,
                credit=sales_return.total_amount,
                currency=sales_return.currency,
                cost_center=RETURN_COST_CENTER,
                description=f"Sales return {sales_return.return_no}",
                reference_id=str(sales_return.id),
                reference_type=RETURN_REFERENCE,
            )
            self.ledger.validate(entry_request, branch_id)

        for item in sales_return.items:
            self.inventory.receive(LotReceive(
                variant_id=item.variant_id,
                warehouse_id=item.warehouse_id,
                quantity=quantity(item.quantity),
                unit_cost=unit_cost(item.unit_cost),
                reference_id=str(sales_return.id),
                reference_type=RETURN_REFERENCE,
                description=f"Returned under {sales_return.return_no}",
            ), branch_id, transaction_type=InventoryTransactionType.RETURN)

        if entry_request is not None:
            self.ledger.record(entry_request, branch_id, actor)

        sales_return.status = ReturnStatus.COMPLETED
        self.db.flush()

        order = self._lock_order(sales_return.order_id)
        self.commissions.rebase_commission(
            order,
            self._returned_amount(order.id),
            f"Return {sales_return.return_no} completed",
            branch_id,
            actor,
        )
        logger.info("Completed return %s", sales_return.return_no)
        return sales_return

    def cancel_return(
        self, return_id: int, branch_id: str, actor: str = "system"
    ) -> SalesReturn:
        sales_return = self._lock_return(return_id, branch_id)
        if sales_return.is_cancelled:
            raise AlreadyCancelledError(
                f"Return {sales_return.return_no} is already cancelled"
            )
        self._check_transition(sales_return, ReturnStatus.CANCELLED)
        sales_return.status = ReturnStatus.CANCELLED
        sales_return.is_cancelled = True
        self.db.flush()
        logger.info("Cancelled return %s", sales_return.return_no)
        return sales_return

    def get_return(self, return_id: int, branch_id: str) -> SalesReturn:
        sales_return = self.db.get(SalesReturn, return_id)
        if not sales_return or sales_return.branch_id != branch_id:
            raise NotFoundError(f"Return {return_id} not found")
        return sales_return

    def list_returns(
        self, branch_id: str, filters: ReturnFilter | None = None
    ) -> list[SalesReturn]:
        filters = filters or ReturnFilter()
        query = select(SalesReturn).where(
            SalesReturn.branch_id == branch_id,
            SalesReturn.is_cancelled.is_(False),
        )
        if filters.status is not None:
            query = query.where(SalesReturn.status == filters.status)

        returns = self.db.execute(
            query.order_by(SalesReturn.created_at.desc(), SalesReturn.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(returns)

    def _lock_order(self, order_id: int) -> Order:
        return self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _returned_amount(self, order_id: int):
        returned = self.db.execute(
            select(func.coalesce(func.sum(SalesReturn.total_amount), 0))
            .where(
                SalesReturn.order_id == order_id,
                SalesReturn.status == ReturnStatus.COMPLETED,
            )
        ).scalar()
        return money(str(returned))

    def _lock_return(self, return_id: int, branch_id: str) -> SalesReturn:
        sales_return = self.db.execute(
            select(SalesReturn)
            .where(SalesReturn.id == return_id, SalesReturn.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not sales_return:
            raise NotFoundError(f"Return {return_id} not found")
        return sales_return

    def _check_transition(
        self, sales_return: SalesReturn, to_status: ReturnStatus
    ) -> None:
        if not sales_return.can_transition_to(to_status):
            raise InvalidTransitionError(sales_return.status, to_status)
