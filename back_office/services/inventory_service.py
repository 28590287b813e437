"""
Inventory service: lots, stock aggregates and FIFO costing.

Stock is tracked per (variant, warehouse) on two levels:
- lots: each receipt with its own unit cost, consumed oldest first
- stock: the on-hand and reserved totals used for availability

Every quantity change writes an InventoryTransaction, so the
movement trail explains every number in both tables.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, select, update, func
from sqlalchemy.orm import Session

from back_office.exceptions import (
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.base import upsert
from back_office.models.enums import InventoryTransactionType
from back_office.models.inventory import (
    InventoryLot,
    InventoryTransaction,
    Stock,
)
from back_office.money import ZERO, money, multiply, quantity, total, unit_cost
from back_office.schemas.inventory import (
    AllocationResult,
    FulfillmentResult,
    LotConsumption,
    LotReceive,
    StockCheck,
    StockRequest,
)

logger = logging.getLogger(__name__)


def generate_batch_no(now: datetime | None = None) -> str:
    """LOT-YYYYMM-XXXXXX, with a random hex suffix."""
    now = now or datetime.utcnow()
    return f"LOT-{now:%Y%m}-{uuid.uuid4().hex[:6].upper()}"


class InventoryService:

    def __init__(self, db: Session):
        self.db = db

    def receive(
        self,
        request: LotReceive,
        branch_id: str,
        transaction_type: InventoryTransactionType = InventoryTransactionType.PURCHASE,
    ) -> InventoryLot:
        """
        Receive goods as a new lot.

        The stock row is created or incremented with a single
        upsert, so concurrent receipts of the same variant add up.
        """
        qty = quantity(request.quantity)
        cost = unit_cost(request.unit_cost)
        if qty <= 0:
            raise InvalidInputError("Received quantity must be positive")
        if cost < 0:
            raise InvalidInputError("Unit cost must not be negative")

        now = datetime.utcnow()
        lot = InventoryLot(
            product_id=request.product_id,
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            branch_id=branch_id,
            batch_no=request.batch_no or generate_batch_no(now),
            quantity=qty,
            remaining_quantity=qty,
            unit_cost=cost,
            received_at=request.received_at or now,
        )
        self.db.add(lot)
        self.db.flush()

        stmt = upsert(self.db, Stock).values(
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            quantity=qty,
            reserved_quantity=ZERO,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["variant_id", "warehouse_id"],
            set_={"quantity": Stock.quantity + qty, "updated_at": now},
        )
        self.db.execute(stmt)

        self.db.add(InventoryTransaction(
            transaction_type=transaction_type,
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            lot_id=lot.id,
            quantity=qty,
            unit_cost=cost,
            total_cost=multiply(qty, cost),
            reference_id=request.reference_id,
            reference_type=request.reference_type,
            description=request.description,
        ))
        self.db.flush()

        logger.info(
            "Received lot %s: %s of %s @ %s into %s",
            lot.batch_no, qty, request.variant_id, cost, request.warehouse_id,
        )
        return lot

    def allocate(self, request: StockRequest) -> AllocationResult:
        """
        Reserve quantity for an order without touching any lot.

        The availability check and the increment are one
        conditional UPDATE, so two concurrent allocations can
        never both take the last units.
        """
        qty = self._positive_quantity(request.quantity)

        result = self.db.execute(
            update(Stock)
            .where(
                Stock.variant_id == request.variant_id,
                Stock.warehouse_id == request.warehouse_id,
                Stock.quantity - Stock.reserved_quantity >= qty,
            )
            .values(
                reserved_quantity=Stock.reserved_quantity + qty,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            stock = self._find_stock(request.variant_id, request.warehouse_id)
            if stock is None:
                raise NotFoundError(
                    f"No stock for variant {request.variant_id} "
                    f"in warehouse {request.warehouse_id}"
                )
            available = quantity(stock.quantity - stock.reserved_quantity)
            raise InsufficientStockError(
                f"Insufficient stock: available={available}, requested={qty}",
                unmet_quantity=qty - available,
            )

        self._write_movement(InventoryTransactionType.RESERVE, request, qty)
        logger.info(
            "Reserved %s of %s in %s", qty, request.variant_id, request.warehouse_id
        )
        return AllocationResult(
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            reserved=qty,
        )

    def release(self, request: StockRequest) -> AllocationResult:
        """Give back a reservation, e.g. when a confirmed order is cancelled."""
        qty = self._positive_quantity(request.quantity)

        result = self.db.execute(
            update(Stock)
            .where(
                Stock.variant_id == request.variant_id,
                Stock.warehouse_id == request.warehouse_id,
                Stock.reserved_quantity >= qty,
            )
            .values(
                reserved_quantity=Stock.reserved_quantity - qty,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            stock = self._find_stock(request.variant_id, request.warehouse_id)
            if stock is None:
                raise NotFoundError(
                    f"No stock for variant {request.variant_id} "
                    f"in warehouse {request.warehouse_id}"
                )
            raise StateConflictError(
                f"Cannot release {qty}: only {quantity(stock.reserved_quantity)} reserved"
            )

        self._write_movement(InventoryTransactionType.RELEASE, request, qty)
        logger.info(
            "Released %s of %s in %s", qty, request.variant_id, request.warehouse_id
        )
        return AllocationResult(
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            reserved=qty,
        )

    def fulfill_fifo(
        self,
        request: StockRequest,
        transaction_type: InventoryTransactionType = InventoryTransactionType.SALE,
        consume_reservation: bool = True,
    ) -> FulfillmentResult:
        """
        Consume quantity from lots, oldest first, and cost it.

        Lots are locked and ordered by received_at, then id. The
        whole consumption plan is built before anything is
        written: if the lots cannot cover the request, nothing
        changes and InsufficientStockError reports the shortfall.

        Every decrement is a guarded UPDATE. A request planned from
        quantities that another request has since consumed fails
        with InsufficientStockError instead of overdrawing a lot.

        Stock quantity drops by the fulfilled amount. By default the
        reservation is consumed with it but never goes below zero.
        With consume_reservation=False only unreserved stock can be
        drawn and the reservation is left alone, so internal
        consumption never eats into stock held for orders.
        """
        qty = self._positive_quantity(request.quantity)

        lots = self.db.execute(
            select(InventoryLot)
            .where(
                InventoryLot.variant_id == request.variant_id,
                InventoryLot.warehouse_id == request.warehouse_id,
                InventoryLot.remaining_quantity > 0,
            )
            .order_by(InventoryLot.received_at, InventoryLot.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()

        plan = []
        outstanding = qty
        for lot in lots:
            if outstanding <= 0:
                break
            take = min(quantity(lot.remaining_quantity), outstanding)
            if take <= 0:
                continue
            plan.append((lot, take))
            outstanding -= take

        if outstanding > 0:
            raise InsufficientStockError(
                f"Insufficient lot quantity for {request.variant_id}: "
                f"requested={qty}, short by {outstanding}",
                unmet_quantity=outstanding,
            )

        self._draw_stock(request, qty, consume_reservation)

        consumed = []
        for lot, take in plan:
            self._draw_lot(lot, take)
            line_cost = multiply(take, lot.unit_cost)
            self.db.add(InventoryTransaction(
                transaction_type=transaction_type,
                variant_id=request.variant_id,
                warehouse_id=request.warehouse_id,
                lot_id=lot.id,
                quantity=take,
                unit_cost=lot.unit_cost,
                total_cost=line_cost,
                reference_id=request.reference_id,
                reference_type=request.reference_type,
                description=f"FIFO issue from lot {lot.batch_no}",
            ))
            consumed.append(LotConsumption(
                lot_id=lot.id,
                batch_no=lot.batch_no,
                quantity=take,
                unit_cost=unit_cost(lot.unit_cost),
                line_cost=line_cost,
            ))
        self.db.flush()

        total_cost = total(c.line_cost for c in consumed)
        logger.info(
            "Fulfilled %s of %s from %d lot(s), cost %s",
            qty, request.variant_id, len(consumed), total_cost,
        )
        return FulfillmentResult(
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            quantity=qty,
            total_cost=total_cost,
            lots_consumed=consumed,
        )

    def get_stock(self, variant_id: str, warehouse_id: str) -> Stock:
        stock = self._find_stock(variant_id, warehouse_id)
        if stock is None:
            raise NotFoundError(
                f"No stock for variant {variant_id} in warehouse {warehouse_id}"
            )
        return stock

    def list_lots(
        self,
        variant_id: str,
        warehouse_id: str | None = None,
        include_empty: bool = False,
    ) -> list[InventoryLot]:
        """Lots in FIFO order."""
        query = select(InventoryLot).where(InventoryLot.variant_id == variant_id)
        if warehouse_id is not None:
            query = query.where(InventoryLot.warehouse_id == warehouse_id)
        if not include_empty:
            query = query.where(InventoryLot.remaining_quantity > 0)

        lots = self.db.execute(
            query.order_by(InventoryLot.received_at, InventoryLot.id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return list(lots)

    def list_transactions(
        self, variant_id: str, limit: int = 50
    ) -> list[InventoryTransaction]:
        """Movement trail for a variant, newest first."""
        transactions = self.db.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.variant_id == variant_id)
            .order_by(
                InventoryTransaction.created_at.desc(),
                InventoryTransaction.id.desc(),
            )
            .limit(limit)
        ).scalars().all()
        return list(transactions)

    def verify_stock(self, variant_id: str, warehouse_id: str) -> StockCheck:
        """Check the stock row against the sum of its lots' remaining quantity."""
        stock = self.get_stock(variant_id, warehouse_id)
        remaining = self.db.execute(
            select(func.coalesce(func.sum(InventoryLot.remaining_quantity), 0))
            .where(
                InventoryLot.variant_id == variant_id,
                InventoryLot.warehouse_id == warehouse_id,
            )
        ).scalar()

        stock_quantity = quantity(str(stock.quantity))
        reserved = quantity(str(stock.reserved_quantity))
        lot_remaining = quantity(str(remaining))
        return StockCheck(
            variant_id=variant_id,
            warehouse_id=warehouse_id,
            stock_quantity=stock_quantity,
            lot_remaining=lot_remaining,
            reserved_quantity=reserved,
            matches=stock_quantity == lot_remaining and reserved <= stock_quantity,
        )

    def _positive_quantity(self, value) -> Decimal:
        qty = quantity(value)
        if qty <= 0:
            raise InvalidInputError("Quantity must be positive")
        return qty

    def _draw_stock(
        self, request: StockRequest, qty: Decimal, consume_reservation: bool
    ) -> None:
        values = {
            "quantity": Stock.quantity - qty,
            "updated_at": datetime.utcnow(),
        }
        if consume_reservation:
            guard = Stock.quantity >= qty
            values["reserved_quantity"] = case(
                (Stock.reserved_quantity > qty, Stock.reserved_quantity - qty),
                else_=ZERO,
            )
        else:
            guard = Stock.quantity - Stock.reserved_quantity >= qty

        result = self.db.execute(
            update(Stock)
            .where(
                Stock.variant_id == request.variant_id,
                Stock.warehouse_id == request.warehouse_id,
                guard,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return

        stock = self._find_stock(request.variant_id, request.warehouse_id)
        if stock is None:
            raise NotFoundError(
                f"No stock for variant {request.variant_id} "
                f"in warehouse {request.warehouse_id}"
            )
        held = ZERO if consume_reservation else stock.reserved_quantity
        available = quantity(stock.quantity - held)
        raise InsufficientStockError(
            f"Insufficient stock: available={available}, requested={qty}",
            unmet_quantity=qty - available,
        )

    def _draw_lot(self, lot: InventoryLot, take: Decimal) -> None:
        result = self.db.execute(
            update(InventoryLot)
            .where(
                InventoryLot.id == lot.id,
                InventoryLot.remaining_quantity >= take,
            )
            .values(remaining_quantity=InventoryLot.remaining_quantity - take)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientStockError(
                f"Lot {lot.batch_no} no longer holds {take}",
                unmet_quantity=take,
            )
        self.db.expire(lot, ["remaining_quantity"])

    def _find_stock(self, variant_id: str, warehouse_id: str) -> Stock | None:
        return self.db.execute(
            select(Stock)
            .where(
                Stock.variant_id == variant_id,
                Stock.warehouse_id == warehouse_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _write_movement(
        self,
        transaction_type: InventoryTransactionType,
        request: StockRequest,
        qty: Decimal,
    ) -> None:
        source = request.reference_type or "manual"
        if request.reference_id:
            source = f"{source} {request.reference_id}"
        self.db.add(InventoryTransaction(
            transaction_type=transaction_type,
            variant_id=request.variant_id,
            warehouse_id=request.warehouse_id,
            quantity=qty,
            unit_cost=ZERO,
            total_cost=money(ZERO),
            reference_id=request.reference_id,
            reference_type=request.reference_type,
            description=f"{transaction_type.value.title()} for {source}",
        ))
        self.db.flush()
