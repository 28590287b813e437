"""
Order service: the sales order lifecycle.

    DRAFT -> CONFIRMED -> SHIPPED -> DELIVERED
      |          |
      +----------+--> CANCELLED

Confirming reserves stock for every stock-tracked line.
Shipping consumes those lines FIFO, records their cost of
goods and allocates a waybill number. Delivery credits the
selling agency its commission. Cancelling a confirmed order
gives the reservations back and cancels its invoices.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    AlreadyCancelledError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import DocType, LedgerEntryType, OrderStatus
from back_office.models.order import Order, OrderItem
from back_office.money import add, money, multiply, percentage, quantity, rate, total
from back_office.schemas.inventory import StockRequest
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.schemas.order import OrderCreate, OrderFilter, ShipRequest
from back_office.services.account_service import AccountService
from back_office.services.commission_service import CommissionService
from back_office.services.inventory_service import InventoryService
from back_office.services.invoice_service import InvoiceService
from back_office.services.ledger_service import LedgerService
from back_office.services.sequence_service import SequenceService

logger = logging.getLogger(__name__)

ORDER_REFERENCE = "ORDER"
COGS_COST_CENTER = "COGS"


class OrderService:

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountService(db)
        self.commissions = CommissionService(db)
        self.inventory = InventoryService(db)
        self.invoices = InvoiceService(db)
        self.ledger = LedgerService(db)
        self.sequences = SequenceService(db)

    def create_order(
        self, request: OrderCreate, branch_id: str, actor: str = "system"
    ) -> Order:
        """Create a DRAFT order. Totals come from the lines."""
        account = self.accounts.get_account(request.account_id, branch_id)
        if not account.is_active:
            raise StateConflictError(f"Account {account.code} is not active")

        currency = request.currency or account.currency
        if currency != account.currency:
            raise InvalidInputError(
                f"Order currency {currency} does not match "
                f"account currency {account.currency}"
            )

        agency = None
        if request.agency_account_id is not None:
            agency = self.accounts.get_account(request.agency_account_id, branch_id)
            if agency.currency != currency:
                raise InvalidInputError(
                    f"Agency account {agency.code} currency is {agency.currency}, "
                    f"order currency is {currency}"
                )
        elif request.agency_commission_rate > 0:
            raise InvalidInputError("A commission rate needs an agency account")

        items = []
        for line in request.items:
            if bool(line.variant_id) != bool(line.warehouse_id):
                raise InvalidInputError(
                    f"Line '{line.product_name}' needs both variant and warehouse "
                    f"to be stock tracked"
                )
            items.append(OrderItem(
                product_name=line.product_name,
                sku=line.sku,
                variant_id=line.variant_id,
                warehouse_id=line.warehouse_id,
                quantity=quantity(line.quantity),
                unit=line.unit,
                unit_price=line.unit_price,
                line_total=multiply(line.quantity, line.unit_price),
            ))

        subtotal = total(item.line_total for item in items)
        vat_amount = percentage(subtotal, request.vat_rate)

        order = Order(
            order_no=self.sequences.next_number(branch_id, DocType.ORDER),
            branch_id=branch_id,
            account_id=account.id,
            status=OrderStatus.DRAFT,
            currency=currency,
            exchange_rate=rate(request.exchange_rate),
            vat_rate=rate(request.vat_rate),
            subtotal=subtotal,
            vat_amount=vat_amount,
            grand_total=add(subtotal, vat_amount),
            agency_account_id=agency.id if agency else None,
            agency_commission_rate=rate(request.agency_commission_rate),
            notes=request.notes,
            created_by=actor,
            items=items,
        )
        self.db.add(order)
        self.db.flush()

        logger.info(
            "Created order %s for account %s: %s %s",
            order.order_no, account.code, order.grand_total, currency,
        )
        return order

    def confirm_order(
        self, order_id: int, branch_id: str, actor: str = "system"
    ) -> Order:
        """Reserve stock for every stock-tracked line."""
        order = self._lock_order(order_id, branch_id)
        self._check_transition(order, OrderStatus.CONFIRMED)

        for item in order.items:
            if item.is_stock_tracked:
                self.inventory.allocate(self._stock_request(order, item))

        order.status = OrderStatus.CONFIRMED
        self.db.flush()
        logger.info("Confirmed order %s", order.order_no)
        return order

    def ship_order(
        self,
        order_id: int,
        request: ShipRequest,
        branch_id: str,
        actor: str = "system",
    ) -> Order:
        """
        Ship a confirmed order.

        Each stock-tracked line is fulfilled FIFO and keeps its
        own cost of goods. When a cogs_account_id is given, the
        total cost is booked there as one ADJUSTMENT debit.
        """
        order = self._lock_order(order_id, branch_id)
        self._check_transition(order, OrderStatus.SHIPPED)

        if request.cogs_account_id is not None:
            cogs_account = self.accounts.get_account(request.cogs_account_id, branch_id)
            if not cogs_account.is_active:
                raise StateConflictError(f"Account {cogs_account.code} is not active")

        for item in order.items:
            if item.is_stock_tracked:
                result = self.inventory.fulfill_fifo(self._stock_request(order, item))
                item.cost_of_goods = result.total_cost

        order.cost_of_goods = total(item.cost_of_goods or 0 for item in order.items)
        order.waybill_no = self.sequences.next_number(branch_id, DocType.WAYBILL)
        order.status = OrderStatus.SHIPPED
        self.db.flush()

        if request.cogs_account_id is not None and order.cost_of_goods > 0:
            self.ledger.record(LedgerEntryCreate(
                account_id=request.cogs_account_id,
                entry_type=LedgerEntryType.ADJUSTMENT,
                debit=money(order.cost_of_goods),
                cost_center=COGS_COST_CENTER,
                description=f"Cost of goods for order {order.order_no}",
                reference_id=str(order.id),
                reference_type=ORDER_REFERENCE,
            ), branch_id, actor)

        logger.info(
            "Shipped order %s with waybill %s, cost of goods %s",
            order.order_no, order.waybill_no, order.cost_of_goods,
        )
        return order

    def deliver_order(
        self, order_id: int, branch_id: str, actor: str = "system"
    ) -> Order:
        """Mark the order delivered and credit its agency, if any."""
        order = self._lock_order(order_id, branch_id)
        self._check_transition(order, OrderStatus.DELIVERED)
        order.status = OrderStatus.DELIVERED
        self.db.flush()
        self.commissions.post_commission(order, branch_id, actor)
        logger.info("Delivered order %s", order.order_no)
        return order

    def cancel_order(
        self,
        order_id: int,
        reason: str,
        branch_id: str,
        actor: str = "system",
    ) -> Order:
        """
        Cancel an order that has not shipped.

        A confirmed order gives its reservations back. Any live
        invoice is cancelled, which reverses its ledger entries,
        and so is any agency commission.
        """
        order = self._lock_order(order_id, branch_id)
        if order.is_cancelled or order.status == OrderStatus.CANCELLED:
            raise AlreadyCancelledError(f"Order {order.order_no} is already cancelled")
        self._check_transition(order, OrderStatus.CANCELLED)

        if order.status == OrderStatus.CONFIRMED:
            for item in order.items:
                if item.is_stock_tracked:
                    self.inventory.release(self._stock_request(order, item))

        for invoice in self.invoices.live_invoices_for_order(order.id):
            self.invoices.cancel_invoice(
                invoice.id, f"Order {order.order_no} cancelled", branch_id, actor
            )
        self.commissions.reverse_commission(
            order, f"Order {order.order_no} cancelled", branch_id, actor
        )

        order.status = OrderStatus.CANCELLED
        order.is_cancelled = True
        order.notes = f"{order.notes}\n{reason}" if order.notes else reason
        self.db.flush()
        logger.info("Cancelled order %s (%s)", order.order_no, reason)
        return order

    def get_order(self, order_id: int, branch_id: str) -> Order:
        order = self.db.get(Order, order_id)
        if not order or order.branch_id != branch_id:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(
        self, branch_id: str, filters: OrderFilter | None = None
    ) -> list[Order]:
        filters = filters or OrderFilter()
        query = select(Order).where(Order.branch_id == branch_id)
        if filters.status is not None:
            query = query.where(Order.status == filters.status)
        if filters.account_id is not None:
            query = query.where(Order.account_id == filters.account_id)
        if not filters.include_cancelled:
            query = query.where(Order.is_cancelled.is_(False))

        orders = self.db.execute(
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(orders)

    def _lock_order(self, order_id: int, branch_id: str) -> Order:
        order = self.db.execute(
            select(Order)
            .where(Order.id == order_id, Order.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _check_transition(self, order: Order, to_status: OrderStatus) -> None:
        if not order.can_transition_to(to_status):
            raise InvalidTransitionError(order.status, to_status)

    def _stock_request(self, order: Order, item: OrderItem) -> StockRequest:
        return StockRequest(
            variant_id=item.variant_id,
            warehouse_id=item.warehouse_id,
            quantity=quantity(item.quantity),
            reference_id=str(order.id),
            reference_type=ORDER_REFERENCE,
        )
