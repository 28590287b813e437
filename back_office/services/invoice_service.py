"""
Invoice service.

Raising an invoice debits the order's account with the grand
total. Cancelling reverses those entries, so the account
balance returns to exactly what it was before the invoice.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.exceptions import (
    AlreadyCancelledError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from back_office.models.enums import DocType, InvoiceStatus, LedgerEntryType
from back_office.models.invoice import Invoice
from back_office.models.order import Order
from back_office.money import add, multiply, percentage, total
from back_office.schemas.invoice import InvoiceCreate, InvoiceFilter
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.services.ledger_service import LedgerService
from back_office.services.sequence_service import SequenceService

logger = logging.getLogger(__name__)

SALES_COST_CENTER = "SALES"


class InvoiceService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)
        self.sequences = SequenceService(db)

    def create_from_order(
        self, request: InvoiceCreate, branch_id: str, actor: str = "system"
    ) -> Invoice:
        """
        Invoice an order and post the receivable.

        Totals are recomputed from the order lines rather than
        trusted from the order header.
        """
        order = self.db.execute(
            select(Order)
            .where(Order.id == request.order_id, Order.branch_id == branch_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not order:
            raise NotFoundError(f"Order {request.order_id} not found")
        if order.is_cancelled:
            raise StateConflictError(f"Order {order.order_no} is cancelled")

        existing = self.db.execute(
            select(Invoice).where(
                Invoice.order_id == order.id,
                Invoice.is_cancelled.is_(False),
            )
        ).scalar_one_or_none()
        if existing:
            raise StateConflictError(
                f"Order {order.order_no} is already invoiced ({existing.invoice_no})"
            )

        subtotal = total(multiply(i.quantity, i.unit_price) for i in order.items)
        tax_total = percentage(subtotal, order.vat_rate)
        grand_total = add(subtotal, tax_total)
        if grand_total <= 0:
            raise InvalidInputError("Cannot invoice an order with a zero total")

        entry_request = LedgerEntryCreate(
            account_id=order.account_id,
            entry_type=LedgerEntryType.INVOICE,
            debit=grand_total,
            currency=order.currency,
            exchange_rate=order.exchange_rate,
            cost_center=SALES_COST_CENTER,
            description=f"Invoice for order {order.order_no}",
            reference_id=str(order.id),
            reference_type="ORDER",
        )
        account = self.ledger.validate(entry_request, branch_id)

        invoice_date = date.today()
        invoice = Invoice(
            invoice_no=self.sequences.next_number(branch_id, DocType.INVOICE),
            order_id=order.id,
            branch_id=branch_id,
            invoice_date=invoice_date,
            due_date=request.due_date or (
                invoice_date + timedelta(days=account.payment_term_days)
            ),
            subtotal=subtotal,
            tax_total=tax_total,
            grand_total=grand_total,
            currency=order.currency,
            status=InvoiceStatus.FINALIZED,
            notes=request.notes,
        )
        self.db.add(invoice)
        self.db.flush()

        entry_request.description = f"Invoice {invoice.invoice_no}"
        entry_request.invoice_id = invoice.id
        self.ledger.record(entry_request, branch_id, actor)

        logger.info(
            "Raised invoice %s for order %s: %s %s",
            invoice.invoice_no, order.order_no, grand_total, invoice.currency,
        )
        return invoice

    def cancel_invoice(
        self,
        invoice_id: int,
        reason: str,
        branch_id: str,
        actor: str = "system",
    ) -> Invoice:
        """Cancel an invoice by reversing every live entry it posted."""
        invoice = self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        if invoice.is_cancelled:
            raise AlreadyCancelledError(
                f"Invoice {invoice.invoice_no} is already cancelled"
            )

        self.ledger.reverse_by_reference(
            branch_id, f"Invoice {invoice.invoice_no} cancelled: {reason}",
            actor, invoice_id=invoice.id,
        )
        invoice.status = InvoiceStatus.CANCELLED
        invoice.is_cancelled = True
        self.db.flush()

        logger.info("Cancelled invoice %s (%s)", invoice.invoice_no, reason)
        return invoice

    def get_invoice(self, invoice_id: int, branch_id: str) -> Invoice:
        invoice = self.db.get(Invoice, invoice_id)
        if not invoice or invoice.branch_id != branch_id:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def list_invoices(
        self, branch_id: str, filters: InvoiceFilter | None = None
    ) -> list[Invoice]:
        filters = filters or InvoiceFilter()
        query = select(Invoice).where(Invoice.branch_id == branch_id)
        if filters.status is not None:
            query = query.where(Invoice.status == filters.status)
        if filters.order_id is not None:
            query = query.where(Invoice.order_id == filters.order_id)

        invoices = self.db.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(invoices)

    def live_invoices_for_order(self, order_id: int) -> list[Invoice]:
        invoices = self.db.execute(
            select(Invoice).where(
                Invoice.order_id == order_id,
                Invoice.is_cancelled.is_(False),
            )
        ).scalars().all()
        return list(invoices)
