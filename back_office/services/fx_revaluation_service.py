"""
FX revaluation of open foreign-currency invoices.

An invoice booked at one rate is worth a different amount in the
base currency once the rate moves. Revaluation measures the
difference per invoice and posts it as an FX_GAIN_LOSS entry on
the customer's account: a debit when the receivable is worth
more, a credit when it is worth less.

Entries carry the invoice id, so earlier runs are netted off and
running twice at the same rates posts nothing the second time.
Cancelling the invoice reverses its revaluation entries with it.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from back_office.config import get_settings
from back_office.models.enums import InvoiceStatus, LedgerEntryType
from back_office.models.invoice import Invoice
from back_office.models.ledger_entry import LedgerEntry
from back_office.models.order import Order
from back_office.money import ZERO, is_zero, money, multiply, rate, subtract, total
from back_office.schemas.ledger import (
    FxRevaluationItem,
    FxRevaluationRequest,
    FxRevaluationResult,
    FxRevaluationSummary,
    LedgerEntryCreate,
    LedgerEntryResponse,
)
from back_office.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

FX_COST_CENTER = "FX_REVALUATION"
INVOICE_REFERENCE = "INVOICE"


class FxRevaluationService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def calculate_fx_revaluation(
        self, rates: dict[str, Decimal], branch_id: str
    ) -> FxRevaluationSummary:
        """
        Measure every live invoice in a currency other than the base.

        Invoices in a currency missing from rates are skipped. The
        booking rate is the exchange rate of the order the invoice
        was raised from.
        """
        base_currency = get_settings().DEFAULT_CURRENCY
        rows = self.db.execute(
            select(Invoice, Order)
            .join(Order, Invoice.order_id == Order.id)
            .where(
                Invoice.branch_id == branch_id,
                Invoice.is_cancelled.is_(False),
                Invoice.status == InvoiceStatus.FINALIZED,
                Invoice.currency != base_currency,
            )
            .order_by(Invoice.id)
        ).all()

        items = []
        for invoice, order in rows:
            if invoice.currency not in rates:
                continue
            current_rate = rate(rates[invoice.currency])
            booking_rate = rate(order.exchange_rate)
            original_local = multiply(invoice.grand_total, booking_rate)
            current_local = multiply(invoice.grand_total, current_rate)
            posted = self._revalued_so_far(invoice.id)
            difference = subtract(subtract(current_local, original_local), posted)
            items.append(FxRevaluationItem(
                invoice_id=invoice.id,
                invoice_no=invoice.invoice_no,
                account_id=order.account_id,
                currency=invoice.currency,
                original_amount=money(invoice.grand_total),
                booking_rate=booking_rate,
                current_rate=current_rate,
                original_value_local=original_local,
                current_value_local=current_local,
                previously_revalued=posted,
                unrealized_gain_loss=difference,
                is_gain=difference >= 0,
            ))

        total_gain = total(i.unrealized_gain_loss for i in items if i.unrealized_gain_loss > 0)
        total_loss = total(-i.unrealized_gain_loss for i in items if i.unrealized_gain_loss < 0)
        return FxRevaluationSummary(
            items=items,
            total_gain=total_gain,
            total_loss=total_loss,
            net_gain_loss=subtract(total_gain, total_loss),
        )

    def post_fx_revaluation(
        self, request: FxRevaluationRequest, branch_id: str, actor: str = "system"
    ) -> FxRevaluationResult:
        """
        Post one FX_GAIN_LOSS entry per invoice whose value moved.

        The calculation is redone here from the rates rather than
        taken from the caller. Every entry goes into the caller's
        transaction, so a locked period or a bad account rejects
        the whole run.
        """
        summary = self.calculate_fx_revaluation(request.rates, branch_id)

        entries = []
        for item in summary.items:
            difference = item.unrealized_gain_loss
            if is_zero(difference):
                continue
            entry = self.ledger.record(LedgerEntryCreate(
                account_id=item.account_id,
                entry_type=LedgerEntryType.FX_GAIN_LOSS,
                debit=difference if difference > 0 else ZERO,
                credit=-difference if difference < 0 else ZERO,
                currency=item.currency,
                exchange_rate=item.current_rate,
                cost_center=FX_COST_CENTER,
                description=(
                    f"FX revaluation {item.invoice_no} "
                    f"({item.booking_rate} -> {item.current_rate})"
                ),
                entry_date=request.entry_date,
                reference_id=str(item.invoice_id),
                reference_type=INVOICE_REFERENCE,
                invoice_id=item.invoice_id,
            ), branch_id, actor, require_active=False)
            entries.append(entry)

        logger.info(
            "FX revaluation posted %d entries, net %s",
            len(entries), summary.net_gain_loss,
        )
        return FxRevaluationResult(
            summary=summary,
            entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        )

    def _revalued_so_far(self, invoice_id: int) -> Decimal:
        posted = self.db.execute(
            select(func.coalesce(func.sum(LedgerEntry.debit - LedgerEntry.credit), 0))
            .where(
                LedgerEntry.invoice_id == invoice_id,
                LedgerEntry.entry_type == LedgerEntryType.FX_GAIN_LOSS,
                LedgerEntry.cost_center == FX_COST_CENTER,
                LedgerEntry.is_cancelled.is_(False),
            )
        ).scalar()
        return money(str(posted))
