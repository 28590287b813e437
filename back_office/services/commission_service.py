"""
Agency commissions on sales orders.

An order sold through an agency credits the agency's account with
a percentage of the order's net total once the order is delivered.
The entry is a COMMISSION ledger entry referenced to the order, so
it can always be found and reversed as a unit: in full when the
order is cancelled, and re-earned on what the customer kept when
goods come back under a return.
"""

import logging

from sqlalchemy.orm import Session

from back_office.models.enums import LedgerEntryType
from back_office.models.ledger_entry import LedgerEntry
from back_office.models.order import Order
from back_office.money import ZERO, add, percentage, subtract
from back_office.schemas.ledger import LedgerEntryCreate
from back_office.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

COMMISSION_REFERENCE = "COMMISSION"
COMMISSION_COST_CENTER = "AGENCY_COMMISSION"


def earns_commission(order: Order) -> bool:
    return order.agency_account_id is not None and order.agency_commission_rate > 0


class CommissionService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def post_commission(
        self, order: Order, branch_id: str, actor: str = "system", base=None
    ) -> LedgerEntry | None:
        """
        Credit the agency with its share of base (the order subtotal
        by default). Returns None when the order earns nothing.
        """
        if not earns_commission(order):
            return None

        base = order.subtotal if base is None else base
        amount = percentage(base, order.agency_commission_rate)
        if amount <= 0:
            return None

        entry = self.ledger.record(LedgerEntryCreate(
            account_id=order.agency_account_id,
            entry_type=LedgerEntryType.COMMISSION,
            credit=amount,
            exchange_rate=order.exchange_rate,
            cost_center=COMMISSION_COST_CENTER,
            description=f"Agency commission for order {order.order_no}",
            reference_id=str(order.id),
            reference_type=COMMISSION_REFERENCE,
        ), branch_id, actor, require_active=False)

        order.commission_amount = add(order.commission_amount or ZERO, amount)
        self.db.flush()
        logger.info(
            "Agency commission %s on order %s (%s%% of %s)",
            amount, order.order_no, order.agency_commission_rate, base,
        )
        return entry

    def reverse_commission(
        self, order: Order, reason: str, branch_id: str, actor: str = "system"
    ) -> list[LedgerEntry]:
        """Reverse every live commission entry of the order."""
        reversals = self.ledger.reverse_by_reference(
            branch_id,
            reason,
            actor,
            reference_type=COMMISSION_REFERENCE,
            reference_id=str(order.id),
        )
        if reversals:
            order.commission_amount = ZERO
            self.db.flush()
            logger.info(
                "Reversed %d commission entries on order %s (%s)",
                len(reversals), order.order_no, reason,
            )
        return reversals

    def rebase_commission(
        self,
        order: Order,
        returned_amount,
        reason: str,
        branch_id: str,
        actor: str = "system",
    ) -> LedgerEntry | None:
        """
        Reverse the commission and post it again on the net total
        less returned_amount. An order that had not earned a
        commission yet is left alone.
        """
        if not self.reverse_commission(order, reason, branch_id, actor):
            return None
        kept = subtract(order.subtotal, returned_amount)
        if kept <= 0:
            return None
        return self.post_commission(order, branch_id, actor, base=kept)
