"""Business logic services."""

from back_office.services.account_service import AccountService
from back_office.services.audit_service import AuditService
from back_office.services.cash_service import CashService
from back_office.services.cheque_service import ChequeService
from back_office.services.commission_service import CommissionService
from back_office.services.fx_revaluation_service import FxRevaluationService
from back_office.services.inventory_service import InventoryService
from back_office.services.invoice_service import InvoiceService
from back_office.services.ledger_service import LedgerService
from back_office.services.order_service import OrderService
from back_office.services.period_service import PeriodService
from back_office.services.return_service import ReturnService
from back_office.services.sequence_service import SequenceService
from back_office.services.work_order_service import WorkOrderService

__all__ = [
    "AccountService",
    "AuditService",
    "CashService",
    "ChequeService",
    "CommissionService",
    "FxRevaluationService",
    "InventoryService",
    "InvoiceService",
    "LedgerService",
    "OrderService",
    "PeriodService",
    "ReturnService",
    "SequenceService",
    "WorkOrderService",
]
