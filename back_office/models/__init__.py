"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from back_office.models.base import Base
from back_office.models.enums import (
    AccountType,
    LedgerEntryType,
    DocType,
    InventoryTransactionType,
    ChequeStatus,
    ChequeType,
    ChequeDirection,
    OrderStatus,
    InvoiceStatus,
    ReturnStatus,
    WorkOrderStatus,
    CashMovementType,
    AuditAction,
)
from back_office.models.audit_log import AuditLog
from back_office.models.account import Account
from back_office.models.document_sequence import DocumentSequence
from back_office.models.period_lock import PeriodLock
from back_office.models.order import Order, OrderItem
from back_office.models.invoice import Invoice
from back_office.models.ledger_entry import LedgerEntry
from back_office.models.inventory import (
    InventoryLot,
    Stock,
    InventoryTransaction,
)
from back_office.models.cheque import Cheque, ChequeHistory
from back_office.models.sales_return import SalesReturn, SalesReturnItem
from back_office.models.cash_register import CashRegister, CashMovement
from back_office.models.work_order import (
    WorkOrder,
    WorkOrderMaterial,
    WorkOrderConsumption,
)

__all__ = [
    "Base",
    "AccountType",
    "LedgerEntryType",
    "DocType",
    "InventoryTransactionType",
    "ChequeStatus",
    "ChequeType",
    "ChequeDirection",
    "OrderStatus",
    "InvoiceStatus",
    "ReturnStatus",
    "WorkOrderStatus",
    "CashMovementType",
    "AuditAction",
    "AuditLog",
    "Account",
    "DocumentSequence",
    "PeriodLock",
    "Order",
    "OrderItem",
    "Invoice",
    "LedgerEntry",
    "InventoryLot",
    "Stock",
    "InventoryTransaction",
    "Cheque",
    "ChequeHistory",
    "SalesReturn",
    "SalesReturnItem",
    "CashRegister",
    "CashMovement",
    "WorkOrder",
    "WorkOrderMaterial",
    "WorkOrderConsumption",
]
