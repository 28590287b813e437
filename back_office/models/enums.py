"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """Who the account represents."""
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    CUSTOMER_SUPPLIER = "CUSTOMER_SUPPLIER"
    INTERNAL = "INTERNAL"


class LedgerEntryType(str, enum.Enum):
    INVOICE = "INVOICE"
    COLLECTION = "COLLECTION"
    PAYMENT = "PAYMENT"
    REVERSAL = "REVERSAL"
    ADJUSTMENT = "ADJUSTMENT"
    FX_GAIN_LOSS = "FX_GAIN_LOSS"
    COMMISSION = "COMMISSION"
    CHEQUE_COLLECT = "CHEQUE_COLLECT"
    CHEQUE_ENDORSE = "CHEQUE_ENDORSE"
    CHEQUE_BOUNCE = "CHEQUE_BOUNCE"


class DocType(str, enum.Enum):
    """
    Document families numbered by the sequencer.

    Each member knows its printed prefix and the width its
    counter is zero-padded to.
    """
    ORDER = "ORDER"
    INVOICE = "INVOICE"
    WAYBILL = "WAYBILL"
    LEDGER = "LEDGER"
    COMMISSION = "COMMISSION"
    RETURN = "RETURN"
    PAYMENT = "PAYMENT"
    ADJUSTMENT = "ADJUSTMENT"
    WORK_ORDER = "WORK_ORDER"

    @property
    def prefix(self) -> str:
        return DOC_PREFIXES[self]

    @property
    def pad(self) -> int:
        return DOC_PAD_WIDTHS[self]


DOC_PREFIXES = {
    DocType.ORDER: "ORD",
    DocType.INVOICE: "INV",
    DocType.WAYBILL: "WBL",
    DocType.LEDGER: "LED",
    DocType.COMMISSION: "COM",
    DocType.RETURN: "RET",
    DocType.PAYMENT: "PAY",
    DocType.ADJUSTMENT: "ADJ",
    DocType.WORK_ORDER: "WRK",
}

DOC_PAD_WIDTHS = {
    DocType.ORDER: 4,
    DocType.WAYBILL: 4,
    DocType.RETURN: 4,
    DocType.WORK_ORDER: 4,
    DocType.INVOICE: 5,
    DocType.LEDGER: 5,
    DocType.COMMISSION: 5,
    DocType.PAYMENT: 5,
    DocType.ADJUSTMENT: 5,
}


class InventoryTransactionType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    RETURN = "RETURN"
    CONSUMPTION = "CONSUMPTION"
    PRODUCTION = "PRODUCTION"


class ChequeStatus(str, enum.Enum):
    PORTFOLIO = "PORTFOLIO"
    DEPOSITED = "DEPOSITED"
    ENDORSED = "ENDORSED"
    COLLATERAL = "COLLATERAL"
    COLLECTED = "COLLECTED"
    PAID = "PAID"
    BOUNCED = "BOUNCED"
    CANCELLED = "CANCELLED"


class ChequeType(str, enum.Enum):
    CHEQUE = "CHEQUE"
    PROMISSORY_NOTE = "PROMISSORY_NOTE"


class ChequeDirection(str, enum.Enum):
    """RECEIVED from a customer, or ISSUED by us to a supplier."""
    RECEIVED = "RECEIVED"
    ISSUED = "ISSUED"


class OrderStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, enum.Enum):
    FINALIZED = "FINALIZED"
    CANCELLED = "CANCELLED"


class ReturnStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class WorkOrderStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    RELEASED = "RELEASED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class CashMovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    CANCEL = "CANCEL"
    REVERSAL = "REVERSAL"
