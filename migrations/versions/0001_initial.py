"""Initial schema.

Revision ID: 0001_initial
Revises:
Create Date: 2025-01-06
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

CHEQUE_STATUSES = (
    "PORTFOLIO", "DEPOSITED", "ENDORSED", "COLLATERAL",
    "COLLECTED", "PAID", "BOUNCED", "CANCELLED",
)


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column(
            "account_type",
            sa.Enum(
                "CUSTOMER", "SUPPLIER", "CUSTOMER_SUPPLIER", "INTERNAL",
                name="account_type_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("current_balance", sa.Numeric(19, 2), nullable=False),
        sa.Column("payment_term_days", sa.Integer(), nullable=False),
        sa.Column(
            "parent_account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("branch_id", "code", name="uq_accounts_branch_code"),
    )
    op.create_index("ix_accounts_branch_id", "accounts", ["branch_id"])
    op.create_index("ix_accounts_parent_account_id", "accounts", ["parent_account_id"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("doc_type", sa.String(length=40), nullable=False),
        sa.Column("prefix", sa.String(length=10), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("current_value", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "branch_id", "doc_type", "year",
            name="uq_document_sequences_branch_type_year",
        ),
    )

    op.create_table(
        "period_locks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("closing_date", sa.Date(), nullable=False),
        sa.Column("locked_by", sa.String(length=100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_period_locks_closing_date", "period_locks", ["closing_date"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_no", sa.String(length=30), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column(
            "account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT", "CONFIRMED", "SHIPPED", "DELIVERED", "CANCELLED",
                name="order_status_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(19, 4), nullable=False),
        sa.Column("vat_rate", sa.Numeric(7, 4), nullable=False),
        sa.Column("subtotal", sa.Numeric(19, 2), nullable=False),
        sa.Column("vat_amount", sa.Numeric(19, 2), nullable=False),
        sa.Column("grand_total", sa.Numeric(19, 2), nullable=False),
        sa.Column("cost_of_goods", sa.Numeric(19, 2), nullable=False),
        sa.Column("waybill_no", sa.String(length=30), nullable=True),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("order_no", name="uq_orders_order_no"),
    )
    op.create_index("ix_orders_branch_id", "orders", ["branch_id"])
    op.create_index("ix_orders_account_id", "orders", ["account_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False
        ),
        sa.Column("product_name", sa.String(length=150), nullable=False),
        sa.Column("sku", sa.String(length=60), nullable=True),
        sa.Column("variant_id", sa.String(length=36), nullable=True),
        sa.Column("warehouse_id", sa.String(length=36), nullable=True),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("unit_price", sa.Numeric(19, 4), nullable=False),
        sa.Column("line_total", sa.Numeric(19, 2), nullable=False),
        sa.Column("cost_of_goods", sa.Numeric(19, 2), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_no", sa.String(length=30), nullable=False),
        sa.Column(
            "order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False
        ),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("subtotal", sa.Numeric(19, 2), nullable=False),
        sa.Column("tax_total", sa.Numeric(19, 2), nullable=False),
        sa.Column("grand_total", sa.Numeric(19, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "FINALIZED", "CANCELLED",
                name="invoice_status_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("invoice_no", name="uq_invoices_invoice_no"),
    )
    op.create_index("ix_invoices_order_id", "invoices", ["order_id"])
    op.create_index("ix_invoices_branch_id", "invoices", ["branch_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_no", sa.String(length=30), nullable=False, unique=True),
        sa.Column(
            "account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column(
            "entry_type",
            sa.Enum(
                "INVOICE", "COLLECTION", "PAYMENT", "REVERSAL", "ADJUSTMENT",
                "FX_GAIN_LOSS", "CHEQUE_COLLECT", "CHEQUE_ENDORSE", "CHEQUE_BOUNCE",
                name="ledger_entry_type_enum",
            ),
            nullable=False,
        ),
        sa.Column("debit", sa.Numeric(19, 2), nullable=False),
        sa.Column("credit", sa.Numeric(19, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(19, 4), nullable=False),
        sa.Column("cost_center", sa.String(length=50), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("reference_id", sa.String(length=36), nullable=True),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column(
            "invoice_id", sa.Integer(), sa.ForeignKey("invoices.id"), nullable=True
        ),
        sa.Column(
            "reversal_of_id", sa.Integer(),
            sa.ForeignKey("ledger_entries.id"), nullable=True,
        ),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_ledger_entries_account_id", "ledger_entries", ["account_id"])
    op.create_index("ix_ledger_entries_branch_id", "ledger_entries", ["branch_id"])
    op.create_index("ix_ledger_entries_reference_id", "ledger_entries", ["reference_id"])
    op.create_index("ix_ledger_entries_invoice_id", "ledger_entries", ["invoice_id"])

    op.create_table(
        "inventory_lots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(length=36), nullable=True),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("warehouse_id", sa.String(length=36), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("batch_no", sa.String(length=40), nullable=False),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("remaining_quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit_cost", sa.Numeric(19, 4), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inventory_lots_branch_id", "inventory_lots", ["branch_id"])
    op.create_index(
        "ix_inventory_lots_fifo", "inventory_lots",
        ["variant_id", "warehouse_id", "received_at", "id"],
    )

    op.create_table(
        "stock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("warehouse_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("reserved_quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "variant_id", "warehouse_id", name="uq_stock_variant_warehouse"
        ),
    )

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "transaction_type",
            sa.Enum(
                "PURCHASE", "SALE", "RESERVE", "RELEASE", "RETURN",
                name="inventory_transaction_type_enum",
            ),
            nullable=False,
        ),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("warehouse_id", sa.String(length=36), nullable=False),
        sa.Column(
            "lot_id", sa.Integer(), sa.ForeignKey("inventory_lots.id"), nullable=True
        ),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit_cost", sa.Numeric(19, 4), nullable=False),
        sa.Column("total_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("reference_id", sa.String(length=36), nullable=True),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_inventory_transactions_variant_id", "inventory_transactions", ["variant_id"]
    )

    op.create_table(
        "cheques",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cheque_no", sa.String(length=50), nullable=False),
        sa.Column(
            "cheque_type",
            sa.Enum("CHEQUE", "PROMISSORY_NOTE", name="cheque_type_enum"),
            nullable=False,
        ),
        sa.Column(
            "direction",
            sa.Enum("RECEIVED", "ISSUED", name="cheque_direction_enum"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*CHEQUE_STATUSES, name="cheque_status_enum", create_constraint=True),
            nullable=False,
        ),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column(
            "drawer_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column(
            "payee_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True
        ),
        sa.Column("endorsed_to", sa.String(length=150), nullable=True),
        sa.Column("bank_name", sa.String(length=100), nullable=True),
        sa.Column("bank_branch", sa.String(length=100), nullable=True),
        sa.Column("amount", sa.Numeric(19, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("collected_at", sa.DateTime(), nullable=True),
        sa.Column("bounced_at", sa.DateTime(), nullable=True),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("branch_id", "cheque_no", name="uq_cheques_branch_no"),
    )
    op.create_index("ix_cheques_branch_id", "cheques", ["branch_id"])
    op.create_index("ix_cheques_drawer_id", "cheques", ["drawer_id"])
    op.create_index("ix_cheques_due_date", "cheques", ["due_date"])

    # The status type already exists on PostgreSQL once cheques is created
    history_status = postgresql.ENUM(
        *CHEQUE_STATUSES, name="cheque_status_enum", create_type=False
    )
    op.create_table(
        "cheque_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cheque_id", sa.Integer(), sa.ForeignKey("cheques.id"), nullable=False
        ),
        sa.Column("from_status", history_status, nullable=False),
        sa.Column("to_status", history_status, nullable=False),
        sa.Column("performed_by", sa.String(length=100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cheque_history_cheque_id", "cheque_history", ["cheque_id"])

    op.create_table(
        "sales_returns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("return_no", sa.String(length=30), nullable=False),
        sa.Column(
            "order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False
        ),
        sa.Column(
            "account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("total_amount", sa.Numeric(19, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING", "APPROVED", "COMPLETED", "CANCELLED",
                name="return_status_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("return_no", name="uq_sales_returns_return_no"),
    )
    op.create_index("ix_sales_returns_order_id", "sales_returns", ["order_id"])
    op.create_index("ix_sales_returns_account_id", "sales_returns", ["account_id"])
    op.create_index("ix_sales_returns_branch_id", "sales_returns", ["branch_id"])

    op.create_table(
        "sales_return_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "return_id", sa.Integer(),
            sa.ForeignKey("sales_returns.id"), nullable=False,
        ),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("warehouse_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit_price", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit_cost", sa.Numeric(19, 4), nullable=False),
        sa.Column("line_total", sa.Numeric(19, 2), nullable=False),
    )
    op.create_index(
        "ix_sales_return_items_return_id", "sales_return_items", ["return_id"]
    )

    op.create_table(
        "cash_registers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False),
        sa.Column("opening_balance", sa.Numeric(19, 2), nullable=False),
        sa.Column("current_balance", sa.Numeric(19, 2), nullable=False),
        sa.Column("last_opened_at", sa.DateTime(), nullable=True),
        sa.Column("last_closed_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "branch_id", "code", name="uq_cash_registers_branch_code"
        ),
    )
    op.create_index("ix_cash_registers_branch_id", "cash_registers", ["branch_id"])

    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "register_id", sa.Integer(),
            sa.ForeignKey("cash_registers.id"), nullable=False,
        ),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column(
            "movement_type",
            sa.Enum("IN", "OUT", name="cash_movement_type_enum"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(19, 2), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("reference_id", sa.String(length=36), nullable=True),
        sa.Column("idempotency_key", sa.String(length=100), nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cash_movements_register_id", "cash_movements", ["register_id"])
    op.create_index(
        "ix_cash_movements_idempotency_key", "cash_movements",
        ["idempotency_key"], unique=True,
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "CREATE", "UPDATE", "STATUS_CHANGE", "CANCEL", "REVERSAL",
                name="audit_action_enum",
            ),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=True),
        sa.Column("previous_data", sa.JSON(), nullable=True),
        sa.Column("new_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_log_branch_id", "audit_log", ["branch_id"])


def downgrade() -> None:
    for table in (
        "audit_log",
        "cash_movements",
        "cash_registers",
        "sales_return_items",
        "sales_returns",
        "cheque_history",
        "cheques",
        "inventory_transactions",
        "stock",
        "inventory_lots",
        "ledger_entries",
        "invoices",
        "order_items",
        "orders",
        "period_locks",
        "document_sequences",
        "accounts",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "audit_action_enum",
            "cash_movement_type_enum",
            "return_status_enum",
            "cheque_status_enum",
            "cheque_direction_enum",
            "cheque_type_enum",
            "inventory_transaction_type_enum",
            "ledger_entry_type_enum",
            "invoice_status_enum",
            "order_status_enum",
            "account_type_enum",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
