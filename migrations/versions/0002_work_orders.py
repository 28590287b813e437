"""Work orders, agency commissions and new ledger and stock types.

Revision ID: 0002_work_orders
Revises: 0001_initial
Create Date: 2025-03-03
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_work_orders"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

NEW_ENUM_VALUES = (
    ("ledger_entry_type_enum", "COMMISSION"),
    ("inventory_transaction_type_enum", "CONSUMPTION"),
    ("inventory_transaction_type_enum", "PRODUCTION"),
)


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        with op.get_context().autocommit_block():
            for enum_name, value in NEW_ENUM_VALUES:
                op.execute(f"ALTER TYPE {enum_name} ADD VALUE IF NOT EXISTS '{value}'")

    with op.batch_alter_table("orders") as batch:
        batch.add_column(sa.Column("agency_account_id", sa.Integer(), nullable=True))
        batch.add_column(sa.Column(
            "agency_commission_rate", sa.Numeric(7, 4),
            nullable=False, server_default="0",
        ))
        batch.add_column(sa.Column(
            "commission_amount", sa.Numeric(19, 2),
            nullable=False, server_default="0",
        ))
        batch.create_foreign_key(
            "fk_orders_agency_account_id", "accounts", ["agency_account_id"], ["id"]
        )
        batch.create_index("ix_orders_agency_account_id", ["agency_account_id"])

    op.create_table(
        "work_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("work_order_no", sa.String(length=30), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=False),
        sa.Column("output_variant_id", sa.String(length=36), nullable=False),
        sa.Column("planned_quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("labor_cost_per_unit", sa.Numeric(19, 4), nullable=False),
        sa.Column("overhead_cost_per_unit", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT", "RELEASED", "IN_PROGRESS", "COMPLETED", "CANCELLED",
                name="work_order_status_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("materials_consumed", sa.Boolean(), nullable=False),
        sa.Column("material_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("labor_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("overhead_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(19, 4), nullable=True),
        sa.Column("produced_quantity", sa.Numeric(19, 4), nullable=True),
        sa.Column("waste_quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "output_lot_id", sa.Integer(),
            sa.ForeignKey("inventory_lots.id"), nullable=True,
        ),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("work_order_no", name="uq_work_orders_work_order_no"),
    )
    op.create_index("ix_work_orders_branch_id", "work_orders", ["branch_id"])

    op.create_table(
        "work_order_materials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "work_order_id", sa.Integer(),
            sa.ForeignKey("work_orders.id"), nullable=False,
        ),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("quantity_per_unit", sa.Numeric(19, 4), nullable=False),
        sa.Column("waste_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("required_quantity", sa.Numeric(19, 4), nullable=False),
    )
    op.create_index(
        "ix_work_order_materials_work_order_id", "work_order_materials", ["work_order_id"]
    )

    op.create_table(
        "work_order_consumptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "work_order_id", sa.Integer(),
            sa.ForeignKey("work_orders.id"), nullable=False,
        ),
        sa.Column("variant_id", sa.String(length=36), nullable=False),
        sa.Column("warehouse_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(19, 4), nullable=False),
        sa.Column("unit_cost", sa.Numeric(19, 4), nullable=False),
        sa.Column("total_cost", sa.Numeric(19, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_work_order_consumptions_work_order_id",
        "work_order_consumptions",
        ["work_order_id"],
    )


def downgrade() -> None:
    for table in ("work_order_consumptions", "work_order_materials", "work_orders"):
        op.drop_table(table)

    with op.batch_alter_table("orders") as batch:
        batch.drop_index("ix_orders_agency_account_id")
        batch.drop_constraint("fk_orders_agency_account_id", type_="foreignkey")
        batch.drop_column("commission_amount")
        batch.drop_column("agency_commission_rate")
        batch.drop_column("agency_account_id")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        # Postgres cannot drop enum values; COMMISSION, CONSUMPTION and
        # PRODUCTION stay on their types.
        sa.Enum(name="work_order_status_enum").drop(bind, checkfirst=True)
