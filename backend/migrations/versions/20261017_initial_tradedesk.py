"""Initial schema: sequences, parties, stock, transactions, ledgers, VAT

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sequence_type", sa.String(32), nullable=False),
        sa.Column("period", sa.String(8), nullable=False, server_default=""),
        sa.Column("prefix", sa.String(32), nullable=False, server_default=""),
        sa.Column("padding", sa.Integer(), nullable=False, server_default=sa.text("4")),
        sa.Column("current", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sequence_type", "period", name="uq_sequences_type_period"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sequences", schema=None) as batch_op:
        batch_op.create_index("ix_sequences_sequence_type", ["sequence_type"], unique=False)

    for table in ("customers", "vendors"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(32), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("cash_balance_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
            *_timestamps(),
            sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
            sqlite_autoincrement=True,
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table}_active", ["is_active"], unique=False)

    op.create_table(
        "stock_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("purchase_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("batch_number", sa.String(64), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("transaction_no", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=True),
        sa.Column("invoice_number", sa.String(64), nullable=True),
        sa.Column("number_manual", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("party_type", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("terms", sa.Text(), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.String(16), nullable=False, server_default="Medium"),
        sa.Column("vendor_reference", sa.String(128), nullable=True),
        sa.Column("grn_generated", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("invoice_generated", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("credit_note_issued", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.String(128), nullable=False),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type", "order_number", name="uq_transactions_type_order_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index(
            "uq_transactions_transaction_no",
            ["transaction_no"],
            unique=True,
            sqlite_where=sa.text("transaction_no != '0000'"),
            postgresql_where=sa.text("transaction_no != '0000'"),
        )
        batch_op.create_index("ix_transactions_party", ["party_type", "party_id"], unique=False)
        batch_op.create_index("ix_transactions_type_status", ["type", "status"], unique=False)

    op.create_table(
        "transaction_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("line_no", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_code", sa.String(64), nullable=False, server_default=""),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("vat_rate_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_value_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("vat_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transaction_lines", schema=None) as batch_op:
        batch_op.create_index("ix_transaction_lines_transaction_id", ["transaction_id"], unique=False)
        batch_op.create_index("ix_transaction_lines_item_id", ["item_id"], unique=False)

    op.create_table(
        "purchase_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("transaction_no", sa.String(64), nullable=False),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("terms", sa.Text(), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.String(16), nullable=False, server_default="Medium"),
        sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchase_logs", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_logs_transaction_no", ["transaction_no"], unique=False)
        batch_op.create_index("ix_purchase_logs_party_id", ["party_id"], unique=False)

    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("previous_stock", sa.Integer(), nullable=False),
        sa.Column("new_stock", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("reference_type", sa.String(32), nullable=False, server_default="Transaction"),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("reference_number", sa.String(80), nullable=True),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_value_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.String(255), nullable=True),
        sa.Column("batch_number", sa.String(64), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_reversed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("reversed_by_id", sa.Integer(), nullable=True),
        sa.Column("reversal_of_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["stock_items.id"]),
        sa.ForeignKeyConstraint(["reversed_by_id"], ["inventory_movements.id"]),
        sa.ForeignKeyConstraint(["reversal_of_id"], ["inventory_movements.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_movements", schema=None) as batch_op:
        batch_op.create_index("ix_invmov_reference", ["reference_type", "reference_id"], unique=False)
        batch_op.create_index("ix_invmov_item_created", ["item_id", "created_at"], unique=False)
        batch_op.create_index("ix_inventory_movements_is_reversed", ["is_reversed"], unique=False)

    for table, party_column, party_table, index_name in (
        ("debit_logs", "vendor_id", "vendors", "ix_debit_logs_vendor_date"),
        ("credit_logs", "customer_id", "customers", "ix_credit_logs_customer_date"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column(party_column, sa.Integer(), nullable=False),
            sa.Column("entry_type", sa.String(40), nullable=False),
            sa.Column("date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("document_number", sa.String(64), nullable=False),
            sa.Column("amount_cents", sa.Integer(), nullable=False),
            sa.Column("paid_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("balance_cents", sa.Integer(), nullable=False),
            sa.Column("reference", sa.String(64), nullable=True),
            sa.Column("transaction_id", sa.Integer(), nullable=True),
            sa.Column("reversal_of_id", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="UNPAID"),
            sa.Column("created_by", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
            sa.ForeignKeyConstraint([party_column], [f"{party_table}.id"]),
            sa.ForeignKeyConstraint(["reversal_of_id"], [f"{table}.id"]),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(index_name, [party_column, "date"], unique=False)
            batch_op.create_index(f"ix_{table}_transaction_id", ["transaction_id"], unique=False)

    op.create_table(
        "vat_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="DRAFT"),
        sa.Column("total_vat_output_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_vat_input_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("net_vat_payable_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("generated_by", sa.String(128), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("vat_reports", schema=None) as batch_op:
        batch_op.create_index("ix_vat_reports_period_status", ["period_start", "period_end", "status"], unique=False)

    op.create_table(
        "vat_report_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("report_id", sa.Integer(), nullable=False),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("transaction_no", sa.String(64), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_code", sa.String(64), nullable=False, server_default=""),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.Column("vat_amount_cents", sa.Integer(), nullable=False),
        sa.Column("vat_rate_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("party_name", sa.String(255), nullable=False, server_default="Unknown"),
        sa.Column("party_type", sa.String(16), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["report_id"], ["vat_reports.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("vat_report_items", schema=None) as batch_op:
        batch_op.create_index("ix_vat_report_items_report_id", ["report_id"], unique=False)
        batch_op.create_index("ix_vat_report_items_transaction_id", ["transaction_id"], unique=False)


def downgrade():
    for table in (
        "vat_report_items",
        "vat_reports",
        "credit_logs",
        "debit_logs",
        "inventory_movements",
        "purchase_logs",
        "transaction_lines",
        "transactions",
        "stock_items",
        "vendors",
        "customers",
        "sequences",
    ):
        op.drop_table(table)
