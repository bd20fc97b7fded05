from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# Sales orders carry this until an invoice number exists; it is exempt from
# the transaction_no unique index.
PLACEHOLDER_TRANSACTION_NO = "0000"


class Transaction(db.Model):
    """
    Sales / purchase order or return.

    LIFECYCLE:
        DRAFT -> APPROVED | REJECTED | CANCELLED
        APPROVED -> CANCELLED (side effects reversed)

    Identifier fields:
    - transaction_no: internal tracking number ("0000" placeholder for sales orders)
    - order_number:   external order number (SO / manual)
    - invoice_number: allocated once, on approval of a sales order
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index(
            "uq_transactions_transaction_no",
            "transaction_no",
            unique=True,
            sqlite_where=db.text("transaction_no != '0000'"),
            postgresql_where=db.text("transaction_no != '0000'"),
        ),
        db.UniqueConstraint("type", "order_number", name="uq_transactions_type_order_number"),
        db.Index("ix_transactions_party", "party_type", "party_id"),
        db.Index("ix_transactions_type_status", "type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)

    transaction_no = db.Column(db.String(64), nullable=False)
    order_number = db.Column(db.String(64), nullable=True)
    invoice_number = db.Column(db.String(64), nullable=True)
    number_manual = db.Column(db.Boolean, nullable=False, default=False)

    # Customer or Vendor id, depending on party_type
    party_id = db.Column(db.Integer, nullable=False)
    party_type = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="DRAFT")

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    date = db.Column(db.DateTime(timezone=True), nullable=False)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    terms = db.Column(db.Text, nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")
    priority = db.Column(db.String(16), nullable=False, default="Medium")
    vendor_reference = db.Column(db.String(128), nullable=True)

    grn_generated = db.Column(db.Boolean, nullable=False, default=False)
    invoice_generated = db.Column(db.Boolean, nullable=False, default=False)
    credit_note_issued = db.Column(db.Boolean, nullable=False, default=False)

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLine.line_no",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} no={self.transaction_no!r} status={self.status}>"

    @property
    def display_number(self) -> str:
        """Most specific document number available."""
        return self.invoice_number or self.order_number or self.transaction_no

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "transaction_no": self.transaction_no,
            "order_number": self.order_number,
            "invoice_number": self.invoice_number,
            "number_manual": self.number_manual,
            "party_id": self.party_id,
            "party_type": self.party_type,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "discount_cents": self.discount_cents,
            "date": to_utc_z(self.date),
            "delivery_date": to_utc_z(self.delivery_date),
            "terms": self.terms,
            "notes": self.notes,
            "priority": self.priority,
            "vendor_reference": self.vendor_reference,
            "grn_generated": self.grn_generated,
            "invoice_generated": self.invoice_generated,
            "credit_note_issued": self.credit_note_issued,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [line.to_dict() for line in self.lines],
        }


class TransactionLine(db.Model):
    """Line item owned by a Transaction; amounts are computed on create/update."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    line_no = db.Column(db.Integer, nullable=False)

    item_id = db.Column(db.Integer, nullable=False, index=True)
    item_code = db.Column(db.String(64), nullable=False, default="")
    description = db.Column(db.String(255), nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    vat_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    line_value_cents = db.Column(db.Integer, nullable=False, default=0)
    vat_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)

    transaction = db.relationship("Transaction", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_no": self.line_no,
            "item_id": self.item_id,
            "item_code": self.item_code,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "vat_rate_bps": self.vat_rate_bps,
            "line_value_cents": self.line_value_cents,
            "vat_amount_cents": self.vat_amount_cents,
            "line_total_cents": self.line_total_cents,
        }


class PurchaseLog(db.Model):
    """
    Companion record of a purchase order, consumed by goods-receiving.

    Mirrors the order's items and follows its status; deleted with it.
    """
    __tablename__ = "purchase_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, nullable=False, unique=True)
    transaction_no = db.Column(db.String(64), nullable=False, index=True)
    party_id = db.Column(db.Integer, nullable=False, index=True)

    items = db.Column(db.JSON, nullable=False, default=list)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    date = db.Column(db.DateTime(timezone=True), nullable=False)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    terms = db.Column(db.Text, nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")
    priority = db.Column(db.String(16), nullable=False, default="Medium")

    status = db.Column(db.String(16), nullable=False, default="DRAFT")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "transaction_no": self.transaction_no,
            "party_id": self.party_id,
            "items": self.items,
            "total_amount_cents": self.total_amount_cents,
            "date": to_utc_z(self.date),
            "delivery_date": to_utc_z(self.delivery_date),
            "terms": self.terms,
            "notes": self.notes,
            "priority": self.priority,
            "status": self.status,
        }
