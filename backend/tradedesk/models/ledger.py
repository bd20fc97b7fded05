"""
Append-only ledgers.

- InventoryMovement: one row per stock change. The only permitted update is
  flagging a row as reversed (is_reversed + reversed_by_id).
- DebitLog / CreditLog: one row per party balance change. Never updated;
  reversals append a new row pointing back via reversal_of_id.

reference_id / transaction_id are plain integers, not foreign keys: ledger
rows outlive a deleted transaction.

The ORM listeners at the bottom reject any other UPDATE and every DELETE
issued through the session.
"""

from __future__ import annotations

from sqlalchemy import event, inspect

from ..errors import ImmutableRecordError
from ..extensions import db
from ..time_utils import to_utc_z


class InventoryMovement(db.Model):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_invmov_reference", "reference_type", "reference_id"),
        db.Index("ix_invmov_item_created", "item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)  # signed delta
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    event_type = db.Column(db.String(32), nullable=False)

    reference_type = db.Column(db.String(32), nullable=False, default="Transaction")
    reference_id = db.Column(db.Integer, nullable=False)
    reference_number = db.Column(db.String(80), nullable=True)

    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_value_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.String(255), nullable=True)

    batch_number = db.Column(db.String(64), nullable=True)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)

    is_reversed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    reversed_by_id = db.Column(db.Integer, db.ForeignKey("inventory_movements.id"), nullable=True)
    reversal_of_id = db.Column(db.Integer, db.ForeignKey("inventory_movements.id"), nullable=True)

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<InventoryMovement id={self.id} item_id={self.item_id} qty={self.quantity} ref={self.reference_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "event_type": self.event_type,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "reference_number": self.reference_number,
            "unit_cost_cents": self.unit_cost_cents,
            "total_value_cents": self.total_value_cents,
            "notes": self.notes,
            "batch_number": self.batch_number,
            "expiry_date": to_utc_z(self.expiry_date),
            "is_reversed": self.is_reversed,
            "reversed_by_id": self.reversed_by_id,
            "reversal_of_id": self.reversal_of_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class DebitLog(db.Model):
    """Vendor (accounts payable) ledger entry."""
    __tablename__ = "debit_logs"
    __table_args__ = (
        db.Index("ix_debit_logs_vendor_date", "vendor_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False)

    entry_type = db.Column(db.String(40), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    document_number = db.Column(db.String(64), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False)  # vendor balance after this entry

    reference = db.Column(db.String(64), nullable=True)
    transaction_id = db.Column(db.Integer, nullable=True, index=True)
    reversal_of_id = db.Column(db.Integer, db.ForeignKey("debit_logs.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="UNPAID")

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def party_id(self) -> int:
        return self.vendor_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "entry_type": self.entry_type,
            "date": to_utc_z(self.date),
            "document_number": self.document_number,
            "amount_cents": self.amount_cents,
            "paid_cents": self.paid_cents,
            "balance_cents": self.balance_cents,
            "reference": self.reference,
            "transaction_id": self.transaction_id,
            "reversal_of_id": self.reversal_of_id,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class CreditLog(db.Model):
    """Customer (accounts receivable) ledger entry."""
    __tablename__ = "credit_logs"
    __table_args__ = (
        db.Index("ix_credit_logs_customer_date", "customer_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)

    entry_type = db.Column(db.String(40), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    document_number = db.Column(db.String(64), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False)  # customer balance after this entry

    reference = db.Column(db.String(64), nullable=True)
    transaction_id = db.Column(db.Integer, nullable=True, index=True)
    reversal_of_id = db.Column(db.Integer, db.ForeignKey("credit_logs.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="UNPAID")

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def party_id(self) -> int:
        return self.customer_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "entry_type": self.entry_type,
            "date": to_utc_z(self.date),
            "document_number": self.document_number,
            "amount_cents": self.amount_cents,
            "paid_cents": self.paid_cents,
            "balance_cents": self.balance_cents,
            "reference": self.reference,
            "transaction_id": self.transaction_id,
            "reversal_of_id": self.reversal_of_id,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


# =============================================================================
# ORM-level immutability
# =============================================================================

# Columns a reversal may set on an existing movement
MOVEMENT_REVERSAL_COLUMNS = frozenset({"is_reversed", "reversed_by_id"})


def _changed_columns(target) -> set[str]:
    state = inspect(target)
    return {attr.key for attr in state.attrs if attr.history.has_changes()}


@event.listens_for(InventoryMovement, "before_update")
def prevent_movement_update(mapper, connection, target):
    changed = _changed_columns(target) - MOVEMENT_REVERSAL_COLUMNS
    if changed:
        raise ImmutableRecordError(
            f"Inventory movement {target.id} is append-only; cannot change {', '.join(sorted(changed))}",
            details={"movement_id": target.id},
        )


@event.listens_for(InventoryMovement, "before_delete")
def prevent_movement_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"Inventory movement {target.id} cannot be deleted; post a reversal instead",
        details={"movement_id": target.id},
    )


@event.listens_for(DebitLog, "before_update")
@event.listens_for(CreditLog, "before_update")
def prevent_ledger_entry_update(mapper, connection, target):
    raise ImmutableRecordError(
        f"{type(target).__name__} {target.id} is append-only",
        details={"entry_id": target.id},
    )


@event.listens_for(DebitLog, "before_delete")
@event.listens_for(CreditLog, "before_delete")
def prevent_ledger_entry_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"{type(target).__name__} {target.id} cannot be deleted; post a reversal instead",
        details={"entry_id": target.id},
    )
