from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master record.

    cash_balance_cents is the running balance; sales orders move it down
    (receivable), sales returns move it back up. Every change is mirrored by
    an append-only CreditLog entry.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_active", "is_active"),
        {"sqlite_autoincrement": True},
    )
    KIND = "Customer"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    cash_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.KIND,
            "code": self.code,
            "name": self.name,
            "cash_balance_cents": self.cash_balance_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Vendor(db.Model):
    """
    Vendor master record.

    Purchase orders raise cash_balance_cents (payable), purchase returns
    lower it. Every change is mirrored by an append-only DebitLog entry.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_active", "is_active"),
        {"sqlite_autoincrement": True},
    )
    KIND = "Vendor"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    cash_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.KIND,
            "code": self.code,
            "name": self.name,
            "cash_balance_cents": self.cash_balance_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
