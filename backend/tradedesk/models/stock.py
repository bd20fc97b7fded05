from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockItem(db.Model):
    """
    Stock master record: quantity on hand and current average purchase price.

    current_stock may go negative (orders can be approved ahead of stock).
    Changes are recorded as InventoryMovement rows by the inventory engine.
    """
    __tablename__ = "stock_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    item_code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)

    batch_number = db.Column(db.String(64), nullable=True)
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} item_code={self.item_code!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_code": self.item_code,
            "name": self.name,
            "current_stock": self.current_stock,
            "purchase_price_cents": self.purchase_price_cents,
            "batch_number": self.batch_number,
            "expiry_date": to_utc_z(self.expiry_date),
            "updated_at": to_utc_z(self.updated_at),
        }
