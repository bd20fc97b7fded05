# Overview: Service-layer operations for stock records; encapsulates business logic and database work.

"""
Stock lookup capability used by the inventory engine.

Returns the live StockItem row; callers inside a unit of work read-modify-write
it, and the row's version_id turns a concurrent change into a StaleDataError
that re-runs the unit.
"""

from __future__ import annotations

from datetime import datetime

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import StockItem
from .concurrency import lock_for_update


def get_stock_by_item(item_id: int, *, lock: bool = False) -> StockItem:
    """
    Current stock / cost for an item.

    Raises:
        NotFoundError: no stock record for item_id
    """
    query = db.session.query(StockItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    stock = query.first()
    if stock is None:
        raise NotFoundError(f"Stock record for item {item_id} not found", details={"item_id": item_id})
    return stock


def set_stock_level(
    stock: StockItem,
    *,
    current_stock: int,
    purchase_price_cents: int | None = None,
) -> StockItem:
    stock.current_stock = current_stock
    if purchase_price_cents is not None:
        stock.purchase_price_cents = purchase_price_cents
    db.session.flush()
    return stock


def create_stock_item(
    *,
    item_code: str,
    name: str,
    current_stock: int = 0,
    purchase_price_cents: int = 0,
    batch_number: str | None = None,
    expiry_date: datetime | None = None,
) -> StockItem:
    """Register a stock record (flushes, does not commit)."""
    if not item_code or not item_code.strip():
        raise ValidationError("item_code is required")
    if not name or not name.strip():
        raise ValidationError("name is required")

    stock = StockItem(
        item_code=item_code.strip().upper(),
        name=name.strip(),
        current_stock=current_stock,
        purchase_price_cents=purchase_price_cents,
        batch_number=batch_number,
        expiry_date=expiry_date,
    )
    db.session.add(stock)
    db.session.flush()
    return stock
