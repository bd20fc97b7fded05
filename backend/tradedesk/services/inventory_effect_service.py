# Overview: Service-layer inventory effects of approved transactions; encapsulates business logic and database work.

"""
Inventory Effect Engine

APPLY (on approval): for each line item
- look up current stock / cost for the item
- delta by type: purchase_order +qty, sales_order -qty,
  purchase_return -qty, sales_return +qty
- new stock = current + delta (may go negative; orders are not blocked on stock)
- purchase_order only: weighted-average cost
      new = (old_cost * old_stock + line_value) / (old_stock + qty)
  falling back to old_cost when old_stock + qty <= 0
- append one InventoryMovement with before/after stock, unit cost, total value

REVERSE (on cancel / delete of an approved transaction): for each movement of
the transaction not yet reversed, append an offsetting movement, move stock
back, and flag the original (is_reversed, reversed_by_id). Reversal leaves the
average cost as it is. Movements are never edited otherwise or deleted.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import InventoryMovement, Transaction
from ..money import div_round_half_up
from . import stock_service

logger = logging.getLogger(__name__)


REFERENCE_TYPE = "Transaction"


def quantity_delta(transaction_type: str, quantity: int) -> int | None:
    """Signed stock change for a line; None for types with no inventory effect."""
    if transaction_type == "purchase_order":
        return quantity
    if transaction_type == "sales_order":
        return -quantity
    if transaction_type == "purchase_return":
        return -quantity
    if transaction_type == "sales_return":
        return quantity
    return None


def event_type_for(transaction_type: str) -> str | None:
    if transaction_type == "purchase_order":
        return "PURCHASE_RECEIVE"
    if transaction_type == "sales_order":
        return "SALES_DISPATCH"
    if transaction_type == "purchase_return":
        return "PURCHASE_RETURN"
    if transaction_type == "sales_return":
        return "SALES_RETURN"
    return None


def weighted_average_cost(old_stock: int, old_cost_cents: int, quantity: int, line_value_cents: int) -> int:
    total_quantity = old_stock + quantity
    if total_quantity <= 0:
        return old_cost_cents
    return div_round_half_up(old_cost_cents * old_stock + line_value_cents, total_quantity)


def apply(transaction: Transaction, actor: str) -> list[InventoryMovement]:
    """Apply the transaction's stock effect; returns the new movements."""
    event_type = event_type_for(transaction.type)
    if event_type is None:
        logger.debug("No inventory effect for transaction type %s", transaction.type)
        return []

    movements = []
    for line in transaction.lines:
        delta = quantity_delta(transaction.type, line.quantity)
        stock = stock_service.get_stock_by_item(line.item_id, lock=True)

        previous_stock = stock.current_stock
        new_stock = previous_stock + delta

        new_cost = stock.purchase_price_cents
        if transaction.type == "purchase_order":
            new_cost = weighted_average_cost(
                previous_stock,
                stock.purchase_price_cents,
                line.quantity,
                line.line_value_cents,
            )

        stock_service.set_stock_level(stock, current_stock=new_stock, purchase_price_cents=new_cost)

        unit_cost = line.unit_price_cents
        movement = InventoryMovement(
            item_id=stock.id,
            quantity=delta,
            previous_stock=previous_stock,
            new_stock=new_stock,
            event_type=event_type,
            reference_type=REFERENCE_TYPE,
            reference_id=transaction.id,
            reference_number=transaction.display_number,
            unit_cost_cents=unit_cost,
            total_value_cents=abs(delta) * unit_cost,
            notes=f"{event_type} - {line.description}"[:255],
            batch_number=stock.batch_number,
            expiry_date=stock.expiry_date,
            created_by=actor,
        )
        db.session.add(movement)
        movements.append(movement)

    db.session.flush()
    logger.info(
        "Applied %d inventory movement(s) for transaction %s (%s)",
        len(movements), transaction.id, event_type,
    )
    return movements


def open_movements(transaction_id: int) -> list[InventoryMovement]:
    """Original (non-reversal) movements of a transaction that are not yet reversed."""
    return (
        db.session.query(InventoryMovement)
        .filter(
            InventoryMovement.reference_type == REFERENCE_TYPE,
            InventoryMovement.reference_id == transaction_id,
            InventoryMovement.is_reversed.is_(False),
            InventoryMovement.reversal_of_id.is_(None),
        )
        .order_by(InventoryMovement.id)
        .all()
    )


def reverse(transaction_id: int, actor: str, *, reference_number: str | None = None) -> list[InventoryMovement]:
    """Offset every open movement of a transaction; returns the reversal movements."""
    reversals = []
    for movement in open_movements(transaction_id):
        stock = stock_service.get_stock_by_item(movement.item_id, lock=True)

        reversal_quantity = -movement.quantity
        previous_stock = stock.current_stock
        new_stock = previous_stock + reversal_quantity
        stock_service.set_stock_level(stock, current_stock=new_stock)

        reversal = InventoryMovement(
            item_id=movement.item_id,
            quantity=reversal_quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            event_type=movement.event_type,
            reference_type=REFERENCE_TYPE,
            reference_id=transaction_id,
            reference_number=f"REV-{reference_number or movement.reference_number}",
            unit_cost_cents=movement.unit_cost_cents,
            total_value_cents=abs(reversal_quantity) * movement.unit_cost_cents,
            notes=f"Reversal of {movement.notes}"[:255],
            batch_number=movement.batch_number,
            expiry_date=movement.expiry_date,
            reversal_of_id=movement.id,
            created_by=actor,
        )
        db.session.add(reversal)
        db.session.flush()

        movement.is_reversed = True
        movement.reversed_by_id = reversal.id
        reversals.append(reversal)

    db.session.flush()
    if reversals:
        logger.info("Reversed %d inventory movement(s) for transaction %s", len(reversals), transaction_id)
    return reversals
