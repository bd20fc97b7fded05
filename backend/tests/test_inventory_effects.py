"""
Inventory effect engine tests.

Verifies:
- Signed stock deltas per transaction type, negative stock allowed
- Weighted-average cost on purchases (with the zero-denominator fallback)
- Movements capture before/after stock, unit cost and value
- Reversal appends offsetting movements and flags the originals
"""

import pytest

from tradedesk.errors import ImmutableRecordError, NotFoundError
from tradedesk.models import InventoryMovement, StockItem, Transaction
from tradedesk.services import inventory_effect_service, stock_service, transaction_service


def _create(db_session, payload):
    transaction = transaction_service.create_transaction(payload, "tester")
    return db_session.get(Transaction, transaction.id)


def _set_stock(db_session, item, *, quantity, cost_cents):
    stock = db_session.get(StockItem, item.id)
    stock_service.set_stock_level(stock, current_stock=quantity, purchase_price_cents=cost_cents)
    db_session.commit()


# =============================================================================
# DISPATCH TABLES
# =============================================================================


class TestDispatch:

    @pytest.mark.parametrize("transaction_type,expected", [
        ("purchase_order", 4),
        ("sales_order", -4),
        ("purchase_return", -4),
        ("sales_return", 4),
        ("stock_adjustment", None),
    ])
    def test_quantity_delta(self, transaction_type, expected):
        assert inventory_effect_service.quantity_delta(transaction_type, 4) == expected

    def test_event_types(self):
        assert inventory_effect_service.event_type_for("purchase_order") == "PURCHASE_RECEIVE"
        assert inventory_effect_service.event_type_for("sales_order") == "SALES_DISPATCH"
        assert inventory_effect_service.event_type_for("purchase_return") == "PURCHASE_RETURN"
        assert inventory_effect_service.event_type_for("sales_return") == "SALES_RETURN"
        assert inventory_effect_service.event_type_for("transfer") is None

    @pytest.mark.parametrize("old_stock,old_cost,qty,line_value,expected", [
        (10, 100, 10, 2000, 150),
        (0, 0, 10, 2500, 250),
        (1, 100, 2, 202, 101),      # 302 / 3 = 100.67
        (-10, 100, 10, 3000, 100),  # denominator 0: keep old cost
        (-20, 100, 10, 3000, 100),  # negative denominator: keep old cost
    ])
    def test_weighted_average_cost(self, old_stock, old_cost, qty, line_value, expected):
        assert inventory_effect_service.weighted_average_cost(old_stock, old_cost, qty, line_value) == expected

    def test_unknown_type_has_no_effect(self, db_session):
        transaction = Transaction(type="stock_adjustment")
        assert inventory_effect_service.apply(transaction, "tester") == []


# =============================================================================
# APPLY
# =============================================================================


class TestApply:

    def test_purchase_receive_updates_stock_and_cost(self, db_session, vendor, stock_item, make_payload):
        _set_stock(db_session, stock_item, quantity=10, cost_cents=100)
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item, quantity=10, unit_price_cents=200))

        movements = inventory_effect_service.apply(transaction, "tester")

        stock = db_session.get(StockItem, stock_item.id)
        assert stock.current_stock == 20
        assert stock.purchase_price_cents == 150

        assert len(movements) == 1
        movement = movements[0]
        assert movement.event_type == "PURCHASE_RECEIVE"
        assert movement.quantity == 10
        assert movement.previous_stock == 10
        assert movement.new_stock == 20
        assert movement.unit_cost_cents == 200
        assert movement.total_value_cents == 2000
        assert movement.reference_id == transaction.id
        assert movement.reference_number == transaction.transaction_no
        assert movement.is_reversed is False

    def test_vat_does_not_enter_average_cost(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(
            db_session,
            make_payload("purchase_order", vendor, stock_item, quantity=4, unit_price_cents=1000, vat_rate_bps=500),
        )

        inventory_effect_service.apply(transaction, "tester")

        assert db_session.get(StockItem, stock_item.id).purchase_price_cents == 1000

    def test_sales_dispatch_may_go_negative(self, db_session, customer, stock_item, make_payload):
        _set_stock(db_session, stock_item, quantity=2, cost_cents=180)
        transaction = _create(db_session, make_payload("sales_order", customer, stock_item, quantity=5, unit_price_cents=300))

        movements = inventory_effect_service.apply(transaction, "tester")

        stock = db_session.get(StockItem, stock_item.id)
        assert stock.current_stock == -3
        assert stock.purchase_price_cents == 180
        assert movements[0].quantity == -5
        assert movements[0].event_type == "SALES_DISPATCH"
        assert movements[0].total_value_cents == 1500

    def test_returns(self, db_session, vendor, customer, stock_item, make_payload):
        _set_stock(db_session, stock_item, quantity=10, cost_cents=100)

        purchase_return = _create(db_session, make_payload("purchase_return", vendor, stock_item, quantity=3))
        inventory_effect_service.apply(purchase_return, "tester")
        sales_return = _create(db_session, make_payload("sales_return", customer, stock_item, quantity=1))
        inventory_effect_service.apply(sales_return, "tester")

        assert db_session.get(StockItem, stock_item.id).current_stock == 8

    def test_missing_stock_record(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item))
        transaction.lines[0].item_id = 999_999

        with pytest.raises(NotFoundError):
            inventory_effect_service.apply(transaction, "tester")


# =============================================================================
# REVERSE
# =============================================================================


class TestReverse:

    def test_reverse_offsets_and_flags_originals(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item, quantity=10, unit_price_cents=200))
        original = inventory_effect_service.apply(transaction, "tester")[0]

        reversals = inventory_effect_service.reverse(transaction.id, "tester", reference_number=transaction.display_number)

        assert len(reversals) == 1
        reversal = reversals[0]
        assert reversal.quantity == -10
        assert reversal.previous_stock == 10
        assert reversal.new_stock == 0
        assert reversal.reversal_of_id == original.id
        assert reversal.reference_number == f"REV-{transaction.transaction_no}"
        assert original.is_reversed is True
        assert original.reversed_by_id == reversal.id
        assert original.quantity == 10
        assert db_session.get(StockItem, stock_item.id).current_stock == 0

    def test_reverse_keeps_average_cost(self, db_session, vendor, stock_item, make_payload):
        _set_stock(db_session, stock_item, quantity=10, cost_cents=100)
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item, quantity=10, unit_price_cents=200))
        inventory_effect_service.apply(transaction, "tester")

        inventory_effect_service.reverse(transaction.id, "tester")

        stock = db_session.get(StockItem, stock_item.id)
        assert stock.current_stock == 10
        assert stock.purchase_price_cents == 150

    def test_second_reverse_is_a_no_op(self, db_session, customer, stock_item, make_payload):
        transaction = _create(db_session, make_payload("sales_order", customer, stock_item, quantity=3))
        inventory_effect_service.apply(transaction, "tester")

        assert len(inventory_effect_service.reverse(transaction.id, "tester")) == 1
        assert inventory_effect_service.reverse(transaction.id, "tester") == []

        assert db_session.query(InventoryMovement).count() == 2
        assert db_session.get(StockItem, stock_item.id).current_stock == 0


class TestAppendOnly:

    def test_only_reversal_flags_may_change(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item))
        movement = inventory_effect_service.apply(transaction, "tester")[0]

        movement.quantity = 99
        with pytest.raises(ImmutableRecordError):
            db_session.flush()

    def test_movements_cannot_be_deleted(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item))
        movement = inventory_effect_service.apply(transaction, "tester")[0]

        db_session.delete(movement)
        with pytest.raises(ImmutableRecordError):
            db_session.flush()
