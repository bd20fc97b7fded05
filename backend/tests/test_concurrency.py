"""
Thread-based concurrency tests against a file-backed SQLite database.

Verifies:
- Concurrent allocations from one bucket are distinct and gap-free
- Concurrent approvals of one sales order allocate exactly one invoice
  number and apply side effects once
"""

import threading

import pytest

from tradedesk import create_app
from tradedesk.errors import StateError
from tradedesk.extensions import db
from tradedesk.models import Customer, InventoryMovement, StockItem, Transaction
from tradedesk.services import numbering_service, party_service, sequence_service, stock_service, transaction_service
from tradedesk.services.concurrency import run_in_unit_of_work


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 30}},
        'UNIT_OF_WORK_ATTEMPTS': 25,
        'SEQUENCE_BACKOFF_BASE': 0.01,
        'SEQUENCE_BACKOFF_CAP': 0.2,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _run_threads(count, target):
    threads = [threading.Thread(target=target) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_concurrent_allocations_are_unique_and_contiguous(file_app):
    created = []
    errors = []
    lock = threading.Lock()
    start = threading.Barrier(8)

    def worker():
        start.wait()
        with file_app.app_context():
            try:
                for _ in range(5):
                    number = run_in_unit_of_work(lambda: numbering_service.allocate("sales_invoice"))
                    with lock:
                        created.append(number)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    _run_threads(8, worker)

    assert not errors
    assert sorted(int(n) for n in created) == list(range(1, 41))
    with file_app.app_context():
        assert sequence_service.peek_current("sales_invoice") == 40


def test_concurrent_approvals_allocate_one_invoice(file_app):
    with file_app.app_context():
        customer = party_service.register_party("Customer", "Concurrent Customer")
        item = stock_service.create_stock_item(item_code="CONCUR-1", name="Concurrent Item", current_stock=50)
        db.session.commit()
        customer_id, item_id = customer.id, item.id

        transaction = transaction_service.create_transaction(
            {
                "type": "sales_order",
                "party_id": customer_id,
                "party_type": "Customer",
                "items": [{"item_id": item_id, "quantity": 5, "unit_price_cents": 400}],
            },
            "clerk",
        )
        transaction_id = transaction.id
        total = transaction.total_amount_cents
        db.session.remove()

    outcomes = []
    errors = []
    lock = threading.Lock()
    start = threading.Barrier(4)

    def worker():
        start.wait()
        with file_app.app_context():
            try:
                transaction_service.process_transaction(transaction_id, "approve", "manager")
                with lock:
                    outcomes.append("approved")
            except StateError:
                with lock:
                    outcomes.append("refused")
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    _run_threads(4, worker)

    assert not errors
    assert sorted(outcomes) == ["approved", "refused", "refused", "refused"]

    with file_app.app_context():
        approved = db.session.get(Transaction, transaction_id)
        assert approved.status == "APPROVED"
        assert approved.invoice_number == "00001"
        assert sequence_service.peek_current("sales_invoice") == 1
        assert db.session.get(StockItem, item_id).current_stock == 45
        assert db.session.get(Customer, customer_id).cash_balance_cents == -total
        assert db.session.query(InventoryMovement).count() == 1
