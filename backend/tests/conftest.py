"""
Pytest fixtures for TradeDesk backend tests.

Provides the in-memory application, a cleared database per test, and
vendor / customer / stock fixtures plus a transaction payload factory.
"""

import pytest

from tradedesk import create_app
from tradedesk.extensions import db
from tradedesk.services import party_service, stock_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SEQUENCE_BACKOFF_BASE': 0.0,
        'SEQUENCE_BACKOFF_CAP': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def vendor(db_session):
    v = party_service.register_party("Vendor", "Gulf Supplies LLC")
    db_session.commit()
    return v


@pytest.fixture(scope='function')
def customer(db_session):
    c = party_service.register_party("Customer", "Al Noor Trading")
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def stock_item(db_session):
    item = stock_service.create_stock_item(item_code="RICE-5KG", name="Basmati Rice 5kg")
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def make_payload():
    """Factory for create_transaction payloads with one line."""
    def _make(transaction_type, party, item, *, quantity=10, unit_price_cents=250, vat_rate_bps=0, **extra):
        payload = {
            "type": transaction_type,
            "party_id": party.id,
            "party_type": party.KIND,
            "date": "2025-01-15T10:00:00Z",
            "items": [
                {
                    "item_id": item.id,
                    "description": item.name,
                    "quantity": quantity,
                    "unit_price_cents": unit_price_cents,
                    "vat_rate_bps": vat_rate_bps,
                }
            ],
        }
        payload.update(extra)
        return payload

    return _make
