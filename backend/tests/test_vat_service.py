"""
VAT aggregation tests.

Verifies:
- Output VAT for sales orders / purchase returns, input VAT otherwise
- One DRAFT report per calendar month, created on first use
- Zero-VAT lines are skipped
- net payable = output - input
"""

import pytest

from tradedesk.models import Transaction, VATReport, VATReportItem
from tradedesk.services import transaction_service, vat_service
from tradedesk.time_utils import coerce_datetime


def _create(db_session, payload):
    transaction = transaction_service.create_transaction(payload, "tester")
    return db_session.get(Transaction, transaction.id)


class TestDirection:

    @pytest.mark.parametrize("transaction_type,expected", [
        ("sales_order", "OUTPUT"),
        ("purchase_return", "OUTPUT"),
        ("purchase_order", "INPUT"),
        ("sales_return", "INPUT"),
        ("stock_transfer", None),
    ])
    def test_vat_direction(self, transaction_type, expected):
        assert vat_service.vat_direction(transaction_type) == expected


class TestRecordTransactionVat:

    def test_sales_order_adds_output_vat(self, db_session, customer, stock_item, make_payload):
        transaction = _create(
            db_session,
            make_payload("sales_order", customer, stock_item, quantity=2, unit_price_cents=1000, vat_rate_bps=500),
        )

        items = vat_service.record_transaction_vat(transaction, "tester")

        assert len(items) == 1
        assert items[0].direction == "OUTPUT"
        assert items[0].vat_amount_cents == 100
        assert items[0].party_name == "Al Noor Trading"

        report = vat_service.get_open_report(coerce_datetime("2025-01-20"))
        assert report.status == "DRAFT"
        assert report.period_start == coerce_datetime("2025-01-01")
        assert report.total_vat_output_cents == 100
        assert report.total_vat_input_cents == 0
        assert report.net_vat_payable_cents == 100

    def test_same_month_appends_to_one_report(self, db_session, customer, vendor, stock_item, make_payload):
        sale = _create(
            db_session,
            make_payload("sales_order", customer, stock_item, quantity=2, unit_price_cents=1000, vat_rate_bps=500),
        )
        purchase = _create(
            db_session,
            make_payload("purchase_order", vendor, stock_item, quantity=1, unit_price_cents=600, vat_rate_bps=500),
        )

        vat_service.record_transaction_vat(sale, "tester")
        vat_service.record_transaction_vat(purchase, "tester")

        assert db_session.query(VATReport).count() == 1
        report = db_session.query(VATReport).one()
        assert report.total_vat_output_cents == 100
        assert report.total_vat_input_cents == 30
        assert report.net_vat_payable_cents == 70
        assert len(report.items) == 2

    def test_other_month_gets_its_own_report(self, db_session, vendor, stock_item, make_payload):
        january = _create(db_session, make_payload("purchase_order", vendor, stock_item, vat_rate_bps=500))
        february = _create(
            db_session,
            make_payload("purchase_order", vendor, stock_item, vat_rate_bps=500, date="2025-02-03T09:00:00Z"),
        )

        vat_service.record_transaction_vat(january, "tester")
        vat_service.record_transaction_vat(february, "tester")

        assert db_session.query(VATReport).count() == 2

    def test_zero_vat_lines_are_skipped(self, db_session, vendor, stock_item, make_payload):
        transaction = _create(db_session, make_payload("purchase_order", vendor, stock_item, vat_rate_bps=0))

        assert vat_service.record_transaction_vat(transaction, "tester") == []
        assert db_session.query(VATReport).count() == 0
        assert db_session.query(VATReportItem).count() == 0

    def test_no_open_report(self, db_session):
        assert vat_service.get_open_report(coerce_datetime("2030-06-01")) is None
