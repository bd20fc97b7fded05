"""
Numbering policy tests.

Verifies:
- Auto / manual numbering per document type on create
- Invoice allocation on approval is idempotent
- Manual sales orders reuse the order number as invoice number
- Manual identifier validation
- Next-number operations and previews
"""

from datetime import datetime

import pytest

from tradedesk.errors import ValidationError
from tradedesk.models import Transaction
from tradedesk.services import numbering_service, sequence_service
from tradedesk.time_utils import month_key, utcnow


JAN_2025 = datetime(2025, 1, 15, 10, 0)


def _transaction(transaction_type, *, manual=False, when=JAN_2025, **fields):
    return Transaction(type=transaction_type, number_manual=manual, date=when, **fields)


@pytest.fixture
def allocator_calls(monkeypatch):
    """Counts numbering_service.allocate calls per bucket."""
    calls = []
    real_allocate = numbering_service.allocate

    def _counting(sequence_type, when=None):
        calls.append(sequence_type)
        return real_allocate(sequence_type, when)

    monkeypatch.setattr(numbering_service, "allocate", _counting)
    return calls


# =============================================================================
# CREATE
# =============================================================================


class TestAssignOnCreate:

    def test_auto_sales_order_gets_placeholder_and_order_number(self, db_session):
        t = _transaction("sales_order")
        numbering_service.assign_on_create(t, {})

        assert t.transaction_no == "0000"
        assert t.order_number == "SO202501-00001"
        assert t.invoice_number is None

    def test_manual_sales_order_uses_caller_order_number(self, db_session, allocator_calls):
        t = _transaction("sales_order", manual=True)
        numbering_service.assign_on_create(t, {"order_number": "  LPO-7781  "})

        assert t.transaction_no == "0000"
        assert t.order_number == "LPO-7781"
        assert allocator_calls == []

    def test_manual_sales_order_requires_order_number(self, db_session):
        t = _transaction("sales_order", manual=True)

        with pytest.raises(ValidationError):
            numbering_service.assign_on_create(t, {"order_number": "   "})

        assert sequence_service.peek_current("sales_order", "202501") == 0

    def test_auto_purchase_order(self, db_session):
        first = _transaction("purchase_order")
        second = _transaction("purchase_order")
        numbering_service.assign_on_create(first, {})
        numbering_service.assign_on_create(second, {})

        assert first.transaction_no == "PO202501-00001"
        assert second.transaction_no == "PO202501-00002"
        assert first.order_number is None

    def test_manual_purchase_order(self, db_session, allocator_calls):
        t = _transaction("purchase_order", manual=True)
        numbering_service.assign_on_create(t, {"transaction_no": "PO-CUSTOM-1"})

        assert t.transaction_no == "PO-CUSTOM-1"
        assert allocator_calls == []

    @pytest.mark.parametrize("bad", ["PO CUSTOM", "PO#1", "", "X" * 65, 123])
    def test_malformed_manual_identifier_is_rejected(self, db_session, bad):
        t = _transaction("purchase_order", manual=True)

        with pytest.raises(ValidationError):
            numbering_service.assign_on_create(t, {"transaction_no": bad})

    @pytest.mark.parametrize("transaction_type,code", [("sales_return", "SR"), ("purchase_return", "PR")])
    def test_returns_allocate_from_their_bucket(self, db_session, transaction_type, code):
        t = _transaction(transaction_type)
        numbering_service.assign_on_create(t, {})

        assert t.transaction_no == f"{code}202501-00001"

    def test_return_honours_supplied_number(self, db_session, allocator_calls):
        t = _transaction("sales_return")
        numbering_service.assign_on_create(t, {"transaction_no": "CN-2025-004"})

        assert t.transaction_no == "CN-2025-004"
        assert allocator_calls == []


# =============================================================================
# APPROVE
# =============================================================================


class TestAssignOnApprove:

    def test_auto_sales_order_invoice_allocated_once(self, db_session, allocator_calls):
        t = _transaction("sales_order", transaction_no="0000", order_number="SO202501-00001")

        first = numbering_service.assign_on_approve(t)
        second = numbering_service.assign_on_approve(t)

        assert first == second == "00001"
        assert allocator_calls == ["sales_invoice"]
        assert sequence_service.peek_current("sales_invoice") == 1

    def test_manual_sales_order_reuses_order_number(self, db_session, allocator_calls):
        t = _transaction("sales_order", manual=True, transaction_no="0000", order_number="LPO-7781")

        assert numbering_service.assign_on_approve(t) == "LPO-7781"
        assert t.invoice_number == t.order_number
        assert allocator_calls == []

    def test_existing_invoice_number_is_kept(self, db_session, allocator_calls):
        t = _transaction("sales_order", transaction_no="0000", order_number="SO202501-00009", invoice_number="00042")

        assert numbering_service.assign_on_approve(t) == "00042"
        assert allocator_calls == []

    @pytest.mark.parametrize("transaction_type", ["purchase_order", "sales_return", "purchase_return"])
    def test_other_types_get_no_invoice(self, db_session, allocator_calls, transaction_type):
        t = _transaction(transaction_type, transaction_no="X-1")

        assert numbering_service.assign_on_approve(t) is None
        assert t.invoice_number is None
        assert allocator_calls == []


# =============================================================================
# NEXT-NUMBER OPERATIONS
# =============================================================================


class TestNextNumbers:

    def test_get_next_transaction_number_preview_does_not_allocate(self, db_session):
        period = month_key(utcnow())

        preview = numbering_service.get_next_transaction_number("purchase_order", True)
        again = numbering_service.get_next_transaction_number("purchase_order", True)
        allocated = numbering_service.get_next_transaction_number("purchase_order", False)

        assert preview == again == allocated == f"PO{period}-00001"
        assert sequence_service.peek_current("purchase_order", period) == 1

    def test_get_next_transaction_number_rejects_unknown_type(self, db_session):
        with pytest.raises(ValidationError):
            numbering_service.get_next_transaction_number("quotation", True)

    def test_invoice_numbers(self, db_session):
        assert numbering_service.get_next_invoice_number("sales_order", JAN_2025) == "00001"
        assert numbering_service.get_next_invoice_number("purchase_order", JAN_2025) == "PI202501-00001"

        with pytest.raises(ValidationError):
            numbering_service.get_next_invoice_number("sales_return", JAN_2025)

    def test_order_number(self, db_session):
        assert numbering_service.get_next_order_number("sales_order", JAN_2025) == "SO202501-00001"

    @pytest.mark.parametrize("code,expected", [
        ("PO", "PO202503-00001"),
        ("so", "SO202503-00001"),
        ("SR", "SR202503-00001"),
        ("PR", "PR202503-00001"),
        ("PI", "PI202503-00001"),
        ("SI", "00001"),
        ("purchase_order", "PO202503-00001"),
    ])
    def test_preview_next_number_codes(self, db_session, code, expected):
        assert numbering_service.preview_next_number(code, "202503") == expected

    def test_preview_next_number_year_override_keeps_current_month(self, db_session):
        now = utcnow()
        assert numbering_service.preview_next_number("PO", "2024") == f"PO2024{now.month:02d}-00001"

    @pytest.mark.parametrize("override", ["20251", "2025-03", "202513"])
    def test_preview_next_number_rejects_bad_period(self, db_session, override):
        with pytest.raises(ValidationError):
            numbering_service.preview_next_number("PO", override)

    def test_preview_next_number_rejects_unknown_code(self, db_session):
        with pytest.raises(ValidationError):
            numbering_service.preview_next_number("XX")

    def test_party_codes_are_yearly(self, db_session):
        year = utcnow().year
        assert numbering_service.allocate("vendor") == f"VEND{year}001"
        assert numbering_service.allocate("vendor") == f"VEND{year}002"
        assert numbering_service.allocate("customer") == f"CUST{year}001"
