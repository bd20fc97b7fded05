"""
HTTP boundary tests.

Verifies:
- Transaction CRUD and lifecycle endpoints
- Structured error bodies with machine-readable kinds
- Sequence preview / next endpoints
"""

import pytest

from tradedesk.services import sequence_service


@pytest.fixture
def po_body(vendor, stock_item, make_payload):
    return make_payload("purchase_order", vendor, stock_item, quantity=10, unit_price_cents=250)


# =============================================================================
# TRANSACTIONS
# =============================================================================


class TestTransactionRoutes:

    def test_create_get_approve(self, client, db_session, po_body):
        resp = client.post("/api/transactions", json=po_body, headers={"X-Actor": "clerk"})
        assert resp.status_code == 201
        created = resp.get_json()["transaction"]
        assert created["status"] == "DRAFT"
        assert created["created_by"] == "clerk"
        assert created["items"][0]["line_total_cents"] == 2500

        resp = client.get(f"/api/transactions/{created['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["transaction"]["transaction_no"] == created["transaction_no"]

        resp = client.post(f"/api/transactions/{created['id']}/approve")
        assert resp.status_code == 200
        assert resp.get_json()["transaction"]["status"] == "APPROVED"
        assert resp.get_json()["transaction"]["grn_generated"] is True

    def test_update_and_delete(self, client, db_session, po_body):
        created = client.post("/api/transactions", json=po_body).get_json()["transaction"]

        resp = client.put(f"/api/transactions/{created['id']}", json={"priority": "High"})
        assert resp.status_code == 200
        assert resp.get_json()["transaction"]["priority"] == "High"

        resp = client.delete(f"/api/transactions/{created['id']}")
        assert resp.status_code == 200
        assert resp.get_json() == {"deleted": True, "id": created["id"]}

        assert client.get(f"/api/transactions/{created['id']}").status_code == 404

    def test_validation_error_body(self, client, db_session):
        resp = client.post("/api/transactions", json={"type": "purchase_order"})

        assert resp.status_code == 400
        assert resp.get_json()["error"]["kind"] == "validation_error"

    def test_not_found_body(self, client, db_session):
        resp = client.post("/api/transactions/424242/approve")

        assert resp.status_code == 404
        assert resp.get_json()["error"]["kind"] == "not_found"

    def test_duplicate_number_is_conflict(self, client, db_session, po_body):
        po_body.update(number_manual=True, transaction_no="PO-CUSTOM-1")
        assert client.post("/api/transactions", json=po_body).status_code == 201

        resp = client.post("/api/transactions", json=po_body)

        assert resp.status_code == 409
        assert resp.get_json()["error"]["kind"] == "conflict"

    def test_invalid_action_and_processed_edit(self, client, db_session, po_body):
        created = client.post("/api/transactions", json=po_body).get_json()["transaction"]

        resp = client.post(f"/api/transactions/{created['id']}/archive")
        assert resp.status_code == 409
        assert resp.get_json()["error"]["kind"] == "invalid_state"

        client.post(f"/api/transactions/{created['id']}/reject")
        resp = client.put(f"/api/transactions/{created['id']}", json={"notes": "late"})
        assert resp.status_code == 409

    def test_unexpected_error_is_generic_500(self, client, db_session, po_body, monkeypatch):
        from tradedesk.services import transaction_service

        def _boom(payload, actor):
            raise RuntimeError("db exploded: secret detail")

        monkeypatch.setattr(transaction_service, "create_transaction", _boom)

        resp = client.post("/api/transactions", json=po_body)

        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"]["message"] == "Internal server error"
        assert "secret" not in resp.get_data(as_text=True)


# =============================================================================
# SEQUENCES
# =============================================================================


class TestSequenceRoutes:

    def test_preview_with_period(self, client, db_session):
        resp = client.get("/api/sequences/preview?type=PO&date=202503")

        assert resp.status_code == 200
        assert resp.get_json()["next_number"] == "PO202503-00001"

    def test_preview_bad_code(self, client, db_session):
        resp = client.get("/api/sequences/preview?type=ZZ")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["kind"] == "validation_error"

    def test_next_preview_then_allocate(self, client, db_session):
        preview = client.get("/api/sequences/next?type=sales_order").get_json()
        assert preview["preview"] is True

        allocated = client.get("/api/sequences/next?type=sales_order&preview=false").get_json()
        assert allocated["preview"] is False
        assert allocated["number"] == preview["number"]

        again = client.get("/api/sequences/next?type=sales_order&preview=true").get_json()
        assert again["number"] != allocated["number"]
        assert again["number"].endswith("-00002")

    def test_next_bad_preview_flag(self, client, db_session):
        resp = client.get("/api/sequences/next?type=sales_order&preview=maybe")

        assert resp.status_code == 400
        assert sequence_service.list_sequences() == []
