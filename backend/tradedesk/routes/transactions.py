# Overview: Flask API routes for transaction operations; parses input and returns JSON responses.

# backend/tradedesk/routes/transactions.py
"""
Transaction API Routes

Thin JSON layer over services.transaction_service. The acting user is taken
from the X-Actor header (default "system"); authentication is handled in
front of this application.

ERRORS:
- TradeDeskError subclasses answer {"error": {"kind", "message"[, "details"]}}
  with their own status code
- anything else is logged and answered with a generic 500
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import TradeDeskError
from ..services import transaction_service


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _actor() -> str:
    return (request.headers.get("X-Actor") or "system").strip() or "system"


def _error_response(exc: TradeDeskError):
    return jsonify({"error": exc.to_dict()}), exc.status_code


def _internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": {"kind": "internal_error", "message": "Internal server error"}}), 500


# =============================================================================
# CRUD
# =============================================================================

@transactions_bp.post("")
def create_transaction_route():
    """
    Create a DRAFT transaction.

    Request body:
    {
        "type": "purchase_order",
        "party_id": 1,
        "party_type": "Vendor",
        "number_manual": false,          (optional)
        "transaction_no": "PO-CUSTOM-1", (optional, manual / returns)
        "order_number": "...",           (manual sales orders)
        "items": [{"item_id": 3, "quantity": 10, "unit_price_cents": 250, "vat_rate_bps": 500}]
    }

    Returns:
        201: {"transaction": {...}}
        400 / 404 / 409: structured error
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction = transaction_service.create_transaction(data, _actor())
        return jsonify({"transaction": transaction.to_dict()}), 201
    except TradeDeskError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to create transaction")


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except TradeDeskError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to load transaction")


@transactions_bp.put("/<int:transaction_id>")
def update_transaction_route(transaction_id: int):
    """Edit a DRAFT transaction. 409 once it has been processed."""
    try:
        data = request.get_json(silent=True) or {}
        transaction = transaction_service.update_transaction(transaction_id, data, _actor())
        return jsonify({"transaction": transaction.to_dict()}), 200
    except TradeDeskError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to update transaction")


@transactions_bp.delete("/<int:transaction_id>")
def delete_transaction_route(transaction_id: int):
    try:
        transaction_service.delete_transaction(transaction_id, _actor())
        return jsonify({"deleted": True, "id": transaction_id}), 200
    except TradeDeskError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to delete transaction")


# =============================================================================
# LIFECYCLE
# =============================================================================

@transactions_bp.post("/<int:transaction_id>/<string:action>")
def process_transaction_route(transaction_id: int, action: str):
    """
    approve / reject / cancel.

    Returns:
        200: {"transaction": {...}}
        409: already processed or unknown action
    """
    try:
        transaction = transaction_service.process_transaction(transaction_id, action, _actor())
        return jsonify({"transaction": transaction.to_dict()}), 200
    except TradeDeskError as e:
        return _error_response(e)
    except Exception:
        return _internal_error(f"Failed to {action} transaction")
