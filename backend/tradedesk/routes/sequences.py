# Overview: Flask API routes for document number previews and allocation.

# backend/tradedesk/routes/sequences.py
"""
Sequence API Routes

GET /api/sequences/preview?type=PO&date=202501
    Next number for a document code, without allocating it.

GET /api/sequences/next?type=purchase_order&preview=true
    preview=true (default) reads only; preview=false allocates and commits.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import TradeDeskError, ValidationError
from ..services import numbering_service
from ..services.concurrency import run_in_unit_of_work


sequences_bp = Blueprint("sequences", __name__, url_prefix="/api/sequences")


def _parse_bool(value, default: bool) -> bool:
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes"):
        return True
    if lowered in ("0", "false", "no"):
        return False
    raise ValidationError("preview must be true or false")


@sequences_bp.get("/preview")
def preview_number_route():
    try:
        code = request.args.get("type", "")
        number = numbering_service.preview_next_number(code, request.args.get("date"))
        return jsonify({"type": code, "next_number": number}), 200
    except TradeDeskError as e:
        return jsonify({"error": e.to_dict()}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to preview next number")
        return jsonify({"error": {"kind": "internal_error", "message": "Internal server error"}}), 500


@sequences_bp.get("/next")
def next_number_route():
    try:
        transaction_type = request.args.get("type", "")
        preview_only = _parse_bool(request.args.get("preview"), True)
        if preview_only:
            number = numbering_service.get_next_transaction_number(transaction_type, True)
        else:
            number = run_in_unit_of_work(
                lambda: numbering_service.get_next_transaction_number(transaction_type, False)
            )
        return jsonify({"type": transaction_type, "number": number, "preview": preview_only}), 200
    except TradeDeskError as e:
        return jsonify({"error": e.to_dict()}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get next transaction number")
        return jsonify({"error": {"kind": "internal_error", "message": "Internal server error"}}), 500
