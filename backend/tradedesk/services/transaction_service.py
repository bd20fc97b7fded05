# Overview: Service-layer transaction lifecycle; encapsulates business logic and database work.

"""
Transaction Orchestrator

LIFECYCLE:
    DRAFT -> APPROVED | REJECTED | CANCELLED
    APPROVED -> CANCELLED        (inventory + ledger reversed)

    DRAFT / REJECTED / CANCELLED may be hard-deleted as is; deleting an
    APPROVED transaction runs the cancel reversal first.

APPROVE ORDER:
    1. numbering      invoice number for sales orders (idempotent)
    2. inventory      stock movements, weighted-average cost for purchases
    3. VAT            lines appended to the month's draft report
    4. party ledger   balance change + DebitLog / CreditLog entry
    5. purchase log   status follows the order
    6. status         APPROVED + type flag (grn / invoice / credit note)

Every operation is one unit of work: any error rolls back stock, balances,
ledger rows and allocated numbers together.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, StateError, ValidationError
from ..extensions import db
from ..models import PurchaseLog, Transaction, TransactionLine
from ..money import vat_amount_cents
from ..observability import emit_inbound
from ..time_utils import coerce_datetime, utcnow
from . import (
    inventory_effect_service,
    numbering_service,
    party_ledger_service,
    party_service,
    stock_service,
    vat_service,
)
from .concurrency import lock_for_update, run_in_unit_of_work

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

TRANSACTION_TYPES = ("sales_order", "purchase_order", "sales_return", "purchase_return")

STATUS_DRAFT = "DRAFT"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
STATUS_CANCELLED = "CANCELLED"

PROCESSED_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELLED, "PAID", "PARTIAL"})

ACTIONS = ("approve", "reject", "cancel")

PRIORITIES = ("Low", "Medium", "High", "Urgent")

UPDATABLE_FIELDS = frozenset({
    "items",
    "date",
    "delivery_date",
    "terms",
    "notes",
    "priority",
    "vendor_reference",
    "discount_cents",
    "order_number",
})

# Update keys mirrored onto a purchase order's PurchaseLog
PURCHASE_LOG_FIELDS = frozenset({"items", "date", "delivery_date", "terms", "notes", "priority"})

PARTY_KIND_BY_TYPE = {
    "purchase_order": "Vendor",
    "purchase_return": "Vendor",
    "sales_order": "Customer",
    "sales_return": "Customer",
}

APPROVAL_FLAGS = {
    "purchase_order": "grn_generated",
    "sales_order": "invoice_generated",
    "sales_return": "credit_note_issued",
}


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def _int_field(payload: dict, key: str, *, default=None, minimum: int | None = None, required: bool = False):
    value = payload.get(key)
    if value is None or value == "":
        if required:
            raise ValidationError(f"{key} is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None
    if number != value and not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return number


def _datetime_field(payload: dict, key: str):
    try:
        return coerce_datetime(payload.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date") from None


def _text_field(payload: dict, key: str, default: str = "") -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _bool_field(payload: dict, key: str, default: bool = False) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", ""):
        return False
    raise ValidationError(f"{key} must be a boolean")


def _priority(payload: dict, default: str = "Medium") -> str:
    value = payload.get("priority")
    if value is None or value == "":
        return default
    if value not in PRIORITIES:
        raise ValidationError(f"priority must be one of: {', '.join(PRIORITIES)}")
    return value


def _parse_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Items are required")

    parsed = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} must be an object")
        try:
            parsed.append({
                "item_id": _int_field(item, "item_id", required=True, minimum=1),
                "item_code": _text_field(item, "item_code").strip(),
                "description": _text_field(item, "description").strip(),
                "quantity": _int_field(item, "quantity", required=True, minimum=1),
                "unit_price_cents": _int_field(item, "unit_price_cents", default=0, minimum=0),
                "vat_rate_bps": _int_field(item, "vat_rate_bps", default=0, minimum=0),
            })
        except ValidationError as exc:
            raise ValidationError(f"Item {index}: {exc.message}") from None
    return parsed


def _build_lines(parsed_items: list[dict]) -> list[TransactionLine]:
    """Price each line: value = qty * unit price, VAT on value, total = value + VAT."""
    lines = []
    for line_no, item in enumerate(parsed_items, start=1):
        stock = stock_service.get_stock_by_item(item["item_id"])
        line_value = item["quantity"] * item["unit_price_cents"]
        vat = vat_amount_cents(line_value, item["vat_rate_bps"])
        lines.append(TransactionLine(
            line_no=line_no,
            item_id=item["item_id"],
            item_code=item["item_code"] or stock.item_code,
            description=item["description"] or stock.name,
            quantity=item["quantity"],
            unit_price_cents=item["unit_price_cents"],
            vat_rate_bps=item["vat_rate_bps"],
            line_value_cents=line_value,
            vat_amount_cents=vat,
            line_total_cents=line_value + vat,
        ))
    return lines


def _purchase_log_items(lines: list[TransactionLine]) -> list[dict]:
    return [
        {
            "item_id": line.item_id,
            "item_code": line.item_code,
            "description": line.description,
            "quantity": line.quantity,
            "unit_price_cents": line.unit_price_cents,
            "vat_rate_bps": line.vat_rate_bps,
            "line_total_cents": line.line_total_cents,
        }
        for line in lines
    ]


# =============================================================================
# LOADERS
# =============================================================================

def _load(transaction_id: int, *, lock: bool = False) -> Transaction:
    query = db.session.query(Transaction).filter_by(id=transaction_id)
    if lock:
        query = lock_for_update(query)
    transaction = query.first()
    if transaction is None:
        raise NotFoundError(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})
    return transaction


def _purchase_log_for(transaction: Transaction) -> PurchaseLog | None:
    return db.session.query(PurchaseLog).filter_by(transaction_id=transaction.id).first()


def _set_purchase_log_status(transaction: Transaction, status: str) -> None:
    if transaction.type != "purchase_order":
        return
    log = _purchase_log_for(transaction)
    if log is not None:
        log.status = status


def _flush_or_conflict(transaction: Transaction) -> None:
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Document number already exists",
            details={"transaction_no": transaction.transaction_no, "order_number": transaction.order_number},
        ) from exc


def get_transaction(transaction_id: int) -> Transaction:
    return _load(transaction_id)


# =============================================================================
# CREATE
# =============================================================================

def create_transaction(payload: dict, actor: str) -> Transaction:
    """
    Create a DRAFT transaction with priced lines and its document numbers.

    Purchase orders also get their companion PurchaseLog. An incoming status
    is ignored. total_amount_cents, when supplied, overrides the computed
    sum of line totals.

    Raises:
        ValidationError: missing / malformed fields or manual identifier
        NotFoundError: party or stock record absent
        ConflictError: duplicate transaction_no / order_number
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")
    emit_inbound("create_transaction:incoming", payload)

    def _op() -> Transaction:
        transaction_type = payload.get("type")
        if transaction_type not in TRANSACTION_TYPES:
            raise ValidationError(
                f"Invalid transaction type '{transaction_type}'. Must be one of: {', '.join(TRANSACTION_TYPES)}"
            )
        if payload.get("party_id") in (None, "") or not payload.get("party_type"):
            raise ValidationError("Missing required fields: party_id and party_type")
        party_type = party_service.normalize_party_kind(payload.get("party_type"))
        if party_type != PARTY_KIND_BY_TYPE[transaction_type]:
            raise ValidationError(
                f"{transaction_type} requires a {PARTY_KIND_BY_TYPE[transaction_type]} party, got {party_type}"
            )
        party_id = _int_field(payload, "party_id", required=True, minimum=1)
        parsed_items = _parse_items(payload.get("items"))
        total_override = _int_field(payload, "total_amount_cents", minimum=0)
        discount = _int_field(payload, "discount_cents", default=0, minimum=0)
        when = _datetime_field(payload, "date") or utcnow()
        delivery_date = _datetime_field(payload, "delivery_date")
        priority = _priority(payload)
        terms = _text_field(payload, "terms")
        notes = _text_field(payload, "notes")
        vendor_reference = payload.get("vendor_reference") or None

        party_service.find_party_by_id(party_type, party_id)
        lines = _build_lines(parsed_items)
        computed_total = sum(line.line_total_cents for line in lines)

        transaction = Transaction(
            type=transaction_type,
            number_manual=_bool_field(payload, "number_manual"),
            party_id=party_id,
            party_type=party_type,
            status=STATUS_DRAFT,
            total_amount_cents=total_override if total_override is not None else computed_total,
            discount_cents=discount,
            date=when,
            delivery_date=delivery_date,
            terms=terms,
            notes=notes,
            priority=priority,
            vendor_reference=vendor_reference,
            created_by=actor,
        )
        transaction.lines = lines

        numbering_service.assign_on_create(transaction, payload)

        db.session.add(transaction)
        _flush_or_conflict(transaction)

        if transaction.type == "purchase_order":
            db.session.add(PurchaseLog(
                transaction_id=transaction.id,
                transaction_no=transaction.transaction_no,
                party_id=transaction.party_id,
                items=_purchase_log_items(lines),
                total_amount_cents=transaction.total_amount_cents,
                date=transaction.date,
                delivery_date=transaction.delivery_date,
                terms=transaction.terms,
                notes=transaction.notes,
                priority=transaction.priority,
                status=STATUS_DRAFT,
            ))
            db.session.flush()

        return transaction

    transaction = run_in_unit_of_work(_op)
    logger.info(
        "Created %s %s (id=%s) by %s",
        transaction.type, transaction.display_number, transaction.id, actor,
    )
    return transaction


# =============================================================================
# UPDATE
# =============================================================================

def update_transaction(transaction_id: int, payload: dict, actor: str) -> Transaction:
    """
    Edit a DRAFT transaction.

    Only items, dates, terms, notes, priority, vendor_reference,
    discount_cents and (manual sales orders) order_number are taken from the
    payload. New items re-price the lines and the total. A purchase order's
    log is rewritten whenever one of its mirrored fields is part of the edit.

    Raises:
        NotFoundError: transaction (or its purchase log) absent
        StateError: transaction already processed
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")
    emit_inbound("update_transaction:incoming", payload, transaction_id=transaction_id)

    ignored = sorted(set(payload) - UPDATABLE_FIELDS)
    if ignored:
        logger.debug("Ignoring non-updatable fields for transaction %s: %s", transaction_id, ", ".join(ignored))

    def _op() -> Transaction:
        transaction = _load(transaction_id, lock=True)
        if transaction.status in PROCESSED_STATUSES:
            raise StateError(
                f"Cannot edit processed transaction (status {transaction.status})",
                details={"transaction_id": transaction.id, "status": transaction.status},
            )

        if "order_number" in payload:
            if transaction.type != "sales_order" or not transaction.number_manual:
                raise ValidationError("order_number can only be changed on manually numbered sales orders")
            order_number = numbering_service.validate_manual_identifier(payload["order_number"], "order_number")
            numbering_service.ensure_order_number_available(transaction.type, order_number, exclude_id=transaction.id)
            transaction.order_number = order_number

        items_changed = "items" in payload
        if items_changed:
            transaction.lines = _build_lines(_parse_items(payload["items"]))
            transaction.total_amount_cents = sum(line.line_total_cents for line in transaction.lines)

        if "date" in payload:
            transaction.date = _datetime_field(payload, "date") or transaction.date
        if "delivery_date" in payload:
            transaction.delivery_date = _datetime_field(payload, "delivery_date")
        if "terms" in payload:
            transaction.terms = _text_field(payload, "terms")
        if "notes" in payload:
            transaction.notes = _text_field(payload, "notes")
        if "priority" in payload:
            transaction.priority = _priority(payload, transaction.priority)
        if "vendor_reference" in payload:
            transaction.vendor_reference = payload.get("vendor_reference") or None
        if "discount_cents" in payload:
            transaction.discount_cents = _int_field(payload, "discount_cents", default=0, minimum=0)

        if transaction.type == "purchase_order" and PURCHASE_LOG_FIELDS & payload.keys():
            log = _purchase_log_for(transaction)
            if log is None:
                raise NotFoundError(
                    f"Purchase log for transaction {transaction.id} not found",
                    details={"transaction_id": transaction.id},
                )
            log.items = _purchase_log_items(transaction.lines)
            log.total_amount_cents = transaction.total_amount_cents
            log.date = transaction.date
            log.delivery_date = transaction.delivery_date
            log.terms = transaction.terms
            log.notes = transaction.notes
            log.priority = transaction.priority

        _flush_or_conflict(transaction)
        return transaction

    transaction = run_in_unit_of_work(_op)
    logger.info("Updated transaction %s by %s", transaction.id, actor)
    return transaction


# =============================================================================
# PROCESS (approve / reject / cancel)
# =============================================================================

def _approve(transaction: Transaction, actor: str) -> None:
    numbering_service.assign_on_approve(transaction)
    inventory_effect_service.apply(transaction, actor)
    vat_service.record_transaction_vat(transaction, actor)
    party_ledger_service.apply(transaction, actor)
    _set_purchase_log_status(transaction, STATUS_APPROVED)

    transaction.status = STATUS_APPROVED
    flag = APPROVAL_FLAGS.get(transaction.type)
    if flag is not None:
        setattr(transaction, flag, True)


def _reverse_effects(transaction: Transaction, actor: str) -> None:
    inventory_effect_service.reverse(transaction.id, actor, reference_number=transaction.display_number)
    party_ledger_service.reverse(transaction, actor)


def process_transaction(transaction_id: int, action: str, actor: str) -> Transaction:
    """
    Apply approve / reject / cancel.

    Raises:
        NotFoundError: transaction absent
        StateError: unknown action, or transaction already processed
            (cancel of an APPROVED transaction is the one exception)
    """
    normalized = (action or "").strip().lower()
    if normalized not in ACTIONS:
        raise StateError(f"Invalid action '{action}'. Must be one of: {', '.join(ACTIONS)}")

    def _op() -> Transaction:
        transaction = _load(transaction_id, lock=True)
        previous_status = transaction.status
        was_approved = previous_status == STATUS_APPROVED

        if previous_status in PROCESSED_STATUSES and not (normalized == "cancel" and was_approved):
            raise StateError(
                f"Transaction already processed (status {previous_status})",
                details={"transaction_id": transaction.id, "status": previous_status, "action": normalized},
            )

        if normalized == "approve":
            _approve(transaction, actor)
        elif normalized == "reject":
            _set_purchase_log_status(transaction, STATUS_REJECTED)
            transaction.status = STATUS_REJECTED
        else:
            if was_approved:
                _reverse_effects(transaction, actor)
            _set_purchase_log_status(transaction, STATUS_CANCELLED)
            transaction.status = STATUS_CANCELLED

        db.session.flush()
        return transaction

    transaction = run_in_unit_of_work(_op)
    logger.info(
        "Transaction %s %s -> %s by %s",
        transaction.id, normalized, transaction.status, actor,
    )
    return transaction


# =============================================================================
# DELETE
# =============================================================================

def delete_transaction(transaction_id: int, actor: str) -> None:
    """
    Hard-delete a transaction (and its purchase log).

    An APPROVED transaction is reversed first, leaving the same stock and
    balances as cancel followed by delete. Movements and ledger entries stay.
    """
    def _op() -> str:
        transaction = _load(transaction_id, lock=True)
        if transaction.status == STATUS_APPROVED:
            _reverse_effects(transaction, actor)

        if transaction.type == "purchase_order":
            log = _purchase_log_for(transaction)
            if log is not None:
                db.session.delete(log)

        status = transaction.status
        db.session.delete(transaction)
        db.session.flush()
        return status

    status = run_in_unit_of_work(_op)
    logger.info("Deleted transaction %s (was %s) by %s", transaction_id, status, actor)
