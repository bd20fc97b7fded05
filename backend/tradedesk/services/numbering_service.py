# Overview: Service-layer numbering policy; decides which document numbers a transaction gets and when.

"""
Numbering Policy

Per document type and manual/auto mode, decides which identifier fields are
populated and from which sequence bucket.

    type             manual  on create                               on approve
    sales_order      no      transaction_no="0000",                  invoice_number = next sales_invoice
                             order_number = next SO<YYYYMM>-NNNNN    (5 digits, global), only if unset
    sales_order      yes     order_number = caller value             invoice_number = order_number
    purchase_order   no      transaction_no = next PO<YYYYMM>-NNNNN  -
    purchase_order   yes     transaction_no = caller value           -
    sales_return /   -       transaction_no = caller value if given,  -
    purchase_return          else next SR|PR<YYYYMM>-NNNNN

Invoice allocation is idempotent: once invoice_number is set, approval never
touches the allocator again.

Manual identifiers are trimmed and must match [A-Za-z0-9-]+.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Transaction
from ..models.transactions import PLACEHOLDER_TRANSACTION_NO
from ..time_utils import month_key, utcnow, year_key
from . import sequence_service

logger = logging.getLogger(__name__)


MANUAL_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9-]+$")
MANUAL_IDENTIFIER_MAX_LENGTH = 64

DOCUMENT_PADDING = 5
PARTY_CODE_PADDING = 3


@dataclass(frozen=True)
class NumberFormat:
    sequence_type: str
    code: str          # short prefix letters; "" for unprefixed buckets
    partition: str     # "month", "year" or "none"
    padding: int = DOCUMENT_PADDING
    separator: str = "-"

    def period_for(self, when: datetime) -> str | None:
        if self.partition == "month":
            return month_key(when)
        if self.partition == "year":
            return year_key(when)
        return None

    def prefix_for(self, period: str | None) -> str:
        if not self.code:
            return ""
        if period is None:
            return self.code
        return f"{self.code}{period}{self.separator}"


NUMBER_FORMATS: dict[str, NumberFormat] = {
    "sales_order": NumberFormat("sales_order", "SO", "month"),
    "purchase_order": NumberFormat("purchase_order", "PO", "month"),
    "sales_return": NumberFormat("sales_return", "SR", "month"),
    "purchase_return": NumberFormat("purchase_return", "PR", "month"),
    "sales_invoice": NumberFormat("sales_invoice", "", "none"),
    "purchase_invoice": NumberFormat("purchase_invoice", "PI", "month"),
    "customer": NumberFormat("customer", "CUST", "year", padding=PARTY_CODE_PADDING, separator=""),
    "vendor": NumberFormat("vendor", "VEND", "year", padding=PARTY_CODE_PADDING, separator=""),
}

# Short codes accepted by preview_next_number
DOCUMENT_CODES = {
    "SO": "sales_order",
    "PO": "purchase_order",
    "SR": "sales_return",
    "PR": "purchase_return",
    "SI": "sales_invoice",
    "PI": "purchase_invoice",
}

ORDER_TYPES = ("sales_order", "purchase_order", "sales_return", "purchase_return")

INVOICE_BUCKET_BY_ORDER = {
    "sales_order": "sales_invoice",
    "purchase_order": "purchase_invoice",
}


# =============================================================================
# FORMATTING / ALLOCATION PRIMITIVES
# =============================================================================

def _format_for(sequence_type: str) -> NumberFormat:
    fmt = NUMBER_FORMATS.get(sequence_type)
    if fmt is None:
        raise ValidationError(f"Unsupported document type '{sequence_type}'")
    return fmt


def allocate(sequence_type: str, when: datetime | None = None) -> str:
    """Allocate the next formatted number for a bucket (increments)."""
    fmt = _format_for(sequence_type)
    period = fmt.period_for(when or utcnow())
    return sequence_service.get_next(
        fmt.sequence_type,
        period=period,
        prefix=fmt.prefix_for(period),
        padding=fmt.padding,
    )


def preview(sequence_type: str, when: datetime | None = None) -> str:
    """Formatted number allocate() would return now. No side effect."""
    fmt = _format_for(sequence_type)
    period = fmt.period_for(when or utcnow())
    return sequence_service.preview(
        fmt.sequence_type,
        period=period,
        prefix=fmt.prefix_for(period),
        padding=fmt.padding,
    )


def validate_manual_identifier(value, field: str = "identifier") -> str:
    """Trim and validate a caller-supplied document number."""
    if value is None:
        raise ValidationError(f"{field} is required for manual numbering")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{field} is required for manual numbering")
    if len(cleaned) > MANUAL_IDENTIFIER_MAX_LENGTH:
        raise ValidationError(f"{field} must be at most {MANUAL_IDENTIFIER_MAX_LENGTH} characters")
    if not MANUAL_IDENTIFIER_RE.match(cleaned):
        raise ValidationError(f"{field} may only contain letters, digits and dashes")
    return cleaned


def ensure_transaction_no_available(transaction_no: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Transaction.id).filter(Transaction.transaction_no == transaction_no)
    if exclude_id is not None:
        q = q.filter(Transaction.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(
            f"Transaction number {transaction_no} already exists",
            details={"transaction_no": transaction_no},
        )


def ensure_order_number_available(transaction_type: str, order_number: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Transaction.id).filter(
        Transaction.type == transaction_type,
        Transaction.order_number == order_number,
    )
    if exclude_id is not None:
        q = q.filter(Transaction.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(
            f"Order number {order_number} already exists",
            details={"order_number": order_number},
        )


# =============================================================================
# POLICY: CREATE
# =============================================================================

def assign_on_create(transaction: Transaction, payload: dict) -> None:
    """
    Populate transaction_no / order_number for a new transaction.

    Manual identifiers are validated (and checked for duplicates) before any
    allocator call, so a rejected request never consumes a number.
    """
    manual = bool(transaction.number_manual)
    when = transaction.date or utcnow()
    supplied_no = payload.get("transaction_no")
    if isinstance(supplied_no, str) and not supplied_no.strip():
        supplied_no = None

    if transaction.type == "sales_order":
        transaction.transaction_no = PLACEHOLDER_TRANSACTION_NO
        if manual:
            order_number = validate_manual_identifier(payload.get("order_number"), "order_number")
            ensure_order_number_available(transaction.type, order_number)
            transaction.order_number = order_number
        else:
            transaction.order_number = allocate("sales_order", when)
        return

    if transaction.type == "purchase_order":
        if manual or supplied_no is not None:
            transaction_no = validate_manual_identifier(supplied_no, "transaction_no")
            ensure_transaction_no_available(transaction_no)
            transaction.transaction_no = transaction_no
        else:
            transaction.transaction_no = allocate("purchase_order", when)
        return

    if transaction.type in ("sales_return", "purchase_return"):
        if manual or supplied_no is not None:
            transaction_no = validate_manual_identifier(supplied_no, "transaction_no")
            ensure_transaction_no_available(transaction_no)
            transaction.transaction_no = transaction_no
        else:
            transaction.transaction_no = allocate(transaction.type, when)
        return

    raise ValidationError(f"Unsupported transaction type '{transaction.type}'")


# =============================================================================
# POLICY: APPROVE
# =============================================================================

def assign_on_approve(transaction: Transaction) -> str | None:
    """
    Allocate the invoice number of an approved sales order.

    Idempotent: returns the existing invoice_number untouched when set.
    Non-sales types get no invoice number.
    """
    if transaction.type != "sales_order":
        return None

    if transaction.invoice_number:
        logger.debug("Transaction %s already invoiced as %s", transaction.id, transaction.invoice_number)
        return transaction.invoice_number

    if transaction.number_manual:
        transaction.invoice_number = transaction.order_number
    else:
        transaction.invoice_number = allocate("sales_invoice", transaction.date)

    logger.info("Transaction %s invoiced as %s", transaction.id, transaction.invoice_number)
    return transaction.invoice_number


# =============================================================================
# NEXT-NUMBER OPERATIONS
# =============================================================================

def _require_order_type(transaction_type: str) -> None:
    if transaction_type not in ORDER_TYPES:
        raise ValidationError(
            f"Invalid transaction type '{transaction_type}'. Must be one of: {', '.join(ORDER_TYPES)}"
        )


def get_next_order_number(transaction_type: str, when: datetime | None = None) -> str:
    """Allocate an order number (SO/PO/SR/PR<YYYYMM>-NNNNN)."""
    _require_order_type(transaction_type)
    return allocate(transaction_type, when)


def get_next_invoice_number(transaction_type: str, when: datetime | None = None) -> str:
    """Allocate an invoice number: 5-digit global for sales, PI<YYYYMM>-NNNNN for purchases."""
    bucket = INVOICE_BUCKET_BY_ORDER.get(transaction_type)
    if bucket is None:
        raise ValidationError(f"No invoice numbering for transaction type '{transaction_type}'")
    return allocate(bucket, when)


def get_next_transaction_number(transaction_type: str, preview_only: bool) -> str:
    """preview_only=True reads without incrementing; False allocates."""
    _require_order_type(transaction_type)
    if preview_only:
        return preview(transaction_type)
    return allocate(transaction_type)


def _parse_period_override(value) -> datetime | None:
    if value is None or value == "":
        return None
    s = str(value).strip()
    now = utcnow()
    if not s.isdigit():
        raise ValidationError("Invalid date format. Use YYYYMM or YYYY")
    if len(s) == 6:
        year, month = int(s[:4]), int(s[4:])
    elif len(s) == 4:
        year, month = int(s), now.month
    else:
        raise ValidationError("Invalid date format. Use YYYYMM or YYYY")
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month in date override")
    return datetime(year, month, 1)


def resolve_document_code(code: str) -> str:
    if not code:
        raise ValidationError("Missing document type")
    key = str(code).strip()
    resolved = DOCUMENT_CODES.get(key.upper())
    if resolved is None and key in NUMBER_FORMATS and key in DOCUMENT_CODES.values():
        resolved = key
    if resolved is None:
        raise ValidationError(f"Unsupported sequence type: {code}")
    return resolved


def preview_next_number(document_type_code: str, period_override=None) -> str:
    """
    Preview the next number for a document code (PO, SO, SI, PI, SR, PR or full
    type name) without side effects. period_override is YYYYMM or YYYY.
    """
    sequence_type = resolve_document_code(document_type_code)
    when = _parse_period_override(period_override)
    return preview(sequence_type, when)
