# Overview: Service-layer operations for document sequences; encapsulates business logic and database work.

"""
Sequence Allocator

Atomic, type- and period-partitioned counters behind every human-readable
document number.

ALLOCATION (get_next):
1. Conditional increment: UPDATE sequences SET current = current + 1
   WHERE (sequence_type, period) matches. The row stays write-locked until
   the caller's unit of work ends, so concurrent callers serialize on it.
2. No row yet: INSERT one with current=1 inside a SAVEPOINT. If another
   caller created it first, the unique constraint fires, only the savepoint
   is rolled back, and the increment path is retried.
3. Bounded: SEQUENCE_MAX_ATTEMPTS attempts with capped exponential backoff,
   then AllocationExhausted.

Allocation runs in the caller's session and is never committed here: if the
surrounding operation aborts, the number is released with it.

PREVIEW never writes: it reads current and formats current + 1.
"""

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import AllocationExhausted, ValidationError
from ..extensions import db
from ..models import Sequence
from ..models.sequences import NO_PERIOD
from .concurrency import capped_backoff

logger = logging.getLogger(__name__)


SEQUENCE_TYPES = frozenset({
    "customer",
    "vendor",
    "sales_order",
    "purchase_order",
    "sales_return",
    "purchase_return",
    "sales_invoice",
    "purchase_invoice",
})


def _validate_type(sequence_type: str) -> None:
    if sequence_type not in SEQUENCE_TYPES:
        raise ValidationError(
            f"Unsupported sequence type '{sequence_type}'. Must be one of: {', '.join(sorted(SEQUENCE_TYPES))}"
        )


def _period_key(period: str | None) -> str:
    if period is None:
        return NO_PERIOD
    period = str(period).strip()
    if len(period) > 8:
        raise ValidationError(f"Invalid sequence period '{period}'")
    return period


def _format(number: int, prefix: str, padding: int) -> str:
    return f"{prefix}{number:0{padding}d}"


def _increment(sequence_type: str, period: str) -> Sequence | None:
    stmt = (
        update(Sequence)
        .where(
            Sequence.sequence_type == sequence_type,
            Sequence.period == period,
        )
        .values(current=Sequence.current + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return (
        db.session.query(Sequence)
        .filter_by(sequence_type=sequence_type, period=period)
        .populate_existing()
        .one()
    )


def get_next(
    sequence_type: str,
    *,
    period: str | None = None,
    prefix: str = "",
    padding: int = 4,
) -> str:
    """
    Atomically allocate the next number for (sequence_type, period).

    prefix/padding only seed a new row; an existing row keeps its own.
    Returns prefix + zero-padded counter, e.g. "SO202501-00001" or "00001".

    Raises:
        ValidationError: unknown sequence type or malformed period
        AllocationExhausted: counter could not be advanced within the retry limit
    """
    _validate_type(sequence_type)
    period_key = _period_key(period)

    config = current_app.config
    attempts = config.get("SEQUENCE_MAX_ATTEMPTS", 10)
    base = config.get("SEQUENCE_BACKOFF_BASE", 0.1)
    cap = config.get("SEQUENCE_BACKOFF_CAP", 2.0)

    last_exc: Exception | None = None
    for attempt in range(attempts):
        seq = _increment(sequence_type, period_key)
        if seq is not None:
            number = _format(seq.current, seq.prefix or prefix, seq.padding or padding)
            logger.debug("Allocated %s from %s/%s", number, sequence_type, period_key or "-")
            return number

        try:
            with db.session.begin_nested():
                seq = Sequence(
                    sequence_type=sequence_type,
                    period=period_key,
                    prefix=prefix,
                    padding=padding,
                    current=1,
                )
                db.session.add(seq)
        except IntegrityError as exc:
            # Another caller created the row first; go back to the increment path.
            last_exc = exc
            logger.debug("Sequence row %s/%s created concurrently, retrying", sequence_type, period_key or "-")
            time.sleep(capped_backoff(attempt, base=base, cap=cap))
            continue

        number = _format(1, prefix, padding)
        logger.info("Started sequence %s/%s at %s", sequence_type, period_key or "-", number)
        return number

    raise AllocationExhausted(
        f"Failed to generate next {sequence_type} number after {attempts} attempts",
        details={"sequence_type": sequence_type, "period": period_key or None, "last_error": str(last_exc) if last_exc else None},
    )


def preview(
    sequence_type: str,
    *,
    period: str | None = None,
    prefix: str = "",
    padding: int = 4,
) -> str:
    """What get_next would return right now. Never increments, never creates."""
    _validate_type(sequence_type)
    period_key = _period_key(period)

    seq = db.session.query(Sequence).filter_by(sequence_type=sequence_type, period=period_key).first()
    if seq is None:
        return _format(1, prefix, padding)
    return _format(seq.current + 1, seq.prefix or prefix, seq.padding or padding)


def peek_current(sequence_type: str, period: str | None = None) -> int:
    """Last allocated counter for a bucket (0 if the bucket does not exist)."""
    _validate_type(sequence_type)
    current = (
        db.session.query(Sequence.current)
        .filter_by(sequence_type=sequence_type, period=_period_key(period))
        .scalar()
    )
    return int(current or 0)


def list_sequences() -> list[Sequence]:
    return db.session.query(Sequence).order_by(Sequence.sequence_type, Sequence.period).all()
