# Overview: Service-layer party balance effects; encapsulates business logic and database work.

"""
Party Ledger Engine

APPLY (on approval):
    purchase_order   +total   vendor payable grows
    purchase_return  -total   vendor payable shrinks
    sales_order      -total   customer receivable grows (negative balance)
    sales_return     +total   customer receivable shrinks

    new balance = party balance + delta, written back to the party, and one
    ledger row appended (DebitLog for vendors, CreditLog for customers) holding
    the signed amount and the balance after it.

REVERSE (on cancel / delete of an approved transaction): append a
"<type>_reversed" row with the exact negation of the original amount, status
REVERSED, reference REV-<transaction id>, and move the balance back. The
original row is never touched.

Types outside the table have no balance effect.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import CreditLog, DebitLog, Transaction
from ..time_utils import utcnow
from . import party_service

logger = logging.getLogger(__name__)


def balance_delta(transaction_type: str, total_amount_cents: int) -> int | None:
    """Signed balance change; None for types with no ledger effect."""
    if transaction_type == "purchase_order":
        return total_amount_cents
    if transaction_type == "purchase_return":
        return -total_amount_cents
    if transaction_type == "sales_order":
        return -total_amount_cents
    if transaction_type == "sales_return":
        return total_amount_cents
    return None


def log_model_for(party_kind: str):
    if party_service.normalize_party_kind(party_kind) == "Vendor":
        return DebitLog
    return CreditLog


def _new_entry(log_model, party_id: int, **fields):
    if log_model is DebitLog:
        return DebitLog(vendor_id=party_id, **fields)
    return CreditLog(customer_id=party_id, **fields)


def _party_column(log_model):
    return log_model.vendor_id if log_model is DebitLog else log_model.customer_id


def apply(transaction: Transaction, actor: str):
    """Post the transaction's balance effect; returns the ledger entry, or None."""
    delta = balance_delta(transaction.type, transaction.total_amount_cents)
    if delta is None:
        logger.debug("No ledger effect for transaction type %s", transaction.type)
        return None

    party = party_service.find_party_by_id(transaction.party_type, transaction.party_id, lock=True)
    previous_balance = party.cash_balance_cents
    new_balance = previous_balance + delta
    party_service.update_party_balance(party, new_balance)

    log_model = log_model_for(transaction.party_type)
    entry = _new_entry(
        log_model,
        party.id,
        entry_type=transaction.type,
        date=transaction.date or utcnow(),
        document_number=transaction.display_number,
        amount_cents=delta,
        paid_cents=0,
        balance_cents=new_balance,
        reference=str(transaction.id),
        transaction_id=transaction.id,
        status="UNPAID",
        created_by=actor,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "%s %s balance %d -> %d (transaction %s)",
        transaction.party_type, party.code, previous_balance, new_balance, transaction.id,
    )
    return entry


def find_original_entry(transaction: Transaction):
    """Latest non-reversal entry posted for the transaction, if any."""
    log_model = log_model_for(transaction.party_type)
    return (
        db.session.query(log_model)
        .filter(
            _party_column(log_model) == transaction.party_id,
            log_model.transaction_id == transaction.id,
            log_model.entry_type == transaction.type,
            log_model.reversal_of_id.is_(None),
        )
        .order_by(log_model.id.desc())
        .first()
    )


def reverse(transaction: Transaction, actor: str):
    """Post the exact negation of the transaction's balance effect; returns the reversal entry, or None."""
    delta = balance_delta(transaction.type, transaction.total_amount_cents)
    if delta is None:
        return None

    log_model = log_model_for(transaction.party_type)
    original = find_original_entry(transaction)
    if original is not None:
        already = db.session.query(log_model.id).filter_by(reversal_of_id=original.id).first()
        if already is not None:
            logger.debug("Ledger entry %s already reversed", original.id)
            return None
        delta = original.amount_cents

    party = party_service.find_party_by_id(transaction.party_type, transaction.party_id, lock=True)
    new_balance = party.cash_balance_cents - delta
    party_service.update_party_balance(party, new_balance)

    entry = _new_entry(
        log_model,
        party.id,
        entry_type=f"{transaction.type}_reversed",
        date=utcnow(),
        document_number=transaction.display_number,
        amount_cents=-delta,
        paid_cents=0,
        balance_cents=new_balance,
        reference=f"REV-{transaction.id}",
        transaction_id=transaction.id,
        reversal_of_id=original.id if original is not None else None,
        status="REVERSED",
        created_by=actor,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info("Reversed ledger effect of transaction %s on %s %s", transaction.id, transaction.party_type, party.code)
    return entry
