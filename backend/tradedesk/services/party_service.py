# Overview: Service-layer operations for parties (customers and vendors).

"""
Party lookup / balance capability used by the party ledger engine.

PARTY KINDS: "Customer" and "Vendor". Codes come from the yearly
customer / vendor sequence buckets (CUST2025001, VEND2025001, ...).
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Vendor
from .concurrency import lock_for_update
from . import numbering_service

logger = logging.getLogger(__name__)


PARTY_MODELS = {
    "Customer": Customer,
    "Vendor": Vendor,
}


def normalize_party_kind(kind) -> str:
    if isinstance(kind, str):
        for known in PARTY_MODELS:
            if kind.strip().lower() == known.lower():
                return known
    raise ValidationError(f"Invalid party type '{kind}'. Must be Customer or Vendor")


def _model_for(kind: str):
    return PARTY_MODELS[normalize_party_kind(kind)]


def find_party_by_id(kind: str, party_id: int, *, lock: bool = False):
    """
    Raises:
        NotFoundError: no such customer / vendor
    """
    model = _model_for(kind)
    query = db.session.query(model).filter_by(id=party_id)
    if lock:
        query = lock_for_update(query)
    party = query.first()
    if party is None:
        raise NotFoundError(f"{model.KIND} {party_id} not found", details={"party_id": party_id})
    return party


def update_party_balance(party, new_balance_cents: int):
    party.cash_balance_cents = new_balance_cents
    db.session.flush()
    return party


def register_party(kind: str, name: str, *, code: str | None = None, opening_balance_cents: int = 0):
    """
    Create a customer or vendor, allocating its code when none is given.

    Flushes but does not commit; callers run it inside a unit of work.
    """
    model = _model_for(kind)
    if not name or not name.strip():
        raise ValidationError(f"{model.KIND} name is required")

    if code:
        code = numbering_service.validate_manual_identifier(code, "code").upper()
        if db.session.query(model.id).filter_by(code=code).first() is not None:
            raise ConflictError(f"{model.KIND} code '{code}' already exists")
    else:
        code = numbering_service.allocate(model.KIND.lower())

    party = model(code=code, name=name.strip(), cash_balance_cents=opening_balance_cents)
    db.session.add(party)
    db.session.flush()
    logger.info("Registered %s %s", model.KIND, code)
    return party
