# Overview: Service-layer VAT aggregation for approved transactions.

"""
VAT aggregation

Approved transactions append their taxed lines to the DRAFT report of the
transaction's calendar month:

    OUTPUT VAT   sales_order, purchase_return
    INPUT VAT    purchase_order, sales_return

Lines with zero VAT are skipped. The report is created on first use and its
totals are kept current (net payable = output - input). Finalising a report
is a separate step outside this module.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Customer, Transaction, VATReport, VATReportItem, Vendor
from ..time_utils import month_bounds, utcnow
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


OUTPUT_TYPES = frozenset({"sales_order", "purchase_return"})
INPUT_TYPES = frozenset({"purchase_order", "sales_return"})


def vat_direction(transaction_type: str) -> str | None:
    if transaction_type in OUTPUT_TYPES:
        return "OUTPUT"
    if transaction_type in INPUT_TYPES:
        return "INPUT"
    return None


def get_open_report(when: datetime | None = None, *, lock: bool = False) -> VATReport | None:
    """The DRAFT report covering when's calendar month, if one exists."""
    period_start, period_end = month_bounds(when or utcnow())
    query = db.session.query(VATReport).filter_by(
        period_start=period_start,
        period_end=period_end,
        status="DRAFT",
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def _party_name(party_type: str, party_id: int) -> str:
    model = Vendor if party_type == "Vendor" else Customer
    party = db.session.get(model, party_id)
    return party.name if party is not None else "Unknown"


def record_transaction_vat(transaction: Transaction, actor: str) -> list[VATReportItem]:
    """Append the transaction's VAT lines to its month's draft report."""
    direction = vat_direction(transaction.type)
    if direction is None:
        return []

    taxed_lines = [line for line in transaction.lines if line.vat_amount_cents > 0]
    if not taxed_lines:
        return []

    when = transaction.date or utcnow()
    report = get_open_report(when, lock=True)
    if report is None:
        period_start, period_end = month_bounds(when)
        report = VATReport(
            period_start=period_start,
            period_end=period_end,
            status="DRAFT",
            total_vat_output_cents=0,
            total_vat_input_cents=0,
            net_vat_payable_cents=0,
            generated_by=actor,
        )
        db.session.add(report)

    party_name = _party_name(transaction.party_type, transaction.party_id)
    items = []
    for line in taxed_lines:
        item = VATReportItem(
            direction=direction,
            transaction_id=transaction.id,
            transaction_no=transaction.display_number,
            item_id=line.item_id,
            item_code=line.item_code,
            description=line.description,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
            vat_amount_cents=line.vat_amount_cents,
            vat_rate_bps=line.vat_rate_bps,
            party_id=transaction.party_id,
            party_name=party_name,
            party_type=transaction.party_type,
            date=when,
        )
        report.items.append(item)
        items.append(item)

    added = sum(item.vat_amount_cents for item in items)
    if direction == "OUTPUT":
        report.total_vat_output_cents += added
    else:
        report.total_vat_input_cents += added
    report.net_vat_payable_cents = report.total_vat_output_cents - report.total_vat_input_cents

    db.session.flush()
    logger.debug("Added %d %s VAT item(s) for transaction %s to report %s", len(items), direction, transaction.id, report.id)
    return items
