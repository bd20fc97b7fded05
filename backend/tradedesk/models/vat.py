from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class VATReport(db.Model):
    """
    Monthly VAT aggregate.

    One DRAFT report per calendar month collects items from approved
    transactions; a separate close step marks it FINAL.
    """
    __tablename__ = "vat_reports"
    __table_args__ = (
        db.Index("ix_vat_reports_period_status", "period_start", "period_end", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="DRAFT")

    total_vat_output_cents = db.Column(db.Integer, nullable=False, default=0)
    total_vat_input_cents = db.Column(db.Integer, nullable=False, default=0)
    net_vat_payable_cents = db.Column(db.Integer, nullable=False, default=0)

    generated_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    items = db.relationship(
        "VATReportItem",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="VATReportItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period_start": to_utc_z(self.period_start),
            "period_end": to_utc_z(self.period_end),
            "status": self.status,
            "total_vat_output_cents": self.total_vat_output_cents,
            "total_vat_input_cents": self.total_vat_input_cents,
            "net_vat_payable_cents": self.net_vat_payable_cents,
            "generated_by": self.generated_by,
            "items": [item.to_dict() for item in self.items],
        }


class VATReportItem(db.Model):
    __tablename__ = "vat_report_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("vat_reports.id", ondelete="CASCADE"), nullable=False, index=True)

    direction = db.Column(db.String(8), nullable=False)  # OUTPUT | INPUT

    transaction_id = db.Column(db.Integer, nullable=False, index=True)
    transaction_no = db.Column(db.String(64), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    item_code = db.Column(db.String(64), nullable=False, default="")
    description = db.Column(db.String(255), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    vat_amount_cents = db.Column(db.Integer, nullable=False)
    vat_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    party_id = db.Column(db.Integer, nullable=False)
    party_name = db.Column(db.String(255), nullable=False, default="Unknown")
    party_type = db.Column(db.String(16), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    report = db.relationship("VATReport", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "direction": self.direction,
            "transaction_id": self.transaction_id,
            "transaction_no": self.transaction_no,
            "item_id": self.item_id,
            "item_code": self.item_code,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "vat_amount_cents": self.vat_amount_cents,
            "vat_rate_bps": self.vat_rate_bps,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "party_type": self.party_type,
            "date": to_utc_z(self.date),
        }
