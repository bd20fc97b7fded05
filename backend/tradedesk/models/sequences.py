from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# Period is stored as "" when a bucket is not partitioned; NULL would defeat
# the (sequence_type, period) unique constraint on most databases.
NO_PERIOD = ""


class Sequence(db.Model):
    """
    Atomic document number counters.

    One row per (sequence_type, period). `current` is the last number handed
    out; it only ever moves forward through the allocator's conditional
    increment.
    """
    __tablename__ = "sequences"
    __table_args__ = (
        db.UniqueConstraint("sequence_type", "period", name="uq_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sequence_type = db.Column(db.String(32), nullable=False, index=True)
    period = db.Column(db.String(8), nullable=False, default=NO_PERIOD)
    prefix = db.Column(db.String(32), nullable=False, default="")
    padding = db.Column(db.Integer, nullable=False, default=4)
    current = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Sequence {self.sequence_type!r} period={self.period!r} current={self.current}>"

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.padding}d}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sequence_type": self.sequence_type,
            "period": self.period or None,
            "prefix": self.prefix,
            "padding": self.padding,
            "current": self.current,
            "updated_at": to_utc_z(self.updated_at),
        }
