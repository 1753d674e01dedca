"""
Persistent valuation table: one row per paid valuation.
Table: stored_valuation

`version` is bumped on every write; refinement updates are conditional on
the version that was read.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class StoredValuationRow(Base):
    __tablename__ = "stored_valuation"

    id = Column(String(36), primary_key=True)
    status = Column(String(20), nullable=False, index=True)
    tier = Column(String(10), nullable=False)

    # ── Vehicle + result (JSON for flexibility) ──
    attributes_json = Column(JSON, nullable=False)
    result_json = Column(JSON, nullable=True)
    refinement_history_json = Column(JSON, nullable=False, default=list)

    # ── Payment ──
    transaction_id = Column(String(100), nullable=True, index=True)
    amount_paid = Column(Float, nullable=True)
    payment_method = Column(String(20), nullable=True)

    # ── Metadata ──
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=True, index=True)
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<StoredValuation {self.id} tier={self.tier} v{self.version}>"
