"""
The persisted, mutable valuation entity.

Created once when a paid tier is computed. After that only the refinement
job mutates it, and each mutation appends exactly one RefinementRecord.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.valuation_request import PaymentMethod, Tier, VehicleAttributes
from app.schemas.valuation_response import (
    BusinessValuation,
    PremiumValuation,
    RegularValuation,
)

RESULT_MODELS: dict[Tier, type[RegularValuation]] = {
    Tier.REGULAR: RegularValuation,
    Tier.PREMIUM: PremiumValuation,
    Tier.BUSINESS: BusinessValuation,
}


class ValuationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Freshness(str, Enum):
    FRESH = "FRESH"
    STALE = "STALE"


class RefinementRecord(BaseModel):
    """Append-only audit entry written by every successful refinement."""
    date: datetime
    previous_value: int
    new_value: int
    applied_trend_percent: float


class StoredValuation(BaseModel):
    id: str
    status: ValuationStatus = ValuationStatus.COMPLETED
    tier: Tier
    attributes: VehicleAttributes
    result: Optional[dict] = Field(None, description="Tier result serialised as JSON")

    transaction_id: Optional[str] = None
    amount_paid: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None

    created_at: datetime
    last_updated: Optional[datetime] = None
    refinement_history: list[RefinementRecord] = []
    version: int = 1

    def parsed_result(self) -> Optional[RegularValuation]:
        if self.result is None:
            return None
        return RESULT_MODELS[self.tier].model_validate(self.result)

    def freshness(self, now: datetime, staleness_days: int = 7) -> Freshness:
        if self.last_updated is None:
            return Freshness.STALE
        if now - self.last_updated >= timedelta(days=staleness_days):
            return Freshness.STALE
        return Freshness.FRESH


class RefinementSummary(BaseModel):
    """Aggregate counts returned to administrative callers."""
    total: int
    refined: int
    failed: int
