"""
Payment-completed → valuation.

Called once the payment collaborator confirms the customer's tier. Computes
the tier result and creates the StoredValuation that refinement maintains
from then on.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog

from app.schemas.stored_valuation import StoredValuation, ValuationStatus
from app.schemas.valuation_request import PaymentEvent, VehicleAttributes
from app.scoring.engine import compute_valuation
from app.scoring.random_source import RandomSource
from app.services.storage_gateway import StorageGateway

logger = structlog.get_logger()


def complete_valuation(
    gateway: StorageGateway,
    attributes: VehicleAttributes,
    payment: PaymentEvent,
    random_source: Optional[RandomSource] = None,
    now: Optional[datetime] = None,
) -> StoredValuation:
    now = now or datetime.now(timezone.utc)
    result = compute_valuation(attributes, payment.tier, random_source=random_source, evaluated_at=now)

    stored = gateway.create(StoredValuation(
        id=str(uuid.uuid4()),
        status=ValuationStatus.COMPLETED,
        tier=payment.tier,
        attributes=attributes,
        result=result.model_dump(mode="json"),
        transaction_id=payment.transaction_id,
        amount_paid=payment.amount_paid,
        payment_method=payment.payment_method,
        created_at=now,
        last_updated=now,
    ))

    logger.info(
        "valuation_stored",
        valuation_id=stored.id,
        tier=stored.tier.value,
        transaction_id=payment.transaction_id,
        market_value=result.market_value,
    )
    return stored
