"""
Kafka event publisher: fire-and-forget.

Publishes valuation events for downstream consumers
(report rendering, email delivery, data warehouse sync).
Gracefully degrades if Kafka is unavailable.
"""
from __future__ import annotations

import json
import structlog
from app.core.config import get_settings
from app.schemas.stored_valuation import StoredValuation

logger = structlog.get_logger()

_producer = None


async def _get_producer():
    global _producer
    settings = get_settings()
    if not settings.kafka_enabled:
        return None
    if _producer is None:
        from aiokafka import AIOKafkaProducer
        _producer = AIOKafkaProducer(bootstrap_servers=settings.kafka_bootstrap)
        await _producer.start()
    return _producer


def build_valuation_event(valuation: StoredValuation) -> dict:
    result = valuation.result or {}
    return {
        "event_type": "VALUATION_COMPLETED",
        "valuation_id": valuation.id,
        "tier": valuation.tier.value,
        "transaction_id": valuation.transaction_id,
        "market_value": result.get("market_value"),
        "currency": result.get("currency"),
        "created_at": valuation.created_at.isoformat(),
    }


async def publish_valuation_event(valuation: StoredValuation) -> None:
    settings = get_settings()
    if not settings.kafka_enabled:
        return

    try:
        producer = await _get_producer()
        if producer:
            await producer.send_and_wait(
                settings.kafka_topic_valuation_events,
                json.dumps(build_valuation_event(valuation)).encode("utf-8"),
                key=valuation.id.encode("utf-8"),
            )
            logger.info("kafka_event_published", valuation_id=valuation.id)
    except Exception as e:
        # Fire-and-forget: log but don't fail the request
        logger.warning("kafka_publish_failed", error=str(e))
