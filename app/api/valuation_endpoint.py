"""
Customer-facing valuation API.

POST /v1/valuations           → compute the paid tier and store it
GET  /v1/valuations/{id}      → stored valuation (refined in place over time)
POST /v1/valuations/preview   → all three tiers for one vehicle, nothing stored

Publishes VALUATION_COMPLETED to Kafka (if enabled).
Gateway calls run in a worker thread; the SQL gateway uses sync sessions.
"""
from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_storage_gateway
from app.core.auth import verify_token
from app.core.config import get_settings
from app.schemas.stored_valuation import StoredValuation
from app.schemas.valuation_request import ValuationRequest, VehicleSubmission
from app.schemas.valuation_response import TierPreview
from app.scoring.engine import preview_all_tiers
from app.services.event_publisher import publish_valuation_event
from app.services.storage_gateway import StorageError, StorageGateway
from app.services.valuation_service import complete_valuation

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/valuations", tags=["valuations"])


@router.get("/health", tags=["health"])
async def health():
    return {
        "status": "ok",
        "service": "car-valuation-engine",
        "model_version": get_settings().valuation_model_version,
    }


@router.post(
    "/preview",
    response_model=TierPreview,
    summary="Preview all three tiers for a vehicle",
    description="Computes Regular, Premium and Business results from one evaluation. Nothing is persisted.",
)
async def preview_valuation(
    vehicle: VehicleSubmission,
    token_payload: dict = Depends(verify_token),
) -> TierPreview:
    logger.info(
        "valuation_preview_requested",
        brand=vehicle.brand,
        model=vehicle.model,
        year=vehicle.year,
        caller=token_payload.get("sub", "unknown"),
    )
    return preview_all_tiers(vehicle.to_attributes())


@router.post(
    "",
    response_model=StoredValuation,
    status_code=201,
    summary="Create a paid valuation",
    description="Called once payment for a tier succeeds. Computes the tier result and stores it for refinement.",
)
async def create_valuation(
    request: ValuationRequest,
    token_payload: dict = Depends(verify_token),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> StoredValuation:

    logger.info(
        "valuation_started",
        transaction_id=request.payment.transaction_id,
        tier=request.payment.tier.value,
        caller=token_payload.get("sub", "unknown"),
    )

    # ── Score + persist ──
    try:
        stored = await asyncio.to_thread(
            complete_valuation, gateway, request.vehicle.to_attributes(), request.payment,
        )
    except StorageError as e:
        logger.error("valuation_store_failed", transaction_id=request.payment.transaction_id, error=str(e))
        raise HTTPException(status_code=503, detail=f"Valuation storage unavailable: {e}")
    except Exception as e:
        logger.error("valuation_failed", transaction_id=request.payment.transaction_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Valuation engine error: {e}")

    # ── Publish to Kafka (fire-and-forget) ──
    await publish_valuation_event(stored)

    return stored


@router.get(
    "/{valuation_id}",
    response_model=StoredValuation,
    summary="Fetch a stored valuation",
)
async def get_valuation(
    valuation_id: str,
    token_payload: dict = Depends(verify_token),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> StoredValuation:
    try:
        stored = await asyncio.to_thread(gateway.load, valuation_id)
    except StorageError as e:
        logger.error("valuation_load_failed", valuation_id=valuation_id, error=str(e))
        raise HTTPException(status_code=503, detail=f"Valuation storage unavailable: {e}")

    if stored is None:
        raise HTTPException(status_code=404, detail=f"Valuation {valuation_id} not found")
    return stored
