"""
Admin API: refinement triggers.

Endpoints:
  POST /v1/admin/refine/{valuation_id}
    → Refine one stored valuation against the latest market signal

  POST /v1/admin/refine-all
    → Forced refresh of every completed valuation, fresh or not

  POST /v1/admin/refine-stale
    → Same pass the midnight scheduler runs (stale records only)

All endpoints require the admin role.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.api.dependencies import get_refiner
from app.core.auth import require_admin
from app.schemas.stored_valuation import RefinementSummary
from app.services.storage_gateway import StorageError
from app.services.valuation_refinement import RefinementFailure, ValuationRefiner

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/admin", tags=["admin"])


class RefineOneResponse(BaseModel):
    triggered_by: str
    valuation_id: str
    refined: bool
    failure: Optional[RefinementFailure] = None
    previous_value: Optional[int] = None
    new_value: Optional[int] = None
    trend_percent: Optional[float] = None


class RefreshResponse(BaseModel):
    triggered_by: str
    status: str
    message: str
    summary: RefinementSummary


@router.post(
    "/refine/{valuation_id}",
    response_model=RefineOneResponse,
    summary="Refine a single stored valuation",
)
async def trigger_refine_one(
    valuation_id: str,
    token: dict = Depends(require_admin),
    refiner: ValuationRefiner = Depends(get_refiner),
):
    user = token.get("sub", "unknown")
    logger.info("refine_one_triggered", valuation_id=valuation_id, triggered_by=user)

    try:
        outcome = await asyncio.to_thread(refiner.refine_one, valuation_id)
    except StorageError as e:
        logger.error("refine_one_failed", valuation_id=valuation_id, error=str(e), triggered_by=user)
        raise HTTPException(status_code=503, detail=f"Refinement failed: {e}")

    if outcome.failure == RefinementFailure.NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"Valuation {valuation_id} not found")

    return RefineOneResponse(
        triggered_by=user,
        valuation_id=outcome.valuation_id,
        refined=outcome.refined,
        failure=outcome.failure,
        previous_value=outcome.previous_value,
        new_value=outcome.new_value,
        trend_percent=outcome.trend_percent,
    )


async def _run_batch(name: str, job, user: str) -> RefreshResponse:
    logger.info(f"{name}_triggered", triggered_by=user)
    try:
        summary = await asyncio.to_thread(job)
    except Exception as e:
        logger.error(f"{name}_failed", error=str(e), triggered_by=user)
        raise HTTPException(status_code=500, detail=f"Refinement batch failed: {e}")

    return RefreshResponse(
        triggered_by=user,
        status="success",
        message=f"Refined {summary.refined}/{summary.total} valuations, {summary.failed} failed",
        summary=summary,
    )


@router.post(
    "/refine-all",
    response_model=RefreshResponse,
    summary="Refine every completed valuation",
    description=(
        "Forced refresh: every completed valuation is re-priced against the "
        "latest market signals regardless of when it was last updated."
    ),
)
async def trigger_refine_all(
    token: dict = Depends(require_admin),
    refiner: ValuationRefiner = Depends(get_refiner),
):
    return await _run_batch("refine_all", refiner.refine_all, token.get("sub", "unknown"))


@router.post(
    "/refine-stale",
    response_model=RefreshResponse,
    summary="Refine stale valuations",
    description=(
        "Runs the daily refinement pass on demand: only completed valuations "
        "not updated for the configured staleness window are processed."
    ),
)
async def trigger_refine_stale(
    token: dict = Depends(require_admin),
    refiner: ValuationRefiner = Depends(get_refiner),
):
    return await _run_batch("refine_stale", refiner.scheduled_run, token.get("sub", "unknown"))
