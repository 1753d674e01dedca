"""
valuation_refinement.py
───────────────────────
Re-prices stored valuations against the latest market signals.

Per record:   FRESH ──(7 days without update)──▶ STALE ──refine──▶ FRESH
                                                   │
                                                   └─ no signal / no context / conflict → stays STALE

Entry points:
  refine_one(id)   single record, returns a RefinementOutcome
  refine_all()     every completed record, staleness ignored (forced refresh)
  scheduled_run()  completed records that are stale only (daily job)

A failure never aborts a batch: storage or other errors on one record are
logged, counted as failed, and the loop moves on. Nothing is retried within a run;
the next run reconsiders the same records.

Usage:
  python -m app.services.valuation_refinement          # stale records only
  python -m app.services.valuation_refinement --all    # forced full refresh
  OR via the admin endpoints under /v1/admin/
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog
from prometheus_client import Counter
from pydantic import ValidationError

from app.schemas.stored_valuation import (
    Freshness,
    RefinementRecord,
    RefinementSummary,
    StoredValuation,
    ValuationStatus,
)
from app.schemas.valuation_response import MarketInsights
from app.scoring.rounding import round_half_up
from app.services.market_signals import MarketSignalSource
from app.services.storage_gateway import StaleWriteError, StorageError, StorageGateway

logger = structlog.get_logger(__name__)

REFINEMENTS_TOTAL = Counter(
    "valuation_refinements_total",
    "Refinement attempts by outcome",
    ["outcome"],
)


class RefinementFailure(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    MISSING_CONTEXT = "MISSING_CONTEXT"
    NO_MARKET_SIGNAL = "NO_MARKET_SIGNAL"
    CONFLICT = "CONFLICT"
    STORAGE_ERROR = "STORAGE_ERROR"
    UNEXPECTED = "UNEXPECTED"


@dataclass(frozen=True)
class RefinementOutcome:
    valuation_id: str
    refined: bool
    failure: Optional[RefinementFailure] = None
    previous_value: Optional[int] = None
    new_value: Optional[int] = None
    trend_percent: Optional[float] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValuationRefiner:
    def __init__(
        self,
        gateway: StorageGateway,
        signals: MarketSignalSource,
        clock: Callable[[], datetime] = _utcnow,
        staleness_days: int = 7,
    ) -> None:
        self.gateway = gateway
        self.signals = signals
        self.clock = clock
        self.staleness_days = staleness_days

    # ─── Single record ────────────────────────────────────────────

    def refine_one(self, valuation_id: str) -> RefinementOutcome:
        """
        Load + refine one stored valuation.
        StorageError from the gateway propagates to the caller.
        """
        stored = self.gateway.load(valuation_id)
        if stored is None:
            logger.warning("refinement_skipped", valuation_id=valuation_id, reason="not_found")
            return self._record(RefinementOutcome(valuation_id, False, RefinementFailure.NOT_FOUND))
        return self._refine(stored)

    def _refine(self, stored: StoredValuation) -> RefinementOutcome:
        try:
            result = stored.parsed_result()
        except ValidationError as e:
            logger.warning("refinement_skipped", valuation_id=stored.id, reason="unreadable_result", error=str(e))
            return self._record(RefinementOutcome(stored.id, False, RefinementFailure.MISSING_CONTEXT))

        vehicle = result.vehicle_details if result else None
        if vehicle is None or not (vehicle.make and vehicle.model and vehicle.year):
            logger.warning("refinement_skipped", valuation_id=stored.id, reason="missing_vehicle_details")
            return self._record(RefinementOutcome(stored.id, False, RefinementFailure.MISSING_CONTEXT))

        signal = self.signals.lookup(vehicle.make, vehicle.model, vehicle.year)
        if signal is None:
            logger.info(
                "refinement_skipped",
                valuation_id=stored.id,
                reason="no_market_signal",
                make=vehicle.make,
                model=vehicle.model,
                year=vehicle.year,
            )
            return self._record(RefinementOutcome(stored.id, False, RefinementFailure.NO_MARKET_SIGNAL))

        now = self.clock()
        previous_value = result.market_value
        new_value = round_half_up(previous_value * (1 + signal.trend_percent / 100))

        insights = (result.market_insights or MarketInsights()).model_copy(update={
            "historical_trend_percentage": signal.trend_percent,
            "last_updated": now,
        })
        refined_result = result.model_copy(update={
            "market_value": new_value,
            "market_insights": insights,
        })
        history = [
            *stored.refinement_history,
            RefinementRecord(
                date=now,
                previous_value=previous_value,
                new_value=new_value,
                applied_trend_percent=signal.trend_percent,
            ),
        ]

        try:
            self.gateway.save(
                stored.id,
                {
                    "result": refined_result.model_dump(mode="json"),
                    "last_updated": now,
                    "refinement_history": history,
                },
                expected_version=stored.version,
            )
        except StaleWriteError as e:
            logger.warning("refinement_conflict", valuation_id=stored.id, error=str(e))
            return self._record(RefinementOutcome(stored.id, False, RefinementFailure.CONFLICT))

        logger.info(
            "refinement_applied",
            valuation_id=stored.id,
            previous_value=previous_value,
            new_value=new_value,
            trend_percent=signal.trend_percent,
        )
        return self._record(RefinementOutcome(
            stored.id, True,
            previous_value=previous_value,
            new_value=new_value,
            trend_percent=signal.trend_percent,
        ))

    @staticmethod
    def _record(outcome: RefinementOutcome) -> RefinementOutcome:
        label = "refined" if outcome.refined else outcome.failure.value.lower()
        REFINEMENTS_TOTAL.labels(outcome=label).inc()
        return outcome

    # ─── Batches ──────────────────────────────────────────────────

    def refine_all(self) -> RefinementSummary:
        """Forced refresh of every completed valuation, fresh or not."""
        return self._run_batch("refine_all", stale_only=False)

    def scheduled_run(self) -> RefinementSummary:
        """Daily pass: completed valuations not updated for staleness_days."""
        return self._run_batch("scheduled_run", stale_only=True)

    def _run_batch(self, mode: str, stale_only: bool) -> RefinementSummary:
        started_at = self.clock()
        logger.info("refinement_batch_started", mode=mode)

        ids = self.gateway.list_ids(ValuationStatus.COMPLETED)
        total = refined = failed = 0

        for valuation_id in ids:
            try:
                stored = self.gateway.load(valuation_id)
            except StorageError as e:
                total += 1
                failed += 1
                logger.error("refinement_failed", valuation_id=valuation_id, error=str(e))
                self._record(RefinementOutcome(valuation_id, False, RefinementFailure.STORAGE_ERROR))
                continue

            if stored is None:
                continue
            if stale_only and stored.freshness(started_at, self.staleness_days) == Freshness.FRESH:
                continue

            total += 1
            try:
                outcome = self._refine(stored)
            except StorageError as e:
                failed += 1
                logger.error("refinement_failed", valuation_id=valuation_id, error=str(e))
                self._record(RefinementOutcome(valuation_id, False, RefinementFailure.STORAGE_ERROR))
                continue
            except Exception as e:
                failed += 1
                logger.exception("refinement_failed", valuation_id=valuation_id, error=str(e))
                self._record(RefinementOutcome(valuation_id, False, RefinementFailure.UNEXPECTED))
                continue

            if outcome.refined:
                refined += 1
            else:
                failed += 1

        summary = RefinementSummary(total=total, refined=refined, failed=failed)
        elapsed = (self.clock() - started_at).total_seconds()
        logger.info(
            "refinement_batch_complete",
            mode=mode,
            candidates=len(ids),
            elapsed_seconds=round(elapsed, 2),
            **summary.model_dump(),
        )
        return summary


if __name__ == "__main__":
    import sys

    from app.api.dependencies import build_refiner, get_market_signal_source, get_storage_gateway

    logging.basicConfig(level=logging.INFO)

    try:
        refiner = build_refiner(get_storage_gateway(), get_market_signal_source())
        summary = refiner.refine_all() if "--all" in sys.argv[1:] else refiner.scheduled_run()
        print(f"✓ Refinement complete: {summary.refined}/{summary.total} refined, {summary.failed} failed")
    except Exception as e:
        print(f"✗ Refinement failed: {e}", file=sys.stderr)
        sys.exit(1)
