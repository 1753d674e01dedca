"""
HTTP surface: valuations, preview, admin refinement triggers.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import make_attributes
from app.api.dependencies import get_market_signal_source, get_storage_gateway
from app.core.auth import require_admin, verify_token
from app.main import app
from app.schemas.valuation_request import PaymentEvent
from app.services.event_publisher import build_valuation_event
from app.services.market_signals import StaticMarketSignalSource, default_market_signals
from app.services.storage_gateway import InMemoryStorageGateway
from app.services.valuation_service import complete_valuation

VEHICLE = {
    "vin": "ABCDEFJK012356789",
    "brand": "BMW",
    "model": "5 Series",
    "year": 2017,
    "body_type": "wagon",
    "mileage": 193_000,
    "fuel_type": "diesel",
    "transmission": "automatic",
}


def _deny_admin():
    raise HTTPException(status_code=403, detail="Admin role required")


@pytest.fixture
def gateway():
    return InMemoryStorageGateway()


@pytest.fixture
def client(gateway):
    app.dependency_overrides[verify_token] = lambda: {"sub": "test-user", "roles": []}
    app.dependency_overrides[require_admin] = lambda: {"sub": "test-admin", "roles": ["valuation-admin"]}
    app.dependency_overrides[get_storage_gateway] = lambda: gateway
    app.dependency_overrides[get_market_signal_source] = (
        lambda: StaticMarketSignalSource(default_market_signals())
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, tier="regular"):
    return client.post("/v1/valuations", json={
        "vehicle": VEHICLE,
        "payment": {"transaction_id": "TX-1", "amount_paid": 9.99, "tier": tier, "payment_method": "paypal"},
    })


class TestValuations:

    def test_health(self, client):
        resp = client.get("/v1/valuations/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_create_and_fetch(self, client):
        resp = _create(client, tier="business")
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "completed"
        assert body["tier"] == "business"
        assert body["version"] == 1
        assert "investment_risk_assessment" in body["result"]

        fetched = client.get(f"/v1/valuations/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["result"]["market_value"] == body["result"]["market_value"]

    def test_fetch_missing(self, client):
        assert client.get("/v1/valuations/nope").status_code == 404

    def test_invalid_vin_rejected(self, client):
        resp = client.post("/v1/valuations/preview", json={**VEHICLE, "vin": "SHORT"})
        assert resp.status_code == 422

    def test_invalid_fuel_rejected(self, client):
        resp = client.post("/v1/valuations/preview", json={**VEHICLE, "fuel_type": "steam"})
        assert resp.status_code == 422

    def test_preview_returns_three_tiers(self, client):
        resp = client.post("/v1/valuations/preview", json=VEHICLE)
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"regular", "premium", "business"}
        assert body["regular"]["market_value"] == body["business"]["market_value"]
        assert "historical_data" in body["premium"]
        assert "market_demand" in body["business"]


class TestAdmin:

    def test_refine_one(self, client, gateway):
        valuation_id = _create(client).json()["id"]
        resp = client.post(f"/v1/admin/refine/{valuation_id}")

        assert resp.status_code == 200
        body = resp.json()
        assert body["refined"] is True
        assert body["trend_percent"] == -2.5
        assert len(gateway.load(valuation_id).refinement_history) == 1

    def test_refine_one_missing(self, client):
        assert client.post("/v1/admin/refine/nope").status_code == 404

    def test_refine_all(self, client):
        _create(client)
        _create(client, tier="premium")
        resp = client.post("/v1/admin/refine-all")

        assert resp.status_code == 200
        assert resp.json()["summary"] == {"total": 2, "refined": 2, "failed": 0}

    def test_refine_stale_skips_fresh(self, client, gateway):
        _create(client)
        stale_id = _create(client).json()["id"]
        gateway.save(stale_id, {"last_updated": datetime.now(timezone.utc) - timedelta(days=10)})

        resp = client.post("/v1/admin/refine-stale")
        assert resp.json()["summary"] == {"total": 1, "refined": 1, "failed": 0}

    def test_requires_admin(self, client):
        app.dependency_overrides[require_admin] = _deny_admin
        assert client.post("/v1/admin/refine-all").status_code == 403


class TestEvents:

    def test_completed_event_payload(self, gateway):
        stored = complete_valuation(
            gateway,
            make_attributes(),
            PaymentEvent(transaction_id="TX-9", amount_paid=49.99, tier="business"),
        )
        event = build_valuation_event(stored)

        assert event["event_type"] == "VALUATION_COMPLETED"
        assert event["valuation_id"] == stored.id
        assert event["tier"] == "business"
        assert event["transaction_id"] == "TX-9"
        assert event["market_value"] == stored.result["market_value"]


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class LoopRecordingGateway(InMemoryStorageGateway):
    """Records whether each gateway call ran on the event loop thread."""

    def __init__(self):
        super().__init__()
        self.calls_on_loop = []

    def create(self, valuation):
        self.calls_on_loop.append(_on_event_loop())
        return super().create(valuation)

    def load(self, valuation_id):
        self.calls_on_loop.append(_on_event_loop())
        return super().load(valuation_id)


class TestBlockingStorage:

    def test_gateway_calls_run_off_the_event_loop(self, client):
        recording = LoopRecordingGateway()
        app.dependency_overrides[get_storage_gateway] = lambda: recording

        valuation_id = _create(client).json()["id"]
        assert client.get(f"/v1/valuations/{valuation_id}").status_code == 200

        assert recording.calls_on_loop == [False, False]
