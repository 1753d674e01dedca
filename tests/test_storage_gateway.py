"""
Both StorageGateway implementations against the same contract.
The SQLAlchemy gateway runs on SQLite (in-memory, or a temp file where two connections are needed).
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import Update, create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from conftest import make_attributes
from app.models.stored_valuation import Base, StoredValuationRow
from app.schemas.stored_valuation import RefinementRecord, StoredValuation, ValuationStatus
from app.schemas.valuation_request import PaymentMethod, Tier
from app.services.storage_gateway import (
    InMemoryStorageGateway, SqlAlchemyStorageGateway, StaleWriteError, StorageError,
    ValuationNotFoundError,
)

CREATED = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _valuation(valuation_id: str, created_at: datetime = CREATED, **overrides) -> StoredValuation:
    kwargs = {
        "id": valuation_id,
        "tier": Tier.PREMIUM,
        "attributes": make_attributes(),
        "result": {"market_value": 5_199, "currency": "EUR"},
        "transaction_id": f"TX-{valuation_id}",
        "amount_paid": 19.99,
        "payment_method": PaymentMethod.PAYPAL,
        "created_at": created_at,
        "last_updated": created_at,
    }
    kwargs.update(overrides)
    return StoredValuation(**kwargs)


def _sqlite_gateway() -> SqlAlchemyStorageGateway:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return SqlAlchemyStorageGateway(sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture(params=["memory", "sqlite"])
def gateway(request):
    if request.param == "memory":
        return InMemoryStorageGateway()
    return _sqlite_gateway()


class TestStorageContract:

    def test_create_then_load(self, gateway):
        gateway.create(_valuation("a"))
        loaded = gateway.load("a")

        assert loaded.id == "a"
        assert loaded.tier == Tier.PREMIUM
        assert loaded.attributes.brand == "BMW"
        assert loaded.result["market_value"] == 5_199
        assert loaded.payment_method == PaymentMethod.PAYPAL
        assert loaded.created_at == CREATED
        assert loaded.version == 1

    def test_load_missing(self, gateway):
        assert gateway.load("nope") is None

    def test_duplicate_create_rejected(self, gateway):
        gateway.create(_valuation("a"))
        with pytest.raises(StorageError):
            gateway.create(_valuation("a"))

    def test_save_merges_patch_and_bumps_version(self, gateway):
        gateway.create(_valuation("a"))
        later = CREATED + timedelta(days=8)
        record = RefinementRecord(date=later, previous_value=5_199, new_value=5_069, applied_trend_percent=-2.5)

        saved = gateway.save("a", {
            "result": {"market_value": 5_069, "currency": "EUR"},
            "last_updated": later,
            "refinement_history": [record],
        }, expected_version=1)

        assert saved.version == 2
        loaded = gateway.load("a")
        assert loaded.version == 2
        assert loaded.result["market_value"] == 5_069
        assert loaded.last_updated == later
        assert loaded.refinement_history == [record]
        assert loaded.transaction_id == "TX-a"

    def test_stale_expected_version_rejected(self, gateway):
        gateway.create(_valuation("a"))
        gateway.save("a", {"last_updated": CREATED + timedelta(days=1)}, expected_version=1)

        with pytest.raises(StaleWriteError):
            gateway.save("a", {"last_updated": CREATED + timedelta(days=2)}, expected_version=1)
        assert gateway.load("a").last_updated == CREATED + timedelta(days=1)

    def test_save_without_version_check(self, gateway):
        gateway.create(_valuation("a"))
        assert gateway.save("a", {"amount_paid": 29.99}).amount_paid == 29.99

    def test_save_missing(self, gateway):
        with pytest.raises(ValuationNotFoundError):
            gateway.save("nope", {"amount_paid": 1.0})

    def test_list_ids_oldest_first_filtered(self, gateway):
        gateway.create(_valuation("late", created_at=CREATED + timedelta(hours=2)))
        gateway.create(_valuation("early", created_at=CREATED))
        gateway.create(_valuation("pending", created_at=CREATED + timedelta(hours=1),
                                  status=ValuationStatus.PENDING))

        assert gateway.list_ids() == ["early", "pending", "late"]
        assert gateway.list_ids(ValuationStatus.COMPLETED) == ["early", "late"]


class TestInMemoryIsolation:

    def test_loaded_copy_is_detached(self):
        gateway = InMemoryStorageGateway()
        gateway.create(_valuation("a"))

        loaded = gateway.load("a")
        loaded.result["market_value"] = 1

        assert gateway.load("a").result["market_value"] == 5_199


class TestSqlConcurrentWrite:

    def test_lost_race_reports_stored_version(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'valuations.db'}")
        Base.metadata.create_all(engine)
        factory = sessionmaker(bind=engine, expire_on_commit=False)

        def racing_factory():
            # Another writer commits version 7 just before our conditional UPDATE.
            session = factory()
            execute = session.execute
            raced = []

            def execute_after_rival(statement, *args, **kwargs):
                if isinstance(statement, Update) and not raced:
                    raced.append(True)
                    with factory() as rival:
                        rival.execute(
                            update(StoredValuationRow)
                            .where(StoredValuationRow.id == "a")
                            .values(version=7)
                        )
                        rival.commit()
                return execute(statement, *args, **kwargs)

            session.execute = execute_after_rival
            return session

        SqlAlchemyStorageGateway(factory).create(_valuation("a"))
        gateway = SqlAlchemyStorageGateway(racing_factory)

        with pytest.raises(StaleWriteError) as exc:
            gateway.save("a", {"amount_paid": 29.99}, expected_version=1)

        assert exc.value.expected == 1
        assert exc.value.actual == 7
        assert gateway.load("a").amount_paid == 19.99
