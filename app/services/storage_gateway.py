"""
StorageGateway: the narrow read/write contract the core depends on.

  load(id)                      → StoredValuation | None
  save(id, patch, expected_version=None) → StoredValuation
  create(valuation)             → StoredValuation
  list_ids(status=None)         → list[str]

Writes are optimistic: pass the version you read as expected_version and a
concurrent writer makes the save fail with StaleWriteError instead of being
silently overwritten. Every successful save bumps `version` by one.

Two implementations:
  InMemoryStorageGateway    local dev + tests
  SqlAlchemyStorageGateway  Postgres (or any SQLAlchemy URL)
"""
from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.stored_valuation import StoredValuationRow
from app.schemas.stored_valuation import StoredValuation, ValuationStatus


class StorageError(Exception):
    """Any read/write failure from the persistence layer."""


class ValuationNotFoundError(StorageError):
    def __init__(self, valuation_id: str) -> None:
        super().__init__(f"Valuation {valuation_id} not found")
        self.valuation_id = valuation_id


class StaleWriteError(StorageError):
    def __init__(self, valuation_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Valuation {valuation_id} changed concurrently (expected v{expected}, found v{actual})"
        )
        self.valuation_id = valuation_id
        self.expected = expected
        self.actual = actual


class StorageGateway(Protocol):
    def load(self, valuation_id: str) -> Optional[StoredValuation]: ...

    def save(
        self,
        valuation_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredValuation: ...

    def create(self, valuation: StoredValuation) -> StoredValuation: ...

    def list_ids(self, status: Optional[ValuationStatus] = None) -> list[str]: ...


def _apply_patch(current: StoredValuation, patch: dict[str, Any]) -> StoredValuation:
    data = current.model_dump()
    data.update(patch)
    data["id"] = current.id
    data["version"] = current.version + 1
    return StoredValuation.model_validate(data)


# ═══════════════════════════════════════════════════════════════
# In-memory
# ═══════════════════════════════════════════════════════════════

class InMemoryStorageGateway:
    def __init__(self) -> None:
        self._items: dict[str, StoredValuation] = {}
        self._lock = threading.Lock()

    def load(self, valuation_id: str) -> Optional[StoredValuation]:
        with self._lock:
            item = self._items.get(valuation_id)
            return item.model_copy(deep=True) if item else None

    def save(
        self,
        valuation_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredValuation:
        with self._lock:
            current = self._items.get(valuation_id)
            if current is None:
                raise ValuationNotFoundError(valuation_id)
            if expected_version is not None and current.version != expected_version:
                raise StaleWriteError(valuation_id, expected_version, current.version)

            updated = _apply_patch(current, copy.deepcopy(patch))
            self._items[valuation_id] = updated
            return updated.model_copy(deep=True)

    def create(self, valuation: StoredValuation) -> StoredValuation:
        with self._lock:
            if valuation.id in self._items:
                raise StorageError(f"Valuation {valuation.id} already exists")
            self._items[valuation.id] = valuation.model_copy(deep=True)
            return valuation.model_copy(deep=True)

    def list_ids(self, status: Optional[ValuationStatus] = None) -> list[str]:
        with self._lock:
            items = sorted(self._items.values(), key=lambda v: v.created_at)
            return [v.id for v in items if status is None or v.status == status]


# ═══════════════════════════════════════════════════════════════
# SQLAlchemy
# ═══════════════════════════════════════════════════════════════

def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back; everything is stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_columns(valuation: StoredValuation) -> dict[str, Any]:
    data = valuation.model_dump(mode="json")
    return {
        "id": valuation.id,
        "status": valuation.status.value,
        "tier": valuation.tier.value,
        "attributes_json": data["attributes"],
        "result_json": data["result"],
        "refinement_history_json": data["refinement_history"],
        "transaction_id": valuation.transaction_id,
        "amount_paid": valuation.amount_paid,
        "payment_method": valuation.payment_method.value if valuation.payment_method else None,
        "created_at": valuation.created_at,
        "last_updated": valuation.last_updated,
        "version": valuation.version,
    }


def _from_row(row: StoredValuationRow) -> StoredValuation:
    return StoredValuation(
        id=row.id,
        status=row.status,
        tier=row.tier,
        attributes=row.attributes_json,
        result=row.result_json,
        refinement_history=row.refinement_history_json or [],
        transaction_id=row.transaction_id,
        amount_paid=row.amount_paid,
        payment_method=row.payment_method,
        created_at=_aware(row.created_at),
        last_updated=_aware(row.last_updated),
        version=row.version,
    )


class SqlAlchemyStorageGateway:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def load(self, valuation_id: str) -> Optional[StoredValuation]:
        try:
            with self.session_factory() as session:
                row = session.get(StoredValuationRow, valuation_id)
                return _from_row(row) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load valuation {valuation_id}: {e}") from e

    def save(
        self,
        valuation_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> StoredValuation:
        try:
            with self.session_factory() as session:
                row = session.get(StoredValuationRow, valuation_id)
                if row is None:
                    raise ValuationNotFoundError(valuation_id)
                current = _from_row(row)
                if expected_version is not None and current.version != expected_version:
                    raise StaleWriteError(valuation_id, expected_version, current.version)

                updated = _apply_patch(current, patch)
                columns = _to_columns(updated)
                columns.pop("id")
                # Conditional on the version read above: a writer that slipped
                # in between the read and this statement makes rowcount 0.
                result = session.execute(
                    update(StoredValuationRow)
                    .where(StoredValuationRow.id == valuation_id)
                    .where(StoredValuationRow.version == current.version)
                    .values(**columns)
                )
                if result.rowcount != 1:
                    session.rollback()
                    actual = session.scalar(
                        select(StoredValuationRow.version).where(StoredValuationRow.id == valuation_id)
                    )
                    if actual is None:
                        raise ValuationNotFoundError(valuation_id)
                    raise StaleWriteError(valuation_id, current.version, actual)
                session.commit()
                return updated
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save valuation {valuation_id}: {e}") from e

    def create(self, valuation: StoredValuation) -> StoredValuation:
        try:
            with self.session_factory() as session:
                session.add(StoredValuationRow(**_to_columns(valuation)))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create valuation {valuation.id}: {e}") from e
        return valuation

    def list_ids(self, status: Optional[ValuationStatus] = None) -> list[str]:
        stmt = select(StoredValuationRow.id).order_by(StoredValuationRow.created_at)
        if status is not None:
            stmt = stmt.where(StoredValuationRow.status == status.value)
        try:
            with self.session_factory() as session:
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list valuations: {e}") from e
