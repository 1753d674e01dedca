"""
SQLAlchemy engine + session factory.

Sync sessions: the refinement batch runs in a worker thread (scheduler or
asyncio.to_thread from the admin endpoint), never on the event loop.
"""
from __future__ import annotations

from functools import lru_cache
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings


@lru_cache
def get_engine() -> Engine:
    return create_engine(get_settings().database_url, pool_pre_ping=True)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), expire_on_commit=False)

