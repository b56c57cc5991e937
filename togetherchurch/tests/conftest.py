from __future__ import annotations

import os

# Point settings at SQLite before any togetherchurch module builds the engine.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("APP_ENV", "development")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from togetherchurch.core.config import get_settings
from togetherchurch.domain.models import Base
from togetherchurch.persistence import db as db_module
from togetherchurch.tests.utils.app import build_client


@pytest.fixture
async def database():
    # One in-memory database per test; StaticPool keeps every session on it.
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    db_module.SessionLocal.configure(bind=engine)
    yield engine
    db_module.SessionLocal.configure(bind=db_module.engine)
    await engine.dispose()


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    yield
    get_settings.cache_clear()


@pytest.fixture
async def session(database):
    async with db_module.SessionLocal() as db_session:
        yield db_session


@pytest.fixture
async def client(database):
    async with build_client() as http:
        yield http
