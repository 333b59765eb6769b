import os

# Must be set before any application module reads its configuration.
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EPN_ACCOUNT_NUMBER", "080880")
os.environ.setdefault("EPN_X_TRAN", "test-restrict-key")
os.environ.setdefault("CHECKOUT_RATE_LIMIT", "1000/minute")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from services.order_service import models  # noqa: F401
from services.order_service.store import SqlOrderStore
from shared.config.database import Base

from helpers import TODAY


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlOrderStore(session_factory)


@pytest.fixture
def today():
    return lambda: TODAY
