from contextlib import contextmanager
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.models import AuthUser
from libs.auth.tokens import issue_token
from libs.common.config import get_settings
from libs.db.base import Base
from services.commerce_service import models as _commerce_models  # noqa: F401
from services.commerce_service.services.fulfillment import (
    FulfillmentConfig,
    OrderFulfillment,
)

settings = get_settings()

CUSTOMER_ID = "customer-1"
OTHER_CUSTOMER_ID = "customer-2"
ADMIN_ID = "admin-1"


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh database per test. SQLite runs in memory on a single shared
    connection; any other URL is used as-is and its tables are dropped after.
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(settings.DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session configured like the application's session factory."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def fulfillment_config() -> FulfillmentConfig:
    return FulfillmentConfig()


@pytest.fixture
def engine(db_session, fulfillment_config) -> OrderFulfillment:
    return OrderFulfillment(db_session, fulfillment_config)


# ---------------------------------------------------------------------------
# HTTP client + auth helpers
# ---------------------------------------------------------------------------


def make_customer_user(user_id: str = CUSTOMER_ID, **overrides) -> AuthUser:
    defaults = {"user_id": user_id, "email": f"{user_id}@example.com", "name": "Test Customer"}
    defaults.update(overrides)
    return AuthUser(**defaults)


def make_admin_user(user_id: str = ADMIN_ID) -> AuthUser:
    return AuthUser(user_id=user_id, email="admin@example.com", role=settings.ADMIN_ROLE)


def bearer(user: AuthUser) -> dict:
    token = issue_token(user.user_id, email=user.email, name=user.name, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily bypass token verification and act as ``user``."""
    from libs.auth.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def customer_headers() -> dict:
    return bearer(make_customer_user())


@pytest.fixture
def admin_headers() -> dict:
    return bearer(make_admin_user())


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the commerce app with the DB dependency
    pointed at the test session.
    """
    from libs.db.session import get_async_db
    from services.commerce_service.app.main import app

    async def _override_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _override_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
