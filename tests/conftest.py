"""Shared fixtures: a throwaway SQLite database and an ASGI test client."""

import os
import tempfile
import uuid

# Settings are read at import time, so configure them before importing app
_DB_PATH = os.path.join(tempfile.gettempdir(), f"webcore_audit_test_{uuid.uuid4().hex}.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_JWT_SECRET"] = "test-supabase-secret-0123456789abcdef"
os.environ["ADMIN_EMAIL"] = "admin@webcore.test"
os.environ["ADMIN_PASSWORD"] = "correct-horse"
os.environ["ADMIN_JWT_SECRET"] = "test-admin-secret-0123456789abcdef"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["STRIPE_PRICE_STARTER_MONTHLY"] = "price_starter_m"
os.environ["STRIPE_PRICE_PRO_MONTHLY"] = "price_pro_m"
os.environ["STRIPE_PRICE_PRO_YEARLY"] = "price_pro_y"
os.environ["STRIPE_PACK_MEDIUM_PRO"] = "price_pack_medium_pro"
os.environ["GOOGLE_PAGESPEED_API_KEY"] = ""
os.environ["NOTION_API_KEY"] = ""

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.auth import create_admin_token  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user_profile import UserProfile  # noqa: E402
from app.services.audit_logger import audit_logger  # noqa: E402
from app.services.scheduler import scheduler_service  # noqa: E402


def _enable_savepoints(engine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    engine = create_async_engine(os.environ["DATABASE_URL"])
    _enable_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    audit_logger._session_factory = factory
    scheduler_service._session_factory = factory
    try:
        yield factory
    finally:
        audit_logger._session_factory = None
        scheduler_service._session_factory = None
        await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    token, _ = create_admin_token(settings.ADMIN_EMAIL)
    return {"Authorization": f"Bearer {token}"}


def make_user_token(user_id, email: str = "user@example.com") -> str:
    """Sign an access token the way Supabase does."""
    return jwt.encode(
        {
            "sub": str(user_id),
            "email": email,
            "aud": "authenticated",
            "role": "authenticated",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        settings.SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )


async def create_profile(session: AsyncSession, **fields) -> UserProfile:
    """Insert and commit a user profile."""
    fields.setdefault("email", "user@example.com")
    profile = UserProfile(**fields)
    session.add(profile)
    await session.commit()
    return profile
