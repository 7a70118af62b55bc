import asyncio
import json
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Settings are read on first import of the application
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("INSTASEND_SECRET_KEY", "test-instasend-secret")
os.environ.setdefault("INSTASEND_WEBHOOK_SECRET", "test-webhook-secret")

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import insert  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from doorstep.core.exceptions import GatewayError  # noqa: E402
from doorstep.core.security import create_access_token  # noqa: E402
from doorstep.core.webhook_security import SIGNATURE_HEADER, compute_signature  # noqa: E402
from doorstep.config import settings  # noqa: E402
from doorstep.database import get_db, to_async_url  # noqa: E402
from doorstep.dependencies import (  # noqa: E402
    get_cache_manager,
    get_payment_gateway,
    get_rate_limiter,
)
from doorstep.main import app  # noqa: E402
from doorstep.models import metadata, user_roles  # noqa: E402
from doorstep.services.payment_gateway import PaymentInitiation  # noqa: E402

# Postgres when TEST_DATABASE_URL is set, otherwise an in-memory SQLite database
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

if TEST_DATABASE_URL:
    if TEST_DATABASE_URL == settings.database_url:
        raise RuntimeError("TEST_DATABASE_URL must not point at the application database")
    test_engine = create_async_engine(to_async_url(TEST_DATABASE_URL), poolclass=NullPool)
else:
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class FakeGateway:
    """Stands in for the IntaSend adapter and records every prompt sent."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.error: GatewayError | None = None
        # Seconds to wait before answering, like a slow provider
        self.delay = 0.0

    async def initiate_payment(self, **kwargs) -> PaymentInitiation:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return PaymentInitiation(
            tracking_id=f"TRK{uuid4().hex[:10].upper()}",
            checkout_id=f"chk_{len(self.calls)}",
            state="PENDING",
        )


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on fresh tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Sessions that each hold their own connection, for concurrency tests.

    The in-memory SQLite database lives on one shared connection, so these
    sessions use a database file instead.
    """
    if TEST_DATABASE_URL:
        engine = create_async_engine(to_async_url(TEST_DATABASE_URL), poolclass=NullPool)
    else:
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
            poolclass=NullPool,
        )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def rate_limiter() -> MagicMock:
    limiter = MagicMock()
    limiter.check_rate_limit.return_value = True
    return limiter


@pytest.fixture
def cache_manager() -> MagicMock:
    cache = MagicMock()
    cache.get_json.return_value = None
    return cache


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    gateway: FakeGateway,
    rate_limiter: MagicMock,
    cache_manager: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with external services replaced."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_cache_manager] = lambda: cache_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, role: str | None, email: str) -> dict:
    user_id = uuid4()
    if role is not None:
        await db_session.execute(insert(user_roles).values(user_id=user_id, role=role))
        await db_session.commit()
    return {"id": user_id, "email": email, "role": role}


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> dict:
    return await _create_user(db_session, "patient", "patient@example.com")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict:
    return await _create_user(db_session, "patient", "someone@example.com")


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> dict:
    return await _create_user(db_session, "doctor", "doctor@example.com")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> dict:
    return await _create_user(db_session, "admin", "admin@example.com")


def make_auth_headers(user: dict) -> dict:
    """Bearer header for ``user``, signed like the identity provider does."""
    token = create_access_token(
        data={"sub": str(user["id"]), "email": user["email"]},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_headers(patient: dict) -> dict:
    return make_auth_headers(patient)


@pytest.fixture
def other_patient_headers(other_patient: dict) -> dict:
    return make_auth_headers(other_patient)


@pytest.fixture
def doctor_headers(doctor: dict) -> dict:
    return make_auth_headers(doctor)


@pytest.fixture
def admin_headers(admin: dict) -> dict:
    return make_auth_headers(admin)


@pytest.fixture
def booking_data(doctor: dict) -> dict:
    """Valid booking request for the ``doctor`` fixture."""
    return {
        "doctor_id": str(doctor["id"]),
        "appointment_date": (datetime.now(UTC) + timedelta(days=1)).isoformat(),
        "consultation_type": "home_visit",
        "address": "12 Riverside Drive, Nairobi",
        "phone_number": "254712345678",
        "amount": 2000,
        "notes": "Recurring headaches",
    }


def signed_callback(payload: dict) -> tuple[bytes, dict]:
    """Encode a provider callback and sign it with the webhook secret."""
    body = json.dumps(payload).encode("utf-8")
    signature = compute_signature(settings.instasend_webhook_secret or "", body)
    return body, {SIGNATURE_HEADER: signature, "Content-Type": "application/json"}


@pytest.fixture
def send_callback(client: AsyncClient):
    """Deliver a signed provider callback for ``tracking_id``."""

    async def _send(tracking_id: str, state: str, **extra):
        body, headers = signed_callback({"invoice_id": tracking_id, "state": state, **extra})
        return await client.post("/api/v1/payments/callback", content=body, headers=headers)

    return _send


@pytest_asyncio.fixture
async def booked(client: AsyncClient, patient_headers: dict, booking_data: dict) -> dict:
    """An appointment booked through the API, payment prompt sent."""
    response = await client.post(
        "/api/v1/appointments/", json=booking_data, headers=patient_headers
    )
    assert response.status_code == 201, response.text
    return response.json()
