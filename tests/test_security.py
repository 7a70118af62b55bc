"""Tests for token handling and startup configuration checks."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from doorstep.config import settings
from doorstep.core.exceptions import ConfigurationError
from doorstep.core.security import create_access_token, decode_access_token
from doorstep.main import check_payment_settings


def test_token_round_trip() -> None:
    user_id = str(uuid4())
    token = create_access_token({"sub": user_id, "email": "a@example.com"})

    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sub"] == user_id


def test_expired_token_rejected() -> None:
    token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/appointments/", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_with_non_uuid_subject(client: AsyncClient) -> None:
    token = create_access_token({"sub": "user-123"})
    response = await client.get(
        "/api/v1/appointments/", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


def test_production_requires_payment_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "instasend_secret_key", None)

    with pytest.raises(ConfigurationError):
        check_payment_settings()


def test_missing_payment_secrets_tolerated_outside_production(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "instasend_webhook_secret", None)

    check_payment_settings()
    assert settings.missing_payment_settings() == ["INSTASEND_WEBHOOK_SECRET"]
