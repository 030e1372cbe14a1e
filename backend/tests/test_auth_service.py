"""
Tests for password policy, JWT handling and token resolution.
"""

import pytest
from unittest.mock import MagicMock

from app.auth import resolve_token
from app.errors import AuthenticationError
from app.services.auth_service import create_access_token, decode_access_token, password_problems


@pytest.fixture
def anyio_backend():
    return "asyncio"


def test_password_policy_accepts_strong_password():
    assert password_problems("Secret123") == []


def test_password_policy_lists_every_problem():
    problems = password_problems("abc")
    assert "Password must be at least 6 characters long" in problems
    assert "Password must contain at least one uppercase letter" in problems
    assert "Password must contain at least one number" in problems
    assert "Password must contain at least one lowercase letter" not in problems


def test_token_round_trip():
    token = create_access_token("a" * 24, "owner@example.com", "user")
    payload = decode_access_token(token)
    assert payload["sub"] == "a" * 24
    assert payload["email"] == "owner@example.com"
    assert payload["role"] == "user"


def test_tampered_token_is_rejected():
    token = create_access_token("a" * 24, "owner@example.com", "user")
    header, payload, _ = token.split(".")
    assert decode_access_token(f"{header}.{payload}.{'A' * 43}") is None
    assert decode_access_token("not-a-jwt") is None


@pytest.mark.anyio
async def test_resolve_token_requires_token():
    session_factory = MagicMock()
    with pytest.raises(AuthenticationError, match="Access token is required"):
        await resolve_token(None, session_factory)
    session_factory.assert_not_called()


@pytest.mark.anyio
async def test_resolve_token_rejects_garbage_without_db():
    session_factory = MagicMock()
    with pytest.raises(AuthenticationError, match="Invalid or expired token"):
        await resolve_token("garbage", session_factory)
    session_factory.assert_not_called()
