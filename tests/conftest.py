"""
Shared fixtures for the finance tracker tests.

Coroutines are driven with asyncio.run; storage is in-memory and the
signing key is fixed so every token in a test is reproducible.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fintrack.auth import AuthGate, PasswordHasher, TokenCodec, TokenVerifier
from fintrack.models import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    ApiRequest,
    Category,
    Role,
    TokenClaims,
    User,
)

TEST_SECRET = "test-signing-key"
ACCESS_TTL = 60 * 60
REFRESH_TTL = 7 * 24 * 60 * 60

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def run(coro):
    """Run a coroutine to completion from synchronous test code."""
    return asyncio.run(coro)


def at(minutes: int) -> datetime:
    """A creation time `minutes` after T0."""
    return T0 + timedelta(minutes=minutes)


def claims_for(username: str, role: Role = Role.REGULAR) -> TokenClaims:
    return TokenClaims(
        username=username,
        email=f"{username}@example.com",
        role=role.value,
        id=f"id-{username}",
    )


def user_for(username: str, role: Role = Role.REGULAR, password: str = "secret") -> User:
    return User(
        id=f"id-{username}",
        username=username,
        email=f"{username}@example.com",
        password_hash=PasswordHasher().hash(password),
        role=role,
    )


def category(type: str, color: str = "red", minutes: int = 0) -> Category:
    return Category(type=type, color=color, created_at=at(minutes))


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def gate(codec) -> AuthGate:
    return AuthGate(TokenVerifier(codec, access_token_ttl_seconds=ACCESS_TTL))


@pytest.fixture
def request_as(codec):
    """
    Build an ApiRequest carrying a token pair for the given user.

    access_ttl / refresh_ttl may be negative to produce expired tokens.
    """
    def _request(
        username: str,
        role: Role = Role.REGULAR,
        access_ttl: int = ACCESS_TTL,
        refresh_ttl: int = REFRESH_TTL,
        query: dict = None,
    ) -> ApiRequest:
        claims = claims_for(username, role)
        return ApiRequest(
            cookies={
                ACCESS_TOKEN_COOKIE: codec.sign(claims, access_ttl),
                REFRESH_TOKEN_COOKIE: codec.sign(claims, refresh_ttl),
            },
            query=query or {},
        )
    return _request
