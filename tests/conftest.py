"""
tests/conftest.py -- Shared test fixtures for Profile Portal.

This module provides:
  - make_test_store(): an isolated in-memory user store
  - _patch_lifespan(): wires test objects into app.state, bypassing real startup
  - web_client: TestClient with follow_redirects=False and a mocked OAuth registry
  - helpers to read and forge signed session cookies

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. The named URI
format shares one in-memory instance across all connections in the process.

Environment variables must be set before any app import: get_settings() is
cached on first call and auth/oauth.py registers providers at import time.
"""

from __future__ import annotations

import asyncio
import base64
import json
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

TEST_COOKIE_KEY = "test-session-cookie-key-0123456789abcdef"

# CRITICAL: set before any auth/core/api import.
os.environ["ENVIRONMENT"] = "test"
os.environ["SESSION_COOKIE_KEY"] = TEST_COOKIE_KEY
os.environ["GOOGLE_CLIENT_ID"] = "test-google-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-google-client-secret"  # noqa: S105 -- test fixture
os.environ.pop("GITHUB_CLIENT_ID", None)
os.environ.pop("GITHUB_CLIENT_SECRET", None)

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner

from asgi import app
from auth.passport import Authenticator
from auth.store import UserStore
from core.db import connect_db

GOOGLE_USERINFO = {
    "sub": "google-sub-1001",
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "email_verified": True,
    "picture": "https://example.com/ada.png",
}

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store() -> UserStore:
    """Create a user store backed by a uniquely named shared-memory SQLite DB."""
    db_url = f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return UserStore(connect_db(db_url))


def make_oauth_registry(userinfo: dict | None = None) -> MagicMock:
    """Return a stand-in authlib registry whose clients never touch the network.

    authorize_redirect() answers with a 302 to a fake consent page and
    authorize_access_token() returns a token carrying userinfo claims.
    """
    client = MagicMock()
    client.authorize_redirect = AsyncMock(
        return_value=RedirectResponse("https://accounts.example.com/o/oauth2/auth", status_code=302)
    )
    client.authorize_access_token = AsyncMock(
        return_value={"access_token": "token-abc", "userinfo": dict(userinfo or GOOGLE_USERINFO)}
    )
    registry = MagicMock()
    registry.create_client.return_value = client
    return registry


def _patch_lifespan(user_store: UserStore, oauth_registry: MagicMock):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.authenticator = Authenticator(user_store)
        app.state.oauth = oauth_registry
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def session_set_cookies(resp) -> list[str]:
    """Return the Set-Cookie header values for the session cookie."""
    return [h for h in resp.headers.get_list("set-cookie") if h.startswith("session=")]


def decode_session_cookie(header: str) -> dict:
    """Verify and decode a 'session=...' Set-Cookie header into the session dict."""
    value = header.split(";", 1)[0].split("=", 1)[1]
    payload = TimestampSigner(TEST_COOKIE_KEY).unsign(value.encode("utf-8"))
    return json.loads(base64.b64decode(payload))


def encode_session_cookie(data: dict) -> str:
    """Forge a session cookie value the way SessionMiddleware would sign it."""
    payload = base64.b64encode(json.dumps(data).encode("utf-8"))
    return TimestampSigner(TEST_COOKIE_KEY).sign(payload).decode("utf-8")


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = make_test_store()
    yield store
    store.close()


@pytest.fixture
def web_client(user_store: UserStore) -> Generator[tuple[TestClient, UserStore, MagicMock], None, None]:
    """Yield (client, store, oauth_registry) for end-to-end web tests.

    follow_redirects=False so tests can assert on redirect locations and on
    the Set-Cookie header of the redirect response itself.
    """
    oauth_registry = make_oauth_registry()
    app.router.lifespan_context = _patch_lifespan(user_store, oauth_registry)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, user_store, oauth_registry
