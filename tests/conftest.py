"""
tests/conftest.py -- Shared test fixtures for BlogWEB tests.

This module provides:
  - _make_test_stores(): isolated named shared-memory DBs for users + comments
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - user_store / comment_store: bare stores for unit tests
  - api_client: TestClient on the real app with fresh stores per test
  - register(): helper that registers a user over HTTP and returns the body

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each fixture instance gets a uuid-suffixed name so tests never see
each other's rows.

DEBUG must be set before any auth/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import UserStore
from comments.store import CommentStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _memory_url(label: str) -> str:
    return f"sqlite:///file:test_{label}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _make_test_stores() -> tuple[UserStore, CommentStore]:
    """Create a user store and comment store sharing one in-memory database."""
    url = _memory_url("blog")
    return UserStore(url), CommentStore(url)


def _patch_lifespan(user_store: UserStore, comment_store: CommentStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.comment_store = comment_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_memory_url("users"))
    yield store
    store.close()


@pytest.fixture
def comment_store() -> Generator[CommentStore, None, None]:
    store = CommentStore(_memory_url("comments"))
    yield store
    store.close()


@pytest.fixture
def stores() -> Generator[tuple[UserStore, CommentStore], None, None]:
    users, comments = _make_test_stores()
    yield users, comments
    comments.close()
    users.close()


@pytest.fixture
def api_client(stores: tuple[UserStore, CommentStore]) -> Generator[TestClient, None, None]:
    """Yield a TestClient that hits real route handlers backed by isolated stores.

    The stores themselves are available through the `stores` fixture for
    tests that need to inspect or tamper with storage directly.
    """
    app.router.lifespan_context = _patch_lifespan(*stores)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


def register(client: TestClient, username: str, email: str | None = None, password: str = "password123") -> dict:
    """Register a user over HTTP and return the 201 body ({id, username, email, token})."""
    resp = client.post(
        "/api/auth/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
