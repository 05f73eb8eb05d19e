"""
tests/conftest.py -- Shared test fixtures for authlog.

This module provides:
  - make_kv(): isolated named shared-memory SQLite KVStore
  - test_settings: Settings with a fixed secret, admin identity, page size 2
  - credentials / audit_log: store fixtures for unit tests
  - web_client: TestClient over the full ASGI app (api + web) with a patched
    lifespan and follow_redirects=False
  - admin_client: web_client already logged in to the admin console

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
A uuid in each name keeps tests from seeing each other's data.

The DEBUG env var must be set before any api/web import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from audit.store import AuditLogStore
from auth.store import CredentialStore
from core.config import Settings
from kv.store import KVStore

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
ADMIN_USER = "root"
ADMIN_PASSWORD = "correct horse battery staple"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_kv(prefix: str) -> KVStore:
    return KVStore(f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(settings: Settings, credentials: CredentialStore, audit_log: AuditLogStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated in-memory stores rather than the files under DATA_DIR.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.credentials = credentials
        app.state.audit_log = audit_log
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        debug=True,
        secret_key=TEST_SECRET,
        admin_user=ADMIN_USER,
        admin_password=ADMIN_PASSWORD,
        log_page_size=2,
        data_dir=tmp_path / "db",
    )


@pytest.fixture
def credentials(test_settings: Settings) -> Generator[CredentialStore, None, None]:
    store = CredentialStore(make_kv("test_user"), secret=test_settings.secret_key)
    yield store
    store.close()


@pytest.fixture
def audit_log() -> Generator[AuditLogStore, None, None]:
    store = AuditLogStore(make_kv("test_log"))
    yield store
    store.close()


@pytest.fixture
def web_client(
    test_settings: Settings,
    credentials: CredentialStore,
    audit_log: AuditLogStore,
) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the full app with isolated stores.

    follow_redirects=False is essential: the console answers with redirects
    and the tests assert on their Location headers.
    """
    app.router.lifespan_context = _patch_lifespan(test_settings, credentials, audit_log)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def admin_client(web_client: TestClient) -> TestClient:
    resp = web_client.post("/admin/login", data={"user": ADMIN_USER, "pass": ADMIN_PASSWORD})
    assert resp.status_code == 302
    return web_client
