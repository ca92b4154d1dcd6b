"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • an in-memory fake backend (no external HTTP)
  • a fixed clock (tests.mocks.models.NOW)
  • rate limiting disabled

The `client` fixture runs the full lifespan so the board is fetched from
the fake backend exactly as it would be from the real one.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from courtboard.dependencies import get_now
from courtboard.main import app
from courtboard.services.registry import ServiceRegistry
from tests.mocks.models import NOW
from tests.mocks.services import FakeCourtBackend


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_backend() -> FakeCourtBackend:
    return FakeCourtBackend()


@pytest.fixture()
def _test_env(monkeypatch, fake_backend: FakeCourtBackend) -> ServiceRegistry:
    """
    Internal fixture that swaps the service registry for one backed by
    the fake backend, so the app lifespan never talks to the network.
    """
    test_registry = ServiceRegistry()
    # Long interval: tests drive refreshes explicitly.
    test_registry.register_backend(fake_backend, poll_interval=3600)

    # Patch everywhere `registry` was imported
    for mod_path in (
        "courtboard.services.registry",
        "courtboard.main",
        "courtboard.dependencies",
        "courtboard.routers.health",
        "courtboard.routers.board",
        "courtboard.routers.assignments",
        "courtboard.routers.wet_courts",
    ):
        monkeypatch.setattr(f"{mod_path}.registry", test_registry)

    # ── Disable rate limiting in tests ────────────────────────────────
    from courtboard.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    return test_registry


@pytest.fixture()
def test_registry(_test_env) -> ServiceRegistry:
    """Public alias for tests that reference the registry directly."""
    return _test_env


@pytest.fixture()
def client(_test_env: ServiceRegistry) -> TestClient:
    """FastAPI TestClient with the fake backend and a frozen clock."""
    app.dependency_overrides[get_now] = lambda: NOW

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()
