"""Shared fixtures for API tests."""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from checkout_engine.api.checkout_sessions import get_service
from checkout_engine.application.checkout_service import (
    CheckoutService,
    CheckoutSessionRepository,
)
from checkout_engine.domain import SessionContext
from checkout_engine.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client without authentication."""
    return TestClient(app)


@pytest.fixture
def service(commerce_client, geocoder) -> CheckoutService:
    """Checkout service backed by the mocked commerce client."""
    return CheckoutService(
        SessionContext(access_token="test-token"),
        client=commerce_client,
        geocoder=geocoder,
        repository=CheckoutSessionRepository(),
    )


@pytest.fixture
def auth_client(service: CheckoutService) -> Iterator[TestClient]:
    """Create test client with a bearer token and the mocked service."""
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app, headers={"Authorization": "Bearer test-token"})
    app.dependency_overrides.clear()
