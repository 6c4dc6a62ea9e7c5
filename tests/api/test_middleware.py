"""Tests for API middleware."""

from fastapi.testclient import TestClient

from checkout_engine.domain import AuthExpiredError
from checkout_engine.infrastructure.config import settings


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        # UUID format
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        custom_id = "custom-request-id-12345"
        response = client.get("/health", headers={"X-Request-ID": custom_id})
        assert response.headers["X-Request-ID"] == custom_id


class TestBearerTokenMiddleware:
    """Tests for bearer token extraction."""

    def test_public_endpoints_dont_require_auth(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200
        assert client.get("/ready").status_code == 200

    def test_missing_token_redirects_to_login(self, client: TestClient) -> None:
        response = client.post("/checkout-sessions", json={})

        assert response.status_code == 401
        data = response.json()
        assert data["error_code"] == "AUTH_EXPIRED"
        assert data["treatment"] == "redirect"
        assert data["redirect_to"] == settings.auth_redirect_path
        assert data["retry_after"] == settings.auth_redirect_delay_seconds

    def test_invalid_auth_format_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/checkout-sessions",
            json={},
            headers={"Authorization": "InvalidFormat"},
        )
        assert response.status_code == 401

    def test_rejected_token_redirects_to_login(
        self, auth_client: TestClient, commerce_client
    ) -> None:
        """A token the commerce API refuses is treated like a missing one."""
        commerce_client.load_cart.side_effect = AuthExpiredError("load_cart")

        response = auth_client.post("/checkout-sessions", json={})

        assert response.status_code == 401
        data = response.json()
        assert data["redirect_to"] == settings.auth_redirect_path
        assert data["retry_after"] == settings.auth_redirect_delay_seconds
