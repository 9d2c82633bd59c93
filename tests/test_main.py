"""
Unit tests for main application endpoints.
"""


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        """Test the health check endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestApplicationSetup:
    """Tests for application configuration."""

    def test_app_title(self, client):
        """Test that the app has correct title."""
        response = client.get("/openapi.json")
        assert response.status_code == 200
        assert "Hotel Booking Backend" in response.json()["info"]["title"]

    def test_docs_endpoint_exists(self, client):
        """Test that API documentation endpoint is accessible."""
        response = client.get("/docs")
        assert response.status_code == 200

    def test_versioned_routes_mounted(self, client):
        """Test that routers are also served under /api/v1."""
        response = client.get("/api/v1/payments/methods")
        assert response.status_code == 200
        assert len(response.json()) == 3


class TestErrorResponses:
    """Tests for the shared error body."""

    def test_not_found_body(self, client):
        response = client.get("/rooms/9999")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "http_error"
        assert body["detail"] == "Room not found"
        assert body["path"] == "/rooms/9999"

    def test_request_validation_body(self, client, regular_user, regular_token):
        response = client.post(
            "/bookings/",
            headers={"Authorization": f"Bearer {regular_token}"},
            json={"check_in_date": "not-a-date"},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["errors"]

    def test_missing_token(self, client):
        response = client.get("/bookings/")
        assert response.status_code == 401
