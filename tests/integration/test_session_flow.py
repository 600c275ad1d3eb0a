"""
Integration tests for the session issuance flow.

The full service runs in-process with the real upstream client; only the
provider's HTTP transport is patched.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_chatkit.app.main import ChatKitTokenService, create_app
from shared.test_helpers import (
    FakeClock,
    create_session_payload,
    create_test_config,
    create_upstream_response,
)

ORIGIN = "https://app.example.com"


class TestSessionFlow:
    """Integration tests for start, refresh and rate limiting."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def service(self, clock):
        return ChatKitTokenService(
            config=create_test_config(allowed_origins=ORIGIN, rate_limit_max_tokens=4),
            clock=clock,
        )

    @pytest.fixture
    def client(self, service):
        return TestClient(service.app)

    @pytest.fixture
    def upstream(self):
        """Patched provider transport."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_post = AsyncMock()
            mock_client.return_value.__aenter__.return_value.post = mock_post
            yield mock_post

    def test_start_then_refresh(self, client, upstream):
        """A client starts a session and later swaps its secret."""
        upstream.side_effect = [
            create_upstream_response(200, create_session_payload(secret="ek_first", nested=True)),
            create_upstream_response(200, create_session_payload(secret="ek_second")),
        ]

        started = client.post("/api/chatkit/start", json={}, headers={"Origin": ORIGIN})
        assert started.status_code == 200
        assert started.json()["client_secret"] == "ek_first"
        assert started.headers["Access-Control-Allow-Origin"] == ORIGIN
        assert started.headers["Access-Control-Allow-Credentials"] == "true"

        refreshed = client.post(
            "/api/chatkit/refresh",
            json={"currentClientSecret": started.json()["client_secret"]},
            headers={"Origin": ORIGIN},
        )
        assert refreshed.status_code == 200
        assert refreshed.json()["client_secret"] == "ek_second"
        assert refreshed.headers["X-Request-ID"] != started.headers["X-Request-ID"]

        assert upstream.await_count == 2
        for call in upstream.call_args_list:
            assert call.kwargs["headers"]["Authorization"] == "Bearer sk-test-key"

    def test_upstream_rejection_is_masked(self, client, upstream):
        """Provider errors never reach the caller."""
        upstream.return_value = create_upstream_response(
            401, text='{"error": {"message": "Incorrect API key provided: sk-test-key"}}'
        )

        response = client.post("/api/chatkit/start")

        assert response.status_code == 500
        assert response.json() == {
            "error": "internal_error",
            "message": "Failed to create session",
            "request_id": response.headers["X-Request-ID"],
        }
        assert "sk-test-key" not in response.text

    def test_disallowed_origin(self, client, upstream):
        """Requests from other origins are served without origin headers."""
        upstream.return_value = create_upstream_response(200, create_session_payload())

        response = client.post("/api/chatkit/start", headers={"Origin": "https://evil.example.com"})

        assert response.status_code == 200
        assert "Access-Control-Allow-Origin" not in response.headers
        assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"

    def test_rate_limit_and_recovery(self, client, upstream, clock, service):
        """Exhaust the bucket, get 429, wait for refill, succeed once more."""
        upstream.return_value = create_upstream_response(200, create_session_payload())

        statuses = [client.post("/api/chatkit/start").status_code for _ in range(5)]
        assert statuses == [200, 200, 200, 200, 429]
        assert upstream.await_count == 4

        assert client.get("/api/health").status_code == 200

        clock.advance(1000)
        assert client.post("/api/chatkit/start").status_code == 200
        assert client.post("/api/chatkit/start").status_code == 429

        assert service.metrics.get_sample_value(
            "rate_limit_decisions_total", {"decision": "denied"}
        ) == 2.0

    def test_idle_identity_swept_and_restarted(self, client, upstream, clock, service):
        """After the retention window a swept identity starts with a full bucket."""
        upstream.return_value = create_upstream_response(200, create_session_payload())
        for _ in range(4):
            client.post("/api/chatkit/start")
        assert client.post("/api/chatkit/start").status_code == 429

        clock.advance(3_600_001)
        assert service.sweeper.sweep_once() == 1
        assert service.admission.tracked_identities == 0

        statuses = [client.post("/api/chatkit/start").status_code for _ in range(5)]
        assert statuses == [200, 200, 200, 200, 429]

    def test_lifespan_starts_and_stops_sweeper(self):
        """The sweeper runs for the lifetime of the app."""
        app = create_app(config=create_test_config(), clock=FakeClock())
        service = app.state.token_service

        with TestClient(app) as client:
            assert service.sweeper.running is True
            assert client.get("/api/health").json()["status"] == "ok"

        assert service.sweeper.running is False
