"""
Unit tests for request IDs, outcome records and metrics.
"""

import re
import pytest
from unittest.mock import MagicMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_chatkit.app.domain.models import RequestContext
from shared.logging import generate_request_id, request_id_var, set_request_id, clear_context
from shared.metrics import MetricsCollector
from shared.observability import ObservabilityManager

REQUEST_ID_PATTERN = re.compile(r"^req_\d+_[0-9a-f]{7}$")


class TestRequestIds:
    """Test cases for request ID generation and context."""

    def test_request_id_format(self):
        assert REQUEST_ID_PATTERN.match(generate_request_id())

    def test_request_ids_are_unique(self):
        ids = {generate_request_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_set_and_clear_context(self):
        request_id = set_request_id()

        assert request_id_var.get() == request_id
        clear_context()
        assert request_id_var.get() is None

    def test_set_explicit_request_id(self):
        assert set_request_id("req_1_abcdef0") == "req_1_abcdef0"
        clear_context()


class TestObservabilityManager:
    """Test cases for the request outcome sink."""

    @pytest.fixture
    def manager(self):
        manager = ObservabilityManager("chatkit")
        manager.logger = MagicMock()
        return manager

    @pytest.fixture
    def context(self):
        return RequestContext(request_id="req_1_abcdef0", identity="203.0.113.7",
                              method="POST", path="/api/chatkit/start")

    def test_log_request_success(self, manager, context):
        manager.log_request(context, 200, "success", endpoint="/api/chatkit/start")

        manager.logger.info.assert_called_once()
        args, fields = manager.logger.info.call_args
        assert args[0] == "HTTP request completed"
        assert fields["request_id"] == "req_1_abcdef0"
        assert fields["ip"] == "203.0.113.7"
        assert fields["status_code"] == 200
        assert fields["outcome"] == "success"
        assert fields["duration_ms"] >= 0
        assert "error" not in fields
        assert manager.metrics.get_sample_value(
            "http_requests_total",
            {"method": "POST", "endpoint": "/api/chatkit/start", "status_code": "200"}
        ) == 1.0

    def test_log_request_server_error(self, manager, context):
        manager.log_request(context, 500, "error", error="Upstream API error: 500 - boom")

        manager.logger.error.assert_called_once()
        manager.logger.info.assert_not_called()
        _, fields = manager.logger.error.call_args
        assert fields["error"] == "Upstream API error: 500 - boom"
        assert manager.metrics.get_sample_value(
            "errors_total", {"error_type": "error", "service": "chatkit"}
        ) == 1.0

    def test_start_request_binds_id(self, manager):
        request_id = manager.start_request()

        assert REQUEST_ID_PATTERN.match(request_id)
        assert request_id_var.get() == request_id
        manager.clear_request_context()
        assert request_id_var.get() is None


class TestMetricsCollector:
    """Test cases for MetricsCollector."""

    def test_collectors_use_separate_registries(self):
        first = MetricsCollector("chatkit")
        second = MetricsCollector("chatkit")

        first.record_admission(True)

        assert first.get_sample_value("rate_limit_decisions_total", {"decision": "admitted"}) == 1.0
        assert second.get_sample_value("rate_limit_decisions_total", {"decision": "admitted"}) is None

    def test_record_admission_denied(self):
        metrics = MetricsCollector("chatkit")

        metrics.record_admission(False)

        assert metrics.get_sample_value("rate_limit_decisions_total", {"decision": "denied"}) == 1.0

    def test_set_gauge(self):
        metrics = MetricsCollector("chatkit")

        metrics.set_gauge("rate_limit_tracked_identities", 42)

        assert metrics.get_sample_value("rate_limit_tracked_identities") == 42.0
