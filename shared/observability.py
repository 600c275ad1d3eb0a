"""
Observability manager for the ChatKit Token Service.
Integrates logging, metrics, and tracing behind one request-outcome sink.
"""

import time
from datetime import datetime, timezone
from typing import Optional, Any

from prometheus_client import CollectorRegistry

from .logging import configure_logging, get_logger, set_request_id, clear_context
from .metrics import get_metrics_collector
from .tracing import configure_tracing


class ObservabilityManager:
    """Centralized observability manager for services."""

    def __init__(self, service_name: str, log_level: str = "info",
                 otel_exporter: Optional[str] = None, enable_console: bool = False,
                 registry: Optional[CollectorRegistry] = None, version: str = "1.0.0"):
        self.service_name = service_name
        self.log_level = log_level
        self.otel_exporter = otel_exporter
        self.enable_console = enable_console
        self.version = version

        configure_logging(service_name, log_level)
        self.metrics = get_metrics_collector(service_name, registry, version)
        self.logger = get_logger(f"{service_name}.requests")

    def setup_tracing(self, app=None):
        """Set up distributed tracing."""
        if self.otel_exporter or self.enable_console:
            configure_tracing(
                self.service_name,
                self.otel_exporter,
                self.enable_console,
                service_version=self.version,
                app=app
            )

    def start_request(self, request_id: Optional[str] = None) -> str:
        """Bind a correlation ID to the current request context."""
        return set_request_id(request_id)

    def clear_request_context(self):
        """Clear request context."""
        clear_context()

    def log_request(self, context: Any, status_code: int, outcome: str,
                    error: Optional[str] = None, endpoint: Optional[str] = None):
        """Emit the single outcome record for a finished request.

        ``context`` is any object with ``request_id``, ``method``, ``path``,
        ``identity`` and ``start_time`` (seconds, ``time.time()``).
        ``endpoint`` overrides the path used as the metrics label.
        """
        duration = max(0.0, time.time() - context.start_time)
        fields = {
            "request_id": context.request_id,
            "method": context.method,
            "path": context.path,
            "ip": context.identity,
            "status_code": status_code,
            "outcome": outcome,
            "duration_ms": round(duration * 1000, 2),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if error:
            fields["error"] = error

        if status_code >= 500:
            self.logger.error("HTTP request completed", **fields)
        else:
            self.logger.info("HTTP request completed", **fields)

        self.metrics.record_http_request(context.method, endpoint or context.path, status_code, duration)
        if error:
            self.metrics.record_error(outcome)


def get_observability_manager(service_name: str, **kwargs) -> ObservabilityManager:
    """Get an observability manager for a service."""
    return ObservabilityManager(service_name, **kwargs)
