"""
Shared utilities for the ChatKit Token Service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- tracing: OpenTelemetry tracing config
- observability: Request outcome sink combining the three above
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton

Do not import from service_* packages into shared/.
"""
