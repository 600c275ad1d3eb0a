"""
Base service class for ChatKit Token Service processes.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from typing import Optional

from prometheus_client import CollectorRegistry

from shared.config import ServiceConfig, get_config
from shared.logging import get_logger, request_id_var
from shared.observability import get_observability_manager
from shared.errors import InternalError


class BaseService:
    """Base service class with common functionality."""

    version = "1.0.0"

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None,
                 registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        # Logging, metrics, tracing
        self.observability = get_observability_manager(
            service_name,
            log_level=self.config.log_level,
            otel_exporter=self.config.otel_exporter if self.config.enable_tracing else None,
            enable_console=self.config.enable_console_tracing if self.config.enable_tracing else False,
            registry=registry,
            version=self.version
        )
        self.metrics = self.observability.metrics
        self.logger = get_logger(f"{service_name}.service")

        # Create FastAPI app
        self.app = self._create_app()
        self.observability.setup_tracing(self.app)

        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            version=self.version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

    def _setup_exception_handlers(self):
        """Last-line handler for errors that escape a route.

        The session router maps its own errors to responses, so this only
        fires for failures outside dispatch (middleware, instrumentation).
        """

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content=InternalError().to_response(request_id_var.get()).model_dump(exclude_none=True)
            )

    def run(self):
        """Run the service."""
        import uvicorn

        if self.config.metrics_enabled:
            self.metrics.start_metrics_server(self.config.metrics_port)

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
