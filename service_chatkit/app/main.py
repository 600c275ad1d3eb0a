"""
ChatKit Token Service entrypoint.
"""

import os
from typing import Optional

from prometheus_client import CollectorRegistry

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config

from . import APP_VERSION
from .adapters.openai_client import UpstreamSessionClient
from .domain.router import SessionRequestRouter
from .ratelimit.admission import AdmissionController
from .ratelimit.sweeper import BucketSweeper
from .ratelimit.token_bucket import Clock, TokenBucketStore

SERVICE_NAME = "chatkit"
DEFAULT_PORT = 8787

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class ChatKitTokenService(BaseService):
    """Token service implementation."""

    version = APP_VERSION

    def __init__(self, config: Optional[ServiceConfig] = None,
                 session_client: Optional[UpstreamSessionClient] = None,
                 clock: Optional[Clock] = None,
                 registry: Optional[CollectorRegistry] = None):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config=config, registry=registry)

        if not self.config.openai_api_key.get_secret_value():
            self.logger.warning("OPENAI_API_KEY is not set; upstream session calls will be rejected")

        self.bucket_store = TokenBucketStore(
            max_tokens=self.config.rate_limit_max_tokens,
            refill_rate=self.config.rate_limit_refill_rate,
            refill_interval_ms=self.config.rate_limit_refill_interval_ms,
            clock=clock,
        )
        self.admission = AdmissionController(self.bucket_store)
        self.sweeper = BucketSweeper(
            self.admission,
            interval_seconds=self.config.rate_limit_sweep_interval_seconds,
            retention_ms=self.config.rate_limit_retention_ms,
            metrics=self.metrics,
        )
        self.session_client = session_client or UpstreamSessionClient(
            self.config.openai_api_key,
            api_base=self.config.openai_api_base,
            model=self.config.realtime_model,
            voice=self.config.realtime_voice,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.router = SessionRequestRouter(
            self.admission,
            self.session_client,
            self.observability,
            allowed_origins=self.config.allowed_origin_list,
            version=self.version,
        )

        @self.app.on_event("startup")
        async def _startup():
            await self.sweeper.start()
            self.logger.info(
                "Token service started",
                max_tokens=self.config.rate_limit_max_tokens,
                refill_interval_ms=self.config.rate_limit_refill_interval_ms,
                allowed_origins=self.config.allowed_origin_list or "*",
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.sweeper.stop()

        self._setup_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.token_service = self

    def _setup_routes(self):
        """Send every path and method through the session router."""
        self.app.add_route(
            "/{path:path}",
            self.router.dispatch,
            methods=ROUTED_METHODS,
            include_in_schema=False,
        )


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = ChatKitTokenService(config=config, **kwargs)
    return service.app


def main():
    port = int(os.getenv("CHATKIT_PORT", DEFAULT_PORT))
    service = ChatKitTokenService(get_config(SERVICE_NAME, port))
    service.run()


if __name__ == "__main__":
    main()
