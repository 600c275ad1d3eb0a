"""
Request router for the token service.

Every request follows the same order: CORS preflight, health check,
admission control, route match, body validation, upstream call. Each
request ends in exactly one response and exactly one outcome log record.
"""

import json
import math
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError as ModelValidationError

from shared.errors import (
    TokenServiceException,
    ValidationError,
    RateLimitError,
    NotFoundError,
    MethodNotAllowedError,
    InternalError,
)
from shared.logging import get_logger
from shared.observability import ObservabilityManager

from ..adapters.openai_client import UpstreamSessionClient, SessionResult, SessionErrorKind
from ..ratelimit.admission import AdmissionController
from .cors import get_cors_headers
from .models import HealthResponse, RefreshSessionRequest, RequestContext

START_PATH = "/api/chatkit/start"
REFRESH_PATH = "/api/chatkit/refresh"
HEALTH_PATH = "/api/health"

# Methods served per known path; anything else on these paths is a 405.
KNOWN_PATHS: Dict[str, str] = {
    START_PATH: "POST, OPTIONS",
    REFRESH_PATH: "POST, OPTIONS",
    HEALTH_PATH: "GET, OPTIONS",
}

Handler = Callable[[Request, RequestContext, Dict[str, str]], Awaitable[Response]]


def get_client_ip(request: Request) -> str:
    """Extract the caller IP from standard headers."""
    connecting_ip = request.headers.get("CF-Connecting-IP")
    if connecting_ip:
        return connecting_ip.strip()
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _outcome_for(status_code: int) -> str:
    if status_code == 429:
        return "rate_limited"
    if status_code < 400:
        return "success"
    return "error"


class SessionRequestRouter:
    """Dispatches inbound requests to the session handlers."""

    def __init__(self, admission: AdmissionController, session_client: UpstreamSessionClient,
                 observability: ObservabilityManager, allowed_origins: Optional[List[str]] = None,
                 version: str = "1.0.0"):
        self.admission = admission
        self.session_client = session_client
        self.observability = observability
        self.allowed_origins = list(allowed_origins or [])
        self.version = version
        self.logger = get_logger("chatkit.router")

        self._routes: Dict[Tuple[str, str], Handler] = {
            ("POST", START_PATH): self._handle_start_session,
            ("POST", REFRESH_PATH): self._handle_refresh_session,
        }

    async def dispatch(self, request: Request) -> Response:
        """Entry point bound to the catch-all route."""
        context = RequestContext(
            request_id=self.observability.start_request(),
            identity=get_client_ip(request),
            method=request.method.upper(),
            path=request.url.path,
        )
        cors = get_cors_headers(request.headers.get("Origin"), self.allowed_origins)

        try:
            return await self._route(request, context, cors)
        except TokenServiceException as exc:
            return self._error_response(exc, context, cors)
        except Exception as exc:
            self.logger.error("Unhandled error while dispatching request", error=str(exc), exc_info=True)
            return self._error_response(InternalError(details={"cause": str(exc)}), context, cors)
        finally:
            self.observability.clear_request_context()

    async def _route(self, request: Request, context: RequestContext, cors: Dict[str, str]) -> Response:
        if context.method == "OPTIONS":
            return self._respond(context, 204, None, cors)

        if context.method == "GET" and context.path == HEALTH_PATH:
            health = HealthResponse(status="ok", version=self.version)
            return self._respond(context, 200, health.model_dump(), cors)

        decision = self.admission.check(context.identity)
        self.observability.metrics.record_admission(decision.admitted)
        if not decision.admitted:
            raise RateLimitError()

        handler = self._routes.get((context.method, context.path))
        if handler is None:
            if context.path in KNOWN_PATHS:
                raise MethodNotAllowedError()
            raise NotFoundError()

        return await handler(request, context, cors)

    async def _handle_start_session(self, request: Request, context: RequestContext,
                                    cors: Dict[str, str]) -> Response:
        """POST /api/chatkit/start: body is optional and only needs to be JSON."""
        content_type = request.headers.get("Content-Type")
        if content_type and "application/json" not in content_type.lower():
            raise ValidationError("Content-Type must be application/json", details={"cause": "Invalid content type"})

        # Any JSON value is accepted.
        body = await request.body()
        if body:
            self._parse_json(body)

        result = await self.session_client.create_session()
        return self._session_response(result, context, cors, "Failed to create session")

    async def _handle_refresh_session(self, request: Request, context: RequestContext,
                                      cors: Dict[str, str]) -> Response:
        """POST /api/chatkit/refresh: body must carry currentClientSecret."""
        content_type = request.headers.get("Content-Type")
        if not content_type or "application/json" not in content_type.lower():
            raise ValidationError("Content-Type must be application/json", details={"cause": "Invalid content type"})

        body = await request.body()
        if not body:
            raise ValidationError("Request body is required", details={"cause": "Empty request body"})

        payload = self._parse_json(body)
        try:
            refresh = RefreshSessionRequest.model_validate(payload)
        except ModelValidationError as exc:
            raise ValidationError("currentClientSecret is required", details={"cause": "Missing currentClientSecret"}) from exc

        result = await self.session_client.refresh_session(refresh.currentClientSecret)
        return self._session_response(result, context, cors, "Failed to refresh session")

    def _parse_json(self, body: bytes) -> Any:
        try:
            return json.loads(body)
        except (ValueError, RecursionError) as exc:
            raise ValidationError("Invalid JSON in request body", details={"cause": "Invalid JSON"}) from exc

    def _session_response(self, result: SessionResult, context: RequestContext,
                          cors: Dict[str, str], failure_message: str) -> Response:
        if result.ok:
            return self._respond(context, 200, result.credential.to_response().model_dump(), cors)

        if result.kind is SessionErrorKind.VALIDATION:
            raise ValidationError(result.error.message, details={"cause": str(result.error)})

        # Upstream detail goes to the log only.
        raise InternalError(failure_message, details={"cause": str(result.error), "kind": result.kind.value})

    def _respond(self, context: RequestContext, status_code: int, content: Optional[Dict[str, Any]],
                 headers: Dict[str, str], error: Optional[str] = None) -> Response:
        """Build the response and emit the outcome record."""
        response_headers = {**headers, "X-Request-ID": context.request_id}
        if content is None:
            response = Response(status_code=status_code, headers=response_headers)
        else:
            response = JSONResponse(status_code=status_code, content=content, headers=response_headers)

        endpoint = context.path if context.path in KNOWN_PATHS else "unmatched"
        self.observability.log_request(context, status_code, _outcome_for(status_code),
                                       error=error, endpoint=endpoint)
        return response

    def _error_response(self, exc: TokenServiceException, context: RequestContext,
                        cors: Dict[str, str]) -> Response:
        headers = dict(cors)
        if isinstance(exc, RateLimitError):
            headers["Retry-After"] = str(max(1, math.ceil(self.admission.refill_interval_ms / 1000)))
        elif isinstance(exc, MethodNotAllowedError):
            headers["Allow"] = KNOWN_PATHS.get(context.path, "OPTIONS")

        body = exc.to_response(context.request_id).model_dump(exclude_none=True)
        cause = exc.details.get("cause", exc.message)
        return self._respond(context, exc.status_code, body, headers, error=cause)
