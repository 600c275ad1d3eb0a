"""
Upstream session client for the OpenAI Realtime API.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import SecretStr

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation
from shared.errors import TokenServiceException, ValidationError, UpstreamError, TransportError

from ..domain.models import SessionCredential

DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_VOICE = "verse"


class SessionErrorKind(Enum):
    """Why a session call failed."""
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class SessionResult:
    """Either a credential or a categorized error, never both."""
    credential: Optional[SessionCredential] = None
    error: Optional[TokenServiceException] = None
    kind: Optional[SessionErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.credential is not None

    @classmethod
    def success(cls, credential: SessionCredential) -> "SessionResult":
        return cls(credential=credential)

    @classmethod
    def failure(cls, kind: SessionErrorKind, error: TokenServiceException) -> "SessionResult":
        return cls(error=error, kind=kind)


class UpstreamSessionClient:
    """Issues session credentials from the provider's session endpoint.

    Every call is one POST; nothing is retried or cached. The provider has
    no session extension, so a refresh issues a brand new session and the
    previous secret stays valid at the provider until it expires.
    """

    def __init__(self, api_key: Union[SecretStr, str], api_base: str = DEFAULT_API_BASE,
                 model: str = DEFAULT_MODEL, voice: str = DEFAULT_VOICE,
                 timeout: float = 10.0, metrics: Optional[MetricsCollector] = None):
        self._api_key = api_key if isinstance(api_key, SecretStr) else SecretStr(api_key)
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.voice = voice
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("chatkit.upstream_client")

    @property
    def sessions_url(self) -> str:
        return f"{self.api_base}/realtime/sessions"

    async def create_session(self) -> SessionResult:
        """Create a new session."""
        return await self._issue("create")

    async def refresh_session(self, current_secret: str) -> SessionResult:
        """Issue a replacement session for a client holding ``current_secret``."""
        if not isinstance(current_secret, str) or not current_secret.strip():
            return SessionResult.failure(
                SessionErrorKind.VALIDATION,
                ValidationError("Invalid current client secret")
            )
        return await self._issue("refresh")

    async def _issue(self, operation: str) -> SessionResult:
        start_time = time.time()
        with trace_operation("upstream.session", operation=operation, model=self.model):
            result = await self._post_session()

        if self.metrics:
            outcome = "success" if result.ok else result.kind.value
            self.metrics.record_upstream_call(operation, outcome, time.time() - start_time)
        return result

    async def _post_session(self) -> SessionResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.sessions_url,
                    headers={
                        "Authorization": f"Bearer {self._api_key.get_secret_value()}",
                        "Content-Type": "application/json",
                    },
                    json={"model": self.model, "voice": self.voice}
                )
        except httpx.HTTPError as e:
            self.logger.warning("Upstream session request failed", error=str(e), error_type=type(e).__name__)
            return SessionResult.failure(
                SessionErrorKind.TRANSPORT,
                TransportError(f"Upstream transport error: {type(e).__name__}: {e}")
            )

        if not 200 <= response.status_code < 300:
            return SessionResult.failure(
                SessionErrorKind.UPSTREAM,
                UpstreamError(response.status_code, response.text)
            )

        return self._parse_session(response)

    def _parse_session(self, response: httpx.Response) -> SessionResult:
        try:
            data = response.json()
        except ValueError:
            return SessionResult.failure(
                SessionErrorKind.UPSTREAM,
                UpstreamError(response.status_code, "response body is not JSON")
            )

        credential = self._extract_credential(data) if isinstance(data, dict) else None
        if credential is None:
            return SessionResult.failure(
                SessionErrorKind.UPSTREAM,
                UpstreamError(response.status_code, "response is missing client_secret or expires_at")
            )
        return SessionResult.success(credential)

    @staticmethod
    def _extract_credential(data: Dict[str, Any]) -> Optional[SessionCredential]:
        """Accept both ``{client_secret, expires_at}`` and ``{client_secret: {value, expires_at}}``."""
        secret = data.get("client_secret")
        expires_at = data.get("expires_at")
        if isinstance(secret, dict):
            expires_at = secret.get("expires_at", expires_at)
            secret = secret.get("value")

        if not isinstance(secret, str) or not secret:
            return None
        if isinstance(expires_at, bool) or not isinstance(expires_at, int):
            return None
        return SessionCredential(secret=secret, expires_at=expires_at)
