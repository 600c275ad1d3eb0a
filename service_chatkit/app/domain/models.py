"""
Request, response and per-request context models for the token service.
"""

import time
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class RefreshSessionRequest(BaseModel):
    """Body for POST /api/chatkit/refresh."""
    model_config = ConfigDict(extra="ignore")

    currentClientSecret: StrictStr = Field(min_length=1)


class SessionResponse(BaseModel):
    """Successful session creation/refresh."""
    client_secret: str
    expires_at: int


class HealthResponse(BaseModel):
    """Health check payload."""
    status: str
    version: str


class SessionCredential(BaseModel):
    """Short-lived bearer secret handed to a client. Never stored."""
    model_config = ConfigDict(frozen=True)

    secret: str
    expires_at: int

    def to_response(self) -> SessionResponse:
        return SessionResponse(client_secret=self.secret, expires_at=self.expires_at)

    def __repr__(self) -> str:
        return f"SessionCredential(secret='***', expires_at={self.expires_at})"

    __str__ = __repr__


@dataclass
class RequestContext:
    """Per-request bookkeeping, discarded once the response is sent."""
    request_id: str
    identity: str
    method: str
    path: str
    start_time: float = field(default_factory=time.time)
