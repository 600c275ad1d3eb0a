"""
Adapters package for the token service.

Contains the HTTP client for the upstream session endpoint. Adapters
encapsulate base URLs, request shapes, and the mapping of upstream
failures onto shared error types; they have no side effects outside
explicit calls.
"""

from .openai_client import UpstreamSessionClient, SessionResult, SessionErrorKind

__all__ = [
    "UpstreamSessionClient",
    "SessionResult",
    "SessionErrorKind",
]
