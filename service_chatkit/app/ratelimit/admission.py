"""
Admission control for rate-limited routes.
"""

from enum import Enum

from .token_bucket import TokenBucketStore, DEFAULT_RETENTION_MS


class AdmissionDecision(Enum):
    """Outcome of an admission check."""
    ADMITTED = "admitted"
    DENIED = "denied"

    @property
    def admitted(self) -> bool:
        return self is AdmissionDecision.ADMITTED


class AdmissionController:
    """Admit or deny a request by client identity.

    Delegates to an injected bucket store, which it owns; nothing else in
    the service touches the buckets.
    """

    def __init__(self, store: TokenBucketStore):
        self._store = store

    @property
    def refill_interval_ms(self) -> int:
        return self._store.refill_interval_ms

    @property
    def tracked_identities(self) -> int:
        return len(self._store)

    def check(self, identity: str) -> AdmissionDecision:
        """Check and consume admission for ``identity``."""
        if self._store.admit(identity):
            return AdmissionDecision.ADMITTED
        return AdmissionDecision.DENIED

    def sweep(self, retention_ms: float = DEFAULT_RETENTION_MS) -> int:
        """Evict idle buckets; returns how many were removed."""
        return self._store.sweep(retention_ms)
