"""
In-process token bucket rate limiter keyed by client identity.

Refill is lazy: a bucket is only topped up when its identity makes a
request. Only whole refill intervals count, and ``last_refill`` jumps to
``now`` whenever tokens are added, so any partial interval is dropped.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, NamedTuple, Optional

Clock = Callable[[], float]

DEFAULT_MAX_TOKENS = 10
DEFAULT_REFILL_RATE = 1
DEFAULT_REFILL_INTERVAL_MS = 1000
DEFAULT_RETENTION_MS = 3_600_000


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class Bucket:
    """Token count and last refill time for one identity."""

    tokens: int
    last_refill: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    evicted: bool = False


class BucketSnapshot(NamedTuple):
    tokens: int
    last_refill: float


class TokenBucketStore:
    """Per-identity token buckets.

    The identity map is guarded by a store lock that is only held for
    lookup, insert and removal. Each bucket carries its own lock, so the
    refill-and-consume step for one identity is atomic without serializing
    unrelated identities.
    """

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS,
                 refill_rate: int = DEFAULT_REFILL_RATE,
                 refill_interval_ms: int = DEFAULT_REFILL_INTERVAL_MS,
                 clock: Optional[Clock] = None):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        if refill_interval_ms <= 0:
            raise ValueError("refill_interval_ms must be positive")

        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.refill_interval_ms = refill_interval_ms
        self._clock = clock or monotonic_ms
        self._buckets: Dict[str, Bucket] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def admit(self, identity: str) -> bool:
        """Consume one token for ``identity``; False when none are left."""
        while True:
            with self._lock:
                bucket = self._buckets.get(identity)
                if bucket is None:
                    # First request pays for itself.
                    self._buckets[identity] = Bucket(
                        tokens=self.max_tokens - 1,
                        last_refill=self._clock()
                    )
                    return True

            with bucket.lock:
                if bucket.evicted:
                    # Swept between lookup and lock; retry against a fresh bucket.
                    continue
                return self._consume(bucket, self._clock())

    def _consume(self, bucket: Bucket, now: float) -> bool:
        elapsed = now - bucket.last_refill
        if elapsed > 0:
            tokens_to_add = int(elapsed // self.refill_interval_ms) * self.refill_rate
            if tokens_to_add > 0:
                bucket.tokens = min(self.max_tokens, bucket.tokens + tokens_to_add)
                bucket.last_refill = now

        if bucket.tokens > 0:
            bucket.tokens -= 1
            return True
        return False

    def get(self, identity: str) -> Optional[BucketSnapshot]:
        """Read-only view of one bucket."""
        with self._lock:
            bucket = self._buckets.get(identity)
        if bucket is None:
            return None
        with bucket.lock:
            if bucket.evicted:
                return None
            return BucketSnapshot(bucket.tokens, bucket.last_refill)

    def sweep(self, retention_ms: float = DEFAULT_RETENTION_MS) -> int:
        """Evict buckets idle for longer than ``retention_ms``.

        Buckets whose lock is held are in use and are skipped.
        Returns the number of evicted buckets.
        """
        now = self._clock()
        with self._lock:
            candidates: List[tuple] = list(self._buckets.items())

        evicted = 0
        for identity, bucket in candidates:
            if not bucket.lock.acquire(blocking=False):
                continue
            try:
                if bucket.evicted or now - bucket.last_refill <= retention_ms:
                    continue
                with self._lock:
                    if self._buckets.get(identity) is bucket:
                        del self._buckets[identity]
                        bucket.evicted = True
                        evicted += 1
            finally:
                bucket.lock.release()

        return evicted
