"""
Rate limiting package for the token service.

Holds the per-identity token-bucket store, the admission controller that
owns it, and the background sweeper that evicts idle buckets.
"""

from .token_bucket import TokenBucketStore, Bucket, BucketSnapshot, monotonic_ms
from .admission import AdmissionController, AdmissionDecision
from .sweeper import BucketSweeper

__all__ = [
    "TokenBucketStore",
    "Bucket",
    "BucketSnapshot",
    "monotonic_ms",
    "AdmissionController",
    "AdmissionDecision",
    "BucketSweeper",
]
