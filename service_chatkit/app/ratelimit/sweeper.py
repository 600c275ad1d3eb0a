"""
Background eviction of idle token buckets.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .admission import AdmissionController


class BucketSweeper:
    """Periodically evicts idle buckets through the admission controller."""

    def __init__(self, admission: AdmissionController, interval_seconds: float,
                 retention_ms: float, metrics: Optional[MetricsCollector] = None):
        self.admission = admission
        self.interval_seconds = interval_seconds
        self.retention_ms = retention_ms
        self.metrics = metrics
        self.logger = get_logger("chatkit.bucket_sweeper")

        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def sweep_once(self) -> int:
        """Run a single sweep pass."""
        evicted = self.admission.sweep(self.retention_ms)
        remaining = self.admission.tracked_identities
        if self.metrics:
            self.metrics.set_gauge("rate_limit_tracked_identities", remaining)
        self.logger.debug("Swept idle rate limit buckets", evicted=evicted, remaining=remaining)
        return evicted

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep_once()
            except Exception as e:
                self.logger.error("Error in bucket sweeper", error=str(e), exc_info=True)
