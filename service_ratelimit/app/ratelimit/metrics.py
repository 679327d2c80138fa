"""
Admission counters and the snapshot served by the metrics route.
"""

import threading
from collections import Counter
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.metrics import MetricsCollector

from .bucket_store import BucketStore


class MetricsSnapshot(BaseModel):
    """Read-only view of the admission counters."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    requests_served: Dict[str, int] = Field(default_factory=dict, alias="requestsServed")
    rate_limit_triggered: int = Field(default=0, alias="rateLimitTriggered")
    active_buckets: int = Field(default=0, alias="activeBuckets")


class AdmissionMetrics:
    """Running counters fed by admission decisions.

    Served requests are counted per client; rejections are a single global
    counter. When a :class:`MetricsCollector` is attached every decision is
    mirrored into Prometheus as well.
    """

    def __init__(self, store: BucketStore, collector: Optional[MetricsCollector] = None):
        self.store = store
        self.collector = collector
        self._requests_served: Counter = Counter()
        self._rate_limit_triggered = 0
        self._lock = threading.Lock()

    def record_allowed(self, client_id: str) -> int:
        """Count a served request; return the client's new total."""
        with self._lock:
            self._requests_served[client_id] += 1
            served = self._requests_served[client_id]
        if self.collector:
            self.collector.record_admission("allowed", len(self.store))
        return served

    def record_denied(self, client_id: str) -> int:
        """Count a rejection; return the global rejection total."""
        with self._lock:
            self._rate_limit_triggered += 1
            triggered = self._rate_limit_triggered
        if self.collector:
            self.collector.record_admission("denied", len(self.store))
        return triggered

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                requests_served=dict(self._requests_served),
                rate_limit_triggered=self._rate_limit_triggered,
                active_buckets=len(self.store),
            )

    def reset(self) -> None:
        """Zero all counters and empty the bucket store."""
        with self._lock:
            self._requests_served.clear()
            self._rate_limit_triggered = 0
            self.store.reset()
        if self.collector:
            self.collector.record_admission_reset()
