"""
Admission filter: the single entry point the HTTP layer calls per request.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .bucket_store import BucketStore
from .engine import RefillEngine, RefillPolicy
from .metrics import AdmissionMetrics, MetricsSnapshot


class Outcome(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass(frozen=True)
class Decision:
    """Result of evaluating one request against its client's bucket."""

    outcome: Outcome
    client_id: str
    tokens_remaining: int
    limit: int
    retry_after_seconds: float = 0.0

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOWED


class AdmissionFilter:
    """Per-client token bucket admission control.

    ``admit`` runs refill, check, debit and metric recording for one client
    as a single critical section on that client's bucket. A denied request
    fails immediately; nothing ever waits for tokens.
    """

    def __init__(
        self,
        policy: Optional[RefillPolicy] = None,
        collector: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.policy = policy or RefillPolicy()
        self.clock = clock
        self.store = BucketStore(self.policy.capacity)
        self.engine = RefillEngine(self.policy)
        self.metrics = AdmissionMetrics(self.store, collector)
        self.logger = get_logger("ratelimit.admission")

    def admit(self, client_id: str) -> Decision:
        """Decide whether ``client_id`` may proceed, spending a token if so."""
        now = self.clock()

        with self.store.locked(client_id, now) as bucket:
            result = self.engine.try_consume(bucket, now)

            if result.allowed:
                self.metrics.record_allowed(client_id)
                self.logger.info(
                    "Request served",
                    client_id=client_id,
                    tokens_remaining=result.tokens_remaining
                )
                return Decision(
                    outcome=Outcome.ALLOWED,
                    client_id=client_id,
                    tokens_remaining=result.tokens_remaining,
                    limit=self.policy.capacity,
                )

            retry_after = self.engine.seconds_until_next_token(bucket, now)
            triggered = self.metrics.record_denied(client_id)
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                rate_limit_triggered=triggered
            )
            return Decision(
                outcome=Outcome.DENIED,
                client_id=client_id,
                tokens_remaining=result.tokens_remaining,
                limit=self.policy.capacity,
                retry_after_seconds=retry_after,
            )

    def metrics_snapshot(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def reset(self) -> None:
        """Forget every client and zero the counters. Test/admin use only."""
        self.metrics.reset()
        self.logger.info("Rate limiter state reset")
