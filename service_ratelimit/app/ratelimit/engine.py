"""
Refill and consume arithmetic for token buckets.

Refill is lazy: nothing runs in the background, a bucket is topped up only
when a request for it arrives. Only whole tokens are credited, and
``last_refill`` moves forward only when at least one token was credited, so
time spent in a partial interval keeps counting toward the next token.
"""

import math
from dataclasses import dataclass

from shared.errors import ValidationError

from .bucket_store import TokenBucket


@dataclass(frozen=True)
class RefillPolicy:
    """Global token bucket policy.

    ``refill_rate`` tokens are credited per ``refill_interval`` seconds, up to
    ``capacity``.
    """

    capacity: int = 10
    refill_rate: float = 1.0
    refill_interval: float = 1.0

    def __post_init__(self):
        if self.capacity < 1:
            raise ValidationError("capacity must be at least 1", {"capacity": self.capacity})
        if self.refill_rate <= 0:
            raise ValidationError("refill_rate must be positive", {"refill_rate": self.refill_rate})
        if self.refill_interval <= 0:
            raise ValidationError("refill_interval must be positive", {"refill_interval": self.refill_interval})

    @classmethod
    def from_config(cls, config) -> "RefillPolicy":
        """Build the policy from service settings."""
        return cls(
            capacity=config.rate_limit_capacity,
            refill_rate=config.rate_limit_refill_rate,
            refill_interval=config.rate_limit_refill_interval_ms / 1000.0,
        )


@dataclass(frozen=True)
class ConsumeResult:
    """Outcome of one consume attempt."""

    allowed: bool
    tokens_remaining: int


class RefillEngine:
    """Applies a :class:`RefillPolicy` to buckets.

    Callers must hold the bucket's lock; the engine itself keeps no state.
    """

    def __init__(self, policy: RefillPolicy):
        self.policy = policy

    def _elapsed(self, bucket: TokenBucket, now: float) -> float:
        # A clock that steps backwards counts as no time passing.
        return max(0.0, now - bucket.last_refill)

    def refill(self, bucket: TokenBucket, now: float) -> int:
        """Credit whole tokens earned since ``last_refill``; return how many."""
        elapsed = self._elapsed(bucket, now)
        tokens_to_add = math.floor(elapsed / self.policy.refill_interval * self.policy.refill_rate)

        if tokens_to_add > 0:
            bucket.tokens = min(self.policy.capacity, bucket.tokens + tokens_to_add)
            bucket.last_refill = now
        return tokens_to_add

    def try_consume(self, bucket: TokenBucket, now: float) -> ConsumeResult:
        """Refill, then debit one token if one is available."""
        self.refill(bucket, now)

        if bucket.tokens >= 1:
            bucket.tokens -= 1
            return ConsumeResult(allowed=True, tokens_remaining=bucket.tokens)
        return ConsumeResult(allowed=False, tokens_remaining=bucket.tokens)

    def seconds_until_next_token(self, bucket: TokenBucket, now: float) -> float:
        """Time until the next whole-token credit, 0 if a token is available."""
        if bucket.tokens >= 1:
            return 0.0
        per_token = self.policy.refill_interval / self.policy.refill_rate
        return max(0.0, per_token - self._elapsed(bucket, now))
