"""
Rate limiting package for the service.

Holds the in-process token bucket store, the refill/consume engine, the
admission counters and the FastAPI glue that enforces a per-client request
budget with burst tolerance.
"""

from .admission import AdmissionFilter, Decision, Outcome
from .bucket_store import BucketState, BucketStore, TokenBucket
from .engine import ConsumeResult, RefillEngine, RefillPolicy
from .metrics import AdmissionMetrics, MetricsSnapshot
from .middleware import RateLimitMiddleware, UNKNOWN_CLIENT

__all__ = [
    "AdmissionFilter",
    "AdmissionMetrics",
    "BucketState",
    "BucketStore",
    "ConsumeResult",
    "Decision",
    "MetricsSnapshot",
    "Outcome",
    "RateLimitMiddleware",
    "RefillEngine",
    "RefillPolicy",
    "TokenBucket",
    "UNKNOWN_CLIENT",
]
