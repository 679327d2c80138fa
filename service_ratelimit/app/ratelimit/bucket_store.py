"""
In-process store of per-client token buckets.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional


@dataclass
class TokenBucket:
    """Mutable bucket state for one client identifier.

    Only reachable through :class:`BucketStore`; callers mutate it while
    holding ``lock`` (see :meth:`BucketStore.locked`).
    """

    tokens: int
    last_refill: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


@dataclass(frozen=True)
class BucketState:
    """Immutable copy of a bucket, safe to hand out."""

    tokens: int
    last_refill: float


class BucketStore:
    """Maps client identifiers to lazily created token buckets.

    The store lock guards the mapping only. Accounting for one identifier is
    serialized on that bucket's own lock, so unrelated clients never wait on
    each other.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def get_or_create(self, client_id: str, now: float) -> TokenBucket:
        """Return the bucket for ``client_id``, creating a full one if absent."""
        bucket = self._buckets.get(client_id)
        if bucket is not None:
            return bucket

        with self._lock:
            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = TokenBucket(tokens=self.capacity, last_refill=now)
                self._buckets[client_id] = bucket
            return bucket

    @contextmanager
    def locked(self, client_id: str, now: float) -> Iterator[TokenBucket]:
        """Yield the client's bucket with its lock held for the whole block."""
        bucket = self.get_or_create(client_id, now)
        with bucket.lock:
            yield bucket

    def peek(self, client_id: str) -> Optional[BucketState]:
        """Snapshot a bucket without creating it."""
        bucket = self._buckets.get(client_id)
        if bucket is None:
            return None
        with bucket.lock:
            return BucketState(tokens=bucket.tokens, last_refill=bucket.last_refill)

    def reset(self) -> None:
        """Drop every bucket. Not for use on the request path."""
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._buckets
