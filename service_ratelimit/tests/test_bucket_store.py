"""
Unit tests for the token bucket store.
"""

import threading

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_ratelimit.app.ratelimit.bucket_store import BucketStore, BucketState


class TestBucketStore:
    """Test cases for BucketStore."""

    @pytest.fixture
    def store(self):
        return BucketStore(capacity=10)

    def test_new_bucket_starts_full(self, store):
        bucket = store.get_or_create("10.0.0.1", now=5.0)

        assert bucket.tokens == 10
        assert bucket.last_refill == 5.0
        assert len(store) == 1

    def test_existing_bucket_is_returned(self, store):
        first = store.get_or_create("10.0.0.1", now=5.0)
        first.tokens = 3

        second = store.get_or_create("10.0.0.1", now=99.0)

        assert second is first
        assert second.tokens == 3
        assert second.last_refill == 5.0
        assert len(store) == 1

    def test_peek_does_not_create(self, store):
        assert store.peek("10.0.0.9") is None
        assert "10.0.0.9" not in store
        assert len(store) == 0

    def test_peek_returns_immutable_copy(self, store):
        bucket = store.get_or_create("10.0.0.1", now=1.0)
        state = store.peek("10.0.0.1")

        assert state == BucketState(tokens=10, last_refill=1.0)

        bucket.tokens = 4
        assert state.tokens == 10
        with pytest.raises(Exception):
            state.tokens = 0

    def test_locked_holds_bucket_lock(self, store):
        with store.locked("10.0.0.1", now=1.0) as bucket:
            assert bucket.lock.locked()
        assert not bucket.lock.locked()

    def test_reset_clears_all_buckets(self, store):
        store.get_or_create("a", now=1.0)
        store.get_or_create("b", now=1.0)

        store.reset()

        assert len(store) == 0
        assert store.peek("a") is None

    def test_concurrent_creation_yields_single_bucket(self, store):
        results = []
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            results.append(store.get_or_create("shared", now=1.0))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 1
        assert all(bucket is results[0] for bucket in results)
