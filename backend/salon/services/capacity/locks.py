"""
Per-date serialization for admission and status changes.

Every write that can change the capacity picture of a calendar date
(new appointment, status transition) runs while holding that date's lock,
so concurrent requests for one date behave as if admitted one at a time.

Two implementations:
- LocalDateLocks: threading locks, valid inside one process only
- RedisDateLocks: token lock in Redis (SET NX PX + compare-and-delete),
  valid across processes sharing the same Redis
"""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Iterator

from redis import Redis
from redis.exceptions import RedisError

from .errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

# Atomic compare-and-delete: only the owner releases the lock
COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
else
  return 0
end
"""


class LocalDateLocks:
    """One threading.Lock per calendar date, dropped once nobody holds or waits for it."""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        # date -> [lock, holders + waiters]
        self._locks: dict[date, list] = {}

    def _checkout(self, day: date) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(day)
            if entry is None:
                entry = self._locks[day] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, day: date) -> None:
        with self._guard:
            entry = self._locks[day]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[day]

    @contextmanager
    def hold(self, day: date) -> Iterator[None]:
        lock = self._checkout(day)
        try:
            if not lock.acquire(timeout=self.timeout_seconds):
                raise ConcurrencyConflict(
                    f"Could not lock {day.isoformat()} within {self.timeout_seconds}s",
                    date=day.isoformat(),
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(day)


class RedisDateLocks:
    """Distributed per-date lock with a lease and a bounded acquire wait."""

    KEY_PREFIX = "lock:admission"

    def __init__(
        self,
        redis: Redis,
        timeout_seconds: float = 5.0,
        lease_seconds: float = 30.0,
        poll_interval_seconds: float = 0.05,
    ):
        self.redis = redis
        self.timeout_seconds = timeout_seconds
        self.lease_seconds = lease_seconds
        self.poll_interval_seconds = poll_interval_seconds

    def _key(self, day: date) -> str:
        return f"{self.KEY_PREFIX}:{day.isoformat()}"

    def _try_acquire(self, key: str, token: str) -> bool:
        try:
            return bool(self.redis.set(key, token, nx=True, px=int(self.lease_seconds * 1000)))
        except RedisError as e:
            raise ConcurrencyConflict(f"Lock backend unavailable: {e}", key=key) from e

    @contextmanager
    def hold(self, day: date) -> Iterator[None]:
        key = self._key(day)
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.timeout_seconds

        while not self._try_acquire(key, token):
            if time.monotonic() >= deadline:
                raise ConcurrencyConflict(
                    f"Could not lock {day.isoformat()} within {self.timeout_seconds}s",
                    date=day.isoformat(),
                )
            time.sleep(self.poll_interval_seconds)

        logger.debug(f"Acquired admission lock: {key} (token: {token[:8]})")
        try:
            yield
        finally:
            try:
                self.redis.eval(COMPARE_AND_DELETE, 1, key, token)
            except RedisError as e:
                # Lease expiry releases it eventually
                logger.warning(f"Failed to release lock {key}: {e}")
