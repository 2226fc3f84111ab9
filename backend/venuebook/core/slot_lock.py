"""
Keyed mutual exclusion for booking writes.

Creating a booking or moving one to a new slot is a check-then-insert; two
requests for the same field and date must not interleave between the
availability check and the commit. The slot key is ``(field_id, date)``,
which is coarser than the overlapping interval but cheap to compute.

Payment submission and review hold a second key per booking so that a
submit, approve or reject always sees the state the previous one committed.

Redis is used when ``REDIS_URL`` is configured so that every worker process
shares the lock. Without Redis the lock falls back to in-process locks,
which is correct for a single-process deployment and for tests.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
from typing import ContextManager, Dict, Iterator, Optional, Protocol

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import BookingBusyException, ConflictException, SlotBusyException

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def slot_lock_key(field_id: str, booking_date: date) -> str:
    return f"slot:{field_id}:{booking_date.isoformat()}:mutex"


def booking_lock_key(booking_id: str) -> str:
    return f"booking:{booking_id}:mutex"


class SlotLock(Protocol):
    def hold(self, field_id: str, booking_date: date) -> ContextManager[None]:
        ...

    def hold_booking(self, booking_id: str) -> ContextManager[None]:
        ...


class LocalSlotLock:
    """In-process lock built on one threading.Lock per key."""

    backend = "local"

    def __init__(self, wait_seconds: Optional[float] = None) -> None:
        self.wait_seconds = wait_seconds if wait_seconds is not None else settings.slot_lock_wait_seconds
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def hold(self, field_id: str, booking_date: date) -> ContextManager[None]:
        return self._hold_key(
            slot_lock_key(field_id, booking_date),
            SlotBusyException(field_id, booking_date.isoformat()),
        )

    def hold_booking(self, booking_id: str) -> ContextManager[None]:
        return self._hold_key(booking_lock_key(booking_id), BookingBusyException(booking_id))

    @contextmanager
    def _hold_key(self, key: str, busy: ConflictException) -> Iterator[None]:
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.wait_seconds):
            prometheus_metrics.record_slot_lock("acquire", self.backend, "timeout")
            logger.warning("slot_lock_timeout", extra={"key": key, "backend": self.backend})
            raise busy
        prometheus_metrics.record_slot_lock("acquire", self.backend, "success")
        try:
            yield
        finally:
            lock.release()
            prometheus_metrics.record_slot_lock("release", self.backend, "success")


class RedisSlotLock:
    """Lock shared across processes through Redis."""

    backend = "redis"

    def __init__(
        self,
        client: Redis,
        ttl_seconds: Optional[int] = None,
        wait_seconds: Optional[float] = None,
    ) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.slot_lock_ttl_seconds
        self.wait_seconds = wait_seconds if wait_seconds is not None else settings.slot_lock_wait_seconds

    def hold(self, field_id: str, booking_date: date) -> ContextManager[None]:
        return self._hold_key(
            slot_lock_key(field_id, booking_date),
            SlotBusyException(field_id, booking_date.isoformat()),
        )

    def hold_booking(self, booking_id: str) -> ContextManager[None]:
        return self._hold_key(booking_lock_key(booking_id), BookingBusyException(booking_id))

    @contextmanager
    def _hold_key(self, key: str, busy: ConflictException) -> Iterator[None]:
        lock = self.client.lock(key, timeout=self.ttl_seconds, blocking_timeout=self.wait_seconds)
        try:
            acquired = lock.acquire()
        except RedisError as exc:
            prometheus_metrics.record_slot_lock("acquire", self.backend, "error")
            logger.error(
                "slot_lock_acquire_failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise busy from exc
        if not acquired:
            prometheus_metrics.record_slot_lock("acquire", self.backend, "timeout")
            logger.warning("slot_lock_timeout", extra={"key": key, "backend": self.backend})
            raise busy
        prometheus_metrics.record_slot_lock("acquire", self.backend, "success")
        try:
            yield
        finally:
            try:
                lock.release()
                prometheus_metrics.record_slot_lock("release", self.backend, "success")
            except (LockError, RedisError) as exc:
                # TTL expired before release; the write already committed or rolled back
                prometheus_metrics.record_slot_lock("release", self.backend, "error")
                logger.warning(
                    "slot_lock_release_failed",
                    extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
                )


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    if not settings.redis_url:
        return None
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True)
            client.ping()
        except RedisError as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


_LOCAL_LOCK: Optional[LocalSlotLock] = None


def get_slot_lock() -> SlotLock:
    """Return the process-wide lock, preferring Redis when reachable."""
    global _LOCAL_LOCK
    client = _get_sync_redis()
    if client is not None:
        return RedisSlotLock(client)
    if settings.redis_url:
        logger.warning("slot_lock_falling_back_to_local")
    with _SYNC_REDIS_LOCK:
        if _LOCAL_LOCK is None:
            _LOCAL_LOCK = LocalSlotLock()
        return _LOCAL_LOCK


@contextmanager
def slot_lock(field_id: str, booking_date: date) -> Iterator[None]:
    """Hold the process-wide lock for one field and date."""
    with get_slot_lock().hold(field_id, booking_date):
        yield
