# backend/venuebook/services/cache_service.py
"""
Cache invalidation for the venue booking backend.

Read caches are populated by the API layer; the booking core only tells
them which keys went stale after a committed write. Invalidation is
best-effort and must never undo or block the write.
"""

from datetime import date, datetime
from enum import Enum
import logging
import threading
from typing import Callable, List, Optional, Protocol, TypeVar, Union

import redis
from redis import Redis
from redis.exceptions import RedisError

from ..core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheInvalidationPort(Protocol):
    def invalidate(self, keys: List[str]) -> None:
        ...


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """
    Circuit breaker pattern implementation for cache resilience.

    Prevents cascading failures when cache is unavailable.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: type[BaseException] = RedisError,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self._failure_count: int = 0
        self._last_failure_time: Optional[datetime] = None
        self._state: CircuitState = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._last_failure_time:
                time_since_failure = (datetime.now() - self._last_failure_time).total_seconds()
                if time_since_failure >= self.recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
            return self._state

    def call(self, func: Callable[..., T], *args: object) -> Optional[T]:
        """
        Execute function with circuit breaker protection.

        Returns:
            Function result or None if circuit is open

        Raises:
            expected_exception while the circuit is still closed
        """
        if self.state == CircuitState.OPEN:
            logger.warning(f"Circuit breaker is OPEN, skipping {func.__name__}")
            return None

        try:
            result = func(*args)
            self._on_success()
            return result
        except self.expected_exception:
            self._on_failure()
            if self.state == CircuitState.CLOSED:
                # Still under threshold, propagate error
                raise
            return None

    def _on_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("Circuit breaker recovered, closing circuit")

    def _on_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now()

            if self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(f"Circuit breaker opened after {self._failure_count} failures")


class CacheKeyBuilder:
    """Cache keys shared with the API layer's read caches."""

    @staticmethod
    def build(*parts: Union[str, int, date]) -> str:
        """
        Build a cache key from parts.

        Examples:
            build('availability', 'F1', date(2025, 6, 18)) -> 'availability:F1:2025-06-18'
        """
        return ":".join(part.isoformat() if isinstance(part, date) else str(part) for part in parts)

    @staticmethod
    def customer_bookings(customer_id: str) -> str:
        return CacheKeyBuilder.build("bookings", customer_id)

    @staticmethod
    def field_availability(field_id: str, booking_date: date) -> str:
        return CacheKeyBuilder.build("availability", field_id, booking_date)

    @staticmethod
    def pending_payments() -> str:
        return CacheKeyBuilder.build("payments", "pending")

    @staticmethod
    def customer_payments(customer_id: str) -> str:
        return CacheKeyBuilder.build("payments", "user", customer_id)


class CacheService:
    """
    Redis-backed cache invalidation.

    Without a reachable Redis there is nothing to invalidate and calls are
    no-ops.
    """

    def __init__(self, redis_client: Optional[Redis] = None):
        self.logger = logging.getLogger(__name__)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=5, recovery_timeout=60, expected_exception=RedisError
        )
        self.redis: Optional[Redis] = redis_client
        if self.redis is None and settings.redis_url:
            self._setup_redis_connection(settings.redis_url)
        self._stats = {"invalidations": 0, "errors": 0}

    def _setup_redis_connection(self, url: str) -> None:
        try:
            self.redis = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self.redis.ping()
            self.logger.info("Connected to Redis for cache invalidation")
        except RedisError as e:
            self.logger.warning(f"Redis not available: {e}. Cache invalidation disabled.")
            self.redis = None

    def invalidate(self, keys: List[str]) -> None:
        """Delete the given keys; errors are counted and logged, never raised."""
        redis_client = self.redis
        if redis_client is None or not keys:
            return

        def _delete_keys() -> int:
            return int(redis_client.delete(*keys))

        try:
            deleted = self.circuit_breaker.call(_delete_keys)
            if deleted is not None:
                self._stats["invalidations"] += deleted
        except RedisError as e:
            self._stats["errors"] += 1
            self.logger.warning(f"Cache invalidation failed for {keys}: {e}")

    def get_stats(self) -> dict[str, object]:
        return {**self._stats, "circuit_state": self.circuit_breaker.state.value}
