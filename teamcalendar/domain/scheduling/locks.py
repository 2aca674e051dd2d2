"""
Per-(employee, date) write serialization

Creating or moving an appointment is read-evaluate-persist against the
appointment set of one employee on one date. The lock for that key is held
across the whole sequence; different keys never contend.

Two backends:
- KeyedLockManager: threading locks, valid for a single worker process
- RedisLockManager: redis locks shared by every worker
"""

import logging
import os
from contextlib import contextmanager
from threading import Lock
from typing import Iterable, Iterator, Optional

import redis

from ...config import LOCK_BACKEND, LOCK_LEASE_SECONDS, LOCK_TIMEOUT_SECONDS, REDIS_URL
from .errors import LockTimeout, StorageUnavailable

logger = logging.getLogger(__name__)


def lock_key(employee_id: str, day) -> str:
    return f"appointments:{employee_id}:{day}"


class _KeyEntry:
    """Lock for one key plus the number of holders and waiters using it"""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = Lock()
        self.users = 0


class KeyedLockManager:
    """In-process lock per key, dropped again once nobody holds or waits for it"""

    def __init__(self, timeout: float = LOCK_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._locks: dict[str, _KeyEntry] = {}
        self._registry_lock = Lock()

    def _checkout(self, key: str) -> Lock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyEntry()
            entry.users += 1
            return entry.lock

    def _checkin(self, key: str) -> None:
        with self._registry_lock:
            entry = self._locks[key]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        """Acquire every key (sorted, deduplicated) or raise LockTimeout."""
        checked_out: list[str] = []
        acquired: list[Lock] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                checked_out.append(key)
                if not lock.acquire(timeout=self.timeout):
                    logger.warning(f"⏳ Lock wait timed out after {self.timeout}s: {key}")
                    raise LockTimeout(
                        "Another change to this calendar day is in progress, please retry",
                        lockKey=key,
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)


class RedisLockManager:
    """Redis-backed locks, for deployments running several workers"""

    def __init__(
        self,
        client: redis.Redis,
        timeout: float = LOCK_TIMEOUT_SECONDS,
        lease: float = LOCK_LEASE_SECONDS,
    ):
        self.client = client
        self.timeout = timeout
        self.lease = lease

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        acquired = []
        try:
            for key in sorted(set(keys)):
                lock = self.client.lock(
                    f"lock:{key}", timeout=self.lease, blocking_timeout=self.timeout
                )
                try:
                    got_it = lock.acquire()
                except redis.exceptions.RedisError as e:
                    logger.error(f"❌ Redis lock backend failed on {key}: {e}")
                    raise StorageUnavailable("Lock backend is unavailable, nothing was saved") from e
                if not got_it:
                    logger.warning(f"⏳ Redis lock wait timed out after {self.timeout}s: {key}")
                    raise LockTimeout(
                        "Another change to this calendar day is in progress, please retry",
                        lockKey=key,
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                try:
                    lock.release()
                except redis.exceptions.RedisError as e:
                    # Lease expired or connection lost; the key frees itself when the lease runs out
                    logger.error(f"❌ Redis lock not released cleanly: {e}")


def create_redis_client() -> redis.Redis:
    """Redis client for the lock backend"""
    if REDIS_URL:
        logger.info("📡 Using Redis URL connection for appointment locks")
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=15,
            socket_timeout=30,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    else:
        redis_host = os.getenv("REDIS_HOST", "localhost")
        redis_port = int(os.getenv("REDIS_PORT", "6379"))
        logger.info(f"📡 Using Redis at {redis_host}:{redis_port} for appointment locks")
        client = redis.Redis(
            host=redis_host,
            port=redis_port,
            password=os.getenv("REDIS_PASSWORD", None),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            decode_responses=True,
            socket_connect_timeout=15,
            socket_timeout=30,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    try:
        client.ping()
    except redis.exceptions.RedisError as e:
        logger.error(f"❌ Redis lock backend unreachable: {e}")
        raise StorageUnavailable("Lock backend is unavailable") from e
    return client


_lock_manager: Optional[object] = None


def get_lock_manager():
    """Process-wide lock manager for the configured backend"""
    global _lock_manager
    if _lock_manager is None:
        if LOCK_BACKEND == "redis":
            _lock_manager = RedisLockManager(create_redis_client())
            logger.info("🔒 Appointment locks: redis")
        else:
            _lock_manager = KeyedLockManager()
            logger.info("🔒 Appointment locks: in-process")
    return _lock_manager
