"""
Per-account locks serializing the charging path of the unlock processor.
Redis lock in production (shared by every API worker), process-local lock for local runs/tests.
"""
import functools
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Protocol

import redis

from app.core.config import settings
from app.services.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class AccountLocks(Protocol):
    def hold(self, account_id: str) -> Iterator[None]: ...


class RedisAccountLocks:
    """redis-py Lock per account; auto-expires after unlock_lock_timeout_seconds."""

    def __init__(self, client: redis.Redis | None = None) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.timeout = settings.unlock_lock_timeout_seconds
        self.wait = settings.unlock_lock_wait_seconds

    def _key(self, account_id: str) -> str:
        return f"unlock_lock:{account_id}"

    @contextmanager
    def hold(self, account_id: str) -> Iterator[None]:
        lock = self.client.lock(self._key(account_id), timeout=self.timeout, blocking_timeout=self.wait)
        try:
            acquired = lock.acquire()
        except redis.RedisError as e:
            raise StoreUnavailable("account lock unavailable", cause=e) from e
        if not acquired:
            raise StoreUnavailable("account lock busy")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Expired while held; the grant uniqueness constraint still prevents double charge
                logger.warning("account_lock_expired", extra={"account_id": account_id})
            except redis.RedisError as e:
                logger.warning("account_lock_release_error", extra={"account_id": account_id, "error": str(e)})


class LocalAccountLocks:
    """threading.Lock per account. Only serializes within one process."""

    def __init__(self, wait_seconds: float | None = None) -> None:
        self.wait = settings.unlock_lock_wait_seconds if wait_seconds is None else wait_seconds
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[account_id] = lock
            return lock

    @contextmanager
    def hold(self, account_id: str) -> Iterator[None]:
        lock = self._lock_for(account_id)
        if not lock.acquire(timeout=self.wait):
            raise StoreUnavailable("account lock busy")
        try:
            yield
        finally:
            lock.release()


@functools.lru_cache(maxsize=None)
def get_account_locks(backend: str | None = None) -> AccountLocks:
    """Process-wide lock manager for the configured backend."""
    name = backend or settings.unlock_lock_backend
    if name == "local":
        return LocalAccountLocks()
    return RedisAccountLocks()
