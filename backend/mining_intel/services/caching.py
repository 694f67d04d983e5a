from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

import redis
from redis.exceptions import LockNotOwnedError
from redis.lock import Lock
from ..core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _get_sync_redis() -> redis.Redis:
    """
    Create a fresh sync Redis client per call so Celery workers
    don't hold onto closed connections across forks.
    """
    return redis.from_url(
        str(settings.REDIS_URL),
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )


def normalize_company_name(name: str) -> str:
    """Trim, collapse inner whitespace and lowercase."""
    return _WHITESPACE_RE.sub(" ", (name or "").strip()).lower()


def slugify(value: str) -> str:
    return _NON_SLUG_RE.sub("-", normalize_company_name(value)).strip("-")


def cache_key_for(company_name: str) -> str:
    return f"context:{slugify(company_name)}"


class ResultCache:
    """
    TTL cache backed by Redis, passed explicitly to whoever needs it.

    Redis being unavailable is never fatal: reads degrade to a miss and
    writes are dropped. The cache only saves cost, it never changes results.
    """

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    def _redis(self) -> redis.Redis:
        return self._client if self._client is not None else _get_sync_redis()

    def get(self, key: str) -> Any:
        client = self._redis()
        try:
            val = client.get(key)
            if val is not None:
                return json.loads(val)
            return None
        except redis.RedisError:
            logger.warning("Cache read failed for %s", key, extra={"step": "cache"})
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> Any:
        client = self._redis()
        serialized = json.dumps(value)
        try:
            if ttl is not None:
                client.set(key, serialized, ex=ttl)
            else:
                client.set(key, serialized)
        except redis.RedisError:
            logger.warning("Cache write failed for %s", key, extra={"step": "cache"})
        return value

    def get_or_fetch(
        self,
        key: str,
        ttl: int,
        producer: Callable[[], Any],
        cache_if: Callable[[Any], bool] | None = None,
    ) -> Any:
        """
        Return the cached value for ``key`` or call ``producer`` and store its
        result for ``ttl`` seconds. ``cache_if`` can veto storing a value.
        """
        cached = self.get(key)
        if cached is not None:
            logger.info("Cache hit for %s", key, extra={"step": "cache"})
            return cached

        value = producer()
        if value is not None and (cache_if is None or cache_if(value)):
            self.set(key, value, ttl=ttl)
        return value


class NameLease:
    """
    Short-lived advisory lock per normalized company name.

    Prevents two runs for the same company (e.g. from two batches submitted
    close together) from interleaving their delete/insert transactions.
    Built on redis-py's ``Lock``, whose release only deletes the key while
    it still carries this holder's token.
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int | None = None) -> None:
        self._client = client
        self.ttl = ttl or settings.COMPANY_LEASE_TTL_SECONDS
        self._held: dict[str, Lock] = {}

    def _redis(self) -> redis.Redis:
        return self._client if self._client is not None else _get_sync_redis()

    @staticmethod
    def key_for(company_name: str) -> str:
        return f"lease:company:{slugify(company_name)}"

    def acquire(self, company_name: str) -> bool:
        """
        False if another run holds the lease.

        If Redis is down we proceed without a lease rather than stall ingestion.
        """
        key = self.key_for(company_name)
        try:
            lock = self._redis().lock(key, timeout=self.ttl, blocking=False)
            if not lock.acquire():
                return False
        except redis.RedisError:
            logger.warning(
                "Lease store unavailable; continuing without lease",
                extra={"company": company_name, "step": "lease"},
            )
            return True
        self._held[key] = lock
        return True

    def release(self, company_name: str) -> None:
        lock = self._held.pop(self.key_for(company_name), None)
        if lock is None:
            return
        try:
            lock.release()
        except LockNotOwnedError:
            logger.warning(
                "Lease expired and was taken by another run before release",
                extra={"company": company_name, "step": "lease"},
            )
        except redis.RedisError:
            logger.warning(
                "Failed to release lease; it will expire on its own",
                extra={"company": company_name, "step": "lease"},
            )
