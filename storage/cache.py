"""
Simple SQLite cache and rate-limit-aware fetch helper.
Stores raw GitHub JSON responses keyed by resource (e.g. 'github:commits:org:repo:since:...').
"""

import sqlite3
import json
import time
import logging
from typing import Optional, Any, Dict
import threading
import requests  # re-exported so tests can patch storage.cache.requests  # noqa: F401

from .retry import perform_request_with_retries, configure_retry

logger = logging.getLogger(__name__)

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS http_cache (
    key TEXT PRIMARY KEY,
    response TEXT,
    status INTEGER,
    timestamp REAL
);
"""


class Cache:
    def __init__(self, path: Optional[str] = None, ttl_seconds: Optional[float] = None):
        """Create a cache instance.

        :param path: SQLite file path or None for in-memory.
        :param ttl_seconds: optional TTL in seconds; older entries are treated as missing and pruned.
        """
        self.path = path or ':memory:'
        # repository workers share one cache, so every statement runs under the lock
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self.ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else None
        with self._lock:
            self.conn.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def stats(self) -> Dict[str, Any]:
        """Return basic statistics about the cache: count, oldest timestamp, newest timestamp."""
        with self._lock:
            cur = self.conn.execute('SELECT COUNT(1), MIN(timestamp), MAX(timestamp) FROM http_cache')
            count, oldest, newest = cur.fetchone()
        return {
            'path': self.path,
            'count': int(count or 0),
            'oldest': float(oldest) if oldest is not None else None,
            'newest': float(newest) if newest is not None else None,
        }

    # noinspection SqlWithoutWhere
    def clear(self):
        """Clear all entries from the cache."""
        with self._lock:
            self.conn.execute('DELETE FROM http_cache')
            self.conn.commit()

    # noinspection SqlResolve
    def delete_key(self, key: str) -> int:
        with self._lock:
            cur = self.conn.execute('DELETE FROM http_cache WHERE key = ?', (key,))
            self.conn.commit()
            return cur.rowcount

    # noinspection SqlResolve
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.conn.execute('SELECT response, status, timestamp FROM http_cache WHERE key = ?', (key,)).fetchone()
        if not row:
            return None
        response, status, timestamp = row
        if self.ttl_seconds is not None and time.time() - float(timestamp) > self.ttl_seconds:
            self.delete_key(key)
            return None
        try:
            parsed = json.loads(response)
        except ValueError:
            parsed = response
        return {'response': parsed, 'status': status, 'timestamp': timestamp}

    # noinspection SqlResolve
    def set(self, key: str, response: Any, status: int = 200):
        try:
            payload = json.dumps(response)
        except (TypeError, ValueError):
            payload = json.dumps(str(response))
        with self._lock:
            self.conn.execute(
                'REPLACE INTO http_cache(key, response, status, timestamp) VALUES (?, ?, ?, ?)', (key, payload, status, time.time())
            )
            if self.ttl_seconds is not None:
                self.conn.execute('DELETE FROM http_cache WHERE timestamp < ?', (time.time() - self.ttl_seconds,))
            self.conn.commit()


def _cached_fresh(cache: Optional[Cache], cache_key: Optional[str], max_age: Optional[float]):
    if cache is None or not cache_key:
        return None
    cached = cache.get(cache_key)
    if not cached:
        return None
    if max_age is not None and time.time() - float(cached.get('timestamp') or 0) > float(max_age):
        return None
    return cached


def rate_limited_get(
    url: str,
    headers: Dict[str, str] = None,
    params: Dict[str, Any] = None,
    cache: Cache = None,
    cache_key: str = None,
    min_wait: float = 0.5,
    max_age: Optional[float] = None,
    max_retries: int = 3,
    backoff_base: Optional[float] = None,
    backoff_jitter: Optional[float] = None,
    max_backoff: Optional[float] = None,
) -> Dict[str, Any]:
    """Public API: perform a GET with caching, rate-limit handling, and retries.

    Checks cache first (honoring max_age), otherwise performs the request with retries/backoff via storage.retry.
    """
    cached = _cached_fresh(cache, cache_key, max_age)
    if cached:
        logger.debug("Cache hit for %s", cache_key)
        return cached
    return perform_request_with_retries(
        url, headers or {}, params or {}, cache, cache_key or '', min_wait, max_retries, backoff_base, backoff_jitter, max_backoff
    )


__all__ = ["Cache", "rate_limited_get", "configure_retry"]
