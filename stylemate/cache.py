"""
Server-side read cache for customer appointment lists.

Entries are JSON documents under "appointments:{customer_id}:{status}". Redis
being down never fails a request: reads miss, writes and invalidations are
skipped and logged.
"""
import json
import logging
from typing import Any, Optional

from .config import APPOINTMENTS_CACHE_TTL
from .redis_client import get_redis_client

logger = logging.getLogger(__name__)

APPOINTMENTS_NAMESPACE = "appointments"


class Cache:
    """JSON values in Redis, failing open"""

    def __init__(self, redis_client=None):
        self.redis_client = redis_client

    def _client(self):
        if self.redis_client is not None:
            return self.redis_client
        try:
            self.redis_client = get_redis_client()
        except Exception as e:
            logger.warning(f"⚠️ Appointment cache disabled, Redis unavailable: {e}")
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._client()
        if client is None:
            return None
        try:
            raw = client.get(key)
        except Exception as e:
            logger.error(f"❌ Cache read failed for {key}: {e}")
            return None
        if not raw:
            logger.debug(f"Cache miss: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> bool:
        client = self._client()
        if client is None:
            return False
        try:
            client.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.error(f"❌ Cache write failed for {key}: {e}")
            return False
        return True

    def delete_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern; returns how many were removed"""
        client = self._client()
        if client is None:
            return 0
        try:
            keys = client.keys(pattern)
            removed = client.delete(*keys) if keys else 0
        except Exception as e:
            logger.error(f"❌ Cache invalidation failed for {pattern}: {e}")
            return 0
        logger.debug(f"🔄 Invalidated {removed} cache keys for {pattern}")
        return removed


cache = Cache()


def build_appointment_list_key(customer_id: str, status: Optional[str] = None) -> str:
    return f"{APPOINTMENTS_NAMESPACE}:{customer_id}:{status or 'all'}"


def get_appointments_cached(customer_id: str, status: Optional[str] = None) -> Optional[list]:
    return cache.get(build_appointment_list_key(customer_id, status))


def set_appointments_cached(
    customer_id: str, status: Optional[str], appointments: list, ttl: int = APPOINTMENTS_CACHE_TTL
) -> bool:
    return cache.set(build_appointment_list_key(customer_id, status), appointments, ttl)


def invalidate_appointments_cache(customer_id: str) -> int:
    """Drop the upcoming, history and unfiltered lists of one customer"""
    return cache.delete_pattern(f"{APPOINTMENTS_NAMESPACE}:{customer_id}:*")
