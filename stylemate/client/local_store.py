"""
Device-local key-value store.

Each device (browser or app install) gets its own namespace in Redis; values are
whole documents read, written and deleted as a unit.
"""

import logging
from typing import Optional

from ..redis_client import get_redis_client

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, device_id: str, redis_client=None):
        self.device_id = device_id
        self.redis_client = redis_client

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            self.redis_client = get_redis_client()
        return self.redis_client

    def _key(self, name: str) -> str:
        return f"{name}:{self.device_id}"

    def read(self, name: str) -> Optional[str]:
        """Read a document; storage failures raise RedisError"""
        return self._get_client().get(self._key(name))

    def write(self, name: str, value: str) -> None:
        self._get_client().set(self._key(name), value)
        logger.debug(f"✅ Local store SET: {self._key(name)}")

    def delete(self, name: str) -> None:
        self._get_client().delete(self._key(name))
        logger.debug(f"✅ Local store DELETE: {self._key(name)}")
