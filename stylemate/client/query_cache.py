"""
Reactive query cache for the customer app.

Results are keyed by request path ("/cart", "/customer/appointments?status=upcoming").
Invalidating a key prefix drops every matching entry and tells subscribers, which
re-render by fetching again.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

InvalidationListener = Callable[[list[str]], None]


def _matches(key: str, prefix: str) -> bool:
    return key == prefix or key.startswith(prefix + "?") or key.startswith(prefix + "/")


class QueryCache:
    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._versions: dict[str, int] = {}
        self._loading: set[str] = set()
        self._listeners: list[InvalidationListener] = []

    def get(self, key: str) -> Any:
        return self._entries.get(key)

    def has(self, key: str) -> bool:
        return key in self._entries

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    async def fetch(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value, loading it on a miss"""
        if key in self._entries:
            logger.debug(f"✅ Query HIT: {key}")
            return self._entries[key]

        logger.debug(f"❌ Query MISS: {key}")
        version = self._versions.get(key, 0)
        self._loading.add(key)
        try:
            value = await loader()
        finally:
            self._loading.discard(key)
        # Invalidated while loading: hand the result back but do not cache it
        if self._versions.get(key, 0) == version:
            self._entries[key] = value
        return value

    def invalidate(self, prefix: str) -> list[str]:
        keys = [k for k in set(self._entries) | self._loading if _matches(k, prefix)]
        if prefix not in keys:
            keys.append(prefix)
        for key in keys:
            self._entries.pop(key, None)
            self._versions[key] = self._versions.get(key, 0) + 1

        logger.debug(f"🔄 Invalidated queries: {sorted(keys)}")
        for listener in list(self._listeners):
            listener(keys)
        return keys

    def subscribe(self, listener: InvalidationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
