"""
Process-wide Redis connection.

Backs the appointment list cache and the device-local guest cart store.
REDIS_URL wins when set (Upstash and other managed Redis hand out URLs);
otherwise the REDIS_HOST / REDIS_PORT / ... variables are used.
"""
import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)

_CONNECTION_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 15,
    "socket_timeout": 30,
    "retry_on_timeout": True,
    "health_check_interval": 30,
    "max_connections": 20,
}

redis_client: Optional[redis.Redis] = None


def _redacted(url: str) -> str:
    scheme, _, rest = url.partition("://")
    if "@" not in rest:
        return f"{scheme}://****"
    return f"{scheme}://****@{rest.split('@', 1)[1]}"


def _connect() -> redis.Redis:
    url = os.getenv("REDIS_URL")
    if url:
        logger.info(f"📡 Connecting to Redis at {_redacted(url)}")
        return redis.from_url(url, **_CONNECTION_OPTIONS)

    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", "6379"))
    use_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
    logger.info(f"📡 Connecting to Redis at {host}:{port} (ssl={use_ssl})")
    return redis.Redis(
        host=host,
        port=port,
        password=os.getenv("REDIS_PASSWORD") or None,
        db=int(os.getenv("REDIS_DB", "0")),
        ssl=use_ssl,
        **_CONNECTION_OPTIONS,
    )


def get_redis_client() -> redis.Redis:
    """Return the shared client, connecting and pinging on first use"""
    global redis_client

    if redis_client is None:
        client = _connect()
        try:
            client.ping()
        except redis.RedisError as e:
            logger.error(f"❌ Redis ping failed: {e}")
            raise
        logger.info("✅ Redis connected")
        redis_client = client

    return redis_client
