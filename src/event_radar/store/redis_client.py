"""
Redis connection and key layout shared by every radar component.
"""

from typing import Optional

import redis

from event_radar.shared.utils.configs import redis_config
from event_radar.shared.utils.errors import StoreError
from event_radar.shared.utils.logger import logger

_client: Optional[redis.Redis] = None


def create_redis_client() -> redis.Redis:
    """
    Create a Redis client from configuration.

    Returns:
        A client with string (decoded) responses

    Raises:
        StoreError: If the URL is missing or the client cannot be created
    """
    redis_url = redis_config["redis_url"]
    if not redis_url:
        raise StoreError("REDIS_URL is not configured")
    try:
        return redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=redis_config["redis_socket_timeout"],
            socket_connect_timeout=redis_config["redis_socket_connect_timeout"],
            retry_on_timeout=redis_config["redis_retry_on_timeout"],
        )
    except (redis.RedisError, ValueError) as e:
        logger.error(f"Failed to connect to Redis: {str(e)}")
        raise StoreError(f"Failed to connect to Redis: {e}")


def get_redis_client() -> redis.Redis:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        _client = create_redis_client()
    return _client


def is_connected(client: redis.Redis) -> bool:
    """Check if a Redis connection is working."""
    try:
        return bool(client.ping())
    except redis.RedisError:
        return False


class RedisKeys:
    """Key layout. Every key lives under the configured prefix (default `radar`)."""

    prefix = redis_config["key_prefix"]

    @classmethod
    def event(cls, event_id: str) -> str:
        return f"{cls.prefix}:event:{event_id}"

    @classmethod
    def all_events(cls) -> str:
        return f"{cls.prefix}:events"

    @classmethod
    def events_by_date(cls, date_str: str) -> str:
        return f"{cls.prefix}:events:by-date:{date_str}"

    @classmethod
    def source(cls, normalized_name: str, field: str) -> str:
        return f"{cls.prefix}:source:{normalized_name}:{field}"

    @classmethod
    def daily_metrics(cls, date_str: str) -> str:
        return f"{cls.prefix}:metrics:daily:{date_str}"

    @classmethod
    def global_metrics(cls) -> str:
        return f"{cls.prefix}:metrics:global"

    @classmethod
    def cleanup_metrics(cls) -> str:
        return f"{cls.prefix}:metrics:cleanup"
