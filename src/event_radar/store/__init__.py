from .event_store import EventStore
from .redis_client import RedisKeys, get_redis_client
