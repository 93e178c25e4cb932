"""
Durable storage of event records and their indexes.

Each event is one Redis hash at `radar:event:<id>`. Two sets index it:
`radar:events` (every id) and `radar:events:by-date:<date>`. The record
and both index memberships are always written and removed together in one
MULTI/EXEC transaction, so a crash can never leave an index pointing at a
record that was never written (or the reverse).
"""

from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

import redis

from event_radar.shared.schemas.dto import StoredEvent
from event_radar.shared.utils.errors import StoreError
from event_radar.shared.utils.logger import logger
from event_radar.store.redis_client import RedisKeys, get_redis_client


class EventStore:
    """
    Event Store backed by Redis hashes and sets.

    Writers use unconditional upsert/delete; concurrent writers to the same
    id resolve last-write-wins.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client or get_redis_client()

    async def upsert(self, event: StoredEvent) -> None:
        """
        Write (or fully replace) an event and update both indexes atomically.

        Args:
            event: The record to persist; `event.date` must be set

        Raises:
            StoreError: If the date is missing or Redis rejects the write
        """
        if not event.id or event.date is None:
            raise StoreError(f"Cannot store event without id and date: {event.id!r}")

        key = RedisKeys.event(event.id)
        new_date = event.date.isoformat()
        try:
            old_date = self.redis_client.hget(key, "date")
            with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=event.to_hash())
                pipe.sadd(RedisKeys.all_events(), event.id)
                if old_date and old_date[:10] != new_date:
                    pipe.srem(RedisKeys.events_by_date(old_date[:10]), event.id)
                pipe.sadd(RedisKeys.events_by_date(new_date), event.id)
                pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to store event {event.id}: {str(e)}")
            raise StoreError(f"Failed to store event {event.id}: {e}")

        logger.debug(f"Stored event {event.id} for {new_date}")

    async def get(self, event_id: str) -> Optional[StoredEvent]:
        """Return the stored event, or None if there is no hash for the id."""
        raw = await self.get_raw(event_id)
        if not raw:
            return None
        return StoredEvent.from_hash(raw, event_id)

    async def get_raw(self, event_id: str) -> Dict[str, str]:
        try:
            return self.redis_client.hgetall(RedisKeys.event(event_id))
        except redis.RedisError as e:
            raise StoreError(f"Failed to read event {event_id}: {e}")

    async def exists(self, event_id: str) -> bool:
        try:
            return bool(self.redis_client.exists(RedisKeys.event(event_id)))
        except redis.RedisError as e:
            raise StoreError(f"Failed to check event {event_id}: {e}")

    async def list_ids(self) -> List[str]:
        """All ids in the all-events index, sorted for stable iteration."""
        try:
            return sorted(self.redis_client.smembers(RedisKeys.all_events()))
        except redis.RedisError as e:
            raise StoreError(f"Failed to list event ids: {e}")

    async def list_by_date_index(self, day: date) -> List[str]:
        try:
            return sorted(
                self.redis_client.smembers(RedisKeys.events_by_date(day.isoformat()))
            )
        except redis.RedisError as e:
            raise StoreError(f"Failed to list events for {day}: {e}")

    async def get_many(self, event_ids: Iterable[str]) -> Dict[str, Optional[StoredEvent]]:
        """
        Load many records in one round trip.

        Returns:
            Mapping of id to StoredEvent, or to None when the id is indexed
            but its hash is missing
        """
        ids = list(event_ids)
        if not ids:
            return {}
        try:
            with self.redis_client.pipeline(transaction=False) as pipe:
                for event_id in ids:
                    pipe.hgetall(RedisKeys.event(event_id))
                rows = pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Failed to load events: {e}")

        return {
            event_id: StoredEvent.from_hash(row, event_id) if row else None
            for event_id, row in zip(ids, rows)
        }

    async def all_events(self) -> List[StoredEvent]:
        """Every readable record in the store (ids with missing hashes are skipped)."""
        loaded = await self.get_many(await self.list_ids())
        return [event for event in loaded.values() if event is not None]

    async def update_fields(
        self,
        event_id: str,
        fields: Mapping[str, str],
        remove: Iterable[str] = (),
    ) -> bool:
        """
        Set and delete hash fields of an existing record in one transaction.

        Args:
            event_id: Record to change
            fields: Hash fields to set (string values)
            remove: Hash fields to delete

        Returns:
            False if the record does not exist, True otherwise
        """
        key = RedisKeys.event(event_id)
        remove = [name for name in remove if name not in fields]
        try:
            if not self.redis_client.exists(key):
                return False
            with self.redis_client.pipeline(transaction=True) as pipe:
                if fields:
                    pipe.hset(key, mapping=dict(fields))
                if remove:
                    pipe.hdel(key, *remove)
                pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Failed to update event {event_id}: {e}")
        return True

    async def delete(self, event_id: str) -> bool:
        """
        Remove a record and its index memberships atomically.

        Returns:
            True if a hash existed for the id
        """
        key = RedisKeys.event(event_id)
        try:
            stored_date = self.redis_client.hget(key, "date")
            with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.srem(RedisKeys.all_events(), event_id)
                if stored_date:
                    pipe.srem(RedisKeys.events_by_date(stored_date[:10]), event_id)
                deleted, *_ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to delete event {event_id}: {str(e)}")
            raise StoreError(f"Failed to delete event {event_id}: {e}")
        return bool(deleted)
