"""
Source health tracker.

Per source (normalised name) the tracker keeps plain Redis strings:

    radar:source:<name>:lastSuccess   ISO timestamp of the last successful run
    radar:source:<name>:lastError     message of the last failure, cleared on success
    radar:source:<name>:lastErrorAt   when that failure happened
    radar:source:<name>:events7d      events added, expiring counter
    radar:source:<name>:found7d       events found, expiring counter
    radar:source:<name>:approved7d    events approved by an admin, expiring counter

The counters get their TTL when they are created, so each one covers the
seven days after its first increment. The status is never stored: it is
classified on every read from the two timestamps and the active flag.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pytz
import redis

from event_radar.shared.schemas.dto import HealthRecord, HealthStatus, SourceDescriptor
from event_radar.shared.utils.configs import base_configs, health_configs
from event_radar.shared.utils.errors import StoreError
from event_radar.shared.utils.helpers import (
    normalize_source_name,
    parse_timestamp,
    utc_timestamp,
)
from event_radar.shared.utils.logger import logger
from event_radar.store.redis_client import RedisKeys, get_redis_client

STATUS_ORDER = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNKNOWN: 2,
    HealthStatus.FAILING: 3,
    HealthStatus.INACTIVE: 4,
}

MAX_ERROR_LENGTH = 500


def classify_status(
    last_success: Optional[datetime],
    last_error: Optional[str],
    active: bool,
    now: datetime,
) -> HealthStatus:
    """
    Classify a source from its last success, last error and active flag.

    Args:
        last_success: When the source last succeeded, or None
        last_error: Last recorded error message, or None
        active: Whether the source is enabled
        now: Reference time (timezone-aware)

    Returns:
        inactive if disabled; failing if there is an error and no success
        in the last day; degraded if the last success is over three days
        old; healthy if there is a recent success; unknown without data
    """
    if not active:
        return HealthStatus.INACTIVE

    stale_for = now - last_success if last_success else None
    failing_after = timedelta(days=health_configs["failing_after_days"])
    degraded_after = timedelta(days=health_configs["degraded_after_days"])

    if last_error and (stale_for is None or stale_for > failing_after):
        return HealthStatus.FAILING
    if stale_for is not None and stale_for > degraded_after:
        return HealthStatus.DEGRADED
    if stale_for is not None:
        return HealthStatus.HEALTHY
    return HealthStatus.UNKNOWN


class HealthTracker:
    """Reads and writes per-source health metrics."""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client or get_redis_client()

    def _key(self, source_name: str, field: str) -> str:
        return RedisKeys.source(normalize_source_name(source_name), field)

    def _increment_counter(self, key: str, amount: int, ttl: int):
        # The TTL is set only when the counter is created; INCRBY keeps it
        with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=ttl, nx=True)
            pipe.incrby(key, amount)
            pipe.execute()

    async def record_success(
        self,
        source_name: str,
        found: int,
        added: int,
        at: Optional[datetime] = None,
    ) -> None:
        """
        Record a successful run: timestamp, counters, daily totals; clears the last error.
        """
        at = at or datetime.now(pytz.utc)
        ttl = health_configs["counter_ttl_seconds"]
        daily_key = RedisKeys.daily_metrics(
            at.astimezone(base_configs["timezone"]).date().isoformat()
        )
        try:
            self.redis_client.set(self._key(source_name, "lastSuccess"), utc_timestamp(at))
            self.redis_client.delete(self._key(source_name, "lastError"))
            self._increment_counter(self._key(source_name, "found7d"), found, ttl)
            self._increment_counter(self._key(source_name, "events7d"), added, ttl)

            with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.hincrby(daily_key, "found", found)
                pipe.hincrby(daily_key, "added", added)
                pipe.expire(daily_key, health_configs["daily_metrics_ttl_seconds"])
                pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Failed to record success for {source_name}: {e}")

        logger.info(f"Health: {source_name} succeeded ({found} found, {added} added)")

    async def record_failure(
        self, source_name: str, message: str, at: Optional[datetime] = None
    ) -> None:
        """Record the error message; the last success timestamp is left untouched."""
        try:
            self.redis_client.set(
                self._key(source_name, "lastError"),
                (message or "Unknown error")[:MAX_ERROR_LENGTH],
            )
            self.redis_client.set(
                self._key(source_name, "lastErrorAt"), utc_timestamp(at)
            )
        except redis.RedisError as e:
            raise StoreError(f"Failed to record failure for {source_name}: {e}")

        logger.warning(f"Health: {source_name} failed: {message}")

    async def record_approval(self, source_name: str, count: int = 1) -> None:
        """Count admin approvals towards the source's rolling approval rate."""
        if not source_name or count <= 0:
            return
        try:
            self._increment_counter(
                self._key(source_name, "approved7d"),
                count,
                health_configs["counter_ttl_seconds"],
            )
        except redis.RedisError as e:
            raise StoreError(f"Failed to record approval for {source_name}: {e}")

    async def get_record(
        self, descriptor: SourceDescriptor, now: Optional[datetime] = None
    ) -> HealthRecord:
        """
        Load the metrics of one source and classify it.

        Args:
            descriptor: Source to inspect
            now: Reference time for the classification

        Returns:
            HealthRecord with a freshly derived status
        """
        now = now or datetime.now(pytz.utc)
        fields = ("lastSuccess", "lastError", "events7d", "found7d", "approved7d")
        try:
            values = self.redis_client.mget(
                [self._key(descriptor.name, field) for field in fields]
            )
        except redis.RedisError as e:
            raise StoreError(f"Failed to read health of {descriptor.name}: {e}")

        last_success_raw, last_error, events_7d, found_7d, approved_7d = values
        last_success = parse_timestamp(last_success_raw)

        return HealthRecord(
            name=descriptor.name,
            status=classify_status(last_success, last_error, descriptor.active, now),
            active=descriptor.active,
            url=descriptor.url,
            strategy=descriptor.strategy.value,
            last_success=last_success,
            last_error=last_error or None,
            events_7d=int(events_7d or 0),
            found_7d=int(found_7d or 0),
            approved_7d=int(approved_7d or 0),
            requires_auth=descriptor.requires_auth,
        )

    async def get_records(
        self, sources: Iterable[SourceDescriptor], now: Optional[datetime] = None
    ) -> List[HealthRecord]:
        """Health records sorted by status (healthy first), then by events7d descending."""
        records = [await self.get_record(source, now) for source in sources]
        records.sort(key=lambda record: (STATUS_ORDER[record.status], -record.events_7d))
        return records

    async def report(
        self, sources: Iterable[SourceDescriptor], now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Health of every source plus a summary count per status.

        Returns:
            {"sources": [...], "summary": {"total", "healthy", ...}}
        """
        records = await self.get_records(sources, now)
        summary = {"total": len(records)}
        for status in HealthStatus:
            summary[status.value] = sum(1 for record in records if record.status == status)
        return {
            "sources": [record.to_dict() for record in records],
            "summary": summary,
        }
