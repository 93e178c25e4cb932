"""
Cleanup / compaction job.

Sweeps every stored event and removes:
    no_data    the id is indexed but the hash is gone or has no valid date
    stale      the event date is before today
    duplicate  another record has the same canonical key (title + date)
               and is more complete, or equally complete but newer

Deletion is irreversible, so `run` defaults to a dry run that only reports
the plan.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pytz
import redis

from event_radar.dedupe.service import canonical_key
from event_radar.shared.schemas.dto import StoredEvent
from event_radar.shared.utils.errors import StoreError
from event_radar.shared.utils.helpers import parse_timestamp, today_local, utc_timestamp
from event_radar.shared.utils.logger import logger
from event_radar.store.event_store import EventStore
from event_radar.store.redis_client import RedisKeys

# Field weights for picking the survivor of a duplicate collision
COMPLETENESS_WEIGHTS = {
    "title": 3,
    "date": 3,
    "time": 3,
    "location": 3,
    "description": 1,
    "category": 1,
    "detail_url": 1,
    "registration_url": 1,
    "city": 1,
}

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


def completeness_score(event: StoredEvent) -> int:
    """Weighted count of the populated fields of a record."""
    return sum(
        weight for name, weight in COMPLETENESS_WEIGHTS.items() if getattr(event, name, None)
    )


def _rank(event: StoredEvent):
    return (completeness_score(event), parse_timestamp(event.created_at) or _EPOCH)


@dataclass
class Removal:
    id: str
    reason: str
    title: str = ""
    date: str = ""
    kept_id: Optional[str] = None


@dataclass
class CleanupPlan:
    total: int = 0
    kept: int = 0
    removals: List[Removal] = field(default_factory=list)

    def count(self, reason: str) -> int:
        return sum(1 for removal in self.removals if removal.reason == reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalEvents": self.total,
            "kept": self.kept,
            "toRemove": len(self.removals),
            "noData": self.count("no_data"),
            "stale": self.count("stale"),
            "duplicates": self.count("duplicate"),
            "removals": [asdict(removal) for removal in self.removals],
        }


class CleanupService:
    """Plans and applies removals over the whole event store."""

    def __init__(self, store: Optional[EventStore] = None):
        self.store = store or EventStore()

    async def plan(self, today: Optional[date] = None) -> CleanupPlan:
        """
        Build the removal plan without touching the store.

        Args:
            today: Events dated before this are stale (default: today locally)

        Returns:
            CleanupPlan listing every record to remove and why
        """
        today = today or today_local()
        ids = await self.store.list_ids()
        loaded = await self.store.get_many(ids)
        result = CleanupPlan(total=len(ids))

        groups: Dict[str, List[StoredEvent]] = {}
        for event_id in ids:
            event = loaded.get(event_id)
            if event is None or event.date is None:
                result.removals.append(Removal(id=event_id, reason="no_data"))
                continue
            if event.date < today:
                result.removals.append(
                    Removal(
                        id=event_id,
                        reason="stale",
                        title=event.title,
                        date=event.date.isoformat(),
                    )
                )
                continue
            groups.setdefault(canonical_key(event.title, event.date), []).append(event)

        for events in groups.values():
            # max() keeps the first of equal ranks, so ties on both score and
            # createdAt resolve by id order
            survivor = max(events, key=_rank)
            result.kept += 1
            for event in events:
                if event is survivor:
                    continue
                result.removals.append(
                    Removal(
                        id=event.id,
                        reason="duplicate",
                        title=event.title,
                        date=event.date.isoformat(),
                        kept_id=survivor.id,
                    )
                )
        return result

    async def run(self, dry_run: bool = True, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Plan and (unless dry_run) apply the cleanup.

        Per-record delete failures are logged and counted; they do not stop
        the sweep.

        Returns:
            The plan plus `dryRun`, `removed` and `failed`
        """
        plan = await self.plan(today)
        summary = plan.to_dict()
        summary.update({"dryRun": dry_run, "removed": 0, "failed": 0})
        logger.info(
            f"Cleanup plan: {summary['toRemove']} of {plan.total} to remove "
            f"({summary['stale']} stale, {summary['duplicates']} duplicates, "
            f"{summary['noData']} without data)"
        )

        if dry_run or not plan.removals:
            return summary

        for removal in plan.removals:
            try:
                await self.store.delete(removal.id)
                summary["removed"] += 1
                logger.debug(f"Removed event {removal.id} ({removal.reason})")
            except StoreError as e:
                summary["failed"] += 1
                logger.error(f"Failed to remove event {removal.id}: {e.message}")

        self._record_run(summary)
        return summary

    def _record_run(self, summary: Dict[str, Any]):
        try:
            self.store.redis_client.hset(
                RedisKeys.cleanup_metrics(),
                mapping={
                    "lastRun": utc_timestamp(),
                    "removed": summary["removed"],
                    "failed": summary["failed"],
                    "stale": summary["stale"],
                    "duplicates": summary["duplicates"],
                    "noData": summary["noData"],
                    "remaining": summary["totalEvents"] - summary["removed"],
                },
            )
        except redis.RedisError as e:
            logger.error(f"Failed to record cleanup metrics: {str(e)}")
