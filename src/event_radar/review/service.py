"""
Review state machine: pending -> approved / rejected, and back to pending.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from event_radar.health.service import HealthTracker
from event_radar.review.status import LEGACY_REVIEW_FIELDS, derive_status, has_legacy_fields
from event_radar.shared.schemas.dto import EventStatus, StoredEvent
from event_radar.shared.utils.errors import ReviewError
from event_radar.shared.utils.helpers import today_local, utc_timestamp
from event_radar.shared.utils.logger import logger
from event_radar.store.event_store import EventStore


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    UNREVIEW = "unreview"


def parse_action(value: Any) -> ReviewAction:
    try:
        return ReviewAction(str(value).strip().lower())
    except ValueError:
        raise ReviewError(
            f"Invalid action {value!r}; expected one of "
            f"{', '.join(action.value for action in ReviewAction)}"
        )


def plan_transition(
    event: StoredEvent, action: ReviewAction, now: str
) -> Dict[str, Any]:
    """
    Compute the field changes of one transition.

    Transitions are idempotent: repeating approve keeps the first
    approvedAt, repeating reject keeps the first rejectedAt. Rejecting keeps
    approvedAt. Every transition drops the legacy boolean fields.

    Args:
        event: Current record
        action: Transition to apply
        now: Timestamp to use for newly set fields

    Returns:
        {"set": {...}, "remove": [...]} for EventStore.update_fields
    """
    current = derive_status(event)
    remove = list(LEGACY_REVIEW_FIELDS)

    if action == ReviewAction.APPROVE:
        approved_at = event.approved_at if current == EventStatus.APPROVED else None
        fields = {"status": EventStatus.APPROVED.value, "approvedAt": approved_at or now}
        remove.append("rejectedAt")
    elif action == ReviewAction.REJECT:
        rejected_at = event.rejected_at if current == EventStatus.REJECTED else None
        fields = {"status": EventStatus.REJECTED.value, "rejectedAt": rejected_at or now}
    else:
        fields = {"status": EventStatus.PENDING.value}
        remove.extend(["approvedAt", "rejectedAt"])

    return {"set": fields, "remove": remove}


class ReviewService:
    """Admin-driven transitions over stored events."""

    def __init__(
        self,
        store: Optional[EventStore] = None,
        health: Optional[HealthTracker] = None,
    ):
        self.store = store or EventStore()
        self.health = health or HealthTracker(self.store.redis_client)

    async def transition(
        self, event_id: str, action: ReviewAction, now: Optional[str] = None
    ) -> Optional[StoredEvent]:
        """
        Apply one transition.

        Returns:
            The updated record, or None if the id does not exist
        """
        event = await self.store.get(event_id)
        if event is None:
            logger.warning(f"Review {action.value}: event {event_id} not found")
            return None

        previous = derive_status(event)
        change = plan_transition(event, action, now or utc_timestamp())
        await self.store.update_fields(event_id, change["set"], remove=change["remove"])

        if action == ReviewAction.APPROVE and previous != EventStatus.APPROVED:
            await self.health.record_approval(event.source)

        logger.info(f"Review: {event_id} {previous.value} -> {change['set']['status']}")
        return await self.store.get(event_id)

    async def approve(self, event_id: str) -> Optional[StoredEvent]:
        return await self.transition(event_id, ReviewAction.APPROVE)

    async def reject(self, event_id: str) -> Optional[StoredEvent]:
        return await self.transition(event_id, ReviewAction.REJECT)

    async def unreview(self, event_id: str) -> Optional[StoredEvent]:
        return await self.transition(event_id, ReviewAction.UNREVIEW)

    async def bulk_action(self, action: Any, event_ids: Iterable[str]) -> int:
        """
        Apply one action to many ids.

        Args:
            action: "approve", "reject" or "unreview"
            event_ids: Ids to transition; unknown ids are skipped

        Returns:
            Number of records updated

        Raises:
            ReviewError: On an invalid action or id list
        """
        review_action = parse_action(action)
        if not isinstance(event_ids, (list, tuple, set)):
            raise ReviewError("eventIds must be a list of event ids")

        now = utc_timestamp()
        count = 0
        for event_id in dict.fromkeys(event_ids):
            if not isinstance(event_id, str) or not event_id:
                continue
            if await self.transition(event_id, review_action, now) is not None:
                count += 1

        logger.info(f"Review: bulk {review_action.value} updated {count} events")
        return count

    async def list_for_review(
        self, include_past: bool = False, today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Non-rejected events for the admin queue, sorted by date and time.

        Returns:
            {"events": [...], "counts": {"total", "approved", "pending"}}
        """
        today = today or today_local()
        events = [
            event
            for event in await self.store.all_events()
            if derive_status(event) != EventStatus.REJECTED
            and event.date is not None
            and (include_past or event.date >= today)
        ]
        events.sort(key=lambda event: (event.date, event.time or ""))

        approved = sum(1 for event in events if derive_status(event) == EventStatus.APPROVED)
        return {
            "events": [
                {**event.to_public_dict(), "status": derive_status(event).value}
                for event in events
            ],
            "counts": {
                "total": len(events),
                "approved": approved,
                "pending": len(events) - approved,
            },
        }

    async def migrate_legacy(self, dry_run: bool = False) -> Dict[str, Any]:
        """
        Rewrite legacy-encoded records to the explicit status field.

        Safe to run repeatedly: records that already carry only `status`
        are left alone. A legacy `reviewedAt` becomes `approvedAt` on
        approved records.

        Args:
            dry_run: Report the changes without writing them

        Returns:
            Summary with total/migrated/already_migrated/missing counts and
            the per-record changes
        """
        summary = {
            "total": 0,
            "migrated": 0,
            "already_migrated": 0,
            "missing": 0,
            "by_status": {status.value: 0 for status in EventStatus},
            "changes": [],
            "dry_run": dry_run,
        }
        for event_id in await self.store.list_ids():
            summary["total"] += 1
            raw = await self.store.get_raw(event_id)
            if not raw:
                summary["missing"] += 1
                continue

            new_status = derive_status(raw)
            summary["by_status"][new_status.value] += 1
            if raw.get("status") == new_status.value and not has_legacy_fields(raw):
                summary["already_migrated"] += 1
                continue

            fields = {"status": new_status.value}
            reviewed_at = raw.get("reviewedAt")
            if new_status == EventStatus.APPROVED and reviewed_at and not raw.get("approvedAt"):
                fields["approvedAt"] = reviewed_at

            summary["changes"].append(
                {
                    "id": event_id,
                    "reviewed": raw.get("reviewed"),
                    "rejected": raw.get("rejected"),
                    "status": new_status.value,
                }
            )
            if not dry_run:
                await self.store.update_fields(event_id, fields, remove=LEGACY_REVIEW_FIELDS)
            summary["migrated"] += 1

        logger.info(
            f"Status migration{' (dry run)' if dry_run else ''}: "
            f"{summary['migrated']} migrated, {summary['already_migrated']} already migrated"
        )
        return summary
