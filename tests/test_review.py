"""
Tests for the review state machine, status derivation and the legacy
status migration.
"""

import pytest

from event_radar.review.service import (
    ReviewAction,
    ReviewService,
    parse_action,
    plan_transition,
)
from event_radar.review.status import derive_status
from event_radar.shared.schemas.dto import EventStatus
from event_radar.shared.utils.errors import ReviewError
from event_radar.store.redis_client import RedisKeys
from factories import TODAY, make_event


class TestDeriveStatus:
    """Status precedence across the explicit and legacy encodings."""

    def test_explicit_status(self):
        assert derive_status({"status": "approved"}) == EventStatus.APPROVED
        assert derive_status({"status": "pending"}) == EventStatus.PENDING

    def test_rejected_flag_wins_over_everything(self):
        for encoding in (True, "true"):
            record = {"status": "approved", "reviewed": encoding, "rejected": encoding}
            assert derive_status(record) == EventStatus.REJECTED

    def test_rejected_flag_wins_on_stored_event(self):
        event = make_event(status=EventStatus.APPROVED, legacy={"rejected": True})
        assert derive_status(event) == EventStatus.REJECTED

    def test_reviewed_flag_means_approved(self):
        assert derive_status({"reviewed": "true"}) == EventStatus.APPROVED
        assert derive_status({"reviewed": True, "rejected": False}) == EventStatus.APPROVED
        assert derive_status({"approved": "true"}) == EventStatus.APPROVED

    def test_nothing_means_pending(self):
        assert derive_status({}) == EventStatus.PENDING
        assert derive_status({"reviewed": "false"}) == EventStatus.PENDING
        assert derive_status({"status": "garbage"}) == EventStatus.PENDING
        assert derive_status(None) == EventStatus.PENDING


class TestPlanTransition:
    def test_approve_sets_timestamp_and_drops_legacy(self):
        change = plan_transition(make_event(), ReviewAction.APPROVE, "T1")
        assert change["set"] == {"status": "approved", "approvedAt": "T1"}
        assert "reviewed" in change["remove"]
        assert "rejectedAt" in change["remove"]

    def test_approve_is_idempotent(self):
        event = make_event(status=EventStatus.APPROVED, approved_at="T1")
        change = plan_transition(event, ReviewAction.APPROVE, "T2")
        assert change["set"]["approvedAt"] == "T1"

    def test_reject_keeps_approved_at(self):
        event = make_event(status=EventStatus.APPROVED, approved_at="T1")
        change = plan_transition(event, ReviewAction.REJECT, "T2")
        assert change["set"] == {"status": "rejected", "rejectedAt": "T2"}
        assert "approvedAt" not in change["remove"]

    def test_unreview_clears_timestamps(self):
        event = make_event(status=EventStatus.REJECTED, rejected_at="T1")
        change = plan_transition(event, ReviewAction.UNREVIEW, "T2")
        assert change["set"] == {"status": "pending"}
        assert {"approvedAt", "rejectedAt"} <= set(change["remove"])

    def test_parse_action(self):
        assert parse_action(" Approve ") == ReviewAction.APPROVE
        with pytest.raises(ReviewError):
            parse_action("delete")


class TestReviewService:
    @pytest.mark.asyncio
    async def test_approve_twice_keeps_first_timestamp(self, store):
        await store.upsert(make_event())
        service = ReviewService(store)

        first = await service.approve("ki-stammtisch")
        second = await service.approve("ki-stammtisch")

        assert first.status == EventStatus.APPROVED
        assert second.status == EventStatus.APPROVED
        assert second.approved_at == first.approved_at

    @pytest.mark.asyncio
    async def test_approval_counts_once_towards_source(self, store, redis_client):
        await store.upsert(make_event())
        service = ReviewService(store)

        await service.approve("ki-stammtisch")
        await service.approve("ki-stammtisch")

        assert redis_client.get(RedisKeys.source("die-bckerei", "approved7d")) == "1"

    @pytest.mark.asyncio
    async def test_reject_then_unreview(self, store):
        await store.upsert(make_event())
        service = ReviewService(store)

        rejected = await service.reject("ki-stammtisch")
        pending = await service.unreview("ki-stammtisch")

        assert rejected.status == EventStatus.REJECTED
        assert rejected.rejected_at
        assert pending.status == EventStatus.PENDING
        assert pending.rejected_at is None

    @pytest.mark.asyncio
    async def test_transition_clears_legacy_flags(self, store, redis_client):
        await store.upsert(make_event(status=None, legacy={"reviewed": True, "rejected": True}))

        await ReviewService(store).unreview("ki-stammtisch")

        raw = redis_client.hgetall(RedisKeys.event("ki-stammtisch"))
        assert raw["status"] == "pending"
        assert "reviewed" not in raw
        assert "rejected" not in raw

    @pytest.mark.asyncio
    async def test_missing_event(self, store):
        assert await ReviewService(store).approve("ghost") is None

    @pytest.mark.asyncio
    async def test_bulk_action_counts_existing_ids(self, store):
        await store.upsert(make_event(event_id="a"))
        await store.upsert(make_event(event_id="b"))

        count = await ReviewService(store).bulk_action("approve", ["a", "b", "a", "ghost"])

        assert count == 2
        assert (await store.get("b")).status == EventStatus.APPROVED

    @pytest.mark.asyncio
    async def test_bulk_action_validates_input(self, store):
        service = ReviewService(store)
        with pytest.raises(ReviewError):
            await service.bulk_action("approve", "a")
        with pytest.raises(ReviewError):
            await service.bulk_action("explode", ["a"])

    @pytest.mark.asyncio
    async def test_review_queue_hides_rejected_and_past(self, store):
        await store.upsert(make_event(event_id="upcoming", days_ahead=3))
        await store.upsert(make_event(event_id="approved", status=EventStatus.APPROVED))
        await store.upsert(make_event(event_id="rejected", status=EventStatus.REJECTED))
        await store.upsert(make_event(event_id="past", days_ahead=-3))

        queue = await ReviewService(store).list_for_review(today=TODAY)

        assert [e["id"] for e in queue["events"]] == ["upcoming", "approved"]
        assert queue["counts"] == {"total": 2, "approved": 1, "pending": 1}

        with_past = await ReviewService(store).list_for_review(include_past=True, today=TODAY)
        assert with_past["counts"]["total"] == 3


class TestMigration:
    @pytest.mark.asyncio
    async def test_migrate_legacy_records(self, store, redis_client):
        redis_client.hset(
            RedisKeys.event("old-approved"),
            mapping={
                "title": "Old",
                "date": TODAY.isoformat(),
                "reviewed": "true",
                "rejected": "false",
                "reviewedAt": "2025-01-02T10:00:00.000Z",
            },
        )
        redis_client.hset(
            RedisKeys.event("old-rejected"),
            mapping={"title": "Gone", "date": TODAY.isoformat(), "reviewed": "true", "rejected": "true"},
        )
        redis_client.sadd(RedisKeys.all_events(), "old-approved", "old-rejected", "ghost")
        await store.upsert(make_event(event_id="modern"))

        summary = await ReviewService(store).migrate_legacy()

        assert summary["total"] == 4
        assert summary["migrated"] == 2
        assert summary["already_migrated"] == 1
        assert summary["missing"] == 1
        approved = redis_client.hgetall(RedisKeys.event("old-approved"))
        assert approved["status"] == "approved"
        assert approved["approvedAt"] == "2025-01-02T10:00:00.000Z"
        assert "reviewed" not in approved and "reviewedAt" not in approved
        assert redis_client.hget(RedisKeys.event("old-rejected"), "status") == "rejected"

    @pytest.mark.asyncio
    async def test_migration_is_idempotent(self, store, redis_client):
        redis_client.hset(
            RedisKeys.event("old"),
            mapping={"title": "Old", "date": TODAY.isoformat(), "reviewed": "true"},
        )
        redis_client.sadd(RedisKeys.all_events(), "old")
        service = ReviewService(store)

        await service.migrate_legacy()
        second = await service.migrate_legacy()

        assert second["migrated"] == 0
        assert second["already_migrated"] == 1

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, store, redis_client):
        redis_client.hset(
            RedisKeys.event("old"),
            mapping={"title": "Old", "date": TODAY.isoformat(), "reviewed": "true"},
        )
        redis_client.sadd(RedisKeys.all_events(), "old")

        summary = await ReviewService(store).migrate_legacy(dry_run=True)

        assert summary["migrated"] == 1
        assert summary["changes"][0]["status"] == "approved"
        assert "status" not in redis_client.hgetall(RedisKeys.event("old"))
