"""
Tests for canonical identity and the duplicate check.
"""

from datetime import date

import pytest

from event_radar.dedupe.service import (
    DeduplicationService,
    canonical_key,
    event_id,
    normalize_title,
)
from factories import make_candidate, make_event


class TestIdentity:
    def test_canonical_key(self):
        assert canonical_key("  KI  Stammtisch ", date(2025, 3, 14)) == "ki stammtisch|2025-03-14"

    def test_event_id_slug(self):
        assert event_id("KI Stammtisch 3", date(2025, 3, 14)) == "ki-stammtisch-3-2025-03-14"

    def test_punctuated_title_gets_a_hash_suffix(self):
        generated = event_id("KI Stammtisch #3", date(2025, 3, 14))
        assert generated.startswith("ki-stammtisch-3-")
        assert generated.endswith("-2025-03-14")
        assert generated != "ki-stammtisch-3-2025-03-14"
        assert generated == event_id(" ki  stammtisch #3", date(2025, 3, 14))

    @pytest.mark.parametrize(
        "first, second",
        [
            ("AI Meetup!", "AI Meetup"),
            ("KI & Tech", "KI Tech"),
            ("Café X", "Caf X"),
            ("KI-Tech", "KI Tech"),
        ],
    )
    def test_distinct_keys_get_distinct_ids(self, first, second):
        day = date(2025, 3, 14)
        assert canonical_key(first, day) != canonical_key(second, day)
        assert event_id(first, day) != event_id(second, day)

    def test_event_id_ignores_case_and_spacing(self):
        day = date(2025, 3, 14)
        assert event_id("KI Stammtisch", day) == event_id("  ki   stammtisch ", day)

    def test_event_id_never_empty(self):
        generated = event_id("🤖 🚀", date(2025, 3, 14))
        assert generated.startswith("event-")
        assert generated.endswith("-2025-03-14")

    def test_different_dates_differ(self):
        assert event_id("x", date(2025, 3, 14)) != event_id("x", date(2025, 3, 15))

    def test_normalize_title(self):
        assert normalize_title("A\n  B") == "a b"


class TestDeduplicationService:
    @pytest.mark.asyncio
    async def test_same_title_and_date_different_location(self, store):
        """Location is not part of identity: the second listing is a duplicate."""
        service = DeduplicationService(store)
        first = make_candidate(location="Die Bäckerei")
        second = make_candidate(location="Bäckerei Kulturbackstube")

        assert await service.dedupe(first) is False
        assert await service.dedupe(second) is True

    @pytest.mark.asyncio
    async def test_stored_event_is_duplicate(self, store):
        candidate = make_candidate()
        stored = make_event(event_id=event_id(candidate.title, candidate.date), date=candidate.date)
        await store.upsert(stored)

        assert await DeduplicationService(store).dedupe(candidate) is True

    @pytest.mark.asyncio
    async def test_reset_run_forgets_seen_ids(self, store):
        service = DeduplicationService(store)
        candidate = make_candidate()
        await service.dedupe(candidate)

        service.reset_run()

        assert await service.dedupe(candidate) is False
