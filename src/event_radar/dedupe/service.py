"""
Deduplication engine: canonical identity of an event and the duplicate check.

The canonical key is the lower-cased, trimmed title plus the ISO date. The
location is not part of it, so the same event listed with two spellings of
its venue collapses into one record.
"""

import hashlib
import re
from datetime import date
from typing import Optional, Set

from event_radar.shared.schemas.dto import CandidateEvent
from event_radar.shared.utils.logger import logger
from event_radar.store.event_store import EventStore


def normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", (title or "").strip().lower())


def canonical_key(title: str, event_date: date) -> str:
    """`"<normalised title>|<YYYY-MM-DD>"`"""
    return f"{normalize_title(title)}|{event_date.isoformat()}"


# Titles made only of ASCII words map one to one onto their slug
PLAIN_TITLE = re.compile(r"[a-z0-9]+( [a-z0-9]+)*")


def event_id(title: str, event_date: date) -> str:
    """
    Deterministic record id derived from the canonical key.

    "KI Stammtisch 3", 2025-03-14 -> "ki-stammtisch-3-2025-03-14"

    Any other title loses characters in the slug, so a short hash of the
    canonical key is added ("KI Stammtisch #3" -> "ki-stammtisch-3-<hash>-2025-03-14").
    Two titles get the same id only if their canonical keys are equal.
    Titles with no ASCII letters or digits become "event-<hash>-<date>".
    """
    normalized = normalize_title(title)
    slug = re.sub(r"[^a-z0-9-]", "", normalized.replace(" ", "-"))
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    if PLAIN_TITLE.fullmatch(normalized):
        return f"{slug}-{event_date.isoformat()}"

    digest = hashlib.sha1(canonical_key(title, event_date).encode("utf-8")).hexdigest()
    if not slug:
        return f"event-{digest[:12]}-{event_date.isoformat()}"
    return f"{slug}-{digest[:8]}-{event_date.isoformat()}"


class DeduplicationService:
    """
    Duplicate check against the store plus the ids already seen in this run.

    First seen wins: a later candidate with the same id is discarded, never
    merged. The check-and-mark on the in-run set happens without awaiting,
    so concurrent workers cannot both accept the same id.
    """

    def __init__(self, store: Optional[EventStore] = None):
        self.store = store or EventStore()
        self.seen: Set[str] = set()

    async def dedupe(self, candidate: CandidateEvent) -> bool:
        """
        Args:
            candidate: A validated candidate

        Returns:
            True if the candidate is a duplicate and must be discarded
        """
        candidate_id = event_id(candidate.title, candidate.date)
        if candidate_id in self.seen:
            logger.debug(f"Duplicate within run: {candidate_id}")
            return True
        self.seen.add(candidate_id)

        if await self.store.exists(candidate_id):
            logger.debug(f"Already stored: {candidate_id}")
            return True
        return False

    def reset_run(self):
        self.seen.clear()
