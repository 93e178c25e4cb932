"""
The published subset of the store: approved events dated today or later.
"""

from datetime import date
from typing import List, Optional

from event_radar.review.status import derive_status
from event_radar.shared.schemas.dto import EventStatus, StoredEvent
from event_radar.shared.utils.configs import base_configs
from event_radar.shared.utils.helpers import today_local
from event_radar.store.event_store import EventStore


def sort_key(event: StoredEvent):
    return (event.date, event.time or base_configs["default_time"], event.title.lower())


def filter_publishable(events: List[StoredEvent], today: date) -> List[StoredEvent]:
    """Approved events on or after `today`, sorted by date, time and title."""
    published = [
        event
        for event in events
        if event.date is not None
        and event.date >= today
        and derive_status(event) == EventStatus.APPROVED
    ]
    published.sort(key=sort_key)
    return published


async def approved_future_events(
    store: EventStore, today: Optional[date] = None
) -> List[StoredEvent]:
    return filter_publishable(await store.all_events(), today or today_local())
