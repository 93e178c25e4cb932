"""
Paginated widget feed.
"""

from typing import Any, Dict, List, Optional

from event_radar.shared.schemas.dto import StoredEvent
from event_radar.shared.utils.configs import publish_configs

NOT_ENOUGH_EVENTS = "Not enough events to display widget"

WIDGET_FIELDS = (
    "id",
    "title",
    "date",
    "time",
    "location",
    "city",
    "category",
    "description",
    "registrationUrl",
    "detailUrl",
    "thumbnail",
)


def widget_item(event: StoredEvent) -> Dict[str, Any]:
    data = event.to_public_dict()
    return {name: data.get(name, "") for name in WIDGET_FIELDS}


def hidden_widget() -> Dict[str, Any]:
    return {"events": [], "showWidget": False, "message": NOT_ENOUGH_EVENTS}


def build_widget_page(
    events: List[StoredEvent],
    page: int = 1,
    page_size: Optional[int] = None,
    minimum: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Slice one page out of the published events.

    The carousel needs at least `minimum` items, so below that the widget
    is hidden on every page rather than shown empty.

    Args:
        events: Published events, already sorted
        page: 1-based page number; values below 1 are treated as 1
        page_size: Events per page
        minimum: Events needed before the widget is shown

    Returns:
        {"events", "showWidget": True, "hasMore", "total", "page"} or the
        hidden-widget body
    """
    page_size = page_size or publish_configs["widget_page_size"]
    minimum = publish_configs["widget_minimum_events"] if minimum is None else minimum
    page = max(1, page)

    if len(events) < minimum:
        return hidden_widget()

    offset = (page - 1) * page_size
    return {
        "events": [widget_item(event) for event in events[offset : offset + page_size]],
        "showWidget": True,
        "hasMore": offset + page_size < len(events),
        "total": len(events),
        "page": page,
    }
