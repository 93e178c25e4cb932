"""
Public feed endpoints: the iCalendar feed and the widget feed.

Public consumers never see pipeline errors. On any internal failure the
calendar degrades to a valid empty document and the widget to its hidden
state.
"""

import asyncio
from typing import Any, Dict

from event_radar.publisher.calendar import build_calendar
from event_radar.publisher.feeds import approved_future_events
from event_radar.publisher.widget import build_widget_page, hidden_widget
from event_radar.shared.utils.helpers import generate_response
from event_radar.shared.utils.logger import logger
from event_radar.store.event_store import EventStore

CALENDAR_HEADERS = {
    "Content-Type": "text/calendar; charset=utf-8",
    "Content-Disposition": 'inline; filename="radar.ics"',
    "Cache-Control": "public, max-age=3600",
}

WIDGET_HEADERS = {
    "Content-Type": "application/json",
    "Cache-Control": "public, max-age=300",
    "Access-Control-Allow-Origin": "*",
}


async def calendar_app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    store: EventStore = None,
) -> Dict[str, Any]:
    """
    Serve the calendar of approved upcoming events.

    Returns:
        Response object whose body is the .ics document
    """
    try:
        events = await approved_future_events(store or EventStore())
        body = build_calendar(events)
        logger.info(f"Calendar feed with {len(events)} events")
    except Exception as e:
        logger.error(f"Calendar feed failed, serving empty calendar: {str(e)}")
        body = build_calendar([])
    return generate_response(200, body, headers=CALENDAR_HEADERS)


async def widget_app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    store: EventStore = None,
) -> Dict[str, Any]:
    """
    Serve one page of the widget feed (`?page=N`, default 1).

    Returns:
        Response object with the widget JSON
    """
    params = event.get("queryStringParameters") or {}
    try:
        page = int(params.get("page") or 1)
    except (TypeError, ValueError):
        page = 1

    try:
        events = await approved_future_events(store or EventStore())
        body = build_widget_page(events, page=page)
    except Exception as e:
        logger.error(f"Widget feed failed, hiding widget: {str(e)}")
        body = hidden_widget()
    return generate_response(200, body, headers=WIDGET_HEADERS)


def calendar_handler(event, context):
    return asyncio.run(calendar_app(event, context))


def widget_handler(event, context):
    return asyncio.run(widget_app(event, context))
