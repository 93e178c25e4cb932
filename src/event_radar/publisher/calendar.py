"""
iCalendar (RFC 5545) rendering of the published events.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

import pytz

from event_radar.shared.schemas.dto import StoredEvent
from event_radar.shared.utils.configs import base_configs, publish_configs

CRLF = "\r\n"
MAX_LINE_OCTETS = 75

# Rules for zones the radar is deployed in; other zones are referenced by
# their IANA name only
VTIMEZONES = {
    "Europe/Vienna": [
        "BEGIN:VTIMEZONE",
        "TZID:Europe/Vienna",
        "BEGIN:DAYLIGHT",
        "TZOFFSETFROM:+0100",
        "TZOFFSETTO:+0200",
        "TZNAME:CEST",
        "DTSTART:19700329T020000",
        "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU",
        "END:DAYLIGHT",
        "BEGIN:STANDARD",
        "TZOFFSETFROM:+0200",
        "TZOFFSETTO:+0100",
        "TZNAME:CET",
        "DTSTART:19701025T030000",
        "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU",
        "END:STANDARD",
        "END:VTIMEZONE",
    ],
}


def escape_text(value: str) -> str:
    """Escape a TEXT property value (backslash, semicolon, comma, newline)."""
    return (
        (value or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def fold_line(line: str) -> str:
    """
    Fold a content line to at most 75 octets per physical line.

    Continuation lines start with a single space. Multi-byte UTF-8
    characters are never split.
    """
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    parts = []
    current = ""
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > MAX_LINE_OCTETS:
            parts.append(current)
            current = char
            size = 1 + width
        else:
            current += char
            size += width
    parts.append(current)
    return (CRLF + " ").join(parts)


def _start_of(event: StoredEvent, tz: pytz.BaseTzInfo) -> datetime:
    time_str = event.time or base_configs["default_time"]
    try:
        start_time = datetime.strptime(time_str, base_configs["time_format"]).time()
    except ValueError:
        start_time = datetime.strptime(
            base_configs["default_time"], base_configs["time_format"]
        ).time()
    return tz.localize(datetime.combine(event.date, start_time))


def _local_stamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%dT%H%M%S")


def build_event_lines(
    event: StoredEvent, tz: pytz.BaseTzInfo, stamp: str
) -> List[str]:
    """Content lines (unfolded) of one VEVENT."""
    start = _start_of(event, tz)
    end = start + timedelta(hours=publish_configs["default_duration_hours"])
    tzid = tz.zone
    url = event.detail_url or event.registration_url

    description = event.description
    if event.registration_url:
        description = f"{description}\n\nAnmeldung: {event.registration_url}".strip()

    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.id}@{publish_configs['uid_domain']}",
        f"DTSTAMP:{stamp}",
        f"DTSTART;TZID={tzid}:{_local_stamp(start)}",
        f"DTEND;TZID={tzid}:{_local_stamp(end)}",
        f"SUMMARY:{escape_text(event.title)}",
    ]
    if description:
        lines.append(f"DESCRIPTION:{escape_text(description)}")
    location = event.location or event.city
    if location:
        lines.append(f"LOCATION:{escape_text(location)}")
    if url:
        lines.append(f"URL:{url}")
    if event.category:
        lines.append(f"CATEGORIES:{escape_text(event.category)}")
    lines += [
        "STATUS:CONFIRMED",
        "BEGIN:VALARM",
        f"TRIGGER:-PT{publish_configs['reminder_minutes']}M",
        "ACTION:DISPLAY",
        f"DESCRIPTION:{escape_text(event.title)}",
        "END:VALARM",
        "END:VEVENT",
    ]
    return lines


def build_calendar(
    events: Iterable[StoredEvent],
    now: Optional[datetime] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> str:
    """
    Render events into one VCALENDAR document.

    Args:
        events: Events to include (already filtered and sorted)
        now: Timestamp for DTSTAMP (default: now)
        tz: Zone the start/end times are expressed in (default: configured zone)

    Returns:
        The document with CRLF line endings; valid with zero events
    """
    tz = tz or base_configs["timezone"]
    now = now or datetime.now(pytz.utc)
    stamp = now.astimezone(pytz.utc).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{publish_configs['calendar_prodid']}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(publish_configs['calendar_name'])}",
        f"X-WR-CALDESC:{escape_text(publish_configs['calendar_description'])}",
        f"X-WR-TIMEZONE:{tz.zone}",
    ]
    lines += VTIMEZONES.get(tz.zone, [])
    for event in events:
        if event.date is None:
            continue
        lines += build_event_lines(event, tz, stamp)
    lines.append("END:VCALENDAR")

    return CRLF.join(fold_line(line) for line in lines) + CRLF
