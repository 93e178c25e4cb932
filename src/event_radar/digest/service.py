"""
Weekly digest for the radar admins.

The digest sums the daily pipeline counters of the last seven days, counts
the review decisions over the store, lists what still waits for review and
renders all of it with the source health into one HTML mail. Sources in the
`failing` state additionally trigger an SNS alert.
"""

from collections import Counter
from datetime import date
from html import escape
from typing import Any, Dict, List, Optional

import redis

from event_radar.health.service import HealthTracker
from event_radar.review.status import derive_status
from event_radar.shared.schemas.dto import EventStatus, HealthStatus
from event_radar.shared.services.notification_service import NotificationService
from event_radar.shared.utils.configs import notify_configs
from event_radar.shared.utils.errors import RadarError, StoreError
from event_radar.shared.utils.helpers import date_range, today_local, utc_timestamp
from event_radar.shared.utils.logger import logger
from event_radar.sources.registry import SOURCE_REGISTRY
from event_radar.store.event_store import EventStore
from event_radar.store.redis_client import RedisKeys

WEEK_DAYS = 7
TOP_N = 5

STATUS_COLORS = {
    HealthStatus.HEALTHY.value: "#16a34a",
    HealthStatus.DEGRADED.value: "#d97706",
    HealthStatus.FAILING.value: "#dc2626",
}


def approval_rate(approved: int, rejected: int) -> int:
    """Share of approved events among the reviewed ones, in percent (0 if none reviewed)."""
    reviewed = approved + rejected
    return round(approved / reviewed * 100) if reviewed else 0


def _top(counter: Counter, n: int = TOP_N) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(n)]


class DigestService:
    """Collects the weekly metrics and delivers the digest."""

    def __init__(
        self,
        store: Optional[EventStore] = None,
        health: Optional[HealthTracker] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.store = store or EventStore()
        self.health = health or HealthTracker(self.store.redis_client)
        self.notifier = notifier
        self.redis_client = self.store.redis_client

    def _daily_totals(self, day: date) -> Dict[str, int]:
        try:
            values = self.redis_client.hgetall(RedisKeys.daily_metrics(day.isoformat()))
        except redis.RedisError as e:
            raise StoreError(f"Failed to read daily metrics for {day}: {e}")
        return {
            "found": int(values.get("found", 0)),
            "added": int(values.get("added", 0)),
        }

    def _window_totals(self, today: date, days: int) -> Dict[str, int]:
        found = added = 0
        for day in date_range(today, days):
            totals = self._daily_totals(day)
            found += totals["found"]
            added += totals["added"]
        return {"found": found, "added": added}

    async def gather_weekly_metrics(self, today: Optional[date] = None) -> Dict[str, int]:
        """
        Pipeline totals of the last seven days plus the review decisions.

        Returns:
            {"eventsFound", "eventsAdded", "approved", "rejected", "approvalRate"}
        """
        week = self._window_totals(today or today_local(), WEEK_DAYS)
        statuses = Counter(derive_status(event) for event in await self.store.all_events())
        approved = statuses[EventStatus.APPROVED]
        rejected = statuses[EventStatus.REJECTED]
        return {
            "eventsFound": week["found"],
            "eventsAdded": week["added"],
            "approved": approved,
            "rejected": rejected,
            "approvalRate": approval_rate(approved, rejected),
        }

    async def gather_pending(self, limit: int = 10) -> List[Dict[str, Any]]:
        """The first `limit` pending events by date."""
        pending = [
            event
            for event in await self.store.all_events()
            if derive_status(event) == EventStatus.PENDING
        ]
        pending.sort(key=lambda event: (event.date or date.max, event.time or ""))
        return [
            {
                "title": event.title,
                "date": event.date.isoformat() if event.date else "",
                "source": event.source,
                "category": event.category,
            }
            for event in pending[:limit]
        ]

    async def gather_metrics_summary(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Dashboard numbers: pipeline totals, review status counts and the
        most frequent categories and sources.
        """
        today = today or today_local()
        events = await self.store.all_events()

        statuses = Counter(derive_status(event) for event in events)
        categories = Counter(event.category or "Other" for event in events)
        sources = Counter(event.source or "unknown" for event in events)

        try:
            global_metrics = self.redis_client.hgetall(RedisKeys.global_metrics())
        except redis.RedisError as e:
            raise StoreError(f"Failed to read global metrics: {e}")

        approved = statuses[EventStatus.APPROVED]
        rejected = statuses[EventStatus.REJECTED]
        return {
            "summary": {
                "today": self._daily_totals(today),
                "week": self._window_totals(today, WEEK_DAYS),
                "total": {
                    "events": len(events),
                    "found": int(global_metrics.get("totalFound", 0)),
                    "added": int(global_metrics.get("totalAdded", 0)),
                },
            },
            "status": {
                "pending": statuses[EventStatus.PENDING],
                "approved": approved,
                "rejected": rejected,
                "approvalRate": approval_rate(approved, rejected),
            },
            "categories": _top(categories),
            "sources": _top(sources),
            "lastRun": global_metrics.get("lastFullRun"),
            "timestamp": utc_timestamp(),
        }

    async def run(self, recipient: Optional[str] = None) -> Dict[str, Any]:
        """
        Build and send the weekly digest.

        Delivery problems are reported in the result instead of raised.

        Args:
            recipient: Overrides the configured digest recipient

        Returns:
            {"emailSent", "emailError", "alertSent", "alertError", "metrics"}
        """
        metrics = await self.gather_weekly_metrics()
        health = (await self.health.report(SOURCE_REGISTRY.values()))["sources"]
        pending = await self.gather_pending()
        failing = [s for s in health if s["status"] == HealthStatus.FAILING.value]

        notifier = self.notifier or NotificationService()
        result = {
            "emailSent": False,
            "emailError": None,
            "alertSent": False,
            "alertError": None,
            "metrics": {
                "eventsFound": metrics["eventsFound"],
                "eventsAdded": metrics["eventsAdded"],
                "pending": len(pending),
                "failingSources": len(failing),
            },
        }

        subject = (
            f"Radar Weekly: {metrics['eventsAdded']} new events, "
            f"{len(pending)} pending review"
        )
        try:
            notifier.send_report(subject, build_digest_html(metrics, health, pending), recipient)
            result["emailSent"] = True
        except RadarError as e:
            logger.error(f"Weekly digest mail failed: {e.message}")
            result["emailError"] = e.message

        if failing:
            lines = [f"- {s['name']}: {s['lastError'] or 'No data'}" for s in failing]
            message = (
                f"{len(failing)} radar source(s) failing:\n\n"
                + "\n".join(lines)
                + f"\n\nReview: {notify_configs['admin_dashboard_url']}"
            )
            try:
                notifier.send(message, subject=f"Radar: {len(failing)} sources failing")
                result["alertSent"] = True
            except RadarError as e:
                logger.error(f"Failing-source alert failed: {e.message}")
                result["alertError"] = e.message

        logger.info(
            f"Weekly digest: {metrics['eventsAdded']} added, {len(pending)} pending, "
            f"{len(failing)} failing sources"
        )
        return result


def build_digest_html(
    metrics: Dict[str, Any],
    health: List[Dict[str, Any]],
    pending: List[Dict[str, Any]],
) -> str:
    """
    Render the digest mail.

    Args:
        metrics: Output of `gather_weekly_metrics`
        health: Source health dicts as produced by `HealthTracker.report`
        pending: Output of `gather_pending`

    Returns:
        A standalone HTML document
    """
    counts = Counter(source["status"] for source in health)

    def metric(value: Any, label: str) -> str:
        return (
            '<div class="metric">'
            f'<div class="metric-value">{escape(str(value))}</div>'
            f'<div class="metric-label">{escape(label)}</div>'
            "</div>"
        )

    failing_items = "".join(
        f'<li style="color: {STATUS_COLORS["failing"]};">'
        f"{escape(source['name'])}: {escape(source['lastError'] or 'No data')}</li>"
        for source in health
        if source["status"] == HealthStatus.FAILING.value
    )
    pending_items = "".join(
        f"<li>{escape(event['title'])} - {escape(event['date'])} "
        f"({escape(event['source'])})</li>"
        for event in pending
    )

    sections = [
        "<h2>This week</h2>",
        "<div>"
        + metric(metrics["eventsFound"], "Events found")
        + metric(metrics["eventsAdded"], "Events added")
        + metric(f"{metrics['approvalRate']}%", "Approval rate")
        + "</div>",
        "<h2>Source health</h2>",
        "<p>"
        f'<span style="color: {STATUS_COLORS["healthy"]};">{counts["healthy"]} healthy</span> · '
        f'<span style="color: {STATUS_COLORS["degraded"]};">{counts["degraded"]} degraded</span> · '
        f'<span style="color: {STATUS_COLORS["failing"]};">{counts["failing"]} failing</span>'
        "</p>",
    ]
    if failing_items:
        sections.append(f"<ul>{failing_items}</ul>")

    sections.append(f"<h2>Pending review ({len(pending)})</h2>")
    sections.append(
        f"<ul>{pending_items}</ul>" if pending_items else "<p>Nothing waiting for review.</p>"
    )
    dashboard = escape(notify_configs["admin_dashboard_url"])
    sections.append(f'<p><a class="cta" href="{dashboard}">Open review dashboard</a></p>')

    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n<style>\n"
        "body { font-family: -apple-system, sans-serif; line-height: 1.6; color: #3A3A3A; "
        "max-width: 600px; margin: 0 auto; padding: 20px; }\n"
        "h2 { color: #4A90E2; font-size: 18px; margin-top: 30px; }\n"
        ".metric { display: inline-block; background: #f3f4f6; padding: 15px 20px; "
        "margin: 5px; border-radius: 8px; text-align: center; }\n"
        ".metric-value { font-size: 28px; font-weight: 700; color: #2C3E50; }\n"
        ".metric-label { font-size: 12px; color: #6B6B6B; }\n"
        ".cta { background: #4A90E2; color: white; padding: 12px 24px; "
        "text-decoration: none; border-radius: 6px; }\n"
        "</style>\n</head>\n<body>\n"
        "<h1>Radar Weekly Digest</h1>\n"
        + "\n".join(sections)
        + "\n</body>\n</html>\n"
    )
