"""
Data Transfer Objects (DTOs) for the radar pipeline.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from event_radar.shared.utils.errors import FetchError


class FetchStrategy(str, Enum):
    """How the content of a source is acquired."""

    STATIC = "static"
    JS_RENDER = "js-render"
    STRUCTURED_API = "structured-api"


class EventStatus(str, Enum):
    """Canonical review state of a stored event."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HealthStatus(str, Enum):
    """Classification of a source, computed at read time."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILING = "failing"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Static configuration for one external event listing.

    Attributes:
        name (str): Display name, also the key in the registry.
        url (str): Public page of the listing.
        strategy (FetchStrategy): How the content is fetched.
        instructions (str): Source-specific extraction instructions for the AI step.
        active (bool): Whether scheduled runs include this source.
        notes (str): Free-form operator notes (quirks, date format hints).
        search_url (str): Overrides url for fetching (e.g. a filtered listing).
        api_url (str): JSON endpoint for structured-api sources.
        html_pattern (str): CSS selector hint passed to the extractor.
        date_format (str): Human description of the source's date format.
        max_chars (int): Content is truncated to this many characters before extraction.
        render_wait_ms (int): Settle delay for the rendering provider.
        requires_auth (bool): Listing needs a login; kept inactive.
        default_time (str): Start time to assume when the listing has none.
    """

    name: str
    url: str
    strategy: FetchStrategy = FetchStrategy.STATIC
    instructions: str = ""
    active: bool = True
    notes: str = ""
    search_url: str = ""
    api_url: str = ""
    html_pattern: str = ""
    date_format: str = ""
    max_chars: int = 20000
    render_wait_ms: int = 3000
    requires_auth: bool = False
    default_time: str = ""

    @property
    def fetch_url(self) -> str:
        if self.strategy == FetchStrategy.STRUCTURED_API and self.api_url:
            return self.api_url
        return self.search_url or self.url

    @property
    def provider(self) -> str:
        """Rate limiting key: the render provider, or the host being fetched."""
        if self.strategy == FetchStrategy.JS_RENDER:
            return "render"
        return urlparse(self.fetch_url).netloc.lower() or self.name


@dataclass
class RawFetchResult:
    """
    Ephemeral output of the fetcher, handed straight to the extractor.

    Attributes:
        payload (str): HTML, Markdown or JSON text.
        content_type (str): One of "html", "markdown" or "json".
        content_length (int): Length of the payload in characters.
        status_code (int): HTTP status of the final response.
        fetched_at (datetime): When the fetch completed.
        url (str): The URL that was fetched.
    """

    payload: str
    content_type: str
    content_length: int
    status_code: int
    fetched_at: datetime
    url: str = ""


@dataclass
class FetchOutcome:
    """Either a RawFetchResult or the FetchError explaining why there is none."""

    result: Optional[RawFetchResult] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


@dataclass
class CandidateEvent:
    """
    An extracted, validated but not yet persisted event.

    Attributes:
        title (str): Event title, never empty.
        date (date): Calendar date of the event.
        time (str): Start time as HH:MM (24-hour).
        location (str): Venue name.
        city (str): City, defaults to the configured region city.
        category (str): One of the category taxonomy values.
        description (str): Short free-text description.
        registration_url (str): Registration or ticket URL if known.
        detail_url (str): Event detail page if known.
        thumbnail (str): Image URL if known.
    """

    title: str
    date: date
    time: str = ""
    location: str = ""
    city: str = ""
    category: str = ""
    description: str = ""
    registration_url: str = ""
    detail_url: str = ""
    thumbnail: str = ""


# Python attribute name -> Redis hash field name
_HASH_FIELDS = {
    "id": "id",
    "title": "title",
    "date": "date",
    "time": "time",
    "location": "location",
    "city": "city",
    "category": "category",
    "description": "description",
    "registration_url": "registrationUrl",
    "detail_url": "detailUrl",
    "thumbnail": "thumbnail",
    "source": "source",
    "status": "status",
    "created_at": "createdAt",
    "approved_at": "approvedAt",
    "rejected_at": "rejectedAt",
}

LEGACY_FIELDS = ("reviewed", "rejected", "approved")


def _parse_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@dataclass
class StoredEvent:
    """
    Durable event record, one Redis hash per event.

    The canonical review state is `status`. Records written before the
    status field existed only carry the legacy `reviewed`/`rejected`
    booleans; those are kept in `legacy` until the record is transitioned
    or migrated, and `event_radar.review.status.derive_status` reads either.
    """

    id: str
    title: str
    date: Optional[date]
    time: str = ""
    location: str = ""
    city: str = ""
    category: str = ""
    description: str = ""
    registration_url: str = ""
    detail_url: str = ""
    thumbnail: str = ""
    source: str = ""
    status: Optional[EventStatus] = EventStatus.PENDING
    created_at: str = ""
    approved_at: Optional[str] = None
    rejected_at: Optional[str] = None
    legacy: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_candidate(
        cls, event_id: str, candidate: CandidateEvent, source: str, created_at: str
    ) -> "StoredEvent":
        return cls(
            id=event_id,
            title=candidate.title,
            date=candidate.date,
            time=candidate.time,
            location=candidate.location,
            city=candidate.city,
            category=candidate.category,
            description=candidate.description,
            registration_url=candidate.registration_url,
            detail_url=candidate.detail_url,
            thumbnail=candidate.thumbnail,
            source=source,
            status=EventStatus.PENDING,
            created_at=created_at,
        )

    @classmethod
    def from_hash(cls, data: Mapping[str, Any], event_id: str = "") -> "StoredEvent":
        """Build a StoredEvent from a Redis hash (all values are strings)."""
        raw_status = data.get("status")
        try:
            status = EventStatus(raw_status) if raw_status else None
        except ValueError:
            status = None

        legacy = {}
        for name in LEGACY_FIELDS:
            parsed = _parse_bool(data.get(name))
            if parsed is not None:
                legacy[name] = parsed

        return cls(
            id=data.get("id") or event_id,
            title=data.get("title", ""),
            date=_parse_date(data.get("date")),
            time=data.get("time", ""),
            location=data.get("location", ""),
            city=data.get("city", ""),
            category=data.get("category", ""),
            description=data.get("description", ""),
            registration_url=data.get("registrationUrl", ""),
            detail_url=data.get("detailUrl", "") or data.get("url", ""),
            thumbnail=data.get("thumbnail", ""),
            source=data.get("source", ""),
            status=status,
            created_at=data.get("createdAt", ""),
            approved_at=data.get("approvedAt") or None,
            rejected_at=data.get("rejectedAt") or None,
            legacy=legacy,
        )

    def to_hash(self) -> Dict[str, str]:
        """Serialise to a flat string mapping; empty optional fields are omitted."""
        result = {}
        for attr, key in _HASH_FIELDS.items():
            value = getattr(self, attr)
            if value is None or value == "":
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            result[key] = str(value)
        for name, flag in self.legacy.items():
            result[name] = "true" if flag else "false"
        return result

    def to_public_dict(self) -> Dict[str, Any]:
        """camelCase JSON view used by feeds and admin responses."""
        data = {key: "" for key in _HASH_FIELDS.values()}
        data.update(self.to_hash())
        for name in LEGACY_FIELDS:
            data.pop(name, None)
        return data


@dataclass
class HealthRecord:
    """
    Health of one source. `status` is derived on read, never stored.
    """

    name: str
    status: HealthStatus = HealthStatus.UNKNOWN
    active: bool = True
    url: str = ""
    strategy: str = ""
    last_success: Optional[datetime] = None
    last_error: Optional[str] = None
    events_7d: int = 0
    found_7d: int = 0
    approved_7d: int = 0
    requires_auth: bool = False

    @property
    def approval_rate(self) -> Optional[int]:
        if self.events_7d <= 0:
            return None
        return round(self.approved_7d / self.events_7d * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "active": self.active,
            "status": self.status.value,
            "lastSuccess": self.last_success.isoformat() if self.last_success else None,
            "lastError": self.last_error,
            "events7d": self.events_7d,
            "found7d": self.found_7d,
            "approved7d": self.approved_7d,
            "approvalRate": self.approval_rate,
            "method": self.strategy,
            "requiresAuth": self.requires_auth,
        }


@dataclass
class SourceRunResult:
    """Outcome of one fetch -> extract -> dedupe -> store pass."""

    source: str
    url: str = ""
    success: bool = False
    skipped: bool = False
    events_found: int = 0
    events_added: int = 0
    duplicates: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    content_length: int = 0
    candidates: List[CandidateEvent] = field(default_factory=list)
    finished_at: Optional[datetime] = None


@dataclass
class BatchResult:
    """Aggregate of a run over many sources."""

    results: List[SourceRunResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def events_found(self) -> int:
        return sum(r.events_found for r in self.results if r.success)

    @property
    def events_added(self) -> int:
        return sum(r.events_added for r in self.results if r.success)

    def summary(self) -> Dict[str, Any]:
        return {
            "totalSources": len(self.results),
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "eventsFound": self.events_found,
            "eventsAdded": self.events_added,
        }
