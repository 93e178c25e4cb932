"""
Extraction engine: turns raw source content into validated candidate events.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Protocol

from bs4 import BeautifulSoup, Comment

from event_radar.extractor.prompts import (
    CATEGORIES,
    SYSTEM_PROMPT,
    build_prompt,
    build_source_instructions,
)
from event_radar.shared.schemas.dto import CandidateEvent, RawFetchResult, SourceDescriptor
from event_radar.shared.services.llm_service import LLMService
from event_radar.shared.utils.configs import base_configs, llm_configs, pipeline_configs
from event_radar.shared.utils.errors import ExtractionError
from event_radar.shared.utils.helpers import parse_iso_date, today_local
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType

TRUNCATION_MARKER = "...[truncated]"
MAX_DESCRIPTION_CHARS = 200

_TIME_PATTERN = re.compile(r"(\d{1,2})[:.](\d{2})")
_CATEGORY_LOOKUP = {category.lower(): category for category in CATEGORIES}


class Extractor(Protocol):
    """Anything that can turn page content plus instructions into raw event dicts."""

    async def extract(self, content: str, instructions: str, **kwargs: Any) -> List[Dict[str, Any]]:
        ...


class LLMExtractor:
    """Extractor backed by a chat completion model in JSON mode."""

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm_service = llm_service or LLMService()

    async def extract(
        self,
        content: str,
        instructions: str,
        content_type: str = "html",
        default_time: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Ask the model for the events in `content`.

        Returns:
            The raw items of the `events` array

        Raises:
            ExtractionError: On provider failure or a malformed answer
        """
        prompt = build_prompt(content, instructions, content_type, default_time)
        answer = await self.llm_service.complete(prompt, system=SYSTEM_PROMPT, json_mode=True)
        try:
            data = json.loads(answer)
        except json.JSONDecodeError as e:
            raise ExtractionError(
                message=f"Model answered with malformed JSON: {e}",
                error_type=ErrorType.PARSE_ERROR,
            )
        if not isinstance(data, dict) or not isinstance(data.get("events", []), list):
            raise ExtractionError(
                message="Model answer has no 'events' array",
                error_type=ErrorType.PARSE_ERROR,
            )
        return [item for item in data.get("events", []) if isinstance(item, dict)]


@dataclass
class ExtractionReport:
    """Candidates of one extraction plus what happened on the way."""

    candidates: List[CandidateEvent] = field(default_factory=list)
    raw_count: int = 0
    rejected: int = 0
    error: Optional[ExtractionError] = None


def is_within_window(event_date: date, today: date) -> bool:
    """True if the date lies in the sanity window around `today`."""
    earliest = today - timedelta(days=pipeline_configs["past_window_days"])
    latest = today + timedelta(days=pipeline_configs["future_window_days"])
    return earliest <= event_date <= latest


def normalize_time(value: Any, default: str) -> str:
    """
    Reduce free-form times ("9:00", "09:00-12:45 Uhr", "18.30") to HH:MM.

    The first valid time wins; anything unparseable becomes `default`.
    """
    if not isinstance(value, str):
        return default
    match = _TIME_PATTERN.search(value)
    if not match:
        return default
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return default
    return f"{hour:02d}:{minute:02d}"


def normalize_category(value: Any) -> str:
    if isinstance(value, str):
        return _CATEGORY_LOOKUP.get(value.strip().lower(), "Other")
    return "Other"


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _clean_url(value: Any) -> str:
    text = _clean_text(value)
    return text if text.startswith(("http://", "https://")) else ""


def validate_candidate(
    item: Dict[str, Any],
    today: date,
    default_time: Optional[str] = None,
    default_city: Optional[str] = None,
) -> Optional[CandidateEvent]:
    """
    Schema and range check for one raw extraction item.

    Args:
        item: Raw dict from the extractor
        today: Reference date for the sanity window
        default_time: Start time used when the item has none
        default_city: City used when the item has none

    Returns:
        A normalised CandidateEvent, or None if the item must be dropped
    """
    title = _clean_text(item.get("title"))
    if not title:
        return None
    event_date = parse_iso_date(item.get("date"))
    if event_date is None:
        return None
    if not is_within_window(event_date, today):
        return None

    description = _clean_text(item.get("description"))
    if len(description) > MAX_DESCRIPTION_CHARS:
        description = description[: MAX_DESCRIPTION_CHARS - 3].rstrip() + "..."

    return CandidateEvent(
        title=title,
        date=event_date,
        time=normalize_time(item.get("time"), default_time or base_configs["default_time"]),
        location=_clean_text(item.get("location")),
        city=_clean_text(item.get("city")) or default_city or base_configs["default_city"],
        category=normalize_category(item.get("category")),
        description=description,
        registration_url=_clean_url(item.get("registrationUrl")),
        detail_url=_clean_url(item.get("detailUrl") or item.get("url")),
        thumbnail=_clean_url(item.get("thumbnail") or item.get("image")),
    )


def prepare_content(raw: RawFetchResult, max_chars: int) -> str:
    """
    Strip noise from the payload and cap its length.

    HTML loses scripts, styles and comments. JSON is kept compact.
    Anything longer than `max_chars` is cut and marked as truncated.
    """
    content = raw.payload
    if raw.content_type == "html":
        soup = BeautifulSoup(content, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()
        content = str(soup)
    elif raw.content_type == "json":
        try:
            content = json.dumps(json.loads(content), ensure_ascii=False, separators=(",", ":"))
        except json.JSONDecodeError:
            pass

    if len(content) > max_chars:
        content = content[:max_chars] + TRUNCATION_MARKER
    return content


class ExtractionService:
    """
    Runs the extractor for one source and filters its output.

    Extraction failures never propagate: the source simply yields zero
    candidates and the report carries the error.
    """

    def __init__(self, extractor: Optional[Extractor] = None, timeout: Optional[float] = None):
        self.extractor = extractor
        self.timeout = timeout or llm_configs["timeout_seconds"]

    async def extract(
        self,
        raw: RawFetchResult,
        descriptor: SourceDescriptor,
        today: Optional[date] = None,
    ) -> List[CandidateEvent]:
        report = await self.extract_with_report(raw, descriptor, today)
        return report.candidates

    async def extract_with_report(
        self,
        raw: RawFetchResult,
        descriptor: SourceDescriptor,
        today: Optional[date] = None,
    ) -> ExtractionReport:
        """
        Extract, validate and normalise the events of one fetch.

        Args:
            raw: Output of the fetcher
            descriptor: Source the content came from
            today: Reference date for the sanity window (default: today locally)

        Returns:
            ExtractionReport with the surviving candidates
        """
        today = today or today_local()
        max_chars = descriptor.max_chars or pipeline_configs["default_max_chars"]
        content = prepare_content(raw, max_chars)
        instructions = build_source_instructions(descriptor)

        try:
            if self.extractor is None:
                self.extractor = LLMExtractor()
            items = await asyncio.wait_for(
                self.extractor.extract(
                    content,
                    instructions,
                    content_type=raw.content_type,
                    default_time=descriptor.default_time or None,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = ExtractionError(
                message=f"Extraction timed out after {self.timeout}s",
                error_type=ErrorType.TIMEOUT_ERROR,
                status_code=504,
            )
            logger.error(f"Extraction error for {descriptor.name}: {error.message}")
            return ExtractionReport(error=error)
        except ExtractionError as e:
            logger.error(
                f"Extraction error for {descriptor.name}: {e.error_type.value} - {e.message}"
            )
            return ExtractionReport(error=e)
        except Exception as e:
            logger.error(f"Unexpected extraction error for {descriptor.name}: {str(e)}")
            return ExtractionReport(
                error=ExtractionError(
                    message=f"An unexpected error occurred during extraction: {e}",
                    error_type=ErrorType.UNKNOWN_ERROR,
                )
            )

        report = ExtractionReport(raw_count=len(items))
        for item in items:
            candidate = validate_candidate(
                item, today, default_time=descriptor.default_time or None
            )
            if candidate is None:
                report.rejected += 1
                logger.debug(f"Dropped invalid item from {descriptor.name}: {item.get('title')!r}")
                continue
            report.candidates.append(candidate)

        logger.info(
            f"Extracted {len(report.candidates)} of {report.raw_count} items from {descriptor.name}"
        )
        return report
