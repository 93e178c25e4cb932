"""
Content fetcher: acquires raw content for one source.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, List, Optional, Tuple

import aiohttp

from event_radar.shared.schemas.dto import (
    FetchOutcome,
    FetchStrategy,
    RawFetchResult,
    SourceDescriptor,
)
from event_radar.shared.services.render_service import RenderService
from event_radar.shared.utils.configs import base_configs, pipeline_configs
from event_radar.shared.utils.errors import FetchError
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType

# Keys a JSON API may wrap its event list in
LIST_KEYS = ("events", "data", "items")


class ContentFetcher:
    """
    Fetches source content with the strategy named by the descriptor.

    `fetch` never raises: a failure comes back as a FetchOutcome carrying a
    FetchError so a batch run can mark the source and move on.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        render_service: Optional[RenderService] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self._owns_session = session is None
        self.render_service = render_service
        self.timeout = timeout or pipeline_configs["fetch_timeout_seconds"]

    async def fetch(self, descriptor: SourceDescriptor) -> FetchOutcome:
        """
        Fetch the content of one source.

        Args:
            descriptor: Source to fetch

        Returns:
            FetchOutcome with either a RawFetchResult or a FetchError
        """
        try:
            if descriptor.strategy == FetchStrategy.JS_RENDER:
                result = await self.fetch_rendered(descriptor)
            elif descriptor.strategy == FetchStrategy.STRUCTURED_API:
                result = await self.fetch_structured(descriptor)
            else:
                result = await self.fetch_static(descriptor)
        except FetchError as e:
            logger.warning(
                f"Fetch failed for {descriptor.name}: {e.error_type.value} - {e.message}"
            )
            return FetchOutcome(error=e)
        except Exception as e:
            logger.error(f"Unexpected error fetching {descriptor.name}: {str(e)}")
            return FetchOutcome(
                error=FetchError(
                    message=f"An unexpected error occurred while fetching: {e}",
                    error_type=ErrorType.UNKNOWN_ERROR,
                    status_code=500,
                )
            )

        logger.info(
            f"Fetched {descriptor.name}: {result.content_length} chars of {result.content_type}"
        )
        return FetchOutcome(result=result)

    async def fetch_static(self, descriptor: SourceDescriptor) -> RawFetchResult:
        url = descriptor.fetch_url
        status, text = await self._get(url)
        return RawFetchResult(
            payload=text,
            content_type="html",
            content_length=len(text),
            status_code=status,
            fetched_at=datetime.now(base_configs["timezone"]),
            url=url,
        )

    async def fetch_rendered(self, descriptor: SourceDescriptor) -> RawFetchResult:
        """Render the page remotely; Markdown is preferred over HTML."""
        if not self.render_service:
            self.render_service = RenderService(session=self._get_session())

        url = descriptor.fetch_url
        # The provider waits render_wait_ms before it starts its own work
        timeout = self.timeout + descriptor.render_wait_ms / 1000
        rendered = await self.render_service.render(
            url, wait_ms=descriptor.render_wait_ms, timeout=timeout
        )
        if rendered.get("markdown"):
            payload, content_type = rendered["markdown"], "markdown"
        elif rendered.get("html"):
            payload, content_type = rendered["html"], "html"
        else:
            raise FetchError(
                message=f"Render provider returned no content for {url}",
                error_type=ErrorType.RENDER_ERROR,
            )

        return RawFetchResult(
            payload=payload,
            content_type=content_type,
            content_length=len(payload),
            status_code=200,
            fetched_at=datetime.now(base_configs["timezone"]),
            url=url,
        )

    async def fetch_structured(self, descriptor: SourceDescriptor) -> RawFetchResult:
        """GET a JSON endpoint and keep only the event list, re-serialised compactly."""
        url = descriptor.fetch_url
        status, text = await self._get(url, accept="application/json")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise FetchError(
                message=f"Malformed JSON from {url}: {e}",
                error_type=ErrorType.PARSE_ERROR,
            )

        items = self.extract_item_list(data)
        if items is None:
            raise FetchError(
                message=f"Unexpected JSON shape from {url}: expected a list of events",
                error_type=ErrorType.PARSE_ERROR,
            )

        payload = json.dumps(items, ensure_ascii=False, separators=(",", ":"))
        return RawFetchResult(
            payload=payload,
            content_type="json",
            content_length=len(payload),
            status_code=status,
            fetched_at=datetime.now(base_configs["timezone"]),
            url=url,
        )

    @staticmethod
    def extract_item_list(data: Any) -> Optional[List[Any]]:
        """
        Return the event list of a JSON document.

        Accepts a bare list or an object holding a list under one of
        LIST_KEYS. Anything else is an unexpected shape.
        """
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in LIST_KEYS:
                if isinstance(data.get(key), list):
                    return data[key]
        return None

    def _get_session(self) -> aiohttp.ClientSession:
        if not self.session:
            self.session = aiohttp.ClientSession()
        return self.session

    async def _get(self, url: str, accept: Optional[str] = None) -> Tuple[int, str]:
        """
        GET a URL with the descriptive user agent and the fetch timeout.

        Returns:
            (status, body text)

        Raises:
            FetchError: HTTP_ERROR for non-2xx, TIMEOUT_ERROR, or FETCH_ERROR
        """
        headers = dict(base_configs["default_headers"])
        if accept:
            headers["Accept"] = accept

        session = self._get_session()
        try:
            async with session.get(
                url,
                headers=headers,
                max_redirects=10,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        message=f"Failed to fetch {url}: HTTP {response.status}",
                        error_type=ErrorType.HTTP_ERROR,
                        status_code=response.status,
                    )
                return response.status, await response.text()
        except FetchError:
            raise
        except asyncio.TimeoutError:
            raise FetchError(
                message=f"Timed out after {self.timeout}s fetching {url}",
                error_type=ErrorType.TIMEOUT_ERROR,
                status_code=504,
            )
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Failed to fetch {url}: {str(e)}",
                error_type=ErrorType.FETCH_ERROR,
            )

    async def close(self):
        """Close the HTTP session if this fetcher created it."""
        if self.render_service:
            await self.render_service.close()
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
