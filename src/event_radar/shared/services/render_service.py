"""
Client for the JavaScript rendering provider (Firecrawl-compatible scrape API).
"""

import asyncio
from typing import Dict, Optional

import aiohttp

from event_radar.shared.utils.configs import render_configs
from event_radar.shared.utils.errors import FetchError
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


class RenderService:
    """
    Render-fetch collaborator: executes a page's JavaScript remotely and
    returns the rendered HTML and Markdown.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.session = session
        self._owns_session = session is None
        self.api_url = (api_url or render_configs["api_url"]).rstrip("/")
        self.api_key = api_key if api_key is not None else render_configs["api_key"]

    async def render(
        self, url: str, wait_ms: Optional[int] = None, timeout: Optional[float] = None
    ) -> Dict[str, str]:
        """
        Render a page after a settle delay.

        Args:
            url: Page to render
            wait_ms: Milliseconds the provider waits before capturing
            timeout: Total seconds for the provider call

        Returns:
            {"html": ..., "markdown": ...}; either may be empty

        Raises:
            FetchError: RENDER_ERROR on provider failure, TIMEOUT_ERROR on timeout
        """
        if not self.api_key:
            raise FetchError(
                message="Rendering provider API key is not configured",
                error_type=ErrorType.RENDER_ERROR,
                status_code=500,
            )
        if not self.session:
            self.session = aiohttp.ClientSession()

        wait_ms = wait_ms if wait_ms is not None else render_configs["default_wait_ms"]
        total = timeout or render_configs["timeout_seconds"]
        payload = {"url": url, "formats": ["html", "markdown"], "waitFor": wait_ms}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"Rendering {url} (wait {wait_ms}ms)")
        try:
            async with self.session.post(
                f"{self.api_url}/scrape",
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=total),
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise FetchError(
                        message=f"Render provider answered HTTP {response.status}: {text[:200]}",
                        error_type=ErrorType.RENDER_ERROR,
                        status_code=response.status,
                    )
                body = await response.json(content_type=None)
        except FetchError:
            raise
        except asyncio.TimeoutError:
            raise FetchError(
                message=f"Render provider timed out after {total}s for {url}",
                error_type=ErrorType.TIMEOUT_ERROR,
                status_code=504,
            )
        except (aiohttp.ClientError, ValueError) as e:
            raise FetchError(
                message=f"Render provider request failed: {e}",
                error_type=ErrorType.RENDER_ERROR,
            )

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise FetchError(
                message=f"Render provider failed: {error or 'unknown error'}",
                error_type=ErrorType.RENDER_ERROR,
            )

        data = body.get("data") or {}
        return {
            "html": data.get("html") or "",
            "markdown": data.get("markdown") or "",
        }

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
