"""
Text-generation collaborator used by the extraction engine.

Speaks the OpenAI chat completions protocol, so any compatible endpoint
(OpenAI, Groq, a local server) can be used by setting RADAR_LLM_BASE_URL.
"""

import asyncio
from typing import Optional

import openai
from openai import AsyncOpenAI

from event_radar.shared.utils.configs import llm_configs
from event_radar.shared.utils.errors import ExtractionError
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


class LLMService:
    """Thin async wrapper around a chat completion endpoint."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.model = model or llm_configs["model"]
        self.client = client
        if self.client is None:
            if not llm_configs["api_key"]:
                raise ExtractionError(
                    message="No API key configured for the extraction model",
                    error_type=ErrorType.EXTRACTION_ERROR,
                    status_code=500,
                )
            self.client = AsyncOpenAI(
                api_key=llm_configs["api_key"],
                base_url=llm_configs["base_url"],
                timeout=llm_configs["timeout_seconds"],
                max_retries=1,
            )

    async def complete(
        self,
        prompt: str,
        system: str = "",
        json_mode: bool = True,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Run one chat completion.

        Args:
            prompt: User message
            system: Optional system message
            json_mode: Force a JSON object response
            timeout: Seconds before the call is abandoned

        Returns:
            The raw text of the first choice

        Raises:
            ExtractionError: On provider errors, timeouts or an empty answer
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": llm_configs["temperature"],
            "max_tokens": llm_configs["max_tokens"],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        timeout = timeout or llm_configs["timeout_seconds"]
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs), timeout=timeout
            )
        except asyncio.TimeoutError:
            raise ExtractionError(
                message=f"Extraction model timed out after {timeout}s",
                error_type=ErrorType.TIMEOUT_ERROR,
                status_code=504,
            )
        except openai.OpenAIError as e:
            raise ExtractionError(message=f"Extraction model request failed: {e}")

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ExtractionError(message="Extraction model returned an empty answer")

        usage = getattr(completion, "usage", None)
        if usage is not None:
            logger.debug(f"LLM usage: {usage.prompt_tokens} in, {usage.completion_tokens} out")
        return content
