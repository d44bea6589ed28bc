"""Concrete implementation of the AIModel interface using the OpenAI API.

Works against any OpenAI-compatible endpoint through ``base_url``. Hides the
specifics of the OpenAI client library and translates responses into the
domain model.
"""

import asyncio
import logging
import re
import time
from typing import Any, List, Optional

from openai import APIError, AuthenticationError, OpenAI, RateLimitError

from devctx.domain.interfaces.ai_model import AIModel
from devctx.domain.models.ai import ChatMessage, StructuredAIResponse
from devctx.domain.models.common import TokenUsage
from devctx.infrastructure.config.settings import DEFAULT_AI_BASE_URL, DEFAULT_AI_MODEL

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.2
_CODE_FENCE = re.compile(r"```json|```")


class AIClientError(Exception):
    """Raised when the AI endpoint is unusable or returns an unusable reply."""


def strip_code_fences(content: str) -> str:
    """Removes markdown code fences models like to wrap JSON in."""
    return _CODE_FENCE.sub("", content).strip()


class GptClient(AIModel):
    """OpenAI implementation of the AIModel interface."""

    DEFAULT_MODEL = DEFAULT_AI_MODEL

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ):
        """Initializes the OpenAI client.

        Args:
            api_key: API key for the endpoint. Required; never read from the environment here.
            base_url: OpenAI-compatible endpoint. Defaults to OpenAI.
            model: Chat model name.
            temperature: Sampling temperature.
        """
        if not api_key:
            raise AIClientError("No AI key. Set DEVCTX_AI_KEY or pass --api-key.")

        self.base_url = base_url or DEFAULT_AI_BASE_URL
        self.model = model or self.DEFAULT_MODEL
        self.temperature = temperature
        self.client = OpenAI(api_key=api_key, base_url=self.base_url)
        logger.info(f"GptClient initialized for model {self.model} at {self.base_url}")

    def _parse_openai_response(self, response: Any) -> StructuredAIResponse:
        """Parses the response object from OpenAI API call."""
        try:
            content = response.choices[0].message.content or ""
            token_usage = None
            if response.usage:
                token_usage = TokenUsage(
                    prompt_tokens=response.usage.prompt_tokens,
                    completion_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens
                )
            return StructuredAIResponse(
                content=strip_code_fences(content),
                token_usage=token_usage,
                model_name=getattr(response, "model", None),
            )
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse OpenAI response structure: {e}", exc_info=True)
            raise AIClientError(f"Invalid response structure from AI endpoint: {e}") from e

    async def send_messages(self, messages: List[ChatMessage]) -> StructuredAIResponse:
        """Sends messages to the configured model asynchronously."""
        logger.debug(f"Sending {len(messages)} messages to model: {self.model}")
        start_time = time.perf_counter()
        try:
            # The SDK call is synchronous; keep the event loop free
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except AuthenticationError as e:
            logger.error(f"AI endpoint authentication error: {e}")
            raise
        except RateLimitError as e:
            logger.warning(f"AI endpoint rate limit encountered: {e}")
            raise
        except APIError as e:
            logger.warning(f"AI endpoint API error: {e}")
            raise

        structured_response = self._parse_openai_response(response)
        structured_response.latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Received response in {structured_response.latency_ms:.2f}ms. "
            f"Usage: {structured_response.token_usage}"
        )
        return structured_response
