"""LLM client implementations.

This module provides LLM client implementations that conform to the LLMClient protocol.
Currently supports OpenRouter through the OpenAI SDK, but can be extended for
other providers.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Optional, Sequence

from openai import APIError, AsyncOpenAI, RateLimitError

from config import settings
from protocols import Message

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


class LLMRateLimitError(Exception):
    """Raised when the LLM API rate limit is exceeded."""
    pass


class LLMAPIError(Exception):
    """Raised when the LLM API returns an error."""
    pass


def _strip_code_fence(response: str) -> str:
    if response.startswith("```"):
        parts = response.split("```")
        if len(parts) >= 2:
            response = parts[1]
            if response.startswith("json"):
                response = response[4:]
    return response.strip()


def _extract_json_span(response: str) -> str:
    """Cut out the first balanced JSON object or array, ignoring brackets in strings."""
    starts = [i for i in (response.find("{"), response.find("[")) if i != -1]
    if not starts:
        return response
    start_idx = min(starts)
    opener = response[start_idx]
    closer = _CLOSERS[opener]

    depth = 0
    in_string = False
    escaped = False
    for i in range(start_idx, len(response)):
        char = response[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return response[start_idx:i + 1]
    return response[start_idx:]


def parse_json_response(response: str) -> Optional[Any]:
    """Parse JSON from LLM response, handling markdown code blocks.

    Args:
        response: Raw response string from LLM.

    Returns:
        Parsed JSON object or array, or None if parsing fails.
    """
    response = _strip_code_fence(response.strip())
    response = _extract_json_span(response)
    try:
        return json.loads(response)
    except json.JSONDecodeError:
        logger.warning("JSON parse error on: %s", response[:500])
        return None


class OpenRouterClient:
    """LLM client implementation for OpenRouter API.

    This client wraps the OpenAI SDK configured for OpenRouter.

    Attributes:
        _client: The underlying AsyncOpenAI client.
        _default_model: Default model to use for completions.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
    ):
        """Initialize the OpenRouter client.

        Args:
            api_key: OpenRouter API key (uses settings if None).
            base_url: API base URL (uses settings if None).
            default_model: Default model identifier (uses settings if None).

        Raises:
            ValueError: If API key is not provided or found in settings.
        """
        api_key = api_key or settings.llm.api_key
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY not set in environment")

        base_url = base_url or settings.llm.base_url
        self._default_model = default_model or settings.llm.default_model

        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key)

    async def complete(
        self,
        messages: Sequence[Message],
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1500,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: Conversation history.
            model: Model identifier (uses default if None).
            temperature: Sampling temperature.
            max_tokens: Maximum tokens in response.

        Returns:
            The model's response text.

        Raises:
            LLMRateLimitError: If rate limit is exceeded.
            LLMAPIError: If the API returns an error.
        """
        try:
            response = await self._client.chat.completions.create(
                model=model or self._default_model,
                messages=list(messages),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""
        except RateLimitError as e:
            raise LLMRateLimitError(
                "Rate limit exceeded. The AI service is temporarily unavailable. "
                "Please wait a moment and try again."
            ) from e
        except APIError as e:
            raise LLMAPIError(f"AI service error: {str(e)}") from e


@lru_cache(maxsize=1)
def get_llm_client() -> OpenRouterClient:
    """Get the singleton LLM client instance.

    Returns:
        Configured OpenRouterClient instance.

    Raises:
        ValueError: If no API key is configured.
    """
    return OpenRouterClient()
