"""Anthropic service for Claude API calls."""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings

logger = logging.getLogger(__name__)


class AnthropicResponse:
    """Structured response from Anthropic API.

    Attributes:
        text: The generated text content.
        tokens_input: Number of input tokens.
        tokens_output: Number of output tokens.
        model: Model used for generation.
    """

    def __init__(self, text: str, tokens_input: int, tokens_output: int, model: str):
        self.text = text
        self.tokens_input = tokens_input
        self.tokens_output = tokens_output
        self.model = model


def is_rate_limit_error(error: BaseException) -> bool:
    """True for 429 responses or errors whose body mentions rate_limit."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code == 429 or "rate_limit" in error.response.text
    return False


class AnthropicService:
    """Service for interacting with Anthropic's Claude API.

    Uses httpx for async HTTP calls. Rate-limited requests are retried
    three times with exponential backoff; every other error propagates.
    """

    BASE_URL = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"
    REQUEST_TIMEOUT = 60.0  # seconds

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the Anthropic service.

        Args:
            transport: Optional httpx transport, used by tests.
        """
        self.transport = transport

    @property
    def model(self) -> str:
        return settings.ANTHROPIC_MODEL

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests."""
        api_key = settings.ANTHROPIC_API_KEY
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not configured")
        return {
            "x-api-key": api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    @retry(
        stop=stop_after_attempt(4),
        wait=wait_exponential(multiplier=2, min=2, max=16),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def create_message(
        self,
        prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.0,
    ) -> AnthropicResponse:
        """Send a single-turn prompt to Claude.

        Args:
            prompt: The user message.
            max_tokens: Output token ceiling.
            temperature: Sampling temperature; 0 keeps scoring deterministic.

        Returns:
            AnthropicResponse with the first text block and usage.

        Raises:
            httpx.HTTPStatusError: If the API returns an error status.
        """
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        async with httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT, transport=self.transport) as client:
            response = await client.post(
                f"{self.BASE_URL}/messages",
                headers=self._get_headers(),
                json=payload,
            )
            if not response.is_success:
                logger.warning(f"[Anthropic] Error response: {response.status_code} - {response.text[:500]}")
            response.raise_for_status()
            data: Dict[str, Any] = response.json()

        content = data.get("content") or []
        text = ""
        if content and content[0].get("type") == "text":
            text = content[0].get("text", "")

        usage = data.get("usage") or {}
        return AnthropicResponse(
            text=text,
            tokens_input=usage.get("input_tokens", 0),
            tokens_output=usage.get("output_tokens", 0),
            model=data.get("model", self.model),
        )


anthropic_service = AnthropicService()
