"""
LLM Integration
Single-shot transport to an OpenAI-compatible chat-completions endpoint.
Retries, pacing and caching live in the dispatcher and cache; this module
only turns one request into text or a typed error.
"""

import logging
from typing import Optional, Sequence, Union

import httpx

from config import LLM_API_KEY, LLM_BASE_URL, LLM_TIMEOUT
from core.models import GenerationOptions, Message

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM-related errors"""
    pass


class ProviderThrottled(LLMError):
    """Raised when the provider answers 429"""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderResponseMalformed(LLMError):
    """Raised when a successful response lacks choices[0].message.content"""
    pass


class ProviderUnreachable(LLMError):
    """Raised for network-level failures (DNS, connect, timeout, reset)"""
    pass


class ProviderError(LLMError):
    """Raised for any other non-2xx provider status"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a retry-after header; None when absent or not numeric"""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class CompletionClient:
    """Wrapper for the provider's chat-completions call"""

    def __init__(
        self,
        api_key: str = LLM_API_KEY,
        base_url: str = LLM_BASE_URL,
        timeout: float = LLM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        messages: Sequence[Union[Message, dict]],
        options: GenerationOptions,
    ) -> str:
        """Issue one request and return choices[0].message.content"""
        if not self.api_key:
            raise ProviderUnreachable(
                "LLM API key not found. "
                "Please set LLM_API_KEY in your .env file."
            )

        payload = {
            "messages": [Message.from_dict(m).to_dict() for m in messages],
            **options.to_payload(),
        }

        logger.debug("POST %s (model=%s, %d messages)", self.url, options.model, len(payload["messages"]))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as e:
            raise ProviderUnreachable(f"Request timed out after {self.timeout} seconds") from e
        except httpx.RequestError as e:
            raise ProviderUnreachable(f"Network error: {e}") from e

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            raise ProviderThrottled("Rate limited by LLM provider", retry_after=retry_after)

        if not response.is_success:
            error_detail = response.text
            try:
                error_json = response.json()
                error_detail = error_json.get("error", {}).get("message", error_detail)
            except (ValueError, AttributeError):
                pass
            raise ProviderError(f"API error ({response.status_code}): {error_detail}", response.status_code)

        return self._extract_content(response)

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseMalformed("Provider returned non-JSON body") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseMalformed("Invalid API response: no choices[0].message.content") from e

        if not isinstance(content, str):
            raise ProviderResponseMalformed("Invalid API response: content is not text")
        if not content.strip():
            raise ProviderResponseMalformed("Empty response from API")

        return content.strip()
