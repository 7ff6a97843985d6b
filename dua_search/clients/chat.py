"""
Chat Client

HTTP client for an OpenAI-compatible chat completions endpoint, used for
the one structured relevance-selection call per request.

Endpoint: POST {base_url}/v1/chat/completions
Request:  {"model", "messages": [system, user], "response_format": {"type": "json_object"}}
Response: {"choices": [{"message": {"content": str}}], ...}
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from dua_search.clients.http import post_json
from dua_search.core.exceptions import DuaSearchError

DEFAULT_BASE_URL: Final[str] = "https://api.openai.com"
ENDPOINT_CHAT: Final[str] = "/v1/chat/completions"
DEFAULT_MODEL: Final[str] = "gpt-5-nano"
DEFAULT_TIMEOUT: Final[float] = 15.0
DEFAULT_MAX_RETRIES: Final[int] = 1
DEFAULT_RETRY_DELAY: Final[float] = 0.5
DEFAULT_MAX_COMPLETION_TOKENS: Final[int] = 1000

REGEX_THINK_BLOCK = re.compile(r"<think>.*?</think>\s*", re.DOTALL)
REGEX_THINK_UNCLOSED = re.compile(r"<think>.*$", re.DOTALL)


class ChatClientError(DuaSearchError):
    """Raised when the chat completion call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class ChatClientProtocol(Protocol):
    """Protocol for chat completion clients.

    Enables FakeChatClient for deterministic pipeline tests.
    """

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's text response."""
        ...


class ChatClient:
    """HTTP client for OpenAI-compatible chat completions in JSON mode.

    Attributes:
        base_url: Provider base URL
        model: Chat model id
        timeout: Request timeout in seconds
        max_retries: Retries after the first attempt
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_completion_tokens: int = DEFAULT_MAX_COMPLETION_TOKENS,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_completion_tokens = max_completion_tokens

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Request a JSON-object completion.

        Args:
            system_prompt: Fixed instruction
            user_prompt: Request-specific content

        Returns:
            Message content with any <think> reasoning stripped

        Raises:
            ChatClientError: On HTTP errors or a response without choices
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "max_completion_tokens": self.max_completion_tokens,
        }
        data = await self._execute_request(payload)
        return self._parse_response(data)

    async def _execute_request(self, payload: dict[str, Any]) -> Any:
        return await post_json(
            self._client,
            ENDPOINT_CHAT,
            payload,
            error_factory=ChatClientError,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    def _parse_response(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ChatClientError(f"Malformed chat response: {e}") from e
        return self._strip_think_tags(str(content))

    @staticmethod
    def _strip_think_tags(content: str) -> str:
        """Strip chain-of-thought <think> blocks, closed or truncated."""
        cleaned = REGEX_THINK_BLOCK.sub("", content)
        if "<think>" in cleaned:
            cleaned = REGEX_THINK_UNCLOSED.sub("", cleaned)
        return cleaned.strip()

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()


class FakeChatClient:
    """Fake chat client returning scripted responses.

    Usage:
        fake = FakeChatClient(response='{"hadith_ids": ["h1"], "quran_ids": []}')
        text = await fake.complete("system", "user")
    """

    def __init__(
        self,
        response: str = "",
        responses: Sequence[str] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        """Initialize with a fixed response or a sequence consumed per call.

        Args:
            response: Returned when no sequence is configured or it is exhausted
            responses: Returned in order, one per call
            error: Raised on every call when set
            delay: Artificial latency in seconds
        """
        self._response = response
        self._responses = list(responses or [])
        self._error = error
        self._delay = delay
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        await asyncio.sleep(self._delay)
        if self._error:
            raise self._error
        if self._responses:
            return self._responses.pop(0)
        return self._response
