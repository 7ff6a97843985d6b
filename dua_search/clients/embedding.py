"""
Embedding Client

HTTP client for an OpenAI-compatible embeddings endpoint.

Endpoint: POST {base_url}/v1/embeddings
Request:  {"model": str, "input": str}
Response: {"data": [{"embedding": [float, ...]}], ...}
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from dua_search.clients.http import post_json
from dua_search.core.exceptions import UpstreamUnavailableError

DEFAULT_BASE_URL: Final[str] = "https://api.openai.com"
ENDPOINT_EMBEDDINGS: Final[str] = "/v1/embeddings"
DEFAULT_MODEL: Final[str] = "text-embedding-3-small"
DEFAULT_TIMEOUT: Final[float] = 10.0
DEFAULT_MAX_RETRIES: Final[int] = 2
DEFAULT_RETRY_DELAY: Final[float] = 0.5

EMBEDDING_HINT: Final[str] = (
    "Check DSS_OPENAI_API_KEY and DSS_OPENAI_BASE_URL, and that the embedding "
    "model is available."
)


class EmbeddingClientError(UpstreamUnavailableError):
    """Raised when the embedding service fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, hint=EMBEDDING_HINT)
        self.status_code = status_code


@runtime_checkable
class EmbeddingClientProtocol(Protocol):
    """Protocol for embedding clients.

    Enables FakeEmbeddingClient for testing without real HTTP calls.
    """

    async def embed(self, text: str) -> list[float]:
        """Embed a single text into a fixed-length vector."""
        ...


class EmbeddingClient:
    """HTTP client for an OpenAI-compatible embeddings endpoint.

    Attributes:
        base_url: Provider base URL
        model: Embedding model id
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
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        # Connection pooling: single client instance
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def embed(self, text: str) -> list[float]:
        """Embed text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingClientError: On HTTP errors or a malformed response
        """
        data = await self._execute_request({"model": self.model, "input": text})
        return self._parse_embedding(data)

    async def _execute_request(self, payload: dict[str, Any]) -> Any:
        return await post_json(
            self._client,
            ENDPOINT_EMBEDDINGS,
            payload,
            error_factory=EmbeddingClientError,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    @staticmethod
    def _parse_embedding(data: Any) -> list[float]:
        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingClientError(f"Malformed embedding response: {e}") from e
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingClientError("Embedding response contained no vector")
        return [float(v) for v in embedding]

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()


class FakeEmbeddingClient:
    """Fake client for unit testing without real HTTP.

    Produces a deterministic vector per input text derived from its SHA-256
    digest, so identical text always embeds identically.
    """

    def __init__(
        self,
        dimensions: int = 8,
        error: EmbeddingClientError | None = None,
        delay: float = 0.0,
    ) -> None:
        self.dimensions = dimensions
        self._error = error
        self._delay = delay
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        await asyncio.sleep(self._delay)
        if self._error:
            raise self._error
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i % len(digest)] / 255.0 for i in range(self.dimensions)]
