"""
Tests for EmbeddingClient and FakeEmbeddingClient.

- Request payload and response parsing
- Errors carry the operator hint and surface as upstream unavailable
- Fake is deterministic and satisfies the protocol
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from dua_search.clients.embedding import (
    EMBEDDING_HINT,
    EmbeddingClient,
    EmbeddingClientError,
    EmbeddingClientProtocol,
    FakeEmbeddingClient,
)
from dua_search.core.exceptions import UpstreamUnavailableError


class TestEmbeddingClient:
    def test_defaults(self) -> None:
        client = EmbeddingClient(api_key="sk-test")
        assert client.model == "text-embedding-3-small"
        assert client.timeout == 10.0

    @pytest.mark.asyncio
    async def test_embed_sends_model_and_input(self) -> None:
        client = EmbeddingClient(api_key="sk-test")
        with patch.object(client, "_execute_request", new_callable=AsyncMock) as mock:
            mock.return_value = {"data": [{"embedding": [0.1, 0.2, 0.3]}]}
            vector = await client.embed("ease my anxiety")
        mock.assert_awaited_once_with(
            {"model": "text-embedding-3-small", "input": "ease my anxiety"}
        )
        assert vector == [0.1, 0.2, 0.3]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"data": []}, {"data": [{"embedding": []}]}, None])
    async def test_malformed_response_raises(self, body: object) -> None:
        client = EmbeddingClient(api_key="sk-test")
        with patch.object(client, "_execute_request", new_callable=AsyncMock) as mock:
            mock.return_value = body
            with pytest.raises(EmbeddingClientError):
                await client.embed("text")

    def test_error_is_upstream_unavailable_with_hint(self) -> None:
        error = EmbeddingClientError("down", status_code=503)
        assert isinstance(error, UpstreamUnavailableError)
        assert error.hint == EMBEDDING_HINT
        assert error.status_code == 503

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = EmbeddingClient(api_key="sk-test")
        await client.close()
        assert client._client.is_closed


class TestFakeEmbeddingClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(FakeEmbeddingClient(), EmbeddingClientProtocol)

    @pytest.mark.asyncio
    async def test_deterministic(self) -> None:
        fake = FakeEmbeddingClient(dimensions=16)
        first = await fake.embed("patience")
        second = await fake.embed("patience")
        other = await fake.embed("gratitude")
        assert first == second
        assert first != other
        assert len(first) == 16
        assert fake.calls == ["patience", "patience", "gratitude"]

    @pytest.mark.asyncio
    async def test_configured_error(self) -> None:
        fake = FakeEmbeddingClient(error=EmbeddingClientError("down"))
        with pytest.raises(EmbeddingClientError):
            await fake.embed("text")
