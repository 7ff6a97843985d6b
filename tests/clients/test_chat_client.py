"""Tests for ChatClient and FakeChatClient."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dua_search.clients.chat import (
    ChatClient,
    ChatClientError,
    ChatClientProtocol,
    FakeChatClient,
)


class TestChatClient:
    @pytest.mark.asyncio
    async def test_complete_requests_json_object(self) -> None:
        client = ChatClient(api_key="sk-test")
        with patch.object(client, "_execute_request", new_callable=AsyncMock) as mock:
            mock.return_value = {"choices": [{"message": {"content": '{"a": 1}'}}]}
            text = await client.complete("system", "user")
        payload = mock.await_args.args[0]
        assert payload["model"] == "gpt-5-nano"
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert text == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_missing_choices_raises(self) -> None:
        client = ChatClient(api_key="sk-test")
        with patch.object(client, "_execute_request", new_callable=AsyncMock) as mock:
            mock.return_value = {"choices": []}
            with pytest.raises(ChatClientError):
                await client.complete("system", "user")

    @pytest.mark.asyncio
    async def test_null_content_is_empty(self) -> None:
        client = ChatClient(api_key="sk-test")
        with patch.object(client, "_execute_request", new_callable=AsyncMock) as mock:
            mock.return_value = {"choices": [{"message": {"content": None}}]}
            assert await client.complete("system", "user") == ""

    @pytest.mark.asyncio
    async def test_decoding_error_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.DecodingError("bad gzip", request=request)

        client = ChatClient(api_key="sk-test", max_retries=0, retry_delay=0.0)
        await client.close()
        client._client = httpx.AsyncClient(
            base_url="http://chat", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(ChatClientError, match="DecodingError"):
            await client.complete("system", "user")
        await client.close()

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ('<think>reasoning</think>{"a": 1}', '{"a": 1}'),
            ('{"a": 1}<think>cut off', '{"a": 1}'),
            ('  {"a": 1}  ', '{"a": 1}'),
        ],
    )
    def test_strip_think_tags(self, raw: str, expected: str) -> None:
        assert ChatClient._strip_think_tags(raw) == expected


class TestFakeChatClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(FakeChatClient(), ChatClientProtocol)

    @pytest.mark.asyncio
    async def test_scripted_responses(self) -> None:
        fake = FakeChatClient(response="default", responses=["first"])
        assert await fake.complete("s", "u1") == "first"
        assert await fake.complete("s", "u2") == "default"
        assert fake.calls == [("s", "u1"), ("s", "u2")]

    @pytest.mark.asyncio
    async def test_configured_error(self) -> None:
        fake = FakeChatClient(error=ChatClientError("down"))
        with pytest.raises(ChatClientError):
            await fake.complete("s", "u")
