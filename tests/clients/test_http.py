"""
Tests for post_json retry behaviour.

- 2xx returns decoded JSON
- 4xx raises immediately (no retry)
- 5xx, timeouts and other httpx errors retry with backoff, then raise
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from dua_search.clients.http import classify_status, get_json, post_json


class FakeUpstreamError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def make_response(status_code: int, body: Any = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    return response


async def call(client: httpx.AsyncClient, max_retries: int = 2) -> Any:
    return await post_json(
        client,
        "/v1/thing",
        {"a": 1},
        error_factory=FakeUpstreamError,
        max_retries=max_retries,
        retry_delay=0.0,
    )


class TestClassifyStatus:
    @pytest.mark.parametrize(("code", "kind"), [(400, "client_error"), (499, "client_error"), (500, "server_error"), (503, "server_error")])
    def test_classify(self, code: int, kind: str) -> None:
        assert classify_status(code) == kind


class TestPostJson:
    @pytest.mark.asyncio
    async def test_success_returns_json(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.return_value = make_response(200, {"ok": True})
            assert await call(client) == {"ok": True}
            mock.assert_awaited_once_with("/v1/thing", json={"a": 1})

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.return_value = make_response(401, {"error": "bad key"})
            with pytest.raises(FakeUpstreamError) as exc_info:
                await call(client)
            assert exc_info.value.status_code == 401
            assert mock.await_count == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_then_raised(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.return_value = make_response(502, "bad gateway")
            with pytest.raises(FakeUpstreamError) as exc_info:
                await call(client, max_retries=2)
            assert exc_info.value.status_code == 502
            assert mock.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_retried_until_success(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.side_effect = [
                httpx.ReadTimeout("timed out"),
                httpx.ConnectError("refused"),
                make_response(200, [1, 2]),
            ]
            assert await call(client, max_retries=2) == [1, 2]
            assert mock.await_count == 3

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        response = make_response(200)
        response.json.side_effect = ValueError("not json")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.return_value = response
            with pytest.raises(FakeUpstreamError, match="Invalid JSON"):
                await call(client)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.DecodingError("bad gzip"),
            httpx.TooManyRedirects("loop"),
            httpx.RemoteProtocolError("peer closed"),
        ],
    )
    async def test_other_httpx_errors_become_upstream_errors(
        self, error: httpx.HTTPError
    ) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "post", new_callable=AsyncMock) as mock:
            mock.side_effect = error
            with pytest.raises(FakeUpstreamError, match="failed after 2 attempts") as exc_info:
                await call(client, max_retries=1)
            assert exc_info.value.status_code is None
            assert mock.await_count == 2


class TestGetJson:
    @pytest.mark.asyncio
    async def test_params_forwarded(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "get", new_callable=AsyncMock) as mock:
            mock.return_value = make_response(200, [{"id": 1}])
            result = await get_json(
                client,
                "/rest/v1/table",
                {"select": "metadata", "limit": 5},
                error_factory=FakeUpstreamError,
                max_retries=0,
                retry_delay=0.0,
            )
        assert result == [{"id": 1}]
        mock.assert_awaited_once_with(
            "/rest/v1/table", params={"select": "metadata", "limit": 5}
        )

    @pytest.mark.asyncio
    async def test_server_error_retried(self) -> None:
        client = httpx.AsyncClient(base_url="http://upstream")
        with patch.object(client, "get", new_callable=AsyncMock) as mock:
            mock.side_effect = [make_response(500, "boom"), make_response(200, [])]
            result = await get_json(
                client,
                "/rest/v1/table",
                error_factory=FakeUpstreamError,
                max_retries=1,
                retry_delay=0.0,
            )
        assert result == []
        assert mock.await_count == 2
