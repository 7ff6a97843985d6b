"""
Shared HTTP request execution for upstream clients.

Patterns Applied:
- Connection pooling: callers own one httpx.AsyncClient per client instance
- Retry with exponential backoff on 5xx, timeouts and any other httpx error
- 4xx responses are not retried
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

ErrorFactory = Callable[..., Exception]


def classify_status(status_code: int) -> str:
    """Classify HTTP error type as 'client_error' or 'server_error'."""
    if 400 <= status_code < 500:
        return "client_error"
    return "server_error"


async def post_json(
    client: httpx.AsyncClient,
    path: str,
    payload: dict[str, Any],
    *,
    error_factory: ErrorFactory,
    max_retries: int,
    retry_delay: float,
) -> Any:
    """POST a JSON payload and return the decoded JSON body.

    Args:
        client: Pooled async client with base_url configured
        path: Request path relative to the client's base_url
        payload: JSON body
        error_factory: Exception class raised on failure
        max_retries: Retries after the first attempt
        retry_delay: Initial backoff delay in seconds

    Returns:
        Decoded JSON response

    Raises:
        Exception built by error_factory on 4xx, or once retries are exhausted
    """
    return await _send_with_retry(
        lambda: client.post(path, json=payload),
        path,
        error_factory=error_factory,
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def get_json(
    client: httpx.AsyncClient,
    path: str,
    params: Mapping[str, str | int] | None = None,
    *,
    error_factory: ErrorFactory,
    max_retries: int,
    retry_delay: float,
) -> Any:
    """GET a path with query parameters and return the decoded JSON body.

    Same retry and error semantics as post_json.
    """
    return await _send_with_retry(
        lambda: client.get(path, params=dict(params or {})),
        path,
        error_factory=error_factory,
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def _send_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    path: str,
    *,
    error_factory: ErrorFactory,
    max_retries: int,
    retry_delay: float,
) -> Any:
    last_error: str = ""
    last_status: int | None = None
    attempts = max_retries + 1

    for attempt in range(attempts):
        try:
            response = await send()
        except httpx.TimeoutException as e:
            last_error = f"timed out: {e}"
            last_status = None
        except httpx.HTTPError as e:
            last_error = f"{type(e).__name__}: {e}"
            last_status = None
        else:
            if response.status_code < 400:
                try:
                    return response.json()
                except ValueError as e:
                    raise error_factory(
                        f"Invalid JSON from {path}: {e}",
                        status_code=response.status_code,
                    ) from e

            if classify_status(response.status_code) == "client_error":
                raise error_factory(
                    f"Client error from {path}: {response.text}",
                    status_code=response.status_code,
                )
            last_error = f"server error: {response.text}"
            last_status = response.status_code

        if attempt < attempts - 1:
            await asyncio.sleep(retry_delay * (2**attempt))

    raise error_factory(
        f"Request to {path} failed after {attempts} attempts: {last_error}",
        status_code=last_status,
    )
