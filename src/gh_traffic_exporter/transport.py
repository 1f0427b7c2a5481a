"""Retrying HTTP transport.

An httpx transport decorator that re-issues requests failing with transient
errors, using exponential backoff. It is shared by the GitHub client and the
InfluxDB writer and knows nothing about either.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRY_COUNT = 3
RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504, 429})

SleepFunc = Callable[[float], Awaitable[Any]]


def should_retry(response: httpx.Response | None, error: Exception | None = None) -> bool:
    """Decide whether an attempt should be repeated.

    Args:
        response: Response of the attempt, None if no response was produced.
        error: Transport error raised by the attempt, if any.

    Returns:
        True for transport errors, missing responses and retryable status codes.
    """
    if error is not None:
        return True
    if response is None:
        return True
    return response.status_code in RETRYABLE_STATUS_CODES


class RetryTransport(httpx.AsyncBaseTransport):
    """Async transport that retries transient failures.

    Features:
    - Retries transport errors (DNS, connect, TLS, timeouts)
    - Retries 429 and 500/502/503/504 responses
    - Exponential backoff of 2**attempt seconds before each retry
    - Request bodies are buffered and replayed unchanged on every attempt

    After ``max_retries`` retries the last response is returned, or the last
    transport error re-raised, to the caller.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = RETRY_COUNT,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the retrying transport.

        Args:
            transport: Transport performing the actual exchange. Defaults to
                httpx.AsyncHTTPTransport.
            max_retries: Maximum number of retries after the first attempt.
            sleep: Coroutine function used for backoff, defaults to asyncio.sleep.
        """
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._max_retries = max_retries
        self._sleep = sleep or asyncio.sleep

    @staticmethod
    def backoff(attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)."""
        return float(2**attempt)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()

        response: httpx.Response | None = None
        error: httpx.TransportError | None = None
        retries = 0

        while True:
            try:
                response = await self._transport.handle_async_request(
                    self._replay(request, body)
                )
                error = None
            except httpx.TransportError as e:
                response = None
                error = e

            if not should_retry(response, error) or retries >= self._max_retries:
                break

            await self._sleep(self.backoff(retries))

            if response is not None:
                # Drain so the connection goes back to the pool
                await response.aread()
                await response.aclose()
                logger.warning("Previous request failed with %d", response.status_code)
            elif error is not None:
                logger.warning("Previous request failed with %s", error)

            logger.info("Retry %d of request to: %s", retries + 1, request.url)
            retries += 1

        if error is not None:
            raise error
        assert response is not None
        return response

    @staticmethod
    def _replay(request: httpx.Request, body: bytes) -> httpx.Request:
        """Build a fresh copy of ``request`` carrying the buffered body."""
        return httpx.Request(
            request.method,
            request.url,
            headers=request.headers,
            content=body,
            extensions=request.extensions,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()
