"""Tests for the retrying HTTP transport."""

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest

from gh_traffic_exporter.transport import RETRY_COUNT, RetryTransport, should_retry

URL = "https://api.example.com/resource"


def sequence_transport(*outcomes: int | Exception) -> tuple[httpx.MockTransport, list[httpx.Request]]:
    """Mock transport answering each attempt with the next status or exception."""
    seen: list[httpx.Request] = []
    remaining = list(outcomes)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text=f"attempt {len(seen)}")

    return httpx.MockTransport(handler), seen


class TrackedStream(httpx.AsyncByteStream):
    """Response body that records whether it was consumed and closed."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = chunks
        self.consumed = False
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            yield chunk
        self.consumed = True

    async def aclose(self) -> None:
        self.closed = True


class StreamingTransport(httpx.AsyncBaseTransport):
    """Answers each attempt with the next (status, stream) pair, unread."""

    def __init__(self, *responses: tuple[int, TrackedStream]) -> None:
        self._responses = list(responses)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        status, stream = self._responses.pop(0)
        return httpx.Response(status, stream=stream, request=request)


class TestShouldRetry:
    """Tests for the retry predicate."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 429])
    def test_retryable_status(self, status: int) -> None:
        """Test transient statuses are retried."""
        assert should_retry(httpx.Response(status)) is True

    @pytest.mark.parametrize("status", [200, 201, 204, 301, 400, 401, 403, 404, 501])
    def test_non_retryable_status(self, status: int) -> None:
        """Test other statuses are returned as-is."""
        assert should_retry(httpx.Response(status)) is False

    def test_missing_response(self) -> None:
        """Test an absent response is retried."""
        assert should_retry(None) is True

    def test_transport_error(self) -> None:
        """Test a transport error is retried."""
        assert should_retry(None, httpx.ConnectError("refused")) is True


class TestRetryTransport:
    """Tests for RetryTransport."""

    def test_backoff_is_exponential(self) -> None:
        """Test backoff doubles from one second."""
        assert [RetryTransport.backoff(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_success_after_transient_failures(self, fake_sleep: Any) -> None:
        """Test 503, 503, 200 returns the 200 after sleeping 1s then 2s."""
        mock, seen = sequence_transport(503, 503, 200)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert response.text == "attempt 3"
        assert len(seen) == 3
        assert fake_sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_retry_ceiling(self, fake_sleep: Any) -> None:
        """Test four 500s return the last failure without a fifth attempt."""
        mock, seen = sequence_transport(500, 500, 500, 500, 200)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 500
        assert response.text == "attempt 4"
        assert len(seen) == RETRY_COUNT + 1
        assert fake_sleep.calls == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, fake_sleep: Any) -> None:
        """Test a 404 is returned immediately."""
        mock, seen = sequence_transport(404)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 404
        assert len(seen) == 1
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_rate_limited_response_retried(self, fake_sleep: Any) -> None:
        """Test 429 is treated as transient."""
        mock, seen = sequence_transport(429, 200)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert len(seen) == 2
        assert fake_sleep.calls == [1.0]

    @pytest.mark.asyncio
    async def test_transport_error_then_success(self, fake_sleep: Any) -> None:
        """Test connection errors are retried."""
        mock, seen = sequence_transport(httpx.ConnectError("refused"), 200)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_persistent_transport_error_raised(self, fake_sleep: Any) -> None:
        """Test the last transport error is raised once retries are exhausted."""
        mock, seen = sequence_transport(*[httpx.ReadTimeout("slow")] * 4)
        transport = RetryTransport(mock, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.ReadTimeout):
                await client.get(URL)

        assert len(seen) == 4
        assert fake_sleep.calls == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_post_body_replayed(self, fake_sleep: Any) -> None:
        """Test every attempt carries the original body and headers."""
        mock, seen = sequence_transport(502, 503, 204)
        transport = RetryTransport(mock, sleep=fake_sleep)
        body = b"\x1f\x8b compressed bytes"

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(
                URL, content=body, headers={"Content-Encoding": "gzip"}
            )

        assert response.status_code == 204
        assert len(seen) == 3
        for request in seen:
            assert request.method == "POST"
            assert request.content == body
            assert request.headers["content-encoding"] == "gzip"
            assert request.headers["content-length"] == str(len(body))

    @pytest.mark.asyncio
    async def test_retry_logging(self, fake_sleep: Any, caplog: pytest.LogCaptureFixture) -> None:
        """Test each retry logs the previous status and the URL."""
        mock, _ = sequence_transport(503, 200)
        transport = RetryTransport(mock, sleep=fake_sleep)

        with caplog.at_level(logging.INFO, logger="gh_traffic_exporter.transport"):
            async with httpx.AsyncClient(transport=transport) as client:
                await client.get(URL)

        assert "Previous request failed with 503" in caplog.text
        assert f"Retry 1 of request to: {URL}" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_retry_ceiling(self, fake_sleep: Any) -> None:
        """Test max_retries=0 disables retries."""
        mock, seen = sequence_transport(503, 200)
        transport = RetryTransport(mock, max_retries=0, sleep=fake_sleep)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 503
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_discarded_response_drained_and_closed(self, fake_sleep: Any) -> None:
        """Test a retried response is read to the end and closed before the next attempt."""
        failed = TrackedStream([b"service ", b"unavailable"])
        succeeded = TrackedStream([b"ok"])
        transport = RetryTransport(
            StreamingTransport((503, failed), (200, succeeded)), sleep=fake_sleep
        )

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert response.text == "ok"
        assert failed.consumed is True
        assert failed.closed is True
        assert fake_sleep.calls == [1.0]
