"""GitHub HTTP client with rate limit handling.

Async HTTP client for the GitHub API. Transient failures are retried by
RetryTransport; this layer adds authentication, rate limit tracking and the
"sleep until the primary rate limit resets" cooperation mode.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from gh_traffic_exporter import __version__
from gh_traffic_exporter.errors import ExporterError
from gh_traffic_exporter.transport import RetryTransport, SleepFunc

logger = logging.getLogger(__name__)


class RateLimitInfo(BaseModel):
    """GitHub API rate limit information from response headers."""

    limit: int
    remaining: int
    reset: datetime
    used: int
    resource: str = "core"

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Optional["RateLimitInfo"]:
        """Extract rate limit info from response headers.

        Args:
            headers: HTTP response headers.

        Returns:
            RateLimitInfo if headers present, None otherwise.
        """
        if "x-ratelimit-limit" not in headers:
            return None

        reset_timestamp = int(headers.get("x-ratelimit-reset", "0"))
        reset_dt = datetime.fromtimestamp(reset_timestamp, tz=UTC)

        return cls(
            limit=int(headers.get("x-ratelimit-limit", "0")),
            remaining=int(headers.get("x-ratelimit-remaining", "0")),
            reset=reset_dt,
            used=int(headers.get("x-ratelimit-used", "0")),
            resource=headers.get("x-ratelimit-resource", "core"),
        )


@dataclass
class GitHubResponse:
    """GitHub API response with parsed data and metadata."""

    status_code: int
    data: Any
    headers: httpx.Headers
    rate_limit: RateLimitInfo | None = None
    url: str = ""

    @property
    def is_success(self) -> bool:
        """Check if response was successful (2xx status code)."""
        return 200 <= self.status_code < 300

    @property
    def is_rate_limited(self) -> bool:
        """Check if response indicates an exhausted primary rate limit."""
        return (
            self.status_code in (403, 429)
            and self.rate_limit is not None
            and self.rate_limit.remaining == 0
        )

    @property
    def is_secondary_rate_limited(self) -> bool:
        """Check if response indicates a secondary (abuse) rate limit."""
        if self.status_code not in (403, 429) or self.is_rate_limited:
            return False
        if "retry-after" in self.headers:
            return True
        message = self.data.get("message", "") if isinstance(self.data, dict) else str(self.data)
        return "secondary rate limit" in message.lower()


@dataclass
class HTTPRateLimitState:
    """Tracks rate limit state across HTTP requests."""

    last_rate_limit: RateLimitInfo | None = None
    last_check: datetime = field(default_factory=lambda: datetime.now(UTC))
    requests_made: int = 0
    rate_limit_hits: int = 0

    def update(self, rate_limit: RateLimitInfo | None) -> None:
        """Update state with new rate limit info.

        Args:
            rate_limit: Latest rate limit info from response.
        """
        self.requests_made += 1
        if rate_limit:
            self.last_rate_limit = rate_limit
            self.last_check = datetime.now(UTC)

            if rate_limit.remaining == 0:
                self.rate_limit_hits += 1
                logger.warning(
                    "Rate limit reached. Limit: %d, Reset: %s",
                    rate_limit.limit,
                    rate_limit.reset.isoformat(),
                )

    def seconds_until_reset(self) -> float:
        """Seconds to wait before the exhausted primary limit resets, 0 if not exhausted."""
        rate_limit = self.last_rate_limit
        if rate_limit is None or rate_limit.remaining > 0:
            return 0.0
        return max(0.0, (rate_limit.reset - datetime.now(UTC)).total_seconds())


class GitHubHTTPError(ExporterError):
    """Base exception for GitHub HTTP errors."""

    def __init__(self, message: str, status_code: int | None = None, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class RateLimitExceeded(GitHubHTTPError):
    """Raised when the primary rate limit is exceeded."""

    def __init__(self, reset_at: datetime, status_code: int = 403, url: str = "") -> None:
        self.reset_at = reset_at
        super().__init__(
            f"Rate limit exceeded. Resets at {reset_at.isoformat()}",
            status_code=status_code,
            url=url,
        )


class SecondaryRateLimitExceeded(GitHubHTTPError):
    """Raised when GitHub's secondary (abuse) rate limit is hit."""

    def __init__(self, status_code: int, retry_after: int | None = None, url: str = "") -> None:
        self.retry_after = retry_after
        detail = f", retry after {retry_after}s" if retry_after is not None else ""
        super().__init__(
            f"Secondary rate limit exceeded{detail}",
            status_code=status_code,
            url=url,
        )


class GitHubClient:
    """Async HTTP client for GitHub API.

    Features:
    - Bearer token authentication
    - Retries of transient failures via RetryTransport
    - Rate limit detection, optionally sleeping until the window resets
    """

    BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30.0
    RESET_MARGIN_SECONDS = 1.0

    def __init__(
        self,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize GitHub HTTP client.

        Args:
            token: GitHub API token.
            timeout: Request timeout in seconds.
            base_url: Base URL for GitHub API.
            transport: Transport wrapped by RetryTransport. Defaults to a real
                network transport.
            sleep: Coroutine function used for every wait, defaults to asyncio.sleep.
        """
        self._token = token
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

        self._client: httpx.AsyncClient | None = None
        self._rate_limit_state = HTTPRateLimitState()

    @property
    def rate_limit_state(self) -> HTTPRateLimitState:
        """Get current rate limit state."""
        return self._rate_limit_state

    def _get_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"gh-traffic-exporter/{__version__}",
            "Authorization": f"Bearer {self._token}",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._get_headers(),
                follow_redirects=True,
                transport=RetryTransport(self._transport, sleep=self._sleep),
            )
        return self._client

    async def _wait_for_reset(self, seconds: float) -> None:
        wait_seconds = seconds + self.RESET_MARGIN_SECONDS
        logger.warning("Primary rate limit exhausted. Waiting %.0f seconds", wait_seconds)
        await self._sleep(wait_seconds)

    async def request(
        self,
        method: str,
        path: str,
        sleep_on_rate_limit: bool = True,
        **kwargs: Any,
    ) -> GitHubResponse:
        """Make an HTTP request to GitHub API.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: API path (e.g., "/user/repos") or absolute URL.
            sleep_on_rate_limit: Sleep until an exhausted primary rate limit
                resets instead of failing.
            **kwargs: Additional arguments passed to httpx (params, json, etc.).

        Returns:
            GitHubResponse with parsed data and metadata.

        Raises:
            RateLimitExceeded: If the primary rate limit is exhausted.
            SecondaryRateLimitExceeded: If a secondary rate limit is hit.
            GitHubHTTPError: On transport failure or any other non-2xx status.
        """
        if sleep_on_rate_limit:
            pending = self._rate_limit_state.seconds_until_reset()
            if pending > 0:
                await self._wait_for_reset(pending)

        response = await self._send(method, path, **kwargs)

        if response.is_rate_limited and sleep_on_rate_limit:
            assert response.rate_limit is not None
            pending = max(0.0, (response.rate_limit.reset - datetime.now(UTC)).total_seconds())
            await self._wait_for_reset(pending)
            response = await self._send(method, path, **kwargs)

        if response.is_rate_limited:
            assert response.rate_limit is not None
            raise RateLimitExceeded(
                reset_at=response.rate_limit.reset,
                status_code=response.status_code,
                url=response.url,
            )

        if response.is_secondary_rate_limited:
            retry_after = response.headers.get("retry-after")
            raise SecondaryRateLimitExceeded(
                status_code=response.status_code,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                url=response.url,
            )

        if not response.is_success:
            message = response.data.get("message") if isinstance(response.data, dict) else None
            raise GitHubHTTPError(
                f"GitHub API error {response.status_code} for {method} {path}"
                + (f": {message}" if message else ""),
                status_code=response.status_code,
                url=response.url,
            )

        return response

    async def _send(self, method: str, path: str, **kwargs: Any) -> GitHubResponse:
        client = await self._ensure_client()

        logger.debug("%s %s", method, path)

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            msg = f"Request failed for {method} {path}: {e}"
            raise GitHubHTTPError(msg) from e

        rate_limit = RateLimitInfo.from_headers(response.headers)
        self._rate_limit_state.update(rate_limit)

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError as e:
                logger.warning("Failed to parse JSON response: %s", e)
                data = response.text

        return GitHubResponse(
            status_code=response.status_code,
            data=data,
            headers=response.headers,
            rate_limit=rate_limit,
            url=str(response.url),
        )

    async def get(self, path: str, **kwargs: Any) -> GitHubResponse:
        """Make a GET request.

        Args:
            path: API path.
            **kwargs: Additional arguments (params, etc.).

        Returns:
            GitHubResponse with parsed data.
        """
        return await self.request("GET", path, **kwargs)

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
