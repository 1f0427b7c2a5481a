"""Batch upload of collected samples to InfluxDB.

The whole run's payload is gzip-compressed and sent as a single write
request against the InfluxDB v2 HTTP API.
"""

import gzip
import logging
from typing import Any

import httpx

from gh_traffic_exporter import __version__
from gh_traffic_exporter.config import Config
from gh_traffic_exporter.errors import ExporterError
from gh_traffic_exporter.influx.lineprotocol import CollectionBuffer
from gh_traffic_exporter.transport import RetryTransport, SleepFunc

logger = logging.getLogger(__name__)


class NoDataError(ExporterError):
    """Raised when a run produced nothing to upload."""

    def __init__(self) -> None:
        super().__init__("No data to send")


class PublishError(ExporterError):
    """Raised when the write request fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class InfluxWriter:
    """Writes line protocol payloads to an InfluxDB v2 bucket."""

    PRECISION = "s"

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            config: Exporter configuration (host, org, bucket, token, timeout).
            transport: Transport wrapped by RetryTransport. Defaults to a real
                network transport.
            sleep: Coroutine function used for retry backoff.
        """
        self._config = config
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Token {self._config.influxdb_api_token}",
            "Content-Encoding": "gzip",
            "Content-Type": "text/plain; charset=utf-8",
            "User-Agent": f"gh-traffic-exporter/{__version__}",
        }

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.request_timeout,
                transport=RetryTransport(self._transport, sleep=self._sleep),
            )
        return self._client

    async def write(self, buffer: CollectionBuffer) -> int:
        """Compress and upload the buffer in one request.

        Args:
            buffer: Fully populated collection buffer.

        Returns:
            Number of compressed bytes sent.

        Raises:
            NoDataError: If the buffer is empty.
            PublishError: If compression or the request fails, or InfluxDB
                answers with a non-2xx status.
        """
        payload = buffer.getvalue()
        if not payload:
            raise NoDataError()

        try:
            body = gzip.compress(payload)
        except OSError as e:
            msg = f"Error compressing data: {e}"
            raise PublishError(msg) from e

        logger.info(
            "Sending %d samples (%d bytes, %d compressed) to %s",
            buffer.sample_count,
            len(payload),
            len(body),
            self._config.influxdb_host,
        )

        client = self._ensure_client()
        try:
            response = await client.post(
                self._config.influxdb_write_url,
                params={
                    "precision": self.PRECISION,
                    "org": self._config.org,
                    "bucket": self._config.bucket,
                },
                headers=self._get_headers(),
                content=body,
            )
        except httpx.HTTPError as e:
            msg = f"Error sending data: {e}"
            raise PublishError(msg) from e

        if not response.is_success:
            text = response.text
            logger.error("InfluxDB write failed with %d: %s", response.status_code, text)
            message = f"Error sending data: {response.status_code} {response.reason_phrase} {text}"
            raise PublishError(
                message.rstrip(),
                status_code=response.status_code,
                body=text,
            )

        logger.debug("InfluxDB accepted write with status %d", response.status_code)
        return len(body)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "InfluxWriter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
