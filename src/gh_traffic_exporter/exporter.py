"""One export run: discover, collect, publish.

The run is all-or-nothing. Any failure raises an ExporterError subclass
before anything is written to InfluxDB.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime

import httpx

from gh_traffic_exporter.collect.discovery import discover_repos
from gh_traffic_exporter.collect.orchestrator import collect_samples
from gh_traffic_exporter.config import Config
from gh_traffic_exporter.github.http import GitHubClient
from gh_traffic_exporter.github.rest import RestClient
from gh_traffic_exporter.influx.writer import InfluxWriter, NoDataError
from gh_traffic_exporter.transport import SleepFunc

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Summary of a successful export run."""

    repos_exported: int
    samples_written: int
    payload_bytes: int
    compressed_bytes: int
    duration_seconds: float


async def run_export(
    config: Config,
    transport: httpx.AsyncBaseTransport | None = None,
    now: datetime | None = None,
    sleep: SleepFunc | None = None,
) -> ExportResult:
    """Run the complete export pipeline once.

    Args:
        config: Validated exporter configuration.
        transport: Transport used under the retrying layer for both GitHub and
            InfluxDB. Defaults to real network transports.
        now: Collection time for samples without their own timestamp.
        sleep: Coroutine function for backoff and rate limit waits.

    Returns:
        ExportResult describing what was sent.

    Raises:
        RateLimitExceeded: If GitHub's primary rate limit stopped discovery.
        SecondaryRateLimitExceeded: If a secondary rate limit stopped discovery.
        DiscoveryError: If the repository listing failed.
        CollectionError: If any collector failed.
        NoDataError: If nothing was collected.
        PublishError: If the InfluxDB write failed.
    """
    start = time.monotonic()

    async with GitHubClient(
        config.github_api_token,
        timeout=config.request_timeout,
        transport=transport,
        sleep=sleep,
    ) as http_client:
        rest = RestClient(http_client)
        repos = await discover_repos(rest)
        buffer = await collect_samples(rest, repos, now=now)

        logger.info(
            "GitHub requests made: %d (rate limit hits: %d)",
            http_client.rate_limit_state.requests_made,
            http_client.rate_limit_state.rate_limit_hits,
        )

    if len(buffer) == 0:
        logger.error("No data to send")
        raise NoDataError()

    async with InfluxWriter(config, transport=transport, sleep=sleep) as writer:
        compressed_bytes = await writer.write(buffer)

    result = ExportResult(
        repos_exported=len(repos),
        samples_written=buffer.sample_count,
        payload_bytes=len(buffer),
        compressed_bytes=compressed_bytes,
        duration_seconds=time.monotonic() - start,
    )
    logger.info(
        "Export complete: %d samples from %d repositories in %.1fs",
        result.samples_written,
        result.repos_exported,
        result.duration_seconds,
    )
    return result
