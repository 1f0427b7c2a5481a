"""Concurrent collection across repositories and metric families.

Every (repository, family) pair runs as its own asyncio task with no
concurrency cap; GitHub throttling is absorbed by the HTTP layer. Each task
returns its own samples, which are merged into one CollectionBuffer after
all tasks have finished.
"""

import asyncio
import logging
from datetime import UTC, datetime

from gh_traffic_exporter.collect.collectors import COLLECTORS, Collector
from gh_traffic_exporter.errors import ExporterError
from gh_traffic_exporter.github.models import Repository
from gh_traffic_exporter.github.rest import RestClient
from gh_traffic_exporter.influx.lineprotocol import CollectionBuffer, MetricSample

logger = logging.getLogger(__name__)


class CollectionError(ExporterError):
    """Raised when one or more collector tasks failed.

    Attributes:
        repo: Repository of the first failure in submission order.
        family: Metric family of the first failure.
        failures: Every failing (repo, family, exception) triple.
    """

    def __init__(self, failures: list[tuple[str, str, BaseException]]) -> None:
        self.failures = failures
        self.repo, self.family, first = failures[0]
        extra = f" ({len(failures) - 1} more failures)" if len(failures) > 1 else ""
        super().__init__(f"Error getting {self.family} data for {self.repo}: {first}{extra}")


async def collect_samples(
    rest: RestClient,
    repos: list[Repository],
    now: datetime | None = None,
    collectors: dict[str, Collector] | None = None,
) -> CollectionBuffer:
    """Run every collector for every repository and merge the results.

    All tasks run to completion. If any failed, the failures are logged and
    the first one in submission order is raised; otherwise the samples of all
    tasks are written to a new buffer.

    Args:
        rest: GitHub REST client.
        repos: Eligible repositories.
        now: Collection time for samples without their own timestamp.
        collectors: Families to run, defaults to every family.

    Returns:
        Buffer holding every collected sample.

    Raises:
        CollectionError: If any collector task failed.
    """
    now = now or datetime.now(UTC)
    collectors = collectors if collectors is not None else COLLECTORS

    pairs = [(repo, family) for repo in repos for family in collectors]
    logger.info(
        "Collecting %d metric families for %d repositories (%d tasks)",
        len(collectors),
        len(repos),
        len(pairs),
    )

    tasks = [collectors[family](rest, repo, now) for repo, family in pairs]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    failures: list[tuple[str, str, BaseException]] = []
    buffer = CollectionBuffer()

    for (repo, family), result in zip(pairs, results, strict=True):
        if isinstance(result, BaseException):
            logger.error("Error getting %s data for %s: %s", family, repo.full_name, result)
            failures.append((repo.full_name, family, result))
        elif not failures:
            buffer.extend(result)

    if failures:
        raise CollectionError(failures) from failures[0][2]

    logger.info("Collected %d samples (%d bytes)", buffer.sample_count, len(buffer))
    return buffer
