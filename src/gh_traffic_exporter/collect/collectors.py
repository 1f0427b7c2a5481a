"""Per-repository metric collectors.

Each collector fetches one family of data for one repository and renders it
as line protocol samples. Collectors share the signature
``(rest, repo, now) -> list[MetricSample]`` so the orchestrator can schedule
them uniformly; API failures propagate to the caller.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from gh_traffic_exporter.github.models import Repository
from gh_traffic_exporter.github.rest import RestClient
from gh_traffic_exporter.influx.lineprotocol import MetricSample, escape_tag_value

logger = logging.getLogger(__name__)

Collector = Callable[[RestClient, Repository, datetime], Awaitable[list[MetricSample]]]

MEASUREMENT_CLONES = "github_stats_clones"
MEASUREMENT_PATHS = "github_stats_paths"
MEASUREMENT_REFERRALS = "github_stats_referrals"
MEASUREMENT_VIEWS = "github_stats_views"
MEASUREMENT_STARS = "github_stats_stars"
MEASUREMENT_FORKS = "github_stats_forks"
MEASUREMENT_ACTIONS = "github_stats_actions"


async def collect_clones(
    rest: RestClient, repo: Repository, now: datetime  # noqa: ARG001
) -> list[MetricSample]:
    """Daily clone counts, stamped with each day's timestamp."""
    clones = await rest.get_clone_traffic(repo.owner.login, repo.name)
    return [
        MetricSample.create(
            MEASUREMENT_CLONES,
            tags={"repo": repo.full_name},
            fields={"count": value.count, "uniques": value.uniques},
            timestamp=value.timestamp,
        )
        for value in clones
    ]


async def collect_paths(rest: RestClient, repo: Repository, now: datetime) -> list[MetricSample]:
    """Popular content paths, stamped with the collection time."""
    paths = await rest.get_top_paths(repo.owner.login, repo.name)
    return [
        MetricSample.create(
            MEASUREMENT_PATHS,
            tags={"repo": repo.full_name, "path": escape_tag_value(value.path)},
            fields={"count": value.count, "uniques": value.uniques},
            timestamp=now,
        )
        for value in paths
    ]


async def collect_referrers(
    rest: RestClient, repo: Repository, now: datetime
) -> list[MetricSample]:
    """Referring sites, stamped with the collection time."""
    referrers = await rest.get_top_referrers(repo.owner.login, repo.name)
    return [
        MetricSample.create(
            MEASUREMENT_REFERRALS,
            tags={"repo": repo.full_name, "referrer": escape_tag_value(value.referrer)},
            fields={"count": value.count, "uniques": value.uniques},
            timestamp=now,
        )
        for value in referrers
    ]


async def collect_views(
    rest: RestClient, repo: Repository, now: datetime  # noqa: ARG001
) -> list[MetricSample]:
    """Daily page views, stamped with each day's timestamp."""
    views = await rest.get_view_traffic(repo.owner.login, repo.name)
    return [
        MetricSample.create(
            MEASUREMENT_VIEWS,
            tags={"repo": repo.full_name},
            fields={"count": value.count, "uniques": value.uniques},
            timestamp=value.timestamp,
        )
        for value in views
    ]


async def collect_stars_forks(
    rest: RestClient,  # noqa: ARG001
    repo: Repository,
    now: datetime,
) -> list[MetricSample]:
    """Stargazer and fork counts from the repository descriptor; no API call."""
    tags = {"repo": repo.full_name}
    return [
        MetricSample.create(MEASUREMENT_STARS, tags, {"count": repo.stargazers_count}, now),
        MetricSample.create(MEASUREMENT_FORKS, tags, {"count": repo.forks_count}, now),
    ]


async def collect_workflow_runs(
    rest: RestClient, repo: Repository, now: datetime  # noqa: ARG001
) -> list[MetricSample]:
    """Duration of recent Actions runs, per workflow.

    Lists the repository's workflows, then the recent runs of each one. The
    duration is the time between the run starting and its last update.
    """
    owner, name = repo.owner.login, repo.name
    samples: list[MetricSample] = []

    workflows = await rest.list_workflows(owner, name)
    for workflow in workflows:
        runs = await rest.list_workflow_runs(owner, name, workflow.id)
        workflow_tag = escape_tag_value(workflow.name)
        samples.extend(
            MetricSample.create(
                MEASUREMENT_ACTIONS,
                tags={"repo": repo.full_name, "workflow": workflow_tag},
                fields={"duration": run.duration_seconds},
                timestamp=run.created_at,
            )
            for run in runs
        )

    logger.debug(
        "Collected %d workflow runs across %d workflows for %s",
        len(samples),
        len(workflows),
        repo.full_name,
    )
    return samples


COLLECTORS: dict[str, Collector] = {
    "clones": collect_clones,
    "paths": collect_paths,
    "referrers": collect_referrers,
    "views": collect_views,
    "stars_forks": collect_stars_forks,
    "actions": collect_workflow_runs,
}
