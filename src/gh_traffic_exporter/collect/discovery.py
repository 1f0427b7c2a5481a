"""Repository discovery for the authenticated user.

Lists every repository owned by the token's account and keeps the ones that
are public, active and not forks.
"""

import logging
from typing import Any

from gh_traffic_exporter.collect.filters import FilterChain
from gh_traffic_exporter.errors import ExporterError
from gh_traffic_exporter.github.http import (
    GitHubHTTPError,
    RateLimitExceeded,
    SecondaryRateLimitExceeded,
)
from gh_traffic_exporter.github.models import Repository
from gh_traffic_exporter.github.rest import RestClient

logger = logging.getLogger(__name__)


class DiscoveryError(ExporterError):
    """Raised when repository discovery fails."""


async def discover_repos(rest: RestClient) -> list[Repository]:
    """Discover the repositories to export.

    Args:
        rest: GitHub REST client.

    Returns:
        Eligible repository descriptors.

    Raises:
        RateLimitExceeded: If the primary rate limit stopped the listing.
        SecondaryRateLimitExceeded: If a secondary rate limit stopped the listing.
        DiscoveryError: On any other API or transport failure.
    """
    logger.info("Starting repository discovery")

    try:
        raw_repos = await rest.list_owned_repos()
    except RateLimitExceeded:
        logger.error("Hit rate limit while listing repositories")
        raise
    except SecondaryRateLimitExceeded:
        logger.error("Hit secondary rate limit while listing repositories")
        raise
    except GitHubHTTPError as e:
        msg = f"Error getting list of repositories: {e}"
        logger.error(msg)
        raise DiscoveryError(msg) from e

    logger.info("Fetched %d owned repositories", len(raw_repos))

    filtered_repos, filter_stats = _apply_filters(raw_repos, FilterChain())

    logger.info(
        "Filtered to %d repositories (rejected: %d)",
        len(filtered_repos),
        filter_stats["total_rejected"],
    )

    if filter_stats["rejected_by_filter"]:
        logger.info("Filter rejection breakdown:")
        for filter_name, count in sorted(
            filter_stats["rejected_by_filter"].items(),
            key=lambda x: x[1],
            reverse=True,
        ):
            logger.info("  %s: %d", filter_name, count)

    return filtered_repos


def _apply_filters(
    repos: list[Repository],
    filter_chain: FilterChain,
) -> tuple[list[Repository], dict[str, Any]]:
    """Apply filter chain to repository list.

    Args:
        repos: Repository descriptors from the listing.
        filter_chain: Filter chain to evaluate.

    Returns:
        Tuple of (filtered_repos, filter_stats).
    """
    filtered = []
    total_rejected = 0

    for repo in repos:
        result = filter_chain.evaluate(repo)

        if result.passed:
            filtered.append(repo)
        else:
            total_rejected += 1
            filter_chain.record_rejection(result.filter_name)
            logger.debug(
                "Rejected %s: %s - %s",
                repo.full_name,
                result.filter_name,
                result.reason or "no reason",
            )

    filter_stats = {
        "total_discovered": len(repos),
        "passed_filters": len(filtered),
        "total_rejected": total_rejected,
        "rejected_by_filter": filter_chain.get_stats(),
    }

    return filtered, filter_stats
