"""GitHub REST API client for the endpoints the exporter reads.

Provides typed methods for repository listing, traffic and Actions endpoints,
following Link headers where the exporter needs every page.
"""

import logging
import re
from collections.abc import AsyncIterator
from typing import Any

from gh_traffic_exporter.github.http import GitHubClient
from gh_traffic_exporter.github.models import (
    Repository,
    TrafficCount,
    TrafficPath,
    TrafficReferrer,
    Workflow,
    WorkflowRun,
)

logger = logging.getLogger(__name__)

PER_PAGE = 100


def parse_link_header(link_header: str | None) -> dict[str, str]:
    """Parse Link header to extract pagination URLs.

    Args:
        link_header: Link header value from response.

    Returns:
        Dict mapping rel type to URL (e.g., {"next": "url", "last": "url"}).
    """
    if not link_header:
        return {}

    links = {}
    # Link header format: <url>; rel="next", <url>; rel="last"
    for part in link_header.split(","):
        match = re.match(r'<([^>]+)>;\s*rel="([^"]+)"', part.strip())
        if match:
            url, rel = match.groups()
            links[rel] = url

    return links


class RestClient:
    """GitHub REST API client.

    Wraps GitHubClient to provide typed results for the exporter's endpoints.
    Every call is made with ``sleep_on_rate_limit`` so an exhausted primary
    rate limit delays the run instead of failing it.
    """

    def __init__(self, http_client: GitHubClient, sleep_on_rate_limit: bool = True) -> None:
        """Initialize REST API client.

        Args:
            http_client: GitHubClient instance for HTTP requests.
            sleep_on_rate_limit: Passed to every request made by this client.
        """
        self._http = http_client
        self._sleep_on_rate_limit = sleep_on_rate_limit

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._http.get(
            path,
            params=params,
            sleep_on_rate_limit=self._sleep_on_rate_limit,
        )
        return response.data

    async def _paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        key: str | None = None,
    ) -> AsyncIterator[list[Any]]:
        """Paginate through API results following Link headers.

        Args:
            path: API endpoint path.
            params: Query parameters for the first page.
            key: Name of the list inside an object response, None for list responses.

        Yields:
            Items of each page.
        """
        current: str | None = path
        current_params = params
        page_num = 1

        while current is not None:
            response = await self._http.get(
                current,
                params=current_params,
                sleep_on_rate_limit=self._sleep_on_rate_limit,
            )

            data = response.data
            if key is not None:
                data = data.get(key, []) if isinstance(data, dict) else []
            yield data or []

            # The next link already carries the query string
            current = parse_link_header(response.headers.get("link")).get("next")
            current_params = None
            page_num += 1
            if current is not None:
                logger.debug("Following pagination to page %d for %s", page_num, path)

    async def list_owned_repos(self) -> list[Repository]:
        """List every repository owned by the authenticated user."""
        repos: list[Repository] = []
        async for items in self._paginate(
            "/user/repos", params={"type": "owner", "per_page": PER_PAGE}
        ):
            repos.extend(Repository.model_validate(item) for item in items)
        return repos

    async def get_clone_traffic(self, owner: str, repo: str) -> list[TrafficCount]:
        """Daily clone counts for the last 14 days."""
        data = await self._get(f"/repos/{owner}/{repo}/traffic/clones")
        return [TrafficCount.model_validate(item) for item in (data or {}).get("clones", [])]

    async def get_view_traffic(self, owner: str, repo: str) -> list[TrafficCount]:
        """Daily page views for the last 14 days."""
        data = await self._get(f"/repos/{owner}/{repo}/traffic/views")
        return [TrafficCount.model_validate(item) for item in (data or {}).get("views", [])]

    async def get_top_paths(self, owner: str, repo: str) -> list[TrafficPath]:
        """Top 10 popular content paths."""
        data = await self._get(f"/repos/{owner}/{repo}/traffic/popular/paths")
        return [TrafficPath.model_validate(item) for item in data or []]

    async def get_top_referrers(self, owner: str, repo: str) -> list[TrafficReferrer]:
        """Top 10 referring sites."""
        data = await self._get(f"/repos/{owner}/{repo}/traffic/popular/referrers")
        return [TrafficReferrer.model_validate(item) for item in data or []]

    async def list_workflows(self, owner: str, repo: str) -> list[Workflow]:
        """All Actions workflows of a repository."""
        workflows: list[Workflow] = []
        async for items in self._paginate(
            f"/repos/{owner}/{repo}/actions/workflows",
            params={"per_page": PER_PAGE},
            key="workflows",
        ):
            workflows.extend(Workflow.model_validate(item) for item in items)
        return workflows

    async def list_workflow_runs(
        self, owner: str, repo: str, workflow_id: int
    ) -> list[WorkflowRun]:
        """Most recent runs of a workflow (first page only)."""
        data = await self._get(f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/runs")
        return [WorkflowRun.model_validate(item) for item in (data or {}).get("workflow_runs", [])]
