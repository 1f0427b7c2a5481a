"""GitHub API clients and payload models."""

from gh_traffic_exporter.github.http import (
    GitHubClient,
    GitHubHTTPError,
    GitHubResponse,
    HTTPRateLimitState,
    RateLimitExceeded,
    RateLimitInfo,
    SecondaryRateLimitExceeded,
)
from gh_traffic_exporter.github.models import (
    Owner,
    Repository,
    TrafficCount,
    TrafficPath,
    TrafficReferrer,
    Workflow,
    WorkflowRun,
)
from gh_traffic_exporter.github.rest import RestClient

__all__ = [
    # HTTP Client
    "GitHubClient",
    "GitHubHTTPError",
    "GitHubResponse",
    "HTTPRateLimitState",
    "Owner",
    "RateLimitExceeded",
    "RateLimitInfo",
    # Payloads
    "Repository",
    # REST API Client
    "RestClient",
    "SecondaryRateLimitExceeded",
    "TrafficCount",
    "TrafficPath",
    "TrafficReferrer",
    "Workflow",
    "WorkflowRun",
]
