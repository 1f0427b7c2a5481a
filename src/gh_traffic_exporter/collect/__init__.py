"""Repository discovery and metric collection."""

from gh_traffic_exporter.collect.collectors import COLLECTORS
from gh_traffic_exporter.collect.discovery import DiscoveryError, discover_repos
from gh_traffic_exporter.collect.orchestrator import CollectionError, collect_samples

__all__ = [
    "COLLECTORS",
    "CollectionError",
    "DiscoveryError",
    "collect_samples",
    "discover_repos",
]
