"""Filter chain deciding which repositories are exported."""

from collections import defaultdict

from gh_traffic_exporter.github.models import Repository

from .archive import ArchiveFilter
from .base import BaseFilter, FilterResult
from .disabled import DisabledFilter
from .fork import ForkFilter
from .visibility import VisibilityFilter


class FilterChain:
    """Runs every eligibility filter and tracks rejection statistics."""

    def __init__(self, filters: list[BaseFilter] | None = None) -> None:
        """Initialize filter chain.

        Args:
            filters: Filters to apply, defaults to the archive, fork,
                visibility and disabled filters.
        """
        self.stats: dict[str, int] = defaultdict(int)
        self.filters: list[BaseFilter] = filters or [
            ArchiveFilter(),
            ForkFilter(),
            VisibilityFilter(),
            DisabledFilter(),
        ]

    def evaluate(self, repo: Repository) -> FilterResult:
        """Evaluate all filters for a repository, short-circuiting on first failure.

        Args:
            repo: Repository descriptor.

        Returns:
            FilterResult with pass/fail and rejection reason.
        """
        for filter_obj in self.filters:
            result = filter_obj.evaluate(repo)
            if not result.passed:
                return result

        return FilterResult(passed=True, filter_name="none")

    def record_rejection(self, filter_name: str) -> None:
        """Record a filter rejection for statistics."""
        self.stats[filter_name] += 1

    def get_stats(self) -> dict[str, int]:
        """Get filter rejection statistics.

        Returns:
            Dictionary mapping filter names to rejection counts.
        """
        return dict(self.stats)
