"""Base filter interface for repository eligibility."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from gh_traffic_exporter.github.models import Repository


@dataclass
class FilterResult:
    """Result of a filter evaluation.

    Attributes:
        passed: Whether the repository passed the filter.
        reason: Optional reason for rejection (None if passed).
        filter_name: Name of the filter that produced this result.
    """

    passed: bool
    reason: str | None = None
    filter_name: str = ""


class BaseFilter(ABC):
    """Abstract base class for repository filters."""

    name: str = "base"

    @abstractmethod
    def evaluate(self, repo: Repository) -> FilterResult:
        """Evaluate a repository against this filter.

        Args:
            repo: Repository descriptor from the listing.

        Returns:
            FilterResult indicating pass/fail with optional reason.
        """

    def reject(self, reason: str) -> FilterResult:
        return FilterResult(passed=False, reason=reason, filter_name=self.name)

    def accept(self) -> FilterResult:
        return FilterResult(passed=True, filter_name=self.name)
