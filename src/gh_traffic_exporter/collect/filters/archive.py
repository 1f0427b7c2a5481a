"""Archive status filter."""

from gh_traffic_exporter.github.models import Repository

from .base import BaseFilter, FilterResult


class ArchiveFilter(BaseFilter):
    """Exclude archived repositories."""

    name = "archive"

    def evaluate(self, repo: Repository) -> FilterResult:
        if repo.archived:
            return self.reject("Repository is archived")
        return self.accept()
