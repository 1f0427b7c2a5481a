"""Fork status filter."""

from gh_traffic_exporter.github.models import Repository

from .base import BaseFilter, FilterResult


class ForkFilter(BaseFilter):
    """Exclude forks; their traffic belongs to the upstream project."""

    name = "fork"

    def evaluate(self, repo: Repository) -> FilterResult:
        if repo.fork:
            return self.reject("Repository is a fork")
        return self.accept()
