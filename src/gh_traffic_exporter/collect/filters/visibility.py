"""Visibility filter."""

from gh_traffic_exporter.github.models import Repository

from .base import BaseFilter, FilterResult


class VisibilityFilter(BaseFilter):
    """Exclude private repositories."""

    name = "visibility"

    def evaluate(self, repo: Repository) -> FilterResult:
        if repo.private:
            return self.reject("Repository is private")
        return self.accept()
