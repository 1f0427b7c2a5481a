"""Disabled repository filter."""

from gh_traffic_exporter.github.models import Repository

from .base import BaseFilter, FilterResult


class DisabledFilter(BaseFilter):
    """Exclude repositories disabled by GitHub."""

    name = "disabled"

    def evaluate(self, repo: Repository) -> FilterResult:
        if repo.disabled:
            return self.reject("Repository is disabled")
        return self.accept()
