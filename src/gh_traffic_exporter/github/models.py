"""Pydantic models for the GitHub REST payloads the exporter reads.

Only the fields used by the collectors are declared; everything else in the
payload is ignored.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Owner(_Payload):
    """Repository owner."""

    login: str


class Repository(_Payload):
    """Repository descriptor as returned by the repository listing."""

    full_name: str
    name: str
    owner: Owner
    archived: bool = False
    fork: bool = False
    private: bool = False
    disabled: bool = False
    stargazers_count: int = 0
    forks_count: int = 0

    @property
    def is_exportable(self) -> bool:
        """Public, active, non-fork repositories are exported."""
        return not (self.archived or self.fork or self.private or self.disabled)


class TrafficCount(_Payload):
    """One bucket of clone or view traffic."""

    timestamp: datetime
    count: int
    uniques: int


class TrafficPath(_Payload):
    """Popular content path."""

    path: str
    title: str = ""
    count: int
    uniques: int


class TrafficReferrer(_Payload):
    """Popular referring site."""

    referrer: str
    count: int
    uniques: int


class Workflow(_Payload):
    """GitHub Actions workflow."""

    id: int
    name: str
    path: str = ""
    state: str = ""


class WorkflowRun(_Payload):
    """GitHub Actions workflow run."""

    id: int
    created_at: datetime
    updated_at: datetime
    run_started_at: datetime | None = None

    @property
    def duration_seconds(self) -> int:
        """Whole seconds between the run start and its last update, never negative."""
        started = self.run_started_at or self.created_at
        return max(0, round((self.updated_at - started).total_seconds()))
