"""End-to-end tests for a single export run."""

import gzip
from datetime import datetime
from typing import Any

import httpx
import pytest
import respx

from gh_traffic_exporter.collect.orchestrator import CollectionError
from gh_traffic_exporter.config import Config
from gh_traffic_exporter.exporter import run_export
from gh_traffic_exporter.influx.writer import NoDataError, PublishError

API = "https://api.github.com"
REPO_API = f"{API}/repos/owner/repo"
WRITE_URL = "https://influx.example.com/api/v2/write"


def mock_github(
    router: respx.MockRouter,
    repos: list[dict[str, Any]],
    clones: httpx.Response | None = None,
) -> None:
    """Register GitHub routes for owner/repo with a single clone bucket."""
    if clones is None:
        clones = httpx.Response(
            200,
            json={
                "count": 5,
                "uniques": 3,
                "clones": [{"timestamp": "2023-11-14T22:13:20Z", "count": 5, "uniques": 3}],
            },
        )
    router.get(f"{API}/user/repos").mock(return_value=httpx.Response(200, json=repos))
    router.get(f"{REPO_API}/traffic/clones").mock(return_value=clones)
    router.get(f"{REPO_API}/traffic/views").mock(
        return_value=httpx.Response(200, json={"count": 0, "uniques": 0, "views": []})
    )
    router.get(f"{REPO_API}/traffic/popular/paths").mock(
        return_value=httpx.Response(200, json=[])
    )
    router.get(f"{REPO_API}/traffic/popular/referrers").mock(
        return_value=httpx.Response(200, json=[])
    )
    router.get(f"{REPO_API}/actions/workflows").mock(
        return_value=httpx.Response(200, json={"total_count": 0, "workflows": []})
    )


class TestRunExport:
    """Tests for run_export."""

    @pytest.mark.asyncio
    async def test_exports_eligible_repositories(
        self, config: Config, repo_payload: Any, now: datetime, fake_sleep: Any
    ) -> None:
        """Test a full run writes every collected line in one request."""
        with respx.mock(assert_all_called=False) as router:
            mock_github(router, [repo_payload("repo"), repo_payload("copy", fork=True)])
            write = router.post(WRITE_URL).mock(return_value=httpx.Response(204))

            result = await run_export(config, now=now, sleep=fake_sleep)

        assert write.call_count == 1
        body = gzip.decompress(write.calls.last.request.content).decode()
        assert sorted(body.splitlines()) == [
            "github_stats_clones,repo=owner/repo count=5,uniques=3 1700000000",
            "github_stats_forks,repo=owner/repo count=7 1700000000",
            "github_stats_stars,repo=owner/repo count=42 1700000000",
        ]
        assert all("owner/copy" not in str(call.request.url) for call in router.calls)

        assert result.repos_exported == 1
        assert result.samples_written == 3
        assert result.payload_bytes == len(body.encode())
        assert result.compressed_bytes == len(write.calls.last.request.content)

    @pytest.mark.asyncio
    async def test_nothing_eligible_sends_nothing(
        self, config: Config, repo_payload: Any, now: datetime
    ) -> None:
        """Test a run without eligible repositories fails before publishing."""
        with respx.mock(assert_all_called=False) as router:
            router.get(f"{API}/user/repos").mock(
                return_value=httpx.Response(200, json=[repo_payload("old", archived=True)])
            )
            write = router.post(WRITE_URL).mock(return_value=httpx.Response(204))

            with pytest.raises(NoDataError):
                await run_export(config, now=now)

        assert write.call_count == 0

    @pytest.mark.asyncio
    async def test_collector_failure_aborts_run(
        self, config: Config, repo_payload: Any, now: datetime
    ) -> None:
        """Test one failing endpoint prevents any write."""
        with respx.mock(assert_all_called=False) as router:
            mock_github(
                router,
                [repo_payload("repo")],
                clones=httpx.Response(404, json={"message": "Not Found"}),
            )
            write = router.post(WRITE_URL).mock(return_value=httpx.Response(204))

            with pytest.raises(CollectionError) as exc_info:
                await run_export(config, now=now)

        assert exc_info.value.family == "clones"
        assert exc_info.value.repo == "owner/repo"
        assert write.call_count == 0

    @pytest.mark.asyncio
    async def test_rejected_write_fails_run(
        self, config: Config, repo_payload: Any, now: datetime
    ) -> None:
        """Test an InfluxDB rejection is reported as PublishError."""
        with respx.mock(assert_all_called=False) as router:
            mock_github(router, [repo_payload("repo")])
            router.post(WRITE_URL).mock(
                return_value=httpx.Response(400, json={"code": "invalid"})
            )

            with pytest.raises(PublishError) as exc_info:
                await run_export(config, now=now)

        assert exc_info.value.status_code == 400
