"""Tests for the instrumented HTTP client and RequestMetric."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from reviewload.dsl.checks import CheckResult, status_in, status_is
from reviewload.dsl.http_client import HttpClient, RequestMetric, RequestResult
from reviewload.dsl.request_spec import RequestSpec

if TYPE_CHECKING:
    from tests.conftest import FakeReviewService

_STATS = RequestSpec.get("stats", "/stats", status_is("stats", 200))


class TestRequestMetric:
    """Tests for the RequestMetric dataclass."""

    def test_defaults(self):
        metric = RequestMetric(
            timestamp=1000.0,
            name="stats",
            method="GET",
            url="http://localhost/stats",
            status_code=200,
            latency_ms=42.5,
            content_length=1024,
        )
        assert metric.error is None
        assert metric.vu == 0


class TestHttpClient:
    """Tests for HttpClient.execute."""

    async def test_execute_emits_metric_and_check(self, review_service: FakeReviewService):
        metrics: list[RequestMetric] = []
        checks: list[CheckResult] = []

        async with HttpClient(
            base_url=review_service.url,
            metric_callback=metrics.append,
            check_callback=checks.append,
            vu=4,
        ) as client:
            result = await client.execute(_STATS)

        check = CheckResult(name="stats", passed=True, status_code=200)
        assert result == RequestResult(name="stats", status_code=200, check=check)
        assert result.passed
        assert checks == [check]
        assert len(metrics) == 1
        metric = metrics[0]
        assert metric.name == "stats"
        assert metric.method == "GET"
        assert metric.url == f"{review_service.url}/stats"
        assert metric.status_code == 200
        assert metric.latency_ms > 0
        assert metric.content_length > 0
        assert metric.error is None
        assert metric.vu == 4

    async def test_query_params_are_sent(self, review_service: FakeReviewService):
        request = RequestSpec.get(
            "getTeam", "/team/get", status_is("getTeam", 200), team_name="missing"
        )
        async with HttpClient(base_url=review_service.url) as client:
            result = await client.execute(request)

        # Unknown team: the service answered, so this is a failed check, not an error
        assert result.passed is False
        assert result.status_code == 404

    async def test_json_body_is_posted(self, review_service: FakeReviewService):
        payload = {
            "team_name": "backend",
            "members": [{"user_id": "u1", "username": "alice", "is_active": True}],
        }
        request = RequestSpec.post_json(
            "create_team", "/team/add", payload, status_in("create_team", 201, 400)
        )
        async with HttpClient(base_url=review_service.url) as client:
            first = await client.execute(request)
            second = await client.execute(request)

        assert (first.status_code, second.status_code) == (201, 400)
        assert first.passed and second.passed
        assert review_service.teams["backend"] == payload["members"]

    async def test_trailing_slash_in_base_url(self, review_service: FakeReviewService):
        metrics: list[RequestMetric] = []
        async with HttpClient(
            base_url=f"{review_service.url}/", metric_callback=metrics.append
        ) as client:
            await client.execute(_STATS)

        assert metrics[0].url == f"{review_service.url}/stats"

    async def test_connection_failure_returns_transport_error(self, unreachable_url: str):
        metrics: list[RequestMetric] = []
        checks: list[CheckResult] = []

        async with HttpClient(
            base_url=unreachable_url,
            metric_callback=metrics.append,
            check_callback=checks.append,
            timeout=1.0,
        ) as client:
            result = await client.execute(_STATS)

        assert result.name == "stats"
        assert result.status_code == 0
        assert result.error is not None
        assert result.check is None
        assert result.passed is False
        assert len(metrics) == 1
        assert metrics[0].status_code == 0
        assert metrics[0].error == result.error
        # No response means no check evaluation
        assert checks == []

    async def test_timeout_returns_transport_error(self, review_service: FakeReviewService):
        review_service.delay = 1.0
        metrics: list[RequestMetric] = []

        async with HttpClient(
            base_url=review_service.url,
            metric_callback=metrics.append,
            timeout=0.1,
        ) as client:
            result = await client.execute(_STATS)

        assert result.error is not None
        assert metrics[0].error == result.error

    async def test_client_reusable_after_transport_error(self, review_service: FakeReviewService):
        review_service.drop_paths.add("/stats")
        get_team = RequestSpec.get(
            "getTeam", "/team/get", status_is("getTeam", 404), team_name="missing"
        )
        async with HttpClient(base_url=review_service.url) as client:
            dropped = await client.execute(_STATS)
            answered = await client.execute(get_team)

        assert dropped.error is not None
        assert answered.error is None
        assert answered.passed

    async def test_cancelled_mid_body_leaves_no_metric(self, review_service: FakeReviewService):
        review_service.body_delay = 1.0
        metrics: list[RequestMetric] = []
        checks: list[CheckResult] = []

        async with HttpClient(
            base_url=review_service.url,
            metric_callback=metrics.append,
            check_callback=checks.append,
        ) as client:
            task = asyncio.create_task(client.execute(_STATS))
            # Headers arrive at once; the body is still pending
            await asyncio.sleep(0.2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert review_service.hits["/stats"] == 1
        assert metrics == []
        assert checks == []

    async def test_slow_body_is_timed_to_the_last_byte(self, review_service: FakeReviewService):
        review_service.body_delay = 0.2
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=review_service.url, metric_callback=metrics.append) as client:
            result = await client.execute(_STATS)

        assert result.passed
        assert metrics[0].latency_ms >= 150
        assert metrics[0].content_length > 1

    async def test_context_manager_required(self):
        client = HttpClient(base_url="http://localhost")
        with pytest.raises(RuntimeError, match="async context manager"):
            await client.execute(_STATS)
