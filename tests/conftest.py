"""Shared test fixtures for the reviewload test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from collections import Counter
from typing import TYPE_CHECKING, Any

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Fake reviewer assignment service
# =============================================================================


class FakeReviewService:
    """In-memory stand-in for the PR reviewer assignment service.

    Implements the five endpoints the review flow calls with the status codes
    of the real service.  Tests use a few knobs to provoke slow iterations and
    request failures.  ``delay`` slows every response down before the headers
    and ``body_delay`` stalls the body after them.  ``stats_status`` overrides
    the ``/stats`` status.  Paths in ``drop_paths`` have their connection closed
    without a response.

    Attributes:
        url: Base URL once the server is started.
        teams: team_name -> list of member dicts.
        users: user_id -> (team_name, is_active).
        pull_requests: pull_request_id -> PR dict.
        hits: Request count per path.
        team_names: Every team name received by ``/team/add``, in order.
    """

    def __init__(self) -> None:
        self.url = ""
        self.delay = 0.0
        self.body_delay = 0.0
        self.stats_status = 200
        self.drop_paths: set[str] = set()
        self.teams: dict[str, list[dict[str, Any]]] = {}
        self.users: dict[str, tuple[str, bool]] = {}
        self.pull_requests: dict[str, dict[str, Any]] = {}
        self.hits: Counter[str] = Counter()
        self.team_names: list[str] = []

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._middleware])
        app.router.add_post("/team/add", self._add_team)
        app.router.add_get("/team/get", self._get_team)
        app.router.add_post("/pullRequest/create", self._create_pr)
        app.router.add_get("/users/getReview", self._get_review)
        app.router.add_get("/stats", self._stats)
        return app

    @web.middleware
    async def _middleware(self, request: web.Request, handler: Any) -> web.StreamResponse:
        self.hits[request.path] += 1
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if request.path in self.drop_paths and request.transport is not None:
            request.transport.close()
            return web.Response(status=500)
        response = await handler(request)
        if self.body_delay > 0 and isinstance(response, web.Response) and response.body:
            return await self._stream_slowly(request, response)
        return response

    async def _stream_slowly(
        self, request: web.Request, response: web.Response
    ) -> web.StreamResponse:
        body = bytes(response.body)  # type: ignore[arg-type]
        stream = web.StreamResponse(status=response.status)
        stream.content_type = response.content_type
        await stream.prepare(request)
        await stream.write(body[:1])
        await asyncio.sleep(self.body_delay)
        await stream.write(body[1:])
        await stream.write_eof()
        return stream

    @staticmethod
    def _error(status: int, code: str, message: str) -> web.Response:
        return web.json_response({"error": {"code": code, "message": message}}, status=status)

    async def _add_team(self, request: web.Request) -> web.Response:
        payload = await request.json()
        name = payload["team_name"]
        self.team_names.append(name)
        if name in self.teams:
            return self._error(400, "TEAM_EXISTS", f"{name} already exists")
        self.teams[name] = payload["members"]
        for member in payload["members"]:
            self.users[member["user_id"]] = (name, bool(member["is_active"]))
        return web.json_response({"team": payload}, status=201)

    async def _get_team(self, request: web.Request) -> web.Response:
        name = request.query.get("team_name", "")
        if name not in self.teams:
            return self._error(404, "NOT_FOUND", "team not found")
        return web.json_response({"team_name": name, "members": self.teams[name]})

    async def _create_pr(self, request: web.Request) -> web.Response:
        payload = await request.json()
        pr_id = payload["pull_request_id"]
        author_id = payload["author_id"]
        if pr_id in self.pull_requests:
            return self._error(400, "PR_EXISTS", "pull_request_id already exists")
        if author_id not in self.users:
            return self._error(404, "NOT_FOUND", "author not found")
        team_name, _active = self.users[author_id]
        reviewers = [
            m["user_id"]
            for m in self.teams[team_name]
            if m["is_active"] and m["user_id"] != author_id
        ][:2]
        pr = {
            "pull_request_id": pr_id,
            "pull_request_name": payload["pull_request_name"],
            "author_id": author_id,
            "status": "OPEN",
            "assigned_reviewers": reviewers,
        }
        self.pull_requests[pr_id] = pr
        return web.json_response({"pr": pr}, status=201)

    async def _get_review(self, request: web.Request) -> web.Response:
        user_id = request.query.get("user_id", "")
        if user_id not in self.users:
            return self._error(404, "NOT_FOUND", "user not found")
        assigned = [
            {k: pr[k] for k in ("pull_request_id", "pull_request_name", "author_id", "status")}
            for pr in self.pull_requests.values()
            if user_id in pr["assigned_reviewers"]
        ]
        return web.json_response({"user_id": user_id, "pull_requests": assigned})

    async def _stats(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "teams": len(self.teams),
                "users": len(self.users),
                "pull_requests": len(self.pull_requests),
            },
            status=self.stats_status,
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def review_service() -> AsyncIterator[FakeReviewService]:
    """Fake review service on the test's event loop.

    Use ``review_service.url`` as the base URL.
    """
    service = FakeReviewService()
    port = _get_free_port()
    runner = web.AppRunner(service.build_app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    service.url = f"http://127.0.0.1:{port}"
    yield service
    await runner.cleanup()


@pytest.fixture
def sync_review_service() -> Iterator[FakeReviewService]:
    """Fake review service running in a background thread for sync tests.

    Useful for runner and CLI tests where ``asyncio.run`` blocks the main
    thread.
    """
    service = FakeReviewService()
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(service.build_app())
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)
    service.url = f"http://127.0.0.1:{port}"

    yield service

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def unreachable_url() -> str:
    """Base URL of a localhost port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every REVIEWLOAD_* variable so defaults apply."""
    for name in (
        "REVIEWLOAD_BASE_URL",
        "REVIEWLOAD_STAGES",
        "REVIEWLOAD_PACING",
        "REVIEWLOAD_TIMEOUT",
        "REVIEWLOAD_GRACEFUL_STOP",
        "REVIEWLOAD_START_VUS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
