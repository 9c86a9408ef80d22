"""The review-flow iteration: team, pull request, review, team and stats calls.

Each iteration creates its own team and pull request, so identifiers are
derived from the iteration identity only and never collide across
concurrently running iterations.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reviewload.dsl.checks import status_2xx, status_in, status_is
from reviewload.dsl.request_spec import RequestSpec

if TYPE_CHECKING:
    from reviewload.dsl.http_client import HttpClient, RequestResult
    from reviewload.dsl.scenario import IterationId

# 400 means "team already exists"; both outcomes pass under load.
CREATE_TEAM = status_in("create_team", 201, 400)
CREATE_PR = status_2xx("create_pr")
GET_REVIEW = status_is("getReview", 200)
GET_TEAM = status_is("getTeam", 200)
STATS = status_is("stats", 200)

CHECK_NAMES = (CREATE_TEAM.name, CREATE_PR.name, GET_REVIEW.name, GET_TEAM.name, STATS.name)

_MEMBERS_PER_TEAM = 3


@dataclass(frozen=True)
class TeamMember:
    """A member of a generated team."""

    user_id: str
    username: str
    is_active: bool


@dataclass(frozen=True)
class TeamPayload:
    """Team created by one iteration.

    Attributes:
        team_name: ``team-<vu>-<iter>``.
        members: Three members; the last one is inactive.
    """

    team_name: str
    members: tuple[TeamMember, ...]

    @property
    def author(self) -> TeamMember:
        """Member who opens the pull request."""
        return self.members[0]

    @property
    def reviewer(self) -> TeamMember:
        """Member whose review queue is fetched."""
        return self.members[1]

    def to_json(self) -> dict[str, object]:
        return {
            "team_name": self.team_name,
            "members": [
                {"user_id": m.user_id, "username": m.username, "is_active": m.is_active}
                for m in self.members
            ],
        }


def build_team(identity: IterationId) -> TeamPayload:
    """Build the team payload for *identity*."""
    key = identity.key
    members = tuple(
        TeamMember(
            user_id=f"u-{key}-{n}",
            username=f"user-{key}-{n}",
            is_active=n < _MEMBERS_PER_TEAM,
        )
        for n in range(1, _MEMBERS_PER_TEAM + 1)
    )
    return TeamPayload(team_name=f"team-{key}", members=members)


def create_team_request(team: TeamPayload) -> RequestSpec:
    return RequestSpec.post_json("create_team", "/team/add", team.to_json(), CREATE_TEAM)


def create_pull_request_request(team: TeamPayload, identity: IterationId) -> RequestSpec:
    payload = {
        "pull_request_id": f"pr-{identity.key}",
        "pull_request_name": f"PR {identity.key}",
        "author_id": team.author.user_id,
    }
    return RequestSpec.post_json("create_pr", "/pullRequest/create", payload, CREATE_PR)


def get_review_request(team: TeamPayload) -> RequestSpec:
    return RequestSpec.get("getReview", "/users/getReview", GET_REVIEW, user_id=team.reviewer.user_id)


def get_team_request(team: TeamPayload) -> RequestSpec:
    return RequestSpec.get("getTeam", "/team/get", GET_TEAM, team_name=team.team_name)


def stats_request() -> RequestSpec:
    return RequestSpec.get("stats", "/stats", STATS)


class ReviewFlowScript:
    """Seven-step iteration against the reviewer assignment service.

    1. build the team payload
    2. ``POST /team/add`` (201 or 400)
    3. ``POST /pullRequest/create`` authored by the first member (2xx)
    4. pause for *pacing* seconds
    5. ``GET /users/getReview`` for the second member (200)
    6. ``GET /team/get`` (200)
    7. ``GET /stats`` (200)

    Neither a failed check nor a transport error stops the iteration; every
    step runs and the caller decides what a failed step means.

    Args:
        pacing: Seconds to pause between PR creation and review retrieval.
    """

    name = "review-flow"

    def __init__(self, pacing: float = 0.2) -> None:
        self.pacing = pacing

    async def run(self, client: HttpClient, identity: IterationId) -> list[RequestResult]:
        """Run one iteration and return its five request results in order."""
        team = build_team(identity)
        results = [
            await client.execute(create_team_request(team)),
            await client.execute(create_pull_request_request(team, identity)),
        ]
        await asyncio.sleep(self.pacing)
        for request in (get_review_request(team), get_team_request(team), stats_request()):
            results.append(await client.execute(request))
        return results
