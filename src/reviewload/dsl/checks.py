"""Named status-code checks evaluated against responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class CheckResult:
    """Outcome of evaluating one check.

    Attributes:
        name: Check name (e.g., "create_team").
        passed: Whether the response satisfied the check.
        status_code: HTTP status the check was evaluated against.
    """

    name: str
    passed: bool
    status_code: int


@dataclass(frozen=True)
class Check:
    """A named boolean assertion over a response status code.

    Checks never raise: a failing check is recorded and the iteration
    continues.

    Attributes:
        name: Check name used for grouping in reports.
        description: Short human-readable condition, e.g. "201 or 400".
        predicate: Function deciding whether a status code passes.
    """

    name: str
    description: str
    predicate: Callable[[int], bool]

    def evaluate(self, status_code: int) -> CheckResult:
        """Evaluate the check against *status_code*."""
        return CheckResult(
            name=self.name,
            passed=bool(self.predicate(status_code)),
            status_code=status_code,
        )

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"


def status_is(name: str, expected: int) -> Check:
    """Build a check passing only on exactly *expected*."""
    return Check(name=name, description=str(expected), predicate=lambda s: s == expected)


def status_in(name: str, *accepted: int) -> Check:
    """Build a check passing on any of the *accepted* status codes."""
    codes = frozenset(accepted)
    description = " or ".join(str(code) for code in accepted)
    return Check(name=name, description=description, predicate=lambda s: s in codes)


def status_2xx(name: str) -> Check:
    """Build a check passing on any 2xx status code."""
    return Check(name=name, description="2xx", predicate=lambda s: 200 <= s < 300)
