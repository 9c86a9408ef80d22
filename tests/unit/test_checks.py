"""Tests for named status-code checks."""

from __future__ import annotations

import pytest

from reviewload.dsl.checks import Check, CheckResult, status_2xx, status_in, status_is


class TestCheck:
    def test_evaluate_pass(self):
        check = status_is("stats", 200)
        assert check.evaluate(200) == CheckResult(name="stats", passed=True, status_code=200)

    def test_evaluate_fail(self):
        result = status_is("stats", 200).evaluate(503)
        assert result.passed is False
        assert result.status_code == 503

    def test_transport_status_zero_fails(self):
        assert status_2xx("create_pr").evaluate(0).passed is False

    def test_str(self):
        assert str(status_in("create_team", 201, 400)) == "create_team: 201 or 400"
        assert str(status_2xx("create_pr")) == "create_pr: 2xx"

    def test_custom_predicate(self):
        check = Check(name="any", description="anything", predicate=lambda _s: True)
        assert check.evaluate(418).passed is True


class TestFactories:
    @pytest.mark.parametrize(("status", "passed"), [(201, True), (400, True), (200, False), (500, False)])
    def test_status_in(self, status: int, passed: bool):
        assert status_in("create_team", 201, 400).evaluate(status).passed is passed

    @pytest.mark.parametrize(("status", "passed"), [(200, True), (201, True), (299, True), (300, False), (404, False)])
    def test_status_2xx(self, status: int, passed: bool):
        assert status_2xx("create_pr").evaluate(status).passed is passed

    def test_status_is_exact(self):
        check = status_is("getReview", 200)
        assert check.evaluate(200).passed
        assert not check.evaluate(201).passed
