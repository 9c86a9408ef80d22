"""Tests for the staged concurrency schedule."""

from __future__ import annotations

import pytest

from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import LoadPattern
from reviewload.patterns.stages import Stage, StagedPattern


def _default_pattern() -> StagedPattern:
    return StagedPattern([Stage(20.0, 10), Stage(40.0, 30), Stage(20.0, 0)])


class TestStage:
    """Tests for the Stage dataclass."""

    def test_str(self):
        assert str(Stage(20.0, 10)) == "20s:10"
        assert str(Stage(0.5, 3)) == "0.5s:3"

    def test_negative_duration_raises(self):
        with pytest.raises(ConfigError, match="stage duration"):
            Stage(-1.0, 5)

    def test_negative_target_raises(self):
        with pytest.raises(ConfigError, match="stage target"):
            Stage(1.0, -5)

    @pytest.mark.parametrize("duration", [float("nan"), float("inf")])
    def test_non_finite_duration_raises(self, duration: float):
        with pytest.raises(ConfigError, match="stage duration must be a finite"):
            Stage(duration, 5)

    def test_frozen(self):
        stage = Stage(1.0, 1)
        with pytest.raises(AttributeError):
            stage.target = 2  # type: ignore[misc]


class TestStagedPattern:
    """Tests for StagedPattern."""

    def test_is_load_pattern(self):
        assert isinstance(_default_pattern(), LoadPattern)

    def test_total_duration(self):
        assert _default_pattern().total_duration == 80.0

    @pytest.mark.parametrize(
        ("elapsed", "expected"),
        [
            (0.0, 0),
            (10.0, 5),
            (20.0, 10),
            (40.0, 20),
            (60.0, 30),
            (70.0, 15),
            (80.0, 0),
        ],
    )
    def test_default_schedule(self, elapsed: float, expected: int):
        """20s:10, 40s:30, 20s:0 ramps up to 10, then 30, then down to 0."""
        assert _default_pattern().target_at(elapsed) == expected

    def test_negative_elapsed_clamps_to_start(self):
        assert StagedPattern([Stage(10.0, 10)], start_users=4).target_at(-5.0) == 4

    def test_after_end_holds_last_target(self):
        pattern = StagedPattern([Stage(10.0, 7)])
        assert pattern.target_at(10.0) == 7
        assert pattern.target_at(1000.0) == 7

    def test_hold_stage(self):
        pattern = StagedPattern([Stage(10.0, 5), Stage(10.0, 5)])
        assert [pattern.target_at(t) for t in (10.0, 12.5, 15.0, 19.9)] == [5, 5, 5, 5]

    def test_zero_duration_stage_jumps(self):
        pattern = StagedPattern([Stage(10.0, 5), Stage(0.0, 20), Stage(10.0, 20)])
        assert pattern.target_at(9.99) == 5
        assert pattern.target_at(10.0) == 20
        assert pattern.target_at(15.0) == 20

    def test_start_users(self):
        pattern = StagedPattern([Stage(10.0, 0)], start_users=10)
        assert pattern.target_at(0.0) == 10
        assert pattern.target_at(5.0) == 5
        assert pattern.target_at(10.0) == 0

    def test_rounds_to_nearest_user(self):
        pattern = StagedPattern([Stage(3.0, 1)])
        assert pattern.target_at(1.0) == 0
        assert pattern.target_at(2.0) == 1

    def test_targets_stay_within_stage_bounds(self):
        pattern = _default_pattern()
        for tenth in range(801):
            elapsed = tenth / 10
            low, high = pattern.bounds_at(elapsed)
            assert low <= pattern.target_at(elapsed) <= high

    def test_bounds_at(self):
        pattern = _default_pattern()
        assert pattern.bounds_at(5.0) == (0, 10)
        assert pattern.bounds_at(30.0) == (10, 30)
        assert pattern.bounds_at(70.0) == (0, 30)
        assert pattern.bounds_at(90.0) == (0, 0)

    def test_empty_stages_raises(self):
        with pytest.raises(ConfigError, match="at least one stage"):
            StagedPattern([])

    def test_zero_total_duration_raises(self):
        with pytest.raises(ConfigError, match="total stage duration"):
            StagedPattern([Stage(0.0, 10)])

    def test_overflowing_total_duration_raises(self):
        with pytest.raises(ConfigError, match="total stage duration must be a finite"):
            StagedPattern([Stage(1e308, 10), Stage(1e308, 0)])

    def test_negative_start_users_raises(self):
        with pytest.raises(ConfigError, match="start_users"):
            StagedPattern([Stage(1.0, 1)], start_users=-1)

    def test_describe(self):
        assert _default_pattern().describe() == (
            "Stages: 20s:10, 40s:30, 20s:0 (80s total, start 0 users)"
        )


class TestIterConcurrency:
    """Tests for LoadPattern.iter_concurrency."""

    def test_tick_count(self):
        ticks = list(_default_pattern().iter_concurrency(tick_interval=10.0))
        # t=0, 10, ..., 80 -> 9 ticks
        assert len(ticks) == 9

    def test_samples(self):
        ticks = list(_default_pattern().iter_concurrency(tick_interval=20.0))
        assert ticks == [(0.0, 0), (20.0, 10), (40.0, 20), (60.0, 30), (80.0, 0)]

    def test_last_tick_lands_on_end(self):
        pattern = StagedPattern([Stage(2.5, 4)])
        ticks = list(pattern.iter_concurrency(tick_interval=1.0))
        assert [t for t, _ in ticks] == [0.0, 1.0, 2.0, 2.5]
        assert ticks[-1][1] == 4

    def test_float_interval_has_no_extra_tick(self):
        pattern = StagedPattern([Stage(1.8, 9)])
        ticks = list(pattern.iter_concurrency(tick_interval=0.2))
        assert len(ticks) == 10

    def test_invalid_tick_interval_raises(self):
        with pytest.raises(ConfigError, match="tick_interval"):
            list(_default_pattern().iter_concurrency(tick_interval=0.0))

    @pytest.mark.parametrize("tick_interval", [float("nan"), float("inf")])
    def test_non_finite_tick_interval_raises(self, tick_interval: float):
        with pytest.raises(ConfigError, match="tick_interval"):
            list(_default_pattern().iter_concurrency(tick_interval=tick_interval))
