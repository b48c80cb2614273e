"""
Tests for the goal-progress math.

Scenarios:
  - progress is the signed ratio of distance covered, for both directions
  - a target equal to the baseline scores 0
  - missing values are treated as 0
  - overshoot and backwards movement are clamped to [0, 100]
  - only active long-term goals feed the aggregate
  - .5 rounds up
"""
from __future__ import annotations

import math

import pytest

from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.services.goal_progress import (
    aggregate_goal_progress,
    clamp_percent,
    goal_progress_percent,
    is_scored_goal,
    round_half_up,
)


def _goal(
    baseline=None,
    current=0.0,
    target=100.0,
    status=GoalStatus.active,
    scope=GoalScope.long_term,
) -> Goal:
    return Goal(
        client_id=1,
        goal_type="lose_weight",
        title="Goal",
        baseline_value=baseline,
        current_value=current,
        target_value=target,
        status=status,
        scope=scope,
    )


# ---------------------------------------------------------------------------
# Single goal
# ---------------------------------------------------------------------------

class TestGoalProgressPercent:
    def test_decreasing_target(self):
        # 80 → 60, now at 70: halfway
        assert goal_progress_percent(80, 70, 60) == pytest.approx(50.0)

    def test_increasing_target(self):
        assert goal_progress_percent(20, 35, 50) == pytest.approx(50.0)

    def test_no_baseline_counts_from_zero(self):
        assert goal_progress_percent(None, 25, 100) == pytest.approx(25.0)

    def test_target_equals_baseline(self):
        assert goal_progress_percent(70, 70, 70) == 0.0
        assert goal_progress_percent(70, 90, 70) == 0.0

    def test_all_missing(self):
        assert goal_progress_percent(None, None, None) == 0.0

    def test_overshoot_clamped(self):
        assert goal_progress_percent(80, 55, 60) == 100.0

    def test_moving_away_clamped(self):
        assert goal_progress_percent(80, 85, 60) == 0.0

    def test_nan_is_zero(self):
        assert goal_progress_percent(float("nan"), 1, 2) == 0.0
        assert clamp_percent(math.nan) == 0.0


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

class TestAggregate:
    def test_no_goals(self):
        assert aggregate_goal_progress([]) == 0

    def test_mean_of_scored_goals(self):
        goals = [_goal(current=50), _goal(current=30)]
        assert aggregate_goal_progress(goals) == 40

    def test_ignores_inactive_and_weekly_goals(self):
        goals = [
            _goal(current=80),
            _goal(current=0, status=GoalStatus.paused),
            _goal(current=0, status=GoalStatus.completed),
            _goal(current=0, scope=GoalScope.weekly),
        ]
        assert aggregate_goal_progress(goals) == 80

    def test_only_unscored_goals(self):
        assert aggregate_goal_progress([_goal(current=90, status=GoalStatus.abandoned)]) == 0

    def test_half_rounds_up(self):
        # mean of 50 and 35 is 42.5
        goals = [_goal(current=50), _goal(current=35)]
        assert aggregate_goal_progress(goals) == 43

    def test_is_scored_goal(self):
        assert is_scored_goal(_goal())
        assert not is_scored_goal(_goal(scope=GoalScope.weekly))


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (2.5, 3),
        (57.5, 58),
        (57.49, 57),
        (0.0, 0),
        (100.0, 100),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected
