"""
Goal progress aggregator.

Per-goal progress is the signed ratio of distance travelled from baseline
toward target:

    with baseline     (current - baseline) / (target - baseline) * 100
    without baseline  current / target * 100

Missing values count as 0. A zero denominator or a NaN ratio yields 0.
The result is always clamped to [0, 100], so a goal moving away from its
target reports 0 rather than a negative number.
"""
from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from wellio.models.goal import Goal, GoalScope, GoalStatus


def round_half_up(value: float) -> int:
    """Round .5 away from zero (Python's round() is banker's rounding)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_percent(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def goal_progress_percent(
    baseline: Optional[float],
    current: Optional[float],
    target: Optional[float],
) -> float:
    """Progress of a single goal in [0, 100]."""
    baseline = baseline or 0.0
    current = current or 0.0
    target = target or 0.0

    denominator = target - baseline
    if denominator == 0:
        return 0.0
    try:
        ratio = (current - baseline) / denominator * 100
    except (ZeroDivisionError, OverflowError):
        return 0.0
    if math.isinf(ratio):
        return 0.0 if ratio < 0 else 100.0
    return clamp_percent(ratio)


def progress_of(goal: Goal) -> float:
    return goal_progress_percent(goal.baseline_value, goal.current_value, goal.target_value)


def is_scored_goal(goal: Goal) -> bool:
    """Active long-term goals are the only ones that feed the composite score."""
    return goal.status == GoalStatus.active and goal.scope == GoalScope.long_term


def aggregate_goal_progress(goals: Iterable[Goal]) -> int:
    """Mean progress of the active long-term goals, 0 when there are none."""
    scored = [progress_of(g) for g in goals if is_scored_goal(g)]
    if not scored:
        return 0
    return round_half_up(clamp_percent(sum(scored) / len(scored)))
