"""
Client insights: trend verdicts, goal predictions and a coach-facing summary.

build_client_insight(db, client_id, today, summarizer) -> ClientInsight

Reads the last INSIGHT_LOOKBACK_DAYS of progress events, runs every trend
analyzer that has enough data, projects each active goal forward and asks
the summarizer for a short narrative. Read-only.
"""
from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from wellio.models.goal import Goal, GoalStatus
from wellio.services import event_store
from wellio.services import trend_analyzer as ta
from wellio.services.event_store import EventRecord
from wellio.services.goal_progress import goal_progress_percent, round_half_up
from wellio.services.insight_summary import SummaryResult, generate_summary

INSIGHT_LOOKBACK_DAYS = 90

Summarizer = Callable[[str, list, list, int], SummaryResult]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class GoalPrediction:
    goal_id: int
    goal_title: str
    goal_type: str
    current_value: Optional[float]
    target_value: Optional[float]
    unit: Optional[str]
    deadline: Optional[date]
    progress_percent: int
    estimated_completion_date: Optional[date]
    days_to_completion: Optional[int]
    success_probability: float
    on_track: bool
    trend: str
    recommendation: str


@dataclass
class QuickStats:
    total_data_points: int
    tracking_consistency: int
    overall_trend: str
    top_strength: Optional[str] = None
    top_opportunity: Optional[str] = None


@dataclass
class ClientInsight:
    client_id: int
    client_name: str
    trends: list[ta.TrendVerdict]
    goal_predictions: list[GoalPrediction]
    summary: str
    summary_source: str
    quick_stats: QuickStats
    generated_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


# ---------------------------------------------------------------------------
# Goal predictions
# ---------------------------------------------------------------------------

def _relevant_event_types(goal_type: str) -> set[str]:
    t = goal_type.lower()
    types = set()
    if "weight" in t:
        types.add("weight")
    if "workout" in t or "exercise" in t or "fitness" in t:
        types.add("workout")
    if "nutrition" in t or "calorie" in t or "protein" in t:
        types.add("nutrition")
    if "step" in t:
        types.add("steps")
    if "sleep" in t:
        types.add("sleep")
    return types


def _event_value(record: EventRecord, goal_type: str) -> float:
    t = goal_type.lower()
    p = record.payload
    if "weight" in t:
        return float(getattr(p, "value_kg", None) or 0)
    if "calorie" in t:
        return float(getattr(p, "calories", None) or 0)
    if "protein" in t:
        return float(getattr(p, "protein_g", None) or 0)
    if "step" in t:
        return float(getattr(p, "steps", None) or 0)
    if "sleep" in t:
        return float(getattr(p, "hours", None) or 0)
    return 1.0


def _progress_made(goal: Goal, relevant: list[EventRecord]) -> float:
    """Distance moved toward the target between the first and last relevant event."""
    t = goal.goal_type.lower()
    if "workout" in t or "exercise" in t or "fitness" in t:
        return float(len(relevant))

    first = _event_value(relevant[0], goal.goal_type)
    last = _event_value(relevant[-1], goal.goal_type)
    if "weight" in t:
        if "lose" in t:
            return first - last
        if "gain" in t:
            return last - first
        target, current = goal.target_value or 0, goal.current_value or 0
        return first - last if target < current else last - first
    return abs(last - first)


def _recommendation(title: str, trend: str) -> str:
    if trend == "ahead":
        return f"Great progress! You're ahead of schedule to reach {title}."
    if trend == "on_track":
        return f"You're on track for {title}. Keep up the current pace!"
    if trend == "behind":
        return f"You're slightly behind on {title}. Try to increase daily effort."
    return f"{title} needs attention. Consider adjusting the target or timeline."


def predict_goal(goal: Goal, records: Sequence[EventRecord], today: date) -> GoalPrediction:
    percent = round_half_up(
        goal_progress_percent(goal.baseline_value, goal.current_value, goal.target_value)
    )
    remaining = abs((goal.target_value or 0) - (goal.current_value or 0)) if percent < 100 else 0.0
    days_remaining = (goal.deadline - today).days if goal.deadline else None

    relevant_types = _relevant_event_types(goal.goal_type)
    relevant = sorted((r for r in records if r.event_type in relevant_types), key=lambda r: r.day)

    estimated_days: Optional[int] = None
    estimated_date: Optional[date] = None
    probability = 0.5
    on_track = False
    trend = "on_track"

    if remaining <= 0:
        probability, trend, on_track = 1.0, "ahead", True
        estimated_days, estimated_date = 0, today
    elif len(relevant) >= 2:
        span = max(1, (relevant[-1].day - relevant[0].day).days)
        rate = _progress_made(goal, relevant) / span
        if rate > 0:
            estimated_days = math.ceil(remaining / rate)
            estimated_date = today + timedelta(days=estimated_days)
            if days_remaining is None:
                on_track = True
            elif estimated_days <= days_remaining:
                slack = (days_remaining - estimated_days) / max(1, days_remaining)
                probability = min(0.95, 0.7 + slack * 0.25)
                trend = "ahead" if estimated_days < days_remaining * 0.8 else "on_track"
                on_track = True
            else:
                overshoot = estimated_days / max(1, days_remaining)
                probability = max(0.1, 0.5 / overshoot)
                trend = "at_risk" if overshoot > 1.5 else "behind"
        else:
            trend = "behind"
    elif days_remaining is not None and days_remaining > 0:
        probability = min(0.5, percent / 100) if percent > 0 else 0.3
        trend = "at_risk" if percent < 20 and days_remaining < 30 else "behind"
    elif days_remaining is not None:
        probability, trend = 0.1, "at_risk"

    return GoalPrediction(
        goal_id=goal.id,
        goal_title=goal.title,
        goal_type=goal.goal_type,
        current_value=goal.current_value,
        target_value=goal.target_value,
        unit=goal.unit,
        deadline=goal.deadline,
        progress_percent=percent,
        estimated_completion_date=estimated_date,
        days_to_completion=estimated_days,
        success_probability=round(probability, 2),
        on_track=on_track,
        trend=trend,
        recommendation=_recommendation(goal.title, trend),
    )


def predict_goals(
    goals: Sequence[Goal],
    records: Sequence[EventRecord],
    today: date,
) -> list[GoalPrediction]:
    return [predict_goal(g, records, today) for g in goals if g.status == GoalStatus.active]


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

def analyze_trends(records: Sequence[EventRecord], today: date) -> list[ta.TrendVerdict]:
    by_type: dict[str, list[EventRecord]] = {}
    for r in records:
        by_type.setdefault(r.event_type, []).append(r)

    weight = by_type.get("weight", [])
    candidates = [
        ta.analyze_weight_trend(weight),
        ta.analyze_body_composition_trend(weight),
        ta.analyze_nutrition_trend(by_type.get("nutrition", [])),
        ta.analyze_workout_trend(by_type.get("workout", []), today),
        ta.analyze_sleep_trend(by_type.get("sleep", [])),
        ta.analyze_mood_trend(by_type.get("checkin_mood", [])),
        ta.analyze_steps_trend(by_type.get("steps", [])),
        ta.analyze_tracking_consistency(records),
    ]
    return [v for v in candidates if v is not None]


def quick_stats(
    records: Sequence[EventRecord],
    trends: Sequence[ta.TrendVerdict],
    today: date,
) -> QuickStats:
    improving = [t for t in trends if t.trend == ta.IMPROVING]
    declining = [t for t in trends if t.trend == ta.DECLINING]
    opportunities = [t for t in trends if t.trend in (ta.DECLINING, ta.PLATEAU)]

    if len(improving) > len(declining):
        overall = ta.IMPROVING
    elif len(declining) > len(improving):
        overall = ta.DECLINING
    else:
        overall = ta.STABLE

    consistency = 0
    if records:
        unique_days = {r.day for r in records}
        day_range = max(1, (today - min(unique_days)).days + 1)
        consistency = min(100, round_half_up(len(unique_days) / max(day_range, 7) * 100))

    return QuickStats(
        total_data_points=len(records),
        tracking_consistency=consistency,
        overall_trend=overall,
        top_strength=improving[0].category if improving else None,
        top_opportunity=opportunities[0].category if opportunities else None,
    )


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def build_client_insight(
    db: Session,
    client_id: int,
    today: Optional[date] = None,
    summarizer: Optional[Summarizer] = None,
) -> ClientInsight:
    today = today or datetime.now(tz=timezone.utc).date()
    summarizer = summarizer or generate_summary
    client = event_store.get_client(db, client_id)

    events = event_store.list_progress_events(
        db, client_id, start=today - timedelta(days=INSIGHT_LOOKBACK_DAYS), end=today
    )
    records = event_store.to_records(events)
    goals = (
        db.query(Goal)
        .filter(Goal.client_id == client_id, Goal.status == GoalStatus.active)
        .order_by(Goal.id)
        .all()
    )

    trends = analyze_trends(records, today)
    predictions = predict_goals(goals, records, today)
    summary = summarizer(client.name, trends, predictions, len(records))

    return ClientInsight(
        client_id=client.id,
        client_name=client.name,
        trends=trends,
        goal_predictions=predictions,
        summary=summary.text,
        summary_source=summary.source,
        quick_stats=quick_stats(records, trends, today),
    )
