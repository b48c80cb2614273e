"""
Tests for client insights: goal predictions, quick stats and the summary
with its deterministic fallback.
"""
from __future__ import annotations

from datetime import date, timedelta

from wellio.core.config import settings
from wellio.models.goal import Goal, GoalStatus
from wellio.schemas.events import WeightPayload
from wellio.services import insight_summary
from wellio.services import trend_analyzer as ta
from wellio.services.event_store import EventRecord
from wellio.services.insight_summary import (
    SOURCE_FALLBACK,
    SOURCE_LLM,
    SummaryResult,
    build_prompt_context,
    fallback_summary,
    generate_summary,
)
from wellio.services.insights import (
    build_client_insight,
    predict_goal,
    predict_goals,
    quick_stats,
)

TODAY = date(2026, 10, 14)


def _goal(**kw) -> Goal:
    defaults = dict(
        client_id=1,
        goal_type="lose_weight",
        title="Drop to 80 kg",
        unit="kg",
        baseline_value=90.0,
        current_value=85.0,
        target_value=80.0,
        status=GoalStatus.active,
    )
    defaults.update(kw)
    return Goal(**defaults)


def _weigh_in(days_ago: int, kg: float) -> EventRecord:
    return EventRecord(TODAY - timedelta(days=days_ago), "weight", WeightPayload(value=kg))


def _verdict(category: str, trend: str, recommendation: str = "") -> ta.TrendVerdict:
    return ta.TrendVerdict(
        category=category,
        trend=trend,
        confidence=0.8,
        description=f"{category} is {trend}",
        recommendation=recommendation,
    )


# ---------------------------------------------------------------------------
# Goal predictions
# ---------------------------------------------------------------------------

class TestPredictGoal:
    def test_reached_goal(self):
        p = predict_goal(_goal(current_value=80.0), [], TODAY)
        assert p.progress_percent == 100
        assert p.trend == "ahead"
        assert p.success_probability == 1.0
        assert p.days_to_completion == 0
        assert p.estimated_completion_date == TODAY

    def test_ahead_of_deadline(self):
        goal = _goal(deadline=TODAY + timedelta(days=60))
        records = [_weigh_in(10, 90), _weigh_in(0, 85)]
        p = predict_goal(goal, records, TODAY)
        assert p.progress_percent == 50
        # 0.5 kg/day, 5 kg to go
        assert p.days_to_completion == 10
        assert p.estimated_completion_date == TODAY + timedelta(days=10)
        assert p.trend == "ahead"
        assert p.on_track is True
        assert 0.7 < p.success_probability <= 0.95

    def test_at_risk_when_far_past_deadline(self):
        goal = _goal(deadline=TODAY + timedelta(days=5))
        records = [_weigh_in(10, 90), _weigh_in(0, 85)]
        p = predict_goal(goal, records, TODAY)
        assert p.trend == "at_risk"
        assert p.on_track is False
        assert p.success_probability == 0.25

    def test_moving_the_wrong_way(self):
        goal = _goal(deadline=TODAY + timedelta(days=30))
        records = [_weigh_in(10, 85), _weigh_in(0, 87)]
        p = predict_goal(goal, records, TODAY)
        assert p.trend == "behind"
        assert p.days_to_completion is None

    def test_no_deadline_positive_rate(self):
        records = [_weigh_in(10, 90), _weigh_in(0, 85)]
        p = predict_goal(_goal(), records, TODAY)
        assert p.on_track is True
        assert p.trend == "on_track"

    def test_no_data_future_deadline(self):
        p = predict_goal(_goal(deadline=TODAY + timedelta(days=90)), [], TODAY)
        assert p.trend == "behind"
        assert p.success_probability == 0.5

    def test_no_data_past_deadline(self):
        p = predict_goal(_goal(deadline=TODAY - timedelta(days=1)), [], TODAY)
        assert p.trend == "at_risk"
        assert p.success_probability == 0.1

    def test_only_active_goals_predicted(self):
        goals = [_goal(), _goal(status=GoalStatus.paused)]
        assert len(predict_goals(goals, [], TODAY)) == 1


# ---------------------------------------------------------------------------
# Quick stats
# ---------------------------------------------------------------------------

class TestQuickStats:
    def test_empty(self):
        s = quick_stats([], [], TODAY)
        assert s.total_data_points == 0
        assert s.tracking_consistency == 0
        assert s.overall_trend == ta.STABLE

    def test_consistency_uses_at_least_a_week(self):
        records = [_weigh_in(d, 80) for d in (0, 1, 2)]
        s = quick_stats(records, [], TODAY)
        # 3 days over a 7 day floor
        assert s.tracking_consistency == 43

    def test_strength_and_opportunity(self):
        trends = [
            _verdict("activity", ta.IMPROVING),
            _verdict("sleep", ta.IMPROVING),
            _verdict("progress", ta.PLATEAU),
        ]
        s = quick_stats([], trends, TODAY)
        assert s.overall_trend == ta.IMPROVING
        assert s.top_strength == "activity"
        assert s.top_opportunity == "progress"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

class TestSummary:
    def test_fallback_text(self):
        trends = [
            _verdict("activity", ta.IMPROVING),
            _verdict("sleep", ta.DECLINING, "Prioritize sleep."),
        ]
        text = fallback_summary("Jordan", trends, [])
        assert text == (
            "Jordan's recent progress: Strong performance in activity. "
            "Focus areas: sleep. Prioritize sleep."
        )

    def test_fallback_counts_goals_on_track(self):
        predictions = [
            predict_goal(_goal(current_value=80.0), [], TODAY),
            predict_goal(_goal(deadline=TODAY - timedelta(days=1)), [], TODAY),
        ]
        text = fallback_summary("Sam", [], predictions)
        assert "1 of 2 goals on track." in text
        assert text.endswith("Keep up the consistent effort!")

    def test_no_key_uses_fallback(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        result = generate_summary("Jordan", [], [], 0)
        assert result.source == SOURCE_FALLBACK
        assert result.error is None

    def test_llm_failure_falls_back(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")

        def boom(context):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(insight_summary, "_llm_summary", boom)
        result = generate_summary("Jordan", [], [], 0)
        assert result.source == SOURCE_FALLBACK
        assert result.error == "rate limited"
        assert result.text.startswith("Jordan's recent progress:")

    def test_llm_success(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
        seen = {}

        def fake(context):
            seen["context"] = context
            return "Nice work this week."

        monkeypatch.setattr(insight_summary, "_llm_summary", fake)
        result = generate_summary("Jordan", [_verdict("activity", ta.IMPROVING)], [], 12)
        assert result == SummaryResult(text="Nice work this week.", source=SOURCE_LLM)
        assert "Data Points: 12 entries logged" in seen["context"]

    def test_prompt_context_lists_goals(self):
        p = predict_goal(_goal(current_value=80.0), [], TODAY)
        context = build_prompt_context("Jordan", [], [p], 3)
        assert "Goal Progress:" in context
        assert "Drop to 80 kg: 100% complete, ahead (100% success probability)" in context


# ---------------------------------------------------------------------------
# Full insight
# ---------------------------------------------------------------------------

class TestBuildClientInsight:
    def test_assembles_trends_predictions_and_summary(self, db, make_client, make_goal, make_event):
        c = make_client(name="Riley")
        make_goal(c, baseline=90, current=85, target=80, deadline=TODAY + timedelta(days=60))
        make_event(c, "weight", TODAY - timedelta(days=10), value=90)
        make_event(c, "weight", TODAY, value=85)
        for d in (0, 2, 4, 6):
            make_event(c, "workout", TODAY - timedelta(days=d), duration_min=30)
        # outside the lookback window
        make_event(c, "nutrition", TODAY - timedelta(days=120), calories=2000)

        calls = []

        def summarizer(name, trends, predictions, n):
            calls.append((name, n))
            return SummaryResult(text="summary", source=SOURCE_LLM)

        insight = build_client_insight(db, c.id, today=TODAY, summarizer=summarizer)
        assert insight.client_name == "Riley"
        assert calls == [("Riley", 6)]
        assert insight.summary == "summary"
        assert insight.summary_source == SOURCE_LLM
        assert {t.category for t in insight.trends} >= {"weight", "progress", "activity", "consistency"}
        assert len(insight.goal_predictions) == 1
        assert insight.goal_predictions[0].trend == "ahead"
        assert insight.quick_stats.total_data_points == 6

    def test_default_summarizer_without_key(self, db, make_client, make_event, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        c = make_client(name="Alex")
        make_event(c, "nutrition", TODAY, calories=2000, protein_g=100)
        insight = build_client_insight(db, c.id, today=TODAY)
        assert insight.summary_source == SOURCE_FALLBACK
        assert insight.summary.startswith("Alex's recent progress:")
        assert insight.trends == []

