"""
Insights router.

GET /clients/{id}/insights — trend verdicts, goal predictions and a summary
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.schemas.common import NOT_FOUND_RESPONSE
from wellio.schemas.insights import (
    ClientInsightResponse,
    GoalPredictionResponse,
    QuickStatsResponse,
    TrendVerdictResponse,
)
from wellio.services.insights import ClientInsight, GoalPrediction, build_client_insight

router = APIRouter(prefix="/clients", tags=["insights"])


def _prediction_to_response(p: GoalPrediction) -> GoalPredictionResponse:
    return GoalPredictionResponse(
        goal_id=p.goal_id,
        goal_title=p.goal_title,
        goal_type=p.goal_type,
        current_value=p.current_value,
        target_value=p.target_value,
        unit=p.unit,
        deadline=str(p.deadline) if p.deadline else None,
        progress_percent=p.progress_percent,
        estimated_completion_date=(
            str(p.estimated_completion_date) if p.estimated_completion_date else None
        ),
        days_to_completion=p.days_to_completion,
        success_probability=p.success_probability,
        on_track=p.on_track,
        trend=p.trend,
        recommendation=p.recommendation,
    )


def _insight_to_response(i: ClientInsight) -> ClientInsightResponse:
    return ClientInsightResponse(
        client_id=i.client_id,
        client_name=i.client_name,
        trends=[TrendVerdictResponse(**t.to_dict()) for t in i.trends],
        goal_predictions=[_prediction_to_response(p) for p in i.goal_predictions],
        summary=i.summary,
        summary_source=i.summary_source,
        quick_stats=QuickStatsResponse(
            total_data_points=i.quick_stats.total_data_points,
            tracking_consistency=i.quick_stats.tracking_consistency,
            overall_trend=i.quick_stats.overall_trend,
            top_strength=i.quick_stats.top_strength,
            top_opportunity=i.quick_stats.top_opportunity,
        ),
        generated_at=i.generated_at.isoformat(),
    )


@router.get(
    "/{client_id}/insights",
    response_model=ClientInsightResponse,
    summary="Client progress insights",
    responses={404: NOT_FOUND_RESPONSE},
)
def read_insights(
    client_id: int,
    reference_date: Optional[date] = Query(
        default=None, description="Analyse the 90 days ending on this day (defaults to today)."
    ),
    db: Session = Depends(get_db),
):
    """
    Runs every trend analyzer with enough data over the last 90 days of
    progress events, projects each active goal and writes a short summary.

    The summary comes from the configured LLM when `OPENAI_API_KEY` is set;
    otherwise, or when the LLM call fails, a deterministic template is used
    and `summary_source` is `"fallback"`. This endpoint never fails because
    of the LLM.
    """
    insight = build_client_insight(db, client_id, today=reference_date)
    return _insight_to_response(insight)
