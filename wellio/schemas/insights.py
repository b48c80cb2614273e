"""
Insight schemas.

GET /clients/{id}/insights → ClientInsightResponse
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field


class TrendVerdictResponse(BaseModel):
    category: str = Field(examples=["nutrition"])
    trend: Literal["improving", "declining", "stable", "plateau"]
    confidence: float = Field(ge=0, le=1)
    description: str
    recommendation: str = ""
    data_points: int = 0
    recent_value: Optional[float] = None
    previous_value: Optional[float] = None
    change_percent: Optional[float] = None


class GoalPredictionResponse(BaseModel):
    goal_id: int
    goal_title: str
    goal_type: str
    current_value: Optional[float] = None
    target_value: Optional[float] = None
    unit: Optional[str] = None
    deadline: Optional[str] = None
    progress_percent: int
    estimated_completion_date: Optional[str] = None
    days_to_completion: Optional[int] = None
    success_probability: float
    on_track: bool
    trend: Literal["ahead", "on_track", "behind", "at_risk"]
    recommendation: str


class QuickStatsResponse(BaseModel):
    total_data_points: int
    tracking_consistency: int = Field(description="Logged days as a share of the window (0–100).")
    overall_trend: Literal["improving", "stable", "declining"]
    top_strength: Optional[str] = None
    top_opportunity: Optional[str] = None


class ClientInsightResponse(BaseModel):
    client_id: int
    client_name: str
    trends: list[TrendVerdictResponse]
    goal_predictions: list[GoalPredictionResponse]
    summary: str
    summary_source: Literal["llm", "fallback"] = Field(
        description='"fallback" when the LLM is not configured or failed.'
    )
    quick_stats: QuickStatsResponse
    generated_at: str
