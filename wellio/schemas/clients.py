"""
Client, progress and plan schemas.

POST /clients                       → ClientCreate          → ClientResponse
GET  /clients/{id}/progress         → ProgressBreakdownResponse
POST /clients/recalculate-progress  → BulkRecalculationResponse
POST /clients/{id}/plans            → PlanCreate            → PlanResponse
"""
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=256, examples=["Jordan Lee"])
    email: str = Field(min_length=3, max_length=320, examples=["jordan@example.com"])
    coach_id: Optional[str] = Field(default=None, max_length=64)
    goal_description: Optional[str] = Field(default=None, max_length=2000)
    status: Literal["active", "paused", "inactive"] = "active"


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    coach_id: Optional[str] = None
    status: str
    goal_description: Optional[str] = None
    last_active_at: Optional[str] = None
    progress_score: int
    goal_progress: int
    weekly_progress: int
    activity_progress: int
    progress_updated_at: Optional[str] = None
    created_at: str


class ProgressBreakdownResponse(BaseModel):
    """Composite score and the three sub-scores it was computed from."""
    client_id: int
    reference_date: str = Field(description="Day the week and recency were evaluated for.")
    composite_score: int = Field(
        description="round(0.5·goal + 0.3·weekly + 0.2·activity), clamped to 0–100.",
        examples=[62],
    )
    goal_progress: int = Field(description="Mean progress of active long-term goals (0–100).")
    weekly_progress: int = Field(description="Completed share of this week's schedule (0–100).")
    activity_progress: int = Field(description="Recency of the last logged activity (0–100).")
    days_since_activity: Optional[int] = Field(
        default=None, description="Null when the client has never been active."
    )


class BulkRecalculationResponse(BaseModel):
    updated: int
    failed: int
    failed_client_ids: list[int]


class PlanCreate(BaseModel):
    plan_name: str = Field(min_length=1, max_length=256, examples=["8-week strength block"])
    plan_content: dict[str, Any] = Field(
        default_factory=dict,
        description='{"weekly_programs": {"week_1": {"workouts": [{"day": "monday", "name": "..."}]}}}',
    )
    status: Literal["draft", "assigned", "active", "archived"] = "assigned"
    shared: bool = True


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    plan_name: str
    plan_content: dict[str, Any]
    status: str
    shared: bool
    created_at: str
