"""
Weekly schedule schemas.

POST /clients/{id}/schedule      → ScheduleItemCreate     → ScheduleItemResponse
GET  /clients/{id}/schedule      → ScheduleListResponse
POST /schedule/{id}/completion   → ScheduleCompletionRequest → ScheduleItemResponse
"""
from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ScheduleItemCreate(BaseModel):
    scheduled_date: date = Field(examples=["2026-10-14"])
    title: str = Field(min_length=1, max_length=256, examples=["Upper body strength"])
    item_type: str = Field(default="workout", max_length=32)


class ScheduleCompletionRequest(BaseModel):
    completed: bool = True


class ScheduleItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    scheduled_date: str
    title: str
    item_type: str
    completed: bool
    completed_at: Optional[str] = None


class ScheduleListResponse(BaseModel):
    week_start: str
    week_end: str
    total: int
    completed: int
    items: list[ScheduleItemResponse]
