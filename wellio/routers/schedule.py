"""
Weekly schedule router.

POST /clients/{id}/schedule     — plan an item for a day
GET  /clients/{id}/schedule     — the Monday–Sunday week containing `day`
POST /schedule/{id}/completion  — mark done / not done (triggers recalculation)
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.models.schedule_item import WeeklyScheduleItem
from wellio.schemas.common import NOT_FOUND_RESPONSE
from wellio.schemas.schedule import (
    ScheduleCompletionRequest,
    ScheduleItemCreate,
    ScheduleItemResponse,
    ScheduleListResponse,
)
from wellio.services import event_store
from wellio.services.progress_calculator import week_bounds
from wellio.services.recalculation import schedule_recalculation

router = APIRouter(tags=["schedule"])


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _item_to_response(i: WeeklyScheduleItem) -> ScheduleItemResponse:
    return ScheduleItemResponse(
        id=i.id,
        client_id=i.client_id,
        scheduled_date=str(i.scheduled_date),
        title=i.title,
        item_type=i.item_type,
        completed=i.completed,
        completed_at=i.completed_at.isoformat() if i.completed_at else None,
    )


@router.post(
    "/clients/{client_id}/schedule",
    response_model=ScheduleItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a schedule item",
    responses={404: NOT_FOUND_RESPONSE},
)
def create_item(
    client_id: int,
    body: ScheduleItemCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    item = event_store.create_schedule_item(
        db, client_id, body.scheduled_date, body.title, body.item_type
    )
    schedule_recalculation(background_tasks, client_id)
    return _item_to_response(item)


@router.get(
    "/clients/{client_id}/schedule",
    response_model=ScheduleListResponse,
    summary="List a week's schedule",
    responses={404: NOT_FOUND_RESPONSE},
)
def list_items(
    client_id: int,
    day: Optional[date] = Query(default=None, description="Any day of the week (defaults to today)."),
    db: Session = Depends(get_db),
):
    event_store.get_client(db, client_id)
    start, end = week_bounds(day or _today())
    items = event_store.list_schedule_items(db, client_id, start, end)
    return ScheduleListResponse(
        week_start=str(start),
        week_end=str(end),
        total=len(items),
        completed=sum(1 for i in items if i.completed),
        items=[_item_to_response(i) for i in items],
    )


@router.post(
    "/schedule/{item_id}/completion",
    response_model=ScheduleItemResponse,
    summary="Mark a schedule item complete or incomplete",
    responses={404: NOT_FOUND_RESPONSE},
)
def set_completion(
    item_id: int,
    body: ScheduleCompletionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Completing an item also marks the client active. Either direction
    schedules a progress recalculation; the toggle itself never fails
    because of it.
    """
    item = event_store.set_schedule_item_completed(db, item_id, body.completed)
    schedule_recalculation(background_tasks, item.client_id)
    return _item_to_response(item)
