"""
Goals router.

POST  /clients/{id}/goals  — create a goal
GET   /clients/{id}/goals  — list goals with per-goal progress
PATCH /goals/{id}          — partial update

Goal writes schedule a best-effort progress recalculation.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.schemas.common import NOT_FOUND_RESPONSE
from wellio.schemas.goals import GoalCreate, GoalListResponse, GoalResponse, GoalUpdate
from wellio.services import clients as client_service
from wellio.services.goal_progress import progress_of
from wellio.services.recalculation import schedule_recalculation

router = APIRouter(tags=["goals"])


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _goal_to_response(g: Goal) -> GoalResponse:
    return GoalResponse(
        id=g.id,
        client_id=g.client_id,
        goal_type=g.goal_type,
        title=g.title,
        description=g.description,
        unit=g.unit,
        scope=_ev(g.scope),
        status=_ev(g.status),
        baseline_value=g.baseline_value,
        current_value=g.current_value,
        target_value=g.target_value,
        deadline=str(g.deadline) if g.deadline else None,
        week_start_date=str(g.week_start_date) if g.week_start_date else None,
        progress_percent=round(progress_of(g), 1),
        created_at=g.created_at.isoformat() if g.created_at else "",
    )


@router.post(
    "/clients/{client_id}/goals",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a goal",
    responses={404: NOT_FOUND_RESPONSE},
)
def create_goal(
    client_id: int,
    body: GoalCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    goal = client_service.create_goal(
        db,
        client_id,
        goal_type=body.goal_type,
        title=body.title,
        description=body.description,
        unit=body.unit,
        scope=GoalScope(body.scope),
        baseline_value=body.baseline_value,
        current_value=body.current_value,
        target_value=body.target_value,
        deadline=body.deadline,
        week_start_date=body.week_start_date,
    )
    schedule_recalculation(background_tasks, client_id)
    return _goal_to_response(goal)


@router.get(
    "/clients/{client_id}/goals",
    response_model=GoalListResponse,
    summary="List a client's goals",
    responses={404: NOT_FOUND_RESPONSE},
)
def list_goals(
    client_id: int,
    goal_status: Optional[str] = Query(
        default=None,
        alias="status",
        pattern="^(active|completed|paused|abandoned)$",
        description="Filter by status. Omit for all.",
    ),
    db: Session = Depends(get_db),
):
    goals = client_service.list_goals(
        db, client_id, GoalStatus(goal_status) if goal_status else None
    )
    return GoalListResponse(total=len(goals), items=[_goal_to_response(g) for g in goals])


@router.patch(
    "/goals/{goal_id}",
    response_model=GoalResponse,
    summary="Update a goal",
    responses={404: NOT_FOUND_RESPONSE},
)
def update_goal(
    goal_id: int,
    body: GoalUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Only the fields present in the body are changed. Setting `status` to
    anything other than `active` removes the goal from the composite score.
    """
    changes = body.model_dump(exclude_unset=True)
    for required in ("title", "status"):
        if changes.get(required, "") is None:
            del changes[required]
    if "status" in changes:
        changes["status"] = GoalStatus(changes["status"])
    goal = client_service.update_goal(db, goal_id, changes)
    schedule_recalculation(background_tasks, goal.client_id)
    return _goal_to_response(goal)
