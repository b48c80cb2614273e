"""
Clients, goals and wellness plans.

Thin persistence helpers; the scoring lives in progress_calculator and the
reminders in reminder_service. Goal writes are followed by a best-effort
progress recalculation scheduled by the router.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from wellio.core.errors import GoalNotFoundError
from wellio.models.client import Client, ClientStatus
from wellio.models.client_plan import ClientPlan, PlanStatus
from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.services.event_store import get_client


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

def create_client(
    db: Session,
    name: str,
    email: str,
    coach_id: Optional[str] = None,
    goal_description: Optional[str] = None,
    status: ClientStatus = ClientStatus.active,
) -> Client:
    client = Client(
        name=name,
        email=email,
        coach_id=coach_id,
        goal_description=goal_description,
        status=status,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

def create_goal(
    db: Session,
    client_id: int,
    goal_type: str,
    title: str,
    target_value: Optional[float] = None,
    current_value: Optional[float] = 0.0,
    baseline_value: Optional[float] = None,
    unit: Optional[str] = None,
    description: Optional[str] = None,
    scope: GoalScope = GoalScope.long_term,
    deadline: Optional[date] = None,
    week_start_date: Optional[date] = None,
) -> Goal:
    get_client(db, client_id)
    goal = Goal(
        client_id=client_id,
        goal_type=goal_type,
        title=title,
        description=description,
        unit=unit,
        scope=scope,
        status=GoalStatus.active,
        baseline_value=baseline_value,
        current_value=current_value,
        target_value=target_value,
        deadline=deadline,
        week_start_date=week_start_date,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def get_goal(db: Session, goal_id: int) -> Goal:
    goal = db.get(Goal, goal_id)
    if goal is None:
        raise GoalNotFoundError(goal_id)
    return goal


def list_goals(
    db: Session,
    client_id: int,
    status: Optional[GoalStatus] = None,
) -> list[Goal]:
    get_client(db, client_id)
    q = db.query(Goal).filter(Goal.client_id == client_id)
    if status is not None:
        q = q.filter(Goal.status == status)
    return q.order_by(Goal.id).all()


def update_goal(db: Session, goal_id: int, changes: dict[str, Any]) -> Goal:
    """Apply a partial update. Only keys present in `changes` are touched."""
    goal = get_goal(db, goal_id)
    for key, value in changes.items():
        setattr(goal, key, value)
    db.commit()
    db.refresh(goal)
    return goal


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

def assign_plan(
    db: Session,
    client_id: int,
    plan_name: str,
    plan_content: dict[str, Any],
    status: PlanStatus = PlanStatus.assigned,
    shared: bool = True,
) -> ClientPlan:
    get_client(db, client_id)
    plan = ClientPlan(
        client_id=client_id,
        plan_name=plan_name,
        plan_content=plan_content,
        status=status,
        shared=shared,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan
