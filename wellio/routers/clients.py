"""
Clients router.

POST /clients                       — create a client
GET  /clients/{id}                  — read a client with its cached scores
GET  /clients/{id}/progress         — recalculate, persist and return the breakdown
POST /clients/recalculate-progress  — recalculate every client (optionally one coach's)
POST /clients/{id}/plans            — assign a wellness plan
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.models.client import Client, ClientStatus
from wellio.models.client_plan import ClientPlan, PlanStatus
from wellio.schemas.clients import (
    BulkRecalculationResponse,
    ClientCreate,
    ClientResponse,
    PlanCreate,
    PlanResponse,
    ProgressBreakdownResponse,
)
from wellio.schemas.common import NOT_FOUND_RESPONSE
from wellio.services import clients as client_service
from wellio.services.event_store import get_client
from wellio.services.progress_calculator import (
    ProgressBreakdown,
    update_all_clients_progress,
    update_client_progress,
)

router = APIRouter(prefix="/clients", tags=["clients"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def _client_to_response(c: Client) -> ClientResponse:
    return ClientResponse(
        id=c.id,
        name=c.name,
        email=c.email,
        coach_id=c.coach_id,
        status=_ev(c.status),
        goal_description=c.goal_description,
        last_active_at=c.last_active_at.isoformat() if c.last_active_at else None,
        progress_score=c.progress_score,
        goal_progress=c.goal_progress,
        weekly_progress=c.weekly_progress,
        activity_progress=c.activity_progress,
        progress_updated_at=c.progress_updated_at.isoformat() if c.progress_updated_at else None,
        created_at=c.created_at.isoformat() if c.created_at else "",
    )


def _breakdown_to_response(b: ProgressBreakdown) -> ProgressBreakdownResponse:
    return ProgressBreakdownResponse(
        client_id=b.client_id,
        reference_date=str(b.reference_date),
        composite_score=b.composite_score,
        goal_progress=b.goal_progress,
        weekly_progress=b.weekly_progress,
        activity_progress=b.activity_progress,
        days_since_activity=b.days_since_activity,
    )


def _plan_to_response(p: ClientPlan) -> PlanResponse:
    return PlanResponse(
        id=p.id,
        client_id=p.client_id,
        plan_name=p.plan_name,
        plan_content=p.plan_content or {},
        status=_ev(p.status),
        shared=p.shared,
        created_at=p.created_at.isoformat() if p.created_at else "",
    )


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a client",
)
def create_client(body: ClientCreate, db: Session = Depends(get_db)):
    client = client_service.create_client(
        db,
        name=body.name,
        email=body.email,
        coach_id=body.coach_id,
        goal_description=body.goal_description,
        status=ClientStatus(body.status),
    )
    return _client_to_response(client)


@router.post(
    "/recalculate-progress",
    response_model=BulkRecalculationResponse,
    summary="Recalculate progress for every client",
)
def recalculate_all(
    coach_id: Optional[str] = Query(default=None, description="Only this coach's clients."),
    db: Session = Depends(get_db),
):
    """
    Recalculates and persists the composite score of every client, or of
    one coach's clients when `coach_id` is given. A client whose
    recalculation fails is logged and reported in `failed_client_ids`;
    the others are still updated.
    """
    result = update_all_clients_progress(db, coach_id=coach_id)
    return BulkRecalculationResponse(
        updated=result.updated,
        failed=result.failed,
        failed_client_ids=result.failed_client_ids,
    )


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get a client",
    responses={404: NOT_FOUND_RESPONSE},
)
def read_client(client_id: int, db: Session = Depends(get_db)):
    return _client_to_response(get_client(db, client_id))


@router.get(
    "/{client_id}/progress",
    response_model=ProgressBreakdownResponse,
    summary="Recalculate and return the client's progress score",
    responses={404: NOT_FOUND_RESPONSE},
)
def read_progress(
    client_id: int,
    reference_date: Optional[date] = Query(
        default=None, description="Evaluate as of this day (defaults to today, UTC)."
    ),
    db: Session = Depends(get_db),
):
    """
    Computes the composite score from the current snapshot and stores it on
    the client (last write wins).

    ### Formula
    | Sub-score | Weight | Source |
    |---|---|---|
    | `goal_progress`     | 0.5 | mean progress of active long-term goals |
    | `weekly_progress`   | 0.3 | completed share of this Monday–Sunday week's schedule |
    | `activity_progress` | 0.2 | 100 on the day of the last activity, 0 after 14 idle days |

    Calling it again without new activity returns the same numbers.
    """
    breakdown = update_client_progress(db, client_id, today=reference_date)
    return _breakdown_to_response(breakdown)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

@router.post(
    "/{client_id}/plans",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a wellness plan",
    responses={404: NOT_FOUND_RESPONSE},
)
def create_plan(client_id: int, body: PlanCreate, db: Session = Depends(get_db)):
    """
    Shared plans in `assigned` or `active` status feed the daily plan
    reminder; today's workout name is read from `plan_content` when the
    first week lists one for today's weekday.
    """
    plan = client_service.assign_plan(
        db,
        client_id,
        plan_name=body.plan_name,
        plan_content=body.plan_content,
        status=PlanStatus(body.status),
        shared=body.shared,
    )
    return _plan_to_response(plan)
