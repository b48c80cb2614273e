"""
Composite progress calculator.

Definition
----------
compositeScore = round(0.5 * goalProgress + 0.3 * weeklyProgress + 0.2 * activityProgress)

clamped to [0, 100], computed from the rounded sub-scores:

  goalProgress      mean signed-ratio progress of the active long-term goals
                    (see goal_progress.py).
  weeklyProgress    completed / planned schedule items in the Monday–Sunday
                    week containing the reference day. Weeks without schedule
                    items fall back to that week's weekly-scope goals.
  activityProgress  recency of the last logged activity. 100 on the day of
                    the activity, decaying linearly to 0 after
                    ACTIVITY_DECAY_DAYS of inactivity.

The weights are fixed constants; changing them changes every stored score.

Public API
----------
calculate_client_progress(db, client_id, today)   -> ProgressBreakdown   (pure read)
update_client_progress(db, client_id, today)      -> ProgressBreakdown   (persist + commit)
update_all_clients_progress(db, coach_id, today)  -> BulkRecalculationResult
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from wellio.models.client import Client
from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.services import event_store
from wellio.services.goal_progress import aggregate_goal_progress, round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GOAL_WEIGHT     = 0.5
WEEKLY_WEIGHT   = 0.3
ACTIVITY_WEIGHT = 0.2

ACTIVITY_DECAY_DAYS = 14


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ProgressBreakdown:
    client_id: int
    composite_score: int
    goal_progress: int
    weekly_progress: int
    activity_progress: int
    reference_date: date
    days_since_activity: Optional[int] = None


@dataclass
class BulkRecalculationResult:
    updated: int = 0
    failed: int = 0
    failed_client_ids: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `day`."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def composite_score(goal_progress: int, weekly_progress: int, activity_progress: int) -> int:
    raw = (
        GOAL_WEIGHT * goal_progress
        + WEEKLY_WEIGHT * weekly_progress
        + ACTIVITY_WEIGHT * activity_progress
    )
    return round_half_up(max(0.0, min(100.0, raw)))


def activity_score(days_since_activity: Optional[int]) -> int:
    """Recency score: 100 today, 0 after ACTIVITY_DECAY_DAYS, 0 if never active."""
    if days_since_activity is None:
        return 0
    days = max(0, days_since_activity)
    return round_half_up(max(0.0, 100.0 * (1 - days / ACTIVITY_DECAY_DAYS)))


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------

def _goal_progress(db: Session, client_id: int) -> int:
    goals = (
        db.query(Goal)
        .filter(
            Goal.client_id == client_id,
            Goal.status == GoalStatus.active,
            Goal.scope == GoalScope.long_term,
        )
        .all()
    )
    return aggregate_goal_progress(goals)


def _weekly_progress(db: Session, client_id: int, today: date) -> int:
    start, end = week_bounds(today)
    items = event_store.list_schedule_items(db, client_id, start, end)
    if items:
        done = sum(1 for i in items if i.completed)
        return round_half_up(done / len(items) * 100)

    weekly_goals = (
        db.query(Goal)
        .filter(
            Goal.client_id == client_id,
            Goal.scope == GoalScope.weekly,
            Goal.week_start_date >= start,
            Goal.week_start_date <= end,
        )
        .all()
    )
    if not weekly_goals:
        return 0
    done = sum(
        1 for g in weekly_goals
        if g.status == GoalStatus.completed
        or (g.target_value is not None and (g.current_value or 0) >= g.target_value)
    )
    return round_half_up(done / len(weekly_goals) * 100)


def last_activity_date(db: Session, client: Client) -> Optional[date]:
    """Most recent of: logged event day, schedule completion, last_active_at."""
    candidates = [
        event_store.latest_event_date(db, client.id),
        event_store.latest_completion_date(db, client.id),
    ]
    if client.last_active_at is not None:
        candidates.append(client.last_active_at.date())
    known = [d for d in candidates if d is not None]
    return max(known) if known else None


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def calculate_client_progress(
    db: Session,
    client_id: int,
    today: Optional[date] = None,
) -> ProgressBreakdown:
    """Compute the breakdown for one client. Reads only, never writes."""
    today = today or _today()
    client = event_store.get_client(db, client_id)

    goal_progress = _goal_progress(db, client_id)
    weekly_progress = _weekly_progress(db, client_id, today)

    last_day = last_activity_date(db, client)
    days_since = (today - last_day).days if last_day is not None else None
    activity_progress = activity_score(days_since)

    return ProgressBreakdown(
        client_id=client_id,
        composite_score=composite_score(goal_progress, weekly_progress, activity_progress),
        goal_progress=goal_progress,
        weekly_progress=weekly_progress,
        activity_progress=activity_progress,
        reference_date=today,
        days_since_activity=max(0, days_since) if days_since is not None else None,
    )


def update_client_progress(
    db: Session,
    client_id: int,
    today: Optional[date] = None,
) -> ProgressBreakdown:
    """Recalculate and persist the cached breakdown on the Client row."""
    breakdown = calculate_client_progress(db, client_id, today)
    client = event_store.get_client(db, client_id)
    client.progress_score = breakdown.composite_score
    client.goal_progress = breakdown.goal_progress
    client.weekly_progress = breakdown.weekly_progress
    client.activity_progress = breakdown.activity_progress
    client.progress_updated_at = datetime.now(tz=timezone.utc)
    db.commit()
    return breakdown


def update_all_clients_progress(
    db: Session,
    coach_id: Optional[str] = None,
    today: Optional[date] = None,
) -> BulkRecalculationResult:
    """Recalculate every client (optionally one coach's). Failures are skipped."""
    q = db.query(Client.id)
    if coach_id:
        q = q.filter(Client.coach_id == coach_id)
    client_ids = [row.id for row in q.order_by(Client.id).all()]

    result = BulkRecalculationResult()
    for client_id in client_ids:
        try:
            update_client_progress(db, client_id, today)
            result.updated += 1
        except Exception:
            db.rollback()
            logger.exception(f"Progress recalculation failed for client {client_id}")
            result.failed += 1
            result.failed_client_ids.append(client_id)

    logger.info(
        f"Bulk progress recalculation complete: updated={result.updated} failed={result.failed}"
    )
    return result
