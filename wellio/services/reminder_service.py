"""
Reminder candidate generator.

One pass for one client:
  1. load (or lazily create) the client's reminder settings
  2. stop if reminders are disabled, or it is quiet hours (unless bypassed)
  3. stop if today's cap is already reached
  4. build candidates: inactivity, then goal, then plan; each deduplicated
     against today's SentReminder types
  5. truncate to the remaining slots, dispatch in order, and write a
     SentReminder only for dispatches that succeeded

"Today" is the client's local calendar day in the settings timezone; it is
the day used for both dedup and the cap.

Passes for the same client are serialized with a process-local lock. The
unique constraint on (client_id, reminder_type, sent_date) is the last
guard against duplicates when several processes run sweeps.

Public API
----------
get_or_create_reminder_settings(db, client_id)                -> ClientReminderSettings
is_within_quiet_hours(settings, now)                          -> bool
process_reminders_for_client(db, client, dispatcher, now, …)  -> ReminderRunResult
process_all_reminders(session_factory, dispatcher_factory)    -> SweepResult
"""
from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wellio.db import base as db_base
from wellio.models.client import Client, ClientStatus
from wellio.models.client_plan import ClientPlan, PlanStatus
from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.models.reminder import (
    DEFAULT_REMINDER_SETTINGS,
    ClientReminderSettings,
    PushSubscription,
    ReminderCategory,
    ReminderType,
)
from wellio.services import event_store
from wellio.services.goal_progress import progress_of, round_half_up
from wellio.services.notification_dispatcher import (
    NotificationDispatcher,
    ReminderDispatch,
    WebPushDispatcher,
)

logger = logging.getLogger(__name__)

NEVER_ACTIVE_DAYS = 999

MEAL_EVENT_TYPES = ("nutrition",)
WORKOUT_EVENT_TYPES = ("workout",)
CHECKIN_EVENT_TYPES = ("checkin_mood", "weight")

SKIP_DISABLED = "Reminders are disabled for this client"
SKIP_QUIET_HOURS = "Currently within quiet hours"
SKIP_DAILY_LIMIT = "Daily reminder limit reached"
SKIP_NOTHING_DUE = "No reminders are due (client has no active goals, plans, or recent activity)"
SKIP_NO_DELIVERY = "Client does not have push notifications enabled"

_GOAL_REMINDER_TYPES = {
    "weight": ReminderType.GOAL_WEIGHT,
    "lose_weight": ReminderType.GOAL_WEIGHT,
    "maintain_weight": ReminderType.GOAL_WEIGHT,
    "workout": ReminderType.GOAL_WORKOUT,
    "fitness": ReminderType.GOAL_WORKOUT,
    "improve_fitness_endurance": ReminderType.GOAL_WORKOUT,
    "gain_muscle_strength": ReminderType.GOAL_WORKOUT,
    "nutrition": ReminderType.GOAL_NUTRITION,
    "eat_healthier": ReminderType.GOAL_NUTRITION,
    "calories": ReminderType.GOAL_NUTRITION,
}

_DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ReminderCandidate:
    client_id: int
    reminder_type: str
    category: str
    title: str
    message: str
    related_goal_id: Optional[int] = None
    related_plan_id: Optional[int] = None


@dataclass
class ReminderRunResult:
    client_id: int
    sent_count: int = 0
    sent_types: list[str] = field(default_factory=list)
    skipped_reason: Optional[str] = None


@dataclass
class SweepResult:
    processed_clients: int = 0
    sent_reminders: int = 0
    failed_clients: int = 0


# ---------------------------------------------------------------------------
# Per-client serialization
# ---------------------------------------------------------------------------

# Entries disappear once no pass holds the lock.
_client_locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()
_client_locks_guard = threading.Lock()


def _lock_for(client_id: int) -> threading.Lock:
    with _client_locks_guard:
        lock = _client_locks.get(client_id)
        if lock is None:
            lock = threading.Lock()
            _client_locks[client_id] = lock
        return lock


# ---------------------------------------------------------------------------
# Settings & clock
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def get_or_create_reminder_settings(db: Session, client_id: int) -> ClientReminderSettings:
    """Lazily create the settings row from DEFAULT_REMINDER_SETTINGS."""
    row = (
        db.query(ClientReminderSettings)
        .filter(ClientReminderSettings.client_id == client_id)
        .first()
    )
    if row is not None:
        return row

    event_store.get_client(db, client_id)
    d = DEFAULT_REMINDER_SETTINGS
    row = ClientReminderSettings(
        client_id=client_id,
        reminders_enabled=d.reminders_enabled,
        goal_reminders_enabled=d.goal_reminders_enabled,
        plan_reminders_enabled=d.plan_reminders_enabled,
        inactivity_reminders_enabled=d.inactivity_reminders_enabled,
        inactivity_threshold_days=d.inactivity_threshold_days,
        quiet_hours_start=d.quiet_hours_start,
        quiet_hours_end=d.quiet_hours_end,
        timezone=d.timezone,
        max_reminders_per_day=d.max_reminders_per_day,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first.
        db.rollback()
        return (
            db.query(ClientReminderSettings)
            .filter(ClientReminderSettings.client_id == client_id)
            .one()
        )
    db.refresh(row)
    return row


def update_reminder_settings(db: Session, client_id: int, **changes) -> ClientReminderSettings:
    row = get_or_create_reminder_settings(db, client_id)
    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def settings_zone(settings: ClientReminderSettings) -> ZoneInfo:
    try:
        return ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            f"Unknown reminder timezone {settings.timezone!r} for client "
            f"{settings.client_id}; using {DEFAULT_REMINDER_SETTINGS.timezone}"
        )
        return ZoneInfo(DEFAULT_REMINDER_SETTINGS.timezone)


def local_now(settings: ClientReminderSettings, now: Optional[datetime] = None) -> datetime:
    return _as_utc(now or _now()).astimezone(settings_zone(settings))


def local_today(settings: ClientReminderSettings, now: Optional[datetime] = None) -> date:
    return local_now(settings, now).date()


def _parse_hhmm(value: str, fallback: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (ValueError, AttributeError):
        hours, minutes = fallback.split(":")
        return time(int(hours), int(minutes))


def is_within_quiet_hours(settings: ClientReminderSettings, now: Optional[datetime] = None) -> bool:
    """Quiet-hours check in the client's timezone. Windows may wrap midnight."""
    current = local_now(settings, now).time().replace(second=0, microsecond=0)
    start = _parse_hhmm(settings.quiet_hours_start, DEFAULT_REMINDER_SETTINGS.quiet_hours_start)
    end = _parse_hhmm(settings.quiet_hours_end, DEFAULT_REMINDER_SETTINGS.quiet_hours_end)

    if start == end:
        return False
    if start > end:
        return current >= start or current < end
    return start <= current < end


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

def goal_reminder_type(goal_type: str) -> str:
    return _GOAL_REMINDER_TYPES.get(goal_type, ReminderType.GOAL_GENERAL)


def _days_since(
    db: Session,
    client: Client,
    event_types: tuple[str, ...],
    today: date,
    zone: ZoneInfo,
) -> int:
    last = event_store.latest_event_date(db, client.id, event_types)
    if last is None and client.last_active_at is not None:
        last = _as_utc(client.last_active_at).astimezone(zone).date()
    if last is None:
        return NEVER_ACTIVE_DAYS
    return max(0, (today - last).days)


def inactivity_candidates(
    db: Session,
    client: Client,
    settings: ClientReminderSettings,
    today: date,
    sent_types: set[str],
) -> list[ReminderCandidate]:
    if not settings.inactivity_reminders_enabled:
        return []

    zone = settings_zone(settings)
    threshold = settings.inactivity_threshold_days
    out: list[ReminderCandidate] = []

    days_meal = _days_since(db, client, MEAL_EVENT_TYPES, today, zone)
    if days_meal >= threshold and ReminderType.INACTIVITY_MEALS not in sent_types:
        out.append(ReminderCandidate(
            client_id=client.id,
            reminder_type=ReminderType.INACTIVITY_MEALS,
            category=ReminderCategory.INACTIVITY,
            title="We miss your meal logs!",
            message=(
                f"It's been {days_meal} days since your last meal log. "
                "Quick check-in: what did you eat today?"
            ),
        ))

    days_workout = _days_since(db, client, WORKOUT_EVENT_TYPES, today, zone)
    if days_workout >= threshold and ReminderType.INACTIVITY_WORKOUTS not in sent_types:
        out.append(ReminderCandidate(
            client_id=client.id,
            reminder_type=ReminderType.INACTIVITY_WORKOUTS,
            category=ReminderCategory.INACTIVITY,
            title="Time to get moving!",
            message=(
                f"It's been {days_workout} days since your last workout. "
                "Even a short session counts!"
            ),
        ))

    # Check-ins get one extra day of slack.
    days_checkin = _days_since(db, client, CHECKIN_EVENT_TYPES, today, zone)
    if days_checkin >= threshold + 1 and ReminderType.INACTIVITY_CHECKIN not in sent_types:
        out.append(ReminderCandidate(
            client_id=client.id,
            reminder_type=ReminderType.INACTIVITY_CHECKIN,
            category=ReminderCategory.INACTIVITY,
            title="How are you feeling?",
            message=(
                "We haven't heard from you in a while. "
                "A quick check-in helps your coach support you better!"
            ),
        ))

    return out


def _goal_candidate(client: Client, goal: Goal, reminder_type: str) -> ReminderCandidate:
    if reminder_type == ReminderType.GOAL_WEIGHT:
        title = "Time to log your weight!"
        message = (
            f"Track your progress toward your {goal.title} goal. "
            f"You're {round_half_up(progress_of(goal))}% there!"
        )
    elif reminder_type == ReminderType.GOAL_WORKOUT:
        title = "Ready for today's workout?"
        message = f"Keep up the momentum on your {goal.title} goal! Log your workout when you're done."
    elif reminder_type == ReminderType.GOAL_NUTRITION:
        title = "How's your nutrition today?"
        message = f"Stay on track with your {goal.title} goal. Log your meals to track your progress!"
    else:
        title = "Check in on your goal!"
        message = f"Don't forget to track your progress on: {goal.title}"

    return ReminderCandidate(
        client_id=client.id,
        reminder_type=reminder_type,
        category=ReminderCategory.GOAL,
        title=title,
        message=message,
        related_goal_id=goal.id,
    )


def goal_candidates(
    db: Session,
    client: Client,
    settings: ClientReminderSettings,
    sent_types: set[str],
) -> list[ReminderCandidate]:
    """One candidate per goal reminder type per day, first active goal wins."""
    if not settings.goal_reminders_enabled:
        return []

    goals = (
        db.query(Goal)
        .filter(
            Goal.client_id == client.id,
            Goal.status == GoalStatus.active,
            Goal.scope == GoalScope.long_term,
        )
        .order_by(Goal.id)
        .all()
    )
    seen = set(sent_types)
    out: list[ReminderCandidate] = []
    for goal in goals:
        reminder_type = goal_reminder_type(goal.goal_type)
        if reminder_type in seen:
            continue
        out.append(_goal_candidate(client, goal, reminder_type))
        seen.add(reminder_type)
    return out


def todays_plan_activity(plan_content: Optional[dict], today: date) -> Optional[str]:
    """Name of today's workout from the first week of a plan, if the plan has one."""
    programs = (plan_content or {}).get("weekly_programs")
    if not isinstance(programs, dict) or not programs:
        return None
    week = next(iter(programs.values()))
    workouts = week.get("workouts") if isinstance(week, dict) else None
    if not isinstance(workouts, list):
        return None

    day_name = _DAY_NAMES[today.weekday()]
    for workout in workouts:
        if isinstance(workout, dict) and str(workout.get("day", "")).lower() == day_name:
            return workout.get("name") or workout.get("type") or "scheduled activity"
    return None


def plan_candidates(
    db: Session,
    client: Client,
    settings: ClientReminderSettings,
    today: date,
    sent_types: set[str],
) -> list[ReminderCandidate]:
    if not settings.plan_reminders_enabled or ReminderType.PLAN_DAILY in sent_types:
        return []

    plan = (
        db.query(ClientPlan)
        .filter(
            ClientPlan.client_id == client.id,
            ClientPlan.shared == True,  # noqa: E712
            ClientPlan.status.in_([PlanStatus.assigned, PlanStatus.active]),
        )
        .order_by(ClientPlan.created_at.desc(), ClientPlan.id.desc())
        .first()
    )
    if plan is None:
        return []

    activity = todays_plan_activity(plan.plan_content, today) or "your planned activities"
    return [ReminderCandidate(
        client_id=client.id,
        reminder_type=ReminderType.PLAN_DAILY,
        category=ReminderCategory.PLAN,
        title=f"Today's plan: {activity}",
        message=f"Did you complete {activity}? Log your progress to stay on track!",
        related_plan_id=plan.id,
    )]


def build_candidates(
    db: Session,
    client: Client,
    settings: ClientReminderSettings,
    today: date,
) -> list[ReminderCandidate]:
    """All due candidates in dispatch order: inactivity, goal, plan."""
    sent_types = event_store.sent_reminder_types(db, client.id, today)
    return (
        inactivity_candidates(db, client, settings, today, sent_types)
        + goal_candidates(db, client, settings, sent_types)
        + plan_candidates(db, client, settings, today, sent_types)
    )


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

def _record_sent(db: Session, candidate: ReminderCandidate, today: date) -> bool:
    try:
        event_store.record_sent_reminder(
            db,
            client_id=candidate.client_id,
            reminder_type=candidate.reminder_type,
            category=candidate.category,
            title=candidate.title,
            message=candidate.message,
            sent_date=today,
            related_goal_id=candidate.related_goal_id,
            related_plan_id=candidate.related_plan_id,
        )
        db.commit()
        return True
    except IntegrityError:
        # Another process recorded this type for today first.
        db.rollback()
        logger.warning(
            f"Duplicate reminder {candidate.reminder_type} for client "
            f"{candidate.client_id} on {today}; not recorded twice"
        )
        return False


def process_reminders_for_client(
    db: Session,
    client: Client,
    dispatcher: NotificationDispatcher,
    now: Optional[datetime] = None,
    bypass_quiet_hours: bool = False,
) -> ReminderRunResult:
    with _lock_for(client.id):
        return _process_locked(db, client, dispatcher, now, bypass_quiet_hours)


def _process_locked(
    db: Session,
    client: Client,
    dispatcher: NotificationDispatcher,
    now: Optional[datetime],
    bypass_quiet_hours: bool,
) -> ReminderRunResult:
    result = ReminderRunResult(client_id=client.id)
    now = _as_utc(now or _now())
    settings = get_or_create_reminder_settings(db, client.id)

    if not settings.reminders_enabled:
        result.skipped_reason = SKIP_DISABLED
        return result

    if not bypass_quiet_hours and is_within_quiet_hours(settings, now):
        logger.debug(f"Skipping reminders for client {client.id} during quiet hours")
        result.skipped_reason = SKIP_QUIET_HOURS
        return result

    today = local_today(settings, now)
    already_sent = event_store.count_sent_reminders(db, client.id, today)
    if already_sent >= settings.max_reminders_per_day:
        logger.debug(f"Max daily reminders reached for client {client.id} ({already_sent})")
        result.skipped_reason = SKIP_DAILY_LIMIT
        return result

    candidates = build_candidates(db, client, settings, today)
    if not candidates:
        result.skipped_reason = SKIP_NOTHING_DUE
        return result

    to_send = candidates[: settings.max_reminders_per_day - already_sent]
    for candidate in to_send:
        try:
            delivered = dispatcher.send(ReminderDispatch(
                client_id=client.id,
                title=candidate.title,
                message=candidate.message,
                reminder_type=candidate.reminder_type,
            ))
        except Exception:
            logger.exception(
                f"Dispatch of {candidate.reminder_type} failed for client {client.id}; not counted"
            )
            continue
        if not delivered:
            continue
        if _record_sent(db, candidate, today):
            result.sent_count += 1
            result.sent_types.append(candidate.reminder_type)
            logger.info(
                f"Reminder sent to client {client.id}: {candidate.reminder_type}",
                extra={"context": {"client_id": client.id, "reminder_type": candidate.reminder_type}},
            )

    if result.sent_count == 0:
        result.skipped_reason = SKIP_NO_DELIVERY
    return result


def process_all_reminders(
    session_factory: Optional[Callable[[], Session]] = None,
    dispatcher_factory: Optional[Callable[[Session], NotificationDispatcher]] = None,
    now: Optional[datetime] = None,
) -> SweepResult:
    """Sequential sweep over active clients with at least one push subscription."""
    factory = session_factory or db_base.SessionLocal
    make_dispatcher = dispatcher_factory or WebPushDispatcher
    sweep = SweepResult()

    db = factory()
    try:
        clients = (
            db.query(Client)
            .filter(
                Client.status == ClientStatus.active,
                Client.id.in_(select(PushSubscription.client_id)),
            )
            .order_by(Client.id)
            .all()
        )
        logger.info(f"Starting reminder sweep over {len(clients)} clients with push subscriptions")
        dispatcher = make_dispatcher(db)

        for client in clients:
            try:
                run = process_reminders_for_client(db, client, dispatcher, now=now)
                sweep.sent_reminders += run.sent_count
                sweep.processed_clients += 1
            except Exception:
                db.rollback()
                sweep.failed_clients += 1
                logger.exception(f"Reminder processing failed for client {client.id}")
    finally:
        db.close()

    logger.info(
        f"Reminder sweep complete: processed={sweep.processed_clients} "
        f"sent={sweep.sent_reminders} failed={sweep.failed_clients}"
    )
    return sweep
