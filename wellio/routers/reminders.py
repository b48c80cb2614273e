"""
Reminders router.

GET    /clients/{id}/reminder-settings   — current settings (created from defaults)
PUT    /clients/{id}/reminder-settings   — partial update
POST   /clients/{id}/push-subscriptions  — register a browser push endpoint
DELETE /push-subscriptions               — unregister an endpoint
POST   /clients/{id}/reminders/trigger   — run one pass now (ignores quiet hours)
GET    /clients/{id}/reminders/sent      — today's (or a given day's) sent reminders
POST   /reminders/run                    — one full sweep over all eligible clients
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.models.reminder import ClientReminderSettings, PushSubscription, SentReminder
from wellio.schemas.common import NOT_FOUND_RESPONSE
from wellio.schemas.reminders import (
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    PushSubscriptionResponse,
    ReminderRunResponse,
    ReminderSettingsResponse,
    ReminderSettingsUpdate,
    SentReminderListResponse,
    SentReminderResponse,
    SweepResponse,
)
from wellio.services import event_store, notification_dispatcher, reminder_service
from wellio.services.notification_dispatcher import WebPushDispatcher

router = APIRouter(tags=["reminders"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _settings_to_response(s: ClientReminderSettings) -> ReminderSettingsResponse:
    return ReminderSettingsResponse.model_validate(s)


def _subscription_to_response(s: PushSubscription) -> PushSubscriptionResponse:
    return PushSubscriptionResponse(
        id=s.id,
        client_id=s.client_id,
        endpoint=s.endpoint,
        created_at=s.created_at.isoformat() if s.created_at else "",
    )


def _sent_to_response(r: SentReminder) -> SentReminderResponse:
    return SentReminderResponse(
        id=r.id,
        reminder_type=r.reminder_type,
        category=r.category,
        title=r.title,
        message=r.message,
        sent_date=str(r.sent_date),
        related_goal_id=r.related_goal_id,
        related_plan_id=r.related_plan_id,
        sent_at=r.sent_at.isoformat() if r.sent_at else "",
    )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@router.get(
    "/clients/{client_id}/reminder-settings",
    response_model=ReminderSettingsResponse,
    summary="Get reminder settings",
    responses={404: NOT_FOUND_RESPONSE},
)
def read_settings(client_id: int, db: Session = Depends(get_db)):
    """Returns the client's settings, creating them from the defaults on first access."""
    return _settings_to_response(reminder_service.get_or_create_reminder_settings(db, client_id))


@router.put(
    "/clients/{client_id}/reminder-settings",
    response_model=ReminderSettingsResponse,
    summary="Update reminder settings",
    responses={404: NOT_FOUND_RESPONSE},
)
def update_settings(
    client_id: int,
    body: ReminderSettingsUpdate,
    db: Session = Depends(get_db),
):
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    row = reminder_service.update_reminder_settings(db, client_id, **changes)
    return _settings_to_response(row)


# ---------------------------------------------------------------------------
# Push subscriptions
# ---------------------------------------------------------------------------

@router.post(
    "/clients/{client_id}/push-subscriptions",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a push subscription",
    responses={404: NOT_FOUND_RESPONSE},
)
def create_subscription(
    client_id: int,
    body: PushSubscriptionCreate,
    db: Session = Depends(get_db),
):
    """Idempotent per endpoint: re-registering an endpoint updates its keys and owner."""
    sub = notification_dispatcher.save_push_subscription(
        db, client_id, body.endpoint, body.keys.p256dh, body.keys.auth
    )
    return _subscription_to_response(sub)


@router.delete(
    "/push-subscriptions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a push subscription",
    responses={404: NOT_FOUND_RESPONSE},
)
def delete_subscription(body: PushSubscriptionDelete, db: Session = Depends(get_db)):
    notification_dispatcher.delete_push_subscription(db, body.endpoint)


# ---------------------------------------------------------------------------
# Reminder runs
# ---------------------------------------------------------------------------

@router.post(
    "/clients/{client_id}/reminders/trigger",
    response_model=ReminderRunResponse,
    summary="Run a reminder pass for one client now",
    responses={404: NOT_FOUND_RESPONSE},
)
def trigger_reminders(client_id: int, db: Session = Depends(get_db)):
    """
    Manual trigger used by coaches. Quiet hours are bypassed, but the
    one-per-type-per-day rule and the daily cap still apply.

    `skipped_reason` explains an empty run, e.g.
    `"Daily reminder limit reached"` or
    `"Client does not have push notifications enabled"`.
    """
    client = event_store.get_client(db, client_id)
    result = reminder_service.process_reminders_for_client(
        db, client, WebPushDispatcher(db), bypass_quiet_hours=True
    )
    return ReminderRunResponse(
        client_id=result.client_id,
        sent_count=result.sent_count,
        sent_types=result.sent_types,
        skipped_reason=result.skipped_reason,
    )


@router.get(
    "/clients/{client_id}/reminders/sent",
    response_model=SentReminderListResponse,
    summary="List reminders sent on a day",
    responses={404: NOT_FOUND_RESPONSE},
)
def list_sent(
    client_id: int,
    sent_date: Optional[date] = Query(
        default=None, description="Client-local day. Defaults to today in the client's timezone."
    ),
    db: Session = Depends(get_db),
):
    settings_row = reminder_service.get_or_create_reminder_settings(db, client_id)
    day = sent_date or reminder_service.local_today(settings_row)
    rows = event_store.get_sent_reminders(db, client_id, day)
    return SentReminderListResponse(
        client_id=client_id,
        sent_date=str(day),
        total=len(rows),
        items=[_sent_to_response(r) for r in rows],
    )


@router.post(
    "/reminders/run",
    response_model=SweepResponse,
    summary="Run one reminder sweep",
)
def run_sweep():
    """
    Same work as one scheduler tick: every active client with at least one
    push subscription gets a reminder pass. Clients are processed one after
    another; a failing client is logged and skipped.
    """
    sweep = reminder_service.process_all_reminders()
    return SweepResponse(
        processed_clients=sweep.processed_clients,
        sent_reminders=sweep.sent_reminders,
        failed_clients=sweep.failed_clients,
    )
