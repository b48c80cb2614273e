"""
Notification dispatcher: the external delivery boundary for reminders.

The reminder generator only needs `send(dispatch) -> bool`. The production
implementation fans a reminder out to every web-push subscription of the
client; subscriptions the push service reports as gone (404/410) are
deleted so they are not retried. A failure on one subscription never stops
delivery to the others and never propagates to the caller.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Protocol

import requests
from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from wellio.core.config import settings
from wellio.core.errors import SubscriptionNotFoundError
from wellio.models.reminder import PushSubscription
from wellio.services.event_store import get_client

logger = logging.getLogger(__name__)

EXPIRED_STATUS_CODES = (404, 410)


@dataclass
class ReminderDispatch:
    client_id: int
    title: str
    message: str
    reminder_type: str


class NotificationDispatcher(Protocol):
    def send(self, dispatch: ReminderDispatch) -> bool:
        """True when at least one delivery channel accepted the notification."""
        ...


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

def save_push_subscription(
    db: Session,
    client_id: int,
    endpoint: str,
    p256dh: str,
    auth: str,
) -> PushSubscription:
    """Register (or re-point) a browser endpoint. The endpoint is unique."""
    get_client(db, client_id)
    sub = db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()
    if sub is None:
        sub = PushSubscription(client_id=client_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.add(sub)
    else:
        sub.client_id = client_id
        sub.p256dh = p256dh
        sub.auth = auth
    db.commit()
    db.refresh(sub)
    return sub


def delete_push_subscription(db: Session, endpoint: str) -> None:
    sub = db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()
    if sub is None:
        raise SubscriptionNotFoundError(endpoint)
    db.delete(sub)
    db.commit()


def list_push_subscriptions(db: Session, client_id: int) -> list[PushSubscription]:
    return (
        db.query(PushSubscription)
        .filter(PushSubscription.client_id == client_id)
        .order_by(PushSubscription.id)
        .all()
    )


# ---------------------------------------------------------------------------
# Web push
# ---------------------------------------------------------------------------

def build_push_payload(dispatch: ReminderDispatch) -> str:
    return json.dumps({
        "type": "reminder",
        "title": "Wellio AI",
        "body": f"{dispatch.title}\n{dispatch.message}",
        "icon": "/icon-192.png",
        "badge": "/icon-72.png",
        "tag": f"wellio-reminder-{dispatch.reminder_type}",
        "data": {"url": "/client/ai-tracker", "reminderType": dispatch.reminder_type},
    })


class WebPushDispatcher:
    """Delivers reminders through pywebpush using the configured VAPID keys."""

    def __init__(self, db: Session):
        self.db = db

    def send(self, dispatch: ReminderDispatch) -> bool:
        if not settings.VAPID_PUBLIC_KEY or not settings.VAPID_PRIVATE_KEY:
            logger.warning("Reminder skipped: VAPID keys not configured")
            return False

        subscriptions = list_push_subscriptions(self.db, dispatch.client_id)
        if not subscriptions:
            logger.debug(f"Reminder skipped: client {dispatch.client_id} has no push subscriptions")
            return False

        payload = build_push_payload(dispatch)

        delivered = 0
        for sub in subscriptions:
            try:
                webpush(
                    subscription_info={
                        "endpoint": sub.endpoint,
                        "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
                    },
                    data=payload,
                    vapid_private_key=settings.VAPID_PRIVATE_KEY,
                    vapid_claims={"sub": settings.VAPID_CLAIM_EMAIL},
                )
                delivered += 1
            except WebPushException as e:
                status = getattr(e.response, "status_code", None)
                if status in EXPIRED_STATUS_CODES:
                    logger.info(
                        f"Push subscription expired for client {dispatch.client_id}, removing "
                        f"(...{sub.endpoint[-20:]})"
                    )
                    self.db.delete(sub)
                    self.db.commit()
                else:
                    logger.warning(f"Push delivery failed for client {dispatch.client_id}: {e}")
            except requests.exceptions.RequestException as e:
                logger.warning(f"Push service unreachable for client {dispatch.client_id}: {e}")
            except Exception:
                logger.exception(f"Unexpected push error for client {dispatch.client_id}")

        return delivered > 0
