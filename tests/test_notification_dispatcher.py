"""
Tests for web-push delivery.

pywebpush is replaced with a recorder so nothing leaves the process. Covers:
  - missing VAPID keys or no subscriptions -> nothing sent
  - 404/410 from the push service removes the subscription
  - other push errors keep the subscription
  - a network error on one subscription does not stop the others
"""
from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import requests
from pywebpush import WebPushException

from wellio.core.config import settings
from wellio.models.reminder import PushSubscription, ReminderType
from wellio.services import event_store, notification_dispatcher
from wellio.services.notification_dispatcher import (
    ReminderDispatch,
    WebPushDispatcher,
    build_push_payload,
    list_push_subscriptions,
)
from wellio.services.reminder_service import (
    get_or_create_reminder_settings,
    process_reminders_for_client,
)

# 12:00 in New York on Wednesday 2026-10-14, outside the default quiet hours
NOON_NY = datetime(2026, 10, 14, 16, 0, tzinfo=timezone.utc)
LOCAL_TODAY = date(2026, 10, 14)


class FakeWebPush:
    """Records endpoints; raises the error mapped to an endpoint suffix."""

    def __init__(self, failures: dict | None = None):
        self.failures = failures or {}
        self.calls: list[str] = []

    def __call__(self, subscription_info, data, vapid_private_key, vapid_claims):
        endpoint = subscription_info["endpoint"]
        self.calls.append(endpoint)
        for suffix, exc in self.failures.items():
            if endpoint.endswith(suffix):
                raise exc


def _push_error(status: int) -> WebPushException:
    return WebPushException(f"Push failed: {status}", response=SimpleNamespace(status_code=status))


def _dispatch(client_id: int) -> ReminderDispatch:
    return ReminderDispatch(
        client_id=client_id,
        title="We miss your meal logs!",
        message="Log a meal today.",
        reminder_type=ReminderType.INACTIVITY_MEALS,
    )


@pytest.fixture()
def vapid(monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "public-key")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "private-key")


@pytest.fixture()
def fake_webpush(monkeypatch):
    def _install(failures: dict | None = None) -> FakeWebPush:
        fake = FakeWebPush(failures)
        monkeypatch.setattr(notification_dispatcher, "webpush", fake)
        return fake
    return _install


@pytest.fixture()
def subscribed(db, make_client):
    """A client with two subscriptions, endpoints ending in /a and /b."""
    def _make(**kwargs):
        c = make_client(**kwargs)
        for suffix in ("a", "b"):
            db.add(PushSubscription(
                client_id=c.id,
                endpoint=f"https://push.example.com/{c.id}/{suffix}",
                p256dh="key",
                auth="auth",
            ))
        db.commit()
        return c
    return _make


class TestPayload:
    def test_shape(self):
        body = json.loads(build_push_payload(_dispatch(7)))
        assert body["type"] == "reminder"
        assert body["body"] == "We miss your meal logs!\nLog a meal today."
        assert body["tag"] == "wellio-reminder-inactivity_meals"
        assert body["data"]["reminderType"] == "inactivity_meals"


class TestWebPushDispatcher:
    def test_missing_vapid_keys(self, db, subscribed, fake_webpush):
        fake = fake_webpush()
        c = subscribed()
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is False
        assert fake.calls == []

    def test_no_subscriptions(self, db, make_client, vapid, fake_webpush):
        fake = fake_webpush()
        c = make_client()
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is False
        assert fake.calls == []

    def test_delivers_to_every_subscription(self, db, subscribed, vapid, fake_webpush):
        fake = fake_webpush()
        c = subscribed()
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is True
        assert [e.rsplit("/", 1)[1] for e in fake.calls] == ["a", "b"]

    @pytest.mark.parametrize("status", [404, 410])
    def test_expired_subscription_removed(self, db, subscribed, vapid, fake_webpush, status):
        c = subscribed()
        fake_webpush({"/a": _push_error(status), "/b": _push_error(status)})
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is False
        assert list_push_subscriptions(db, c.id) == []

    def test_server_error_keeps_subscription(self, db, subscribed, vapid, fake_webpush):
        c = subscribed()
        fake_webpush({"/a": _push_error(500), "/b": _push_error(500)})
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is False
        assert len(list_push_subscriptions(db, c.id)) == 2

    def test_one_accepted_is_enough(self, db, subscribed, vapid, fake_webpush):
        c = subscribed()
        fake_webpush({"/a": _push_error(410)})
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is True
        remaining = list_push_subscriptions(db, c.id)
        assert [s.endpoint.rsplit("/", 1)[1] for s in remaining] == ["b"]

    def test_network_error_does_not_stop_other_subscriptions(
        self, db, subscribed, vapid, fake_webpush
    ):
        c = subscribed()
        fake = fake_webpush({"/a": requests.exceptions.ConnectionError("down")})
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is True
        assert [e.rsplit("/", 1)[1] for e in fake.calls] == ["a", "b"]
        assert len(list_push_subscriptions(db, c.id)) == 2

    def test_unexpected_error_is_contained(self, db, subscribed, vapid, fake_webpush):
        c = subscribed()
        fake_webpush({"/a": ValueError("bad key"), "/b": requests.exceptions.Timeout("slow")})
        assert WebPushDispatcher(db).send(_dispatch(c.id)) is False


class TestReminderPassWithWebPush:
    def test_unreachable_endpoint_still_sends_all_reminders(
        self, db, subscribed, vapid, fake_webpush
    ):
        c = subscribed(last_active_at=NOON_NY - timedelta(days=5))
        get_or_create_reminder_settings(db, c.id)
        fake = fake_webpush({"/a": requests.exceptions.ConnectionError("down")})

        result = process_reminders_for_client(db, c, WebPushDispatcher(db), now=NOON_NY)

        assert result.sent_count == 3
        assert sum(e.endswith("/b") for e in fake.calls) == 3
        assert event_store.count_sent_reminders(db, c.id, LOCAL_TODAY) == 3

    def test_trigger_endpoint_survives_network_error(
        self, client, db, subscribed, vapid, fake_webpush
    ):
        c = subscribed(last_active_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        fake_webpush({"/a": requests.exceptions.ConnectionError("down"),
                      "/b": requests.exceptions.ConnectionError("down")})
        r = client.post(f"/clients/{c.id}/reminders/trigger")
        assert r.status_code == 200
        body = r.json()
        assert body["sent_count"] == 0
        assert body["skipped_reason"] == "Client does not have push notifications enabled"
