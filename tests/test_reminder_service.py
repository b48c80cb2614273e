"""
Tests for the reminder candidate generator.

Scenarios:
  - an inactive client gets meal and workout reminders, nothing goal or plan related
  - the daily cap truncates candidates and stops later runs
  - a type already sent today is never sent again
  - quiet hours in the client's timezone, including windows wrapping midnight
  - a failed dispatch leaves no ledger row
  - goal and plan candidates
  - the sweep only visits active clients with a push subscription
"""
from __future__ import annotations

import gc
import threading
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from wellio.models.client import Client, ClientStatus
from wellio.models.client_plan import ClientPlan, PlanStatus
from wellio.models.reminder import PushSubscription, ReminderCategory, ReminderType, SentReminder
from wellio.services import event_store, reminder_service
from wellio.services.reminder_service import (
    SKIP_DAILY_LIMIT,
    SKIP_DISABLED,
    SKIP_NO_DELIVERY,
    SKIP_QUIET_HOURS,
    build_candidates,
    get_or_create_reminder_settings,
    goal_reminder_type,
    is_within_quiet_hours,
    local_today,
    process_all_reminders,
    process_reminders_for_client,
    todays_plan_activity,
    update_reminder_settings,
)

# 12:00 in New York (EDT) on Wednesday 2026-10-14
NOON_NY = datetime(2026, 10, 14, 16, 0, tzinfo=timezone.utc)
# 23:00 in New York on the same day
LATE_NY = datetime(2026, 10, 15, 3, 0, tzinfo=timezone.utc)
LOCAL_TODAY = date(2026, 10, 14)


class FakeDispatcher:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent = []

    def send(self, dispatch) -> bool:
        self.sent.append(dispatch)
        return self.ok


@pytest.fixture()
def inactive_client(db, make_client):
    """Last seen five days before NOON_NY, default settings (threshold 2)."""
    c = make_client(last_active_at=NOON_NY - timedelta(days=5))
    get_or_create_reminder_settings(db, c.id)
    return c


def _types(candidates) -> list[str]:
    return [c.reminder_type for c in candidates]


# ---------------------------------------------------------------------------
# Settings & clock
# ---------------------------------------------------------------------------

class TestSettings:
    def test_defaults_created_lazily(self, db, make_client):
        c = make_client()
        s = get_or_create_reminder_settings(db, c.id)
        assert s.reminders_enabled is True
        assert s.inactivity_threshold_days == 2
        assert s.quiet_hours_start == "21:00"
        assert s.quiet_hours_end == "08:00"
        assert s.timezone == "America/New_York"
        assert s.max_reminders_per_day == 3
        assert get_or_create_reminder_settings(db, c.id).id == s.id

    def test_local_today_follows_timezone(self, db, make_client):
        c = make_client()
        s = get_or_create_reminder_settings(db, c.id)
        # 03:00 UTC on the 15th is still the 14th in New York
        assert local_today(s, LATE_NY) == LOCAL_TODAY

    def test_unknown_timezone_falls_back(self, db, make_client):
        c = make_client()
        s = update_reminder_settings(db, c.id, timezone="Mars/Olympus_Mons")
        assert local_today(s, LATE_NY) == LOCAL_TODAY


class TestQuietHours:
    def test_wrapping_window(self, db, make_client):
        s = get_or_create_reminder_settings(db, make_client().id)
        assert is_within_quiet_hours(s, LATE_NY) is True
        assert is_within_quiet_hours(s, NOON_NY) is False
        # 07:59 local is still quiet, 08:00 is not
        assert is_within_quiet_hours(s, datetime(2026, 10, 14, 11, 59, tzinfo=timezone.utc)) is True
        assert is_within_quiet_hours(s, datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)) is False

    def test_same_day_window(self, db, make_client):
        c = make_client()
        s = update_reminder_settings(db, c.id, quiet_hours_start="12:00", quiet_hours_end="14:00")
        assert is_within_quiet_hours(s, NOON_NY) is True
        assert is_within_quiet_hours(s, LATE_NY) is False

    def test_empty_window(self, db, make_client):
        c = make_client()
        s = update_reminder_settings(db, c.id, quiet_hours_start="09:00", quiet_hours_end="09:00")
        assert is_within_quiet_hours(s, LATE_NY) is False


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

class TestCandidates:
    def test_inactive_client(self, db, inactive_client):
        s = get_or_create_reminder_settings(db, inactive_client.id)
        types = _types(build_candidates(db, inactive_client, s, LOCAL_TODAY))
        assert types.count(ReminderType.INACTIVITY_MEALS) == 1
        assert types.count(ReminderType.INACTIVITY_WORKOUTS) == 1
        assert not [t for t in types if t.startswith("goal_") or t.startswith("plan_")]

    def test_recent_logs_suppress_inactivity(self, db, make_client, make_event):
        c = make_client(last_active_at=NOON_NY)
        make_event(c, "nutrition", LOCAL_TODAY, calories=500)
        make_event(c, "workout", LOCAL_TODAY - timedelta(days=1), duration_min=20)
        make_event(c, "weight", LOCAL_TODAY, value=80)
        s = get_or_create_reminder_settings(db, c.id)
        assert build_candidates(db, c, s, LOCAL_TODAY) == []

    def test_meal_message_counts_days(self, db, make_client, make_event):
        c = make_client()
        make_event(c, "nutrition", LOCAL_TODAY - timedelta(days=4), calories=500)
        s = get_or_create_reminder_settings(db, c.id)
        meals = [x for x in build_candidates(db, c, s, LOCAL_TODAY)
                 if x.reminder_type == ReminderType.INACTIVITY_MEALS]
        assert meals[0].message.startswith("It's been 4 days since your last meal log.")

    def test_checkin_needs_one_extra_day(self, db, make_client):
        c = make_client(last_active_at=NOON_NY - timedelta(days=2))
        s = get_or_create_reminder_settings(db, c.id)
        types = _types(build_candidates(db, c, s, LOCAL_TODAY))
        assert ReminderType.INACTIVITY_MEALS in types
        assert ReminderType.INACTIVITY_CHECKIN not in types

    def test_goal_candidates_one_per_type(self, db, make_client, make_goal):
        c = make_client(last_active_at=NOON_NY)
        make_goal(c, goal_type="lose_weight", title="Lose 5 kg", baseline=90, current=85, target=80)
        make_goal(c, goal_type="weight", title="Hold weight")
        make_goal(c, goal_type="meditation", title="Meditate")
        s = update_reminder_settings(db, c.id, inactivity_reminders_enabled=False)
        candidates = build_candidates(db, c, s, LOCAL_TODAY)
        assert _types(candidates) == [ReminderType.GOAL_WEIGHT, ReminderType.GOAL_GENERAL]
        assert candidates[0].message.endswith("You're 50% there!")
        assert "Lose 5 kg" in candidates[0].message

    def test_plan_candidate_names_todays_workout(self, db, make_client):
        c = make_client(last_active_at=NOON_NY)
        db.add(ClientPlan(
            client_id=c.id,
            plan_name="Strength block",
            plan_content={"weekly_programs": {"week_1": {"workouts": [
                {"day": "Monday", "name": "Push"},
                {"day": "Wednesday", "name": "Leg day"},
            ]}}},
            status=PlanStatus.active,
            shared=True,
        ))
        db.commit()
        s = update_reminder_settings(db, c.id, inactivity_reminders_enabled=False)
        candidates = build_candidates(db, c, s, LOCAL_TODAY)
        assert _types(candidates) == [ReminderType.PLAN_DAILY]
        assert candidates[0].title == "Today's plan: Leg day"

    def test_unshared_plan_ignored(self, db, make_client):
        c = make_client(last_active_at=NOON_NY)
        db.add(ClientPlan(
            client_id=c.id, plan_name="Draft", plan_content={},
            status=PlanStatus.assigned, shared=False,
        ))
        db.commit()
        s = update_reminder_settings(db, c.id, inactivity_reminders_enabled=False)
        assert build_candidates(db, c, s, LOCAL_TODAY) == []

    @pytest.mark.parametrize("goal_type,expected", [
        ("lose_weight", ReminderType.GOAL_WEIGHT),
        ("improve_fitness_endurance", ReminderType.GOAL_WORKOUT),
        ("eat_healthier", ReminderType.GOAL_NUTRITION),
        ("sleep_better", ReminderType.GOAL_GENERAL),
    ])
    def test_goal_reminder_type(self, goal_type, expected):
        assert goal_reminder_type(goal_type) == expected

    def test_todays_plan_activity(self):
        content = {"weekly_programs": {"w1": {"workouts": [{"day": "wednesday", "type": "cardio"}]}}}
        assert todays_plan_activity(content, LOCAL_TODAY) == "cardio"
        assert todays_plan_activity(content, LOCAL_TODAY + timedelta(days=1)) is None
        assert todays_plan_activity(None, LOCAL_TODAY) is None
        assert todays_plan_activity({"weekly_programs": []}, LOCAL_TODAY) is None


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

class TestProcessRemindersForClient:
    def test_sends_up_to_the_cap(self, db, inactive_client):
        d = FakeDispatcher()
        result = process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        assert result.sent_count == 3
        assert result.sent_types[:2] == [ReminderType.INACTIVITY_MEALS, ReminderType.INACTIVITY_WORKOUTS]
        assert result.skipped_reason is None
        assert event_store.count_sent_reminders(db, inactive_client.id, LOCAL_TODAY) == 3

    def test_cap_truncates_and_blocks_later_runs(self, db, inactive_client):
        update_reminder_settings(db, inactive_client.id, max_reminders_per_day=2)
        d = FakeDispatcher()
        first = process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        assert first.sent_types == [ReminderType.INACTIVITY_MEALS, ReminderType.INACTIVITY_WORKOUTS]

        second = process_reminders_for_client(db, inactive_client, d, now=NOON_NY + timedelta(hours=1))
        assert second.sent_count == 0
        assert second.skipped_reason == SKIP_DAILY_LIMIT
        assert len(d.sent) == 2

    def test_no_duplicate_type_on_same_day(self, db, inactive_client, make_goal):
        d = FakeDispatcher()
        process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        update_reminder_settings(db, inactive_client.id, max_reminders_per_day=10)
        make_goal(inactive_client, goal_type="eat_healthier", title="Eat greens")

        again = process_reminders_for_client(db, inactive_client, d, now=NOON_NY + timedelta(hours=2))
        assert again.sent_types == [ReminderType.GOAL_NUTRITION]
        rows = event_store.get_sent_reminders(db, inactive_client.id, LOCAL_TODAY)
        assert len({r.reminder_type for r in rows}) == len(rows) == 4

    def test_next_local_day_starts_fresh(self, db, inactive_client):
        d = FakeDispatcher()
        process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        result = process_reminders_for_client(db, inactive_client, d, now=NOON_NY + timedelta(days=1))
        assert result.sent_count == 3

    def test_quiet_hours_skip(self, db, inactive_client):
        d = FakeDispatcher()
        result = process_reminders_for_client(db, inactive_client, d, now=LATE_NY)
        assert result.skipped_reason == SKIP_QUIET_HOURS
        assert d.sent == []

    def test_quiet_hours_bypass(self, db, inactive_client):
        d = FakeDispatcher()
        result = process_reminders_for_client(
            db, inactive_client, d, now=LATE_NY, bypass_quiet_hours=True
        )
        assert result.sent_count == 3

    def test_disabled(self, db, inactive_client):
        update_reminder_settings(db, inactive_client.id, reminders_enabled=False)
        d = FakeDispatcher()
        result = process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        assert result.skipped_reason == SKIP_DISABLED
        assert d.sent == []

    def test_failed_dispatch_not_recorded(self, db, inactive_client):
        result = process_reminders_for_client(db, inactive_client, FakeDispatcher(ok=False), now=NOON_NY)
        assert result.sent_count == 0
        assert result.skipped_reason == SKIP_NO_DELIVERY
        assert event_store.count_sent_reminders(db, inactive_client.id, LOCAL_TODAY) == 0

        retry = process_reminders_for_client(db, inactive_client, FakeDispatcher(), now=NOON_NY)
        assert retry.sent_count == 3

    def test_dispatch_carries_title_and_message(self, db, inactive_client):
        d = FakeDispatcher()
        process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        first = d.sent[0]
        assert first.client_id == inactive_client.id
        assert first.reminder_type == ReminderType.INACTIVITY_MEALS
        assert first.title == "We miss your meal logs!"


class TestSweep:
    def test_only_subscribed_active_clients(self, db, make_client):
        subscribed = make_client(last_active_at=NOON_NY - timedelta(days=5))
        unsubscribed = make_client(last_active_at=NOON_NY - timedelta(days=5))
        paused = make_client(last_active_at=NOON_NY - timedelta(days=5), status=ClientStatus.paused)
        for c in (subscribed, paused):
            db.add(PushSubscription(
                client_id=c.id,
                endpoint=f"https://push.example.com/{c.id}",
                p256dh="key",
                auth="auth",
            ))
        db.commit()

        dispatchers = []

        def factory(session):
            d = FakeDispatcher()
            dispatchers.append(d)
            return d

        sweep = process_all_reminders(
            session_factory=sessionmaker(bind=db.get_bind()), dispatcher_factory=factory, now=NOON_NY
        )
        assert sweep.failed_clients == 0
        assert sweep.processed_clients >= 1
        visited = {x.client_id for x in dispatchers[0].sent}
        assert subscribed.id in visited
        assert unsubscribed.id not in visited
        assert paused.id not in visited

        db.expire_all()
        assert event_store.count_sent_reminders(db, subscribed.id, LOCAL_TODAY) == 3


class TestDispatchErrors:
    def test_raising_dispatcher_does_not_abort_the_pass(self, db, inactive_client):
        class FirstCallFails(FakeDispatcher):
            def send(self, dispatch) -> bool:
                super().send(dispatch)
                if len(self.sent) == 1:
                    raise ConnectionError("push service down")
                return True

        d = FirstCallFails()
        result = process_reminders_for_client(db, inactive_client, d, now=NOON_NY)
        assert len(d.sent) == 3
        assert result.sent_count == 2
        assert ReminderType.INACTIVITY_MEALS not in result.sent_types
        assert event_store.count_sent_reminders(db, inactive_client.id, LOCAL_TODAY) == 2


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

class TestConcurrency:
    def test_concurrent_passes_send_each_type_once(self, db, inactive_client):
        factory = sessionmaker(bind=db.get_bind())
        d = FakeDispatcher()
        barrier = threading.Barrier(2)
        results, errors = [], []

        def run():
            session = factory()
            try:
                client = session.get(Client, inactive_client.id)
                barrier.wait()
                results.append(process_reminders_for_client(session, client, d, now=NOON_NY))
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=run) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert len(d.sent) == 3
        assert sorted(r.sent_count for r in results) == [0, 3]
        db.expire_all()
        rows = event_store.get_sent_reminders(db, inactive_client.id, LOCAL_TODAY)
        assert len(rows) == 3
        assert len({r.reminder_type for r in rows}) == 3

    def test_row_written_elsewhere_is_not_counted_twice(self, db, inactive_client):
        factory = sessionmaker(bind=db.get_bind())

        class OtherProcessWinsFirst(FakeDispatcher):
            """Another worker records the first reminder between our reads and our write."""

            def send(self, dispatch) -> bool:
                super().send(dispatch)
                if len(self.sent) == 1:
                    other = factory()
                    try:
                        other.add(SentReminder(
                            client_id=dispatch.client_id,
                            reminder_type=dispatch.reminder_type,
                            category=ReminderCategory.INACTIVITY,
                            title=dispatch.title,
                            message=dispatch.message,
                            sent_date=LOCAL_TODAY,
                        ))
                        other.commit()
                    finally:
                        other.close()
                return True

        result = process_reminders_for_client(db, inactive_client, OtherProcessWinsFirst(), now=NOON_NY)

        assert result.sent_count == 2
        assert ReminderType.INACTIVITY_MEALS not in result.sent_types
        rows = event_store.get_sent_reminders(db, inactive_client.id, LOCAL_TODAY)
        assert len(rows) == 3
        assert [r.reminder_type for r in rows].count(ReminderType.INACTIVITY_MEALS) == 1

    def test_client_locks_released_after_pass(self, db, inactive_client):
        process_reminders_for_client(db, inactive_client, FakeDispatcher(), now=NOON_NY)
        gc.collect()
        assert inactive_client.id not in reminder_service._client_locks

    def test_same_lock_while_held(self):
        lock = reminder_service._lock_for(424242)
        assert reminder_service._lock_for(424242) is lock
