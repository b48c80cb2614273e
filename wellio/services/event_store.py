"""
Event store accessor: append-only activity records scoped by client and date.

Public API
----------
parse_event_payload(event_type, data)                  -> EventPayload
load_payload(event)                                     -> EventPayload
record_progress_event(db, client_id, event_in)          -> ProgressEvent   (commit)
record_progress_events_batch(db, client_id, items)      -> list[dict]      (per-item savepoints)
list_progress_events(db, client_id, start, end, types)  -> list[ProgressEvent]
latest_event_date(db, client_id, types)                 -> date | None
correct_progress_event(db, event_id, payload, day)      -> ProgressEvent   (commit)
delete_progress_event(db, event_id)                     -> int             (client_id)
to_records(events)                                      -> list[EventRecord]

create_schedule_item / list_schedule_items / set_schedule_item_completed
get_sent_reminders / sent_reminder_types / count_sent_reminders / record_sent_reminder

Reads never commit. Writes that are a whole user action commit; the batch
path flushes per item inside a savepoint and commits once.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from wellio.core.errors import (
    ClientNotFoundError,
    InvalidEventPayloadError,
    ProgressEventNotFoundError,
    ScheduleItemNotFoundError,
)
from wellio.models.client import Client
from wellio.models.progress_event import ProgressEvent
from wellio.models.reminder import SentReminder
from wellio.models.schedule_item import WeeklyScheduleItem
from wellio.schemas.events import (
    EventPayload,
    event_payload_adapter,
    payload_to_data_json,
)

# Events below this extraction confidence are flagged for coach review.
REVIEW_CONFIDENCE_THRESHOLD = 0.7


# ---------------------------------------------------------------------------
# DTOs passed from the routers (schema-agnostic)
# ---------------------------------------------------------------------------

@dataclass
class EventIn:
    date_for_metric: date
    payload: EventPayload
    confidence: float = 1.0
    source: Optional[str] = None


@dataclass
class RawEventIn:
    date_for_metric: date
    event_type: str
    data: dict[str, Any]
    confidence: float = 1.0
    source: Optional[str] = None


@dataclass
class EventRecord:
    """One time-series point handed to the trend analyzers."""
    day: date
    event_type: str
    payload: Any  # one of the EventPayload variants


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def get_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise ClientNotFoundError(client_id)
    return client


def touch_client(client: Client, when: Optional[datetime] = None) -> None:
    """Mark the client active. Never moves last_active_at backwards."""
    when = when or _now()
    last = client.last_active_at
    if last is not None and last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    if last is None or when > last:
        client.last_active_at = when


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

def parse_event_payload(event_type: str, data: dict[str, Any]) -> EventPayload:
    """Validate an untyped payload against the variant for `event_type`."""
    try:
        return event_payload_adapter.validate_python({**data, "event_type": event_type})
    except ValidationError as exc:
        raise InvalidEventPayloadError(event_type, _field_errors(exc)) from exc


def load_payload(event: ProgressEvent) -> EventPayload:
    """Typed view of a stored event (stored rows were validated on the way in)."""
    return event_payload_adapter.validate_python(
        {**(event.data_json or {}), "event_type": _ev(event.event_type)}
    )


def to_records(events: Iterable[ProgressEvent]) -> list[EventRecord]:
    return [
        EventRecord(
            day=e.date_for_metric,
            event_type=_ev(e.event_type),
            payload=load_payload(e),
        )
        for e in events
    ]


# ---------------------------------------------------------------------------
# Progress event writes
# ---------------------------------------------------------------------------

def _add_event(db: Session, client: Client, event_in: EventIn) -> ProgressEvent:
    event = ProgressEvent(
        client_id=client.id,
        event_type=event_in.payload.event_type,
        date_for_metric=event_in.date_for_metric,
        data_json=payload_to_data_json(event_in.payload),
        confidence=event_in.confidence,
        needs_review=event_in.confidence < REVIEW_CONFIDENCE_THRESHOLD,
        source=event_in.source,
    )
    db.add(event)
    touch_client(client)
    db.flush()
    return event


def record_progress_event(db: Session, client_id: int, event_in: EventIn) -> ProgressEvent:
    """Persist one validated event and commit."""
    client = get_client(db, client_id)
    event = _add_event(db, client, event_in)
    db.commit()
    db.refresh(event)
    return event


def record_progress_events_batch(
    db: Session,
    client_id: int,
    items: list[RawEventIn],
) -> list[dict]:
    """
    Record a list of untyped events using one savepoint per item.
    A failure on one item (bad payload, DB error) does not cancel the others.
    Returns raw dicts for the router to convert to ProgressEventBatchItem.
    """
    client = get_client(db, client_id)
    raw_results = []

    for i, item in enumerate(items):
        savepoint = db.begin_nested()
        try:
            payload = parse_event_payload(item.event_type, item.data)
            event = _add_event(db, client, EventIn(
                date_for_metric=item.date_for_metric,
                payload=payload,
                confidence=item.confidence,
                source=item.source,
            ))
            savepoint.commit()
            raw_results.append({"index": i, "ok": True, "event": event, "error": None})
        except InvalidEventPayloadError as exc:
            savepoint.rollback()
            raw_results.append({"index": i, "ok": False, "event": None, "error": exc.message})
        except Exception as exc:
            savepoint.rollback()
            raw_results.append({"index": i, "ok": False, "event": None, "error": str(exc)})

    db.commit()

    for r in raw_results:
        if r["ok"]:
            db.refresh(r["event"])

    return raw_results


def correct_progress_event(
    db: Session,
    event_id: int,
    payload: EventPayload,
    date_for_metric: Optional[date] = None,
) -> ProgressEvent:
    """Coach correction: replace the payload (and optionally the day)."""
    event = db.get(ProgressEvent, event_id)
    if event is None:
        raise ProgressEventNotFoundError(event_id)
    event.event_type = payload.event_type
    event.data_json = payload_to_data_json(payload)
    if date_for_metric is not None:
        event.date_for_metric = date_for_metric
    event.needs_review = False
    event.corrected_at = _now()
    db.commit()
    db.refresh(event)
    return event


def delete_progress_event(db: Session, event_id: int) -> int:
    """Delete an event (explicit coach action). Returns its client_id."""
    event = db.get(ProgressEvent, event_id)
    if event is None:
        raise ProgressEventNotFoundError(event_id)
    client_id = event.client_id
    db.delete(event)
    db.commit()
    return client_id


# ---------------------------------------------------------------------------
# Progress event reads
# ---------------------------------------------------------------------------

def list_progress_events(
    db: Session,
    client_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    event_types: Optional[Iterable[str]] = None,
) -> list[ProgressEvent]:
    """Events for a client, oldest first, optionally bounded by [start, end]."""
    q = db.query(ProgressEvent).filter(ProgressEvent.client_id == client_id)
    if start is not None:
        q = q.filter(ProgressEvent.date_for_metric >= start)
    if end is not None:
        q = q.filter(ProgressEvent.date_for_metric <= end)
    if event_types:
        q = q.filter(ProgressEvent.event_type.in_(list(event_types)))
    return q.order_by(ProgressEvent.date_for_metric.asc(), ProgressEvent.id.asc()).all()


def latest_event_date(
    db: Session,
    client_id: int,
    event_types: Optional[Iterable[str]] = None,
) -> Optional[date]:
    q = db.query(func.max(ProgressEvent.date_for_metric)).filter(
        ProgressEvent.client_id == client_id
    )
    if event_types:
        q = q.filter(ProgressEvent.event_type.in_(list(event_types)))
    return q.scalar()


# ---------------------------------------------------------------------------
# Weekly schedule items
# ---------------------------------------------------------------------------

def create_schedule_item(
    db: Session,
    client_id: int,
    scheduled_date: date,
    title: str,
    item_type: str = "workout",
) -> WeeklyScheduleItem:
    get_client(db, client_id)
    item = WeeklyScheduleItem(
        client_id=client_id,
        scheduled_date=scheduled_date,
        title=title,
        item_type=item_type,
        completed=False,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def list_schedule_items(
    db: Session,
    client_id: int,
    start: date,
    end: date,
) -> list[WeeklyScheduleItem]:
    return (
        db.query(WeeklyScheduleItem)
        .filter(
            WeeklyScheduleItem.client_id == client_id,
            WeeklyScheduleItem.scheduled_date >= start,
            WeeklyScheduleItem.scheduled_date <= end,
        )
        .order_by(WeeklyScheduleItem.scheduled_date.asc(), WeeklyScheduleItem.id.asc())
        .all()
    )


def latest_completion_date(db: Session, client_id: int) -> Optional[date]:
    value = (
        db.query(func.max(WeeklyScheduleItem.completed_at))
        .filter(
            WeeklyScheduleItem.client_id == client_id,
            WeeklyScheduleItem.completed == True,  # noqa: E712
        )
        .scalar()
    )
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value


def set_schedule_item_completed(
    db: Session,
    item_id: int,
    completed: bool,
) -> WeeklyScheduleItem:
    """Toggle completion; a completion also marks the client active."""
    item = db.get(WeeklyScheduleItem, item_id)
    if item is None:
        raise ScheduleItemNotFoundError(item_id)
    item.completed = completed
    if completed:
        now = _now()
        item.completed_at = now
        touch_client(get_client(db, item.client_id), now)
    else:
        item.completed_at = None
    db.commit()
    db.refresh(item)
    return item


# ---------------------------------------------------------------------------
# Sent reminders ledger
# ---------------------------------------------------------------------------

def get_sent_reminders(db: Session, client_id: int, sent_date: date) -> list[SentReminder]:
    return (
        db.query(SentReminder)
        .filter(SentReminder.client_id == client_id, SentReminder.sent_date == sent_date)
        .order_by(SentReminder.id.asc())
        .all()
    )


def sent_reminder_types(db: Session, client_id: int, sent_date: date) -> set[str]:
    rows = (
        db.query(SentReminder.reminder_type)
        .filter(SentReminder.client_id == client_id, SentReminder.sent_date == sent_date)
        .all()
    )
    return {row.reminder_type for row in rows}


def count_sent_reminders(db: Session, client_id: int, sent_date: date) -> int:
    return (
        db.query(func.count(SentReminder.id))
        .filter(SentReminder.client_id == client_id, SentReminder.sent_date == sent_date)
        .scalar()
        or 0
    )


def record_sent_reminder(
    db: Session,
    client_id: int,
    reminder_type: str,
    category: str,
    title: str,
    message: str,
    sent_date: date,
    related_goal_id: Optional[int] = None,
    related_plan_id: Optional[int] = None,
) -> SentReminder:
    """Add a ledger row and flush. The caller commits (or rolls back on a race)."""
    row = SentReminder(
        client_id=client_id,
        reminder_type=reminder_type,
        category=category,
        title=title,
        message=message,
        sent_date=sent_date,
        related_goal_id=related_goal_id,
        related_plan_id=related_plan_id,
    )
    db.add(row)
    db.flush()
    return row
