"""
Progress events router.

POST   /clients/{id}/events        — record one typed event
POST   /clients/{id}/events/batch  — record up to 50 untyped events (per-item results)
GET    /clients/{id}/events        — list events in a date range
PATCH  /events/{id}                — coach correction
DELETE /events/{id}                — coach deletion

Every write schedules a best-effort progress recalculation.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from wellio.db.base import get_db
from wellio.models.progress_event import EventType, ProgressEvent
from wellio.schemas.common import NOT_FOUND_RESPONSE, VALIDATION_RESPONSE
from wellio.schemas.events import (
    ProgressEventBatchItem,
    ProgressEventBatchRequest,
    ProgressEventBatchResponse,
    ProgressEventCorrection,
    ProgressEventCreate,
    ProgressEventListResponse,
    ProgressEventResponse,
)
from wellio.services import event_store
from wellio.services.recalculation import schedule_recalculation

router = APIRouter(tags=["events"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _event_to_response(e: ProgressEvent) -> ProgressEventResponse:
    return ProgressEventResponse(
        id=e.id,
        client_id=e.client_id,
        event_type=_ev(e.event_type),
        date_for_metric=str(e.date_for_metric),
        data=e.data_json or {},
        confidence=e.confidence,
        needs_review=e.needs_review,
        source=e.source,
        corrected_at=e.corrected_at.isoformat() if e.corrected_at else None,
        created_at=e.created_at.isoformat() if e.created_at else "",
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post(
    "/clients/{client_id}/events",
    response_model=ProgressEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a progress event",
    responses={404: NOT_FOUND_RESPONSE, 422: VALIDATION_RESPONSE},
)
def create_event(
    client_id: int,
    body: ProgressEventCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Records one observed activity and marks the client active.

    The `payload` is a tagged union keyed by `event_type`:

    | event_type | required fields |
    |---|---|
    | `weight`       | `value` (>0), `unit` kg/lb; optional `body_fat_pct` |
    | `nutrition`    | none; `calories`, `protein_g`, `carbs_g`, `fat_g` optional |
    | `workout`      | none; `workout_type`, `duration_min`, `intensity` optional |
    | `steps`        | `steps` |
    | `sleep`        | `hours` |
    | `checkin_mood` | `rating` 1–10 |
    | `note`         | `text` |
    | `other`        | `data` (free-form) |

    Events with `confidence < 0.7` are flagged `needs_review`.
    """
    event = event_store.record_progress_event(
        db,
        client_id,
        event_store.EventIn(
            date_for_metric=body.date_for_metric,
            payload=body.payload,
            confidence=body.confidence,
            source=body.source,
        ),
    )
    schedule_recalculation(background_tasks, client_id)
    return _event_to_response(event)


@router.post(
    "/clients/{client_id}/events/batch",
    response_model=ProgressEventBatchResponse,
    status_code=status.HTTP_207_MULTI_STATUS,
    summary="Record a batch of progress events",
    responses={404: NOT_FOUND_RESPONSE},
)
def create_events_batch(
    client_id: int,
    body: ProgressEventBatchRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Records up to 50 events, each validated on its own. A malformed item is
    reported with `ok=false` and an error message; the other items are
    still stored. Always returns 207 with one result per input item, in
    input order.
    """
    raw = event_store.record_progress_events_batch(
        db,
        client_id,
        [
            event_store.RawEventIn(
                date_for_metric=item.date_for_metric,
                event_type=item.event_type,
                data=item.data,
                confidence=item.confidence,
                source=item.source,
            )
            for item in body.items
        ],
    )
    items = [
        ProgressEventBatchItem(
            index=r["index"],
            ok=r["ok"],
            event=_event_to_response(r["event"]) if r["ok"] else None,
            error=r["error"],
        )
        for r in raw
    ]
    succeeded = sum(1 for i in items if i.ok)
    if succeeded:
        schedule_recalculation(background_tasks, client_id)
    return ProgressEventBatchResponse(
        total=len(items),
        succeeded=succeeded,
        failed=len(items) - succeeded,
        items=items,
    )


@router.patch(
    "/events/{event_id}",
    response_model=ProgressEventResponse,
    summary="Correct a progress event",
    responses={404: NOT_FOUND_RESPONSE, 422: VALIDATION_RESPONSE},
)
def correct_event(
    event_id: int,
    body: ProgressEventCorrection,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Coach correction: replaces the payload and clears `needs_review`."""
    event = event_store.correct_progress_event(
        db, event_id, body.payload, date_for_metric=body.date_for_metric
    )
    schedule_recalculation(background_tasks, event.client_id)
    return _event_to_response(event)


@router.delete(
    "/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a progress event",
    responses={404: NOT_FOUND_RESPONSE},
)
def delete_event(
    event_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    client_id = event_store.delete_progress_event(db, event_id)
    schedule_recalculation(background_tasks, client_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "/clients/{client_id}/events",
    response_model=ProgressEventListResponse,
    summary="List progress events (oldest first)",
    responses={404: NOT_FOUND_RESPONSE},
)
def list_events(
    client_id: int,
    start: Optional[date] = Query(default=None, description="First day (inclusive)."),
    end: Optional[date] = Query(default=None, description="Last day (inclusive)."),
    event_type: Optional[list[EventType]] = Query(
        default=None, description="Repeat to filter by several types."
    ),
    db: Session = Depends(get_db),
):
    event_store.get_client(db, client_id)
    events = event_store.list_progress_events(
        db,
        client_id,
        start=start,
        end=end,
        event_types=[_ev(t) for t in event_type] if event_type else None,
    )
    return ProgressEventListResponse(
        total=len(events),
        items=[_event_to_response(e) for e in events],
    )
