"""
Best-effort progress recalculation.

Triggering actions (goal writes, event ingestion, schedule completions)
never wait on, or fail because of, the recalculation. The task runs after
the HTTP response on its own session; any failure is logged and the next
trigger retries it.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from wellio.db import base as db_base
from wellio.services.progress_calculator import ProgressBreakdown, update_client_progress

logger = logging.getLogger(__name__)


def recalculate_client_progress_safely(
    client_id: int,
    session_factory: Optional[Callable[[], Session]] = None,
) -> Optional[ProgressBreakdown]:
    """Recalculate and persist; returns None instead of raising on failure."""
    factory = session_factory or db_base.SessionLocal
    db = factory()
    try:
        breakdown = update_client_progress(db, client_id)
        logger.debug(
            f"Progress recalculated for client {client_id}: score={breakdown.composite_score}"
        )
        return breakdown
    except Exception:
        db.rollback()
        logger.exception(
            f"Progress recalculation failed for client {client_id}; will retry on next trigger",
            extra={"context": {"client_id": client_id}},
        )
        return None
    finally:
        db.close()


def schedule_recalculation(background_tasks: BackgroundTasks, client_id: int) -> None:
    """Queue a recalculation to run once the response has been sent."""
    background_tasks.add_task(recalculate_client_progress_safely, client_id)
