from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from wellio.db.base import get_db
from wellio.core.config import settings
from wellio.core.logging import setup_logging
from wellio.routers import clients as clients_router
from wellio.routers import goals as goals_router
from wellio.routers import events as events_router
from wellio.routers import schedule as schedule_router
from wellio.routers import insights as insights_router
from wellio.routers import reminders as reminders_router
from wellio.core.errors import (
    WellioException,
    wellio_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from wellio.services.scheduler import ReminderScheduler

setup_logging()

app = FastAPI(
    title="Wellio Progress API",
    description=(
        "**Progress & engagement scoring for coached clients**\n\n"
        "Turns logged activity (meals, workouts, check-ins, goal updates and "
        "schedule completions) into a 0–100 progress score per client, trend "
        "insights, and a bounded set of daily reminders.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(WellioException, wellio_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(clients_router.router)
app.include_router(goals_router.router)
app.include_router(events_router.router)
app.include_router(schedule_router.router)
app.include_router(insights_router.router)
app.include_router(reminders_router.router)

# --- Reminder scheduler ---
reminder_scheduler = ReminderScheduler(
    interval_seconds=settings.REMINDER_INTERVAL_SECONDS,
    initial_delay_seconds=settings.REMINDER_INITIAL_DELAY_SECONDS,
)


@app.on_event("startup")
async def start_reminder_scheduler():
    if settings.REMINDER_SCHEDULER_ENABLED:
        reminder_scheduler.start()


@app.on_event("shutdown")
async def stop_reminder_scheduler():
    await reminder_scheduler.stop()


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    Used by the platform for liveness probes.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {
        "status": "ok",
        "db": "ok",
        "env": settings.APP_ENV,
        "reminder_scheduler": reminder_scheduler.running,
    }
