"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. The
environment is set before the app is imported so that the background
recalculation tasks (which open their own sessions) hit the same file.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_wellio.db"
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("VAPID_PUBLIC_KEY", None)
os.environ.pop("VAPID_PRIVATE_KEY", None)

import uuid
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wellio.db.base import Base, get_db
from wellio.main import app
from wellio.models.client import Client, ClientStatus
from wellio.models.goal import Goal, GoalScope, GoalStatus
from wellio.models.progress_event import ProgressEvent
from wellio.models.schedule_item import WeeklyScheduleItem

SQLITE_URL = "sqlite:///./test_wellio.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories (every test gets its own client rows)
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_client(db):
    def _make(
        name: str = "Jordan",
        last_active_at: datetime | None = None,
        status: ClientStatus = ClientStatus.active,
        coach_id: str | None = None,
    ) -> Client:
        c = Client(
            name=name,
            email=f"{uuid.uuid4().hex[:10]}@example.com",
            status=status,
            coach_id=coach_id,
            last_active_at=last_active_at,
        )
        db.add(c)
        db.commit()
        db.refresh(c)
        return c
    return _make


@pytest.fixture()
def make_goal(db):
    def _make(
        client: Client,
        goal_type: str = "lose_weight",
        title: str = "Reach target",
        baseline: float | None = None,
        current: float | None = 0.0,
        target: float | None = 100.0,
        scope: GoalScope = GoalScope.long_term,
        status: GoalStatus = GoalStatus.active,
        deadline: date | None = None,
        week_start_date: date | None = None,
    ) -> Goal:
        g = Goal(
            client_id=client.id,
            goal_type=goal_type,
            title=title,
            baseline_value=baseline,
            current_value=current,
            target_value=target,
            scope=scope,
            status=status,
            deadline=deadline,
            week_start_date=week_start_date,
        )
        db.add(g)
        db.commit()
        db.refresh(g)
        return g
    return _make


@pytest.fixture()
def make_event(db):
    def _make(client: Client, event_type: str, day: date, **data) -> ProgressEvent:
        e = ProgressEvent(
            client_id=client.id,
            event_type=event_type,
            date_for_metric=day,
            data_json=data,
        )
        db.add(e)
        db.commit()
        db.refresh(e)
        return e
    return _make


@pytest.fixture()
def make_schedule_item(db):
    def _make(client: Client, day: date, completed: bool = False, title: str = "Session"):
        item = WeeklyScheduleItem(
            client_id=client.id,
            scheduled_date=day,
            title=title,
            completed=completed,
            completed_at=datetime.combine(day, datetime.min.time(), tzinfo=timezone.utc)
            if completed else None,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make
