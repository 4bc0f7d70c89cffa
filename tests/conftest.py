import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from actionscore.auth import create_token
from actionscore.database import Base, enable_sqlite_savepoints, get_db
from actionscore.main import app
from actionscore.models import User


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user_id(session_factory) -> int:
    session = session_factory()
    try:
        u = User(username="tester")
        session.add(u)
        session.flush()
        uid = u.id
        session.commit()
    finally:
        session.close()
    return uid


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_id) -> dict:
    return {"Authorization": f"Bearer {create_token({'user_id': user_id})}"}


@pytest.fixture
def make_task():
    """Factory for task-shaped objects the pure engine accepts."""

    def _make(**overrides):
        fields = dict(
            id=1,
            pillar_id=None,
            name="task",
            completion_type="checkbox",
            target=None,
            flexibility_rule="must_today",
            window_start=None,
            window_end=None,
            limit_value=None,
            frequency="daily",
            custom_days=None,
            weekly_day=None,
            scheduled_date=None,
            is_weekend_task=False,
            base_points=10,
            is_active=True,
            created_at=datetime(2023, 1, 1),
        )
        fields.update(overrides)
        return SimpleNamespace(**fields)

    return _make
