import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.main import app
from app.schemas.class_section import ClassSectionIn
from app.schemas.teacher import TeacherIn
from app.schemas.timetable import ScheduleEntry
from app.services.local_store import LocalCacheStore
from app.services.sql_store import SqlScheduleStore
from app.services.substitution import WorkflowRegistry
from app.services.suggestions import DisabledSuggestionProvider


@pytest.fixture()
def sql_store(tmp_path):
    # File-backed so worker threads share one database.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'staffroom.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlScheduleStore(session_factory, timeout_seconds=5)
    engine.dispose()


@pytest.fixture()
def local_store(tmp_path):
    return LocalCacheStore(tmp_path / "local_cache.json", timeout_seconds=5)


@pytest.fixture(params=["database", "local"])
def store(request):
    return request.getfixturevalue("sql_store" if request.param == "database" else "local_store")


def seed_school(store, *, classes=(), teachers=(), base=None):
    """Populate a store: classes as (id, name[, section]), teachers as (id, name), base as {day: {key: entry}}."""

    async def run():
        for item in classes:
            class_id, name, *rest = item
            await store.save_class(ClassSectionIn(id=class_id, name=name, section=rest[0] if rest else "SECONDARY"))
        for teacher_id, name in teachers:
            await store.save_teacher(TeacherIn(id=teacher_id, name=name))
        for day, cells in (base or {}).items():
            for key, entry in cells.items():
                class_id, _, period = key.rpartition("_")
                await store.save_base_entry(day, class_id, int(period), ScheduleEntry.model_validate(entry))

    asyncio.run(run())
    return store


@pytest.fixture()
def client(sql_store):
    app.state.store = sql_store
    app.state.workflows = WorkflowRegistry()
    app.state.suggestions = DisabledSuggestionProvider()

    with TestClient(app) as test_client:
        yield test_client

    app.state.store = None
    app.state.workflows = None
    app.state.suggestions = None


def login(client, role="PRINCIPAL", password=None):
    passwords = {"PRINCIPAL": "ssc2025", "MANAGEMENT": "ssc123"}
    response = client.post("/api/auth/login", json={"role": role, "password": password or passwords[role]})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def principal_headers(client):
    return login(client, "PRINCIPAL")


@pytest.fixture()
def management_headers(client):
    return login(client, "MANAGEMENT")


@pytest.fixture()
def seed():
    return seed_school
