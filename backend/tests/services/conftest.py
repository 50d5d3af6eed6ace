"""Service test fixtures — file-backed SQLite queue, QueueCore and API client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - The QueueCore under test is built on that database and stopped afterwards
      (all freeze timers and recount tasks cancelled)
    - `seed` provides one open course with students, CAs, a topic and a location
    - `events` records every event published on the core's bus

Design Decisions:
    - File-backed SQLite over :memory:: each session gets its own connection,
      so concurrent operations behave like separate database clients
    - db_manager built with __new__: reuses the test engine instead of a pool
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from helpqueue.core.domain_types import EventTopic, UserRole
from helpqueue.db.base import Base
from helpqueue.infrastructure.database import DatabaseSessionManager
from helpqueue.models import Course, Location, QueueMeta, Role, Topic, User
from helpqueue.services.queue_core import QueueCore


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def db_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def active_timeout():
    """Seconds a CA stays active after releasing a question (override per module)."""
    return 300


@pytest.fixture
async def core(db_manager, active_timeout):
    queue_core = QueueCore.build(db_manager, active_timeout=active_timeout)
    yield queue_core
    await queue_core.stop()


@pytest.fixture
async def seed(test_db):
    """Course 1 with an open queue; students 1-3, CAs 10-11, admin 20."""
    test_db.add(Course(id=1, name="CS 101"))
    people = [
        (1, "Ada", "Lovelace", UserRole.STUDENT),
        (2, "Alan", "Turing", UserRole.STUDENT),
        (3, "Grace", "Hopper", UserRole.STUDENT),
        (10, "Barbara", "Liskov", UserRole.CA),
        (11, "Edsger", "Dijkstra", UserRole.CA),
        (20, "Donald", "Knuth", UserRole.ADMIN),
    ]
    for user_id, first, last, role in people:
        test_db.add(User(
            id=user_id, first_name=first, last_name=last,
            identifier=f"{first.lower()}{user_id}", email=None, is_online=True,
        ))
    await test_db.flush()
    for user_id, _, _, role in people:
        test_db.add(Role(user_id=user_id, course_id=1, role=role.value))
    test_db.add(Topic(id=1, course_id=1, topic="Recursion", enabled=True))
    test_db.add(Location(id=1, course_id=1, location="Lab 2", enabled=True))
    test_db.add(QueueMeta(
        course_id=1, open=True, max_freeze=600, time_limit=10, user_id=20,
        time=datetime.now(timezone.utc),
    ))
    await test_db.commit()
    return SimpleNamespace(
        course_id=1, students=[1, 2, 3], cas=[10, 11], admin=20,
        topic_id=1, location_id=1,
    )


class EventRecorder:
    """Collects bus events and lets tests await a specific topic."""

    def __init__(self, bus):
        self.events = []
        self._arrived = asyncio.Condition()
        for topic in EventTopic:
            bus.subscribe(topic, self._record)

    async def _record(self, event):
        async with self._arrived:
            self.events.append(event)
            self._arrived.notify_all()

    def topics(self) -> list[EventTopic]:
        return [event.topic for event in self.events]

    def of(self, topic: EventTopic) -> list:
        return [event for event in self.events if event.topic == topic]

    def clear(self):
        self.events.clear()

    async def wait_for(self, topic: EventTopic, timeout: float = 2.0):
        async with self._arrived:
            await asyncio.wait_for(
                self._arrived.wait_for(lambda: self.of(topic)), timeout,
            )
        return self.of(topic)[0]


@pytest.fixture
def events(core):
    return EventRecorder(core.bus)


@pytest.fixture
def add_question(core, seed):
    """Submit a question for a student through the state machine."""

    async def _add(student_id: int, help_text: str = "Stuck on recursion"):
        result = await core.questions.add({
            "student_user_id": student_id,
            "topic_id": seed.topic_id,
            "location_id": seed.location_id,
            "help_text": help_text,
            "course_id": seed.course_id,
        })
        assert result.ok, result.error
        return result.question_id

    return _add


@pytest.fixture
async def client(core):
    """FastAPI test client serving the test QueueCore."""
    from helpqueue.main import app

    app.state.core = core
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    del app.state.core
