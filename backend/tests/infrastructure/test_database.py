"""Database Session Manager — error mapping, rollback and engine options."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from helpqueue.core.errors import DatabaseError
from helpqueue.infrastructure.database import DatabaseSessionManager, engine_options


@pytest.fixture
async def manager():
    db_manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    yield db_manager
    await db_manager.dispose()


async def test_health_check_round_trips(manager):
    assert await manager.health_check() is True


@pytest.mark.parametrize("error, operation", [
    (IntegrityError("UPDATE questions", {}, Exception("NOT NULL")), "commit"),
    (OperationalError("SELECT", {}, Exception("database is locked")), "execute"),
])
async def test_sqlalchemy_errors_become_database_error(manager, error, operation):
    with pytest.raises(DatabaseError) as exc_info:
        async with manager.session():
            raise error

    assert exc_info.value.operation == operation
    assert exc_info.value.http_status == 503
    assert exc_info.value.__cause__ is error


async def test_other_errors_pass_through(manager):
    with pytest.raises(KeyError):
        async with manager.session():
            raise KeyError("question")


def test_sqlite_keeps_default_pool():
    assert engine_options("sqlite+aiosqlite:///queue.db", 20, 10) == {}


def test_server_database_gets_pool_sizing():
    options = engine_options("postgresql+asyncpg://queue:secret@db/queue", 5, 2)
    assert options["pool_size"] == 5
    assert options["max_overflow"] == 2
    assert options["pool_pre_ping"] is True
