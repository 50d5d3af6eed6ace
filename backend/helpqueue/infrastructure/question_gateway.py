"""Question Gateway — transactional access to queue rows and the question change feed.

Invariants:
    - Every question mutation goes through a QuestionTransaction, which records
      a ChangeRecord (insert / update with old and new / delete) per row
    - Change records are delivered to feed listeners only after commit, in
      mutation order, and before the transaction's user locks are released
    - lock_user holds an in-process keyed lock plus a row lock (SELECT ... FOR UPDATE
      on the user row) until commit/rollback
    - Hydrated reads join user, topic and location display fields and compute
      queue_position, is_frozen and can_freeze at read time

Design Decisions:
    - Updates load the target rows FOR UPDATE, apply values in Python and flush,
      which yields exact before/after snapshots on every dialect
    - Update values may be callables of the row (evaluated before any assignment),
      used to copy one column into another in the same write
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from helpqueue.core.domain_types import ChangeKind
from helpqueue.core.predicates import CAN_FREEZE, IS_FROZEN, IS_NOT_ANSWERING, IS_OPEN
from helpqueue.core.repository_protocols import ChangeListener, ChangeRecord, Clock
from helpqueue.infrastructure.database import DatabaseSessionManager
from helpqueue.infrastructure.keyed_lock import KeyedLock
from helpqueue.models.location import Location
from helpqueue.models.queue_meta import QueueMeta
from helpqueue.models.question import Question, question_snapshot
from helpqueue.models.topic import Topic
from helpqueue.models.user import User
from helpqueue.schemas.question import QuestionOut

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Post-commit feed of raw question-table changes."""

    def __init__(self):
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    async def deliver(self, records: list[ChangeRecord]) -> None:
        # listener errors propagate: a broken pipeline must be loud
        for record in records:
            for listener in list(self._listeners):
                await listener(record)


class QuestionTransaction:
    """One unit of work against the queue tables."""

    def __init__(self, db: AsyncSession, locks: KeyedLock, clock: Clock):
        self.db = db
        self.changes: list[ChangeRecord] = []
        self._locks = locks
        self._clock = clock
        self._held: list[int] = []
        self.now = clock.now()

    async def lock_user(self, user_id: int) -> None:
        """Exclusive per-user lock held until the transaction ends."""
        await self._locks.acquire(user_id)
        self._held.append(user_id)
        await self.db.execute(
            select(User.id).where(User.id == user_id).with_for_update(),
        )
        # time spent waiting for the lock is not part of this operation
        self.now = self._clock.now()

    def release_locks(self) -> None:
        while self._held:
            self._locks.release(self._held.pop())

    async def current_meta(self, course_id: int) -> QueueMeta | None:
        result = await self.db.execute(
            select(QueueMeta)
            .where(QueueMeta.course_id == course_id)
            .order_by(QueueMeta.id.desc())
            .limit(1),
        )
        return result.scalar_one_or_none()

    async def count_questions(self, *criteria) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Question).where(*criteria),
        )
        return result.scalar_one()

    async def insert_question(self, values: dict) -> Question:
        # every column present in the instance dict, so snapshots never lazy-load
        blank = {
            column.key: None
            for column in Question.__table__.columns
            if not column.primary_key
        }
        question = Question(**{**blank, **values})
        self.db.add(question)
        await self.db.flush()
        self.changes.append(
            ChangeRecord(ChangeKind.INSERT, None, question_snapshot(question)),
        )
        return question

    async def update_questions(
        self,
        criteria: Iterable,
        values: dict[str, Any],
        *,
        order_by: Iterable = (),
        limit: int | None = None,
        skip_locked: bool = False,
    ) -> list[Question]:
        """Apply `values` to every row matching `criteria`; returns the rows."""
        stmt = (
            select(Question)
            .where(*criteria)
            .order_by(*order_by)
            .with_for_update(skip_locked=skip_locked)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        questions = list((await self.db.execute(stmt)).scalars().all())

        for question in questions:
            before = question_snapshot(question)
            resolved = {
                name: value(question) if callable(value) else value
                for name, value in values.items()
            }
            for name, value in resolved.items():
                setattr(question, name, value)
            self.changes.append(
                ChangeRecord(ChangeKind.UPDATE, before, question_snapshot(question)),
            )
        await self.db.flush()
        return questions

    async def delete_question(self, question_id: int) -> bool:
        """Administrative hard delete."""
        question = await self.db.get(Question, question_id)
        if question is None:
            return False
        before = question_snapshot(question)
        await self.db.delete(question)
        await self.db.flush()
        self.changes.append(ChangeRecord(ChangeKind.DELETE, before, None))
        return True

    async def add(self, entity):
        """Insert a non-question row (meta, topic, location)."""
        self.db.add(entity)
        await self.db.flush()
        return entity


# ─── Hydrated reads ──────────────────────────────────────────────

_DISPLAY_FIELDS = (
    "student_first_name", "student_last_name", "student_identifier",
    "frozen_by_first_name", "frozen_by_last_name",
    "ca_first_name", "ca_last_name",
    "initial_ca_first_name", "initial_ca_last_name",
    "topic", "location", "queue_position",
)


def _hydrated_select(now: datetime):
    student = aliased(User, name="us")
    frozen_by = aliased(User, name="uf")
    ca = aliased(User, name="uc")
    initial_ca = aliased(User, name="ue")
    ahead = aliased(Question, name="aq")

    queue_position = (
        select(func.count(ahead.id))
        .where(
            ahead.course_id == Question.course_id,
            ahead.on_time < Question.on_time,
            IS_OPEN.clause(ahead, now),
            IS_NOT_ANSWERING.clause(ahead, now),
        )
        .correlate(Question)
        .scalar_subquery()
    )

    return (
        select(
            Question,
            student.first_name.label("student_first_name"),
            student.last_name.label("student_last_name"),
            student.identifier.label("student_identifier"),
            frozen_by.first_name.label("frozen_by_first_name"),
            frozen_by.last_name.label("frozen_by_last_name"),
            ca.first_name.label("ca_first_name"),
            ca.last_name.label("ca_last_name"),
            initial_ca.first_name.label("initial_ca_first_name"),
            initial_ca.last_name.label("initial_ca_last_name"),
            Topic.topic.label("topic"),
            Location.location.label("location"),
            queue_position.label("queue_position"),
        )
        .outerjoin(student, student.id == Question.student_user_id)
        .outerjoin(frozen_by, frozen_by.id == Question.frozen_by)
        .outerjoin(ca, ca.id == Question.ca_user_id)
        .outerjoin(initial_ca, initial_ca.id == Question.initial_ca_user_id)
        .outerjoin(Topic, Topic.id == Question.topic_id)
        .outerjoin(Location, Location.id == Question.location_id)
    )


def _to_question_out(row, now: datetime) -> QuestionOut:
    question = row.Question
    return QuestionOut(
        **question_snapshot(question),
        **{name: getattr(row, name) for name in _DISPLAY_FIELDS},
        is_frozen=IS_FROZEN.check(question, now),
        can_freeze=CAN_FREEZE.check(question, now),
    )


class QuestionGateway:
    """Entry point for transactions and read queries."""

    def __init__(
        self,
        db_manager: DatabaseSessionManager,
        clock: Clock,
        locks: KeyedLock | None = None,
    ):
        self._db = db_manager
        self._clock = clock
        self._locks = locks or KeyedLock()
        self.feed = ChangeFeed()

    def now(self) -> datetime:
        return self._clock.now()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[QuestionTransaction, None]:
        """Commit on clean exit, then deliver the recorded changes."""
        async with self._db.session() as db:
            tx = QuestionTransaction(db, self._locks, self._clock)
            try:
                yield tx
                await db.commit()
                if tx.changes:
                    logger.debug(f"Delivering {len(tx.changes)} question change(s)")
                    await self.feed.deliver(tx.changes)
            finally:
                tx.release_locks()

    async def fetch(self, question_id: int) -> QuestionOut | None:
        """Hydrated question by id."""
        questions = await self.select_questions(Question.id == question_id)
        return questions[0] if questions else None

    async def select_questions(
        self, *criteria, order_by: Iterable = (), limit: int | None = None,
    ) -> list[QuestionOut]:
        now = self.now()
        stmt = _hydrated_select(now).where(*criteria).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._db.session() as db:
            result = await db.execute(stmt)
            return [_to_question_out(row, now) for row in result.all()]

    async def fetch_rows(self, *criteria, order_by: Iterable = ()) -> list[Question]:
        """Raw question rows (no joins)."""
        return await self.scalars(
            select(Question).where(*criteria).order_by(*order_by),
        )

    async def count(self, *criteria) -> int:
        async with self._db.session() as db:
            result = await db.execute(
                select(func.count()).select_from(Question).where(*criteria),
            )
            return result.scalar_one()

    async def scalars(self, stmt) -> list:
        async with self._db.session() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def current_meta(self, course_id: int) -> QueueMeta | None:
        async with self._db.session() as db:
            result = await db.execute(
                select(QueueMeta)
                .where(QueueMeta.course_id == course_id)
                .order_by(QueueMeta.id.desc())
                .limit(1),
            )
            return result.scalar_one_or_none()
