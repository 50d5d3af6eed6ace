"""Queue Metrics — wait times, queue counts and active CAs.

Invariants:
    - Wait-time averages only count questions whose help_time falls in
      [start, end) and that are closed or currently answering
    - bucketed_wait_time rounds start down to the bucket size and returns a
      dense, zero-filled series
    - Active CAs: CAs of the course answering an open question, or who closed
      (as ca_user_id) or froze (as initial_ca_user_id) one within active_timeout
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select

from helpqueue.core.domain_types import ACTIVE_TIMEOUT, WAIT_TIME_BUCKET_MINUTES, UserRole
from helpqueue.core.predicates import IS_ANSWERING, IS_CLOSED, IS_NOT_ANSWERING, IS_OPEN
from helpqueue.core.wait_time import (
    as_utc, average, bucketed_averages, floor_to_bucket, wait_time,
)
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.question import Question
from helpqueue.models.user import Role, User
from helpqueue.schemas.queue import UserOut

logger = logging.getLogger(__name__)


class QueueMetrics:
    """Read-only derived metrics over the questions table."""

    def __init__(
        self,
        gateway: QuestionGateway,
        active_timeout: int = ACTIVE_TIMEOUT,
        bucket_minutes: int = WAIT_TIME_BUCKET_MINUTES,
    ):
        self._gateway = gateway
        self._active_timeout = timedelta(seconds=active_timeout)
        self._bucket = timedelta(minutes=bucket_minutes)

    async def _helped_between(
        self, start: datetime, end: datetime, course_id: int,
    ) -> list[Question]:
        now = self._gateway.now()
        return await self._gateway.fetch_rows(
            Question.course_id == course_id,
            Question.help_time >= start,
            Question.help_time < end,
            or_(IS_CLOSED.clause(Question, now), IS_ANSWERING.clause(Question, now)),
        )

    async def average_wait_time(
        self, start: datetime, end: datetime, course_id: int,
    ) -> dict:
        """Mean wait (seconds) of questions helped in [start, end)."""
        logger.info("select average wait time", extra={"course_id": course_id})
        start, end = as_utc(start), as_utc(end)
        questions = await self._helped_between(start, end, course_id)
        return {
            "wait_time": average([wait_time(q) for q in questions]),
            "time_period": start,
        }

    async def bucketed_wait_time(
        self, start: datetime, end: datetime, course_id: int,
    ) -> list[dict]:
        """Mean wait per bucket from floor(start) to end, zero-filled."""
        logger.info("select wait time", extra={"course_id": course_id})
        start = floor_to_bucket(as_utc(start), self._bucket)
        end = as_utc(end)
        questions = await self._helped_between(start, end, course_id)
        samples = [(q.help_time, wait_time(q)) for q in questions]
        return bucketed_averages(samples, start, end, self._bucket)

    async def open_count(self, course_id: int) -> int:
        """Questions waiting for help (open and not being answered)."""
        now = self._gateway.now()
        return await self._gateway.count(
            Question.course_id == course_id,
            IS_OPEN.clause(Question, now),
            IS_NOT_ANSWERING.clause(Question, now),
        )

    async def active_cas(self, course_id: int) -> list[UserOut]:
        logger.info("select active cas", extra={"course_id": course_id})
        now = self._gateway.now()
        cutoff = now - self._active_timeout
        answering = select(Question.ca_user_id).where(
            Question.course_id == course_id,
            Question.ca_user_id.is_not(None),
            IS_OPEN.clause(Question, now),
        )
        recently_closed = select(Question.ca_user_id).where(
            Question.course_id == course_id,
            Question.ca_user_id.is_not(None),
            IS_CLOSED.clause(Question, now),
            Question.off_time > cutoff,
        )
        recently_frozen = select(Question.initial_ca_user_id).where(
            Question.course_id == course_id,
            Question.initial_ca_user_id.is_not(None),
            Question.frozen_time > cutoff,
        )
        users = await self._gateway.scalars(
            select(User)
            .join(Role, and_(Role.user_id == User.id, Role.course_id == course_id))
            .where(
                Role.role == UserRole.CA.value,
                or_(
                    User.id.in_(answering),
                    User.id.in_(recently_closed),
                    User.id.in_(recently_frozen),
                ),
            )
            .order_by(User.id),
        )
        return [UserOut.model_validate(user) for user in users]
