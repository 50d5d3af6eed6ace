"""Question Queries — read-side selectors over hydrated questions."""

import logging

from helpqueue.core.predicates import IS_ANSWERING, IS_CLOSED, IS_OPEN
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.question import Question
from helpqueue.schemas.question import QuestionOut
from helpqueue.schemas.queue import QueueMetaOut

logger = logging.getLogger(__name__)


class QuestionQueries:
    """Selectors used by the HTTP shell and by subscribers needing context."""

    def __init__(self, gateway: QuestionGateway):
        self._gateway = gateway

    async def get_by_id(self, question_id: int) -> QuestionOut | None:
        return await self._gateway.fetch(question_id)

    async def get_open(self, course_id: int) -> list[QuestionOut]:
        """Open questions, newest first."""
        now = self._gateway.now()
        return await self._gateway.select_questions(
            Question.course_id == course_id,
            IS_OPEN.clause(Question, now),
            order_by=[Question.on_time.desc(), Question.id.desc()],
        )

    async def get_by_student(self, student_id: int, course_id: int) -> list[QuestionOut]:
        return await self._gateway.select_questions(
            Question.student_user_id == student_id,
            Question.course_id == course_id,
            order_by=[Question.on_time.desc(), Question.id.desc()],
        )

    async def get_open_by_student(
        self, student_id: int, course_id: int,
    ) -> QuestionOut | None:
        now = self._gateway.now()
        questions = await self._gateway.select_questions(
            Question.student_user_id == student_id,
            Question.course_id == course_id,
            IS_OPEN.clause(Question, now),
            limit=1,
        )
        return questions[0] if questions else None

    async def get_answering_by_ca(
        self, ca_user_id: int, course_id: int,
    ) -> QuestionOut | None:
        now = self._gateway.now()
        questions = await self._gateway.select_questions(
            Question.ca_user_id == ca_user_id,
            Question.course_id == course_id,
            IS_ANSWERING.clause(Question, now),
            limit=1,
        )
        return questions[0] if questions else None

    async def get_latest_closed(self, n: int, course_id: int) -> list[QuestionOut]:
        now = self._gateway.now()
        return await self._gateway.select_questions(
            Question.course_id == course_id,
            IS_CLOSED.clause(Question, now),
            order_by=[Question.off_time.desc(), Question.id.desc()],
            limit=n,
        )

    async def get_latest_closed_by_student(
        self, n: int, student_id: int, course_id: int,
    ) -> list[QuestionOut]:
        now = self._gateway.now()
        return await self._gateway.select_questions(
            Question.student_user_id == student_id,
            Question.course_id == course_id,
            IS_CLOSED.clause(Question, now),
            order_by=[Question.off_time.desc(), Question.id.desc()],
            limit=n,
        )

    async def get_current_meta(self, course_id: int) -> QueueMetaOut | None:
        meta = await self._gateway.current_meta(course_id)
        return QueueMetaOut.model_validate(meta) if meta else None
