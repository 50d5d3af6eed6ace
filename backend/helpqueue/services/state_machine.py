"""Question State Machine — every transition a question can make.

Invariants:
    - Input is validated before any transaction opens (QuestionValidationError)
    - Each operation is one transaction that takes the acting user's lock
      before its guard query and keeps it until commit/rollback
    - QueueClosedError, DoubleAddError and DoubleAnswerError are caught here,
      logged, and returned as OperationResult(ok=False); other errors propagate
    - off_time is only ever written where off_time IS NULL (close is idempotent)
    - freeze snapshots help_time / ca_user_id into initial_* and clears them;
      unfreeze only moves frozen_end_time to now and does not restore them

Design Decisions:
    - Filters are composed from core/predicates.py, never hand-written SQL
    - answer() locks candidate rows with SKIP LOCKED so two CAs answering at
      once take two different questions (PostgreSQL; SQLite serializes writers)
"""

import logging
from datetime import timedelta

from pydantic import BaseModel, ValidationError

from helpqueue.core.domain_types import DEFAULT_MAX_FREEZE_SECONDS, OffReason
from helpqueue.core.errors import (
    BusinessRuleError, DoubleAddError, DoubleAnswerError, QueueClosedError,
    QuestionValidationError,
)
from helpqueue.core.predicates import (
    CAN_FREEZE, IS_ANSWERING, IS_FROZEN, IS_NOT_ANSWERING, IS_NOT_FROZEN, IS_OPEN,
)
from helpqueue.infrastructure.question_gateway import QuestionGateway, QuestionTransaction
from helpqueue.models.question import Question
from helpqueue.schemas.question import OperationResult, QuestionCreate, QuestionPatch

logger = logging.getLogger(__name__)

CA_CLOSE_REASONS = frozenset({OffReason.NORMAL, OffReason.CA_KICK})


def _validate(schema: type[BaseModel], payload) -> BaseModel:
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise QuestionValidationError(
            "Invalid input",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ],
        )


def _off_reason(reason, allowed=frozenset(OffReason)) -> OffReason:
    try:
        off_reason = OffReason(reason)
    except ValueError:
        raise QuestionValidationError(f"Unknown off_reason '{reason}'")
    if off_reason not in allowed:
        raise QuestionValidationError(f"off_reason '{off_reason.value}' not allowed here")
    return off_reason


def _freeze_values(frozen_by: int, tx: QuestionTransaction, max_freeze: int) -> dict:
    frozen_end = tx.now + timedelta(seconds=max_freeze)
    return {
        "frozen_by": frozen_by,
        "frozen_time": tx.now,
        "frozen_end_time": frozen_end,
        "frozen_end_max_time": frozen_end,
        "initial_help_time": lambda q: q.help_time,
        "initial_ca_user_id": lambda q: q.ca_user_id,
        "help_time": None,
        "ca_user_id": None,
    }


def _close_values(reason: OffReason, off_by: int, tx: QuestionTransaction) -> dict:
    return {"off_time": tx.now, "off_reason": reason.value, "off_by": off_by}


class QuestionStateMachine:
    """Create and transition questions under per-actor locks."""

    def __init__(self, gateway: QuestionGateway):
        self._gateway = gateway

    # ─── add ────────────────────────────────────────────────────

    async def add(self, payload) -> OperationResult:
        """Submit a question for a student."""
        question_in: QuestionCreate = _validate(QuestionCreate, payload)
        logger.info(
            "add question",
            extra={
                "course_id": question_in.course_id,
                "user_id": question_in.student_user_id,
            },
        )
        try:
            async with self._gateway.transaction() as tx:
                await tx.lock_user(question_in.student_user_id)
                meta = await tx.current_meta(question_in.course_id)
                if meta is None or not meta.open:
                    raise QueueClosedError(question_in.course_id)
                open_questions = await tx.count_questions(
                    Question.student_user_id == question_in.student_user_id,
                    Question.course_id == question_in.course_id,
                    IS_OPEN.clause(Question, tx.now),
                )
                if open_questions:
                    raise DoubleAddError(
                        question_in.student_user_id, question_in.course_id,
                    )
                question = await tx.insert_question({
                    **question_in.model_dump(),
                    "on_time": tx.now,
                })
        except BusinessRuleError as e:
            return self._rejected(e)
        return OperationResult(ok=True, affected=1, question_id=question.id)

    # ─── answer / return ────────────────────────────────────────

    async def answer(self, ca_user_id: int, course_id: int) -> OperationResult:
        """Assign the oldest waiting, not-frozen question to the CA."""
        logger.info("answer question", extra={"course_id": course_id, "user_id": ca_user_id})
        try:
            async with self._gateway.transaction() as tx:
                await tx.lock_user(ca_user_id)
                busy = await tx.count_questions(
                    Question.ca_user_id == ca_user_id,
                    Question.course_id == course_id,
                    IS_NOT_FROZEN.clause(Question, tx.now),
                    IS_OPEN.clause(Question, tx.now),
                    IS_ANSWERING.clause(Question, tx.now),
                )
                if busy:
                    raise DoubleAnswerError(ca_user_id, course_id)
                answered = await tx.update_questions(
                    [
                        Question.course_id == course_id,
                        IS_NOT_FROZEN.clause(Question, tx.now),
                        IS_OPEN.clause(Question, tx.now),
                        IS_NOT_ANSWERING.clause(Question, tx.now),
                    ],
                    {"help_time": tx.now, "ca_user_id": ca_user_id},
                    order_by=[Question.on_time.asc(), Question.id.asc()],
                    limit=1,
                    skip_locked=True,
                )
        except BusinessRuleError as e:
            return self._rejected(e)
        return self._updated(answered)

    async def return_question(self, ca_user_id: int, course_id: int) -> OperationResult:
        """Put the CA's current question back in the waiting pool."""
        logger.info("return question", extra={"course_id": course_id, "user_id": ca_user_id})
        async with self._gateway.transaction() as tx:
            await tx.lock_user(ca_user_id)
            returned = await tx.update_questions(
                [
                    Question.ca_user_id == ca_user_id,
                    Question.course_id == course_id,
                    IS_ANSWERING.clause(Question, tx.now),
                ],
                {"help_time": None, "ca_user_id": None},
            )
        return self._updated(returned)

    # ─── freeze / unfreeze ──────────────────────────────────────

    async def freeze_student(self, student_id: int, course_id: int) -> OperationResult:
        """Student parks their own waiting question."""
        logger.info("freeze student question", extra={"course_id": course_id, "user_id": student_id})
        return await self._freeze(
            student_id, course_id,
            lambda now: [
                Question.student_user_id == student_id,
                IS_OPEN.clause(Question, now),
                IS_NOT_ANSWERING.clause(Question, now),
            ],
        )

    async def freeze_ca(self, ca_user_id: int, course_id: int) -> OperationResult:
        """CA parks the question they are answering."""
        logger.info("freeze ca question", extra={"course_id": course_id, "user_id": ca_user_id})
        return await self._freeze(
            ca_user_id, course_id,
            lambda now: [
                Question.ca_user_id == ca_user_id,
                IS_ANSWERING.clause(Question, now),
            ],
        )

    async def freeze_by_id(
        self, question_id: int, frozen_by: int, course_id: int,
    ) -> OperationResult:
        """Administrative freeze of any freezable question."""
        logger.info(
            "freeze question id",
            extra={"course_id": course_id, "question_id": question_id, "user_id": frozen_by},
        )
        return await self._freeze(
            frozen_by, course_id, lambda now: [Question.id == question_id],
        )

    async def _freeze(self, actor_id: int, course_id: int, criteria) -> OperationResult:
        async with self._gateway.transaction() as tx:
            await tx.lock_user(actor_id)
            meta = await tx.current_meta(course_id)
            max_freeze = meta.max_freeze if meta else DEFAULT_MAX_FREEZE_SECONDS
            frozen = await tx.update_questions(
                [
                    Question.course_id == course_id,
                    CAN_FREEZE.clause(Question, tx.now),
                    *criteria(tx.now),
                ],
                _freeze_values(actor_id, tx, max_freeze),
            )
        return self._updated(frozen)

    async def unfreeze_student(self, student_id: int, course_id: int) -> OperationResult:
        """End the student's freeze now; the help assignment stays cleared."""
        logger.info("unfreeze student question", extra={"course_id": course_id, "user_id": student_id})
        async with self._gateway.transaction() as tx:
            await tx.lock_user(student_id)
            unfrozen = await tx.update_questions(
                [
                    Question.student_user_id == student_id,
                    Question.course_id == course_id,
                    IS_OPEN.clause(Question, tx.now),
                    IS_FROZEN.clause(Question, tx.now),
                ],
                {"frozen_end_time": tx.now},
            )
        return self._updated(unfrozen)

    # ─── close ──────────────────────────────────────────────────

    async def close_student(self, student_id: int, course_id: int) -> OperationResult:
        """Student withdraws their own open question."""
        logger.info("close student question", extra={"course_id": course_id, "user_id": student_id})
        async with self._gateway.transaction() as tx:
            await tx.lock_user(student_id)
            closed = await tx.update_questions(
                [
                    Question.student_user_id == student_id,
                    Question.course_id == course_id,
                    IS_OPEN.clause(Question, tx.now),
                ],
                _close_values(OffReason.SELF_KICK, student_id, tx),
            )
        return self._updated(closed)

    async def close_ca(
        self, ca_user_id: int, reason, course_id: int,
    ) -> OperationResult:
        """CA finishes (normal) or kicks (ca_kick) the question they are answering."""
        off_reason = _off_reason(reason, CA_CLOSE_REASONS)
        logger.info("close ca question", extra={"course_id": course_id, "user_id": ca_user_id})
        async with self._gateway.transaction() as tx:
            await tx.lock_user(ca_user_id)
            closed = await tx.update_questions(
                [
                    Question.ca_user_id == ca_user_id,
                    Question.course_id == course_id,
                    IS_ANSWERING.clause(Question, tx.now),
                ],
                _close_values(off_reason, ca_user_id, tx),
            )
        return self._updated(closed)

    async def close_by_id(
        self, actor_id: int, reason, question_id: int, course_id: int,
    ) -> OperationResult:
        """Administrative close of any question that is not closed yet."""
        off_reason = _off_reason(reason)
        logger.info(
            "close question id",
            extra={"course_id": course_id, "question_id": question_id, "user_id": actor_id},
        )
        async with self._gateway.transaction() as tx:
            await tx.lock_user(actor_id)
            closed = await tx.update_questions(
                [
                    Question.id == question_id,
                    Question.course_id == course_id,
                    IS_OPEN.clause(Question, tx.now),
                ],
                _close_values(off_reason, actor_id, tx),
            )
        return self._updated(closed)

    # ─── edit ───────────────────────────────────────────────────

    async def update_meta(self, user_id: int, patch, course_id: int) -> OperationResult:
        """Edit topic, location or help text of the user's open question."""
        changes = _validate(QuestionPatch, patch).model_dump(exclude_unset=True)
        logger.info("update question meta", extra={"course_id": course_id, "user_id": user_id})
        if not changes:
            return OperationResult(ok=True)
        async with self._gateway.transaction() as tx:
            await tx.lock_user(user_id)
            updated = await tx.update_questions(
                [
                    Question.student_user_id == user_id,
                    Question.course_id == course_id,
                    IS_OPEN.clause(Question, tx.now),
                ],
                changes,
            )
        return self._updated(updated)

    async def delete(self, question_id: int) -> bool:
        """Hard delete (administration and test fixtures only)."""
        async with self._gateway.transaction() as tx:
            return await tx.delete_question(question_id)

    # ─── helpers ────────────────────────────────────────────────

    @staticmethod
    def _updated(questions: list[Question]) -> OperationResult:
        return OperationResult(
            ok=True,
            affected=len(questions),
            question_id=questions[0].id if questions else None,
        )

    @staticmethod
    def _rejected(exc: BusinessRuleError) -> OperationResult:
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={
                "error_code": exc.code,
                "course_id": exc.context.course_id,
                "user_id": exc.context.user_id,
            },
        )
        return OperationResult.rejected(exc)
