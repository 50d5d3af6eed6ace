"""Question Routes — thin HTTP wrappers over the question state machine and selectors.

Invariants:
    - Every mutation delegates to QuestionStateMachine; routes hold no queue rules
    - A business-rule rejection (ok=False) is answered with 409 and the result body
    - The acting user comes from the request body (no authentication layer here)
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from helpqueue.api.routes.dependencies import get_core, operation_response
from helpqueue.core.errors import ResourceNotFoundError
from helpqueue.schemas.question import (
    ActorRequest, AddQuestionRequest, CloseRequest, PatchQuestionRequest, QuestionOut,
)
from helpqueue.services.queue_core import QueueCore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/courses/{course_id}/questions", tags=["questions"])


# ─── Reads ──────────────────────────────────────────────────────

@router.get("", response_model=list[QuestionOut])
async def list_open_questions(course_id: int, core: QueueCore = Depends(get_core)):
    return await core.queries.get_open(course_id)


@router.get("/closed", response_model=list[QuestionOut])
async def list_closed_questions(
    course_id: int,
    n: int = Query(10, gt=0, le=200),
    student_id: int | None = None,
    core: QueueCore = Depends(get_core),
):
    if student_id is not None:
        return await core.queries.get_latest_closed_by_student(n, student_id, course_id)
    return await core.queries.get_latest_closed(n, course_id)


@router.get("/students/{student_id}", response_model=list[QuestionOut])
async def list_student_questions(
    course_id: int, student_id: int, core: QueueCore = Depends(get_core),
):
    return await core.queries.get_by_student(student_id, course_id)


@router.get("/students/{student_id}/open", response_model=QuestionOut)
async def get_student_open_question(
    course_id: int, student_id: int, core: QueueCore = Depends(get_core),
):
    question = await core.queries.get_open_by_student(student_id, course_id)
    if question is None:
        raise ResourceNotFoundError("Open question of student", str(student_id))
    return question


@router.get("/cas/{ca_user_id}/answering", response_model=QuestionOut)
async def get_ca_answering_question(
    course_id: int, ca_user_id: int, core: QueueCore = Depends(get_core),
):
    question = await core.queries.get_answering_by_ca(ca_user_id, course_id)
    if question is None:
        raise ResourceNotFoundError("Answering question of CA", str(ca_user_id))
    return question


@router.get("/{question_id}", response_model=QuestionOut)
async def get_question(
    course_id: int, question_id: int, core: QueueCore = Depends(get_core),
):
    question = await core.queries.get_by_id(question_id)
    if question is None or question.course_id != course_id:
        raise ResourceNotFoundError("Question", str(question_id))
    return question


# ─── Student operations ─────────────────────────────────────────

@router.post("")
async def add_question(
    course_id: int, body: AddQuestionRequest, core: QueueCore = Depends(get_core),
):
    result = await core.questions.add({**body.model_dump(), "course_id": course_id})
    return operation_response(result, status.HTTP_201_CREATED)


@router.patch("/mine")
async def update_question(
    course_id: int, body: PatchQuestionRequest, core: QueueCore = Depends(get_core),
):
    result = await core.questions.update_meta(body.user_id, body.patch, course_id)
    return operation_response(result)


@router.post("/mine/freeze")
async def freeze_own_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.freeze_student(body.user_id, course_id))


@router.post("/mine/unfreeze")
async def unfreeze_own_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.unfreeze_student(body.user_id, course_id))


@router.post("/mine/close")
async def close_own_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.close_student(body.user_id, course_id))


# ─── CA operations ──────────────────────────────────────────────

@router.post("/answer")
async def answer_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.answer(body.user_id, course_id))


@router.post("/answering/return")
async def return_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.return_question(body.user_id, course_id))


@router.post("/answering/freeze")
async def freeze_answering_question(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return operation_response(await core.questions.freeze_ca(body.user_id, course_id))


@router.post("/answering/close")
async def close_answering_question(
    course_id: int, body: CloseRequest, core: QueueCore = Depends(get_core),
):
    result = await core.questions.close_ca(body.user_id, body.reason, course_id)
    return operation_response(result)


# ─── Administrative operations ──────────────────────────────────

@router.post("/{question_id}/freeze")
async def freeze_question(
    course_id: int, question_id: int, body: ActorRequest,
    core: QueueCore = Depends(get_core),
):
    result = await core.questions.freeze_by_id(question_id, body.user_id, course_id)
    return operation_response(result)


@router.post("/{question_id}/close")
async def close_question(
    course_id: int, question_id: int, body: CloseRequest,
    core: QueueCore = Depends(get_core),
):
    result = await core.questions.close_by_id(
        body.user_id, body.reason, question_id, course_id,
    )
    return operation_response(result)
