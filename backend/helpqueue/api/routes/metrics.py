"""Metrics Routes — wait times, queue length and active CAs of a course."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from helpqueue.api.routes.dependencies import get_core
from helpqueue.core.errors import QuestionValidationError
from helpqueue.core.wait_time import as_utc
from helpqueue.schemas.queue import UserOut, WaitTimePoint
from helpqueue.services.queue_core import QueueCore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/courses/{course_id}/metrics", tags=["metrics"])


def _check_range(start: datetime, end: datetime) -> None:
    if as_utc(end) <= as_utc(start):
        raise QuestionValidationError("end must be after start")


@router.get("/wait-time", response_model=WaitTimePoint)
async def average_wait_time(
    course_id: int, start: datetime, end: datetime,
    core: QueueCore = Depends(get_core),
):
    _check_range(start, end)
    return await core.metrics.average_wait_time(start, end, course_id)


@router.get("/wait-time/buckets", response_model=list[WaitTimePoint])
async def bucketed_wait_time(
    course_id: int, start: datetime, end: datetime,
    core: QueueCore = Depends(get_core),
):
    _check_range(start, end)
    return await core.metrics.bucketed_wait_time(start, end, course_id)


@router.get("/open-count")
async def open_count(course_id: int, core: QueueCore = Depends(get_core)):
    return {"course_id": course_id, "open": await core.metrics.open_count(course_id)}


@router.get("/active-cas", response_model=list[UserOut])
async def active_cas(course_id: int, core: QueueCore = Depends(get_core)):
    return await core.metrics.active_cas(course_id)
