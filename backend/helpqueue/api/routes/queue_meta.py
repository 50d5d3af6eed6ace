"""Queue Meta Routes — open/close a course queue, its limits and reference data.

Invariants:
    - Every change appends a queue_meta row or a topic/location row via services
    - Unknown topic/location ids, or ids of another course, are answered with 404
"""

import logging

from fastapi import APIRouter, Depends, status

from helpqueue.api.routes.dependencies import get_core
from helpqueue.core.errors import ResourceNotFoundError
from helpqueue.schemas.question import ActorRequest
from helpqueue.schemas.queue import (
    LabelRequest, LocationOut, MaxFreezeRequest, QueueMetaOut, TimeLimitRequest, TopicOut,
)
from helpqueue.services.queue_core import QueueCore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/courses/{course_id}/queue", tags=["queue"])


@router.get("", response_model=QueueMetaOut)
async def get_queue_meta(course_id: int, core: QueueCore = Depends(get_core)):
    meta = await core.queries.get_current_meta(course_id)
    if meta is None:
        raise ResourceNotFoundError("Queue of course", str(course_id))
    return meta


@router.post("/open", response_model=QueueMetaOut)
async def open_queue(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return await core.meta.open_queue(body.user_id, course_id)


@router.post("/close", response_model=QueueMetaOut)
async def close_queue(
    course_id: int, body: ActorRequest, core: QueueCore = Depends(get_core),
):
    return await core.meta.close_queue(body.user_id, course_id)


@router.put("/time-limit", response_model=QueueMetaOut)
async def set_time_limit(
    course_id: int, body: TimeLimitRequest, core: QueueCore = Depends(get_core),
):
    return await core.meta.set_time_limit(body.minutes, body.user_id, course_id)


@router.put("/max-freeze", response_model=QueueMetaOut)
async def set_max_freeze(
    course_id: int, body: MaxFreezeRequest, core: QueueCore = Depends(get_core),
):
    return await core.meta.set_max_freeze(body.seconds, body.user_id, course_id)


# ─── Topics & locations ─────────────────────────────────────────

@router.get("/topics", response_model=list[TopicOut])
async def list_topics(course_id: int, core: QueueCore = Depends(get_core)):
    return await core.reference.list_topics(course_id)


@router.post("/topics", response_model=TopicOut, status_code=status.HTTP_201_CREATED)
async def add_topic(
    course_id: int, body: LabelRequest, core: QueueCore = Depends(get_core),
):
    return await core.reference.add_topic(course_id, body.label)


@router.post("/topics/{topic_id}/enable", response_model=TopicOut)
async def enable_topic(course_id: int, topic_id: int, core: QueueCore = Depends(get_core)):
    return await core.reference.enable_topic(course_id, topic_id)


@router.post("/topics/{topic_id}/disable", response_model=TopicOut)
async def disable_topic(course_id: int, topic_id: int, core: QueueCore = Depends(get_core)):
    return await core.reference.disable_topic(course_id, topic_id)


@router.get("/locations", response_model=list[LocationOut])
async def list_locations(course_id: int, core: QueueCore = Depends(get_core)):
    return await core.reference.list_locations(course_id)


@router.post("/locations", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
async def add_location(
    course_id: int, body: LabelRequest, core: QueueCore = Depends(get_core),
):
    return await core.reference.add_location(course_id, body.label)


@router.post("/locations/{location_id}/enable", response_model=LocationOut)
async def enable_location(
    course_id: int, location_id: int, core: QueueCore = Depends(get_core),
):
    return await core.reference.enable_location(course_id, location_id)


@router.post("/locations/{location_id}/disable", response_model=LocationOut)
async def disable_location(
    course_id: int, location_id: int, core: QueueCore = Depends(get_core),
):
    return await core.reference.disable_location(course_id, location_id)
