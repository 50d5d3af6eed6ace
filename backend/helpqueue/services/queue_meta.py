"""Queue Meta Service — open/close the queue and tune its limits.

Invariants:
    - queue_meta is append-only: every change copies the current row, changes
      one field and inserts the copy
    - A course without meta behaves as a closed queue with default limits
    - Every change publishes queue_meta with the cleaned meta (no author, no time)
"""

import logging

from helpqueue.core.domain_types import (
    DEFAULT_MAX_FREEZE_SECONDS, DEFAULT_TIME_LIMIT_MINUTES, EventTopic,
)
from helpqueue.core.errors import QuestionValidationError
from helpqueue.core.events import QueueEvent
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.queue_meta import QueueMeta
from helpqueue.schemas.queue import QueueMetaOut

logger = logging.getLogger(__name__)


def _positive(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise QuestionValidationError(f"{name} must be a positive integer")
    return value


class QueueMetaService:
    """Appends queue_meta rows and announces the result."""

    def __init__(self, gateway: QuestionGateway, bus: EventBus):
        self._gateway = gateway
        self._bus = bus

    async def open_queue(self, user_id: int, course_id: int) -> QueueMetaOut:
        logger.info("open queue", extra={"course_id": course_id, "user_id": user_id})
        return await self._append(user_id, course_id, open=True)

    async def close_queue(self, user_id: int, course_id: int) -> QueueMetaOut:
        logger.info("close queue", extra={"course_id": course_id, "user_id": user_id})
        return await self._append(user_id, course_id, open=False)

    async def set_time_limit(
        self, minutes: int, user_id: int, course_id: int,
    ) -> QueueMetaOut:
        minutes = _positive("time_limit", minutes)
        logger.info("set time limit", extra={"course_id": course_id, "user_id": user_id})
        return await self._append(user_id, course_id, time_limit=minutes)

    async def set_max_freeze(
        self, seconds: int, user_id: int, course_id: int,
    ) -> QueueMetaOut:
        seconds = _positive("max_freeze", seconds)
        logger.info("set max freeze", extra={"course_id": course_id, "user_id": user_id})
        return await self._append(user_id, course_id, max_freeze=seconds)

    async def _append(self, user_id: int, course_id: int, **changes) -> QueueMetaOut:
        async with self._gateway.transaction() as tx:
            await tx.lock_user(user_id)
            current = await tx.current_meta(course_id)
            values = {
                "open": current.open if current else False,
                "max_freeze": current.max_freeze if current else DEFAULT_MAX_FREEZE_SECONDS,
                "time_limit": current.time_limit if current else DEFAULT_TIME_LIMIT_MINUTES,
                **changes,
            }
            meta = await tx.add(QueueMeta(
                course_id=course_id, user_id=user_id, time=tx.now, **values,
            ))
        cleaned = QueueMetaOut.model_validate(meta)
        await self._bus.publish(QueueEvent(EventTopic.QUEUE_META, course_id, cleaned))
        return cleaned
