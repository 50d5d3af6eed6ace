"""Active CA Tracker — keeps subscribers told which CAs are working a course.

Invariants:
    - question_answered publishes cas_active for the course immediately
    - question_closed / question_frozen publish again once the acting CA's
      activity window (active_timeout + 1 seconds) has run out
    - reconcile() re-schedules the recounts still owed for closes and freezes
      made in the last active_timeout seconds before a restart
"""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import and_, or_

from helpqueue.core.domain_types import ACTIVE_TIMEOUT, EventTopic, OffReason
from helpqueue.core.events import QueueEvent
from helpqueue.core.repository_protocols import Clock
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.question import Question
from helpqueue.services.metrics import QueueMetrics

logger = logging.getLogger(__name__)


class ActiveCaTracker:
    """Bus subscriber publishing cas_active recounts."""

    def __init__(
        self,
        gateway: QuestionGateway,
        bus: EventBus,
        metrics: QueueMetrics,
        clock: Clock,
        active_timeout: int = ACTIVE_TIMEOUT,
    ):
        self._gateway = gateway
        self._bus = bus
        self._metrics = metrics
        self._clock = clock
        self._timeout = active_timeout
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def attach(self) -> None:
        self._bus.subscribe(EventTopic.QUESTION_ANSWERED, self._on_answered)
        self._bus.subscribe(EventTopic.QUESTION_CLOSED, self._on_released)
        self._bus.subscribe(EventTopic.QUESTION_FROZEN, self._on_released)

    async def _on_answered(self, event) -> None:
        await self.emit_active(event.course_id)

    async def _on_released(self, event) -> None:
        self.schedule(event.course_id, self._timeout + 1)

    async def emit_active(self, course_id: int) -> None:
        cas = await self._metrics.active_cas(course_id)
        await self._bus.publish(QueueEvent(EventTopic.CAS_ACTIVE, course_id, cas))

    def schedule(self, course_id: int, delay: float) -> None:
        """Publish a recount for the course after `delay` seconds."""
        task = asyncio.create_task(self._emit_after(course_id, max(0.0, delay)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _emit_after(self, course_id: int, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.emit_active(course_id)
        except Exception:
            logger.error(
                "Active CA recount failed", exc_info=True, extra={"course_id": course_id},
            )

    async def reconcile(self) -> int:
        """Schedule the recounts owed for recent closes and freezes."""
        now = self._clock.now()
        cutoff = now - timedelta(seconds=self._timeout)
        recent = await self._gateway.fetch_rows(
            or_(
                and_(
                    Question.off_time > cutoff,
                    Question.off_reason.in_(
                        [OffReason.NORMAL.value, OffReason.CA_KICK.value],
                    ),
                ),
                and_(
                    Question.frozen_time > cutoff,
                    Question.initial_ca_user_id.is_not(None),
                ),
            ),
        )
        for question in recent:
            released_at = max(
                t for t in (question.off_time, question.frozen_time) if t is not None
            )
            delay = (released_at - now).total_seconds() + self._timeout + 1
            self.schedule(question.course_id, delay)
        logger.info(f"Rescheduled {len(recent)} active CA recount(s)")
        return len(recent)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
