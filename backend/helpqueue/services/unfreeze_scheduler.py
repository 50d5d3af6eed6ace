"""Unfreeze Scheduler — in-memory freeze-expiry timers rebuilt from the database.

Invariants:
    - At most one timer per question id; arming again replaces the old timer
    - A timer fires at frozen_end_time, publishes question_unfrozen with the
      hydrated question, then drops its own entry
    - cancel() before the fire time always wins: a cancelled timer never publishes
    - reconcile() re-arms every open question whose frozen_end_time is still
      in the future; it must run before the app accepts traffic
    - Nothing is persisted: the questions table is the durable source
"""

import asyncio
import logging
from datetime import datetime

from helpqueue.core.domain_types import EventTopic
from helpqueue.core.events import QuestionEvent
from helpqueue.core.predicates import IS_OPEN
from helpqueue.core.repository_protocols import Clock
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.question import Question

logger = logging.getLogger(__name__)


class UnfreezeScheduler:
    """Arena of asyncio timer tasks keyed by question id."""

    def __init__(self, gateway: QuestionGateway, bus: EventBus, clock: Clock):
        self._gateway = gateway
        self._bus = bus
        self._clock = clock
        self._timers: dict[int, asyncio.Task] = {}

    @property
    def pending(self) -> set[int]:
        return set(self._timers)

    def arm(self, question_id: int, fire_at: datetime) -> None:
        """(Re)schedule the unfreeze notification of one question."""
        self.cancel(question_id)
        delay = max(0.0, (fire_at - self._clock.now()).total_seconds())
        task = asyncio.create_task(
            self._fire_after(question_id, delay), name=f"unfreeze-{question_id}",
        )
        task.add_done_callback(_log_failure)
        self._timers[question_id] = task
        logger.debug(
            "unfreeze timer armed",
            extra={"question_id": question_id, "delay_seconds": delay},
        )

    def cancel(self, question_id: int) -> bool:
        task = self._timers.pop(question_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    async def reconcile(self) -> int:
        """Arm timers for every question still frozen in the database."""
        now = self._clock.now()
        pending = await self._gateway.fetch_rows(
            IS_OPEN.clause(Question, now),
            Question.frozen_end_time > now,
        )
        for question in pending:
            self.arm(question.id, question.frozen_end_time)
        logger.info(f"Reconciled {len(pending)} pending unfreeze timer(s)")
        return len(pending)

    async def shutdown(self) -> None:
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire_after(self, question_id: int, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            question = await self._gateway.fetch(question_id)
            if question is None:
                logger.warning(
                    "Frozen question vanished before unfreeze",
                    extra={"question_id": question_id},
                )
                return
            logger.info("question unfrozen", extra={"question_id": question_id})
            await self._bus.publish(
                QuestionEvent(EventTopic.QUESTION_UNFROZEN, question),
            )
        finally:
            if self._timers.get(question_id) is asyncio.current_task():
                del self._timers[question_id]


def _log_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Timer task {task.get_name()} failed: {exc}",
            exc_info=exc,
        )
