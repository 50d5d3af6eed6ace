"""Change Detector — turns committed question-row changes into domain events.

Invariants:
    - insert -> new_question; delete -> nothing published (logged only)
    - update -> events derived from the typed field diff, in this order:
      question_frozen, (scheduler re-arm), question_answered, question_closed,
      question_returned, question_update
    - help_time changing together with frozen_time is a freeze, not an answer
    - ca_user_id cleared together with help_time is a return and carries the
      released CA id; any other ca_user_id change is a plain question_update
    - question_update is published at most once per change record
    - ConsistencyFault from the diff is logged and re-raised, never swallowed
    - Every published event carries the re-fetched, hydrated question
"""

import logging

from helpqueue.core.domain_types import ChangeKind, EventTopic
from helpqueue.core.errors import ConsistencyFault
from helpqueue.core.events import QuestionEvent
from helpqueue.core.question_diff import FieldChange, changed_fields, diff_rows
from helpqueue.core.repository_protocols import ChangeRecord
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.services.unfreeze_scheduler import UnfreezeScheduler

logger = logging.getLogger(__name__)

_UPDATE_FIELDS = ("topic_id", "location_id", "help_text")


def plan_update_events(
    changes: dict[str, FieldChange],
) -> list[tuple[EventTopic, int | None]]:
    """Map a field diff to (topic, released_ca_user_id) pairs, in publish order."""
    planned: list[tuple[EventTopic, int | None]] = []

    if "frozen_time" in changes:
        planned.append((EventTopic.QUESTION_FROZEN, None))

    if "help_time" in changes and "frozen_time" not in changes:
        planned.append((EventTopic.QUESTION_ANSWERED, None))

    if "off_time" in changes:
        planned.append((EventTopic.QUESTION_CLOSED, None))

    needs_update = any(name in changes for name in _UPDATE_FIELDS)
    ca_change = changes.get("ca_user_id")
    if ca_change is not None:
        if "help_time" in changes and ca_change.new is None:
            planned.append((EventTopic.QUESTION_RETURNED, ca_change.old))
        else:
            needs_update = True

    if needs_update:
        planned.append((EventTopic.QUESTION_UPDATE, None))
    return planned


class ChangeDetector:
    """Change-feed listener publishing question events on the bus."""

    def __init__(
        self,
        gateway: QuestionGateway,
        bus: EventBus,
        scheduler: UnfreezeScheduler,
    ):
        self._gateway = gateway
        self._bus = bus
        self._scheduler = scheduler

    def attach(self) -> None:
        self._gateway.feed.subscribe(self.handle)

    async def handle(self, record: ChangeRecord) -> None:
        question_id = record.row["id"]
        if record.kind == ChangeKind.INSERT:
            logger.info("question insert", extra={"question_id": question_id})
            await self._publish(EventTopic.NEW_QUESTION, question_id)
        elif record.kind == ChangeKind.DELETE:
            logger.info("question delete", extra={"question_id": question_id})
        else:
            await self._on_update(record.old, record.new)

    async def _on_update(self, old: dict, new: dict) -> None:
        question_id = new.get("id", old.get("id"))
        logger.info("question update", extra={"question_id": question_id})
        try:
            changes = changed_fields(diff_rows(old, new))
        except ConsistencyFault as e:
            logger.error(
                e.message,
                extra={"error_code": e.code, "question_id": question_id},
            )
            raise

        frozen_end = changes.get("frozen_end_time")
        if frozen_end is not None and frozen_end.new is not None:
            self._scheduler.arm(question_id, frozen_end.new)
        if "off_time" in changes and self._scheduler.cancel(question_id):
            logger.debug("delete freeze timer", extra={"question_id": question_id})

        planned = plan_update_events(changes)
        if not planned:
            return
        question = await self._gateway.fetch(question_id)
        if question is None:
            logger.warning(
                "Changed question vanished before publish",
                extra={"question_id": question_id},
            )
            return
        for topic, released_ca in planned:
            logger.debug(topic.value, extra={"question_id": question_id, "event": topic.value})
            await self._bus.publish(QuestionEvent(topic, question, released_ca))

    async def _publish(self, topic: EventTopic, question_id: int) -> None:
        question = await self._gateway.fetch(question_id)
        if question is None:
            logger.warning(
                f"Question vanished before {topic.value}",
                extra={"question_id": question_id},
            )
            return
        await self._bus.publish(QuestionEvent(topic, question))
