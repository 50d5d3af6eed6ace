"""Reference Data — topics and locations a question can point at.

Topics and locations are never deleted, only disabled, so historic
questions keep their labels. Enable and disable only touch rows of the
given course; an id from another course is reported as not found. Inserts publish new_topic / new_location;
enable and disable publish update_topic / update_location.
"""

import logging

from sqlalchemy import select

from helpqueue.core.domain_types import EventTopic
from helpqueue.core.errors import ResourceNotFoundError
from helpqueue.core.events import QueueEvent
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.models.location import Location
from helpqueue.models.topic import Topic
from helpqueue.schemas.queue import LocationOut, TopicOut

logger = logging.getLogger(__name__)


class ReferenceDataService:
    def __init__(self, gateway: QuestionGateway, bus: EventBus):
        self._gateway = gateway
        self._bus = bus

    # ─── topics ─────────────────────────────────────────────────

    async def list_topics(self, course_id: int) -> list[TopicOut]:
        topics = await self._gateway.scalars(
            select(Topic).where(Topic.course_id == course_id).order_by(Topic.id),
        )
        return [TopicOut.model_validate(t) for t in topics]

    async def add_topic(self, course_id: int, label: str) -> TopicOut:
        logger.info("add topic", extra={"course_id": course_id})
        async with self._gateway.transaction() as tx:
            topic = await tx.add(Topic(course_id=course_id, topic=label, enabled=True))
        out = TopicOut.model_validate(topic)
        await self._bus.publish(QueueEvent(EventTopic.NEW_TOPIC, course_id, out))
        return out

    async def enable_topic(self, course_id: int, topic_id: int) -> TopicOut:
        return await self._set_topic_enabled(course_id, topic_id, True)

    async def disable_topic(self, course_id: int, topic_id: int) -> TopicOut:
        return await self._set_topic_enabled(course_id, topic_id, False)

    async def _set_topic_enabled(
        self, course_id: int, topic_id: int, enabled: bool,
    ) -> TopicOut:
        async with self._gateway.transaction() as tx:
            topic = await tx.db.get(Topic, topic_id)
            if topic is None or topic.course_id != course_id:
                raise ResourceNotFoundError("Topic", str(topic_id))
            topic.enabled = enabled
            await tx.db.flush()
        out = TopicOut.model_validate(topic)
        logger.info(
            f"{'enable' if enabled else 'disable'} topic {topic_id}",
            extra={"course_id": out.course_id},
        )
        await self._bus.publish(QueueEvent(EventTopic.UPDATE_TOPIC, out.course_id, out))
        return out

    # ─── locations ──────────────────────────────────────────────

    async def list_locations(self, course_id: int) -> list[LocationOut]:
        locations = await self._gateway.scalars(
            select(Location).where(Location.course_id == course_id).order_by(Location.id),
        )
        return [LocationOut.model_validate(loc) for loc in locations]

    async def add_location(self, course_id: int, label: str) -> LocationOut:
        logger.info("add location", extra={"course_id": course_id})
        async with self._gateway.transaction() as tx:
            location = await tx.add(
                Location(course_id=course_id, location=label, enabled=True),
            )
        out = LocationOut.model_validate(location)
        await self._bus.publish(QueueEvent(EventTopic.NEW_LOCATION, course_id, out))
        return out

    async def enable_location(self, course_id: int, location_id: int) -> LocationOut:
        return await self._set_location_enabled(course_id, location_id, True)

    async def disable_location(self, course_id: int, location_id: int) -> LocationOut:
        return await self._set_location_enabled(course_id, location_id, False)

    async def _set_location_enabled(
        self, course_id: int, location_id: int, enabled: bool,
    ) -> LocationOut:
        async with self._gateway.transaction() as tx:
            location = await tx.db.get(Location, location_id)
            if location is None or location.course_id != course_id:
                raise ResourceNotFoundError("Location", str(location_id))
            location.enabled = enabled
            await tx.db.flush()
        out = LocationOut.model_validate(location)
        logger.info(
            f"{'enable' if enabled else 'disable'} location {location_id}",
            extra={"course_id": out.course_id},
        )
        await self._bus.publish(
            QueueEvent(EventTopic.UPDATE_LOCATION, out.course_id, out),
        )
        return out
