"""Integration Tests: QueueMetaService and ReferenceDataService.

Invariants:
    - queue_meta is append-only; each change copies the current row
    - Every meta change publishes queue_meta with the cleaned meta
    - Topic / location inserts publish new_*; enable/disable publish update_*
    - Enable/disable never reach rows of another course
"""

import pytest
from sqlalchemy import func, select

from helpqueue.core.domain_types import (
    DEFAULT_MAX_FREEZE_SECONDS, DEFAULT_TIME_LIMIT_MINUTES, EventTopic,
)
from helpqueue.core.errors import QuestionValidationError, ResourceNotFoundError
from helpqueue.models import Course, QueueMeta


async def _meta_rows(test_db, course_id):
    return (await test_db.execute(
        select(func.count()).select_from(QueueMeta).where(QueueMeta.course_id == course_id),
    )).scalar_one()


async def test_close_queue_appends_row_and_publishes(core, seed, test_db, events):
    meta = await core.meta.close_queue(seed.admin, seed.course_id)

    assert not meta.open
    assert meta.max_freeze == 600
    assert await _meta_rows(test_db, seed.course_id) == 2
    event = events.of(EventTopic.QUEUE_META)[0]
    assert event.course_id == seed.course_id
    assert event.payload == meta
    assert "user_id" not in event.payload.model_dump()


async def test_closed_queue_rejects_then_reopened_queue_accepts(core, seed, add_question):
    await core.meta.close_queue(seed.admin, seed.course_id)
    result = await core.questions.add({
        "student_user_id": 1, "topic_id": 1, "location_id": 1,
        "help_text": "anyone?", "course_id": seed.course_id,
    })
    assert result.error["code"] == "QUEUE_CLOSED"

    await core.meta.open_queue(seed.admin, seed.course_id)
    assert await add_question(1)


async def test_limits_are_copied_forward(core, seed):
    await core.meta.set_time_limit(20, seed.admin, seed.course_id)
    meta = await core.meta.set_max_freeze(90, seed.admin, seed.course_id)

    assert meta.time_limit == 20
    assert meta.max_freeze == 90
    assert meta.open


async def test_first_meta_of_course_uses_defaults(core, seed, test_db):
    test_db.add(Course(id=2, name="CS 102"))
    await test_db.commit()

    meta = await core.meta.open_queue(seed.admin, 2)

    assert meta.open
    assert meta.max_freeze == DEFAULT_MAX_FREEZE_SECONDS
    assert meta.time_limit == DEFAULT_TIME_LIMIT_MINUTES


@pytest.mark.parametrize("value", [0, -5, True, "10"])
async def test_limits_must_be_positive_integers(core, seed, value):
    with pytest.raises(QuestionValidationError):
        await core.meta.set_time_limit(value, seed.admin, seed.course_id)
    with pytest.raises(QuestionValidationError):
        await core.meta.set_max_freeze(value, seed.admin, seed.course_id)


# -- reference data ------------------------------------------------------------

async def test_add_topic_publishes_new_topic(core, seed, events):
    topic = await core.reference.add_topic(seed.course_id, "Pointers")

    assert topic.enabled
    assert events.of(EventTopic.NEW_TOPIC)[0].payload == topic
    labels = [t.topic for t in await core.reference.list_topics(seed.course_id)]
    assert labels == ["Recursion", "Pointers"]


async def test_disable_and_enable_topic_publish_updates(core, seed, events):
    disabled = await core.reference.disable_topic(seed.course_id, seed.topic_id)
    enabled = await core.reference.enable_topic(seed.course_id, seed.topic_id)

    assert not disabled.enabled
    assert enabled.enabled
    assert [e.payload.enabled for e in events.of(EventTopic.UPDATE_TOPIC)] == [False, True]


async def test_location_lifecycle(core, seed, events):
    location = await core.reference.add_location(seed.course_id, "Lab 3")
    await core.reference.disable_location(seed.course_id, location.id)

    assert events.of(EventTopic.NEW_LOCATION)[0].payload.location == "Lab 3"
    assert not events.of(EventTopic.UPDATE_LOCATION)[0].payload.enabled
    assert len(await core.reference.list_locations(seed.course_id)) == 2


async def test_unknown_topic_is_not_found(core, seed):
    with pytest.raises(ResourceNotFoundError):
        await core.reference.enable_topic(seed.course_id, 404)


async def test_topic_of_another_course_is_not_found(core, seed, test_db, events):
    test_db.add(Course(id=2, name="CS 102"))
    await test_db.commit()
    other = await core.reference.add_topic(2, "Linked lists")
    events.clear()

    with pytest.raises(ResourceNotFoundError):
        await core.reference.disable_topic(seed.course_id, other.id)

    assert [t.enabled for t in await core.reference.list_topics(2)] == [True]
    assert events.of(EventTopic.UPDATE_TOPIC) == []


async def test_location_of_another_course_is_not_found(core, seed, test_db, events):
    test_db.add(Course(id=2, name="CS 102"))
    await test_db.commit()
    other = await core.reference.add_location(2, "Annex")
    events.clear()

    with pytest.raises(ResourceNotFoundError):
        await core.reference.disable_location(seed.course_id, other.id)

    assert [loc.enabled for loc in await core.reference.list_locations(2)] == [True]
    assert events.of(EventTopic.UPDATE_LOCATION) == []
