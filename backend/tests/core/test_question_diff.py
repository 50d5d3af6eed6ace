"""Tests for diff_rows and plan_update_events — field diffs and event mapping."""

from datetime import datetime, timezone

import pytest

from helpqueue.core.domain_types import EventTopic
from helpqueue.core.errors import ConsistencyFault
from helpqueue.core.question_diff import FieldChange, changed_fields, diff_rows
from helpqueue.services.change_detector import plan_update_events

T0 = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 2, 14, 5, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "id": 1, "help_text": "help", "topic_id": 1, "location_id": 1,
        "help_time": None, "ca_user_id": None, "frozen_time": None,
        "frozen_end_time": None, "off_time": None,
    }
    row.update(overrides)
    return row


def _plan(old, new):
    return [topic for topic, _ in plan_update_events(changed_fields(diff_rows(old, new)))]


# -- diff_rows -----------------------------------------------------------------

def test_identical_rows_have_no_changes():
    assert diff_rows(_row(), _row()) == []


def test_changed_scalar_is_reported_with_old_and_new():
    changes = diff_rows(_row(), _row(help_text="new text"))
    assert changes == [FieldChange("help_text", "help", "new text")]


def test_changes_follow_old_key_order():
    changes = diff_rows(_row(), _row(off_time=T1, help_text="x"))
    assert [c.field for c in changes] == ["help_text", "off_time"]


def test_added_field_raises_consistency_fault():
    with pytest.raises(ConsistencyFault) as exc_info:
        diff_rows(_row(), {**_row(), "extra": 1})
    assert "row has added/deleted fields" in exc_info.value.message


def test_removed_field_raises_consistency_fault():
    old = _row()
    new = _row()
    del new["help_text"]
    with pytest.raises(ConsistencyFault):
        diff_rows(old, new)


def test_nested_value_raises_consistency_fault():
    with pytest.raises(ConsistencyFault) as exc_info:
        diff_rows(_row(), _row(help_text=["a", "b"]))
    assert "row is nested" in exc_info.value.message
    assert exc_info.value.code == "CONSISTENCY_FAULT"


# -- plan_update_events --------------------------------------------------------

def test_help_text_only_update_is_one_question_update():
    assert _plan(_row(), _row(help_text="edited")) == [EventTopic.QUESTION_UPDATE]


def test_topic_and_location_together_still_one_update():
    assert _plan(_row(), _row(topic_id=2, location_id=3)) == [EventTopic.QUESTION_UPDATE]


def test_answer_publishes_answered_then_update_for_new_ca():
    assert _plan(_row(), _row(help_time=T1, ca_user_id=10)) == [
        EventTopic.QUESTION_ANSWERED, EventTopic.QUESTION_UPDATE,
    ]


def test_freeze_of_answering_question_is_not_an_answer():
    old = _row(help_time=T0, ca_user_id=10)
    new = _row(frozen_time=T1, frozen_end_time=T1, help_time=None, ca_user_id=None)
    topics = _plan(old, new)
    assert EventTopic.QUESTION_FROZEN in topics
    assert EventTopic.QUESTION_ANSWERED not in topics


def test_ca_freeze_also_releases_the_ca():
    old = _row(help_time=T0, ca_user_id=10)
    new = _row(frozen_time=T1, frozen_end_time=T1, help_time=None, ca_user_id=None)
    planned = plan_update_events(changed_fields(diff_rows(old, new)))
    assert planned == [
        (EventTopic.QUESTION_FROZEN, None), (EventTopic.QUESTION_RETURNED, 10),
    ]


def test_return_carries_released_ca():
    old = _row(help_time=T0, ca_user_id=10)
    new = _row()
    planned = plan_update_events(changed_fields(diff_rows(old, new)))
    assert planned == [(EventTopic.QUESTION_RETURNED, 10)]


def test_close_is_question_closed():
    assert _plan(_row(), _row(off_time=T1)) == [EventTopic.QUESTION_CLOSED]


def test_frozen_end_time_alone_publishes_nothing():
    old = _row(frozen_time=T0, frozen_end_time=T1)
    new = _row(frozen_time=T0, frozen_end_time=T0)
    assert _plan(old, new) == []
