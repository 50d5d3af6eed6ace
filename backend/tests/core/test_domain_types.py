"""Domain Types — verifies enum values and fixed constants.

Tests:
    - NewType wrappers exist and are callable
    - Enums serialize to the strings stored in the database
    - EventTopic covers every bus topic
"""

from helpqueue.core.domain_types import (
    ACTIVE_TIMEOUT, DEFAULT_MAX_FREEZE_SECONDS,
    ChangeKind, CourseId, EventTopic, OffReason, QuestionId, UserId, UserRole,
)


def test_identity_types_wrap_int():
    assert QuestionId(5) == 5
    assert CourseId(7) == 7
    assert UserId(9) == 9


def test_off_reason_values_match_column_values():
    assert {r.value for r in OffReason} == {"normal", "self_kick", "ca_kick"}


def test_user_role_values():
    assert {r.value for r in UserRole} == {"student", "ca", "admin"}


def test_change_kind_has_three_kinds():
    assert len(ChangeKind) == 3


def test_event_topics_cover_question_and_queue_events():
    assert {t.value for t in EventTopic} == {
        "new_question", "question_update", "question_answered",
        "question_returned", "question_frozen", "question_unfrozen",
        "question_closed", "queue_meta", "new_topic", "update_topic",
        "new_location", "update_location", "cas_active",
    }


def test_active_timeout_is_five_minutes():
    assert ACTIVE_TIMEOUT == 300


def test_default_max_freeze_is_positive():
    assert DEFAULT_MAX_FREEZE_SECONDS > 0
