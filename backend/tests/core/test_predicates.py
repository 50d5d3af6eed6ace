"""Question Predicates — in-memory checks and their SQL renderings agree.

Invariants:
    - is_not_answering / is_not_frozen are exact complements
    - Comparisons with NULL columns are false, as in SQL
    - SQL rendering compiles to the same shape of condition
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from helpqueue.core.predicates import (
    CAN_FREEZE, IS_ANSWERING, IS_CLOSED, IS_FROZEN, IS_NOT_ANSWERING,
    IS_NOT_FROZEN, IS_OPEN,
)
from helpqueue.models.question import Question

NOW = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)


def _question(**overrides):
    columns = dict(
        on_time=NOW - timedelta(minutes=30),
        help_time=None, off_time=None,
        frozen_time=None, frozen_end_time=None, frozen_end_max_time=None,
    )
    columns.update(overrides)
    return SimpleNamespace(**columns)


def _frozen_until(end, max_end=None):
    return _question(
        frozen_time=NOW - timedelta(minutes=1),
        frozen_end_time=end,
        frozen_end_max_time=max_end or end,
    )


SHAPES = {
    "waiting": _question(),
    "answering": _question(help_time=NOW - timedelta(minutes=5)),
    "closed": _question(off_time=NOW - timedelta(minutes=1)),
    "closed_after_help": _question(
        help_time=NOW - timedelta(minutes=5), off_time=NOW - timedelta(minutes=1),
    ),
    "frozen": _frozen_until(NOW + timedelta(minutes=5)),
    "freeze_expired": _frozen_until(NOW - timedelta(seconds=1)),
    "freeze_ends_now": _frozen_until(NOW),
    "freeze_capped": _frozen_until(
        NOW + timedelta(minutes=5), max_end=NOW - timedelta(seconds=1),
    ),
}


def test_open_question_is_not_closed():
    q = SHAPES["waiting"]
    assert IS_OPEN.check(q, NOW)
    assert not IS_CLOSED.check(q, NOW)


def test_answering_requires_help_time_and_open():
    assert IS_ANSWERING.check(SHAPES["answering"], NOW)
    assert not IS_ANSWERING.check(SHAPES["waiting"], NOW)
    assert not IS_ANSWERING.check(SHAPES["closed_after_help"], NOW)


def test_not_answering_includes_closed_questions():
    assert IS_NOT_ANSWERING.check(SHAPES["closed_after_help"], NOW)
    assert IS_NOT_ANSWERING.check(SHAPES["waiting"], NOW)


def test_frozen_only_before_both_end_times():
    assert IS_FROZEN.check(SHAPES["frozen"], NOW)
    assert not IS_FROZEN.check(SHAPES["freeze_expired"], NOW)
    assert not IS_FROZEN.check(SHAPES["freeze_ends_now"], NOW)
    assert not IS_FROZEN.check(SHAPES["freeze_capped"], NOW)


def test_never_frozen_question_is_not_frozen():
    assert not IS_FROZEN.check(SHAPES["waiting"], NOW)
    assert IS_NOT_FROZEN.check(SHAPES["waiting"], NOW)


@pytest.mark.parametrize("shape", sorted(SHAPES))
def test_complements_hold_for_every_shape(shape):
    q = SHAPES[shape]
    assert IS_ANSWERING.check(q, NOW) != IS_NOT_ANSWERING.check(q, NOW)
    assert IS_FROZEN.check(q, NOW) != IS_NOT_FROZEN.check(q, NOW)
    assert IS_OPEN.check(q, NOW) != IS_CLOSED.check(q, NOW)


def test_can_freeze_only_once_and_only_while_open():
    assert CAN_FREEZE.check(SHAPES["waiting"], NOW)
    assert CAN_FREEZE.check(SHAPES["answering"], NOW)
    assert not CAN_FREEZE.check(SHAPES["freeze_expired"], NOW)
    assert not CAN_FREEZE.check(SHAPES["closed"], NOW)


def test_sql_rendering_of_open_is_null_check():
    sql = str(IS_OPEN.clause(Question, NOW))
    assert sql == "questions.off_time IS NULL"


def test_sql_rendering_of_not_answering_is_disjunction():
    sql = str(IS_NOT_ANSWERING.clause(Question, NOW))
    assert "questions.help_time IS NULL" in sql
    assert " OR " in sql
    assert "questions.off_time IS NOT NULL" in sql


def test_sql_rendering_of_frozen_compares_both_end_times():
    sql = str(IS_FROZEN.clause(Question, NOW))
    assert "questions.frozen_end_time >" in sql
    assert "questions.frozen_end_max_time >" in sql
