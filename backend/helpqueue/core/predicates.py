"""Question Predicates — one canonical boolean expression per queue condition.

Invariants:
    - Each predicate is written exactly once, against an operator vocabulary
    - SQL rendering (query filters) and Python rendering (in-memory checks)
      evaluate the same expression, so they cannot drift apart
    - Python rendering follows SQL NULL semantics: any comparison with None is false
    - is_not_answering / is_not_frozen are exact complements of
      is_answering / is_frozen (De Morgan), not "closed"

Design Decisions:
    - `q` is anything exposing the question columns as attributes: the ORM
      class, an aliased ORM class, an ORM instance or a QuestionOut schema
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import and_, or_


class SqlOps:
    """Renders predicate expressions as SQLAlchemy column elements."""

    @staticmethod
    def is_null(value):
        return value.is_(None)

    @staticmethod
    def is_not_null(value):
        return value.is_not(None)

    @staticmethod
    def lt(left, right):
        return left < right

    @staticmethod
    def le(left, right):
        return left <= right

    @staticmethod
    def gt(left, right):
        return left > right

    @staticmethod
    def and_(*clauses):
        return and_(*clauses)

    @staticmethod
    def or_(*clauses):
        return or_(*clauses)


class PyOps:
    """Renders predicate expressions as plain booleans over loaded values."""

    @staticmethod
    def is_null(value) -> bool:
        return value is None

    @staticmethod
    def is_not_null(value) -> bool:
        return value is not None

    @staticmethod
    def lt(left, right) -> bool:
        return left is not None and right is not None and left < right

    @staticmethod
    def le(left, right) -> bool:
        return left is not None and right is not None and left <= right

    @staticmethod
    def gt(left, right) -> bool:
        return left is not None and right is not None and left > right

    @staticmethod
    def and_(*clauses) -> bool:
        return all(clauses)

    @staticmethod
    def or_(*clauses) -> bool:
        return any(clauses)


Expression = Callable[[Any, datetime, Any], Any]


@dataclass(frozen=True)
class Predicate:
    """A named question condition usable as a query filter or an in-memory check."""
    name: str
    expression: Expression

    def clause(self, q, now: datetime):
        """SQL filter over columns of `q` (ORM class or alias)."""
        return self.expression(q, now, SqlOps)

    def check(self, q, now: datetime) -> bool:
        """Evaluate against a loaded question."""
        return bool(self.expression(q, now, PyOps))


# ─── Canonical expressions ──────────────────────────────────────

def _open(q, now, ops):
    return ops.is_null(q.off_time)


def _closed(q, now, ops):
    return ops.is_not_null(q.off_time)


def _answering(q, now, ops):
    return ops.and_(ops.is_not_null(q.help_time), ops.is_null(q.off_time))


def _not_answering(q, now, ops):
    return ops.or_(ops.is_null(q.help_time), ops.is_not_null(q.off_time))


def _frozen(q, now, ops):
    return ops.and_(
        ops.is_not_null(q.frozen_time),
        ops.gt(q.frozen_end_time, now),
        ops.gt(q.frozen_end_max_time, now),
    )


def _not_frozen(q, now, ops):
    return ops.or_(
        ops.is_null(q.frozen_time),
        ops.le(q.frozen_end_time, now),
        ops.le(q.frozen_end_max_time, now),
    )


def _can_freeze(q, now, ops):
    return ops.and_(ops.is_null(q.frozen_time), ops.is_null(q.off_time))


IS_OPEN = Predicate("is_open", _open)
IS_CLOSED = Predicate("is_closed", _closed)
IS_ANSWERING = Predicate("is_answering", _answering)
IS_NOT_ANSWERING = Predicate("is_not_answering", _not_answering)
IS_FROZEN = Predicate("is_frozen", _frozen)
IS_NOT_FROZEN = Predicate("is_not_frozen", _not_frozen)
CAN_FREEZE = Predicate("can_freeze", _can_freeze)
