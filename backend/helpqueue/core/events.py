"""Domain Events — typed messages published on the Event Bus.

Invariants:
    - QuestionEvent always carries the fully hydrated question, never a raw diff
    - released_ca_user_id is set only on question_returned
    - QueueEvent covers course-level topics (meta, topics, locations, active CAs)
"""

from dataclasses import dataclass
from typing import Any

from helpqueue.core.domain_types import EventTopic


@dataclass(frozen=True)
class QuestionEvent:
    """A question lifecycle event."""
    topic: EventTopic
    question: Any
    released_ca_user_id: int | None = None

    @property
    def course_id(self) -> int:
        return self.question.course_id

    @property
    def question_id(self) -> int:
        return self.question.id


@dataclass(frozen=True)
class QueueEvent:
    """A course-level event with an arbitrary serializable payload."""
    topic: EventTopic
    course_id: int
    payload: Any
