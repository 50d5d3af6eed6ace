"""Domain Types — identity aliases, enums and fixed constants for the queue.

Invariants:
    - Ids are plain integers wrapped in NewType (never bare int in signatures)
    - All valid states encoded as str Enums — no raw string matching
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

QuestionId = NewType("QuestionId", int)
CourseId = NewType("CourseId", int)
UserId = NewType("UserId", int)


# ─── Constants ───────────────────────────────────────────────────

# seconds a CA counts as active after closing or freezing a question
ACTIVE_TIMEOUT = 5 * 60

# used only when a course has no queue_meta row yet
DEFAULT_MAX_FREEZE_SECONDS = 10 * 60
DEFAULT_TIME_LIMIT_MINUTES = 10

WAIT_TIME_BUCKET_MINUTES = 10


# ─── Enums ───────────────────────────────────────────────────────

class OffReason(str, Enum):
    """Why a question left the queue — maps to questions.off_reason."""
    NORMAL = "normal"
    SELF_KICK = "self_kick"
    CA_KICK = "ca_kick"


class UserRole(str, Enum):
    """Per-course role — maps to roles.role."""
    STUDENT = "student"
    CA = "ca"
    ADMIN = "admin"


class ChangeKind(str, Enum):
    """Raw row mutation kinds delivered by the change feed."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class EventTopic(str, Enum):
    """Named Event Bus topics."""
    NEW_QUESTION = "new_question"
    QUESTION_UPDATE = "question_update"
    QUESTION_ANSWERED = "question_answered"
    QUESTION_RETURNED = "question_returned"
    QUESTION_FROZEN = "question_frozen"
    QUESTION_UNFROZEN = "question_unfrozen"
    QUESTION_CLOSED = "question_closed"
    QUEUE_META = "queue_meta"
    NEW_TOPIC = "new_topic"
    UPDATE_TOPIC = "update_topic"
    NEW_LOCATION = "new_location"
    UPDATE_LOCATION = "update_location"
    CAS_ACTIVE = "cas_active"
