"""Question Schemas — operation inputs, the hydrated read model and operation results.

Invariants:
    - QuestionCreate: exactly student_user_id, topic_id, location_id, help_text,
      course_id; all required, nothing else accepted
    - QuestionPatch: only location_id, topic_id, help_text; each may be omitted
      but never set to null (the columns are NOT NULL)
    - QuestionOut carries the joined display fields, so subscribers never re-fetch
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpqueue.core.domain_types import OffReason
from helpqueue.core.errors import HelpQueueError


class QuestionCreate(BaseModel):
    """Input of the add operation."""
    model_config = ConfigDict(extra="forbid", strict=True)

    student_user_id: int
    topic_id: int
    location_id: int
    help_text: str = Field(min_length=1, max_length=5_000)
    course_id: int


class QuestionPatch(BaseModel):
    """Input of the update_meta operation."""
    model_config = ConfigDict(extra="forbid", strict=True)

    location_id: int | None = None
    topic_id: int | None = None
    help_text: str | None = Field(None, min_length=1, max_length=5_000)

    @field_validator("location_id", "topic_id", "help_text", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class QuestionOut(BaseModel):
    """Hydrated question — raw columns plus user/topic/location display fields."""
    id: int
    course_id: int

    student_user_id: int
    student_first_name: str | None = None
    student_last_name: str | None = None
    student_identifier: str | None = None

    topic_id: int
    topic: str | None = None
    location_id: int
    location: str | None = None
    help_text: str

    on_time: datetime
    help_time: datetime | None = None
    initial_help_time: datetime | None = None

    ca_user_id: int | None = None
    ca_first_name: str | None = None
    ca_last_name: str | None = None
    initial_ca_user_id: int | None = None
    initial_ca_first_name: str | None = None
    initial_ca_last_name: str | None = None

    frozen_by: int | None = None
    frozen_by_first_name: str | None = None
    frozen_by_last_name: str | None = None
    frozen_time: datetime | None = None
    frozen_end_time: datetime | None = None
    frozen_end_max_time: datetime | None = None

    off_time: datetime | None = None
    off_reason: OffReason | None = None
    off_by: int | None = None

    queue_position: int = 0
    is_frozen: bool = False
    can_freeze: bool = False


class OperationResult(BaseModel):
    """Outcome of a state-machine operation.

    Business-rule rejections come back as ok=False with the error envelope;
    they are never raised past the operation boundary.
    """
    ok: bool
    affected: int = 0
    question_id: int | None = None
    error: dict | None = None

    @classmethod
    def rejected(cls, exc: HelpQueueError) -> "OperationResult":
        return cls(ok=False, error=exc.to_response()["error"])


# --- Request bodies for the HTTP shell ---------------------------------------

class ActorRequest(BaseModel):
    """Body naming the acting user."""
    user_id: int


class CloseRequest(BaseModel):
    """Body for CA / administrative close."""
    user_id: int
    reason: OffReason = OffReason.NORMAL


class AddQuestionRequest(BaseModel):
    """Body for submitting a question (course_id comes from the path)."""
    student_user_id: int
    topic_id: int
    location_id: int
    help_text: str


class PatchQuestionRequest(BaseModel):
    """Body for editing the caller's open question."""
    user_id: int
    patch: dict
