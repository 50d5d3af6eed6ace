"""Queue Schemas — queue meta, reference data and user read models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class QueueMetaOut(BaseModel):
    """Current queue configuration as seen by clients (no author, no time)."""
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    open: bool
    max_freeze: int
    time_limit: int


class TopicOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    topic: str
    enabled: bool


class LocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    location: str
    enabled: bool


class UserOut(BaseModel):
    """Public user fields."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    identifier: str
    email: str | None = None
    first_name: str
    last_name: str
    is_online: bool


class WaitTimePoint(BaseModel):
    """Average wait time (seconds) for a time period."""
    time_period: datetime
    wait_time: float


class TimeLimitRequest(BaseModel):
    user_id: int
    minutes: int = Field(gt=0)


class MaxFreezeRequest(BaseModel):
    user_id: int
    seconds: int = Field(gt=0)


class LabelRequest(BaseModel):
    label: str = Field(min_length=1, max_length=200)
