"""QueueMeta ORM — append-only log of queue configuration per course.

Invariants:
    - Rows are never updated: every change inserts a new row
    - The current meta of a course is its row with the highest id
    - max_freeze is the freeze ceiling in seconds; time_limit is the
      per-question minute rule shown to CAs
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from helpqueue.db.base import Base
from helpqueue.db.types import UTCDateTime


class QueueMeta(Base):
    """One snapshot of a course's queue configuration."""
    __tablename__ = "queue_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False, index=True,
    )
    open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_freeze: Mapped[int] = mapped_column(Integer, nullable=False)
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True,
    )
    time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
