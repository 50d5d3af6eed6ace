"""Question ORM — one help request on a course queue.

Invariants:
    - At most one open question (off_time IS NULL) per (student_user_id, course_id)
    - off_time is write-once
    - frozen_end_time <= frozen_end_max_time
    - initial_help_time / initial_ca_user_id snapshot the help assignment
      that a freeze cleared

Design Decisions:
    - Derived state (open, answering, frozen, queue position) is never stored;
      see core/predicates.py
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpqueue.db.base import Base
from helpqueue.db.types import UTCDateTime


class Question(Base):
    """Question entity — lifecycle columns mutated only by the state machine."""
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_course_off_time", "course_id", "off_time"),
        Index("ix_questions_student", "student_user_id", "course_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False,
    )
    student_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False,
    )
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id"), nullable=False,
    )
    location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("locations.id"), nullable=False,
    )
    help_text: Mapped[str] = mapped_column(Text, nullable=False)
    on_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    help_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    initial_help_time: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True,
    )
    ca_user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True,
    )
    initial_ca_user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True,
    )

    frozen_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True,
    )
    frozen_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    frozen_end_time: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True,
    )
    frozen_end_max_time: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True,
    )

    off_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    off_reason: Mapped[str | None] = mapped_column(String(20), nullable=True)
    off_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True,
    )


def question_snapshot(question: Question) -> dict:
    """Flat column -> value dict of a loaded question."""
    return {
        column.key: getattr(question, column.key)
        for column in Question.__table__.columns
    }
