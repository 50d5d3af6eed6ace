"""User & Role ORM — people on the queue and their per-course role.

Invariants:
    - A user has at most one role per course (unique user_id, course_id)
    - role is one of UserRole values (student | ca | admin)
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from helpqueue.db.base import Base


class User(Base):
    """User entity — identity and display fields."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    identifier: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Role(Base):
    """Role of a user inside one course."""
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("user_id", "course_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False,
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
