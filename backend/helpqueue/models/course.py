"""Course ORM — the scope every queue row belongs to."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpqueue.db.base import Base


class Course(Base):
    """Course entity."""
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
