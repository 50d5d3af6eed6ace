"""Initial schema — courses, users, roles, topics, locations, queue_meta, questions.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("identifier", sa.String(100), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_online", sa.Boolean, nullable=False, server_default="false"),
    )

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.UniqueConstraint("user_id", "course_id"),
    )

    op.create_table(
        "topics",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("topic", sa.String(200), nullable=False),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default="true"),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default="true"),
    )

    op.create_table(
        "queue_meta",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("open", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("max_freeze", sa.Integer, nullable=False),
        sa.Column("time_limit", sa.Integer, nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_queue_meta_course_id", "queue_meta", ["course_id"])

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("student_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("topic_id", sa.Integer, sa.ForeignKey("topics.id"), nullable=False),
        sa.Column("location_id", sa.Integer, sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("help_text", sa.Text, nullable=False),
        sa.Column("on_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("help_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("initial_help_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ca_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("initial_ca_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("frozen_by", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("frozen_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("frozen_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("frozen_end_max_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("off_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("off_reason", sa.String(20), nullable=True),
        sa.Column("off_by", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_questions_course_off_time", "questions", ["course_id", "off_time"])
    op.create_index("ix_questions_student", "questions", ["student_user_id", "course_id"])


def downgrade() -> None:
    op.drop_index("ix_questions_student", table_name="questions")
    op.drop_index("ix_questions_course_off_time", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_queue_meta_course_id", table_name="queue_meta")
    op.drop_table("queue_meta")
    op.drop_table("locations")
    op.drop_table("topics")
    op.drop_table("roles")
    op.drop_table("users")
    op.drop_table("courses")
