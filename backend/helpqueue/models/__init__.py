"""ORM Models — SQLAlchemy declarative models for all queue entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every queue row is scoped by course_id

Design Decisions:
    - One file per entity; all imported here so Base.metadata is complete
      before create_all / autogenerate runs
"""

from helpqueue.models.course import Course  # noqa: F401
from helpqueue.models.user import User, Role  # noqa: F401
from helpqueue.models.topic import Topic  # noqa: F401
from helpqueue.models.location import Location  # noqa: F401
from helpqueue.models.queue_meta import QueueMeta  # noqa: F401
from helpqueue.models.question import Question  # noqa: F401
