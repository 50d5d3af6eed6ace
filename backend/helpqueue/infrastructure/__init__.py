"""Infrastructure Layer — database access, change feed, event bus, logging.

Invariants:
    - Infrastructure never contains queue business rules
    - All SQLAlchemy errors are mapped to DatabaseError at the session boundary
"""
