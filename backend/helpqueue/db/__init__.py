"""Database Infrastructure — declarative Base and column types.

Invariants:
    - All sessions are async (AsyncSession)
    - All timestamps are stored and loaded as timezone-aware UTC
"""
