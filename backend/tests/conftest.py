"""Root conftest — shared test configuration."""

import os

# Importing helpqueue.main reads settings; never point tests at a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")
