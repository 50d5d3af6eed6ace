"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Time is always read through a Clock so tests can pin "now"
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Protocol

from helpqueue.core.domain_types import ChangeKind


class Clock(Protocol):
    """Source of timezone-aware UTC "now"."""
    def now(self) -> datetime: ...


@dataclass(frozen=True)
class ChangeRecord:
    """Raw row mutation observed by the change feed after commit."""
    kind: ChangeKind
    old: dict | None
    new: dict | None

    @property
    def row(self) -> dict:
        return self.new if self.new is not None else self.old


class ChangeListener(Protocol):
    """Consumer of committed question-table changes."""
    def __call__(self, record: ChangeRecord) -> Awaitable[None]: ...
