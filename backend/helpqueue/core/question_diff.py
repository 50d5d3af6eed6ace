"""Question Diff — field-level comparison of two flat question snapshots.

Invariants:
    - A question update is a pure field-value change: both snapshots carry
      the same keys and only scalar values
    - Keys present on one side only, or dict/list/set/tuple values, raise ConsistencyFault
    - Changes are returned in the key order of the old snapshot
"""

from dataclasses import dataclass
from typing import Any

from helpqueue.core.errors import ConsistencyFault, ErrorContext

_NESTED_TYPES = (dict, list, set, tuple)


@dataclass(frozen=True)
class FieldChange:
    """One changed column: name plus before/after values."""
    field: str
    old: Any
    new: Any


def diff_rows(old: dict, new: dict) -> list[FieldChange]:
    """Compare two snapshots of the same row."""
    added = new.keys() - old.keys()
    removed = old.keys() - new.keys()
    if added or removed:
        raise ConsistencyFault(
            "row has added/deleted fields",
            ErrorContext(
                question_id=old.get("id", new.get("id")),
                debug_info={"added": sorted(added), "removed": sorted(removed)},
            ),
        )

    changes = []
    for name, before in old.items():
        after = new[name]
        if isinstance(before, _NESTED_TYPES) or isinstance(after, _NESTED_TYPES):
            raise ConsistencyFault(
                "row is nested",
                ErrorContext(question_id=old.get("id"), debug_info={"field": name}),
            )
        if before != after:
            changes.append(FieldChange(name, before, after))
    return changes


def changed_fields(changes: list[FieldChange]) -> dict[str, FieldChange]:
    """Index changes by field name."""
    return {change.field: change for change in changes}
