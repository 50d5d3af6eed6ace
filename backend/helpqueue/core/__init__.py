"""Core Layer — pure queue logic, no IO, no async, no DB sessions.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic given their `now` argument
"""
