"""Services Layer — queue operations, change detection, timers and metrics.

Invariants:
    - Services reach the database only through the QuestionGateway
    - Every component receives the EventBus it publishes on; none creates one

Design Decisions:
    - One service per concern, wired together by QueueCore (queue_core.py)
"""
