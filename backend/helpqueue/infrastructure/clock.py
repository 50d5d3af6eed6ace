"""System Clock — the process-wide source of "now" for queries and timers."""

from datetime import datetime, timezone


class SystemClock:
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
