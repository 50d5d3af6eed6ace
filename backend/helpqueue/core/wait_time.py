"""Wait Time — pure arithmetic behind the queue's wait-time metrics.

Invariants:
    - Wait time excludes the frozen interval: a question frozen at least once
      waits (help_time - frozen_end_time) + (frozen_time - on_time)
    - Buckets are aligned to wall-clock multiples of the bucket size (UTC epoch)
    - bucketed_averages always returns one entry per bucket in [start, end),
      zero-filled, in ascending order
"""

from datetime import datetime, timedelta, timezone

from helpqueue.core.domain_types import WAIT_TIME_BUCKET_MINUTES

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_BUCKET = timedelta(minutes=WAIT_TIME_BUCKET_MINUTES)


def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive input is taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def wait_time(question) -> float | None:
    """Seconds a question waited before help started. None if never helped."""
    if question.help_time is None:
        return None
    if question.frozen_time is not None:
        waited = (
            (question.help_time - question.frozen_end_time)
            + (question.frozen_time - question.on_time)
        )
    else:
        waited = question.help_time - question.on_time
    return waited.total_seconds()


def floor_to_bucket(moment: datetime, bucket: timedelta = DEFAULT_BUCKET) -> datetime:
    """Round down to the nearest bucket boundary."""
    return moment - ((moment - _EPOCH) % bucket)


def bucket_starts(
    start: datetime, end: datetime, bucket: timedelta = DEFAULT_BUCKET,
) -> list[datetime]:
    """Boundaries of every bucket from floor(start) up to (excluding) end."""
    starts = []
    current = floor_to_bucket(start, bucket)
    while current < end:
        starts.append(current)
        current += bucket
    return starts


def average(values: list[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    if not values:
        return 0
    return sum(values) / len(values)


def bucketed_averages(
    samples: list[tuple[datetime, float]],
    start: datetime,
    end: datetime,
    bucket: timedelta = DEFAULT_BUCKET,
) -> list[dict]:
    """Average `(help_time, wait_seconds)` samples per bucket, dense and gap-free."""
    grouped: dict[datetime, list[float]] = {
        boundary: [] for boundary in bucket_starts(start, end, bucket)
    }
    for help_time, seconds in samples:
        boundary = floor_to_bucket(help_time, bucket)
        if boundary in grouped:
            grouped[boundary].append(seconds)
    return [
        {"time_period": boundary, "wait_time": average(values)}
        for boundary, values in grouped.items()
    ]
