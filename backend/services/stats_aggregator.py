"""Completion statistics for a user's todos.

A named range resolves to a UTC start instant and a bucket format. The
series counts the user's completions since that instant, grouped by bucket
label and sorted ascending. The summary always covers all five ranges,
whatever range the series was requested for.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from errors import InvalidRangeError
from services.todo_store import TodoStore

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

HOURLY_FORMAT = "%Y-%m-%d %H:00"
DAILY_FORMAT = "%Y-%m-%d"


class StatsRange(str, Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_YEAR = "this_year"
    ALL_TIME = "all_time"


DEFAULT_RANGE = StatsRange.TODAY

BUCKET_FORMATS = {
    StatsRange.TODAY: HOURLY_FORMAT,
    StatsRange.THIS_WEEK: DAILY_FORMAT,
    StatsRange.THIS_MONTH: DAILY_FORMAT,
    StatsRange.THIS_YEAR: DAILY_FORMAT,
    StatsRange.ALL_TIME: DAILY_FORMAT,
}


@dataclass(frozen=True)
class StatsWindow:
    range: StatsRange
    start: datetime
    bucket_format: str


@dataclass
class StatsReport:
    range: StatsRange
    series: list[tuple[str, int]] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    def to_response(self) -> dict:
        return {
            "labels": [label for label, _ in self.series],
            "data": [count for _, count in self.series],
            "range": self.range.value,
            "completedTasks": self.summary,
        }


def as_utc(instant: datetime) -> datetime:
    """Attach UTC to naive instants (as stored by SQLite) and convert aware ones."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def range_start(stats_range: StatsRange, now: datetime) -> datetime:
    """Return the inclusive UTC start instant of ``stats_range`` as seen at ``now``."""
    now = as_utc(now)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if stats_range is StatsRange.TODAY:
        return start_of_today
    if stats_range is StatsRange.THIS_WEEK:
        # Weeks start on Sunday; weekday() is 0 for Monday, 6 for Sunday.
        days_since_sunday = (start_of_today.weekday() + 1) % 7
        return start_of_today - timedelta(days=days_since_sunday)
    if stats_range is StatsRange.THIS_MONTH:
        return start_of_today.replace(day=1)
    if stats_range is StatsRange.THIS_YEAR:
        return start_of_today.replace(month=1, day=1)
    if stats_range is StatsRange.ALL_TIME:
        return EPOCH
    raise InvalidRangeError()


def parse_range(range_name: str | None) -> StatsRange:
    if not range_name:
        return DEFAULT_RANGE
    try:
        return StatsRange(range_name)
    except ValueError:
        raise InvalidRangeError()


def resolve_window(range_name: str | None, now: datetime) -> StatsWindow:
    stats_range = parse_range(range_name)
    return StatsWindow(
        range=stats_range,
        start=range_start(stats_range, now),
        bucket_format=BUCKET_FORMATS[stats_range],
    )


def bucket_label(instant: datetime, bucket_format: str) -> str:
    return as_utc(instant).strftime(bucket_format)


class StatsAggregator:
    """Builds the completion series and summary for one user."""

    def __init__(self, store: TodoStore):
        self.store = store

    def series(self, user_id: str, window: StatsWindow) -> list[tuple[str, int]]:
        completions = self.store.find_completed_since(user_id, window.start)
        counts = Counter(bucket_label(ts, window.bucket_format) for ts in completions)
        return sorted(counts.items())

    def summary(self, user_id: str, now: datetime) -> dict[str, int]:
        return {
            stats_range.value: self.store.count_completed_since(
                user_id, range_start(stats_range, now)
            )
            for stats_range in StatsRange
        }

    def compute(self, user_id: str, range_name: str | None, now: datetime | None = None) -> StatsReport:
        now = as_utc(now) if now else datetime.now(timezone.utc)
        window = resolve_window(range_name, now)
        series = self.series(user_id, window)
        summary = self.summary(user_id, now)
        logger.debug(
            f"Stats for user {user_id}: range={window.range.value} "
            f"buckets={len(series)} all_time={summary[StatsRange.ALL_TIME.value]}"
        )
        return StatsReport(range=window.range, series=series, summary=summary)
