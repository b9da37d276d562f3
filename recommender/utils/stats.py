"""
Statistics folds over history entries and progress records.

Pure functions; callers load the entries/records and pass them in.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, List, Set

from ..models.history import ViewHistoryEntry, ViewStats
from ..models.progress import ProgressRecord, ProgressSummary, WeeklyProgress
from .time import ensure_utc, start_of_day, utc_date

SUMMARY_WEEKS = 4


def fold_view_stats(entries: Iterable[ViewHistoryEntry]) -> ViewStats:
    """Fold a window of history entries into ViewStats."""
    entries = list(entries)
    total_views = len(entries)
    if total_views == 0:
        return ViewStats()

    total_watch = sum(max(e.watch_duration_seconds, 0.0) for e in entries)
    completed = sum(1 for e in entries if e.completed)
    categories = Counter(e.snapshot.category for e in entries if e.snapshot.category)
    most_viewed = categories.most_common(1)[0][0] if categories else ""

    return ViewStats(
        total_views=total_views,
        total_watch_seconds=total_watch,
        completed_count=completed,
        completion_rate=completed / total_views,
        most_viewed_category=most_viewed,
        average_session_seconds=total_watch / total_views,
        categories=dict(categories),
    )


def most_watched(entries: Iterable[ViewHistoryEntry], n: int) -> List[ViewHistoryEntry]:
    """Entries with the longest watch duration, newest first on ties."""
    ordered = sorted(entries, key=lambda e: e.sort_key(), reverse=True)
    ordered.sort(key=lambda e: e.watch_duration_seconds, reverse=True)
    return ordered[: max(n, 0)]


def _streaks(active_days: Set[date], today: date) -> tuple:
    """(current, longest) runs of consecutive active days."""
    if not active_days:
        return 0, 0

    longest = 0
    run = 0
    previous = None
    for day in sorted(active_days):
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day

    # Current streak may end today or yesterday
    anchor = today if today in active_days else today - timedelta(days=1)
    current = 0
    while anchor in active_days:
        current += 1
        anchor -= timedelta(days=1)
    return current, longest


def _weekly_buckets(records: List[ProgressRecord], now: datetime) -> List[WeeklyProgress]:
    """Four consecutive 7-day buckets, oldest first; the last one ends with today."""
    end_of_today = start_of_day(now) + timedelta(days=1)
    weekly = []
    for i in range(SUMMARY_WEEKS):
        bucket_end = end_of_today - timedelta(days=7 * (SUMMARY_WEEKS - 1 - i))
        bucket_start = bucket_end - timedelta(days=7)
        watched = sum(
            r.watched_seconds
            for r in records
            if bucket_start <= ensure_utc(r.updated_at) < bucket_end
        )
        completed = sum(
            1
            for r in records
            if r.completed_at is not None
            and bucket_start <= ensure_utc(r.completed_at) < bucket_end
        )
        weekly.append(
            WeeklyProgress(week=i + 1, minutes_watched=int(watched // 60), videos_completed=completed)
        )
    return weekly


def summarize_progress(records: Iterable[ProgressRecord], now: datetime) -> ProgressSummary:
    """Fold a user's progress records into a ProgressSummary."""
    records = list(records)
    started = [r for r in records if r.watched_seconds > 0 or r.completed]
    completed = [r for r in records if r.completed]
    active_days = {utc_date(r.updated_at) for r in started}
    current, longest = _streaks(active_days, utc_date(now))

    return ProgressSummary(
        videos_started=len(started),
        videos_completed=len(completed),
        courses_started=len({r.course_id for r in started if r.course_id}),
        courses_completed=len({r.course_id for r in completed if r.course_id}),
        total_watch_seconds=sum(r.watched_seconds for r in records),
        current_streak=current,
        longest_streak=longest,
        weekly=_weekly_buckets(records, now),
    )
