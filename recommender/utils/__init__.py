"""Shared utilities for time windows, paging cursors and statistics folds."""

from .cursor import decode_cursor, encode_cursor
from .stats import fold_view_stats, most_watched, summarize_progress
from .time import Clock, ensure_utc, start_of_day, utc_date, utcnow, window_start

__all__ = [
    "Clock",
    "decode_cursor",
    "encode_cursor",
    "ensure_utc",
    "fold_view_stats",
    "most_watched",
    "start_of_day",
    "summarize_progress",
    "utc_date",
    "utcnow",
    "window_start",
]
