"""
Logging streaks over calendar days.

Entries are grouped by their device-local calendar date. The current streak
counts back from `now`'s date and only starts if that date has an entry;
the longest streak is the longest run of consecutive dates anywhere in the
history. Any gap of more than one day ends a run.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable

import numpy as np

from thrive.models import Entry, entries_frame, to_local


def compute_streak(entries: Iterable[Entry], now: datetime) -> Dict[str, object]:
    """
    Returns:
        {"current_streak": int, "longest_streak": int, "is_active": bool,
         "streak_start_date": str | None, "last_entry_date": str | None}
    """
    df = entries_frame(entries)
    if df.empty:
        return {
            "current_streak": 0,
            "longest_streak": 0,
            "is_active": False,
            "streak_start_date": None,
            "last_entry_date": None,
        }

    days = sorted(set(df["timestamp"].dt.date))
    today = to_local(now).date()

    # Longest run: split the sorted ordinals wherever the gap is not one day
    ordinals = np.array([d.toordinal() for d in days], dtype=np.int64)
    run_ids = np.concatenate(([0], np.cumsum(np.diff(ordinals) != 1)))
    longest = int(np.bincount(run_ids).max())

    # Current run: walk back from today while each day has an entry
    logged = set(days)
    current = 0
    while today - timedelta(days=current) in logged:
        current += 1

    last_entry = df["timestamp"].iloc[-1]

    return {
        "current_streak": current,
        "longest_streak": longest,
        "is_active": last_entry.date() == today,
        "streak_start_date": (
            (today - timedelta(days=current - 1)).isoformat() if current else None
        ),
        "last_entry_date": last_entry.isoformat(),
    }
