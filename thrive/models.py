"""
Entry records and their invariants.

An Entry is one check-in: four mood dimensions on a 0-5 scale, free-text
tags, and optional productivity/recovery attributes. Entries arrive from the
UI or from an import; the engine re-validates them before computing on them.

Timestamps are device-local wall-clock times. Aware datetimes are converted
to the local zone and made naive so date grouping and hour bucketing always
use the user's calendar.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from numbers import Real
from typing import FrozenSet, Iterable, List, Optional, Tuple

import pandas as pd

from thrive.config import TimeContextBounds
from thrive.errors import InvalidEntryError

logger = logging.getLogger(__name__)


class TimeBucket(str, Enum):
    """Coarse time of day, in day order."""

    MORNING = "Morning"
    MIDDAY = "Midday"
    EVENING = "Evening"
    NIGHT = "Night"

    @classmethod
    def parse(cls, value) -> "TimeBucket":
        """Accept a member, its value, or its value in any case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise ValueError(f"Unknown time bucket: {value!r}")

    @property
    def order(self) -> int:
        return list(TimeBucket).index(self)


MOOD_DIMENSIONS = ("positivity", "energy", "focus", "stress")
OPTIONAL_NUMBERS = ("focus_minutes", "tasks_completed", "sleep_hours", "social_interactions")

MOOD_MIN = 0.0
MOOD_MAX = 5.0


@dataclass(frozen=True)
class Entry:
    """One self-report. Immutable once created."""

    id: str
    timestamp: datetime
    time_bucket: TimeBucket
    positivity: float
    energy: float
    focus: float
    stress: float
    tags: Tuple[str, ...] = ()
    focus_minutes: Optional[float] = None
    tasks_completed: Optional[int] = None
    sleep_hours: Optional[float] = None
    recovery_action: bool = False
    social_interactions: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.tags, (list, set, frozenset)):
            object.__setattr__(self, "tags", tuple(self.tags))
        if not isinstance(self.time_bucket, TimeBucket):
            try:
                object.__setattr__(self, "time_bucket", TimeBucket.parse(self.time_bucket))
            except ValueError:
                # left as-is; validate_entry reports it
                pass

    @property
    def tag_keys(self) -> FrozenSet[str]:
        """Tags normalized for matching."""
        return frozenset(
            t.strip().lower() for t in self.tags if isinstance(t, str) and t.strip()
        )

    @property
    def local_time(self) -> datetime:
        return to_local(self.timestamp)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def to_local(ts: datetime) -> datetime:
    """Naive local wall-clock time for `ts`."""
    if ts.tzinfo is not None:
        return ts.astimezone().replace(tzinfo=None)
    return ts


def bucket_for_hour(hour: int, bounds: TimeContextBounds) -> TimeBucket:
    """Map an hour of day to its time bucket."""
    if bounds.morning <= hour < bounds.midday:
        return TimeBucket.MORNING
    if bounds.midday <= hour < bounds.evening:
        return TimeBucket.MIDDAY
    if bounds.evening <= hour < bounds.night:
        return TimeBucket.EVENING
    return TimeBucket.NIGHT


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def entry_problems(entry: Entry) -> List[str]:
    """List every invariant `entry` violates. Empty means valid."""
    problems: List[str] = []

    if not isinstance(entry.id, str) or not entry.id:
        problems.append("id must be a non-empty string")

    if not isinstance(entry.timestamp, datetime):
        problems.append("timestamp must be a datetime")

    if not isinstance(entry.time_bucket, TimeBucket):
        problems.append(f"time_bucket {entry.time_bucket!r} is not a known bucket")

    for name in MOOD_DIMENSIONS:
        value = getattr(entry, name)
        if not _is_number(value) or not math.isfinite(value):
            problems.append(f"{name} must be a finite number, got {value!r}")
        elif not MOOD_MIN <= value <= MOOD_MAX:
            problems.append(f"{name}={value} outside [{MOOD_MIN:g}, {MOOD_MAX:g}]")

    for name in OPTIONAL_NUMBERS:
        value = getattr(entry, name)
        if value is None:
            continue
        if not _is_number(value) or not math.isfinite(value):
            problems.append(f"{name} must be a finite number, got {value!r}")
        elif value < 0:
            problems.append(f"{name}={value} is negative")

    if not isinstance(entry.recovery_action, bool):
        problems.append("recovery_action must be a boolean")

    if not all(isinstance(t, str) for t in entry.tags):
        problems.append("tags must all be strings")

    return problems


def is_valid_entry(entry: Entry) -> bool:
    return not entry_problems(entry)


def validate_entry(entry: Entry) -> Entry:
    """Return `entry` unchanged, or raise InvalidEntryError."""
    problems = entry_problems(entry)
    if problems:
        raise InvalidEntryError(getattr(entry, "id", None), problems)
    return entry


def clean_history(entries: Iterable[Entry]) -> List[Entry]:
    """Drop malformed entries from a historical sample, logging each one."""
    kept: List[Entry] = []
    for entry in entries:
        problems = entry_problems(entry)
        if problems:
            logger.warning(
                "Excluding malformed entry %s from history: %s",
                getattr(entry, "id", None), "; ".join(problems),
            )
            continue
        kept.append(entry)
    return kept


# ---------------------------------------------------------------------------
# DataFrame view
# ---------------------------------------------------------------------------

FRAME_COLUMNS = (
    "id", "timestamp", "time_bucket",
    "positivity", "energy", "focus", "stress", "tags",
    "focus_minutes", "tasks_completed", "sleep_hours",
    "recovery_action", "social_interactions",
)


def entries_frame(entries: Iterable[Entry]) -> pd.DataFrame:
    """
    Tabular view of valid entries, sorted by local timestamp.

    Missing optional attributes become 0; `tags` holds the normalized tag
    set; `entry` holds the original record for per-entry scoring.
    """
    valid = clean_history(entries)
    rows = [
        {
            "id": e.id,
            "timestamp": e.local_time,
            "time_bucket": e.time_bucket.value,
            "positivity": float(e.positivity),
            "energy": float(e.energy),
            "focus": float(e.focus),
            "stress": float(e.stress),
            "tags": e.tag_keys,
            "focus_minutes": float(e.focus_minutes or 0),
            "tasks_completed": float(e.tasks_completed or 0),
            "sleep_hours": float(e.sleep_hours or 0),
            "recovery_action": bool(e.recovery_action),
            "social_interactions": float(e.social_interactions or 0),
            "entry": e,
        }
        for e in valid
    ]

    df = pd.DataFrame(rows, columns=list(FRAME_COLUMNS) + ["entry"])
    if df.empty:
        return df

    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df.sort_values("timestamp", inplace=True, kind="stable")
    df.reset_index(drop=True, inplace=True)
    return df
