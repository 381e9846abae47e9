"""
Composite scores: Mood Composite (MC) and Daily Success Score (DSS).

Both are weighted sums of baseline z-scores, so a score of 0 means "a typical
check-in for this user", not "a bad day". When any underlying z-score lacks
history the result is returned with is_valid=False and a reason string;
callers show a "still building your baseline" state instead of the number.

Raw DSS components:
    LM (Learning Momentum) = focus_minutes + 10 * tasks_completed
    RI (Recovery Index)    = sleep_hours + 1 if recovery_action
    CN (Connection)        = mean social_interactions over the trailing
                             7 entries, current one included
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from thrive.config import DEFAULT_CONFIG, ThriveConfig
from thrive.models import (
    MOOD_DIMENSIONS,
    Entry,
    TimeBucket,
    clean_history,
    entries_frame,
    validate_entry,
)
from thrive.normalize import zscore
from thrive.streaks import compute_streak


INSUFFICIENT_HISTORY = "Insufficient historical data for reliable calculation"

SUCCESS_COMPONENTS = ("lm", "ri", "cn")


# ---------------------------------------------------------------------------
# Raw DSS components
# ---------------------------------------------------------------------------

def learning_momentum(entry: Entry, cfg: ThriveConfig = DEFAULT_CONFIG) -> float:
    return float(entry.focus_minutes or 0) + cfg.success.tasks_to_learning * float(
        entry.tasks_completed or 0
    )


def recovery_index(entry: Entry, cfg: ThriveConfig = DEFAULT_CONFIG) -> float:
    bonus = cfg.success.recovery_bonus if entry.recovery_action else 0.0
    return float(entry.sleep_hours or 0) + bonus


def connection(entry: Entry, history: Sequence[Entry], cfg: ThriveConfig = DEFAULT_CONFIG) -> float:
    """Mean social count over the trailing window ending at `entry`."""
    window = cfg.success.connection_window
    prior = sorted(
        (h for h in history if h.local_time <= entry.local_time),
        key=lambda h: h.local_time,
    )
    trailing = (prior[-(window - 1):] if window > 1 else []) + [entry]
    return float(np.mean([float(e.social_interactions or 0) for e in trailing]))


def _component(raw: float, history: Sequence[float], cfg: ThriveConfig) -> Dict[str, object]:
    z = zscore(raw, history, cfg.normalizer)
    return {"raw": raw, "z_score": z["z_score"], "is_valid": z["is_valid"]}


# ---------------------------------------------------------------------------
# Mood Composite
# ---------------------------------------------------------------------------

def _mood_composite(entry: Entry, history: List[Entry], cfg: ThriveConfig) -> Dict[str, object]:
    components = {
        name: _component(
            float(getattr(entry, name)),
            [float(getattr(h, name)) for h in history],
            cfg,
        )
        for name in MOOD_DIMENSIONS
    }
    weights = dict(zip(MOOD_DIMENSIONS, cfg.mood_weights.signed))
    mc = sum(weights[name] * components[name]["z_score"] for name in MOOD_DIMENSIONS)
    is_valid = all(c["is_valid"] for c in components.values())

    return {
        "mc": round(mc, 3),
        "components": components,
        "is_valid": is_valid,
        "reason": None if is_valid else INSUFFICIENT_HISTORY,
        "history_size": len(history),
    }


def mood_composite(
    entry: Entry,
    history: Iterable[Entry],
    cfg: ThriveConfig = DEFAULT_CONFIG,
    time_bucket: Optional[TimeBucket] = None,
) -> Dict[str, object]:
    """
    MC = 0.4 * zPositivity + 0.3 * zEnergy + 0.2 * zFocus - 0.2 * zStress

    If `time_bucket` is given, only history from that bucket forms the
    baseline. Raises InvalidEntryError if `entry` itself is malformed.
    """
    validate_entry(entry)
    baseline = clean_history(history)
    if time_bucket is not None:
        bucket = TimeBucket.parse(time_bucket)
        baseline = [h for h in baseline if h.time_bucket == bucket]
    return _mood_composite(entry, baseline, cfg)


# ---------------------------------------------------------------------------
# Daily Success Score
# ---------------------------------------------------------------------------

def _daily_success(entry: Entry, history: List[Entry], cfg: ThriveConfig) -> Dict[str, object]:
    # The historical CN series is the raw per-entry social count; only the
    # current value is smoothed over the trailing window.
    components = {
        "lm": _component(
            learning_momentum(entry, cfg),
            [learning_momentum(h, cfg) for h in history],
            cfg,
        ),
        "ri": _component(
            recovery_index(entry, cfg),
            [recovery_index(h, cfg) for h in history],
            cfg,
        ),
        "cn": _component(
            connection(entry, history, cfg),
            [float(h.social_interactions or 0) for h in history],
            cfg,
        ),
    }
    w = cfg.success_weights
    dss = (
        w.learning * components["lm"]["z_score"]
        + w.recovery * components["ri"]["z_score"]
        + w.connection * components["cn"]["z_score"]
    )
    is_valid = all(c["is_valid"] for c in components.values())

    return {
        "dss": round(dss, 3),
        "components": components,
        "is_valid": is_valid,
        "reason": None if is_valid else INSUFFICIENT_HISTORY,
        "history_size": len(history),
    }


def daily_success(
    entry: Entry,
    history: Iterable[Entry],
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, object]:
    """DSS = 0.5 * zLM + 0.3 * zRI + 0.2 * zCN."""
    validate_entry(entry)
    return _daily_success(entry, clean_history(history), cfg)


# ---------------------------------------------------------------------------
# Combined scoring
# ---------------------------------------------------------------------------

def score_entry(
    entry: Entry,
    history: Iterable[Entry],
    cfg: ThriveConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """
    Score a freshly submitted entry.

    MC uses the entry's own time bucket as baseline; the streak covers the
    history plus the entry, as seen at `now` (defaults to the entry time).
    """
    validate_entry(entry)
    baseline = clean_history(history)
    same_bucket = [h for h in baseline if h.time_bucket == entry.time_bucket]

    return {
        "mc": _mood_composite(entry, same_bucket, cfg),
        "dss": _daily_success(entry, baseline, cfg),
        "streak": compute_streak(baseline + [entry], now or entry.local_time),
    }


def score_frame(df: pd.DataFrame, cfg: ThriveConfig, leave_one_out: bool) -> pd.DataFrame:
    """Per-entry MC/DSS for a frame built by entries_frame()."""
    entries: List[Entry] = list(df["entry"])
    times = list(df["timestamp"])

    rows = []
    for i, entry in enumerate(entries):
        if leave_one_out:
            history = entries[:i] + entries[i + 1:]
        else:
            history = [e for e, t in zip(entries[:i], times[:i]) if t < times[i]]

        mc = _mood_composite(entry, history, cfg)
        dss = _daily_success(entry, history, cfg)
        row = {
            "id": entry.id,
            "timestamp": times[i],
            "mc": mc["mc"],
            "dss": dss["dss"],
            "mc_valid": mc["is_valid"],
            "dss_valid": dss["is_valid"],
        }
        for name in SUCCESS_COMPONENTS:
            row[name] = round(dss["components"][name]["z_score"], 3)
        rows.append(row)

    return pd.DataFrame(
        rows,
        columns=["id", "timestamp", "mc", "dss", *SUCCESS_COMPONENTS, "mc_valid", "dss_valid"],
    )


def score_history(entries: Iterable[Entry], cfg: ThriveConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Score every entry against the entries strictly before it (chronological replay)."""
    return score_frame(entries_frame(entries), cfg, leave_one_out=False)


def score_against_rest(entries: Iterable[Entry], cfg: ThriveConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Score every entry against all other entries in the set."""
    return score_frame(entries_frame(entries), cfg, leave_one_out=True)
