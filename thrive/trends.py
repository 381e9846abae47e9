"""
Trend insights over a recent window of check-ins.

Scores come from chronological replay (each entry against the entries
strictly before it), so a trend reflects how each day looked at the time.
Scores that lacked baseline history are left out.

Direction is decided by a half-split: mean of the later half minus mean of
the earlier half. The least-squares slope of MC over the window is reported
alongside as a per-entry rate.

The success compass is separate: absolute 0..1 Learning, Recovery and
Connection scores per check-in, averaged over this week and last.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from thrive.config import DEFAULT_CONFIG, CompassParams, ThriveConfig, TrendParams
from thrive.models import Entry, entries_frame, to_local
from thrive.scoring import score_frame


PERIODS = ("7d", "14d", "all")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ols_slope(y: np.ndarray) -> float:
    """
    Ordinary least-squares slope for evenly-spaced data.

    slope = sum(x_c * y_c) / sum(x_c^2), with x_c and y_c mean-centered.
    """
    n = len(y)
    if n < 2:
        return 0.0
    x = np.arange(n, dtype=np.float64)
    x_c = x - x.mean()
    y_c = y - y.mean()
    denom = np.dot(x_c, x_c)
    if denom == 0.0:
        return 0.0
    return float(np.dot(x_c, y_c) / denom)


def _half_change(values: np.ndarray) -> float:
    mid = len(values) // 2
    return float(values[mid:].mean() - values[:mid].mean())


def _direction(change: float, threshold: float) -> str:
    if change > threshold:
        return "up"
    if change < -threshold:
        return "down"
    return "stable"


def _consistency(mc: np.ndarray, p: TrendParams) -> str:
    variance = float(np.var(mc))
    if variance < p.consistency_high:
        return "high"
    if variance < p.consistency_medium:
        return "medium"
    return "low"


def _period_days(period: str, p: TrendParams) -> Optional[int]:
    if period == "7d":
        return p.short_days
    if period == "14d":
        return p.long_days
    if period == "all":
        return None
    raise ValueError(f"Unknown period {period!r}; expected one of {PERIODS}")


def _scored(entries: Iterable[Entry], cfg: ThriveConfig) -> pd.DataFrame:
    df = entries_frame(entries)
    if df.empty:
        return pd.DataFrame(columns=["timestamp", "mc", "dss", "mc_valid", "dss_valid"])
    return score_frame(df, cfg, leave_one_out=False)


def _stable(period: str, count: int) -> Dict[str, object]:
    return {
        "period": period,
        "entries": count,
        "mc_trend": "stable",
        "dss_trend": "stable",
        "mc_change": 0.0,
        "dss_change": 0.0,
        "mc_slope": 0.0,
        "best_day": None,
        "worst_day": None,
        "consistency": "low",
        "patterns": [],
    }


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

def trend_insights(
    entries: Iterable[Entry],
    now: datetime,
    period: str = "14d",
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, object]:
    """
    Direction, size and stability of MC/DSS over `period` ("7d", "14d", "all").

    Returns:
        {"period", "entries", "mc_trend", "dss_trend" ("up"|"down"|"stable"),
         "mc_change", "dss_change", "mc_slope",
         "best_day", "worst_day" (e.g. "Mar 04", or None),
         "consistency" ("high"|"medium"|"low"), "patterns": [str, ...]}

    Fewer than three scored entries in the window gives a stable, empty result.
    """
    p = cfg.trends
    days = _period_days(period, p)

    scores = _scored(entries, cfg)
    if days is not None and not scores.empty:
        start = pd.Timestamp(to_local(now) - timedelta(days=days))
        scores = scores[scores["timestamp"] >= start]

    valid = scores[scores["mc_valid"].astype(bool)] if not scores.empty else scores
    if len(valid) < p.min_entries:
        return _stable(period, len(valid))

    mc = valid["mc"].to_numpy(dtype=np.float64)
    dss_rows = valid[valid["dss_valid"].astype(bool)]
    dss = dss_rows["dss"].to_numpy(dtype=np.float64)

    mc_change = _half_change(mc)
    dss_change = _half_change(dss) if len(dss) >= 2 else 0.0
    consistency = _consistency(mc, p)

    best = valid.loc[valid["mc"].idxmax()]
    worst = valid.loc[valid["mc"].idxmin()]

    patterns: List[str] = []
    if abs(mc_change) > p.mc_note:
        verb = "improved" if mc_change > 0 else "declined"
        patterns.append(f"Mood {verb} by {abs(mc_change):.1f} points over time")
    if abs(dss_change) > p.dss_note:
        verb = "increased" if dss_change > 0 else "decreased"
        patterns.append(f"Productivity {verb} by {abs(dss_change):.1f} points")
    if consistency == "high":
        patterns.append("Very consistent mood patterns")
    elif consistency == "low":
        patterns.append("High mood variability - consider tracking triggers")

    return {
        "period": period,
        "entries": int(len(valid)),
        "mc_trend": _direction(mc_change, p.mc_trend),
        "dss_trend": _direction(dss_change, p.dss_trend),
        "mc_change": round(mc_change, 3),
        "dss_change": round(dss_change, 3),
        "mc_slope": round(_ols_slope(mc), 4),
        "best_day": best["timestamp"].strftime("%b %d"),
        "worst_day": worst["timestamp"].strftime("%b %d"),
        "consistency": consistency,
        "patterns": patterns,
    }


def _week_bounds(now: datetime) -> Tuple[pd.Timestamp, pd.Timestamp, pd.Timestamp]:
    """Starts of last week, this week and next week. Weeks begin on Monday."""
    today = pd.Timestamp(to_local(now)).normalize()
    this_start = today - pd.Timedelta(days=today.dayofweek)
    return this_start - pd.Timedelta(days=7), this_start, this_start + pd.Timedelta(days=7)


def _week_metrics(week: pd.DataFrame) -> Dict[str, object]:
    mc = week.loc[week["mc_valid"].astype(bool), "mc"]
    dss = week.loc[week["dss_valid"].astype(bool), "dss"]
    return {
        "mc": round(float(mc.mean()), 3) if len(mc) else 0.0,
        "dss": round(float(dss.mean()), 3) if len(dss) else 0.0,
        "entries": int(len(week)),
    }


def week_comparison(
    entries: Iterable[Entry],
    now: datetime,
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, object]:
    """
    This calendar week against last, weeks starting on Monday.

    Returns {"this_week": {"mc", "dss", "entries"}, "last_week": {...},
             "changes": {"mc", "dss", "entries"}}.
    """
    last_start, this_start, next_start = _week_bounds(now)

    scores = _scored(entries, cfg)
    ts = scores["timestamp"]
    this_week = _week_metrics(scores[(ts >= this_start) & (ts < next_start)])
    last_week = _week_metrics(scores[(ts >= last_start) & (ts < this_start)])

    return {
        "this_week": this_week,
        "last_week": last_week,
        "changes": {
            "mc": round(this_week["mc"] - last_week["mc"], 3),
            "dss": round(this_week["dss"] - last_week["dss"], 3),
            "entries": this_week["entries"] - last_week["entries"],
        },
    }


# ---------------------------------------------------------------------------
# Success compass
# ---------------------------------------------------------------------------

COMPASS_DIMENSIONS = ("lm", "ri", "cn")


def _capped(values: pd.Series, cap: float) -> np.ndarray:
    return np.minimum(1.0, values.to_numpy(dtype=float) / cap)


def compass_frame(entries: Iterable[Entry], p: CompassParams = DEFAULT_CONFIG.compass) -> pd.DataFrame:
    """
    Bounded 0..1 LM / RI / CN per entry.

    Unreported optional attributes count as 0, so a missing sleep report
    pulls Recovery down rather than being ignored.
    """
    df = entries_frame(entries)
    if df.empty:
        return pd.DataFrame(columns=["timestamp"] + list(COMPASS_DIMENSIONS))

    social = frozenset(p.social_tags)
    social_tags = df["tags"].map(lambda tags: len(tags & social))

    lw, rw, cw = p.learning_weights, p.recovery_weights, p.connection_weights
    lm = (lw[0] * df["focus"].to_numpy(dtype=float) / 5.0
          + lw[1] * _capped(df["focus_minutes"], p.focus_minutes_cap)
          + lw[2] * _capped(df["tasks_completed"], p.tasks_cap))
    ri = (rw[0] * _capped(df["sleep_hours"], p.sleep_cap)
          + rw[1] * df["recovery_action"].to_numpy(dtype=float)
          + rw[2] * (5.0 - df["stress"].to_numpy(dtype=float)) / 5.0)
    cn = (cw[0] * df["positivity"].to_numpy(dtype=float) / 5.0
          + cw[1] * _capped(df["social_interactions"], p.social_cap)
          + cw[2] * _capped(social_tags, p.social_tag_cap))

    return pd.DataFrame({"timestamp": df["timestamp"].to_numpy(), "lm": lm, "ri": ri, "cn": cn})


def _compass_means(week: pd.DataFrame) -> Dict[str, float]:
    if week.empty:
        return {dim: 0.0 for dim in COMPASS_DIMENSIONS}
    return {dim: round(float(week[dim].mean()), 3) for dim in COMPASS_DIMENSIONS}


def success_compass(
    entries: Iterable[Entry],
    now: datetime,
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, object]:
    """
    Mean compass scores for this calendar week against last week.

    Returns {"current": {"lm", "ri", "cn"}, "baseline": {...},
             "current_days": int, "baseline_days": int}.
    The day counts are check-in counts, matching week_comparison.
    An empty week averages to 0.0 on every dimension.
    """
    last_start, this_start, next_start = _week_bounds(now)

    scores = compass_frame(entries, cfg.compass)
    ts = scores["timestamp"]
    current = scores[(ts >= this_start) & (ts < next_start)]
    baseline = scores[(ts >= last_start) & (ts < this_start)]

    return {
        "current": _compass_means(current),
        "baseline": _compass_means(baseline),
        "current_days": int(len(current)),
        "baseline_days": int(len(baseline)),
    }
