"""
Driver analysis: which tags coincide with better or worse check-ins.

For every tag used at least `min_occurrences` times within the lookback
window, entries are split into "has tag" / "lacks tag" and the mean MC and
DSS of each side are compared. Each entry is scored against the rest of the
dataset, so no entry is part of its own baseline.

This is correlational only. Confidence tiers reflect sample sizes, not
statistical significance.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd

from thrive.config import DEFAULT_CONFIG, DriverParams, ThriveConfig
from thrive.models import Entry, entries_frame, to_local
from thrive.scoring import score_frame

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_confidence(samples_with: int, samples_without: int, p: DriverParams) -> str:
    """high if both partitions >= 10, medium if both >= 5, else low."""
    smaller = min(samples_with, samples_without)
    if smaller >= p.high_sample:
        return "high"
    if smaller >= p.medium_sample:
        return "medium"
    return "low"


def classify_effect(mc_impact: float, dss_impact: float, p: DriverParams) -> str:
    """
    Overall direction of a tag's impact.

    Below the total-impact threshold the tag is neutral. When MC and DSS
    agree in sign that sign wins; otherwise the larger magnitude decides.
    """
    total = abs(mc_impact) + abs(dss_impact)
    if total <= p.effect_threshold:
        return "neutral"
    if mc_impact > 0 and dss_impact > 0:
        return "positive"
    if mc_impact < 0 and dss_impact < 0:
        return "negative"
    if abs(mc_impact) > abs(dss_impact):
        return "positive" if mc_impact > 0 else "negative"
    return "positive" if dss_impact > 0 else "negative"


def _valid_mean(values: pd.Series, valid: pd.Series) -> float:
    picked = values[valid.astype(bool)]
    return float(picked.mean()) if len(picked) else 0.0


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def analyze_drivers(
    entries: Iterable[Entry],
    now: datetime,
    cfg: ThriveConfig = DEFAULT_CONFIG,
    min_occurrences: Optional[int] = None,
    lookback_weeks: Optional[int] = None,
) -> List[Dict[str, object]]:
    """
    Tag impact profiles, strongest first.

    Each record:
        {"tag", "occurrences", "avg_mc_with", "avg_mc_without", "mc_impact",
         "avg_dss_with", "avg_dss_without", "dss_impact", "effect_magnitude",
         "confidence", "overall_effect"}

    Scores that lacked enough baseline history are left out of the means.
    """
    p = cfg.drivers
    min_occurrences = p.min_occurrences if min_occurrences is None else min_occurrences
    lookback_weeks = p.lookback_weeks if lookback_weeks is None else lookback_weeks

    df = entries_frame(entries)
    if df.empty:
        return []

    scores = score_frame(df, cfg, leave_one_out=True)
    df = pd.concat([df, scores[["mc", "dss", "mc_valid", "dss_valid"]]], axis=1)

    cutoff = pd.Timestamp(to_local(now) - timedelta(weeks=lookback_weeks))
    window = df[df["timestamp"] > cutoff]
    if window.empty:
        return []

    tag_counts = window["tags"].map(sorted).explode().dropna().value_counts()
    candidates = sorted(tag_counts[tag_counts >= min_occurrences].index)
    logger.debug(
        "Driver analysis: %d entries in window, %d candidate tags",
        len(window), len(candidates),
    )

    records = []
    for tag in candidates:
        has_tag = window["tags"].map(lambda tags: tag in tags).astype(bool)
        with_tag = window[has_tag]
        without_tag = window[~has_tag]

        mc_with = _valid_mean(with_tag["mc"], with_tag["mc_valid"])
        mc_without = _valid_mean(without_tag["mc"], without_tag["mc_valid"])
        dss_with = _valid_mean(with_tag["dss"], with_tag["dss_valid"])
        dss_without = _valid_mean(without_tag["dss"], without_tag["dss_valid"])

        mc_impact = mc_with - mc_without
        dss_impact = dss_with - dss_without

        records.append({
            "tag": tag,
            "occurrences": int(len(with_tag)),
            "avg_mc_with": round(mc_with, 3),
            "avg_mc_without": round(mc_without, 3),
            "mc_impact": round(mc_impact, 3),
            "avg_dss_with": round(dss_with, 3),
            "avg_dss_without": round(dss_without, 3),
            "dss_impact": round(dss_impact, 3),
            "effect_magnitude": round(abs(mc_impact) + abs(dss_impact), 3),
            "confidence": classify_confidence(len(with_tag), len(without_tag), p),
            "overall_effect": classify_effect(mc_impact, dss_impact, p),
        })

    records.sort(key=lambda r: (-r["effect_magnitude"], r["tag"]))
    return records


def top_drivers(records: List[Dict[str, object]], effect: str, limit: int = 3) -> List[Dict[str, object]]:
    """The strongest `limit` drivers with the given overall effect."""
    return [r for r in records if r["overall_effect"] == effect][:limit]
