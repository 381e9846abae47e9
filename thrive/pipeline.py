"""
Pipeline orchestration: load -> score -> streak -> drivers -> patterns -> trends -> coach -> report.

This is the only module that reads files or formats text. All analytical
logic is delegated to scoring, streaks, drivers, patterns, trends and coach.

Entry points:
    analyze(filepath)        JSON file on disk (CLI mode)
    analyze_data(records)    list of entry dicts or an export envelope
    generate_report(result)  text report for the terminal
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from thrive.coach import CoachEngine, PreferenceState
from thrive.config import ThriveConfig
from thrive.drivers import analyze_drivers, top_drivers
from thrive.errors import ImportFormatError, InvalidEntryError
from thrive.exchange import entry_from_record, load_envelope, parse_timestamp
from thrive.models import Entry, to_local
from thrive.patterns import best_hour_label, build_heatmap
from thrive.scoring import score_entry
from thrive.streaks import compute_streak
from thrive.trends import success_compass, trend_insights, week_comparison

logger = logging.getLogger(__name__)


RECENT_WINDOW = 7


# ---------------------------------------------------------------------------
# Data loading (CLI mode only)
# ---------------------------------------------------------------------------

def _record_time(record: Any) -> Optional[datetime]:
    if not isinstance(record, Mapping):
        return None
    try:
        return to_local(parse_timestamp(record.get("timestamp")))
    except ValueError:
        return None


def _entries_from(data: Union[Sequence[Mapping[str, Any]], Mapping[str, Any]]) -> List[Entry]:
    """
    Convert raw records to entries.

    Malformed records are dropped from the history with a warning. The
    latest check-in is the one being scored, so if a malformed record is at
    least as recent as every valid one, its error is raised instead.
    """
    if isinstance(data, Mapping):
        data = load_envelope(data)["entries"]
    if not isinstance(data, list):
        raise ImportFormatError("Expected a list of entries or an export envelope")
    if not data:
        raise ValueError("Input data cannot be empty")

    entries: List[Entry] = []
    rejected: List[Tuple[Any, InvalidEntryError]] = []
    for record in data:
        try:
            entries.append(entry_from_record(record))
        except InvalidEntryError as exc:
            rejected.append((record, exc))

    if not entries:
        raise rejected[-1][1]

    latest = max(e.local_time for e in entries)
    for record, exc in rejected:
        ts = _record_time(record)
        if ts is not None and ts >= latest:
            raise exc
        logger.warning("Excluding malformed record from history: %s", exc.message)
    return entries


def load_data(filepath: Union[str, Path]) -> List[Entry]:
    """Load and validate check-ins from a JSON file."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = _entries_from(data)
    logger.info("Loaded %d entries from %s", len(entries), path)
    return entries


# ---------------------------------------------------------------------------
# Core analysis (no file I/O)
# ---------------------------------------------------------------------------

def _analyze_entries(
    entries: List[Entry],
    now: datetime,
    cfg: ThriveConfig,
    preferences: Optional[PreferenceState] = None,
) -> Dict:
    ordered = sorted(entries, key=lambda e: e.local_time)
    latest = ordered[-1]
    earlier = ordered[:-1]

    # Stage 1: Score the latest check-in against everything before it
    scored = score_entry(latest, earlier, cfg, now=now)

    # Stage 2: Drivers and power hours
    drivers = analyze_drivers(ordered, now, cfg)
    heatmap = build_heatmap(ordered, now, cfg)

    # Stage 3: Trends
    trends = {
        "short": trend_insights(ordered, now, "7d", cfg),
        "long": trend_insights(ordered, now, "14d", cfg),
    }

    # Stage 4: Coaching
    coach = CoachEngine(preferences=preferences or PreferenceState(), cfg=cfg)
    tips = coach.select_relevant_tips(latest, earlier[-RECENT_WINDOW:], now=now)

    return {
        "entries": len(ordered),
        "latest": {
            "id": latest.id,
            "timestamp": latest.timestamp.isoformat(),
            "mc": scored["mc"]["mc"],
            "mc_valid": scored["mc"]["is_valid"],
            "dss": scored["dss"]["dss"],
            "dss_valid": scored["dss"]["is_valid"],
            "reason": scored["mc"]["reason"] or scored["dss"]["reason"],
        },
        "streak": compute_streak(ordered, now),
        "drivers": drivers,
        "top_positive": top_drivers(drivers, "positive"),
        "top_negative": top_drivers(drivers, "negative"),
        "heatmap": heatmap,
        "trends": trends,
        "week": week_comparison(ordered, now, cfg),
        "compass": success_compass(ordered, now, cfg),
        "tips": [t.to_dict() for t in tips],
    }


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def analyze(
    filepath: Union[str, Path],
    cfg: Optional[ThriveConfig] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    CLI-compatible entry point.
    Reads a JSON file and runs the full analysis as of `now` (default: wall clock).
    """
    if cfg is None:
        cfg = ThriveConfig()
    if now is None:
        now = datetime.now()

    return _analyze_entries(load_data(filepath), now, cfg)


def analyze_data(
    data: Union[Sequence[Mapping[str, Any]], Mapping[str, Any]],
    cfg: Optional[ThriveConfig] = None,
    now: Optional[datetime] = None,
    preferences: Optional[PreferenceState] = None,
) -> Dict:
    """
    Backend / UI integration entry point.

    Accepts a list of entry dicts or an export envelope directly.
    No file system usage.
    """
    if cfg is None:
        cfg = ThriveConfig()
    if now is None:
        now = datetime.now()

    return _analyze_entries(_entries_from(data), now, cfg, preferences)


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------

def _score_text(value: float, valid: bool) -> str:
    return f"{value:+.3f}" if valid else "building baseline"


def generate_report(result: Dict) -> str:
    """Format the analysis result as a human-readable text report."""
    latest = result["latest"]
    streak = result["streak"]
    short = result["trends"]["short"]
    long = result["trends"]["long"]
    week = result["week"]
    compass = result["compass"]

    lines = [
        "THRIVE CHECK-IN REPORT",
        "=" * 58,
        "",
        f"  Entries             : {result['entries']}",
        f"  Latest Check-in     : {latest['timestamp']}",
        f"  Mood Composite      : {_score_text(latest['mc'], latest['mc_valid'])}",
        f"  Daily Success       : {_score_text(latest['dss'], latest['dss_valid'])}",
        f"  Streak              : {streak['current_streak']}d current, {streak['longest_streak']}d longest"
        f"{'' if streak['is_active'] else ' (inactive)'}",
        f"  Trend (7d)          : MC {short['mc_trend']} ({short['mc_change']:+.2f}), DSS {short['dss_trend']}",
        f"  Trend (14d)         : MC {long['mc_trend']} ({long['mc_change']:+.2f}), DSS {long['dss_trend']}",
        f"  Consistency (14d)   : {long['consistency']}",
        f"  This Week vs Last   : MC {week['changes']['mc']:+.2f}, entries {week['changes']['entries']:+d}",
        f"  Compass (this week) : LM {compass['current']['lm']:.2f}  RI {compass['current']['ri']:.2f}"
        f"  CN {compass['current']['cn']:.2f}  ({compass['current_days']} check-ins)",
        f"  Compass (last week) : LM {compass['baseline']['lm']:.2f}  RI {compass['baseline']['ri']:.2f}"
        f"  CN {compass['baseline']['cn']:.2f}  ({compass['baseline_days']} check-ins)",
    ]

    for title, key in (("Lifting You Up", "top_positive"), ("Dragging You Down", "top_negative")):
        if result[key]:
            lines.append("")
            lines.append(f"  {title}:")
            for d in result[key]:
                lines.append(
                    f"    {d['tag']:15s} : MC {d['mc_impact']:+.2f}  DSS {d['dss_impact']:+.2f}"
                    f"  ({d['occurrences']}x, {d['confidence']} confidence)"
                )

    peaks = result["heatmap"]["peak_hours"]
    if peaks:
        lines.append("")
        lines.append("  Power Hours:")
        for cell in peaks:
            lines.append(f"    {best_hour_label(cell):15s} : {cell['score']:.2f} ({cell['count']} check-ins)")

    for note in long["patterns"]:
        lines.append(f"  * {note}")

    if result["tips"]:
        lines.append("")
        lines.append("  Suggested Next Steps:")
        for tip in result["tips"]:
            lines.append(f"    - {tip['suggested_action']} ({tip['duration']} min)")

    lines.append("")
    lines.append("=" * 58)
    return "\n".join(lines)
