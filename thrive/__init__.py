"""
THRIVE v1.0 — Personal Wellness Analytics and Coaching Engine

Turns short self-report check-ins into baseline-relative wellness scores,
tag drivers, power hours, trends and contextual coaching tips. Every
calculation is local, synchronous and a pure function of the entries plus a
small favorites/completed preference state.

Architecture:
    config     — All thresholds, weights and windows (single source of truth)
    models     — Entry record, validation, DataFrame view
    normalize  — Baseline z-scores with a floored sigma
    scoring    — Mood Composite (MC) and Daily Success Score (DSS)
    streaks    — Consecutive-day logging streaks
    drivers    — Tag impact analysis
    patterns   — Weekday x hour power-hour heatmap
    trends     — Half-split trend insights, week-over-week comparison, success compass
    tips       — Coaching tip catalog and condition vocabulary
    coach      — Recommendation engine over the catalog + preferences
    storage    — Key-value stores for the preference state
    exchange   — JSON/CSV import and export
    pipeline   — Orchestration: load → score → analyze → coach → report

Public API:
    analyze(filepath)        → CLI mode
    analyze_data(records)    → UI / backend mode
    generate_report(result)  → formatted report
"""

from thrive.coach import CoachEngine, PreferenceState
from thrive.config import ThriveConfig
from thrive.models import Entry, TimeBucket
from thrive.pipeline import analyze, analyze_data, generate_report

__version__ = "1.0.0"

__all__ = [
    "CoachEngine",
    "Entry",
    "PreferenceState",
    "ThriveConfig",
    "TimeBucket",
    "analyze",
    "analyze_data",
    "generate_report",
]
