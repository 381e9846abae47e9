"""
Centralized configuration for all thresholds, weights, and window parameters.

Every tunable constant lives here. Weights are fixed constants checked at
construction time; the engine never reads them from user input.
"""

from dataclasses import dataclass, field
from typing import Tuple


# ---------------------------------------------------------------------------
# Baseline normalization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizerParams:
    """Parameters for baseline-relative z-scores."""

    # Floor on the historical standard deviation
    sigma_floor: float = 0.5

    # Historical samples required before a z-score is trusted
    min_history: int = 3

    def __post_init__(self):
        if self.sigma_floor <= 0:
            raise ValueError(f"sigma_floor must be positive, got {self.sigma_floor}")
        if self.min_history < 1:
            raise ValueError(f"min_history must be >= 1, got {self.min_history}")


# ---------------------------------------------------------------------------
# Composite weights
# ---------------------------------------------------------------------------

# Sum of the Mood Composite weight magnitudes, 0.4 + 0.3 + 0.2 + |-0.2|
MOOD_WEIGHT_TOTAL = 1.1
WEIGHT_TOLERANCE = 1e-3


@dataclass(frozen=True)
class MoodWeights:
    """
    Mood Composite weights.

    MC = positivity * zP + energy * zE + focus * zF - stress * zS

    All four are stored as magnitudes; stress is subtracted.
    """

    positivity: float = 0.4
    energy: float = 0.3
    focus: float = 0.2
    stress: float = 0.2

    def __post_init__(self):
        parts = (self.positivity, self.energy, self.focus, self.stress)
        if any(w < 0 for w in parts):
            raise ValueError(f"Mood weights must be magnitudes, got {parts}")
        total = sum(abs(w) for w in parts)
        if abs(total - MOOD_WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
            raise ValueError(
                f"Mood weight magnitudes must sum to {MOOD_WEIGHT_TOTAL}, got {total}"
            )

    @property
    def signed(self) -> Tuple[float, float, float, float]:
        """Weights in (positivity, energy, focus, stress) order, stress negated."""
        return (self.positivity, self.energy, self.focus, -self.stress)


@dataclass(frozen=True)
class SuccessWeights:
    """Daily Success Score weights for Learning Momentum, Recovery, Connection."""

    learning: float = 0.5
    recovery: float = 0.3
    connection: float = 0.2

    def __post_init__(self):
        total = self.learning + self.recovery + self.connection
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Success weights must sum to 1.0, got {total}")


@dataclass(frozen=True)
class SuccessParams:
    """Raw-component multipliers for the Daily Success Score."""

    # Learning Momentum = focus_minutes + tasks_to_learning * tasks_completed
    tasks_to_learning: float = 10.0

    # Recovery Index = sleep_hours + recovery_bonus if a recovery action was taken
    recovery_bonus: float = 1.0

    # Connection is the mean social count over this many trailing entries
    connection_window: int = 7


# ---------------------------------------------------------------------------
# Driver analysis
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DriverParams:
    """Thresholds for tag impact analysis."""

    min_occurrences: int = 3
    lookback_weeks: int = 4

    # Both partitions must reach these sizes for the tier
    high_sample: int = 10
    medium_sample: int = 5

    # |mc_impact| + |dss_impact| at or below this is neutral
    effect_threshold: float = 0.1


# ---------------------------------------------------------------------------
# Temporal heatmap
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeatmapParams:
    """Productivity transform and peak/low extraction."""

    # productivity = clip(MC + score_offset, score_min, score_max)
    score_offset: float = 3.0
    score_min: float = 0.0
    score_max: float = 5.0

    # Share of non-empty cells reported as peak (and as low) hours
    extreme_fraction: float = 0.1


# ---------------------------------------------------------------------------
# Time-of-day contexts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeContextBounds:
    """Start hour of each time-of-day context. Night wraps past midnight."""

    morning: int = 6
    midday: int = 12
    evening: int = 17
    night: int = 22

    def __post_init__(self):
        if not (0 <= self.morning < self.midday < self.evening < self.night <= 24):
            raise ValueError("Time context bounds must be increasing hours within a day")


# ---------------------------------------------------------------------------
# Recommendation scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CoachParams:
    """Relevance points used when ranking tips."""

    condition_match: int = 10

    priority_high: int = 5
    priority_medium: int = 3
    priority_low: int = 1

    time_context: int = 3
    tag_match: int = 2
    completed_penalty: int = -5
    favorite_bonus: int = 2

    default_max_tips: int = 3

    onboarding_categories: Tuple[str, ...] = (
        "mindfulness",
        "productivity",
        "physical_wellness",
    )


# ---------------------------------------------------------------------------
# Trend insights
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendParams:
    """Windows and cut-offs for trend insights."""

    short_days: int = 7
    long_days: int = 14
    min_entries: int = 3

    # Half-split change needed to call a direction
    mc_trend: float = 0.2
    dss_trend: float = 0.05

    # Change large enough to mention in the pattern notes
    mc_note: float = 0.5
    dss_note: float = 0.1

    # MC variance cut-offs for the consistency tier
    consistency_high: float = 0.5
    consistency_medium: float = 1.0


# ---------------------------------------------------------------------------
# Weekly success compass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompassParams:
    """
    Bounded 0..1 Learning / Recovery / Connection scores for the weekly compass.

    Each dimension is a weighted sum of parts capped at 1. Unlike the DSS
    components these are absolute, not baseline-relative.
    """

    # Learning: focus / 5, deep-work minutes / cap, tasks / cap
    learning_weights: Tuple[float, float, float] = (0.5, 0.3, 0.2)
    focus_minutes_cap: float = 180.0
    tasks_cap: float = 10.0

    # Recovery: sleep / cap, recovery action, inverted stress
    recovery_weights: Tuple[float, float, float] = (0.4, 0.3, 0.3)
    sleep_cap: float = 8.0

    # Connection: positivity / 5, social count / cap, social tags / cap
    connection_weights: Tuple[float, float, float] = (0.4, 0.4, 0.2)
    social_cap: float = 5.0
    social_tag_cap: float = 3.0
    social_tags: Tuple[str, ...] = ("social", "friends", "family", "party", "dating")

    def __post_init__(self):
        for name in ("learning_weights", "recovery_weights", "connection_weights"):
            total = sum(getattr(self, name))
            if abs(total - 1.0) > WEIGHT_TOLERANCE:
                raise ValueError(f"Compass {name} must sum to 1.0, got {total}")


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExchangeParams:
    """Export envelope metadata and import warnings."""

    schema_version: str = "1.0.0"
    app_version: str = "1.0.0"
    long_range_days: int = 365


# ---------------------------------------------------------------------------
# Top-level config aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThriveConfig:
    """Complete engine configuration. Pass to any calculator to override defaults."""

    normalizer: NormalizerParams = field(default_factory=NormalizerParams)
    mood_weights: MoodWeights = field(default_factory=MoodWeights)
    success_weights: SuccessWeights = field(default_factory=SuccessWeights)
    success: SuccessParams = field(default_factory=SuccessParams)
    drivers: DriverParams = field(default_factory=DriverParams)
    heatmap: HeatmapParams = field(default_factory=HeatmapParams)
    time_contexts: TimeContextBounds = field(default_factory=TimeContextBounds)
    coach: CoachParams = field(default_factory=CoachParams)
    trends: TrendParams = field(default_factory=TrendParams)
    compass: CompassParams = field(default_factory=CompassParams)
    exchange: ExchangeParams = field(default_factory=ExchangeParams)


DEFAULT_CONFIG = ThriveConfig()
