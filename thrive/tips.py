"""
Coaching tip catalog and its rule vocabulary.

Tips are static data. Each trigger condition names one dimension from a
closed set, one comparison, and a threshold; the dimension's reader and the
comparison's operator are looked up in explicit tables rather than by
attribute name.
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

from thrive.models import Entry, TimeBucket


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

class Dimension(str, Enum):
    POSITIVITY = "positivity"
    ENERGY = "energy"
    FOCUS = "focus"
    STRESS = "stress"
    SLEEP_HOURS = "sleep_hours"
    SOCIAL_INTERACTIONS = "social_interactions"
    FOCUS_MINUTES = "focus_minutes"
    TASKS_COMPLETED = "tasks_completed"
    RECOVERY_ACTION = "recovery_action"


class Comparison(str, Enum):
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "="


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class Category(str, Enum):
    STRESS_MANAGEMENT = "stress_management"
    MOOD_BOOST = "mood_boost"
    FOCUS_ENHANCEMENT = "focus_enhancement"
    ENERGY_MANAGEMENT = "energy_management"
    SLEEP_RECOVERY = "sleep_recovery"
    SOCIAL_CONNECTION = "social_connection"
    EXAM_PREP = "exam_prep"
    PRODUCTIVITY = "productivity"
    MINDFULNESS = "mindfulness"
    PHYSICAL_WELLNESS = "physical_wellness"


# Unreported sleep reads as a full night so sleep tips need an actual report
UNREPORTED_SLEEP_HOURS = 7.0

DIMENSION_READERS: Dict[Dimension, Callable[[Entry], float]] = {
    Dimension.POSITIVITY: lambda e: float(e.positivity),
    Dimension.ENERGY: lambda e: float(e.energy),
    Dimension.FOCUS: lambda e: float(e.focus),
    Dimension.STRESS: lambda e: float(e.stress),
    Dimension.SLEEP_HOURS: lambda e: (
        float(e.sleep_hours) if e.sleep_hours is not None else UNREPORTED_SLEEP_HOURS
    ),
    Dimension.SOCIAL_INTERACTIONS: lambda e: float(e.social_interactions or 0),
    Dimension.FOCUS_MINUTES: lambda e: float(e.focus_minutes or 0),
    Dimension.TASKS_COMPLETED: lambda e: float(e.tasks_completed or 0),
    Dimension.RECOVERY_ACTION: lambda e: 1.0 if e.recovery_action else 0.0,
}

COMPARATORS: Dict[Comparison, Callable[[float, float], bool]] = {
    Comparison.LT: operator.lt,
    Comparison.LE: operator.le,
    Comparison.GT: operator.gt,
    Comparison.GE: operator.ge,
    Comparison.EQ: operator.eq,
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Condition:
    """One trigger: `dimension op threshold`, e.g. stress >= 4."""

    dimension: Dimension
    op: Comparison
    threshold: float

    @classmethod
    def parse(cls, dimension: str, op: str, threshold: float) -> "Condition":
        return cls(Dimension(dimension), Comparison(op), float(threshold))

    def matches(self, entry: Entry) -> bool:
        value = DIMENSION_READERS[self.dimension](entry)
        return COMPARATORS[self.op](value, self.threshold)

    def to_dict(self) -> Dict[str, object]:
        return {"dimension": self.dimension.value, "operator": self.op.value, "value": self.threshold}


@dataclass(frozen=True)
class Tip:
    """A short, rule-triggered coaching suggestion."""

    id: str
    content: str
    suggested_action: str
    conditions: Tuple[Condition, ...]
    priority: Priority
    category: Category
    duration: int
    time_contexts: Tuple[TimeBucket, ...] = ()
    required_tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "content": self.content,
            "suggested_action": self.suggested_action,
            "conditions": [c.to_dict() for c in self.conditions],
            "priority": self.priority.value,
            "category": self.category.value,
            "duration": self.duration,
            "time_contexts": [t.value for t in self.time_contexts],
            "required_tags": list(self.required_tags),
        }


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_M, _D, _E, _N = TimeBucket.MORNING, TimeBucket.MIDDAY, TimeBucket.EVENING, TimeBucket.NIGHT
_DAYTIME = (_M, _D, _E)


def _tip(id, content, action, conditions, priority, category, duration, contexts, tags=()):
    return Tip(
        id=id,
        content=content,
        suggested_action=action,
        conditions=tuple(Condition.parse(*c) for c in conditions),
        priority=Priority(priority),
        category=Category(category),
        duration=duration,
        time_contexts=tuple(contexts),
        required_tags=tuple(tags),
    )


DEFAULT_TIPS: Tuple[Tip, ...] = (
    # High stress
    _tip("stress_breathing_1",
         "Take 4 deep breaths: inhale for 4 counts, hold for 4, exhale for 6.",
         "Find a quiet spot and practice box breathing",
         [("stress", ">=", 4)], "high", "stress_management", 2, _DAYTIME),
    _tip("stress_progressive_relaxation",
         "Tense and release each muscle group for 5 seconds, from your toes up to your head.",
         "Find a comfortable position and work through each muscle group",
         [("stress", ">=", 4)], "high", "stress_management", 5, (_E, _N)),
    _tip("stress_grounding_54321",
         "Name 5 things you see, 4 you can touch, 3 you hear, 2 you smell, 1 you taste.",
         "Look around and engage your senses",
         [("stress", ">=", 3)], "medium", "stress_management", 3, _DAYTIME),

    # Low mood
    _tip("mood_gratitude_3",
         "Write down 3 things you're grateful for right now, no matter how small.",
         "Grab a pen or open your phone notes",
         [("positivity", "<=", 2)], "high", "mood_boost", 3, _DAYTIME),
    _tip("mood_music_boost",
         "Play one upbeat song that makes you want to move.",
         "Put on headphones and choose an energizing track",
         [("positivity", "<=", 2)], "medium", "mood_boost", 4, _DAYTIME),
    _tip("mood_nature_connection",
         "Step outside for 2 minutes and notice something in nature: a tree, a cloud, a bird.",
         "Go to a window or step outside briefly",
         [("positivity", "<=", 2)], "medium", "mood_boost", 2, _DAYTIME),

    # High energy, low focus
    _tip("focus_pomodoro_start",
         "Start a 25-minute focused session on one task only.",
         "Choose one specific task and set a 25-minute timer",
         [("energy", ">=", 4), ("focus", "<=", 2)], "high", "focus_enhancement", 10, (_M, _D)),
    _tip("focus_environment_reset",
         "Clear your workspace of distractions: phone in another room, close spare tabs.",
         "Spend 2 minutes organizing your immediate environment",
         [("energy", ">=", 3), ("focus", "<=", 2)], "medium", "focus_enhancement", 3, (_M, _D)),
    _tip("focus_body_double",
         "Work alongside a friend, in person or virtually. Company helps channel energy into focus.",
         "Text a study buddy or join a virtual study room",
         [("energy", ">=", 4), ("focus", "<=", 2)], "medium", "focus_enhancement", 2, _DAYTIME),

    # Exam pressure
    _tip("exam_confidence_anchor",
         "Recall a time you handled a hard situation well and hold onto that memory.",
         "Close your eyes and vividly remember a past success",
         [("stress", ">=", 3)], "high", "exam_prep", 3, _DAYTIME, ("exam", "study")),
    _tip("exam_active_recall",
         "Test yourself on key concepts instead of re-reading notes.",
         "Create flashcards or quiz yourself on main topics",
         [("stress", ">=", 3)], "medium", "exam_prep", 5, _DAYTIME, ("exam", "study")),

    # Sleep debt
    _tip("sleep_wind_down_ritual",
         "Create a 10-minute wind-down ritual: dim lights, gentle music, or light reading.",
         "Start your wind-down routine 30 minutes before bed",
         [("sleep_hours", "<=", 6)], "high", "sleep_recovery", 10, (_E, _N)),
    _tip("sleep_blue_light_break",
         "Put away screens an hour before bed; try reading or gentle stretching instead.",
         "Set a phone reminder to put devices away",
         [("sleep_hours", "<=", 6)], "high", "sleep_recovery", 1, (_E, _N)),
    _tip("sleep_breathing_478",
         "Practice 4-7-8 breathing: inhale for 4, hold for 7, exhale for 8.",
         "Practice this breathing pattern while lying in bed",
         [("sleep_hours", "<=", 6)], "medium", "sleep_recovery", 3, (_E, _N)),
    _tip("sleep_environment",
         "Make your room sleep-friendly: cool, dark, and comfortable.",
         "Make your bedroom more sleep-friendly",
         [("sleep_hours", "<=", 6)], "high", "sleep_recovery", 5, (_E, _N), ("sleep", "rest")),

    # Social connection
    _tip("social_quick_reach_out",
         "Send a quick text to someone you care about.",
         "Send a thoughtful message to a friend or family member",
         [("social_interactions", "<=", 1)], "medium", "social_connection", 2, _DAYTIME),
    _tip("social_shared_activity",
         "Invite someone to a simple activity: a walk, a coffee, or a study session.",
         "Reach out with a specific invitation",
         [("social_interactions", "<=", 1)], "medium", "social_connection", 5, _DAYTIME),
    _tip("social_connection_boost",
         "Call a friend or family member. Connection lifts mood and eases stress.",
         "Send a message or call someone you care about",
         [("positivity", "<=", 2)], "medium", "social_connection", 3, _DAYTIME,
         ("social", "friends", "family")),

    # Energy
    _tip("energy_micro_movement",
         "Do 2 minutes of movement: jumping jacks, dancing, or stretching.",
         "Stand up and move your body for 2 minutes",
         [("energy", "<=", 2)], "high", "energy_management", 2, _DAYTIME),
    _tip("energy_hydration_boost",
         "Drink a full glass of water. Dehydration is a common cause of low energy.",
         "Get up and drink a full glass of water",
         [("energy", "<=", 2)], "medium", "energy_management", 1, _DAYTIME),
    _tip("energy_sunlight_exposure",
         "Get 5 minutes of natural light to lift alertness.",
         "Step outside or sit by a sunny window",
         [("energy", "<=", 2)], "medium", "energy_management", 5, (_M, _D)),
    _tip("energy_exercise_burst",
         "Do 5 minutes of vigorous exercise to release endorphins.",
         "Do 5 minutes of jumping jacks or running in place",
         [("energy", "<=", 2)], "medium", "energy_management", 5, _DAYTIME,
         ("gym", "exercise", "workout")),

    # Mindfulness
    _tip("mindfulness_body_scan",
         "Do a quick body scan and notice any tension from head to toe.",
         "Sit comfortably and slowly scan your body for tension",
         [("stress", ">=", 2)], "medium", "mindfulness", 3, _DAYTIME),
    _tip("mindfulness_present_moment",
         "Give your current activity your full attention for 2 minutes.",
         "Choose one simple activity and stay with it",
         [("focus", "<=", 2)], "medium", "mindfulness", 2, _DAYTIME),
    _tip("mindfulness_gratitude_moment",
         "Pause and notice one thing you're grateful for in this moment.",
         "Stop what you're doing and notice something positive",
         [("positivity", "<=", 3)], "medium", "mindfulness", 1, _DAYTIME),

    # Physical wellness
    _tip("physical_posture_reset",
         "Reset your posture: shoulders back, spine straight, feet flat.",
         "Adjust your sitting or standing position",
         [("energy", "<=", 3)], "low", "physical_wellness", 1, _DAYTIME),
    _tip("physical_eye_rest",
         "Every 20 minutes, look at something 20 feet away for 20 seconds.",
         "Look away from your screen at something distant",
         [("focus", "<=", 3)], "low", "physical_wellness", 1, _DAYTIME),
    _tip("physical_stretch_break",
         "Do 3 simple stretches: neck rolls, shoulder shrugs, wrist circles.",
         "Stand up and stretch for 2 minutes",
         [("energy", "<=", 3)], "low", "physical_wellness", 2, _DAYTIME),

    # Productivity
    _tip("productivity_task_breakdown",
         "Break your next big task into 3 smaller steps.",
         "Write down 3 specific steps for your current task",
         [("focus", "<=", 2)], "medium", "productivity", 3, (_M, _D)),
    _tip("productivity_time_blocking",
         "Work in a 15-minute focused block, then take a 5-minute break.",
         "Set a timer and commit to 15 minutes of focused work",
         [("focus", "<=", 2)], "medium", "productivity", 10, (_M, _D)),
    _tip("productivity_pomodoro_study",
         "Use 25 minutes of focused study followed by a 5-minute break.",
         "Set a 25-minute timer and focus on one study topic",
         [("focus", "<=", 2)], "high", "focus_enhancement", 10, _DAYTIME, ("study", "exam")),
    _tip("productivity_morning_intention",
         "Set one intention for today.",
         "Write down one specific goal for today",
         [("energy", "<=", 3)], "medium", "productivity", 2, (_M,)),

    # Time-of-day
    _tip("context_evening_reflection",
         "Reflect on one thing that went well today.",
         "Write down one positive moment from today",
         [("positivity", "<=", 3)], "medium", "mood_boost", 3, (_E, _N)),
    _tip("context_caffeine_awareness",
         "Notice your caffeine intake today; too much can raise anxiety and disrupt sleep.",
         "Consider reducing caffeine or switching to decaf",
         [("stress", ">=", 3)], "medium", "stress_management", 1, (_M, _D),
         ("caffeine", "coffee")),
)
