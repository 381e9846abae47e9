"""
Recommendation engine: ranks catalog tips against the user's current state.

Relevance points per tip:
    +10  for each trigger condition the current entry satisfies
    +5 / +3 / +1  for high / medium / low priority
    +3   if the current time of day is one of the tip's contexts
    +2   for each required tag seen in the recent entries
    -5   if the tip was already completed (soft suppression)
    +2   if the tip is a favorite

The engine is an ordinary object. It is handed its preference state (or a
store to load it from) at construction, and every mutation returns the new
state after writing it through to the store.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from thrive.config import DEFAULT_CONFIG, ThriveConfig
from thrive.errors import PersistenceError, StorageError
from thrive.models import Entry, TimeBucket, bucket_for_hour, clean_history, to_local, validate_entry
from thrive.storage import KeyValueStore, StoreResult
from thrive.tips import DEFAULT_TIPS, Category, Priority, Tip

logger = logging.getLogger(__name__)


FAVORITES_KEY = "thrive-favorite-tips"
COMPLETED_KEY = "thrive-completed-tips"


@dataclass(frozen=True)
class PreferenceState:
    """Favorited and completed tip ids."""

    favorites: FrozenSet[str] = field(default_factory=frozenset)
    completed: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"favorites": sorted(self.favorites), "completed": sorted(self.completed)}


def _read_ids(store: KeyValueStore, key: str) -> FrozenSet[str]:
    result = store.get(key)
    if not result.success:
        logger.warning("Could not read %s, starting empty: %s", key, result.error.message)
        return frozenset()
    if result.data is None:
        return frozenset()
    if not isinstance(result.data, list) or not all(isinstance(i, str) for i in result.data):
        logger.warning("Ignoring malformed %s value: %r", key, result.data)
        return frozenset()
    return frozenset(result.data)


def load_preferences(store: KeyValueStore) -> PreferenceState:
    """Read the preference state, treating absent or unreadable keys as empty."""
    return PreferenceState(
        favorites=_read_ids(store, FAVORITES_KEY),
        completed=_read_ids(store, COMPLETED_KEY),
    )


class CoachEngine:
    """Contextual tip selection over a static catalog plus user preferences."""

    def __init__(
        self,
        catalog: Sequence[Tip] = DEFAULT_TIPS,
        preferences: Optional[PreferenceState] = None,
        store: Optional[KeyValueStore] = None,
        cfg: ThriveConfig = DEFAULT_CONFIG,
    ):
        unique: Dict[str, Tip] = {}
        for tip in catalog:
            unique.setdefault(tip.id, tip)
        self.catalog: List[Tip] = list(unique.values())
        self.store = store
        self.cfg = cfg

        if preferences is None:
            preferences = load_preferences(store) if store is not None else PreferenceState()
        self._state = preferences

    @property
    def state(self) -> PreferenceState:
        return self._state

    # -- Scoring -------------------------------------------------------------

    def time_context(self, now: datetime) -> TimeBucket:
        return bucket_for_hour(to_local(now).hour, self.cfg.time_contexts)

    def _priority_bonus(self, priority: Priority) -> int:
        c = self.cfg.coach
        return {
            Priority.HIGH: c.priority_high,
            Priority.MEDIUM: c.priority_medium,
            Priority.LOW: c.priority_low,
        }[priority]

    def score_tip(
        self,
        tip: Tip,
        entry: Entry,
        recent_tags: FrozenSet[str],
        now: datetime,
    ) -> int:
        """Relevance of `tip` for `entry` at `now`."""
        c = self.cfg.coach
        score = sum(c.condition_match for cond in tip.conditions if cond.matches(entry))
        score += self._priority_bonus(tip.priority)

        if self.time_context(now) in tip.time_contexts:
            score += c.time_context

        score += c.tag_match * sum(
            1 for tag in tip.required_tags if tag.lower() in recent_tags
        )

        if tip.id in self._state.completed:
            score += c.completed_penalty
        if tip.id in self._state.favorites:
            score += c.favorite_bonus

        return score

    def rank_tips(
        self,
        current_entry: Entry,
        recent_entries: Iterable[Entry] = (),
        now: Optional[datetime] = None,
    ) -> List[Dict[str, object]]:
        """Every catalog tip with its relevance, highest first; ties keep catalog order."""
        validate_entry(current_entry)
        now = now or current_entry.local_time

        recent_tags: FrozenSet[str] = frozenset().union(
            *(e.tag_keys for e in clean_history(recent_entries))
        )
        scored = [
            {"tip": tip, "score": self.score_tip(tip, current_entry, recent_tags, now)}
            for tip in self.catalog
        ]
        scored.sort(key=lambda s: -s["score"])
        return scored

    def select_relevant_tips(
        self,
        current_entry: Optional[Entry],
        recent_entries: Iterable[Entry] = (),
        max_count: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Tip]:
        """
        Top `max_count` tips for the current state.

        Without a current entry, falls back to the onboarding subset.
        `now` defaults to the current entry's own timestamp.
        """
        limit = self.cfg.coach.default_max_tips if max_count is None else max_count
        if current_entry is None:
            return self.onboarding_tips(limit)
        ranked = self.rank_tips(current_entry, recent_entries, now)
        return [s["tip"] for s in ranked[:limit]]

    def onboarding_tips(self, limit: Optional[int] = None) -> List[Tip]:
        """Cold-start tips from the onboarding categories, by priority."""
        limit = self.cfg.coach.default_max_tips if limit is None else limit
        categories = {Category(c) for c in self.cfg.coach.onboarding_categories}
        pool = [t for t in self.catalog if t.category in categories]
        pool.sort(key=lambda t: -t.priority.rank)
        return pool[:limit]

    # -- Queries -------------------------------------------------------------

    def is_favorited(self, tip_id: str) -> bool:
        return tip_id in self._state.favorites

    def is_completed(self, tip_id: str) -> bool:
        return tip_id in self._state.completed

    def tips_by_category(self, category: Category) -> List[Tip]:
        category = Category(category)
        return [t for t in self.catalog if t.category == category]

    def categories(self) -> List[Category]:
        return list(Category)

    def user_stats(self) -> Dict[str, int]:
        return {
            "favorites": len(self._state.favorites),
            "completed": len(self._state.completed),
            "total": len(self.catalog),
        }

    # -- Mutations -----------------------------------------------------------

    def mark_tip_completed(self, tip_id: str) -> PreferenceState:
        return self._commit(replace(self._state, completed=self._state.completed | {tip_id}))

    def toggle_tip_favorite(self, tip_id: str) -> PreferenceState:
        favorites = self._state.favorites
        favorites = favorites - {tip_id} if tip_id in favorites else favorites | {tip_id}
        return self._commit(replace(self._state, favorites=favorites))

    def clear_completed_tips(self) -> PreferenceState:
        return self._commit(replace(self._state, completed=frozenset()))

    def compact(self, state: PreferenceState) -> PreferenceState:
        """Drop ids that no longer exist in the catalog."""
        known = {t.id for t in self.catalog}
        return PreferenceState(
            favorites=state.favorites & known,
            completed=state.completed & known,
        )

    def _commit(self, state: PreferenceState) -> PreferenceState:
        self._state = state
        if self.store is not None:
            self._persist()
        return self._state

    def _write_state(self) -> Optional[Tuple[str, StoreResult]]:
        """Write both id sets; returns (key, StoreResult) of the first failure, or None."""
        for key, attr in ((FAVORITES_KEY, "favorites"), (COMPLETED_KEY, "completed")):
            result = self.store.set(key, sorted(getattr(self._state, attr)))
            if not result.success:
                return key, result
        return None

    def _persist(self) -> None:
        """
        Write both id sets. A quota failure compacts the state and rewrites
        both keys once, so the store never keeps ids that memory dropped.
        Any remaining failure is raised as PersistenceError while the
        in-memory state keeps the change.
        """
        failure = self._write_state()

        if failure is not None and failure[1].error.code == StorageError.QUOTA_EXCEEDED:
            logger.warning("Store full while saving %s, retrying with compacted state", failure[0])
            self._state = self.compact(self._state)
            failure = self._write_state()

        if failure is not None:
            key, result = failure
            logger.error("Failed to persist %s: %s", key, result.error.message)
            raise PersistenceError(key, result.error)
