"""
Typed access to the five per-learner records

Layout:
- progression:{learner_id} -> LearnerProgression
- quests:{learner_id}      -> list[Quest]
- streak:{learner_id}      -> StreakRecord
- badges:{learner_id}      -> list[Badge] (one per badge id)
- inventory:{learner_id}   -> Inventory (item counts + power-up ledger)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import pydantic

from progression.exceptions import CorruptRecordError
from progression.models.badge import Badge
from progression.models.power_up import Inventory
from progression.models.progression import LearnerProgression
from progression.models.quest import Quest
from progression.models.streak import StreakRecord
from progression.store.base import ProgressStore

logger = logging.getLogger(__name__)

PROGRESSION = "progression"
QUESTS = "quests"
STREAK = "streak"
BADGES = "badges"
INVENTORY = "inventory"

CATEGORIES = (PROGRESSION, QUESTS, STREAK, BADGES, INVENTORY)


def record_key(category: str, learner_id: str) -> str:
    return f"{category}:{learner_id}"


@dataclass
class LearnerState:
    """
    All records of one learner, loaded together

    Engines mutate the models in place and call touch() for every category
    they changed; the repository only writes touched categories.
    """
    learner_id: str
    progression: LearnerProgression
    quests: list[Quest]
    streak: StreakRecord
    badges: list[Badge]
    inventory: Inventory
    dirty: set[str] = field(default_factory=set)

    def touch(self, *categories: str) -> None:
        self.dirty.update(categories)

    def quest(self, quest_id: str) -> Optional[Quest]:
        return next((q for q in self.quests if q.id == quest_id), None)

    def has_badge(self, badge_id: str) -> bool:
        return any(b.id == badge_id for b in self.badges)


class ProgressRepository:
    """Loads and saves LearnerState through a ProgressStore"""

    def __init__(self, store: ProgressStore, streak_factory: Callable[[], StreakRecord] = StreakRecord):
        """
        Args:
            store: Key-value backend
            streak_factory: Builds the record for learners without a saved streak
        """
        self.store = store
        self.streak_factory = streak_factory

    async def load(self, learner_id: str) -> LearnerState:
        """Read every record of a learner, using defaults for missing ones"""
        raw_progression = await self.store.get(record_key(PROGRESSION, learner_id))
        raw_quests = await self.store.get(record_key(QUESTS, learner_id))
        raw_streak = await self.store.get(record_key(STREAK, learner_id))
        raw_badges = await self.store.get(record_key(BADGES, learner_id))
        raw_inventory = await self.store.get(record_key(INVENTORY, learner_id))

        progression = self._decode(
            PROGRESSION, learner_id, raw_progression,
            lambda raw: LearnerProgression.model_validate(raw),
            lambda: LearnerProgression(learner_id=learner_id),
        )
        quests = self._decode(
            QUESTS, learner_id, raw_quests,
            lambda raw: [Quest.model_validate(q) for q in raw],
            list,
        )
        streak = self._decode(
            STREAK, learner_id, raw_streak,
            lambda raw: StreakRecord.model_validate(raw),
            self.streak_factory,
        )
        badges = self._decode(
            BADGES, learner_id, raw_badges,
            lambda raw: [Badge.model_validate(b) for b in raw],
            list,
        )
        inventory = self._decode(
            INVENTORY, learner_id, raw_inventory,
            lambda raw: Inventory.model_validate(raw),
            Inventory,
        )

        return LearnerState(
            learner_id=learner_id,
            progression=progression,
            quests=quests,
            streak=streak,
            badges=badges,
            inventory=inventory,
        )

    async def save(self, state: LearnerState) -> None:
        """
        Write every touched category

        Storage failures propagate; the state keeps its dirty marks so the
        caller can retry.
        """
        for category in CATEGORIES:
            if category not in state.dirty:
                continue
            await self.store.put(record_key(category, state.learner_id), self._encode(state, category))
            state.dirty.discard(category)
            logger.debug(f"Persisted {category} for learner {state.learner_id}")

    @staticmethod
    def _encode(state: LearnerState, category: str) -> Any:
        if category == PROGRESSION:
            return state.progression.model_dump(mode="json")
        if category == QUESTS:
            return [q.model_dump(mode="json") for q in state.quests]
        if category == STREAK:
            return state.streak.model_dump(mode="json")
        if category == BADGES:
            return [b.model_dump(mode="json") for b in state.badges]
        return state.inventory.model_dump(mode="json")

    @staticmethod
    def _decode(category: str, learner_id: str, raw: Any, parse: Callable, default: Callable):
        if raw is None:
            return default()
        try:
            return parse(raw)
        except (pydantic.ValidationError, TypeError) as e:
            raise CorruptRecordError(
                f"Stored {category} record does not match its schema",
                key=record_key(category, learner_id),
                learner_id=learner_id,
                operation="load",
                cause=e
            )
