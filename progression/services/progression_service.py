"""
ProgressionService - Learner Progression Business Logic

Routes activity events to the quest, streak and badge engines, folds every
grant into the learner's experience and persists the result.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import BaseModel, Field

from progression.config import STREAK_GRACE_DAYS
from progression.exceptions import ValidationError
from progression.gamification.badge_system import BadgeEngine
from progression.gamification.power_ups import PowerUpGovernor
from progression.gamification.quest_engine import QuestEngine, QuestUpdate
from progression.gamification.rewards import RewardIssuer
from progression.gamification.streak_system import StreakTracker, StreakUpdate, new_streak_record
from progression.gamification.xp_system import compute_award, newly_unlocked_benefits, resolve_level
from progression.models.activity import (
    STUDY_ACTIVITY_TYPES,
    ActivityEvent,
    DailyStreakUpdated,
    StudySessionCompleted,
    UnrecognizedActivity,
    parse_activity,
)
from progression.models.badge import Badge
from progression.models.power_up import Inventory, PowerUp, PowerUpResult
from progression.models.progression import Economy, LevelBenefit, LevelInfo, ProgressSnapshot
from progression.models.quest import Quest
from progression.models.reward import Reward
from progression.models.streak import StreakMilestone, StreakRecord
from progression.store.base import ProgressStore
from progression.store.repository import PROGRESSION, LearnerState, ProgressRepository
from progression.utils.datetime_helpers import ensure_aware, local_date, now_utc

logger = logging.getLogger(__name__)


class ProgressionView(BaseModel):
    """Read model returned by get_progression()"""
    learner_id: str
    level: LevelInfo
    economy: Economy
    titles: list[str]


class ActivityOutcome(BaseModel):
    """Everything a mutating call changed, for the presentation layer"""
    learner_id: str
    activity_type: str
    recognized: bool = True
    xp_awarded: int = 0
    old_level: int = 1
    new_level: int = 1
    leveled_up: bool = False
    unlocked_benefits: list[LevelBenefit] = Field(default_factory=list)
    current_streak: int = 0
    quests_progressed: list[str] = Field(default_factory=list)
    quests_completed: list[str] = Field(default_factory=list)
    milestones_achieved: list[StreakMilestone] = Field(default_factory=list)
    badges_earned: list[Badge] = Field(default_factory=list)
    rewards: list[Reward] = Field(default_factory=list)


class ProgressionService:
    """
    Service for learner progression.

    Responsibilities:
    - XP awarding and level resolution
    - Quest generation and progress
    - Daily streak tracking and milestones
    - Badge evaluation
    - Power-up usage
    """

    def __init__(
        self,
        store: ProgressStore,
        clock: Callable[[], datetime] = now_utc,
        grace_days: int = STREAK_GRACE_DAYS,
        badge_catalog: Optional[list[Badge]] = None,
        power_up_catalog: Optional[list[PowerUp]] = None,
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Key-value store holding learner records
            clock: Source of "now" when a call does not pass one
            grace_days: Missed days tolerated before a streak resets
            badge_catalog: Badge definitions (defaults to BADGE_CATALOG)
            power_up_catalog: Power-up definitions (defaults to POWER_UP_CATALOG)
        """
        self.clock = clock
        self.repository = ProgressRepository(store, streak_factory=new_streak_record)
        self.badges = BadgeEngine(self.repository, catalog=badge_catalog, clock=clock)
        self.issuer = RewardIssuer(self.badges)
        self.quests = QuestEngine(self.repository, self.issuer, clock=clock)
        self.streaks = StreakTracker(self.repository, self.issuer, grace_days=grace_days, clock=clock)
        self.power_ups = PowerUpGovernor(self.repository, catalog=power_up_catalog, clock=clock)
        logger.debug("ProgressionService initialized")

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now or self.clock())

    # ============================================
    # Mutating operations
    # ============================================

    async def process_activity(
        self,
        learner_id: str,
        event: Union[ActivityEvent, dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> ActivityOutcome:
        """
        Process one learner activity.

        Steps:
        1. Award XP for the activity
        2. Count a studied day on the streak (study activities only)
        3. Offer the event (and any streak update) to every active quest
        4. Evaluate badges
        5. Persist, then report level changes and applied rewards

        Args:
            learner_id: Learner the event belongs to
            event: Typed event, or a raw {activity_type, payload, timestamp} dict
            now: Current instant (defaults to the injected clock)

        Returns:
            ActivityOutcome; recognized=False and nothing persisted for
            unknown activity types
        """
        now = self._now(now)
        if not isinstance(event, ActivityEvent):
            event = parse_activity(event, timestamp=now)

        if isinstance(event, UnrecognizedActivity):
            logger.debug(f"Ignoring unrecognized activity {event.activity_type} for learner {learner_id}")
            return ActivityOutcome(learner_id=learner_id, activity_type=event.activity_type, recognized=False)

        state = await self.repository.load(learner_id)
        old_total = state.progression.total_experience

        xp = compute_award(event.activity_type, event.payload())
        state.progression.total_experience += xp
        self.badges.count_activity(state, event)

        events = [event]
        streak_update = None
        if event.activity_type in STUDY_ACTIVITY_TYPES:
            streak_update = self.streaks.record_day_in(
                state,
                local_date(event.timestamp),
                True,
                now,
                study_time=event.duration if isinstance(event, StudySessionCompleted) else 0,
                subjects=[event.subject] if getattr(event, "subject", None) else None,
            )
            if streak_update.counted:
                events.append(DailyStreakUpdated(timestamp=event.timestamp, streak_days=state.streak.current))

        self.quests.expire_quests(state, now)
        quest_updates: list[QuestUpdate] = []
        badges: list[Badge] = []
        for routed in events:
            quest_updates += self.quests.handle_activity(state, routed, now)
            badges += self.badges.check_badges(state, routed, now)

        await self.repository.save(state)

        outcome = self._build_outcome(state, event.activity_type, old_total, streak_update, quest_updates, badges)
        logger.info(
            f"Processed {event.activity_type} for learner {learner_id}: "
            f"xp={outcome.xp_awarded}, level={outcome.new_level}, "
            f"quests_completed={len(outcome.quests_completed)}, badges={len(outcome.badges_earned)}"
        )
        return outcome

    async def record_day(
        self,
        learner_id: str,
        day: Optional[date] = None,
        studied_today: bool = True,
        now: Optional[datetime] = None,
        study_time: float = 0,
        subjects: Optional[Iterable[str]] = None,
        quality_score: Optional[float] = None,
    ) -> ActivityOutcome:
        """
        Daily check-in: record whether the learner studied on a day.

        A newly counted day is also offered to quests and badges as a
        daily_streak_updated event.
        """
        now = self._now(now)
        day = day or local_date(now)
        state = await self.repository.load(learner_id)
        old_total = state.progression.total_experience

        streak_update = self.streaks.record_day_in(
            state, day, studied_today, now,
            study_time=study_time, subjects=subjects, quality_score=quality_score,
        )

        quest_updates: list[QuestUpdate] = []
        badges: list[Badge] = []
        if streak_update.counted:
            event = DailyStreakUpdated(timestamp=now, streak_days=state.streak.current)
            self.quests.expire_quests(state, now)
            quest_updates = self.quests.handle_activity(state, event, now)
            badges = self.badges.check_badges(state, event, now)

        await self.repository.save(state)
        return self._build_outcome(state, "daily_check_in", old_total, streak_update, quest_updates, badges)

    async def award_experience(self, learner_id: str, amount: int, reason: str = "") -> ActivityOutcome:
        """
        Add experience directly (e.g. from an external reward)

        Raises:
            ValidationError: amount is negative
        """
        if amount < 0:
            raise ValidationError(
                "Experience amount must not be negative",
                field="amount",
                value=amount,
                learner_id=learner_id,
                operation="award_experience",
            )
        state = await self.repository.load(learner_id)
        old_total = state.progression.total_experience
        state.progression.total_experience += amount
        state.touch(PROGRESSION)
        await self.repository.save(state)

        logger.info(f"Awarded {amount} XP to learner {learner_id}. Reason: {reason or 'unspecified'}")
        return self._build_outcome(state, "experience_award", old_total, None, [], [])

    async def refresh_quests(
        self,
        learner_id: str,
        now: Optional[datetime] = None,
        progress_snapshot: Optional[ProgressSnapshot] = None,
    ) -> list[Quest]:
        """Generate today's and this week's quests (idempotent per day/week)"""
        return await self.quests.refresh_quests(learner_id, self._now(now), progress_snapshot)

    async def apply_quest_activity(
        self,
        learner_id: str,
        quest_id: str,
        event: Union[ActivityEvent, dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> QuestUpdate:
        """Apply an activity to a single quest"""
        now = self._now(now)
        if not isinstance(event, ActivityEvent):
            event = parse_activity(event, timestamp=now)
        return await self.quests.apply_activity(learner_id, quest_id, event, now)

    async def can_use_power_up(self, learner_id: str, power_up_id: str, now: Optional[datetime] = None) -> bool:
        return await self.power_ups.can_use(learner_id, power_up_id, self._now(now))

    async def use_power_up(self, learner_id: str, power_up_id: str, now: Optional[datetime] = None) -> PowerUpResult:
        return await self.power_ups.use(learner_id, power_up_id, self._now(now))

    async def start_session(self, learner_id: str) -> None:
        await self.power_ups.start_session(learner_id)

    # ============================================
    # Read accessors
    # ============================================

    async def get_progression(self, learner_id: str) -> ProgressionView:
        state = await self.repository.load(learner_id)
        progression = state.progression
        return ProgressionView(
            learner_id=learner_id,
            level=resolve_level(progression.total_experience),
            economy=progression.economy,
            titles=list(progression.titles),
        )

    async def get_active_quests(self, learner_id: str, now: Optional[datetime] = None) -> list[Quest]:
        return await self.quests.get_active_quests(learner_id, self._now(now))

    async def get_streak(self, learner_id: str) -> StreakRecord:
        return await self.streaks.get_streak(learner_id)

    async def get_badges(self, learner_id: str) -> list[Badge]:
        return await self.badges.get_badges(learner_id)

    async def get_inventory(self, learner_id: str) -> Inventory:
        return await self.power_ups.get_inventory(learner_id)

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _build_outcome(
        state: LearnerState,
        activity_type: str,
        old_total: int,
        streak_update: Optional[StreakUpdate],
        quest_updates: list[QuestUpdate],
        badges: list[Badge],
    ) -> ActivityOutcome:
        new_total = state.progression.total_experience
        old_level = resolve_level(old_total).level
        new_level = resolve_level(new_total).level

        rewards: list[Reward] = []
        if streak_update:
            rewards += streak_update.rewards
        for update in quest_updates:
            rewards += update.rewards

        return ActivityOutcome(
            learner_id=state.learner_id,
            activity_type=activity_type,
            xp_awarded=new_total - old_total,
            old_level=old_level,
            new_level=new_level,
            leveled_up=new_level > old_level,
            unlocked_benefits=newly_unlocked_benefits(old_level, new_level),
            current_streak=state.streak.current,
            quests_progressed=[u.quest_id for u in quest_updates],
            quests_completed=[u.quest_id for u in quest_updates if u.completed],
            milestones_achieved=streak_update.milestones_achieved if streak_update else [],
            badges_earned=badges,
            rewards=rewards,
        )
