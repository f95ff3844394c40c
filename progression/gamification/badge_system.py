"""
Badge System

Awards badges across three condition kinds:
- Achievement (activity counts, accuracy of the current event)
- Time-based (streak length, total study minutes, time of day)
- Social (helping other learners)

Features:
- Set semantics: a learner owns at most one copy of each badge
- Already-owned badges are skipped before their condition is evaluated
- Badge XP bonuses folded into the learner's experience
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from progression.models.activity import (
    STUDY_ACTIVITY_TYPES,
    ActivityEvent,
    ActivityType,
    StudySessionCompleted,
    UnrecognizedActivity,
)
from progression.models.badge import (
    AchievementCondition,
    Badge,
    BadgeCategory,
    SocialCondition,
    TimeBasedCondition,
)
from progression.models.reward import Rarity
from progression.store.repository import BADGES, PROGRESSION, LearnerState, ProgressRepository
from progression.utils.datetime_helpers import local_hour, now_utc

logger = logging.getLogger(__name__)


# ============================================
# Badge Catalog
# ============================================

BADGE_CATALOG: list[Badge] = [
    Badge(
        id="first_steps",
        name="First Steps",
        description="Solve your first problem",
        icon="👣",
        condition=AchievementCondition(activity_type=ActivityType.PROBLEM_SOLVED.value, count=1),
        xp_bonus=10,
    ),
    Badge(
        id="problem_centurion",
        name="Problem Centurion",
        description="Solve 100 problems",
        icon="💯",
        rarity=Rarity.RARE,
        condition=AchievementCondition(activity_type=ActivityType.PROBLEM_SOLVED.value, count=100),
        xp_bonus=100,
    ),
    Badge(
        id="perfectionist",
        name="Perfectionist",
        description="Finish a quiz without a single mistake",
        icon="🎯",
        rarity=Rarity.UNCOMMON,
        condition=AchievementCondition(activity_type=ActivityType.QUIZ_PERFECT.value, count=1),
        xp_bonus=20,
    ),
    Badge(
        id="topic_explorer",
        name="Topic Explorer",
        description="Complete 5 topics",
        icon="🧭",
        rarity=Rarity.UNCOMMON,
        condition=AchievementCondition(activity_type=ActivityType.TOPIC_COMPLETED.value, count=5),
        xp_bonus=30,
    ),
    Badge(
        id="early_bird",
        name="Early Bird",
        description="Study before 7 in the morning",
        icon="🌅",
        category=BadgeCategory.SPECIAL,
        condition=TimeBasedCondition(before_hour=7),
    ),
    Badge(
        id="night_owl",
        name="Night Owl",
        description="Study after 10 in the evening",
        icon="🦉",
        category=BadgeCategory.SPECIAL,
        condition=TimeBasedCondition(from_hour=22),
    ),
    Badge(
        id="week_warrior",
        name="Week Warrior",
        description="Keep a 7-day learning streak",
        icon="🔥",
        rarity=Rarity.UNCOMMON,
        condition=TimeBasedCondition(streak_days=7),
        xp_bonus=25,
    ),
    Badge(
        id="marathoner",
        name="Marathoner",
        description="Study for 10 hours in total",
        icon="🏃",
        rarity=Rarity.RARE,
        condition=TimeBasedCondition(study_minutes=600),
        xp_bonus=50,
    ),
    Badge(
        id="helping_hand",
        name="Helping Hand",
        description="Help a friend for the first time",
        icon="🤝",
        category=BadgeCategory.SOCIAL,
        condition=SocialCondition(help_count=1),
    ),
    Badge(
        id="mentor",
        name="Mentor",
        description="Help friends 10 times",
        icon="🧑‍🏫",
        rarity=Rarity.EPIC,
        category=BadgeCategory.SOCIAL,
        condition=SocialCondition(help_count=10),
        xp_bonus=75,
    ),
    Badge(
        id="streak_legend",
        name="Streak Legend",
        description="Reach a 30-day learning streak",
        icon="👑",
        rarity=Rarity.LEGENDARY,
        category=BadgeCategory.SPECIAL,
        condition=TimeBasedCondition(streak_days=30),
        grant_only=True,
    ),
]


class BadgeEngine:
    """Evaluates and grants badges for one learner at a time"""

    def __init__(
        self,
        repository: ProgressRepository,
        catalog: Optional[list[Badge]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.repository = repository
        self.catalog = {b.id: b for b in (catalog if catalog is not None else BADGE_CATALOG)}
        self.clock = clock

    def check_badges(self, state: LearnerState, event: ActivityEvent, now: datetime) -> list[Badge]:
        """
        Award every catalog badge whose condition newly holds

        Returns:
            Newly earned badges (with earned_at stamped)
        """
        if isinstance(event, UnrecognizedActivity):
            return []

        newly_earned = []
        for badge in self.catalog.values():
            if badge.grant_only or state.has_badge(badge.id):
                continue
            if self._condition_holds(badge, state, event):
                newly_earned.append(self._add_badge(state, badge, now))

        return newly_earned

    def grant_badge(self, state: LearnerState, badge_id: str, now: datetime) -> Optional[Badge]:
        """
        Grant a badge directly (badge rewards)

        Returns:
            The earned badge, or None when the id is unknown or already owned
        """
        badge = self.catalog.get(badge_id)
        if badge is None:
            logger.warning(f"Badge reward references unknown badge {badge_id}")
            return None
        if state.has_badge(badge_id):
            return None
        return self._add_badge(state, badge, now)

    @staticmethod
    def count_activity(state: LearnerState, event: ActivityEvent) -> None:
        """Add the event to the counters achievement and study-time badges read"""
        progression = state.progression
        counts = progression.activity_counts
        counts[event.activity_type] = counts.get(event.activity_type, 0) + 1
        if isinstance(event, StudySessionCompleted):
            progression.study_minutes += event.duration
        state.touch(PROGRESSION)

    async def evaluate(
        self,
        learner_id: str,
        event: ActivityEvent,
        now: Optional[datetime] = None,
    ) -> list[Badge]:
        """
        Count an event against a learner's saved state, then award and
        persist the badges it earns

        Unrecognized activity types are neither counted nor evaluated.
        """
        now = now or self.clock()
        if isinstance(event, UnrecognizedActivity):
            return []
        state = await self.repository.load(learner_id)
        self.count_activity(state, event)
        earned = self.check_badges(state, event, now)
        await self.repository.save(state)
        return earned

    async def get_badges(self, learner_id: str) -> list[Badge]:
        """Owned badges, most recent first"""
        state = await self.repository.load(learner_id)
        return sorted(state.badges, key=lambda b: b.earned_at, reverse=True)

    def _add_badge(self, state: LearnerState, badge: Badge, now: datetime) -> Badge:
        earned = badge.model_copy(update={"earned_at": now})
        state.badges.append(earned)
        state.touch(BADGES)

        if badge.xp_bonus:
            state.progression.total_experience += badge.xp_bonus
            state.touch(PROGRESSION)

        logger.info(
            f"Learner {state.learner_id} earned badge: {badge.id} "
            f"({badge.name}) +{badge.xp_bonus} XP"
        )
        return earned

    # ============================================
    # Condition Predicates
    # ============================================

    def _condition_holds(self, badge: Badge, state: LearnerState, event: ActivityEvent) -> bool:
        condition = badge.condition
        if isinstance(condition, AchievementCondition):
            return _check_achievement(condition, state, event)
        if isinstance(condition, TimeBasedCondition):
            return _check_time_based(condition, state, event)
        if isinstance(condition, SocialCondition):
            return _check_social(condition, state)
        return False


def _check_achievement(condition: AchievementCondition, state: LearnerState, event: ActivityEvent) -> bool:
    """Activity count reached, optionally with an accurate current event"""
    if state.progression.activity_counts.get(condition.activity_type, 0) < condition.count:
        return False

    if condition.min_accuracy is not None:
        if event.activity_type != condition.activity_type:
            return False
        accuracy = event.payload().get("accuracy")
        return accuracy is not None and accuracy >= condition.min_accuracy

    return True


def _check_time_based(condition: TimeBasedCondition, state: LearnerState, event: ActivityEvent) -> bool:
    """All present time conditions must hold"""
    if condition.streak_days is not None and state.streak.current < condition.streak_days:
        return False
    if condition.study_minutes is not None and state.progression.study_minutes < condition.study_minutes:
        return False

    if condition.before_hour is not None or condition.from_hour is not None:
        if event.activity_type not in STUDY_ACTIVITY_TYPES:
            return False
        hour = local_hour(event.timestamp)
        if condition.before_hour is not None and hour >= condition.before_hour:
            return False
        if condition.from_hour is not None and hour < condition.from_hour:
            return False

    return True


def _check_social(condition: SocialCondition, state: LearnerState) -> bool:
    helped = state.progression.activity_counts.get(ActivityType.HELP_FRIEND.value, 0)
    return helped >= condition.help_count
