"""
Daily Learning Streak Tracking

Keeps one history entry per calendar day and derives:
- current streak (consecutive studied days)
- longest streak (never decreases, always >= current)
- one-shot milestones (3, 7, 14, 30 days by default)

Features:
- Upsert per day: recording the same studied day twice counts once
- Strict reset on a missed day unless STREAK_GRACE_DAYS allows misses
- Milestones stay achieved after the streak breaks and never re-grant
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from progression.config import STREAK_GRACE_DAYS, STREAK_MILESTONE_DAYS
from progression.exceptions import ValidationError
from progression.gamification.rewards import RewardIssuer, milestone_grant_key
from progression.gamification.xp_system import compute_award
from progression.models.activity import ActivityType
from progression.models.reward import Rarity, Reward
from progression.models.streak import StreakDay, StreakMilestone, StreakRecord
from progression.store.repository import STREAK, LearnerState, ProgressRepository
from progression.utils.datetime_helpers import local_date, now_utc

logger = logging.getLogger(__name__)

# Rewards granted on top of the milestone XP
MILESTONE_EXTRAS: dict[int, list[Reward]] = {
    7: [Reward.coins(20)],
    14: [Reward.item("hint_crystal", "Hint Crystal", description="Reveals a hint", rarity=Rarity.RARE)],
    30: [
        Reward.title("Unstoppable", description="Thirty days without a break", rarity=Rarity.LEGENDARY),
        Reward.badge("streak_legend", "Streak Legend", rarity=Rarity.LEGENDARY),
    ],
}


def default_milestones(days: Iterable[int] = STREAK_MILESTONE_DAYS) -> list[StreakMilestone]:
    """
    Build the milestone set for a new streak record

    Every milestone grants 5 XP per streak day; some add coins, items,
    a title or a badge.
    """
    milestones = []
    for threshold in sorted(days):
        xp = compute_award(ActivityType.STREAK_MILESTONE.value, {"streak_days": threshold})
        rewards = [Reward.xp(xp, name=f"{threshold}-day streak")] + list(MILESTONE_EXTRAS.get(threshold, []))
        milestones.append(
            StreakMilestone(
                days=threshold,
                name=f"{threshold}-day streak",
                description=f"Studied {threshold} days in a row",
                rewards=rewards,
            )
        )
    return milestones


def new_streak_record() -> StreakRecord:
    return StreakRecord(milestones=default_milestones())


@dataclass
class StreakUpdate:
    """Outcome of recording a day"""
    record: StreakRecord
    counted: bool = False  # a new studied day was added to the streak
    milestones_achieved: list[StreakMilestone] = field(default_factory=list)
    rewards: list[Reward] = field(default_factory=list)


class StreakTracker:
    """Daily activity ledger for one learner at a time"""

    def __init__(
        self,
        repository: ProgressRepository,
        issuer: RewardIssuer,
        grace_days: int = STREAK_GRACE_DAYS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.repository = repository
        self.issuer = issuer
        self.grace_days = grace_days
        self.clock = clock

    def record_day_in(
        self,
        state: LearnerState,
        day: date,
        studied_today: bool,
        now: datetime,
        study_time: float = 0,
        subjects: Optional[Iterable[str]] = None,
        quality_score: Optional[float] = None,
    ) -> StreakUpdate:
        """
        Upsert a day in the history and update the counts

        Logic:
        - Studied and the day was not counted yet: current += 1, longest follows
        - Not studied: current resets to 0 (after grace_days consecutive misses)
        - Then every unachieved milestone with current >= days is achieved once

        Raises:
            ValidationError: study_time is negative or quality_score is outside 0..1
        """
        if study_time < 0:
            raise ValidationError(
                "study_time must not be negative",
                field="study_time",
                value=study_time,
                learner_id=state.learner_id,
                operation="record_day",
            )
        if quality_score is not None and not 0 <= quality_score <= 1:
            raise ValidationError(
                "quality_score must be between 0 and 1",
                field="quality_score",
                value=quality_score,
                learner_id=state.learner_id,
                operation="record_day",
            )

        streak = state.streak
        key = day.isoformat()
        entry = streak.day(key)
        already_counted = entry is not None and entry.completed

        if entry is None:
            entry = StreakDay(date=key, completed=studied_today)
            streak.history.append(entry)
        else:
            entry.completed = studied_today
        entry.study_time += study_time
        for subject in subjects or []:
            if subject not in entry.subjects:
                entry.subjects.append(subject)
        if quality_score is not None:
            entry.quality_score = quality_score

        update = StreakUpdate(record=streak)
        old_current = streak.current

        if studied_today:
            if not already_counted:
                streak.current += 1
                streak.missed_in_row = 0
                update.counted = True
            if streak.current > streak.longest:
                streak.longest = streak.current
        else:
            streak.missed_in_row += 1
            if streak.missed_in_row > self.grace_days:
                streak.current = 0
            if old_current and not streak.current:
                logger.info(f"Learner {state.learner_id} streak broken. Was {old_current} days")

        for milestone in streak.milestones:
            if not milestone.achieved and streak.current >= milestone.days:
                milestone.achieved = True
                milestone.achieved_at = now
                update.milestones_achieved.append(milestone)
                update.rewards += self.issuer.issue(
                    state, milestone.rewards, milestone_grant_key(milestone.days), now
                )
                logger.info(f"Learner {state.learner_id} reached the {milestone.days}-day milestone")

        state.touch(STREAK)

        logger.info(
            f"Updated streak for learner {state.learner_id}: "
            f"{old_current} → {streak.current} days (longest {streak.longest})"
        )
        return update

    async def record_day(
        self,
        learner_id: str,
        day: Optional[date] = None,
        studied_today: bool = True,
        now: Optional[datetime] = None,
        study_time: float = 0,
        subjects: Optional[Iterable[str]] = None,
        quality_score: Optional[float] = None,
    ) -> StreakUpdate:
        """Record a day for a learner and persist"""
        now = now or self.clock()
        day = day or local_date(now)
        state = await self.repository.load(learner_id)
        update = self.record_day_in(
            state, day, studied_today, now,
            study_time=study_time, subjects=subjects, quality_score=quality_score,
        )
        await self.repository.save(state)
        return update

    async def get_streak(self, learner_id: str) -> StreakRecord:
        state = await self.repository.load(learner_id)
        return state.streak
