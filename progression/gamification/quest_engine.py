"""
Quest System

Generates daily and weekly quests from templates and advances their
objectives from activity events.

Quest lifecycle:
- not started -> started (first progress) -> completed (terminal)
- expired (terminal) when the time limit passes before completion
- objectives are strictly sequential; only the active one accumulates progress

Quest ids embed the calendar date (daily) or ISO week (weekly), so
regenerating on the same day/week never duplicates a quest.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from progression.config import DAILY_STUDY_GOAL_MINUTES, QUEST_RETENTION_DAYS
from progression.gamification.rewards import RewardIssuer, quest_grant_key
from progression.gamification.xp_system import resolve_level
from progression.models.activity import (
    ActivityEvent,
    DailyStreakUpdated,
    ProblemSolved,
    QuizPerfect,
    StudySessionCompleted,
    TopicCompleted,
    UnrecognizedActivity,
)
from progression.models.progression import ProgressSnapshot
from progression.models.quest import (
    ObjectiveCriteria,
    ObjectiveType,
    Quest,
    QuestCategory,
    QuestDifficulty,
    QuestObjective,
    QuestRequirements,
)
from progression.models.reward import Rarity, Reward
from progression.store.repository import PROGRESSION, QUESTS, LearnerState, ProgressRepository
from progression.utils.datetime_helpers import day_key, ensure_aware, iso_week_key, next_local_midnight, now_utc

logger = logging.getLogger(__name__)

HARD_QUEST_MIN_LEVEL = 5


# ============================================
# Quest Templates
# ============================================

def generate_daily(
    learner_level: int,
    progress_snapshot: Optional[ProgressSnapshot],
    now: datetime,
) -> list[Quest]:
    """
    Build the day's quests

    Always a study-time quest and an accuracy quest; a hard-problem quest
    from level 5. Ids embed the calendar date.

    Args:
        learner_level: Learner's resolved level
        progress_snapshot: Learner figures (daily goal minutes); optional
        now: Current instant (decides the calendar day)

    Returns:
        Fresh quests for today
    """
    today = day_key(now)
    expires_at = next_local_midnight(now)
    goal_minutes = DAILY_STUDY_GOAL_MINUTES
    if progress_snapshot and progress_snapshot.daily_goal_minutes:
        goal_minutes = progress_snapshot.daily_goal_minutes

    quests = [
        Quest(
            id=f"daily_study_{today}",
            title="Today's study goal",
            description=f"Study for at least {goal_minutes} minutes",
            category=QuestCategory.DAILY,
            difficulty=QuestDifficulty.EASY,
            objectives=[
                QuestObjective(
                    id=f"study_time_{goal_minutes}",
                    description=f"Study for {goal_minutes} minutes",
                    type=ObjectiveType.STUDY_TIME,
                    target=goal_minutes,
                )
            ],
            rewards=[
                Reward.xp(25, description="Experience for today's study"),
                Reward.coins(10, description="Coins to spend on items"),
            ],
            requirements=QuestRequirements(time_limit=expires_at),
            estimated_minutes=goal_minutes,
            rarity=Rarity.COMMON,
            tags=["daily", "study_time"],
        ),
        Quest(
            id=f"daily_accuracy_{today}",
            title="Accuracy master",
            description="Solve 10 problems with at least 80% accuracy",
            category=QuestCategory.DAILY,
            difficulty=QuestDifficulty.MEDIUM,
            objectives=[
                QuestObjective(
                    id="accuracy_problems",
                    description="Solve 10 problems at 80% accuracy or better",
                    type=ObjectiveType.PROBLEMS_SOLVED,
                    target=10,
                    criteria=ObjectiveCriteria(min_accuracy=0.8),
                )
            ],
            rewards=[Reward.xp(40, name="Accuracy Bonus", rarity=Rarity.UNCOMMON)],
            requirements=QuestRequirements(time_limit=expires_at),
            estimated_minutes=45,
            rarity=Rarity.UNCOMMON,
            tags=["daily", "accuracy", "problems"],
        ),
    ]

    if learner_level >= HARD_QUEST_MIN_LEVEL:
        quests.append(
            Quest(
                id=f"daily_challenge_{today}",
                title="Challenger",
                description="Take on difficult problems",
                category=QuestCategory.DAILY,
                difficulty=QuestDifficulty.HARD,
                objectives=[
                    QuestObjective(
                        id="hard_problems",
                        description="Solve 5 problems of difficulty 7 or higher",
                        type=ObjectiveType.PROBLEMS_SOLVED,
                        target=5,
                        criteria=ObjectiveCriteria(difficulty=7),
                    )
                ],
                rewards=[
                    Reward.xp(60, name="Challenge Bonus", rarity=Rarity.RARE),
                    Reward.item("hint_crystal", "Hint Crystal", description="Reveals a hint", rarity=Rarity.RARE),
                ],
                requirements=QuestRequirements(min_level=HARD_QUEST_MIN_LEVEL, time_limit=expires_at),
                estimated_minutes=60,
                rarity=Rarity.RARE,
                tags=["daily", "challenge", "difficult"],
            )
        )

    return quests


def generate_weekly(learner_level: int, now: datetime) -> list[Quest]:
    """Build the week's quests; ids embed the ISO week"""
    week = iso_week_key(now)
    return [
        Quest(
            id=f"weekly_streak_{week}",
            title="A week of consistency",
            description="Study 7 days in a row",
            category=QuestCategory.WEEKLY,
            difficulty=QuestDifficulty.MEDIUM,
            objectives=[
                QuestObjective(
                    id="weekly_streak",
                    description="Keep a 7-day streak",
                    type=ObjectiveType.STREAK,
                    target=7,
                )
            ],
            rewards=[
                Reward.xp(200, name="Consistency Master", rarity=Rarity.EPIC),
                Reward.title("The Consistent", description="Proof of consistency", rarity=Rarity.EPIC),
            ],
            requirements=QuestRequirements(time_limit=now + timedelta(days=7)),
            estimated_minutes=420,
            rarity=Rarity.EPIC,
            tags=["weekly", "streak", "consistency"],
        )
    ]


# ============================================
# Objective Matching
# ============================================

def _event_accuracy(event: ActivityEvent) -> Optional[float]:
    accuracy = event.payload().get("accuracy")
    if accuracy is None and isinstance(event, QuizPerfect):
        return 1.0
    return accuracy


def objective_matches(objective: QuestObjective, event: ActivityEvent) -> bool:
    """Check the objective's criteria against an event (all present filters must hold)"""
    criteria = objective.criteria
    if criteria is None:
        return True

    payload = event.payload()

    if criteria.min_accuracy is not None:
        accuracy = _event_accuracy(event)
        if accuracy is None or accuracy < criteria.min_accuracy:
            return False
    if criteria.difficulty is not None:
        difficulty = payload.get("difficulty")
        if difficulty is None or difficulty < criteria.difficulty:
            return False
    if criteria.subjects is not None and payload.get("subject") not in criteria.subjects:
        return False
    if criteria.topics is not None and payload.get("topic") not in criteria.topics:
        return False

    return True


def objective_progress(objective: QuestObjective, event: ActivityEvent) -> Optional[float]:
    """
    New `current` value an event would give the objective

    Returns:
        The updated value, or None when the event does not apply
    """
    if isinstance(event, UnrecognizedActivity):
        return None

    kind = objective.type
    if kind == ObjectiveType.STUDY_TIME and isinstance(event, StudySessionCompleted):
        value = objective.current + event.duration
    elif kind == ObjectiveType.PROBLEMS_SOLVED and isinstance(event, ProblemSolved):
        value = objective.current + 1
    elif kind == ObjectiveType.STREAK and isinstance(event, DailyStreakUpdated):
        # Set to the streak length; current never moves backwards
        value = max(objective.current, event.streak_days)
    elif kind == ObjectiveType.ACCURACY and isinstance(event, (ProblemSolved, QuizPerfect)):
        accuracy = _event_accuracy(event)
        if accuracy is None:
            return None
        value = max(objective.current, accuracy * 100)
    elif kind == ObjectiveType.TOPIC_COMPLETION and isinstance(event, TopicCompleted):
        value = objective.current + 1
    elif (
        kind == ObjectiveType.CUSTOM
        and objective.criteria is not None
        and objective.criteria.activity_type == event.activity_type
    ):
        value = objective.current + 1
    else:
        return None

    if not objective_matches(objective, event):
        return None

    return min(value, objective.target)


@dataclass
class QuestUpdate:
    """Outcome of offering an event to one quest"""
    quest_id: str
    progressed: bool = False
    completed: bool = False
    rewards: list[Reward] = field(default_factory=list)


class QuestEngine:
    """Tracks a learner's quests against incoming activity"""

    def __init__(
        self,
        repository: ProgressRepository,
        issuer: RewardIssuer,
        clock: Callable[[], datetime] = now_utc,
        retention_days: int = QUEST_RETENTION_DAYS,
    ):
        self.repository = repository
        self.issuer = issuer
        self.clock = clock
        self.retention_days = retention_days

    # ============================================
    # In-state operations
    # ============================================

    def add_quests(self, state: LearnerState, quests: list[Quest]) -> list[Quest]:
        """Add quests whose id the learner does not have yet"""
        existing = {q.id for q in state.quests}
        added = [q for q in quests if q.id not in existing]
        if added:
            state.quests.extend(added)
            state.touch(QUESTS)
            logger.info(f"Added quests for learner {state.learner_id}: {[q.id for q in added]}")
        return added

    def expire_quests(self, state: LearnerState, now: datetime) -> list[str]:
        """Mark incomplete quests past their time limit as expired"""
        expired = []
        for quest in state.quests:
            if not quest.is_terminal and quest.is_past_time_limit(now):
                quest.progress.expired = True
                expired.append(quest.id)
        if expired:
            state.touch(QUESTS)
            logger.info(f"Expired quests for learner {state.learner_id}: {expired}")
        return expired

    def prune_quests(self, state: LearnerState, now: datetime) -> list[str]:
        """
        Drop finished daily and weekly quests older than the retention window

        Their quest grant keys go with them; a generated quest id never
        recurs once its day or week is over.
        """
        cutoff = ensure_aware(now) - timedelta(days=self.retention_days)
        pruned = []
        for quest in state.quests:
            if quest.category not in (QuestCategory.DAILY, QuestCategory.WEEKLY) or not quest.is_terminal:
                continue
            finished_at = quest.progress.completed_at or quest.requirements.time_limit
            if finished_at is not None and ensure_aware(finished_at) < cutoff:
                pruned.append(quest.id)

        if pruned:
            dropped = set(pruned)
            state.quests = [q for q in state.quests if q.id not in dropped]
            grant_keys = {quest_grant_key(quest_id) for quest_id in pruned}
            grants = state.progression.issued_grants
            state.progression.issued_grants = [k for k in grants if k not in grant_keys]
            state.touch(QUESTS, PROGRESSION)
            logger.info(f"Pruned {len(pruned)} finished quests for learner {state.learner_id}")
        return pruned

    def progress_quest(
        self,
        state: LearnerState,
        quest: Quest,
        event: ActivityEvent,
        now: datetime,
    ) -> QuestUpdate:
        """
        Offer an event to a single quest

        No progress when the quest is terminal, past its time limit, has
        unmet requirements, or the event does not fit the active objective.
        """
        update = QuestUpdate(quest_id=quest.id)

        if quest.is_terminal:
            return update
        if quest.is_past_time_limit(now):
            quest.progress.expired = True
            state.touch(QUESTS)
            return update
        if not self._requirements_met(state, quest):
            return update

        objective = quest.active_objective
        if objective is None:
            return update

        new_value = objective_progress(objective, event)
        if new_value is None:
            return update

        objective.current = new_value
        update.progressed = True
        if not quest.progress.started:
            quest.progress.started = True
            quest.progress.started_at = now

        if objective.current >= objective.target:
            objective.completed = True
            if quest.progress.current_objective_index + 1 < len(quest.objectives):
                quest.progress.current_objective_index += 1
            else:
                quest.progress.completed = True
                quest.progress.completed_at = now
                update.completed = True
                update.rewards = self.issuer.issue(state, quest.rewards, quest_grant_key(quest.id), now)
                logger.info(f"Learner {state.learner_id} completed quest {quest.id}")

        state.touch(QUESTS)
        return update

    def handle_activity(self, state: LearnerState, event: ActivityEvent, now: datetime) -> list[QuestUpdate]:
        """Offer an event to every quest; returns updates of quests that progressed"""
        updates = []
        for quest in state.quests:
            update = self.progress_quest(state, quest, event, now)
            if update.progressed:
                updates.append(update)
        return updates

    def _requirements_met(self, state: LearnerState, quest: Quest) -> bool:
        requirements = quest.requirements
        if requirements.min_level is not None:
            if resolve_level(state.progression.total_experience).level < requirements.min_level:
                return False
        for prerequisite_id in requirements.prerequisite_quests:
            prerequisite = state.quest(prerequisite_id)
            if prerequisite is None or not prerequisite.progress.completed:
                return False
        return True

    # ============================================
    # Persisted operations
    # ============================================

    async def apply_activity(
        self,
        learner_id: str,
        quest_id: str,
        event: ActivityEvent,
        now: Optional[datetime] = None,
    ) -> QuestUpdate:
        """
        Apply an activity to one quest and persist

        Unknown quest ids give progressed=False.
        """
        now = now or self.clock()
        state = await self.repository.load(learner_id)
        quest = state.quest(quest_id)
        if quest is None:
            logger.debug(f"Quest {quest_id} not found for learner {learner_id}")
            return QuestUpdate(quest_id=quest_id)

        update = self.progress_quest(state, quest, event, now)
        await self.repository.save(state)
        return update

    async def refresh_quests(
        self,
        learner_id: str,
        now: Optional[datetime] = None,
        progress_snapshot: Optional[ProgressSnapshot] = None,
    ) -> list[Quest]:
        """
        Expire stale quests, prune old finished ones and add today's and
        this week's quests

        Safe to call repeatedly; only quests with new ids are added.
        """
        now = now or self.clock()
        state = await self.repository.load(learner_id)
        level = resolve_level(state.progression.total_experience).level

        self.expire_quests(state, now)
        self.prune_quests(state, now)
        added = self.add_quests(state, generate_daily(level, progress_snapshot, now))
        added += self.add_quests(state, generate_weekly(level, now))

        await self.repository.save(state)
        return added

    async def get_active_quests(self, learner_id: str, now: Optional[datetime] = None) -> list[Quest]:
        """Quests still accepting progress (pure read)"""
        now = now or self.clock()
        state = await self.repository.load(learner_id)
        return [q for q in state.quests if not q.is_terminal and not q.is_past_time_limit(now)]
