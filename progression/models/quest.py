"""Quest models"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from progression.models.reward import Rarity, Reward, RewardType
from progression.utils.datetime_helpers import ensure_aware


class QuestCategory(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"
    STORY = "story"


class QuestDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    LEGENDARY = "legendary"


class ObjectiveType(str, Enum):
    STUDY_TIME = "study_time"
    PROBLEMS_SOLVED = "problems_solved"
    STREAK = "streak"
    ACCURACY = "accuracy"
    TOPIC_COMPLETION = "topic_completion"
    CUSTOM = "custom"


class ObjectiveCriteria(BaseModel):
    """Filters an event must satisfy to count (all present filters must hold)"""
    subjects: Optional[list[str]] = None
    topics: Optional[list[str]] = None
    difficulty: Optional[float] = None
    min_accuracy: Optional[float] = Field(default=None, ge=0, le=1)
    # custom objectives count events of this type
    activity_type: Optional[str] = None


class QuestObjective(BaseModel):
    """One step of a quest; current never exceeds target"""
    id: str
    description: str = ""
    type: ObjectiveType
    target: float = Field(gt=0)
    current: float = Field(default=0, ge=0)
    completed: bool = False
    criteria: Optional[ObjectiveCriteria] = None


class QuestRequirements(BaseModel):
    min_level: Optional[int] = Field(default=None, ge=1)
    time_limit: Optional[datetime] = None
    prerequisite_quests: list[str] = Field(default_factory=list)


class QuestProgress(BaseModel):
    started: bool = False
    started_at: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    expired: bool = False
    current_objective_index: int = Field(default=0, ge=0)


class Quest(BaseModel):
    """A quest with strictly sequential objectives"""
    id: str
    title: str
    description: str = ""
    category: QuestCategory
    difficulty: QuestDifficulty = QuestDifficulty.EASY
    objectives: list[QuestObjective] = Field(min_length=1)
    rewards: list[Reward] = Field(default_factory=list)
    requirements: QuestRequirements = Field(default_factory=QuestRequirements)
    progress: QuestProgress = Field(default_factory=QuestProgress)
    estimated_minutes: int = 0
    rarity: Rarity = Rarity.COMMON
    tags: list[str] = Field(default_factory=list)

    @property
    def active_objective(self) -> Optional[QuestObjective]:
        """Objective currently accepting progress, if any"""
        if self.is_terminal:
            return None
        index = self.progress.current_objective_index
        if index >= len(self.objectives):
            return None
        return self.objectives[index]

    @property
    def is_terminal(self) -> bool:
        return self.progress.completed or self.progress.expired

    def is_past_time_limit(self, now: datetime) -> bool:
        time_limit = self.requirements.time_limit
        return time_limit is not None and ensure_aware(now) >= ensure_aware(time_limit)

    @property
    def xp_reward(self) -> int:
        return sum(r.amount or 0 for r in self.rewards if r.type == RewardType.XP)
