"""Learner progression root aggregate and derived level view"""
from typing import Optional

from pydantic import BaseModel, Field


class Economy(BaseModel):
    """Currency balance"""
    coins: int = Field(default=0, ge=0)
    total_coins_earned: int = Field(default=0, ge=0)
    total_coins_spent: int = Field(default=0, ge=0)


class LearnerProgression(BaseModel):
    """
    Persisted under progression:{learner_id}

    Level fields are never stored; resolve them from total_experience.
    """
    learner_id: str
    total_experience: int = Field(default=0, ge=0)
    economy: Economy = Field(default_factory=Economy)
    titles: list[str] = Field(default_factory=list)
    activity_counts: dict[str, int] = Field(default_factory=dict)
    study_minutes: float = Field(default=0, ge=0)
    # Grant keys (quest:<id>, milestone:<days>) already issued
    issued_grants: list[str] = Field(default_factory=list)


class LevelBenefit(BaseModel):
    """Feature unlocked by reaching a level"""
    id: str
    type: str
    name: str
    description: str
    icon: str = ""
    min_level: int


class LevelInfo(BaseModel):
    """Level breakdown resolved from total experience"""
    level: int
    current_experience: int
    experience_to_next_level: int
    total_experience: int
    unlocked_benefits: list[LevelBenefit] = Field(default_factory=list)


class ProgressSnapshot(BaseModel):
    """Learner figures that tune daily quest generation"""
    daily_goal_minutes: Optional[int] = Field(default=None, gt=0)
    current_streak: int = 0
