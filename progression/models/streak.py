"""Learning streak models"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from progression.models.reward import Reward


class StreakDay(BaseModel):
    """History entry, at most one per calendar date"""
    date: str  # YYYY-MM-DD
    completed: bool
    study_time: float = Field(default=0, ge=0)
    subjects: list[str] = Field(default_factory=list)
    quality_score: float = Field(default=0, ge=0, le=1)


class StreakMilestone(BaseModel):
    """One-shot streak threshold"""
    days: int = Field(gt=0)
    name: str
    description: str = ""
    rewards: list[Reward] = Field(default_factory=list)
    achieved: bool = False
    achieved_at: Optional[datetime] = None


class StreakRecord(BaseModel):
    """Persisted under streak:{learner_id}"""
    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)
    missed_in_row: int = Field(default=0, ge=0)
    history: list[StreakDay] = Field(default_factory=list)
    milestones: list[StreakMilestone] = Field(default_factory=list)

    @model_validator(mode="after")
    def _longest_covers_current(self) -> "StreakRecord":
        if self.longest < self.current:
            raise ValueError("longest streak cannot be shorter than the current streak")
        return self

    def day(self, date_key: str) -> Optional[StreakDay]:
        return next((d for d in self.history if d.date == date_key), None)
