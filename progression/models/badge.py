"""Badge models for gamification"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from progression.models.reward import Rarity


class BadgeCategory(str, Enum):
    """Badge categories"""
    ACADEMIC = "academic"
    SOCIAL = "social"
    SPECIAL = "special"
    SEASONAL = "seasonal"


class AchievementCondition(BaseModel):
    """Count of an activity type reached (optionally at a minimum accuracy)"""
    type: Literal["achievement"] = "achievement"
    activity_type: str
    count: int = Field(default=1, ge=1)
    min_accuracy: Optional[float] = Field(default=None, ge=0, le=1)


class TimeBasedCondition(BaseModel):
    """Streak length, total study minutes or time-of-day of the current event"""
    type: Literal["time_based"] = "time_based"
    streak_days: Optional[int] = Field(default=None, ge=1)
    study_minutes: Optional[float] = Field(default=None, gt=0)
    before_hour: Optional[int] = Field(default=None, ge=0, le=24)
    from_hour: Optional[int] = Field(default=None, ge=0, le=23)


class SocialCondition(BaseModel):
    """Number of times the learner helped others"""
    type: Literal["social"] = "social"
    help_count: int = Field(default=1, ge=1)


UnlockCondition = Annotated[
    Union[AchievementCondition, TimeBasedCondition, SocialCondition],
    Field(discriminator="type"),
]


class Badge(BaseModel):
    """Badge definition, or an owned badge once earned_at is stamped"""
    id: str
    name: str
    description: str
    icon: str = ""
    rarity: Rarity = Rarity.COMMON
    category: BadgeCategory = BadgeCategory.ACADEMIC
    condition: UnlockCondition
    # Only obtainable through a badge reward, never by evaluation
    grant_only: bool = False
    xp_bonus: int = Field(default=0, ge=0)
    earned_at: Optional[datetime] = None
