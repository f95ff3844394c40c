"""
XP and Leveling System

Maps activities to experience and cumulative experience to levels.

Leveling Curve:
- Level L requires floor(100 * 1.5^(L-1)) XP to clear
  (100, 150, 225, 337, 506, ...)
- The curve is the only difficulty knob; nothing else scales levels

XP Award Rules:
- Problem solved: 10 XP
- Topic completed: 50 XP (x1.2 on first try)
- Daily goal achieved: 25 XP
- Streak milestone: 5 XP per streak day
- Perfect quiz: 30 XP
- Helping a friend: 15 XP
- Quest completed: the quest's XP (100 when unspecified)
- Accuracy > 0.9: x1.5, difficulty > 7: x1.3 (bonuses multiply)
"""

import logging
import math
from typing import Any, Mapping

from progression.models.activity import ActivityType
from progression.models.progression import LevelBenefit, LevelInfo

logger = logging.getLogger(__name__)

BASE_LEVEL_XP = 100
LEVEL_GROWTH = 1.5

BASE_XP: dict[str, int] = {
    ActivityType.PROBLEM_SOLVED.value: 10,
    ActivityType.TOPIC_COMPLETED.value: 50,
    ActivityType.DAILY_GOAL_ACHIEVED.value: 25,
    ActivityType.QUIZ_PERFECT.value: 30,
    ActivityType.HELP_FRIEND.value: 15,
}

STREAK_DAY_XP = 5
DEFAULT_QUEST_XP = 100

HIGH_ACCURACY_THRESHOLD = 0.9
HIGH_ACCURACY_MULTIPLIER = 1.5
HIGH_DIFFICULTY_THRESHOLD = 7
HIGH_DIFFICULTY_MULTIPLIER = 1.3
FIRST_TRY_MULTIPLIER = 1.2

LEVEL_BENEFITS: list[LevelBenefit] = [
    LevelBenefit(
        id="avatar_customization",
        type="feature_unlock",
        name="Avatar customization",
        description="Change how your avatar looks",
        icon="👤",
        min_level=5,
    ),
    LevelBenefit(
        id="friend_system",
        type="feature_unlock",
        name="Friends",
        description="Connect with other learners",
        icon="👥",
        min_level=10,
    ),
    LevelBenefit(
        id="power_ups",
        type="feature_unlock",
        name="Power-ups",
        description="Use items that help while studying",
        icon="⚡",
        min_level=15,
    ),
]


def required_experience(level: int) -> int:
    """XP needed to clear `level` (strictly increasing in level)"""
    return math.floor(BASE_LEVEL_XP * LEVEL_GROWTH ** (level - 1))


def get_level_benefits(level: int) -> list[LevelBenefit]:
    """Benefits unlocked at or below `level`"""
    return [b for b in LEVEL_BENEFITS if level >= b.min_level]


def resolve_level(total_experience: int) -> LevelInfo:
    """
    Calculate level from total XP

    Callers reject negative totals before getting here.

    Returns:
        LevelInfo with level, XP into the current level and the
        requirement of the current level
    """
    level = 1
    remaining = total_experience

    while remaining >= required_experience(level):
        remaining -= required_experience(level)
        level += 1

    return LevelInfo(
        level=level,
        current_experience=remaining,
        experience_to_next_level=required_experience(level),
        total_experience=total_experience,
        unlocked_benefits=get_level_benefits(level),
    )


def newly_unlocked_benefits(old_level: int, new_level: int) -> list[LevelBenefit]:
    """Benefits crossed when moving from old_level to new_level"""
    return [b for b in LEVEL_BENEFITS if old_level < b.min_level <= new_level]


def compute_award(activity_type: str, context: Mapping[str, Any]) -> int:
    """
    Calculate XP amount for an activity

    Args:
        activity_type: Activity kind (see ActivityType)
        context: Event fields (accuracy, difficulty, streak_days, quest_xp, first_try)

    Returns:
        XP to award; 0 for activity types that earn nothing
    """
    if activity_type == ActivityType.STREAK_MILESTONE.value:
        base = (context.get("streak_days") or 0) * STREAK_DAY_XP
    elif activity_type == ActivityType.QUEST_COMPLETED.value:
        quest_xp = context.get("quest_xp")
        base = DEFAULT_QUEST_XP if quest_xp is None else quest_xp
    else:
        base = BASE_XP.get(activity_type, 0)

    if not base:
        return 0

    multiplier = 1.0
    accuracy = context.get("accuracy")
    if accuracy is not None and accuracy > HIGH_ACCURACY_THRESHOLD:
        multiplier *= HIGH_ACCURACY_MULTIPLIER
    difficulty = context.get("difficulty")
    if difficulty is not None and difficulty > HIGH_DIFFICULTY_THRESHOLD:
        multiplier *= HIGH_DIFFICULTY_MULTIPLIER
    if activity_type == ActivityType.TOPIC_COMPLETED.value and context.get("first_try"):
        multiplier *= FIRST_TRY_MULTIPLIER

    return max(0, math.floor(base * multiplier))
