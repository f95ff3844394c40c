"""
Progression engines for learners

This package implements the motivation mechanics:
- XP awards and the exponential level curve
- Daily and weekly quests with sequential objectives
- Daily learning streaks and milestones
- Consumable power-ups with usage limits
- Badges and reward issuance
"""

from progression.gamification.xp_system import compute_award, required_experience, resolve_level
from progression.gamification.quest_engine import QuestEngine, generate_daily, generate_weekly
from progression.gamification.streak_system import StreakTracker, new_streak_record
from progression.gamification.power_ups import PowerUpGovernor
from progression.gamification.badge_system import BadgeEngine
from progression.gamification.rewards import RewardIssuer

__all__ = [
    "compute_award",
    "required_experience",
    "resolve_level",
    "QuestEngine",
    "generate_daily",
    "generate_weekly",
    "StreakTracker",
    "new_streak_record",
    "PowerUpGovernor",
    "BadgeEngine",
    "RewardIssuer",
]
