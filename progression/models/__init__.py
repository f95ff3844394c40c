"""Typed entities of the learner progression aggregate"""
from progression.models.activity import (
    ActivityEvent,
    ActivityType,
    UnrecognizedActivity,
    parse_activity,
)
from progression.models.badge import Badge
from progression.models.power_up import Inventory, PowerUp, PowerUpResult, SessionEffect
from progression.models.progression import LearnerProgression, LevelInfo
from progression.models.quest import Quest, QuestObjective
from progression.models.reward import Reward, RewardType
from progression.models.streak import StreakRecord

__all__ = [
    "ActivityEvent",
    "ActivityType",
    "UnrecognizedActivity",
    "parse_activity",
    "Badge",
    "Inventory",
    "PowerUp",
    "PowerUpResult",
    "SessionEffect",
    "LearnerProgression",
    "LevelInfo",
    "Quest",
    "QuestObjective",
    "Reward",
    "RewardType",
    "StreakRecord",
]
