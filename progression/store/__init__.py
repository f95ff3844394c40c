"""Persistence for learner progression state"""
from progression.store.base import ProgressStore
from progression.store.memory import InMemoryProgressStore
from progression.store.redis_store import RedisProgressStore
from progression.store.repository import LearnerState, ProgressRepository, record_key

__all__ = [
    "ProgressStore",
    "InMemoryProgressStore",
    "RedisProgressStore",
    "LearnerState",
    "ProgressRepository",
    "record_key",
]
