"""Global test fixtures and utilities for learner-progression tests"""
import pytest
from unittest.mock import AsyncMock
from datetime import datetime, timezone

from progression.models.activity import ProblemSolved
from progression.services.progression_service import ProgressionService
from progression.store.memory import InMemoryProgressStore
from progression.store.repository import ProgressRepository
from progression.gamification.badge_system import BadgeEngine
from progression.gamification.power_ups import PowerUpGovernor
from progression.gamification.quest_engine import QuestEngine
from progression.gamification.rewards import RewardIssuer
from progression.gamification.streak_system import StreakTracker, new_streak_record


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def fixed_now():
    """Monday 2024-01-15 12:00 UTC"""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def learner_id():
    """Standard test learner ID"""
    return "learner-123"


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Empty in-process progress store"""
    return InMemoryProgressStore()


@pytest.fixture
def repository(memory_store):
    return ProgressRepository(memory_store, streak_factory=new_streak_record)


@pytest.fixture
def mock_redis_client():
    """Mock async redis client"""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def badge_engine(repository, fixed_now):
    return BadgeEngine(repository, clock=lambda: fixed_now)


@pytest.fixture
def issuer(badge_engine):
    return RewardIssuer(badge_engine)


@pytest.fixture
def quest_engine(repository, issuer, fixed_now):
    return QuestEngine(repository, issuer, clock=lambda: fixed_now)


@pytest.fixture
def streak_tracker(repository, issuer, fixed_now):
    return StreakTracker(repository, issuer, grace_days=0, clock=lambda: fixed_now)


@pytest.fixture
def power_up_governor(repository, fixed_now):
    return PowerUpGovernor(repository, clock=lambda: fixed_now)


@pytest.fixture
async def learner_state(repository, learner_id):
    """Fresh state for a learner with no saved records"""
    return await repository.load(learner_id)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def service(memory_store, fixed_now):
    """ProgressionService with the default catalogs and a fixed clock"""
    return ProgressionService(memory_store, clock=lambda: fixed_now, grace_days=0)


@pytest.fixture
def bare_service(memory_store, fixed_now):
    """ProgressionService without badges, so XP totals only come from activities"""
    return ProgressionService(memory_store, clock=lambda: fixed_now, grace_days=0, badge_catalog=[])


@pytest.fixture
def accurate_hard_problem(fixed_now):
    """Problem worth 19 XP (10 x 1.5 accuracy x 1.3 difficulty, floored)"""
    return ProblemSolved(timestamp=fixed_now, accuracy=0.95, difficulty=8, subject="math")
