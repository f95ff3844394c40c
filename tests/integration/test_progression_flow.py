"""
Integration tests for a learner's progression over several days

Exercises the service end to end against the in-memory store and a
Redis store backed by a fake client.
"""
import json
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from progression.models.activity import ProblemSolved, StudySessionCompleted
from progression.services.container import ServiceContainer
from progression.services.progression_service import ProgressionService
from progression.store.memory import InMemoryProgressStore
from progression.store.redis_store import RedisProgressStore


@pytest.mark.asyncio
async def test_level_flips_on_the_crossing_event(bare_service, learner_id, accurate_hard_problem):
    """Test 19 XP per problem reaches level 2 exactly on the event crossing 100"""
    outcome = await bare_service.process_activity(learner_id, accurate_hard_problem)
    assert outcome.xp_awarded == 19
    view = await bare_service.get_progression(learner_id)
    assert (view.level.level, view.level.current_experience, view.level.experience_to_next_level) == (1, 19, 100)

    for _ in range(4):
        outcome = await bare_service.process_activity(learner_id, accurate_hard_problem)
        assert outcome.leveled_up is False

    outcome = await bare_service.process_activity(learner_id, accurate_hard_problem)
    assert outcome.leveled_up is True
    assert (outcome.old_level, outcome.new_level) == (1, 2)

    view = await bare_service.get_progression(learner_id)
    assert view.level.total_experience == 114
    assert view.level.current_experience == 14
    assert view.level.experience_to_next_level == 150


@pytest.mark.asyncio
async def test_three_day_streak_through_activities(bare_service, learner_id, fixed_now):
    """Test daily study activity builds a streak and pays the milestone once"""
    for offset in range(3):
        now = fixed_now + timedelta(days=offset)
        await bare_service.refresh_quests(learner_id, now)
        outcome = await bare_service.process_activity(
            learner_id, StudySessionCompleted(timestamp=now, duration=10), now
        )
        # A second activity on the same day does not extend the streak
        await bare_service.process_activity(learner_id, ProblemSolved(timestamp=now), now)

    assert outcome.current_streak == 3
    assert [m.days for m in outcome.milestones_achieved] == [3]

    streak = await bare_service.get_streak(learner_id)
    assert [d.date for d in streak.history] == ["2024-01-15", "2024-01-16", "2024-01-17"]
    assert streak.longest == 3

    # 3 problems x 10 XP + 15 XP milestone; no daily quest finished
    view = await bare_service.get_progression(learner_id)
    assert view.level.total_experience == 45


@pytest.mark.asyncio
async def test_quest_rewards_survive_reload(learner_id, fixed_now):
    """Test completed quests stay completed and paid once across service instances"""
    store = InMemoryProgressStore()
    first = ProgressionService(store, clock=lambda: fixed_now, badge_catalog=[])
    await first.refresh_quests(learner_id)
    await first.process_activity(learner_id, StudySessionCompleted(timestamp=fixed_now, duration=45))

    second = ProgressionService(store, clock=lambda: fixed_now, badge_catalog=[])
    await second.refresh_quests(learner_id)
    outcome = await second.process_activity(learner_id, StudySessionCompleted(timestamp=fixed_now, duration=45))

    assert outcome.quests_completed == []
    view = await second.get_progression(learner_id)
    assert view.level.total_experience == 25
    assert view.economy.coins == 10


@pytest.mark.asyncio
async def test_redis_backed_service(learner_id, fixed_now, accurate_hard_problem):
    """Test the service persists through RedisProgressStore as JSON strings"""
    records = {}

    async def fake_get(key):
        return records.get(key)

    async def fake_set(key, value):
        records[key] = value
        return True

    client = AsyncMock()
    client.get = AsyncMock(side_effect=fake_get)
    client.set = AsyncMock(side_effect=fake_set)

    store = RedisProgressStore(key_prefix="lp:", client=client)
    service = ProgressionService(store, clock=lambda: fixed_now, badge_catalog=[])

    await service.process_activity(learner_id, accurate_hard_problem)

    saved = json.loads(records[f"lp:progression:{learner_id}"])
    assert saved["total_experience"] == 19
    assert saved["activity_counts"] == {"problem_solved": 1}
    assert f"lp:streak:{learner_id}" in records

    view = await service.get_progression(learner_id)
    assert view.level.current_experience == 19


@pytest.mark.asyncio
async def test_container_builds_memory_service(learner_id, accurate_hard_problem):
    container = ServiceContainer(backend="memory")
    await container.start()

    outcome = await container.progression_service.process_activity(learner_id, accurate_hard_problem)

    assert outcome.recognized is True
    assert container.progression_service is container.progression_service
    assert isinstance(container.progress_store, InMemoryProgressStore)
    await container.shutdown()
