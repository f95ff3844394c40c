"""Unit tests for Badge System (progression/gamification/badge_system.py)"""
import pytest
from datetime import datetime, timezone

from progression.gamification.badge_system import BADGE_CATALOG, BadgeEngine
from progression.models.activity import HelpFriend, ProblemSolved, StudySessionCompleted, UnrecognizedActivity
from progression.models.badge import AchievementCondition, Badge
from progression.store.repository import BADGES, PROGRESSION


def test_catalog_ids_unique():
    ids = [b.id for b in BADGE_CATALOG]
    assert len(ids) == len(set(ids)) == 11


@pytest.mark.asyncio
async def test_first_problem_awards_first_steps(badge_engine, learner_state, fixed_now):
    """Test first_steps is earned with its XP bonus"""
    learner_state.progression.activity_counts["problem_solved"] = 1

    earned = badge_engine.check_badges(learner_state, ProblemSolved(timestamp=fixed_now), fixed_now)

    assert [b.id for b in earned] == ["first_steps"]
    assert earned[0].earned_at == fixed_now
    assert learner_state.progression.total_experience == 10
    assert {BADGES, PROGRESSION} <= learner_state.dirty


@pytest.mark.asyncio
async def test_badges_not_awarded_twice(badge_engine, learner_state, fixed_now):
    """Test set semantics: an owned badge is never re-awarded"""
    learner_state.progression.activity_counts["problem_solved"] = 1
    event = ProblemSolved(timestamp=fixed_now)

    badge_engine.check_badges(learner_state, event, fixed_now)
    again = badge_engine.check_badges(learner_state, event, fixed_now)

    assert again == []
    assert [b.id for b in learner_state.badges] == ["first_steps"]
    assert learner_state.progression.total_experience == 10


@pytest.mark.asyncio
async def test_time_of_day_badges(badge_engine, learner_state):
    """Test early_bird and night_owl follow the event hour"""
    early = datetime(2024, 1, 15, 6, 30, tzinfo=timezone.utc)
    late = datetime(2024, 1, 15, 22, 15, tzinfo=timezone.utc)

    earned = badge_engine.check_badges(learner_state, StudySessionCompleted(timestamp=early, duration=10), early)
    assert [b.id for b in earned] == ["early_bird"]

    earned = badge_engine.check_badges(learner_state, StudySessionCompleted(timestamp=late, duration=10), late)
    assert [b.id for b in earned] == ["night_owl"]


@pytest.mark.asyncio
async def test_time_of_day_ignores_non_study_events(badge_engine, learner_state):
    early = datetime(2024, 1, 15, 5, 0, tzinfo=timezone.utc)

    earned = badge_engine.check_badges(learner_state, HelpFriend(timestamp=early), early)

    assert "early_bird" not in [b.id for b in earned]


@pytest.mark.asyncio
async def test_social_and_streak_badges(badge_engine, learner_state, fixed_now):
    learner_state.progression.activity_counts["help_friend"] = 10
    learner_state.streak.current = 7
    learner_state.streak.longest = 7

    earned = badge_engine.check_badges(learner_state, HelpFriend(timestamp=fixed_now), fixed_now)

    assert {b.id for b in earned} == {"helping_hand", "mentor", "week_warrior"}


@pytest.mark.asyncio
async def test_grant_only_badge(badge_engine, learner_state, fixed_now):
    """Test streak_legend is never evaluated, only granted"""
    learner_state.streak.current = 30
    learner_state.streak.longest = 30

    earned = badge_engine.check_badges(learner_state, ProblemSolved(timestamp=fixed_now), fixed_now)
    assert "streak_legend" not in [b.id for b in earned]

    assert badge_engine.grant_badge(learner_state, "streak_legend", fixed_now).id == "streak_legend"
    assert badge_engine.grant_badge(learner_state, "streak_legend", fixed_now) is None
    assert badge_engine.grant_badge(learner_state, "no_such_badge", fixed_now) is None


@pytest.mark.asyncio
async def test_unrecognized_activity_ignored(badge_engine, learner_state, fixed_now):
    learner_state.progression.activity_counts["problem_solved"] = 1
    event = UnrecognizedActivity(activity_type="watched_video", timestamp=fixed_now)

    assert badge_engine.check_badges(learner_state, event, fixed_now) == []


@pytest.mark.asyncio
async def test_min_accuracy_condition(repository, learner_state, fixed_now):
    """Test an accuracy-gated badge needs an accurate current event"""
    sharp = Badge(
        id="sharpshooter",
        name="Sharpshooter",
        description="Solve a problem with 95% accuracy",
        condition=AchievementCondition(activity_type="problem_solved", count=1, min_accuracy=0.95),
    )
    engine = BadgeEngine(repository, catalog=[sharp])
    learner_state.progression.activity_counts["problem_solved"] = 3

    assert engine.check_badges(learner_state, ProblemSolved(timestamp=fixed_now, accuracy=0.8), fixed_now) == []
    earned = engine.check_badges(learner_state, ProblemSolved(timestamp=fixed_now, accuracy=0.97), fixed_now)
    assert [b.id for b in earned] == ["sharpshooter"]


@pytest.mark.asyncio
async def test_evaluate_persists(badge_engine, repository, learner_id, fixed_now):
    earned = await badge_engine.evaluate(learner_id, HelpFriend(timestamp=fixed_now))

    assert [b.id for b in earned] == ["helping_hand"]
    badges = await badge_engine.get_badges(learner_id)
    assert [b.id for b in badges] == ["helping_hand"]
    state = await repository.load(learner_id)
    assert state.progression.activity_counts == {"help_friend": 1}


@pytest.mark.asyncio
async def test_evaluate_counts_the_event(badge_engine, repository, learner_id, fixed_now):
    """Test evaluate counts each event before checking conditions"""
    earned = await badge_engine.evaluate(learner_id, ProblemSolved(timestamp=fixed_now))
    assert [b.id for b in earned] == ["first_steps"]

    await badge_engine.evaluate(learner_id, StudySessionCompleted(timestamp=fixed_now, duration=45))
    await badge_engine.evaluate(learner_id, UnrecognizedActivity(activity_type="dance_battle", timestamp=fixed_now))

    progression = (await repository.load(learner_id)).progression
    assert progression.activity_counts == {"problem_solved": 1, "study_session_completed": 1}
    assert progression.study_minutes == 45
