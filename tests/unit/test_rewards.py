"""Unit tests for reward issuance (progression/gamification/rewards.py)"""
import pytest

from progression.gamification.rewards import milestone_grant_key, quest_grant_key
from progression.models.reward import Reward, RewardType
from progression.store.repository import INVENTORY, PROGRESSION


def test_grant_keys():
    assert quest_grant_key("daily_study_2024-01-15") == "quest:daily_study_2024-01-15"
    assert milestone_grant_key(7) == "milestone:7"


def test_reward_requires_payload():
    """xp/coins need an amount, item/badge need an item_id"""
    with pytest.raises(ValueError):
        Reward(type=RewardType.XP, name="XP")
    with pytest.raises(ValueError):
        Reward(type=RewardType.ITEM, name="Mystery")


@pytest.mark.asyncio
async def test_issue_applies_each_reward_type(issuer, learner_state, fixed_now):
    rewards = [
        Reward.xp(60),
        Reward.coins(25),
        Reward.item("hint_crystal", "Hint Crystal"),
        Reward.title("The Consistent"),
        Reward.badge("helping_hand", "Helping Hand"),
    ]

    applied = issuer.issue(learner_state, rewards, "quest:q1", fixed_now)

    progression = learner_state.progression
    assert applied == rewards
    assert progression.total_experience == 60
    assert progression.economy.coins == 25
    assert progression.economy.total_coins_earned == 25
    assert learner_state.inventory.count("hint_crystal") == 1
    assert progression.titles == ["The Consistent"]
    assert learner_state.has_badge("helping_hand")
    assert {PROGRESSION, INVENTORY} <= learner_state.dirty


@pytest.mark.asyncio
async def test_issue_is_idempotent_per_grant_key(issuer, learner_state, fixed_now):
    """Test the same grant key never applies twice"""
    rewards = [Reward.xp(40), Reward.coins(10)]

    issuer.issue(learner_state, rewards, "quest:q1", fixed_now)
    second = issuer.issue(learner_state, rewards, "quest:q1", fixed_now)

    assert second == []
    assert learner_state.progression.total_experience == 40
    assert learner_state.progression.economy.coins == 10
    assert learner_state.progression.issued_grants == ["quest:q1"]


@pytest.mark.asyncio
async def test_titles_and_badges_are_sets(issuer, learner_state, fixed_now):
    """Test a title or badge already held is not applied again under a new key"""
    rewards = [Reward.title("Unstoppable"), Reward.badge("streak_legend", "Streak Legend")]

    issuer.issue(learner_state, rewards, "milestone:30", fixed_now)
    applied = issuer.issue(learner_state, rewards, "quest:legend", fixed_now)

    assert applied == []
    assert learner_state.progression.titles == ["Unstoppable"]
    assert [b.id for b in learner_state.badges] == ["streak_legend"]
