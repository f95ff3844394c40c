"""
Reward issuance

Applies a completed quest's or milestone's rewards to the learner state:
- xp: experience (through the quest-completion award rule)
- coins: currency balance
- item: inventory count
- title: unlocked titles (set semantics)
- badge: badge engine grant path (set semantics)

Each grant is keyed (quest:<id>, milestone:<days>) and applied at most once.
"""

import logging
from datetime import datetime

from progression.gamification.badge_system import BadgeEngine
from progression.gamification.xp_system import compute_award
from progression.models.activity import ActivityType
from progression.models.reward import Reward, RewardType
from progression.store.repository import INVENTORY, PROGRESSION, LearnerState

logger = logging.getLogger(__name__)


def quest_grant_key(quest_id: str) -> str:
    return f"quest:{quest_id}"


def milestone_grant_key(days: int) -> str:
    return f"milestone:{days}"


class RewardIssuer:
    """Applies reward lists to a loaded LearnerState"""

    def __init__(self, badge_engine: BadgeEngine):
        self.badge_engine = badge_engine

    def issue(
        self,
        state: LearnerState,
        rewards: list[Reward],
        grant_key: str,
        now: datetime,
    ) -> list[Reward]:
        """
        Apply rewards once per grant key

        Args:
            state: Learner state to mutate
            rewards: Rewards to apply
            grant_key: Identifies the grant (quest:<id>, milestone:<days>)
            now: Timestamp for badges earned through rewards

        Returns:
            Rewards actually applied (empty if the grant was already issued)
        """
        progression = state.progression
        if grant_key in progression.issued_grants:
            logger.info(f"Grant {grant_key} already issued to learner {state.learner_id}, skipping")
            return []

        applied = []
        for reward in rewards:
            if self._apply(state, reward, now):
                applied.append(reward)

        progression.issued_grants.append(grant_key)
        state.touch(PROGRESSION)

        logger.info(
            f"Issued {grant_key} to learner {state.learner_id}: "
            f"{', '.join(f'{r.type.value}:{r.amount or r.item_id or r.name}' for r in applied) or 'nothing'}"
        )
        return applied

    def _apply(self, state: LearnerState, reward: Reward, now: datetime) -> bool:
        progression = state.progression

        if reward.type == RewardType.XP:
            progression.total_experience += compute_award(
                ActivityType.QUEST_COMPLETED.value, {"quest_xp": reward.amount}
            )
            return True

        if reward.type == RewardType.COINS:
            progression.economy.coins += reward.amount
            progression.economy.total_coins_earned += reward.amount
            return True

        if reward.type == RewardType.ITEM:
            items = state.inventory.items
            items[reward.item_id] = items.get(reward.item_id, 0) + 1
            state.touch(INVENTORY)
            return True

        if reward.type == RewardType.TITLE:
            if reward.name in progression.titles:
                return False
            progression.titles.append(reward.name)
            return True

        if reward.type == RewardType.BADGE:
            return self.badge_engine.grant_badge(state, reward.item_id, now) is not None

        return False
