"""
Power-Up System

Gates consumable items by per-session, per-day and cooldown limits.

A refused use is a normal outcome (applied=False with a reason), never an
error. A successful use consumes one item, updates the usage ledger and
returns an immutable SessionEffect for the caller to merge into its own
session state.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from progression.models.power_up import (
    Inventory,
    PowerUp,
    PowerUpEffect,
    PowerUpResult,
    PowerUpType,
    PowerUpUsage,
    SessionEffect,
    UsageRules,
)
from progression.models.reward import Rarity
from progression.store.repository import INVENTORY, LearnerState, ProgressRepository
from progression.utils.datetime_helpers import day_key, ensure_aware, now_utc

logger = logging.getLogger(__name__)


# ============================================
# Power-Up Catalog
# ============================================

POWER_UP_CATALOG: list[PowerUp] = [
    PowerUp(
        id="hint_crystal",
        name="Hint Crystal",
        description="Reveals one hint for the current problem",
        type=PowerUpType.HINT_REVEAL,
        effect=PowerUpEffect(magnitude=1),
        rarity=Rarity.RARE,
        cost=30,
        usage_rules=UsageRules(max_per_session=3, max_per_day=5, cooldown_minutes=5),
    ),
    PowerUp(
        id="focus_potion",
        name="Focus Potion",
        description="Boosts learning gains for 30 minutes",
        type=PowerUpType.LEARNING_BOOST,
        effect=PowerUpEffect(magnitude=1.5, duration_minutes=30),
        rarity=Rarity.UNCOMMON,
        cost=50,
        usage_rules=UsageRules(max_per_session=1, max_per_day=2, cooldown_minutes=30),
    ),
    PowerUp(
        id="time_turner",
        name="Time Turner",
        description="Adds 5 minutes to a timed exercise",
        type=PowerUpType.TIME_EXTENSION,
        effect=PowerUpEffect(magnitude=5),
        rarity=Rarity.UNCOMMON,
        cost=40,
        usage_rules=UsageRules(max_per_session=2, max_per_day=3, cooldown_minutes=10),
    ),
    PowerUp(
        id="xp_booster",
        name="XP Booster",
        description="Doubles experience for an hour",
        type=PowerUpType.XP_MULTIPLIER,
        effect=PowerUpEffect(magnitude=2.0, duration_minutes=60),
        rarity=Rarity.EPIC,
        cost=120,
        usage_rules=UsageRules(max_per_session=1, max_per_day=1, cooldown_minutes=60),
    ),
]

# Session field each effect type writes, and whether it adds or replaces
EFFECT_FIELDS: dict[PowerUpType, tuple[str, str]] = {
    PowerUpType.LEARNING_BOOST: ("learning_multiplier", "set"),
    PowerUpType.TIME_EXTENSION: ("time_extension_minutes", "set"),
    PowerUpType.HINT_REVEAL: ("hints_available", "add"),
    PowerUpType.XP_MULTIPLIER: ("xp_multiplier", "set"),
}


def build_effect(power_up: PowerUp) -> SessionEffect:
    """Effect a power-up applies to the caller's session"""
    session_field, mode = EFFECT_FIELDS[power_up.type]
    return SessionEffect(
        power_up_id=power_up.id,
        field=session_field,
        value=power_up.effect.magnitude,
        mode=mode,
    )


class PowerUpGovernor:
    """Enforces usage rules and consumes power-up items"""

    def __init__(
        self,
        repository: ProgressRepository,
        catalog: Optional[list[PowerUp]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.repository = repository
        self.catalog = {p.id: p for p in (catalog if catalog is not None else POWER_UP_CATALOG)}
        self.clock = clock

    def check_usage(self, state: LearnerState, power_up: PowerUp, now: datetime) -> Optional[str]:
        """
        Check the usage ledger against the power-up's rules

        Returns:
            None when the power-up may be used, otherwise the refusal reason
        """
        rules = power_up.usage_rules
        usage = state.inventory.usage.get(power_up.id) or PowerUpUsage()

        if usage.session_count >= rules.max_per_session:
            return "session_limit"
        if usage.daily_count.get(day_key(now), 0) >= rules.max_per_day:
            return "daily_limit"
        if usage.last_used is not None:
            elapsed = ensure_aware(now) - ensure_aware(usage.last_used)
            if elapsed < timedelta(minutes=rules.cooldown_minutes):
                return "cooldown"
        return None

    def use_in(self, state: LearnerState, power_up_id: str, now: datetime) -> PowerUpResult:
        """Use a power-up against a loaded state"""
        power_up = self.catalog.get(power_up_id)
        if power_up is None:
            return PowerUpResult(applied=False, reason="unknown_power_up")

        inventory = state.inventory
        remaining = inventory.count(power_up_id)
        if remaining <= 0:
            return PowerUpResult(applied=False, reason="not_in_inventory")

        reason = self.check_usage(state, power_up, now)
        if reason is not None:
            logger.debug(f"Learner {state.learner_id} cannot use {power_up_id}: {reason}")
            return PowerUpResult(applied=False, reason=reason, remaining=remaining)

        inventory.items[power_up_id] = remaining - 1
        usage = inventory.ledger(power_up_id)
        usage.session_count += 1
        today = day_key(now)
        # Only today's count is ever checked; older day keys are dropped
        usage.daily_count = {today: usage.daily_count.get(today, 0) + 1}
        usage.last_used = now
        state.touch(INVENTORY)

        logger.info(f"Learner {state.learner_id} used {power_up_id} ({remaining - 1} left)")

        return PowerUpResult(
            applied=True,
            effect=build_effect(power_up),
            remaining=remaining - 1,
        )

    async def can_use(self, learner_id: str, power_up_id: str, now: Optional[datetime] = None) -> bool:
        """Whether the usage rules currently allow the power-up (unknown ids: False)"""
        power_up = self.catalog.get(power_up_id)
        if power_up is None:
            return False
        now = now or self.clock()
        state = await self.repository.load(learner_id)
        return self.check_usage(state, power_up, now) is None

    async def use(self, learner_id: str, power_up_id: str, now: Optional[datetime] = None) -> PowerUpResult:
        """
        Use a power-up and persist the ledger

        Refusals leave the state untouched and are not persisted.
        """
        now = now or self.clock()
        state = await self.repository.load(learner_id)
        result = self.use_in(state, power_up_id, now)
        if result.applied:
            await self.repository.save(state)
        return result

    async def start_session(self, learner_id: str) -> None:
        """Reset every per-session counter (called by the owner of session boundaries)"""
        state = await self.repository.load(learner_id)
        for usage in state.inventory.usage.values():
            usage.session_count = 0
        state.touch(INVENTORY)
        await self.repository.save(state)
        logger.debug(f"Reset power-up session counters for learner {learner_id}")

    async def get_inventory(self, learner_id: str) -> Inventory:
        state = await self.repository.load(learner_id)
        return state.inventory
