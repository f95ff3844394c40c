"""Power-up models: definitions, usage ledger, inventory and effects"""
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from progression.models.reward import Rarity


class PowerUpType(str, Enum):
    LEARNING_BOOST = "learning_boost"
    TIME_EXTENSION = "time_extension"
    HINT_REVEAL = "hint_reveal"
    XP_MULTIPLIER = "xp_multiplier"


class UsageRules(BaseModel):
    max_per_session: int = Field(ge=0)
    max_per_day: int = Field(ge=0)
    cooldown_minutes: float = Field(default=0, ge=0)


class PowerUpEffect(BaseModel):
    magnitude: float
    duration_minutes: float = 0  # 0 = instant
    scope: Literal["session", "topic", "subject", "global"] = "session"


class PowerUp(BaseModel):
    """Catalog definition"""
    id: str
    name: str
    description: str = ""
    type: PowerUpType
    effect: PowerUpEffect
    rarity: Rarity = Rarity.COMMON
    cost: int = Field(default=0, ge=0)
    usage_rules: UsageRules


class PowerUpUsage(BaseModel):
    """Per learner, per power-up ledger"""
    session_count: int = Field(default=0, ge=0)
    daily_count: dict[str, int] = Field(default_factory=dict)  # day key -> uses
    last_used: Optional[datetime] = None


class Inventory(BaseModel):
    """Persisted under inventory:{learner_id}"""
    items: dict[str, int] = Field(default_factory=dict)
    usage: dict[str, PowerUpUsage] = Field(default_factory=dict)

    def count(self, item_id: str) -> int:
        return self.items.get(item_id, 0)

    def ledger(self, power_up_id: str) -> PowerUpUsage:
        return self.usage.setdefault(power_up_id, PowerUpUsage())


class SessionEffect(BaseModel):
    """
    Immutable effect returned by a power-up use

    The caller merges it into its own session state with apply_to().
    """
    model_config = ConfigDict(frozen=True)

    power_up_id: str
    field: str
    value: float
    mode: Literal["set", "add"] = "set"

    def apply_to(self, session: dict[str, Any]) -> dict[str, Any]:
        """Return a new session dict with this effect merged in"""
        merged = dict(session)
        if self.mode == "add":
            merged[self.field] = merged.get(self.field, 0) + self.value
        else:
            merged[self.field] = self.value
        return merged


class PowerUpResult(BaseModel):
    """Outcome of PowerUpGovernor.use()"""
    applied: bool
    reason: Optional[str] = None
    effect: Optional[SessionEffect] = None
    remaining: int = 0
