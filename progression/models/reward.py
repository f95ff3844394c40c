"""Reward models shared by quests, streak milestones and badges"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Rarity(str, Enum):
    """Display rarity tag"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class RewardType(str, Enum):
    """What a reward grants"""
    XP = "xp"
    COINS = "coins"
    ITEM = "item"
    TITLE = "title"
    BADGE = "badge"


class Reward(BaseModel):
    """
    A single grant

    xp/coins carry an amount, item/badge carry an item_id (power-up id or
    badge id), title uses its name as the title identifier.
    """
    type: RewardType
    amount: Optional[int] = Field(default=None, ge=0)
    item_id: Optional[str] = None
    name: str
    description: str = ""
    rarity: Rarity = Rarity.COMMON

    @model_validator(mode="after")
    def _check_payload(self) -> "Reward":
        if self.type in (RewardType.XP, RewardType.COINS) and self.amount is None:
            raise ValueError(f"{self.type.value} reward requires an amount")
        if self.type in (RewardType.ITEM, RewardType.BADGE) and not self.item_id:
            raise ValueError(f"{self.type.value} reward requires an item_id")
        return self

    @classmethod
    def xp(cls, amount: int, name: str = "Experience Points", **kwargs) -> "Reward":
        return cls(type=RewardType.XP, amount=amount, name=name, **kwargs)

    @classmethod
    def coins(cls, amount: int, name: str = "Learning Coins", **kwargs) -> "Reward":
        return cls(type=RewardType.COINS, amount=amount, name=name, **kwargs)

    @classmethod
    def item(cls, item_id: str, name: str, **kwargs) -> "Reward":
        return cls(type=RewardType.ITEM, item_id=item_id, name=name, **kwargs)

    @classmethod
    def title(cls, name: str, **kwargs) -> "Reward":
        return cls(type=RewardType.TITLE, name=name, **kwargs)

    @classmethod
    def badge(cls, badge_id: str, name: str, **kwargs) -> "Reward":
        return cls(type=RewardType.BADGE, item_id=badge_id, name=name, **kwargs)
