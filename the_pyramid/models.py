"""Core data models for The Pyramid."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class Controller(str, Enum):
    """Who currently sits in a node."""

    PLAYER = "player"
    AI = "ai"
    UNCLAIMED = "unclaimed"


class EngineError(str, Enum):
    """Typed failures returned (never raised) by engine actions."""

    NOT_FOUND = "not_found"
    INVALID_AMOUNT = "invalid_amount"
    INELIGIBLE = "ineligible"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CAPACITY_EXCEEDED = "capacity_exceeded"


@dataclass
class PyramidNode:
    id: str
    name: str = ""
    level: int = 0
    parent_id: Optional[str] = None
    child_ids: List[str] = field(default_factory=list)
    money: float = 0.0
    recruits: int = 0
    controller: Controller = Controller.AI
    investors: Dict[str, float] = field(default_factory=dict)
    investments_received: float = 0.0
    coup_cooldown: Optional[datetime] = None
    attack_cooldown: Optional[datetime] = None
    income_per_tick: float = 0.0
    profile: Optional[str] = None
    inventory: Dict[str, int] = field(default_factory=dict)
    max_inventory: int = 20

    @property
    def is_player_position(self) -> bool:
        return self.controller is Controller.PLAYER

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def is_protected(self, now: datetime) -> bool:
        """True while the node cannot be targeted by a coup."""

        return self.coup_cooldown is not None and self.coup_cooldown > now

    def is_attack_cooling_down(self, now: datetime) -> bool:
        return self.attack_cooldown is not None and self.attack_cooldown > now

    def add_stake(self, investor_id: str, amount: float) -> None:
        self.investors[investor_id] = self.investors.get(investor_id, 0.0) + amount
        self.investments_received += amount

    def clear_stakes(self) -> Dict[str, float]:
        """Drop every investor entry and return what was held."""

        stakes = dict(self.investors)
        self.investors.clear()
        self.investments_received = 0.0
        return stakes


@dataclass(frozen=True)
class BotProfile:
    key: str
    name: str
    coup_chance_multiplier: float
    min_coup_odds: float
    invest_chance_multiplier: float
    invest_percent_multiplier: float
    savings_multiplier: float
    target_preference: str


@dataclass
class Eligibility:
    allowed: bool
    reason: Optional[str] = None
    error: Optional[EngineError] = None
    required_tier: Optional[str] = None
    target_level: Optional[int] = None

    @staticmethod
    def deny(error: EngineError, reason: str, **extra) -> "Eligibility":
        return Eligibility(allowed=False, reason=reason, error=error, **extra)


@dataclass
class InvestmentResult:
    success: bool
    amount: float = 0.0
    max_allowed: int = 0
    error: Optional[EngineError] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class CoupQuote:
    cost: int
    total_cost: float
    chance: float


@dataclass
class CoupResult:
    """Outcome of a buyout attempt.

    ``error`` is set only when the attempt was rejected before any money moved;
    a resolved attempt that lost the roll has ``success=False`` and no error.
    """

    success: bool
    cost: int = 0
    total_cost: float = 0.0
    chance: float = 0.0
    roll: Optional[float] = None
    new_chance: float = 0.0
    payouts: Dict[str, int] = field(default_factory=dict)
    new_root_id: Optional[str] = None
    error: Optional[EngineError] = None
    reason: Optional[str] = None

    @property
    def attempted(self) -> bool:
        return self.error is None

    @staticmethod
    def rejected(error: EngineError, reason: str) -> "CoupResult":
        return CoupResult(success=False, error=error, reason=reason)


@dataclass
class PromotionResult:
    success: bool
    recruits_spent: int = 0
    new_level: Optional[int] = None
    new_root_id: Optional[str] = None
    reached_top: bool = False
    error: Optional[EngineError] = None
    reason: Optional[str] = None


@dataclass
class BotAction:
    bot_id: str
    action: str
    target_id: str
    amount: float = 0.0
    coup: Optional[CoupResult] = None


@dataclass
class Event:
    action: str
    payload: Dict[str, object]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "BotAction",
    "BotProfile",
    "Controller",
    "CoupQuote",
    "CoupResult",
    "Eligibility",
    "EngineError",
    "Event",
    "InvestmentResult",
    "PromotionResult",
    "PyramidNode",
]
