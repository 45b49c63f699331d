"""High-level pyramid service routing player intents into the engine."""
from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from .config import Settings, get_settings
from .generator import generate_pyramid
from .models import (
    BotAction,
    Controller,
    CoupResult,
    EngineError,
    Event,
    InvestmentResult,
    PromotionResult,
    PyramidNode,
)
from .rng import DeterministicRNG
from .services.bots import bot_tick
from .services.coup import attempt_coup
from .services.economy import run_income_tick
from .services.investment import can_invest_in, get_max_investment, invest
from .services.promotion import move_up
from .store import NodeStore

logger = logging.getLogger(__name__)


class PyramidService:
    """Owns one game session: its store, RNG, lock and event log.

    Every public action runs to completion under the session lock and checks
    the tree invariants before returning.
    """

    _EVENT_LOG_SIZE = 500

    def __init__(
        self,
        settings: Settings | None = None,
        store: NodeStore | None = None,
        seed: int = 42,
    ) -> None:
        self.settings = settings or get_settings()
        self._rng = DeterministicRNG(seed=seed)
        self.store = store if store is not None else generate_pyramid(self._rng, settings=self.settings)
        self._lock = threading.Lock()
        self._events: deque[Event] = deque(maxlen=self._EVENT_LOG_SIZE)
        self.store.check_invariants()

    def player_node(self) -> Optional[PyramidNode]:
        return self.store.player

    def player_tier(self) -> int:
        """Rank index of the player's seat; deeper seats rank lower."""

        player = self.store.player
        top = len(self.settings.tiers) - 1
        if player is None or top < 0:
            return 0
        return max(0, min(top, top - player.level))

    def snapshot(self) -> NodeStore:
        with self._lock:
            return self.store.snapshot()

    def events(self) -> List[Event]:
        return list(self._events)

    def max_investment(self, target_id: str, investor_id: Optional[str] = None) -> int:
        investor_id = investor_id or self.store.player_id
        with self._lock:
            return get_max_investment(self.store, investor_id, target_id, self.settings)

    def invest(
        self,
        target_id: str,
        amount: float,
        *,
        investor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InvestmentResult:
        """Invest on behalf of ``investor_id`` (the player seat by default).

        The player is held to the tier gate for their current rank.
        """

        now = now or datetime.now(timezone.utc)
        investor_id = investor_id or self.store.player_id
        with self._lock:
            tier = self.player_tier() if investor_id == self.store.player_id else None
            result = invest(self.store, investor_id, target_id, amount, tier, self.settings)
            if not result.success:
                logger.warning("Investment %s -> %s refused: %s", investor_id, target_id, result.reason)
                return result
            self.store.check_invariants()
            self._record(
                "invest",
                {"investor": investor_id, "target": target_id, "amount": amount},
                now,
            )
            return result

    def can_invest(self, target_id: str, investor_id: Optional[str] = None):
        investor_id = investor_id or self.store.player_id
        with self._lock:
            tier = self.player_tier() if investor_id == self.store.player_id else None
            return can_invest_in(self.store, investor_id, target_id, tier, self.settings)

    def attempt_coup(
        self,
        bonus: float = 0,
        *,
        attacker_id: Optional[str] = None,
        target_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CoupResult:
        """Attempt a buyout of the attacker's direct upline (the player's by default)."""

        now = now or datetime.now(timezone.utc)
        attacker_id = attacker_id or self.store.player_id
        with self._lock:
            if target_id is None:
                attacker = self.store.get(attacker_id) if attacker_id else None
                if attacker is None:
                    return CoupResult.rejected(EngineError.NOT_FOUND, "Invalid nodes")
                if attacker.parent_id is None:
                    return CoupResult.rejected(EngineError.INELIGIBLE, "No upline to buy out")
                target_id = attacker.parent_id
            result = attempt_coup(
                self.store,
                attacker_id,
                target_id,
                bonus,
                rng=self._rng,
                now=now,
                settings=self.settings,
            )
            if not result.attempted:
                logger.warning("Coup %s -> %s refused: %s", attacker_id, target_id, result.reason)
                return result
            self.store.check_invariants()
            self._record(
                "coup",
                {
                    "attacker": attacker_id,
                    "target": target_id,
                    "success": result.success,
                    "chance": result.chance,
                    "roll": result.roll,
                    "total_cost": result.total_cost,
                    "payouts": dict(result.payouts),
                },
                now,
            )
            return result

    def move_up(self, node_id: Optional[str] = None, *, now: Optional[datetime] = None) -> PromotionResult:
        now = now or datetime.now(timezone.utc)
        node_id = node_id or self.store.player_id
        with self._lock:
            result = move_up(self.store, node_id, now=now, settings=self.settings)
            if not result.success:
                logger.warning("Promotion of %s refused: %s", node_id, result.reason)
                return result
            self.store.check_invariants()
            self._record(
                "move_up",
                {"node": node_id, "level": result.new_level, "recruits_spent": result.recruits_spent},
                now,
            )
            return result

    def tick(self, now: Optional[datetime] = None) -> Dict[str, object]:
        """Advance the economy one step: pay income, then let every bot act.

        The caller owns the clock; this only applies one step.
        """

        now = now or datetime.now(timezone.utc)
        with self._lock:
            credits = run_income_tick(self.store, self.settings)
            actions: List[BotAction] = []
            bot_ids = sorted(
                node_id
                for node_id, node in self.store.items()
                if node.controller is Controller.AI
            )
            for bot_id in bot_ids:
                action = bot_tick(self.store, bot_id, rng=self._rng, now=now, settings=self.settings)
                if action is None:
                    continue
                actions.append(action)
                if action.coup is not None and action.coup.success:
                    self._record(
                        "bot_coup",
                        {"attacker": bot_id, "target": action.target_id},
                        now,
                    )
            self.store.check_invariants()
            player = self.store.player
            return {
                "credits": credits,
                "actions": actions,
                "player_displaced": any(
                    action.coup is not None
                    and action.coup.success
                    and action.target_id == self.store.player_id
                    for action in actions
                ),
                "player_level": player.level if player else None,
            }

    def dispatch(self, intent: Mapping[str, object]):
        """Route a structured UI intent to the matching action."""

        kind = intent.get("type")
        now = intent.get("now")
        if kind == "INVEST":
            return self.invest(
                str(intent["target_id"]),
                float(intent["amount"]),
                investor_id=intent.get("investor_id"),
                now=now,
            )
        if kind == "COUP":
            return self.attempt_coup(
                float(intent.get("bonus", 0)),
                attacker_id=intent.get("attacker_id"),
                target_id=intent.get("target_id"),
                now=now,
            )
        if kind == "MOVE_UP":
            return self.move_up(intent.get("node_id"), now=now)
        if kind == "TICK":
            return self.tick(now)
        raise ValueError(f"Unsupported intent type: {kind}")

    def _record(self, action: str, payload: Dict[str, object], now: datetime) -> None:
        self._events.append(Event(action=action, payload=payload, timestamp=now))


__all__ = ["PyramidService"]
