"""Buyout (coup) pricing, resolution and re-parenting."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, MutableMapping, Optional, Union

from ..config import Settings, get_settings
from ..metrics import calculate_coup_chance, calculate_coup_cost
from ..models import CoupQuote, CoupResult, EngineError, PyramidNode
from ..rng import RandomSource
from ..store import NodeStore

logger = logging.getLogger(__name__)


def check_coup(
    nodes: MutableMapping[str, PyramidNode],
    attacker_id: str,
    target_id: str,
    bonus: float,
    now: datetime,
    settings: Optional[Settings] = None,
) -> Union[CoupQuote, CoupResult]:
    """Price a buyout, or explain why it cannot be attempted.

    Returns a :class:`CoupQuote` when the attempt is eligible and affordable,
    otherwise a rejected :class:`CoupResult`.
    """

    settings = settings or get_settings()
    attacker = nodes.get(attacker_id)
    target = nodes.get(target_id)
    if attacker is None or target is None:
        return CoupResult.rejected(EngineError.NOT_FOUND, "Invalid nodes")
    if attacker.parent_id != target_id:
        return CoupResult.rejected(EngineError.INELIGIBLE, "Can only coup your direct upline")
    if attacker.is_attack_cooling_down(now):
        return CoupResult.rejected(EngineError.INELIGIBLE, "Coup on cooldown")
    if target.is_protected(now):
        return CoupResult.rejected(EngineError.INELIGIBLE, "Target is protected")
    if bonus is None or not math.isfinite(bonus) or bonus < 0:
        return CoupResult.rejected(EngineError.INVALID_AMOUNT, "Bonus must be zero or more")

    cost = calculate_coup_cost(attacker, target, settings)
    total_cost = cost + bonus
    if attacker.money < total_cost:
        result = CoupResult.rejected(EngineError.INSUFFICIENT_FUNDS, "Not enough money")
        result.cost = cost
        result.total_cost = total_cost
        return result
    chance = calculate_coup_chance(attacker, target, bonus, settings)
    return CoupQuote(cost=cost, total_cost=total_cost, chance=chance)


def attempt_coup(
    nodes: MutableMapping[str, PyramidNode],
    attacker_id: str,
    target_id: str,
    bonus: float = 0,
    *,
    rng: RandomSource,
    now: datetime,
    settings: Optional[Settings] = None,
) -> CoupResult:
    """Resolve one buyout attempt of ``attacker_id`` against its direct upline.

    Validation fully precedes mutation: a rejected attempt leaves every node
    untouched. A resolved attempt always charges the attacker; on success the
    target's investors are paid out and the two nodes trade places.
    """

    settings = settings or get_settings()
    quote = check_coup(nodes, attacker_id, target_id, bonus, now, settings)
    if isinstance(quote, CoupResult):
        logger.debug("Coup %s -> %s rejected: %s", attacker_id, target_id, quote.reason)
        return quote

    attacker = nodes[attacker_id]
    target = nodes[target_id]
    roll = rng.uniform(0.0, 100.0)
    success = roll < quote.chance

    attacker.money -= quote.total_cost
    attacker.attack_cooldown = now + timedelta(seconds=settings.coup_attacker_cooldown_seconds)

    payouts: Dict[str, int] = {}
    new_root_id: Optional[str] = None
    if success:
        for investor_id, stake in target.clear_stakes().items():
            payout = int(math.floor(stake * settings.investment_roi))
            payouts[investor_id] = payout
            investor = nodes.get(investor_id)
            if investor is not None:
                investor.money += payout
        new_root_id = swap_positions(nodes, attacker_id, target_id)
        target.coup_cooldown = now + timedelta(seconds=settings.coup_defender_cooldown_seconds)
        logger.info(
            "Coup succeeded: %s displaced %s (roll %.1f < %.1f)",
            attacker_id,
            target_id,
            roll,
            quote.chance,
        )
    else:
        logger.debug(
            "Coup failed: %s vs %s (roll %.1f >= %.1f)", attacker_id, target_id, roll, quote.chance
        )

    new_chance = 0.0
    upline = nodes.get(attacker.parent_id) if attacker.parent_id else None
    if upline is not None:
        new_chance = calculate_coup_chance(attacker, upline, 0, settings)

    return CoupResult(
        success=success,
        cost=quote.cost,
        total_cost=quote.total_cost,
        chance=quote.chance,
        roll=roll,
        new_chance=new_chance,
        payouts=payouts,
        new_root_id=new_root_id,
        reason=None if success else "Coup failed",
    )


def swap_positions(
    nodes: MutableMapping[str, PyramidNode], lower_id: str, upper_id: str
) -> Optional[str]:
    """Trade the structural seats of a node and its direct upline.

    ``lower_id`` takes ``upper_id``'s parent, level and children, with
    ``upper_id`` becoming its first child; ``upper_id`` inherits
    ``lower_id``'s former level and children. Returns ``lower_id`` when it
    has become the root, otherwise ``None``.
    """

    lower = nodes[lower_id]
    upper = nodes[upper_id]
    if lower_id == upper_id or lower.parent_id != upper_id:
        raise ValueError(f"{lower_id} is not directly below {upper_id}")

    grandparent_id = upper.parent_id
    upper_children = [child_id for child_id in upper.child_ids if child_id != lower_id]
    lower_children = list(lower.child_ids)
    lower_level, upper_level = lower.level, upper.level

    lower.parent_id = grandparent_id
    lower.level = upper_level
    lower.child_ids = [upper_id, *upper_children]

    upper.parent_id = lower_id
    upper.level = lower_level
    upper.child_ids = lower_children

    for child_id in upper_children:
        child = nodes.get(child_id)
        if child is not None:
            child.parent_id = lower_id
    for child_id in lower_children:
        child = nodes.get(child_id)
        if child is not None:
            child.parent_id = upper_id

    if grandparent_id is None:
        if isinstance(nodes, NodeStore):
            nodes.root_id = lower_id
        return lower_id
    grandparent = nodes.get(grandparent_id)
    if grandparent is not None:
        grandparent.child_ids = [
            lower_id if child_id == upper_id else child_id for child_id in grandparent.child_ids
        ]
    return None


__all__ = ["attempt_coup", "check_coup", "swap_positions"]
