"""Bot personalities and per-tick decisions for AI-controlled nodes."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import List, MutableMapping, Optional

from ..config import Settings, get_settings
from ..metrics import calculate_coup_chance, calculate_coup_cost, calculate_power
from ..models import BotAction, BotProfile, Controller, PyramidNode
from ..relationships import get_downline, get_siblings, get_upline
from ..rng import RandomSource
from .coup import attempt_coup
from .investment import get_max_investment, invest

logger = logging.getLogger(__name__)

_THREAT_CHANCE = 25
_TOP_PICKS = 3

_FALLBACK_PROFILE = BotProfile(
    key="opportunist",
    name="Opportunist",
    coup_chance_multiplier=1.0,
    min_coup_odds=30,
    invest_chance_multiplier=1.0,
    invest_percent_multiplier=1.0,
    savings_multiplier=1.5,
    target_preference="threatened",
)


def level_tier(level: int) -> str:
    if level <= 2:
        return "top"
    if level <= 5:
        return "middle"
    return "bottom"


def select_profile(level: int, rng: RandomSource, settings: Optional[Settings] = None) -> str:
    """Draw a profile key using the weights for ``level``'s tier."""

    settings = settings or get_settings()
    weights = settings.level_profile_weights.get(level_tier(level), {})
    total = sum(weights.values())
    if total <= 0:
        return _FALLBACK_PROFILE.key
    remaining = rng.random() * total
    for key, weight in weights.items():
        remaining -= weight
        if remaining <= 0:
            return key
    return _FALLBACK_PROFILE.key


def profile_for(node: PyramidNode, settings: Settings) -> BotProfile:
    return (
        settings.bot_profiles.get(node.profile or "")
        or settings.bot_profiles.get(_FALLBACK_PROFILE.key)
        or _FALLBACK_PROFILE
    )


def _investment_candidates(nodes: MutableMapping[str, PyramidNode], bot_id: str) -> List[str]:
    excluded = {bot_id, *get_upline(nodes, bot_id), *get_downline(nodes, bot_id)}
    return sorted(node_id for node_id in nodes if node_id not in excluded)


def _pick_sibling(nodes, bot_id: str, rng: RandomSource) -> Optional[str]:
    siblings = get_siblings(nodes, bot_id)
    if not siblings:
        return None
    return rng.choice(siblings)


def select_investment_target(
    nodes: MutableMapping[str, PyramidNode],
    bot_id: str,
    preference: str,
    rng: RandomSource,
    settings: Optional[Settings] = None,
) -> Optional[str]:
    settings = settings or get_settings()
    if preference == "highPower":
        candidates = _investment_candidates(nodes, bot_id)
        candidates.sort(key=lambda node_id: -calculate_power(nodes[node_id], settings))
        return rng.choice(candidates[:_TOP_PICKS]) if candidates else None
    if preference == "highIncome":
        candidates = _investment_candidates(nodes, bot_id)
        candidates.sort(key=lambda node_id: -nodes[node_id].income_per_tick)
        return rng.choice(candidates[:_TOP_PICKS]) if candidates else None
    if preference == "threatened":
        threatening = []
        for node_id in _investment_candidates(nodes, bot_id):
            node = nodes[node_id]
            parent = nodes.get(node.parent_id) if node.parent_id else None
            if parent is None:
                continue
            if calculate_coup_chance(node, parent, 0, settings) >= _THREAT_CHANCE:
                threatening.append(node_id)
        if threatening:
            return rng.choice(threatening)
    return _pick_sibling(nodes, bot_id, rng)


def bot_tick(
    nodes: MutableMapping[str, PyramidNode],
    bot_id: str,
    *,
    rng: RandomSource,
    now: datetime,
    settings: Optional[Settings] = None,
) -> Optional[BotAction]:
    """Let one AI node consider a coup on its upline, then an investment."""

    settings = settings or get_settings()
    bot = nodes.get(bot_id)
    if bot is None or bot.controller is not Controller.AI:
        return None
    profile = profile_for(bot, settings)

    coup_roll = settings.bot_coup_chance_per_tick * profile.coup_chance_multiplier
    if bot.parent_id and bot.parent_id in nodes and rng.random() < coup_roll:
        parent = nodes[bot.parent_id]
        cost = calculate_coup_cost(bot, parent, settings)
        chance = calculate_coup_chance(bot, parent, 0, settings)
        threshold = cost * settings.bot_coup_money_buffer * profile.savings_multiplier
        if bot.money >= threshold and chance >= profile.min_coup_odds:
            bonus = math.floor(bot.money * settings.bot_coup_extra_invest_percent)
            target_id = parent.id
            result = attempt_coup(nodes, bot_id, target_id, bonus, rng=rng, now=now, settings=settings)
            if result.attempted:
                return BotAction(bot_id=bot_id, action="coup", target_id=target_id, amount=bonus, coup=result)
            logger.debug("Bot %s coup on %s refused: %s", bot_id, target_id, result.reason)

    invest_roll = settings.bot_invest_chance_per_tick * profile.invest_chance_multiplier
    min_money = settings.bot_min_invest_amount * 10 * profile.savings_multiplier
    if rng.random() < invest_roll and bot.money > min_money:
        target_id = select_investment_target(nodes, bot_id, profile.target_preference, rng, settings)
        if target_id is None:
            return None
        amount = math.floor(bot.money * settings.bot_invest_percent * profile.invest_percent_multiplier)
        amount = min(amount, get_max_investment(nodes, bot_id, target_id, settings))
        if amount > settings.bot_min_invest_amount:
            result = invest(nodes, bot_id, target_id, amount, settings=settings)
            if result.success:
                return BotAction(bot_id=bot_id, action="invest", target_id=target_id, amount=amount)
            logger.debug("Bot %s investment in %s refused: %s", bot_id, target_id, result.reason)
    return None


__all__ = [
    "bot_tick",
    "level_tier",
    "profile_for",
    "select_investment_target",
    "select_profile",
]
