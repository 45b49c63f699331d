"""Derived metrics: power, buyout pricing and odds, income shares.

Every function here is pure: it reads node state and returns a number.
"""
from __future__ import annotations

import math
from typing import Mapping, Optional

from .config import Settings, get_settings
from .models import PyramidNode
from .relationships import get_downline


def raw_power(node: PyramidNode, settings: Optional[Settings] = None) -> float:
    """Unfloored power; zero only for a node with nothing at all."""

    settings = settings or get_settings()
    return (
        max(0.0, node.money)
        + max(0, node.recruits) * settings.power_recruit_weight
        + max(0.0, node.income_per_tick) * settings.power_income_multiplier
        + max(0.0, node.investments_received) * settings.power_investment_multiplier
    )


def calculate_power(node: PyramidNode, settings: Optional[Settings] = None) -> float:
    """Effective strength of a node, never below the configured baseline."""

    settings = settings or get_settings()
    return max(settings.power_baseline, raw_power(node, settings))


def calculate_coup_cost(
    attacker: PyramidNode, target: PyramidNode, settings: Optional[Settings] = None
) -> int:
    """Base price of a buyout; a stronger attacker pays slightly less."""

    settings = settings or get_settings()
    if raw_power(target, settings) <= 0:
        return 0
    target_power = calculate_power(target, settings)
    attacker_power = calculate_power(attacker, settings)
    cost = max(
        settings.coup_min_cost,
        target_power * settings.coup_base_cost_multiplier
        - attacker_power * settings.coup_power_reduction,
    )
    return int(math.floor(cost))


def calculate_coup_chance(
    attacker: PyramidNode,
    target: PyramidNode,
    bonus: float = 0,
    settings: Optional[Settings] = None,
) -> float:
    """Buyout success chance in percent, clamped to the configured window."""

    settings = settings or get_settings()
    floor = max(0.0, min(100.0, settings.coup_min_chance))
    ceiling = max(floor, min(100.0, settings.coup_max_chance))
    if bonus is None or math.isnan(bonus) or bonus < 0:
        bonus = 0.0
    attacker_power = calculate_power(attacker, settings) + bonus
    target_power = calculate_power(target, settings)
    chance = settings.coup_success_base + (attacker_power - target_power) / settings.coup_power_scale_factor
    if math.isnan(chance):
        return floor
    return max(floor, min(ceiling, chance))


def ownership_percent(node: PyramidNode, amount: float) -> float:
    """Share of ``node``'s investment pool represented by ``amount``."""

    if node.investments_received <= 0:
        return 0.0
    return (amount / node.investments_received) * 100


def downline_income(
    nodes: Mapping[str, PyramidNode], node_id: str, settings: Optional[Settings] = None
) -> float:
    settings = settings or get_settings()
    return sum(
        nodes[child_id].income_per_tick * settings.downline_income_percent
        for child_id in get_downline(nodes, node_id)
    )


def upline_skim(
    nodes: Mapping[str, PyramidNode], node_id: str, settings: Optional[Settings] = None
) -> float:
    """What the direct upline takes from ``node_id``'s base income."""

    settings = settings or get_settings()
    node = nodes.get(node_id)
    if node is None or node.parent_id is None:
        return 0.0
    return node.income_per_tick * settings.upline_skim_percent


__all__ = [
    "calculate_coup_chance",
    "calculate_coup_cost",
    "calculate_power",
    "downline_income",
    "ownership_percent",
    "raw_power",
    "upline_skim",
]
