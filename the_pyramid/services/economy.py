"""Per-tick income, upline skimming and investor dividends."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from ..config import Settings, get_settings
from ..metrics import downline_income, upline_skim
from ..models import PyramidNode


def net_income(
    nodes: Mapping[str, PyramidNode], node_id: str, settings: Optional[Settings] = None
) -> float:
    settings = settings or get_settings()
    node = nodes[node_id]
    return (
        node.income_per_tick
        + downline_income(nodes, node_id, settings)
        - upline_skim(nodes, node_id, settings)
    )


def investor_payouts(node: PyramidNode, node_income: float) -> Dict[str, float]:
    """Split ``node_income`` across ``node``'s investors by ownership share."""

    total = node.investments_received
    if total <= 0 or node_income <= 0:
        return {}
    return {
        investor_id: node_income * (stake / total)
        for investor_id, stake in node.investors.items()
    }


def accrue_income(
    nodes: Mapping[str, PyramidNode], node_id: str, settings: Optional[Settings] = None
) -> float:
    """Credit one tick of net income to ``node_id``; losses are not charged."""

    credit = max(0.0, net_income(nodes, node_id, settings))
    nodes[node_id].money += credit
    return credit


def run_income_tick(
    nodes: Mapping[str, PyramidNode], settings: Optional[Settings] = None
) -> Dict[str, float]:
    """Pay one tick of income and dividends across the whole pyramid.

    Incomes are computed from the state at the start of the tick and then
    applied, so the order nodes are visited in does not matter.
    """

    settings = settings or get_settings()
    credits: Dict[str, float] = {}
    for node_id, node in nodes.items():
        gross = node.income_per_tick + downline_income(nodes, node_id, settings)
        own = max(0.0, gross - upline_skim(nodes, node_id, settings))
        credits[node_id] = credits.get(node_id, 0.0) + own
        for investor_id, dividend in investor_payouts(node, gross).items():
            if investor_id in nodes:
                credits[investor_id] = credits.get(investor_id, 0.0) + dividend
    for node_id, credit in credits.items():
        nodes[node_id].money += credit
    return credits


__all__ = ["accrue_income", "investor_payouts", "net_income", "run_income_tick"]
