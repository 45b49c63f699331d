"""Investment eligibility, caps and application."""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from ..config import Settings, get_settings
from ..metrics import calculate_power, raw_power
from ..models import EngineError, Eligibility, InvestmentResult, PyramidNode
from ..relationships import get_downline, is_upline_of

logger = logging.getLogger(__name__)


def can_invest_in(
    nodes: Mapping[str, PyramidNode],
    investor_id: str,
    target_id: str,
    investor_tier: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> Eligibility:
    """Check whether ``investor_id`` may put money into ``target_id``.

    Rules are evaluated in order and the first failure wins: both nodes must
    exist and differ, the target may be neither an upline ancestor nor a
    downline descendant of the investor, and when ``investor_tier`` is given
    it must meet the tier gate for the target's level. ``None`` skips the
    tier gate (bots are not ranked).
    """

    settings = settings or get_settings()
    investor = nodes.get(investor_id)
    target = nodes.get(target_id)
    if investor is None or target is None:
        return Eligibility.deny(EngineError.NOT_FOUND, "Invalid nodes")
    if investor_id == target_id:
        return Eligibility.deny(EngineError.INELIGIBLE, "Can't invest in yourself")

    if is_upline_of(nodes, target_id, investor_id):
        return Eligibility.deny(
            EngineError.INELIGIBLE,
            "Can't invest in your upline - they already benefit from you",
        )
    if target_id in get_downline(nodes, investor_id):
        return Eligibility.deny(
            EngineError.INELIGIBLE,
            "Can't invest in your downline - you already benefit from them",
        )

    if investor_tier is not None:
        required = settings.required_tier(target.level)
        if investor_tier < required:
            tier_name = settings.tier_name(required)
            return Eligibility.deny(
                EngineError.INELIGIBLE,
                f"Requires {tier_name} rank to invest in Level {target.level} nodes",
                required_tier=tier_name,
                target_level=target.level,
            )

    return Eligibility(allowed=True, target_level=target.level)


def get_max_investment(
    nodes: Mapping[str, PyramidNode],
    investor_id: str,
    target_id: str,
    settings: Optional[Settings] = None,
) -> int:
    """Headroom ``investor_id`` has left in ``target_id``.

    The target's pool may hold at most ``cap_fraction`` of its power; an
    investor's own prior stake does not count against their headroom, but
    only as far as the pool still fits under ``cap_fraction`` of the power
    the target will have once the investment lands.
    """

    settings = settings or get_settings()
    target = nodes.get(target_id)
    if target is None:
        return 0
    fraction = settings.investment_cap_fraction
    multiplier = settings.power_investment_multiplier
    pooled = max(0.0, target.investments_received)
    cap = math.floor(calculate_power(target, settings) * fraction)
    own_stake = target.investors.get(investor_id, 0.0)
    headroom = cap - pooled + own_stake

    # Pool must stay within the cap of the power it is about to add to.
    damping = 1 - fraction * multiplier
    if damping > 0:
        base_power = raw_power(target, settings) - pooled * multiplier
        headroom = min(headroom, fraction * base_power / damping - pooled)
    return max(0, int(math.floor(headroom)))


def invest(
    nodes: Mapping[str, PyramidNode],
    investor_id: str,
    target_id: str,
    amount: float,
    investor_tier: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> InvestmentResult:
    """Move ``amount`` from the investor's balance into a stake in the target."""

    settings = settings or get_settings()
    eligibility = can_invest_in(nodes, investor_id, target_id, investor_tier, settings)
    if not eligibility.allowed:
        return InvestmentResult(success=False, error=eligibility.error, reason=eligibility.reason)

    investor = nodes[investor_id]
    target = nodes[target_id]
    max_allowed = get_max_investment(nodes, investor_id, target_id, settings)
    if amount is None or not math.isfinite(amount) or amount <= 0:
        return InvestmentResult(
            success=False,
            max_allowed=max_allowed,
            error=EngineError.INVALID_AMOUNT,
            reason="Investment must be a positive amount",
        )
    if investor.money < amount:
        return InvestmentResult(
            success=False,
            max_allowed=max_allowed,
            error=EngineError.INSUFFICIENT_FUNDS,
            reason="Not enough money",
        )
    if amount > max_allowed:
        return InvestmentResult(
            success=False,
            max_allowed=max_allowed,
            error=EngineError.CAPACITY_EXCEEDED,
            reason=(
                f"Max investment is ${max_allowed} "
                f"({settings.investment_cap_fraction:.0%} of their power)"
            ),
        )

    investor.money -= amount
    target.add_stake(investor_id, amount)
    logger.debug("%s invested %.2f in %s", investor_id, amount, target_id)
    return InvestmentResult(success=True, amount=amount, max_allowed=max_allowed)


__all__ = ["can_invest_in", "get_max_investment", "invest"]
