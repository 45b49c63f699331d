"""Recruit-gated promotion (the MOVE_UP intent)."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import MutableMapping, Optional

from ..config import Settings, get_settings
from ..models import EngineError, PromotionResult, PyramidNode
from .coup import swap_positions

logger = logging.getLogger(__name__)


def required_recruits(target_level: int, settings: Optional[Settings] = None) -> int:
    """Recruits needed to step into a seat at ``target_level``; higher seats cost more."""

    settings = settings or get_settings()
    return int(math.ceil(max(0, settings.levels - target_level) * settings.recruits_per_level))


def move_up(
    nodes: MutableMapping[str, PyramidNode],
    node_id: str,
    *,
    now: datetime,
    settings: Optional[Settings] = None,
) -> PromotionResult:
    settings = settings or get_settings()
    node = nodes.get(node_id)
    if node is None:
        return PromotionResult(success=False, error=EngineError.NOT_FOUND, reason="Invalid node")
    if node.parent_id is None:
        return PromotionResult(
            success=False, error=EngineError.INELIGIBLE, reason="Already at the top"
        )
    parent = nodes.get(node.parent_id)
    if parent is None:
        return PromotionResult(
            success=False, error=EngineError.NOT_FOUND, reason="Upline is missing"
        )
    if parent.is_protected(now):
        return PromotionResult(
            success=False, error=EngineError.INELIGIBLE, reason="Upline is protected"
        )
    needed = required_recruits(parent.level, settings)
    if node.recruits < needed:
        return PromotionResult(
            success=False,
            error=EngineError.INELIGIBLE,
            reason=f"Need {needed} recruits to move up (have {node.recruits})",
        )

    node.recruits -= needed
    new_root_id = swap_positions(nodes, node_id, parent.id)
    logger.info("%s moved up to level %d", node_id, node.level)
    return PromotionResult(
        success=True,
        recruits_spent=needed,
        new_level=node.level,
        new_root_id=new_root_id,
        reached_top=node.parent_id is None,
    )


__all__ = ["move_up", "required_recruits"]
