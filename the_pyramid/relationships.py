"""Sibling, downline and upline traversal over the node arena."""
from __future__ import annotations

import logging
from collections import deque
from typing import List, Mapping

from .models import PyramidNode
from .store import TreeCorruptionError

logger = logging.getLogger(__name__)


def get_siblings(nodes: Mapping[str, PyramidNode], node_id: str) -> List[str]:
    """Ids sharing ``node_id``'s parent, excluding ``node_id`` itself."""

    node = nodes.get(node_id)
    if node is None or node.parent_id is None:
        return []
    parent = nodes.get(node.parent_id)
    if parent is None:
        return []
    return [child_id for child_id in parent.child_ids if child_id != node_id and child_id in nodes]


def get_downline(nodes: Mapping[str, PyramidNode], node_id: str) -> List[str]:
    """All descendants of ``node_id`` in breadth-first order.

    Each node is visited at most once, so a corrupted store containing a cycle
    still terminates. Child ids that do not resolve are skipped.
    """

    result: List[str] = []
    queue = deque([node_id])
    visited = {node_id}
    while queue:
        current = nodes.get(queue.popleft())
        if current is None:
            continue
        for child_id in current.child_ids:
            if child_id in visited or child_id not in nodes:
                continue
            visited.add(child_id)
            result.append(child_id)
            queue.append(child_id)
    return result


def get_upline(nodes: Mapping[str, PyramidNode], node_id: str) -> List[str]:
    """Ancestors of ``node_id``, nearest first.

    Raises :class:`TreeCorruptionError` if the parent chain loops.
    """

    result: List[str] = []
    visited = {node_id}
    current = nodes.get(node_id)
    while current is not None and current.parent_id is not None:
        parent_id = current.parent_id
        if parent_id in visited:
            logger.error("Cycle detected above %s at %s", node_id, parent_id)
            raise TreeCorruptionError(f"Cycle detected in upline of {node_id}")
        visited.add(parent_id)
        current = nodes.get(parent_id)
        if current is None:
            break
        result.append(parent_id)
    return result


def is_upline_of(nodes: Mapping[str, PyramidNode], upline_id: str, node_id: str) -> bool:
    return upline_id in get_upline(nodes, node_id)


def node_depth(nodes: Mapping[str, PyramidNode], node_id: str) -> int:
    """Number of ancestors above ``node_id`` (0 for the root)."""

    return len(get_upline(nodes, node_id))


__all__ = [
    "get_downline",
    "get_siblings",
    "get_upline",
    "is_upline_of",
    "node_depth",
]
