"""Node Store: the id-indexed arena holding the organization tree."""
from __future__ import annotations

import copy
import logging
import math
from typing import Dict, Iterable, Iterator, List, Mapping, MutableMapping, Optional

from .models import Controller, PyramidNode

logger = logging.getLogger(__name__)

_STAKE_TOLERANCE = 1e-6


class TreeCorruptionError(RuntimeError):
    """Raised when the tree breaks one of its structural invariants."""


class NodeStore(MutableMapping[str, PyramidNode]):
    """Mapping of node id to node plus the root and player seat pointers."""

    def __init__(
        self,
        nodes: Iterable[PyramidNode] | Mapping[str, PyramidNode] = (),
        *,
        root_id: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> None:
        if isinstance(nodes, Mapping):
            nodes = nodes.values()
        self._nodes: Dict[str, PyramidNode] = {node.id: node for node in nodes}
        self.root_id = root_id
        self.player_id = player_id
        if self.root_id is None:
            roots = [node.id for node in self._nodes.values() if node.parent_id is None]
            if len(roots) == 1:
                self.root_id = roots[0]
        if self.player_id is None:
            seats = [node.id for node in self._nodes.values() if node.is_player_position]
            if len(seats) == 1:
                self.player_id = seats[0]

    def __getitem__(self, node_id: str) -> PyramidNode:
        return self._nodes[node_id]

    def __setitem__(self, node_id: str, node: PyramidNode) -> None:
        if node.id != node_id:
            raise KeyError(f"Node id mismatch: {node_id} != {node.id}")
        self._nodes[node_id] = node

    def __delitem__(self, node_id: str) -> None:
        raise TypeError("Nodes are never deleted from the pyramid; re-own them instead")

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> Optional[PyramidNode]:
        return self._nodes.get(self.root_id) if self.root_id else None

    @property
    def player(self) -> Optional[PyramidNode]:
        return self._nodes.get(self.player_id) if self.player_id else None

    def add_node(self, node: PyramidNode, parent_id: Optional[str] = None) -> PyramidNode:
        """Insert a recruited node under ``parent_id`` (or as the root)."""

        if node.id in self._nodes:
            raise ValueError(f"Node {node.id} already exists")
        if parent_id is None:
            if self.root_id is not None:
                raise ValueError("Pyramid already has a root")
            node.parent_id = None
            node.level = 0
            self.root_id = node.id
        else:
            parent = self._nodes.get(parent_id)
            if parent is None:
                raise ValueError(f"Unknown parent {parent_id}")
            node.parent_id = parent_id
            node.level = parent.level + 1
            parent.child_ids.append(node.id)
        self._nodes[node.id] = node
        if node.is_player_position:
            self.seat_player(node.id)
        return node

    def seat_player(self, node_id: str) -> None:
        """Move the player's seat to ``node_id``; the old seat falls to the AI."""

        if node_id not in self._nodes:
            raise ValueError(f"Unknown node {node_id}")
        previous = self.player
        if previous is not None and previous.id != node_id:
            previous.controller = Controller.AI
        self._nodes[node_id].controller = Controller.PLAYER
        self.player_id = node_id

    def total_money(self) -> float:
        return sum(node.money for node in self._nodes.values())

    def total_value(self) -> float:
        """Liquid money plus capital currently staked in other nodes."""

        return self.total_money() + sum(
            node.investments_received for node in self._nodes.values()
        )

    def snapshot(self) -> "NodeStore":
        """Deep copy suitable for read-only consumers such as renderers."""

        return NodeStore(
            copy.deepcopy(list(self._nodes.values())),
            root_id=self.root_id,
            player_id=self.player_id,
        )

    def check_invariants(self) -> None:
        """Raise :class:`TreeCorruptionError` if the tree is inconsistent."""

        problems = self.invariant_violations()
        if problems:
            logger.error("Pyramid invariants violated: %s", "; ".join(problems))
            raise TreeCorruptionError("; ".join(problems))

    def invariant_violations(self) -> List[str]:
        problems: List[str] = []
        roots = [node.id for node in self._nodes.values() if node.parent_id is None]
        if self._nodes and len(roots) != 1:
            problems.append(f"expected exactly one root, found {len(roots)}")
        elif roots and roots[0] != self.root_id:
            problems.append(f"root pointer {self.root_id} does not match root {roots[0]}")

        for node in self._nodes.values():
            problems.extend(self._node_violations(node))

        seats = [node.id for node in self._nodes.values() if node.is_player_position]
        if self.player_id is not None and seats != [self.player_id]:
            problems.append(f"player seat {self.player_id} does not match player nodes {seats}")
        return problems

    def _node_violations(self, node: PyramidNode) -> List[str]:
        problems: List[str] = []
        if node.money < 0 or math.isnan(node.money):
            problems.append(f"{node.id} has negative money {node.money}")
        if any(stake <= 0 for stake in node.investors.values()):
            problems.append(f"{node.id} holds a non-positive stake")
        if abs(sum(node.investors.values()) - node.investments_received) > _STAKE_TOLERANCE:
            problems.append(f"{node.id} investments_received out of sync with investors")

        for child_id in node.child_ids:
            child = self._nodes.get(child_id)
            if child is None:
                problems.append(f"{node.id} lists missing child {child_id}")
            elif child.parent_id != node.id:
                problems.append(f"{child_id} is listed under {node.id} but points at {child.parent_id}")
        if len(set(node.child_ids)) != len(node.child_ids):
            problems.append(f"{node.id} lists a child twice")

        if node.parent_id is not None:
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                problems.append(f"{node.id} points at missing parent {node.parent_id}")
            elif node.id not in parent.child_ids:
                problems.append(f"{node.id} missing from child list of {parent.id}")

        steps = 0
        current = node
        while current.parent_id is not None and steps <= len(self._nodes):
            parent = self._nodes.get(current.parent_id)
            if parent is None:
                break
            current = parent
            steps += 1
        if steps > len(self._nodes):
            problems.append(f"cycle above {node.id}")
        elif current.parent_id is None and steps != node.level:
            problems.append(f"{node.id} has level {node.level} but depth {steps}")
        return problems


__all__ = ["NodeStore", "TreeCorruptionError"]
