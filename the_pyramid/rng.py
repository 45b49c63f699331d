"""Deterministic random utilities."""

from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """The slice of :class:`DeterministicRNG` the engine draws from."""

    def uniform(self, a: float, b: float) -> float: ...

    def random(self) -> float: ...

    def choice(self, seq: Sequence[T]) -> T: ...


class DeterministicRNG:
    """Wraps :mod:`random` with deterministic replay support."""

    def __init__(self, seed: int) -> None:
        self._seed = seed & 0xFFFFFFFF
        # nosec B311 - deterministic pseudo-RNG acceptable for game mechanics
        self._random = random.Random(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def random(self) -> float:
        return self._random.random()

    def choice(self, seq):
        return self._random.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)


__all__ = ["DeterministicRNG", "RandomSource"]
