"""Initial pyramid generation and bot naming."""
from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml

from .config import Settings, get_settings
from .models import Controller, PyramidNode
from .rng import RandomSource
from .services.bots import select_profile
from .store import NodeStore

_DATA_PATH = Path(__file__).parent / "data"


class NameBank:
    """Satirical bot names assembled from the namebank YAML."""

    def __init__(self, data_path: Path | None = None) -> None:
        self._path = data_path or _DATA_PATH
        data = self._load_yaml("namebanks.yaml")
        self._first_names: List[str] = list(data["first_names"])
        self._relationships: List[str] = list(data.get("relationships", []))
        self._titles: List[str] = list(data.get("titles", []))
        self._platforms: List[str] = list(data.get("platforms", []))

    def _load_yaml(self, name: str) -> Dict:
        with (self._path / name).open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh)

    def generate(self, rng: RandomSource) -> str:
        first = rng.choice(self._first_names)
        roll = rng.random()
        if roll < 0.3 and self._relationships:
            return f"{rng.choice(self._relationships)} {first}"
        if roll < 0.5 and self._platforms:
            return f"{first} {rng.choice(self._platforms)}"
        if roll < 0.8 and self._titles:
            return f"{first} ({rng.choice(self._titles)})"
        return first

    def stream(self, rng: RandomSource) -> Iterator[str]:
        while True:
            yield self.generate(rng)


def generate_pyramid(
    rng: RandomSource,
    names: Optional[Iterator[str]] = None,
    settings: Optional[Settings] = None,
) -> NodeStore:
    """Build a full binary pyramid of AI nodes with the player seated near the bottom.

    Seats closer to the top start exponentially richer. The same seed always
    yields the same pyramid.
    """

    settings = settings or get_settings()
    names = names if names is not None else NameBank().stream(rng)
    store = NodeStore()
    previous_level: List[PyramidNode] = []
    counter = 0
    for level in range(settings.levels):
        current_level: List[PyramidNode] = []
        levels_from_bottom = settings.levels - 1 - level
        for index in range(2 ** level):
            counter += 1
            money = math.floor(rng.random() * 100) + 50
            money += math.floor(settings.bot_base_money * settings.bot_money_scale_base ** levels_from_bottom)
            income = rng.random() * 2
            income += settings.bot_base_income * settings.bot_income_scale_base ** levels_from_bottom
            node = PyramidNode(
                id=f"node_{counter}",
                name=next(names, f"Bot {counter}"),
                money=float(money),
                income_per_tick=income,
                controller=Controller.AI,
                profile=select_profile(level, rng, settings),
            )
            parent_id = previous_level[index // 2].id if previous_level else None
            store.add_node(node, parent_id)
            current_level.append(node)
        previous_level = current_level

    start_level = min(settings.player_start_level_min, settings.levels - 1)
    eligible = sorted(
        (node for node in store.values() if node.level >= start_level),
        key=lambda node: (node.level, int(node.id.split("_")[1])),
    )
    seat = rng.choice(eligible)
    seat.name = "You"
    seat.money = settings.player_starting_money
    seat.income_per_tick = 0.0
    seat.profile = None
    store.seat_player(seat.id)
    return store


__all__ = ["NameBank", "generate_pyramid"]
