"""The Pyramid: an engine for a scheming multi-level organization."""

from .config import Settings, SettingsLoader, get_settings
from .metrics import calculate_coup_chance, calculate_coup_cost, calculate_power
from .models import Controller, EngineError, PyramidNode
from .relationships import get_downline, get_siblings
from .rng import DeterministicRNG
from .services.coup import attempt_coup
from .services.investment import can_invest_in, get_max_investment, invest
from .services.promotion import move_up
from .store import NodeStore, TreeCorruptionError

__all__ = [
    "Controller",
    "DeterministicRNG",
    "EngineError",
    "NodeStore",
    "PyramidNode",
    "Settings",
    "SettingsLoader",
    "TreeCorruptionError",
    "attempt_coup",
    "calculate_coup_chance",
    "calculate_coup_cost",
    "calculate_power",
    "can_invest_in",
    "get_downline",
    "get_max_investment",
    "get_settings",
    "get_siblings",
    "invest",
    "move_up",
]
