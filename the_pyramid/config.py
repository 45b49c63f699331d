"""Configuration loading utilities for The Pyramid."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .models import BotProfile


DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"


@dataclass(frozen=True)
class Settings:
    """Typed view over the settings YAML file."""

    levels: int
    player_start_level_min: int
    player_starting_money: float
    power_baseline: float
    power_recruit_weight: float
    power_income_multiplier: float
    power_investment_multiplier: float
    coup_base_cost_multiplier: float
    coup_power_reduction: float
    coup_min_cost: float
    coup_success_base: float
    coup_power_scale_factor: float
    coup_min_chance: float
    coup_max_chance: float
    coup_defender_cooldown_seconds: float
    coup_attacker_cooldown_seconds: float
    investment_roi: float
    investment_cap_fraction: float
    tier_requirements: Dict[int, int]
    tiers: List[str]
    downline_income_percent: float
    upline_skim_percent: float
    recruits_per_level: float
    bot_coup_chance_per_tick: float
    bot_coup_money_buffer: float
    bot_coup_extra_invest_percent: float
    bot_invest_chance_per_tick: float
    bot_invest_percent: float
    bot_min_invest_amount: float
    bot_base_money: float
    bot_money_scale_base: float
    bot_base_income: float
    bot_income_scale_base: float
    bot_profiles: Dict[str, BotProfile]
    level_profile_weights: Dict[str, Dict[str, int]]

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Settings":
        pyramid = data.get("pyramid", {})
        power = data.get("power", {})
        coup = data.get("coup", {})
        investment = data.get("investment", {})
        economy = data.get("economy", {})
        promotion = data.get("promotion", {})
        bots = data.get("bots", {})
        default_coup_odds = float(bots.get("min_coup_odds", 30))
        profiles = {
            key: BotProfile(
                key=key,
                name=str(entry.get("name", key.title())),
                coup_chance_multiplier=float(entry.get("coup_chance_multiplier", 1.0)),
                min_coup_odds=float(entry.get("min_coup_odds", default_coup_odds)),
                invest_chance_multiplier=float(entry.get("invest_chance_multiplier", 1.0)),
                invest_percent_multiplier=float(entry.get("invest_percent_multiplier", 1.0)),
                savings_multiplier=float(entry.get("savings_multiplier", 1.0)),
                target_preference=str(entry.get("target_preference", "none")),
            )
            for key, entry in (bots.get("profiles") or {}).items()
        }
        weights = {
            tier: {key: int(weight) for key, weight in entries.items()}
            for tier, entries in (bots.get("level_profile_weights") or {}).items()
        }
        return Settings(
            levels=int(pyramid.get("levels", 8)),
            player_start_level_min=int(pyramid.get("player_start_level_min", 6)),
            player_starting_money=float(pyramid.get("player_starting_money", 500)),
            power_baseline=float(power.get("baseline", 1.0)),
            power_recruit_weight=float(power.get("recruit_weight", 5.0)),
            power_income_multiplier=float(power.get("income_multiplier", 10)),
            power_investment_multiplier=float(power.get("investment_multiplier", 1.5)),
            coup_base_cost_multiplier=float(coup.get("base_cost_multiplier", 2.0)),
            coup_power_reduction=float(coup.get("power_reduction", 0.1)),
            coup_min_cost=float(coup.get("min_cost", 200)),
            coup_success_base=float(coup.get("success_base", 20)),
            coup_power_scale_factor=float(coup.get("power_scale_factor", 200)),
            coup_min_chance=float(coup.get("min_chance", 5)),
            coup_max_chance=float(coup.get("max_chance", 100)),
            coup_defender_cooldown_seconds=float(coup.get("defender_cooldown_seconds", 30)),
            coup_attacker_cooldown_seconds=float(coup.get("attacker_cooldown_seconds", 10)),
            investment_roi=float(investment.get("roi", 1.5)),
            investment_cap_fraction=float(investment.get("cap_fraction", 0.5)),
            tier_requirements={
                int(level): int(tier)
                for level, tier in (investment.get("tier_requirements") or {}).items()
            },
            tiers=list(data.get("tiers", [])),
            downline_income_percent=float(economy.get("downline_income_percent", 0.30)),
            upline_skim_percent=float(economy.get("upline_skim_percent", 0.10)),
            recruits_per_level=float(promotion.get("recruits_per_level", 1.8)),
            bot_coup_chance_per_tick=float(bots.get("coup_chance_per_tick", 0.10)),
            bot_coup_money_buffer=float(bots.get("coup_money_buffer", 1.5)),
            bot_coup_extra_invest_percent=float(bots.get("coup_extra_invest_percent", 0.2)),
            bot_invest_chance_per_tick=float(bots.get("invest_chance_per_tick", 0.05)),
            bot_invest_percent=float(bots.get("invest_percent", 0.1)),
            bot_min_invest_amount=float(bots.get("min_invest_amount", 10)),
            bot_base_money=float(bots.get("base_money", 100)),
            bot_money_scale_base=float(bots.get("money_scale_base", 2.5)),
            bot_base_income=float(bots.get("base_income", 1)),
            bot_income_scale_base=float(bots.get("income_scale_base", 2.0)),
            bot_profiles=profiles,
            level_profile_weights=weights,
        )

    def required_tier(self, level: int) -> int:
        """Minimum investor tier needed to invest in a node at ``level``."""

        return self.tier_requirements.get(level, 0)

    def tier_name(self, index: int) -> str:
        if 0 <= index < len(self.tiers):
            return self.tiers[index]
        return "Unknown"


class SettingsLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH
        self._cache: Settings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> Settings:
        if self._cache is not None and not force:
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        self._cache = Settings.from_dict(data)
        return self._cache


_DEFAULT_LOADER = SettingsLoader()


def get_settings() -> Settings:
    """Convenience accessor for default settings."""

    return _DEFAULT_LOADER.load()


__all__ = ["Settings", "SettingsLoader", "get_settings"]
