from __future__ import annotations

from pathlib import Path

from the_pyramid.config import SettingsLoader, get_settings


def test_default_settings_load() -> None:
    settings = get_settings()
    assert settings.levels == 8
    assert settings.coup_min_cost == 200
    assert settings.investment_roi == 1.5
    assert settings.tier_name(6) == "Double Diamond Supreme"
    assert settings.required_tier(0) == 7
    assert len(settings.bot_profiles) == 7
    assert set(settings.level_profile_weights) == {"top", "middle", "bottom"}


def test_unknown_levels_and_tiers() -> None:
    settings = get_settings()
    assert settings.required_tier(99) == 0
    assert settings.tier_name(-1) == "Unknown"
    assert settings.tier_name(len(settings.tiers)) == "Unknown"


def test_partial_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("coup:\n  min_cost: 60\n", encoding="utf-8")
    settings = SettingsLoader(path).load()
    assert settings.coup_min_cost == 60
    assert settings.coup_success_base == 20
    assert settings.levels == 8
    assert settings.bot_profiles == {}


def test_loader_caches_until_forced(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("pyramid:\n  levels: 4\n", encoding="utf-8")
    loader = SettingsLoader(path)
    first = loader.load()
    path.write_text("pyramid:\n  levels: 5\n", encoding="utf-8")
    assert loader.load() is first
    assert loader.load(force=True).levels == 5
    assert loader.path == path


def test_profiles_inherit_default_coup_odds(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "bots:\n"
        "  min_coup_odds: 42\n"
        "  profiles:\n"
        "    plain:\n"
        "      name: Plain\n"
        "    picky:\n"
        "      min_coup_odds: 80\n",
        encoding="utf-8",
    )
    profiles = SettingsLoader(path).load().bot_profiles
    assert profiles["plain"].min_coup_odds == 42
    assert profiles["picky"].min_coup_odds == 80
    assert profiles["picky"].name == "Picky"
