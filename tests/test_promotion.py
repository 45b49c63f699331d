"""Tests for recruit-gated promotion."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from the_pyramid.models import Controller, EngineError, PyramidNode
from the_pyramid.services.promotion import move_up, required_recruits
from the_pyramid.store import NodeStore

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def build_store(recruits: int) -> NodeStore:
    store = NodeStore()
    store.add_node(PyramidNode(id="top", money=100.0))
    store.add_node(PyramidNode(id="mid", money=50.0), "top")
    store.add_node(
        PyramidNode(id="me", money=10.0, recruits=recruits, controller=Controller.PLAYER), "mid"
    )
    return store


def test_required_recruits_grow_toward_the_top() -> None:
    assert required_recruits(0) > required_recruits(1) > required_recruits(5)
    assert required_recruits(1) == 13
    assert required_recruits(0) == 15


def test_not_enough_recruits_is_ineligible() -> None:
    store = build_store(recruits=required_recruits(1) - 1)
    before = store.snapshot()
    result = move_up(store, "me", now=NOW)
    assert result.error == EngineError.INELIGIBLE
    assert "recruits" in result.reason
    assert dict(store) == dict(before)


def test_move_up_spends_recruits_and_swaps_with_upline() -> None:
    needed = required_recruits(1)
    store = build_store(recruits=needed + 2)

    result = move_up(store, "me", now=NOW)

    assert result.success
    assert result.recruits_spent == needed
    assert store["me"].recruits == 2
    assert store["me"].level == 1
    assert store["me"].parent_id == "top"
    assert store["mid"].parent_id == "me"
    assert store.player_id == "me"
    assert not result.reached_top
    store.check_invariants()


def test_reaching_the_top() -> None:
    store = build_store(recruits=100)
    move_up(store, "me", now=NOW)
    result = move_up(store, "me", now=NOW)
    assert result.reached_top
    assert result.new_root_id == "me"
    assert store.root_id == "me"
    store.check_invariants()


def test_root_and_missing_nodes_cannot_move_up() -> None:
    store = build_store(recruits=100)
    assert move_up(store, "top", now=NOW).error == EngineError.INELIGIBLE
    assert move_up(store, "ghost", now=NOW).error == EngineError.NOT_FOUND


def test_protected_upline_blocks_promotion() -> None:
    store = build_store(recruits=100)
    store["mid"].coup_cooldown = NOW + timedelta(seconds=5)
    assert move_up(store, "me", now=NOW).error == EngineError.INELIGIBLE
    assert move_up(store, "me", now=NOW + timedelta(seconds=6)).success
