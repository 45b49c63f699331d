"""Tests for investment eligibility, caps and application."""
from __future__ import annotations

import math

import pytest

from the_pyramid.config import get_settings
from the_pyramid.metrics import calculate_power
from the_pyramid.models import EngineError, PyramidNode
from the_pyramid.services.investment import can_invest_in, get_max_investment, invest
from the_pyramid.store import NodeStore


def build_store() -> NodeStore:
    """Two branches under a root so cross-branch investing is possible.

    root -> (left, right); left -> left_kid; right -> right_kid
    """

    store = NodeStore()
    store.add_node(PyramidNode(id="root", money=5000.0))
    store.add_node(PyramidNode(id="left", money=1000.0), "root")
    store.add_node(PyramidNode(id="right", money=800.0), "root")
    store.add_node(PyramidNode(id="left_kid", money=300.0), "left")
    store.add_node(PyramidNode(id="right_kid", money=400.0), "right")
    return store


def test_missing_nodes_are_not_found() -> None:
    store = build_store()
    result = can_invest_in(store, "left", "ghost")
    assert not result.allowed
    assert result.error == EngineError.NOT_FOUND


def test_cannot_invest_in_self() -> None:
    result = can_invest_in(build_store(), "left", "left")
    assert not result.allowed
    assert result.error == EngineError.INELIGIBLE


def test_cannot_invest_in_own_downline() -> None:
    store = build_store()
    eligibility = can_invest_in(store, "root", "left_kid")
    assert eligibility.allowed is False
    assert eligibility.reason

    before = store.snapshot()
    result = invest(store, "root", "left_kid", 10)
    assert not result.success
    assert result.error == EngineError.INELIGIBLE
    assert dict(store) == dict(before)


def test_cannot_invest_in_any_upline_ancestor() -> None:
    store = build_store()
    assert not can_invest_in(store, "left_kid", "left").allowed
    assert not can_invest_in(store, "left_kid", "root").allowed


def test_cross_branch_investment_is_allowed() -> None:
    store = build_store()
    assert can_invest_in(store, "left_kid", "right").allowed
    assert can_invest_in(store, "left", "right_kid").allowed


def test_tier_gate_names_required_rank() -> None:
    settings = get_settings()
    store = build_store()
    required = settings.required_tier(store["right"].level)
    assert required > 0

    denied = can_invest_in(store, "left_kid", "right", investor_tier=required - 1, settings=settings)
    assert not denied.allowed
    assert denied.error == EngineError.INELIGIBLE
    assert denied.required_tier == settings.tier_name(required)
    assert denied.required_tier in denied.reason
    assert denied.target_level == 1

    assert can_invest_in(store, "left_kid", "right", investor_tier=required, settings=settings).allowed


def test_max_investment_is_half_power_minus_pool() -> None:
    store = build_store()
    target = store["right"]
    cap = math.floor(calculate_power(target) * 0.5)
    assert get_max_investment(store, "left_kid", "right") == cap

    target.add_stake("someone_else", 100.0)
    cap = math.floor(calculate_power(target) * 0.5)
    assert get_max_investment(store, "left_kid", "right") == cap - 100


def test_own_stake_does_not_reduce_headroom() -> None:
    store = build_store()
    target = store["right"]
    target.add_stake("left_kid", 60.0)
    cap = math.floor(calculate_power(target) * 0.5)
    assert get_max_investment(store, "left_kid", "right") == cap
    assert get_max_investment(store, "left", "right") == cap - 60


def test_max_investment_for_missing_target_is_zero() -> None:
    assert get_max_investment(build_store(), "left", "ghost") == 0


def test_invest_moves_money_into_stake() -> None:
    store = build_store()
    investor, target = store["left_kid"], store["right"]
    value_before = store.total_value()

    result = invest(store, "left_kid", "right", 120)

    assert result.success
    assert investor.money == 180.0
    assert target.investors == {"left_kid": 120}
    assert target.investments_received == 120
    assert store.total_value() == pytest.approx(value_before)
    store.check_invariants()


def test_topping_up_accumulates_stake() -> None:
    store = build_store()
    invest(store, "left_kid", "right", 50)
    invest(store, "left_kid", "right", 25)
    assert store["right"].investors == {"left_kid": 75}
    assert store["right"].investments_received == 75


@pytest.mark.parametrize("amount", [0, -5, math.nan, math.inf])
def test_invalid_amounts_are_refused(amount) -> None:
    store = build_store()
    result = invest(store, "left_kid", "right", amount)
    assert result.error == EngineError.INVALID_AMOUNT
    assert store["left_kid"].money == 300.0
    assert store["right"].investors == {}


def test_insufficient_funds_leaves_store_untouched() -> None:
    store = build_store()
    before = store.snapshot()
    result = invest(store, "left_kid", "right", 301)
    assert result.error == EngineError.INSUFFICIENT_FUNDS
    assert dict(store) == dict(before)


def test_capacity_exceeded_reports_cap() -> None:
    store = build_store()
    store["left"].money = 100_000.0
    cap = get_max_investment(store, "left", "right_kid")
    result = invest(store, "left", "right_kid", cap + 1)
    assert result.error == EngineError.CAPACITY_EXCEEDED
    assert result.max_allowed == cap
    assert str(cap) in result.reason
    assert store["right_kid"].investments_received == 0


def test_validated_investment_never_exceeds_half_power() -> None:
    store = build_store()
    store["left"].money = 100_000.0
    cap = get_max_investment(store, "left", "right_kid")
    assert invest(store, "left", "right_kid", cap).success
    target = store["right_kid"]
    assert target.investments_received <= 0.5 * calculate_power(target)
    assert not invest(store, "left", "right_kid", get_max_investment(store, "left", "right_kid") + 1).success


def test_repeated_top_ups_stay_within_half_power() -> None:
    store = build_store()
    store["left_kid"].money = 100_000.0
    target = store["right"]

    amounts = []
    for _ in range(4):
        amount = get_max_investment(store, "left_kid", "right")
        amounts.append(amount)
        if amount:
            assert invest(store, "left_kid", "right", amount).success
        assert target.investments_received <= 0.5 * calculate_power(target)

    assert amounts == [400, 700, 500, 0]
    assert invest(store, "left_kid", "right", 1).error == EngineError.CAPACITY_EXCEEDED
