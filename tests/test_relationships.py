"""Tests for sibling, downline and upline queries."""
from __future__ import annotations

import pytest

from the_pyramid.models import PyramidNode
from the_pyramid.relationships import (
    get_downline,
    get_siblings,
    get_upline,
    is_upline_of,
    node_depth,
)
from the_pyramid.store import NodeStore, TreeCorruptionError


def build_store() -> NodeStore:
    """root -> (a, b); a -> (a1, a2); a1 -> a1x"""

    store = NodeStore()
    store.add_node(PyramidNode(id="root"))
    for node_id, parent in [("a", "root"), ("b", "root"), ("a1", "a"), ("a2", "a"), ("a1x", "a1")]:
        store.add_node(PyramidNode(id=node_id), parent)
    return store


def test_siblings_exclude_self() -> None:
    store = build_store()
    assert get_siblings(store, "a1") == ["a2"]
    assert get_siblings(store, "a") == ["b"]


def test_siblings_of_root_or_missing_node_are_empty() -> None:
    store = build_store()
    assert get_siblings(store, "root") == []
    assert get_siblings(store, "ghost") == []


def test_downline_is_breadth_first_and_complete() -> None:
    store = build_store()
    assert get_downline(store, "root") == ["a", "b", "a1", "a2", "a1x"]
    assert get_downline(store, "a2") == []
    assert get_downline(store, "ghost") == []


def test_downline_terminates_on_manufactured_cycle() -> None:
    store = build_store()
    store["a1x"].child_ids.append("a")
    downline = get_downline(store, "a")
    assert len(downline) == len(set(downline))
    assert set(downline) == {"a1", "a2", "a1x"}


def test_downline_skips_dangling_children() -> None:
    store = build_store()
    store["b"].child_ids.append("vanished")
    assert "vanished" not in get_downline(store, "root")


def test_upline_nearest_first() -> None:
    store = build_store()
    assert get_upline(store, "a1x") == ["a1", "a", "root"]
    assert is_upline_of(store, "root", "a1x")
    assert not is_upline_of(store, "b", "a1x")
    assert node_depth(store, "a1x") == 3
    assert node_depth(store, "root") == 0


def test_upline_cycle_is_fatal() -> None:
    store = build_store()
    store["root"].parent_id = "a1x"
    with pytest.raises(TreeCorruptionError):
        get_upline(store, "a1")
