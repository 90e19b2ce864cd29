"""Tests for LabelSet: sentinel invariant, dynamic population, observers, policy."""

from __future__ import annotations

import pytest

from app.models.label import LabelEntry, LabelSetConfig
from app.services.label_set import (
    DynamicChildren,
    EmptySentinel,
    LabelSet,
    SelectionPolicy,
)

BRANDS = [{"value": "Big brand"}, {"value": "Another brand", "background": "orange"}]


def _config(**kwargs) -> LabelSetConfig:
    kwargs.setdefault("name", "product")
    kwargs.setdefault("to_name", "shelf")
    return LabelSetConfig(**kwargs)


def _static(*values: str) -> list[LabelEntry]:
    return [LabelEntry(id=i + 1, value=v) for i, v in enumerate(values)]


# ------------------------------------------------------------------
# Static children
# ------------------------------------------------------------------


class TestStaticChildren:
    def test_static_labels_in_order_without_sentinel(self) -> None:
        ls = LabelSet(
            _config(choice="multiple", allow_empty=False, children=_static("Brand", "Product"))
        )
        ls.initialize()
        assert [(c.id, c.value) for c in ls.children] == [(1, "Brand"), (2, "Product")]
        assert not any(c.is_empty for c in ls.children)

    def test_children_inherit_styling_defaults(self) -> None:
        entries = [LabelEntry(value="Brand"), LabelEntry(value="Product", fill_color="#000")]
        ls = LabelSet(_config(fill_color="#123456", stroke_width=3, children=entries))
        ls.initialize()
        assert ls.children[0].fill_color == "#123456"
        assert ls.children[0].stroke_width == 3
        assert ls.children[1].fill_color == "#000"
        assert all(c.parent == "product" for c in ls.children)

    def test_find_label_is_case_insensitive(self) -> None:
        ls = LabelSet(_config(children=_static("Brand")))
        ls.initialize()
        assert ls.find_label("brand").value == "Brand"
        assert ls.find_label("missing") is None
        assert ls.find_label(None) is None


# ------------------------------------------------------------------
# Sentinel invariant
# ------------------------------------------------------------------


class TestSentinel:
    @pytest.mark.parametrize("count", [0, 1, 5])
    def test_sentinel_present_once_and_first(self, count: int) -> None:
        values = [f"label {i}" for i in range(count)]
        ls = LabelSet(_config(allow_empty=True, children=_static(*values)))
        ls.initialize()
        assert ls.children[0].is_empty
        assert ls.children[0].value is None
        assert sum(c.is_empty for c in ls.children) == 1
        assert len(ls.children) == count + 1

    def test_sentinel_present_with_dynamic_children(self) -> None:
        ls = LabelSet(_config(value="$brands", allow_empty=True))
        ls.initialize({"brands": BRANDS})
        assert ls.children[0].is_empty
        assert [c.value for c in ls.labels] == ["Big brand", "Another brand"]

    def test_apply_sentinel_is_idempotent(self) -> None:
        ls = LabelSet(_config(allow_empty=True, children=_static("A")))
        ls.initialize()
        version = ls.version
        sentinel = ls.children[0]
        assert ls.apply_sentinel() is False
        assert ls.version == version
        assert ls.children[0] is sentinel

    def test_replace_children_moves_sentinel_to_front(self) -> None:
        ls = LabelSet(_config(allow_empty=True))
        ls.initialize()
        sentinel = ls.children[0]
        ls.replace_children([LabelEntry(value="A"), sentinel, EmptySentinel.make()])
        assert [c.is_empty for c in ls.children] == [True, False]
        assert ls.children[0].id == sentinel.id

    def test_sentinel_stripped_when_not_allowed(self) -> None:
        ls = LabelSet(_config(allow_empty=False))
        ls.replace_children([EmptySentinel.make(), LabelEntry(value="A")])
        assert [c.value for c in ls.children] == ["A"]

    def test_find_label_none_returns_sentinel(self) -> None:
        ls = LabelSet(_config(allow_empty=True))
        ls.initialize()
        assert ls.find_label(None) is ls.children[0]


# ------------------------------------------------------------------
# Dynamic population
# ------------------------------------------------------------------


class TestDynamicChildren:
    def test_dynamic_data_supersedes_static_children(self) -> None:
        ls = LabelSet(_config(value="$brands", children=_static("Static brand")))
        ls.initialize({"brands": BRANDS})
        assert [c.value for c in ls.children] == ["Big brand", "Another brand"]
        assert ls.children[1].background == "orange"
        assert ls.last_error is None

    def test_task_data_change_rederives_children(self) -> None:
        ls = LabelSet(_config(value="$brands"))
        ls.initialize({"brands": BRANDS})
        ls.update_task_data({"brands": [{"value": "Local brand", "alias": "L", "showAlias": True}]})
        assert [c.value for c in ls.children] == ["Local brand"]
        assert ls.children[0].alias == "L"
        assert ls.children[0].show_alias is True

    def test_nested_path(self) -> None:
        ls = LabelSet(_config(value="$meta.brands"))
        ls.initialize({"meta": {"brands": BRANDS}})
        assert len(ls.children) == 2

    @pytest.mark.parametrize(
        "task_data",
        [
            None,
            {},
            {"brands": "Big brand"},
            {"brands": {"value": "Big brand"}},
            {"brands": [{"alias": "no value"}]},
            {"brands": ["Big brand"]},
        ],
    )
    def test_bad_dynamic_field_falls_back_to_empty(self, task_data) -> None:
        ls = LabelSet(_config(value="$brands", allow_empty=True, children=_static("Static")))
        ls.initialize(task_data)
        assert ls.labels == []
        assert [c.is_empty for c in ls.children] == [True]
        assert ls.last_error is not None

    def test_static_set_ignores_task_data(self) -> None:
        ls = LabelSet(_config(children=_static("Brand")))
        ls.initialize()
        ls.update_task_data({"brands": BRANDS})
        assert [c.value for c in ls.children] == ["Brand"]

    def test_resolve_keeps_record_order(self) -> None:
        records = [{"value": f"v{i}"} for i in range(10)]
        entries = DynamicChildren("$items").resolve({"items": records})
        assert [e.value for e in entries] == [r["value"] for r in records]


# ------------------------------------------------------------------
# Observers
# ------------------------------------------------------------------


class TestObservers:
    def test_replace_children_notifies_once(self) -> None:
        ls = LabelSet(_config())
        seen: list[tuple] = []
        ls.subscribe(lambda s: seen.append(s.children))
        ls.replace_children(_static("A", "B", "C"))
        assert len(seen) == 1
        assert [c.value for c in seen[0]] == ["A", "B", "C"]

    def test_reentrant_mutation_is_deferred(self) -> None:
        ls = LabelSet(_config())
        observed: list[list[str]] = []

        def observer(s: LabelSet) -> None:
            observed.append([c.value for c in s.children])
            if s.labels and s.labels[0].value == "A":
                s.replace_children(_static("B"))
                # Still the first transition while this observer runs
                assert [c.value for c in s.children] == ["A"]

        ls.subscribe(observer)
        ls.replace_children(_static("A"))
        assert observed == [["A"], ["B"]]
        assert [c.value for c in ls.children] == ["B"]

    def test_unsubscribe(self) -> None:
        ls = LabelSet(_config())
        calls: list[int] = []
        unsubscribe = ls.subscribe(lambda s: calls.append(s.version))
        unsubscribe()
        ls.replace_children(_static("A"))
        assert calls == []


# ------------------------------------------------------------------
# Selection policy
# ------------------------------------------------------------------


class TestSelectionPolicy:
    def test_single_replaces_selection(self) -> None:
        a, b = _static("A", "B")
        policy = SelectionPolicy("single")
        assert policy.should_be_unselected is True
        assert policy.apply([a], b) == [b]

    def test_multiple_accumulates_without_duplicates(self) -> None:
        a, b = _static("A", "B")
        policy = SelectionPolicy("multiple")
        assert policy.should_be_unselected is False
        assert policy.apply([a], b) == [a, b]
        assert policy.apply([a, b], a) == [a, b]

    def test_max_usages_is_advisory(self) -> None:
        assert SelectionPolicy(max_usages=2).is_exhausted(2) is True
        assert SelectionPolicy(max_usages=2).is_exhausted(1) is False
        assert SelectionPolicy().is_exhausted(100) is False

    def test_label_set_exposes_mode(self) -> None:
        ls = LabelSet(_config(choice="multiple"))
        assert ls.selection_mode == "multiple"
        assert ls.should_be_unselected is False


def test_entry_rejects_null_value_outside_sentinel() -> None:
    with pytest.raises(ValueError):
        LabelEntry(value=None)
    with pytest.raises(ValueError):
        LabelEntry(value="A", is_empty=True)
