"""Tests for the column registry (board/columns.py)."""

from __future__ import annotations

import pytest

from tideboard.board.columns import ColumnRegistry, normalize_column_id
from tideboard.board.model import Column, Task


@pytest.fixture
def registry() -> ColumnRegistry:
    return ColumnRegistry()


class TestDefaults:
    def test_default_order(self, registry: ColumnRegistry) -> None:
        assert registry.ids() == ["backlog", "to-do", "in-progress", "done"]

    def test_fixed_columns(self, registry: ColumnRegistry) -> None:
        assert registry.get("backlog").fixed
        assert registry.get("done").fixed
        assert [c.id for c in registry.deletable()] == ["to-do", "in-progress"]

    def test_fixed_columns_are_always_present(self) -> None:
        registry = ColumnRegistry([Column(id="review", name="Review")])
        assert registry.ids() == ["backlog", "review", "done"]


class TestResolve:
    def test_by_id_and_name(self, registry: ColumnRegistry) -> None:
        assert registry.resolve("to-do").id == "to-do"
        assert registry.resolve("TO DO").id == "to-do"
        assert registry.resolve("In Progress").id == "in-progress"

    def test_unknown(self, registry: ColumnRegistry) -> None:
        assert registry.resolve("archive") is None
        assert registry.resolve("") is None
        assert registry.resolve(None) is None

    def test_normalize(self) -> None:
        assert normalize_column_id("  QA   Review ") == "qa-review"


class TestMutations:
    def test_add_column(self, registry: ColumnRegistry) -> None:
        col = registry.add_column("Review")
        assert col is not None
        assert col.id == "review"
        assert col.name == "Review"
        assert registry.ids()[-1] == "review"

    def test_add_rejects_blank_and_duplicates(self, registry: ColumnRegistry) -> None:
        assert registry.add_column("  ") is None
        assert registry.add_column("Done") is None
        assert registry.add_column("to do") is None

    def test_rename_retags_tasks_by_old_name(self, registry: ColumnRegistry) -> None:
        registry.add_column("Review")
        legacy = Task(title="legacy", column="Review")
        current = Task(title="current", column="review")
        other = Task(title="other", column="to-do")
        col = registry.rename_column("review", "Approval", [legacy, current, other])
        assert col.name == "Approval"
        assert legacy.column == "review"
        assert current.column == "review"
        assert other.column == "to-do"
        assert registry.resolve(legacy.column).name == "Approval"
        assert registry.resolve("approval").id == "review"

    def test_rename_rejects_blank(self, registry: ColumnRegistry) -> None:
        assert registry.rename_column("to-do", " ") is None
        assert registry.rename_column("nope", "x") is None

    def test_display_names_stay_unique(self, registry: ColumnRegistry) -> None:
        registry.rename_column("to-do", "Review")
        assert registry.add_column("Review") is None
        assert registry.add_column(" review ") is None
        assert registry.resolve("Review").id == "to-do"
        assert registry.rename_column("in-progress", "REVIEW") is None
        assert registry.rename_column("to-do", "review").name == "review"

    def test_reorder_requires_permutation(self, registry: ColumnRegistry) -> None:
        assert not registry.reorder_columns(["done", "backlog"])
        assert registry.reorder_columns(["done", "in-progress", "to-do", "backlog"])
        assert registry.ids() == ["done", "in-progress", "to-do", "backlog"]

    def test_move_column(self, registry: ColumnRegistry) -> None:
        assert registry.move_column("in-progress", "backlog")
        assert registry.ids() == ["in-progress", "backlog", "to-do", "done"]
        assert not registry.move_column("done", "done")
        assert not registry.move_column("ghost", "done")

    def test_remove_column_rehomes_tasks(self, registry: ColumnRegistry) -> None:
        task = Task(title="x", column="to-do")
        removed = registry.remove_column("to-do", [task])
        assert removed is not None
        assert "to-do" not in registry
        assert task.column == "backlog"

    def test_remove_fixed_column_refused(self, registry: ColumnRegistry) -> None:
        assert registry.remove_column("done") is None
        assert registry.remove_column("backlog") is None


class TestSerialization:
    def test_round_trip(self, registry: ColumnRegistry) -> None:
        registry.add_column("Review")
        registry.move_column("review", "to-do")
        restored = ColumnRegistry.from_list(registry.to_list())
        assert restored.ids() == registry.ids()
        assert restored.get("review").name == "Review"

    def test_empty_list_gives_defaults(self) -> None:
        assert ColumnRegistry.from_list([]).ids() == ["backlog", "to-do", "in-progress", "done"]
