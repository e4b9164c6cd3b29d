"""Tests for the YAML snapshot store (persistence/file_store.py)."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from tideboard.board.engine import BoardStore
from tideboard.persistence.autosave import open_board
from tideboard.persistence.file_store import YamlSnapshotStore
from tideboard.persistence.interfaces import SnapshotError


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    d = tmp_path / ".tideboard"
    d.mkdir()
    return d


@pytest.fixture
def snapshots(state_dir: Path) -> YamlSnapshotStore:
    return YamlSnapshotStore(state_dir)


@pytest.fixture
def board() -> BoardStore:
    store = BoardStore()
    block = store.create_block("Work", "#123456")
    store.create_task("Open ended", block.id, start_date="2024-08-01")
    store.create_task(
        "Dentist", block.id, kind="appointment", start_date="2024-08-20", due_date="2024-08-20",
        appointment_time="15:00", column="to-do",
    )
    store.create_recurring_task("Gym", block.id, ["monday"], start_date="2024-08-01", recurring_time="07:00")
    return store


class TestYamlSnapshotStore:
    def test_missing_file_loads_none(self, snapshots: YamlSnapshotStore) -> None:
        assert snapshots.load() is None

    def test_round_trip(self, snapshots: YamlSnapshotStore, board: BoardStore) -> None:
        snapshots.save(board.to_snapshot())
        assert snapshots.path.exists()
        restored = BoardStore.from_snapshot(snapshots.load())
        original_tasks = board.state.all_tasks()
        restored_tasks = restored.state.all_tasks()
        assert restored_tasks == original_tasks
        assert restored_tasks[0].due_date is None
        assert restored_tasks[1].due_date == date(2024, 8, 20)
        assert restored_tasks[0].created_at == original_tasks[0].created_at
        assert list(restored.state.recurring_tasks.values()) == list(board.state.recurring_tasks.values())

    def test_save_creates_state_dir(self, tmp_path: Path, board: BoardStore) -> None:
        store = YamlSnapshotStore(tmp_path / "fresh" / ".tideboard")
        store.save(board.to_snapshot())
        assert store.load()["version"] == 1

    def test_malformed_yaml(self, snapshots: YamlSnapshotStore) -> None:
        snapshots.path.write_text("blocks: [unclosed\n", encoding="utf-8")
        with pytest.raises(SnapshotError):
            snapshots.load()

    def test_wrong_shape(self, snapshots: YamlSnapshotStore) -> None:
        snapshots.path.write_text("blocks: not-a-list\n", encoding="utf-8")
        with pytest.raises(SnapshotError, match="must be a list"):
            snapshots.load()

    def test_future_version(self, snapshots: YamlSnapshotStore) -> None:
        snapshots.path.write_text("version: 99\n", encoding="utf-8")
        with pytest.raises(SnapshotError, match="unsupported snapshot version"):
            snapshots.load()

    def test_top_level_list(self, snapshots: YamlSnapshotStore) -> None:
        snapshots.path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(SnapshotError, match="expected object"):
            snapshots.load()


class TestOpenBoard:
    def test_fresh_board_uses_config(self, snapshots: YamlSnapshotStore) -> None:
        store = open_board(snapshots, config={"default_block": {"name": "Inbox"}, "columns": ["Later", "Now"]})
        assert store.columns.ids() == ["backlog", "later", "now", "done"]
        assert store.ensure_default_block().name == "Inbox"

    def test_restores_saved_board(self, snapshots: YamlSnapshotStore, board: BoardStore) -> None:
        snapshots.save(board.to_snapshot())
        store = open_board(snapshots)
        assert [t.title for t in store.state.all_tasks()] == ["Open ended", "Dentist"]

    def test_unreadable_snapshot_gives_empty_board(self, snapshots: YamlSnapshotStore) -> None:
        snapshots.path.write_text("{{{", encoding="utf-8")
        store = open_board(snapshots)
        assert store.state.all_tasks() == []
        assert snapshots.path.read_text(encoding="utf-8") == "{{{"
