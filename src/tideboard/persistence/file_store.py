"""File-based board snapshot store.

Stores the whole board in a single YAML file (``board.yaml``) inside the
project's ``.tideboard/`` directory. Reads and writes hold an exclusive
file lock; writes go to a temp file that is then renamed into place.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..constants import SNAPSHOT_FILE, SNAPSHOT_LOCK_FILE, SNAPSHOT_VERSION
from ..io_utils import FileLock, _atomic_write_yaml, _load_data_with_error
from .interfaces import SnapshotError, SnapshotStore


def _validate_snapshot(data: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    version = data.get("version", SNAPSHOT_VERSION)
    if not isinstance(version, int) or version > SNAPSHOT_VERSION:
        errors.append(f"unsupported snapshot version {version!r}")
    for key in ("columns", "blocks", "recurring_tasks"):
        value = data.get(key)
        if value is not None and not isinstance(value, list):
            errors.append(f"'{key}' must be a list")
    return errors


class YamlSnapshotStore(SnapshotStore):
    """Persist board snapshots as YAML.

    Parameters
    ----------
    state_dir:
        Path to the ``.tideboard/`` directory.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir
        self._path = state_dir / SNAPSHOT_FILE
        self._lock = FileLock(state_dir / SNAPSHOT_LOCK_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[dict[str, Any]]:
        with self._lock:
            if not self._path.exists():
                return None
            data, err = _load_data_with_error(self._path, {})
        if err:
            raise SnapshotError(err)
        problems = _validate_snapshot(data)
        if problems:
            raise SnapshotError(f"{self._path.name}: " + "; ".join(problems))
        logger.debug("Loaded board snapshot from {}", self._path)
        return data

    def save(self, snapshot: dict[str, Any]) -> None:
        payload = dict(snapshot)
        payload.setdefault("version", SNAPSHOT_VERSION)
        with self._lock:
            _atomic_write_yaml(self._path, payload)
        logger.debug("Saved board snapshot to {}", self._path)
