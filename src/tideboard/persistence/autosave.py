"""Fire-and-forget persistence of board changes.

:class:`AutoSaver` subscribes to a :class:`BoardStore`. After each
mutation (already applied in memory) it takes a snapshot on the caller's
thread and hands the write to a single background worker. A failed write
is logged and dropped; the next mutation simply writes a newer snapshot.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

from loguru import logger

from ..board.engine import BoardStore
from ..config import get_autosave_config
from .interfaces import SnapshotError, SnapshotStore


class AutoSaver:
    """Persist snapshots of *store* into *snapshots* after every change."""

    def __init__(self, store: BoardStore, snapshots: SnapshotStore) -> None:
        self.store = store
        self.snapshots = snapshots
        self._pool: ThreadPoolExecutor | None = None
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.failures = 0

    def _get_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tideboard-save")
        return self._pool

    def start(self) -> "AutoSaver":
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)
        return self

    def stop(self, *, wait_for_pending: bool = True) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if wait_for_pending:
            self.flush()
        if self._pool is not None:
            self._pool.shutdown(wait=wait_for_pending)
            self._pool = None

    def __enter__(self) -> "AutoSaver":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _on_change(self, event_type: str, details: dict[str, Any]) -> None:
        self.schedule_save(reason=event_type)

    def schedule_save(self, *, reason: str = "manual") -> Future:
        snapshot = self.store.to_snapshot()
        future = self._get_pool().submit(self._write, snapshot, reason)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _write(self, snapshot: dict[str, Any], reason: str) -> bool:
        try:
            self.snapshots.save(snapshot)
        except Exception as exc:
            self.failures += 1
            logger.warning("Board snapshot save failed after {}: {}", reason, exc)
            return False
        return True

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every scheduled write has finished."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)


def open_board(
    snapshots: SnapshotStore,
    *,
    config: Optional[dict[str, Any]] = None,
) -> BoardStore:
    """Build a store from the last saved snapshot, or a fresh board.

    A snapshot that cannot be decoded is logged and ignored so the caller
    still gets a usable (empty) board; the damaged file is left untouched
    until the next save.
    """
    config = config or {}
    try:
        data = snapshots.load()
    except SnapshotError as exc:
        logger.error("Ignoring unreadable board snapshot: {}", exc)
        data = None
    fresh = BoardStore.from_config(config)
    if data is None:
        return fresh
    return BoardStore.from_snapshot(
        data,
        default_block_name=fresh.default_block_name,
        default_block_color=fresh.default_block_color,
    )


def attach_autosave(
    store: BoardStore,
    snapshots: SnapshotStore,
    config: Optional[dict[str, Any]] = None,
) -> Optional[AutoSaver]:
    """Start an :class:`AutoSaver` for *store* unless autosave is disabled."""
    if not get_autosave_config(config or {})["enabled"]:
        logger.info("Board autosave disabled by configuration")
        return None
    return AutoSaver(store, snapshots).start()
