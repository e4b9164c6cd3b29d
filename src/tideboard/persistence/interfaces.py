from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class SnapshotError(RuntimeError):
    """A stored snapshot exists but cannot be read back."""


class SnapshotStore(ABC):
    @abstractmethod
    def load(self) -> Optional[dict[str, Any]]:
        """Return the last saved snapshot, or None when nothing was saved yet."""
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: dict[str, Any]) -> None:
        raise NotImplementedError
