"""Provide the public `tideboard` package exports."""

from __future__ import annotations

from .board.engine import BoardStore
from .board.state import BoardState

__all__ = ["BoardStore", "BoardState"]
