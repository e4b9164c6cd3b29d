"""Snapshot persistence for the board (load on start, fire-and-forget saves)."""
