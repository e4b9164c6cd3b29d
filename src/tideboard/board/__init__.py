"""Board core: tasks, blocks, columns, movement rules and recurrence.

The package exposes the in-memory model and the :class:`BoardStore`
aggregate; persistence and ingestion live in sibling packages and only
exchange snapshot-shaped data with it.
"""
