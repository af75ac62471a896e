"""Conversation persistence: JSON snapshots."""

from nanocode.session.snapshot import (
    Snapshot,
    SnapshotError,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "Snapshot",
    "SnapshotError",
    "load_snapshot",
    "save_snapshot",
]
