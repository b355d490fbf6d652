"""Filesystem change watching for incremental re-indexing."""

from codescope.index._internal.watcher.watcher import (
    ChangeEvent,
    ChangeKind,
    ChangeWatcher,
    WatcherState,
    WatcherStats,
)

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "ChangeWatcher",
    "WatcherState",
    "WatcherStats",
]
