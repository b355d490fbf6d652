"""Change watcher that drives incremental re-indexing.

Design:
- A producer task runs watchfiles.awatch over an explicit directory list
  (one non-recursive watch per directory, pruned like a scan) and turns
  raw changes into typed ChangeEvents
- notify() is the single entry point for raw changes; it filters ignored
  paths, directories and non-indexable extensions, then enqueues
- One consumer task drains the asyncio.Queue, keeps the latest event per
  path, and dispatches a path once it has been quiet for the debounce
  window: add/change -> pipeline.update_file, remove -> pipeline.remove_file
- Subscribers registered with on() run after the pipeline call succeeds

The clock is injectable so debounce can be driven without real time via
flush_due().
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Protocol

import structlog
from watchfiles import Change, awatch

from codescope.config.models import WatcherConfig
from codescope.core.errors import CodeScopeError
from codescope.core.languages import is_indexable
from codescope.index._internal.ignore import IgnoreChecker

logger = structlog.get_logger()

Clock = Callable[[], float]
Subscriber = Callable[["ChangeEvent"], Awaitable[None] | None]

_RESTART_BACKOFF_SEC = 1.0


class ChangeKind(str, Enum):
    """Kind of file change delivered to the pipeline and subscribers."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


_FROM_WATCHFILES: dict[Change, ChangeKind] = {
    Change.added: ChangeKind.ADD,
    Change.modified: ChangeKind.CHANGE,
    Change.deleted: ChangeKind.REMOVE,
}


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A filtered change to one file. path is absolute."""

    kind: ChangeKind
    path: Path
    timestamp: float


class WatcherState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PipelineTarget(Protocol):
    """The part of IndexingPipeline the watcher drives."""

    async def update_file(self, path: Path, root: Path) -> object: ...

    async def remove_file(self, path: Path, root: Path) -> object: ...


@dataclass
class WatcherStats:
    """Counters since the watcher was created."""

    received: int = 0
    queued: int = 0
    ignored: int = 0
    dropped: int = 0
    dispatched: int = 0
    errors: int = 0
    discarded: int = 0
    pending: int = 0


def _collect_watch_dirs(root: Path, ignore_checker: IgnoreChecker) -> list[Path]:
    """Walk the tree and collect every directory to watch, root included.

    Pruned directories (VCS internals, dependency caches) are never watched.
    """
    dirs: list[Path] = [root]
    try:
        for dirpath, dirnames, _filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if not ignore_checker.should_prune_dir(d)]
            dirs.extend(Path(dirpath) / d for d in dirnames)
    except OSError as e:
        logger.warning("watch_dir_walk_failed", root=str(root), error=str(e))
    return dirs


class ChangeWatcher:
    """Watches a repository and keeps the index current.

    Usage::

        watcher = ChangeWatcher(repo_root, pipeline, config.watcher)
        unsubscribe = watcher.on(ChangeKind.CHANGE, lambda event: print(event.path))
        await watcher.start()
        # ... later ...
        await watcher.stop()
    """

    def __init__(
        self,
        root: Path,
        pipeline: PipelineTarget,
        config: WatcherConfig | None = None,
        *,
        ignore_patterns: list[str] | None = None,
        clock: Clock = time.monotonic,
        watch_filesystem: bool = True,
    ) -> None:
        self._root = root.resolve()
        self._pipeline = pipeline
        self._config = config or WatcherConfig()
        self._clock = clock
        self._watch_filesystem = watch_filesystem
        self._ignore_checker = IgnoreChecker(
            self._root, [*(ignore_patterns or []), *self._config.ignore_patterns]
        )

        self._state = WatcherState.STOPPED
        self._paused = False
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self._config.max_queue_size)
        self._pending: dict[Path, tuple[ChangeEvent, float]] = {}
        self._subscribers: dict[ChangeKind, list[Subscriber]] = {kind: [] for kind in ChangeKind}
        self._stats = WatcherStats()

        self._stop_event = asyncio.Event()
        self._dispatch_lock = asyncio.Lock()
        self._watch_task: asyncio.Task[None] | None = None
        self._consume_task: asyncio.Task[None] | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is WatcherState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._paused

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start watching. A second call while running only warns."""
        if self._state is WatcherState.RUNNING:
            logger.warning("watcher_already_running", root=str(self._root))
            return

        self._stop_event.clear()
        self._paused = False
        self._state = WatcherState.RUNNING
        self._consume_task = asyncio.create_task(self._consume_loop())
        if self._watch_filesystem:
            self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info(
            "watcher_started",
            root=str(self._root),
            debounce_sec=self._config.debounce_sec,
            filesystem=self._watch_filesystem,
        )

    async def stop(self) -> None:
        """Stop watching.

        The file being dispatched, if any, completes first. Events still
        queued or waiting out their debounce window are discarded.
        """
        if self._state is WatcherState.STOPPED:
            logger.warning("watcher_not_running", root=str(self._root))
            return

        self._state = WatcherState.STOPPED
        self._stop_event.set()

        # Let the in-flight dispatch finish
        async with self._dispatch_lock:
            pass

        for task in (self._watch_task, self._consume_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._watch_task = None
        self._consume_task = None

        discarded = len(self._pending)
        while not self._queue.empty():
            self._queue.get_nowait()
            discarded += 1
        self._pending.clear()
        self._stats.discarded += discarded
        logger.info("watcher_stopped", root=str(self._root), discarded=discarded)

    def pause(self) -> None:
        """Drop incoming events until resume()."""
        if not self._paused:
            self._paused = True
            logger.info("watcher_paused", root=str(self._root))

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            logger.info("watcher_resumed", root=str(self._root))

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def on(self, kind: ChangeKind, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for one change kind. Returns an unsubscribe function."""
        self._subscribers[kind].append(callback)

        def unsubscribe() -> None:
            self.off(kind, callback)

        return unsubscribe

    def off(self, kind: ChangeKind, callback: Subscriber) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers[kind].remove(callback)

    # =========================================================================
    # Event intake
    # =========================================================================

    def notify(self, change: ChangeKind | Change, path: Path | str) -> bool:
        """Feed one raw change. Returns True if it was queued."""
        self._stats.received += 1
        if self._state is not WatcherState.RUNNING or self._paused:
            self._stats.dropped += 1
            return False

        kind = _FROM_WATCHFILES[change] if isinstance(change, Change) else change
        path = Path(path)
        if not path.is_absolute():
            path = self._root / path

        if path.is_dir():
            logger.debug("directory_event", kind=kind.value, path=str(path))
            return False
        if self._ignore_checker.should_ignore(path) or not is_indexable(path):
            self._stats.ignored += 1
            return False

        try:
            self._queue.put_nowait(ChangeEvent(kind=kind, path=path, timestamp=self._clock()))
        except asyncio.QueueFull:
            self._stats.dropped += 1
            logger.warning("watcher_queue_full", path=str(path), dropped=self._stats.dropped)
            return False
        self._stats.queued += 1
        return True

    def _absorb_queued(self) -> None:
        while not self._queue.empty():
            self._absorb(self._queue.get_nowait())

    def _absorb(self, event: ChangeEvent) -> None:
        # Latest kind wins; the quiet window restarts on every event
        self._pending[event.path] = (event, self._clock())

    def _seconds_until_due(self) -> float | None:
        if not self._pending:
            return None
        oldest = min(seen for _, seen in self._pending.values())
        return max(0.0, oldest + self._config.debounce_sec - self._clock())

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def flush_due(self) -> int:
        """Dispatch every path that has been quiet for the debounce window.

        Returns the number of paths dispatched.
        """
        self._absorb_queued()
        now = self._clock()
        due = [
            event
            for event, seen in self._pending.values()
            if now - seen >= self._config.debounce_sec
        ]
        dispatched = 0
        for event in due:
            if self._stop_event.is_set():
                break
            current = self._pending.get(event.path)
            if current is None or current[0] is not event:
                continue
            del self._pending[event.path]
            async with self._dispatch_lock:
                await self._dispatch(event)
            dispatched += 1
        return dispatched

    async def _dispatch(self, event: ChangeEvent) -> None:
        try:
            if event.kind is ChangeKind.REMOVE:
                await self._pipeline.remove_file(event.path, self._root)
            else:
                await self._pipeline.update_file(event.path, self._root)
        except CodeScopeError as e:
            self._stats.errors += 1
            logger.warning(
                "watcher_update_failed", path=str(event.path), error=e.message, code=e.error_name
            )
            return
        except OSError as e:
            # Filesystem errors (permission denied, file vanished mid-read)
            self._stats.errors += 1
            logger.warning("watcher_update_os_error", path=str(event.path), error=str(e))
            return
        except Exception as e:
            self._stats.errors += 1
            logger.error(
                "watcher_update_unexpected_error",
                path=str(event.path),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return

        self._stats.dispatched += 1
        logger.debug("watcher_dispatched", kind=event.kind.value, path=str(event.path))
        await self._emit(event)

    async def _emit(self, event: ChangeEvent) -> None:
        for callback in list(self._subscribers[event.kind]):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "watcher_subscriber_error",
                    kind=event.kind.value,
                    path=str(event.path),
                    error=str(e),
                    exc_info=True,
                )

    async def _consume_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                timeout = self._seconds_until_due()
                try:
                    if timeout is None:
                        event = await self._queue.get()
                    else:
                        event = await asyncio.wait_for(self._queue.get(), timeout)
                except TimeoutError:
                    pass
                else:
                    self._absorb(event)
                await self.flush_due()
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # Filesystem producer
    # =========================================================================

    async def _watch_loop(self) -> None:
        """Run awatch over the collected directories, restarting when new ones appear."""
        try:
            while not self._stop_event.is_set():
                watch_dirs = _collect_watch_dirs(self._root, self._ignore_checker)
                logger.debug("watch_dirs_collected", count=len(watch_dirs), root=str(self._root))
                try:
                    async for changes in awatch(
                        *watch_dirs,
                        recursive=False,
                        stop_event=self._stop_event,
                        ignore_permission_denied=True,
                    ):
                        if self._handle_changes(changes):
                            logger.info("watcher_restart_requested", reason="new_directories")
                            break
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    if self._stop_event.is_set():
                        return
                    logger.error("watcher_error", error=str(e))
                    await asyncio.sleep(_RESTART_BACKOFF_SEC)
        except asyncio.CancelledError:
            pass

    def _handle_changes(self, changes: set[tuple[Change, str]]) -> bool:
        """Forward raw changes; True if a new directory needs watching."""
        needs_restart = False
        for change, raw_path in changes:
            path = Path(raw_path)
            if (
                change is Change.added
                and path.is_dir()
                and not self._ignore_checker.should_prune_dir(path.name)
            ):
                needs_restart = True
            self.notify(change, path)
        return needs_restart

    def stats(self) -> WatcherStats:
        self._stats.pending = len(self._pending) + self._queue.qsize()
        return replace(self._stats)
