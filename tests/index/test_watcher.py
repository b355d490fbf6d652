"""Tests for ChangeWatcher - filtering, debounce and dispatch."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from watchfiles import Change

from codescope.config.models import WatcherConfig
from codescope.core.errors import NotFoundError
from codescope.index._internal.watcher.watcher import (
    ChangeEvent,
    ChangeKind,
    ChangeWatcher,
    WatcherState,
)

DEBOUNCE = 10.0


@pytest.fixture
def root(repo_root: Path) -> Path:
    """Resolved repository root, matching the path form the watcher reports."""
    return repo_root.resolve()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _pipeline() -> MagicMock:
    pipeline = MagicMock()
    pipeline.update_file = AsyncMock(return_value=None)
    pipeline.remove_file = AsyncMock(return_value=True)
    return pipeline


def _watcher(
    root: Path, pipeline: MagicMock, clock: FakeClock, **config: object
) -> ChangeWatcher:
    return ChangeWatcher(
        root,
        pipeline,
        WatcherConfig(debounce_sec=DEBOUNCE, **config),  # type: ignore[arg-type]
        clock=clock,
        watch_filesystem=False,
    )


@contextlib.asynccontextmanager
async def running(watcher: ChangeWatcher) -> AsyncIterator[ChangeWatcher]:
    await watcher.start()
    try:
        yield watcher
    finally:
        if watcher.is_running:
            await watcher.stop()


class TestFiltering:
    """What notify() accepts."""

    @pytest.mark.asyncio
    async def test_dropped_when_not_running(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock())
        assert watcher.notify(ChangeKind.CHANGE, root / "a.py") is False
        assert watcher.stats().dropped == 1

    @pytest.mark.asyncio
    async def test_ignored_and_non_indexable_paths(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock())
        async with running(watcher):
            assert watcher.notify(ChangeKind.CHANGE, root / "node_modules" / "x" / "i.js") is False
            assert watcher.notify(ChangeKind.CHANGE, root / "image.png") is False
            assert watcher.notify(ChangeKind.CHANGE, "/elsewhere/a.py") is False
            assert watcher.notify(ChangeKind.CHANGE, root / "src" / "a.py") is True

            stats = watcher.stats()
            assert stats.ignored == 3
            assert stats.queued == 1

    @pytest.mark.asyncio
    async def test_watcher_ignore_patterns(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock(), ignore_patterns=["gen/"])
        async with running(watcher):
            assert watcher.notify(ChangeKind.ADD, root / "gen" / "out.py") is False
            assert watcher.notify(ChangeKind.ADD, "lib/ok.py") is True

    @pytest.mark.asyncio
    async def test_directory_events_not_queued(self, root: Path) -> None:
        (root / "pkg").mkdir()
        watcher = _watcher(root, _pipeline(), FakeClock())
        async with running(watcher):
            assert watcher.notify(ChangeKind.ADD, root / "pkg") is False
            stats = watcher.stats()
            assert stats.queued == 0
            assert stats.ignored == 0

    @pytest.mark.asyncio
    async def test_watchfiles_change_types_accepted(self, root: Path) -> None:
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)
        async with running(watcher):
            assert watcher.notify(Change.deleted, root / "a.py") is True
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            assert await watcher.flush_due() == 1
        pipeline.remove_file.assert_awaited_once_with(root / "a.py", watcher.root)

    @pytest.mark.asyncio
    async def test_full_queue_drops(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock(), max_queue_size=1)
        async with running(watcher):
            assert watcher.notify(ChangeKind.CHANGE, root / "a.py") is True
            assert watcher.notify(ChangeKind.CHANGE, root / "b.py") is False
            assert watcher.stats().dropped == 1


class TestDebounce:
    """Quiet-window collapsing and dispatch."""

    @pytest.mark.asyncio
    async def test_change_dispatched_once_after_quiet_window(self, root: Path) -> None:
        """A source change plus an ignored dependency change yields one update."""
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)
        target = root / "src" / "app.js"

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, target)
            watcher.notify(ChangeKind.CHANGE, root / "node_modules" / "lib" / "index.js")
            assert await watcher.flush_due() == 0

            clock.advance(DEBOUNCE)
            assert await watcher.flush_due() == 1

        pipeline.update_file.assert_awaited_once_with(target, watcher.root)
        pipeline.remove_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rapid_writes_collapse(self, root: Path) -> None:
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)

        async with running(watcher):
            for _ in range(3):
                watcher.notify(ChangeKind.CHANGE, root / "a.py")
                assert await watcher.flush_due() == 0
                clock.advance(DEBOUNCE / 2)

            # Last write was only half a window ago
            assert await watcher.flush_due() == 0
            clock.advance(DEBOUNCE / 2)
            assert await watcher.flush_due() == 1
            assert await watcher.flush_due() == 0

        assert pipeline.update_file.await_count == 1

    @pytest.mark.asyncio
    async def test_latest_kind_wins(self, root: Path) -> None:
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)

        async with running(watcher):
            watcher.notify(ChangeKind.ADD, root / "a.py")
            watcher.notify(ChangeKind.REMOVE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            await watcher.flush_due()

        pipeline.remove_file.assert_awaited_once()
        pipeline.update_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paths_dispatched_independently(self, root: Path) -> None:
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE / 2)
            watcher.notify(ChangeKind.CHANGE, root / "b.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE / 2)

            assert await watcher.flush_due() == 1
            assert watcher.stats().pending == 1

        called = [c.args[0].name for c in pipeline.update_file.await_args_list]
        assert called == ["a.py"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock())
        assert watcher.state is WatcherState.STOPPED

        await watcher.start()
        await watcher.start()
        assert watcher.is_running

        await watcher.stop()
        await watcher.stop()
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_discards_pending_events(self, root: Path) -> None:
        pipeline = _pipeline()
        watcher = _watcher(root, pipeline, FakeClock())

        await watcher.start()
        watcher.notify(ChangeKind.CHANGE, root / "a.py")
        await watcher.flush_due()
        watcher.notify(ChangeKind.CHANGE, root / "b.py")
        await watcher.stop()

        stats = watcher.stats()
        assert stats.discarded == 2
        assert stats.pending == 0
        pipeline.update_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pause_drops_events(self, root: Path) -> None:
        watcher = _watcher(root, _pipeline(), FakeClock())
        async with running(watcher):
            watcher.pause()
            assert watcher.is_paused
            assert watcher.notify(ChangeKind.CHANGE, root / "a.py") is False

            watcher.resume()
            assert watcher.notify(ChangeKind.CHANGE, root / "a.py") is True
            assert watcher.stats().dropped == 1

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, root: Path) -> None:
        pipeline = _pipeline()
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)
        await watcher.start()
        await watcher.stop()

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            assert await watcher.flush_due() == 1


class TestSubscriptions:
    """Callbacks registered with on()."""

    @pytest.mark.asyncio
    async def test_sync_and_async_callbacks(self, root: Path) -> None:
        clock = FakeClock()
        watcher = _watcher(root, _pipeline(), clock)
        seen: list[ChangeEvent] = []
        async_callback = AsyncMock()

        watcher.on(ChangeKind.CHANGE, seen.append)
        watcher.on(ChangeKind.CHANGE, async_callback)
        removed: list[ChangeEvent] = []
        watcher.on(ChangeKind.REMOVE, removed.append)

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            await watcher.flush_due()

        assert [e.path.name for e in seen] == ["a.py"]
        assert seen[0].kind is ChangeKind.CHANGE
        async_callback.assert_awaited_once_with(seen[0])
        assert removed == []

    @pytest.mark.asyncio
    async def test_unsubscribe_and_off(self, root: Path) -> None:
        clock = FakeClock()
        watcher = _watcher(root, _pipeline(), clock)
        first: list[ChangeEvent] = []
        second: list[ChangeEvent] = []

        unsubscribe = watcher.on(ChangeKind.ADD, first.append)
        watcher.on(ChangeKind.ADD, second.append)
        unsubscribe()
        watcher.off(ChangeKind.ADD, second.append)
        unsubscribe()  # second call is a no-op

        async with running(watcher):
            watcher.notify(ChangeKind.ADD, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            await watcher.flush_due()

        assert first == []
        assert second == []

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_count_as_error(self, root: Path) -> None:
        clock = FakeClock()
        watcher = _watcher(root, _pipeline(), clock)

        def broken(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        later: list[ChangeEvent] = []
        watcher.on(ChangeKind.CHANGE, broken)
        watcher.on(ChangeKind.CHANGE, later.append)

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            await watcher.flush_due()

        stats = watcher.stats()
        assert stats.dispatched == 1
        assert stats.errors == 0
        assert len(later) == 1


class TestDispatchErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [NotFoundError.file("a.py"), PermissionError("denied"), RuntimeError("unexpected")],
    )
    async def test_errors_counted_and_subscribers_skipped(
        self, root: Path, error: Exception
    ) -> None:
        pipeline = _pipeline()
        pipeline.update_file.side_effect = error
        clock = FakeClock()
        watcher = _watcher(root, pipeline, clock)
        seen: list[ChangeEvent] = []
        watcher.on(ChangeKind.CHANGE, seen.append)

        async with running(watcher):
            watcher.notify(ChangeKind.CHANGE, root / "a.py")
            await watcher.flush_due()
            clock.advance(DEBOUNCE)
            assert await watcher.flush_due() == 1

        stats = watcher.stats()
        assert stats.errors == 1
        assert stats.dispatched == 0
        assert seen == []


@pytest.mark.integration
class TestFilesystemWatching:
    """End-to-end with real filesystem notifications."""

    @pytest.mark.asyncio
    async def test_file_write_triggers_update(self, root: Path) -> None:
        pipeline = _pipeline()
        watcher = ChangeWatcher(root, pipeline, WatcherConfig(debounce_sec=0.05))

        async with running(watcher):
            # Give the watch a moment to register
            await asyncio.sleep(0.5)
            (root / "fresh.py").write_text("x = 1\n")

            for _ in range(200):
                if pipeline.update_file.await_count:
                    break
                await asyncio.sleep(0.05)

        assert pipeline.update_file.await_count >= 1
        assert pipeline.update_file.await_args.args[0].name == "fresh.py"
