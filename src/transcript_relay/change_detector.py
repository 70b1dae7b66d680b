"""Polling change detection for transcript directories.

The detector walks the watched root with watchdog's ``DirectorySnapshot``
and diffs consecutive snapshots. Polling behaves identically on every OS,
and a change is only reported once the file's size and mtime have held
still for a quiet period, so a burst of writes produces one event.

The detector becomes ready as soon as the startup enumeration completes.
The first event for a file found by that enumeration is tagged historical
(``live=False``); every other event is live.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from watchdog.utils.dirsnapshot import (
    DirectorySnapshot,
    DirectorySnapshotDiff,
    EmptyDirectorySnapshot,
)

from .config import TRANSCRIPT_SUFFIX
from .models import FileEvent, FileEventKind

logger = logging.getLogger(__name__)

EventCallback = Callable[[FileEvent], Awaitable[None]]


@dataclass
class PendingChange:
    """A change waiting for its file to stop changing.

    Attributes:
        kind: Event kind to emit once stable.
        signature: Last observed (size, mtime).
        since: Clock time at which ``signature`` was first observed.
    """

    kind: FileEventKind
    signature: tuple[int, float] | None
    since: float


class ChangeDetector:
    """Watches a directory tree for ``*.jsonl`` changes by polling.

    Example:
        >>> async def on_event(event: FileEvent) -> None:
        ...     print(event.kind, event.path, event.live)
        >>> detector = ChangeDetector("/path/to/sessions", on_event)
        >>> await detector.start()
        >>> await detector.ready.wait()
        >>> await detector.stop()
    """

    def __init__(
        self,
        root: str | Path,
        on_event: EventCallback,
        suffix: str = TRANSCRIPT_SUFFIX,
        poll_interval: float = 0.5,
        stability_threshold: float = 0.5,
        stability_poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the detector.

        Args:
            root: Directory to watch recursively.
            on_event: Coroutine called for every event, awaited in order.
            suffix: File name suffix to watch.
            poll_interval: Seconds between polls when nothing is settling.
            stability_threshold: Seconds a file must stay unchanged before
                its change is reported.
            stability_poll_interval: Seconds between polls while changes
                are settling.
            clock: Monotonic clock used for stability timing.
        """
        self.root = Path(root).resolve()
        self.on_event = on_event
        self.suffix = suffix
        self.poll_interval = poll_interval
        self.stability_threshold = stability_threshold
        self.stability_poll_interval = stability_poll_interval
        self.clock = clock

        self.ready = asyncio.Event()
        self._snapshot: DirectorySnapshot | EmptyDirectorySnapshot | None = None
        self._pending: dict[str, PendingChange] = {}
        self._initial: set[str] = set()
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def is_ready(self) -> bool:
        return self.ready.is_set()

    def _matches(self, path: str) -> bool:
        return path.endswith(self.suffix)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start polling in a background task.

        Raises:
            RuntimeError: If the detector is already running.
        """
        if self._running:
            raise RuntimeError("ChangeDetector is already running")

        logger.info(f"Watching {self.root / '**' / ('*' + self.suffix)}")
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop polling; no further events are delivered."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except TimeoutError:
                logger.warning("Change detector did not stop within timeout")
            except asyncio.CancelledError:
                logger.debug("Change detector task cancelled")
            self._task = None

        logger.info("Change detector stopped")

    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _take_snapshot(self) -> DirectorySnapshot | EmptyDirectorySnapshot:
        if not self.root.is_dir():
            return EmptyDirectorySnapshot()
        return DirectorySnapshot(str(self.root), recursive=True)

    def _signature(self, path: str) -> tuple[int, float] | None:
        snapshot = self._snapshot
        if snapshot is None or path not in snapshot.paths:
            return None
        st = snapshot.stat_info(path)
        return st.st_size, st.st_mtime

    async def _run(self) -> None:
        await self.scan_initial()

        while self._running:
            interval = self.stability_poll_interval if self._pending else self.poll_interval
            await asyncio.sleep(interval)
            await self.poll_once()

    async def scan_initial(self) -> None:
        """Enumerate the tree, queue every transcript as backlog, set ready.

        Each enumerated file is still emitted only once it has settled,
        and that first event carries ``live=False``.
        """
        try:
            self._snapshot = await asyncio.to_thread(self._take_snapshot)
        except OSError as e:
            logger.error(f"Watcher error: {e}")
            self._snapshot = EmptyDirectorySnapshot()

        now = self.clock()
        for path in sorted(self._snapshot.paths):
            if self._matches(path) and not self._snapshot.isdir(path):
                self._queue(path, FileEventKind.ADDED, now)
                self._initial.add(path)
        logger.debug(f"Initial scan found {len(self._initial)} transcript files")
        if not self.is_ready:
            self.ready.set()
            logger.info("Initial scan completed. Live messages will be sent from now on.")

    async def poll_once(self) -> None:
        """Take a snapshot, queue the differences, emit settled changes."""
        try:
            snapshot = await asyncio.to_thread(self._take_snapshot)
        except OSError as e:
            logger.error(f"Watcher error: {e}")
            return

        previous = self._snapshot or EmptyDirectorySnapshot()
        self._snapshot = snapshot
        diff = DirectorySnapshotDiff(previous, snapshot)
        now = self.clock()

        created = set(diff.files_created)
        deleted = set(diff.files_deleted)
        for src, dest in diff.files_moved:
            deleted.add(src)
            created.add(dest)

        # Deleted and recreated within one poll: an atomic replace.
        replaced = created & deleted
        for path in sorted(replaced):
            if self._matches(path):
                self._queue(path, FileEventKind.CHANGED, now)

        for path in sorted(deleted - replaced):
            if self._matches(path):
                await self._emit_removed(path)

        for path in sorted(created - replaced):
            if self._matches(path):
                self._queue(path, FileEventKind.ADDED, now)

        for path in sorted(diff.files_modified):
            if self._matches(path):
                self._queue(path, FileEventKind.CHANGED, now)

        await self._emit_settled(now)

    def _queue(self, path: str, kind: FileEventKind, now: float) -> None:
        pending = self._pending.get(path)
        if pending is not None and pending.kind == FileEventKind.ADDED:
            kind = FileEventKind.ADDED
        self._pending[path] = PendingChange(kind=kind, signature=self._signature(path), since=now)

    async def _emit_settled(self, now: float) -> None:
        for path in sorted(self._pending):
            pending = self._pending.get(path)
            if pending is None:
                continue

            signature = self._signature(path)
            if signature is None:
                # Vanished before settling; the deletion is reported separately.
                del self._pending[path]
                self._initial.discard(path)
                continue
            if signature != pending.signature:
                pending.signature = signature
                pending.since = now
                continue
            if now - pending.since < self.stability_threshold:
                continue

            del self._pending[path]
            await self._emit(FileEvent(kind=pending.kind, path=path, live=self._is_live(path)))
            self._initial.discard(path)

    def _is_live(self, path: str) -> bool:
        # Backlog is per file: only a startup file's first event is historical.
        return self.is_ready and path not in self._initial

    async def _emit_removed(self, path: str) -> None:
        self._pending.pop(path, None)
        live = self._is_live(path)
        self._initial.discard(path)
        await self._emit(FileEvent(kind=FileEventKind.REMOVED, path=path, live=live))

    async def _emit(self, event: FileEvent) -> None:
        logger.debug(f"{event.kind.value}: {event.path} (live={event.live})")
        try:
            await self.on_event(event)
        except Exception as e:
            logger.error(f"Error handling {event.kind.value} event for {event.path}: {e}")
