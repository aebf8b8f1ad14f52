"""
File watcher for the server configuration file.

Monitors the file for changes and hands each notification to the reload
loop through an async iterator. Every notification is delivered; nothing
is debounced or coalesced.
"""

import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import WatchSubscriptionError
from ..models import ChangeEvent, ChangeKind, WatchState

logger = logging.getLogger(__name__)

_CLOSED = object()


def _event_path(raw) -> Path:
    return Path(os.fsdecode(raw))


class ConfigFileHandler(FileSystemEventHandler):
    """Handles file system events for the configuration file."""

    def __init__(
        self,
        config_file: Path,
        notify: Callable[[ChangeEvent], None],
        use_close_events: Optional[bool] = None
    ):
        """
        Initialize file handler.

        Args:
            config_file: The watched file; events for siblings are dropped
            notify: Called from the observer thread for every relevant event
            use_close_events: React to close-after-write instead of modify/create
                so a half-written file is never read (default: on Linux)
        """
        super().__init__()
        self.config_file = config_file
        self.notify = notify
        if use_close_events is None:
            use_close_events = sys.platform.startswith("linux")
        self.use_close_events = use_close_events
        self.real_path = os.path.realpath(config_file)

    def dispatch(self, event: FileSystemEvent):
        # Symlinked layouts (zinx.json -> ..data/zinx.json) are updated by
        # renaming a new ..data link into place; only the resolved path shows it
        if self._target_replaced():
            self._emit(ChangeKind.MOVED)
            return
        super().dispatch(event)

    def _target_replaced(self) -> bool:
        real_path = os.path.realpath(self.config_file)
        if real_path == self.real_path:
            return False
        logger.debug(f"Config file now resolves to {real_path}")
        self.real_path = real_path
        return True

    def _is_target(self, raw_path) -> bool:
        if not raw_path:
            return False
        return _event_path(raw_path).name == self.config_file.name

    def _emit(self, kind: ChangeKind) -> None:
        logger.debug(f"Config file {kind.value}: {self.config_file}")
        self.notify(ChangeEvent(kind=kind, path=self.config_file, timestamp=time.time()))

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification event."""
        if event.is_directory or self.use_close_events:
            return
        if self._is_target(event.src_path):
            self._emit(ChangeKind.MODIFIED)

    def on_created(self, event: FileSystemEvent):
        """Handle file creation event."""
        if event.is_directory or self.use_close_events:
            return
        if self._is_target(event.src_path):
            self._emit(ChangeKind.CREATED)

    def on_closed(self, event: FileSystemEvent):
        """Handle close-after-write event (inotify only)."""
        if event.is_directory or not self.use_close_events:
            return
        if self._is_target(event.src_path):
            self._emit(ChangeKind.MODIFIED)

    def on_moved(self, event: FileSystemEvent):
        """Handle rename (atomic saves write a temp file and rename it into place)."""
        if event.is_directory:
            return
        if self._is_target(getattr(event, "dest_path", None)):
            self._emit(ChangeKind.MOVED)
        elif self._is_target(event.src_path):
            self._emit(ChangeKind.DELETED)

    def on_deleted(self, event: FileSystemEvent):
        """Handle file deletion event."""
        if event.is_directory:
            return
        if self._is_target(event.src_path):
            self._emit(ChangeKind.DELETED)


class WatchSubscription:
    """
    Cancellable stream of change notifications.

    Iterate with `async for`; iteration ends after close(). A closed
    subscription cannot be reopened, subscribe again instead.
    """

    def __init__(self, watcher: "FileWatcher", loop: asyncio.AbstractEventLoop):
        self._watcher = watcher
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: ChangeEvent) -> None:
        """Queue an event; safe to call from the observer thread."""
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            logger.debug(f"Dropping {event.kind.value} event, event loop is closed")

    def close(self) -> None:
        """Release the filesystem subscription and end iteration."""
        observer = self._detach()
        if observer is not None:
            observer.join(timeout=5.0)

    async def aclose(self) -> None:
        """Like close(), but waits for the observer thread off the event loop."""
        observer = self._detach()
        if observer is not None:
            await asyncio.to_thread(observer.join, 5.0)

    def _detach(self) -> Optional[Observer]:
        if self._closed:
            return None
        self._closed = True
        observer = self._watcher._release(self)
        # Queued behind events already handed to the loop
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)
        except RuntimeError:
            self._queue.put_nowait(_CLOSED)
        return observer

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the sentinel for any other consumer
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def pending(self) -> int:
        """Number of undelivered events."""
        return self._queue.qsize()


class FileWatcher:
    """Watches the configuration file and streams change notifications."""

    def __init__(self, config_file: Path, use_close_events: Optional[bool] = None):
        """
        Initialize file watcher.

        Args:
            config_file: Resolved configuration file path
            use_close_events: See ConfigFileHandler
        """
        self.config_file = Path(config_file)
        self.use_close_events = use_close_events

        self.observer: Optional[Observer] = None
        self.subscription: Optional[WatchSubscription] = None
        self.state = WatchState.UNWATCHED

    def subscribe(self) -> WatchSubscription:
        """
        Start watching and return the notification stream.

        Must be called from a running event loop. The parent directory is
        watched so that rename-into-place saves are seen.

        Returns:
            WatchSubscription

        Raises:
            WatchSubscriptionError: If the observer cannot be started
        """
        if self.subscription is not None and not self.subscription.closed:
            logger.warning("File watcher already running")
            return self.subscription

        loop = asyncio.get_running_loop()
        subscription = WatchSubscription(self, loop)
        handler = ConfigFileHandler(
            self.config_file,
            notify=subscription.deliver,
            use_close_events=self.use_close_events
        )

        watch_dir = self.config_file.parent
        logger.info(f"Starting file watcher for {self.config_file}")

        observer = Observer()
        try:
            observer.schedule(handler, str(watch_dir), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchSubscriptionError(str(watch_dir), str(e)) from e

        self.observer = observer
        self.subscription = subscription
        self.state = WatchState.WATCHING

        logger.info("File watcher started")
        return subscription

    def stop(self) -> None:
        """Stop file watcher."""
        if self.subscription is not None:
            self.subscription.close()

    async def aclose(self) -> None:
        """Stop file watcher without blocking the event loop."""
        if self.subscription is not None:
            await self.subscription.aclose()

    def is_running(self) -> bool:
        """
        Check if file watcher is running.

        Returns:
            True if running, False otherwise
        """
        return self.state == WatchState.WATCHING

    def _release(self, subscription: Optional[WatchSubscription]) -> Optional[Observer]:
        """Stop the observer; joining its thread is left to the caller."""
        if subscription is not None and subscription is not self.subscription:
            return None

        logger.info("Stopping file watcher")

        observer = self.observer
        if observer:
            observer.stop()
            self.observer = None

        self.state = WatchState.STOPPED
        logger.info("File watcher stopped")
        return observer
