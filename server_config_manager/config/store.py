"""
Configuration store shared by the server and its collaborators.

Holds one immutable ServerConfig snapshot. Writers build a complete new
snapshot and publish it with a single reference assignment, so readers
always see either the old or the new snapshot, never a mixture.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, List

from ..models import (
    CacheSection,
    DatabaseSection,
    IdentitySection,
    LoggingSection,
    NetworkSection,
    ServerConfig,
    WorkerSection,
)

logger = logging.getLogger(__name__)

Listener = Callable[[ServerConfig, ServerConfig], None]


class ConfigStore:
    """
    Current configuration snapshot with lock-free reads.

    Collaborators that need several values from one consistent view should
    call snapshot() once and read from the returned object; each section
    property reads the latest snapshot independently.
    """

    def __init__(self, initial: ServerConfig):
        """
        Initialize the store.

        Args:
            initial: Snapshot from the defaults initializer
        """
        self._snapshot = initial
        self._write_lock = threading.Lock()
        self._listeners: List[Listener] = []

    def snapshot(self) -> ServerConfig:
        """Return the current snapshot."""
        return self._snapshot

    @property
    def identity(self) -> IdentitySection:
        return self._snapshot.identity

    @property
    def network(self) -> NetworkSection:
        return self._snapshot.network

    @property
    def worker(self) -> WorkerSection:
        return self._snapshot.worker

    @property
    def logging(self) -> LoggingSection:
        return self._snapshot.logging

    @property
    def mysql_read(self) -> DatabaseSection:
        return self._snapshot.mysql_read

    @property
    def mysql_write(self) -> DatabaseSection:
        return self._snapshot.mysql_write

    @property
    def redis(self) -> CacheSection:
        return self._snapshot.redis

    @property
    def source(self) -> Path:
        return self._snapshot.source

    def publish(self, new: ServerConfig) -> ServerConfig:
        """
        Replace the current snapshot.

        Listeners are notified after the swap, outside the write lock, and
        only when the value actually changed.

        Args:
            new: Fully validated snapshot

        Returns:
            The snapshot that was replaced
        """
        with self._write_lock:
            old = self._snapshot
            self._snapshot = new

        if old != new:
            self._notify(old, new)

        return old

    def add_listener(self, listener: Listener) -> None:
        """
        Register a callback invoked as listener(old, new) after each change.

        Args:
            listener: Synchronous callable; exceptions are logged and ignored
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, old: ServerConfig, new: ServerConfig) -> None:
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception as e:
                logger.exception(f"Configuration listener {listener!r} failed: {e}")
