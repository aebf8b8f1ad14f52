"""
Configuration reload orchestrator.

Runs the initial load and every hot reload. Both build a complete new
snapshot off to the side and publish it in one step; they differ only in
how a failure is treated:
- initial load: a parse failure is fatal (LoadResult.fatal)
- hot reload: every failure is logged and the previous snapshot is kept
"""

import asyncio
import logging
import threading
import time
from typing import Optional

from ..errors import ConfigParseError
from ..models import FileStatus, LoadResult
from ..state import ReloadState
from .file_watcher import WatchSubscription
from .loader import ConfigLoader
from .locator import locate_config_file
from .merger import ConfigMerger, changed_keys
from .store import ConfigStore

logger = logging.getLogger(__name__)


class ReloadManager:
    """Applies the configuration file to a ConfigStore."""

    def __init__(
        self,
        store: ConfigStore,
        loader: Optional[ConfigLoader] = None,
        merger: Optional[ConfigMerger] = None,
        state: Optional[ReloadState] = None
    ):
        """
        Initialize reload manager.

        Args:
            store: Store to publish into; its snapshot names the file to read
            loader: Override the file loader (defaults to store.source)
            merger: Override the merger
            state: Telemetry sink
        """
        self.store = store
        self.config_path = store.source
        self.loader = loader or ConfigLoader(self.config_path)
        self.merger = merger or ConfigMerger()
        self.state = state or ReloadState()
        self._reload_lock = threading.Lock()

    def initial_load(self) -> LoadResult:
        """
        Overlay the configuration file at startup.

        A missing or unreadable file is logged and the defaults stand. A file
        that exists but cannot be parsed yields a fatal result; reporting it
        is left to the caller.

        Returns:
            LoadResult
        """
        logger.info(f"Loading configuration from {self.config_path}")
        result = self._apply()

        if result.success:
            self.state.config_load_timestamp = time.time()
            logger.info("Configuration loaded successfully")
        elif result.errors:
            result.fatal = True
        else:
            logger.warning(f"{result.message}; using built-in defaults")

        return result

    def reload(self) -> LoadResult:
        """
        Re-apply the configuration file while the server is running.

        Never raises for file or parse problems: they are logged once and
        the previous snapshot stays published.

        Returns:
            LoadResult
        """
        start_time = time.time()
        result = self._apply()
        duration_ms = int((time.time() - start_time) * 1000)

        if result.success:
            if result.changed:
                logger.info(f"Configuration reloaded from {self.config_path} ({duration_ms}ms)")
            else:
                logger.debug(f"Configuration file {self.config_path} reloaded without changes")
        elif result.errors:
            logger.error(f"Configuration reload failed, keeping previous configuration: {result.message}")
        else:
            logger.warning(f"{result.message}; keeping previous configuration")

        self.state.record_reload(result, duration_ms)
        return result

    async def run(self, subscription: WatchSubscription) -> None:
        """
        Reload once per change notification until the subscription closes.

        Notifications are handled one at a time in arrival order. Closing the
        subscription lets a reload that is already running finish.

        Args:
            subscription: Stream from FileWatcher.subscribe()
        """
        logger.info(f"Watching {self.config_path} for changes")

        async for event in subscription:
            logger.info(f"Config file changed ({event.kind.value}): {event.path}")
            try:
                await asyncio.to_thread(self.reload)
            except Exception as e:
                logger.exception(f"Unexpected error reloading configuration: {e}")

        logger.info(f"Stopped watching {self.config_path}")

    def _apply(self) -> LoadResult:
        path = str(self.config_path)

        with self._reload_lock:
            location = locate_config_file(self.config_path)
            if location.status == FileStatus.NOT_EXISTS:
                return LoadResult(
                    success=False,
                    file_status=FileStatus.NOT_EXISTS,
                    message=f"Config file {path} does not exist",
                    file_path=path
                )
            if location.status == FileStatus.ACCESS_ERROR:
                return LoadResult(
                    success=False,
                    file_status=FileStatus.ACCESS_ERROR,
                    message=f"Config file {path} is not accessible: {location.detail}",
                    file_path=path
                )

            current = self.store.snapshot()
            try:
                document = self.loader.load_document()
                new = self.merger.overlay(current, document, path)
            except FileNotFoundError:
                return LoadResult(
                    success=False,
                    file_status=FileStatus.NOT_EXISTS,
                    message=f"Config file {path} does not exist",
                    file_path=path
                )
            except OSError as e:
                return LoadResult(
                    success=False,
                    file_status=FileStatus.ACCESS_ERROR,
                    message=f"Config file {path} is not accessible: {e}",
                    file_path=path
                )
            except ConfigParseError as e:
                return LoadResult(
                    success=False,
                    file_status=FileStatus.EXISTS,
                    errors=e.issues,
                    message=e.message,
                    file_path=path
                )

            changed = new != current
            if changed:
                logger.info(f"Changed settings: {', '.join(changed_keys(current, new))}")
                self.store.publish(new)

        return LoadResult(
            success=True,
            file_status=FileStatus.EXISTS,
            changed=changed,
            file_path=path
        )
