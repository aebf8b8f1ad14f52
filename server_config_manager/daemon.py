"""
Server Configuration Daemon

Owns the configuration store for the lifetime of the process: builds the
defaults, performs the initial load, and runs the hot-reload loop until
shutdown.
"""
# Module can be run with: python -m server_config_manager

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from server_config_manager.config import (
    ConfigStore,
    FileWatcher,
    ReloadManager,
    build_defaults,
)
from server_config_manager.config.file_watcher import WatchSubscription
from server_config_manager.errors import ConfigError
from server_config_manager.models import FileStatus, WatchState
from server_config_manager.state import ReloadState

logger = logging.getLogger(__name__)


class ServerConfigDaemon:
    """Runs the live configuration store."""

    def __init__(self, config_path: Optional[Path] = None, use_close_events: Optional[bool] = None):
        """
        Initialize the daemon.

        Args:
            config_path: Configuration file (defaults to $SERVER_CONFIG_PATH
                or <cwd>/conf/zinx.json)
            use_close_events: Passed to FileWatcher
        """
        self.store = ConfigStore(build_defaults(config_path))
        self.config_path = self.store.source
        self.state = ReloadState()
        self.reload_manager = ReloadManager(self.store, state=self.state)
        self.file_watcher = FileWatcher(self.config_path, use_close_events=use_close_events)

        self.subscription: Optional[WatchSubscription] = None
        self.reload_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self) -> None:
        """
        Load the configuration and start watching it.

        Raises:
            ConfigLoadError: If the configuration file exists but is invalid
            WatchSubscriptionError: If the file cannot be watched
        """
        logger.info("Starting Server Configuration Daemon")

        result = self.reload_manager.initial_load()
        result.raise_for_error()

        if result.file_status == FileStatus.EXISTS:
            self.subscription = self.file_watcher.subscribe()
            self.state.watch_state = WatchState.WATCHING
            self.reload_task = asyncio.create_task(self.reload_manager.run(self.subscription))
        else:
            logger.info("No configuration file to watch, hot reload disabled")

        self.running = True
        logger.info("Daemon started successfully")

    async def stop(self) -> None:
        """Stop watching; a reload already in progress is allowed to finish."""
        logger.info("Stopping daemon...")
        self.running = False

        await self.file_watcher.aclose()
        self.state.watch_state = self.file_watcher.state

        if self.reload_task:
            await self.reload_task
            self.reload_task = None

        logger.info("Daemon stopped")

    async def serve_forever(self, stop_event: asyncio.Event) -> None:
        """Run until stop_event is set, then shut down."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()


async def main(config_path: Optional[Path] = None):
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    daemon = ServerConfigDaemon(config_path)
    stop_event = asyncio.Event()

    # Setup signal handlers
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await daemon.serve_forever(stop_event)
    except ConfigError as e:
        logger.error(f"Fatal error: {e.message}")
        sys.exit(1)


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
