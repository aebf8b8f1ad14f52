"""
Reload state tracking for the configuration store.

Tracks load timestamps, watcher status and reload outcome counters.
"""

import time
from typing import Optional

from .models import LoadResult, WatchState


class ReloadState:
    """Tracks configuration reload telemetry."""

    def __init__(self):
        """Initialize reload state."""
        self.config_load_timestamp: Optional[float] = None
        self.watch_state: WatchState = WatchState.UNWATCHED
        self.last_error: Optional[str] = None
        self.last_reload_success: bool = False

        self.telemetry = {
            "total_reload_attempts": 0,
            "successful_reloads": 0,
            "unchanged_reloads": 0,
            "failed_reloads": 0,
            "skipped_reloads": 0,
            "success_rate_percent": 0.0,
            "last_reload_duration_ms": 0,
        }

    def record_reload(self, result: LoadResult, duration_ms: int) -> None:
        """
        Record a hot reload outcome.

        Args:
            result: Outcome returned by ReloadManager.reload()
            duration_ms: Reload duration in milliseconds
        """
        self.telemetry["total_reload_attempts"] += 1
        self.telemetry["last_reload_duration_ms"] = duration_ms
        self.last_reload_success = result.success

        if result.success:
            self.telemetry["successful_reloads"] += 1
            if result.changed:
                self.config_load_timestamp = time.time()
            else:
                self.telemetry["unchanged_reloads"] += 1
        elif result.errors:
            self.telemetry["failed_reloads"] += 1
            self.last_error = result.message
        else:
            self.telemetry["skipped_reloads"] += 1
            self.last_error = result.message

        attempts = self.telemetry["total_reload_attempts"]
        self.telemetry["success_rate_percent"] = round(
            (self.telemetry["successful_reloads"] / attempts) * 100,
            2
        )

    def to_dict(self) -> dict:
        """
        Convert state to dictionary.

        Returns:
            State as dictionary with telemetry
        """
        return {
            "config_load_timestamp": self.config_load_timestamp,
            "watch_state": self.watch_state.value,
            "last_error": self.last_error,
            "last_reload_success": self.last_reload_success,
            "telemetry": dict(self.telemetry)
        }
