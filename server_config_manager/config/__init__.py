"""
Configuration subsystem for the server configuration store.

Modules:
- defaults: Built-in values and config file path resolution
- locator: Probe the configuration file
- loader: Read and decode the JSON configuration file
- merger: Overlay a decoded document onto the current snapshot
- store: Atomically swapped snapshot shared with collaborators
- file_watcher: Stream configuration file change notifications
- reload_manager: Initial load and hot reload with failure isolation
"""

from .defaults import build_defaults, resolve_config_path
from .locator import locate_config_file
from .loader import ConfigLoader, parse_document
from .merger import ConfigMerger
from .store import ConfigStore
from .file_watcher import FileWatcher, WatchSubscription
from .reload_manager import ReloadManager

__all__ = [
    "build_defaults",
    "resolve_config_path",
    "locate_config_file",
    "ConfigLoader",
    "parse_document",
    "ConfigMerger",
    "ConfigStore",
    "FileWatcher",
    "WatchSubscription",
    "ReloadManager",
]
