"""
Pydantic data models for the live server configuration.

Every section is frozen and strictly typed: a snapshot, once built, never
changes, and a new snapshot is only produced by a full validation pass.
"""

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


SECTION_CONFIG = ConfigDict(frozen=True, strict=True, extra="forbid")

UINT16_MAX = 65535


# Enumerations

class FileStatus(str, Enum):
    """Result of probing the configuration file."""
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    ACCESS_ERROR = "access_error"


class WatchState(str, Enum):
    """Change watcher lifecycle."""
    UNWATCHED = "unwatched"
    WATCHING = "watching"
    STOPPED = "stopped"


class ChangeKind(str, Enum):
    """Kind of filesystem change observed on the configuration file."""
    MODIFIED = "modified"
    CREATED = "created"
    MOVED = "moved"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """A filesystem notification for the configuration file."""

    kind: ChangeKind
    path: Path
    timestamp: float = Field(..., description="time.time() when the event was received")


# Configuration sections

class IdentitySection(BaseModel):
    """Server identity."""

    model_config = SECTION_CONFIG

    name: str = Field(..., min_length=1, description="Server name")
    version: str = Field(..., min_length=1, description="Framework version string")
    env: Literal["develop", "production"] = Field(..., description="Environment tag")


class NetworkSection(BaseModel):
    """Listener address and connection limits.

    Durations are whole seconds; 0 means the timer never fires.
    """

    model_config = SECTION_CONFIG

    host: str = Field(..., min_length=1, description="Bind host")
    port: int = Field(..., ge=0, le=UINT16_MAX, description="Listen port")
    max_packet_size: int = Field(..., ge=0, le=UINT16_MAX, description="Maximum packet size in bytes")
    max_conn: int = Field(..., ge=0, description="Maximum concurrent connections")
    heartbeat_time: int = Field(..., ge=0, description="Heartbeat interval (seconds)")
    conn_read_timeout: int = Field(..., ge=0, description="Read timeout (seconds)")
    conn_write_timeout: int = Field(..., ge=0, description="Write timeout (seconds)")
    double_msg_id: int = Field(..., ge=0, le=UINT16_MAX, description="1 = single message id, 2 = main/sub message id")

    @property
    def heartbeat_interval(self) -> Optional[timedelta]:
        return _seconds(self.heartbeat_time)

    @property
    def read_timeout(self) -> Optional[timedelta]:
        return _seconds(self.conn_read_timeout)

    @property
    def write_timeout(self) -> Optional[timedelta]:
        return _seconds(self.conn_write_timeout)


class WorkerSection(BaseModel):
    """Business-logic worker pool sizing."""

    model_config = SECTION_CONFIG

    worker_pool_size: int = Field(..., ge=0, description="Number of workers")
    max_worker_task_len: int = Field(..., ge=0, description="Queued tasks per worker")
    max_msg_chan_len: int = Field(..., ge=0, description="Buffered outbound messages per connection")


class LoggingSection(BaseModel):
    """Settings consumed by the logging collaborator."""

    model_config = SECTION_CONFIG

    level: str
    format: str
    prefix: str
    director: str = Field(..., description="Log file directory")
    link_name: str = Field(..., description="Name of the link to the current log file")
    show_line: bool
    encode_level: str
    stacktrace_key: str
    log_in_console: bool


class DatabaseSection(BaseModel):
    """One database endpoint (read or write)."""

    model_config = SECTION_CONFIG

    path: str = Field(..., description="host:port")
    config: str = Field(..., description="Advanced connection options")
    dbname: str
    username: str
    password: str
    max_idle_conns: int = Field(..., ge=0)
    max_open_conns: int = Field(..., ge=0)
    log_mode: str


class CacheSection(BaseModel):
    """Cache server connection."""

    model_config = SECTION_CONFIG

    db: int = Field(..., ge=0, description="Logical database index")
    addr: str = Field(..., description="host:port")
    password: str


class ServerConfig(BaseModel):
    """The configuration aggregate: one coherent snapshot of every section."""

    model_config = SECTION_CONFIG

    identity: IdentitySection
    network: NetworkSection
    worker: WorkerSection
    logging: LoggingSection
    mysql_read: DatabaseSection
    mysql_write: DatabaseSection
    redis: CacheSection
    source: Path = Field(..., description="Configuration file being watched")


# Results

class FileLocation(BaseModel):
    """Outcome of locating the configuration file."""

    path: Path
    status: FileStatus
    detail: Optional[str] = None


class FieldIssue(BaseModel):
    """A single problem found while decoding a configuration document."""

    key: str = Field(..., description="Key path as written in the file, e.g. ZapConfig.level")
    message: str
    value: Optional[str] = Field(None, description="repr() of the rejected value")

    def describe(self) -> str:
        if self.value is None:
            return f"{self.key}: {self.message}"
        return f"{self.key}: {self.message} (got {self.value})"


class LoadResult(BaseModel):
    """Outcome of an initial load or hot reload."""

    success: bool
    fatal: bool = False
    file_status: FileStatus
    changed: bool = False
    errors: List[FieldIssue] = Field(default_factory=list)
    message: Optional[str] = None
    file_path: str

    def raise_for_error(self) -> None:
        """Raise ConfigLoadError when the load must abort startup."""
        if not self.fatal:
            return

        from .errors import ConfigLoadError
        raise ConfigLoadError(self.file_path, self.message or "unknown error")


def _seconds(value: int) -> Optional[timedelta]:
    if value == 0:
        return None
    return timedelta(seconds=value)
